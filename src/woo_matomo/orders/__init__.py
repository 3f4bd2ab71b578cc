"""
Package: orders
Description: Order lookups that resolve store order ids to snapshots.
"""
