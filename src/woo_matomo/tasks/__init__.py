"""
Package: tasks
Description: Scheduled Lambda entry points.
"""
