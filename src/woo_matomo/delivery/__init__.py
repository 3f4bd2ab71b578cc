"""
Package: delivery
Description: Event delivery to the Matomo collector.

Provides the Matomo tracking parameter encoding and the single-attempt
HTTP push client.
"""
