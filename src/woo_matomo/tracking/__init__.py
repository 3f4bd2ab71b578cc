"""
Package: tracking
Description: Order event entry points tying lookup, delivery and audit logging together.
"""
