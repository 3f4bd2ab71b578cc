"""
Package: woo_matomo
Description: Forwards WooCommerce order events to Matomo and keeps an
audit log of every delivery attempt.
"""

__version__ = "1.1.0"
