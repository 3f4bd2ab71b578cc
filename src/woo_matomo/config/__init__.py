"""
Package: config
Description: Application configuration loaded with pydantic-settings.
"""

from .settings import Settings, get_settings, load_delivery_config

__all__ = ["Settings", "get_settings", "load_delivery_config"]
