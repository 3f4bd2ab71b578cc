"""
Module: settings.py
Description: Application configuration using pydantic-settings.

Loads the Matomo connection, retention policy and store access settings
from environment variables (or a .env file for local development).
Settings are rebuilt on every call to get_settings() so that a change to
the tracking configuration takes effect on the next order event.
"""

import re
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from woo_matomo.models.delivery import DeliveryConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="WooCommerce Matomo Tracking", description="Application name")
    app_version: str = Field(default="1.1.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")

    # AWS settings
    aws_region: str = Field(default="us-east-1", description="AWS region")
    stage: str = Field(default="dev", description="Deployment stage")

    # Audit log storage
    logs_table_name: str = Field(
        default="woo-matomo-logs",
        description="Name of the DynamoDB delivery log table"
    )
    log_retention_days: int = Field(
        default=30,
        ge=1,
        le=365,
        description="Days to keep delivery log entries before pruning"
    )

    # Matomo collector
    matomo_url: str = Field(default="", description="Base URL of the Matomo installation")
    site_id: int = Field(default=0, ge=0, description="Matomo site ID (0 means not set)")
    auth_token: str = Field(default="", description="Matomo token_auth")
    tracking_enabled: bool = Field(default=True, description="Send order events to Matomo")
    delivery_timeout: float = Field(
        default=5.0,
        ge=1,
        le=30,
        description="HTTP timeout in seconds for delivery attempts"
    )
    blocking_delivery: bool = Field(
        default=True,
        description="Wait for the delivery outcome before answering the caller"
    )
    site_url: str = Field(default="", description="Public store URL reported as the page URL")

    # WooCommerce REST API
    woocommerce_url: str = Field(default="", description="Base URL of the WooCommerce store")
    woocommerce_consumer_key: str = Field(default="", description="WooCommerce REST consumer key")
    woocommerce_consumer_secret: str = Field(default="", description="WooCommerce REST consumer secret")

    # Operations
    metrics_enabled: bool = Field(default=False, description="Publish CloudWatch delivery metrics")
    admin_api_key: Optional[str] = Field(
        default=None,
        description="Key required in X-Admin-API-Key for the log endpoints"
    )

    @field_validator('logs_table_name')
    @classmethod
    def validate_table_name(cls, v: str) -> str:
        """Validate the DynamoDB table name."""
        if not v or not re.match(r'^[a-zA-Z0-9_.-]{3,255}$', v):
            raise ValueError(
                "Table name must be 3-255 letters, numbers, dots, hyphens or underscores"
            )
        return v

    @field_validator('matomo_url', 'site_url', 'woocommerce_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Allow an empty value or an absolute HTTP/HTTPS URL."""
        v = v.strip()
        if v and not v.startswith(('http://', 'https://')):
            raise ValueError("URL must start with http:// or https://")
        return v

    @field_validator('auth_token')
    @classmethod
    def strip_auth_token(cls, v: str) -> str:
        return v.strip()

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    def delivery_config(self) -> DeliveryConfig:
        """Build the per-invocation delivery configuration."""
        return DeliveryConfig(
            collector_base_url=self.matomo_url,
            site_id=self.site_id,
            auth_token=self.auth_token,
            tracking_enabled=self.tracking_enabled,
            timeout_seconds=self.delivery_timeout,
            blocking=self.blocking_delivery,
        )


def get_settings() -> Settings:
    """Read settings from the environment; never cached."""
    return Settings()


def load_delivery_config() -> DeliveryConfig:
    """Resolve the current DeliveryConfig for one order event."""
    return get_settings().delivery_config()
