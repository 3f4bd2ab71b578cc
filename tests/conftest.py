"""
Module: conftest.py
Description: Shared pytest fixtures for the order tracking tests.

Provides settings, sample orders and events, a controllable clock and a
moto-backed DynamoDB audit log table. Uses moto for AWS service mocking
and pytest-httpx for Matomo/WooCommerce HTTP calls.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from urllib.parse import parse_qs

import pytest
from moto import mock_aws

from woo_matomo.config.settings import Settings
from woo_matomo.models.event import TrackingEvent
from woo_matomo.models.order import OrderItemSnapshot, OrderSnapshot
from woo_matomo.orders.lookup import InMemoryOrderLookup
from woo_matomo.storage.audit_log import AuditLogStore

STORE_URL = "https://shop.example.com"


class FrozenClock:
    """Clock returning a fixed time until advanced."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


def _form_fields(request) -> dict:
    """Decode a form-encoded request body into a flat dict."""
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake AWS credentials so boto3 never reaches a real account."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")


@pytest.fixture
def test_settings():
    """
    Provide test configuration settings.

    Disables .env loading and fills in a complete Matomo and WooCommerce
    configuration. The Matomo URL keeps a trailing slash on purpose.
    """
    return Settings(
        _env_file=None,
        logs_table_name="test-matomo-logs",
        matomo_url="https://matomo.example.com/",
        site_id=3,
        auth_token="test-token",
        tracking_enabled=True,
        site_url=STORE_URL,
        woocommerce_url=STORE_URL,
        woocommerce_consumer_key="ck_test",
        woocommerce_consumer_secret="cs_test",
        admin_api_key="admin-secret",
        log_level="DEBUG"
    )


@pytest.fixture
def delivery_config(test_settings):
    return test_settings.delivery_config()


@pytest.fixture
def sample_order():
    """Order #101: 49.99 USD for customer 7 with two line items."""
    return OrderSnapshot(
        order_id=101,
        status="pending",
        total=Decimal("49.99"),
        currency="USD",
        customer_id=7,
        items=[
            OrderItemSnapshot(
                product_id=11,
                name="Blue Mug",
                quantity=2,
                price=Decimal("12.50"),
                categories=["Kitchen", "Gifts"]
            ),
            OrderItemSnapshot(
                product_id=12,
                name="Tea Sampler",
                quantity=1,
                price=Decimal("24.99"),
                categories=["Tea"]
            )
        ]
    )


@pytest.fixture
def new_order_event(sample_order):
    return TrackingEvent.new_order(sample_order)


@pytest.fixture
def status_change_event(sample_order):
    return TrackingEvent.status_change(sample_order, "pending", "completed")


@pytest.fixture
def order_lookup(sample_order):
    return InMemoryOrderLookup([sample_order])


@pytest.fixture
def form_fields():
    """Decoder for the form-encoded body of a captured httpx request."""
    return _form_fields


@pytest.fixture
def clock():
    return FrozenClock(datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def mocked_aws(aws_credentials):
    """Run the test inside moto's AWS mock."""
    with mock_aws():
        yield


@pytest.fixture
def audit_log(mocked_aws, test_settings, clock):
    """
    Provide an AuditLogStore backed by a mocked DynamoDB table.

    The table is created through ensure_table() so tests run against the
    production schema.
    """
    store = AuditLogStore(
        table_name=test_settings.logs_table_name,
        region_name="us-east-1",
        clock=clock
    )
    asyncio.run(store.ensure_table())
    return store
