"""
Module: test_tracker.py
Description: Unit tests for OrderEventTracker.

Exercises the full pipeline (lookup, event build, delivery, audit log)
against pytest-httpx and a moto DynamoDB table.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from structlog.testing import capture_logs

from woo_matomo.errors import StorageError
from woo_matomo.models.delivery import DeliveryConfig, DeliveryStatus, TrackingContext
from woo_matomo.models.log_entry import EventType, LogStatus
from woo_matomo.tracking.tracker import OrderEventTracker, drain_background_deliveries
from woo_matomo.utils.metrics import DELIVERY_FAILED, DELIVERY_SUCCEEDED

MATOMO_ENDPOINT = "https://matomo.example.com/matomo.php"


@pytest.fixture
def make_tracker(order_lookup, audit_log, delivery_config):
    """Build a tracker whose config loader returns the given config."""

    def build(config=None, **kwargs):
        config = config or delivery_config
        return OrderEventTracker(
            order_lookup=order_lookup,
            audit_log=audit_log,
            config_loader=lambda: config,
            **kwargs
        )

    return build


class TestNewOrder:
    """Test cases for on_new_order."""

    @pytest.mark.asyncio
    async def test_success_is_delivered_and_logged(self, make_tracker, audit_log, httpx_mock, form_fields):
        # Arrange
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=200)
        tracker = make_tracker(default_context=TrackingContext(url="https://shop.example.com"))

        # Act
        result = await tracker.on_new_order(101)

        # Assert
        assert result.error is None
        assert result.outcome.status == DeliveryStatus.SUCCESS
        assert result.log_entry_id == 1

        fields = form_fields(httpx_mock.get_request())
        assert fields["e_c"] == "WooCommerce"
        assert fields["e_a"] == "New Order"
        assert fields["c_order_id"] == "101"
        assert fields["c_order_total"] == "49.99"
        assert fields["c_order_currency"] == "USD"
        assert fields["url"] == "https://shop.example.com"

        entries = await audit_log.get_order_logs(101)
        assert len(entries) == 1
        assert entries[0].event_type == EventType.NEW_ORDER
        assert entries[0].status == LogStatus.SUCCESS
        assert entries[0].event_payload["e_a"] == "New Order"

    @pytest.mark.asyncio
    async def test_caller_context_overrides_default(self, make_tracker, httpx_mock, form_fields):
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=200)
        tracker = make_tracker(default_context=TrackingContext(url="https://shop.example.com"))

        await tracker.on_new_order(
            101,
            TrackingContext(url="https://shop.example.com/checkout", referrer="https://ads.example", user_id=7)
        )

        fields = form_fields(httpx_mock.get_request())
        assert fields["url"] == "https://shop.example.com/checkout"
        assert fields["urlref"] == "https://ads.example"
        assert fields["uid"] == "7"

    @pytest.mark.asyncio
    async def test_http_error_is_logged_as_error(self, make_tracker, audit_log, httpx_mock):
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=500)
        tracker = make_tracker()

        result = await tracker.on_new_order(101)

        assert result.outcome.status == DeliveryStatus.HTTP_ERROR
        entry = (await audit_log.get_order_logs(101))[0]
        assert entry.status == LogStatus.ERROR
        assert entry.error_message == "Matomo responded with HTTP 500"

    @pytest.mark.asyncio
    async def test_transport_error_is_logged_as_error(self, make_tracker, audit_log, httpx_mock):
        httpx_mock.add_exception(httpx.ConnectError("Connection refused"), url=MATOMO_ENDPOINT)
        tracker = make_tracker()

        result = await tracker.on_new_order(101)

        assert result.outcome.status == DeliveryStatus.TRANSPORT_ERROR
        assert result.error is None
        entry = (await audit_log.get_order_logs(101))[0]
        assert entry.status == LogStatus.ERROR
        assert "Connection refused" in entry.error_message

    @pytest.mark.asyncio
    async def test_unknown_order_is_dropped_silently(self, make_tracker, audit_log, httpx_mock):
        tracker = make_tracker()

        result = await tracker.on_new_order(999)

        assert result.outcome.status == DeliveryStatus.ORDER_NOT_FOUND
        assert result.log_entry_id is None
        assert httpx_mock.get_requests() == []
        assert (await audit_log.fetch_page()).total_count == 0

    @pytest.mark.asyncio
    async def test_disabled_tracking_skips_lookup(self, make_tracker, delivery_config, httpx_mock):
        config = delivery_config.model_copy(update={"tracking_enabled": False})
        tracker = make_tracker(config)
        tracker._order_lookup = MagicMock(get=AsyncMock())

        result = await tracker.on_new_order(101)

        assert result.outcome.status == DeliveryStatus.SKIPPED
        tracker._order_lookup.get.assert_not_called()
        assert httpx_mock.get_requests() == []

    @pytest.mark.asyncio
    async def test_unconfigured_sends_and_logs_nothing(self, make_tracker, audit_log, httpx_mock):
        tracker = make_tracker(DeliveryConfig(collector_base_url="https://matomo.example.com"))

        result = await tracker.on_new_order(101)

        assert result.outcome.status == DeliveryStatus.SKIPPED_UNCONFIGURED
        assert result.log_entry_id is None
        assert httpx_mock.get_requests() == []
        assert (await audit_log.fetch_page()).total_count == 0


class TestStatusChange:
    """Test cases for on_order_status_changed."""

    @pytest.mark.asyncio
    async def test_status_change_event(self, make_tracker, audit_log, httpx_mock, form_fields):
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=200)
        tracker = make_tracker()

        result = await tracker.on_order_status_changed(101, "pending", "completed")

        assert result.event_type == EventType.STATUS_CHANGE
        assert result.outcome.succeeded
        fields = form_fields(httpx_mock.get_request())
        assert fields["e_a"] == "Order Status Change"
        assert fields["e_v"] == "completed"
        assert "c_items" not in fields

        entry = (await audit_log.get_order_logs(101))[0]
        assert entry.event_type == EventType.STATUS_CHANGE
        assert entry.event_payload["e_v"] == "completed"


class TestConfigAndFailures:
    """Test cases for per-event configuration and error containment."""

    @pytest.mark.asyncio
    async def test_config_is_reloaded_for_every_event(self, order_lookup, audit_log, delivery_config, httpx_mock):
        # Arrange: tracking disabled for the second event
        configs = iter([
            delivery_config,
            delivery_config.model_copy(update={"tracking_enabled": False}),
        ])
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=200)
        tracker = OrderEventTracker(
            order_lookup=order_lookup,
            audit_log=audit_log,
            config_loader=lambda: next(configs)
        )

        # Act
        first = await tracker.on_new_order(101)
        second = await tracker.on_new_order(101)

        # Assert
        assert first.outcome.status == DeliveryStatus.SUCCESS
        assert second.outcome.status == DeliveryStatus.SKIPPED
        assert len(httpx_mock.get_requests()) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_is_reported_not_raised(self, make_tracker, audit_log, httpx_mock):
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=200)
        tracker = make_tracker()

        with patch.object(audit_log, 'record', AsyncMock(side_effect=StorageError("table gone"))):
            result = await tracker.on_new_order(101)

        assert result.outcome.succeeded
        assert result.log_entry_id is None
        assert result.storage_error == "table gone"
        assert result.error is None

    @pytest.mark.asyncio
    async def test_unexpected_lookup_error_is_contained(self, make_tracker, httpx_mock):
        tracker = make_tracker()
        tracker._order_lookup = MagicMock(get=AsyncMock(side_effect=RuntimeError("boom")))

        result = await tracker.on_new_order(101)

        assert result.error == "RuntimeError: boom"
        assert result.outcome is None
        assert httpx_mock.get_requests() == []

    @pytest.mark.asyncio
    async def test_delivery_client_crash_becomes_transport_error(self, make_tracker, audit_log):
        client = MagicMock(deliver=AsyncMock(side_effect=RuntimeError("boom")))
        tracker = make_tracker(delivery_client=client)

        result = await tracker.on_new_order(101)

        assert result.outcome.status == DeliveryStatus.TRANSPORT_ERROR
        assert result.log_entry_id == 1
        entry = (await audit_log.get_order_logs(101))[0]
        assert entry.error_message == "RuntimeError: boom"

    @pytest.mark.asyncio
    async def test_metrics_follow_outcome(self, make_tracker, httpx_mock):
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=200)
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=500)
        metrics = MagicMock()
        tracker = make_tracker(metrics_client=metrics)

        await tracker.on_new_order(101)
        await tracker.on_order_status_changed(101, "pending", "failed")

        names = [c.args[0] for c in metrics.put_metric.call_args_list]
        assert names == [DELIVERY_SUCCEEDED, DELIVERY_FAILED]
        assert metrics.put_metric.call_args_list[1].kwargs["dimensions"] == {"EventType": "status_change"}


class TestFireAndForget:
    """Test cases for non-blocking delivery."""

    @pytest.mark.asyncio
    async def test_dispatch_returns_before_delivery(self, make_tracker, delivery_config, audit_log, httpx_mock):
        # Arrange
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=200)
        config = delivery_config.model_copy(update={"blocking": False})
        tracker = make_tracker(config)

        # Act
        result = await tracker.on_new_order(101)
        drained = await drain_background_deliveries()

        # Assert
        assert result.dispatched is True
        assert result.outcome is None
        assert result.log_entry_id is None
        assert drained == 1
        entries = await audit_log.get_order_logs(101)
        assert len(entries) == 1
        assert entries[0].status == LogStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_drain_with_nothing_pending(self):
        assert await drain_background_deliveries() == 0

    @pytest.mark.asyncio
    async def test_drain_logs_failed_background_delivery(self, make_tracker, delivery_config, audit_log, httpx_mock):
        # Arrange: the audit write fails with an error the tracker does not expect
        httpx_mock.add_response(url=MATOMO_ENDPOINT, method="POST", status_code=200)
        tracker = make_tracker(delivery_config.model_copy(update={"blocking": False}))

        with patch.object(audit_log, 'record', AsyncMock(side_effect=RuntimeError("disk full"))):
            result = await tracker.on_new_order(101)

            # Act
            with capture_logs() as logs:
                drained = await drain_background_deliveries()

        # Assert
        assert result.dispatched is True
        assert drained == 1
        failures = [e for e in logs if e["event"] == "Background delivery failed"]
        assert len(failures) == 1
        assert failures[0]["error"] == "disk full"
        assert failures[0]["error_type"] == "RuntimeError"
        assert failures[0]["log_level"] == "error"
