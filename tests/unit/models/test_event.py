"""
Module: test_event.py
Description: Unit tests for the TrackingEvent model.

Tests event construction from order snapshots, field validation and
the structured event data stored in the audit log.
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from woo_matomo.models.event import TrackingEvent
from woo_matomo.models.log_entry import EventType
from woo_matomo.models.order import OrderSnapshot


class TestTrackingEvent:
    """Test cases for TrackingEvent construction and behavior."""

    def test_new_order_event(self, new_order_event):
        """New order events carry the order total as value and the items."""
        assert new_order_event.event_type == EventType.NEW_ORDER
        assert new_order_event.category == "WooCommerce"
        assert new_order_event.action == "New Order"
        assert new_order_event.label == "Order #101"
        assert new_order_event.value == "49.99"
        assert new_order_event.order_id == 101
        assert new_order_event.order_total == Decimal("49.99")
        assert new_order_event.order_currency == "USD"
        assert new_order_event.customer_id == 7
        assert len(new_order_event.items) == 2

    def test_new_order_items_keep_order_and_join_categories(self, new_order_event):
        first, second = new_order_event.items

        assert first.id == 11
        assert first.name == "Blue Mug"
        assert first.quantity == 2
        assert first.price == Decimal("12.50")
        assert first.category == "Kitchen|Gifts"
        assert second.id == 12
        assert second.category == "Tea"

    def test_status_change_event(self, status_change_event):
        """Status change events use the new status as value and have no items."""
        assert status_change_event.event_type == EventType.STATUS_CHANGE
        assert status_change_event.action == "Order Status Change"
        assert status_change_event.label == "Order #101"
        assert status_change_event.value == "completed"
        assert status_change_event.items is None

    def test_guest_order_has_customer_zero(self):
        order = OrderSnapshot(order_id=5, total=Decimal("10.00"), currency="EUR")

        event = TrackingEvent.new_order(order)

        assert event.customer_id == 0
        assert event.items == []

    def test_order_id_is_required_positive(self):
        with pytest.raises(ValidationError):
            TrackingEvent(
                event_type=EventType.NEW_ORDER,
                category="WooCommerce",
                action="New Order",
                label="Order #0",
                value="1",
                order_id=0,
                order_total=Decimal("1"),
                order_currency="USD"
            )

    def test_event_is_immutable(self, new_order_event):
        with pytest.raises(ValidationError):
            new_order_event.value = "0"


class TestEventData:
    """Test cases for the structured event snapshot."""

    def test_event_data_uses_matomo_descriptor_keys(self, new_order_event):
        data = new_order_event.event_data()

        assert list(data)[:4] == ["e_c", "e_a", "e_n", "e_v"]
        assert data["e_c"] == "WooCommerce"
        assert data["e_a"] == "New Order"
        assert data["order_id"] == 101
        assert data["order_total"] == "49.99"
        assert data["order_currency"] == "USD"
        assert data["customer_id"] == 7
        assert "event_type" not in data

    def test_event_data_items_are_json_safe(self, new_order_event):
        items = new_order_event.event_data()["items"]

        assert items[0] == {
            "id": 11,
            "name": "Blue Mug",
            "quantity": 2,
            "price": "12.50",
            "category": "Kitchen|Gifts"
        }

    def test_status_change_event_data_has_no_items(self, status_change_event):
        data = status_change_event.event_data()

        assert "items" not in data
        assert data["e_v"] == "completed"

    def test_custom_dimensions_exclude_descriptors(self, new_order_event):
        dimensions = new_order_event.custom_dimensions()

        assert set(dimensions) == {
            "order_id", "order_total", "order_currency", "customer_id", "items"
        }

    def test_from_event_data_rebuilds_equal_event(self, new_order_event, status_change_event):
        for event in (new_order_event, status_change_event):
            rebuilt = TrackingEvent.from_event_data(event.event_type, event.event_data())
            assert rebuilt == event
