"""
Module: event.py
Description: Tracking event model sent to Matomo.

Defines the typed TrackingEvent built from an order snapshot, kept
separate from the wire encoding (see delivery.payload). The event's
structured data is what gets persisted in the audit log.

Key Components:
- TrackingItem: Line item reported with new orders
- TrackingEvent: Event descriptors plus order custom dimensions
- TrackingEvent.new_order() / status_change(): Builders from OrderSnapshot
- event_data() / from_event_data(): Lossless structured snapshot

Dependencies: pydantic, decimal, typing
Author: Order Tracking Team
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from woo_matomo.models.log_entry import EventType
from woo_matomo.models.order import OrderSnapshot

EVENT_CATEGORY = "WooCommerce"
NEW_ORDER_ACTION = "New Order"
STATUS_CHANGE_ACTION = "Order Status Change"

# Matomo event descriptor parameters (category, action, name, value)
DESCRIPTOR_FIELDS = ("e_c", "e_a", "e_n", "e_v")


class TrackingItem(BaseModel):
    """Line item as reported to Matomo."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    quantity: int
    price: Decimal
    category: str = ""


class TrackingEvent(BaseModel):
    """
    Order event mapped onto Matomo's generic event fields.

    Attributes:
        event_type: new_order or status_change
        category: Event category (e_c)
        action: Event action (e_a)
        label: Event name (e_n)
        value: Event value (e_v); order total or the new status
        order_id: WooCommerce order ID
        order_total: Order grand total
        order_currency: ISO 4217 currency code
        customer_id: Customer ID, 0 for guests
        items: Line items, only for new orders
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    event_type: EventType
    category: str = Field(..., alias="e_c")
    action: str = Field(..., alias="e_a")
    label: str = Field(..., alias="e_n")
    value: str = Field(..., alias="e_v")
    order_id: int = Field(..., ge=1)
    order_total: Decimal
    order_currency: str
    customer_id: int = Field(default=0, ge=0)
    items: Optional[List[TrackingItem]] = None

    @classmethod
    def new_order(cls, order: OrderSnapshot) -> "TrackingEvent":
        """Build the event for a newly created order."""
        return cls(
            event_type=EventType.NEW_ORDER,
            category=EVENT_CATEGORY,
            action=NEW_ORDER_ACTION,
            label=f"Order #{order.order_id}",
            value=str(order.total),
            order_id=order.order_id,
            order_total=order.total,
            order_currency=order.currency,
            customer_id=order.customer_id,
            items=[
                TrackingItem(
                    id=item.product_id,
                    name=item.name,
                    quantity=item.quantity,
                    price=item.price,
                    category="|".join(item.categories),
                )
                for item in order.items
            ],
        )

    @classmethod
    def status_change(
        cls,
        order: OrderSnapshot,
        old_status: str,
        new_status: str
    ) -> "TrackingEvent":
        """Build the event for an order status transition."""
        return cls(
            event_type=EventType.STATUS_CHANGE,
            category=EVENT_CATEGORY,
            action=STATUS_CHANGE_ACTION,
            label=f"Order #{order.order_id}",
            value=new_status,
            order_id=order.order_id,
            order_total=order.total,
            order_currency=order.currency,
            customer_id=order.customer_id,
        )

    def event_data(self) -> Dict[str, Any]:
        """
        Structured, JSON-safe snapshot of the event.

        Keys use the Matomo descriptor names (e_c, e_a, e_n, e_v) followed
        by the order fields. Decimals are rendered as strings.
        """
        return self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"event_type"},
            exclude_none=True,
        )

    def custom_dimensions(self) -> Dict[str, Any]:
        """Event data fields that are not Matomo descriptors."""
        return {
            key: value
            for key, value in self.event_data().items()
            if key not in DESCRIPTOR_FIELDS
        }

    @classmethod
    def from_event_data(cls, event_type: EventType, data: Dict[str, Any]) -> "TrackingEvent":
        """Rebuild an event from the snapshot stored in the audit log."""
        return cls.model_validate({**data, "event_type": event_type})
