"""
Module: lookup.py
Description: Resolve order ids into OrderSnapshot objects.

The tracker only receives an order id from the store; an OrderLookup
turns it into the order data the tracking event is built from. A missing
order (or one the store cannot return) resolves to None.

Key Components:
- OrderLookup: Protocol implemented by every lookup
- WooCommerceOrderLookup: WooCommerce REST API v3 client (httpx)
- InMemoryOrderLookup: Dictionary-backed lookup for local runs and tests

Dependencies: httpx, pydantic, typing
Author: Order Tracking Team
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Protocol

import httpx

from woo_matomo.errors import OrderLookupError
from woo_matomo.models.order import OrderItemSnapshot, OrderSnapshot
from woo_matomo.utils.logger import get_logger

logger = get_logger(__name__)

WOOCOMMERCE_API_VERSION = "wc/v3"


class OrderLookup(Protocol):
    """Resolves an order id to the order data used for tracking."""

    async def get(self, order_id: int) -> Optional[OrderSnapshot]:
        ...


class InMemoryOrderLookup:
    """Serve order snapshots from a dictionary."""

    def __init__(self, orders: Iterable[OrderSnapshot] = ()):
        self._orders: Dict[int, OrderSnapshot] = {o.order_id: o for o in orders}

    def add(self, order: OrderSnapshot) -> None:
        self._orders[order.order_id] = order

    async def get(self, order_id: int) -> Optional[OrderSnapshot]:
        return self._orders.get(order_id)


def _to_decimal(value: Any) -> Decimal:
    try:
        return Decimal(str(value)) if value not in (None, "") else Decimal("0")
    except InvalidOperation as e:
        raise OrderLookupError(f"Invalid amount in store response: {value!r}") from e


class WooCommerceOrderLookup:
    """
    Load orders through the WooCommerce REST API.

    Line items are enriched with the product's current price and
    category names. Items whose product no longer exists are left out.
    """

    def __init__(
        self,
        store_url: str,
        consumer_key: str,
        consumer_secret: str,
        timeout_seconds: float = 10.0
    ):
        """
        Initialize the WooCommerce lookup.

        Args:
            store_url: Base URL of the WordPress site
            consumer_key: REST API consumer key
            consumer_secret: REST API consumer secret
            timeout_seconds: HTTP timeout per request

        Raises:
            ValueError: If store_url is not an HTTP/HTTPS URL
        """
        if not store_url or not store_url.startswith(('http://', 'https://')):
            raise ValueError("store_url must be a valid HTTP/HTTPS URL")

        self.base_url = f"{store_url.rstrip('/')}/wp-json/{WOOCOMMERCE_API_VERSION}"
        self.auth = (consumer_key, consumer_secret)
        self.timeout = httpx.Timeout(timeout_seconds, connect=5.0)

    async def get(self, order_id: int) -> Optional[OrderSnapshot]:
        """
        Fetch an order and its products.

        Returns:
            OrderSnapshot, or None if the order cannot be resolved
        """
        async with httpx.AsyncClient(
            base_url=self.base_url,
            auth=self.auth,
            timeout=self.timeout
        ) as client:
            try:
                order = await self._get_json(client, f"orders/{order_id}")
                if order is None:
                    logger.info("Order not found in store", order_id=order_id)
                    return None

                items = []
                for line in order.get('line_items', []):
                    item = await self._build_item(client, line)
                    if item is not None:
                        items.append(item)

                return OrderSnapshot(
                    order_id=int(order['id']),
                    status=order.get('status', ''),
                    total=_to_decimal(order.get('total')),
                    currency=order.get('currency', ''),
                    customer_id=int(order.get('customer_id') or 0),
                    items=items
                )

            except (OrderLookupError, httpx.HTTPError, KeyError, ValueError) as e:
                logger.warning(
                    "Order lookup failed",
                    order_id=order_id,
                    error=str(e),
                    error_type=type(e).__name__
                )
                return None

    async def _build_item(
        self,
        client: httpx.AsyncClient,
        line: Dict[str, Any]
    ) -> Optional[OrderItemSnapshot]:
        product_id = int(line.get('variation_id') or line.get('product_id') or 0)
        if not product_id:
            return None

        product = await self._get_json(client, f"products/{product_id}")
        if product is None:
            logger.debug("Line item product no longer exists", product_id=product_id)
            return None

        categories = self._category_names(product)
        if not categories and product.get('parent_id'):
            # Variations carry no categories of their own
            parent = await self._get_json(client, f"products/{product['parent_id']}")
            categories = self._category_names(parent or {})

        return OrderItemSnapshot(
            product_id=product_id,
            name=product.get('name') or line.get('name', ''),
            quantity=int(line.get('quantity') or 0),
            price=_to_decimal(product.get('price', line.get('price'))),
            categories=categories
        )

    @staticmethod
    def _category_names(product: Dict[str, Any]) -> List[str]:
        return [c['name'] for c in product.get('categories', []) if c.get('name')]

    async def _get_json(
        self,
        client: httpx.AsyncClient,
        endpoint: str
    ) -> Optional[Dict[str, Any]]:
        """GET a resource; None on 404, OrderLookupError on other failures."""
        response = await client.get(endpoint)

        if response.status_code == 404:
            return None
        if response.status_code != 200:
            raise OrderLookupError(
                f"WooCommerce API returned HTTP {response.status_code} for {endpoint}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise OrderLookupError(f"Invalid JSON from WooCommerce for {endpoint}") from e

        if not isinstance(data, dict):
            raise OrderLookupError(f"Unexpected WooCommerce response for {endpoint}")
        return data
