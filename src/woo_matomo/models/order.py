"""
Module: order.py
Description: Order snapshot models supplied by an OrderLookup.
"""

from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class OrderItemSnapshot(BaseModel):
    """A purchased line item with its product details."""

    model_config = ConfigDict(frozen=True)

    product_id: int
    name: str
    quantity: int = Field(..., ge=0)
    price: Decimal
    categories: List[str] = Field(default_factory=list)


class OrderSnapshot(BaseModel):
    """Order data already loaded from the store."""

    model_config = ConfigDict(frozen=True)

    order_id: int = Field(..., ge=1)
    status: str = ""
    total: Decimal
    currency: str = Field(..., min_length=3, max_length=3)
    customer_id: int = Field(default=0, ge=0)
    items: List[OrderItemSnapshot] = Field(default_factory=list)
