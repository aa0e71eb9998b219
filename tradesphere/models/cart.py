# tradesphere/models/cart.py
from decimal import Decimal
from typing import List, Mapping
from pydantic import Field
from .base import ApiModel, Money, TimeStampedModel


class CartItem(ApiModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)


class Cart(TimeStampedModel):
    """Shopping cart, one per user"""
    user_id: str
    items: List[CartItem] = Field(default_factory=list)
    total_items: int = 0
    total_price: Money = Decimal(0)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def recalculate(self, prices: Mapping[str, Decimal]) -> None:
        """Recompute totals from live catalog prices.

        Items whose product is missing from ``prices`` stay in the cart but
        contribute nothing to ``total_price``.
        """
        self.total_items = sum(item.quantity for item in self.items)
        self.total_price = sum(
            (prices[item.product_id] * item.quantity
             for item in self.items if item.product_id in prices),
            Decimal(0),
        )

    def clear(self) -> None:
        self.items = []
        self.total_items = 0
        self.total_price = Decimal(0)
