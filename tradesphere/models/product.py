# tradesphere/models/product.py
from pydantic import Field
from .base import Money, TimeStampedModel


class Product(TimeStampedModel):
    """Catalog product as seen by checkout"""
    id: str
    vendor_id: str
    name: str
    price: Money
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True

    def is_in_stock(self, quantity: int) -> bool:
        return self.stock_quantity >= quantity
