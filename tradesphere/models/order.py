# tradesphere/models/order.py
from decimal import Decimal
from enum import Enum
from typing import List, Optional
from pydantic import Field, model_validator
from .base import ApiModel, Money, TimeStampedModel


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    APPROVED = "approved"


class PaymentMethod(str, Enum):
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"


# Payment statuses that count as revenue on the vendor dashboard
SETTLED_PAYMENT_STATUSES = (PaymentStatus.PAID, PaymentStatus.APPROVED)


class OrderItem(ApiModel):
    """Individual item in an order, priced at the moment of purchase"""
    product_id: str
    product_name: str = ""
    quantity: int = Field(ge=1)
    unit_price: Money
    total_price: Money = Decimal(0)

    @model_validator(mode="after")
    def _derive_total(self):
        self.total_price = self.unit_price * self.quantity
        return self


class Order(TimeStampedModel):
    """A vendor-scoped order produced by checkout"""
    id: str
    order_number: str
    customer_id: str
    vendor_id: str
    items: List[OrderItem]
    total_amount: Money = Decimal(0)
    shipping_address: str
    phone: str
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_reference: Optional[str] = None
    status: OrderStatus = OrderStatus.PENDING
    tracking_number: Optional[str] = None
    stock_restored: bool = False

    @model_validator(mode="after")
    def _derive_total(self):
        self.total_amount = sum((item.total_price for item in self.items), Decimal(0))
        return self

    @property
    def is_payment_approved(self) -> bool:
        return self.payment_status == PaymentStatus.APPROVED

    def is_visible_to(self, principal) -> bool:
        return (
            principal.is_admin
            or principal.id == self.customer_id
            or principal.id == self.vendor_id
        )

    def is_managed_by(self, principal) -> bool:
        return principal.is_admin or principal.id == self.vendor_id
