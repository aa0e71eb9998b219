# tradesphere/handlers/schemas.py
"""Request and response bodies for the HTTP API"""
from decimal import Decimal
from typing import Any, Dict, List, Optional
from ..models.base import ApiModel, Money
from ..models.order import Order


class PlaceOrderRequest(ApiModel):
    shipping_address: Optional[str] = None
    phone: Optional[str] = None
    payment_method: Optional[str] = None
    payment_reference: Optional[str] = None


class VerifyPaymentRequest(ApiModel):
    reference: Optional[str] = None


class ConfirmTransferRequest(ApiModel):
    transfer_reference: Optional[str] = None


class UpdateStatusRequest(ApiModel):
    status: Optional[str] = None
    tracking_number: Optional[str] = None


class PaymentVerification(ApiModel):
    reference: str
    orders: List[Order]
    gateway: Dict[str, Any]


class VendorOrderPage(ApiModel):
    orders: List[Order]
    total_pages: int
    current_page: int
    total: int


class DashboardStats(ApiModel):
    total_products: int
    active_products: int
    total_orders: int
    pending_orders: int
    total_revenue: Money = Decimal(0)
    recent_orders: List[Order]
