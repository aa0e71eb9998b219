# tradesphere/services/vendor_service.py
import math
from typing import Any, Dict, Optional
from ..database.protocols import Store
from ..errors import ValidationError
from ..models.order import OrderStatus, PaymentStatus
from ..models.user import Principal

RECENT_ORDERS_LIMIT = 5


def _parse_filter(enum_cls, value: Optional[str], name: str):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Invalid {name} filter: {value}") from None


class VendorService:
    """Order views scoped to the calling vendor"""

    def __init__(self, db: Store):
        self.db = db

    async def list_vendor_orders(self, principal: Principal, status: Optional[str] = None,
                                 payment_status: Optional[str] = None,
                                 page: int = 1, limit: int = 20) -> Dict[str, Any]:
        order_status = _parse_filter(OrderStatus, status, "status")
        pay_status = _parse_filter(PaymentStatus, payment_status, "paymentStatus")
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")

        async with self.db.session() as session:
            orders = await session.orders.list_by_vendor(
                principal.id, order_status, pay_status,
                limit=limit, offset=(page - 1) * limit,
            )
            total = await session.orders.count_by_vendor(principal.id, order_status, pay_status)

        return {
            "orders": orders,
            "total_pages": math.ceil(total / limit),
            "current_page": page,
            "total": total,
        }

    async def get_dashboard(self, principal: Principal) -> Dict[str, Any]:
        """Counts and revenue for the vendor dashboard"""
        async with self.db.session() as session:
            products = session.products
            orders = session.orders
            return {
                "total_products": await products.count_by_vendor(principal.id),
                "active_products": await products.count_by_vendor(principal.id, active_only=True),
                "total_orders": await orders.count_by_vendor(principal.id),
                "pending_orders": await orders.count_by_vendor(
                    principal.id, status=OrderStatus.PENDING
                ),
                "total_revenue": await orders.revenue_by_vendor(principal.id),
                "recent_orders": await orders.list_by_vendor(
                    principal.id, limit=RECENT_ORDERS_LIMIT
                ),
            }
