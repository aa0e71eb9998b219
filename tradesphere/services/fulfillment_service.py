# tradesphere/services/fulfillment_service.py
import logging
from typing import Dict, FrozenSet, Mapping, Optional
from ..config import Config
from ..database.protocols import Store
from ..errors import (
    InsufficientStockError,
    InvalidStatusError,
    NotAuthorizedError,
    NotFoundError,
)
from ..models.order import Order, OrderStatus
from ..models.user import Principal

# Any status may follow any other, including itself
PERMISSIVE_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    status: frozenset(OrderStatus) for status in OrderStatus
}

SEQUENTIAL_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

TRANSITION_POLICIES = {
    "permissive": PERMISSIVE_TRANSITIONS,
    "sequential": SEQUENTIAL_TRANSITIONS,
}


def parse_order_status(value: Optional[str]) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise InvalidStatusError("Invalid status") from None


class FulfillmentService:
    """Vendor-driven order status changes"""

    def __init__(self, db: Store,
                 transitions: Optional[Mapping[OrderStatus, FrozenSet[OrderStatus]]] = None,
                 restock_on_cancel: Optional[bool] = None):
        self.db = db
        self.transitions = transitions or TRANSITION_POLICIES[Config.ORDER_TRANSITION_POLICY]
        self.restock_on_cancel = (
            Config.RESTOCK_ON_CANCEL if restock_on_cancel is None else restock_on_cancel
        )
        self.logger = logging.getLogger(__name__)

    def can_transition(self, current: OrderStatus, new: OrderStatus) -> bool:
        return new in self.transitions.get(current, frozenset())

    async def update_order_status(self, order_id: str, new_status: Optional[str],
                                  principal: Principal,
                                  tracking_number: Optional[str] = None) -> Order:
        """Move an order to ``new_status`` on behalf of its vendor or an admin"""
        status = parse_order_status(new_status)

        async with self.db.session() as session:
            order = await session.orders.get(order_id, for_update=True)
            if order is None:
                raise NotFoundError("Order", order_id)

            if not order.is_managed_by(principal):
                self.logger.warning(
                    f"User {principal.id} tried to update status of order {order_id}"
                )
                raise NotAuthorizedError()

            previous = order.status
            if not self.can_transition(previous, status):
                raise InvalidStatusError(
                    f"Cannot change order status from {previous.value} to {status.value}"
                )

            cancelling = status == OrderStatus.CANCELLED and previous != OrderStatus.CANCELLED
            reopening = previous == OrderStatus.CANCELLED and status != OrderStatus.CANCELLED
            if cancelling and self.restock_on_cancel and not order.stock_restored:
                await session.products.lock_many([item.product_id for item in order.items])
                for item in order.items:
                    await session.products.increment_stock(item.product_id, item.quantity)
                order.stock_restored = True
            elif reopening and order.stock_restored:
                # Units went back to the catalog on cancel; claim them again
                await session.products.lock_many([item.product_id for item in order.items])
                for item in order.items:
                    if not await session.products.decrement_stock(item.product_id, item.quantity):
                        raise InsufficientStockError(item.product_name, item.quantity)
                order.stock_restored = False

            order.status = status
            if tracking_number:
                order.tracking_number = tracking_number.strip()
            order = await session.orders.update(order)

        self.logger.info(
            f"Order {order_id} status {previous.value} -> {status.value} by {principal.id}"
        )
        return order
