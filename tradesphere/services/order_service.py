# tradesphere/services/order_service.py
import logging
import uuid
from decimal import Decimal
from typing import Dict, List, Optional
from ..database.protocols import Store
from ..errors import (
    EmptyCartError,
    InsufficientStockError,
    NotAuthorizedError,
    NotFoundError,
    ProductUnavailableError,
    ValidationError,
)
from ..models.base import utcnow
from ..models.order import Order, OrderItem, PaymentMethod, PaymentStatus
from ..models.user import Principal
from ..utils.formatters import format_price, generate_order_number


def parse_payment_method(value: Optional[str]) -> PaymentMethod:
    """Missing method means cash on delivery"""
    if not value:
        return PaymentMethod.CASH_ON_DELIVERY
    try:
        return PaymentMethod(value)
    except ValueError:
        raise ValidationError(f"Invalid payment method: {value}") from None


def seed_payment_status(method: PaymentMethod, reference: Optional[str]) -> PaymentStatus:
    """Card checkouts that arrive with a gateway reference count as paid"""
    if method == PaymentMethod.CARD and reference:
        return PaymentStatus.PAID
    return PaymentStatus.PENDING


class OrderService:
    def __init__(self, db: Store):
        self.db = db
        self.logger = logging.getLogger(__name__)

    async def place_order(self, principal: Principal, shipping_address: Optional[str],
                          phone: Optional[str], payment_method: Optional[str] = None,
                          payment_reference: Optional[str] = None) -> List[Order]:
        """Turn the principal's cart into one order per vendor.

        Validation, order creation, stock decrements and the cart clear run in
        a single store session, so either all of them land or none do.
        """
        if not shipping_address or not shipping_address.strip():
            raise ValidationError("Shipping address is required")
        if not phone or not phone.strip():
            raise ValidationError("Phone number is required")
        method = parse_payment_method(payment_method)
        payment_reference = payment_reference or None
        payment_status = seed_payment_status(method, payment_reference)

        async with self.db.session() as session:
            cart = await session.carts.get_by_user(principal.id)
            if cart is None or cart.is_empty:
                raise EmptyCartError()

            # Lock every product up front, then check every item before writing
            products = await session.products.lock_many(
                [item.product_id for item in cart.items]
            )
            vendor_groups: Dict[str, List[OrderItem]] = {}
            for item in cart.items:
                product = products.get(item.product_id)
                if product is None or not product.is_active:
                    raise ProductUnavailableError(item.product_id)

                if not product.is_in_stock(item.quantity):
                    raise InsufficientStockError(
                        product.name, item.quantity, product.stock_quantity
                    )

                vendor_groups.setdefault(product.vendor_id, []).append(OrderItem(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=item.quantity,
                    unit_price=product.price,
                ))

            orders = []
            for vendor_id, vendor_items in vendor_groups.items():
                created_at = utcnow()
                order = Order(
                    id=uuid.uuid4().hex,
                    order_number=generate_order_number(created_at),
                    customer_id=principal.id,
                    vendor_id=vendor_id,
                    items=vendor_items,
                    shipping_address=shipping_address.strip(),
                    phone=phone.strip(),
                    payment_method=method,
                    payment_status=payment_status,
                    payment_reference=payment_reference,
                    created_at=created_at,
                )
                orders.append(await session.orders.create(order))

            for order in orders:
                for item in order.items:
                    if not await session.products.decrement_stock(item.product_id, item.quantity):
                        # Stock moved since the check; the session rolls back
                        raise InsufficientStockError(item.product_name, item.quantity)

            await session.carts.clear(principal.id)

        total = sum((o.total_amount for o in orders), Decimal(0))
        self.logger.info(
            f"Customer {principal.id} placed {len(orders)} order(s) "
            f"totalling {format_price(total)} via {method.value}"
        )
        return orders

    async def get_order(self, order_id: str, principal: Principal) -> Order:
        """Fetch an order visible to its customer, its vendor or an admin"""
        async with self.db.session() as session:
            order = await session.orders.get(order_id)

        if order is None:
            raise NotFoundError("Order", order_id)

        if not order.is_visible_to(principal):
            self.logger.warning(f"User {principal.id} denied access to order {order_id}")
            raise NotAuthorizedError()

        return order

    async def get_my_orders(self, principal: Principal) -> List[Order]:
        """Orders the principal placed, newest first"""
        async with self.db.session() as session:
            return await session.orders.list_by_customer(principal.id)
