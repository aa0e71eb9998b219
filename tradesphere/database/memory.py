# tradesphere/database/memory.py
"""In-process store with the same session contract as ``Database``.

Sessions are serialized by one lock and roll back to a snapshot when the
enclosed block raises. Used with ``DATABASE_URL=memory://`` and in tests.
"""

import asyncio
import copy
import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import AsyncIterator, Dict, List, Optional
from ..models.cart import Cart
from ..models.order import (
    Order,
    OrderStatus,
    PaymentStatus,
    SETTLED_PAYMENT_STATUSES,
)
from ..models.base import utcnow
from ..models.product import Product


def _newest_first(orders: List[Order]) -> List[Order]:
    # Stable sort over reversed insertion order keeps later inserts first on ties
    return sorted(reversed(orders), key=lambda o: o.created_at, reverse=True)


class MemoryProductRepository:
    def __init__(self, products: Dict[str, Product]):
        self._products = products

    async def add(self, product: Product) -> Product:
        self._products[product.id] = product.model_copy(deep=True)
        return product

    async def lock_many(self, product_ids: List[str]) -> Dict[str, Product]:
        return {
            pid: self._products[pid].model_copy(deep=True)
            for pid in sorted(set(product_ids)) if pid in self._products
        }

    async def decrement_stock(self, product_id: str, quantity: int) -> bool:
        product = self._products.get(product_id)
        if product is None or product.stock_quantity < quantity:
            return False
        product.stock_quantity -= quantity
        product.updated_at = utcnow()
        return True

    async def increment_stock(self, product_id: str, quantity: int) -> bool:
        product = self._products.get(product_id)
        if product is None:
            return False
        product.stock_quantity += quantity
        product.updated_at = utcnow()
        return True

    async def count_by_vendor(self, vendor_id: str, active_only: bool = False) -> int:
        return sum(
            1 for p in self._products.values()
            if p.vendor_id == vendor_id and (p.is_active or not active_only)
        )


class MemoryCartRepository:
    def __init__(self, carts: Dict[str, Cart], products: Dict[str, Product]):
        self._carts = carts
        self._products = products

    async def get_by_user(self, user_id: str) -> Optional[Cart]:
        cart = self._carts.get(user_id)
        return cart.model_copy(deep=True) if cart else None

    async def save(self, cart: Cart) -> Cart:
        cart.recalculate({pid: p.price for pid, p in self._products.items()})
        if cart.user_id in self._carts:
            cart.updated_at = utcnow()
        self._carts[cart.user_id] = cart.model_copy(deep=True)
        return cart

    async def clear(self, user_id: str) -> None:
        cart = self._carts.get(user_id)
        if cart is not None:
            cart.clear()
            cart.updated_at = utcnow()


class MemoryOrderRepository:
    def __init__(self, orders: Dict[str, Order]):
        self._orders = orders

    async def create(self, order: Order) -> Order:
        self._orders[order.id] = order.model_copy(deep=True)
        return order

    async def get(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    async def update(self, order: Order) -> Order:
        stored = self._orders[order.id]
        stored.payment_status = order.payment_status
        stored.payment_reference = order.payment_reference
        stored.status = order.status
        stored.tracking_number = order.tracking_number
        stored.stock_restored = order.stock_restored
        stored.updated_at = order.updated_at = utcnow()
        return order

    async def mark_paid_by_reference(self, reference: str) -> List[Order]:
        updated = []
        for order in self._orders.values():
            if (order.payment_reference == reference
                    and order.payment_status != PaymentStatus.APPROVED):
                order.payment_status = PaymentStatus.PAID
                order.updated_at = utcnow()
                updated.append(order.model_copy(deep=True))
        return updated

    async def list_by_customer(self, customer_id: str) -> List[Order]:
        return [
            o.model_copy(deep=True) for o in _newest_first(
                [o for o in self._orders.values() if o.customer_id == customer_id]
            )
        ]

    def _for_vendor(self, vendor_id: str, status: Optional[OrderStatus],
                    payment_status: Optional[PaymentStatus]) -> List[Order]:
        return [
            o for o in self._orders.values()
            if o.vendor_id == vendor_id
            and (status is None or o.status == status)
            and (payment_status is None or o.payment_status == payment_status)
        ]

    async def list_by_vendor(self, vendor_id: str,
                             status: Optional[OrderStatus] = None,
                             payment_status: Optional[PaymentStatus] = None,
                             limit: int = 20, offset: int = 0) -> List[Order]:
        orders = _newest_first(self._for_vendor(vendor_id, status, payment_status))
        return [o.model_copy(deep=True) for o in orders[offset:offset + limit]]

    async def count_by_vendor(self, vendor_id: str,
                              status: Optional[OrderStatus] = None,
                              payment_status: Optional[PaymentStatus] = None) -> int:
        return len(self._for_vendor(vendor_id, status, payment_status))

    async def revenue_by_vendor(self, vendor_id: str) -> Decimal:
        return sum(
            (o.total_amount for o in self._orders.values()
             if o.vendor_id == vendor_id and o.payment_status in SETTLED_PAYMENT_STATUSES),
            Decimal(0),
        )


class MemorySession:
    def __init__(self, db: "MemoryDatabase"):
        self.products = MemoryProductRepository(db.products)
        self.carts = MemoryCartRepository(db.carts, db.products)
        self.orders = MemoryOrderRepository(db.orders)


class MemoryDatabase:
    """Dictionary-backed store"""

    def __init__(self):
        self.products: Dict[str, Product] = {}
        self.carts: Dict[str, Cart] = {}
        self.orders: Dict[str, Order] = {}
        self._lock: Optional[asyncio.Lock] = None
        self.logger = logging.getLogger(__name__)

    async def connect(self):
        self.logger.info("Using in-memory store")

    async def close(self):
        pass

    @asynccontextmanager
    async def session(self) -> AsyncIterator[MemorySession]:
        """Serialize callers and roll back on error"""
        # Created on first use so it belongs to the running loop
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            snapshot = copy.deepcopy((self.products, self.carts, self.orders))
            try:
                yield MemorySession(self)
            except BaseException:
                self._restore(*snapshot)
                raise

    def _restore(self, products, carts, orders):
        # Repositories hold references to these dicts, so refill them in place
        for current, saved in ((self.products, products),
                               (self.carts, carts),
                               (self.orders, orders)):
            current.clear()
            current.update(saved)
