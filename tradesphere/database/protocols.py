# tradesphere/database/protocols.py
"""Store interfaces consumed by the order services.

Every repository is bound to one store session; all calls made through a
session commit or roll back together.
"""

from __future__ import annotations

from decimal import Decimal
from typing import AsyncContextManager, Dict, List, Optional, Protocol

from ..models.cart import Cart
from ..models.order import Order, OrderStatus, PaymentStatus
from ..models.product import Product


class ProductRepository(Protocol):
    """Catalog access used by checkout and the vendor dashboard."""

    async def add(self, product: Product) -> Product:
        ...

    async def lock_many(self, product_ids: List[str]) -> Dict[str, Product]:
        """Fetch the given products, active or not, keyed by id.

        Rows stay locked until the session ends and are taken in id order, so
        concurrent checkouts over overlapping products are serialized.
        """
        ...

    async def decrement_stock(self, product_id: str, quantity: int) -> bool:
        """Take ``quantity`` off the stock only if enough is left.

        Returns False, leaving the stock unchanged, when it is not.
        """
        ...

    async def increment_stock(self, product_id: str, quantity: int) -> bool:
        ...

    async def count_by_vendor(self, vendor_id: str, active_only: bool = False) -> int:
        ...


class CartRepository(Protocol):
    """One cart per user."""

    async def get_by_user(self, user_id: str) -> Optional[Cart]:
        ...

    async def save(self, cart: Cart) -> Cart:
        """Persist the cart, recomputing its totals from live prices."""
        ...

    async def clear(self, user_id: str) -> None:
        ...


class OrderRepository(Protocol):
    """The order ledger."""

    async def create(self, order: Order) -> Order:
        ...

    async def get(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        ...

    async def update(self, order: Order) -> Order:
        """Write back the mutable fields: payment, status and tracking."""
        ...

    async def mark_paid_by_reference(self, reference: str) -> List[Order]:
        """Set ``paid`` on every not-yet-approved order with this reference."""
        ...

    async def list_by_customer(self, customer_id: str) -> List[Order]:
        ...

    async def list_by_vendor(self, vendor_id: str,
                             status: Optional[OrderStatus] = None,
                             payment_status: Optional[PaymentStatus] = None,
                             limit: int = 20, offset: int = 0) -> List[Order]:
        ...

    async def count_by_vendor(self, vendor_id: str,
                              status: Optional[OrderStatus] = None,
                              payment_status: Optional[PaymentStatus] = None) -> int:
        ...

    async def revenue_by_vendor(self, vendor_id: str) -> Decimal:
        ...


class StoreSession(Protocol):
    products: ProductRepository
    carts: CartRepository
    orders: OrderRepository


class Store(Protocol):
    """A database the services can open transactional sessions on."""

    async def connect(self) -> None:
        ...

    async def close(self) -> None:
        ...

    def session(self) -> AsyncContextManager[StoreSession]:
        ...
