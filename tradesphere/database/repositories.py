# tradesphere/database/repositories.py
import json
from decimal import Decimal
from typing import Any, Dict, List, Optional
import asyncpg
from ..models.cart import Cart, CartItem
from ..models.order import (
    Order,
    OrderStatus,
    PaymentStatus,
    SETTLED_PAYMENT_STATUSES,
)
from ..models.product import Product

ORDER_SELECT = """
    SELECT o.*,
        (SELECT json_agg(json_build_object(
            'product_id', oi.product_id,
            'product_name', oi.product_name,
            'quantity', oi.quantity,
            'unit_price', oi.unit_price::text
        ) ORDER BY oi.position)
        FROM order_items oi
        WHERE oi.order_id = o.id
        ) AS items
    FROM orders o
"""


def _row_to_order(row: asyncpg.Record) -> Order:
    data: Dict[str, Any] = dict(row)
    items = data.pop("items", None)
    if isinstance(items, str):
        items = json.loads(items)
    data["items"] = items or []
    return Order.model_validate(data)


class PostgresProductRepository:
    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def add(self, product: Product) -> Product:
        await self.conn.execute("""
            INSERT INTO products (
                id, vendor_id, name, price, stock_quantity, is_active, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7)
        """,
            product.id,
            product.vendor_id,
            product.name,
            product.price,
            product.stock_quantity,
            product.is_active,
            product.created_at
        )
        return product

    async def lock_many(self, product_ids: List[str]) -> Dict[str, Product]:
        # Rows are locked in id order so overlapping checkouts cannot deadlock
        rows = await self.conn.fetch("""
            SELECT * FROM products
            WHERE id = ANY($1::text[])
            ORDER BY id
            FOR UPDATE
        """, sorted(set(product_ids)))
        return {row["id"]: Product.model_validate(dict(row)) for row in rows}

    async def decrement_stock(self, product_id: str, quantity: int) -> bool:
        result = await self.conn.execute("""
            UPDATE products
            SET stock_quantity = stock_quantity - $1,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = $2 AND stock_quantity >= $1
        """, quantity, product_id)
        return result == "UPDATE 1"

    async def increment_stock(self, product_id: str, quantity: int) -> bool:
        result = await self.conn.execute("""
            UPDATE products
            SET stock_quantity = stock_quantity + $1,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = $2
        """, quantity, product_id)
        return result == "UPDATE 1"

    async def count_by_vendor(self, vendor_id: str, active_only: bool = False) -> int:
        query = "SELECT COUNT(*) FROM products WHERE vendor_id = $1"
        if active_only:
            query += " AND is_active = true"
        return await self.conn.fetchval(query, vendor_id)


class PostgresCartRepository:
    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def get_by_user(self, user_id: str) -> Optional[Cart]:
        cart = await self.conn.fetchrow(
            "SELECT * FROM carts WHERE user_id = $1", user_id
        )
        if not cart:
            return None

        items = await self.conn.fetch("""
            SELECT product_id, quantity
            FROM cart_items
            WHERE user_id = $1
            ORDER BY position
        """, user_id)

        return Cart.model_validate({
            **dict(cart),
            "items": [CartItem(product_id=i["product_id"], quantity=i["quantity"])
                      for i in items],
        })

    async def save(self, cart: Cart) -> Cart:
        rows = await self.conn.fetch(
            "SELECT id, price FROM products WHERE id = ANY($1::text[])",
            [item.product_id for item in cart.items]
        )
        cart.recalculate({row["id"]: row["price"] for row in rows})

        await self.conn.execute("""
            INSERT INTO carts (user_id, total_items, total_price, created_at)
            VALUES ($1, $2, $3, $4)
            ON CONFLICT (user_id)
            DO UPDATE SET
                total_items = EXCLUDED.total_items,
                total_price = EXCLUDED.total_price,
                updated_at = CURRENT_TIMESTAMP
        """, cart.user_id, cart.total_items, cart.total_price, cart.created_at)

        await self.conn.execute(
            "DELETE FROM cart_items WHERE user_id = $1", cart.user_id
        )
        await self.conn.executemany("""
            INSERT INTO cart_items (user_id, position, product_id, quantity)
            VALUES ($1, $2, $3, $4)
        """, [
            (cart.user_id, position, item.product_id, item.quantity)
            for position, item in enumerate(cart.items)
        ])
        return cart

    async def clear(self, user_id: str) -> None:
        await self.conn.execute(
            "DELETE FROM cart_items WHERE user_id = $1", user_id
        )
        await self.conn.execute("""
            UPDATE carts
            SET total_items = 0,
                total_price = 0,
                updated_at = CURRENT_TIMESTAMP
            WHERE user_id = $1
        """, user_id)


class PostgresOrderRepository:
    def __init__(self, conn: asyncpg.Connection):
        self.conn = conn

    async def create(self, order: Order) -> Order:
        await self.conn.execute("""
            INSERT INTO orders (
                id, order_number, customer_id, vendor_id, total_amount,
                shipping_address, phone, payment_method, payment_status,
                payment_reference, status, created_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
        """,
            order.id,
            order.order_number,
            order.customer_id,
            order.vendor_id,
            order.total_amount,
            order.shipping_address,
            order.phone,
            order.payment_method.value,
            order.payment_status.value,
            order.payment_reference,
            order.status.value,
            order.created_at
        )

        await self.conn.executemany("""
            INSERT INTO order_items (
                order_id, position, product_id, product_name,
                quantity, unit_price, total_price
            ) VALUES ($1, $2, $3, $4, $5, $6, $7)
        """, [
            (order.id, position, item.product_id, item.product_name,
             item.quantity, item.unit_price, item.total_price)
            for position, item in enumerate(order.items)
        ])
        return order

    async def get(self, order_id: str, for_update: bool = False) -> Optional[Order]:
        query = ORDER_SELECT + " WHERE o.id = $1"
        if for_update:
            query += " FOR UPDATE OF o"
        row = await self.conn.fetchrow(query, order_id)
        return _row_to_order(row) if row else None

    async def update(self, order: Order) -> Order:
        updated_at = await self.conn.fetchval("""
            UPDATE orders
            SET payment_status = $1,
                payment_reference = $2,
                status = $3,
                tracking_number = $4,
                stock_restored = $5,
                updated_at = CURRENT_TIMESTAMP
            WHERE id = $6
            RETURNING updated_at
        """,
            order.payment_status.value,
            order.payment_reference,
            order.status.value,
            order.tracking_number,
            order.stock_restored,
            order.id
        )
        order.updated_at = updated_at
        return order

    async def mark_paid_by_reference(self, reference: str) -> List[Order]:
        rows = await self.conn.fetch("""
            UPDATE orders
            SET payment_status = $1,
                updated_at = CURRENT_TIMESTAMP
            WHERE payment_reference = $2 AND payment_status <> $3
            RETURNING id
        """, PaymentStatus.PAID.value, reference, PaymentStatus.APPROVED.value)

        orders = []
        for row in rows:
            orders.append(await self.get(row["id"]))
        return orders

    async def list_by_customer(self, customer_id: str) -> List[Order]:
        rows = await self.conn.fetch(
            ORDER_SELECT + " WHERE o.customer_id = $1 ORDER BY o.created_at DESC",
            customer_id
        )
        return [_row_to_order(row) for row in rows]

    def _vendor_filter(self, vendor_id: str, status: Optional[OrderStatus],
                       payment_status: Optional[PaymentStatus]):
        where = " WHERE o.vendor_id = $1"
        params: List[Any] = [vendor_id]
        param_index = 2

        if status is not None:
            where += f" AND o.status = ${param_index}"
            params.append(status.value)
            param_index += 1

        if payment_status is not None:
            where += f" AND o.payment_status = ${param_index}"
            params.append(payment_status.value)
            param_index += 1

        return where, params, param_index

    async def list_by_vendor(self, vendor_id: str,
                             status: Optional[OrderStatus] = None,
                             payment_status: Optional[PaymentStatus] = None,
                             limit: int = 20, offset: int = 0) -> List[Order]:
        where, params, param_index = self._vendor_filter(vendor_id, status, payment_status)
        query = (
            ORDER_SELECT + where
            + f" ORDER BY o.created_at DESC LIMIT ${param_index} OFFSET ${param_index + 1}"
        )
        rows = await self.conn.fetch(query, *params, limit, offset)
        return [_row_to_order(row) for row in rows]

    async def count_by_vendor(self, vendor_id: str,
                              status: Optional[OrderStatus] = None,
                              payment_status: Optional[PaymentStatus] = None) -> int:
        where, params, _ = self._vendor_filter(vendor_id, status, payment_status)
        return await self.conn.fetchval("SELECT COUNT(*) FROM orders o" + where, *params)

    async def revenue_by_vendor(self, vendor_id: str) -> Decimal:
        total = await self.conn.fetchval("""
            SELECT COALESCE(SUM(total_amount), 0)
            FROM orders
            WHERE vendor_id = $1 AND payment_status = ANY($2::text[])
        """, vendor_id, [s.value for s in SETTLED_PAYMENT_STATUSES])
        return Decimal(total)
