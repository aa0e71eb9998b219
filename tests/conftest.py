"""Pytest fixtures for the order core tests."""

from decimal import Decimal

import pytest

from tradesphere.database.memory import MemoryDatabase
from tradesphere.errors import GatewayVerificationError
from tradesphere.models.cart import Cart, CartItem
from tradesphere.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from tradesphere.models.product import Product
from tradesphere.models.user import Principal, Role


class Seeder:
    """Writes fixtures straight into a MemoryDatabase."""

    def __init__(self, db: MemoryDatabase):
        self.db = db

    def product(self, product_id, vendor_id, price, stock, is_active=True):
        product = Product(
            id=product_id,
            vendor_id=vendor_id,
            name=f"Product {product_id}",
            price=Decimal(str(price)),
            stock_quantity=stock,
            is_active=is_active,
        )
        self.db.products[product_id] = product
        return product

    def cart(self, user_id, *items):
        cart = Cart(
            user_id=user_id,
            items=[CartItem(product_id=pid, quantity=qty) for pid, qty in items],
        )
        cart.recalculate({pid: p.price for pid, p in self.db.products.items()})
        self.db.carts[user_id] = cart.model_copy(deep=True)
        return cart

    def order(self, order_id, customer_id, vendor_id, payment_reference=None,
              payment_status=PaymentStatus.PENDING, status=OrderStatus.PENDING,
              payment_method=PaymentMethod.CARD, items=None):
        order = Order(
            id=order_id,
            order_number=f"TS-20260101-{order_id.upper()[-6:]}",
            customer_id=customer_id,
            vendor_id=vendor_id,
            items=items or [
                OrderItem(product_id="p-x", product_name="X", quantity=1,
                          unit_price=Decimal("100"))
            ],
            shipping_address="12 Market Road",
            phone="0800000000",
            payment_method=payment_method,
            payment_status=payment_status,
            payment_reference=payment_reference,
            status=status,
        )
        self.db.orders[order_id] = order
        return order


class FakeGateway:
    """Stands in for PaystackGateway in service tests."""

    def __init__(self, status="success", error=None):
        self.status = status
        self.error = error
        self.calls = []

    async def verify_transaction(self, reference):
        self.calls.append(reference)
        if self.error is not None:
            raise self.error
        if self.status != "success":
            raise GatewayVerificationError(status_code=400, reference=reference)
        return {"reference": reference, "status": "success", "amount": 250000}


@pytest.fixture
def db():
    return MemoryDatabase()


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def failing_gateway():
    return FakeGateway(status="failed")


@pytest.fixture
def gateway_outage():
    return FakeGateway(error=GatewayVerificationError(status_code=500))


@pytest.fixture
def customer():
    return Principal(id="customer-1", role=Role.CUSTOMER)


@pytest.fixture
def other_customer():
    return Principal(id="customer-2", role=Role.CUSTOMER)


@pytest.fixture
def vendor():
    return Principal(id="vendor-1", role=Role.VENDOR)


@pytest.fixture
def other_vendor():
    return Principal(id="vendor-2", role=Role.VENDOR)


@pytest.fixture
def admin():
    return Principal(id="admin-1", role=Role.ADMIN)
