"""Tests for checkout: vendor partitioning, totals, stock and cart effects."""

import re
from collections import Counter
from decimal import Decimal

import pytest

from tradesphere.database.memory import MemoryProductRepository
from tradesphere.errors import (
    EmptyCartError,
    InsufficientStockError,
    NotAuthorizedError,
    NotFoundError,
    ProductUnavailableError,
    ValidationError,
)
from tradesphere.models.order import OrderStatus, PaymentMethod, PaymentStatus
from tradesphere.services.order_service import OrderService


@pytest.fixture
def service(db):
    return OrderService(db)


class TestPlaceOrder:
    @pytest.mark.asyncio
    async def test_two_vendor_checkout(self, service, seed, db, customer):
        seed.product("product-a", "vendor-1", 1000, 5)
        seed.product("product-b", "vendor-2", 500, 1)
        seed.cart(customer.id, ("product-a", 2), ("product-b", 1))

        orders = await service.place_order(
            customer, shipping_address="X", phone="Y", payment_method="cash_on_delivery"
        )

        assert len(orders) == 2
        by_vendor = {o.vendor_id: o for o in orders}
        assert by_vendor["vendor-1"].total_amount == Decimal("2000")
        assert by_vendor["vendor-1"].payment_status == PaymentStatus.PENDING
        assert by_vendor["vendor-2"].total_amount == Decimal("500")
        assert by_vendor["vendor-2"].payment_status == PaymentStatus.PENDING
        assert db.products["product-a"].stock_quantity == 3
        assert db.products["product-b"].stock_quantity == 0
        assert db.carts[customer.id].items == []
        assert db.carts[customer.id].total_price == Decimal(0)
        assert set(db.orders) == {o.id for o in orders}

    @pytest.mark.asyncio
    async def test_partitions_items_by_vendor(self, service, seed, customer):
        seed.product("p1", "vendor-1", 10, 10)
        seed.product("p2", "vendor-2", 20, 10)
        seed.product("p3", "vendor-1", 30, 10)
        seed.product("p4", "vendor-3", 40, 10)
        cart = seed.cart(customer.id, ("p1", 1), ("p2", 2), ("p3", 3), ("p4", 4))
        expected = Counter((item.product_id, item.quantity) for item in cart.items)

        orders = await service.place_order(customer, "X", "Y")

        assert len(orders) == 3
        for order in orders:
            assert order.customer_id == customer.id
            assert order.status == OrderStatus.PENDING
        placed = Counter(
            (item.product_id, item.quantity) for o in orders for item in o.items
        )
        assert placed == expected
        assert sum(expected.values()) == 4
        vendor_one = next(o for o in orders if o.vendor_id == "vendor-1")
        assert [i.product_id for i in vendor_one.items] == ["p1", "p3"]

    @pytest.mark.asyncio
    async def test_totals_are_frozen_at_purchase(self, service, seed, db, customer):
        seed.product("p1", "vendor-1", "19.99", 10)
        seed.cart(customer.id, ("p1", 3))

        [order] = await service.place_order(customer, "X", "Y")
        item = order.items[0]
        assert item.unit_price == Decimal("19.99")
        assert item.total_price == Decimal("59.97")
        assert order.total_amount == sum(i.total_price for i in order.items)

        db.products["p1"].price = Decimal("99.00")
        stored = await service.get_order(order.id, customer)
        assert stored.items[0].unit_price == Decimal("19.99")
        assert stored.total_amount == Decimal("59.97")

    @pytest.mark.asyncio
    async def test_insufficient_stock_creates_nothing(self, service, seed, db, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.product("p2", "vendor-2", 10, 5)
        seed.cart(customer.id, ("p1", 1), ("p2", 6))

        with pytest.raises(InsufficientStockError) as exc_info:
            await service.place_order(customer, "X", "Y")

        assert exc_info.value.status_code == 400
        assert db.orders == {}
        assert db.products["p1"].stock_quantity == 5
        assert db.products["p2"].stock_quantity == 5
        assert len(db.carts[customer.id].items) == 2

    @pytest.mark.asyncio
    async def test_exact_stock_is_allowed(self, service, seed, db, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.cart(customer.id, ("p1", 5))

        await service.place_order(customer, "X", "Y")

        assert db.products["p1"].stock_quantity == 0

    @pytest.mark.asyncio
    async def test_inactive_product_is_unavailable(self, service, seed, db, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.product("p2", "vendor-1", 10, 5, is_active=False)
        seed.cart(customer.id, ("p1", 1), ("p2", 1))

        with pytest.raises(ProductUnavailableError) as exc_info:
            await service.place_order(customer, "X", "Y")

        assert exc_info.value.status_code == 404
        assert db.orders == {}
        assert db.products["p1"].stock_quantity == 5

    @pytest.mark.asyncio
    async def test_deleted_product_is_unavailable(self, service, seed, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.cart(customer.id, ("p1", 1), ("gone", 1))

        with pytest.raises(ProductUnavailableError, match="gone"):
            await service.place_order(customer, "X", "Y")

    @pytest.mark.asyncio
    async def test_missing_cart(self, service, customer):
        with pytest.raises(EmptyCartError):
            await service.place_order(customer, "X", "Y")

    @pytest.mark.asyncio
    async def test_empty_cart(self, service, seed, customer):
        seed.cart(customer.id)

        with pytest.raises(EmptyCartError, match="Cart is empty"):
            await service.place_order(customer, "X", "Y")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("address,phone,message", [
        ("", "Y", "Shipping address is required"),
        (None, "Y", "Shipping address is required"),
        ("   ", "Y", "Shipping address is required"),
        ("X", "", "Phone number is required"),
        ("X", None, "Phone number is required"),
    ])
    async def test_requires_contact_details(self, service, seed, db, customer,
                                            address, phone, message):
        seed.product("p1", "vendor-1", 10, 5)
        seed.cart(customer.id, ("p1", 1))

        with pytest.raises(ValidationError, match=message):
            await service.place_order(customer, address, phone)

        assert db.orders == {}

    @pytest.mark.asyncio
    async def test_rejects_unknown_payment_method(self, service, seed, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.cart(customer.id, ("p1", 1))

        with pytest.raises(ValidationError, match="Invalid payment method"):
            await service.place_order(customer, "X", "Y", payment_method="barter")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("method,reference,expected", [
        ("card", "ref-123", PaymentStatus.PAID),
        ("card", None, PaymentStatus.PENDING),
        ("card", "", PaymentStatus.PENDING),
        ("bank_transfer", "ref-123", PaymentStatus.PENDING),
        ("bank_transfer", None, PaymentStatus.PENDING),
        ("cash_on_delivery", None, PaymentStatus.PENDING),
        (None, None, PaymentStatus.PENDING),
    ])
    async def test_seeds_payment_status(self, service, seed, customer,
                                        method, reference, expected):
        seed.product("p1", "vendor-1", 10, 5)
        seed.cart(customer.id, ("p1", 1))

        [order] = await service.place_order(
            customer, "X", "Y", payment_method=method, payment_reference=reference
        )

        assert order.payment_status == expected

    @pytest.mark.asyncio
    async def test_defaults_to_cash_on_delivery(self, service, seed, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.cart(customer.id, ("p1", 1))

        [order] = await service.place_order(customer, "X", "Y")

        assert order.payment_method == PaymentMethod.CASH_ON_DELIVERY
        assert order.payment_reference is None

    @pytest.mark.asyncio
    async def test_card_reference_is_shared_across_vendor_orders(self, service, seed, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.product("p2", "vendor-2", 10, 5)
        seed.cart(customer.id, ("p1", 1), ("p2", 1))

        orders = await service.place_order(
            customer, "X", "Y", payment_method="card", payment_reference="PSK-1"
        )

        assert {o.payment_reference for o in orders} == {"PSK-1"}
        assert {o.payment_status for o in orders} == {PaymentStatus.PAID}

    @pytest.mark.asyncio
    async def test_failed_stock_decrement_rolls_back(self, service, seed, db, customer,
                                                     monkeypatch):
        seed.product("p1", "vendor-1", 10, 5)
        seed.product("p2", "vendor-2", 10, 5)
        seed.cart(customer.id, ("p1", 2), ("p2", 2))

        original = MemoryProductRepository.decrement_stock

        async def sold_out_meanwhile(self, product_id, quantity):
            if product_id == "p2":
                return False
            return await original(self, product_id, quantity)

        monkeypatch.setattr(MemoryProductRepository, "decrement_stock", sold_out_meanwhile)

        with pytest.raises(InsufficientStockError):
            await service.place_order(customer, "X", "Y")

        assert db.orders == {}
        assert db.products["p1"].stock_quantity == 5
        assert len(db.carts[customer.id].items) == 2

    @pytest.mark.asyncio
    async def test_order_number_format(self, service, seed, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.cart(customer.id, ("p1", 1))

        [order] = await service.place_order(customer, "X", "Y")

        assert re.fullmatch(r"TS-\d{8}-[0-9A-F]{6}", order.order_number)


class TestOrderRetrieval:
    @pytest.mark.asyncio
    async def test_visible_to_customer_vendor_and_admin(self, service, seed, customer,
                                                        vendor, admin):
        seed.order("order-1", customer.id, vendor.id)

        for principal in (customer, vendor, admin):
            order = await service.get_order("order-1", principal)
            assert order.id == "order-1"

    @pytest.mark.asyncio
    async def test_hidden_from_other_users(self, service, seed, customer, other_customer,
                                           other_vendor):
        seed.order("order-1", customer.id, "vendor-1")

        for principal in (other_customer, other_vendor):
            with pytest.raises(NotAuthorizedError) as exc_info:
                await service.get_order("order-1", principal)
            assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_order(self, service, customer):
        with pytest.raises(NotFoundError, match="Order not found"):
            await service.get_order("missing", customer)

    @pytest.mark.asyncio
    async def test_my_orders_newest_first(self, service, seed, customer):
        seed.product("p1", "vendor-1", 10, 5)
        seed.cart(customer.id, ("p1", 1))
        [first] = await service.place_order(customer, "X", "Y")
        seed.cart(customer.id, ("p1", 1))
        [second] = await service.place_order(customer, "X", "Y")
        seed.order("someone-else", "customer-9", "vendor-1")

        orders = await service.get_my_orders(customer)

        assert [o.id for o in orders] == [second.id, first.id]
