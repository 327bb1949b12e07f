import re
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from catalog_api.core.errors import (
    InsufficientStockError,
    InvalidStateTransitionError,
    OrderNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from catalog_api.models.order import Order, OrderItem, OrderStatus
from catalog_api.services import orders, products


class TestCreateOrder:
    def test_create_snapshots_prices_and_decrements_stock(self, db, make_product):
        a = make_product(name="A", price="10.00", stock=5)
        b = make_product(name="B", price="2.50", stock=5)

        order = orders.create_order(db, customer_name="Ann", customer_email="ann@example.com", items={a.id: 2, b.id: 3})

        assert order.status is OrderStatus.PENDING
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{8}", order.order_number)
        assert order.total_amount == Decimal("27.50")
        assert [(i.product.name, i.quantity, i.unit_price, i.subtotal) for i in order.items] == [
            ("A", 2, Decimal("10.00"), Decimal("20.00")),
            ("B", 3, Decimal("2.50"), Decimal("7.50")),
        ]
        assert products.get_product(db, a.id).stock == 3
        assert products.get_product(db, b.id).stock == 2

    def test_total_matches_item_subtotals(self, db, make_product):
        a = make_product(price="3.33", stock=10)
        order = orders.create_order(db, customer_name="Ann", items={a.id: 3})
        assert order.total_amount == sum(i.subtotal for i in order.items)

    def test_order_numbers_are_unique(self, db, make_product):
        p = make_product(stock=10)
        numbers = {orders.create_order(db, customer_name="Ann", items={p.id: 1}).order_number for _ in range(5)}
        assert len(numbers) == 5

    def test_insufficient_stock_rolls_back_every_line(self, db, make_product):
        a = make_product(name="A", stock=5)
        b = make_product(name="B", stock=1)

        with pytest.raises(InsufficientStockError) as exc:
            orders.create_order(db, customer_name="Ann", items={a.id: 2, b.id: 2})

        assert exc.value.product_name == "B"
        assert products.get_product(db, a.id).stock == 5
        assert products.get_product(db, b.id).stock == 1
        assert orders.count_orders(db) == 0
        assert db.scalar(select(func.count()).select_from(OrderItem)) == 0

    def test_unknown_product_rolls_back(self, db, make_product):
        a = make_product(stock=5)
        with pytest.raises(ProductNotFoundError):
            orders.create_order(db, customer_name="Ann", items={a.id: 1, 999: 1})
        assert products.get_product(db, a.id).stock == 5

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"customer_name": "", "items": {1: 1}},
            {"customer_name": "Ann", "items": {}},
            {"customer_name": "Ann", "items": {1: 0}},
            {"customer_name": "Ann", "customer_email": "nope", "items": {1: 1}},
        ],
    )
    def test_invalid_input(self, db, make_product, kwargs):
        make_product()
        with pytest.raises(ValidationError):
            orders.create_order(db, **kwargs)


class TestPriceImmutability:
    def test_price_change_leaves_items_untouched(self, db, make_product):
        p = make_product(price="10.00", stock=5)
        order = orders.create_order(db, customer_name="Ann", items={p.id: 1})

        products.update_product(db, p.id, name=p.name, price=Decimal("99.00"), stock=4)

        again = orders.get_order_with_items(db, order.id)
        assert again.items[0].unit_price == Decimal("10.00")
        assert again.total_amount == Decimal("10.00")

    def test_unit_price_cannot_be_reassigned(self, db, make_product):
        p = make_product(price="10.00", stock=5)
        order = orders.create_order(db, customer_name="Ann", items={p.id: 1})
        with pytest.raises(AttributeError):
            order.items[0].unit_price = Decimal("1.00")

    def test_subtotal_follows_quantity(self):
        item = OrderItem(quantity=2, unit_price=Decimal("4.25"))
        assert item.subtotal == Decimal("8.50")
        item.quantity = 3
        assert item.subtotal == Decimal("12.75")


class TestStatus:
    def test_full_flow(self, db, make_product):
        p = make_product()
        order = orders.create_order(db, customer_name="Ann", items={p.id: 1})
        for status in ["CONFIRMED", "SHIPPED", "DELIVERED"]:
            assert orders.update_order_status(db, order.id, status).status.value == status

    def test_skip_ahead_rejected(self, db, make_product):
        p = make_product()
        order = orders.create_order(db, customer_name="Ann", items={p.id: 1})
        with pytest.raises(InvalidStateTransitionError) as exc:
            orders.update_order_status(db, order.id, OrderStatus.SHIPPED)
        assert "PENDING" in exc.value.message and "SHIPPED" in exc.value.message
        assert orders.get_order_with_items(db, order.id).status is OrderStatus.PENDING

    def test_regression_rejected(self, db, make_product):
        p = make_product()
        order = orders.create_order(db, customer_name="Ann", items={p.id: 1})
        orders.update_order_status(db, order.id, "CONFIRMED")
        with pytest.raises(InvalidStateTransitionError):
            orders.update_order_status(db, order.id, "PENDING")

    @pytest.mark.parametrize("target", ["PENDING", "CONFIRMED", "SHIPPED"])
    def test_nothing_leaves_delivered(self, db, make_product, target):
        p = make_product()
        order = orders.create_order(db, customer_name="Ann", items={p.id: 1})
        for status in ["CONFIRMED", "SHIPPED", "DELIVERED"]:
            orders.update_order_status(db, order.id, status)
        with pytest.raises(InvalidStateTransitionError):
            orders.update_order_status(db, order.id, target)

    def test_same_status_is_noop(self, db, make_product):
        p = make_product()
        order = orders.create_order(db, customer_name="Ann", items={p.id: 1})
        assert orders.update_order_status(db, order.id, "pending").status is OrderStatus.PENDING

    def test_unknown_status(self, db, make_product):
        p = make_product()
        order = orders.create_order(db, customer_name="Ann", items={p.id: 1})
        with pytest.raises(ValidationError):
            orders.update_order_status(db, order.id, "LOST")

    def test_unknown_order(self, db):
        with pytest.raises(OrderNotFoundError):
            orders.update_order_status(db, 9, "CONFIRMED")


class TestDeleteOrder:
    def test_delete_removes_items_but_not_stock(self, db, make_product):
        p = make_product(stock=5)
        order = orders.create_order(db, customer_name="Ann", items={p.id: 2})

        orders.delete_order(db, order.id)

        assert db.scalar(select(func.count()).select_from(Order)) == 0
        assert db.scalar(select(func.count()).select_from(OrderItem)) == 0
        # stock-neutral: the 2 units stay consumed
        assert products.get_product(db, p.id).stock == 3

    def test_delete_unknown(self, db):
        with pytest.raises(OrderNotFoundError):
            orders.delete_order(db, 1)


class TestOrderAggregate:
    def test_remove_item_recalculates(self, db, make_product):
        a = make_product(price="10.00", stock=5)
        b = make_product(price="5.00", stock=5)
        order = orders.create_order(db, customer_name="Ann", items={a.id: 1, b.id: 1})

        order.remove_item(order.items[0])
        order.calculate_total()
        db.add(order)
        db.commit()

        again = orders.get_order_with_items(db, order.id)
        assert len(again.items) == 1
        assert again.total_amount == Decimal("5.00")


class TestQueries:
    def test_by_customer_email_and_status(self, db, make_product):
        p = make_product(stock=10)
        first = orders.create_order(db, customer_name="Ann", customer_email="ann@example.com", items={p.id: 1})
        orders.create_order(db, customer_name="Bob", customer_email="bob@example.com", items={p.id: 1})
        orders.update_order_status(db, first.id, "CONFIRMED")

        by_email = orders.list_orders_by_customer_email(db, "ANN@example.com")
        assert [o.id for o in by_email] == [first.id]
        assert len(by_email[0].items) == 1

        assert [o.id for o in orders.list_orders_by_status(db, "confirmed")] == [first.id]
        assert len(orders.list_orders_by_status(db, OrderStatus.PENDING)) == 1

    def test_email_required(self, db):
        with pytest.raises(ValidationError):
            orders.list_orders_by_customer_email(db, " ")

    def test_full_listing_has_items(self, db, make_product):
        p = make_product(stock=10)
        for _ in range(3):
            orders.create_order(db, customer_name="Ann", items={p.id: 2})
        full = orders.list_orders_full(db)
        assert len(full) == 3
        assert all(len(o.items) == 1 and o.items[0].product.category is not None for o in full)
        assert orders.count_orders(db) == 3
