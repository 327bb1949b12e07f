"""Read-only aggregate views. None of these share a transaction with writes."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session

from catalog_api.models.category import Category
from catalog_api.models.order import Order, OrderItem, OrderStatus
from catalog_api.models.product import Product
from catalog_api.services import fetch, validation

CENT = Decimal("0.01")


def _money(value: Any) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass
class CategoryCount:
    category_name: str
    product_count: int


@dataclass
class CategoryAveragePrice:
    category_name: str
    average_price: Decimal


@dataclass
class CategoryStats:
    category_name: str
    product_count: int
    average_price: Decimal


@dataclass
class StatusCount:
    status: OrderStatus
    order_count: int


@dataclass
class ProductQuantity:
    product_id: int
    product_name: str
    total_quantity: int


def _average(total: Any, count: int) -> Decimal:
    # mean over exact cents in Decimal; a float AVG drops half-cent ties
    if not count:
        return Decimal("0.00")
    return (_money(total) / count).quantize(CENT, rounding=ROUND_HALF_UP)


def _category_rows(db: Session):
    product_count = func.count(Product.id)
    stmt = (
        select(
            Category.name,
            product_count,
            func.sum(Product.price),
        )
        .join(Product, Product.category_id == Category.id)
        .group_by(Category.id, Category.name)
        .order_by(product_count.desc(), Category.name)
    )
    return db.execute(stmt).all()


def product_count_by_category(db: Session) -> list[CategoryCount]:
    return [CategoryCount(name, count) for name, count, _ in _category_rows(db)]


def average_price_by_category(db: Session) -> list[CategoryAveragePrice]:
    return [CategoryAveragePrice(name, _average(total, count)) for name, count, total in _category_rows(db)]


def category_stats(db: Session) -> list[CategoryStats]:
    return [CategoryStats(name, count, _average(total, count)) for name, count, total in _category_rows(db)]


def top_expensive_products(db: Session, limit: int) -> list[Product]:
    limit = validation.clean_limit(limit)
    stmt = fetch.products_joined().order_by(Product.price.desc(), Product.id).limit(limit)
    return list(db.scalars(stmt).all())


def never_ordered_products(db: Session) -> list[Product]:
    ordered = exists().where(OrderItem.product_id == Product.id)
    stmt = fetch.products_joined(~ordered).order_by(Product.id)
    return list(db.scalars(stmt).all())


def total_revenue(db: Session, status: Optional[OrderStatus] = OrderStatus.DELIVERED) -> Decimal:
    """Sum of order totals for ``status`` (DELIVERED by default). 0.00 when none."""
    stmt = select(func.coalesce(func.sum(Order.total_amount), 0)).where(Order.status == status)
    return _money(db.scalar(stmt))


def order_count_by_status(db: Session) -> list[StatusCount]:
    order_count = func.count(Order.id)
    stmt = (
        select(Order.status, order_count)
        .group_by(Order.status)
        .order_by(order_count.desc(), Order.status)
    )
    return [StatusCount(status, count) for status, count in db.execute(stmt).all()]


def most_ordered_products(db: Session, limit: int) -> list[ProductQuantity]:
    limit = validation.clean_limit(limit)
    total_quantity = func.sum(OrderItem.quantity)
    stmt = (
        select(Product.id, Product.name, total_quantity)
        .join(OrderItem, OrderItem.product_id == Product.id)
        .group_by(Product.id, Product.name)
        .order_by(total_quantity.desc(), Product.id)
        .limit(limit)
    )
    return [ProductQuantity(pid, name, int(qty)) for pid, name, qty in db.execute(stmt).all()]
