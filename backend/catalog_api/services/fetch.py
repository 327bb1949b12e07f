"""Fetch plans for every multi-entity read.

All relationships are mapped ``lazy="raise"``, so a read either states how its
related rows are loaded or fails loudly. Two plans exist:

* joined: one SELECT brings the root rows and the related rows needed to
  serialize them (products with category + supplier, orders with
  items -> product -> category + supplier). Used by every list/detail read.
* deferred: root rows only, then related rows resolved through a per-call
  cache keyed by id, so extra queries are bounded by the number of distinct
  related rows. Only ``list_products_slow`` uses it, to show the N+1 cost.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.attributes import set_committed_value

from catalog_api.core.config import settings
from catalog_api.core.errors import ValidationError
from catalog_api.models.category import Category
from catalog_api.models.order import Order, OrderItem
from catalog_api.models.product import Product
from catalog_api.models.supplier import Supplier

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------- joined plans ----------


def product_joined_options():
    return (
        joinedload(Product.category, innerjoin=True),
        joinedload(Product.supplier),
    )


def products_joined(*criteria) -> Select:
    stmt = select(Product).options(*product_joined_options())
    if criteria:
        stmt = stmt.where(*criteria)
    return stmt


def order_joined_options():
    item_product = joinedload(Order.items).joinedload(OrderItem.product)
    return (
        item_product.joinedload(Product.category),
        item_product.joinedload(Product.supplier),
    )


def orders_joined(*criteria) -> Select:
    stmt = select(Order).options(*order_joined_options())
    if criteria:
        stmt = stmt.where(*criteria)
    return stmt


def fetch_orders(db: Session, stmt: Select) -> list[Order]:
    # collection joins repeat the parent row once per item
    return list(db.scalars(stmt).unique().all())


# ---------- deferred plan ----------


class RelatedCache:
    """Short-lived id -> entity cache for one deferred read."""

    def __init__(self, db: Session, model: type):
        self.db = db
        self.model = model
        self._rows: dict[Any, Any] = {}
        self.queries = 0

    def get(self, key: Any) -> Optional[Any]:
        if key is None:
            return None
        if key not in self._rows:
            self.queries += 1
            self._rows[key] = self.db.scalars(
                select(self.model).where(self.model.id == key)
            ).first()
        return self._rows[key]


def load_products_deferred(db: Session) -> list[Product]:
    products = list(db.scalars(select(Product).order_by(Product.id)).all())

    categories = RelatedCache(db, Category)
    suppliers = RelatedCache(db, Supplier)
    for p in products:
        set_committed_value(p, "category", categories.get(p.category_id))
        set_committed_value(p, "supplier", suppliers.get(p.supplier_id))

    logger.info(
        "products_deferred_read",
        extra={
            "rows": len(products),
            "queries": 1 + categories.queries + suppliers.queries,
        },
    )
    return products


# ---------- pagination ----------


@dataclass
class Page(Generic[T]):
    content: list[T] = field(default_factory=list)
    page: int = 0
    size: int = 0
    total_elements: int = 0

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return math.ceil(self.total_elements / self.size)

    @property
    def number_of_elements(self) -> int:
        return len(self.content)


def validate_page_params(page: int, size: int) -> None:
    if page is None or page < 0:
        raise ValidationError("Page index must be >= 0", field="page", value=page)
    if size is None or size < 1 or size > settings.max_page_size:
        raise ValidationError(
            f"Page size must be between 1 and {settings.max_page_size}",
            field="size",
            value=size,
        )


def paginate(db: Session, rows: Select, count: Select, page: int, size: int) -> Page:
    """Run ``rows`` with LIMIT/OFFSET and ``count`` separately.

    Both statements must carry the same filter; they don't share a plan.
    """
    validate_page_params(page, size)
    total = db.scalar(count) or 0
    content = list(db.scalars(rows.limit(size).offset(page * size)).all())
    return Page(content=content, page=page, size=size, total_elements=total)


def count_of(model: type, *criteria) -> Select:
    stmt = select(func.count()).select_from(model)
    if criteria:
        stmt = stmt.where(*criteria)
    return stmt
