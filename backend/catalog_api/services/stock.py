"""Row-locked stock mutations.

Every change to ``products.stock`` goes through here:

1. ``lock_product`` reads the row with ``SELECT ... FOR UPDATE`` and refreshes
   whatever copy the session already holds.
2. the change itself is a guarded UPDATE (``WHERE stock + delta >= 0``), so a
   stale read can never push stock below zero even without the lock.

Callers own the transaction. A failed guard raises; nothing is retried.
"""

import logging

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from catalog_api.core.database import utcnow
from catalog_api.core.errors import InsufficientStockError, ProductNotFoundError, ValidationError
from catalog_api.models.product import Product

logger = logging.getLogger(__name__)

_products = Product.__table__


def lock_product(db: Session, product_id: int) -> Product:
    product = db.scalars(
        select(Product)
        .where(Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).first()
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


def _apply_delta(db: Session, product: Product, delta: int) -> bool:
    result = db.execute(
        update(_products)
        .where(_products.c.id == product.id, _products.c.stock + delta >= 0)
        .values(stock=_products.c.stock + delta, updated_at=utcnow())
    )
    if result.rowcount != 1:
        return False
    db.refresh(product, attribute_names=["stock", "updated_at"])
    return True


def _current_stock(db: Session, product_id: int) -> int:
    return db.scalar(select(Product.stock).where(Product.id == product_id)) or 0


def take_stock(db: Session, product: Product, quantity: int) -> None:
    """Decrement a locked product's stock by ``quantity`` or raise."""
    if product.stock < quantity:
        raise InsufficientStockError(product.name, quantity, product.stock)

    if not _apply_delta(db, product, -quantity):
        raise InsufficientStockError(product.name, quantity, _current_stock(db, product.id))

    logger.debug(
        "stock_decreased",
        extra={"product_id": product.id, "quantity": quantity, "stock": product.stock},
    )


def adjust(db: Session, product: Product, delta: int) -> None:
    """Apply a signed delta to a locked product's stock."""
    if product.stock + delta < 0:
        raise ValidationError(
            f"Insufficient stock. Current stock: {product.stock}, requested change: {delta}",
            field="quantity",
            value=delta,
        )

    if not _apply_delta(db, product, delta):
        current = _current_stock(db, product.id)
        raise ValidationError(
            f"Insufficient stock. Current stock: {current}, requested change: {delta}",
            field="quantity",
            value=delta,
        )

    logger.debug(
        "stock_adjusted",
        extra={"product_id": product.id, "delta": delta, "stock": product.stock},
    )
