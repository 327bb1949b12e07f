import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from catalog_api.core.database import unit_of_work
from catalog_api.core.errors import CategoryNotFoundError, ConflictError, DuplicateCategoryNameError
from catalog_api.models.category import Category
from catalog_api.models.order import OrderItem
from catalog_api.models.policies import (
    CATEGORY_PRODUCTS,
    PRODUCT_ORDER_ITEMS,
    apply_delete_policy,
)
from catalog_api.models.product import Product
from catalog_api.services import fetch, validation

logger = logging.getLogger(__name__)


def _name_taken(db: Session, name: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Category.id).where(func.lower(Category.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    return db.scalar(stmt.limit(1)) is not None


def _flush(db: Session, name: str) -> None:
    # the lower(name) index decides when two writers race past _name_taken
    try:
        db.flush()
    except IntegrityError as e:
        if "name" in str(e.orig).lower():
            raise DuplicateCategoryNameError(name) from e
        raise


def find_by_name(db: Session, name: str) -> Optional[Category]:
    return db.scalars(select(Category).where(func.lower(Category.name) == name.lower())).first()


def find_or_create_category(db: Session, name: str) -> Category:
    """Used inside a caller's unit of work; flushes but does not commit."""
    category = find_by_name(db, name)
    if category is None:
        category = Category(name=name)
        db.add(category)
        _flush(db, name)
        logger.info("category_created", extra={"category_id": category.id, "category_name": name})
    return category


def get_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


def get_category_with_products(db: Session, category_id: int) -> Category:
    stmt = (
        select(Category)
        .options(joinedload(Category.products))
        .where(Category.id == category_id)
    )
    category = db.scalars(stmt).unique().first()
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


def list_categories(db: Session) -> list[Category]:
    return list(db.scalars(select(Category).order_by(Category.name)).all())


def count_categories(db: Session) -> int:
    return db.scalar(fetch.count_of(Category)) or 0


def create_category(db: Session, name: str, description: Optional[str] = None) -> Category:
    name = validation.clean_text(name, "name", 100, required=True)
    description = validation.clean_text(description, "description", 500)

    with unit_of_work(db):
        if _name_taken(db, name):
            raise DuplicateCategoryNameError(name)
        category = Category(name=name, description=description)
        db.add(category)
        _flush(db, name)
        category_id = category.id

    logger.info("category_created", extra={"category_id": category_id, "category_name": name})
    return get_category(db, category_id)


def update_category(db: Session, category_id: int, name: str, description: Optional[str] = None) -> Category:
    with unit_of_work(db):
        category = db.get(Category, category_id, populate_existing=True)
        if category is None:
            raise CategoryNotFoundError(category_id)

        name = validation.clean_text(name, "name", 100, required=True)
        description = validation.clean_text(description, "description", 500)
        if name.lower() != category.name.lower() and _name_taken(db, name, exclude_id=category_id):
            raise DuplicateCategoryNameError(name)

        category.name = name
        category.description = description
        db.add(category)
        _flush(db, name)

    logger.info("category_updated", extra={"category_id": category_id})
    return get_category(db, category_id)


def delete_category(db: Session, category_id: int) -> int:
    """Delete a category and every product in it. Returns the number of products removed."""
    product_ids = select(Product.id).where(Product.category_id == category_id)

    with unit_of_work(db):
        if db.get(Category, category_id) is None:
            raise CategoryNotFoundError(category_id)

        # products still on historical orders block the cascade
        apply_delete_policy(
            db,
            PRODUCT_ORDER_ITEMS,
            OrderItem.__table__.c.product_id,
            product_ids,
            on_restrict=lambda n: ConflictError(
                f"Category {category_id} has products referenced by {n} order item(s)"
            ),
        )
        removed = apply_delete_policy(db, CATEGORY_PRODUCTS, Product.__table__.c.category_id, category_id)
        db.execute(delete(Category).where(Category.id == category_id))

    logger.info("category_deleted", extra={"category_id": category_id, "products_removed": removed})
    return removed
