import logging
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog_api.core.database import unit_of_work, utcnow
from catalog_api.core.errors import (
    CategoryNotFoundError,
    DuplicateSkuError,
    ProductInUseError,
    ProductNotFoundError,
    SupplierNotFoundError,
    ValidationError,
)
from catalog_api.models.category import Category
from catalog_api.models.order import OrderItem
from catalog_api.models.policies import PRODUCT_ORDER_ITEMS, apply_delete_policy
from catalog_api.models.product import Product
from catalog_api.models.supplier import Supplier
from catalog_api.services import fetch, stock, validation
from catalog_api.services.categories import find_or_create_category

logger = logging.getLogger(__name__)


# ---------- helpers ----------


def _clean_fields(
    *,
    name: Optional[str],
    price: Any,
    stock: Any,
    description: Optional[str],
    sku: Optional[str],
) -> dict:
    return {
        "name": validation.clean_text(name, "name", 200, required=True),
        "description": validation.clean_text(description, "description", 1000),
        "price": validation.clean_price(price),
        "stock": validation.clean_stock(stock),
        "sku": validation.clean_sku(sku),
    }


def _require_category(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


def _require_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if supplier is None:
        raise SupplierNotFoundError(supplier_id)
    return supplier


def sku_taken(db: Session, sku: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Product.id).where(Product.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(Product.id != exclude_id)
    return db.scalar(stmt.limit(1)) is not None


def _flush(db: Session, sku: Optional[str]) -> None:
    # the unique index is the last word if two writers race on one SKU
    try:
        db.flush()
    except IntegrityError as e:
        if sku and "sku" in str(e.orig).lower():
            raise DuplicateSkuError(sku) from e
        raise


def _insert_product(db: Session, fields: dict, category_id: int, supplier_id: Optional[int]) -> int:
    _require_category(db, category_id)
    if supplier_id is not None:
        _require_supplier(db, supplier_id)

    if fields["sku"] and sku_taken(db, fields["sku"]):
        raise DuplicateSkuError(fields["sku"])

    p = Product(**fields, category_id=category_id, supplier_id=supplier_id)
    db.add(p)
    _flush(db, fields["sku"])
    return p.id


# ---------- reads ----------


def get_product(db: Session, product_id: int) -> Product:
    p = db.scalars(fetch.products_joined(Product.id == product_id)).first()
    if p is None:
        raise ProductNotFoundError(product_id)
    return p


def list_products_page(db: Session, page: int = 0, size: int = 10) -> fetch.Page:
    return fetch.paginate(
        db,
        rows=fetch.products_joined().order_by(Product.id),
        count=fetch.count_of(Product),
        page=page,
        size=size,
    )


def list_products_fast(db: Session) -> list[Product]:
    return list(db.scalars(fetch.products_joined().order_by(Product.id)).all())


def list_products_slow(db: Session) -> list[Product]:
    return fetch.load_products_deferred(db)


def list_products_by_category(db: Session, category_id: int) -> list[Product]:
    _require_category(db, category_id)
    stmt = fetch.products_joined(Product.category_id == category_id).order_by(Product.id)
    return list(db.scalars(stmt).all())


def list_products_by_supplier(db: Session, supplier_id: int) -> list[Product]:
    _require_supplier(db, supplier_id)
    stmt = fetch.products_joined(Product.supplier_id == supplier_id).order_by(Product.id)
    return list(db.scalars(stmt).all())


def list_products_by_price_range(db: Session, min_price: Any, max_price: Any) -> list[Product]:
    if min_price is None or max_price is None:
        raise ValidationError("Both min_price and max_price are required", field="min_price")
    lo, hi = Decimal(str(min_price)), Decimal(str(max_price))
    if lo > hi:
        raise ValidationError("min_price cannot be greater than max_price", field="min_price", value=min_price)
    stmt = fetch.products_joined(Product.price.between(lo, hi)).order_by(Product.price, Product.id)
    return list(db.scalars(stmt).all())


def search_products(db: Session, keyword: Optional[str]) -> list[Product]:
    if keyword is None or not keyword.strip():
        return list_products_fast(db)
    pattern = f"%{keyword.strip().lower()}%"
    stmt = fetch.products_joined(func.lower(Product.name).like(pattern)).order_by(Product.id)
    return list(db.scalars(stmt).all())


def count_products(db: Session) -> int:
    return db.scalar(fetch.count_of(Product)) or 0


# ---------- writes ----------


def create_product(
    db: Session,
    *,
    name: str,
    price: Any,
    category_id: Optional[int],
    stock: int = 0,
    description: Optional[str] = None,
    sku: Optional[str] = None,
    supplier_id: Optional[int] = None,
) -> Product:
    fields = _clean_fields(name=name, price=price, stock=stock, description=description, sku=sku)
    if category_id is None:
        raise ValidationError("category_id is required", field="category_id")

    with unit_of_work(db):
        product_id = _insert_product(db, fields, category_id, supplier_id)

    logger.info("product_created", extra={"product_id": product_id, "sku": fields["sku"]})
    return get_product(db, product_id)


def create_product_with_category(
    db: Session,
    *,
    name: str,
    price: Any,
    category_name: str,
    stock: int = 0,
    description: Optional[str] = None,
    sku: Optional[str] = None,
    supplier_id: Optional[int] = None,
) -> Product:
    """Create a product, finding its category by name or creating it, in one unit of work."""
    fields = _clean_fields(name=name, price=price, stock=stock, description=description, sku=sku)
    category_name = validation.clean_text(category_name, "category_name", 100, required=True)

    with unit_of_work(db):
        category = find_or_create_category(db, category_name)
        product_id = _insert_product(db, fields, category.id, supplier_id)

    logger.info(
        "product_created",
        extra={"product_id": product_id, "sku": fields["sku"], "category": category_name},
    )
    return get_product(db, product_id)


def update_product(
    db: Session,
    product_id: int,
    *,
    name: str,
    price: Any,
    stock: int,
    description: Optional[str] = None,
    sku: Optional[str] = None,
    category_id: Optional[int] = None,
    supplier_id: Optional[int] = None,
) -> Product:
    with unit_of_work(db):
        p = db.get(Product, product_id, with_for_update=True, populate_existing=True)
        if p is None:
            raise ProductNotFoundError(product_id)

        fields = _clean_fields(name=name, price=price, stock=stock, description=description, sku=sku)

        # a blank SKU on update keeps the current one
        new_sku = fields.pop("sku")
        if new_sku and new_sku != p.sku:
            if sku_taken(db, new_sku, exclude_id=p.id):
                raise DuplicateSkuError(new_sku)
            p.sku = new_sku

        for k, v in fields.items():
            setattr(p, k, v)

        if category_id is not None:
            p.category_id = _require_category(db, category_id).id
        if supplier_id is not None:
            p.supplier_id = _require_supplier(db, supplier_id).id

        p.updated_at = utcnow()
        db.add(p)
        _flush(db, new_sku)

    logger.info("product_updated", extra={"product_id": product_id})
    return get_product(db, product_id)


def delete_product(db: Session, product_id: int) -> None:
    with unit_of_work(db):
        if db.get(Product, product_id) is None:
            raise ProductNotFoundError(product_id)

        apply_delete_policy(
            db,
            PRODUCT_ORDER_ITEMS,
            OrderItem.__table__.c.product_id,
            product_id,
            on_restrict=lambda n: ProductInUseError(product_id, n),
        )
        db.execute(delete(Product).where(Product.id == product_id))

    logger.info("product_deleted", extra={"product_id": product_id})


def adjust_stock(db: Session, product_id: int, delta: int) -> Product:
    """Add (positive) or remove (negative) stock. Resulting stock must stay >= 0."""
    if not isinstance(delta, int) or isinstance(delta, bool):
        raise ValidationError("quantity must be an integer", field="quantity", value=delta)

    with unit_of_work(db):
        p = stock.lock_product(db, product_id)
        stock.adjust(db, p, delta)

    logger.info("stock_adjusted", extra={"product_id": product_id, "delta": delta})
    return get_product(db, product_id)


def decrease_stock(db: Session, product_id: int, quantity: int) -> None:
    quantity = validation.clean_quantity(quantity)

    with unit_of_work(db):
        p = stock.lock_product(db, product_id)
        stock.take_stock(db, p, quantity)

    logger.info("stock_decreased", extra={"product_id": product_id, "quantity": quantity})


def transfer_products(db: Session, from_category_id: int, to_category_id: int) -> int:
    """Move every product of one category to another. All or nothing."""
    products = Product.__table__

    with unit_of_work(db):
        if db.get(Category, from_category_id) is None:
            raise CategoryNotFoundError(from_category_id)
        if db.get(Category, to_category_id) is None:
            raise CategoryNotFoundError(to_category_id)

        moved = db.execute(
            update(products)
            .where(products.c.category_id == from_category_id)
            .values(category_id=to_category_id, updated_at=utcnow())
        ).rowcount

    logger.info(
        "products_transferred",
        extra={"from_category_id": from_category_id, "to_category_id": to_category_id, "count": moved},
    )
    return moved
