import logging
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalog_api.core.database import unit_of_work
from catalog_api.core.errors import DuplicateSupplierEmailError, SupplierNotFoundError
from catalog_api.models.policies import SUPPLIER_PRODUCTS, apply_delete_policy
from catalog_api.models.product import Product
from catalog_api.models.supplier import Supplier
from catalog_api.services import fetch, validation

logger = logging.getLogger(__name__)


def _email_taken(db: Session, email: str, exclude_id: Optional[int] = None) -> bool:
    stmt = select(Supplier.id).where(func.lower(Supplier.email) == email.lower())
    if exclude_id is not None:
        stmt = stmt.where(Supplier.id != exclude_id)
    return db.scalar(stmt.limit(1)) is not None


def _flush(db: Session, email: Optional[str]) -> None:
    # the lower(email) index decides when two writers race past _email_taken
    try:
        db.flush()
    except IntegrityError as e:
        if email and "email" in str(e.orig).lower():
            raise DuplicateSupplierEmailError(email) from e
        raise


def get_supplier(db: Session, supplier_id: int) -> Supplier:
    supplier = db.get(Supplier, supplier_id)
    if supplier is None:
        raise SupplierNotFoundError(supplier_id)
    return supplier


def list_suppliers(db: Session) -> list[Supplier]:
    return list(db.scalars(select(Supplier).order_by(Supplier.id)).all())


def count_suppliers(db: Session) -> int:
    return db.scalar(fetch.count_of(Supplier)) or 0


def create_supplier(
    db: Session,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Supplier:
    name = validation.clean_text(name, "name", 200, required=True)
    email = validation.clean_email(email)
    phone = validation.clean_text(phone, "phone", 20)

    with unit_of_work(db):
        if email and _email_taken(db, email):
            raise DuplicateSupplierEmailError(email)
        supplier = Supplier(name=name, email=email, phone=phone)
        db.add(supplier)
        _flush(db, email)
        supplier_id = supplier.id

    logger.info("supplier_created", extra={"supplier_id": supplier_id})
    return get_supplier(db, supplier_id)


def update_supplier(
    db: Session,
    supplier_id: int,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> Supplier:
    with unit_of_work(db):
        supplier = db.get(Supplier, supplier_id, populate_existing=True)
        if supplier is None:
            raise SupplierNotFoundError(supplier_id)

        name = validation.clean_text(name, "name", 200, required=True)
        email = validation.clean_email(email)
        phone = validation.clean_text(phone, "phone", 20)

        changed = email is not None and (supplier.email or "").lower() != email.lower()
        if changed and _email_taken(db, email, exclude_id=supplier_id):
            raise DuplicateSupplierEmailError(email)

        supplier.name = name
        supplier.email = email
        supplier.phone = phone
        db.add(supplier)
        _flush(db, email)

    logger.info("supplier_updated", extra={"supplier_id": supplier_id})
    return get_supplier(db, supplier_id)


def delete_supplier(db: Session, supplier_id: int) -> int:
    """Unlink the supplier's products, then delete it. Returns the number of products unlinked."""
    with unit_of_work(db):
        if db.get(Supplier, supplier_id) is None:
            raise SupplierNotFoundError(supplier_id)

        unlinked = apply_delete_policy(db, SUPPLIER_PRODUCTS, Product.__table__.c.supplier_id, supplier_id)
        db.execute(delete(Supplier).where(Supplier.id == supplier_id))

    logger.info("supplier_deleted", extra={"supplier_id": supplier_id, "products_unlinked": unlinked})
    return unlinked
