# backend/catalog_api/seed.py
#
# Demo catalog for local dev: python -m catalog_api.seed (from backend/)

import logging
from decimal import Decimal

from sqlalchemy import delete

from catalog_api.core.config import settings
from catalog_api.core.database import Base, SessionLocal, engine
from catalog_api.core.logging_config import configure_logging
from catalog_api.core.seed import seed_users_if_empty
from catalog_api.models.registry import Category, Order, OrderItem, Product, Supplier
from catalog_api.services import categories, orders, products, suppliers

logger = logging.getLogger(__name__)

CATEGORIES = [
    ("Electronics", "Phones, laptops and accessories"),
    ("Books", "Printed and e-books"),
    ("Home", "Kitchen and household goods"),
]

SUPPLIERS = [
    ("ACME Distribution", "sales@acme.com", "555-0100"),
    ("Globex Supply", "orders@globex.com", "555-0200"),
]

# name, sku, price, stock, category, supplier index (or None)
PRODUCTS = [
    ("Laptop Pro 14", "ELE001", "1299.99", 15, "Electronics", 0),
    ("Wireless Mouse", "ELE002", "24.50", 120, "Electronics", 0),
    ("USB-C Hub", "ELE003", "39.90", 60, "Electronics", 1),
    ("Python Cookbook", "BOO001", "45.00", 30, "Books", 1),
    ("SQL Basics", "BOO002", "29.99", 25, "Books", None),
    ("Chef Knife", "HOM001", "59.00", 40, "Home", 0),
    ("Coffee Grinder", "HOM002", "89.95", 18, "Home", None),
]


def reset(db) -> None:
    # wipe existing data (DEV ONLY)
    for model in (OrderItem, Order, Product, Supplier, Category):
        db.execute(delete(model))
    db.commit()


def seed_catalog(db) -> None:
    category_ids = {}
    for name, description in CATEGORIES:
        category_ids[name] = categories.create_category(db, name, description).id

    supplier_ids = [suppliers.create_supplier(db, name, email, phone).id for name, email, phone in SUPPLIERS]

    product_ids = []
    for name, sku, price, stock, category, supplier in PRODUCTS:
        p = products.create_product(
            db,
            name=name,
            sku=sku,
            price=Decimal(price),
            stock=stock,
            category_id=category_ids[category],
            supplier_id=supplier_ids[supplier] if supplier is not None else None,
        )
        product_ids.append(p.id)

    first = orders.create_order(
        db,
        customer_name="Jane Doe",
        customer_email="jane@example.com",
        items={product_ids[0]: 1, product_ids[1]: 2},
    )
    orders.update_order_status(db, first.id, "CONFIRMED")
    orders.create_order(db, customer_name="John Roe", items={product_ids[3]: 3})


def main() -> None:
    configure_logging(settings.log_level, settings.log_json)

    # make sure tables exist
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        reset(db)
        seed_users_if_empty(db)
        seed_catalog(db)
    finally:
        db.close()

    logger.info("catalog_seeded", extra={"categories": len(CATEGORIES), "products": len(PRODUCTS)})


if __name__ == "__main__":
    main()
