from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import relationship

from catalog_api.core.database import Base, utcnow


class Product(Base):
    __tablename__ = "products"

    __table_args__ = (
        # SAFETY CONSTRAINTS
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price > 0", name="ck_products_price_positive"),

        # PERFORMANCE INDEXES
        Index("ix_products_category", "category_id"),
        Index("ix_products_supplier", "supplier_id"),
    )

    id = Column(Integer, primary_key=True, index=True)

    sku = Column(String(6), unique=True, nullable=True)
    name = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=True)

    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True)

    # never lazy-loaded: every read states its fetch plan (see services/fetch.py)
    category = relationship("Category", lazy="raise")
    supplier = relationship("Supplier", lazy="raise")

    # timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
