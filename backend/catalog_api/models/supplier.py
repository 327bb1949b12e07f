from sqlalchemy import Column, Index, Integer, String, func
from sqlalchemy.orm import relationship

from catalog_api.core.database import Base


class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=True)
    phone = Column(String(20), nullable=True)

    # no cascade: deleting a supplier unlinks its products
    products = relationship(
        "Product",
        viewonly=True,
        lazy="raise",
        order_by="Product.id",
    )


# NULLs don't collide, so "optional but unique" holds on SQLite and Postgres
Index("ux_suppliers_email_lower", func.lower(Supplier.email), unique=True)
