from sqlalchemy import Column, Index, Integer, String, func
from sqlalchemy.orm import relationship

from catalog_api.core.database import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=True)

    # read side only; products are moved/deleted through explicit statements
    products = relationship(
        "Product",
        viewonly=True,
        lazy="raise",
        order_by="Product.id",
    )


# case-insensitive uniqueness
Index("ux_categories_name_lower", func.lower(Category.name), unique=True)
