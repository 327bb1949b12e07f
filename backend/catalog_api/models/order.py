import enum
import secrets
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    inspect,
)
from sqlalchemy.orm import relationship, validates

from catalog_api.core.database import Base, utcnow

CENT = Decimal("0.01")


class OrderStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"

    @property
    def successor(self) -> Optional["OrderStatus"]:
        flow = list(OrderStatus)
        idx = flow.index(self)
        return flow[idx + 1] if idx + 1 < len(flow) else None

    def can_move_to(self, other: "OrderStatus") -> bool:
        return other == self or other == self.successor


def generate_order_number(when) -> str:
    # ORD-YYYYMMDD-XXXXXXXX
    return f"ORD-{when:%Y%m%d}-{secrets.token_hex(4).upper()}"


class Order(Base):
    __tablename__ = "orders"

    __table_args__ = (
        Index("ix_orders_status", "status"),
        Index("ix_orders_customer_email", "customer_email"),
    )

    id = Column(Integer, primary_key=True, index=True)

    order_number = Column(String(30), unique=True, nullable=False)
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(200), nullable=True)

    status = Column(
        Enum(OrderStatus, native_enum=False, length=20),
        nullable=False,
        default=OrderStatus.PENDING,
    )

    # persisted so reads and revenue sums don't re-add the items
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    order_date = Column(DateTime, nullable=False, default=utcnow)

    items = relationship(
        "OrderItem",
        cascade="all, delete-orphan",
        lazy="raise",
        order_by="OrderItem.id",
    )

    def add_item(self, item: "OrderItem") -> None:
        self.items.append(item)

    def remove_item(self, item: "OrderItem") -> None:
        # delete-orphan: the row goes away on flush
        self.items.remove(item)

    def calculate_total(self) -> Decimal:
        self.total_amount = sum(
            (i.subtotal for i in self.items if i.subtotal is not None),
            Decimal("0.00"),
        )
        return self.total_amount


class OrderItem(Base):
    __tablename__ = "order_items"

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity_positive"),
        Index("ix_order_items_order", "order_id"),
        Index("ix_order_items_product", "product_id"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # owning reference by id only; Order.items is the one traversable side
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    product = relationship("Product", lazy="raise")

    @validates("quantity", "unit_price")
    def _recompute_subtotal(self, key, value):
        if key == "unit_price":
            if inspect(self).persistent and self.unit_price is not None:
                raise AttributeError("unit_price is fixed when the order is placed")
            value = Decimal(str(value)).quantize(CENT)

        quantity = value if key == "quantity" else self.quantity
        unit_price = value if key == "unit_price" else self.unit_price
        if quantity is not None and unit_price is not None:
            self.subtotal = (unit_price * quantity).quantize(CENT)
        return value
