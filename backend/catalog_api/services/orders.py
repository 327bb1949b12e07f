"""Order workflow: atomic creation against live stock, status changes, deletion.

``create_order`` runs as one unit of work. Products are locked in id order
(so two orders touching the same products can't deadlock), each line's stock
is decremented as soon as it is validated, and the unit price is copied onto
the new item. Any failure rolls back every decrement made so far.
"""

import logging
from typing import Mapping, Optional, Union

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from catalog_api.core.database import unit_of_work, utcnow
from catalog_api.core.errors import InvalidStateTransitionError, OrderNotFoundError, ValidationError
from catalog_api.models.order import Order, OrderItem, OrderStatus, generate_order_number
from catalog_api.models.policies import ORDER_ITEMS, apply_delete_policy
from catalog_api.services import fetch, stock, validation

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = "PENDING->CONFIRMED, CONFIRMED->SHIPPED, SHIPPED->DELIVERED"


def _parse_status(value: Union[str, OrderStatus, None]) -> OrderStatus:
    if value is None:
        raise ValidationError("status is required", field="status")
    try:
        return OrderStatus(value.upper() if isinstance(value, str) else value)
    except ValueError:
        raise ValidationError(f"Unknown order status: {value}", field="status", value=value)


# ---------- create ----------


def create_order(
    db: Session,
    *,
    customer_name: str,
    customer_email: Optional[str] = None,
    items: Mapping[int, int],
) -> Order:
    customer_name = validation.clean_text(customer_name, "customer_name", 200, required=True)
    customer_email = validation.clean_email(customer_email, "customer_email")
    if not items:
        raise ValidationError("An order must contain at least one product", field="items")
    lines = {
        product_id: validation.clean_quantity(quantity, f"quantity for product {product_id}")
        for product_id, quantity in items.items()
    }

    with unit_of_work(db):
        order = Order(customer_name=customer_name, customer_email=customer_email)

        for product_id in sorted(lines):
            quantity = lines[product_id]
            product = stock.lock_product(db, product_id)
            stock.take_stock(db, product, quantity)

            # price snapshot; later price changes don't touch this item
            order.add_item(
                OrderItem(product_id=product.id, quantity=quantity, unit_price=product.price)
            )

        order.calculate_total()
        order.order_date = utcnow()
        order.order_number = generate_order_number(order.order_date)
        order.status = OrderStatus.PENDING

        db.add(order)
        db.flush()
        order_id, order_number, total = order.id, order.order_number, order.total_amount

    logger.info(
        "order_created",
        extra={
            "order_id": order_id,
            "order_number": order_number,
            "lines": len(lines),
            "total_amount": str(total),
        },
    )
    return get_order_with_items(db, order_id)


# ---------- status ----------


def update_order_status(db: Session, order_id: int, new_status: Union[str, OrderStatus]) -> Order:
    """Move an order one step forward. Same status is a no-op."""
    new_status = _parse_status(new_status)

    with unit_of_work(db):
        order = db.get(Order, order_id, with_for_update=True, populate_existing=True)
        if order is None:
            raise OrderNotFoundError(order_id)

        current = order.status
        if not current.can_move_to(new_status):
            raise InvalidStateTransitionError(current.value, new_status.value, ALLOWED_TRANSITIONS)

        if new_status != current:
            order.status = new_status
            db.add(order)

    if new_status != current:
        logger.info(
            "order_status_changed",
            extra={"order_id": order_id, "from": current.value, "to": new_status.value},
        )
    return get_order_with_items(db, order_id)


# ---------- delete ----------


def delete_order(db: Session, order_id: int) -> None:
    """Delete an order and its items. Stock is not given back."""
    with unit_of_work(db):
        if db.get(Order, order_id) is None:
            raise OrderNotFoundError(order_id)

        removed = apply_delete_policy(db, ORDER_ITEMS, OrderItem.__table__.c.order_id, order_id)
        db.execute(delete(Order).where(Order.id == order_id))

    logger.info("order_deleted", extra={"order_id": order_id, "items_removed": removed})


# ---------- reads ----------


def get_order_with_items(db: Session, order_id: int) -> Order:
    orders = fetch.fetch_orders(db, fetch.orders_joined(Order.id == order_id))
    if not orders:
        raise OrderNotFoundError(order_id)
    return orders[0]


def list_orders(db: Session) -> list[Order]:
    stmt = select(Order).order_by(Order.order_date.desc(), Order.id.desc())
    return list(db.scalars(stmt).all())


def list_orders_full(db: Session) -> list[Order]:
    stmt = fetch.orders_joined().order_by(Order.order_date.desc(), Order.id.desc())
    return fetch.fetch_orders(db, stmt)


def list_orders_by_customer_email(db: Session, email: Optional[str]) -> list[Order]:
    if email is None or not email.strip():
        raise ValidationError("customer email is required", field="email")
    stmt = fetch.orders_joined(
        func.lower(Order.customer_email) == email.strip().lower()
    ).order_by(Order.order_date.desc(), Order.id.desc())
    return fetch.fetch_orders(db, stmt)


def list_orders_by_status(db: Session, status: Union[str, OrderStatus]) -> list[Order]:
    status = _parse_status(status)
    stmt = (
        select(Order)
        .where(Order.status == status)
        .order_by(Order.order_date.desc(), Order.id.desc())
    )
    return list(db.scalars(stmt).all())


def count_orders(db: Session) -> int:
    return db.scalar(fetch.count_of(Order)) or 0
