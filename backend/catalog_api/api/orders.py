# backend/catalog_api/api/orders.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from catalog_api.api import schemas
from catalog_api.api.deps_auth import CurrentUser, get_current_user, get_db, require_manager
from catalog_api.models.order import OrderStatus
from catalog_api.services import orders as order_service
from catalog_api.services import reports

router = APIRouter()


# ---------- READS ----------


@router.get("", response_model=List[schemas.OrderSummary])
def list_orders(
    status: Optional[str] = None,
    email: Optional[str] = None,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    if status is not None:
        return order_service.list_orders_by_status(db, status)
    if email is not None:
        return order_service.list_orders_by_customer_email(db, email)
    return order_service.list_orders(db)


@router.get("/full", response_model=List[schemas.Order])
def list_orders_full(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return order_service.list_orders_full(db)


@router.get("/count", response_model=schemas.Count)
def count_orders(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return schemas.Count(count=order_service.count_orders(db))


# ---------- STATS ----------


@router.get("/stats/revenue", response_model=schemas.Revenue)
def revenue(
    status: OrderStatus = OrderStatus.DELIVERED,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    return schemas.Revenue(status=status, total_revenue=reports.total_revenue(db, status))


@router.get("/stats/by-status", response_model=List[schemas.StatusCount])
def count_by_status(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return reports.order_count_by_status(db)


@router.get("/stats/top-products", response_model=List[schemas.ProductQuantity])
def most_ordered(
    limit: int = 10,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    return reports.most_ordered_products(db, limit)


# ---------- WRITES ----------


@router.post("", response_model=schemas.Order, status_code=status.HTTP_201_CREATED)
def create_order(
    payload: schemas.OrderIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return order_service.create_order(
        db,
        customer_name=payload.customer_name,
        customer_email=payload.customer_email,
        items=payload.items,
    )


@router.get("/{order_id}", response_model=schemas.Order)
def get_order(order_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return order_service.get_order_with_items(db, order_id)


@router.get("/{order_id}/items", response_model=List[schemas.OrderItem])
def get_order_items(order_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return order_service.get_order_with_items(db, order_id).items


@router.patch("/{order_id}/status", response_model=schemas.Order)
def update_status(
    order_id: int,
    payload: schemas.OrderStatusIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return order_service.update_order_status(db, order_id, payload.status)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(order_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(require_manager)):
    order_service.delete_order(db, order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
