# backend/catalog_api/api/products.py

from decimal import Decimal
from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from catalog_api.api import schemas
from catalog_api.api.deps_auth import CurrentUser, get_current_user, get_db, require_manager
from catalog_api.core.config import settings
from catalog_api.services import products as product_service
from catalog_api.services import reports

router = APIRouter()


# ---------- LISTS (viewer+manager can read) ----------


@router.get("", response_model=Union[schemas.ProductPage, List[schemas.Product]])
def list_products(
    category_id: Optional[int] = None,
    supplier_id: Optional[int] = None,
    search: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    page: int = 0,
    size: int = settings.default_page_size,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    # filters return the full matching list; no filter -> one page
    if category_id is not None:
        return product_service.list_products_by_category(db, category_id)
    if supplier_id is not None:
        return product_service.list_products_by_supplier(db, supplier_id)
    if search is not None and search.strip():
        return product_service.search_products(db, search)
    if min_price is not None or max_price is not None:
        return product_service.list_products_by_price_range(db, min_price, max_price)

    return schemas.ProductPage.model_validate(product_service.list_products_page(db, page, size))


@router.get("/fast", response_model=List[schemas.Product])
def list_products_fast(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return product_service.list_products_fast(db)


@router.get("/slow", response_model=List[schemas.Product])
def list_products_slow(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return product_service.list_products_slow(db)


@router.get("/count", response_model=schemas.Count)
def count_products(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return schemas.Count(count=product_service.count_products(db))


# ---------- STATS ----------


@router.get("/stats/by-category", response_model=List[schemas.CategoryCount])
def count_by_category(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return reports.product_count_by_category(db)


@router.get("/stats/avg-price", response_model=List[schemas.CategoryAveragePrice])
def avg_price_by_category(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return reports.average_price_by_category(db)


@router.get("/stats/category-stats", response_model=List[schemas.CategoryStats])
def category_stats(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return reports.category_stats(db)


@router.get("/top", response_model=List[schemas.Product])
def top_expensive(
    limit: int = 10,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    return reports.top_expensive_products(db, limit)


@router.get("/never-ordered", response_model=List[schemas.Product])
def never_ordered(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return reports.never_ordered_products(db)


# ---------- WRITES (manager only) ----------


@router.post("", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: schemas.ProductIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return product_service.create_product(db, **payload.model_dump())


@router.post("/with-category", response_model=schemas.Product, status_code=status.HTTP_201_CREATED)
def create_product_with_category(
    payload: schemas.ProductWithCategoryIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return product_service.create_product_with_category(db, **payload.model_dump())


@router.post("/transfer", response_model=schemas.TransferOut)
def transfer_products(
    payload: schemas.TransferIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    moved = product_service.transfer_products(db, payload.from_category_id, payload.to_category_id)
    return schemas.TransferOut(moved=moved)


# ---------- SINGLE PRODUCT ----------


@router.get("/{product_id}", response_model=schemas.Product)
def get_product(product_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return product_service.get_product(db, product_id)


@router.put("/{product_id}", response_model=schemas.Product)
def update_product(
    product_id: int,
    payload: schemas.ProductUpdate,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return product_service.update_product(db, product_id, **payload.model_dump())


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(product_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(require_manager)):
    product_service.delete_product(db, product_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{product_id}/stock", response_model=schemas.Product)
def adjust_stock(
    product_id: int,
    payload: schemas.StockUpdate,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return product_service.adjust_stock(db, product_id, payload.quantity)


@router.patch("/{product_id}/stock/decrease", response_model=schemas.Product)
def decrease_stock(
    product_id: int,
    payload: schemas.StockUpdate,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    product_service.decrease_stock(db, product_id, payload.quantity)
    return product_service.get_product(db, product_id)
