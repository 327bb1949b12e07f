# backend/catalog_api/api/suppliers.py

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from catalog_api.api import schemas
from catalog_api.api.deps_auth import CurrentUser, get_current_user, get_db, require_manager
from catalog_api.services import products as product_service
from catalog_api.services import suppliers as supplier_service

router = APIRouter()


@router.get("", response_model=List[schemas.Supplier])
def list_suppliers(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return supplier_service.list_suppliers(db)


@router.get("/count", response_model=schemas.Count)
def count_suppliers(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return schemas.Count(count=supplier_service.count_suppliers(db))


@router.get("/{supplier_id}", response_model=schemas.Supplier)
def get_supplier(supplier_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return supplier_service.get_supplier(db, supplier_id)


@router.get("/{supplier_id}/products", response_model=List[schemas.Product])
def get_supplier_products(
    supplier_id: int,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    return product_service.list_products_by_supplier(db, supplier_id)


@router.post("", response_model=schemas.Supplier, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: schemas.SupplierIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return supplier_service.create_supplier(db, payload.name, payload.email, payload.phone)


@router.put("/{supplier_id}", response_model=schemas.Supplier)
def update_supplier(
    supplier_id: int,
    payload: schemas.SupplierIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return supplier_service.update_supplier(db, supplier_id, payload.name, payload.email, payload.phone)


# products stay, their supplier is cleared
@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(supplier_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(require_manager)):
    supplier_service.delete_supplier(db, supplier_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
