# backend/catalog_api/api/categories.py

from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from catalog_api.api import schemas
from catalog_api.api.deps_auth import CurrentUser, get_current_user, get_db, require_manager
from catalog_api.services import categories as category_service

router = APIRouter()


@router.get("", response_model=List[schemas.Category])
def list_categories(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return category_service.list_categories(db)


@router.get("/count", response_model=schemas.Count)
def count_categories(db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return schemas.Count(count=category_service.count_categories(db))


@router.get("/{category_id}", response_model=schemas.Category)
def get_category(category_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(get_current_user)):
    return category_service.get_category(db, category_id)


@router.get("/{category_id}/products", response_model=schemas.CategoryWithProducts)
def get_category_products(
    category_id: int,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(get_current_user),
):
    return category_service.get_category_with_products(db, category_id)


@router.post("", response_model=schemas.Category, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: schemas.CategoryIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return category_service.create_category(db, payload.name, payload.description)


@router.put("/{category_id}", response_model=schemas.Category)
def update_category(
    category_id: int,
    payload: schemas.CategoryIn,
    db: Session = Depends(get_db),
    _user: CurrentUser = Depends(require_manager),
):
    return category_service.update_category(db, category_id, payload.name, payload.description)


# removes every product in the category too
@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(get_db), _user: CurrentUser = Depends(require_manager)):
    category_service.delete_category(db, category_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
