# backend/routes/categories.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.deps import get_store
from schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from services.entities import EntityStore
from utils.audit import write_log
from utils.tokenJWT import admin_or_manager, any_role

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get("", response_model=List[CategoryOut])
def list_categories(store: EntityStore = Depends(get_store), current_user: User = Depends(any_role)):
    return store.list_categories()


@router.get("/{category_id}", response_model=CategoryOut)
def get_category(category_id: int, store: EntityStore = Depends(get_store), current_user: User = Depends(any_role)):
    category = store.get_category(category_id)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    return category


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    payload: CategoryCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    category = store.create_category(payload)
    write_log(db, user_id=current_user.id, action="CATEGORY_CREATE", resource="categories",
              request=request, meta={"id": category.id, "name": category.name})
    return category


@router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    category = store.update_category(category_id, payload)
    if not category:
        raise HTTPException(status_code=404, detail="Category not found")
    write_log(db, user_id=current_user.id, action="CATEGORY_UPDATE", resource="categories",
              request=request, meta={"id": category.id, **payload.model_dump(exclude_unset=True)})
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    if not store.delete_category(category_id):
        raise HTTPException(status_code=404, detail="Category not found")
    write_log(db, user_id=current_user.id, action="CATEGORY_DELETE", resource="categories",
              request=request, meta={"id": category_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
