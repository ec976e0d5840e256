# backend/routes/products.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.deps import get_aggregation, get_store
from schemas.product import ProductCreate, ProductOut, ProductUpdate, ProductWithInventory
from services.aggregation import Aggregation
from services.entities import EntityStore
from utils.audit import write_log
from utils.tokenJWT import admin_or_manager, any_role

router = APIRouter(prefix="/products", tags=["Products"])


# =========================
# LIST / LOOKUP
# =========================
@router.get("", response_model=List[ProductWithInventory])
def list_products(
    q: Optional[str] = Query(None, description="Search by name or SKU"),
    category_id: Optional[int] = Query(None),
    supplier_id: Optional[int] = Query(None),
    low_stock: bool = Query(False, description="Only products at or below their minimum"),
    aggregation: Aggregation = Depends(get_aggregation),
    current_user: User = Depends(any_role),
):
    items = aggregation.all_products_with_inventory()

    if q:
        needle = q.lower()
        items = [p for p in items if needle in p["name"].lower() or needle in p["sku"].lower()]
    if category_id is not None:
        items = [p for p in items if p["category_id"] == category_id]
    if supplier_id is not None:
        items = [p for p in items if p["supplier_id"] == supplier_id]
    if low_stock:
        items = [p for p in items if p["total_stock"] <= p["min_stock_level"]]

    return items


@router.get("/sku/{sku}", response_model=ProductOut)
def get_product_by_sku(sku: str, store: EntityStore = Depends(get_store), current_user: User = Depends(any_role)):
    product = store.get_product_by_sku(sku)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


@router.get("/{product_id}", response_model=ProductWithInventory)
def get_product(
    product_id: int,
    aggregation: Aggregation = Depends(get_aggregation),
    current_user: User = Depends(any_role),
):
    product = aggregation.product_with_inventory(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product


# =========================
# WRITE
# =========================
@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    product = store.create_product(payload)
    write_log(db, user_id=current_user.id, action="PRODUCT_CREATE", resource="products",
              request=request, meta={"id": product.id, "sku": product.sku})
    return product


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    product = store.update_product(product_id, payload)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    write_log(db, user_id=current_user.id, action="PRODUCT_UPDATE", resource="products",
              request=request, meta={"id": product.id, **payload.model_dump(exclude_unset=True)})
    return product


# Removes the product together with its stock entries and movement history
@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_product(
    product_id: int,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    if not store.delete_product(product_id):
        raise HTTPException(status_code=404, detail="Product not found")
    write_log(db, user_id=current_user.id, action="PRODUCT_DELETE", resource="products",
              request=request, meta={"id": product_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
