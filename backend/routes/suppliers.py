# backend/routes/suppliers.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.deps import get_store
from schemas.supplier import SupplierCreate, SupplierOut, SupplierUpdate
from services.entities import EntityStore
from utils.audit import write_log
from utils.tokenJWT import admin_or_manager, any_role

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


@router.get("", response_model=List[SupplierOut])
def list_suppliers(store: EntityStore = Depends(get_store), current_user: User = Depends(any_role)):
    return store.list_suppliers()


@router.get("/{supplier_id}", response_model=SupplierOut)
def get_supplier(supplier_id: int, store: EntityStore = Depends(get_store), current_user: User = Depends(any_role)):
    supplier = store.get_supplier(supplier_id)
    if not supplier:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return supplier


@router.post("", response_model=SupplierOut, status_code=status.HTTP_201_CREATED)
def create_supplier(
    payload: SupplierCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    supplier = store.create_supplier(payload)
    write_log(db, user_id=current_user.id, action="SUPPLIER_CREATE", resource="suppliers",
              request=request, meta={"id": supplier.id, "name": supplier.name})
    return supplier


@router.put("/{supplier_id}", response_model=SupplierOut)
def update_supplier(
    supplier_id: int,
    payload: SupplierUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    supplier = store.update_supplier(supplier_id, payload)
    if not supplier:
        raise HTTPException(status_code=404, detail="Supplier not found")
    write_log(db, user_id=current_user.id, action="SUPPLIER_UPDATE", resource="suppliers",
              request=request, meta={"id": supplier.id, "fields": sorted(payload.model_dump(exclude_unset=True))})
    return supplier


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    supplier_id: int,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    if not store.delete_supplier(supplier_id):
        raise HTTPException(status_code=404, detail="Supplier not found")
    write_log(db, user_id=current_user.id, action="SUPPLIER_DELETE", resource="suppliers",
              request=request, meta={"id": supplier_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
