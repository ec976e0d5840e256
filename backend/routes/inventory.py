# backend/routes/inventory.py
from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.deps import get_ledger
from schemas.inventory import InventoryOut, InventorySet, StockLevel
from services.ledger import InventoryLedger
from utils.audit import write_log
from utils.tokenJWT import admin_or_manager, any_role

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("/product/{product_id}", response_model=List[InventoryOut])
def inventory_by_product(
    product_id: int, ledger: InventoryLedger = Depends(get_ledger), current_user: User = Depends(any_role)
):
    return ledger.list_by_product(product_id)


@router.get("/area/{area_id}", response_model=List[InventoryOut])
def inventory_by_area(
    area_id: int, ledger: InventoryLedger = Depends(get_ledger), current_user: User = Depends(any_role)
):
    return ledger.list_by_area(area_id)


# Quantity of one product in one area; an absent entry reads as 0
@router.get("/{product_id}/{area_id}", response_model=StockLevel)
def stock_level(
    product_id: int,
    area_id: int,
    ledger: InventoryLedger = Depends(get_ledger),
    current_user: User = Depends(any_role),
):
    return {"product_id": product_id, "storage_area_id": area_id, "quantity": ledger.get(product_id, area_id)}


# Manual stock correction, bypasses movement validation
@router.post("", response_model=InventoryOut, status_code=status.HTTP_201_CREATED)
def set_inventory(
    payload: InventorySet,
    request: Request,
    db: Session = Depends(get_db),
    ledger: InventoryLedger = Depends(get_ledger),
    current_user: User = Depends(admin_or_manager),
):
    previous = ledger.get(payload.product_id, payload.storage_area_id)
    entry = ledger.override(payload.product_id, payload.storage_area_id, payload.quantity)
    write_log(db, user_id=current_user.id, action="INVENTORY_SET", resource="inventory", request=request,
              meta={"product_id": entry.product_id, "storage_area_id": entry.storage_area_id,
                    "from": previous, "to": entry.quantity})
    return entry
