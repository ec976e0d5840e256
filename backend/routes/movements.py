# backend/routes/movements.py
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from database import get_db
from models.movement import MovementStatus
from models.users import User
from routes.deps import get_movement_engine
from schemas.movement import MovementCreate, MovementOut, MovementStatusUpdate, MovementWithDetails
from services.movements import MovementEngine
from utils.audit import write_log
from utils.tokenJWT import any_role

router = APIRouter(prefix="/movements", tags=["Movements"])


@router.get("", response_model=List[MovementOut])
def list_movements(
    status_filter: Optional[MovementStatus] = Query(None, alias="status"),
    product_id: Optional[int] = Query(None),
    engine: MovementEngine = Depends(get_movement_engine),
    current_user: User = Depends(any_role),
):
    return engine.list(status=status_filter, product_id=product_id)


@router.get("/{movement_id}", response_model=MovementWithDetails)
def get_movement(
    movement_id: int,
    engine: MovementEngine = Depends(get_movement_engine),
    current_user: User = Depends(any_role),
):
    movement = engine.get(movement_id)
    if not movement:
        raise HTTPException(status_code=404, detail="Movement not found")
    return movement


# Every role may record a movement; the caller is stored as its author
@router.post("", response_model=MovementOut, status_code=status.HTTP_201_CREATED)
def create_movement(
    payload: MovementCreate,
    request: Request,
    db: Session = Depends(get_db),
    engine: MovementEngine = Depends(get_movement_engine),
    current_user: User = Depends(any_role),
):
    movement = engine.create(
        product_id=payload.product_id,
        from_area_id=payload.from_area_id,
        to_area_id=payload.to_area_id,
        quantity=payload.quantity,
        status=payload.status,
        user_id=current_user.id,
    )
    write_log(db, user_id=current_user.id, action="MOVEMENT_CREATE", resource="movements", request=request,
              meta={"id": movement.id, "product_id": movement.product_id, "quantity": movement.quantity,
                    "status": movement.status.value})
    return movement


@router.put("/{movement_id}/status", response_model=MovementOut)
def update_movement_status(
    movement_id: int,
    payload: MovementStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    engine: MovementEngine = Depends(get_movement_engine),
    current_user: User = Depends(any_role),
):
    movement = engine.set_status(movement_id, payload.status)
    write_log(db, user_id=current_user.id, action="MOVEMENT_STATUS", resource="movements", request=request,
              meta={"id": movement.id, "status": movement.status.value})
    return movement
