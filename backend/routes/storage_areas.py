# backend/routes/storage_areas.py
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from routes.deps import get_aggregation, get_store
from schemas.storage_area import OccupancyReport, StorageAreaCreate, StorageAreaOut, StorageAreaUpdate
from services.aggregation import Aggregation
from services.entities import EntityStore
from utils.audit import write_log
from utils.tokenJWT import admin_or_manager, any_role

router = APIRouter(prefix="/storage-areas", tags=["Storage areas"])


@router.get("", response_model=List[StorageAreaOut])
def list_storage_areas(store: EntityStore = Depends(get_store), current_user: User = Depends(any_role)):
    return store.list_storage_areas()


# Declared before /{area_id} so the literal path wins
@router.get("/occupancy", response_model=OccupancyReport)
def storage_occupancy(aggregation: Aggregation = Depends(get_aggregation), current_user: User = Depends(any_role)):
    return {
        "areas": aggregation.area_occupancy(),
        "storage_utilization": aggregation.storage_utilization(),
    }


@router.get("/{area_id}", response_model=StorageAreaOut)
def get_storage_area(area_id: int, store: EntityStore = Depends(get_store), current_user: User = Depends(any_role)):
    area = store.get_storage_area(area_id)
    if not area:
        raise HTTPException(status_code=404, detail="Storage area not found")
    return area


@router.post("", response_model=StorageAreaOut, status_code=status.HTTP_201_CREATED)
def create_storage_area(
    payload: StorageAreaCreate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    area = store.create_storage_area(payload)
    write_log(db, user_id=current_user.id, action="AREA_CREATE", resource="storage_areas",
              request=request, meta={"id": area.id, "name": area.name, "capacity": area.capacity})
    return area


@router.put("/{area_id}", response_model=StorageAreaOut)
def update_storage_area(
    area_id: int,
    payload: StorageAreaUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    area = store.update_storage_area(area_id, payload)
    if not area:
        raise HTTPException(status_code=404, detail="Storage area not found")
    write_log(db, user_id=current_user.id, action="AREA_UPDATE", resource="storage_areas",
              request=request, meta={"id": area.id, **payload.model_dump(exclude_unset=True)})
    return area


@router.delete("/{area_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_storage_area(
    area_id: int,
    request: Request,
    db: Session = Depends(get_db),
    store: EntityStore = Depends(get_store),
    current_user: User = Depends(admin_or_manager),
):
    if not store.delete_storage_area(area_id):
        raise HTTPException(status_code=404, detail="Storage area not found")
    write_log(db, user_id=current_user.id, action="AREA_DELETE", resource="storage_areas",
              request=request, meta={"id": area_id})
    return Response(status_code=status.HTTP_204_NO_CONTENT)
