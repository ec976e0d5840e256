# backend/routes/dashboard.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from config import settings
from models.users import User
from routes.deps import get_aggregation, get_movement_engine
from schemas.dashboard import DashboardStats, LowStockItem
from schemas.movement import MovementWithDetails
from services.aggregation import Aggregation
from services.movements import MovementEngine
from utils.tokenJWT import any_role

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats", response_model=DashboardStats)
def dashboard_stats(aggregation: Aggregation = Depends(get_aggregation), current_user: User = Depends(any_role)):
    return aggregation.dashboard_stats()


@router.get("/low-stock", response_model=List[LowStockItem])
def low_stock(aggregation: Aggregation = Depends(get_aggregation), current_user: User = Depends(any_role)):
    return aggregation.low_stock_items()


@router.get("/recent-movements", response_model=List[MovementWithDetails])
def recent_movements(
    limit: Optional[int] = Query(None, ge=1, le=100),
    engine: MovementEngine = Depends(get_movement_engine),
    current_user: User = Depends(any_role),
):
    return engine.recent(limit or settings.RECENT_MOVEMENTS_LIMIT)
