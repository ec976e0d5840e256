# backend/routes/deps.py
from fastapi import Depends
from sqlalchemy.orm import Session

from database import get_db
from services.aggregation import Aggregation
from services.entities import EntityStore
from services.ledger import InventoryLedger, KeyLockRegistry, get_lock_registry
from services.movements import MovementEngine


def get_store(db: Session = Depends(get_db), locks: KeyLockRegistry = Depends(get_lock_registry)) -> EntityStore:
    return EntityStore(db, locks)


def get_ledger(db: Session = Depends(get_db), locks: KeyLockRegistry = Depends(get_lock_registry)) -> InventoryLedger:
    return InventoryLedger(db, locks)


def get_movement_engine(
    db: Session = Depends(get_db), locks: KeyLockRegistry = Depends(get_lock_registry)
) -> MovementEngine:
    return MovementEngine(db, locks)


def get_aggregation(
    db: Session = Depends(get_db), locks: KeyLockRegistry = Depends(get_lock_registry)
) -> Aggregation:
    return Aggregation(db, locks)
