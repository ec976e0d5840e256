"""
Inventory ledger: quantity on hand per (product, storage area).

All writers go through a KeyLockRegistry so that mutations of the same
(product_id, storage_area_id) key are serialized inside this process, and read
the row FOR UPDATE so that the database serializes them across processes.
Absence of a row means zero stock.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.inventory import Inventory
from models.product import Product
from models.storage_area import StorageArea
from services.errors import InvalidQuantity, LedgerCorruption, NotFound, ReferentialConflict

logger = logging.getLogger(__name__)

LedgerKey = Tuple[int, int]


class KeyLockRegistry:
    """One mutex per ledger key, created on first use."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[LedgerKey, threading.Lock] = {}

    def _lock_for(self, key: LedgerKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, *keys: LedgerKey) -> Iterator[None]:
        # Sorted acquisition keeps two-sided transfers deadlock free
        ordered = sorted(set(keys))
        acquired = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


default_lock_registry = KeyLockRegistry()


def get_lock_registry() -> KeyLockRegistry:
    return default_lock_registry


class InventoryLedger:
    def __init__(self, db: Session, locks: KeyLockRegistry):
        self.db = db
        self.locks = locks

    # ---- reads ----

    def _check(self, entry: Optional[Inventory]) -> Optional[Inventory]:
        if entry is not None and entry.quantity < 0:
            logger.critical(
                "Ledger corruption: product=%s area=%s quantity=%s",
                entry.product_id, entry.storage_area_id, entry.quantity,
            )
            raise LedgerCorruption(entry.product_id, entry.storage_area_id, entry.quantity)
        return entry

    def get_entry(self, product_id: int, storage_area_id: int) -> Optional[Inventory]:
        entry = (
            self.db.query(Inventory)
            .filter(Inventory.product_id == product_id, Inventory.storage_area_id == storage_area_id)
            .first()
        )
        return self._check(entry)

    def get(self, product_id: int, storage_area_id: int) -> int:
        entry = self.get_entry(product_id, storage_area_id)
        return entry.quantity if entry else 0

    def list_by_product(self, product_id: int) -> List[Inventory]:
        entries = self.db.query(Inventory).filter(Inventory.product_id == product_id).all()
        return [self._check(e) for e in entries]

    def list_by_area(self, storage_area_id: int) -> List[Inventory]:
        entries = self.db.query(Inventory).filter(Inventory.storage_area_id == storage_area_id).all()
        return [self._check(e) for e in entries]

    def list_all(self) -> List[Inventory]:
        return [self._check(e) for e in self.db.query(Inventory).all()]

    # ---- writes (callers hold the key lock) ----

    def _locked_entry(self, product_id: int, storage_area_id: int) -> Optional[Inventory]:
        entry = (
            self.db.query(Inventory)
            .filter(Inventory.product_id == product_id, Inventory.storage_area_id == storage_area_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        return self._check(entry)

    def locked_quantity(self, product_id: int, storage_area_id: int) -> int:
        """Fresh read for check-then-act sequences; call with the key lock held."""
        entry = self._locked_entry(product_id, storage_area_id)
        return entry.quantity if entry else 0

    def require_refs(self, product_id: int, storage_area_id: int) -> None:
        """Raise NotFound unless both rows exist right now (bypasses the identity map)."""
        if self.db.query(Product.id).filter(Product.id == product_id).first() is None:
            raise NotFound("Product", product_id)
        if self.db.query(StorageArea.id).filter(StorageArea.id == storage_area_id).first() is None:
            raise NotFound("StorageArea", storage_area_id, "Storage area not found")

    def _put(self, entry: Optional[Inventory], product_id: int, storage_area_id: int, quantity: int) -> Inventory:
        if quantity < 0:
            raise InvalidQuantity(quantity)
        if entry is None:
            entry = Inventory(product_id=product_id, storage_area_id=storage_area_id, quantity=quantity)
            self.db.add(entry)
        else:
            entry.quantity = quantity
        self.db.flush()
        return entry

    def _write(self, product_id: int, storage_area_id: int, quantity: int) -> Inventory:
        entry = self._locked_entry(product_id, storage_area_id)
        return self._put(entry, product_id, storage_area_id, quantity)

    def credit(self, product_id: int, storage_area_id: int, amount: int) -> Inventory:
        entry = self._locked_entry(product_id, storage_area_id)
        current = entry.quantity if entry else 0
        return self._put(entry, product_id, storage_area_id, current + amount)

    def debit(self, product_id: int, storage_area_id: int, amount: int) -> Inventory:
        entry = self._locked_entry(product_id, storage_area_id)
        available = entry.quantity if entry else 0
        if available < amount:
            logger.warning(
                "Clamping debit of %s to 0 for product=%s area=%s (available %s)",
                amount, product_id, storage_area_id, available,
            )
        return self._put(entry, product_id, storage_area_id, max(0, available - amount))

    # ---- public, self-locking writes ----

    def set(self, product_id: int, storage_area_id: int, quantity: int) -> Inventory:
        """Overwrite the quantity of one entry, creating it when absent."""
        if quantity < 0:
            raise InvalidQuantity(quantity)
        with self.locks.hold((product_id, storage_area_id)):
            try:
                self.require_refs(product_id, storage_area_id)
                entry = self._write(product_id, storage_area_id, quantity)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise self.missing_reference(product_id, storage_area_id)
            except Exception:
                self.db.rollback()
                raise
        self.db.refresh(entry)
        return entry

    def override(self, product_id: int, storage_area_id: int, quantity: int) -> Inventory:
        """Manual stock correction, bypasses movement validation."""
        entry = self.set(product_id, storage_area_id, quantity)
        logger.info("Inventory override: product=%s area=%s quantity=%s", product_id, storage_area_id, quantity)
        return entry

    def adjust(self, product_id: int, storage_area_id: int, delta: int) -> Inventory:
        """set(get() + delta), floored at zero for decrements."""
        with self.locks.hold((product_id, storage_area_id)):
            try:
                self.require_refs(product_id, storage_area_id)
                if delta >= 0:
                    entry = self.credit(product_id, storage_area_id, delta)
                else:
                    entry = self.debit(product_id, storage_area_id, -delta)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise self.missing_reference(product_id, storage_area_id)
            except Exception:
                self.db.rollback()
                raise
        self.db.refresh(entry)
        return entry

    def missing_reference(self, product_id: int, storage_area_id: int) -> Exception:
        """Typed error for a write that lost a race with a delete; call after rollback."""
        try:
            self.require_refs(product_id, storage_area_id)
        except NotFound as exc:
            return exc
        return ReferentialConflict(
            "Inventory", (product_id, storage_area_id), "concurrent change",
            "Inventory entry conflicts with a concurrent change",
        )
