"""
Movement engine: records transfers between storage areas and drives their
status lifecycle.

    pending ──> in_progress ──> completed
       │             │
       │             └───────> cancelled
       ├──────────────────────> completed
       └──────────────────────> cancelled

Stock only moves when a movement reaches COMPLETED, and only once per
movement (tracked by Movement.ledger_applied). Source availability is checked
at creation and again at completion, both under the ledger key locks of every
area the movement touches.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, FrozenSet, List, Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from models.movement import Movement, MovementStatus
from models.product import Product
from models.storage_area import StorageArea
from models.users import User
from services.errors import InsufficientStock, InvalidTransition, NotFound, ReferentialConflict, ValidationError
from services.ledger import InventoryLedger, KeyLockRegistry, default_lock_registry

logger = logging.getLogger(__name__)

TRANSITIONS: Dict[MovementStatus, FrozenSet[MovementStatus]] = {
    MovementStatus.PENDING: frozenset(
        {MovementStatus.IN_PROGRESS, MovementStatus.COMPLETED, MovementStatus.CANCELLED}
    ),
    MovementStatus.IN_PROGRESS: frozenset({MovementStatus.COMPLETED, MovementStatus.CANCELLED}),
    MovementStatus.COMPLETED: frozenset(),
    MovementStatus.CANCELLED: frozenset(),
}

OPEN_STATUSES = (MovementStatus.PENDING, MovementStatus.IN_PROGRESS)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_status(status: Union[str, MovementStatus]) -> MovementStatus:
    try:
        return MovementStatus(status)
    except ValueError:
        raise ValidationError(f"Unknown movement status '{status}'", field="status")


class MovementEngine:
    def __init__(
        self,
        db: Session,
        locks: Optional[KeyLockRegistry] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db = db
        self.locks = locks or default_lock_registry
        self.clock = clock
        self.ledger = InventoryLedger(db, self.locks)

    # ---- reads ----

    def get(self, movement_id: int) -> Optional[Movement]:
        return self.db.get(Movement, movement_id)

    def list(self, status: Optional[MovementStatus] = None, product_id: Optional[int] = None) -> List[Movement]:
        query = self.db.query(Movement)
        if status is not None:
            query = query.filter(Movement.status == status)
        if product_id is not None:
            query = query.filter(Movement.product_id == product_id)
        return query.order_by(Movement.id).all()

    def recent(self, limit: int) -> List[Movement]:
        """Newest movements first, with product, areas and user loaded."""
        return (
            self.db.query(Movement)
            .options(
                joinedload(Movement.product),
                joinedload(Movement.from_area),
                joinedload(Movement.to_area),
                joinedload(Movement.user),
            )
            .order_by(Movement.date.desc(), Movement.id.desc())
            .limit(limit)
            .all()
        )

    # ---- helpers ----

    @staticmethod
    def _keys(product_id: int, from_area_id: Optional[int], to_area_id: Optional[int]):
        return [(product_id, area_id) for area_id in (from_area_id, to_area_id) if area_id is not None]

    def _exists(self, model, row_id: int) -> bool:
        # Column query, so a row deleted by another session is not served from the identity map
        return self.db.query(model.id).filter(model.id == row_id).first() is not None

    def _require_refs(
        self, product_id: int, from_area_id: Optional[int], to_area_id: Optional[int], user_id: int
    ) -> None:
        if not self._exists(Product, product_id):
            raise NotFound("Product", product_id)
        if from_area_id is not None and not self._exists(StorageArea, from_area_id):
            raise NotFound("StorageArea", from_area_id, "Source storage area not found")
        if to_area_id is not None and not self._exists(StorageArea, to_area_id):
            raise NotFound("StorageArea", to_area_id, "Destination storage area not found")
        if not self._exists(User, user_id):
            raise NotFound("User", user_id)

    def _missing_reference(self, product_id, from_area_id, to_area_id, user_id, movement_id=None) -> Exception:
        """Typed error for a write that lost a race with a delete; call after rollback."""
        try:
            self._require_refs(product_id, from_area_id, to_area_id, user_id)
        except NotFound as exc:
            return exc
        return ReferentialConflict(
            "Movement", movement_id, "concurrent change", "Movement conflicts with a concurrent change"
        )

    def _check_available(self, product_id: int, from_area_id: Optional[int], quantity: int) -> None:
        if from_area_id is None:
            return
        available = self.ledger.locked_quantity(product_id, from_area_id)
        if available < quantity:
            raise InsufficientStock(available=available, requested=quantity)

    def _apply(self, movement: Movement) -> None:
        # Caller holds the key locks of both areas and owns the transaction
        if movement.ledger_applied:
            return
        if movement.from_area_id is not None:
            self.ledger.debit(movement.product_id, movement.from_area_id, movement.quantity)
        if movement.to_area_id is not None:
            self.ledger.credit(movement.product_id, movement.to_area_id, movement.quantity)
        movement.ledger_applied = True
        self.db.flush()
        logger.info(
            "Applied movement id=%s: %s x product %s, %s -> %s",
            movement.id, movement.quantity, movement.product_id,
            movement.from_area_id, movement.to_area_id,
        )

    # ---- operations ----

    def create(
        self,
        product_id: int,
        from_area_id: Optional[int],
        to_area_id: Optional[int],
        quantity: int,
        status: Union[str, MovementStatus],
        user_id: int,
    ) -> Movement:
        status = _coerce_status(status)
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise ValidationError("Quantity must be a positive integer", field="quantity")
        if from_area_id is None and to_area_id is None:
            raise ValidationError("Either a source or a destination area is required", field="from_area_id")

        with self.locks.hold(*self._keys(product_id, from_area_id, to_area_id)):
            try:
                # Checked under the locks so a delete cannot slip in before the insert
                self._require_refs(product_id, from_area_id, to_area_id, user_id)
                self._check_available(product_id, from_area_id, quantity)
                movement = Movement(
                    product_id=product_id,
                    from_area_id=from_area_id,
                    to_area_id=to_area_id,
                    quantity=quantity,
                    status=status,
                    date=self.clock(),
                    user_id=user_id,
                    ledger_applied=False,
                )
                self.db.add(movement)
                self.db.flush()
                if status == MovementStatus.COMPLETED:
                    self._apply(movement)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise self._missing_reference(product_id, from_area_id, to_area_id, user_id)
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(movement)
        logger.info(
            "Created movement id=%s status=%s product=%s qty=%s by user=%s",
            movement.id, movement.status.value, product_id, quantity, user_id,
        )
        return movement

    def set_status(self, movement_id: int, new_status: Union[str, MovementStatus]) -> Movement:
        new_status = _coerce_status(new_status)
        movement = self.get(movement_id)
        if movement is None:
            raise NotFound("Movement", movement_id)

        refs = (movement.product_id, movement.from_area_id, movement.to_area_id, movement.user_id)
        keys = self._keys(*refs[:3])
        with self.locks.hold(*keys):
            try:
                # Another caller may have moved it on while we waited for the lock
                movement = (
                    self.db.query(Movement)
                    .filter(Movement.id == movement_id)
                    .populate_existing()
                    .with_for_update()
                    .first()
                )
                if movement is None:
                    raise NotFound("Movement", movement_id)
                current = movement.status
                if new_status == current:
                    self.db.rollback()
                    return movement
                if new_status not in TRANSITIONS[current]:
                    raise InvalidTransition(current.value, new_status.value)

                if new_status == MovementStatus.COMPLETED and not movement.ledger_applied:
                    self._check_available(movement.product_id, movement.from_area_id, movement.quantity)
                    self._apply(movement)

                movement.status = new_status
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise self._missing_reference(*refs, movement_id=movement_id)
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(movement)
        logger.info("Movement id=%s: %s -> %s", movement_id, current.value, new_status.value)
        return movement
