"""
Races against the ledger with real threads, each on its own session.

The Barrier releases every worker at once so the check-then-debit sequences
actually overlap.
"""
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from threading import Barrier

import pytest

from models.inventory import Inventory
from models.movement import Movement, MovementStatus
from schemas.product import ProductCreate
from schemas.storage_area import StorageAreaCreate
from services.entities import EntityStore
from services.errors import InsufficientStock, NotFound, ReferentialConflict
from services.ledger import InventoryLedger, KeyLockRegistry
from services.movements import MovementEngine


def _run_concurrently(count, fn):
    barrier = Barrier(count)

    def wrapped(index):
        barrier.wait()
        return fn(index)

    with ThreadPoolExecutor(max_workers=count) as pool:
        return list(pool.map(wrapped, range(count)))


def _quantity(session_factory, locks, product_id, area_id):
    session = session_factory()
    try:
        return InventoryLedger(session, locks).get(product_id, area_id)
    finally:
        session.close()


def test_competing_debits_never_oversell(session_factory, locks, warehouse):
    workers, quantity = 10, 7
    product_id, source, target, user_id = (
        warehouse.widget.id, warehouse.zone_a.id, warehouse.shipping.id, warehouse.user.id,
    )

    def ship(_):
        session = session_factory()
        try:
            MovementEngine(session, locks).create(product_id, source, target, quantity, "completed", user_id)
            return True
        except InsufficientStock:
            return False
        finally:
            session.close()

    results = _run_concurrently(workers, ship)

    successes = results.count(True)
    assert successes == 50 // quantity
    assert _quantity(session_factory, locks, product_id, source) == 50 - successes * quantity
    assert _quantity(session_factory, locks, product_id, target) == successes * quantity


def test_opposite_transfers_do_not_deadlock(session_factory, locks, ledger, warehouse):
    product_id, zone_a, shipping, user_id = (
        warehouse.widget.id, warehouse.zone_a.id, warehouse.shipping.id, warehouse.user.id,
    )
    ledger.set(product_id, shipping, 50)

    def transfer(index):
        source, target = (zone_a, shipping) if index % 2 else (shipping, zone_a)
        session = session_factory()
        try:
            MovementEngine(session, locks).create(product_id, source, target, 5, "completed", user_id)
            return True
        finally:
            session.close()

    results = _run_concurrently(12, transfer)

    assert all(results)
    a = _quantity(session_factory, locks, product_id, zone_a)
    s = _quantity(session_factory, locks, product_id, shipping)
    assert a + s == 100
    assert a >= 0 and s >= 0


def test_parallel_completion_applies_once(session_factory, locks, movements, warehouse):
    movement = movements.create(
        warehouse.widget.id, warehouse.zone_a.id, warehouse.shipping.id, 10,
        MovementStatus.PENDING, warehouse.user.id,
    )
    movement_id = movement.id

    def complete(_):
        session = session_factory()
        try:
            return MovementEngine(session, locks).set_status(movement_id, MovementStatus.COMPLETED).status
        finally:
            session.close()

    statuses = _run_concurrently(8, complete)

    assert set(statuses) == {MovementStatus.COMPLETED}
    assert _quantity(session_factory, locks, warehouse.widget.id, warehouse.zone_a.id) == 40
    assert _quantity(session_factory, locks, warehouse.widget.id, warehouse.shipping.id) == 10


# ---- deletes racing ledger writes ----

class InterleavedLocks(KeyLockRegistry):
    """Runs `before_next_hold` once, just before the next hold() takes its locks."""

    def __init__(self):
        super().__init__()
        self.before_next_hold = None

    @contextmanager
    def hold(self, *keys):
        step, self.before_next_hold = self.before_next_hold, None
        if step is not None:
            step()
        with super().hold(*keys):
            yield


def _in_own_session(session_factory, fn):
    session = session_factory()
    try:
        return fn(session)
    finally:
        session.close()


def _outcome(fn):
    try:
        return fn()
    except (NotFound, ReferentialConflict) as exc:
        return exc


def _rows(session_factory, model, **filters):
    return _in_own_session(session_factory, lambda s: s.query(model).filter_by(**filters).count())


def test_movement_into_deleted_product_is_not_found(session_factory, warehouse):
    locks = InterleavedLocks()
    product_id, shipping, user_id = warehouse.widget.id, warehouse.shipping.id, warehouse.user.id
    locks.before_next_hold = lambda: _in_own_session(
        session_factory, lambda s: EntityStore(s, KeyLockRegistry()).delete_product(product_id)
    )

    with pytest.raises(NotFound) as exc:
        _in_own_session(
            session_factory,
            lambda s: MovementEngine(s, locks).create(product_id, None, shipping, 5, "completed", user_id),
        )

    assert exc.value.message == "Product not found"
    assert _rows(session_factory, Inventory, product_id=product_id) == 0
    assert _rows(session_factory, Movement, product_id=product_id) == 0


def test_override_into_deleted_area_is_not_found(session_factory, store, warehouse):
    locks = InterleavedLocks()
    area_id = store.create_storage_area(StorageAreaCreate(name="Overflow")).id
    product_id = warehouse.widget.id
    locks.before_next_hold = lambda: _in_own_session(
        session_factory, lambda s: EntityStore(s, KeyLockRegistry()).delete_storage_area(area_id)
    )

    with pytest.raises(NotFound) as exc:
        _in_own_session(session_factory, lambda s: InventoryLedger(s, locks).override(product_id, area_id, 3))

    assert exc.value.message == "Storage area not found"
    assert _rows(session_factory, Inventory, storage_area_id=area_id) == 0


def test_status_change_of_cascaded_movement_is_not_found(session_factory, movements, warehouse):
    movement_id = movements.create(
        warehouse.widget.id, warehouse.zone_a.id, warehouse.shipping.id, 5, "pending", warehouse.user.id
    ).id
    product_id = warehouse.widget.id
    locks = InterleavedLocks()
    locks.before_next_hold = lambda: _in_own_session(
        session_factory, lambda s: EntityStore(s, KeyLockRegistry()).delete_product(product_id)
    )

    with pytest.raises(NotFound):
        _in_own_session(session_factory, lambda s: MovementEngine(s, locks).set_status(movement_id, "completed"))

    assert _rows(session_factory, Inventory, product_id=product_id) == 0


def test_product_delete_races_movement_into_new_area(session_factory, store, ledger, locks, warehouse):
    overflow = store.create_storage_area(StorageAreaCreate(name="Overflow")).id
    zone_a, user_id = warehouse.zone_a.id, warehouse.user.id

    for round_no in range(5):
        product_id = store.create_product(ProductCreate(sku=f"RACE-{round_no}", name="Racer")).id
        ledger.set(product_id, zone_a, 10)

        def act(index):
            if index == 0:
                return _outcome(lambda: _in_own_session(
                    session_factory, lambda s: EntityStore(s, locks).delete_product(product_id)
                ))
            return _outcome(lambda: _in_own_session(
                session_factory,
                lambda s: MovementEngine(s, locks).create(product_id, zone_a, overflow, 5, "completed", user_id),
            ))

        deleted, moved = _run_concurrently(2, act)

        assert deleted is True
        assert isinstance(moved, NotFound) or moved.quantity == 5
        assert _rows(session_factory, Inventory, product_id=product_id) == 0
        assert _rows(session_factory, Movement, product_id=product_id) == 0


def test_area_delete_races_override(session_factory, store, locks, warehouse):
    product_id = warehouse.widget.id

    for round_no in range(5):
        area_id = store.create_storage_area(StorageAreaCreate(name=f"Bay {round_no}")).id

        def act(index):
            if index == 0:
                return _outcome(lambda: _in_own_session(
                    session_factory, lambda s: EntityStore(s, locks).delete_storage_area(area_id)
                ))
            return _outcome(lambda: _in_own_session(
                session_factory, lambda s: InventoryLedger(s, locks).override(product_id, area_id, 3).quantity
            ))

        deleted, written = _run_concurrently(2, act)

        if deleted is True:
            assert isinstance(written, NotFound)
            assert _rows(session_factory, Inventory, storage_area_id=area_id) == 0
        else:
            assert isinstance(deleted, ReferentialConflict)
            assert written == 3
            assert _in_own_session(
                session_factory, lambda s: InventoryLedger(s, locks).get(product_id, area_id)
            ) == 3
