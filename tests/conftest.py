"""
Shared fixtures: a throwaway SQLite file per test, a private lock registry
and a TestClient wired to both.
"""
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from database import get_db, init_db, make_engine, make_session_factory
from schemas.product import ProductCreate
from schemas.storage_area import StorageAreaCreate
from schemas.user import UserCreate
from services.entities import EntityStore
from services.ledger import InventoryLedger, KeyLockRegistry, get_lock_registry
from services.movements import MovementEngine
from utils.tokenJWT import create_access_token


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'stockroom-test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def locks():
    return KeyLockRegistry()


@pytest.fixture
def store(db, locks):
    return EntityStore(db, locks)


@pytest.fixture
def ledger(db, locks):
    return InventoryLedger(db, locks)


@pytest.fixture
def movements(db, locks):
    return MovementEngine(db, locks)


@pytest.fixture
def warehouse(store, ledger):
    """Widget (min stock 20) with 50 units in Zone A, an empty Shipping area and one worker."""
    user = store.create_user(UserCreate(username="picker", password="picker123", full_name="Pat Picker"))
    zone_a = store.create_storage_area(StorageAreaCreate(name="Zone A", capacity=1000))
    shipping = store.create_storage_area(StorageAreaCreate(name="Shipping", capacity=500))
    widget = store.create_product(ProductCreate(sku="WID-001", name="Widget", min_stock_level=20))
    ledger.set(widget.id, zone_a.id, 50)
    return SimpleNamespace(user=user, zone_a=zone_a, shipping=shipping, widget=widget)


# ---- HTTP ----

@pytest.fixture
def app(session_factory, locks):
    from main import app

    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_lock_registry] = lambda: locks
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    return TestClient(app)


def _headers_for(store, username, role):
    user = store.create_user(
        UserCreate(username=username, password=f"{username}123", full_name=username.title(), role=role)
    )
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin_headers(store):
    return _headers_for(store, "admin", "admin")


@pytest.fixture
def manager_headers(store):
    return _headers_for(store, "manager", "manager")


@pytest.fixture
def worker_headers(store):
    return _headers_for(store, "worker", "worker")
