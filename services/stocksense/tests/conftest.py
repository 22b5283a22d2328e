import os
import tempfile

# Settings are cached on first import, so point them at a scratch database first
_DB_DIR = tempfile.mkdtemp(prefix="stocksense-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{os.path.join(_DB_DIR, 'stocksense-test.db')}")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-enough-length-for-hs256")

import pytest
from fastapi.testclient import TestClient

from stocksense.api.auth import create_access_token
from stocksense.application.service import InventoryService
from stocksense.domain.actor import Actor, Role
from stocksense.domain.clock import FixedClock
from stocksense.domain.models import Base
from stocksense.infrastructure.db import SessionLocal, engine
from stocksense.infrastructure.locks import ItemLockRegistry


@pytest.fixture(autouse=True)
def fresh_schema():
    """Every test starts from empty tables"""
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield


@pytest.fixture
def session_factory():
    return SessionLocal


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def locks():
    return ItemLockRegistry()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def service(db_session, locks, clock):
    return InventoryService(db_session, locks=locks, clock=clock)


@pytest.fixture
def admin():
    return Actor(id="u-admin", display_name="Alice Admin", role=Role.ADMIN)


@pytest.fixture
def staff():
    return Actor(id="u-staff", display_name="Sam Staff", role=Role.STAFF)


@pytest.fixture
def make_item(service, admin):
    """Create an item with sensible defaults; keyword overrides win"""
    def _make(code="MCH-001", current_stock=10, allocated_stock=0,
              min_threshold=5, max_ceiling=20, description="Forklift", **extra):
        fields = {
            "code": code,
            "description": description,
            "vendor": extra.pop("vendor", "Toyota"),
            "current_stock": current_stock,
            "allocated_stock": allocated_stock,
            "min_threshold": min_threshold,
            "max_ceiling": max_ceiling,
        }
        fields.update(extra)
        return service.create_item(fields, admin)
    return _make


@pytest.fixture
def client():
    from stocksense.main import app
    return TestClient(app)


@pytest.fixture
def admin_headers():
    token = create_access_token("u-admin", "Alice Admin", Role.ADMIN)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers():
    token = create_access_token("u-staff", "Sam Staff", Role.STAFF)
    return {"Authorization": f"Bearer {token}"}
