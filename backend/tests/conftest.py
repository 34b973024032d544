"""
Test Configuration and Fixtures
Shared testing infrastructure for the stock ledger backend
"""

import os
import tempfile

# Must be set before database/main are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "stock_ledger_test_logs"))

from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from main import app
from database import Base, engine, SessionLocal, get_db
from utils.auth_utils import get_current_user
from schemas.materials import MaterialCreate
from schemas.parties import PartyCreate
from crud import materials as crud_materials
from crud import parties as crud_parties

ADMIN_USER = {"sub": "admin-1", "email": "admin@example.com", "user_role": "admin"}


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Test client sharing the test session, signed in as an admin"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: ADMIN_USER
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_user() -> dict:
    return ADMIN_USER


@pytest.fixture
def make_material(db_session: Session):
    def _make(name: str, opening_stock="0", unit: str = "Pcs", rate="0", min_stock="0"):
        return crud_materials.create_material(
            db_session,
            MaterialCreate(name=name, opening_stock=Decimal(opening_stock), unit=unit,
                           rate=Decimal(rate), min_stock=Decimal(min_stock)),
            ADMIN_USER,
        )
    return _make


@pytest.fixture
def make_party(db_session: Session):
    def _make(name: str, prefix: str = None):
        return crud_parties.create_party(db_session, PartyCreate(name=name, prefix=prefix), ADMIN_USER)
    return _make
