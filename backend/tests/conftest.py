"""
Shared test fixtures for ShopFloor MRP tests

Provides database setup, client creation, profile and token fixtures
"""
import os

# Must be set before the app (and its engine) is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-signing-key-for-shopfloor-suite")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.main import app  # noqa: E402
from app.db.base import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402

from tests.factories import (  # noqa: E402
    create_test_bom,
    create_test_product,
    create_test_profile,
)


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    import app.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# Profiles and tokens
# =============================================================================

@pytest.fixture
def admin_user(db_session):
    """Create an admin profile"""
    return create_test_profile(db_session, role="admin", full_name="Ada Admin")


@pytest.fixture
def operator_user(db_session):
    """Create an operator profile"""
    return create_test_profile(db_session, role="operator", full_name="Olu Operator")


@pytest.fixture
def other_operator(db_session):
    """A second operator, for ownership checks"""
    return create_test_profile(db_session, role="operator", full_name="Pat Picker")


@pytest.fixture
def admin_headers(admin_user):
    """Return authorization headers for the admin profile"""
    return {"Authorization": f"Bearer {create_access_token(admin_user.id)}"}


@pytest.fixture
def operator_headers(operator_user):
    """Return authorization headers for the operator profile"""
    return {"Authorization": f"Bearer {create_access_token(operator_user.id)}"}


@pytest.fixture
def other_operator_headers(other_operator):
    return {"Authorization": f"Bearer {create_access_token(other_operator.id)}"}


# =============================================================================
# Catalog
# =============================================================================

@pytest.fixture
def chair_setup(db_session):
    """
    Chair BOM: 4 Legs + 1 Seat per chair.

    Legs start with 100 units and Seat with 20, enough for a 10-chair order.
    """
    legs = create_test_product(db_session, name="Legs", stock=100, min_stock_level=10)
    seat = create_test_product(db_session, name="Seat", stock=20, min_stock_level=5)
    chair = create_test_product(db_session, name="Chair", product_type="finished_good")
    bom = create_test_bom(db_session, chair, [(legs, 4), (seat, 1)])
    return {"chair": chair, "legs": legs, "seat": seat, "bom": bom}
