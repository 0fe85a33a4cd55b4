"""
conftest.py — Shared Test Fixtures for QuoteDesk

Provides an in-memory SQLite database, a FastAPI TestClient bound to it,
and factory fixtures for the catalog, parties and quotations.

Business Rules:
- All tests run against an isolated in-memory DB (no real data at risk)
- The API-key stand-in stays disabled (settings.api_key is empty)
- Each test function gets fresh tables

Called by: all test files via pytest autodiscovery
Depends on: app.models (Base), app.database (get_db)
"""

import os

os.environ["TESTING"] = "1"  # Must be set before importing app modules
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "development")

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base, Brand, Category, Party, ProductModel

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"  # in-memory, fresh per session

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db_session: Session) -> TestClient:
    """FastAPI TestClient with get_db overridden to the test session."""
    from app.database import get_db
    from app.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def catalog(db_session: Session) -> dict:
    """A processor and a memory module with their categories and brands."""
    processor = Category(name="Processor")
    memory = Category(name="Memory")
    intel = Brand(name="Intel")
    corsair = Brand(name="Corsair")
    db_session.add_all([processor, memory, intel, corsair])
    db_session.flush()

    cpu = ProductModel(
        name="Core i5-12400F",
        category_id=processor.id,
        brand_id=intel.id,
        hsn="8471",
        warranty="3 Years",
        purchase_price=12000,
        sales_price=15000,
        gst_rate=18,
    )
    ram = ProductModel(
        name="Vengeance LPX 16GB DDR4",
        category_id=memory.id,
        brand_id=corsair.id,
        hsn="8473",
        warranty="Lifetime",
        purchase_price=4500,
        sales_price=6000,
        gst_rate=18,
    )
    db_session.add_all([cpu, ram])
    db_session.commit()
    return {
        "processor": processor,
        "memory": memory,
        "intel": intel,
        "corsair": corsair,
        "cpu": cpu,
        "ram": ram,
    }


@pytest.fixture()
def line_items(catalog: dict) -> list[dict]:
    """Two valid line items: one CPU, two sticks of RAM."""
    return [
        {
            "category": catalog["processor"].id,
            "brand": catalog["intel"].id,
            "model": catalog["cpu"].id,
            "quantity": 1,
            "purchase_price": 12000,
            "sales_price": 15000,
            "gst_rate": 18,
        },
        {
            "category": catalog["memory"].id,
            "brand": catalog["corsair"].id,
            "model": catalog["ram"].id,
            "quantity": 2,
            "purchase_price": 4500,
            "sales_price": 6000,
        },
    ]


@pytest.fixture()
def make_party(db_session: Session):
    """Factory: insert a party with an explicit party_id (bypasses sequencing)."""

    def _make(party_id: str, name: str = "Acme Systems", **fields) -> Party:
        party = Party(
            party_id=party_id,
            name=name,
            phone=fields.pop("phone", "+91-9876543210"),
            address=fields.pop("address", "123 Main Street, Mumbai"),
            created_at=datetime.now(timezone.utc),
            **fields,
        )
        db_session.add(party)
        db_session.commit()
        return party

    return _make


@pytest.fixture()
def test_party(make_party) -> Party:
    return make_party("P0001", email="buyer@acme.example")
