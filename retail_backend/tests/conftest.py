import uuid
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from retail_backend.app.api.deps import get_db
from retail_backend.app.db.base import Base
from retail_backend.app.db.models import models_v1  # noqa: F401  (registers tables)
from retail_backend.app.db.models.models_v1 import Category, Product, Supplier
from retail_backend.app.main import app

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


# pysqlite defers BEGIN on its own, which breaks SAVEPOINT; let SQLAlchemy emit it
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


@pytest.fixture(scope="function")
def db_session() -> Session:
    """Fresh schema per test. Tables are dropped afterwards."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session):
    def override_get_db():
        try:
            yield db_session
        finally:
            # same contract as get_db: whatever the endpoint did not commit is dropped
            db_session.rollback()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def actor_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def category(db_session: Session, actor_id) -> Category:
    c = Category(name="Beverages", description="Drinks", created_by=actor_id)
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture
def product(db_session: Session, category, actor_id) -> Product:
    p = Product(
        name="Sparkling Water 1L",
        sku="BEV-001",
        barcode="3270190207924",
        category_id=category.id,
        unit_price=Decimal("1.20"),
        cost_price=Decimal("0.45"),
        minimum_stock_level=10,
        created_by=actor_id,
    )
    db_session.add(p)
    db_session.commit()
    return p


@pytest.fixture
def make_product(db_session: Session, actor_id):
    def _make(sku: str, minimum_stock_level: int = 0) -> Product:
        p = Product(
            name=f"Product {sku}",
            sku=sku,
            unit_price=Decimal("2.50"),
            minimum_stock_level=minimum_stock_level,
            created_by=actor_id,
        )
        db_session.add(p)
        db_session.commit()
        return p

    return _make


@pytest.fixture
def supplier(db_session: Session, actor_id) -> Supplier:
    s = Supplier(name="Acme Wholesale", email="orders@acme.com", created_by=actor_id)
    db_session.add(s)
    db_session.commit()
    return s
