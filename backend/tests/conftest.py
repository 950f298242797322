from __future__ import annotations

import base64
import os
import sys
import tempfile
from decimal import Decimal
from pathlib import Path
from typing import Callable, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# The application engine is only used by the start-up hook; keep it off the repo tree.
os.environ.setdefault(
    "DATABASE_URL", f"sqlite:///{Path(tempfile.mkdtemp(prefix='cpos-app-')) / 'app.db'}"
)
os.environ.setdefault("POS_TOKEN_SECRET", base64.urlsafe_b64encode(os.urandom(32)).decode())
os.environ.setdefault("POS_TOKEN_EXPIRE_MINUTES", "60")

from backend.cpos import models, schemas
from backend.cpos.database import Base, build_engine_kwargs, get_db
from backend.cpos.main import app
from backend.cpos.security import ActorIdentity, create_access_token
from backend.cpos.services import SaleLedger, StockLedger


@pytest.fixture
def engine(tmp_path):
    url = f"sqlite:///{tmp_path / 'cpos.db'}"
    test_engine = create_engine(url, **build_engine_kwargs(url))
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def lookups(db_session: Session) -> dict[str, dict[str, str]]:
    SaleLedger.seed_lookups(db_session)
    return {
        "payment_method": {
            row.name: row.id for row in db_session.query(models.PaymentMethod).all()
        },
        "payment_status": {
            row.name: row.id for row in db_session.query(models.PaymentStatus).all()
        },
        "sale_status": {row.name: row.id for row in db_session.query(models.SaleStatus).all()},
    }


@pytest.fixture
def actor(db_session: Session) -> models.User:
    user = models.User(email="cashier@example.com", first_name="Casey", role="manager")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def customer(db_session: Session) -> models.Customer:
    record = models.Customer(first_name="Dana", last_name="Reyes", email="dana@example.com")
    db_session.add(record)
    db_session.commit()
    return record


@pytest.fixture
def products(db_session: Session) -> dict[str, models.Product]:
    widget = models.Product(
        name="Widget", sku="W-1", price=Decimal("50.00"), cost=Decimal("20.00"), tax_rate=Decimal("8")
    )
    gadget = models.Product(
        name="Gadget", sku="G-1", price=Decimal("12.50"), cost=Decimal("5.00"), tax_rate=Decimal("0")
    )
    retired = models.Product(
        name="Retired", sku="R-1", price=Decimal("5.00"), tax_rate=Decimal("0"), is_active=False
    )
    db_session.add_all([widget, gadget, retired])
    db_session.commit()
    return {"widget": widget, "gadget": gadget, "retired": retired}


@pytest.fixture
def stocked(db_session: Session, products, actor) -> dict[str, models.Product]:
    """Widget starts with 10 units (minimum 2), gadget with 5 (minimum 5)."""

    for key, quantity, minimum in (("widget", 10, 2), ("gadget", 5, 5)):
        StockLedger.update_levels(
            db_session,
            products[key].id,
            schemas.StockLevelsUpdate(quantity=quantity, min_quantity=minimum),
            actor_id=actor.id,
        )
    return products


@pytest.fixture
def sale_payload(lookups) -> Callable[..., dict]:
    def _build(items, *, status: str = "completed", customer_id=None, discount="0", **extra):
        payload = {
            "items": items,
            "payment_method_id": lookups["payment_method"]["cash"],
            "payment_status_id": lookups["payment_status"]["paid"],
            "sale_status_id": lookups["sale_status"][status],
            "discount_amount": discount,
        }
        if customer_id is not None:
            payload["customer_id"] = customer_id
        payload.update(extra)
        return payload

    return _build


@pytest.fixture
def make_sale(sale_payload) -> Callable[..., schemas.SaleCreate]:
    def _build(items, **kwargs) -> schemas.SaleCreate:
        return schemas.SaleCreate.model_validate(sale_payload(items, **kwargs))

    return _build


@pytest.fixture
def stock_of(db_session: Session) -> Callable[..., int]:
    def _read(product_id: str, location: str = "default") -> int:
        db_session.expire_all()
        record = (
            db_session.query(models.StockRecord)
            .filter_by(product_id=str(product_id), location=location)
            .one()
        )
        return record.quantity

    return _read


@pytest.fixture
def audit_entries(db_session: Session) -> Callable[..., list]:
    def _read(product_id: str) -> list[models.InventoryAuditEntry]:
        db_session.expire_all()
        return (
            db_session.query(models.InventoryAuditEntry)
            .filter_by(product_id=str(product_id))
            .order_by(models.InventoryAuditEntry.id.asc())
            .all()
        )

    return _read


@pytest.fixture
def auth_headers(actor) -> Callable[..., dict[str, str]]:
    def _build(role: str = "manager", actor_id: str | None = None) -> dict[str, str]:
        token = create_access_token(ActorIdentity(id=actor_id or actor.id, role=role))
        return {"Authorization": f"Bearer {token}"}

    return _build


@pytest.fixture
def client(session_factory, auth_headers) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        test_client.headers.update(auth_headers())
        yield test_client
    app.dependency_overrides.pop(get_db, None)
