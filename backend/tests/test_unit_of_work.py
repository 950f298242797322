from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.orm.exc import StaleDataError

from backend.cpos import models
from backend.cpos.config import default_stock_location, loyalty_point_value
from backend.cpos.services import (
    ConcurrentModification,
    ConflictError,
    CustomerAggregate,
    PersistenceFailure,
    ValidationError,
    unit_of_work,
)


def test_engine_errors_roll_back_pending_writes(db_session, products):
    with pytest.raises(ValidationError):
        with unit_of_work(db_session, operation="test"):
            db_session.add(models.Customer(first_name="Ghost", last_name="Writer"))
            db_session.flush()
            raise ValidationError("nope")

    assert db_session.query(models.Customer).count() == 0


def test_integrity_errors_become_conflicts(db_session, products):
    with pytest.raises(ConflictError):
        with unit_of_work(db_session, operation="Product import"):
            db_session.add(models.Product(name="Clone", sku="W-1", price=Decimal("1.00")))


def test_stale_rows_become_retryable_concurrent_modifications(db_session):
    with pytest.raises(ConcurrentModification) as excinfo:
        with unit_of_work(db_session, operation="Stock adjustment"):
            raise StaleDataError("version mismatch")

    assert excinfo.value.retryable is True
    assert isinstance(excinfo.value, PersistenceFailure)


def test_version_counter_detects_a_lost_update(db_session, session_factory, stocked):
    widget_id = stocked["widget"].id
    first = session_factory()
    second = session_factory()
    try:
        mine = first.query(models.StockRecord).filter_by(product_id=widget_id).one()
        theirs = second.query(models.StockRecord).filter_by(product_id=widget_id).one()

        with unit_of_work(first, operation="first"):
            mine.quantity = 9

        with pytest.raises(ConcurrentModification):
            with unit_of_work(second, operation="second"):
                theirs.quantity = 8
    finally:
        first.close()
        second.close()


def test_loyalty_points_use_configured_ratio(monkeypatch):
    assert CustomerAggregate.loyalty_points_for(Decimal("98.00")) == 9
    assert CustomerAggregate.loyalty_points_for(Decimal("0")) == 0

    monkeypatch.setenv("POS_LOYALTY_POINT_VALUE", "25")
    assert loyalty_point_value() == Decimal("25")
    assert CustomerAggregate.loyalty_points_for(Decimal("99.99")) == 3

    monkeypatch.setenv("POS_LOYALTY_POINT_VALUE", "zero")
    assert loyalty_point_value() == Decimal("10")


def test_default_stock_location_reads_environment(monkeypatch):
    assert default_stock_location() == "default"
    monkeypatch.setenv("POS_DEFAULT_STOCK_LOCATION", " Warehouse ")
    assert default_stock_location() == "Warehouse"
