from __future__ import annotations

from decimal import Decimal

import pytest

from backend.cpos import models
from backend.cpos.services import (
    CustomerNotFound,
    InsufficientStock,
    ProductNotFound,
    SaleTransactionService,
    StockLedger,
    ValidationError,
)


def _line(product, quantity, **extra):
    return {"product_id": product.id, "quantity": quantity, **extra}


def test_completed_sale_decrements_stock_and_credits_customer(
    db_session, stocked, actor, customer, make_sale, stock_of, audit_entries
):
    widget = stocked["widget"]
    data = make_sale([_line(widget, 2)], customer_id=customer.id, discount="10")

    sale = SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    assert sale.subtotal == Decimal("100.00")
    assert sale.tax_amount == Decimal("8.00")
    assert sale.discount_amount == Decimal("10.00")
    assert sale.total_amount == Decimal("98.00")
    assert sale.sale_status.name == "completed"
    assert [item.quantity for item in sale.items] == [2]
    assert sale.items[0].unit_price == Decimal("50.00")
    assert sale.items[0].tax_amount == Decimal("8.00")
    assert sale.items[0].total_price == Decimal("100.00")

    assert stock_of(widget.id) == 8
    last_entry = audit_entries(widget.id)[-1]
    assert last_entry.operation is models.StockOperation.SUBTRACT
    assert (last_entry.previous_quantity, last_entry.new_quantity) == (10, 8)
    assert last_entry.reason == "sale"
    assert str(last_entry.user_id) == str(actor.id)

    db_session.refresh(customer)
    assert customer.total_purchases == Decimal("98.00")
    assert customer.loyalty_points == 9


def test_discount_larger_than_order_clamps_total_to_zero(db_session, stocked, actor, make_sale):
    data = make_sale([_line(stocked["widget"], 2)], discount="500")

    sale = SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    assert sale.total_amount == Decimal("0.00")
    assert sale.discount_amount == Decimal("500.00")


def test_line_discounts_and_explicit_unit_price(db_session, stocked, actor, make_sale):
    data = make_sale(
        [
            _line(stocked["widget"], 1, unit_price="40.00", discount="5"),
            _line(stocked["gadget"], 2),
        ],
        discount="1",
    )

    sale = SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    widget_line, gadget_line = sale.items
    assert widget_line.unit_price == Decimal("40.00")
    assert widget_line.tax_amount == Decimal("3.20")
    assert widget_line.total_price == Decimal("35.00")
    assert gadget_line.total_price == Decimal("25.00")
    assert sale.subtotal == Decimal("65.00")
    assert sale.tax_amount == Decimal("3.20")
    assert sale.discount_amount == Decimal("6.00")
    assert sale.total_amount == Decimal("62.20")


def test_line_discount_above_line_total_is_rejected(db_session, stocked, actor, make_sale):
    data = make_sale([_line(stocked["gadget"], 1, discount="20")])

    with pytest.raises(ValidationError):
        SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    assert db_session.query(models.Sale).count() == 0


def test_same_product_on_two_lines_is_decremented_twice(
    db_session, stocked, actor, make_sale, stock_of
):
    widget = stocked["widget"]
    data = make_sale([_line(widget, 3), _line(widget, 4)])

    SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    assert stock_of(widget.id) == 3


def test_insufficient_stock_rolls_back_every_write(
    db_session, stocked, actor, customer, make_sale, stock_of, audit_entries
):
    widget, gadget = stocked["widget"], stocked["gadget"]
    entries_before = len(audit_entries(widget.id))
    data = make_sale([_line(widget, 2), _line(gadget, 6)], customer_id=customer.id)

    with pytest.raises(InsufficientStock) as excinfo:
        SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    assert excinfo.value.available == 5
    assert excinfo.value.requested == 6
    assert stock_of(widget.id) == 10
    assert stock_of(gadget.id) == 5
    assert len(audit_entries(widget.id)) == entries_before
    assert db_session.query(models.Sale).count() == 0
    assert db_session.query(models.SaleItem).count() == 0
    db_session.refresh(customer)
    assert customer.total_purchases == Decimal("0")
    assert customer.loyalty_points == 0


def test_product_without_stock_record_cannot_be_sold(db_session, products, actor, lookups, make_sale):
    data = make_sale([_line(products["widget"], 1)])

    with pytest.raises(InsufficientStock) as excinfo:
        SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    assert excinfo.value.available == 0


def test_unknown_and_inactive_products_are_rejected(db_session, stocked, actor, make_sale):
    unknown = make_sale([{"product_id": "00000000-0000-0000-0000-000000000001", "quantity": 1}])
    inactive = make_sale([_line(stocked["retired"], 1)])

    with pytest.raises(ProductNotFound):
        SaleTransactionService.create_sale(db_session, unknown, actor_id=actor.id)
    with pytest.raises(ProductNotFound):
        SaleTransactionService.create_sale(db_session, inactive, actor_id=actor.id)

    assert db_session.query(models.Sale).count() == 0


def test_empty_sale_and_unknown_references_fail_validation(
    db_session, stocked, actor, lookups, make_sale
):
    with pytest.raises(ValidationError):
        SaleTransactionService.create_sale(db_session, make_sale([]), actor_id=actor.id)

    bad_method = make_sale(
        [_line(stocked["widget"], 1)],
        payment_method_id="00000000-0000-0000-0000-000000000002",
    )
    with pytest.raises(ValidationError):
        SaleTransactionService.create_sale(db_session, bad_method, actor_id=actor.id)

    bad_status = make_sale(
        [_line(stocked["widget"], 1)],
        sale_status_id=lookups["payment_status"]["paid"],
    )
    with pytest.raises(ValidationError):
        SaleTransactionService.create_sale(db_session, bad_status, actor_id=actor.id)

    missing_customer = make_sale(
        [_line(stocked["widget"], 1)],
        customer_id="00000000-0000-0000-0000-000000000003",
    )
    with pytest.raises(CustomerNotFound):
        SaleTransactionService.create_sale(db_session, missing_customer, actor_id=actor.id)


def test_pending_sale_leaves_stock_and_customer_untouched(
    db_session, stocked, actor, customer, make_sale, stock_of
):
    widget = stocked["widget"]
    data = make_sale([_line(widget, 20)], status="pending", customer_id=customer.id)

    sale = SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    assert sale.sale_status.name == "pending"
    assert stock_of(widget.id) == 10
    db_session.refresh(customer)
    assert customer.total_purchases == Decimal("0")


def test_rejected_sale_records_a_rejection_metric(db_session, stocked, actor, make_sale):
    data = make_sale([_line(stocked["gadget"], 50)])

    with pytest.raises(InsufficientStock):
        SaleTransactionService.create_sale(db_session, data, actor_id=actor.id)

    events = (
        db_session.query(models.OperationalMetricEvent)
        .filter_by(event_type="pos.sale.rejected")
        .all()
    )
    assert len(events) == 1
    assert events[0].outcome == "rejected"
    assert events[0].tags["error"] == "InsufficientStock"


def test_two_line_sale_conserves_stock_with_one_audit_entry_per_line(
    db_session, stocked, actor, make_sale, stock_of, audit_entries
):
    widget, gadget = stocked["widget"], stocked["gadget"]
    StockLedger.adjust(db_session, gadget.id, "set", 10, actor_id=actor.id)
    db_session.commit()
    before = {product.id: len(audit_entries(product.id)) for product in (widget, gadget)}

    SaleTransactionService.create_sale(
        db_session, make_sale([_line(widget, 5), _line(gadget, 3)]), actor_id=actor.id
    )

    assert (stock_of(widget.id), stock_of(gadget.id)) == (5, 7)
    for product, (previous, new) in ((widget, (10, 5)), (gadget, (10, 7))):
        entries = audit_entries(product.id)
        assert len(entries) == before[product.id] + 1
        assert (entries[-1].previous_quantity, entries[-1].new_quantity) == (previous, new)
