# tests/test_actions.py
from decimal import Decimal

from billbook.modules.transactions import LineInput, PaymentInput, PurchaseInput, actions


def test_create_without_gateway_reports_plain_success(store, sale_input):
    res = actions.create_sale(store=store, sale=sale_input())
    assert res.success
    assert res.message == "Sale created successfully!"
    assert res.warning is None
    assert res.payload["balance_before"] == 0
    assert res.payload["balance_after"] == Decimal("900.00")


def test_domain_errors_become_failed_results(store, sale_input):
    actions.create_sale(store=store, sale=sale_input())

    dup = actions.create_sale(store=store, sale=sale_input())
    assert not dup.success
    assert "already exists" in dup.message

    bad = actions.create_purchase(
        store=store,
        purchase=PurchaseInput("B 1", "", "9123456780", "2024-01-15", [LineInput("Nope", 30, 1)]),
    )
    assert not bad.success
    assert "Party name is required" in bad.payload["errors"]
    assert "Line 1: unknown item 'Nope'" in bad.payload["errors"]


def test_payment_create_update_delete(store):
    created = actions.create_payment(
        store=store, payment=PaymentInput("payment-out", "Beta", "9123456780", 500, "2024-01-15")
    )
    assert created.success
    assert created.message == "Payment created successfully!"

    updated = actions.update_payment(
        store=store,
        payment_id=created.id,
        payment=PaymentInput("payment-out", "Beta", "9123456780", 300, "2024-01-15"),
    )
    assert updated.success
    assert updated.payload["balance_after"] == Decimal("300.00")

    deleted = actions.delete_record(store=store, kind="payment", record_id=created.id)
    assert deleted.message == "Payment deleted successfully"
    assert deleted.payload["balance_after"] == 0

    missing = actions.delete_record(store=store, kind="payment", record_id=created.id)
    assert not missing.success


def test_bulk_delete_reports_partial_failure(store, sale_input):
    a = actions.create_sale(store=store, sale=sale_input("1")).id
    b = actions.create_sale(store=store, sale=sale_input("2")).id

    res = actions.delete_many(store=store, kind="sale", ids=[a, 999, b])
    assert res.success
    assert res.message == "2 sales deleted, 1 failed."
    assert res.payload["deleted"] == [a, b]
    assert list(res.payload["failed"]) == [999]
    assert res.warning

    clean = actions.delete_many(store=store, kind="sale", ids=[])
    assert clean.message == "0 sales deleted successfully!"
