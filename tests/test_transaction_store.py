# tests/test_transaction_store.py
from decimal import Decimal

import pytest

from billbook.database.repositories.parties_repo import PartyKey
from billbook.errors import ConflictError, ConsistencyError, NotFoundError, ValidationError
from billbook.modules.transactions import LineInput, PaymentInput, PurchaseInput, actions

ACME = ("Acme", "9876543210")
BETA = ("Beta Traders", "9123456780")


def _balance(store, party=ACME):
    p = store.parties.get_by_key(PartyKey.of(*party))
    return None if p is None else p.balance


# -------------------------
# End-to-end scenario
# -------------------------

def test_sale_payment_duplicate_delete_scenario(store, items, stock_of, sale_input):
    # simple sale: 90 kg = 3 bags
    out = store.create_sale(sale_input())
    assert _balance(store) == Decimal("900.00")
    assert out.balance_before == 0
    assert out.balance_after == Decimal("900.00")
    assert stock_of(items["Plastic-A"]) == 97
    assert stock_of(items["Bardana"]) == 47
    sale = out.record
    assert sale.universal_bags == 3
    assert sale.lines[0].bags == 3

    # payment reduces balance
    store.create_payment(PaymentInput("payment-in", "Acme", "9876543210", 400, "2024-01-16"))
    assert _balance(store) == Decimal("500.00")

    # duplicate invoice rejected, nothing changes (not even a new party)
    with pytest.raises(ConflictError):
        store.create_sale(sale_input(party=BETA, lines=[LineInput("Rice", 30, 5)]))
    assert _balance(store) == Decimal("500.00")
    assert _balance(store, BETA) is None
    assert stock_of(items["Rice"]) == 40

    # delete reverses ledger and stock, frees the number
    store.delete_sale(sale.doc_id)
    assert _balance(store) == Decimal("-400.00")
    assert stock_of(items["Plastic-A"]) == 100
    assert stock_of(items["Bardana"]) == 50
    assert not store.numbering.is_number_taken("INV-1", "sale")
    again = store.create_sale(sale_input())
    assert again.record.number == "INV-1"


# -------------------------
# Universal consumption
# -------------------------

def test_universal_consumption_counts_bags_across_items(store, items, stock_of, sale_input):
    lines = [
        LineInput("Plastic-A", 45, 10),   # 2 bags
        LineInput("Rice", 31, 20),        # 2 bags
        LineInput("rice", 30, 20),        # 1 bag (case-insensitive name)
    ]
    out = store.create_sale(sale_input(lines=lines))
    assert stock_of(items["Plastic-A"]) == 98
    assert stock_of(items["Rice"]) == 37
    assert stock_of(items["Bardana"]) == 45
    assert out.record.total_amount == Decimal("1670.00")


def test_purchase_increments_item_and_universal(store, items, stock_of):
    store.create_purchase(
        PurchaseInput("B-100", *BETA, "2024-02-01", [LineInput("Rice", 300, 12)])
    )
    assert stock_of(items["Rice"]) == 50
    assert stock_of(items["Bardana"]) == 60
    assert _balance(store, BETA) == Decimal("-3600.00")


def test_line_naming_universal_item_is_not_double_counted(store, items, stock_of, sale_input):
    lines = [LineInput("Plastic-A", 60, 10), LineInput("Bardana", 30, 2)]
    out = store.create_sale(sale_input(lines=lines))
    assert out.record.universal_bags == 2
    # 1 bag sold directly + 2 bags consumed as packaging
    assert stock_of(items["Bardana"]) == 47

    store.delete_sale(out.record.doc_id)
    assert stock_of(items["Bardana"]) == 50
    assert stock_of(items["Plastic-A"]) == 100


def test_stock_may_go_negative(store, items, stock_of, sale_input):
    store.create_sale(sale_input(lines=[LineInput("Rice", 1500, 1)]))  # 50 bags
    assert stock_of(items["Rice"]) == -10
    assert stock_of(items["Bardana"]) == 0


# -------------------------
# Validation happens before mutation
# -------------------------

def test_validation_errors_are_collected_and_nothing_is_written(store, items, stock_of, sale_input):
    bad = sale_input(
        number="INV 1",
        party=("", "9876543210"),
        date="15-01-2024",
        lines=[LineInput("Widget", 10, 5), LineInput("Rice", 0, 5)],
    )
    with pytest.raises(ValidationError) as ei:
        store.create_sale(bad)
    errors = ei.value.errors
    assert any("Invoice number" in e for e in errors)
    assert "Party name is required" in errors
    assert any("date" in e.lower() for e in errors)
    assert "Line 1: unknown item 'Widget'" in errors
    assert "Line 2: quantity must be a positive number" in errors
    assert store.parties.list_parties() == []
    assert stock_of(items["Rice"]) == 40


def test_line_total_must_match_quantity_times_rate(store, sale_input):
    with pytest.raises(ValidationError, match="total must equal"):
        store.create_sale(sale_input(lines=[LineInput("Plastic-A", 90, 10, 800)]))


def test_sale_needs_at_least_one_line(store, sale_input):
    with pytest.raises(ValidationError, match="At least one item"):
        store.create_sale(sale_input(lines=[]))


def test_dates_are_stored_as_iso(store, sale_input):
    out = store.create_sale(sale_input(date="01/31/2024"))
    assert store.get_sale(out.record.doc_id).date == "2024-01-31"


def test_payment_amount_must_be_positive(store):
    with pytest.raises(ValidationError, match="Amount must be greater than zero"):
        store.create_payment(PaymentInput("payment-in", *ACME, 0, "2024-01-16"))
    with pytest.raises(ValidationError, match="Payment type"):
        store.create_payment(PaymentInput("refund", *ACME, 10, "2024-01-16"))


def test_oversized_amounts_are_validation_errors(store, items, stock_of, sale_input):
    res = actions.create_payment(store=store, payment=PaymentInput("payment-in", *ACME, "1e30", "2024-01-16"))
    assert not res.success
    assert res.payload["errors"] == ["Amount is too large"]

    with pytest.raises(ValidationError) as ei:
        store.create_sale(sale_input(lines=[LineInput("Plastic-A", "1e29", 10)]))
    assert ei.value.errors == ["Line 1: amount is too large"]

    assert store.parties.list_parties() == []
    assert store.list_payments() == []
    assert stock_of(items["Plastic-A"]) == 100


# -------------------------
# Unit of work
# -------------------------

def test_failure_inside_unit_of_work_rolls_everything_back(store, items, stock_of, sale_input, monkeypatch):
    def boom(lines):
        raise RuntimeError("disk full")

    monkeypatch.setattr(store.stock, "apply_sale_lines", boom)
    with pytest.raises(ConsistencyError) as ei:
        store.create_sale(sale_input())
    assert isinstance(ei.value.__cause__, RuntimeError)
    # party created inside the unit of work is gone too
    assert store.parties.list_parties() == []
    assert store.list_sales() == []
    assert stock_of(items["Plastic-A"]) == 100
    assert not store.conn.in_transaction


def test_failure_on_delete_keeps_record_and_balance(store, items, stock_of, sale_input, monkeypatch):
    sale = store.create_sale(sale_input()).record

    def boom(*args):
        raise RuntimeError("locked")

    monkeypatch.setattr(store.sales, "remove", boom)
    with pytest.raises(ConsistencyError):
        store.delete_sale(sale.doc_id)
    assert _balance(store) == Decimal("900.00")
    assert stock_of(items["Plastic-A"]) == 97
    assert store.get_sale(sale.doc_id) is not None


def test_failure_on_update_restores_parties_and_stock(store, items, stock_of, sale_input, monkeypatch):
    sale = store.create_sale(sale_input()).record
    assert stock_of(items["Bardana"]) == 47

    def boom(*args):
        raise RuntimeError("locked")

    monkeypatch.setattr(store.sales, "replace", boom)
    with pytest.raises(ConsistencyError):
        store.update_sale(sale.doc_id, sale_input(party=BETA, lines=[LineInput("Rice", 60, 5)]))

    assert _balance(store, BETA) is None
    assert _balance(store) == Decimal("900.00")
    assert stock_of(items["Plastic-A"]) == 97
    assert stock_of(items["Rice"]) == 40
    assert stock_of(items["Bardana"]) == 47
    stored = store.get_sale(sale.doc_id)
    assert stored.party_name == "Acme"
    assert [ln.item_name for ln in stored.lines] == ["Plastic-A"]
    assert not store.conn.in_transaction


# -------------------------
# Updates
# -------------------------

def test_edit_then_edit_back_restores_balances_and_stock(store, items, stock_of, sale_input):
    original = sale_input(lines=[LineInput("Plastic-A", 90, 10), LineInput("Rice", 20, 7.5)])
    sale = store.create_sale(original).record
    before = (_balance(store), {k: stock_of(v) for k, v in items.items()})

    store.update_sale(sale.doc_id, sale_input(lines=[LineInput("Rice", 95, 8)]))
    assert _balance(store) == Decimal("760.00")
    assert stock_of(items["Plastic-A"]) == 100
    assert stock_of(items["Rice"]) == 36
    assert stock_of(items["Bardana"]) == 46

    store.update_sale(sale.doc_id, original)
    after = (_balance(store), {k: stock_of(v) for k, v in items.items()})
    assert after == before


def test_update_can_keep_its_own_number_but_not_take_another(store, sale_input):
    first = store.create_sale(sale_input("INV-1")).record
    store.create_sale(sale_input("INV-2"))

    store.update_sale(first.doc_id, sale_input("INV-1", lines=[LineInput("Rice", 30, 10)]))
    with pytest.raises(ConflictError):
        store.update_sale(first.doc_id, sale_input("INV-2"))


def test_update_moving_sale_to_another_party(store, sale_input):
    sale = store.create_sale(sale_input()).record
    out = store.update_sale(sale.doc_id, sale_input(party=BETA))

    assert _balance(store) == 0
    assert _balance(store, BETA) == Decimal("900.00")
    assert out.balance_before == 0
    assert store.get_sale(sale.doc_id).party_name == "Beta Traders"


def test_payment_update_switching_type(store, sale_input):
    store.create_sale(sale_input())
    pay = store.create_payment(PaymentInput("payment-in", *ACME, 400, "2024-01-16")).record
    assert _balance(store) == Decimal("500.00")

    out = store.update_payment(pay.payment_id, PaymentInput("payment-out", *ACME, 100, "2024-01-16"))
    assert _balance(store) == Decimal("1000.00")
    assert out.record.payment_no == pay.payment_no

    store.delete_payment(pay.payment_id)
    assert _balance(store) == Decimal("900.00")


def test_update_unknown_record_is_not_found(store, sale_input):
    with pytest.raises(NotFoundError):
        store.update_sale(12345, sale_input())


# -------------------------
# Conservation over a mixed sequence
# -------------------------

def test_balance_and_stock_conservation(store, items, stock_of, sale_input):
    initial = {k: stock_of(v) for k, v in items.items()}

    s1 = store.create_sale(sale_input("1", lines=[LineInput("Plastic-A", 100, 11)])).record
    s2 = store.create_sale(sale_input("2", party=BETA, lines=[LineInput("Rice", 61, 3)])).record
    p1 = store.create_purchase(
        PurchaseInput("B-1", *ACME, "2024-01-20", [LineInput("Rice", 29, 4), LineInput("Plastic-A", 31, 2)])
    ).record
    pay_in = store.create_payment(PaymentInput("payment-in", *BETA, 50, "2024-01-21")).record
    store.create_payment(PaymentInput("payment-out", *ACME, 75.5, "2024-01-21"))

    store.update_sale(s2.doc_id, sale_input("2", party=ACME, lines=[LineInput("Rice", 10, 3)]))
    store.update_purchase(
        p1.doc_id, PurchaseInput("B-1", *BETA, "2024-01-20", [LineInput("Plastic-A", 301, 1)])
    )
    store.delete_sale(s1.doc_id)
    store.delete_payment(pay_in.payment_id)

    assert store.ledger.audit() == []
    for name, item_id in items.items():
        assert stock_of(item_id) == store.stock.expected_stock(item_id, initial[name]), name


# -------------------------
# Bulk delete, lists, summaries
# -------------------------

def test_delete_many_reports_successes_and_failures(store, sale_input):
    a = store.create_sale(sale_input("A1")).record
    b = store.create_sale(sale_input("A2")).record

    result = store.delete_many("sale", [a.doc_id, 9999, b.doc_id])
    assert result.deleted == [a.doc_id, b.doc_id]
    assert list(result.failed) == [9999]
    assert result.deleted_count == 2
    assert _balance(store) == 0


def test_list_filters(store, sale_input):
    store.create_sale(sale_input("INV-1", date="2024-01-10"))
    store.create_sale(sale_input("INV-2", party=BETA, date="2024-02-10"))
    store.create_sale(sale_input("X-3", date="2024-03-10"))

    assert [s.number for s in store.list_sales()] == ["X-3", "INV-2", "INV-1"]
    assert [s.number for s in store.list_sales(search="INV")] == ["INV-2", "INV-1"]
    assert [s.number for s in store.list_sales(party_name="acme")] == ["X-3", "INV-1"]
    assert [s.number for s in store.list_sales(start_date="2024-02-01", end_date="2024-02-29")] == ["INV-2"]
    assert [s.number for s in store.list_sales(date="2024-03-10")] == ["X-3"]
    assert store.list_sales(phone_number="9123456780")[0].lines[0].item_name == "Plastic-A"


def test_search_treats_wildcards_literally(store, items, sale_input):
    store.create_sale(sale_input("INV_1"))
    store.create_sale(sale_input("INV-2"))
    store.create_payment(PaymentInput("payment-in", *ACME, 10, "2024-01-16"))

    assert [s.number for s in store.list_sales(search="_")] == ["INV_1"]
    assert store.list_sales(search="%") == []
    assert store.list_payments(search="%") == []
    assert store.parties.search("_") == []
    assert store.items.list_items(search="%") == []
    assert [it.product_name for it in store.items.list_items(search="-")] == ["Plastic-A"]


def test_payment_numbers_and_summary(store):
    a = store.create_payment(PaymentInput("payment-in", *ACME, 400, "2024-01-16")).record
    b = store.create_payment(PaymentInput("payment-in", *BETA, 100, "2024-01-16")).record
    c = store.create_payment(PaymentInput("payment-out", *ACME, 30, "2024-01-17")).record
    assert (a.payment_no, b.payment_no, c.payment_no) == (
        "PMT20240116-0001", "PMT20240116-0002", "PMT20240117-0001"
    )

    assert [p.payment_no for p in store.list_payments(type="payment-in")] == [b.payment_no, a.payment_no]
    summary = store.payment_summary()
    assert summary["total_in"] == Decimal("500.00")
    assert summary["total_out"] == Decimal("30.00")
    assert summary["count_in"] == 2
    assert summary["count_out"] == 1
    assert summary["net"] == Decimal("470.00")
