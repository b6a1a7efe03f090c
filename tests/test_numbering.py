# tests/test_numbering.py
import pytest

from billbook.errors import ConflictError, ValidationError
from billbook.modules.numbering import NumberingAuthority, validate_format
from billbook.modules.transactions import PaymentInput


@pytest.fixture()
def numbering(conn):
    return NumberingAuthority(conn)


@pytest.mark.parametrize("number", ["1", "INV-001", "bill_7", "A" * 50, "  42  "])
def test_valid_reference_numbers(number):
    assert validate_format(number) == number.strip()


@pytest.mark.parametrize("number", ["", "   ", None, "INV 1", "INV/1", "#12", "A" * 51])
def test_invalid_reference_numbers(number):
    with pytest.raises(ValidationError):
        validate_format(number, "Invoice number")


def test_format_is_checked_before_uniqueness(numbering, store, sale_input):
    store.create_sale(sale_input("INV-1"))
    with pytest.raises(ValidationError):
        numbering.ensure_available("INV 1", "sale")
    with pytest.raises(ConflictError) as ei:
        numbering.ensure_available(" INV-1 ", "sale")
    assert "Invoice number 'INV-1' already exists" in str(ei.value)


def test_scopes_are_independent_and_edits_keep_their_number(numbering, store, sale_input):
    sale = store.create_sale(sale_input("100")).record
    assert numbering.is_number_taken("100", "sale")
    assert not numbering.is_number_taken("100", "purchase")
    assert numbering.ensure_available("100", "sale", exclude_id=sale.doc_id) == "100"

    store.delete_sale(sale.doc_id)
    assert not numbering.is_number_taken("100", "sale")


def test_unknown_scope(numbering):
    with pytest.raises(ValueError):
        numbering.suggest_next("payment")


def test_suggest_next_ignores_free_form_numbers(numbering, store, sale_input):
    assert numbering.suggest_next("sale") == "1"
    store.create_sale(sale_input("INV-3"))
    assert numbering.suggest_next("sale") == "1"

    store.create_sale(sale_input("7"))
    store.create_sale(sale_input("12"))
    assert numbering.suggest_next("sale") == "13"
    assert numbering.suggest_next("purchase") == "1"


def test_payment_numbers_are_per_day(numbering, store):
    assert numbering.next_payment_no("2024-01-15") == "PMT20240115-0001"

    first = store.create_payment(PaymentInput("payment-in", "Acme", "9876543210", 100, "2024-01-15")).record
    second = store.create_payment(PaymentInput("payment-out", "Acme", "9876543210", 50, "01/15/2024")).record
    other_day = store.create_payment(PaymentInput("payment-in", "Acme", "9876543210", 10, "2024-01-16")).record

    assert first.payment_no == "PMT20240115-0001"
    assert second.payment_no == "PMT20240115-0002"
    assert other_day.payment_no == "PMT20240116-0001"
    assert numbering.next_payment_no("2024-01-15") == "PMT20240115-0003"


def test_payment_sequence_passes_four_digits(conn, numbering, store):
    first = store.create_payment(PaymentInput("payment-in", "Acme", "9876543210", 10, "2024-01-16")).record
    conn.execute("UPDATE payments SET payment_no = 'PMT20240116-9999' WHERE payment_id = ?", (first.payment_id,))

    a = store.create_payment(PaymentInput("payment-in", "Acme", "9876543210", 10, "2024-01-16")).record
    b = store.create_payment(PaymentInput("payment-in", "Acme", "9876543210", 10, "2024-01-16")).record
    assert (a.payment_no, b.payment_no) == ("PMT20240116-10000", "PMT20240116-10001")
    assert numbering.next_payment_no("2024-01-16") == "PMT20240116-10002"
