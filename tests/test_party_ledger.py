# tests/test_party_ledger.py
import logging
from decimal import Decimal

import pytest

from billbook.database.repositories.parties_repo import PartiesRepo, PartyKey
from billbook.errors import ConflictError, ProtectedRecordError, ValidationError
from billbook.modules.party import PartyLedger, ledger_effect
from billbook.modules.transactions import LineInput, PaymentInput


@pytest.fixture()
def parties(conn):
    return PartiesRepo(conn)


@pytest.fixture()
def ledger(conn, parties):
    return PartyLedger(conn, parties)


# -------------------------
# Sign convention
# -------------------------

@pytest.mark.parametrize(
    "kind, expected",
    [
        ("sale", Decimal("100.00")),
        ("purchase", Decimal("-100.00")),
        ("payment-in", Decimal("-100.00")),
        ("payment-out", Decimal("100.00")),
    ],
)
def test_ledger_effect_truth_table(kind, expected):
    assert ledger_effect(kind, 100) == expected


def test_ledger_effect_rejects_unknown_kind():
    with pytest.raises(ValueError):
        ledger_effect("refund", 1)


# -------------------------
# PartyKey / find_or_create
# -------------------------

def test_party_key_normalizes_name_and_phone():
    key = PartyKey.of("  Acme   Traders ", "98765-43210")
    assert key == PartyKey("Acme Traders", "9876543210")
    assert PartyKey.of("X", "+91 98765 43210").phone == "+919876543210"


def test_party_key_requires_both_parts():
    with pytest.raises(ValidationError) as ei:
        PartyKey.of(" ", None)
    assert ei.value.errors == ["Party name is required", "Phone number is required"]


def test_find_or_create_matches_name_case_insensitively(conn, parties):
    first = parties.find_or_create(PartyKey.of("Acme", "9876543210"))
    again = parties.find_or_create(PartyKey.of("ACME", "98765 43210"))
    assert again.party_id == first.party_id
    assert len(parties.list_parties()) == 1


def test_same_name_different_phone_creates_new_party(parties, caplog):
    caplog.set_level(logging.WARNING)
    a = parties.find_or_create(PartyKey.of("Acme", "9876543210"))
    b = parties.find_or_create(PartyKey.of("Acme", "9000000000"))
    assert a.party_id != b.party_id
    assert b.balance == 0
    assert "creating a separate party" in caplog.text


# -------------------------
# Ledger operations
# -------------------------

def test_apply_create_update_delete(ledger, parties):
    key = PartyKey.of("Acme", "9876543210")
    party, bal = ledger.apply_create(key, Decimal("900"))
    assert bal == Decimal("900.00")

    _, bal = ledger.apply_update(party.party_id, key, Decimal("900"), Decimal("750.50"))
    assert bal == Decimal("750.50")

    bal = ledger.apply_delete(party.party_id, Decimal("750.50"))
    assert bal == 0
    assert parties.require(party.party_id).balance == 0


def test_apply_update_moves_effect_between_parties(ledger, parties):
    old_key = PartyKey.of("Acme", "9876543210")
    new_key = PartyKey.of("Beta", "9123456780")
    old, _ = ledger.apply_create(old_key, Decimal("-300"))

    new, bal = ledger.apply_update(old.party_id, new_key, Decimal("-300"), Decimal("-200"))
    assert bal == Decimal("-200.00")
    assert parties.require(old.party_id).balance == 0
    assert new.party_id != old.party_id


def test_audit_flags_manual_drift(conn, store, sale_input):
    store.create_sale(sale_input())
    assert store.ledger.audit() == []

    conn.execute("UPDATE parties SET balance = 1 WHERE name = 'Acme'")
    drift = store.ledger.audit()
    assert len(drift) == 1
    assert drift[0].expected == Decimal("900.00")
    assert drift[0].difference == Decimal("-899.00")


# -------------------------
# Party directory
# -------------------------

def test_create_validates_and_rejects_duplicates(parties):
    with pytest.raises(ValidationError) as ei:
        parties.create("Acme", "12ab", email="nope")
    assert "Invalid phone number format" in ei.value.errors
    assert "Invalid email format" in ei.value.errors

    pid = parties.create("Acme", "9876543210", address="Main Road")
    assert parties.require(pid).balance == 0
    with pytest.raises(ConflictError):
        parties.create("acme", "9876543210")


def test_update_keeps_balance_and_history_snapshot(store, sale_input):
    sale = store.create_sale(sale_input()).record
    store.parties.update(sale.party_id, "Acme Renamed", "9876543210", email="a@b.co")

    p = store.parties.require(sale.party_id)
    assert p.name == "Acme Renamed"
    assert p.balance == Decimal("900.00")
    assert store.get_sale(sale.doc_id).party_name == "Acme"

    # reversal still targets the renamed party
    store.delete_sale(sale.doc_id)
    assert store.parties.require(sale.party_id).balance == 0


def test_delete_refused_while_referenced(store, sale_input):
    sale = store.create_sale(sale_input()).record
    with pytest.raises(ProtectedRecordError):
        store.parties.delete(sale.party_id)

    store.delete_sale(sale.doc_id)
    store.parties.delete(sale.party_id)
    assert store.parties.get(sale.party_id) is None


def test_search_matches_name_or_phone(parties):
    parties.create("Acme Traders", "9876543210")
    parties.create("Beta", "9123456780")
    assert [p.name for p in parties.search("acme")] == ["Acme Traders"]
    assert [p.name for p in parties.search("912345")] == ["Beta"]
    assert len(parties.search("")) == 2


def test_transactions_and_stats(store, sale_input):
    store.create_sale(sale_input("INV-1", date="2024-01-10"))
    store.create_payment(PaymentInput("payment-in", "Acme", "9876543210", 250, "2024-01-12"))
    store.create_sale(sale_input("INV-2", party=("Beta", "9123456780"), lines=[LineInput("Rice", 30, 10)]))
    store.create_payment(PaymentInput("payment-out", "Beta", "9123456780", 500, "2024-01-13"))
    store.create_sale(sale_input("INV-3", party=("Gamma", "9000000001"), lines=[LineInput("Rice", 30, 1)]))
    store.create_payment(PaymentInput("payment-in", "Gamma", "9000000001", 100, "2024-01-14"))

    acme = store.parties.get_by_key(PartyKey.of("Acme", "9876543210"))
    history = store.parties.transactions(acme.party_id)
    assert [(h["kind"], h["effect"]) for h in history] == [
        ("payment-in", Decimal("-250.00")),
        ("sale", Decimal("900.00")),
    ]

    stats = store.parties.stats()
    assert stats["total_parties"] == 3
    assert stats["receivable"] == Decimal("1450.00")   # Acme 650 + Beta 800
    assert stats["payable"] == Decimal("70.00")        # Gamma -70
    assert stats["total_balance"] == Decimal("1380.00")
