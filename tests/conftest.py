# tests/conftest.py
# ---------------------------------------------------------------------
# Ground rules:
# - every test gets its own SQLite file under tmp_path (schema + seed applied)
# - conn.row_factory = sqlite3.Row, PRAGMA foreign_keys=ON (via get_connection)
# - pytest-qt owns QApplication (use the qapp fixture) for the table models
# - Qt runs offscreen so the suite works headless
# ---------------------------------------------------------------------

from __future__ import annotations

import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from billbook.database import get_connection
from billbook.database.repositories.items_repo import ItemsRepo
from billbook.modules.transactions import LineInput, SaleInput, TransactionStore

ACME = ("Acme", "9876543210")


@pytest.fixture()
def db_path(tmp_path):
    return tmp_path / "billbook.db"


@pytest.fixture()
def conn(db_path):
    con = get_connection(db_path)
    try:
        yield con
    finally:
        con.close()


@pytest.fixture()
def items(conn):
    """
    Stock used by most tests (bags):
      Plastic-A 100 (Primary), Rice 40 (Kirana), Bardana 50 (universal)
    """
    repo = ItemsRepo(conn)
    ids = {
        "Plastic-A": repo.create("Plastic-A", "Primary", 100, 10),
        "Rice": repo.create("Rice", "Kirana", 40, 5),
    }
    universal = repo.get_universal()
    repo.update(universal.item_id, universal.product_name, universal.category, 50, 0)
    ids["Bardana"] = universal.item_id
    return ids


@pytest.fixture()
def store(conn, items):
    return TransactionStore(conn)


@pytest.fixture()
def stock_of(conn):
    """stock_of(item_id) -> current stock in bags"""
    repo = ItemsRepo(conn)
    return lambda item_id: repo.require(item_id).opening_stock


@pytest.fixture()
def sale_input():
    def _make(number="INV-1", party=ACME, date="2024-01-15", lines=None):
        return SaleInput(
            invoice_no=number,
            party_name=party[0],
            phone_number=party[1],
            date=date,
            lines=lines if lines is not None else [LineInput("Plastic-A", 90, 10, 900)],
        )
    return _make
