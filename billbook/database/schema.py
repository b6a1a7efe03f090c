from __future__ import annotations

import logging
import sqlite3
import sys
from pathlib import Path

_log = logging.getLogger(__name__)

SQL = r"""
PRAGMA foreign_keys = ON;

/* ======================== CORE TABLES ======================== */

/* -------- company (single row) -------- */
CREATE TABLE IF NOT EXISTS company_info (
    company_id           INTEGER PRIMARY KEY CHECK (company_id = 1),
    business_name        TEXT NOT NULL,
    phone_number1        TEXT,
    phone_number2        TEXT,
    email                TEXT,
    business_address     TEXT,
    pincode              TEXT,
    business_description TEXT,
    updated_at           TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

/* -------- parties -------- */
/* Natural key is (name, phone). balance = net amount the party owes us. */
CREATE TABLE IF NOT EXISTS parties (
    party_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    name         TEXT NOT NULL CHECK (TRIM(name) <> ''),
    phone_number TEXT NOT NULL CHECK (TRIM(phone_number) <> ''),
    address      TEXT,
    email        TEXT,
    balance      NUMERIC NOT NULL DEFAULT 0,
    created_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_parties_key
  ON parties(name COLLATE NOCASE, phone_number);
CREATE INDEX IF NOT EXISTS idx_parties_phone ON parties(phone_number);

/* -------- items -------- */
/* opening_stock is the live stock in bags and may go negative. */
CREATE TABLE IF NOT EXISTS items (
    item_id         INTEGER PRIMARY KEY AUTOINCREMENT,
    product_name    TEXT NOT NULL CHECK (TRIM(product_name) <> ''),
    category        TEXT NOT NULL CHECK (category IN ('Primary','Kirana')),
    opening_stock   NUMERIC NOT NULL DEFAULT 0,
    low_stock_alert NUMERIC NOT NULL DEFAULT 0 CHECK (CAST(low_stock_alert AS REAL) >= 0),
    is_universal    INTEGER NOT NULL DEFAULT 0 CHECK (is_universal IN (0,1)),
    created_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_items_name
  ON items(product_name COLLATE NOCASE);
/* at most one universal (packaging) item */
CREATE UNIQUE INDEX IF NOT EXISTS idx_items_one_universal
  ON items(is_universal) WHERE is_universal = 1;

/* -------- docs: sales -------- */
CREATE TABLE IF NOT EXISTS sales (
    sale_id           INTEGER PRIMARY KEY AUTOINCREMENT,
    invoice_no        TEXT NOT NULL,
    party_id          INTEGER NOT NULL,
    party_name        TEXT NOT NULL,
    phone_number      TEXT NOT NULL,
    date              DATE NOT NULL,
    total_amount      NUMERIC NOT NULL CHECK (CAST(total_amount AS REAL) >= 0),
    /* universal (packaging) bags moved by this document, kept for exact reversal */
    universal_item_id INTEGER,
    universal_bags    INTEGER NOT NULL DEFAULT 0,
    pdf_uri           TEXT,
    created_at        TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at        TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (party_id)          REFERENCES parties(party_id) ON DELETE RESTRICT,
    FOREIGN KEY (universal_item_id) REFERENCES items(item_id)    ON DELETE RESTRICT
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_sales_invoice_no ON sales(invoice_no);
CREATE INDEX IF NOT EXISTS idx_sales_date  ON sales(date);
CREATE INDEX IF NOT EXISTS idx_sales_party ON sales(party_id);

CREATE TABLE IF NOT EXISTS sale_items (
    line_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    sale_id   INTEGER NOT NULL,
    item_id   INTEGER NOT NULL,
    item_name TEXT NOT NULL,
    quantity  NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    rate      NUMERIC NOT NULL CHECK (CAST(rate AS REAL) > 0),
    total     NUMERIC NOT NULL CHECK (CAST(total AS REAL) >= 0),
    bags      INTEGER NOT NULL CHECK (bags >= 0),
    FOREIGN KEY (sale_id) REFERENCES sales(sale_id) ON DELETE CASCADE,
    FOREIGN KEY (item_id) REFERENCES items(item_id) ON DELETE RESTRICT
);
CREATE INDEX IF NOT EXISTS idx_sale_items_sale ON sale_items(sale_id);
CREATE INDEX IF NOT EXISTS idx_sale_items_item ON sale_items(item_id);

/* -------- docs: purchases -------- */
CREATE TABLE IF NOT EXISTS purchases (
    purchase_id       INTEGER PRIMARY KEY AUTOINCREMENT,
    bill_no           TEXT NOT NULL,
    party_id          INTEGER NOT NULL,
    party_name        TEXT NOT NULL,
    phone_number      TEXT NOT NULL,
    date              DATE NOT NULL,
    total_amount      NUMERIC NOT NULL CHECK (CAST(total_amount AS REAL) >= 0),
    universal_item_id INTEGER,
    universal_bags    INTEGER NOT NULL DEFAULT 0,
    pdf_uri           TEXT,
    created_at        TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at        TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (party_id)          REFERENCES parties(party_id) ON DELETE RESTRICT,
    FOREIGN KEY (universal_item_id) REFERENCES items(item_id)    ON DELETE RESTRICT
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_purchases_bill_no ON purchases(bill_no);
CREATE INDEX IF NOT EXISTS idx_purchases_date  ON purchases(date);
CREATE INDEX IF NOT EXISTS idx_purchases_party ON purchases(party_id);

CREATE TABLE IF NOT EXISTS purchase_items (
    line_id     INTEGER PRIMARY KEY AUTOINCREMENT,
    purchase_id INTEGER NOT NULL,
    item_id     INTEGER NOT NULL,
    item_name   TEXT NOT NULL,
    quantity    NUMERIC NOT NULL CHECK (CAST(quantity AS REAL) > 0),
    rate        NUMERIC NOT NULL CHECK (CAST(rate AS REAL) > 0),
    total       NUMERIC NOT NULL CHECK (CAST(total AS REAL) >= 0),
    bags        INTEGER NOT NULL CHECK (bags >= 0),
    FOREIGN KEY (purchase_id) REFERENCES purchases(purchase_id) ON DELETE CASCADE,
    FOREIGN KEY (item_id)     REFERENCES items(item_id)         ON DELETE RESTRICT
);
CREATE INDEX IF NOT EXISTS idx_purchase_items_purchase ON purchase_items(purchase_id);
CREATE INDEX IF NOT EXISTS idx_purchase_items_item     ON purchase_items(item_id);

/* -------- payments -------- */
CREATE TABLE IF NOT EXISTS payments (
    payment_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    payment_no   TEXT NOT NULL,
    type         TEXT NOT NULL CHECK (type IN ('payment-in','payment-out')),
    party_id     INTEGER NOT NULL,
    party_name   TEXT NOT NULL,
    phone_number TEXT NOT NULL,
    amount       NUMERIC NOT NULL CHECK (CAST(amount AS REAL) > 0),
    date         DATE NOT NULL,
    pdf_uri      TEXT,
    created_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at   TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (party_id) REFERENCES parties(party_id) ON DELETE RESTRICT
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_payments_no ON payments(payment_no);
CREATE INDEX IF NOT EXISTS idx_payments_date  ON payments(date);
CREATE INDEX IF NOT EXISTS idx_payments_party ON payments(party_id);


/* ======================== ITEM PROTECTION ======================== */
DROP TRIGGER IF EXISTS trg_items_protect_universal_delete;
CREATE TRIGGER trg_items_protect_universal_delete
BEFORE DELETE ON items
FOR EACH ROW
WHEN OLD.is_universal = 1
BEGIN
  SELECT RAISE(ABORT, 'The universal item cannot be deleted');
END;

DROP TRIGGER IF EXISTS trg_items_protect_universal_flag;
CREATE TRIGGER trg_items_protect_universal_flag
BEFORE UPDATE OF is_universal ON items
FOR EACH ROW
WHEN OLD.is_universal = 1 AND NEW.is_universal = 0
BEGIN
  SELECT RAISE(ABORT, 'The universal item cannot be demoted');
END;


/* ======================== LEDGER VIEW ======================== */
/* Signed effect of every stored document on its party's balance.
   sale +, purchase -, payment-in -, payment-out + */
DROP VIEW IF EXISTS v_party_effects;
CREATE VIEW v_party_effects AS
    SELECT party_id, 'sale' AS kind, sale_id AS doc_id, invoice_no AS ref_no, date,
           CAST(total_amount AS REAL) AS amount,
           CAST(total_amount AS REAL) AS effect
    FROM sales
UNION ALL
    SELECT party_id, 'purchase', purchase_id, bill_no, date,
           CAST(total_amount AS REAL),
           -CAST(total_amount AS REAL)
    FROM purchases
UNION ALL
    SELECT party_id, type, payment_id, payment_no, date,
           CAST(amount AS REAL),
           CASE type WHEN 'payment-in' THEN -CAST(amount AS REAL) ELSE CAST(amount AS REAL) END
    FROM payments;
"""


def init_schema(target: sqlite3.Connection | Path | str) -> None:
    """
    Apply the (idempotent) schema to an open connection or a database file.
    """
    if isinstance(target, sqlite3.Connection):
        target.executescript(SQL)
        return

    db_path = Path(target)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.executescript(SQL)
        conn.commit()
    conn.close()
    _log.info("Schema applied to %s", db_path)


if __name__ == "__main__":
    from ..config import DB_PATH

    target = sys.argv[1] if len(sys.argv) > 1 else DB_PATH
    init_schema(target)
