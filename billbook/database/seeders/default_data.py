# billbook/database/seeders/default_data.py
"""
Idempotent defaults every database needs:
  - the single company_info row (placeholder name until settings are saved)
  - the universal packaging item (Bardana)
"""
import sqlite3

from ...constants import UNIVERSAL_ITEM_NAME


def seed(conn: sqlite3.Connection) -> None:
    conn.execute(
        "INSERT OR IGNORE INTO company_info(company_id, business_name) VALUES (1, ?)",
        ("Your Business Name",),
    )

    has_universal = conn.execute(
        "SELECT 1 FROM items WHERE is_universal = 1 LIMIT 1"
    ).fetchone()
    if has_universal:
        return

    # Promote an existing plain "Bardana" row rather than colliding on the name index.
    cur = conn.execute(
        "UPDATE items SET is_universal = 1, updated_at = CURRENT_TIMESTAMP "
        "WHERE product_name = ? COLLATE NOCASE",
        (UNIVERSAL_ITEM_NAME,),
    )
    if cur.rowcount == 0:
        conn.execute(
            "INSERT INTO items(product_name, category, opening_stock, low_stock_alert, is_universal) "
            "VALUES (?, 'Primary', 0, 0, 1)",
            (UNIVERSAL_ITEM_NAME,),
        )
