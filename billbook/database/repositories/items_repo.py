# billbook/database/repositories/items_repo.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
import sqlite3

from .. import transaction
from ...constants import (
    ITEM_CATEGORIES,
    KG_PER_BAG,
    STOCK_LOW,
    STOCK_OK,
    STOCK_OUT,
    UNIVERSAL_ITEM_NAME,
)
from ...errors import ConflictError, NotFoundError, ProtectedRecordError, ValidationError
from ...utils.helpers import like_pattern, to_decimal
from ...utils.validators import is_non_negative_number, non_empty, parse_decimal


def stock_status(stock: Decimal, low_stock_alert: Decimal) -> str:
    """Advisory only; never blocks a transaction."""
    if stock == 0:
        return STOCK_OUT
    if stock <= low_stock_alert:
        return STOCK_LOW
    return STOCK_OK


@dataclass
class Item:
    item_id: int | None
    product_name: str
    category: str
    opening_stock: Decimal
    low_stock_alert: Decimal
    is_universal: bool = False

    @property
    def stock_in_kg(self) -> Decimal:
        return self.opening_stock * KG_PER_BAG

    @property
    def status(self) -> str:
        return stock_status(self.opening_stock, self.low_stock_alert)


_COLUMNS = "item_id, product_name, category, opening_stock, low_stock_alert, is_universal"


class ItemsRepo:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self.conn.row_factory = sqlite3.Row

    # ---------------------------- helpers ----------------------------

    @staticmethod
    def _to_item(r: sqlite3.Row) -> Item:
        return Item(
            item_id=int(r["item_id"]),
            product_name=r["product_name"],
            category=r["category"],
            opening_stock=to_decimal(r["opening_stock"]),
            low_stock_alert=to_decimal(r["low_stock_alert"]),
            is_universal=bool(r["is_universal"]),
        )

    @staticmethod
    def validate_item_data(
        product_name: str | None,
        category: str | None,
        opening_stock,
        low_stock_alert,
    ) -> list[str]:
        errors: list[str] = []
        if not non_empty(product_name):
            errors.append("Product name is required")
        if category not in ITEM_CATEGORIES:
            errors.append("Category must be either Primary or Kirana")
        if not is_non_negative_number(opening_stock):
            errors.append("Opening stock must be a non-negative number")
        if not is_non_negative_number(low_stock_alert):
            errors.append("Low stock alert must be a non-negative number")
        return errors

    def _ensure_unique_name(self, product_name: str, exclude_id: int | None = None) -> None:
        r = self.conn.execute(
            "SELECT item_id FROM items WHERE product_name = ? COLLATE NOCASE",
            (product_name,),
        ).fetchone()
        if r and int(r["item_id"]) != exclude_id:
            raise ConflictError(f"An item named '{product_name}' already exists.")

    # ---------------------------- queries ----------------------------

    def list_items(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        is_universal: bool | None = None,
    ) -> list[Item]:
        """
        Items for listings: the universal item always first, then A-Z.
        category='all' (or None) disables the category filter.
        """
        where: list[str] = []
        params: list = []
        if category and category != "all":
            where.append("category = ?")
            params.append(category)
        if search and search.strip():
            where.append("product_name LIKE ? ESCAPE '\\'")
            params.append(like_pattern(search.strip()))
        if is_universal is not None:
            where.append("is_universal = ?")
            params.append(1 if is_universal else 0)

        sql = f"SELECT {_COLUMNS} FROM items"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY is_universal DESC, product_name COLLATE NOCASE"
        return [self._to_item(r) for r in self.conn.execute(sql, params).fetchall()]

    def get(self, item_id: int) -> Item | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM items WHERE item_id=?", (item_id,)
        ).fetchone()
        return self._to_item(r) if r else None

    def require(self, item_id: int) -> Item:
        it = self.get(item_id)
        if it is None:
            raise NotFoundError(f"Item {item_id} not found.")
        return it

    def get_by_name(self, product_name: str) -> Item | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM items WHERE product_name = ? COLLATE NOCASE",
            ((product_name or "").strip(),),
        ).fetchone()
        return self._to_item(r) if r else None

    def get_universal(self) -> Item | None:
        r = self.conn.execute(
            f"SELECT {_COLUMNS} FROM items WHERE is_universal = 1 LIMIT 1"
        ).fetchone()
        return self._to_item(r) if r else None

    def summary(self) -> dict:
        items = self.list_items()
        low = [it for it in items if it.opening_stock <= it.low_stock_alert]
        return {
            "total_items": len(items),
            "primary_items": sum(1 for it in items if it.category == "Primary"),
            "kirana_items": sum(1 for it in items if it.category == "Kirana"),
            "universal_items": sum(1 for it in items if it.is_universal),
            "total_stock": sum((it.opening_stock for it in items), Decimal("0")),
            "low_stock_count": len(low),
            "low_stock_items": [
                {
                    "item_id": it.item_id,
                    "product_name": it.product_name,
                    "current_stock": it.opening_stock,
                    "low_stock_alert": it.low_stock_alert,
                    "stock_in_kg": it.stock_in_kg,
                }
                for it in low
            ],
        }

    # ---------------------------- mutations ----------------------------

    def create(
        self,
        product_name: str,
        category: str,
        opening_stock=0,
        low_stock_alert=0,
    ) -> int:
        """
        Create a regular item. The universal item is only created by
        ensure_universal().
        """
        errors = self.validate_item_data(product_name, category, opening_stock, low_stock_alert)
        if errors:
            raise ValidationError("; ".join(errors), errors)
        name = product_name.strip()
        self._ensure_unique_name(name)
        with transaction(self.conn):
            cur = self.conn.execute(
                "INSERT INTO items(product_name, category, opening_stock, low_stock_alert, is_universal) "
                "VALUES (?, ?, ?, ?, 0)",
                (name, category, parse_decimal(opening_stock), parse_decimal(low_stock_alert)),
            )
            return int(cur.lastrowid)

    def update(
        self,
        item_id: int,
        product_name: str,
        category: str,
        opening_stock,
        low_stock_alert,
    ) -> None:
        """
        Edit an item, including a manual stock correction. The universal
        flag cannot be changed here.
        """
        errors = self.validate_item_data(product_name, category, opening_stock, low_stock_alert)
        if errors:
            raise ValidationError("; ".join(errors), errors)
        current = self.require(item_id)
        name = product_name.strip()
        if current.is_universal and name.lower() != current.product_name.lower():
            raise ProtectedRecordError("The universal item cannot be renamed.")
        self._ensure_unique_name(name, exclude_id=item_id)
        with transaction(self.conn):
            self.conn.execute(
                "UPDATE items SET product_name=?, category=?, opening_stock=?, low_stock_alert=?, "
                "updated_at=CURRENT_TIMESTAMP WHERE item_id=?",
                (name, category, parse_decimal(opening_stock), parse_decimal(low_stock_alert), item_id),
            )

    def delete(self, item_id: int) -> None:
        """
        Refused for the universal item and for items used on any document.
        """
        item = self.require(item_id)
        if item.is_universal:
            raise ProtectedRecordError("Universal items cannot be deleted.")
        try:
            with transaction(self.conn):
                self.conn.execute("DELETE FROM items WHERE item_id=?", (item_id,))
        except sqlite3.IntegrityError as e:
            raise ProtectedRecordError(
                f"Cannot delete '{item.product_name}': it is used on sales or purchases."
            ) from e

    def ensure_universal(self) -> Item:
        """
        Make sure the universal packaging item exists (idempotent).
        """
        existing = self.get_universal()
        if existing is not None:
            return existing
        with transaction(self.conn):
            plain = self.get_by_name(UNIVERSAL_ITEM_NAME)
            if plain is not None:
                self.conn.execute(
                    "UPDATE items SET is_universal=1, updated_at=CURRENT_TIMESTAMP WHERE item_id=?",
                    (plain.item_id,),
                )
            else:
                self.conn.execute(
                    "INSERT INTO items(product_name, category, opening_stock, low_stock_alert, is_universal) "
                    "VALUES (?, 'Primary', 0, 0, 1)",
                    (UNIVERSAL_ITEM_NAME,),
                )
        return self.get_universal()  # type: ignore[return-value]

    def add_stock(self, item_id: int, delta_bags) -> Decimal:
        """
        opening_stock += delta_bags; returns the new stock. Stock may go negative.
        """
        with transaction(self.conn):
            r = self.conn.execute(
                "SELECT opening_stock FROM items WHERE item_id=?", (item_id,)
            ).fetchone()
            if r is None:
                raise NotFoundError(f"Item {item_id} not found.")
            new_stock = to_decimal(r["opening_stock"]) + to_decimal(delta_bags)
            self.conn.execute(
                "UPDATE items SET opening_stock=?, updated_at=CURRENT_TIMESTAMP WHERE item_id=?",
                (new_stock, item_id),
            )
        return new_stock
