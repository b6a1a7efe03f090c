# billbook/modules/inventory/stock.py
"""
Stock tracker for sale/purchase lines.

Stock is counted in bags (KG_PER_BAG kg each). Every line moves its item by
bags_equivalent(quantity_kg), rounded up. The universal packaging item also
moves by the total bags of the non-universal lines on the document: one
packaging bag per bag shipped or received.

Sales decrement, purchases increment. Reversal uses the bags stored on the
lines and on the header, so edits and deletes undo exactly what was applied.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING
import logging
import sqlite3
from typing import Iterable, Sequence

from ...constants import KG_PER_BAG
from ...database import transaction
from ...database.repositories.items_repo import Item, ItemsRepo
from ...database.repositories.line_documents import DocumentLine
from ...database.repositories.purchases_repo import PurchasesRepo
from ...database.repositories.sales_repo import SalesRepo
from ...errors import NotFoundError, ValidationError
from ...utils.helpers import to_decimal
from ...utils.validators import try_parse_decimal

_log = logging.getLogger(__name__)


def bags_equivalent(kg) -> int:
    """ceil(kg / KG_PER_BAG); partial bags count as whole bags."""
    q = to_decimal(kg)
    if q <= 0:
        return 0
    return int((q / KG_PER_BAG).to_integral_value(rounding=ROUND_CEILING))


@dataclass(frozen=True)
class UniversalMovement:
    """Packaging bags a document moved (stored on the header for reversal)."""
    item_id: int | None
    bags: int


@dataclass(frozen=True)
class StockMovement:
    item_id: int
    product_name: str
    current: Decimal
    net_movement: Decimal

    @property
    def implied_initial(self) -> Decimal:
        """Stock before any stored document touched the item (includes manual edits)."""
        return self.current - self.net_movement


class StockTracker:
    def __init__(self, conn: sqlite3.Connection, items: ItemsRepo | None = None):
        self.conn = conn
        self.items = items or ItemsRepo(conn)

    # ---- helpers ---------------------------------------------------------

    @staticmethod
    def non_universal_bags(lines: Iterable[DocumentLine], universal: Item | None) -> int:
        uid = universal.item_id if universal is not None else None
        return sum(ln.bags for ln in lines if ln.item_id != uid)

    def _move(self, lines: Sequence[DocumentLine], sign: int) -> UniversalMovement:
        with transaction(self.conn):
            for ln in lines:
                self.items.add_stock(ln.item_id, sign * ln.bags)

            universal = self.items.get_universal()
            if universal is None:
                _log.debug("No universal item; skipping packaging consumption")
                return UniversalMovement(None, 0)

            bags = self.non_universal_bags(lines, universal)
            if bags:
                self.items.add_stock(int(universal.item_id), sign * bags)
            return UniversalMovement(int(universal.item_id), bags)

    def _unmove(self, lines: Sequence[DocumentLine], universal: UniversalMovement, sign: int) -> None:
        with transaction(self.conn):
            for ln in lines:
                self.items.add_stock(ln.item_id, sign * ln.bags)
            if universal.item_id is not None and universal.bags:
                self.items.add_stock(universal.item_id, sign * universal.bags)

    # ---- apply / reverse -------------------------------------------------

    def apply_sale_lines(self, lines: Sequence[DocumentLine]) -> UniversalMovement:
        return self._move(lines, -1)

    def apply_purchase_lines(self, lines: Sequence[DocumentLine]) -> UniversalMovement:
        return self._move(lines, +1)

    def reverse_sale_lines(self, lines: Sequence[DocumentLine], universal: UniversalMovement) -> None:
        self._unmove(lines, universal, +1)

    def reverse_purchase_lines(self, lines: Sequence[DocumentLine], universal: UniversalMovement) -> None:
        self._unmove(lines, universal, -1)

    # ---- manual packaging adjustment --------------------------------------

    def adjust_universal_stock(self, operation: str, kg) -> Item:
        """
        Add or subtract packaging stock given in kg (rounded up to bags).
        operation: 'add' | 'subtract'
        """
        if operation not in ("add", "subtract"):
            raise ValidationError("Operation must be 'add' or 'subtract'")
        ok, qty = try_parse_decimal(kg)
        if not ok or qty <= 0:
            raise ValidationError("Quantity must be a positive number")
        universal = self.items.get_universal()
        if universal is None:
            raise NotFoundError("Universal item not found. Initialize it first.")
        bags = bags_equivalent(qty)
        sign = 1 if operation == "add" else -1
        self.items.add_stock(int(universal.item_id), sign * bags)
        _log.info("Universal stock %s %s bag(s) (%s kg)", operation, bags, qty)
        return self.items.require(int(universal.item_id))

    # ---- checks -----------------------------------------------------------

    def net_movement(self, item_id: int) -> Decimal:
        """Signed bags all stored documents applied to the item."""
        sales, purchases = SalesRepo(self.conn), PurchasesRepo(self.conn)
        out = sales.bags_by_item().get(item_id, 0) + sales.universal_bags_by_item().get(item_id, 0)
        inc = purchases.bags_by_item().get(item_id, 0) + purchases.universal_bags_by_item().get(item_id, 0)
        return Decimal(inc - out)

    def expected_stock(self, item_id: int, initial) -> Decimal:
        """initial + every stored sale/purchase movement of the item."""
        return to_decimal(initial) + self.net_movement(item_id)

    def movements(self) -> list[StockMovement]:
        return [
            StockMovement(
                item_id=int(it.item_id),
                product_name=it.product_name,
                current=it.opening_stock,
                net_movement=self.net_movement(int(it.item_id)),
            )
            for it in self.items.list_items()
        ]
