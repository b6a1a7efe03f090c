from __future__ import annotations

from typing import Any, List, Optional
from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex

from ...database.repositories.items_repo import Item
from ...utils.helpers import fmt_quantity


class ItemsTableModel(QAbstractTableModel):
    """
    Items with stock shown both in bags and kg.

    Rows are kept universal-first whatever order they are given in, so the
    packaging item always heads the listing.
    """
    HEADERS: List[str] = ["Item", "Category", "Stock (bags)", "Stock (kg)", "Low Stock Alert", "Status"]

    # bool: row is the universal packaging item
    IS_UNIVERSAL_ROLE = Qt.UserRole + 1

    _NUMERIC_COLS = (2, 3, 4)

    def __init__(self, rows: Optional[List[Item]] = None) -> None:
        super().__init__()
        self._rows: List[Item] = self._ordered(rows)

    @staticmethod
    def _ordered(rows: Optional[List[Item]]) -> List[Item]:
        # stable: keeps the caller's order within each group
        return sorted(rows or [], key=lambda it: not it.is_universal)

    # ---------- Qt model basics ----------

    def rowCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self._rows)

    def columnCount(self, parent: QModelIndex = QModelIndex()) -> int:
        return len(self.HEADERS)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole) -> Any:
        if not index.isValid():
            return None

        it = self._rows[index.row()]
        col = index.column()

        if role in (Qt.DisplayRole, Qt.EditRole):
            if col == 0:
                return it.product_name
            if col == 1:
                return it.category
            if col == 2:
                return fmt_quantity(it.opening_stock)
            if col == 3:
                return fmt_quantity(it.stock_in_kg)
            if col == 4:
                return fmt_quantity(it.low_stock_alert)
            if col == 5:
                return it.status
            return None

        if role == Qt.TextAlignmentRole and col in self._NUMERIC_COLS:
            return int(Qt.AlignRight | Qt.AlignVCenter)

        if role == self.IS_UNIVERSAL_ROLE:
            return it.is_universal

        return None

    def headerData(self, section: int, orientation: Qt.Orientation, role: int = Qt.DisplayRole) -> Any:
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            try:
                return self.HEADERS[section]
            except IndexError:
                return ""
        return super().headerData(section, orientation, role)

    # ---------- helpers ----------

    def at(self, row: int) -> Item:
        return self._rows[row]

    def replace(self, rows: List[Item]) -> None:
        self.beginResetModel()
        self._rows = self._ordered(rows)
        self.endResetModel()
