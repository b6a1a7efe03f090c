from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex
from PySide6.QtGui import QColor

from ...database.repositories.parties_repo import Party
from ...utils.helpers import fmt_money


class PartiesTableModel(QAbstractTableModel):
    """
    Party directory table.

    Balance is coloured by who owes whom: green when the party owes us,
    red when we owe the party, grey when settled.
    """

    HEADERS = ["Name", "Phone", "Balance"]

    # Raw Decimal balance, for sorting/filtering proxies
    BALANCE_ROLE = Qt.UserRole + 1

    POSITIVE_COLOR = QColor(22, 163, 74)
    NEGATIVE_COLOR = QColor(220, 38, 38)
    NEUTRAL_COLOR = QColor(107, 114, 128)

    def __init__(self, rows: list[Party]):
        super().__init__()
        self._rows = rows

    # --- Qt model basics ----------------------------------------------------

    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self.HEADERS)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid():
            return None

        p = self._rows[index.row()]
        c = index.column()

        if role in (Qt.DisplayRole, Qt.EditRole):
            values = [p.name, p.phone_number, fmt_money(p.balance)]
            return values[c]

        if role == Qt.ForegroundRole and c == 2:
            status = p.balance_status
            if status == "positive":
                return self.POSITIVE_COLOR
            if status == "negative":
                return self.NEGATIVE_COLOR
            return self.NEUTRAL_COLOR

        if role == Qt.TextAlignmentRole and c == 2:
            return int(Qt.AlignRight | Qt.AlignVCenter)

        if role == self.BALANCE_ROLE:
            return p.balance

        return None

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            return self.HEADERS[section]
        return super().headerData(section, orientation, role)

    # --- helpers ------------------------------------------------------------

    def at(self, row: int) -> Party:
        return self._rows[row]

    def replace(self, rows: list[Party]):
        self.beginResetModel()
        self._rows = rows
        self.endResetModel()
