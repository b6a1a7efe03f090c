# tests/test_models.py
from decimal import Decimal

from PySide6.QtCore import Qt

from billbook.database.repositories.items_repo import Item
from billbook.database.repositories.parties_repo import Party
from billbook.modules.inventory.model import ItemsTableModel
from billbook.modules.party.model import PartiesTableModel


def _item(item_id, name, stock, alert=0, universal=False, category="Primary"):
    return Item(item_id, name, category, Decimal(stock), Decimal(alert), universal)


def test_items_model_puts_universal_first(qapp):
    model = ItemsTableModel([
        _item(1, "Rice", "4", "5", category="Kirana"),
        _item(2, "Bardana", "50", universal=True),
        _item(3, "Plastic-A", "97", "10"),
    ])
    assert model.rowCount() == 3
    assert model.columnCount() == 6
    assert model.at(0).product_name == "Bardana"
    assert [model.at(r).product_name for r in (1, 2)] == ["Rice", "Plastic-A"]

    idx = model.index(0, 0)
    assert model.data(idx, ItemsTableModel.IS_UNIVERSAL_ROLE) is True
    assert model.headerData(2, Qt.Horizontal) == "Stock (bags)"


def test_items_model_display_values(qapp):
    model = ItemsTableModel([_item(1, "Rice", "4", "5", category="Kirana")])
    row = [model.data(model.index(0, c)) for c in range(model.columnCount())]
    assert row == ["Rice", "Kirana", "4", "120", "5", "Low Stock"]

    model.replace([_item(1, "Rice", "0", "5")])
    assert model.data(model.index(0, 5)) == "Out of Stock"


def test_parties_model_colours_balance(qapp):
    model = PartiesTableModel([
        Party(1, "Acme", "9876543210", Decimal("650.00")),
        Party(2, "Beta", "9123456780", Decimal("-70.00")),
        Party(3, "Gamma", "9000000001", Decimal("0.00")),
    ])
    assert model.data(model.index(0, 2)) == "650.00"
    assert model.data(model.index(0, 2), Qt.ForegroundRole) == PartiesTableModel.POSITIVE_COLOR
    assert model.data(model.index(1, 2), Qt.ForegroundRole) == PartiesTableModel.NEGATIVE_COLOR
    assert model.data(model.index(2, 2), Qt.ForegroundRole) == PartiesTableModel.NEUTRAL_COLOR
    assert model.data(model.index(1, 2), PartiesTableModel.BALANCE_ROLE) == Decimal("-70.00")
    assert model.data(model.index(0, 0), Qt.ForegroundRole) is None
