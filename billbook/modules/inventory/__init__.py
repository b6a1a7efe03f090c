# billbook/modules/inventory/__init__.py
# ItemsTableModel lives in .model (Qt).

from .stock import StockMovement, StockTracker, UniversalMovement, bags_equivalent

__all__ = [
    "StockMovement",
    "StockTracker",
    "UniversalMovement",
    "bags_equivalent",
]
