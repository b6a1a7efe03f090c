# billbook/modules/party/__init__.py
# PartiesTableModel lives in .model and is imported from there (pulls in QtGui).

from .ledger import BalanceDrift, PartyLedger, ledger_effect

__all__ = [
    "BalanceDrift",
    "PartyLedger",
    "ledger_effect",
]
