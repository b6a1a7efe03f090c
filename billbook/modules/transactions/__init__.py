# billbook/modules/transactions/__init__.py

from .actions import ActionResult
from .inputs import LineInput, PaymentInput, PurchaseInput, SaleInput
from .store import BulkDeleteResult, TransactionOutcome, TransactionStore

__all__ = [
    "ActionResult",
    "LineInput",
    "PaymentInput",
    "PurchaseInput",
    "SaleInput",
    "BulkDeleteResult",
    "TransactionOutcome",
    "TransactionStore",
]
