# billbook/database/repositories/__init__.py
"""
Repository layer public API.

Usage:
    from billbook.database.repositories import (
        # Company
        CompanyRepo, CompanyProfile,
        # Items
        ItemsRepo, Item, stock_status,
        # Parties
        PartiesRepo, Party, PartyKey,
        # Payments
        PaymentsRepo, Payment,
        # Purchases / Sales
        PurchasesRepo, Purchase, SalesRepo, Sale, DocumentLine,
    )
"""

# ---------------- Company ----------------
from .company_repo import CompanyRepo, CompanyProfile

# ---------------- Items ----------------
from .items_repo import ItemsRepo, Item, stock_status

# ---------------- Parties ----------------
from .parties_repo import PartiesRepo, Party, PartyKey

# ---------------- Payments ----------------
from .payments_repo import PaymentsRepo, Payment

# ---------------- Sales / Purchases ----------------
from .line_documents import DocumentLine, LineDocument, LineDocumentRepo
from .purchases_repo import PurchasesRepo, Purchase
from .sales_repo import SalesRepo, Sale

__all__ = [
    "CompanyRepo",
    "CompanyProfile",
    "ItemsRepo",
    "Item",
    "stock_status",
    "PartiesRepo",
    "Party",
    "PartyKey",
    "PaymentsRepo",
    "Payment",
    "DocumentLine",
    "LineDocument",
    "LineDocumentRepo",
    "PurchasesRepo",
    "Purchase",
    "SalesRepo",
    "Sale",
]
