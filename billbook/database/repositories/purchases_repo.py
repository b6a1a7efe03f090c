from __future__ import annotations

from .line_documents import LineDocument, LineDocumentRepo


class Purchase(LineDocument):
    kind = "purchase"

    @property
    def bill_no(self) -> str:
        return self.number


class PurchasesRepo(LineDocumentRepo):
    """
    Purchases (supplier bills). bill_no is user-assigned and unique among
    stored purchases; deleting a purchase frees its number.
    """
    TABLE = "purchases"
    ITEMS_TABLE = "purchase_items"
    ID_COL = "purchase_id"
    NO_COL = "bill_no"
    NUMBER_LABEL = "Bill number"
    DOC_CLASS = Purchase
