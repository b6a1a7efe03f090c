from __future__ import annotations

from .line_documents import LineDocument, LineDocumentRepo


class Sale(LineDocument):
    kind = "sale"

    @property
    def invoice_no(self) -> str:
        return self.number


class SalesRepo(LineDocumentRepo):
    """
    Sales (invoices). invoice_no is user-assigned and unique among stored
    sales; deleting a sale frees its number.
    """
    TABLE = "sales"
    ITEMS_TABLE = "sale_items"
    ID_COL = "sale_id"
    NO_COL = "invoice_no"
    NUMBER_LABEL = "Invoice number"
    DOC_CLASS = Sale
