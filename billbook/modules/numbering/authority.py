# billbook/modules/numbering/authority.py
"""
Reference numbers for sales (invoice_no) and purchases (bill_no).

The user assigns these. The authority only enforces format and uniqueness
among stored documents of the same scope; deleting a document frees its
number. suggest_next() is a convenience default, not a sequence.

Payment numbers are system-assigned (see PaymentsRepo.next_payment_no).
"""
from __future__ import annotations

import re
import sqlite3

from ...constants import REFERENCE_NO_PATTERN, SCOPE_PURCHASE, SCOPE_SALE
from ...database.repositories.line_documents import LineDocumentRepo
from ...database.repositories.payments_repo import PaymentsRepo
from ...database.repositories.purchases_repo import PurchasesRepo
from ...database.repositories.sales_repo import SalesRepo
from ...errors import ConflictError, ValidationError
from ...utils.helpers import parse_date

_REFERENCE_RE = re.compile(REFERENCE_NO_PATTERN)

_LABELS = {SCOPE_SALE: "Invoice number", SCOPE_PURCHASE: "Bill number"}


def validate_format(number, label: str = "Reference number") -> str:
    """Return the trimmed number or raise ValidationError."""
    s = str(number or "").strip()
    if not s:
        raise ValidationError(f"{label} is required", [f"{label} is required"])
    if not _REFERENCE_RE.fullmatch(s):
        msg = f"{label} may only contain letters, digits, '-' and '_' (max 50 characters)"
        raise ValidationError(msg, [msg])
    return s


class NumberingAuthority:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._repos: dict[str, LineDocumentRepo] = {
            SCOPE_SALE: SalesRepo(conn),
            SCOPE_PURCHASE: PurchasesRepo(conn),
        }

    def _repo(self, scope: str) -> LineDocumentRepo:
        try:
            return self._repos[scope]
        except KeyError:
            raise ValueError(f"Unknown numbering scope: {scope!r}") from None

    def is_number_taken(self, number: str, scope: str, exclude_id: int | None = None) -> bool:
        return self._repo(scope).number_exists(str(number).strip(), exclude_id=exclude_id)

    def ensure_available(self, number, scope: str, exclude_id: int | None = None) -> str:
        """
        Format first, then uniqueness. Returns the normalized number.
        exclude_id lets an edit keep its own number.
        """
        label = _LABELS.get(scope, "Reference number")
        s = validate_format(number, label)
        if self.is_number_taken(s, scope, exclude_id=exclude_id):
            raise ConflictError(
                f"{label} '{s}' already exists. Please use a different {label.lower()}."
            )
        return s

    def suggest_next(self, scope: str) -> str:
        m = self._repo(scope).max_numeric_number()
        return "1" if m is None else str(m + 1)

    def next_payment_no(self, date) -> str:
        return PaymentsRepo(self.conn).next_payment_no(parse_date(date))
