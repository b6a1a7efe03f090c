# billbook/modules/documents/snapshot.py
"""
Immutable view of a saved transaction for rendering and delivery.

Snapshots are taken after the unit of work commits, so balance_after is the
party's balance including this transaction and balance_before is derived
from it: before = after - effect. For a payment-in that is after + amount,
for a payment-out after - amount.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from ...constants import (
    DOC_INVOICE,
    DOC_PAYMENT_RECEIPT,
    DOC_PAYMENT_VOUCHER,
    DOC_PURCHASE_BILL,
    KIND_PURCHASE,
    KIND_SALE,
    PAYMENT_IN,
)
from ...database.repositories.company_repo import CompanyProfile
from ...database.repositories.line_documents import LineDocument
from ...database.repositories.payments_repo import Payment
from ..party.ledger import ledger_effect


@dataclass(frozen=True)
class SnapshotLine:
    item_name: str
    quantity: Decimal
    rate: Decimal
    total: Decimal
    bags: int


@dataclass(frozen=True)
class DocumentSnapshot:
    document_type: str
    number: str
    party_name: str
    phone_number: str
    date: str
    amount: Decimal
    balance_after: Decimal
    balance_before: Decimal
    lines: tuple[SnapshotLine, ...] = field(default_factory=tuple)
    company: CompanyProfile | None = None

    @property
    def total_bags(self) -> int:
        return sum(ln.bags for ln in self.lines)

    @property
    def total_amount(self) -> Decimal:
        return self.amount


def document_type_for(kind: str) -> str:
    if kind == KIND_SALE:
        return DOC_INVOICE
    if kind == KIND_PURCHASE:
        return DOC_PURCHASE_BILL
    return DOC_PAYMENT_RECEIPT if kind == PAYMENT_IN else DOC_PAYMENT_VOUCHER


def balance_before(kind: str, amount, balance_after: Decimal) -> Decimal:
    return balance_after - ledger_effect(kind, amount)


def snapshot_for_document(
    doc: LineDocument,
    balance_after: Decimal,
    company: CompanyProfile | None = None,
) -> DocumentSnapshot:
    return DocumentSnapshot(
        document_type=document_type_for(doc.kind),
        number=doc.number,
        party_name=doc.party_name,
        phone_number=doc.phone_number,
        date=doc.date,
        amount=doc.total_amount,
        balance_after=balance_after,
        balance_before=balance_before(doc.kind, doc.total_amount, balance_after),
        lines=tuple(
            SnapshotLine(ln.item_name, ln.quantity, ln.rate, ln.total, ln.bags)
            for ln in doc.lines
        ),
        company=company,
    )


def snapshot_for_payment(
    payment: Payment,
    balance_after: Decimal,
    company: CompanyProfile | None = None,
) -> DocumentSnapshot:
    return DocumentSnapshot(
        document_type=document_type_for(payment.type),
        number=payment.payment_no,
        party_name=payment.party_name,
        phone_number=payment.phone_number,
        date=payment.date,
        amount=payment.amount,
        balance_after=balance_after,
        balance_before=balance_before(payment.type, payment.amount, balance_after),
        company=company,
    )
