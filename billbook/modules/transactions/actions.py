# billbook/modules/transactions/actions.py
"""
UI-facing wrappers around TransactionStore.

Each action returns an ActionResult instead of raising: domain errors become
success=False with the error text, and a failed document delivery becomes
success=True with a `warning` the screen can show next to the confirmation.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ...errors import DomainError
from .inputs import PaymentInput, PurchaseInput, SaleInput
from .store import TransactionOutcome, TransactionStore


@dataclass
class ActionResult:
    success: bool
    id: Optional[int] = None        # created/updated record id (if any)
    message: Optional[str] = None   # user-facing message
    payload: Optional[dict] = None  # any extra data (balances, failures, etc.)
    warning: Optional[str] = None   # soft problem that did not block the action


def _payload(outcome: TransactionOutcome) -> dict:
    return {
        "party_id": outcome.party.party_id if outcome.party else None,
        "balance_before": outcome.balance_before,
        "balance_after": outcome.balance_after,
    }


def _created(
    outcome: TransactionOutcome,
    record_id: Optional[int],
    plain: str,
    delivered: str,
    noun: str,
) -> ActionResult:
    payload = _payload(outcome)
    delivery = outcome.delivery
    if delivery is None:
        return ActionResult(success=True, id=record_id, message=plain, payload=payload)
    if delivery.success:
        payload["message_id"] = delivery.message_id
        payload["document_url"] = delivery.document_url
        return ActionResult(success=True, id=record_id, message=delivered, payload=payload)
    return ActionResult(
        success=True,
        id=record_id,
        message=plain,
        payload=payload,
        warning=f"{noun} created, but delivery failed: {delivery.error}",
    )


# ======================= Create ==========================================

def create_sale(*, store: TransactionStore, sale: SaleInput) -> ActionResult:
    try:
        outcome = store.create_sale(sale)
    except DomainError as e:
        return ActionResult(success=False, message=str(e), payload={"errors": e.errors})
    return _created(
        outcome,
        outcome.record.doc_id,
        plain="Sale created successfully!",
        delivered="Invoice created and sent to party via WhatsApp!",
        noun="Sale",
    )


def create_purchase(*, store: TransactionStore, purchase: PurchaseInput) -> ActionResult:
    try:
        outcome = store.create_purchase(purchase)
    except DomainError as e:
        return ActionResult(success=False, message=str(e), payload={"errors": e.errors})
    return _created(
        outcome,
        outcome.record.doc_id,
        plain="Purchase created successfully!",
        delivered="Purchase bill created and sent to supplier via WhatsApp!",
        noun="Purchase",
    )


def create_payment(*, store: TransactionStore, payment: PaymentInput) -> ActionResult:
    try:
        outcome = store.create_payment(payment)
    except DomainError as e:
        return ActionResult(success=False, message=str(e), payload={"errors": e.errors})
    return _created(
        outcome,
        outcome.record.payment_id,
        plain="Payment created successfully!",
        delivered="PDF Generated and Sent Successfully!",
        noun="Payment",
    )


# ======================= Update / delete =================================

def update_sale(*, store: TransactionStore, sale_id: int, sale: SaleInput) -> ActionResult:
    try:
        outcome = store.update_sale(sale_id, sale)
    except DomainError as e:
        return ActionResult(success=False, message=str(e), payload={"errors": e.errors})
    return ActionResult(success=True, id=sale_id, message="Sale updated successfully!", payload=_payload(outcome))


def update_purchase(*, store: TransactionStore, purchase_id: int, purchase: PurchaseInput) -> ActionResult:
    try:
        outcome = store.update_purchase(purchase_id, purchase)
    except DomainError as e:
        return ActionResult(success=False, message=str(e), payload={"errors": e.errors})
    return ActionResult(success=True, id=purchase_id, message="Purchase updated successfully!", payload=_payload(outcome))


def update_payment(*, store: TransactionStore, payment_id: int, payment: PaymentInput) -> ActionResult:
    try:
        outcome = store.update_payment(payment_id, payment)
    except DomainError as e:
        return ActionResult(success=False, message=str(e), payload={"errors": e.errors})
    return ActionResult(success=True, id=payment_id, message="Payment updated successfully", payload=_payload(outcome))


_DELETED = {
    "sale": "Sale deleted successfully!",
    "purchase": "Purchase deleted successfully!",
    "payment": "Payment deleted successfully",
}


def delete_record(*, store: TransactionStore, kind: str, record_id: int) -> ActionResult:
    """kind: 'sale' | 'purchase' | 'payment'"""
    try:
        outcome = store.delete(kind, record_id)
    except DomainError as e:
        return ActionResult(success=False, id=record_id, message=str(e))
    return ActionResult(success=True, id=record_id, message=_DELETED[kind], payload=_payload(outcome))


def delete_many(*, store: TransactionStore, kind: str, ids: Iterable[int]) -> ActionResult:
    result = store.delete_many(kind, ids)
    payload = {"deleted": result.deleted, "failed": result.failed}
    noun = f"{kind}s" if result.deleted_count != 1 else kind
    if result.failed:
        return ActionResult(
            success=result.deleted_count > 0,
            message=f"{result.deleted_count} {noun} deleted, {len(result.failed)} failed.",
            payload=payload,
            warning="Some records could not be deleted.",
        )
    return ActionResult(
        success=True,
        message=f"{result.deleted_count} {noun} deleted successfully!",
        payload=payload,
    )
