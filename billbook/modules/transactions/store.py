# billbook/modules/transactions/store.py
"""
Transaction record store: create / update / delete sales, purchases and payments.

Each mutation is one unit of work spanning the record, the party ledger and
the stock tracker:

    validate -> check number -> BEGIN IMMEDIATE
        ledger effect, stock effect, persist record
    COMMIT -> (create only) render + deliver document, best-effort

Validation and numbering errors are raised before anything is written. Any
other failure inside the unit of work rolls all three back and surfaces as
ConsistencyError. Delivery failures never undo a commit; they come back as a
DeliveryOutcome with success=False on the returned TransactionOutcome.
"""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
import logging
import sqlite3
from typing import Iterable, Optional, Sequence, Union

from ...constants import (
    KIND_PURCHASE,
    KIND_SALE,
    PAYMENT_TYPES,
    SCOPE_PURCHASE,
    SCOPE_SALE,
)
from ...database import transaction
from ...database.repositories.items_repo import ItemsRepo
from ...database.repositories.line_documents import DocumentLine, LineDocument, LineDocumentRepo
from ...database.repositories.parties_repo import PartiesRepo, Party, PartyKey
from ...database.repositories.payments_repo import Payment, PaymentsRepo
from ...database.repositories.purchases_repo import Purchase, PurchasesRepo
from ...database.repositories.sales_repo import Sale, SalesRepo
from ...errors import ConsistencyError, DeliveryError, DomainError, ValidationError
from ...utils.helpers import money, parse_date
from ...utils.validators import try_parse_decimal
from ..documents.delivery import DeliveryOutcome
from ..documents.dispatcher import DocumentDispatcher
from ..documents.snapshot import DocumentSnapshot, snapshot_for_document, snapshot_for_payment
from ..inventory.stock import StockTracker, UniversalMovement, bags_equivalent
from ..numbering.authority import NumberingAuthority, validate_format
from ..party.ledger import PartyLedger, ledger_effect
from .inputs import LineInput, PaymentInput, PurchaseInput, SaleInput

_log = logging.getLogger(__name__)

Record = Union[Sale, Purchase, Payment]


@dataclass
class TransactionOutcome:
    record: Record
    party: Optional[Party]
    balance_before: Decimal
    balance_after: Decimal
    delivery: Optional[DeliveryOutcome] = None

    @property
    def delivery_failed(self) -> bool:
        return self.delivery is not None and not self.delivery.success


@dataclass
class BulkDeleteResult:
    deleted: list[int] = field(default_factory=list)
    failed: dict[int, str] = field(default_factory=dict)

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)


def _collect(errors: list[str], fn, *args):
    """Run a validating call, append its messages to `errors` on failure."""
    try:
        return fn(*args)
    except ValidationError as e:
        errors.extend(e.errors or [str(e)])
        return None


def _parse_date(value) -> str:
    try:
        return parse_date(value)
    except ValueError as e:
        raise ValidationError(str(e), [str(e)]) from e


def _money_or_none(value) -> Optional[Decimal]:
    """money(value), or None when the rounded value does not fit the decimal context."""
    try:
        return money(value)
    except InvalidOperation:
        return None


class TransactionStore:
    def __init__(
        self,
        conn: sqlite3.Connection,
        dispatcher: Optional[DocumentDispatcher] = None,
    ):
        self.conn = conn
        self.dispatcher = dispatcher

        self.parties = PartiesRepo(conn)
        self.items = ItemsRepo(conn)
        self.sales = SalesRepo(conn)
        self.purchases = PurchasesRepo(conn)
        self.payments = PaymentsRepo(conn)

        self.ledger = PartyLedger(conn, self.parties)
        self.stock = StockTracker(conn, self.items)
        self.numbering = NumberingAuthority(conn)

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------
    @contextmanager
    def _unit_of_work(self, what: str):
        try:
            with transaction(self.conn):
                yield
        except DomainError:
            raise
        except Exception as e:
            _log.error("%s failed; rolled back", what, exc_info=True)
            raise ConsistencyError(f"{what} failed and was rolled back: {e}") from e

    def _repo(self, kind: str) -> LineDocumentRepo:
        return self.sales if kind == KIND_SALE else self.purchases

    def _apply_stock(self, kind: str, lines: Sequence[DocumentLine]) -> UniversalMovement:
        if kind == KIND_SALE:
            return self.stock.apply_sale_lines(lines)
        return self.stock.apply_purchase_lines(lines)

    def _reverse_stock(self, doc: LineDocument) -> None:
        movement = UniversalMovement(doc.universal_item_id, doc.universal_bags)
        if doc.kind == KIND_SALE:
            self.stock.reverse_sale_lines(doc.lines, movement)
        else:
            self.stock.reverse_purchase_lines(doc.lines, movement)

    def _resolve_lines(self, lines: Iterable[LineInput]) -> tuple[list[DocumentLine], list[str]]:
        """
        Map form lines to stored lines: resolve item names, check positive
        quantity/rate, compute total (rounded to money) and bags.
        """
        out: list[DocumentLine] = []
        errors: list[str] = []
        lines = list(lines or [])
        if not lines:
            return out, ["At least one item is required"]

        for n, ln in enumerate(lines, start=1):
            name = (ln.item_name or "").strip()
            item = self.items.get_by_name(name) if name else None
            if not name:
                errors.append(f"Line {n}: item name is required")
            elif item is None:
                errors.append(f"Line {n}: unknown item '{name}'")

            ok_q, qty = try_parse_decimal(ln.quantity)
            if not ok_q or qty <= 0:
                errors.append(f"Line {n}: quantity must be a positive number")
            ok_r, rate = try_parse_decimal(ln.rate)
            if not ok_r or rate <= 0:
                errors.append(f"Line {n}: rate must be a positive number")
            if item is None or not (ok_q and qty > 0) or not (ok_r and rate > 0):
                continue

            total = _money_or_none(qty * rate)
            if total is None:
                errors.append(f"Line {n}: amount is too large")
                continue
            if ln.total is not None:
                ok_t, given = try_parse_decimal(ln.total)
                if not ok_t or _money_or_none(given) != total:
                    errors.append(f"Line {n}: total must equal quantity x rate ({total})")
                    continue

            out.append(
                DocumentLine(
                    item_id=int(item.item_id),
                    item_name=item.product_name,
                    quantity=qty,
                    rate=rate,
                    total=total,
                    bags=bags_equivalent(qty),
                )
            )
        return out, errors

    def _prepare_document(
        self,
        scope: str,
        number,
        party_name,
        phone_number,
        date,
        lines: Iterable[LineInput],
        exclude_id: Optional[int] = None,
    ) -> tuple[str, PartyKey, str, list[DocumentLine], Decimal]:
        errors: list[str] = []
        label = "Invoice number" if scope == SCOPE_SALE else "Bill number"
        number = _collect(errors, validate_format, number, label)
        key = _collect(errors, PartyKey.of, party_name, phone_number)
        date_iso = _collect(errors, _parse_date, date)
        resolved, line_errors = self._resolve_lines(lines)
        errors.extend(line_errors)
        if errors:
            raise ValidationError("; ".join(errors), errors)

        # cheap checks first, uniqueness last
        number = self.numbering.ensure_available(number, scope, exclude_id=exclude_id)
        total = sum((ln.total for ln in resolved), Decimal("0.00"))
        return number, key, date_iso, resolved, total

    def _prepare_payment(self, data: PaymentInput) -> tuple[str, PartyKey, Decimal, str]:
        errors: list[str] = []
        if data.type not in PAYMENT_TYPES:
            errors.append("Payment type must be 'payment-in' or 'payment-out'")
        key = _collect(errors, PartyKey.of, data.party_name, data.phone_number)
        ok, raw = try_parse_decimal(data.amount)
        amount = _money_or_none(raw) if ok else None
        if ok and amount is None:
            errors.append("Amount is too large")
        elif amount is None or amount <= 0:
            errors.append("Amount must be greater than zero")
        date_iso = _collect(errors, _parse_date, data.date)
        if errors:
            raise ValidationError("; ".join(errors), errors)
        return data.type, key, amount, date_iso

    def _deliver(self, snapshot: DocumentSnapshot, set_uri) -> Optional[DeliveryOutcome]:
        if self.dispatcher is None:
            return None
        try:
            outcome = self.dispatcher.dispatch(snapshot)
        except DeliveryError as e:
            _log.warning(
                "%s %s saved, but delivery failed: %s", snapshot.document_type, snapshot.number, e
            )
            return DeliveryOutcome(success=False, error=str(e))
        if outcome.document_url:
            try:
                set_uri(outcome.document_url)
            except sqlite3.Error as e:
                # the document was sent; only the stored link is missing
                _log.warning(
                    "%s %s sent, but its document link was not saved: %s",
                    snapshot.document_type, snapshot.number, e,
                )
        return outcome

    # ------------------------------------------------------------------
    # Sales / purchases
    # ------------------------------------------------------------------
    def _create_document(self, kind: str, scope: str, data) -> TransactionOutcome:
        number, key, date_iso, lines, total = self._prepare_document(
            scope, data.number, data.party_name, data.phone_number, data.date, data.lines
        )
        repo = self._repo(kind)
        effect = ledger_effect(kind, total)

        with self._unit_of_work(f"Creating {kind} {number}"):
            party, balance_after = self.ledger.apply_create(key, effect)
            movement = self._apply_stock(kind, lines)
            doc = repo.DOC_CLASS(
                doc_id=None,
                number=number,
                party_id=int(party.party_id),
                party_name=key.name,
                phone_number=key.phone,
                date=date_iso,
                total_amount=total,
                universal_item_id=movement.item_id,
                universal_bags=movement.bags,
                lines=lines,
            )
            repo.insert(doc)

        _log.info("Created %s %s for %s: %s (balance %s)", kind, number, key.name, total, balance_after)
        delivery = self._deliver(
            snapshot_for_document(doc, balance_after),
            lambda uri: repo.set_pdf_uri(int(doc.doc_id), uri),
        )
        if delivery is not None and delivery.success:
            doc.pdf_uri = delivery.document_url
        return TransactionOutcome(
            record=doc,
            party=self.parties.get(int(party.party_id)),
            balance_before=balance_after - effect,
            balance_after=balance_after,
            delivery=delivery,
        )

    def _update_document(self, kind: str, scope: str, doc_id: int, data) -> TransactionOutcome:
        repo = self._repo(kind)
        old = repo.require(doc_id)
        number, key, date_iso, lines, total = self._prepare_document(
            scope, data.number, data.party_name, data.phone_number, data.date, data.lines,
            exclude_id=doc_id,
        )
        old_effect = ledger_effect(kind, old.total_amount)
        new_effect = ledger_effect(kind, total)

        with self._unit_of_work(f"Updating {kind} {old.number}"):
            party, balance_after = self.ledger.apply_update(old.party_id, key, old_effect, new_effect)
            self._reverse_stock(old)
            movement = self._apply_stock(kind, lines)
            doc = repo.DOC_CLASS(
                doc_id=doc_id,
                number=number,
                party_id=int(party.party_id),
                party_name=key.name,
                phone_number=key.phone,
                date=date_iso,
                total_amount=total,
                universal_item_id=movement.item_id,
                universal_bags=movement.bags,
                lines=lines,
                pdf_uri=old.pdf_uri,
            )
            repo.replace(doc)

        same_party = party.party_id == old.party_id
        _log.info("Updated %s %s (party %s -> %s)", kind, number, old.party_id, party.party_id)
        return TransactionOutcome(
            record=doc,
            party=self.parties.get(int(party.party_id)),
            balance_before=balance_after - (new_effect - old_effect if same_party else new_effect),
            balance_after=balance_after,
        )

    def _delete_document(self, kind: str, doc_id: int) -> TransactionOutcome:
        repo = self._repo(kind)
        old = repo.require(doc_id)
        effect = ledger_effect(kind, old.total_amount)

        with self._unit_of_work(f"Deleting {kind} {old.number}"):
            balance_after = self.ledger.apply_delete(old.party_id, effect)
            self._reverse_stock(old)
            repo.remove(doc_id)

        _log.info("Deleted %s %s (party %s balance %s)", kind, old.number, old.party_id, balance_after)
        return TransactionOutcome(
            record=old,
            party=self.parties.get(old.party_id),
            balance_before=balance_after + effect,
            balance_after=balance_after,
        )

    def create_sale(self, data: SaleInput) -> TransactionOutcome:
        return self._create_document(KIND_SALE, SCOPE_SALE, data)

    def update_sale(self, sale_id: int, data: SaleInput) -> TransactionOutcome:
        return self._update_document(KIND_SALE, SCOPE_SALE, sale_id, data)

    def delete_sale(self, sale_id: int) -> TransactionOutcome:
        return self._delete_document(KIND_SALE, sale_id)

    def create_purchase(self, data: PurchaseInput) -> TransactionOutcome:
        return self._create_document(KIND_PURCHASE, SCOPE_PURCHASE, data)

    def update_purchase(self, purchase_id: int, data: PurchaseInput) -> TransactionOutcome:
        return self._update_document(KIND_PURCHASE, SCOPE_PURCHASE, purchase_id, data)

    def delete_purchase(self, purchase_id: int) -> TransactionOutcome:
        return self._delete_document(KIND_PURCHASE, purchase_id)

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------
    def create_payment(self, data: PaymentInput) -> TransactionOutcome:
        ptype, key, amount, date_iso = self._prepare_payment(data)
        effect = ledger_effect(ptype, amount)

        with self._unit_of_work(f"Creating {ptype}"):
            party, balance_after = self.ledger.apply_create(key, effect)
            payment = Payment(
                payment_id=None,
                payment_no=self.payments.next_payment_no(date_iso),
                type=ptype,
                party_id=int(party.party_id),
                party_name=key.name,
                phone_number=key.phone,
                amount=amount,
                date=date_iso,
            )
            self.payments.insert(payment)

        _log.info("Created %s %s for %s: %s (balance %s)", ptype, payment.payment_no, key.name, amount, balance_after)
        delivery = self._deliver(
            snapshot_for_payment(payment, balance_after),
            lambda uri: self.payments.set_pdf_uri(int(payment.payment_id), uri),
        )
        if delivery is not None and delivery.success:
            payment.pdf_uri = delivery.document_url
        return TransactionOutcome(
            record=payment,
            party=self.parties.get(int(party.party_id)),
            balance_before=balance_after - effect,
            balance_after=balance_after,
            delivery=delivery,
        )

    def update_payment(self, payment_id: int, data: PaymentInput) -> TransactionOutcome:
        """Edit a payment; its system-assigned number is kept."""
        old = self.payments.require(payment_id)
        ptype, key, amount, date_iso = self._prepare_payment(data)
        old_effect = ledger_effect(old.type, old.amount)
        new_effect = ledger_effect(ptype, amount)

        with self._unit_of_work(f"Updating payment {old.payment_no}"):
            party, balance_after = self.ledger.apply_update(old.party_id, key, old_effect, new_effect)
            payment = Payment(
                payment_id=payment_id,
                payment_no=old.payment_no,
                type=ptype,
                party_id=int(party.party_id),
                party_name=key.name,
                phone_number=key.phone,
                amount=amount,
                date=date_iso,
                pdf_uri=old.pdf_uri,
            )
            self.payments.replace(payment)

        same_party = party.party_id == old.party_id
        _log.info("Updated payment %s", old.payment_no)
        return TransactionOutcome(
            record=payment,
            party=self.parties.get(int(party.party_id)),
            balance_before=balance_after - (new_effect - old_effect if same_party else new_effect),
            balance_after=balance_after,
        )

    def delete_payment(self, payment_id: int) -> TransactionOutcome:
        old = self.payments.require(payment_id)
        effect = ledger_effect(old.type, old.amount)

        with self._unit_of_work(f"Deleting payment {old.payment_no}"):
            balance_after = self.ledger.apply_delete(old.party_id, effect)
            self.payments.remove(payment_id)

        _log.info("Deleted payment %s (party %s balance %s)", old.payment_no, old.party_id, balance_after)
        return TransactionOutcome(
            record=old,
            party=self.parties.get(old.party_id),
            balance_before=balance_after + effect,
            balance_after=balance_after,
        )

    # ------------------------------------------------------------------
    # Bulk
    # ------------------------------------------------------------------
    def delete(self, kind: str, record_id: int) -> TransactionOutcome:
        if kind == KIND_SALE:
            return self.delete_sale(record_id)
        if kind == KIND_PURCHASE:
            return self.delete_purchase(record_id)
        if kind == "payment":
            return self.delete_payment(record_id)
        raise ValueError(f"Unknown transaction kind: {kind!r}")

    def delete_many(self, kind: str, ids: Iterable[int]) -> BulkDeleteResult:
        """
        One unit of work per id; failures are reported, not rolled into the
        others. The batch as a whole is not atomic.
        """
        result = BulkDeleteResult()
        for record_id in ids:
            try:
                self.delete(kind, record_id)
            except DomainError as e:
                _log.warning("Bulk delete of %s %s failed: %s", kind, record_id, e)
                result.failed[record_id] = str(e)
            else:
                result.deleted.append(record_id)
        _log.info("Bulk delete %s: %d deleted, %d failed", kind, len(result.deleted), len(result.failed))
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list_sales(self, **filters) -> list[Sale]:
        return self.sales.search(**filters)

    def get_sale(self, sale_id: int) -> Optional[Sale]:
        return self.sales.get(sale_id)

    def list_purchases(self, **filters) -> list[Purchase]:
        return self.purchases.search(**filters)

    def get_purchase(self, purchase_id: int) -> Optional[Purchase]:
        return self.purchases.get(purchase_id)

    def list_payments(self, **filters) -> list[Payment]:
        return self.payments.search(**filters)

    def get_payment(self, payment_id: int) -> Optional[Payment]:
        return self.payments.get(payment_id)

    def payment_summary(self) -> dict:
        return self.payments.summary()
