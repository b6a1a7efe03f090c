# billbook/modules/documents/renderer.py
"""
HTML -> PDF rendering of invoices, purchase bills and payment receipts/vouchers.

Templates are packaged under billbook/resources/templates and loaded with
importlib.resources; WeasyPrint is imported only when a PDF is actually
produced. Every failure surfaces as DeliveryError so the caller can turn it
into a warning without touching the saved transaction.
"""
from __future__ import annotations

from datetime import datetime
from importlib import resources as importlib_resources
import logging
import re
from typing import Callable, Optional
import uuid

from jinja2 import Template

from ...constants import (
    DOC_INVOICE,
    DOC_PAYMENT_RECEIPT,
    DOC_PAYMENT_VOUCHER,
    DOC_PURCHASE_BILL,
)
from ...database.repositories.company_repo import CompanyProfile
from ...errors import DeliveryError
from ...utils.helpers import fmt_money, fmt_quantity
from ..company.cache import CompanyProfileCache
from .snapshot import DocumentSnapshot

_log = logging.getLogger(__name__)

TEMPLATE_PACKAGE = "billbook.resources.templates"

TEMPLATE_FILES = {
    DOC_INVOICE: "invoice.html",
    DOC_PURCHASE_BILL: "purchase-bill.html",
    DOC_PAYMENT_RECEIPT: "payment.html",
    DOC_PAYMENT_VOUCHER: "payment.html",
}

TITLES = {
    DOC_INVOICE: "TAX INVOICE",
    DOC_PURCHASE_BILL: "PURCHASE BILL",
    DOC_PAYMENT_RECEIPT: "PAYMENT RECEIPT",
    DOC_PAYMENT_VOUCHER: "PAYMENT VOUCHER",
}

PLACEHOLDER_COMPANY = CompanyProfile(business_name="Your Business Name")


def sanitize_filename(filename: str, max_length: int = 100) -> str:
    """
    Make a string safe for use as a file name: anything outside [A-Za-z0-9._-]
    becomes '_', the result is truncated, and an empty result gets a random token.
    """
    sanitized = re.sub(r"[^A-Za-z0-9._-]", "_", filename)[:max_length]
    if not sanitized:
        sanitized = f"file_{uuid.uuid4().hex[:8]}"
    return sanitized


def document_file_name(snapshot: DocumentSnapshot, now: Optional[datetime] = None) -> str:
    """<document-type>-<number>-<epoch ms>.pdf"""
    stamp = int((now or datetime.now()).timestamp() * 1000)
    return sanitize_filename(f"{snapshot.document_type}-{snapshot.number}-{stamp}") + ".pdf"


def html_to_pdf(html: str) -> bytes:
    from weasyprint import HTML

    return HTML(string=html).write_pdf()


def load_template(document_type: str) -> str:
    try:
        name = TEMPLATE_FILES[document_type]
    except KeyError:
        raise DeliveryError(f"Unsupported document type: {document_type}") from None
    try:
        return importlib_resources.files(TEMPLATE_PACKAGE).joinpath(name).read_text(encoding="utf-8")
    except (FileNotFoundError, OSError, ModuleNotFoundError) as e:
        _log.error("Failed to load template %s: %s", name, e, exc_info=True)
        raise DeliveryError(f"Template {name} could not be loaded") from e


class DocumentRenderer:
    def __init__(
        self,
        company_cache: CompanyProfileCache | None = None,
        pdf_writer: Callable[[str], bytes] = html_to_pdf,
    ):
        self.company_cache = company_cache
        self._pdf_writer = pdf_writer

    def _company(self, snapshot: DocumentSnapshot) -> CompanyProfile:
        if snapshot.company is not None:
            return snapshot.company
        if self.company_cache is not None:
            return self.company_cache.get()
        return PLACEHOLDER_COMPANY

    def render_html(self, snapshot: DocumentSnapshot) -> str:
        template = Template(load_template(snapshot.document_type), autoescape=True)
        try:
            return template.render(
                title=TITLES[snapshot.document_type],
                doc=snapshot,
                company=self._company(snapshot),
                money=fmt_money,
                qty=fmt_quantity,
            )
        except Exception as e:
            _log.error("Failed to render %s %s: %s", snapshot.document_type, snapshot.number, e, exc_info=True)
            raise DeliveryError(f"Could not render {snapshot.document_type} {snapshot.number}") from e

    def render(self, snapshot: DocumentSnapshot) -> bytes:
        html = self.render_html(snapshot)
        try:
            return self._pdf_writer(html)
        except Exception as e:
            _log.error("PDF conversion failed for %s %s: %s", snapshot.document_type, snapshot.number, e, exc_info=True)
            raise DeliveryError(f"Could not create PDF for {snapshot.document_type} {snapshot.number}") from e
