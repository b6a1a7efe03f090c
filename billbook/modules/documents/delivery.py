# billbook/modules/documents/delivery.py
"""
Client for the upload/messaging service that stores document PDFs and sends
them to the party over WhatsApp.

    POST /upload                 multipart 'file'  -> {success, url}
    POST /upload/send-whatsapp   JSON payload      -> {success, messageId, status}
    GET  /upload/status
    GET  /upload/test-whatsapp

Transport errors, non-2xx responses and {"success": false} bodies all raise
DeliveryError.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import re
from typing import Any, Dict, Optional

import httpx

from ...config import API_BASE_URL, HTTP_TIMEOUT
from ...constants import (
    DEFAULT_COUNTRY_CODE,
    DOC_INVOICE,
    DOC_PAYMENT_RECEIPT,
    DOC_PAYMENT_VOUCHER,
    DOC_PURCHASE_BILL,
)
from ...errors import DeliveryError
from .snapshot import DocumentSnapshot

_log = logging.getLogger(__name__)


@dataclass
class DeliveryOutcome:
    success: bool
    message_id: Optional[str] = None
    status: Optional[str] = None
    document_url: Optional[str] = None
    error: Optional[str] = None


def format_phone_number(phone_number: str) -> str:
    """
    E.164 for the messaging service. Ten-digit numbers are taken as Indian
    mobiles (+91); a number already starting with '+' is passed through.
    """
    if phone_number is None or not str(phone_number).strip():
        raise ValueError("Phone number is required")
    raw = str(phone_number).strip()
    cleaned = re.sub(r"\D", "", raw)
    if len(cleaned) == 10:
        return f"+{DEFAULT_COUNTRY_CODE}{cleaned}"
    if len(cleaned) == 12 and cleaned.startswith(DEFAULT_COUNTRY_CODE):
        return f"+{cleaned}"
    if raw.startswith("+"):
        return raw
    return f"+{cleaned}"


_MESSAGES = {
    DOC_INVOICE: "📄 Invoice: {f}\n\nPlease find your invoice attached.",
    DOC_PURCHASE_BILL: "📄 Purchase Bill: {f}\n\nPlease find the purchase bill attached.",
    DOC_PAYMENT_RECEIPT: "📄 Payment Receipt: {f}\n\nPlease find your payment receipt attached.",
    DOC_PAYMENT_VOUCHER: "📄 Payment Voucher: {f}\n\nPlease find the payment voucher attached.",
}
_GENERIC_MESSAGE = "📄 Document: {f}\n\nPlease find the document attached."


def default_message(document_type: str, file_name: str) -> str:
    return _MESSAGES.get(document_type, _GENERIC_MESSAGE).format(f=file_name)


def document_specific_data(snapshot: DocumentSnapshot) -> Dict[str, Any]:
    """Extra payload fields the messaging service uses for its caption."""
    amount = float(snapshot.amount)
    t = snapshot.document_type
    if t == DOC_INVOICE:
        return {"invoiceNo": snapshot.number, "customerName": snapshot.party_name, "amount": amount}
    if t == DOC_PURCHASE_BILL:
        return {"billNo": snapshot.number, "supplierName": snapshot.party_name, "amount": amount}
    if t == DOC_PAYMENT_RECEIPT:
        return {"receiptNo": snapshot.number, "customerName": snapshot.party_name, "amount": amount}
    if t == DOC_PAYMENT_VOUCHER:
        return {"voucherNo": snapshot.number, "supplierName": snapshot.party_name, "amount": amount}
    return {}


class DeliveryGateway:
    def __init__(
        self,
        base_url: str = API_BASE_URL,
        timeout: float = HTTP_TIMEOUT,
        client: Optional[httpx.Client] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "DeliveryGateway":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            _log.warning("Delivery service unreachable (%s %s): %s", method, path, e)
            raise DeliveryError(f"Delivery service unreachable: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"data": data}

        if response.is_error:
            detail = data.get("error") or data.get("message") or response.reason_phrase
            raise DeliveryError(f"{method} {path} failed with HTTP {response.status_code}: {detail}")
        return data

    # ---- endpoints --------------------------------------------------------

    def upload_pdf(self, pdf: bytes, file_name: str) -> str:
        """Upload the PDF and return its public URL."""
        data = self._request(
            "POST", "/upload", files={"file": (file_name, pdf, "application/pdf")}
        )
        url = data.get("url")
        if not data.get("success") or not url:
            raise DeliveryError(data.get("error") or "Failed to upload PDF")
        if data.get("local"):
            _log.info("Upload stored locally: %s", url)
        return url

    def send_whatsapp(self, payload: Dict[str, Any]) -> DeliveryOutcome:
        data = self._request("POST", "/upload/send-whatsapp", json=payload)
        if not data.get("success"):
            raise DeliveryError(data.get("error") or "Failed to send WhatsApp message")
        return DeliveryOutcome(
            success=True,
            message_id=data.get("messageId"),
            status=data.get("status"),
            document_url=payload.get("documentUrl"),
        )

    def send(
        self,
        pdf: bytes,
        file_name: str,
        phone_number: str,
        message: Optional[str] = None,
        document_type: str = "document",
        extra: Optional[Dict[str, Any]] = None,
    ) -> DeliveryOutcome:
        """Upload, then send the uploaded document to `phone_number`."""
        try:
            phone = format_phone_number(phone_number)
        except ValueError as e:
            raise DeliveryError(str(e)) from e

        url = self.upload_pdf(pdf, file_name)
        payload: Dict[str, Any] = {
            "phoneNumber": phone,
            "documentUrl": url,
            "fileName": file_name,
            "message": message or default_message(document_type, file_name),
            "documentType": document_type,
        }
        payload.update(extra or {})
        outcome = self.send_whatsapp(payload)
        _log.info("Sent %s %s to %s (message %s)", document_type, file_name, phone, outcome.message_id)
        return outcome

    def status(self) -> Dict[str, Any]:
        return self._request("GET", "/upload/status")

    def test_connection(self) -> bool:
        try:
            data = self._request("GET", "/upload/test-whatsapp")
        except DeliveryError as e:
            _log.warning("WhatsApp connection test failed: %s", e)
            return False
        return bool(data.get("success"))
