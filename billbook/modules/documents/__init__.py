# billbook/modules/documents/__init__.py

from .delivery import (
    DeliveryGateway,
    DeliveryOutcome,
    default_message,
    document_specific_data,
    format_phone_number,
)
from .dispatcher import DocumentDispatcher
from .renderer import DocumentRenderer, document_file_name, sanitize_filename
from .snapshot import (
    DocumentSnapshot,
    SnapshotLine,
    balance_before,
    snapshot_for_document,
    snapshot_for_payment,
)

__all__ = [
    "DeliveryGateway",
    "DeliveryOutcome",
    "default_message",
    "document_specific_data",
    "format_phone_number",
    "DocumentDispatcher",
    "DocumentRenderer",
    "document_file_name",
    "sanitize_filename",
    "DocumentSnapshot",
    "SnapshotLine",
    "balance_before",
    "snapshot_for_document",
    "snapshot_for_payment",
]
