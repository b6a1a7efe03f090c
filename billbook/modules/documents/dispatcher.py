from __future__ import annotations

from datetime import datetime
from typing import Optional

from .delivery import DeliveryGateway, DeliveryOutcome, default_message, document_specific_data
from .renderer import DocumentRenderer, document_file_name
from .snapshot import DocumentSnapshot


class DocumentDispatcher:
    """
    Render a snapshot to PDF and hand it to the delivery gateway.

    Raises DeliveryError on any failure; TransactionStore converts that into a
    warning on the saved transaction.
    """

    def __init__(self, renderer: DocumentRenderer, gateway: DeliveryGateway):
        self.renderer = renderer
        self.gateway = gateway

    def dispatch(
        self,
        snapshot: DocumentSnapshot,
        message: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> DeliveryOutcome:
        pdf = self.renderer.render(snapshot)
        file_name = document_file_name(snapshot, now)
        return self.gateway.send(
            pdf,
            file_name,
            snapshot.phone_number,
            message or default_message(snapshot.document_type, file_name),
            snapshot.document_type,
            document_specific_data(snapshot),
        )
