"""Document change notifications sent to a user's realtime channel."""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol, Tuple

from pydantic import BaseModel, Field

from docvault.store.models import DocumentStatus

LOGGER = logging.getLogger(__name__)

DOCUMENT_UPDATED = "document-updated"


class DocumentUpdatedEvent(BaseModel):
    """Payload broadcast after a document's status changes."""

    document_id: str = Field(serialization_alias="documentId")
    status: DocumentStatus
    error: Optional[str] = None


def channel_name(external_id: str) -> str:
    """Return the broadcast channel for a user's external id."""
    return f"user:{external_id}"


class DocumentEventSink(Protocol):
    """Receiver for document notifications. Delivery is best effort."""

    def document_updated(self, external_id: str, event: DocumentUpdatedEvent) -> None: ...


class LoggingEventSink:
    """Sink that records broadcasts in the application log."""

    def document_updated(self, external_id: str, event: DocumentUpdatedEvent) -> None:
        LOGGER.info(
            "broadcast %s on %s: %s",
            DOCUMENT_UPDATED,
            channel_name(external_id),
            event.model_dump_json(by_alias=True),
        )


class RecordingEventSink:
    """Sink that keeps every event in memory, in delivery order."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, DocumentUpdatedEvent]] = []

    def document_updated(self, external_id: str, event: DocumentUpdatedEvent) -> None:
        self.events.append((external_id, event))


__all__ = [
    "DOCUMENT_UPDATED",
    "DocumentUpdatedEvent",
    "DocumentEventSink",
    "LoggingEventSink",
    "RecordingEventSink",
    "channel_name",
]
