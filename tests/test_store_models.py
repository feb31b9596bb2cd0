"""Tests for item models, cursors and event payloads."""

from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from docvault.events import DocumentUpdatedEvent, LoggingEventSink, channel_name
from docvault.store import (
    Cursor,
    DocumentStatus,
    DocumentUpdate,
    FileItem,
    FolderItem,
    InvalidCursorError,
    ItemType,
    SortConfig,
)
from docvault.store.models import ITEM_ADAPTER

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _row(**overrides: object) -> dict[str, object]:
    data: dict[str, object] = {
        "id": "id-1",
        "user_id": "user-1",
        "parent_id": None,
        "name": "Item",
        "path": "Item",
        "type": "application/pdf",
        "collection_id": None,
        "created_at": NOW,
        "updated_at": NOW,
    }
    data.update(overrides)
    return data


def test_item_adapter_discriminates_on_item_type() -> None:
    file_item = ITEM_ADAPTER.validate_python(
        _row(item_type=ItemType.FILE, size=10, status=2, extracted_text=None)
    )
    folder = ITEM_ADAPTER.validate_python(
        _row(item_type="FOLDER", type="folder", size=0, status=None)
    )

    assert isinstance(file_item, FileItem)
    assert file_item.status is DocumentStatus.COMPLETED
    assert isinstance(folder, FolderItem)
    assert folder.status is None
    assert folder.size == 0


def test_file_item_requires_status() -> None:
    with pytest.raises(ValidationError):
        ITEM_ADAPTER.validate_python(_row(item_type="FILE", size=1, status=None))


def test_cursor_token_round_trips_and_uses_client_keys() -> None:
    cursor = Cursor(item_type=ItemType.FOLDER, value=None, id="abc")

    token = cursor.encode()
    padded = token + "=" * (-len(token) % 4)
    payload = base64.urlsafe_b64decode(padded).decode("utf-8")
    decoded = Cursor.decode(token)

    assert "=" not in token
    assert '"itemTypeValue":"FOLDER"' in payload
    assert decoded.item_type is ItemType.FOLDER
    assert decoded.id == "abc"
    assert decoded.value is None
    assert decoded.is_complete()


@pytest.mark.parametrize(
    "value",
    ["Reports", "123", "1.5", "1700000000", "2024-01-02T03:04:05", "true", 2, 0, None, NOW],
)
def test_cursor_token_preserves_value(value: object) -> None:
    cursor = Cursor(item_type=ItemType.FILE, value=value, id="abc")

    decoded = Cursor.decode(cursor.encode())

    assert decoded == cursor
    assert type(decoded.value) is type(cursor.value)


def test_cursor_stores_timestamps_as_iso_text() -> None:
    assert Cursor(value=NOW, id="abc").value == "2024-01-01T00:00:00+00:00"


def test_cursor_without_value_is_incomplete() -> None:
    assert not Cursor(item_type=ItemType.FILE, id="abc").is_complete()
    assert not Cursor(value=NOW, id="abc").is_complete()
    assert Cursor.model_validate({"itemTypeValue": "FILE", "value": 3, "id": "x"}).is_complete()


@pytest.mark.parametrize("token", ["%%%", base64.urlsafe_b64encode(b"[1, 2]").decode()])
def test_malformed_cursor_token_raises(token: str) -> None:
    with pytest.raises(InvalidCursorError):
        Cursor.decode(token)


def test_sort_config_rejects_unknown_field() -> None:
    with pytest.raises(ValidationError):
        SortConfig(field="size")

    assert SortConfig(field="updatedAt").field == "updated_at"


def test_document_update_keeps_exception_message() -> None:
    update = DocumentUpdate(status=DocumentStatus.FAILED, error=RuntimeError("disk full"))

    assert update.error == "disk full"


def test_logging_sink_reports_channel(caplog: pytest.LogCaptureFixture) -> None:
    event = DocumentUpdatedEvent(document_id="doc-1", status=DocumentStatus.COMPLETED)

    with caplog.at_level(logging.INFO, logger="docvault.events"):
        LoggingEventSink().document_updated("ext-1", event)

    assert channel_name("ext-1") == "user:ext-1"
    assert "user:ext-1" in caplog.text
    assert '"documentId":"doc-1"' in caplog.text
