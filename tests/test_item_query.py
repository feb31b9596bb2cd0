"""Tests for seek-paginated listing."""

from __future__ import annotations

import logging

import pytest
from seed import SeededTree, utc
from sqlalchemy.orm import Session, sessionmaker

from docvault.config import QuerySettings
from docvault.store import (
    Cursor,
    DocumentStatus,
    DocumentStore,
    FilterConfig,
    FolderItem,
    InvalidCursorError,
    InvalidQueryError,
    ItemQuery,
    ItemType,
    ListOptions,
    NewDocument,
    NewFolder,
    SortConfig,
    SortDirection,
)

ROOT_ORDER = [
    "Another File",
    "Document 1 File",
    "Legacy File C",
    "Empty Folder Z",
    "Root Folder A",
]
FOLDER_A_ORDER = [
    "Additional File Beta",
    "Nested File 1 (Original)",
    "Additional File Gamma",
    "Additional Sub Y",
    "SubFolder X (Original)",
]


def _names(page) -> list[str]:
    return [item.name for item in page.items]


def _collect_pages(store: DocumentStore, user_id: str, options: ListOptions) -> list[str]:
    """Follow encoded cursors until the listing is exhausted."""
    names: list[str] = []
    token = None
    for _ in range(50):
        cursor = Cursor.decode(token) if token else None
        page = store.list_items(user_id, options.model_copy(update={"cursor": cursor}))
        names.extend(_names(page))
        if not page.has_more:
            assert page.next_cursor is None
            return names
        assert page.next_cursor is not None
        token = page.next_cursor.encode()
    raise AssertionError("pagination did not terminate")


def test_root_listing_groups_files_before_folders(
    store: DocumentStore, seeded: SeededTree
) -> None:
    page = store.list_items(seeded.user_id)

    assert _names(page) == ROOT_ORDER
    assert page.has_more is False
    assert page.next_cursor is None
    assert all(item.parent_id is None for item in page.items)
    assert all(item.user_id == seeded.user_id for item in page.items)
    folders = [item for item in page.items if item.item_type is ItemType.FOLDER]
    assert all(isinstance(item, FolderItem) and item.status is None for item in folders)


def test_root_listing_paginates_across_item_types(
    store: DocumentStore, seeded: SeededTree
) -> None:
    first = store.list_items(seeded.user_id, ListOptions(limit=3))

    assert _names(first) == ROOT_ORDER[:3]
    assert first.has_more is True
    assert first.next_cursor is not None
    assert first.next_cursor.item_type is ItemType.FILE
    assert first.next_cursor.value == utc(2023, 12, 31).isoformat()
    assert first.next_cursor.id == seeded["Legacy File C"]

    second = store.list_items(seeded.user_id, ListOptions(limit=3, cursor=first.next_cursor))

    assert _names(second) == ROOT_ORDER[3:]
    assert second.has_more is False
    assert second.next_cursor is None


def test_exact_page_boundary_reports_no_more(store: DocumentStore, seeded: SeededTree) -> None:
    page = store.list_items(seeded.user_id, ListOptions(limit=5))

    assert len(page.items) == 5
    assert page.has_more is False
    assert page.next_cursor is None


def test_sort_by_name_ascending_keeps_type_grouping(
    store: DocumentStore, seeded: SeededTree
) -> None:
    options = ListOptions(sort=SortConfig(field="name", direction=SortDirection.ASC))

    page = store.list_items(seeded.user_id, options)

    assert _names(page) == ROOT_ORDER


def test_sort_by_name_descending(store: DocumentStore, seeded: SeededTree) -> None:
    options = ListOptions(sort=SortConfig(field="name", direction=SortDirection.DESC))

    page = store.list_items(seeded.user_id, options)

    assert _names(page) == [
        "Legacy File C",
        "Document 1 File",
        "Another File",
        "Root Folder A",
        "Empty Folder Z",
    ]


def test_sort_by_status_orders_files_and_ties_folders_by_id(
    store: DocumentStore, seeded: SeededTree
) -> None:
    options = ListOptions(sort=SortConfig(field="status", direction=SortDirection.ASC))

    page = store.list_items(seeded.user_id, options)

    # EXTRACTING(1), COMPLETED(2), FAILED(3); folders share a NULL status.
    assert _names(page) == [
        "Another File",
        "Document 1 File",
        "Legacy File C",
        "Empty Folder Z",
        "Root Folder A",
    ]


def test_camel_case_sort_field_is_accepted(store: DocumentStore, seeded: SeededTree) -> None:
    options = ListOptions(sort=SortConfig(field="createdAt", direction=SortDirection.DESC))

    assert _names(store.list_items(seeded.user_id, options)) == ROOT_ORDER


def test_status_filter_returns_only_matching_files(
    store: DocumentStore, seeded: SeededTree
) -> None:
    options = ListOptions(filters=FilterConfig(status=DocumentStatus.COMPLETED))

    page = store.list_items(seeded.user_id, options)

    assert _names(page) == ["Document 1 File"]
    assert page.items[0].status is DocumentStatus.COMPLETED


def test_status_filter_accepts_uploaded(store: DocumentStore, seeded: SeededTree) -> None:
    options = ListOptions(
        parent_id=seeded["Root Folder A"],
        filters=FilterConfig(status=DocumentStatus.UPLOADED),
    )

    page = store.list_items(seeded.user_id, options)

    assert _names(page) == ["Nested File 1 (Original)"]


def test_name_filter_is_case_insensitive_substring(
    store: DocumentStore, seeded: SeededTree
) -> None:
    page = store.list_items(seeded.user_id, ListOptions(filters=FilterConfig(name="file")))

    assert _names(page) == ["Another File", "Document 1 File", "Legacy File C"]


def test_name_filter_treats_wildcards_literally(store: DocumentStore, seeded: SeededTree) -> None:
    page = store.list_items(seeded.user_id, ListOptions(filters=FilterConfig(name="%")))

    assert page.items == []


def test_listing_inside_folder(store: DocumentStore, seeded: SeededTree) -> None:
    folder_id = seeded["Root Folder A"]

    page = store.list_items(seeded.user_id, ListOptions(parent_id=folder_id))

    assert _names(page) == FOLDER_A_ORDER
    assert all(item.parent_id == folder_id for item in page.items)
    assert page.has_more is False


def test_pagination_inside_folder(store: DocumentStore, seeded: SeededTree) -> None:
    folder_id = seeded["Root Folder A"]

    first = store.list_items(seeded.user_id, ListOptions(parent_id=folder_id, limit=3))

    assert _names(first) == FOLDER_A_ORDER[:3]
    assert first.next_cursor is not None
    assert first.next_cursor.item_type is ItemType.FILE
    assert first.next_cursor.value == utc(2024, 1, 3, 12).isoformat()

    second = store.list_items(
        seeded.user_id,
        ListOptions(parent_id=folder_id, limit=3, cursor=first.next_cursor),
    )

    assert _names(second) == FOLDER_A_ORDER[3:]
    assert second.has_more is False


def test_nested_and_empty_folders(store: DocumentStore, seeded: SeededTree) -> None:
    nested = store.list_items(
        seeded.user_id, ListOptions(parent_id=seeded["SubFolder X (Original)"])
    )
    empty = store.list_items(seeded.user_id, ListOptions(parent_id=seeded["Empty Folder Z"]))

    assert _names(nested) == ["Deep File Alpha"]
    assert empty.items == []
    assert empty.has_more is False
    assert empty.next_cursor is None


def test_listing_is_scoped_to_the_owner(store: DocumentStore, seeded: SeededTree) -> None:
    mine = store.list_items(seeded.user_id)
    theirs = store.list_items(seeded.other_user_id)
    foreign_folder = store.list_items(
        seeded.other_user_id, ListOptions(parent_id=seeded["Root Folder A"])
    )

    assert "Other User File" not in _names(mine)
    assert _names(theirs) == ["Other User File"]
    assert foreign_folder.items == []


@pytest.mark.parametrize("field", ["created_at", "updated_at", "name", "status"])
@pytest.mark.parametrize("direction", [SortDirection.ASC, SortDirection.DESC])
@pytest.mark.parametrize("limit", [1, 2, 4])
def test_paged_walk_matches_single_listing(
    store: DocumentStore,
    seeded: SeededTree,
    field: str,
    direction: SortDirection,
    limit: int,
) -> None:
    for parent_id in (None, seeded["Root Folder A"]):
        sort = SortConfig(field=field, direction=direction)
        full = store.list_items(seeded.user_id, ListOptions(parent_id=parent_id, sort=sort))
        walked = _collect_pages(
            store, seeded.user_id, ListOptions(parent_id=parent_id, sort=sort, limit=limit)
        )

        assert walked == _names(full)
        assert len(set(walked)) == len(walked)


def test_limit_above_maximum_is_rejected(store: DocumentStore, seeded: SeededTree) -> None:
    with pytest.raises(InvalidQueryError):
        store.list_items(seeded.user_id, ListOptions(limit=101))


def test_default_limit_comes_from_settings(
    sessions: sessionmaker[Session], seeded: SeededTree
) -> None:
    query = ItemQuery(sessions, QuerySettings(default_limit=2))

    page = query.list_items(seeded.user_id)

    assert _names(page) == ROOT_ORDER[:2]
    assert page.has_more is True


def test_incomplete_cursor_is_rejected_by_default(
    store: DocumentStore, seeded: SeededTree
) -> None:
    cursor = Cursor(id=seeded["Legacy File C"], value=utc(2023, 12, 31))

    with pytest.raises(InvalidCursorError):
        store.list_items(seeded.user_id, ListOptions(cursor=cursor))


def test_incomplete_cursor_restarts_when_configured(
    sessions: sessionmaker[Session],
    seeded: SeededTree,
    caplog: pytest.LogCaptureFixture,
) -> None:
    query = ItemQuery(sessions, QuerySettings(incomplete_cursor="restart"))
    cursor = Cursor(item_type=ItemType.FILE, id=seeded["Legacy File C"])

    with caplog.at_level(logging.WARNING, logger="docvault.store.query"):
        page = query.list_items(seeded.user_id, ListOptions(cursor=cursor))

    assert _names(page) == ROOT_ORDER
    assert "Ignoring unusable pagination cursor" in caplog.text


def test_cursor_value_of_wrong_type_is_rejected(
    store: DocumentStore, seeded: SeededTree
) -> None:
    cursor = Cursor(item_type=ItemType.FILE, value="not-a-date", id=seeded["Legacy File C"])

    with pytest.raises(InvalidCursorError):
        store.list_items(seeded.user_id, ListOptions(cursor=cursor))


def test_cursor_survives_deletion_of_its_row(store: DocumentStore, seeded: SeededTree) -> None:
    first = store.list_items(seeded.user_id, ListOptions(limit=3))
    store.delete_item(seeded["Legacy File C"])

    second = store.list_items(seeded.user_id, ListOptions(limit=3, cursor=first.next_cursor))

    assert _names(second) == ROOT_ORDER[3:]


@pytest.mark.parametrize("direction", [SortDirection.ASC, SortDirection.DESC])
def test_name_cursor_keeps_numeric_and_date_like_names(
    store: DocumentStore, seeded: SeededTree, direction: SortDirection
) -> None:
    folder_id = seeded["Empty Folder Z"]
    file_names = ["2024-01-01", "2024-01-02T03:04:05", "123", "1.5", "1700000000", "true"]
    for name in file_names:
        store.create_document(
            NewDocument(
                user_id=seeded.user_id,
                name=name,
                path=f"{folder_id}/{name}",
                type="text/plain",
                parent_id=folder_id,
            )
        )
    store.create_folder(NewFolder(user_id=seeded.user_id, name="2024", parent_id=folder_id))
    options = ListOptions(
        parent_id=folder_id,
        sort=SortConfig(field="name", direction=direction),
        limit=1,
    )

    walked = _collect_pages(store, seeded.user_id, options)

    reverse = direction is SortDirection.DESC
    assert walked == [*sorted(file_names, reverse=reverse), "2024"]
