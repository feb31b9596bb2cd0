"""Seek-paginated listing of a single tree level."""

from __future__ import annotations

import logging
import operator
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import ColumnElement, and_, func, or_, select
from sqlalchemy.orm import Session, sessionmaker

from docvault.config import QuerySettings

from .errors import InvalidCursorError, InvalidQueryError
from .models import (
    ITEM_ADAPTER,
    Cursor,
    ItemPage,
    ItemType,
    ListOptions,
    SortDirection,
    SortField,
)
from .schema import DocumentRow

LOGGER = logging.getLogger(__name__)

# Folders have a NULL status; ordering on a coalesced value keeps the sort key
# non-null on every engine and below every real status.
_STATUS_NULL_SENTINEL = -1


class ItemQuery:
    """List the direct children of a folder (or the root) one page at a time.

    Items are ordered by the composite key ``(item_type ASC, sort field, id)``
    where the sort field and id share the requested direction, so every file
    precedes every folder and the order is total. Pages are fetched with a
    keyset seek past the cursor, never with an offset.
    """

    def __init__(
        self,
        sessions: sessionmaker[Session],
        settings: QuerySettings | None = None,
    ) -> None:
        self._sessions = sessions
        self._settings = settings or QuerySettings()

    def list_items(self, user_id: str, options: ListOptions | None = None) -> ItemPage:
        """Return one page of items owned by ``user_id`` under ``options.parent_id``.

        Args:
            user_id: Owner whose tree is listed; no other user's rows are visible.
            options: Parent, filters, sort, limit and cursor for the page.

        Returns:
            ItemPage: Items in composite order, plus a cursor when more remain.

        Raises:
            InvalidQueryError: If the limit exceeds the configured maximum.
            InvalidCursorError: If the cursor is unusable and the configured
                policy is ``reject``.
        """
        options = options or ListOptions()
        limit = self._resolve_limit(options.limit)
        field = options.sort.field
        descending = options.sort.direction is SortDirection.DESC
        sort_column = _sort_expression(field)

        conditions = _base_conditions(user_id, options)
        seek = self._seek_key(options.cursor, field)
        if seek is not None:
            item_type, bound, cursor_id = seek
            conditions.append(
                _seek_condition(item_type, bound, cursor_id, sort_column, descending)
            )

        statement = (
            select(DocumentRow)
            .where(and_(*conditions))
            .order_by(
                DocumentRow.item_type.asc(),
                sort_column.desc() if descending else sort_column.asc(),
                DocumentRow.id.desc() if descending else DocumentRow.id.asc(),
            )
            .limit(limit + 1)
        )

        with self._sessions() as session:
            rows = session.scalars(statement).all()
            has_more = len(rows) > limit
            page_rows = rows[:limit]
            items = [ITEM_ADAPTER.validate_python(row.to_dict()) for row in page_rows]
            next_cursor = None
            if has_more and page_rows:
                last = page_rows[-1]
                next_cursor = Cursor(
                    item_type=last.item_type,
                    value=_raw_sort_value(last, field),
                    id=last.id,
                )

        LOGGER.debug(
            "Listed %d item(s) for user %s under %s (has_more=%s)",
            len(items),
            user_id,
            options.parent_id or "<root>",
            has_more,
        )
        return ItemPage(items=items, next_cursor=next_cursor, has_more=has_more)

    def _resolve_limit(self, requested: Optional[int]) -> int:
        limit = requested if requested is not None else self._settings.default_limit
        if limit > self._settings.max_limit:
            raise InvalidQueryError(
                f"limit {limit} exceeds the maximum page size of {self._settings.max_limit}"
            )
        return limit

    def _seek_key(
        self, cursor: Optional[Cursor], field: SortField
    ) -> Optional[tuple[ItemType, Any, str]]:
        if cursor is None:
            return None
        try:
            if not cursor.is_complete():
                raise InvalidCursorError(
                    "Cursor must carry itemTypeValue, value and id to continue a listing"
                )
            assert cursor.item_type is not None and cursor.id is not None
            return cursor.item_type, _coerce_cursor_value(field, cursor.value), cursor.id
        except InvalidCursorError:
            if self._settings.incomplete_cursor == "reject":
                raise
            LOGGER.warning("Ignoring unusable pagination cursor; serving the first page instead.")
            return None


def _base_conditions(user_id: str, options: ListOptions) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = [DocumentRow.user_id == user_id]
    if options.parent_id is None:
        conditions.append(DocumentRow.parent_id.is_(None))
    else:
        conditions.append(DocumentRow.parent_id == options.parent_id)

    filters = options.filters
    if filters.name:
        conditions.append(DocumentRow.name.icontains(filters.name, autoescape=True))
    if filters.status is not None:
        conditions.append(DocumentRow.status == int(filters.status))
    return conditions


def _sort_expression(field: SortField) -> Any:
    column = getattr(DocumentRow, field)
    if field == "status":
        return func.coalesce(column, _STATUS_NULL_SENTINEL)
    return column


def _seek_condition(
    item_type: ItemType,
    bound: Any,
    cursor_id: str,
    sort_column: Any,
    descending: bool,
) -> ColumnElement[bool]:
    """Rows strictly after ``(item_type, bound, cursor_id)`` in composite order."""
    after = operator.lt if descending else operator.gt
    return or_(
        DocumentRow.item_type > item_type,
        and_(
            DocumentRow.item_type == item_type,
            or_(
                after(sort_column, bound),
                and_(sort_column == bound, after(DocumentRow.id, cursor_id)),
            ),
        ),
    )


def _raw_sort_value(row: DocumentRow, field: SortField) -> Any:
    value = getattr(row, field)
    if field == "status" and value is not None:
        return int(value)
    return value


def _coerce_cursor_value(field: SortField, value: Any) -> Any:
    """Convert a cursor value (possibly decoded from JSON) to the sort column's type."""
    if field in ("created_at", "updated_at"):
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, str):
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError as exc:
                raise InvalidCursorError(f"Cursor value {value!r} is not a timestamp") from exc
        else:
            raise InvalidCursorError(f"Cursor value {value!r} is not a timestamp")
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed

    if field == "status":
        if value is None:
            return _STATUS_NULL_SENTINEL
        if isinstance(value, bool):
            raise InvalidCursorError(f"Cursor value {value!r} is not a status")
        try:
            return int(value)
        except (TypeError, ValueError) as exc:
            raise InvalidCursorError(f"Cursor value {value!r} is not a status") from exc

    if not isinstance(value, str):
        raise InvalidCursorError(f"Cursor value {value!r} is not a name")
    return value


__all__ = ["ItemQuery"]
