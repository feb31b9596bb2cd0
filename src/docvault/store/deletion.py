"""Recursive deletion of files and folder subtrees."""

from __future__ import annotations

import logging
from collections import deque
from typing import Iterator, Sequence

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from docvault.config import DeletionSettings

from .models import DeletionResult, ItemType
from .schema import DocumentRow

LOGGER = logging.getLogger(__name__)


class SubtreeDeleter:
    """Delete an item and, for folders, every descendant.

    Descendants are discovered breadth-first with one child lookup per tree
    level rather than a recursive query, then removed in a single transaction.
    The id is trusted; callers authorize before invoking.
    """

    def __init__(
        self,
        sessions: sessionmaker[Session],
        settings: DeletionSettings | None = None,
    ) -> None:
        self._sessions = sessions
        self._settings = settings or DeletionSettings()

    def delete(self, item_id: str) -> DeletionResult:
        """Delete ``item_id`` and its subtree. Missing ids are a no-op.

        Args:
            item_id: Id of the file or folder to delete.

        Returns:
            DeletionResult: Ids removed, deepest first; empty when nothing existed.
        """
        with self._sessions.begin() as session:
            item_type = session.scalar(
                select(DocumentRow.item_type).where(DocumentRow.id == item_id)
            )
            if item_type is None:
                LOGGER.debug("Delete requested for missing item %s; nothing to do", item_id)
                return DeletionResult(root_id=item_id)

            if item_type is ItemType.FILE:
                levels = [[item_id]]
            else:
                levels = self._collect_levels(session, item_id)

            # Children go before their parents so foreign keys hold after every statement.
            ordered = [row_id for level in reversed(levels) for row_id in level]
            for chunk in _chunks(ordered, self._settings.batch_size):
                session.execute(delete(DocumentRow).where(DocumentRow.id.in_(chunk)))

        LOGGER.info(
            "Deleted %s %s with %d descendant(s)",
            item_type.value.lower(),
            item_id,
            len(ordered) - 1,
        )
        return DeletionResult(root_id=item_id, deleted_ids=ordered)

    def _collect_levels(self, session: Session, root_id: str) -> list[list[str]]:
        """Return subtree ids grouped by depth, starting with ``[root_id]``."""
        levels: list[list[str]] = [[root_id]]
        seen: set[str] = {root_id}
        queue: deque[list[str]] = deque([[root_id]])

        while queue:
            folder_ids = queue.popleft()
            level: list[str] = []
            next_folders: list[str] = []
            for chunk in _chunks(folder_ids, self._settings.batch_size):
                children = session.execute(
                    select(DocumentRow.id, DocumentRow.item_type).where(
                        DocumentRow.parent_id.in_(chunk)
                    )
                ).all()
                for child_id, child_type in children:
                    if child_id in seen:
                        continue
                    seen.add(child_id)
                    level.append(child_id)
                    if child_type is ItemType.FOLDER:
                        next_folders.append(child_id)

            if level:
                levels.append(level)
            if next_folders:
                queue.append(next_folders)

        return levels


def _chunks(ids: Sequence[str], size: int) -> Iterator[Sequence[str]]:
    for start in range(0, len(ids), size):
        yield ids[start : start + size]


__all__ = ["SubtreeDeleter"]
