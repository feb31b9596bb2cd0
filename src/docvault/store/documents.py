"""Document store facade: creation, updates, listing, deletion and lookups."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from docvault import events as doc_events
from docvault.config import DeletionSettings, DocvaultConfig, QuerySettings

from .database import create_engine_from_settings, init_schema, session_factory
from .deletion import SubtreeDeleter
from .errors import ReferentialViolationError
from .models import (
    FOLDER_TYPE,
    ITEM_ADAPTER,
    BreadcrumbItem,
    DeletionResult,
    DocumentUpdate,
    FileItem,
    Item,
    ItemPage,
    ItemType,
    ListOptions,
    NewDocument,
    NewFolder,
)
from .query import ItemQuery
from .schema import DocumentRow, UserRow, utc_now

LOGGER = logging.getLogger(__name__)


class DocumentStore:
    """Entry point for reading and mutating a user's tree of files and folders.

    The store owns no connection state of its own; it is handed a session
    factory and composes the listing and deletion engines over it.
    """

    def __init__(
        self,
        sessions: sessionmaker[Session],
        *,
        query_settings: QuerySettings | None = None,
        deletion_settings: DeletionSettings | None = None,
        events: doc_events.DocumentEventSink | None = None,
    ) -> None:
        self._sessions = sessions
        self._query = ItemQuery(sessions, query_settings)
        self._deleter = SubtreeDeleter(sessions, deletion_settings)
        self._events: doc_events.DocumentEventSink = (
            events if events is not None else doc_events.LoggingEventSink()
        )

    @classmethod
    def from_config(
        cls,
        config: DocvaultConfig,
        *,
        events: doc_events.DocumentEventSink | None = None,
        create_schema: bool = True,
    ) -> "DocumentStore":
        """Build a store wired to the database described by ``config``."""
        engine = create_engine_from_settings(config.database)
        if create_schema:
            init_schema(engine)
        return cls(
            session_factory(engine),
            query_settings=config.query,
            deletion_settings=config.deletion,
            events=events,
        )

    @property
    def sessions(self) -> sessionmaker[Session]:
        return self._sessions

    # ------------------------------------------------------------------ reads

    def list_items(self, user_id: str, options: ListOptions | None = None) -> ItemPage:
        """Return one page of the direct children of ``options.parent_id``."""
        return self._query.list_items(user_id, options)

    def get_by_id(self, item_id: str) -> Optional[Item]:
        with self._sessions() as session:
            row = session.get(DocumentRow, item_id)
            if row is None:
                return None
            return ITEM_ADAPTER.validate_python(row.to_dict())

    def list_by_collection(self, collection_id: str) -> List[Item]:
        """Return every item tagged with ``collection_id``, newest first."""
        statement = (
            select(DocumentRow)
            .where(DocumentRow.collection_id == collection_id)
            .order_by(DocumentRow.created_at.desc(), DocumentRow.id.desc())
        )
        with self._sessions() as session:
            rows = session.scalars(statement).all()
            return [ITEM_ADAPTER.validate_python(row.to_dict()) for row in rows]

    def get_folder_path(self, user_id: str, folder_id: Optional[str]) -> List[BreadcrumbItem]:
        """Return breadcrumbs from the root down to ``folder_id``.

        The walk stops quietly at the first ancestor that is missing, owned
        by another user, or not a folder; crumbs gathered below it are kept.

        Args:
            user_id: Owner the folders must belong to.
            folder_id: Folder to resolve; ``None`` means the root.

        Returns:
            List[BreadcrumbItem]: Root-most folder first, ``folder_id`` last.
        """
        crumbs: List[BreadcrumbItem] = []
        seen: set[str] = set()
        current = folder_id
        with self._sessions() as session:
            while current and current not in seen:
                seen.add(current)
                row = session.get(DocumentRow, current)
                if row is None or row.user_id != user_id:
                    LOGGER.warning("Folder not found or not accessible: %s", current)
                    break
                if row.item_type is not ItemType.FOLDER:
                    LOGGER.warning("Item is not a folder: %s", current)
                    break
                crumbs.append(BreadcrumbItem(id=row.id, name=row.name))
                current = row.parent_id
        crumbs.reverse()
        return crumbs

    # -------------------------------------------------------------- mutations

    def create_document(self, document: NewDocument) -> FileItem:
        """Insert a file row.

        Raises:
            ReferentialViolationError: If the user or parent folder is invalid.
        """
        with self._sessions.begin() as session:
            _check_references(session, document.user_id, document.parent_id)
            row = DocumentRow(
                user_id=document.user_id,
                parent_id=document.parent_id,
                item_type=ItemType.FILE,
                path=document.path,
                name=document.name,
                type=document.type,
                size=document.size,
                status=int(document.status),
                collection_id=document.collection_id,
                extracted_text=_dump_pages(document.extracted_text),
            )
            session.add(row)
            session.flush()
            item = FileItem.model_validate(row.to_dict())
        LOGGER.debug("Created file %s (%s) for user %s", item.id, item.name, item.user_id)
        return item

    def create_folder(self, folder: NewFolder) -> Item:
        """Insert a folder row whose path is ``"{parent_id}/{name}"`` or ``name`` at root.

        Raises:
            ReferentialViolationError: If the user or parent folder is invalid.
        """
        path = f"{folder.parent_id}/{folder.name}" if folder.parent_id else folder.name
        with self._sessions.begin() as session:
            _check_references(session, folder.user_id, folder.parent_id)
            row = DocumentRow(
                user_id=folder.user_id,
                parent_id=folder.parent_id,
                item_type=ItemType.FOLDER,
                path=path,
                name=folder.name,
                type=FOLDER_TYPE,
                size=0,
                status=None,
            )
            session.add(row)
            session.flush()
            item = ITEM_ADAPTER.validate_python(row.to_dict())
        LOGGER.debug("Created folder %s (%s) for user %s", item.id, item.name, item.user_id)
        return item

    def update_document(self, item_id: str, update: DocumentUpdate) -> Optional[FileItem]:
        """Apply a status update to a file and notify its owner.

        The notification is sent only after the transaction commits and is
        best effort; a failing sink is logged and does not affect the result.

        Args:
            item_id: Id of the file to update.
            update: New status, optional extracted text and optional error.

        Returns:
            Optional[FileItem]: The updated file, or ``None`` when ``item_id``
            is missing or names a folder.
        """
        with self._sessions.begin() as session:
            row = session.get(DocumentRow, item_id)
            if row is None or row.item_type is not ItemType.FILE:
                LOGGER.debug("No file %s to update", item_id)
                return None
            row.status = int(update.status)
            if update.extracted_text is not None:
                row.extracted_text = _dump_pages(update.extracted_text)
            row.updated_at = utc_now()
            external_id = session.scalar(
                select(UserRow.external_id).where(UserRow.id == row.user_id)
            )
            session.flush()
            item = FileItem.model_validate(row.to_dict())

        event = doc_events.DocumentUpdatedEvent(
            document_id=item.id,
            status=item.status,
            error=update.error,
        )
        if external_id is None:
            LOGGER.warning("Owner of document %s has no external id; not notifying", item.id)
            return item
        try:
            self._events.document_updated(external_id, event)
        except Exception:
            LOGGER.exception("Failed to deliver update notification for document %s", item.id)
        return item

    def delete_item(self, item_id: str) -> DeletionResult:
        """Delete a file, or a folder together with all of its descendants."""
        return self._deleter.delete(item_id)


def _check_references(session: Session, user_id: str, parent_id: Optional[str]) -> None:
    if session.get(UserRow, user_id) is None:
        raise ReferentialViolationError(f"User {user_id} does not exist")
    if parent_id is None:
        return
    parent = session.get(DocumentRow, parent_id)
    if parent is None:
        raise ReferentialViolationError(f"Parent {parent_id} does not exist")
    if parent.user_id != user_id:
        raise ReferentialViolationError(f"Parent {parent_id} belongs to another user")
    if parent.item_type is not ItemType.FOLDER:
        raise ReferentialViolationError(f"Parent {parent_id} is not a folder")


def _dump_pages(pages: Optional[list]) -> Optional[list]:
    if pages is None:
        return None
    return [page.model_dump() for page in pages]


__all__ = ["DocumentStore"]
