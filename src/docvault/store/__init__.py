"""Relational storage for users and their trees of files and folders."""

from __future__ import annotations

from .database import create_engine_from_settings, init_schema, session_factory
from .deletion import SubtreeDeleter
from .documents import DocumentStore
from .errors import (
    InvalidCursorError,
    InvalidQueryError,
    ReferentialViolationError,
    StoreError,
)
from .models import (
    BreadcrumbItem,
    Cursor,
    DeletionResult,
    DocumentStatus,
    DocumentUpdate,
    FileItem,
    FilterConfig,
    FolderItem,
    Item,
    ItemPage,
    ItemType,
    ListOptions,
    NewDocument,
    NewFolder,
    NewUser,
    PageText,
    Role,
    SortConfig,
    SortDirection,
    User,
)
from .query import ItemQuery
from .users import UserStore

__all__ = [
    "DocumentStore",
    "UserStore",
    "ItemQuery",
    "SubtreeDeleter",
    "create_engine_from_settings",
    "init_schema",
    "session_factory",
    "StoreError",
    "ReferentialViolationError",
    "InvalidCursorError",
    "InvalidQueryError",
    "BreadcrumbItem",
    "Cursor",
    "DeletionResult",
    "DocumentStatus",
    "DocumentUpdate",
    "FileItem",
    "FilterConfig",
    "FolderItem",
    "Item",
    "ItemPage",
    "ItemType",
    "ListOptions",
    "NewDocument",
    "NewFolder",
    "NewUser",
    "PageText",
    "Role",
    "SortConfig",
    "SortDirection",
    "User",
]
