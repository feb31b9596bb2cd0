"""Document store data models."""

from __future__ import annotations

import base64
from datetime import datetime
from enum import Enum, IntEnum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from .errors import InvalidCursorError

FOLDER_TYPE = "folder"


class ItemType(str, Enum):
    """Kind of node in a user's tree. ``FILE`` sorts before ``FOLDER``."""

    FILE = "FILE"
    FOLDER = "FOLDER"


class DocumentStatus(IntEnum):
    """Processing status of a file; the integer is the stored value."""

    UPLOADED = 0
    EXTRACTING = 1
    COMPLETED = 2
    FAILED = 3
    EXTRACTING_UNKNOWN = 4


class Role(IntEnum):
    """Access role of a user account."""

    ANONYMOUS = 0
    USER = 3
    ADMIN = 5
    SYSTEM = 10


class SortDirection(str, Enum):
    """Direction applied to the secondary sort column."""

    ASC = "asc"
    DESC = "desc"


SortField = Literal["created_at", "updated_at", "name", "status"]

_SORT_FIELD_ALIASES = {"createdAt": "created_at", "updatedAt": "updated_at"}


class PageText(BaseModel):
    """Text extracted from a single page of a file."""

    text: str


class _ItemBase(BaseModel):
    """Fields shared by every node in the tree."""

    id: str
    user_id: str
    parent_id: Optional[str] = None
    name: str = Field(min_length=1)
    path: str
    type: str
    collection_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class FileItem(_ItemBase):
    """A file row. Files always carry a status."""

    item_type: Literal[ItemType.FILE] = ItemType.FILE
    size: int = Field(ge=0)
    status: DocumentStatus
    extracted_text: Optional[List[PageText]] = None


class FolderItem(_ItemBase):
    """A folder row. Folders have no status, no size and no extracted text."""

    item_type: Literal[ItemType.FOLDER] = ItemType.FOLDER
    type: str = FOLDER_TYPE

    @property
    def size(self) -> int:
        return 0

    @property
    def status(self) -> None:
        return None


Item = Annotated[Union[FileItem, FolderItem], Field(discriminator="item_type")]

ITEM_ADAPTER: TypeAdapter[Union[FileItem, FolderItem]] = TypeAdapter(Item)


class User(BaseModel):
    """An account owning a document tree."""

    id: str
    external_id: str
    role: Role
    created_at: datetime
    updated_at: datetime


class NewUser(BaseModel):
    """Input for creating a user."""

    external_id: str = Field(min_length=1)
    role: Role = Role.USER
    id: Optional[str] = None


class NewDocument(BaseModel):
    """Input for creating a file row."""

    user_id: str
    name: str = Field(min_length=1)
    path: str
    type: str
    size: int = Field(default=0, ge=0)
    status: DocumentStatus = DocumentStatus.UPLOADED
    parent_id: Optional[str] = None
    collection_id: Optional[str] = None
    extracted_text: Optional[List[PageText]] = None


class NewFolder(BaseModel):
    """Input for creating a folder row."""

    user_id: str
    name: str = Field(min_length=1)
    parent_id: Optional[str] = None


class DocumentUpdate(BaseModel):
    """Status patch applied by the extraction pipeline.

    ``extracted_text`` of ``None`` leaves the stored text untouched. ``error``
    accepts an exception and keeps only its message.
    """

    status: DocumentStatus
    extracted_text: Optional[List[PageText]] = None
    error: Optional[str] = None

    @field_validator("error", mode="before")
    @classmethod
    def _error_message(cls, value: Any) -> Any:
        if isinstance(value, BaseException):
            return str(value) or type(value).__name__
        return value


class SortConfig(BaseModel):
    """Secondary sort applied after grouping by item type."""

    field: SortField = "created_at"
    direction: SortDirection = SortDirection.DESC

    @field_validator("field", mode="before")
    @classmethod
    def _accept_camel_case(cls, value: Any) -> Any:
        if isinstance(value, str):
            return _SORT_FIELD_ALIASES.get(value, value)
        return value


class FilterConfig(BaseModel):
    """Optional listing filters."""

    name: Optional[str] = None
    status: Optional[DocumentStatus] = None


class Cursor(BaseModel):
    """Continuation token holding the composite key of the last returned item.

    Serialized keys follow the web client's naming (``itemTypeValue``,
    ``value``, ``id``).
    """

    model_config = ConfigDict(populate_by_name=True)

    item_type: Optional[ItemType] = Field(default=None, alias="itemTypeValue")
    value: Union[str, int, None] = Field(default=None, union_mode="left_to_right")
    id: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def _timestamp_as_text(cls, value: Any) -> Any:
        # Timestamps travel as ISO text; names that look like numbers or dates stay strings.
        if isinstance(value, datetime):
            return value.isoformat()
        return value

    def is_complete(self) -> bool:
        """Return True when all three key parts are present.

        ``value`` may legitimately be ``None`` (folder status), so presence is
        judged by whether it was supplied at all.
        """
        return (
            self.item_type is not None
            and self.id is not None
            and "value" in self.model_fields_set
        )

    def encode(self) -> str:
        """Return a URL-safe opaque token for this cursor."""
        payload = self.model_dump_json(by_alias=True).encode("utf-8")
        return base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")

    @classmethod
    def decode(cls, token: str) -> Cursor:
        """Parse a token produced by :meth:`encode`.

        Raises:
            InvalidCursorError: If the token is not a valid encoded cursor.
        """
        padded = token + "=" * (-len(token) % 4)
        try:
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
            return cls.model_validate_json(raw)
        except ValueError as exc:
            raise InvalidCursorError(f"Malformed cursor token: {exc}") from exc


class ListOptions(BaseModel):
    """Options accepted by the listing query.

    Attributes:
        parent_id: Folder whose direct children are listed; ``None`` for root.
        filters: Name/status filters.
        sort: Secondary sort column and direction.
        limit: Page size; the configured default applies when unset.
        cursor: Continuation cursor from the previous page.
    """

    parent_id: Optional[str] = None
    filters: FilterConfig = Field(default_factory=FilterConfig)
    sort: SortConfig = Field(default_factory=SortConfig)
    limit: Optional[int] = Field(default=None, ge=1)
    cursor: Optional[Cursor] = None


class ItemPage(BaseModel):
    """A page of listing results."""

    items: List[Item] = Field(default_factory=list)
    next_cursor: Optional[Cursor] = None
    has_more: bool = False


class BreadcrumbItem(BaseModel):
    """One folder on the path from the root to a folder."""

    id: str
    name: str


class DeletionResult(BaseModel):
    """Outcome of a delete request."""

    root_id: str
    deleted_ids: List[str] = Field(default_factory=list)

    @property
    def deleted(self) -> bool:
        return bool(self.deleted_ids)


__all__ = [
    "FOLDER_TYPE",
    "ItemType",
    "DocumentStatus",
    "Role",
    "SortDirection",
    "SortField",
    "PageText",
    "FileItem",
    "FolderItem",
    "Item",
    "ITEM_ADAPTER",
    "User",
    "NewUser",
    "NewDocument",
    "NewFolder",
    "DocumentUpdate",
    "SortConfig",
    "FilterConfig",
    "Cursor",
    "ListOptions",
    "ItemPage",
    "BreadcrumbItem",
    "DeletionResult",
]
