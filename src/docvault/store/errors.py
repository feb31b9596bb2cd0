"""Document store errors."""


class StoreError(Exception):
    """Base exception for document store operations."""


class ReferentialViolationError(StoreError):
    """Raised when a user or parent reference does not resolve to a valid row."""


class InvalidCursorError(StoreError):
    """Raised when a pagination cursor is malformed or incomplete."""


class InvalidQueryError(StoreError):
    """Raised when listing options fall outside the configured bounds."""
