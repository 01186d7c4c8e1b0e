"""
Exception taxonomy for the client import engine.

Row-level errors are captured by the executor and reported per row; only
``StoreUnavailableError`` escapes a batch.
"""

from __future__ import annotations

DUPLICATE_CLIENT_MESSAGE = "Client already registered."
MISSING_LINK_MESSAGE = "Cannot update: duplicate within file, no existing client linked."
NO_ACTION_MESSAGE = "Duplicate client with no action defined."
TARGET_MISSING_MESSAGE = "Existing client not found."
IMPORT_FAILED_MESSAGE = "Could not import client."
UPDATE_FAILED_MESSAGE = "Could not update existing client."


class ImportEngineError(Exception):
    """Base exception for client import failures."""


class ImportPayloadError(ImportEngineError):
    """Raised when the request body as a whole is malformed."""

    status_code = 400

    def __init__(self, message: str = "Invalid import payload.") -> None:
        super().__init__(message)
        self.message = message


class BatchTooLargeError(ImportPayloadError):
    """Raised when a batch exceeds the configured row limit."""

    status_code = 413

    def __init__(self, max_rows: int) -> None:
        super().__init__(f"Import batches are limited to {max_rows} rows.")
        self.max_rows = max_rows


class ShapeValidationError(ImportEngineError):
    """Raised when a candidate row fails structural validation."""

    def __init__(self, field: str | None, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class DuplicateConflictError(ImportEngineError):
    """
    Raised when a write would duplicate an existing client, either detected by
    the engine or rejected by the store's uniqueness constraint.
    """

    status_code = 409

    def __init__(self, message: str = DUPLICATE_CLIENT_MESSAGE, *, existing_client_id: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.existing_client_id = existing_client_id


class MissingLinkError(ImportEngineError):
    """Raised when ``update`` is requested for a duplicate with no linked client."""

    def __init__(self, row_number: int) -> None:
        super().__init__(MISSING_LINK_MESSAGE)
        self.message = MISSING_LINK_MESSAGE
        self.row_number = row_number


class RowWriteError(ImportEngineError):
    """Raised when a single row cannot be written for a non-duplicate reason."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreUnavailableError(ImportEngineError):
    """Raised when the record store cannot be reached; aborts the whole batch."""

    status_code = 503

    def __init__(self, message: str = "Client store is unavailable.") -> None:
        super().__init__(message)
        self.message = message
