"""Exception types raised by the index synchronization engine."""

from typing import Any, Optional


class IndexSyncError(Exception):
    """Base exception carrying the unit of work that failed."""

    def __init__(
        self,
        message: str,
        index: Optional[str] = None,
        class_name: Optional[str] = None,
        offset: Optional[int] = None,
        record_id: Optional[Any] = None
    ):
        self.message = message
        self.index = index
        self.class_name = class_name
        self.offset = offset
        self.record_id = record_id
        super().__init__(self._format())

    def context(self) -> dict:
        """Return the non-empty context fields for structured logging."""
        context = {
            "index": self.index,
            "class_name": self.class_name,
            "offset": self.offset,
            "record_id": self.record_id,
        }
        return {key: value for key, value in context.items() if value is not None}

    def _format(self) -> str:
        context = self.context()
        if not context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in context.items())
        return f"{self.message} ({details})"


class SchemaError(IndexSyncError):
    """Raised when a field value cannot be coerced to its inferred type."""

    def __init__(self, column: str, value: Any, reason: str = "", **context):
        self.column = column
        self.value = value
        message = f"Invalid value for field '{column}': {value!r}"
        if reason:
            message = f"{message} - {reason}"
        super().__init__(message, **context)


class ConfigurationError(IndexSyncError):
    """Raised when configuration or remote index structures are missing."""
    pass


class ProvisioningError(IndexSyncError):
    """Raised when the remote service rejects an engine/document type change."""

    def __init__(self, message: str, status: Optional[int] = None, **context):
        self.status = status
        if status is not None:
            message = f"{message} [status {status}]"
        super().__init__(message, **context)


class TransportError(IndexSyncError):
    """Raised when the underlying request mechanism fails."""

    def __init__(self, message: str, status: Optional[int] = None, **context):
        self.status = status
        super().__init__(message, **context)
