"""
Custom exceptions for clouddoc.

All package-specific exceptions inherit from CloudDocError.
"""

from __future__ import annotations

from typing import Optional, Any


class CloudDocError(Exception):
    """
    Base exception for all clouddoc errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (for debugging)
        recoverable: Whether retrying the operation can succeed
    """

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
        recoverable: bool = False
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(CloudDocError):
    """
    Invalid or missing configuration.

    Examples:
        - No AWS credentials or profile available
        - Empty database name
    """

    def __init__(self, message: str, config_key: Optional[str] = None):
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details=details, recoverable=False)


class ValidationError(CloudDocError):
    """
    Caller-supplied data was rejected.

    Examples:
        - Empty document or item name
        - Reserved document name
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        field_value: Optional[Any] = None,
        expected: Optional[str] = None
    ):
        details = {}
        if field_name:
            details["field_name"] = field_name
        if field_value is not None:
            details["field_value"] = str(field_value)[:100]
        if expected:
            details["expected"] = expected
        super().__init__(message, details=details, recoverable=False)


class UnsupportedValueError(ValidationError):
    """An item value is not one of the storable kinds."""

    def __init__(self, value: Any):
        super().__init__(
            f"Cannot store value of type {type(value).__name__}",
            field_value=type(value).__name__,
            expected="None, int, Decimal, float, datetime, str, Element, dict or list",
        )


class DuplicateItemError(ValidationError):
    """An item with the same name already exists on the document."""

    def __init__(self, item_name: str, document_name: str):
        super().__init__(
            f"Item '{item_name}' already exists on document '{document_name}'",
            field_name="item_name",
            field_value=item_name,
        )


class StoreError(CloudDocError):
    """
    A call to a backing store failed.

    Examples:
        - Network error or throttling
        - Access denied
        - Missing domain or bucket
    """

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        operation: Optional[str] = None,
        recoverable: bool = True
    ):
        details = {}
        if service:
            details["service"] = service
        if operation:
            details["operation"] = operation
        super().__init__(message, details=details, recoverable=recoverable)


class BlobNotFoundError(StoreError):
    """The requested blob key does not exist."""

    def __init__(self, bucket: str, key: str):
        super().__init__(f"No object at {bucket}/{key}", service="s3", operation="get_object")
        self.details["key"] = key


class DecodeError(CloudDocError):
    """
    Persisted data cannot be decoded.

    Raised for unrecognized wire tags, malformed scalars or payloads, and
    inline values over the size limit. Never recoverable by retrying.
    """

    def __init__(self, message: str, raw_value: Optional[str] = None):
        details = {}
        if raw_value is not None:
            details["raw_value"] = raw_value[:100] if len(raw_value) > 100 else raw_value
        super().__init__(message, details=details, recoverable=False)


class ItemLoadError(CloudDocError):
    """The externalized payload of an item could not be fetched or parsed."""

    def __init__(self, message: str, item_name: Optional[str] = None, path: Optional[str] = None):
        details = {}
        if item_name:
            details["item_name"] = item_name
        if path:
            details["path"] = path
        super().__init__(message, details=details, recoverable=True)


class DocumentSaveError(CloudDocError):
    """
    Saving a document failed part-way.

    Dirty state is left untouched, so calling save() again repeats the same writes.
    Not recoverable when the cause would fail the same way on every retry.
    """

    def __init__(
        self,
        message: str,
        document_name: Optional[str] = None,
        pending_items: int = 0,
        recoverable: bool = True
    ):
        details = {"pending_items": pending_items}
        if document_name:
            details["document_name"] = document_name
        super().__init__(message, details=details, recoverable=recoverable)


class DatabaseNotOpenError(CloudDocError):
    """A document operation was attempted before the database was opened."""

    def __init__(self, database: Optional[str] = None):
        super().__init__(
            "Database is not open",
            details={"database": database} if database else None,
            recoverable=True,
        )
