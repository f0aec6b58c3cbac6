"""
Custom exceptions for the entity layer with structured error context.

Only conditions the entity layer itself detects are represented here.
Errors raised by the database driver are NOT translated: they propagate
to the caller unchanged after the surrounding transaction rolls back.

Exception Hierarchy:
    EntityException (base)
    ├── SchemaError
    ├── DuplicateKeyError
    ├── RelationIntegrityError
    ├── DataAccessError
    │   ├── RecordNotFoundError
    │   └── ChangeConflictError
    └── ValidationFailedError
"""

from typing import Optional, Dict, Any, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from entities.validation import ValidationResult


class EntityException(Exception):
    """
    Base exception for all entity-layer errors.

    Attributes:
        message: Human-readable error message
        context: Additional context information (table, key, fields, etc.)
        original_exception: The original exception that was caught (if any)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        self.message = message
        self.context = context or {}
        self.original_exception = original_exception
        self.timestamp = datetime.utcnow()

        super().__init__(message)
        if original_exception:
            self.__cause__ = original_exception

    def __str__(self) -> str:
        """Format error message with context."""
        base_msg = f"{self.__class__.__name__}: {self.message}"

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            base_msg += f" | Context: {context_str}"

        if self.original_exception:
            base_msg += f" | Caused by: {type(self.original_exception).__name__}: {str(self.original_exception)}"

        return base_msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/API responses."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": {k: _jsonable(v) for k, v in self.context.items()},
            "timestamp": self.timestamp.isoformat(),
            "original_error": str(self.original_exception) if self.original_exception else None
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return str(value)


# ============================================================================
# Schema Errors
# ============================================================================

class SchemaError(EntityException):
    """
    Raised when temp-table, dataset or data-source definitions disagree.

    Context should include:
        - table_name: Temp-table involved
        - field_name: Field that is missing or mistyped (if applicable)
        - relation: Relation name (if applicable)
    """
    pass


class DuplicateKeyError(EntityException):
    """
    Raised when a row would violate a unique primary index of a temp-table.

    Context should include:
        - table_name: Temp-table name
        - key: The duplicated key values
    """
    pass


class RelationIntegrityError(EntityException):
    """
    Raised when dataset rows break a declared parent-child relation.

    Context should include:
        - relation: Relation name
        - violations: List of human-readable violation descriptions
    """
    pass


# ============================================================================
# Data Access Errors
# ============================================================================

class DataAccessError(EntityException):
    """Base exception for rows that cannot be written as requested."""
    pass


class RecordNotFoundError(DataAccessError):
    """
    Raised when a row to update or delete no longer exists in the database.

    Context should include:
        - table_name: Database table
        - key: Key taken from the before-image
    """
    pass


class ChangeConflictError(DataAccessError):
    """
    Raised when the stored row no longer matches the before-image,
    i.e. it was changed by another writer since it was read.

    Context should include:
        - table_name: Database table
        - key: Row key
        - fields: Fields whose stored value differs from the before-image
    """
    pass


# ============================================================================
# Validation Errors
# ============================================================================

class ValidationFailedError(EntityException):
    """
    Raised by mutating entity operations when business rules reject the
    dataset. The structured result is kept on ``result``.
    """

    def __init__(self, result: "ValidationResult", context: Optional[Dict[str, Any]] = None):
        super().__init__(result.message or "Validation failed", context)
        self.result = result

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["errors"] = [error.model_dump(mode="json") for error in self.result.errors]
        return data
