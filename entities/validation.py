"""
Structured validation results.

Business rules report FieldError values; the human-readable message is
rendered from them, never stored separately.
"""

from pydantic import BaseModel, Field
from typing import Any, List, Optional, Tuple
import enum


class ValidationReason(str, enum.Enum):
    """Why a field was rejected"""
    REQUIRED = "required"
    NEGATIVE = "negative"
    OUT_OF_RANGE = "out_of_range"
    UNKNOWN_REFERENCE = "unknown_reference"
    HAS_DEPENDENTS = "has_dependents"
    INVALID = "invalid"


_REASON_TEXT = {
    ValidationReason.REQUIRED: "is required",
    ValidationReason.NEGATIVE: "cannot be negative",
    ValidationReason.OUT_OF_RANGE: "is out of range",
    ValidationReason.UNKNOWN_REFERENCE: "refers to a record that does not exist",
    ValidationReason.HAS_DEPENDENTS: "still has dependent records",
    ValidationReason.INVALID: "is invalid",
}


class FieldError(BaseModel):
    """One rejected field of one row"""
    table: str
    field: str
    reason: ValidationReason
    key: Optional[Tuple[Any, ...]] = None
    detail: Optional[str] = None

    def render(self) -> str:
        where = f"{self.table}.{self.field}"
        if self.key is not None:
            where += f" (key {', '.join(str(k) for k in self.key)})"
        text = f"{where} {_REASON_TEXT[self.reason]}"
        if self.detail:
            text += f": {self.detail}"
        return text


class ValidationResult(BaseModel):
    """Outcome of validating a dataset"""
    errors: List[FieldError] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.valid

    @property
    def message(self) -> str:
        """Human-readable rendering, one error per line; empty when valid"""
        return "\n".join(error.render() for error in self.errors)

    def add(
        self,
        table: str,
        field: str,
        reason: ValidationReason,
        key: Optional[Tuple[Any, ...]] = None,
        detail: Optional[str] = None
    ) -> None:
        self.errors.append(FieldError(table=table, field=field, reason=reason, key=key, detail=detail))

    def extend(self, other: "ValidationResult") -> None:
        self.errors.extend(other.errors)

    def fields(self) -> List[str]:
        return [error.field for error in self.errors]

    # ------------------------------------------------------------------
    # Rule helpers: each returns True when the check passed
    # ------------------------------------------------------------------

    def require(self, table: str, record: BaseModel, field: str, key=None) -> bool:
        value = getattr(record, field)
        if value is None or (isinstance(value, str) and not value.strip()):
            self.add(table, field, ValidationReason.REQUIRED, key)
            return False
        return True

    def non_negative(self, table: str, record: BaseModel, field: str, key=None) -> bool:
        value = getattr(record, field)
        if value is not None and value < 0:
            self.add(table, field, ValidationReason.NEGATIVE, key, detail=str(value))
            return False
        return True

    def positive(self, table: str, record: BaseModel, field: str, key=None) -> bool:
        value = getattr(record, field)
        if value is None or value <= 0:
            self.add(table, field, ValidationReason.OUT_OF_RANGE, key, detail="must be greater than 0")
            return False
        return True

    def in_range(self, table: str, record: BaseModel, field: str, low, high, key=None) -> bool:
        value = getattr(record, field)
        if value is not None and not low <= value <= high:
            self.add(
                table, field, ValidationReason.OUT_OF_RANGE, key,
                detail=f"{value} not between {low} and {high}"
            )
            return False
        return True
