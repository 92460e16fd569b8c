"""Error and warning types raised by the reconciliation pipeline."""

from typing import Any, Optional


class ReconciliationError(Exception):
    """Base class for fatal pipeline errors."""


class SchemaError(ReconciliationError):
    """Required columns are missing or malformed."""


class TypeCoercionError(SchemaError):
    """A field could not be converted to its declared type."""

    def __init__(self, column: str, row: Optional[int] = None, value: Any = None):
        self.column = column
        self.row = row
        self.value = value
        location = f" at row {row}" if row is not None else ""
        super().__init__(
            f"Column '{column}'{location}: cannot convert {value!r}"
        )


class DegenerateInputError(ReconciliationError):
    """Inputs for which campaign metrics are undefined."""


class DataQualityWarning(UserWarning):
    """Non-fatal data problem, logged and surfaced with the results."""
