"""Error types raised by the core and rendered by the MCP handlers.

Every error carries a user-facing message. The MCP dispatch layer turns an
EnecaError into a single text block; anything else is treated as a crash.
"""
from typing import Optional


class EnecaError(Exception):
    """Base class for all expected, user-facing failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(EnecaError):
    """A named reference did not resolve to any record."""

    def __init__(self, entity: str, name: str, message: Optional[str] = None):
        super().__init__(message or f'{entity} "{name}" not found')
        self.entity = entity
        self.name = name


class AmbiguousError(EnecaError):
    """A named reference resolved to more than one record."""

    def __init__(self, entity: str, name: str, candidates: list[str], hint: str = "Please specify the name more precisely."):
        listing = "\n".join(f"{i}. {c}" for i, c in enumerate(candidates, 1))
        super().__init__(f'Multiple {entity.lower()} records match "{name}":\n{listing}\n\n{hint}')
        self.entity = entity
        self.name = name
        self.candidates = candidates


class ConflictError(EnecaError):
    """A write would violate a scoped uniqueness rule."""

    def __init__(self, entity: str, name: str, scope: Optional[str] = None):
        where = f" in {scope}" if scope else ""
        super().__init__(f'{entity} "{name}" already exists{where}')
        self.entity = entity
        self.name = name
        self.scope = scope


class InvalidFormatError(EnecaError):
    """Malformed input value, typically a date."""

    def __init__(self, field: str, value: str, expected: str = "dd.mm.yyyy"):
        super().__init__(f'Invalid {field} "{value}". Use the format {expected}')
        self.field = field
        self.value = value
        self.expected = expected


class InvertedRangeError(EnecaError):
    """Start date falls after end date."""

    def __init__(self):
        super().__init__("Start date cannot be after end date")


class InvalidReferenceError(EnecaError):
    """A foreign identifier does not point to an existing record."""

    def __init__(self, field: str, value):
        super().__init__(f"Invalid reference: {field} {value} does not exist")
        self.field = field
        self.value = value


class DependentRecordsExistError(EnecaError):
    """Delete blocked by child records."""

    def __init__(self, entity: str, count: int, breakdown: Optional[dict[str, int]] = None):
        details = ""
        if breakdown:
            details = " (" + ", ".join(f"{k}: {v}" for k, v in breakdown.items() if v) + ")"
        super().__init__(
            f"Cannot delete {entity.lower()}: {count} dependent records found{details}. "
            f"Use cascade=true to delete them."
        )
        self.entity = entity
        self.count = count
        self.breakdown = breakdown or {}


class StoreFailureError(EnecaError):
    """The database call itself failed."""

    def __init__(self, operation: str, detail: str):
        super().__init__(f"Database error during {operation}: {detail}")
        self.operation = operation
        self.detail = detail
