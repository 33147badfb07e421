"""Write-path validation: dates, project status, scoped uniqueness and references.

These checks run before any insert or update so that a request either passes
all of them or leaves the store untouched:
- Dates are accepted only as dd.mm.yyyy and stored as ISO dates
- Start/end ranges are checked against the effective values on update
- Names are unique within their parent (projects globally)
- Every foreign identifier must point at an existing row
"""
import logging
import re
from datetime import date
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from . import models
from .errors import (
    ConflictError,
    InvalidFormatError,
    InvalidReferenceError,
    InvertedRangeError,
)

logger = logging.getLogger("eneca-core.validation")

DATE_PATTERN = re.compile(r"^(\d{2})\.(\d{2})\.(\d{4})$")

# Column holding the parent id that scopes name uniqueness for each entity
UNIQUENESS_SCOPE: dict[type, Optional[str]] = {
    models.Project: None,
    models.Stage: "project_id",
    models.ProjectObject: "stage_id",
    models.Section: "object_id",
}

ENTITY_LABELS: dict[type, str] = {
    models.Project: "Project",
    models.Stage: "Stage",
    models.ProjectObject: "Object",
    models.Section: "Section",
    models.User: "User",
    models.Client: "Client",
    models.Department: "Department",
}

# Accepted spellings for project status, including the Russian UI values
PROJECT_STATUS_ALIASES: dict[str, models.ProjectStatus] = {
    "active": models.ProjectStatus.ACTIVE,
    "активный": models.ProjectStatus.ACTIVE,
    "archived": models.ProjectStatus.ARCHIVED,
    "archive": models.ProjectStatus.ARCHIVED,
    "архив": models.ProjectStatus.ARCHIVED,
    "архивный": models.ProjectStatus.ARCHIVED,
    "paused": models.ProjectStatus.PAUSED,
    "приостановлен": models.ProjectStatus.PAUSED,
    "приостановленный": models.ProjectStatus.PAUSED,
    "canceled": models.ProjectStatus.CANCELED,
    "cancelled": models.ProjectStatus.CANCELED,
    "отменен": models.ProjectStatus.CANCELED,
    "отменён": models.ProjectStatus.CANCELED,
    "отмененный": models.ProjectStatus.CANCELED,
}


# ============================================================================
# Dates
# ============================================================================

def parse_date(text: str, field: str = "date") -> date:
    """
    Parse a dd.mm.yyyy string.

    Args:
        text: User-entered date
        field: Field name used in the error message

    Returns:
        date: The parsed calendar date

    Raises:
        InvalidFormatError: If the shape or any component is out of range
    """
    match = DATE_PATTERN.match(text.strip()) if isinstance(text, str) else None
    if not match:
        raise InvalidFormatError(field, str(text))

    day, month, year = (int(part) for part in match.groups())
    if not (1 <= day <= 31 and 1 <= month <= 12 and 1900 <= year <= 2100):
        raise InvalidFormatError(field, text)

    try:
        return date(year, month, day)
    except ValueError:
        # e.g. 31.02.2024 passes the component checks but is not a real day
        raise InvalidFormatError(field, text)


def parse_optional_date(text: Optional[str], field: str = "date") -> Optional[date]:
    """Parse a date argument that may be omitted or blank."""
    if text is None or (isinstance(text, str) and not text.strip()):
        return None
    return parse_date(text, field)


def format_date_for_display(value: Union[date, str, None]) -> str:
    """Render an ISO date (or date object) as dd.mm.yyyy."""
    if value is None or value == "":
        return ""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return value.strftime("%d.%m.%Y")


def validate_date_range(start: Optional[date], end: Optional[date]) -> bool:
    """Return True if either bound is absent or start <= end."""
    if start is None or end is None:
        return True
    return start <= end


def ensure_date_range(start: Optional[date], end: Optional[date]) -> None:
    """Raise InvertedRangeError when start falls after end."""
    if not validate_date_range(start, end):
        raise InvertedRangeError()


# ============================================================================
# Project status
# ============================================================================

def normalize_project_status(value: str) -> models.ProjectStatus:
    """
    Map an English or Russian status spelling to ProjectStatus.

    Raises:
        InvalidFormatError: If the value is not a known status
    """
    status = PROJECT_STATUS_ALIASES.get(value.strip().lower())
    if status is None:
        raise InvalidFormatError(
            "project status", value, expected="one of: active, archived, paused, canceled"
        )
    return status


# ============================================================================
# Scoped uniqueness
# ============================================================================

def is_name_available(
    db: Session,
    model: type,
    name: str,
    scope_id: Optional[UUID] = None,
    exclude_id: Optional[UUID] = None,
) -> bool:
    """
    Check whether a name is free within its uniqueness scope.

    Args:
        db: Database session
        model: Project, Stage, ProjectObject or Section
        name: Candidate name (compared exactly)
        scope_id: Parent id the name must be unique within (ignored for projects)
        exclude_id: Row to ignore, used when renaming

    Returns:
        True if no other row in scope carries the name
    """
    query = db.query(model.id).filter(model.name == name)
    scope_column = UNIQUENESS_SCOPE[model]
    if scope_column is not None:
        query = query.filter(getattr(model, scope_column) == scope_id)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    return query.first() is None


def check_unique(
    db: Session,
    model: type,
    name: str,
    scope_id: Optional[UUID] = None,
    scope_label: Optional[str] = None,
) -> None:
    """
    Reject a create whose name is already taken in scope.

    Raises:
        ConflictError: If the name is taken
    """
    if not is_name_available(db, model, name, scope_id):
        logger.warning(f"Uniqueness conflict for {ENTITY_LABELS[model]} '{name}' in {scope_label or 'global scope'}")
        raise ConflictError(ENTITY_LABELS[model], name, scope_label)


def check_unique_excluding(
    db: Session,
    model: type,
    name: str,
    current_name: str,
    exclude_id: UUID,
    scope_id: Optional[UUID] = None,
    scope_label: Optional[str] = None,
) -> None:
    """
    Reject a rename whose new name is taken by another row in scope.

    Renaming to the current name is a no-op and is never checked.

    Raises:
        ConflictError: If another row in scope carries the name
    """
    if name == current_name:
        return
    if not is_name_available(db, model, name, scope_id, exclude_id=exclude_id):
        logger.warning(f"Rename conflict for {ENTITY_LABELS[model]} '{current_name}' -> '{name}'")
        raise ConflictError(ENTITY_LABELS[model], name, scope_label)


# ============================================================================
# References
# ============================================================================

def validate_references(db: Session, references: dict[str, tuple[type, Optional[UUID]]]) -> None:
    """
    Verify that every supplied foreign identifier exists.

    Args:
        db: Database session
        references: field name -> (model, id); None ids are skipped

    Raises:
        InvalidReferenceError: Naming the first field whose id is dangling
    """
    for field, (model, ref_id) in references.items():
        if ref_id is None:
            continue
        if db.query(model.id).filter(model.id == ref_id).first() is None:
            logger.warning(f"Dangling reference {field}={ref_id}")
            raise InvalidReferenceError(field, ref_id)
