"""Name resolution and disambiguation.

Users refer to projects, stages, objects, sections and people by the names
they type, never by id. Every such reference is resolved to one of three
outcomes:

- NotFound: nothing matches
- Ambiguous: several records match, with display data for each candidate
- Unique: exactly one record matches

Exact resolution compares the canonical name within scope and is used by
update and delete flows. Fuzzy resolution does a case-insensitive substring
match and is used for create-time parent lookup and free-text search; a
single candidate whose name equals the query (ignoring case) wins over
looser substring hits.

ResolutionChain runs several resolutions in dependency order
(project -> stage -> object -> responsible) and stops at the first outcome
that is not Unique, so a request gets one actionable message and a child is
never resolved against an unresolved parent.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union
from uuid import UUID

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from . import models
from .config import get_settings
from .errors import AmbiguousError, NotFoundError

logger = logging.getLogger("eneca-core.resolution")


@dataclass(frozen=True)
class NotFound:
    entity: str
    query: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class Ambiguous:
    entity: str
    query: str
    candidates: list = field(default_factory=list)


@dataclass(frozen=True)
class Unique:
    entity: str
    query: str
    record: Any


Resolution = Union[NotFound, Ambiguous, Unique]


@dataclass(frozen=True)
class Resolved:
    """Every step of a chain resolved; records keyed by step name."""

    records: dict


ENTITY_NAMES = {
    models.Project: "Project",
    models.Stage: "Stage",
    models.ProjectObject: "Object",
    models.Section: "Section",
    models.User: "User",
    models.Department: "Department",
    models.Client: "Client",
}


def escape_like(text: str) -> str:
    """Escape LIKE metacharacters so user input matches literally."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains(column, text: str):
    return column.ilike(f"%{escape_like(text)}%", escape="\\")


def _equals(column, text: str):
    return column.ilike(escape_like(text), escape="\\")


def classify(entity: str, query: str, records: list, prefer_exact: bool = False) -> Resolution:
    """
    Turn a list of matching records into a resolution outcome.

    Args:
        entity: Display name of the entity kind
        query: The text that was searched for
        records: All matching records
        prefer_exact: If several records match, pick the single one whose
            name equals the query ignoring case

    Returns:
        NotFound, Ambiguous or Unique
    """
    if not records:
        return NotFound(entity, query)
    if len(records) == 1:
        return Unique(entity, query, records[0])
    if prefer_exact:
        folded = query.casefold()
        exact = [r for r in records if (getattr(r, "name", None) or "").casefold() == folded]
        if len(exact) == 1:
            return Unique(entity, query, exact[0])
        if exact:
            return Ambiguous(entity, query, exact)
    return Ambiguous(entity, query, records)


def describe_candidate(record) -> str:
    """One-line display of a record for disambiguation lists."""
    if isinstance(record, models.User):
        return f"{record.full_name} ({record.email})"
    if isinstance(record, models.Stage):
        return f"{record.name} (project: {record.project.name})"
    if isinstance(record, models.ProjectObject):
        return f"{record.name} (stage: {record.stage.name}, project: {record.project.name})"
    if isinstance(record, models.Section):
        return f"{record.name} (object: {record.object.name}, project: {record.project.name})"
    return record.name


def unwrap(resolution: Resolution):
    """
    Return the record of a Unique resolution.

    Raises:
        NotFoundError: For NotFound
        AmbiguousError: For Ambiguous, listing every candidate
    """
    if isinstance(resolution, Unique):
        return resolution.record
    if isinstance(resolution, NotFound):
        raise NotFoundError(resolution.entity, resolution.query, resolution.reason)
    hint = (
        "Please specify the full name or use an email."
        if resolution.entity == "User"
        else "Please specify the name more precisely."
    )
    raise AmbiguousError(
        resolution.entity,
        resolution.query,
        [describe_candidate(c) for c in resolution.candidates],
        hint=hint,
    )


# ============================================================================
# Entity resolvers
# ============================================================================

def _resolve_named(
    db: Session,
    model: type,
    name: str,
    filters: list,
    exact: bool,
) -> Resolution:
    text = name.strip()
    entity = ENTITY_NAMES[model]
    query = db.query(model).filter(*filters)
    if exact:
        records = query.filter(model.name == text).order_by(model.name).all()
        result = classify(entity, text, records)
    else:
        # An equal name (ignoring case) must win even when many longer names contain it
        records = query.filter(_equals(model.name, text)).order_by(model.name).all()
        if not records:
            records = (
                query.filter(_contains(model.name, text))
                .order_by(model.name)
                .limit(get_settings().user_search_limit)
                .all()
            )
        result = classify(entity, text, records, prefer_exact=True)
    logger.debug(f"Resolved {entity} '{text}' ({'exact' if exact else 'fuzzy'}): {type(result).__name__}")
    return result


def resolve_project(db: Session, name: str, exact: bool = True) -> Resolution:
    """Resolve a project name (names are global)."""
    return _resolve_named(db, models.Project, name, [], exact)


def resolve_stage(db: Session, name: str, project_id: UUID, exact: bool = True) -> Resolution:
    """Resolve a stage name within a project."""
    return _resolve_named(db, models.Stage, name, [models.Stage.project_id == project_id], exact)


def resolve_object(
    db: Session,
    name: str,
    project_id: Optional[UUID] = None,
    stage_id: Optional[UUID] = None,
    exact: bool = True,
) -> Resolution:
    """Resolve an object name, optionally scoped to a project and/or stage."""
    filters = []
    if project_id is not None:
        filters.append(models.ProjectObject.project_id == project_id)
    if stage_id is not None:
        filters.append(models.ProjectObject.stage_id == stage_id)
    return _resolve_named(db, models.ProjectObject, name, filters, exact)


def resolve_section(
    db: Session,
    name: str,
    project_id: Optional[UUID] = None,
    object_id: Optional[UUID] = None,
    exact: bool = True,
) -> Resolution:
    """Resolve a section name, optionally scoped to a project and/or object."""
    filters = []
    if project_id is not None:
        filters.append(models.Section.project_id == project_id)
    if object_id is not None:
        filters.append(models.Section.object_id == object_id)
    return _resolve_named(db, models.Section, name, filters, exact)


def resolve_client(db: Session, name: str) -> Resolution:
    """Resolve a client by name fragment, preferring an exact match."""
    return _resolve_named(db, models.Client, name, [], exact=False)


def resolve_department(db: Session, name: str) -> Resolution:
    """Resolve a department: exact (case-insensitive) first, then substring."""
    text = name.strip()
    exact = db.query(models.Department).filter(_equals(models.Department.name, text)).all()
    if exact:
        return classify("Department", text, exact)
    records = (
        db.query(models.Department)
        .filter(_contains(models.Department.name, text))
        .order_by(models.Department.name)
        .all()
    )
    return classify("Department", text, records)


# ============================================================================
# People
# ============================================================================

def search_users(db: Session, query: str, limit: Optional[int] = None) -> list[models.User]:
    """
    Search active users by name or email.

    Matches first name, last name, full name or email by substring. When the
    query has several words, "first last" and "last first" pairs also match.
    An empty query lists active users; an over-long query returns nothing.

    Args:
        db: Database session
        query: Free-text name or email fragment
        limit: Maximum results (capped at the configured user search limit)

    Returns:
        Matching users ordered by full name
    """
    settings = get_settings()
    cap = settings.user_search_limit if limit is None else min(limit, settings.user_search_limit)
    text = (query or "").strip()

    base = db.query(models.User).filter(models.User.is_active == True)  # noqa: E712

    if not text:
        return base.order_by(models.User.full_name).limit(cap).all()

    if len(text) > settings.user_search_max_length:
        logger.warning(f"User search query too long ({len(text)} chars), skipping")
        return []

    clauses = [
        _contains(models.User.first_name, text),
        _contains(models.User.last_name, text),
        _contains(models.User.full_name, text),
        _contains(models.User.email, text),
    ]

    words = text.split()
    if len(words) >= 2:
        first, second = words[0], words[1]
        clauses.append(and_(_contains(models.User.first_name, first), _contains(models.User.last_name, second)))
        clauses.append(and_(_contains(models.User.first_name, second), _contains(models.User.last_name, first)))

    return base.filter(or_(*clauses)).order_by(models.User.full_name).limit(cap).all()


def resolve_user(db: Session, query: str) -> Resolution:
    """
    Resolve a person by name or email.

    An email that matches exactly wins outright, as does a single user whose
    full name equals the query.
    """
    text = (query or "").strip()
    if not text:
        return NotFound("User", text, reason="User name must not be empty")
    if len(text) > get_settings().user_search_max_length:
        return NotFound(
            "User",
            text,
            reason=f"Search query too long (max {get_settings().user_search_max_length} characters)",
        )

    active = db.query(models.User).filter(models.User.is_active == True)  # noqa: E712
    for column in (models.User.email, models.User.full_name):
        matches = active.filter(_equals(column, text)).limit(2).all()
        if len(matches) == 1:
            return Unique("User", text, matches[0])

    return classify("User", text, search_users(db, text))


# ============================================================================
# Composition
# ============================================================================

StepResolver = Callable[[dict], Resolution]


@dataclass
class ResolutionStep:
    key: str
    resolve: StepResolver
    depends_on: tuple = ()


class ResolutionChain:
    """
    Ordered list of resolution steps.

    Each step receives the records resolved by earlier steps, so a stage
    step can scope itself to the resolved project. Steps run in the order
    they were added and the first NotFound or Ambiguous ends the chain.
    """

    def __init__(self):
        self.steps: list[ResolutionStep] = []

    def add(self, key: str, resolve: StepResolver, depends_on: tuple = ()) -> "ResolutionChain":
        """
        Append a step.

        Raises:
            ValueError: If the key is reused or a dependency was not added earlier
        """
        known = {step.key for step in self.steps}
        if key in known:
            raise ValueError(f"Duplicate resolution step '{key}'")
        missing = [dep for dep in depends_on if dep not in known]
        if missing:
            raise ValueError(f"Step '{key}' depends on steps not yet added: {', '.join(missing)}")
        self.steps.append(ResolutionStep(key, resolve, tuple(depends_on)))
        return self

    def run(self) -> Union[NotFound, Ambiguous, Resolved]:
        """Run every step; return the first failure or all resolved records."""
        resolved: dict = {}
        for step in self.steps:
            outcome = step.resolve(resolved)
            if not isinstance(outcome, Unique):
                logger.info(f"Resolution stopped at '{step.key}': {type(outcome).__name__} for '{outcome.query}'")
                return outcome
            resolved[step.key] = outcome.record
        return Resolved(resolved)

    def resolve(self) -> dict:
        """
        Run the chain and return the resolved records.

        Raises:
            NotFoundError: If a step found nothing
            AmbiguousError: If a step found several candidates
        """
        outcome = self.run()
        if isinstance(outcome, Resolved):
            return outcome.records
        return unwrap(outcome)
