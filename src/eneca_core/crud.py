"""CRUD operations for the project tree (projects, stages, objects, sections).

Every create and update runs the same gate before touching the store:
references must exist, the date range must hold and the name must be free
in its scope. The database unique constraints are the final guard; an
IntegrityError on commit is reported as a ConflictError.
"""
import logging
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import ConflictError, DependentRecordsExistError, StoreFailureError
from .resolution import escape_like
from .validation import (
    check_unique,
    check_unique_excluding,
    ensure_date_range,
    validate_references,
)

logger = logging.getLogger("eneca-core.crud")


def _contains(column, text: str):
    return column.ilike(f"%{escape_like(text.strip())}%", escape="\\")


def _commit(db: Session, operation: str, entity: str = "", name: str = "", scope: Optional[str] = None) -> None:
    """
    Commit the session, mapping store errors to core errors.

    Raises:
        ConflictError: On a unique constraint violation
        StoreFailureError: On any other database error
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Integrity error during {operation}: {e.orig}")
        if entity:
            raise ConflictError(entity, name, scope)
        raise StoreFailureError(operation, str(e.orig))
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error during {operation}: {e}")
        raise StoreFailureError(operation, str(e))


def _apply(record, values: dict) -> None:
    for key, value in values.items():
        setattr(record, key, value)


# ============================================================================
# Projects
# ============================================================================

def create_project(db: Session, project: schemas.ProjectCreate) -> models.Project:
    """
    Create a new project.

    Args:
        db: Database session
        project: Project data with resolved user/client ids

    Returns:
        Created project

    Raises:
        InvalidReferenceError: If manager, lead engineer or client does not exist
        ConflictError: If a project with this name exists
    """
    validate_references(db, {
        "manager_id": (models.User, project.manager_id),
        "lead_engineer_id": (models.User, project.lead_engineer_id),
        "client_id": (models.Client, project.client_id),
    })
    check_unique(db, models.Project, project.name)

    db_project = models.Project(**project.model_dump())
    db.add(db_project)
    _commit(db, "create_project", "Project", project.name)
    db.refresh(db_project)

    logger.info(f"Created project {db_project.id}: {db_project.name}")
    return db_project


def update_project(db: Session, db_project: models.Project, update: schemas.ProjectUpdate) -> models.Project:
    """
    Update a project. Only fields set on the payload are written.

    Raises:
        InvalidReferenceError: If a new manager, lead engineer or client does not exist
        ConflictError: If the new name is taken by another project
    """
    values = update.model_dump(exclude_unset=True)
    validate_references(db, {
        "manager_id": (models.User, values.get("manager_id")),
        "lead_engineer_id": (models.User, values.get("lead_engineer_id")),
        "client_id": (models.Client, values.get("client_id")),
    })
    if values.get("name"):
        check_unique_excluding(db, models.Project, values["name"], db_project.name, db_project.id)

    _apply(db_project, values)
    _commit(db, "update_project", "Project", db_project.name)
    db.refresh(db_project)

    logger.info(f"Updated project {db_project.id}: {', '.join(values) or 'no changes'}")
    return db_project


def search_projects(
    db: Session,
    name: Optional[str] = None,
    manager_id: Optional[UUID] = None,
    status: Optional[models.ProjectStatus] = None,
    skip: int = 0,
    limit: int = 10,
) -> list[models.Project]:
    """
    Search projects by name fragment, manager and status.

    Args:
        db: Database session
        name: Case-insensitive name fragment
        manager_id: Filter by manager
        status: Filter by status
        skip: Number of records to skip
        limit: Maximum number of records to return

    Returns:
        Matching projects ordered by name
    """
    query = db.query(models.Project)
    if name:
        query = query.filter(_contains(models.Project.name, name))
    if manager_id is not None:
        query = query.filter(models.Project.manager_id == manager_id)
    if status is not None:
        query = query.filter(models.Project.status == status)
    return query.order_by(models.Project.name).offset(skip).limit(limit).all()


def count_project_dependents(db: Session, project_id: UUID) -> dict[str, int]:
    """Count sections, objects and stages under a project."""
    return {
        "sections": db.query(func.count(models.Section.id)).filter(models.Section.project_id == project_id).scalar(),
        "objects": db.query(func.count(models.ProjectObject.id)).filter(models.ProjectObject.project_id == project_id).scalar(),
        "stages": db.query(func.count(models.Stage.id)).filter(models.Stage.project_id == project_id).scalar(),
    }


# ============================================================================
# Stages
# ============================================================================

def create_stage(db: Session, stage: schemas.StageCreate, project_name: Optional[str] = None) -> models.Stage:
    """
    Create a stage inside a project.

    Raises:
        InvalidReferenceError: If the project does not exist
        ConflictError: If the project already has a stage with this name
    """
    scope = f'project "{project_name}"' if project_name else None
    validate_references(db, {"project_id": (models.Project, stage.project_id)})
    check_unique(db, models.Stage, stage.name, stage.project_id, scope)

    db_stage = models.Stage(**stage.model_dump())
    db.add(db_stage)
    _commit(db, "create_stage", "Stage", stage.name, scope)
    db.refresh(db_stage)

    logger.info(f"Created stage {db_stage.id}: {db_stage.name} in project {db_stage.project_id}")
    return db_stage


def update_stage(db: Session, db_stage: models.Stage, update: schemas.StageUpdate) -> models.Stage:
    """Rename a stage or change its description."""
    values = update.model_dump(exclude_unset=True)
    scope = f'project "{db_stage.project.name}"'
    if values.get("name"):
        check_unique_excluding(
            db, models.Stage, values["name"], db_stage.name, db_stage.id, db_stage.project_id, scope
        )

    _apply(db_stage, values)
    _commit(db, "update_stage", "Stage", db_stage.name, scope)
    db.refresh(db_stage)

    logger.info(f"Updated stage {db_stage.id}: {', '.join(values) or 'no changes'}")
    return db_stage


def search_stages(
    db: Session,
    name: Optional[str] = None,
    project_id: Optional[UUID] = None,
    skip: int = 0,
    limit: int = 10,
) -> list[models.Stage]:
    """Search stages by name fragment, optionally within a project."""
    query = db.query(models.Stage)
    if name:
        query = query.filter(_contains(models.Stage.name, name))
    if project_id is not None:
        query = query.filter(models.Stage.project_id == project_id)
    return query.order_by(models.Stage.name, models.Stage.id).offset(skip).limit(limit).all()


def count_stage_dependents(db: Session, stage_id: UUID) -> dict[str, int]:
    """Count objects directly under a stage."""
    return {
        "objects": db.query(func.count(models.ProjectObject.id)).filter(models.ProjectObject.stage_id == stage_id).scalar(),
    }


# ============================================================================
# Objects
# ============================================================================

def create_object(db: Session, obj: schemas.ObjectCreate, stage_name: Optional[str] = None) -> models.ProjectObject:
    """
    Create an object inside a stage.

    Raises:
        InvalidReferenceError: If project, stage or responsible does not exist
        InvertedRangeError: If start_date is after end_date
        ConflictError: If the stage already has an object with this name
    """
    scope = f'stage "{stage_name}"' if stage_name else None
    validate_references(db, {
        "project_id": (models.Project, obj.project_id),
        "stage_id": (models.Stage, obj.stage_id),
        "responsible_id": (models.User, obj.responsible_id),
    })
    ensure_date_range(obj.start_date, obj.end_date)
    check_unique(db, models.ProjectObject, obj.name, obj.stage_id, scope)

    db_object = models.ProjectObject(**obj.model_dump())
    db.add(db_object)
    _commit(db, "create_object", "Object", obj.name, scope)
    db.refresh(db_object)

    logger.info(f"Created object {db_object.id}: {db_object.name} in stage {db_object.stage_id}")
    return db_object


def update_object(db: Session, db_object: models.ProjectObject, update: schemas.ObjectUpdate) -> models.ProjectObject:
    """
    Update an object.

    Moving to another stage checks the name against the target stage. The
    date range is checked on the effective dates (new value if supplied,
    stored value otherwise).

    Raises:
        InvalidReferenceError: If the target stage or responsible does not exist
        InvertedRangeError: If the effective range is inverted
        ConflictError: If the name is taken in the target stage
    """
    values = update.model_dump(exclude_unset=True)
    validate_references(db, {
        "stage_id": (models.Stage, values.get("stage_id")),
        "responsible_id": (models.User, values.get("responsible_id")),
    })
    ensure_date_range(
        values.get("start_date", db_object.start_date),
        values.get("end_date", db_object.end_date),
    )

    target_stage_id = values.get("stage_id", db_object.stage_id)
    target_name = values.get("name") or db_object.name
    target_stage = db.get(models.Stage, target_stage_id)
    scope = f'stage "{target_stage.name}"'
    if target_stage_id != db_object.stage_id:
        # A move is a new placement: the name must be free in the target stage
        check_unique(db, models.ProjectObject, target_name, target_stage_id, scope)
        values["project_id"] = target_stage.project_id
    elif values.get("name"):
        check_unique_excluding(
            db, models.ProjectObject, target_name, db_object.name, db_object.id, target_stage_id, scope
        )

    _apply(db_object, values)
    _commit(db, "update_object", "Object", target_name, scope)
    db.refresh(db_object)

    logger.info(f"Updated object {db_object.id}: {', '.join(values) or 'no changes'}")
    return db_object


def search_objects(
    db: Session,
    name: Optional[str] = None,
    project_id: Optional[UUID] = None,
    stage_id: Optional[UUID] = None,
    responsible_id: Optional[UUID] = None,
    skip: int = 0,
    limit: int = 10,
) -> list[models.ProjectObject]:
    """Search objects by name fragment within optional project/stage/responsible filters."""
    query = db.query(models.ProjectObject)
    if name:
        query = query.filter(_contains(models.ProjectObject.name, name))
    if project_id is not None:
        query = query.filter(models.ProjectObject.project_id == project_id)
    if stage_id is not None:
        query = query.filter(models.ProjectObject.stage_id == stage_id)
    if responsible_id is not None:
        query = query.filter(models.ProjectObject.responsible_id == responsible_id)
    return query.order_by(models.ProjectObject.name, models.ProjectObject.id).offset(skip).limit(limit).all()


def count_object_dependents(db: Session, object_id: UUID) -> dict[str, int]:
    """Count sections under an object."""
    return {
        "sections": db.query(func.count(models.Section.id)).filter(models.Section.object_id == object_id).scalar(),
    }


# ============================================================================
# Sections
# ============================================================================

def create_section(db: Session, section: schemas.SectionCreate, object_name: Optional[str] = None) -> models.Section:
    """
    Create a section inside an object.

    Raises:
        InvalidReferenceError: If project, object or responsible does not exist
        InvertedRangeError: If start_date is after end_date
        ConflictError: If the object already has a section with this name
    """
    scope = f'object "{object_name}"' if object_name else None
    validate_references(db, {
        "project_id": (models.Project, section.project_id),
        "object_id": (models.ProjectObject, section.object_id),
        "responsible_id": (models.User, section.responsible_id),
    })
    ensure_date_range(section.start_date, section.end_date)
    check_unique(db, models.Section, section.name, section.object_id, scope)

    db_section = models.Section(**section.model_dump())
    db.add(db_section)
    _commit(db, "create_section", "Section", section.name, scope)
    db.refresh(db_section)

    logger.info(f"Created section {db_section.id}: {db_section.name} in object {db_section.object_id}")
    return db_section


def update_section(db: Session, db_section: models.Section, update: schemas.SectionUpdate) -> models.Section:
    """
    Update a section, checking the effective date range and the name within its object.

    Raises:
        InvalidReferenceError: If the new responsible does not exist
        InvertedRangeError: If the effective range is inverted
        ConflictError: If the new name is taken in the object
    """
    values = update.model_dump(exclude_unset=True)
    validate_references(db, {"responsible_id": (models.User, values.get("responsible_id"))})
    ensure_date_range(
        values.get("start_date", db_section.start_date),
        values.get("end_date", db_section.end_date),
    )
    scope = f'object "{db_section.object.name}"'
    if values.get("name"):
        check_unique_excluding(
            db, models.Section, values["name"], db_section.name, db_section.id, db_section.object_id, scope
        )

    _apply(db_section, values)
    _commit(db, "update_section", "Section", db_section.name, scope)
    db.refresh(db_section)

    logger.info(f"Updated section {db_section.id}: {', '.join(values) or 'no changes'}")
    return db_section


def search_sections(
    db: Session,
    name: Optional[str] = None,
    project_id: Optional[UUID] = None,
    object_id: Optional[UUID] = None,
    section_type: Optional[str] = None,
    responsible_id: Optional[UUID] = None,
    skip: int = 0,
    limit: int = 10,
) -> list[models.Section]:
    """Search sections by name fragment and optional filters."""
    query = db.query(models.Section)
    if name:
        query = query.filter(_contains(models.Section.name, name))
    if project_id is not None:
        query = query.filter(models.Section.project_id == project_id)
    if object_id is not None:
        query = query.filter(models.Section.object_id == object_id)
    if section_type:
        query = query.filter(_contains(models.Section.type, section_type))
    if responsible_id is not None:
        query = query.filter(models.Section.responsible_id == responsible_id)
    return query.order_by(models.Section.name, models.Section.id).offset(skip).limit(limit).all()


def get_project_sections(db: Session, project_id: UUID) -> list[models.Section]:
    """All sections of a project ordered by name."""
    return (
        db.query(models.Section)
        .filter(models.Section.project_id == project_id)
        .order_by(models.Section.name, models.Section.id)
        .all()
    )


# ============================================================================
# Delete (with optional cascade)
# ============================================================================

def _delete_level(db: Session, report: schemas.CascadeReport, level: str, query) -> bool:
    """Delete one level of a cascade and commit it; record failures on the report."""
    try:
        count = query.delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Cascade delete of {report.entity} '{report.name}' failed at {level}: {e}")
        report.completed = False
        report.failed_level = level
        report.error = str(e)
        return False
    report.deleted[level] = count
    return True


def _delete_tree(
    db: Session,
    entity: str,
    record,
    dependents: dict[str, int],
    cascade: bool,
    levels: list[tuple[str, object]],
) -> schemas.CascadeReport:
    total = sum(dependents.values())
    if total and not cascade:
        logger.warning(f"Delete of {entity} '{record.name}' blocked by {total} dependents")
        raise DependentRecordsExistError(entity, total, dependents)

    record_id = record.id
    report = schemas.CascadeReport(entity=entity, name=record.name)
    if cascade:
        # Bottom-up; each level commits on its own, so a failure leaves the
        # levels already deleted in place and the report says which.
        for level, query in levels:
            if not _delete_level(db, report, level, query):
                return report

    model = type(record)
    _delete_level(db, report, entity.lower() + "s", db.query(model).filter(model.id == record_id))
    if report.completed:
        logger.info(f"Deleted {entity} {record_id} ({report.deleted})")
    return report


def delete_project(db: Session, db_project: models.Project, cascade: bool = False) -> schemas.CascadeReport:
    """
    Delete a project.

    Without cascade the delete is refused while the project has stages,
    objects or sections. With cascade, sections, objects and stages are
    deleted bottom-up before the project.

    Raises:
        DependentRecordsExistError: If dependents exist and cascade is False
    """
    project_id = db_project.id
    return _delete_tree(
        db, "Project", db_project, count_project_dependents(db, project_id), cascade,
        [
            ("sections", db.query(models.Section).filter(models.Section.project_id == project_id)),
            ("objects", db.query(models.ProjectObject).filter(models.ProjectObject.project_id == project_id)),
            ("stages", db.query(models.Stage).filter(models.Stage.project_id == project_id)),
        ],
    )


def delete_stage(db: Session, db_stage: models.Stage, cascade: bool = False) -> schemas.CascadeReport:
    """
    Delete a stage; with cascade, the sections of its objects and then the objects go first.

    Raises:
        DependentRecordsExistError: If objects exist and cascade is False
    """
    stage_id = db_stage.id
    object_ids = select(models.ProjectObject.id).where(models.ProjectObject.stage_id == stage_id)
    return _delete_tree(
        db, "Stage", db_stage, count_stage_dependents(db, stage_id), cascade,
        [
            ("sections", db.query(models.Section).filter(models.Section.object_id.in_(object_ids))),
            ("objects", db.query(models.ProjectObject).filter(models.ProjectObject.stage_id == stage_id)),
        ],
    )


def delete_object(db: Session, db_object: models.ProjectObject, cascade: bool = False) -> schemas.CascadeReport:
    """
    Delete an object; with cascade, its sections go first.

    Raises:
        DependentRecordsExistError: If sections exist and cascade is False
    """
    object_id = db_object.id
    return _delete_tree(
        db, "Object", db_object, count_object_dependents(db, object_id), cascade,
        [
            ("sections", db.query(models.Section).filter(models.Section.object_id == object_id)),
        ],
    )


def delete_section(db: Session, db_section: models.Section) -> schemas.CascadeReport:
    """Delete a section. Sections have no children in the tree."""
    return _delete_tree(db, "Section", db_section, {}, False, [])


# ============================================================================
# People and aggregates
# ============================================================================

def get_managed_projects(db: Session, user_id: UUID) -> list[models.Project]:
    return db.query(models.Project).filter(models.Project.manager_id == user_id).order_by(models.Project.name).all()


def get_led_projects(db: Session, user_id: UUID) -> list[models.Project]:
    return (
        db.query(models.Project)
        .filter(models.Project.lead_engineer_id == user_id)
        .order_by(models.Project.name)
        .all()
    )


def get_user_loadings(db: Session, user_id: UUID) -> list[models.Loading]:
    return db.query(models.Loading).filter(models.Loading.user_id == user_id).all()


def get_user_workload(
    db: Session,
    user_id: UUID,
    project_id: Optional[UUID] = None,
    include_completed: bool = False,
    today: Optional[date] = None,
) -> list[tuple[models.Section, Optional[float]]]:
    """
    Sections a user works on, either as responsible or through a loading.

    Args:
        db: Database session
        user_id: The user
        project_id: Restrict to one project
        include_completed: Keep sections whose end date has passed
        today: Reference date for "completed" (defaults to today)

    Returns:
        (section, loading rate or None) pairs ordered by project, object, section
    """
    loaded_ids = select(models.Loading.section_id).where(models.Loading.user_id == user_id)
    query = db.query(models.Section).filter(
        or_(models.Section.responsible_id == user_id, models.Section.id.in_(loaded_ids))
    )
    if project_id is not None:
        query = query.filter(models.Section.project_id == project_id)
    if not include_completed:
        cutoff = today or date.today()
        query = query.filter(or_(models.Section.end_date.is_(None), models.Section.end_date >= cutoff))

    sections = (
        query.join(models.Project, models.Section.project_id == models.Project.id)
        .join(models.ProjectObject, models.Section.object_id == models.ProjectObject.id)
        .order_by(models.Project.name, models.ProjectObject.name, models.Section.name)
        .all()
    )

    rates: dict[UUID, float] = {}
    for loading in get_user_loadings(db, user_id):
        rates[loading.section_id] = rates.get(loading.section_id, 0.0) + float(loading.rate)
    return [(section, rates.get(section.id)) for section in sections]


def get_responsible_objects(
    db: Session, user_id: UUID, project_id: Optional[UUID] = None, limit: int = 20
) -> list[models.ProjectObject]:
    return search_objects(db, project_id=project_id, responsible_id=user_id, limit=limit)


def get_responsible_sections(
    db: Session, user_id: UUID, project_id: Optional[UUID] = None, limit: int = 20
) -> list[models.Section]:
    return search_sections(db, project_id=project_id, responsible_id=user_id, limit=limit)


def get_project_responsibles(db: Session, project_id: UUID) -> list[tuple[models.User, int]]:
    """Users responsible for objects or sections of a project, with their task counts."""
    counts: dict[UUID, int] = {}
    for model in (models.ProjectObject, models.Section):
        rows = (
            db.query(model.responsible_id, func.count(model.id))
            .filter(model.project_id == project_id, model.responsible_id.isnot(None))
            .group_by(model.responsible_id)
            .all()
        )
        for user_id, count in rows:
            counts[user_id] = counts.get(user_id, 0) + count
    if not counts:
        return []
    users = db.query(models.User).filter(models.User.id.in_(list(counts))).order_by(models.User.full_name).all()
    return [(user, counts[user.id]) for user in users]


# ============================================================================
# Notes
# ============================================================================

def create_note(db: Session, note: schemas.NoteCreate) -> models.Note:
    """
    Create a note.

    Raises:
        InvalidReferenceError: If the author does not exist
    """
    validate_references(db, {"author_id": (models.User, note.author_id)})
    db_note = models.Note(**note.model_dump())
    db.add(db_note)
    _commit(db, "create_note")
    db.refresh(db_note)

    logger.info(f"Created note {db_note.id} by {db_note.author_id}")
    return db_note
