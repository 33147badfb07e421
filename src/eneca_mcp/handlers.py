"""MCP tool handlers shared between stdio and SSE transports.

All handlers follow a consistent pattern:
- Accept: arguments dict and a SQLAlchemy Session
- Resolve every free-text name through a ResolutionChain, in dependency
  order (project -> stage -> object -> responsible), before any write
- Raise EnecaError subclasses for expected failures; the dispatch layer
  renders them as a single text block
- Return list[TextContent] built with the formatters module, or JSON
  EmbeddedResource blocks for machine-readable lookups
- Log all operations for debugging

Handlers are synchronous; the server runs them in a worker thread with a
session of their own.
"""
from typing import Optional
from uuid import UUID
import logging

from mcp.types import EmbeddedResource, TextContent, TextResourceContents
from sqlalchemy.orm import Session

from eneca_core import crud, models, schemas
from eneca_core.cache import DisplayCache
from eneca_core.config import get_settings
from eneca_core.errors import EnecaError, InvalidFormatError
from eneca_core.reports import build_plan_fact_report, parse_report_date
from eneca_core.resolution import (
    ResolutionChain,
    resolve_client,
    resolve_department,
    resolve_object,
    resolve_project,
    resolve_section,
    resolve_stage,
    resolve_user,
    search_users,
    unwrap,
)
from eneca_core.validation import (
    format_date_for_display,
    normalize_project_status,
    parse_optional_date,
)

from . import formatters

logger = logging.getLogger("eneca-mcp.handlers")

MAX_PAGE_SIZE = 100

# Process-wide; entries expire after the TTL and are not evicted on writes
display_cache = DisplayCache(get_settings().cache_ttl_seconds)


# ============================================================================
# Argument helpers
# ============================================================================

def _text(text: str) -> list[TextContent]:
    return [TextContent(type="text", text=text)]


def _arg(arguments: dict, key: str) -> Optional[str]:
    """Stripped string argument, or None when absent or blank."""
    value = arguments.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _require(arguments: dict, key: str) -> str:
    value = _arg(arguments, key)
    if value is None:
        raise EnecaError(f"Missing required argument: {key}")
    return value


def _flag(arguments: dict, key: str, default: bool = False) -> bool:
    """Boolean argument; accepts JSON booleans and 'true'/'false' strings."""
    value = arguments.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _int(arguments: dict, key: str, default: int, minimum: int = 0) -> int:
    value = arguments.get(key)
    if value is None or value == "":
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidFormatError(key, str(value), expected="an integer")
    if number < minimum:
        raise InvalidFormatError(key, str(value), expected=f"an integer >= {minimum}")
    return number


def _pagination(arguments: dict) -> tuple[int, int]:
    limit = min(_int(arguments, "limit", get_settings().default_page_size, minimum=1), MAX_PAGE_SIZE)
    offset = _int(arguments, "offset", 0)
    return limit, offset


def _person(user: Optional[models.User]) -> Optional[dict]:
    if user is None:
        return None
    return {"full_name": user.full_name, "email": user.email}


def _related(db: Session, record) -> dict:
    """Display names of the records a row points at, via the display cache."""
    related = {}
    if isinstance(record, models.Project):
        related["manager"] = display_cache.user(db, record.manager_id)
        related["lead_engineer"] = display_cache.user(db, record.lead_engineer_id)
        return related
    related["project"] = display_cache.project(db, record.project_id) or {}
    if isinstance(record, models.ProjectObject):
        related["stage"] = display_cache.stage(db, record.stage_id) or {}
    if isinstance(record, models.Section):
        related["object"] = {"name": record.object.name}
    if getattr(record, "responsible_id", None) is not None:
        related["responsible"] = display_cache.user(db, record.responsible_id)
    return related


def _describe_date(value) -> str:
    return format_date_for_display(value) or "none"


# ============================================================================
# Project Handlers
# ============================================================================

def handle_create_project(arguments: dict, db: Session) -> list[TextContent]:
    """Create a project; manager, lead engineer and client are resolved by name."""
    name = _require(arguments, "project_name")
    manager_name = _arg(arguments, "manager_name")
    lead_name = _arg(arguments, "lead_engineer_name")
    client_name = _arg(arguments, "client_name")
    status_text = _arg(arguments, "project_status")
    status = normalize_project_status(status_text) if status_text else models.ProjectStatus.ACTIVE

    chain = ResolutionChain()
    if manager_name:
        chain.add("manager", lambda r: resolve_user(db, manager_name))
    if lead_name:
        chain.add("lead_engineer", lambda r: resolve_user(db, lead_name))
    if client_name:
        chain.add("client", lambda r: resolve_client(db, client_name))
    resolved = chain.resolve()

    project = crud.create_project(db, schemas.ProjectCreate(
        name=name,
        description=_arg(arguments, "project_description"),
        manager_id=resolved["manager"].id if "manager" in resolved else None,
        lead_engineer_id=resolved["lead_engineer"].id if "lead_engineer" in resolved else None,
        client_id=resolved["client"].id if "client" in resolved else None,
        status=status,
    ))
    logger.info(f"Successfully created project {project.id}: {project.name}")

    return _text(f"Project created.\n\n{formatters.format_project(project, _related(db, project))}")


def handle_search_projects(arguments: dict, db: Session) -> list[TextContent]:
    """Search projects by name fragment with optional manager and status filters."""
    limit, offset = _pagination(arguments)
    manager_name = _arg(arguments, "manager_name")
    status_text = _arg(arguments, "project_status")

    chain = ResolutionChain()
    if manager_name:
        chain.add("manager", lambda r: resolve_user(db, manager_name))
    resolved = chain.resolve()

    projects = crud.search_projects(
        db,
        name=_arg(arguments, "project_name"),
        manager_id=resolved["manager"].id if "manager" in resolved else None,
        status=normalize_project_status(status_text) if status_text else None,
        skip=offset,
        limit=limit,
    )
    logger.info(f"Successfully searched projects: found {len(projects)} results")

    entries = [formatters.format_project(p, _related(db, p)) for p in projects]
    return _text(formatters.format_search_results("projects", entries, limit, offset))


def handle_update_project(arguments: dict, db: Session) -> list[TextContent]:
    """Update a project found by its exact current name."""
    current_name = _require(arguments, "current_name")
    manager_name = _arg(arguments, "manager_name")
    lead_name = _arg(arguments, "lead_engineer_name")
    client_name = _arg(arguments, "client_name")

    chain = ResolutionChain().add("project", lambda r: resolve_project(db, current_name, exact=True))
    if manager_name:
        chain.add("manager", lambda r: resolve_user(db, manager_name))
    if lead_name:
        chain.add("lead_engineer", lambda r: resolve_user(db, lead_name))
    if client_name:
        chain.add("client", lambda r: resolve_client(db, client_name))
    resolved = chain.resolve()
    project = resolved["project"]

    fields = {}
    changes = []
    new_name = _arg(arguments, "new_name")
    if new_name and new_name != project.name:
        fields["name"] = new_name
        changes.append(f'name: "{project.name}" -> "{new_name}"')
    description = _arg(arguments, "project_description")
    if description is not None:
        fields["description"] = description
        changes.append("description updated")
    if "manager" in resolved:
        fields["manager_id"] = resolved["manager"].id
        changes.append(f"manager: {resolved['manager'].full_name}")
    if "lead_engineer" in resolved:
        fields["lead_engineer_id"] = resolved["lead_engineer"].id
        changes.append(f"lead engineer: {resolved['lead_engineer'].full_name}")
    if "client" in resolved:
        fields["client_id"] = resolved["client"].id
        changes.append(f"client: {resolved['client'].name}")
    status_text = _arg(arguments, "project_status")
    if status_text:
        fields["status"] = normalize_project_status(status_text)
        changes.append(f"status: {fields['status'].value}")

    if fields:
        project = crud.update_project(db, project, schemas.ProjectUpdate(**fields))
    logger.info(f"Successfully updated project {project.id}: {len(changes)} changes")

    return _text(formatters.format_changes("Project", project.name, changes))


def handle_delete_project(arguments: dict, db: Session) -> list[TextContent]:
    """Delete a project, refusing while it has descendants unless cascade is set."""
    name = _require(arguments, "project_name")
    project = unwrap(resolve_project(db, name, exact=True))
    report = crud.delete_project(db, project, cascade=_flag(arguments, "cascade"))
    return _text(formatters.format_cascade_report(report))


# ============================================================================
# Stage Handlers
# ============================================================================

def handle_create_stage(arguments: dict, db: Session) -> list[TextContent]:
    """Create a stage in a project resolved by name."""
    stage_name = _require(arguments, "stage_name")
    project_name = _require(arguments, "project_name")

    project = unwrap(resolve_project(db, project_name, exact=False))
    stage = crud.create_stage(
        db,
        schemas.StageCreate(
            name=stage_name,
            description=_arg(arguments, "stage_description"),
            project_id=project.id,
        ),
        project_name=project.name,
    )
    logger.info(f"Successfully created stage {stage.id} in project {project.name}")

    return _text(f"Stage created.\n\n{formatters.format_stage(stage, {'project': {'name': project.name}})}")


def handle_search_stages(arguments: dict, db: Session) -> list[TextContent]:
    """Search stages by name fragment, optionally within one project."""
    limit, offset = _pagination(arguments)
    project_name = _arg(arguments, "project_name")

    project_id = None
    if project_name:
        project_id = unwrap(resolve_project(db, project_name, exact=False)).id

    stages = crud.search_stages(
        db, name=_arg(arguments, "stage_name"), project_id=project_id, skip=offset, limit=limit
    )
    logger.info(f"Successfully searched stages: found {len(stages)} results")

    entries = [formatters.format_stage(s, _related(db, s)) for s in stages]
    return _text(formatters.format_search_results("stages", entries, limit, offset))


def handle_update_stage(arguments: dict, db: Session) -> list[TextContent]:
    """Rename a stage or change its description."""
    current_name = _require(arguments, "current_name")
    project_name = _require(arguments, "project_name")

    resolved = (
        ResolutionChain()
        .add("project", lambda r: resolve_project(db, project_name, exact=True))
        .add("stage", lambda r: resolve_stage(db, current_name, r["project"].id, exact=True), depends_on=("project",))
        .resolve()
    )
    stage = resolved["stage"]

    fields = {}
    changes = []
    new_name = _arg(arguments, "new_name")
    if new_name and new_name != stage.name:
        fields["name"] = new_name
        changes.append(f'name: "{stage.name}" -> "{new_name}"')
    description = _arg(arguments, "stage_description")
    if description is not None:
        fields["description"] = description
        changes.append("description updated")

    if fields:
        stage = crud.update_stage(db, stage, schemas.StageUpdate(**fields))
    return _text(formatters.format_changes("Stage", stage.name, changes))


def handle_delete_stage(arguments: dict, db: Session) -> list[TextContent]:
    """Delete a stage, refusing while it has objects unless cascade is set."""
    stage_name = _require(arguments, "stage_name")
    project_name = _require(arguments, "project_name")

    resolved = (
        ResolutionChain()
        .add("project", lambda r: resolve_project(db, project_name, exact=True))
        .add("stage", lambda r: resolve_stage(db, stage_name, r["project"].id, exact=True), depends_on=("project",))
        .resolve()
    )
    report = crud.delete_stage(db, resolved["stage"], cascade=_flag(arguments, "cascade"))
    return _text(formatters.format_cascade_report(report))


# ============================================================================
# Object Handlers
# ============================================================================

def handle_create_object(arguments: dict, db: Session) -> list[TextContent]:
    """Create an object in a stage; project, stage and responsible are resolved by name."""
    object_name = _require(arguments, "object_name")
    project_name = _require(arguments, "project_name")
    stage_name = _require(arguments, "stage_name")
    responsible_name = _arg(arguments, "responsible_name")
    start_date = parse_optional_date(arguments.get("start_date"), "start date")
    end_date = parse_optional_date(arguments.get("end_date"), "end date")

    chain = (
        ResolutionChain()
        .add("project", lambda r: resolve_project(db, project_name, exact=False))
        .add("stage", lambda r: resolve_stage(db, stage_name, r["project"].id, exact=False), depends_on=("project",))
    )
    if responsible_name:
        chain.add("responsible", lambda r: resolve_user(db, responsible_name))
    resolved = chain.resolve()

    obj = crud.create_object(
        db,
        schemas.ObjectCreate(
            name=object_name,
            description=_arg(arguments, "object_description"),
            project_id=resolved["project"].id,
            stage_id=resolved["stage"].id,
            responsible_id=resolved["responsible"].id if "responsible" in resolved else None,
            start_date=start_date,
            end_date=end_date,
        ),
        stage_name=resolved["stage"].name,
    )
    logger.info(f"Successfully created object {obj.id} in stage {resolved['stage'].name}")

    related = {
        "project": {"name": resolved["project"].name},
        "stage": {"name": resolved["stage"].name},
        "responsible": _person(resolved.get("responsible")),
    }
    return _text(f"Object created.\n\n{formatters.format_object(obj, related)}")


def handle_search_objects(arguments: dict, db: Session) -> list[TextContent]:
    """Search objects; a stage filter needs a project to scope it."""
    limit, offset = _pagination(arguments)
    project_name = _arg(arguments, "project_name")
    stage_name = _arg(arguments, "stage_name")
    responsible_name = _arg(arguments, "responsible_name")
    if stage_name and not project_name:
        raise EnecaError("Filtering by stage requires project_name")

    chain = ResolutionChain()
    if project_name:
        chain.add("project", lambda r: resolve_project(db, project_name, exact=False))
    if stage_name:
        chain.add("stage", lambda r: resolve_stage(db, stage_name, r["project"].id, exact=False), depends_on=("project",))
    if responsible_name:
        chain.add("responsible", lambda r: resolve_user(db, responsible_name))
    resolved = chain.resolve()

    objects = crud.search_objects(
        db,
        name=_arg(arguments, "object_name"),
        project_id=resolved["project"].id if "project" in resolved else None,
        stage_id=resolved["stage"].id if "stage" in resolved else None,
        responsible_id=resolved["responsible"].id if "responsible" in resolved else None,
        skip=offset,
        limit=limit,
    )
    logger.info(f"Successfully searched objects: found {len(objects)} results")

    entries = [formatters.format_object(o, _related(db, o)) for o in objects]
    return _text(formatters.format_search_results("objects", entries, limit, offset))


def handle_update_object(arguments: dict, db: Session) -> list[TextContent]:
    """Update an object found by exact name; may move it to another stage of the project."""
    current_name = _require(arguments, "current_name")
    project_name = _require(arguments, "project_name")
    stage_name = _arg(arguments, "stage_name")
    new_stage_name = _arg(arguments, "new_stage_name")
    responsible_name = _arg(arguments, "responsible_name")
    start_date = parse_optional_date(arguments.get("start_date"), "start date")
    end_date = parse_optional_date(arguments.get("end_date"), "end date")

    chain = ResolutionChain().add("project", lambda r: resolve_project(db, project_name, exact=True))
    if stage_name:
        chain.add("stage", lambda r: resolve_stage(db, stage_name, r["project"].id, exact=True), depends_on=("project",))
    chain.add(
        "object",
        lambda r: resolve_object(
            db, current_name, project_id=r["project"].id,
            stage_id=r["stage"].id if "stage" in r else None, exact=True,
        ),
        depends_on=("project",),
    )
    if new_stage_name:
        chain.add(
            "new_stage",
            lambda r: resolve_stage(db, new_stage_name, r["project"].id, exact=True),
            depends_on=("project",),
        )
    if responsible_name:
        chain.add("responsible", lambda r: resolve_user(db, responsible_name))
    resolved = chain.resolve()
    obj = resolved["object"]

    fields = {}
    changes = []
    new_name = _arg(arguments, "new_name")
    if new_name and new_name != obj.name:
        fields["name"] = new_name
        changes.append(f'name: "{obj.name}" -> "{new_name}"')
    description = _arg(arguments, "object_description")
    if description is not None:
        fields["description"] = description
        changes.append("description updated")
    if "new_stage" in resolved and resolved["new_stage"].id != obj.stage_id:
        fields["stage_id"] = resolved["new_stage"].id
        changes.append(f'stage: "{obj.stage.name}" -> "{resolved["new_stage"].name}"')
    if "responsible" in resolved:
        fields["responsible_id"] = resolved["responsible"].id
        changes.append(f"responsible: {resolved['responsible'].full_name}")
    if start_date is not None:
        fields["start_date"] = start_date
        changes.append(f"start date: {_describe_date(obj.start_date)} -> {_describe_date(start_date)}")
    if end_date is not None:
        fields["end_date"] = end_date
        changes.append(f"end date: {_describe_date(obj.end_date)} -> {_describe_date(end_date)}")

    if fields:
        obj = crud.update_object(db, obj, schemas.ObjectUpdate(**fields))
    return _text(formatters.format_changes("Object", obj.name, changes))


def handle_delete_object(arguments: dict, db: Session) -> list[TextContent]:
    """Delete an object, refusing while it has sections unless cascade is set."""
    object_name = _require(arguments, "object_name")
    project_name = _require(arguments, "project_name")
    stage_name = _arg(arguments, "stage_name")

    chain = ResolutionChain().add("project", lambda r: resolve_project(db, project_name, exact=True))
    if stage_name:
        chain.add("stage", lambda r: resolve_stage(db, stage_name, r["project"].id, exact=True), depends_on=("project",))
    chain.add(
        "object",
        lambda r: resolve_object(
            db, object_name, project_id=r["project"].id,
            stage_id=r["stage"].id if "stage" in r else None, exact=True,
        ),
        depends_on=("project",),
    )
    resolved = chain.resolve()

    report = crud.delete_object(db, resolved["object"], cascade=_flag(arguments, "cascade"))
    return _text(formatters.format_cascade_report(report))


# ============================================================================
# Section Handlers
# ============================================================================

def handle_create_section(arguments: dict, db: Session) -> list[TextContent]:
    """Create a section in an object; the object is resolved within the project."""
    section_name = _require(arguments, "section_name")
    project_name = _require(arguments, "project_name")
    object_name = _require(arguments, "object_name")
    stage_name = _arg(arguments, "stage_name")
    responsible_name = _arg(arguments, "responsible_name")
    start_date = parse_optional_date(arguments.get("start_date"), "start date")
    end_date = parse_optional_date(arguments.get("end_date"), "end date")

    chain = ResolutionChain().add("project", lambda r: resolve_project(db, project_name, exact=False))
    if stage_name:
        chain.add("stage", lambda r: resolve_stage(db, stage_name, r["project"].id, exact=False), depends_on=("project",))
    chain.add(
        "object",
        lambda r: resolve_object(
            db, object_name, project_id=r["project"].id,
            stage_id=r["stage"].id if "stage" in r else None, exact=False,
        ),
        depends_on=("project",),
    )
    if responsible_name:
        chain.add("responsible", lambda r: resolve_user(db, responsible_name))
    resolved = chain.resolve()

    section = crud.create_section(
        db,
        schemas.SectionCreate(
            name=section_name,
            description=_arg(arguments, "section_description"),
            type=_arg(arguments, "section_type"),
            project_id=resolved["project"].id,
            object_id=resolved["object"].id,
            responsible_id=resolved["responsible"].id if "responsible" in resolved else None,
            start_date=start_date,
            end_date=end_date,
        ),
        object_name=resolved["object"].name,
    )
    logger.info(f"Successfully created section {section.id} in object {resolved['object'].name}")

    related = {
        "project": {"name": resolved["project"].name},
        "object": {"name": resolved["object"].name},
        "responsible": _person(resolved.get("responsible")),
    }
    return _text(f"Section created.\n\n{formatters.format_section(section, related)}")


def handle_search_sections(arguments: dict, db: Session) -> list[TextContent]:
    """Search sections by name fragment, project, object, type or responsible."""
    limit, offset = _pagination(arguments)
    project_name = _arg(arguments, "project_name")
    object_name = _arg(arguments, "object_name")
    responsible_name = _arg(arguments, "responsible_name")

    chain = ResolutionChain()
    if project_name:
        chain.add("project", lambda r: resolve_project(db, project_name, exact=False))
    if object_name:
        chain.add(
            "object",
            lambda r: resolve_object(
                db, object_name, project_id=r["project"].id if "project" in r else None, exact=False
            ),
        )
    if responsible_name:
        chain.add("responsible", lambda r: resolve_user(db, responsible_name))
    resolved = chain.resolve()

    sections = crud.search_sections(
        db,
        name=_arg(arguments, "section_name"),
        project_id=resolved["project"].id if "project" in resolved else None,
        object_id=resolved["object"].id if "object" in resolved else None,
        section_type=_arg(arguments, "section_type"),
        responsible_id=resolved["responsible"].id if "responsible" in resolved else None,
        skip=offset,
        limit=limit,
    )
    logger.info(f"Successfully searched sections: found {len(sections)} results")

    entries = [formatters.format_section(s, _related(db, s)) for s in sections]
    return _text(formatters.format_search_results("sections", entries, limit, offset))


def handle_update_section(arguments: dict, db: Session) -> list[TextContent]:
    """Update a section found by exact name within the project (and object, if given)."""
    current_name = _require(arguments, "current_name")
    project_name = _require(arguments, "project_name")
    object_name = _arg(arguments, "object_name")
    responsible_name = _arg(arguments, "responsible_name")
    start_date = parse_optional_date(arguments.get("start_date"), "start date")
    end_date = parse_optional_date(arguments.get("end_date"), "end date")

    chain = ResolutionChain().add("project", lambda r: resolve_project(db, project_name, exact=True))
    if object_name:
        chain.add(
            "object",
            lambda r: resolve_object(db, object_name, project_id=r["project"].id, exact=True),
            depends_on=("project",),
        )
    chain.add(
        "section",
        lambda r: resolve_section(
            db, current_name, project_id=r["project"].id,
            object_id=r["object"].id if "object" in r else None, exact=True,
        ),
        depends_on=("project",),
    )
    if responsible_name:
        chain.add("responsible", lambda r: resolve_user(db, responsible_name))
    resolved = chain.resolve()
    section = resolved["section"]

    fields = {}
    changes = []
    new_name = _arg(arguments, "new_name")
    if new_name and new_name != section.name:
        fields["name"] = new_name
        changes.append(f'name: "{section.name}" -> "{new_name}"')
    description = _arg(arguments, "section_description")
    if description is not None:
        fields["description"] = description
        changes.append("description updated")
    section_type = _arg(arguments, "section_type")
    if section_type is not None:
        fields["type"] = section_type
        changes.append(f"type: {section_type}")
    if "responsible" in resolved:
        fields["responsible_id"] = resolved["responsible"].id
        changes.append(f"responsible: {resolved['responsible'].full_name}")
    if start_date is not None:
        fields["start_date"] = start_date
        changes.append(f"start date: {_describe_date(section.start_date)} -> {_describe_date(start_date)}")
    if end_date is not None:
        fields["end_date"] = end_date
        changes.append(f"end date: {_describe_date(section.end_date)} -> {_describe_date(end_date)}")

    if fields:
        section = crud.update_section(db, section, schemas.SectionUpdate(**fields))
    return _text(formatters.format_changes("Section", section.name, changes))


def handle_delete_section(arguments: dict, db: Session) -> list[TextContent]:
    """Delete a section found by exact name."""
    section_name = _require(arguments, "section_name")
    project_name = _require(arguments, "project_name")
    object_name = _arg(arguments, "object_name")

    chain = ResolutionChain().add("project", lambda r: resolve_project(db, project_name, exact=True))
    if object_name:
        chain.add(
            "object",
            lambda r: resolve_object(db, object_name, project_id=r["project"].id, exact=True),
            depends_on=("project",),
        )
    chain.add(
        "section",
        lambda r: resolve_section(
            db, section_name, project_id=r["project"].id,
            object_id=r["object"].id if "object" in r else None, exact=True,
        ),
        depends_on=("project",),
    )
    resolved = chain.resolve()

    report = crud.delete_section(db, resolved["section"])
    return _text(formatters.format_cascade_report(report))


# ============================================================================
# People Handlers
# ============================================================================

def handle_search_users(arguments: dict, db: Session) -> list[TextContent]:
    """Search users by name or email and show what each is working on."""
    limit = min(_int(arguments, "limit", get_settings().default_page_size, minimum=1), get_settings().user_search_limit)
    query = _arg(arguments, "query") or ""
    if len(query) > get_settings().user_search_max_length:
        raise InvalidFormatError(
            "query", query[:20] + "...", expected=f"at most {get_settings().user_search_max_length} characters"
        )

    users = search_users(db, query, limit=limit)
    logger.info(f"Successfully searched users: found {len(users)} results")
    if not users:
        return _text("No users found matching search criteria.")

    entries = []
    for user in users:
        workload = crud.get_user_workload(db, user.id)
        work_info = "\nWorkload: none"
        if workload:
            lines = [
                f"  - {s.project.name} / {s.object.name} / {s.name}" + (f" (loading: {rate:g})" if rate else "")
                for s, rate in workload
            ]
            work_info = "\nWorkload:\n" + "\n".join(lines)
        entries.append(formatters.format_user(user) + work_info)

    return _text(f"Found {len(users)} users\n\n" + "\n\n".join(entries))


def handle_search_employee_full_info(arguments: dict, db: Session) -> list[TextContent]:
    """Profile, projects and workload of one employee."""
    user = unwrap(resolve_user(db, _require(arguments, "employee_name")))

    managed = crud.get_managed_projects(db, user.id)
    led = crud.get_led_projects(db, user.id)
    workload = crud.get_user_workload(db, user.id)

    details = []
    if user.category:
        details.append(f"Category: {user.category}")
    if user.employment_rate is not None:
        details.append(f"Employment rate: {float(user.employment_rate):g}")
    if user.work_format:
        details.append(f"Work format: {user.work_format}")

    sections = [formatters.format_user(user)]
    if details:
        sections.append("\n".join(details))
    sections.append(
        "**Projects as manager**\n" + ("\n".join(f"- {p.name} ({p.status.value})" for p in managed) or "none")
    )
    sections.append(
        "**Projects as lead engineer**\n" + ("\n".join(f"- {p.name} ({p.status.value})" for p in led) or "none")
    )
    sections.append(formatters.format_workload(user, workload))
    projects_involved = {s.project_id for s, _ in workload} | {p.id for p in managed} | {p.id for p in led}
    sections.append(
        f"**Statistics**\nProjects involved: {len(projects_involved)}\n"
        f"Managed: {len(managed)}\nLead engineer: {len(led)}\nActive sections: {len(workload)}"
    )
    return _text("\n\n".join(sections))


def handle_search_by_responsible(arguments: dict, db: Session) -> list[TextContent]:
    """Objects and sections a person is responsible for."""
    responsible_name = _require(arguments, "responsible_name")
    project_name = _arg(arguments, "project_name")
    limit = _int(arguments, "limit", 20, minimum=1)

    chain = ResolutionChain()
    if project_name:
        chain.add("project", lambda r: resolve_project(db, project_name, exact=False))
    chain.add("responsible", lambda r: resolve_user(db, responsible_name))
    resolved = chain.resolve()
    user = resolved["responsible"]
    project_id = resolved["project"].id if "project" in resolved else None

    objects = crud.get_responsible_objects(db, user.id, project_id, limit)
    sections = crud.get_responsible_sections(db, user.id, project_id, limit)
    logger.info(f"Found {len(objects)} objects and {len(sections)} sections for {user.email}")

    if not objects and not sections:
        return _text(f"{user.full_name} is not responsible for any objects or sections.")

    parts = [f"Responsibilities of **{user.full_name}** ({user.email})"]
    if objects:
        parts.append(f"**Objects ({len(objects)})**\n" + "\n\n".join(
            f"{i}. {formatters.format_object(o, _related(db, o))}" for i, o in enumerate(objects, 1)
        ))
    if sections:
        parts.append(f"**Sections ({len(sections)})**\n" + "\n\n".join(
            f"{i}. {formatters.format_section(s, _related(db, s))}" for i, s in enumerate(sections, 1)
        ))
    return _text("\n\n".join(parts))


def handle_get_employee_workload(arguments: dict, db: Session) -> list[TextContent]:
    """Sections an employee works on, grouped by project and object."""
    employee_name = _require(arguments, "employee_name")
    project_name = _arg(arguments, "project_name")

    chain = ResolutionChain()
    if project_name:
        chain.add("project", lambda r: resolve_project(db, project_name, exact=False))
    chain.add("employee", lambda r: resolve_user(db, employee_name))
    resolved = chain.resolve()

    workload = crud.get_user_workload(
        db,
        resolved["employee"].id,
        project_id=resolved["project"].id if "project" in resolved else None,
        include_completed=_flag(arguments, "include_completed"),
    )
    return _text(formatters.format_workload(resolved["employee"], workload))


def handle_get_project_team(arguments: dict, db: Session) -> list[TextContent]:
    """Manager, lead engineer and responsibles of a project."""
    project = unwrap(resolve_project(db, _require(arguments, "project_name"), exact=True))
    responsibles = crud.get_project_responsibles(db, project.id)
    return _text(formatters.format_project_team(
        project, _person(project.manager), _person(project.lead_engineer), responsibles
    ))


def handle_get_project_sections(arguments: dict, db: Session) -> list[TextContent | EmbeddedResource]:
    """One JSON resource block per section of a project, for machine consumers."""
    project = unwrap(resolve_project(db, _require(arguments, "project_name"), exact=True))
    sections = crud.get_project_sections(db, project.id)
    if not sections:
        return _text(f'No sections found in project "{project.name}"')

    blocks = []
    for section in sections:
        block = schemas.SectionBlock(
            section_id=section.id,
            section_name=section.name,
            section_responsible_email=section.responsible.email if section.responsible else None,
        )
        blocks.append(
            EmbeddedResource(
                type="resource",
                resource=TextResourceContents(
                    uri=f"eneca://sections/{section.id}",
                    mimeType="application/json",
                    text=block.model_dump_json(),
                ),
            )
        )
    logger.info(f"Returned {len(blocks)} sections for project {project.name}")
    return blocks


# ============================================================================
# Notes and Reports
# ============================================================================

def handle_create_note(arguments: dict, db: Session) -> list[TextContent]:
    """Save a note; the author is a user id, name or email."""
    author = _require(arguments, "author")
    content = _require(arguments, "content")

    try:
        author_id = UUID(author)
    except ValueError:
        author_id = unwrap(resolve_user(db, author)).id

    note = schemas.NoteResponse.model_validate(
        crud.create_note(db, schemas.NoteCreate(author_id=author_id, content=content))
    )
    return _text(f"Note saved.\nID: {note.id}\nCreated: {note.created_at:%d.%m.%Y %H:%M}")


def handle_generate_project_report(arguments: dict, db: Session) -> list[TextContent]:
    """Plan/fact report of work logged on a project over a period."""
    project_name = _require(arguments, "project_name")
    department_name = _arg(arguments, "department_name")
    filter_by_department = _flag(arguments, "filter_by_department")
    if filter_by_department and not department_name:
        raise EnecaError("department_name is required when filter_by_department is true")

    date_from = parse_report_date(arguments.get("date_from"), "date_from")
    date_to = parse_report_date(arguments.get("date_to"), "date_to")

    chain = ResolutionChain().add("project", lambda r: resolve_project(db, project_name, exact=False))
    if filter_by_department:
        chain.add("department", lambda r: resolve_department(db, department_name))
    resolved = chain.resolve()

    report = build_plan_fact_report(
        db,
        resolved["project"],
        date_from=date_from,
        date_to=date_to,
        department=resolved.get("department"),
        include_comments=_flag(arguments, "include_comments"),
    )
    return _text(formatters.format_plan_fact_report(report))
