"""Shared formatting functions for MCP responses.

Formatters take ORM records plus an optional `related` dict of display
names (project, stage, object, responsible) resolved by the caller, usually
through the display cache.
"""
from typing import Optional

from eneca_core import models
from eneca_core.reports import PlanFactReport, format_amount, format_hours
from eneca_core.schemas import CascadeReport
from eneca_core.validation import format_date_for_display


def _status(value) -> str:
    return value.value if hasattr(value, "value") else str(value)


def format_person(person: Optional[dict]) -> str:
    if not person:
        return "not assigned"
    return f"{person['full_name']} ({person['email']})"


def _date_span(record) -> str:
    if not record.start_date and not record.end_date:
        return ""
    start = format_date_for_display(record.start_date) or "?"
    end = format_date_for_display(record.end_date) or "?"
    return f"{start} - {end}"


def _dates(record) -> str:
    span = _date_span(record)
    return f"\nDates: {span}" if span else ""


def format_project(project: models.Project, related: Optional[dict] = None) -> str:
    """Format a project for display."""
    related = related or {}
    desc_info = f"\nDescription: {project.description}" if project.description else ""
    client_info = f"\nClient: {project.client.name}" if project.client else ""
    return f"""**{project.name}**
ID: {project.id}
Status: {_status(project.status)}
Manager: {format_person(related.get('manager'))}
Lead engineer: {format_person(related.get('lead_engineer'))}{client_info}{desc_info}"""


def format_stage(stage: models.Stage, related: Optional[dict] = None) -> str:
    """Format a stage for display."""
    related = related or {}
    desc_info = f"\nDescription: {stage.description}" if stage.description else ""
    return f"""**{stage.name}**
ID: {stage.id}
Project: {related.get('project', {}).get('name', stage.project_id)}{desc_info}"""


def format_object(obj: models.ProjectObject, related: Optional[dict] = None) -> str:
    """Format an object for display."""
    related = related or {}
    desc_info = f"\nDescription: {obj.description}" if obj.description else ""
    return f"""**{obj.name}**
ID: {obj.id}
Project: {related.get('project', {}).get('name', obj.project_id)}
Stage: {related.get('stage', {}).get('name', obj.stage_id)}
Responsible: {format_person(related.get('responsible'))}{_dates(obj)}{desc_info}"""


def format_section(section: models.Section, related: Optional[dict] = None) -> str:
    """Format a section for display."""
    related = related or {}
    type_info = f"\nType: {section.type}" if section.type else ""
    desc_info = f"\nDescription: {section.description}" if section.description else ""
    return f"""**{section.name}**
ID: {section.id}
Project: {related.get('project', {}).get('name', section.project_id)}
Object: {related.get('object', {}).get('name', section.object_id)}
Responsible: {format_person(related.get('responsible'))}{type_info}{_dates(section)}{desc_info}"""


def format_user(user: models.User) -> str:
    """Format a user for display."""
    department = f"\nDepartment: {user.department.name}" if user.department else ""
    position = f"\nPosition: {user.position}" if user.position else ""
    team = f"\nTeam: {user.team}" if user.team else ""
    return f"""**{user.full_name}** ({user.email})
ID: {user.id}{department}{team}{position}"""


def format_search_results(kind: str, entries: list[str], limit: int, offset: int) -> str:
    """
    Number the entries and add the paging hint.

    When the page is full there may be more results; the hint suggests the
    next offset. A result set whose size is exactly `limit` looks the same.
    """
    if not entries:
        return f"No {kind} found matching search criteria."
    numbered = "\n\n".join(f"{offset + i}. {entry}" for i, entry in enumerate(entries, 1))
    summary = f"Found {len(entries)} {kind}:\n\n{numbered}"
    if len(entries) == limit:
        summary += (
            f"\n\nShowing {limit} results; more may exist. "
            f"Use offset={offset + limit} to see the next page."
        )
    return summary


def format_changes(kind: str, name: str, changes: list[str]) -> str:
    if not changes:
        return f"{kind} **{name}**: nothing to update."
    lines = "\n".join(f"- {c}" for c in changes)
    return f"{kind} **{name}** updated:\n{lines}"


def format_cascade_report(report: CascadeReport) -> str:
    """Format a delete report, calling out a partially completed cascade."""
    deleted = ", ".join(f"{level}: {count}" for level, count in report.deleted.items())
    if report.completed:
        return f'{report.entity} "{report.name}" deleted.' + (f"\nRemoved {deleted}" if deleted else "")
    done = deleted or "nothing"
    return (
        f'Delete of {report.entity.lower()} "{report.name}" stopped at level "{report.failed_level}": {report.error}\n'
        f"Already removed (not rolled back): {done}"
    )


def format_workload(user: models.User, items: list[tuple[models.Section, Optional[float]]]) -> str:
    """Group workload sections by project and object."""
    if not items:
        return f"No current workload for {user.full_name}."

    grouped: dict[str, dict[str, list[str]]] = {}
    total_rate = 0.0
    for section, rate in items:
        rate_info = ""
        if rate is not None:
            total_rate += rate
            rate_info = f" (loading: {rate:g})"
        role = " [responsible]" if section.responsible_id == user.id else ""
        span = _date_span(section)
        dates = f", {span}" if span else ""
        line = f"  - {section.name}{role}{rate_info}{dates}"
        grouped.setdefault(section.project.name, {}).setdefault(section.object.name, []).append(line)

    lines = [f"Workload of **{user.full_name}** ({len(items)} sections, total loading {total_rate:g})"]
    for project_name, objects in grouped.items():
        lines.append(f"\n**{project_name}**")
        for object_name, sections in objects.items():
            lines.append(f" {object_name}")
            lines.extend(sections)
    return "\n".join(lines)


def format_project_team(
    project: models.Project,
    manager: Optional[dict],
    lead_engineer: Optional[dict],
    responsibles: list[tuple[models.User, int]],
) -> str:
    """Team of a project with responsibles grouped by department."""
    lines = [
        f"Team of **{project.name}**",
        f"Manager: {format_person(manager)}",
        f"Lead engineer: {format_person(lead_engineer)}",
    ]
    if not responsibles:
        lines.append("\nNo responsibles assigned yet.")
        return "\n".join(lines)

    by_department: dict[str, list[str]] = {}
    for user, count in responsibles:
        department = user.department.name if user.department else "No department"
        by_department.setdefault(department, []).append(f"  - {user.full_name} ({user.email}): {count} tasks")
    for department in sorted(by_department):
        lines.append(f"\n{department}")
        lines.extend(by_department[department])
    return "\n".join(lines)


def format_plan_fact_report(report: PlanFactReport) -> str:
    """Render the plan/fact report."""
    period = f"{report.date_from.isoformat()} - {report.date_to.isoformat()}"
    department = f"\nDepartment: {report.department_name}" if report.department_name else ""
    lines = [
        f"**Plan/fact report: {report.project_name}**",
        f"Period: {period}{department}",
        "",
        f"Total hours: {format_hours(report.total_hours)}",
        f"Total amount: {format_amount(report.total_amount)}",
        f"Employees: {len(report.employees)}",
        f"Sections with work logged: {report.active_sections} of {report.total_sections}",
    ]
    top = report.top_section
    if top is not None:
        lines.append(f"Most hours: {top.section_name} ({format_hours(top.hours)})")

    if not report.sections:
        lines.append("\nNo work logged in this period.")
    else:
        lines.append("\n**Sections**")
        for i, stats in enumerate(report.sections, 1):
            lines.append(
                f"{i}. {stats.section_name} ({stats.object_name}): {format_hours(stats.hours)}, "
                f"{format_amount(stats.amount)}; {', '.join(sorted(stats.employees))}"
            )

    if report.comments:
        lines.append("\n**Comments**")
        for comment in report.comments:
            lines.append(
                f"- [{comment.created_at:%d.%m.%Y}] {comment.section_name}, {comment.author_name}: {comment.content}"
            )
    return "\n".join(lines)
