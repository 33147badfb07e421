"""Plan/fact report over the work logs of a project.

Aggregates hours and amounts reported against a project's sections over a
date range, optionally restricted to the employees of one department.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from . import models
from .errors import InvalidFormatError, InvertedRangeError

logger = logging.getLogger("eneca-core.reports")

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass
class SectionStats:
    section_id: UUID
    section_name: str
    object_name: str
    hours: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")
    employees: set = field(default_factory=set)


@dataclass
class CommentEntry:
    section_name: str
    author_name: str
    created_at: datetime
    content: str


@dataclass
class PlanFactReport:
    project_name: str
    date_from: date
    date_to: date
    department_name: Optional[str] = None
    total_hours: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    employees: set = field(default_factory=set)
    total_sections: int = 0
    sections: list[SectionStats] = field(default_factory=list)
    comments: list[CommentEntry] = field(default_factory=list)

    @property
    def active_sections(self) -> int:
        return len(self.sections)

    @property
    def top_section(self) -> Optional[SectionStats]:
        return self.sections[0] if self.sections else None


def parse_report_date(text: Optional[str], field_name: str, default: Optional[date] = None) -> Optional[date]:
    """Parse a yyyy-mm-dd report bound, falling back to default when omitted."""
    if text is None or not str(text).strip():
        return default
    text = str(text).strip()
    if not ISO_DATE_PATTERN.match(text):
        raise InvalidFormatError(field_name, text, expected="yyyy-mm-dd")
    try:
        return date.fromisoformat(text)
    except ValueError:
        raise InvalidFormatError(field_name, text, expected="yyyy-mm-dd")


def format_hours(hours: Decimal) -> str:
    """Render decimal hours as h:mm:ss."""
    total_minutes = int((Decimal(hours) * 60).quantize(Decimal("1")))
    return f"{total_minutes // 60}:{total_minutes % 60:02d}:00"


def format_amount(amount: Decimal) -> str:
    return f"{Decimal(amount):,.2f}".replace(",", " ")


def build_plan_fact_report(
    db: Session,
    project: models.Project,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    department: Optional[models.Department] = None,
    include_comments: bool = False,
) -> PlanFactReport:
    """
    Build the plan/fact report for a project.

    Args:
        db: Database session
        project: Resolved project
        date_from: First day included (defaults to yesterday)
        date_to: Last day included (defaults to yesterday)
        department: Only count work logged by this department's employees
        include_comments: Attach section comments written in the period

    Returns:
        PlanFactReport with sections sorted by hours, largest first

    Raises:
        InvertedRangeError: If date_from is after date_to
    """
    yesterday = date.today() - timedelta(days=1)
    date_from = date_from or yesterday
    date_to = date_to or yesterday
    if date_from > date_to:
        raise InvertedRangeError()

    report = PlanFactReport(
        project_name=project.name,
        date_from=date_from,
        date_to=date_to,
        department_name=department.name if department else None,
    )
    report.total_sections = (
        db.query(func.count(models.Section.id)).filter(models.Section.project_id == project.id).scalar()
    )

    query = (
        db.query(models.WorkLog)
        .join(models.Section, models.WorkLog.section_id == models.Section.id)
        .filter(
            models.Section.project_id == project.id,
            models.WorkLog.date >= date_from,
            models.WorkLog.date <= date_to,
        )
    )
    if department is not None:
        query = query.join(models.User, models.WorkLog.user_id == models.User.id).filter(
            models.User.department_id == department.id
        )

    by_section: dict[UUID, SectionStats] = {}
    for log in query.all():
        stats = by_section.get(log.section_id)
        if stats is None:
            stats = SectionStats(
                section_id=log.section_id,
                section_name=log.section.name,
                object_name=log.section.object.name,
            )
            by_section[log.section_id] = stats
        hours = Decimal(log.hours or 0)
        amount = Decimal(log.amount or 0)
        stats.hours += hours
        stats.amount += amount
        stats.employees.add(log.user.full_name)
        report.total_hours += hours
        report.total_amount += amount
        report.employees.add(log.user_id)

    report.sections = sorted(by_section.values(), key=lambda s: (-s.hours, s.section_name))

    if include_comments:
        comments = (
            db.query(models.SectionComment)
            .join(models.Section, models.SectionComment.section_id == models.Section.id)
            .filter(
                models.Section.project_id == project.id,
                models.SectionComment.created_at >= datetime.combine(date_from, time.min),
                models.SectionComment.created_at <= datetime.combine(date_to, time.max),
            )
        )
        if department is not None:
            comments = comments.join(models.User, models.SectionComment.author_id == models.User.id).filter(
                models.User.department_id == department.id
            )
        report.comments = [
            CommentEntry(c.section.name, c.author.full_name, c.created_at, c.content)
            for c in comments.order_by(models.SectionComment.created_at).all()
        ]

    logger.info(
        f"Built plan/fact report for '{project.name}' {date_from}..{date_to}: "
        f"{len(report.sections)} sections, {report.total_hours} h"
    )
    return report
