"""Pydantic schemas for write payloads and structured responses.

Write payloads carry already-resolved ids; name resolution happens before a
payload is built.
"""
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, ConfigDict, field_validator

from .models import ProjectStatus


class _Named(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must not be blank")
        return v


class ProjectCreate(_Named):
    """Schema for creating a new project."""

    manager_id: Optional[UUID] = None
    lead_engineer_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    status: ProjectStatus = ProjectStatus.ACTIVE


class ProjectUpdate(BaseModel):
    """Schema for updating a project. Unset fields are left untouched."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    manager_id: Optional[UUID] = None
    lead_engineer_id: Optional[UUID] = None
    client_id: Optional[UUID] = None
    status: Optional[ProjectStatus] = None


class StageCreate(_Named):
    """Schema for creating a stage inside a project."""

    project_id: UUID


class StageUpdate(BaseModel):
    """Schema for updating a stage."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None


class ObjectCreate(_Named):
    """Schema for creating an object inside a stage."""

    project_id: UUID
    stage_id: UUID
    responsible_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class ObjectUpdate(BaseModel):
    """Schema for updating an object (moving it to another stage included)."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    stage_id: Optional[UUID] = None
    responsible_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SectionCreate(_Named):
    """Schema for creating a section inside an object."""

    project_id: UUID
    object_id: UUID
    type: Optional[str] = Field(None, max_length=100)
    responsible_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class SectionUpdate(BaseModel):
    """Schema for updating a section."""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    type: Optional[str] = Field(None, max_length=100)
    responsible_id: Optional[UUID] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class NoteCreate(BaseModel):
    """Schema for creating a note."""

    author_id: UUID
    content: str = Field(..., min_length=1)


class SectionBlock(BaseModel):
    """Machine-readable section entry returned by get_project_sections."""

    section_id: UUID
    section_name: str
    section_responsible_email: Optional[str] = None


class CascadeReport(BaseModel):
    """Outcome of a (possibly cascading) delete."""

    entity: str
    name: str
    deleted: dict[str, int] = Field(default_factory=dict)
    completed: bool = True
    failed_level: Optional[str] = None
    error: Optional[str] = None


class NoteResponse(BaseModel):
    """Schema for note responses."""

    id: UUID
    author_id: UUID
    content: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
