"""SQLAlchemy database models."""
from datetime import datetime
from uuid import uuid4
import enum

from sqlalchemy import (
    Column,
    String,
    Text,
    Date,
    DateTime,
    Numeric,
    ForeignKey,
    Enum,
    Boolean,
    CheckConstraint,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship

# Base class for all models
Base = declarative_base()


class ProjectStatus(str, enum.Enum):
    """Project status enum."""

    ACTIVE = "active"
    ARCHIVED = "archived"
    PAUSED = "paused"
    CANCELED = "canceled"


class Department(Base):
    """Organisational department a user belongs to."""

    __tablename__ = "departments"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False, unique=True)

    users = relationship("User", back_populates="department")

    def __repr__(self) -> str:
        return f"<Department {self.name}>"


class User(Base):
    """
    Person referenced by projects, objects and sections.

    Users are never owned by the project tree: they are looked up by name or
    email and attached as manager, lead engineer or responsible person.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    full_name = Column(String(255), nullable=False, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    department_id = Column(Uuid, ForeignKey("departments.id", ondelete="SET NULL"), index=True)
    team = Column(String(255))
    position = Column(String(255))
    category = Column(String(100))
    employment_rate = Column(Numeric(4, 2))
    work_format = Column(String(50))
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    department = relationship("Department", back_populates="users")

    def __repr__(self) -> str:
        return f"<User {self.full_name} ({self.email})>"


class Client(Base):
    """Customer a project is delivered for."""

    __tablename__ = "clients"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Client {self.name}>"


class Project(Base):
    """
    Top of the project tree.

    Project names are unique across the whole system.
    """

    __tablename__ = "projects"
    __table_args__ = (
        UniqueConstraint("name", name="uq_projects_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    manager_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    lead_engineer_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    client_id = Column(Uuid, ForeignKey("clients.id", ondelete="SET NULL"), index=True)
    status = Column(
        Enum(ProjectStatus, values_callable=lambda obj: [e.value for e in obj], name="projectstatus"),
        nullable=False,
        default=ProjectStatus.ACTIVE,
    )

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    manager = relationship("User", foreign_keys=[manager_id])
    lead_engineer = relationship("User", foreign_keys=[lead_engineer_id])
    client = relationship("Client")
    stages = relationship("Stage", back_populates="project", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Project {self.name}>"


class Stage(Base):
    """Project phase. Names are unique within a project."""

    __tablename__ = "stages"
    __table_args__ = (
        UniqueConstraint("project_id", "name", name="uq_stages_project_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    project_id = Column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", back_populates="stages")
    objects = relationship("ProjectObject", back_populates="stage", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Stage {self.name}>"


class ProjectObject(Base):
    """
    Deliverable within a stage. Names are unique within a stage.

    The owning project is denormalized onto the row so searches can filter
    by project without joining through the stage.
    """

    __tablename__ = "objects"
    __table_args__ = (
        UniqueConstraint("stage_id", "name", name="uq_objects_stage_name"),
        CheckConstraint("start_date IS NULL OR end_date IS NULL OR start_date <= end_date", name="ck_objects_date_range"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    stage_id = Column(Uuid, ForeignKey("stages.id"), nullable=False, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)
    responsible_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    start_date = Column(Date)
    end_date = Column(Date)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    stage = relationship("Stage", back_populates="objects")
    project = relationship("Project")
    responsible = relationship("User")
    sections = relationship("Section", back_populates="object", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<ProjectObject {self.name}>"


class Section(Base):
    """Leaf work unit. Names are unique within an object."""

    __tablename__ = "sections"
    __table_args__ = (
        UniqueConstraint("object_id", "name", name="uq_sections_object_name"),
        CheckConstraint("start_date IS NULL OR end_date IS NULL OR start_date <= end_date", name="ck_sections_date_range"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    type = Column(String(100))
    object_id = Column(Uuid, ForeignKey("objects.id"), nullable=False, index=True)
    project_id = Column(Uuid, ForeignKey("projects.id"), nullable=False, index=True)
    responsible_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True)
    start_date = Column(Date)
    end_date = Column(Date)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    object = relationship("ProjectObject", back_populates="sections")
    project = relationship("Project")
    responsible = relationship("User")
    loadings = relationship("Loading", back_populates="section", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<Section {self.name}>"


class Loading(Base):
    """A user's allocation on a section."""

    __tablename__ = "loadings"

    id = Column(Uuid, primary_key=True, default=uuid4)
    section_id = Column(Uuid, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rate = Column(Numeric(4, 2), nullable=False, default=1)
    start_date = Column(Date)
    end_date = Column(Date)

    section = relationship("Section", back_populates="loadings")
    user = relationship("User")


class WorkLog(Base):
    """Hours and amount reported by a user on a section for one day."""

    __tablename__ = "work_logs"

    id = Column(Uuid, primary_key=True, default=uuid4)
    section_id = Column(Uuid, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    hours = Column(Numeric(6, 2), nullable=False, default=0)
    amount = Column(Numeric(12, 2), nullable=False, default=0)
    description = Column(Text)

    section = relationship("Section")
    user = relationship("User")


class SectionComment(Base):
    """Comment left by a user on a section."""

    __tablename__ = "section_comments"

    id = Column(Uuid, primary_key=True, default=uuid4)
    section_id = Column(Uuid, ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    section = relationship("Section")
    author = relationship("User")


class Note(Base):
    """Free-text note authored by a user."""

    __tablename__ = "notes"

    id = Column(Uuid, primary_key=True, default=uuid4)
    author_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    author = relationship("User")

    def __repr__(self) -> str:
        return f"<Note {self.id}>"
