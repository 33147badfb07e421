"""Tests for project tree CRUD and cascade delete."""
from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from eneca_core import crud, models, schemas
from eneca_core.errors import (
    ConflictError,
    DependentRecordsExistError,
    InvalidReferenceError,
    InvertedRangeError,
)


@pytest.fixture
def project(db):
    return crud.create_project(db, schemas.ProjectCreate(name="Tower A"))


@pytest.fixture
def stage(db, project):
    return crud.create_stage(db, schemas.StageCreate(name="Foundation", project_id=project.id), "Tower A")


@pytest.fixture
def obj(db, project, stage):
    return crud.create_object(
        db,
        schemas.ObjectCreate(name="Block 1", project_id=project.id, stage_id=stage.id),
        "Foundation",
    )


def _section(db, obj, name, **kwargs):
    return crud.create_section(
        db,
        schemas.SectionCreate(name=name, project_id=obj.project_id, object_id=obj.id, **kwargs),
        obj.name,
    )


class BrokenQuery:
    def delete(self, synchronize_session=None):
        raise OperationalError("DELETE", {}, Exception("database is locked"))


class TestCreate:
    """Test the create gates."""

    def test_create_project_with_people(self, db, ivan, anna):
        """Test that manager and lead engineer are stored."""
        project = crud.create_project(
            db, schemas.ProjectCreate(name="  Tower B ", manager_id=ivan.id, lead_engineer_id=anna.id)
        )

        assert project.name == "Tower B"
        assert project.manager.full_name == "Ivan Petrov"
        assert project.status == models.ProjectStatus.ACTIVE

    def test_duplicate_project_name(self, db, project):
        """Test that project names are unique."""
        with pytest.raises(ConflictError):
            crud.create_project(db, schemas.ProjectCreate(name="Tower A"))

    def test_stage_name_scoped_to_project(self, db, stage):
        """Test that the same stage name conflicts in one project and not in another."""
        with pytest.raises(ConflictError) as exc_info:
            crud.create_stage(db, schemas.StageCreate(name="Foundation", project_id=stage.project_id), "Tower A")
        assert exc_info.value.message == 'Stage "Foundation" already exists in project "Tower A"'

        other = crud.create_project(db, schemas.ProjectCreate(name="Tower B"))
        created = crud.create_stage(db, schemas.StageCreate(name="Foundation", project_id=other.id), "Tower B")
        assert created.project_id == other.id

    def test_inverted_range_writes_nothing(self, db, obj):
        """Test that an inverted range is rejected before any insert."""
        with pytest.raises(InvertedRangeError):
            _section(db, obj, "Rebar Plan", start_date=date(2024, 2, 1), end_date=date(2024, 1, 1))

        assert db.query(models.Section).count() == 0

    def test_dangling_responsible(self, db, obj):
        """Test that an unknown responsible id is rejected."""
        with pytest.raises(InvalidReferenceError) as exc_info:
            _section(db, obj, "Rebar Plan", responsible_id=uuid4())
        assert exc_info.value.field == "responsible_id"

    def test_integrity_error_maps_to_conflict(self, db, stage, monkeypatch):
        """Test that a unique constraint hit at commit time is reported as a conflict."""
        monkeypatch.setattr(crud, "check_unique", lambda *args, **kwargs: None)

        with pytest.raises(ConflictError):
            crud.create_stage(db, schemas.StageCreate(name="Foundation", project_id=stage.project_id), "Tower A")
        assert db.query(models.Stage).count() == 1


class TestUpdate:
    """Test partial updates."""

    def test_rename_to_same_name(self, db, project):
        """Test that renaming a project to its own name succeeds."""
        updated = crud.update_project(db, project, schemas.ProjectUpdate(name="Tower A", description="Main"))

        assert updated.name == "Tower A"
        assert updated.description == "Main"

    def test_rename_to_taken_name(self, db, project):
        """Test that renaming onto another project's name conflicts."""
        crud.create_project(db, schemas.ProjectCreate(name="Tower B"))

        with pytest.raises(ConflictError):
            crud.update_project(db, project, schemas.ProjectUpdate(name="Tower B"))

    def test_status_change(self, db, project):
        """Test that only set fields are written."""
        crud.update_project(db, project, schemas.ProjectUpdate(status=models.ProjectStatus.PAUSED))

        assert project.status == models.ProjectStatus.PAUSED
        assert project.name == "Tower A"

    def test_effective_range_on_update(self, db, obj):
        """Test that a new end date is checked against the stored start date."""
        section = _section(db, obj, "Rebar Plan", start_date=date(2024, 3, 1))

        with pytest.raises(InvertedRangeError):
            crud.update_section(db, section, schemas.SectionUpdate(end_date=date(2024, 2, 1)))

        crud.update_section(db, section, schemas.SectionUpdate(end_date=date(2024, 4, 1)))
        assert section.end_date == date(2024, 4, 1)

    def test_move_object_to_other_stage(self, db, project, obj):
        """Test that moving an object checks the name in the target stage."""
        roof = crud.create_stage(db, schemas.StageCreate(name="Roof", project_id=project.id), "Tower A")
        crud.create_object(db, schemas.ObjectCreate(name="Block 1", project_id=project.id, stage_id=roof.id), "Roof")

        with pytest.raises(ConflictError) as exc_info:
            crud.update_object(db, obj, schemas.ObjectUpdate(stage_id=roof.id))
        assert 'in stage "Roof"' in exc_info.value.message

        moved = crud.update_object(db, obj, schemas.ObjectUpdate(stage_id=roof.id, name="Block 2"))
        assert moved.stage_id == roof.id
        assert moved.name == "Block 2"


class TestSearch:
    """Test filtered search."""

    def test_sections_by_object(self, db, project, stage, obj):
        """Test that sections are filtered by object and paginated."""
        other = crud.create_object(
            db, schemas.ObjectCreate(name="Block 2", project_id=project.id, stage_id=stage.id), "Foundation"
        )
        _section(db, obj, "Rebar Plan")
        _section(db, obj, "Ventilation")
        _section(db, other, "Rebar Plan")

        found = crud.search_sections(db, object_id=obj.id)
        assert [s.name for s in found] == ["Rebar Plan", "Ventilation"]

        page = crud.search_sections(db, name="plan", skip=1, limit=1)
        assert len(page) == 1

    def test_name_fragment_is_literal(self, db, project):
        """Test that % in a search fragment is not a wildcard."""
        assert crud.search_projects(db, name="%") == []
        assert [p.name for p in crud.search_projects(db, name="tower")] == ["Tower A"]


class TestDelete:
    """Test guarded and cascading delete."""

    def test_refused_without_cascade(self, db, project, obj):
        """Test that dependents block a plain delete and are counted."""
        _section(db, obj, "Rebar Plan")

        with pytest.raises(DependentRecordsExistError) as exc_info:
            crud.delete_project(db, project)

        assert exc_info.value.count == 3
        assert "cascade=true" in exc_info.value.message
        assert db.query(models.Project).count() == 1

    def test_empty_project_deletes(self, db, project):
        """Test that a project without children is deleted without cascade."""
        report = crud.delete_project(db, project)

        assert report.completed
        assert report.deleted == {"projects": 1}
        assert db.query(models.Project).count() == 0

    def test_cascade_removes_subtree(self, db, project, stage, obj):
        """Test that a cascade removes every descendant and reports per level."""
        _section(db, obj, "Rebar Plan")
        _section(db, obj, "Ventilation")

        report = crud.delete_project(db, project, cascade=True)

        assert report.completed
        assert report.deleted == {"sections": 2, "objects": 1, "stages": 1, "projects": 1}
        for model in (models.Section, models.ProjectObject, models.Stage, models.Project):
            assert db.query(model).count() == 0

    def test_stage_cascade_keeps_siblings(self, db, project, stage, obj):
        """Test that deleting one stage leaves other stages' objects alone."""
        roof = crud.create_stage(db, schemas.StageCreate(name="Roof", project_id=project.id), "Tower A")
        kept = crud.create_object(db, schemas.ObjectCreate(name="Attic", project_id=project.id, stage_id=roof.id), "Roof")
        _section(db, obj, "Rebar Plan")
        _section(db, kept, "Insulation")

        report = crud.delete_stage(db, stage, cascade=True)

        assert report.deleted == {"sections": 1, "objects": 1, "stages": 1}
        assert [o.name for o in db.query(models.ProjectObject).all()] == ["Attic"]
        assert [s.name for s in db.query(models.Section).all()] == ["Insulation"]

    def test_partial_failure_is_reported(self, db, project, stage, obj, monkeypatch):
        """Test that a failing level stops the cascade and earlier levels stay deleted."""
        _section(db, obj, "Rebar Plan")
        real_delete_level = crud._delete_level

        def failing_level(db_, report, level, query):
            if level == "objects":
                query = BrokenQuery()
            return real_delete_level(db_, report, level, query)

        monkeypatch.setattr(crud, "_delete_level", failing_level)

        report = crud.delete_project(db, project, cascade=True)

        assert not report.completed
        assert report.failed_level == "objects"
        assert report.deleted == {"sections": 1}
        assert db.query(models.Section).count() == 0
        assert db.query(models.ProjectObject).count() == 1
        assert db.query(models.Project).count() == 1

    def test_delete_level_records_store_error(self, db, project):
        """Test that a store error inside one level is captured on the report."""
        report = schemas.CascadeReport(entity="Project", name="Tower A")

        assert crud._delete_level(db, report, "stages", BrokenQuery()) is False
        assert report.failed_level == "stages"
        assert "database is locked" in report.error
