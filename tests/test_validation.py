"""Tests for date parsing, status mapping, scoped uniqueness and reference checks."""
from datetime import date
from uuid import uuid4

import pytest

from eneca_core import models
from eneca_core.errors import ConflictError, InvalidFormatError, InvalidReferenceError, InvertedRangeError
from eneca_core.validation import (
    check_unique,
    check_unique_excluding,
    ensure_date_range,
    format_date_for_display,
    is_name_available,
    normalize_project_status,
    parse_date,
    parse_optional_date,
    validate_date_range,
    validate_references,
)


class TestParseDate:
    """Test dd.mm.yyyy parsing."""

    def test_valid_date(self):
        """Test that a well-formed date parses to a calendar date."""
        assert parse_date("05.03.2024") == date(2024, 3, 5)

    @pytest.mark.parametrize("text", ["01.01.1900", "31.12.2100", "29.02.2024", "15.07.1999"])
    def test_round_trip(self, text):
        """Test that parse then display reproduces the input."""
        assert format_date_for_display(parse_date(text)) == text

    @pytest.mark.parametrize("text", [
        "2024-03-05",
        "5.3.2024",
        "05/03/2024",
        "05.03.24",
        "32.01.2024",
        "00.01.2024",
        "01.13.2024",
        "01.00.2024",
        "01.01.1899",
        "01.01.2101",
        "31.02.2024",
        "",
        "tomorrow",
    ])
    def test_rejected_shapes(self, text):
        """Test that anything but a real dd.mm.yyyy date is rejected, not coerced."""
        with pytest.raises(InvalidFormatError) as exc_info:
            parse_date(text, "start date")

        assert exc_info.value.field == "start date"
        assert "dd.mm.yyyy" in exc_info.value.message

    def test_optional_date(self):
        """Test that missing or blank optional dates are None."""
        assert parse_optional_date(None) is None
        assert parse_optional_date("  ") is None
        assert parse_optional_date("01.02.2024") == date(2024, 2, 1)

    def test_display_from_iso_string(self):
        """Test that ISO strings are displayed as dd.mm.yyyy."""
        assert format_date_for_display("2024-12-01") == "01.12.2024"
        assert format_date_for_display(None) == ""


class TestDateRange:
    """Test start/end range validation."""

    def test_truth_table(self):
        """Test that the range passes when either bound is absent or start <= end."""
        a, b = date(2024, 1, 1), date(2024, 2, 1)
        assert validate_date_range(None, None)
        assert validate_date_range(a, None)
        assert validate_date_range(None, b)
        assert validate_date_range(a, b)
        assert validate_date_range(a, a)
        assert not validate_date_range(b, a)

    def test_ensure_raises_on_inverted(self):
        """Test that an inverted range raises."""
        with pytest.raises(InvertedRangeError):
            ensure_date_range(date(2024, 2, 1), date(2024, 1, 1))


class TestProjectStatus:
    """Test project status aliases."""

    @pytest.mark.parametrize("text,expected", [
        ("active", models.ProjectStatus.ACTIVE),
        ("Активный", models.ProjectStatus.ACTIVE),
        ("архив", models.ProjectStatus.ARCHIVED),
        ("archived", models.ProjectStatus.ARCHIVED),
        ("приостановлен", models.ProjectStatus.PAUSED),
        ("отменён", models.ProjectStatus.CANCELED),
        (" Canceled ", models.ProjectStatus.CANCELED),
    ])
    def test_aliases(self, text, expected):
        """Test that English and Russian spellings map to the same status."""
        assert normalize_project_status(text) is expected

    def test_unknown_status(self):
        """Test that unknown statuses are rejected with the accepted values listed."""
        with pytest.raises(InvalidFormatError) as exc_info:
            normalize_project_status("finished")
        assert "active, archived, paused, canceled" in exc_info.value.message


class TestScopedUniqueness:
    """Test name uniqueness within the parent scope."""

    def _project(self, db, name):
        project = models.Project(name=name)
        db.add(project)
        db.commit()
        return project

    def test_project_names_are_global(self, db):
        """Test that a second project with the same name conflicts."""
        self._project(db, "Tower A")

        with pytest.raises(ConflictError) as exc_info:
            check_unique(db, models.Project, "Tower A")
        assert exc_info.value.name == "Tower A"
        check_unique(db, models.Project, "Tower B")

    def test_stage_names_scoped_to_project(self, db):
        """Test that the same stage name is allowed in another project."""
        tower_a = self._project(db, "Tower A")
        tower_b = self._project(db, "Tower B")
        db.add(models.Stage(name="Foundation", project_id=tower_a.id))
        db.commit()

        assert not is_name_available(db, models.Stage, "Foundation", tower_a.id)
        assert is_name_available(db, models.Stage, "Foundation", tower_b.id)

        with pytest.raises(ConflictError) as exc_info:
            check_unique(db, models.Stage, "Foundation", tower_a.id, 'project "Tower A"')
        assert 'already exists in project "Tower A"' in exc_info.value.message

    def test_rename_to_own_name_is_noop(self, db):
        """Test that renaming to the current name never conflicts."""
        project = self._project(db, "Tower A")

        check_unique_excluding(db, models.Project, "Tower A", "Tower A", project.id)

    def test_rename_excludes_self(self, db):
        """Test that the renamed row itself is ignored but others are not."""
        project = self._project(db, "Tower A")
        self._project(db, "Tower B")

        check_unique_excluding(db, models.Project, "Tower C", "Tower A", project.id)
        with pytest.raises(ConflictError):
            check_unique_excluding(db, models.Project, "Tower B", "Tower A", project.id)


class TestReferences:
    """Test foreign reference validation."""

    def test_existing_and_absent_references_pass(self, db, ivan):
        """Test that existing ids and None ids pass."""
        validate_references(db, {
            "manager_id": (models.User, ivan.id),
            "lead_engineer_id": (models.User, None),
        })

    def test_dangling_reference_names_field(self, db, ivan):
        """Test that the first dangling id fails with its field name."""
        missing = uuid4()
        with pytest.raises(InvalidReferenceError) as exc_info:
            validate_references(db, {
                "manager_id": (models.User, ivan.id),
                "responsible_id": (models.User, missing),
            })

        assert exc_info.value.field == "responsible_id"
        assert exc_info.value.value == missing
