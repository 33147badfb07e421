"""Tests for name resolution and the resolution chain."""
import pytest

from eneca_core import models
from eneca_core.errors import AmbiguousError, NotFoundError
from eneca_core.resolution import (
    Ambiguous,
    NotFound,
    Resolved,
    ResolutionChain,
    Unique,
    classify,
    escape_like,
    resolve_object,
    resolve_project,
    resolve_stage,
    resolve_user,
    search_users,
    unwrap,
)


@pytest.fixture
def tree(db):
    """Two projects sharing a stage name and an object name."""
    tower_a = models.Project(name="Tower A")
    tower_ab = models.Project(name="Tower AB")
    db.add_all([tower_a, tower_ab])
    db.flush()
    foundation_a = models.Stage(name="Foundation", project_id=tower_a.id)
    foundation_ab = models.Stage(name="Foundation", project_id=tower_ab.id)
    roof_a = models.Stage(name="Roof", project_id=tower_a.id)
    db.add_all([foundation_a, foundation_ab, roof_a])
    db.flush()
    db.add_all([
        models.ProjectObject(name="Block 1", stage_id=foundation_a.id, project_id=tower_a.id),
        models.ProjectObject(name="Block 1", stage_id=roof_a.id, project_id=tower_a.id),
        models.ProjectObject(name="Block 2", stage_id=foundation_ab.id, project_id=tower_ab.id),
    ])
    db.commit()
    return {"tower_a": tower_a, "tower_ab": tower_ab, "foundation_a": foundation_a, "roof_a": roof_a}


class TestClassify:
    """Test outcome classification."""

    def test_counts(self):
        """Test zero, one and many matches."""
        assert isinstance(classify("Project", "x", []), NotFound)
        assert classify("Project", "x", ["only"]).record == "only"
        assert isinstance(classify("Project", "x", ["a", "b"]), Ambiguous)

    def test_escape_like(self):
        """Test that LIKE metacharacters are escaped."""
        assert escape_like(r"50%_a\b") == r"50\%\_a\\b"


class TestEntityResolution:
    """Test project, stage and object resolvers."""

    def test_exact_project(self, db, tree):
        """Test that exact resolution ignores substring matches."""
        result = resolve_project(db, "Tower A", exact=True)
        assert isinstance(result, Unique)
        assert result.record.id == tree["tower_a"].id

        assert isinstance(resolve_project(db, "tower a", exact=True), NotFound)

    def test_fuzzy_prefers_exact_name(self, db, tree):
        """Test that 'Tower A' is not ambiguous with 'Tower AB' in fuzzy mode."""
        result = resolve_project(db, "tower a", exact=False)
        assert isinstance(result, Unique)
        assert result.record.name == "Tower A"

    def test_fuzzy_ambiguous_lists_all(self, db, tree):
        """Test that a loose fragment returns every candidate."""
        result = resolve_project(db, "Tower", exact=False)
        assert isinstance(result, Ambiguous)
        assert {p.name for p in result.candidates} == {"Tower A", "Tower AB"}

    def test_exact_name_found_past_result_cap(self, db, tree):
        """Test that an equal name wins even when more longer names than the cap contain it."""
        db.add_all([models.Project(name=f"Annex {i:02d} Tower A") for i in range(60)])
        db.commit()

        result = resolve_project(db, "Tower A", exact=False)

        assert isinstance(result, Unique)
        assert result.record.id == tree["tower_a"].id

    def test_resolution_is_deterministic(self, db, tree):
        """Test that repeated resolution returns the same record."""
        ids = {resolve_stage(db, "Foundation", tree["tower_a"].id).record.id for _ in range(5)}
        assert ids == {tree["foundation_a"].id}

    def test_object_ambiguous_across_stages(self, db, tree):
        """Test that an object name used in two stages needs a stage to disambiguate."""
        result = resolve_object(db, "Block 1", project_id=tree["tower_a"].id)
        assert isinstance(result, Ambiguous)
        assert len(result.candidates) == 2

        scoped = resolve_object(db, "Block 1", project_id=tree["tower_a"].id, stage_id=tree["roof_a"].id)
        assert isinstance(scoped, Unique)
        assert scoped.record.stage_id == tree["roof_a"].id

    def test_unwrap_messages(self, db, tree):
        """Test that unwrap raises with the query and the candidate context."""
        with pytest.raises(NotFoundError) as exc_info:
            unwrap(resolve_project(db, "Tower Z"))
        assert exc_info.value.message == 'Project "Tower Z" not found'

        with pytest.raises(AmbiguousError) as exc_info:
            unwrap(resolve_object(db, "Block 1", project_id=tree["tower_a"].id))
        assert "Block 1 (stage: Foundation, project: Tower A)" in exc_info.value.message
        assert "Block 1 (stage: Roof, project: Tower A)" in exc_info.value.message


class TestUserSearch:
    """Test person search and resolution."""

    def test_single_field_matches(self, db, ivan, anna):
        """Test matches on first name, last name, full name and email."""
        assert search_users(db, "ivan") == [ivan]
        assert search_users(db, "Sidorova") == [anna]
        assert search_users(db, "Anna Sid") == [anna]
        assert search_users(db, "petrov@") == [ivan]

    def test_name_pair_in_either_order(self, db, ivan):
        """Test that 'last first' matches as well as 'first last'."""
        assert search_users(db, "Petrov Ivan") == [ivan]
        assert search_users(db, "Iva Petr") == [ivan]

    def test_wildcards_are_literal(self, db, ivan):
        """Test that % and _ in the query do not act as wildcards."""
        assert search_users(db, "%") == []
        assert search_users(db, "I_an") == []

    def test_long_query_rejected(self, db, ivan):
        """Test that queries over 50 characters return nothing."""
        assert search_users(db, "x" * 51) == []

        result = resolve_user(db, "x" * 51)
        assert isinstance(result, NotFound)
        assert "too long" in result.reason

    def test_empty_query_lists_active_users(self, db, ivan, anna, make_user):
        """Test that an empty query lists active users only."""
        make_user("Old", "Timer", is_active=False)
        assert {u.full_name for u in search_users(db, "")} == {"Ivan Petrov", "Anna Sidorova"}

    def test_inactive_users_excluded(self, db, make_user):
        """Test that inactive users never resolve."""
        make_user("Olga", "Retired", is_active=False)
        assert isinstance(resolve_user(db, "Olga"), NotFound)

    def test_ambiguous_user(self, db, make_user):
        """Test that two matching people are both listed."""
        make_user("Ivan", "Petrov")
        make_user("Ivan", "Smirnov")

        with pytest.raises(AmbiguousError) as exc_info:
            unwrap(resolve_user(db, "Ivan"))
        assert "ivan.petrov@example.com" in exc_info.value.message
        assert "ivan.smirnov@example.com" in exc_info.value.message
        assert "use an email" in exc_info.value.message

    def test_email_wins(self, db, make_user):
        """Test that an exact email picks one person among several matches."""
        make_user("Ivan", "Petrov", email="ivan@example.com")
        make_user("Ivan", "Petrovsky", email="ivan@example.com.old")

        result = resolve_user(db, "ivan@example.com")
        assert isinstance(result, Unique)
        assert result.record.full_name == "Ivan Petrov"

    def test_full_name_found_past_result_cap(self, db, ivan):
        """Test that an exact full name wins over more partial matches than the cap."""
        db.add_all([
            models.User(
                first_name=f"Aaron{i:02d}",
                last_name="Ivan Petrov",
                full_name=f"Aaron{i:02d} Ivan Petrov",
                email=f"aaron{i:02d}@example.com",
            )
            for i in range(60)
        ])
        db.commit()

        assert len(search_users(db, "Ivan Petrov")) == 50
        result = resolve_user(db, "ivan petrov")

        assert isinstance(result, Unique)
        assert result.record.id == ivan.id


class TestResolutionChain:
    """Test ordered composition of resolution steps."""

    def test_all_unique(self, db, tree):
        """Test that a fully resolved chain returns every record."""
        outcome = (
            ResolutionChain()
            .add("project", lambda r: resolve_project(db, "Tower A"))
            .add("stage", lambda r: resolve_stage(db, "Roof", r["project"].id), depends_on=("project",))
            .run()
        )
        assert isinstance(outcome, Resolved)
        assert outcome.records["stage"].id == tree["roof_a"].id

    def test_first_failure_wins(self, db, tree):
        """Test that a missing project is reported and the stage is never attempted."""
        attempted = []

        def stage_step(r):
            attempted.append("stage")
            return resolve_stage(db, "Nowhere", r["project"].id)

        chain = (
            ResolutionChain()
            .add("project", lambda r: resolve_project(db, "Missing Project"))
            .add("stage", stage_step, depends_on=("project",))
        )
        outcome = chain.run()

        assert isinstance(outcome, NotFound)
        assert outcome.entity == "Project"
        assert attempted == []
        with pytest.raises(NotFoundError) as exc_info:
            chain.resolve()
        assert "Missing Project" in exc_info.value.message

    def test_dependency_must_be_declared_first(self):
        """Test that a step cannot depend on a later or unknown step."""
        chain = ResolutionChain()
        with pytest.raises(ValueError):
            chain.add("stage", lambda r: None, depends_on=("project",))

    def test_duplicate_key_rejected(self):
        """Test that step keys are unique."""
        chain = ResolutionChain().add("project", lambda r: None)
        with pytest.raises(ValueError):
            chain.add("project", lambda r: None)
