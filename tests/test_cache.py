"""Tests for the TTL display cache."""
from eneca_core import models
from eneca_core.cache import DisplayCache, TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestTTLCache:
    """Test entry lifetime."""

    def test_hit_before_expiry(self):
        """Test that an entry is served until its TTL passes."""
        clock = FakeClock()
        cache = TTLCache(60, clock)
        cache.put("a", 1)

        clock.advance(59)
        assert cache.get("a") == 1

        clock.advance(1)
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_expire_sweeps_stale_entries(self):
        """Test that expire() without a key drops only expired entries."""
        clock = FakeClock()
        cache = TTLCache(10, clock)
        cache.put("old", 1)
        clock.advance(5)
        cache.put("new", 2)
        clock.advance(6)

        cache.expire()

        assert len(cache) == 1
        assert cache.get("new") == 2

    def test_get_or_load_caches_values_not_none(self):
        """Test that the loader runs once per miss and None is never stored."""
        cache = TTLCache(60, FakeClock())
        calls = []

        def loader():
            calls.append(1)
            return "value"

        assert cache.get_or_load("k", loader) == "value"
        assert cache.get_or_load("k", loader) == "value"
        assert len(calls) == 1

        assert cache.get_or_load("missing", lambda: None) is None
        assert len(cache) == 1


class TestDisplayCache:
    """Test id to display lookups."""

    def test_user_lookup(self, db, ivan):
        """Test that a user id resolves to name and email."""
        cache = DisplayCache(60, FakeClock())

        assert cache.user(db, ivan.id) == {"id": ivan.id, "full_name": "Ivan Petrov", "email": "ivan.petrov@example.com"}
        assert cache.user(db, None) is None

    def test_stale_until_ttl(self, db, ivan):
        """Test that a rename is not visible until the entry expires."""
        clock = FakeClock()
        cache = DisplayCache(3600, clock)
        cache.user(db, ivan.id)

        ivan.full_name = "Ivan Petrov-Vodkin"
        db.commit()

        assert cache.user(db, ivan.id)["full_name"] == "Ivan Petrov"

        clock.advance(3600)
        assert cache.user(db, ivan.id)["full_name"] == "Ivan Petrov-Vodkin"

    def test_project_and_stage(self, db):
        """Test project and stage lookups, including unknown ids."""
        project = models.Project(name="Tower A")
        db.add(project)
        db.flush()
        stage = models.Stage(name="Foundation", project_id=project.id)
        db.add(stage)
        db.commit()
        cache = DisplayCache(60, FakeClock())

        assert cache.project(db, project.id)["name"] == "Tower A"
        assert cache.stage(db, stage.id)["name"] == "Foundation"

        cache.clear()
        assert len(cache.projects) == 0
