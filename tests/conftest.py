"""Shared fixtures: an in-memory SQLite database and a few people."""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from eneca_core import models
from eneca_mcp import handlers


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    models.Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def clear_display_cache():
    handlers.display_cache.clear()
    yield
    handlers.display_cache.clear()


@pytest.fixture
def make_user(db):
    """Factory for active users."""

    def _make(first_name, last_name, email=None, department=None, **kwargs):
        user = models.User(
            first_name=first_name,
            last_name=last_name,
            full_name=f"{first_name} {last_name}",
            email=email or f"{first_name}.{last_name}@example.com".lower(),
            **kwargs,
        )
        if department is not None:
            user.department = department
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def ivan(make_user):
    return make_user("Ivan", "Petrov")


@pytest.fixture
def anna(make_user):
    return make_user("Anna", "Sidorova")
