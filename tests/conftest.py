"""Shared pytest fixtures for linkage tests."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from linkage.db.schema import Base
from linkage.models.relation import RelationDescriptor, RelationType
from linkage.repository.memory import InMemoryRepository


@pytest.fixture
def engine():
    """Create an in-memory SQLite engine for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def session(engine):
    """Create a database session for testing."""
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def user_relations() -> list[RelationDescriptor]:
    """Relations of a mapping-backed "users" resource."""
    return [
        RelationDescriptor(name="profile", type=RelationType.ONE_TO_ONE, field="Profile", resource="profiles"),
        RelationDescriptor(name="posts", type=RelationType.ONE_TO_MANY, field="Posts", resource="posts"),
        RelationDescriptor(name="team", type=RelationType.MANY_TO_ONE, resource="teams"),
        RelationDescriptor(name="roles", type=RelationType.MANY_TO_MANY, field="RoleIDs", resource="roles"),
    ]


@pytest.fixture
def users() -> InMemoryRepository:
    """Users repository with a single user 1."""
    return InMemoryRepository(
        [{"ID": 1, "Profile": None, "Posts": [], "teamID": 0, "RoleIDs": []}],
        resource_name="users",
    )


@pytest.fixture
def posts() -> InMemoryRepository:
    """Posts repository with posts 10 and 11."""
    return InMemoryRepository(
        [{"ID": 10, "Title": "A"}, {"ID": 11, "Title": "B"}],
        resource_name="posts",
    )


@pytest.fixture
def teams() -> InMemoryRepository:
    """Teams repository with team 3."""
    return InMemoryRepository([{"ID": 3, "Name": "Core"}], resource_name="teams")


@pytest.fixture
def profiles() -> InMemoryRepository:
    """Profiles repository with profile 5."""
    return InMemoryRepository([{"ID": 5, "Bio": "hello"}], resource_name="profiles")
