"""Pytest configuration and shared fixtures."""

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from castellan.core.rbac.catalog import PermissionCatalog
from castellan.core.references import TypeRegistry
from castellan.db.base import Base
from castellan.db.session import create_db_engine
from castellan.services.authorization import AuthorizationService
from tests.factories import Account, Blog, Client, Post, User

import castellan.db.models  # noqa: F401


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest.fixture
def engine():
    """In-memory SQLite engine with the schema created."""
    engine = create_db_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """Session that is rolled back and closed after each test."""
    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# ---------------------------------------------------------------------------
# Catalog and service
# ---------------------------------------------------------------------------


@pytest.fixture
def types():
    registry = TypeRegistry()
    registry.register("user", User)
    registry.register("client", Client)
    registry.register("post", Post)
    registry.register("blog", Blog)
    registry.register("account", Account)
    return registry


@pytest.fixture
def catalog(types):
    """A fresh catalog per test."""
    return PermissionCatalog(types)


@pytest.fixture
def blog_catalog(catalog):
    """Catalog with the blog permissions used across the service tests.

    manage-posts -> edit-post -> view-post; publish-post stands alone.
    """
    catalog.register(
        {
            "manage-posts": "Manage Posts",
            "edit-post": "Edit Post",
            "view-post": "View Post",
            "publish-post": "Publish Post",
        }
    )
    catalog.implies("manage-posts", "edit-post")
    catalog.implies("edit-post", "view-post")
    return catalog


@pytest.fixture
def authz(db_session, blog_catalog):
    return AuthorizationService(db_session, blog_catalog)


@pytest.fixture
def alice():
    return User(id=1, name="alice")


@pytest.fixture
def bob():
    return User(id=2, name="bob")
