# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECONDARY_WRITE_BACKOFF_SECONDS", "0")

from commonplace.api.v1.dependencies import get_store  # noqa: E402
from commonplace.core.security import create_access_token  # noqa: E402
from commonplace.db.session import Base  # noqa: E402
from commonplace.main import app as fastapi_app  # noqa: E402
from commonplace.models import Document  # noqa: E402
from commonplace.services import users as user_service  # noqa: E402
from commonplace.services.events import EventService  # noqa: E402
from commonplace.services.membership import MembershipService  # noqa: E402
from commonplace.services.moderation import PassThroughModerationClient  # noqa: E402
from commonplace.services.posts import PostService  # noqa: E402
from commonplace.store import DocumentStore  # noqa: E402

TEST_DB_URL = "sqlite://"


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def store(engine: Engine) -> Iterator[DocumentStore]:
    """Return a store over an empty database."""
    try:
        yield DocumentStore(engine)
    finally:
        # Ensure each test sees a clean database.
        with engine.begin() as cleanup_conn:
            cleanup_conn.execute(Document.__table__.delete())


@pytest.fixture()
def threaded_store(tmp_path: Any) -> Iterator[DocumentStore]:
    """Return a store on a file database so that threads get separate connections."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'store.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield DocumentStore(engine)
    finally:
        engine.dispose()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_store_dependency(app: FastAPI, store: DocumentStore) -> Iterator[None]:
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_store, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_user(store: DocumentStore) -> Callable[..., dict[str, Any]]:
    """Return a factory persisting user documents."""

    def _make(name: str = "Test User", **kwargs: Any) -> dict[str, Any]:
        return user_service.create_user(store, name, **kwargs)

    return _make


@pytest.fixture()
def test_user(make_user: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    """Create and return the primary test user."""
    return make_user("Test User")


@pytest.fixture()
def other_user(make_user: Callable[..., dict[str, Any]]) -> dict[str, Any]:
    """Create and return a second user."""
    return make_user("Other User")


@pytest.fixture()
def make_community(store: DocumentStore) -> Callable[..., dict[str, Any]]:
    """Return a factory creating communities through the membership service."""

    def _make(creator: dict[str, Any], privacy: str = "public", name: str = "Test Community") -> dict[str, Any]:
        return MembershipService(store).create_community(
            creator["id"], name, "Test community description", privacy
        )

    return _make


@pytest.fixture()
def make_post(store: DocumentStore) -> Callable[..., dict[str, Any]]:
    """Return a factory creating posts with moderation passed through."""

    def _make(author: dict[str, Any], content: str = "Test post content", **kwargs: Any) -> dict[str, Any]:
        service = PostService(store, moderation=PassThroughModerationClient())
        return service.create_post(author["id"], content, **kwargs)

    return _make


@pytest.fixture()
def make_event(store: DocumentStore) -> Callable[..., dict[str, Any]]:
    """Return a factory creating a one-hour event starting next week."""

    def _make(organizer: dict[str, Any], **kwargs: Any) -> dict[str, Any]:
        return EventService(store).create_event(
            organizer["id"],
            kwargs.pop("title", "Test Event"),
            kwargs.pop("description", "An event for the test suite"),
            kwargs.pop("start_time", "2030-01-08T18:00:00Z"),
            kwargs.pop("end_time", "2030-01-08T19:00:00Z"),
            **kwargs,
        )

    return _make


@pytest.fixture()
def test_post(make_post: Callable[..., dict[str, Any]], test_user: dict[str, Any]) -> dict[str, Any]:
    """Create a baseline post authored by the primary test user."""
    return make_post(test_user)


@pytest.fixture()
def poll_post(make_post: Callable[..., dict[str, Any]], test_user: dict[str, Any]) -> dict[str, Any]:
    """Create a poll with three options authored by the primary test user."""
    return make_post(test_user, "Which one?", poll_options=["Red", "Green", "Blue"])


def bearer(user: dict[str, Any]) -> dict[str, str]:
    """Return authorization headers acting as ``user``."""
    return {"Authorization": f"Bearer {create_access_token(user['id'])}"}


@pytest.fixture()
def headers_for() -> Callable[[dict[str, Any]], dict[str, str]]:
    return bearer


@pytest.fixture()
def auth_token(test_user: dict[str, Any]) -> dict[str, str]:
    """Return authorization headers for the primary test user."""
    return bearer(test_user)


@pytest.fixture()
def other_auth_token(other_user: dict[str, Any]) -> dict[str, str]:
    """Return authorization headers for the secondary test user."""
    return bearer(other_user)
