"""
Pytest configuration and fixtures for Newsdesk tests.
"""

import itertools
import os

# Settings are read at import time, so the test environment goes in first
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("SQLALCHEMY_DATABASE_URI", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("COOKIE_SECURE", "false")

import pytest
from typing import Callable, Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.core.database import Base, get_db
from app.core.config import settings
from app.core.exceptions import register_exception_handlers
from app.core.security import Identity, get_token_codec, hash_password
from app.models.user import Role, User
from app.models.category import Category
from app.models.article import Article, ArticleStatus


# Use in-memory SQLite database for tests
TEST_DATABASE_URL = "sqlite:///:memory:"
TEST_PASSWORD = "correct-horse"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def test_app(db_session):
    """Create a FastAPI test app without lifespan events."""
    from fastapi import FastAPI
    from app.api.endpoints import admin, articles, auth, categories
    from app.api.rate_limit import limiter

    # Create app without lifespan so the scheduler never starts
    test_app = FastAPI(title="Newsdesk - Test", version="1.0.0")
    test_app.state.limiter = limiter
    register_exception_handlers(test_app)

    test_app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    test_app.include_router(articles.router, prefix="/api/articles", tags=["articles"])
    test_app.include_router(
        categories.router, prefix="/api/categories", tags=["categories"]
    )
    test_app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

    # Override database dependency
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    test_app.dependency_overrides[get_db] = override_get_db

    return test_app


@pytest.fixture(scope="function")
def client(test_app) -> TestClient:
    """Anonymous test client."""
    return TestClient(test_app, raise_server_exceptions=False)


def _make_user(db_session, role: Role, name: str, email: str, is_active=True) -> User:
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
        is_active=is_active,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture(scope="function")
def make_user(db_session) -> Callable[..., User]:
    """Factory for users with arbitrary role and state."""
    counter = itertools.count(1)

    def _factory(role=Role.USER, name="Some User", email=None, is_active=True):
        email = email or f"{role.value.lower()}-{next(counter)}@example.com"
        return _make_user(db_session, role, name, email, is_active)

    return _factory


@pytest.fixture(scope="function")
def reader(db_session) -> User:
    return _make_user(db_session, Role.USER, "Rita Reader", "reader@example.com")


@pytest.fixture(scope="function")
def reporter(db_session) -> User:
    return _make_user(db_session, Role.REPORTER, "Ray Reporter", "reporter@example.com")


@pytest.fixture(scope="function")
def other_reporter(db_session) -> User:
    return _make_user(db_session, Role.REPORTER, "Rory Reporter", "rory@example.com")


@pytest.fixture(scope="function")
def editor(db_session) -> User:
    return _make_user(db_session, Role.EDITOR, "Edie Editor", "editor@example.com")


@pytest.fixture(scope="function")
def admin(db_session) -> User:
    return _make_user(db_session, Role.ADMIN, "Ada Admin", "admin@example.com")


def session_token(user: User) -> str:
    """Access token for a user, as the login endpoint would issue it."""
    identity = Identity(user_id=user.id, role=user.role, email=user.email)
    access_token, _ = get_token_codec().issue_pair(identity)
    return access_token


@pytest.fixture(scope="function")
def client_for(test_app) -> Callable[[User], TestClient]:
    """Build a test client carrying the session cookie of the given user."""

    def _factory(user: User) -> TestClient:
        client = TestClient(test_app, raise_server_exceptions=False)
        client.cookies.set(settings.ACCESS_TOKEN_COOKIE, session_token(user))
        return client

    return _factory


@pytest.fixture(scope="function")
def category(db_session) -> Category:
    """Create an active category."""
    category = Category(
        name="Technology",
        slug="technology",
        description="Tech news and updates",
        is_active=True,
    )
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture(scope="function")
def make_article(db_session) -> Callable[..., Article]:
    """Factory for articles in any status, optionally soft-deleted."""

    def _factory(
        author: User,
        title="Test Article",
        slug=None,
        status=ArticleStatus.PUBLISHED,
        category=None,
        deleted_at=None,
    ) -> Article:
        article = Article(
            title=title,
            slug=slug or title.lower().replace(" ", "-"),
            content="Full article content goes here",
            author_id=author.id,
            category_id=category.id if category else None,
            status=status,
            meta_title=title[:60],
            meta_description="Full article content goes here",
            deleted_at=deleted_at,
        )
        db_session.add(article)
        db_session.commit()
        db_session.refresh(article)
        return article

    return _factory
