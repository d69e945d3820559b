"""
Test Configuration and Fixtures
================================

Central configuration for pytest with all shared fixtures.

Features:
- SQLite in-memory database for testing
- TestClient setup
- Seeded permission catalog and default roles
- One user per tier, plus token/header helpers
- Dependency overrides for database session
"""

import os
from typing import Callable, Generator, Iterable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before importing portal modules
os.environ["ENVIRONMENT"] = "testing"
os.environ["SECRET_KEY"] = "test-secret-key-for-testing-only-min-32-chars"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["INACTIVITY_LIMIT_MINUTES"] = "0"
os.environ["LOG_LEVEL"] = "WARNING"

from portal.db.base import Base
from portal.db.seeds.seeder import seed_roles
from portal.db.session import get_db
from portal.main import app as main_app
from portal.models.terms import TermsAndConditions
from portal.models.user import User
from portal.services.auth_service import AuthService
from portal.services.authorization import AuthorizationEvaluator
from portal.services.identity import Identity, IdentityResolver

TEST_PASSWORD = "TestPassword123!"

# Argon2 is deliberately slow; hash once for every fixture user
TEST_PASSWORD_HASH = AuthService.hash_password(TEST_PASSWORD)


# =====================================
# Database Configuration
# =====================================

# StaticPool keeps the same in-memory connection across sessions
engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# =====================================
# Database Fixtures
# =====================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """
    Fresh schema and session for each test.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    TestClient sharing the test session through a get_db override.
    """
    def override_get_db():
        yield db_session

    main_app.dependency_overrides[get_db] = override_get_db

    with TestClient(main_app) as test_client:
        yield test_client

    main_app.dependency_overrides.clear()


# =====================================
# Catalog Fixtures
# =====================================

@pytest.fixture
def roles(db_session: Session) -> dict:
    """
    Seeded permission catalog and default roles, keyed by role name.
    """
    return seed_roles(db_session)


@pytest.fixture
def current_terms(db_session: Session) -> TermsAndConditions:
    terms = TermsAndConditions(
        version="2026-01",
        title="Terms of Use",
        content="Be nice.",
        is_active=True,
    )
    db_session.add(terms)
    db_session.commit()
    return terms


# =====================================
# User Fixtures
# =====================================

@pytest.fixture
def make_user(db_session: Session, roles: dict) -> Callable[..., User]:
    """
    Factory: ``make_user("ann@example.com", ["viewer"], temporary_password_used=True)``.
    """
    def _make(email: str, role_names: Iterable[str] = (), **fields) -> User:
        user = User(
            name=fields.pop("name", email.split("@")[0].title()),
            email=email,
            hashed_password=TEST_PASSWORD_HASH,
            **fields,
        )
        user.roles = [roles[name] for name in role_names]
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture
def super_admin_user(make_user) -> User:
    return make_user("superadmin@example.com", ["super_admin"])


@pytest.fixture
def admin_user(make_user) -> User:
    return make_user("admin@example.com", ["admin"])


@pytest.fixture
def manager_user(make_user) -> User:
    return make_user("manager@example.com", ["manager"])


@pytest.fixture
def viewer_user(make_user) -> User:
    return make_user("viewer@example.com", ["viewer"])


@pytest.fixture
def target_user(make_user) -> User:
    """A plain user whose roles the tests change."""
    return make_user("target@example.com", ["user"])


# =====================================
# Identity Fixtures
# =====================================

@pytest.fixture
def evaluator() -> AuthorizationEvaluator:
    return AuthorizationEvaluator()


@pytest.fixture
def identity_for(db_session: Session) -> Callable[[User], Identity]:
    """Build a fresh Identity for a user, as a request would."""
    resolver = IdentityResolver(db_session)
    return resolver.for_user


# =====================================
# Token Fixtures
# =====================================

def bearer(user: User) -> dict:
    token = AuthService.create_access_token(user_id=user.id, token_version=user.token_version)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for() -> Callable[[User], dict]:
    return bearer


@pytest.fixture
def super_admin_headers(super_admin_user: User) -> dict:
    return bearer(super_admin_user)


@pytest.fixture
def admin_headers(admin_user: User) -> dict:
    return bearer(admin_user)


@pytest.fixture
def manager_headers(manager_user: User) -> dict:
    return bearer(manager_user)


@pytest.fixture
def viewer_headers(viewer_user: User) -> dict:
    return bearer(viewer_user)
