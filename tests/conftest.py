"""Pytest fixtures for testing"""

import pytest
from typing import Callable, Dict, Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session
from finboard.api.main import create_app
from finboard.config import Settings
from finboard.infrastructure.database.models import UserAccount
from finboard.infrastructure.database.session import Database
from finboard.infrastructure.database.repositories import UserRepository
from finboard.services.records import RecordService


# Test database: in-memory SQLite shared across threads
TEST_DATABASE_URL = "sqlite://"


@pytest.fixture
def database() -> Generator[Database, None, None]:
    """Create a fresh schema for each test"""
    database = Database(TEST_DATABASE_URL)
    database.create_all()
    try:
        yield database
    finally:
        database.drop_all()
        database.dispose()


@pytest.fixture
def db(database: Database) -> Generator[Session, None, None]:
    """Session for arranging and inspecting data directly"""
    db = database.session()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_client(database: Database) -> Callable[..., TestClient]:
    """Build a client for an app configured with the given settings overrides"""

    def _make(**overrides) -> TestClient:
        overrides.setdefault("trust_gateway_headers", True)
        app_settings = Settings(
            _env_file=None,
            database_url=TEST_DATABASE_URL,
            auth_service_url=overrides.pop("auth_service_url", None),
            **overrides,
        )
        return TestClient(create_app(app_settings, database=database))

    return _make


@pytest.fixture
def client(make_client: Callable[..., TestClient]) -> TestClient:
    """Create FastAPI test client with test database"""
    return make_client()


@pytest.fixture
def service(db: Session) -> RecordService:
    return RecordService(db)


@pytest.fixture
def as_user() -> Callable[..., Dict[str, str]]:
    """Gateway identity headers for a caller"""

    def _headers(user_id: str, role: str = "regular") -> Dict[str, str]:
        return {"X-User-Id": user_id, "X-User-Role": role}

    return _headers


@pytest.fixture
def users(db: Session) -> UserRepository:
    return UserRepository(db)


@pytest.fixture
def create_user(db: Session) -> Callable[..., UserAccount]:
    """Insert a user row; accounts are provisioned by the session service"""

    def _create(name: str, email: str, password: str = "hash", role: str = "regular") -> UserAccount:
        user = UserAccount(name=name, email=email, password=password, role=role)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _create
