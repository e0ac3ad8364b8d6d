import os

import pytest

os.environ.setdefault("CHAKRA_DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("CHAKRA_SECRET_KEY", "test-secret")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from knowledge_chakra.api.v1.auth import create_token, hash_password
from knowledge_chakra.db import Base, get_db
from knowledge_chakra.dependencies import get_notifier
from knowledge_chakra.main import app
from knowledge_chakra.models import User, UserRole

# Use in-memory SQLite for testing to ensure isolation
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class RecordingNotifier:
    """Collects events instead of writing them; can be told to fail."""

    def __init__(self):
        self.events = []
        self.fail = False

    def notify(self, event):
        if self.fail:
            raise RuntimeError("notification sink unavailable")
        self.events.append(event)

    def recipients(self):
        return [event.recipient_id for event in self.events]


@pytest.fixture(scope="function")
def session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope="function")
def client(session, notifier):
    """
    Create a TestClient bound to the test session and recording notifier.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_user(session, email, role=UserRole.STUDENT, first_name="Test", last_name="User"):
    user = User(
        email=email,
        password_hash=hash_password("password123"),
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def auth_headers(user):
    return {"Authorization": f"Bearer {create_token(user.id, user.role.value)}"}


@pytest.fixture
def teacher(session):
    return make_user(session, "teacher@example.com", UserRole.TEACHER, "Tara", "Teacher")


@pytest.fixture
def other_teacher(session):
    return make_user(session, "other@example.com", UserRole.TEACHER, "Omar", "Other")


@pytest.fixture
def student(session):
    return make_user(session, "student@example.com", UserRole.STUDENT, "Sam", "Student")


@pytest.fixture
def admin(session):
    return make_user(session, "admin@example.com", UserRole.ADMIN, "Ada", "Admin")
