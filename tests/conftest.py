"""
Shared test fixtures.

Provides an in-memory SQLite database with every table created, a FastAPI
test client bound to it, and factories for users, tokens and certificates.
"""
import os
import tempfile

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STATIC_DIR", tempfile.mkdtemp(prefix="atestados-static-"))
os.environ.setdefault("LOG_FILE", "")

from datetime import date, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402
from sqlmodel.pool import StaticPool  # noqa: E402

from app.db import schema  # noqa: E402,F401
from app.db.core import get_session  # noqa: E402
from app.db.schema import Certificate, CertificateStatus, User, UserRole  # noqa: E402
from app.services.password import get_password_hash  # noqa: E402
from app.services.user import UserService  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine, session, monkeypatch):
    """TestClient sharing the test session; background tasks use the test engine."""
    from app.main import app

    def _get_session_override():
        return session

    app.dependency_overrides[get_session] = _get_session_override
    monkeypatch.setattr("app.db.core.engine", engine)

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    """Factory: persist a user of the given role."""
    counter = {"n": 0}

    def _make(role=UserRole.STUDENT, password="secret123", is_active=True, **fields):
        counter["n"] += 1
        n = counter["n"]
        data = {
            "email": f"{role.value}{n}@escola.edu.br",
            "name": f"{role.value.title()} {n}",
        }
        if role == UserRole.STUDENT:
            data.update(ra=f"2025{n:06d}", course="Informática",
                        period="Noturno", class_group="3A")
        else:
            data.update(employee_register=f"RE-{n:05d}")
        data.update(fields)

        user = User(role=role, hashed_password=get_password_hash(password),
                    is_active=is_active, **data)
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make


@pytest.fixture
def student(make_user):
    return make_user(UserRole.STUDENT)


@pytest.fixture
def pedagogue(make_user):
    return make_user(UserRole.PEDAGOGY)


@pytest.fixture
def secretary(make_user):
    return make_user(UserRole.SECRETARIAT)


@pytest.fixture
def admin(make_user):
    return make_user(UserRole.ADMIN)


@pytest.fixture
def auth_headers(session):
    def _headers(user):
        token = UserService(session).generate_access_token(user)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_certificate(session):
    """Factory: persist a certificate, optionally with review slots already filled."""

    def _make(owner, start_date=None, days_off=2, **fields):
        start_date = start_date or date.today()
        cert = Certificate(
            owner_id=owner.id,
            start_date=start_date,
            end_date=start_date + timedelta(days=days_off - 1),
            days_off=days_off,
            reason="Consulta médica",
            status=fields.pop("status", CertificateStatus.PENDING),
            **fields,
        )
        session.add(cert)
        session.commit()
        session.refresh(cert)
        return cert

    return _make


@pytest.fixture
def t0():
    return datetime(2025, 11, 3, 9, 0, 0)
