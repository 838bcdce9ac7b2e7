"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created and dropped per test
- Local blob storage under a per-test temporary directory
- JWT token minting for authenticated tests
- HTTPX AsyncClient with session cookie and CSRF header
"""
import io
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Must be set before recruit_crm settings are imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["JWT_SECRET"] = "test-session-secret-with-enough-bytes-for-hs256"

import pytest
from httpx import ASGITransport, AsyncClient
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy.orm import Session

from recruit_crm.core.config import settings
from recruit_crm.core.deps import COOKIE_NAME, get_db
from recruit_crm.core.security import create_session_token
from recruit_crm.db.base import Base
from recruit_crm.db.enums import Role
from recruit_crm.db.models import Candidate, Pipeline, User
from recruit_crm.db.session import SessionLocal, engine
from recruit_crm.main import app
from recruit_crm.services import pipeline_service


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code is free to commit and roll back."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Route blob storage to a temporary directory."""
    storage_root = tmp_path / "storage"
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(storage_root))
    return storage_root


# =============================================================================
# Domain Fixtures
# =============================================================================

@pytest.fixture
def pipeline(db: Session) -> Pipeline:
    """Pipeline with the standard stages (Inbox is the default)."""
    created = pipeline_service.create_pipeline(db, name="Engineering")
    db.commit()
    return created


@pytest.fixture
def default_stage(pipeline: Pipeline):
    return next(stage for stage in pipeline.stages if stage.is_default)


def _make_user(db: Session, role: Role) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{role.value}-{uuid.uuid4().hex[:8]}@test.com",
        display_name=f"Test {role.value.title()}",
        role=role.value,
    )
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def admin_user(db: Session) -> User:
    return _make_user(db, Role.ADMIN)


@pytest.fixture
def recruiter_user(db: Session) -> User:
    return _make_user(db, Role.RECRUITER)


@pytest.fixture
def viewer_user(db: Session) -> User:
    return _make_user(db, Role.VIEWER)


@pytest.fixture
def make_candidate(db: Session, pipeline: Pipeline, default_stage):
    """Factory for active candidates in the test pipeline."""

    def _make(**overrides) -> Candidate:
        values = {
            "pipeline_id": pipeline.id,
            "stage_id": default_stage.id,
            "full_name": "Test Candidate",
        }
        values.update(overrides)
        candidate = Candidate(**values)
        db.add(candidate)
        db.commit()
        return candidate

    return _make


def make_pdf(lines: list[str]) -> bytes:
    """Render a one-page PDF with one text line per entry."""
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    y = 800
    for line in lines:
        pdf.drawString(72, y, line)
        y -= 20
    pdf.showPage()
    pdf.save()
    return buffer.getvalue()


# =============================================================================
# Client Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


def _auth_for(user: User) -> TestAuth:
    token = create_session_token(
        user_id=user.id,
        role=user.role,
        token_version=user.token_version,
    )
    return TestAuth(user=user, token=token)


def _client_for(db: Session, auth: TestAuth | None) -> AsyncClient:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={auth.cookie_name: auth.token} if auth else None,
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    )


@pytest.fixture
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client."""
    async with _client_for(db, None) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def admin_client(db: Session, admin_user: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client_for(db, _auth_for(admin_user)) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def recruiter_client(db: Session, recruiter_user: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client_for(db, _auth_for(recruiter_user)) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def viewer_client(db: Session, viewer_user: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client_for(db, _auth_for(viewer_user)) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def pdf_factory():
    return make_pdf
