"""
Pytest configuration and fixtures.
"""
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient
from unittest.mock import patch

from app.core.database import Base, enable_sqlite_foreign_keys, get_db
from app.main import app

# Import all models so the tables are created
from app.models import (
    Status,
    User,
    Outlet,
    FormTemplate,
    ComplianceRequirement,
    Audit,
    AuditForm,
    AuditAuditForm,
    AuditVersion,
    Issue,
    CorrectiveAction,
    ActivityLog,
)
from app.services.status_codes import resolve_status_codes
from app.services.status_seeder import seed_statuses

# Use file-based SQLite for testing (more reliable than in-memory)
TEST_DATABASE_URL = "sqlite:///./test_compliance_audit.db"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    pool_pre_ping=False,
)
enable_sqlite_foreign_keys(test_engine)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create all tables and seed statuses once per test session."""
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    db = TestingSessionLocal()
    try:
        seed_statuses(db)
    finally:
        db.close()
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function", autouse=True)
def clean_tables():
    """Empty every table except `status` after each test."""
    yield
    with test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            if table.name != "status":
                conn.execute(table.delete())


@pytest.fixture(scope="function", autouse=True)
def disable_openai():
    """Disable OpenAI for all tests by patching the settings."""
    with patch("app.core.config.settings.OPENAI_API_KEY", None):
        yield


@pytest.fixture(scope="function", autouse=True)
def disable_api_key():
    """Disable API key authentication for all tests."""
    with patch("app.core.config.settings.API_KEY", None):
        yield


def _override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="function")
def client():
    """
    Test client with the database dependency pointed at the test database.

    A new session is created for each request, as FastAPI expects.
    """
    app.dependency_overrides[get_db] = _override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def client_with_auth():
    """Test client with API key authentication enabled (API_KEY="test-key")."""
    app.dependency_overrides[get_db] = _override_get_db
    with patch("app.core.config.settings.API_KEY", "test-key"):
        yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def db_session():
    """Database session for tests that need direct DB access."""
    db = TestingSessionLocal()
    try:
        yield db
        db.rollback()
    finally:
        db.close()


@pytest.fixture(scope="function")
def codes(db_session):
    """Workflow status ids of the test database."""
    return resolve_status_codes(db_session)


class Factory:
    """Builds committed rows for tests."""

    def __init__(self, db, codes):
        self.db = db
        self.codes = codes
        self._seq = 0

    def _next(self):
        self._seq += 1
        return self._seq

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, role="outlet_user", name=None):
        n = self._next()
        return self._save(User(name=name or f"User {n}", email=f"user{n}@example.com", role=role))

    def outlet(self, manager=None, outlet_user=None, name=None):
        return self._save(Outlet(
            name=name or f"Outlet {self._next()}",
            manager_id=manager.id if manager else None,
            outlet_user_id=outlet_user.id if outlet_user else None,
            is_active=True,
        ))

    def template(self, structure=None, name="Hygiene Checklist"):
        if structure is None:
            structure = [
                {"id": "q1", "type": "text", "label": "Floor clean?", "order": 2},
                {"id": "q2", "type": "checkbox", "label": "Gloves worn", "order": 1},
            ]
        return self._save(FormTemplate(name=name, structure=structure))

    def requirement(self, title="Food Safety"):
        return self._save(ComplianceRequirement(title=title, frequency="monthly", is_active=True))

    def audit(self, outlet=None, status_id=None, user=None, start_time=None, requirement=None, **kwargs):
        outlet = outlet or self.outlet()
        return self._save(Audit(
            outlet_id=outlet.id,
            user_id=user.id if user else None,
            compliance_id=requirement.id if requirement else None,
            status_id=status_id if status_id is not None else self.codes.pending,
            start_time=start_time or datetime.now(timezone.utc) - timedelta(days=1),
            progress=kwargs.pop("progress", 50),
            **kwargs,
        ))

    def form(self, audit, status_id=None, value=None, template=None, name="Hygiene Checklist"):
        template = template or self.template()
        form = self._save(AuditForm(
            form_id=template.id,
            name=name,
            value=value if value is not None else {"q1": "yes"},
            status_id=status_id,
        ))
        self._save(AuditAuditForm(audit_id=audit.id, audit_form_id=form.id))
        return form

    def issue(self, form, description="Floor dirty", severity="High", status_id=None):
        return self._save(Issue(
            description=description,
            severity=severity,
            due_date=(datetime.now(timezone.utc) + timedelta(days=7)).date(),
            audit_form_id=form.id,
            status_id=status_id if status_id is not None else self.codes.rejected,
        ))

    def corrective_action(self, issue, description="Mop floor"):
        return self._save(CorrectiveAction(
            description=description,
            issue_id=issue.id,
            status_id=self.codes.pending,
        ))

    def chain_row(self, audit_id, first_audit_id, version):
        return self._save(AuditVersion(audit_id=audit_id, first_audit_id=first_audit_id, audit_version=version))


@pytest.fixture(scope="function")
def factory(db_session, codes):
    return Factory(db_session, codes)
