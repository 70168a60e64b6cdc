# conftest.py - shared fixtures, in-memory SQLite per test
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from datetime import datetime, timedelta, timezone

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from cbt.api.deps import get_audit_service, get_exam_session_service
from cbt.crud.crud_student import create_student
from cbt.db.models_registry import Base
from cbt.db.session import get_db
from cbt.main import app
from cbt.models.exam import Exam, Question
from cbt.models.system_settings import SystemSettings
from cbt.services.audit_service import AuditService
from cbt.services.exam_session_service import ExamSessionService


class FrozenClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime = None):
        self.now = start or datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def service(db, clock):
    return ExamSessionService(db, AuditService(db), clock=clock)


@pytest.fixture
def client(session_factory, clock):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_service(
        db=Depends(get_db),
        audit: AuditService = Depends(get_audit_service),
    ):
        return ExamSessionService(db, audit, clock=clock)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_exam_session_service] = override_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def make_student(db):
    def _make(exam_code="TEST-001A", password="xK9mQ2", class_level="JSS1",
              first_name="John", last_name="Doe", middle_name=None):
        return create_student(
            db,
            first_name=first_name,
            middle_name=middle_name,
            last_name=last_name,
            class_level=class_level,
            exam_code=exam_code,
            password=password,
        )
    return _make


@pytest.fixture
def make_exam(db):
    def _make(subject="Math", class_level="JSS1", duration_minutes=30, is_active=True,
              answers=("B",)):
        exam = Exam(subject=subject, class_level=class_level,
                    duration_minutes=duration_minutes, is_active=is_active)
        for i, correct in enumerate(answers, start=1):
            exam.questions.append(Question(
                question_text=f"{subject} question {i}",
                option_a="1", option_b="2", option_c="3", option_d="4",
                correct_answer=correct,
            ))
        db.add(exam)
        db.commit()
        db.refresh(exam)
        return exam
    return _make


@pytest.fixture
def set_exam_settings(db):
    def _set(**values):
        row = db.get(SystemSettings, 1)
        if row is None:
            row = SystemSettings(id=1)
            db.add(row)
        for key, value in values.items():
            setattr(row, key, value)
        db.commit()
    return _set
