#!/usr/bin/env python3
"""
Exam session state machine: start/resume, autosave, submit
"""
import random
from datetime import timedelta

import pytest

from cbt.core.exceptions import (
    AlreadySubmitted, NoAnswerKey, NoQuestions, NoSession, NotFound, TimeExpired,
)
from cbt.crud import crud_submission
from cbt.crud.crud_settings import ExamSettings, get_exam_settings
from cbt.models.audit import AuditLog
from cbt.models.exam import Question
from cbt.models.submission import Submission
from cbt.services import exam_session_service
from cbt.services.audit_service import ACTIONS, AuditService
from cbt.services.exam_session_service import ExamSessionService
from cbt.services.session_state import as_utc

DEFAULTS = ExamSettings()


def _submissions(db):
    return db.query(Submission).all()


def _actions(db):
    return [log.action for log in db.query(AuditLog).order_by(AuditLog.id)]


@pytest.fixture
def student(make_student):
    return make_student()


# --- start / resume -------------------------------------------------------

def test_first_access_creates_session_with_full_budget(db, service, student, make_exam, clock):
    exam = make_exam(duration_minutes=30, answers=("A", "B", "C"))

    delivery = service.start_or_resume("TEST-001A", "Math", DEFAULTS)

    assert delivery.remaining_seconds == 30 * 60
    assert not delivery.resumed
    assert [q.id for q in delivery.questions] == [q.id for q in exam.questions]
    assert delivery.saved_answers == {}
    rows = _submissions(db)
    assert len(rows) == 1
    assert rows[0].duration_minutes == 30
    assert as_utc(rows[0].exam_started_at) == clock.now
    assert rows[0].submitted_at is None
    assert _actions(db) == [ACTIONS.EXAM_STARTED]


def test_resume_is_idempotent(db, service, student, make_exam, clock):
    make_exam()
    first = service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    clock.advance(0.2)
    second = service.start_or_resume("TEST-001A", "Math", DEFAULTS)

    assert second.resumed
    assert second.started_at == first.started_at
    assert abs(first.remaining_seconds - second.remaining_seconds) <= 1
    assert len(_submissions(db)) == 1
    assert _actions(db) == [ACTIONS.EXAM_STARTED, ACTIONS.EXAM_RESUMED]


def test_remaining_time_is_monotonic(service, student, make_exam, clock):
    make_exam(duration_minutes=10)
    seen = [service.start_or_resume("TEST-001A", "Math", DEFAULTS).remaining_seconds]
    for step in (1, 0, 15, 120, 0.5):
        clock.advance(step)
        seen.append(service.start_or_resume("TEST-001A", "Math", DEFAULTS).remaining_seconds)

    assert seen == sorted(seen, reverse=True)
    assert seen[-1] == 10 * 60 - 136  # 136.5s elapsed, remaining rounded up


def test_resume_returns_saved_answers(service, student, make_exam, clock):
    exam = make_exam(answers=("A", "B"))
    q1, q2 = [q.id for q in exam.questions]
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    service.save_progress("TEST-001A", "Math", {q1: "A", q2: "C"})

    clock.advance(60)
    delivery = service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    assert delivery.saved_answers == {q1: "A", q2: "C"}


def test_expiry_boundary(db, service, student, make_exam, clock):
    make_exam(subject="Math", duration_minutes=1)
    make_exam(subject="English", duration_minutes=1)
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    service.start_or_resume("TEST-001A", "English", DEFAULTS)

    english = db.query(Submission).filter_by(subject="English").one()
    english.exam_started_at = clock.now - timedelta(seconds=61)
    math = db.query(Submission).filter_by(subject="Math").one()
    math.exam_started_at = clock.now - timedelta(seconds=59)
    db.commit()

    with pytest.raises(TimeExpired):
        service.start_or_resume("TEST-001A", "English", DEFAULTS)
    assert service.start_or_resume("TEST-001A", "Math", DEFAULTS).remaining_seconds == 1
    assert ACTIONS.EXAM_START_REJECTED in _actions(db)


def test_duration_is_snapshotted(db, service, student, make_exam, clock):
    exam = make_exam(duration_minutes=1)
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)

    exam.duration_minutes = 90
    db.commit()
    clock.advance(61)

    with pytest.raises(TimeExpired):
        service.start_or_resume("TEST-001A", "Math", DEFAULTS)


def test_start_requires_active_exam_for_class(service, make_student, make_exam):
    make_student(class_level="JSS2")
    make_exam(class_level="JSS1")
    with pytest.raises(NotFound):
        service.start_or_resume("TEST-001A", "Math", DEFAULTS)


def test_start_rejects_inactive_exam(service, student, make_exam):
    make_exam(is_active=False)
    with pytest.raises(NotFound):
        service.start_or_resume("TEST-001A", "Math", DEFAULTS)


def test_unknown_student(service, make_exam):
    make_exam()
    with pytest.raises(NotFound):
        service.start_or_resume("GHOST-1", "Math", DEFAULTS)


def test_exam_without_questions_creates_no_session(db, service, student, make_exam):
    make_exam(answers=())
    with pytest.raises(NoQuestions):
        service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    assert _submissions(db) == []


def test_concurrent_create_folds_into_existing_row(db, session_factory, student, clock):
    other = session_factory()
    try:
        first, created_first = crud_submission.create_or_get_submission(
            db, student.id, "Math", 30, clock.now)
        second, created_second = crud_submission.create_or_get_submission(
            other, student.id, "Math", 45, clock.now + timedelta(seconds=5))
    finally:
        other.close()

    assert created_first and not created_second
    assert second.id == first.id
    assert second.duration_minutes == 30
    assert len(_submissions(db)) == 1


# --- save progress --------------------------------------------------------

def test_save_without_session(service, student, make_exam):
    make_exam()
    with pytest.raises(NoSession):
        service.save_progress("TEST-001A", "Math", {1: "A"})


def test_save_overwrites_wholesale(db, service, student, make_exam):
    exam = make_exam(answers=("A", "B"))
    q1, q2 = [q.id for q in exam.questions]
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)

    service.save_progress("TEST-001A", "Math", {q1: "A", q2: "B"})
    service.save_progress("TEST-001A", "Math", {q2: "D"})
    service.save_progress("TEST-001A", "Math", {q2: "D"})

    row = db.query(Submission).one()
    db.refresh(row)
    assert row.answers == {str(q2): "D"}


def test_save_has_no_grace_period(service, student, make_exam, clock):
    make_exam(duration_minutes=1)
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    clock.advance(61)
    with pytest.raises(TimeExpired):
        service.save_progress("TEST-001A", "Math", {1: "A"})


def test_save_after_submit(service, student, make_exam):
    make_exam()
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    service.submit("TEST-001A", "Math", {}, DEFAULTS)
    with pytest.raises(AlreadySubmitted):
        service.save_progress("TEST-001A", "Math", {1: "A"})


# --- submit ---------------------------------------------------------------

def test_submit_scores_against_answer_key(db, service, student, make_exam, clock):
    exam = make_exam(answers=("A", "B", "C"))
    q1, q2, _ = [q.id for q in exam.questions]
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    clock.advance(120)

    outcome = service.submit("TEST-001A", "Math", {q1: "A", q2: "D", 9999: "A"}, DEFAULTS)

    assert (outcome.score, outcome.total) == (1, 3)
    row = db.query(Submission).one()
    db.refresh(row)
    assert (row.score, row.total_questions) == (1, 3)
    assert as_utc(row.submitted_at) == clock.now
    assert row.answers == {str(q1): "A", str(q2): "D", "9999": "A"}
    assert _actions(db)[-1] == ACTIONS.EXAM_SUBMITTED


def test_second_submit_is_rejected_and_score_kept(db, service, student, make_exam):
    exam = make_exam(answers=("A",))
    qid = exam.questions[0].id
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    service.submit("TEST-001A", "Math", {qid: "A"}, DEFAULTS)

    with pytest.raises(AlreadySubmitted):
        service.submit("TEST-001A", "Math", {qid: "B"}, DEFAULTS)
    with pytest.raises(AlreadySubmitted):
        service.start_or_resume("TEST-001A", "Math", DEFAULTS)

    row = db.query(Submission).one()
    db.refresh(row)
    assert row.score == 1
    assert row.answers == {str(qid): "A"}


def test_finalize_is_compare_and_set(db, student, clock):
    row, _ = crud_submission.create_or_get_submission(db, student.id, "Math", 30, clock.now)
    row_id = row.id

    assert crud_submission.finalize_submission(db, row_id, {1: "A"}, 1, 1, clock.now)
    assert not crud_submission.finalize_submission(db, row_id, {1: "B"}, 0, 1, clock.now)

    stored = db.get(Submission, row_id)
    assert stored.score == 1
    assert stored.answers == {"1": "A"}


def test_submit_grace_window(db, service, make_student, make_exam, clock):
    make_student(exam_code="LATE-1")
    make_student(exam_code="LATE-2")
    make_exam(duration_minutes=1)
    service.start_or_resume("LATE-1", "Math", DEFAULTS)
    service.start_or_resume("LATE-2", "Math", DEFAULTS)
    clock.advance(60 + 30)

    assert service.submit("LATE-1", "Math", {}, DEFAULTS).total == 1

    clock.advance(60)  # 150s elapsed
    with pytest.raises(TimeExpired):
        service.submit("LATE-2", "Math", {1: "B"}, DEFAULTS)

    late = db.query(Submission).filter(Submission.submitted_at.is_(None)).one()
    assert late.answers is None
    assert _actions(db)[-1] == ACTIONS.EXAM_SUBMISSION_FAILED


def test_submit_without_session(service, student, make_exam):
    make_exam()
    with pytest.raises(NoSession):
        service.submit("TEST-001A", "Math", {}, DEFAULTS)


def test_submit_without_answer_key(db, service, student, make_exam):
    exam = make_exam(answers=("A",))
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    db.query(Question).filter(Question.exam_id == exam.id).update({"is_active": False})
    db.commit()

    with pytest.raises(NoAnswerKey):
        service.submit("TEST-001A", "Math", {}, DEFAULTS)
    assert db.query(Submission).one().submitted_at is None


def test_hidden_results_still_persist_score(db, service, student, make_exam):
    exam = make_exam(answers=("C",))
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)

    outcome = service.submit("TEST-001A", "Math", {exam.questions[0].id: "C"},
                             ExamSettings(show_results=False))

    assert not outcome.show_results
    assert db.query(Submission).one().score == 1


def test_auto_submit_is_recorded(db, service, student, make_exam):
    make_exam()
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    outcome = service.submit("TEST-001A", "Math", {}, DEFAULTS, is_auto_submit=True)

    assert outcome.auto_submitted
    assert db.query(Submission).one().auto_submitted
    assert _actions(db)[-1] == ACTIONS.EXAM_AUTO_SUBMITTED


def test_settings_default_until_row_exists(db, set_exam_settings):
    assert get_exam_settings(db) == ExamSettings()

    set_exam_settings(shuffle_questions=True, auto_submit=False)
    assert get_exam_settings(db) == ExamSettings(shuffle_questions=True, show_results=True,
                                                 auto_submit=False)


# --- shuffling and races --------------------------------------------------

def test_shuffled_delivery(db, clock, student, make_exam):
    exam = make_exam(answers=("A",) * 8)
    ids = [q.id for q in exam.questions]
    expected = list(ids)
    random.Random(3).shuffle(expected)
    shuffling = ExamSessionService(db, AuditService(db), clock=clock, rng=random.Random(3))

    delivery = shuffling.start_or_resume("TEST-001A", "Math", ExamSettings(shuffle_questions=True))

    assert [q.id for q in delivery.questions] == expected
    assert sorted(q.id for q in delivery.questions) == ids


def _finalize_after_state_read(monkeypatch, session_factory, answers, score):
    """Another request submits between this request's read and its write."""
    derive_state = exam_session_service.derive_state

    def racing(submission, now):
        state = derive_state(submission, now)
        if submission is not None:
            other = session_factory()
            try:
                assert crud_submission.finalize_submission(other, submission.id, answers, score, 1, now)
            finally:
                other.close()
        return state

    monkeypatch.setattr(exam_session_service, "derive_state", racing)


def test_losing_concurrent_submit(db, service, session_factory, student, make_exam, monkeypatch):
    qid = make_exam(answers=("A",)).questions[0].id
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    _finalize_after_state_read(monkeypatch, session_factory, {qid: "A"}, 1)

    with pytest.raises(AlreadySubmitted):
        service.submit("TEST-001A", "Math", {qid: "B"}, DEFAULTS)

    row = db.query(Submission).one()
    db.refresh(row)
    assert row.score == 1
    assert row.answers == {str(qid): "A"}
    assert _actions(db)[-1] == ACTIONS.EXAM_SUBMISSION_FAILED


def test_save_racing_a_submit(db, service, session_factory, student, make_exam, monkeypatch):
    qid = make_exam(answers=("A",)).questions[0].id
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    _finalize_after_state_read(monkeypatch, session_factory, {qid: "A"}, 1)

    with pytest.raises(AlreadySubmitted):
        service.save_progress("TEST-001A", "Math", {qid: "C"})

    row = db.query(Submission).one()
    db.refresh(row)
    assert row.answers == {str(qid): "A"}
    assert _actions(db)[-1] == ACTIONS.EXAM_PROGRESS_REJECTED


def test_time_limit_boundary_for_save_and_submit(service, student, make_exam, clock):
    make_exam(duration_minutes=1)
    service.start_or_resume("TEST-001A", "Math", DEFAULTS)
    clock.advance(60)

    with pytest.raises(TimeExpired):
        service.save_progress("TEST-001A", "Math", {1: "A"})
    assert service.submit("TEST-001A", "Math", {}, DEFAULTS).total == 1
