from datetime import datetime
from typing import Dict, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cbt.models.submission import Submission


def serialize_answers(answers: Dict) -> Dict[str, str]:
    """JSON object form of an answer mapping: string ids, upper-case letters."""
    serialized = {}
    for question_id, option in (answers or {}).items():
        value = getattr(option, "value", option)
        serialized[str(question_id)] = str(value).upper()
    return serialized


def get_submission(db: Session, student_id: int, subject: str) -> Optional[Submission]:
    return db.query(Submission).filter(
        Submission.student_id == student_id,
        Submission.subject == subject,
    ).first()


def create_or_get_submission(
    db: Session,
    student_id: int,
    subject: str,
    duration_minutes: int,
    started_at: datetime,
) -> Tuple[Submission, bool]:
    """
    Inserts the session row, or returns the row a concurrent request created.

    The (student_id, subject) unique constraint decides the race: the loser's
    insert fails and it reads the winner's row instead.

    Returns:
        (submission, created)
    """
    submission = Submission(
        student_id=student_id,
        subject=subject,
        exam_started_at=started_at,
        duration_minutes=duration_minutes,
        answers=None,
        last_activity_at=started_at,
    )
    db.add(submission)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_submission(db, student_id, subject)
        if existing is None:
            raise
        return existing, False

    db.refresh(submission)
    return submission, True


def save_answers(db: Session, submission_id: int, answers: Dict, now: datetime) -> bool:
    """
    Overwrites the saved answers of an unsubmitted session.

    Returns False when the row was submitted in the meantime.
    """
    result = db.execute(
        update(Submission)
        .where(Submission.id == submission_id, Submission.submitted_at.is_(None))
        .execution_options(synchronize_session=False)
        .values(answers=serialize_answers(answers), last_activity_at=now)
    )
    if result.rowcount != 1:
        db.rollback()
        return False
    db.commit()
    return True


def finalize_submission(
    db: Session,
    submission_id: int,
    answers: Dict,
    score: int,
    total_questions: int,
    submitted_at: datetime,
    auto_submitted: bool = False,
) -> bool:
    """
    Compare-and-set on submitted_at: writes the final answers and score only
    if the row is still unsubmitted.

    Returns True for the single caller that performed the write.
    """
    result = db.execute(
        update(Submission)
        .where(Submission.id == submission_id, Submission.submitted_at.is_(None))
        .execution_options(synchronize_session=False)
        .values(
            answers=serialize_answers(answers),
            score=score,
            total_questions=total_questions,
            auto_submitted=auto_submitted,
            submitted_at=submitted_at,
            last_activity_at=submitted_at,
        )
    )
    if result.rowcount != 1:
        db.rollback()
        return False
    db.commit()
    return True
