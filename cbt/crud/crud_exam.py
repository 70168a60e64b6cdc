from typing import Dict, List, Optional
from sqlalchemy.orm import Session

from cbt.models.exam import Exam, Question


def get_exam(db: Session, subject: str, class_level: str) -> Optional[Exam]:
    """
    Exam for a (subject, class) pair, active or not.
    """
    return db.query(Exam).filter(
        Exam.subject == subject,
        Exam.class_level == class_level,
    ).first()


def get_active_exams_for_class(db: Session, class_level: str) -> List[Exam]:
    return (
        db.query(Exam)
        .filter(Exam.class_level == class_level, Exam.is_active == True)  # noqa: E712
        .order_by(Exam.subject)
        .all()
    )


def get_questions(db: Session, exam_id: int) -> List[Question]:
    """
    Active questions of an exam in storage order.
    """
    return (
        db.query(Question)
        .filter(Question.exam_id == exam_id, Question.is_active == True)  # noqa: E712
        .order_by(Question.id)
        .all()
    )


def get_answer_key(db: Session, subject: str, class_level: str) -> Dict[int, str]:
    """
    question id -> correct option for the active exam of (subject, class).
    Inactive exams yield an empty key.
    """
    rows = (
        db.query(Question.id, Question.correct_answer)
        .join(Exam, Question.exam_id == Exam.id)
        .filter(
            Exam.subject == subject,
            Exam.class_level == class_level,
            Exam.is_active == True,  # noqa: E712
            Question.is_active == True,  # noqa: E712
        )
        .order_by(Question.id)
        .all()
    )
    return {question_id: (correct or "").strip().upper() for question_id, correct in rows}
