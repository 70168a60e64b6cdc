from typing import Optional
from sqlalchemy.orm import Session

from cbt.core.security import get_password_hash
from cbt.models.student import Student


def normalize_exam_code(exam_code: str) -> str:
    return (exam_code or "").strip().upper()


def get_student_by_exam_code(db: Session, exam_code: str) -> Optional[Student]:
    """
    Looks a student up by exam code (case-insensitive on input).
    """
    return db.query(Student).filter(Student.exam_code == normalize_exam_code(exam_code)).first()


def create_student(
    db: Session,
    first_name: str,
    last_name: str,
    class_level: str,
    exam_code: str,
    password: str,
    middle_name: str = None,
) -> Student:
    """
    Issues a student record with a bcrypt password hash.
    """
    db_student = Student(
        first_name=first_name.strip(),
        middle_name=middle_name.strip() if middle_name else None,
        last_name=last_name.strip(),
        class_level=class_level.strip().upper(),
        exam_code=normalize_exam_code(exam_code),
        password_hash=get_password_hash(password),
    )
    db.add(db_student)
    db.commit()
    db.refresh(db_student)
    return db_student
