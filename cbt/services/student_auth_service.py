# cbt/services/student_auth_service.py
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from cbt.core import metrics
from cbt.core.exceptions import InvalidCredentials, NoActiveExams
from cbt.core.security import DUMMY_PASSWORD_HASH, verify_password
from cbt.crud import crud_exam, crud_student
from cbt.db.session import translate_store_errors
from cbt.models.exam import Exam
from cbt.models.student import Student
from cbt.services.audit_service import ACTIONS, AuditService

logger = logging.getLogger(__name__)


@dataclass
class LoginResult:
    student: Student
    active_exams: List[Exam]


def authenticate_student(db: Session, exam_code: str, password: str) -> Student:
    """
    Verifies an exam code + password pair.

    Unknown codes and wrong passwords raise the same InvalidCredentials;
    ``reason`` tells them apart for the audit trail only.
    """
    student = crud_student.get_student_by_exam_code(db, exam_code)
    if student is None:
        # keep timing identical to the wrong-password path
        verify_password(password, DUMMY_PASSWORD_HASH)
        raise InvalidCredentials(reason="Unknown exam code")

    if not verify_password(password, student.password_hash):
        raise InvalidCredentials(reason="Invalid password")

    return student


def resolve_active_exams(db: Session, student: Student) -> List[Exam]:
    """
    Active exams for the student's class.

    Subjects the student already submitted are still listed; start/resume
    rejects them with AlreadySubmitted.
    """
    exams = crud_exam.get_active_exams_for_class(db, student.class_level)
    if not exams:
        raise NoActiveExams()
    return exams


def login_student(
    db: Session,
    audit: AuditService,
    exam_code: str,
    password: str,
    ip_address: Optional[str] = None,
) -> LoginResult:
    exam_code = crud_student.normalize_exam_code(exam_code)
    logger.info(f"Login attempt: {exam_code}")

    with translate_store_errors(db, logger):
        try:
            student = authenticate_student(db, exam_code, password)
        except InvalidCredentials as e:
            metrics.student_logins_total.labels(status='failure').inc()
            audit.log(
                action=ACTIONS.STUDENT_LOGIN_FAILED,
                user_identifier=exam_code,
                details=e.reason,
                ip_address=ip_address,
                status='failure',
            )
            raise

        try:
            active_exams = resolve_active_exams(db, student)
        except NoActiveExams:
            metrics.student_logins_total.labels(status='no_active_exams').inc()
            audit.log(
                action=ACTIONS.STUDENT_LOGIN_FAILED,
                user_identifier=exam_code,
                details=f"No active exams for class {student.class_level}",
                ip_address=ip_address,
                status='warning',
                metadata={'class': student.class_level},
            )
            raise

    metrics.student_logins_total.labels(status='success').inc()
    audit.log(
        action=ACTIONS.STUDENT_LOGIN,
        user_identifier=exam_code,
        details=f"Login successful: {student.full_name}",
        ip_address=ip_address,
        status='success',
        metadata={'class': student.class_level, 'activeExamsCount': len(active_exams)},
    )
    return LoginResult(student=student, active_exams=active_exams)
