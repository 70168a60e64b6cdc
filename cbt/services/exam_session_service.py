# cbt/services/exam_session_service.py
"""
Exam session lifecycle: start/resume, autosave and final submit.

No session object survives between requests. Every call re-reads the
Submission row and derives its state (see session_state), so the service is
safe behind several worker processes. Two guards protect the write paths:

- row creation relies on the (student_id, subject) unique constraint, the
  loser of a race folds into a read of the winner's row;
- final submit is a compare-and-set on ``submitted_at IS NULL``, only one
  caller scores the attempt.
"""
import random
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from cbt.core import metrics
from cbt.core.config import settings
from cbt.core.exceptions import (
    AlreadySubmitted,
    ExamServiceError,
    NoAnswerKey,
    NoQuestions,
    NoSession,
    NotFound,
    TimeExpired,
)
from cbt.core.logging_config import get_exam_logger
from cbt.crud import crud_exam, crud_student, crud_submission
from cbt.crud.crud_settings import ExamSettings
from cbt.db.session import translate_store_errors
from cbt.models.exam import Exam
from cbt.models.student import Student
from cbt.schemas.exam_session import QuestionOut
from cbt.services.audit_service import ACTIONS, AuditService
from cbt.services.grading import calculate_grade, grade_answers
from cbt.services.question_presentation import present_questions
from cbt.services.session_state import (
    Expired,
    NotStarted,
    Running,
    Submitted,
    accepts_submit,
    derive_state,
    utcnow,
)

logger = get_exam_logger()


@dataclass
class ExamDelivery:
    exam: Exam
    questions: List[QuestionOut]
    remaining_seconds: int
    started_at: datetime
    saved_answers: Dict[int, str] = field(default_factory=dict)
    resumed: bool = False


@dataclass
class SubmitOutcome:
    score: int
    total: int
    show_results: bool
    auto_submitted: bool = False

    @property
    def percentage(self) -> int:
        return calculate_grade(self.score, self.total)[0]

    @property
    def grade(self) -> str:
        return calculate_grade(self.score, self.total)[1]


def _saved_answers(raw: Optional[Mapping]) -> Dict[int, str]:
    return {int(k): str(v) for k, v in (raw or {}).items()}


class ExamSessionService:
    """
    State machine for one student's timed attempt at one subject.

    Args:
        db: Request-scoped SQLAlchemy session
        audit: Audit sink
        clock: Returns the current aware UTC time
        grace_seconds: Extra time accepted on final submit
        rng: Random source for question shuffling
    """

    def __init__(
        self,
        db: Session,
        audit: AuditService,
        clock: Callable[[], datetime] = utcnow,
        grace_seconds: Optional[int] = None,
        rng: Optional[random.Random] = None,
    ):
        self.db = db
        self.audit = audit
        self.clock = clock
        self.grace_seconds = settings.SUBMIT_GRACE_SECONDS if grace_seconds is None else grace_seconds
        self.rng = rng

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _reject(
        self,
        operation: str,
        action: str,
        exam_code: str,
        subject: str,
        error: ExamServiceError,
        ip_address: Optional[str],
        metadata: Optional[dict] = None,
    ):
        metrics.exam_rejections_total.labels(operation=operation, code=error.code).inc()
        logger.warning(
            f"{operation} rejected for {exam_code}/{subject}: {error.code}",
            extra={"exam_code": exam_code, "subject": subject, "error_code": error.code},
        )
        self.audit.log(
            action=action,
            user_identifier=exam_code,
            details=f"{subject}: {error.message}",
            ip_address=ip_address,
            status='failure',
            metadata={'subject': subject, 'error': error.code, **(metadata or {})},
        )
        raise error

    def _get_student(self, operation: str, action: str, exam_code: str, subject: str,
                     ip_address: Optional[str]) -> Student:
        student = crud_student.get_student_by_exam_code(self.db, exam_code)
        if student is None:
            self._reject(operation, action, exam_code, subject,
                         NotFound("Student not found"), ip_address)
        return student

    # ------------------------------------------------------------------
    # operations
    # ------------------------------------------------------------------

    def start_or_resume(
        self,
        exam_code: str,
        subject: str,
        exam_settings: ExamSettings,
        ip_address: Optional[str] = None,
    ) -> ExamDelivery:
        """
        Returns the question set and remaining time, creating the session on
        first access.

        Raises:
            NotFound: unknown student, or no active exam for the student's class
            NoQuestions: fresh session on an exam without questions
            AlreadySubmitted: the attempt is finished
            TimeExpired: the allotted time has run out
        """
        operation = "start"
        action = ACTIONS.EXAM_START_REJECTED
        exam_code = crud_student.normalize_exam_code(exam_code)
        now = self.clock()

        with translate_store_errors(self.db, logger):
            student = self._get_student(operation, action, exam_code, subject, ip_address)

            exam = crud_exam.get_exam(self.db, subject, student.class_level)
            if exam is None or not exam.is_active:
                self._reject(operation, action, exam_code, subject,
                             NotFound("No active exam found for this subject"), ip_address)

            submission = crud_submission.get_submission(self.db, student.id, subject)
            state = derive_state(submission, now)
            questions = None
            created = False

            if isinstance(state, NotStarted):
                questions = crud_exam.get_questions(self.db, exam.id)
                if not questions:
                    self._reject(operation, action, exam_code, subject, NoQuestions(), ip_address,
                                 {'examId': exam.id})
                submission, created = crud_submission.create_or_get_submission(
                    self.db,
                    student_id=student.id,
                    subject=subject,
                    duration_minutes=exam.duration_minutes,
                    started_at=now,
                )
                if not created:
                    logger.info(f"Concurrent start for {exam_code}/{subject}, using existing session")
                state = derive_state(submission, now)

            if isinstance(state, Submitted):
                self._reject(operation, action, exam_code, subject, AlreadySubmitted(), ip_address)
            if isinstance(state, Expired):
                self._reject(operation, action, exam_code, subject, TimeExpired(), ip_address,
                             {'elapsedSeconds': int(state.elapsed_seconds)})

            if questions is None:
                questions = crud_exam.get_questions(self.db, exam.id)

        delivery = ExamDelivery(
            exam=exam,
            questions=present_questions(questions, exam_settings.shuffle_questions, self.rng),
            remaining_seconds=state.remaining_seconds,
            started_at=state.started_at,
            saved_answers=_saved_answers(submission.answers),
            resumed=not created,
        )

        if created:
            metrics.exam_sessions_started_total.inc()
            logger.info(f"Started exam session {exam_code}/{subject}",
                        extra={"exam_code": exam_code, "subject": subject})
            self.audit.log(
                action=ACTIONS.EXAM_STARTED,
                user_identifier=exam_code,
                details=f"Started exam: {subject}",
                ip_address=ip_address,
                metadata={'subject': subject, 'examId': exam.id,
                          'durationMinutes': submission.duration_minutes},
            )
        else:
            metrics.exam_sessions_resumed_total.inc()
            logger.info(f"Resumed exam session {exam_code}/{subject}, {delivery.remaining_seconds}s left",
                        extra={"exam_code": exam_code, "subject": subject})
            self.audit.log(
                action=ACTIONS.EXAM_RESUMED,
                user_identifier=exam_code,
                details=f"Resumed exam: {subject}",
                ip_address=ip_address,
                metadata={'subject': subject, 'sessionId': submission.id,
                          'remainingSeconds': delivery.remaining_seconds},
            )
        return delivery

    def save_progress(
        self,
        exam_code: str,
        subject: str,
        answers: Mapping,
        ip_address: Optional[str] = None,
    ) -> None:
        """
        Replaces the saved answers of a running session with ``answers``.
        No grace period: the session must still be inside its duration.

        Raises:
            NotFound: unknown student
            NoSession: the exam was never started
            AlreadySubmitted: the attempt is finished
            TimeExpired: the allotted time has run out
        """
        operation = "save"
        action = ACTIONS.EXAM_PROGRESS_REJECTED
        exam_code = crud_student.normalize_exam_code(exam_code)
        now = self.clock()

        with translate_store_errors(self.db, logger):
            student = self._get_student(operation, action, exam_code, subject, ip_address)
            submission = crud_submission.get_submission(self.db, student.id, subject)
            state = derive_state(submission, now)

            if isinstance(state, NotStarted):
                self._reject(operation, action, exam_code, subject, NoSession(), ip_address)
            if isinstance(state, Submitted):
                self._reject(operation, action, exam_code, subject, AlreadySubmitted(), ip_address)
            if isinstance(state, Expired):
                self._reject(operation, action, exam_code, subject, TimeExpired(), ip_address,
                             {'elapsedSeconds': int(state.elapsed_seconds)})

            if not crud_submission.save_answers(self.db, submission.id, answers, now):
                self._reject(operation, action, exam_code, subject, AlreadySubmitted(), ip_address)

        logger.info(f"Saved progress for {exam_code}/{subject} ({len(answers)} answers)",
                    extra={"exam_code": exam_code, "subject": subject})

    def submit(
        self,
        exam_code: str,
        subject: str,
        answers: Mapping,
        exam_settings: ExamSettings,
        is_auto_submit: bool = False,
        ip_address: Optional[str] = None,
    ) -> SubmitOutcome:
        """
        Grades and finalizes the attempt exactly once.

        Accepted up to ``grace_seconds`` past the allotted duration. A late
        submit is rejected and its answers are discarded.

        Raises:
            NotFound: unknown student
            NoSession: the exam was never started
            AlreadySubmitted: the attempt is finished, including when a
                concurrent submit won the race
            TimeExpired: past the grace window
            NoAnswerKey: the exam has no active questions
        """
        operation = "submit"
        action = ACTIONS.EXAM_SUBMISSION_FAILED
        exam_code = crud_student.normalize_exam_code(exam_code)
        now = self.clock()

        with translate_store_errors(self.db, logger):
            student = self._get_student(operation, action, exam_code, subject, ip_address)
            submission = crud_submission.get_submission(self.db, student.id, subject)
            state = derive_state(submission, now)

            if isinstance(state, NotStarted):
                self._reject(operation, action, exam_code, subject, NoSession(), ip_address)
            if isinstance(state, Submitted):
                self._reject(operation, action, exam_code, subject, AlreadySubmitted(), ip_address)
            if not accepts_submit(state, self.grace_seconds):
                self._reject(operation, action, exam_code, subject, TimeExpired(), ip_address,
                             {'elapsedSeconds': int(state.elapsed_seconds)})

            answer_key = crud_exam.get_answer_key(self.db, subject, student.class_level)
            try:
                result = grade_answers(answers, answer_key)
            except NoAnswerKey as e:
                logger.error(f"No answer key for {subject}/{student.class_level}",
                             extra={"exam_code": exam_code, "subject": subject})
                self._reject(operation, action, exam_code, subject, e, ip_address,
                             {'class': student.class_level})

            finalized = crud_submission.finalize_submission(
                self.db,
                submission.id,
                answers=answers,
                score=result.score,
                total_questions=result.total,
                submitted_at=now,
                auto_submitted=is_auto_submit,
            )
            if not finalized:
                self._reject(operation, action, exam_code, subject, AlreadySubmitted(), ip_address,
                             {'concurrent': True})

        outcome = SubmitOutcome(
            score=result.score,
            total=result.total,
            show_results=exam_settings.show_results,
            auto_submitted=is_auto_submit,
        )
        metrics.exam_submissions_total.labels(mode='auto' if is_auto_submit else 'manual').inc()
        logger.info(f"Graded {exam_code}/{subject}: {result.score}/{result.total}",
                    extra={"exam_code": exam_code, "subject": subject})
        self.audit.log(
            action=ACTIONS.EXAM_AUTO_SUBMITTED if is_auto_submit else ACTIONS.EXAM_SUBMITTED,
            user_identifier=exam_code,
            details=f"Submitted exam: {subject} - Score: {result.score}/{result.total}",
            ip_address=ip_address,
            metadata={
                'subject': subject,
                'score': result.score,
                'total': result.total,
                'percentage': outcome.percentage,
                'autoSubmitted': is_auto_submit,
                'elapsedSeconds': int(state.elapsed_seconds),
            },
        )
        return outcome
