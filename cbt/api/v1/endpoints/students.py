# cbt/api/v1/endpoints/students.py
"""
Student-facing exam endpoints: login, start/resume, autosave and submit.
Identity is re-established on every call from the exam code.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from cbt.api.deps import (
    get_audit_service,
    get_client_ip,
    get_exam_session_service,
    get_request_exam_settings,
)
from cbt.core.exceptions import ExamServiceError
from cbt.crud.crud_settings import ExamSettings
from cbt.db.session import get_db
from cbt.schemas.exam_session import (
    ExamInfo,
    ExamQuestionsResponse,
    SaveProgressRequest,
    SaveProgressResponse,
    SubmitExamRequest,
    SubmitExamResponse,
)
from cbt.schemas.student import ActiveExam, StudentLoginRequest, StudentLoginResponse
from cbt.services.audit_service import AuditService
from cbt.services.exam_session_service import ExamSessionService
from cbt.services.student_auth_service import login_student

router = APIRouter()


def _http_error(error: ExamServiceError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.to_detail())


@router.post(
    "/login",
    response_model=StudentLoginResponse,
    summary="Student login",
    description="Verifies exam code + password and lists the active exams for the student's class."
)
def login(
    payload: StudentLoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
):
    try:
        result = login_student(
            db, audit, payload.exam_code, payload.password, ip_address=get_client_ip(request)
        )
    except ExamServiceError as e:
        raise _http_error(e)

    student = result.student
    return StudentLoginResponse(
        student_id=student.id,
        exam_code=student.exam_code,
        full_name=student.full_name,
        class_level=student.class_level,
        active_exams=[
            ActiveExam(subject=e.subject, duration_minutes=e.duration_minutes, class_level=e.class_level)
            for e in result.active_exams
        ],
    )


@router.get(
    "/exam/{subject}/questions",
    response_model=ExamQuestionsResponse,
    summary="Start or resume an exam",
    description="""
    Creates the exam session on first access and returns the full time budget;
    afterwards returns the remaining time and the previously saved answers.
    Correct answers are never included.
    """
)
def get_exam_questions(
    subject: str,
    request: Request,
    exam_code: str = Query(..., min_length=1, max_length=50),
    exam_settings: ExamSettings = Depends(get_request_exam_settings),
    service: ExamSessionService = Depends(get_exam_session_service),
):
    try:
        delivery = service.start_or_resume(
            exam_code, subject, exam_settings, ip_address=get_client_ip(request)
        )
    except ExamServiceError as e:
        raise _http_error(e)

    return ExamQuestionsResponse(
        exam=ExamInfo(
            id=delivery.exam.id,
            subject=delivery.exam.subject,
            duration_minutes=delivery.exam.duration_minutes,
            total_questions=len(delivery.questions),
        ),
        questions=delivery.questions,
        remaining_seconds=delivery.remaining_seconds,
        exam_started_at=delivery.started_at,
        saved_answers=delivery.saved_answers,
        resumed=delivery.resumed,
        auto_submit=exam_settings.auto_submit,
    )


@router.post(
    "/exam/save-progress",
    response_model=SaveProgressResponse,
    summary="Autosave answers",
    description="Replaces the saved answers with the complete current answer set."
)
def save_exam_progress(
    payload: SaveProgressRequest,
    request: Request,
    service: ExamSessionService = Depends(get_exam_session_service),
):
    try:
        service.save_progress(
            payload.exam_code, payload.subject, payload.answers, ip_address=get_client_ip(request)
        )
    except ExamServiceError as e:
        raise _http_error(e)
    return SaveProgressResponse()


@router.post(
    "/exam/submit",
    response_model=SubmitExamResponse,
    response_model_exclude_none=True,
    summary="Submit an exam",
    description="""
    Grades and finalizes the attempt. Accepted up to the grace window past the
    allotted time. Score fields are returned only when results are enabled.
    """
)
def submit_exam(
    payload: SubmitExamRequest,
    request: Request,
    exam_settings: ExamSettings = Depends(get_request_exam_settings),
    service: ExamSessionService = Depends(get_exam_session_service),
):
    try:
        outcome = service.submit(
            payload.exam_code,
            payload.subject,
            payload.answers,
            exam_settings,
            is_auto_submit=payload.is_auto_submit,
            ip_address=get_client_ip(request),
        )
    except ExamServiceError as e:
        raise _http_error(e)

    if not outcome.show_results:
        return SubmitExamResponse()
    return SubmitExamResponse(
        score=outcome.score,
        total=outcome.total,
        percentage=outcome.percentage,
        grade=outcome.grade,
    )
