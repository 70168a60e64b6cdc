# cbt/api/deps.py
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from cbt.crud.crud_settings import ExamSettings, get_exam_settings
from cbt.db.session import get_db, translate_store_errors
from cbt.services.audit_service import AuditService
from cbt.services.exam_session_service import ExamSessionService


def get_client_ip(request: Request) -> str:
    """
    First X-Forwarded-For hop, else the peer address.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def get_audit_service(db: Session = Depends(get_db)) -> AuditService:
    return AuditService(db)


def get_request_exam_settings(db: Session = Depends(get_db)) -> ExamSettings:
    """
    Exam settings read once per request and passed explicitly to the service.
    """
    with translate_store_errors(db):
        return get_exam_settings(db)


def get_exam_session_service(
    db: Session = Depends(get_db),
    audit: AuditService = Depends(get_audit_service),
) -> ExamSessionService:
    return ExamSessionService(db, audit)
