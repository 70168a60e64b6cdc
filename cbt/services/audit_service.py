# cbt/services/audit_service.py
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cbt.models.audit import AuditLog


class ACTIONS:
    """Audit action tags."""
    STUDENT_LOGIN = 'STUDENT_LOGIN'
    STUDENT_LOGIN_FAILED = 'STUDENT_LOGIN_FAILED'
    EXAM_STARTED = 'EXAM_STARTED'
    EXAM_RESUMED = 'EXAM_RESUMED'
    EXAM_START_REJECTED = 'EXAM_START_REJECTED'
    EXAM_PROGRESS_REJECTED = 'EXAM_PROGRESS_REJECTED'
    EXAM_SUBMITTED = 'EXAM_SUBMITTED'
    EXAM_AUTO_SUBMITTED = 'EXAM_AUTO_SUBMITTED'
    EXAM_SUBMISSION_FAILED = 'EXAM_SUBMISSION_FAILED'


class AuditService:
    """
    Audit sink backed by the audit_logs table.

    Every event is mirrored to the ``cbt.audit`` logger. Persistence failures
    are logged and swallowed so they never abort the operation being audited.
    """

    def __init__(self, db: Session):
        self.db = db
        self.logger = logging.getLogger("cbt.audit")

    def log(
        self,
        action: str,
        user_identifier: str = 'system',
        details: str = '',
        ip_address: Optional[str] = None,
        status: str = 'success',
        metadata: Optional[Dict[str, Any]] = None,
        user_type: str = 'student',
    ) -> Optional[AuditLog]:
        """
        Records one audit event.

        Args:
            action: Tag from ACTIONS
            user_identifier: Exam code, username or 'system'
            details: Human readable description
            ip_address: Client address
            status: 'success', 'failure' or 'warning'
            metadata: Extra structured data
            user_type: 'student', 'admin' or 'system'
        """
        ip_address = ip_address or 'unknown'
        log_method = self.logger.info if status == 'success' else self.logger.warning
        log_method(
            f"Audit [{status.upper()}] {action} - {user_identifier}: {details}",
            extra={"action": action, "exam_code": user_identifier},
        )

        entry = AuditLog(
            action=action,
            user_type=user_type,
            user_identifier=user_identifier or 'unknown',
            details=details,
            ip_address=ip_address,
            status=status,
            event_metadata=metadata or {},
        )
        try:
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self.logger.exception(f"Failed to persist audit event {action}")
            return None
        return entry
