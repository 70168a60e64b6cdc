# cbt/db/models_registry.py
# Imports every model so Base.metadata is complete (create_all, alembic)

from cbt.db.base import Base
from cbt.models.student import Student
from cbt.models.exam import Exam, Question
from cbt.models.submission import Submission
from cbt.models.system_settings import SystemSettings
from cbt.models.audit import AuditLog

__all__ = ["Base", "Student", "Exam", "Question", "Submission", "SystemSettings", "AuditLog"]
