# cbt/models/audit.py
from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, func

from cbt.db.base import Base, JSONType


class AuditLog(Base):
    __tablename__ = 'audit_logs'

    id = Column(Integer, primary_key=True)
    action = Column(String(50), nullable=False, index=True)
    user_type = Column(String(20), nullable=False, default='student')  # 'student', 'admin', 'system'
    user_identifier = Column(String(255), nullable=False, default='system')
    details = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=False, default='unknown')
    status = Column(String(20), nullable=False, default='success')  # 'success', 'failure', 'warning'
    # "metadata" is reserved on declarative classes
    event_metadata = Column('metadata', JSONType, nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), index=True)
