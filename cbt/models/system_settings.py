# cbt/models/system_settings.py
from sqlalchemy import Boolean, Column, Integer, String, TIMESTAMP, CheckConstraint, func

from cbt.db.base import Base


class SystemSettings(Base):
    """Single-row table (id = 1) with the school-wide exam settings."""
    __tablename__ = 'system_settings'

    id = Column(Integer, primary_key=True, default=1)
    system_name = Column(String(255), nullable=False, default='CBT System')
    school_name = Column(String(255), nullable=False, default='School')
    academic_session = Column(String(20), nullable=False, default='2024/2025')
    current_term = Column(String(50), nullable=False, default='First Term')
    default_exam_duration = Column(Integer, nullable=False, default=60)
    auto_submit = Column(Boolean, nullable=False, default=True)
    shuffle_questions = Column(Boolean, nullable=False, default=False)
    show_results = Column(Boolean, nullable=False, default=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint('id = 1', name='ck_system_settings_singleton'),
    )
