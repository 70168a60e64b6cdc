# cbt/models/submission.py
from sqlalchemy import (
    Boolean, Column, Integer, String, ForeignKey, TIMESTAMP, UniqueConstraint
)
from sqlalchemy.orm import relationship

from cbt.db.base import Base, JSONType


class Submission(Base):
    """
    A student's single attempt at one subject.

    The row is created on first question fetch and is the only place session
    state lives: exam_started_at drives elapsed time, submitted_at marks the
    terminal state. Once submitted_at is set the row is never written again.
    """
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    student_id = Column(Integer, ForeignKey("students.id", ondelete="CASCADE"), nullable=False, index=True)
    subject = Column(String(100), nullable=False)
    exam_started_at = Column(TIMESTAMP(timezone=True), nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    answers = Column(JSONType, nullable=True)
    score = Column(Integer, nullable=True)
    total_questions = Column(Integer, nullable=True)
    auto_submitted = Column(Boolean, server_default='false', default=False, nullable=False)
    submitted_at = Column(TIMESTAMP(timezone=True), nullable=True)
    last_activity_at = Column(TIMESTAMP(timezone=True), nullable=True)

    student = relationship("Student", back_populates="submissions")

    __table_args__ = (
        UniqueConstraint('student_id', 'subject', name='uq_submission_student_subject'),
    )

    def __repr__(self):
        return (
            f"<Submission(student_id={self.student_id}, subject='{self.subject}', "
            f"submitted={self.submitted_at is not None})>"
        )
