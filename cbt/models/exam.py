# cbt/models/exam.py
from sqlalchemy import (
    Boolean, Column, Integer, String, Text, ForeignKey,
    TIMESTAMP, UniqueConstraint, func
)
from sqlalchemy.orm import relationship

from cbt.db.base import Base


class Exam(Base):
    __tablename__ = 'exams'

    id = Column(Integer, primary_key=True)
    subject = Column(String(100), nullable=False)
    class_level = Column('class', String(20), nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    is_active = Column(Boolean, server_default='false', default=False, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    questions = relationship(
        "Question", back_populates="exam", cascade="all, delete-orphan",
        order_by="Question.id",
    )

    __table_args__ = (
        UniqueConstraint('subject', 'class', name='uq_exam_subject_class'),
    )


class Question(Base):
    __tablename__ = 'questions'

    id = Column(Integer, primary_key=True)
    exam_id = Column(Integer, ForeignKey("exams.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    option_a = Column(Text, nullable=True)
    option_b = Column(Text, nullable=True)
    option_c = Column(Text, nullable=True)
    option_d = Column(Text, nullable=True)
    correct_answer = Column(String(1), nullable=False)  # 'A'..'D'
    is_active = Column(Boolean, server_default='true', default=True, nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    exam = relationship("Exam", back_populates="questions")
