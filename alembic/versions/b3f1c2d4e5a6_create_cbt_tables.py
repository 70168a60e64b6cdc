"""create_cbt_tables

Revision ID: b3f1c2d4e5a6
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = 'b3f1c2d4e5a6'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Students, exams, questions, submissions, settings and audit log."""
    op.create_table(
        'students',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('middle_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('class', sa.String(20), nullable=False),
        sa.Column('exam_code', sa.String(50), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_students_exam_code', 'students', ['exam_code'], unique=True)
    op.create_index('ix_students_class', 'students', ['class'])

    op.create_table(
        'exams',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('subject', sa.String(100), nullable=False),
        sa.Column('class', sa.String(20), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('subject', 'class', name='uq_exam_subject_class'),
    )

    op.create_table(
        'questions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('exam_id', sa.Integer(), sa.ForeignKey('exams.id', ondelete='CASCADE'), nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('option_a', sa.Text(), nullable=True),
        sa.Column('option_b', sa.Text(), nullable=True),
        sa.Column('option_c', sa.Text(), nullable=True),
        sa.Column('option_d', sa.Text(), nullable=True),
        sa.Column('correct_answer', sa.String(1), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_questions_exam_id', 'questions', ['exam_id'])

    op.create_table(
        'submissions',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('student_id', sa.Integer(), sa.ForeignKey('students.id', ondelete='CASCADE'), nullable=False),
        sa.Column('subject', sa.String(100), nullable=False),
        sa.Column('exam_started_at', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('answers', postgresql.JSONB(), nullable=True),
        sa.Column('score', sa.Integer(), nullable=True),
        sa.Column('total_questions', sa.Integer(), nullable=True),
        sa.Column('auto_submitted', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('submitted_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('last_activity_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.UniqueConstraint('student_id', 'subject', name='uq_submission_student_subject'),
    )
    op.create_index('ix_submissions_id', 'submissions', ['id'])
    op.create_index('ix_submissions_student_id', 'submissions', ['student_id'])

    op.create_table(
        'system_settings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('system_name', sa.String(255), nullable=False, server_default='CBT System'),
        sa.Column('school_name', sa.String(255), nullable=False, server_default='School'),
        sa.Column('academic_session', sa.String(20), nullable=False, server_default='2024/2025'),
        sa.Column('current_term', sa.String(50), nullable=False, server_default='First Term'),
        sa.Column('default_exam_duration', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('auto_submit', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('shuffle_questions', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('show_results', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint('id = 1', name='ck_system_settings_singleton'),
    )
    op.execute("INSERT INTO system_settings (id) VALUES (1)")

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('action', sa.String(50), nullable=False),
        sa.Column('user_type', sa.String(20), nullable=False, server_default='student'),
        sa.Column('user_identifier', sa.String(255), nullable=False, server_default='system'),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(64), nullable=False, server_default='unknown'),
        sa.Column('status', sa.String(20), nullable=False, server_default='success'),
        sa.Column('metadata', postgresql.JSONB(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_audit_logs_created_at', table_name='audit_logs')
    op.drop_index('ix_audit_logs_action', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_table('system_settings')
    op.drop_index('ix_submissions_student_id', table_name='submissions')
    op.drop_index('ix_submissions_id', table_name='submissions')
    op.drop_table('submissions')
    op.drop_index('ix_questions_exam_id', table_name='questions')
    op.drop_table('questions')
    op.drop_table('exams')
    op.drop_index('ix_students_class', table_name='students')
    op.drop_index('ix_students_exam_code', table_name='students')
    op.drop_table('students')
