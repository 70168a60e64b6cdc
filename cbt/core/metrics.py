# cbt/core/metrics.py
from prometheus_client import Counter

exam_sessions_started_total = Counter(
    'cbt_exam_sessions_started_total',
    'Exam sessions created on first question fetch'
)

exam_sessions_resumed_total = Counter(
    'cbt_exam_sessions_resumed_total',
    'Question fetches that resumed a running session'
)

exam_submissions_total = Counter(
    'cbt_exam_submissions_total',
    'Graded exam submissions',
    ['mode']  # 'manual' | 'auto'
)

exam_rejections_total = Counter(
    'cbt_exam_rejections_total',
    'Exam session requests rejected by a business rule',
    ['operation', 'code']
)

student_logins_total = Counter(
    'cbt_student_logins_total',
    'Student login attempts',
    ['status']
)
