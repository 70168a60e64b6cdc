# cbt/services/grading.py
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from cbt.core.exceptions import NoAnswerKey


# (minimum percentage, letter) from highest band down
GRADE_BANDS = (
    (70, "A"),
    (60, "B"),
    (50, "C"),
    (40, "D"),
)


@dataclass(frozen=True)
class GradeResult:
    score: int
    total: int


def _question_id(key: Any) -> Optional[int]:
    try:
        return int(key)
    except (TypeError, ValueError):
        return None


def _option(value: Any) -> str:
    value = getattr(value, "value", value)
    return str(value).strip().upper() if value is not None else ""


def grade_answers(submitted: Mapping[Any, Any], answer_key: Mapping[int, str]) -> GradeResult:
    """
    Scores submitted answers against the answer key.

    One point per key question whose submitted option matches. Unanswered
    questions count as wrong; ids absent from the key are ignored. The total
    is the size of the key, not of the submission.

    Raises:
        NoAnswerKey: the exam has no active questions to grade against
    """
    if not answer_key:
        raise NoAnswerKey()

    normalized: Dict[int, str] = {}
    for key, value in (submitted or {}).items():
        question_id = _question_id(key)
        if question_id is not None:
            normalized[question_id] = _option(value)

    score = sum(
        1 for question_id, correct in answer_key.items()
        if normalized.get(int(question_id)) == _option(correct)
    )
    return GradeResult(score=score, total=len(answer_key))


def calculate_grade(score: int, total: int) -> Tuple[int, str]:
    """Rounded percentage and letter grade for a score."""
    if not total:
        return 0, "F"
    percentage = round(score / total * 100)
    for minimum, letter in GRADE_BANDS:
        if percentage >= minimum:
            return percentage, letter
    return percentage, "F"
