# cbt/services/question_presentation.py
import random
from typing import Iterable, List, Optional

from cbt.models.exam import Question
from cbt.schemas.exam_session import QuestionOut


def present_questions(
    questions: Iterable[Question],
    shuffle: bool = False,
    rng: Optional[random.Random] = None,
) -> List[QuestionOut]:
    """
    Student-facing projection of the question set: id, text and the four
    options only. With shuffle on, order is re-randomized on every call;
    saved answers are keyed by id so a resumed session is unaffected.
    """
    presented = [QuestionOut.model_validate(q) for q in questions]
    if shuffle:
        (rng or random).shuffle(presented)
    return presented
