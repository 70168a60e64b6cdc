# cbt/schemas/exam_session.py
import enum
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, field_validator


class OptionLetter(str, enum.Enum):
    A = "A"
    B = "B"
    C = "C"
    D = "D"


# question id -> chosen option
Answers = Dict[PositiveInt, OptionLetter]


def _upper_answer_values(value):
    if isinstance(value, dict):
        return {
            k: v.strip().upper() if isinstance(v, str) else v
            for k, v in value.items()
        }
    return value


class QuestionOut(BaseModel):
    """A question as shown to the student. Never carries the correct answer."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    question_text: str
    option_a: Optional[str] = None
    option_b: Optional[str] = None
    option_c: Optional[str] = None
    option_d: Optional[str] = None


class ExamInfo(BaseModel):
    id: int
    subject: str
    duration_minutes: int
    total_questions: int


class ExamQuestionsResponse(BaseModel):
    exam: ExamInfo
    questions: List[QuestionOut]
    remaining_seconds: int = Field(..., description="Seconds left, computed server-side")
    exam_started_at: datetime
    saved_answers: Dict[int, str] = Field(default_factory=dict)
    resumed: bool = False
    auto_submit: bool = Field(True, description="Whether the client submits on its own when the timer runs out")


class SaveProgressRequest(BaseModel):
    exam_code: str = Field(..., min_length=1, max_length=50)
    subject: str = Field(..., min_length=1, max_length=100)
    answers: Answers = Field(default_factory=dict, description="Complete current answer set")

    @field_validator('exam_code')
    @classmethod
    def normalize_exam_code(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator('answers', mode='before')
    @classmethod
    def upper_answers(cls, v):
        return _upper_answer_values(v)

    model_config = ConfigDict(json_schema_extra={
        "example": {"exam_code": "TEST-001A", "subject": "Math", "answers": {"1": "A"}}
    })


class SaveProgressResponse(BaseModel):
    success: bool = True
    message: str = "Progress saved"


class SubmitExamRequest(SaveProgressRequest):
    is_auto_submit: bool = Field(False, description="Sent by the client when its timer ran out")


class SubmitExamResponse(BaseModel):
    success: bool = True
    message: str = "Exam submitted successfully"
    score: Optional[int] = None
    total: Optional[int] = None
    percentage: Optional[int] = None
    grade: Optional[str] = None
