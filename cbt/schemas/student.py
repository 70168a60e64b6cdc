# cbt/schemas/student.py
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StudentLoginRequest(BaseModel):
    """Exam code + password issued to the student."""
    exam_code: str = Field(..., min_length=1, max_length=50, description="Exam code printed on the student's slip")
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator('exam_code')
    @classmethod
    def normalize_exam_code(cls, v: str) -> str:
        return v.strip().upper()

    model_config = ConfigDict(json_schema_extra={
        "example": {"exam_code": "TEST-001A", "password": "xK9mQ2"}
    })


class ActiveExam(BaseModel):
    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    subject: str
    duration_minutes: int
    class_level: str = Field(..., alias="class")


class StudentLoginResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    student_id: int
    exam_code: str
    full_name: str
    class_level: str = Field(..., alias="class")
    active_exams: List[ActiveExam]
