from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ExamQuestion(BaseModel):
    """A multiple-choice (mcq) or free-text exam question."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    type: Literal["mcq", "text"]
    question: str
    options: Optional[List[str]] = None
    correct_answer: Optional[str] = Field(default=None, alias="correct")

    @model_validator(mode="after")
    def _check_mcq(self) -> "ExamQuestion":
        if self.type == "mcq":
            if not self.options or len(self.options) < 2:
                raise ValueError(f"mcq question {self.id} needs at least 2 options")
            if self.correct_answer is not None and self.correct_answer not in self.options:
                raise ValueError(f"mcq question {self.id} has a correct answer outside its options")
        return self


class Exam(BaseModel):
    """Reply of the `exam` action."""
    exam: List[ExamQuestion]

    @field_validator("exam")
    @classmethod
    def _ids_monotonic(cls, questions: List[ExamQuestion]) -> List[ExamQuestion]:
        if not questions:
            raise ValueError("exam has no questions")
        ids = [q.id for q in questions]
        if any(b <= a for a, b in zip(ids, ids[1:])):
            raise ValueError(f"exam question ids must be unique and increasing, got {ids}")
        return questions


class AnswerSubmission(BaseModel):
    """One answered question as sent to the grader."""
    model_config = ConfigDict(populate_by_name=True)

    question_id: Optional[int] = Field(default=None, alias="questionId")
    question: str
    answer: str


class Correction(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    question_id: int = Field(..., alias="questionId")
    status: str
    remark: str


class GradingResult(BaseModel):
    """Reply of the `grade` action."""
    score: str
    feedback: str
    corrections: List[Correction]


class ExamSession(BaseModel):
    """Questions of the running exam, the user's answers and the grading."""
    questions: List[ExamQuestion] = []
    answers: Dict[int, str] = {}
    grading: Optional[GradingResult] = None
