from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Difficulty(str, Enum):
    easy = "Easy"
    normal = "Normal"
    hard = "Hard"


class StudySettings(BaseModel):
    """User preferences forwarded with every generation request."""
    model_config = ConfigDict(populate_by_name=True)

    language: str = "english"
    difficulty: Difficulty = Difficulty.normal
    voice_speed: float = Field(default=1.0, ge=0.5, le=2.0, alias="voiceSpeed")


# ── Study Bundle ─────────────────────────────────────────────────────────────

class QuizItem(BaseModel):
    """A quick-check question. Wire keys are the short q/a/correct form."""
    model_config = ConfigDict(populate_by_name=True)

    question: str = Field(..., alias="q")
    options: List[str] = Field(..., alias="a")
    correct_option: str = Field(..., alias="correct")

    @model_validator(mode="after")
    def _correct_is_an_option(self) -> "QuizItem":
        if len(self.options) < 2:
            raise ValueError("a quiz item needs at least 2 options")
        if self.correct_option not in self.options:
            raise ValueError(f"correct option {self.correct_option!r} is not one of the options")
        return self


class Flashcard(BaseModel):
    front: str
    back: str


class MindMapEdge(BaseModel):
    """A directed concept relationship between two labels."""
    source: str
    target: str

    @field_validator("source", "target")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("mind map labels cannot be blank")
        return v


class StudyStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    accuracy: str
    time_saved: str = Field(..., alias="timeSaved")


class StudyBundle(BaseModel):
    """Everything one successful `generate` call produces."""
    model_config = ConfigDict(populate_by_name=True)

    title: str
    summary: str
    key_points: List[str] = Field(..., alias="keyPoints")
    quiz: List[QuizItem]
    flashcards: List[Flashcard]
    mind_map_edges: List[MindMapEdge] = Field(..., alias="mindMapEdges")
    stats: StudyStats


class ExpansionResult(BaseModel):
    """Reply of the `expand` action."""
    model_config = ConfigDict(populate_by_name=True)

    new_edges: List[MindMapEdge] = Field(..., alias="newEdges")
