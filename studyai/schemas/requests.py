"""
StudyAI — Request / Reply Schemas
==================================
Wire contract of the generate and chat endpoints plus the immutable
GenerationRequest every action is compiled from.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from studyai.schemas.exam import AnswerSubmission
from studyai.schemas.study import StudySettings


class Action(str, Enum):
    generate = "generate"
    expand = "expand"
    exam = "exam"
    grade = "grade"


class TranscriptLine(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    offset_seconds: float = Field(..., alias="offsetSeconds")
    text: str


class SourceContent(BaseModel):
    """
    Study material after extraction.
    text/document carry `text`, video carries `transcript`,
    image carries base64 `data` + `mime_type`.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    kind: Literal["text", "document", "image", "video"]
    text: Optional[str] = None
    transcript: Optional[List[TranscriptLine]] = None
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    data: Optional[str] = None


class GenerationRequest(BaseModel):
    """One user action, tagged by `action`. Immutable once built."""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    action: Action = Action.generate
    topic: str = ""
    content: Optional[SourceContent] = None
    settings: StudySettings = StudySettings()
    node_label: Optional[str] = Field(default=None, alias="nodeLabel")
    context: Optional[str] = None
    user_answers: List[AnswerSubmission] = Field(default=[], alias="userAnswers")


# ── HTTP bodies ──────────────────────────────────────────────────────────────

class GenerateBody(BaseModel):
    """Body of POST /api/v1/generate."""
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[Action] = None
    topic: str = ""
    file_data: Optional[str] = Field(default=None, alias="fileData")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    type: Literal["text", "youtube"] = "text"
    settings: Optional[StudySettings] = None
    node_label: Optional[str] = Field(default=None, alias="nodeLabel")
    context: Optional[str] = None
    user_answers: Optional[List[AnswerSubmission]] = Field(default=None, alias="userAnswers")


class ChatMessage(BaseModel):
    role: Literal["user", "ai"]
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage]
    context: str = ""
    settings: Optional[StudySettings] = None


class ChatReply(BaseModel):
    reply: str


class ErrorResponse(BaseModel):
    """Every failed request returns this shape."""
    error: str
    detail: Optional[str] = None
