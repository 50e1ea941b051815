import logging
from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from studyai.ai_engine import StudyEngine, get_engine
from studyai.schemas.requests import ChatReply
from studyai.schemas.study import StudySettings
from studyai.session import SessionSnapshot, SessionStore, store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["Sessions"])


def get_store() -> SessionStore:
    return store


# ── Request Models ────────────────────────────────────────────────────────────

class SessionGenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    topic: str = ""
    file_data: Optional[str] = Field(default=None, alias="fileData")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    type: Literal["text", "youtube"] = "text"
    settings: Optional[StudySettings] = None


class ExpandRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_label: str = Field(..., min_length=1, alias="nodeLabel")


class AnswerRequest(BaseModel):
    answer: str


class RetakeRequest(BaseModel):
    regenerate: bool = True


class ChatMessageRequest(BaseModel):
    message: str = Field(..., min_length=1)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# LIFECYCLE
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("", response_model=SessionSnapshot, status_code=201)
async def create_session(
    sessions: SessionStore = Depends(get_store),
    engine: StudyEngine = Depends(get_engine),
):
    session = sessions.create(engine)
    logger.info(f"[SESSION] Created {session.id}")
    return session.snapshot()


@router.get("/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str, sessions: SessionStore = Depends(get_store)):
    return sessions.get(session_id).snapshot()


@router.delete("/{session_id}", status_code=204)
async def delete_session(session_id: str, sessions: SessionStore = Depends(get_store)):
    sessions.delete(session_id)


@router.post("/{session_id}/reset", response_model=SessionSnapshot)
async def reset_session(session_id: str, sessions: SessionStore = Depends(get_store)):
    session = sessions.get(session_id)
    session.reset()
    return session.snapshot()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# STUDY BUNDLE + MIND MAP
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/{session_id}/generate", response_model=SessionSnapshot)
async def generate_bundle(
    session_id: str,
    body: SessionGenerateRequest,
    sessions: SessionStore = Depends(get_store),
):
    session = sessions.get(session_id)
    await session.generate(body.topic, body.type, body.file_data, body.mime_type, body.settings)
    return session.snapshot()


@router.post("/{session_id}/expand", response_model=SessionSnapshot)
async def expand_node(
    session_id: str,
    body: ExpandRequest,
    sessions: SessionStore = Depends(get_store),
):
    session = sessions.get(session_id)
    await session.expand_node(body.node_label)
    return session.snapshot()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# EXAM
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/{session_id}/exam", response_model=SessionSnapshot)
async def start_exam(session_id: str, sessions: SessionStore = Depends(get_store)):
    session = sessions.get(session_id)
    await session.start_exam()
    return session.snapshot()


@router.put("/{session_id}/exam/answers/{question_id}", response_model=SessionSnapshot)
async def answer_question(
    session_id: str,
    question_id: int,
    body: AnswerRequest,
    sessions: SessionStore = Depends(get_store),
):
    session = sessions.get(session_id)
    session.answer(question_id, body.answer)
    return session.snapshot()


@router.post("/{session_id}/exam/submit", response_model=SessionSnapshot)
async def submit_exam(session_id: str, sessions: SessionStore = Depends(get_store)):
    session = sessions.get(session_id)
    await session.submit_exam()
    return session.snapshot()


@router.post("/{session_id}/exam/retake", response_model=SessionSnapshot)
async def retake_exam(
    session_id: str,
    body: Optional[RetakeRequest] = None,
    sessions: SessionStore = Depends(get_store),
):
    session = sessions.get(session_id)
    await session.retake_exam(regenerate=body.regenerate if body else True)
    return session.snapshot()


@router.delete("/{session_id}/exam", response_model=SessionSnapshot)
async def exit_exam(session_id: str, sessions: SessionStore = Depends(get_store)):
    session = sessions.get(session_id)
    session.exit_exam()
    return session.snapshot()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# CHAT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/{session_id}/chat/open", response_model=SessionSnapshot)
async def open_chat(session_id: str, sessions: SessionStore = Depends(get_store)):
    session = sessions.get(session_id)
    session.open_chat()
    return session.snapshot()


@router.post("/{session_id}/chat/close", response_model=SessionSnapshot)
async def close_chat(session_id: str, sessions: SessionStore = Depends(get_store)):
    session = sessions.get(session_id)
    session.close_chat()
    return session.snapshot()


@router.post("/{session_id}/chat", response_model=ChatReply)
async def send_chat(
    session_id: str,
    body: ChatMessageRequest,
    sessions: SessionStore = Depends(get_store),
):
    session = sessions.get(session_id)
    reply = await session.send_chat(body.message)
    return ChatReply(reply=reply)
