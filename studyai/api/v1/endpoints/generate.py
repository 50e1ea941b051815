import asyncio
import logging

from fastapi import APIRouter, Depends

from studyai.ai_engine import StudyEngine, get_engine, request_from_body
from studyai.core.config import settings
from studyai.core.errors import InvalidInput, ServiceUnavailable
from studyai.graph.builder import merge
from studyai.schemas.mindmap import LayoutRequest, MindMapGraph
from studyai.schemas.requests import ChatReply, ChatRequest, GenerateBody

logger = logging.getLogger(__name__)

router = APIRouter()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 1. GENERATE  (generate | expand | exam | grade)
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/generate")
async def generate(body: GenerateBody, engine: StudyEngine = Depends(get_engine)):
    """
    Study bundle by default; `{newEdges}` for expand, `{exam}` for exam,
    the grading object for grade. Errors come back as `{error}`.
    """
    request = await request_from_body(body)
    try:
        return await asyncio.wait_for(
            engine.dispatch(request),
            timeout=settings.AI_TIMEOUT_SECONDS,
        )
    except asyncio.TimeoutError:
        logger.error(f"[GENERATE] {request.action.value} timed out after {settings.AI_TIMEOUT_SECONDS}s")
        raise ServiceUnavailable(f"AI processing timed out after {settings.AI_TIMEOUT_SECONDS}s.")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 2. CHAT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/chat", response_model=ChatReply)
async def chat(body: ChatRequest, engine: StudyEngine = Depends(get_engine)):
    """Tutor answer grounded strictly in the supplied context."""
    reply = await engine.chat(body.messages, body.context, body.settings)
    return ChatReply(reply=reply)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# 3. MIND MAP LAYOUT
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

@router.post("/mindmap/layout", response_model=MindMapGraph)
async def layout_mindmap(body: LayoutRequest):
    """Deduplicate and position raw edges; `newEdges` are merged in."""
    if not body.edges and not body.new_edges:
        raise InvalidInput("No edges to lay out.")
    return merge(body.edges, body.new_edges)
