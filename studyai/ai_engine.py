"""
StudyAI — AI Engine
====================
Single entry point for every action that needs the text-generation service:

  GenerationRequest ─► compile_prompt ─► ModelResolver ─► RetryOrchestrator
                                                            └─► parse(shape)

Features:
  - One dispatch for generate / expand / exam / grade (tagged by `action`)
  - Model auto-discovery with fallback to the configured default
  - Fixed-interval retry on a busy provider
  - Strict JSON contract per action, no field repair
"""

import logging
from functools import lru_cache, partial
from typing import List, Optional, Union

from studyai.core.errors import MalformedResponse
from studyai.schemas.exam import AnswerSubmission, Exam, GradingResult
from studyai.schemas.requests import (
    Action,
    ChatMessage,
    GenerateBody,
    GenerationRequest,
    SourceContent,
)
from studyai.schemas.study import ExpansionResult, StudyBundle, StudySettings
from studyai.services.content_service import prepare_content
from studyai.services.model_resolver import ModelResolver
from studyai.services.prompt_compiler import compile_chat, compile_prompt
from studyai.services.providers import TextProvider, get_provider
from studyai.services.response_parser import parse
from studyai.services.retry import RetryOrchestrator

logger = logging.getLogger(__name__)

ActionResult = Union[StudyBundle, ExpansionResult, Exam, GradingResult]


class StudyEngine:
    def __init__(
        self,
        provider: TextProvider,
        resolver: Optional[ModelResolver] = None,
        orchestrator: Optional[RetryOrchestrator] = None,
    ):
        self.provider = provider
        self.resolver = resolver or ModelResolver(provider)
        self.orchestrator = orchestrator or RetryOrchestrator(provider)

    # ── Dispatch ─────────────────────────────────────────────────────────────

    async def dispatch(self, request: GenerationRequest) -> ActionResult:
        """Run one action end to end and return its typed result."""
        compiled = compile_prompt(request)
        model_id = await self.resolver.resolve_model()

        logger.info(f"[ENGINE] {request.action.value} → {model_id}")
        result = await self.orchestrator.execute(
            compiled.turns,
            model_id,
            validate=partial(parse, shape=compiled.shape),
        )
        logger.info(f"[ENGINE] ✓ {request.action.value} succeeded")
        return result

    async def chat(
        self,
        messages: List[ChatMessage],
        context: str,
        chat_settings: Optional[StudySettings] = None,
    ) -> str:
        """Tutor reply grounded strictly in `context`."""
        compiled = compile_chat(messages, context, chat_settings)
        model_id = await self.resolver.resolve_model()
        reply = await self.orchestrator.execute(compiled.turns, model_id, json_mode=False)
        return reply.strip()

    # ── Typed helpers used by the session ────────────────────────────────────

    async def generate_bundle(
        self, topic: str, content: SourceContent, settings: StudySettings
    ) -> StudyBundle:
        return await self.dispatch(GenerationRequest(
            action=Action.generate, topic=topic, content=content, settings=settings,
        ))

    async def expand_node(
        self, node_label: str, context: str, settings: StudySettings, topic: str = ""
    ) -> ExpansionResult:
        return await self.dispatch(GenerationRequest(
            action=Action.expand, topic=topic, node_label=node_label,
            context=context, settings=settings,
        ))

    async def generate_exam(
        self, context: str, settings: StudySettings, topic: str = ""
    ) -> Exam:
        return await self.dispatch(GenerationRequest(
            action=Action.exam, topic=topic, context=context, settings=settings,
        ))

    async def grade_exam(
        self,
        answers: List[AnswerSubmission],
        context: str,
        settings: StudySettings,
        topic: str = "",
    ) -> GradingResult:
        """Grade a full exam; the reply must correct every submitted answer."""
        grading = await self.dispatch(GenerationRequest(
            action=Action.grade, topic=topic, user_answers=answers,
            context=context, settings=settings,
        ))
        if len(grading.corrections) != len(answers):
            raise MalformedResponse(
                f"Grading returned {len(grading.corrections)} corrections for {len(answers)} answers"
            )
        return grading


async def request_from_body(body: GenerateBody) -> GenerationRequest:
    """
    Build the immutable request for POST /generate. Only the default action
    reads the uploaded material; the others work from `context` / `topic`.
    """
    action = body.action or Action.generate
    content = None
    if action == Action.generate:
        content = await prepare_content(body.topic, body.type, body.file_data, body.mime_type)

    return GenerationRequest(
        action=action,
        topic=body.topic,
        content=content,
        settings=body.settings or StudySettings(),
        node_label=body.node_label,
        context=body.context,
        user_answers=body.user_answers or [],
    )


@lru_cache
def get_engine() -> StudyEngine:
    """Process-wide engine built from settings (FastAPI dependency)."""
    return StudyEngine(get_provider())
