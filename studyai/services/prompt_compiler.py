"""
StudyAI — Prompt Compiler
==========================
Pure functions that turn a GenerationRequest into provider-agnostic prompt
turns plus the pydantic model the reply has to satisfy.

Every structured template demands one raw JSON object and forbids prose,
because the parser only strips code fences before decoding.
"""

import json
import logging
from typing import Callable, Dict, List, Optional

from studyai.core.config import settings
from studyai.core.errors import InvalidInput
from studyai.schemas.exam import Exam, GradingResult
from studyai.schemas.prompt import CompiledPrompt, PromptPart, PromptTurn
from studyai.schemas.requests import Action, ChatMessage, GenerationRequest, SourceContent, TranscriptLine
from studyai.schemas.study import ExpansionResult, StudyBundle, StudySettings

logger = logging.getLogger(__name__)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# TEMPLATES — STRICT JSON
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

JSON_ONLY = (
    "Return ONLY raw JSON: a single JSON object matching the shape below. "
    "No markdown fences, no commentary, no text before or after the object.\n"
)

STUDY_BUNDLE_SHAPE = (
    "{\n"
    '  "title": "String", "summary": "Markdown", "keyPoints": ["String"],\n'
    '  "quiz": [{"q": "String", "a": ["A", "B"], "correct": "A"}],\n'
    '  "flashcards": [{"front": "String", "back": "String"}],\n'
    '  "mindMapEdges": [{"source": "String", "target": "String"}],\n'
    '  "stats": {"accuracy": "String", "timeSaved": "String"}\n'
    "}\n"
)

TUTOR_INSTRUCTION = (
    "Act as an expert AI Tutor.\n"
    "Language: {language}\n"
    "Difficulty: {difficulty}\n"
    "If timestamps exist, use them.\n"
    "Every quiz item needs at least 2 options and its \"correct\" value must be one of them.\n"
)

OCR_INSTRUCTION = "OCR Task: Extract educational content from this image."

EXPAND_INSTRUCTION = (
    "You are a helper for a Mind Map tool.\n"
    'Task: Generate 3-5 sub-concepts related to the node "{node_label}".\n'
    'Context: "{context}"\n'
    "Language: {language}\n"
    + JSON_ONLY
    + '{{ "newEdges": [{{"source": "{node_label}", "target": "SubConcept1"}}, ...] }}\n'
)

EXAM_INSTRUCTION = (
    "Create a challenging exam.\n"
    'Context: "{context}"\n'
    "Language: {language}\n"
    "Difficulty: {difficulty}\n"
    "Requirements: 3 MCQ, 2 Short Answer. Number the questions 1-5.\n"
    + JSON_ONLY
    + '{{ "exam": [ {{"id": 1, "type": "mcq", "question": "...", "options": ["A", "B"], "correct": "A"}}, '
    '{{"id": 2, "type": "text", "question": "..."}} ] }}\n'
)

GRADE_INSTRUCTION = (
    "Grade this student.\n"
    'Context: "{context}"\n'
    "Answers: {answers}\n"
    "Give one correction per answered question.\n"
    + JSON_ONLY
    + '{{ "score": "85/100", "feedback": "...", '
    '"corrections": [{{"questionId": 1, "status": "Correct", "remark": "..."}}] }}\n'
)

CHAT_INSTRUCTION = (
    "You are a dedicated AI Tutor for this specific lesson.\n\n"
    "SOURCE MATERIAL (CONTEXT):\n"
    '"""\n{context}\n"""\n\n'
    "INSTRUCTIONS:\n"
    "1. Answer the user's questions exclusively based on the SOURCE MATERIAL provided above.\n"
    "2. If the answer is in the source material, answer it directly.\n"
    "3. Do NOT act as a general assistant. Act as an expert on THIS specific content.\n"
    "4. Language: {language}\n"
)

CHAT_ACK = "Understood. I will answer based strictly on the provided source material."


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HELPERS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def format_timestamp(seconds: float) -> str:
    """12.7 → "[00:12]", 754 → "[12:34]"."""
    total = int(seconds)
    return f"[{total // 60:02d}:{total % 60:02d}]"


def format_transcript(lines: List[TranscriptLine]) -> str:
    return " ".join(f"{format_timestamp(line.offset_seconds)} {line.text}" for line in lines)


def _scoped_context(request: GenerationRequest, limit: int) -> str:
    context = request.context if request.context else request.topic
    return (context or "")[:limit]


def _single_turn(parts: List[PromptPart], shape) -> CompiledPrompt:
    return CompiledPrompt(turns=[PromptTurn(role="user", parts=parts)], shape=shape)


def _content_text(content: Optional[SourceContent], topic: str) -> str:
    if content is None:
        return topic or ""
    if content.kind == "video":
        return format_transcript(content.transcript or [])
    return content.text or ""


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# PER-ACTION COMPILERS
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _compile_generate(request: GenerationRequest) -> CompiledPrompt:
    s = request.settings
    instruction = (
        TUTOR_INSTRUCTION.format(language=s.language, difficulty=s.difficulty.value)
        + JSON_ONLY
        + STUDY_BUNDLE_SHAPE
    )
    parts = [PromptPart(text=instruction)]

    content = request.content
    if content is not None and content.kind == "image":
        if not content.data:
            raise InvalidInput("Uploaded image is empty.")
        parts.append(PromptPart(mime_type=content.mime_type, data=content.data))
        parts.append(PromptPart(text=OCR_INSTRUCTION))
        return _single_turn(parts, StudyBundle)

    text = _content_text(content, request.topic)
    if not text.strip():
        raise InvalidInput("Please enter a topic or upload a file.")
    parts.append(PromptPart(text=text[: settings.MAX_CONTENT_CHARS]))
    return _single_turn(parts, StudyBundle)


def _compile_expand(request: GenerationRequest) -> CompiledPrompt:
    if not request.node_label or not request.node_label.strip():
        raise InvalidInput("A node label is required to expand the mind map.")
    text = EXPAND_INSTRUCTION.format(
        node_label=request.node_label.strip(),
        context=_scoped_context(request, settings.EXPAND_CONTEXT_CHARS),
        language=request.settings.language,
    )
    return _single_turn([PromptPart(text=text)], ExpansionResult)


def _compile_exam(request: GenerationRequest) -> CompiledPrompt:
    text = EXAM_INSTRUCTION.format(
        context=_scoped_context(request, settings.EXAM_CONTEXT_CHARS),
        language=request.settings.language,
        difficulty=request.settings.difficulty.value,
    )
    return _single_turn([PromptPart(text=text)], Exam)


def _compile_grade(request: GenerationRequest) -> CompiledPrompt:
    if not request.user_answers:
        raise InvalidInput("No answers to grade.")
    answers = json.dumps(
        [a.model_dump(by_alias=True, exclude_none=True) for a in request.user_answers],
        ensure_ascii=False,
    )
    text = GRADE_INSTRUCTION.format(
        context=_scoped_context(request, settings.GRADE_CONTEXT_CHARS),
        answers=answers,
    )
    return _single_turn([PromptPart(text=text)], GradingResult)


_COMPILERS: Dict[Action, Callable[[GenerationRequest], CompiledPrompt]] = {
    Action.generate: _compile_generate,
    Action.expand: _compile_expand,
    Action.exam: _compile_exam,
    Action.grade: _compile_grade,
}


def compile_prompt(request: GenerationRequest) -> CompiledPrompt:
    """Map the request's action to its template. Pure: no I/O."""
    compiled = _COMPILERS[request.action](request)
    logger.debug(f"[COMPILER] {request.action.value}: {len(compiled.text)} chars of instruction/content")
    return compiled


def compile_chat(
    messages: List[ChatMessage],
    context: str,
    chat_settings: Optional[StudySettings] = None,
) -> CompiledPrompt:
    """Grounding turn, acknowledgement turn, then the conversation so far."""
    if not messages:
        raise InvalidInput("No message to answer.")
    language = (chat_settings or StudySettings()).language
    grounding = CHAT_INSTRUCTION.format(
        context=context[: settings.CHAT_CONTEXT_CHARS] if context else "No specific context provided.",
        language=language,
    )
    turns = [
        PromptTurn(role="user", parts=[PromptPart(text=grounding)]),
        PromptTurn(role="model", parts=[PromptPart(text=CHAT_ACK)]),
    ]
    for msg in messages:
        turns.append(PromptTurn(
            role="model" if msg.role == "ai" else "user",
            parts=[PromptPart(text=msg.content)],
        ))
    return CompiledPrompt(turns=turns, shape=None)
