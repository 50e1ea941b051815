"""
StudyAI — Text-Generation Providers
====================================
Thin adapters over the Gemini and Groq SDKs. Each one turns provider-agnostic
PromptTurns into an SDK call and every SDK failure into a ProviderError that
carries the provider's status code, so the retry orchestrator can classify it.
"""

import base64
import logging
import asyncio
from typing import List, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from groq import AsyncGroq, APIError, APIStatusError
from pydantic import BaseModel

from studyai.core.config import Settings, settings as default_settings
from studyai.core.errors import InvalidInput, ProviderError
from studyai.schemas.prompt import PromptPart, PromptTurn

logger = logging.getLogger(__name__)


class ModelInfo(BaseModel):
    name: str
    supported_generation_methods: List[str] = []


class TextProvider:
    """Interface shared by the provider adapters (and the test fakes)."""

    name = "provider"
    default_model = ""
    model_families: List[str] = []

    @property
    def has_credentials(self) -> bool:
        raise NotImplementedError

    async def list_models(self) -> List[ModelInfo]:
        raise NotImplementedError

    def pick_model(self, models: List[ModelInfo]) -> Optional[str]:
        raise NotImplementedError

    async def generate_text(
        self, turns: List[PromptTurn], model_id: str, json_mode: bool = True
    ) -> str:
        raise NotImplementedError


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# GEMINI
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

def _to_gemini_part(part: PromptPart):
    if part.is_inline_data:
        return {"mime_type": part.mime_type, "data": base64.b64decode(part.data)}
    return part.text


class GeminiProvider(TextProvider):
    name = "Gemini"

    def __init__(self, config: Settings = default_settings):
        self.api_key = config.GOOGLE_API_KEY
        self.default_model = config.GEMINI_MODEL
        self.model_families = list(config.GEMINI_MODEL_FAMILIES)
        if self.api_key:
            genai.configure(api_key=self.api_key, transport="rest")
            logger.info("[PROVIDER] ✓ Gemini client ready")
        else:
            logger.warning("[PROVIDER] ✗ Google API key missing")

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key)

    async def list_models(self) -> List[ModelInfo]:
        models = await asyncio.to_thread(lambda: list(genai.list_models()))
        return [
            ModelInfo(
                name=m.name,
                supported_generation_methods=list(m.supported_generation_methods or []),
            )
            for m in models
        ]

    def pick_model(self, models: List[ModelInfo]) -> Optional[str]:
        for m in models:
            if (
                "gemini" in m.name
                and "generateContent" in m.supported_generation_methods
                and any(family in m.name for family in self.model_families)
            ):
                return m.name.replace("models/", "")
        return None

    async def generate_text(
        self, turns: List[PromptTurn], model_id: str, json_mode: bool = True
    ) -> str:
        """Call Gemini; JSON mode is on for every structured action."""
        config = {"temperature": 0.2}
        if json_mode:
            config["response_mime_type"] = "application/json"

        model = genai.GenerativeModel(model_name=model_id, generation_config=config)
        contents = [
            {"role": t.role, "parts": [_to_gemini_part(p) for p in t.parts]}
            for t in turns
        ]

        logger.info(f"[PROVIDER] Calling Gemini ({model_id})...")
        try:
            response = await asyncio.to_thread(model.generate_content, contents)
        except google_exceptions.GoogleAPICallError as e:
            status = int(e.code) if e.code is not None else None
            raise ProviderError(f"Gemini error: {e.message}", provider_status=status)
        except Exception as e:
            raise ProviderError(f"Gemini call failed: {e}")

        try:
            return response.text
        except ValueError:
            # blocked or candidate-less reply
            return ""


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# GROQ
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━

_GROQ_ROLES = {"user": "user", "model": "assistant"}


class GroqProvider(TextProvider):
    name = "Groq"

    def __init__(self, config: Settings = default_settings):
        self.default_model = config.GROQ_MODEL
        self.model_families = list(config.GROQ_MODEL_FAMILIES)
        self.client: Optional[AsyncGroq] = None
        if config.GROQ_API_KEY:
            self.client = AsyncGroq(api_key=config.GROQ_API_KEY)
            logger.info("[PROVIDER] ✓ Groq client ready")
        else:
            logger.warning("[PROVIDER] ✗ Groq API key missing")

    @property
    def has_credentials(self) -> bool:
        return self.client is not None

    async def list_models(self) -> List[ModelInfo]:
        page = await self.client.models.list()
        return [ModelInfo(name=m.id, supported_generation_methods=["chat"]) for m in page.data]

    def pick_model(self, models: List[ModelInfo]) -> Optional[str]:
        for m in models:
            if any(family in m.name for family in self.model_families):
                return m.name
        return None

    async def generate_text(
        self, turns: List[PromptTurn], model_id: str, json_mode: bool = True
    ) -> str:
        """Call Groq (Llama 3). Text only."""
        messages = []
        for t in turns:
            if any(p.is_inline_data for p in t.parts):
                raise InvalidInput("Image input requires the Gemini provider.")
            messages.append({
                "role": _GROQ_ROLES[t.role],
                "content": "\n\n".join(p.text for p in t.parts if p.text),
            })

        extra = {"response_format": {"type": "json_object"}} if json_mode else {}

        logger.info(f"[PROVIDER] Calling Groq ({model_id})...")
        try:
            completion = await self.client.chat.completions.create(
                model=model_id,
                messages=messages,
                temperature=0.2,
                max_tokens=8000,
                **extra,
            )
        except APIStatusError as e:
            raise ProviderError(f"Groq error: {e.message}", provider_status=e.status_code)
        except APIError as e:
            raise ProviderError(f"Groq call failed: {e.message}")

        if not completion.choices:
            return ""
        return completion.choices[0].message.content or ""


def get_provider(config: Settings = default_settings) -> TextProvider:
    """Build the adapter selected by AI_PROVIDER."""
    logger.info(f"[PROVIDER] Provider mode: {config.AI_PROVIDER}")
    if config.AI_PROVIDER == "groq":
        return GroqProvider(config)
    return GeminiProvider(config)
