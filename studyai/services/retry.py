"""
StudyAI — Retry Orchestrator
=============================
Sends a compiled prompt to the provider with a fixed-interval retry budget.

  • provider "busy" status (503 by default) → fixed delay, then retry
  • any other failure or an empty reply     → retry immediately
  • budget exhausted                        → ServiceUnavailable
  • malformed reply                         → fail fast (RETRY_ON_MALFORMED)
"""

import asyncio
import logging
from typing import Awaitable, Callable, Collection, List, Optional, TypeVar

from studyai.core.config import settings
from studyai.core.errors import MalformedResponse, MissingCredential, ProviderError, ServiceUnavailable
from studyai.schemas.prompt import PromptTurn
from studyai.services.providers import TextProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryOrchestrator:
    def __init__(
        self,
        provider: TextProvider,
        max_attempts: Optional[int] = None,
        delay_seconds: Optional[float] = None,
        busy_status: Optional[int] = None,
        non_retryable: Optional[Collection[int]] = None,
        retry_on_malformed: Optional[bool] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.max_attempts = max_attempts or settings.MAX_RETRIES
        self.delay_seconds = settings.RETRY_DELAY_SECONDS if delay_seconds is None else delay_seconds
        self.busy_status = busy_status or settings.BUSY_STATUS_CODE
        self.non_retryable = set(settings.NON_RETRYABLE_STATUS_CODES if non_retryable is None else non_retryable)
        self.retry_on_malformed = (
            settings.RETRY_ON_MALFORMED if retry_on_malformed is None else retry_on_malformed
        )
        self._sleep = sleep

    async def execute(
        self,
        turns: List[PromptTurn],
        model_id: str,
        validate: Optional[Callable[[str], T]] = None,
        json_mode: bool = True,
    ):
        """
        Return the raw reply text, or `validate(raw)` when a validator is
        given. Attempts are strictly sequential.
        """
        if not self.provider.has_credentials:
            raise MissingCredential("API Key missing.")

        for attempt in range(1, self.max_attempts + 1):
            last = attempt == self.max_attempts
            try:
                logger.info(f"[RETRY] Sending request (attempt {attempt}/{self.max_attempts})...")
                raw = await self.provider.generate_text(turns, model_id, json_mode=json_mode)
                if not raw or not raw.strip():
                    raise ProviderError("Empty response")
                return validate(raw) if validate else raw

            except ProviderError as e:
                if e.provider_status in self.non_retryable:
                    raise
                if e.provider_status == self.busy_status:
                    logger.warning(f"[RETRY] Server busy (attempt {attempt}), retrying...")
                    if not last:
                        await self._sleep(self.delay_seconds)
                    continue
                logger.error(f"[RETRY] Attempt {attempt} error: {e.message[:200]}")

            except MalformedResponse as e:
                if not self.retry_on_malformed:
                    raise
                logger.error(f"[RETRY] Attempt {attempt} malformed reply: {e.message[:200]}")

        raise ServiceUnavailable("AI Service Unavailable. Try again.")
