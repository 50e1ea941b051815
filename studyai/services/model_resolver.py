import time
import logging
from typing import Callable, Optional

from studyai.core.config import settings
from studyai.services.providers import TextProvider

logger = logging.getLogger(__name__)


class ModelResolver:
    """
    Finds the model id to address on the active provider.
    One listing call per resolution; any failure falls back to the
    provider's default model. Never raises.
    """

    def __init__(
        self,
        provider: TextProvider,
        cache_seconds: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.cache_seconds = settings.MODEL_CACHE_SECONDS if cache_seconds is None else cache_seconds
        self._clock = clock
        self._cached: Optional[str] = None
        self._cached_at = 0.0

    async def resolve_model(self) -> str:
        if self._cached and self._clock() - self._cached_at < self.cache_seconds:
            return self._cached

        logger.info("[MODEL] Auto-detecting model...")
        try:
            models = await self.provider.list_models()
            selected = self.provider.pick_model(models)
        except Exception as e:
            logger.warning(f"[MODEL] Model discovery failed, using fallback: {str(e)[:200]}")
            return self.provider.default_model

        if not selected:
            logger.warning("[MODEL] No matching model listed, using fallback.")
            return self.provider.default_model

        logger.info(f"[MODEL] ✓ Using model: {selected}")
        self._cached = selected
        self._cached_at = self._clock()
        return selected
