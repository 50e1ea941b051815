import json
import re
import logging
from typing import Any, Dict, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from studyai.core.errors import MalformedResponse

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_code_fences(raw_text: str) -> str:
    """Drop every Markdown code-fence marker (```json / ```) and trim."""
    return _FENCE.sub("", raw_text).strip()


def parse(raw_text: str, shape: Optional[Type[T]] = None) -> Union[T, Dict[str, Any]]:
    """
    Parse a provider reply into `shape`.
    Only fence markers are removed; anything else that is not the expected
    JSON object raises MalformedResponse. Without a shape the reply must
    still be a JSON object, returned as a dict.
    """
    if not raw_text or not raw_text.strip():
        raise MalformedResponse("Empty AI response received")

    cleaned = strip_code_fences(raw_text)

    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"[PARSER] JSON parse failed. Raw (first 500 chars): {raw_text[:500]}")
        raise MalformedResponse(f"AI returned invalid JSON: {e}")

    if not isinstance(payload, dict):
        raise MalformedResponse(f"AI returned {type(payload).__name__}, expected a JSON object")

    if shape is None:
        return payload

    try:
        return shape.model_validate(payload)
    except ValidationError as e:
        logger.error(f"[PARSER] Reply does not match {shape.__name__}: {e.error_count()} error(s)")
        raise MalformedResponse(f"AI reply does not match {shape.__name__}: {e}")
