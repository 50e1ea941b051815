import io
import re
import base64
import binascii
import logging
import asyncio
from typing import List, Optional

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError
from youtube_transcript_api import CouldNotRetrieveTranscript, YouTubeTranscriptApi

from studyai.core.config import settings
from studyai.core.errors import InvalidInput
from studyai.schemas.requests import SourceContent, TranscriptLine

logger = logging.getLogger(__name__)

_YOUTUBE_ID = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")


def get_youtube_video_id(url: str) -> Optional[str]:
    """Return the 11-character video id of a YouTube link, or None."""
    match = _YOUTUBE_ID.match(url.strip())
    if match and len(match.group(2)) == 11:
        return match.group(2)
    return None


async def fetch_transcript(video_id: str) -> List[TranscriptLine]:
    """
    Fetch the caption track of a video.
    Missing captions are a terminal InvalidInput, never retried.
    """
    def _fetch() -> List[TranscriptLine]:
        fetched = YouTubeTranscriptApi().fetch(video_id)
        return [TranscriptLine(offset_seconds=s.start, text=s.text) for s in fetched]

    try:
        lines = await asyncio.to_thread(_fetch)
    except CouldNotRetrieveTranscript as e:
        logger.warning(f"[CONTENT] No captions for {video_id}: {type(e).__name__}")
        raise InvalidInput("No captions found.")

    if not lines:
        raise InvalidInput("No captions found.")
    logger.info(f"[CONTENT] ✓ Transcript for {video_id}: {len(lines)} lines")
    return lines


async def extract_pdf_text(content: bytes) -> str:
    """
    Extract text from PDF using PyMuPDF (fitz).
    Returns "" on any failure; the caller decides whether that is an error.
    """
    def _process_pdf(data: bytes) -> str:
        with fitz.open(stream=data, filetype="pdf") as doc:
            text_blocks = []
            for page in doc:
                page_text = page.get_text("text")
                if page_text.strip():
                    text_blocks.append(page_text)
            return "\n\n".join(text_blocks)

    try:
        return await asyncio.to_thread(_process_pdf, content)
    except Exception as e:
        logger.error(f"[CONTENT] PDF parse failed: {e}")
        return ""


def _validate_image(content: bytes) -> None:
    try:
        image = Image.open(io.BytesIO(content))
        w, h = image.size
    except (UnidentifiedImageError, OSError):
        raise InvalidInput("Uploaded image could not be read.")
    if w < 50 or h < 50:
        raise InvalidInput("Image too small to contain readable text.")


def _decode_file(file_data: str) -> bytes:
    try:
        content = base64.b64decode(file_data, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInput("fileData is not valid base64.")

    if len(content) == 0:
        raise InvalidInput("Uploaded file is empty.")

    max_bytes = settings.MAX_FILE_SIZE_MB * 1024 * 1024
    if len(content) > max_bytes:
        raise InvalidInput(
            f"File too large ({len(content) / (1024*1024):.1f} MB). "
            f"Maximum is {settings.MAX_FILE_SIZE_MB} MB."
        )
    return content


async def prepare_content(
    topic: str,
    input_type: str = "text",
    file_data: Optional[str] = None,
    mime_type: Optional[str] = None,
) -> SourceContent:
    """
    Resolve the study material of a `generate` action:
      youtube link → transcript, image → validated inline data,
      any other file → PDF text, otherwise the topic text itself.
    """
    if input_type == "youtube":
        video_id = get_youtube_video_id(topic or "")
        if not video_id:
            raise InvalidInput("Invalid YouTube Link")
        return SourceContent(kind="video", transcript=await fetch_transcript(video_id))

    if file_data:
        content = _decode_file(file_data)
        if mime_type and mime_type.startswith("image/"):
            _validate_image(content)
            return SourceContent(kind="image", mime_type=mime_type, data=file_data)

        text = await extract_pdf_text(content)
        if not text.strip():
            raise InvalidInput("Empty PDF.")
        logger.info(f"[CONTENT] ✓ Extracted {len(text)} chars from document")
        return SourceContent(kind="document", text=text.strip())

    if not topic or not topic.strip():
        raise InvalidInput("Please enter a topic or upload a file.")
    return SourceContent(kind="text", text=topic)
