"""
StudyAI — Study Companion Engine
=================================
FastAPI entry point.
  • Global exception handlers — every failure returns `{"error": ...}`
  • /api/v1/generate — study bundle, node expansion, exam, grading
  • /api/v1/chat     — tutor chat grounded in the study bundle
  • /api/v1/sessions — server-side session / exam state machine
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studyai.api.v1.endpoints import generate, sessions
from studyai.core.config import settings
from studyai.core.errors import StudyAIError
from studyai.schemas.requests import ErrorResponse

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
)
logger = logging.getLogger(__name__)

# ── App ──────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="StudyAI — Study Companion Engine",
    description=(
        "Turn text, documents, images or video transcripts into a study bundle:\n"
        "summary, key points, quiz, flashcards and an expandable mind map."
    ),
    version="1.0.0",
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(StudyAIError)
async def studyai_exception_handler(request: Request, exc: StudyAIError):
    """Known failures keep their own status code."""
    logger.warning(f"[API] {request.url.path} → {exc.status_code}: {exc.message}")
    body = ErrorResponse(error=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    body = ErrorResponse(error="Invalid request.", detail=str(exc.errors()))
    return JSONResponse(status_code=400, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: every unhandled exception returns a clean JSON envelope."""
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    body = ErrorResponse(error="Internal Server Error")
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


# ── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(generate.router, prefix="/api/v1", tags=["Generation"])
app.include_router(sessions.router, prefix="/api/v1")


# ── Health Check ─────────────────────────────────────────────────────────────
@app.get("/", tags=["System"])
async def health_check():
    return {
        "status": "operational",
        "service": "StudyAI Study Companion Engine",
        "version": app.version,
        "provider": settings.AI_PROVIDER,
    }
