from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── AI Provider ───────────────────────────────────────────────────────────
    AI_PROVIDER: str = "gemini"

    @field_validator("AI_PROVIDER")
    @classmethod
    def validate_ai_provider(cls, v: str) -> str:
        allowed = {"gemini", "groq"}
        if v.lower() not in allowed:
            raise ValueError(f"AI_PROVIDER must be one of {allowed}, got '{v}'")
        return v.lower()

    # Google (Gemini - default backend, supports image input)
    GOOGLE_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_MODEL_FAMILIES: List[str] = ["flash", "pro", "1.5"]

    # Groq (Llama 3 - text only)
    GROQ_API_KEY: Optional[str] = None
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    GROQ_MODEL_FAMILIES: List[str] = ["llama", "gemma", "mixtral"]

    MODEL_CACHE_SECONDS: int = 300  # 0 = list models on every request

    # ── Retry Policy ──────────────────────────────────────────────────────────
    MAX_RETRIES: int = 3
    RETRY_DELAY_SECONDS: float = 2.5
    BUSY_STATUS_CODE: int = 503
    NON_RETRYABLE_STATUS_CODES: List[int] = []
    RETRY_ON_MALFORMED: bool = False

    # ── Limits ────────────────────────────────────────────────────────────────
    MAX_CONTENT_CHARS: int = 40000
    EXPAND_CONTEXT_CHARS: int = 3000
    EXAM_CONTEXT_CHARS: int = 10000
    GRADE_CONTEXT_CHARS: int = 5000
    CHAT_CONTEXT_CHARS: int = 25000
    MAX_FILE_SIZE_MB: int = 20
    AI_TIMEOUT_SECONDS: int = 120

    # ── Core ──────────────────────────────────────────────────────────────────
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
