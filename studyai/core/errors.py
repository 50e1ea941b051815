"""
StudyAI — Error Taxonomy
=========================
Every failure the engine or the session can surface is a StudyAIError
carrying the HTTP status the API reports it with.
"""

from typing import Optional


class StudyAIError(Exception):
    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InvalidInput(StudyAIError):
    """Empty topic and no file, unusable video link, empty document..."""
    status_code = 400


class MissingCredential(StudyAIError):
    status_code = 401


class ProviderError(StudyAIError):
    """
    A single failed call to the text-generation provider.
    `provider_status` is the provider's own status code when it sent one.
    """
    status_code = 502

    def __init__(self, message: str, provider_status: Optional[int] = None):
        super().__init__(message)
        self.provider_status = provider_status


class ServiceUnavailable(StudyAIError):
    """Retry budget exhausted against the provider."""
    status_code = 503


class MalformedResponse(StudyAIError):
    """Reply is not the JSON object the compiled prompt asked for."""
    status_code = 500


class SessionNotFound(StudyAIError):
    status_code = 404


class SessionBusy(StudyAIError):
    """Another generation-class request is already in flight."""
    status_code = 409


class InvalidTransition(StudyAIError):
    status_code = 409
