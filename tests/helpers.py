import json

from studyai.ai_engine import StudyEngine
from studyai.core.errors import ProviderError
from studyai.services.model_resolver import ModelResolver
from studyai.services.providers import TextProvider
from studyai.services.retry import RetryOrchestrator


BUNDLE = {
    "title": "Photosynthesis",
    "summary": "**Photosynthesis** turns light into chemical energy.",
    "keyPoints": ["Happens in chloroplasts", "Releases oxygen"],
    "quiz": [
        {"q": "Where does photosynthesis happen?", "a": ["Chloroplast", "Nucleus"], "correct": "Chloroplast"},
    ],
    "flashcards": [{"front": "Chlorophyll", "back": "Green pigment"}],
    "mindMapEdges": [
        {"source": "Photosynthesis", "target": "Light Reactions"},
        {"source": "Photosynthesis", "target": "Calvin Cycle"},
    ],
    "stats": {"accuracy": "98%", "timeSaved": "20 min"},
}

EXPANSION = {
    "newEdges": [
        {"source": "Calvin Cycle", "target": "RuBisCO"},
        {"source": "calvin  cycle", "target": "G3P"},
    ]
}

EXAM = {
    "exam": [
        {"id": 1, "type": "mcq", "question": "Pigment?", "options": ["Chlorophyll", "Keratin"], "correct": "Chlorophyll"},
        {"id": 2, "type": "mcq", "question": "Gas released?", "options": ["O2", "CO2"], "correct": "O2"},
        {"id": 3, "type": "mcq", "question": "Organelle?", "options": ["Chloroplast", "Ribosome"], "correct": "Chloroplast"},
        {"id": 4, "type": "text", "question": "Explain the Calvin cycle."},
        {"id": 5, "type": "text", "question": "Why are leaves green?"},
    ]
}

GRADING = {
    "score": "60/100",
    "feedback": "Good start.",
    "corrections": [
        {"questionId": 1, "status": "Correct", "remark": "Yes."},
        {"questionId": 2, "status": "Incorrect", "remark": "Oxygen is released."},
        {"questionId": 3, "status": "Correct", "remark": "Yes."},
        {"questionId": 4, "status": "Incorrect", "remark": "No answer given."},
        {"questionId": 5, "status": "Correct", "remark": "Chlorophyll reflects green."},
    ],
}


def as_reply(payload: dict, fenced: bool = False) -> str:
    text = json.dumps(payload)
    return f"```json\n{text}\n```" if fenced else text


def busy() -> ProviderError:
    return ProviderError("The model is overloaded.", provider_status=503)


class FakeProvider(TextProvider):
    """Scripted provider: each call pops the next reply (str or exception)."""

    name = "Fake"
    default_model = "fake-default"

    def __init__(self, replies=None, models=None, credentials=True):
        self.replies = list(replies or [])
        self.models = models
        self.credentials = credentials
        self.calls = []
        self.list_calls = 0

    @property
    def has_credentials(self) -> bool:
        return self.credentials

    async def list_models(self):
        self.list_calls += 1
        if isinstance(self.models, Exception):
            raise self.models
        return self.models or []

    def pick_model(self, models):
        for m in models:
            if "generateContent" in m.supported_generation_methods:
                return m.name
        return None

    async def generate_text(self, turns, model_id, json_mode=True):
        self.calls.append({"turns": turns, "model_id": model_id, "json_mode": json_mode})
        if not self.replies:
            raise AssertionError("FakeProvider ran out of scripted replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def make_engine(provider: FakeProvider, sleep: RecordingSleep, retry_on_malformed: bool = False) -> StudyEngine:
    return StudyEngine(
        provider,
        resolver=ModelResolver(provider, cache_seconds=0),
        orchestrator=RetryOrchestrator(
            provider,
            max_attempts=3,
            delay_seconds=2.5,
            busy_status=503,
            non_retryable=[],
            retry_on_malformed=retry_on_malformed,
            sleep=sleep,
        ),
    )
