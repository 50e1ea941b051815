from helpers import FakeProvider
from studyai.core.config import Settings
from studyai.services.model_resolver import ModelResolver
from studyai.services.providers import GeminiProvider, GroqProvider, ModelInfo


async def test_uses_listed_model():
    provider = FakeProvider(models=[
        ModelInfo(name="embedder", supported_generation_methods=["embedContent"]),
        ModelInfo(name="fake-flash", supported_generation_methods=["generateContent"]),
    ])
    assert await ModelResolver(provider, cache_seconds=0).resolve_model() == "fake-flash"


async def test_listing_failure_falls_back_to_default():
    provider = FakeProvider(models=RuntimeError("network down"))
    assert await ModelResolver(provider, cache_seconds=0).resolve_model() == "fake-default"


async def test_no_match_falls_back_to_default():
    provider = FakeProvider(models=[ModelInfo(name="embedder", supported_generation_methods=["embedContent"])])
    assert await ModelResolver(provider, cache_seconds=0).resolve_model() == "fake-default"


async def test_result_is_cached():
    now = [100.0]
    provider = FakeProvider(models=[ModelInfo(name="fake-flash", supported_generation_methods=["generateContent"])])
    resolver = ModelResolver(provider, cache_seconds=60, clock=lambda: now[0])

    await resolver.resolve_model()
    await resolver.resolve_model()
    assert provider.list_calls == 1

    now[0] += 61
    await resolver.resolve_model()
    assert provider.list_calls == 2


def test_gemini_picks_generation_capable_family():
    gemini = GeminiProvider(Settings(GOOGLE_API_KEY=None))
    models = [
        ModelInfo(name="models/embedding-001", supported_generation_methods=["embedContent"]),
        ModelInfo(name="models/gemini-1.0-ultra", supported_generation_methods=["generateContent"]),
        ModelInfo(name="models/gemini-1.5-flash-latest", supported_generation_methods=["generateContent"]),
    ]
    assert gemini.pick_model(models) == "gemini-1.5-flash-latest"


def test_groq_picks_family():
    groq = GroqProvider(Settings(GROQ_API_KEY=None))
    models = [ModelInfo(name="whisper-large-v3"), ModelInfo(name="llama-3.1-8b-instant")]
    assert groq.pick_model(models) == "llama-3.1-8b-instant"
    assert not groq.has_credentials
