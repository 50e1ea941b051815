import pytest

from helpers import FakeProvider, RecordingSleep, make_engine
from studyai.services.providers import ModelInfo


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def provider():
    return FakeProvider(models=[ModelInfo(name="fake-flash", supported_generation_methods=["generateContent"])])


@pytest.fixture
def engine(provider, sleep):
    return make_engine(provider, sleep)
