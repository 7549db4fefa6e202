from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from news_headlines.config import EnhancerConfig, Settings


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def enabled_settings():
    return Settings(enhancer=EnhancerConfig(enabled=True, api_key="sk-test"))


@pytest.fixture
def rewriting_client():
    """OpenAI stand-in that upper-cases every heading it receives."""
    client = MagicMock()

    def create(model, temperature, messages):
        prompt = messages[-1]["content"]
        headings = prompt.split("Headlines:\n", 1)[1].strip().splitlines()
        content = "\n".join(heading.upper() for heading in headings)
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=content))]
        )

    client.chat.completions.create.side_effect = create
    return client
