from types import SimpleNamespace

import pytest

from chatforge.core.config import settings
from chatforge.services.openai_service import OpenAIService, resolve_model


class RecordingCompletions:
    def __init__(self):
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        return iter([
            SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content="hi"))], usage=None),
            SimpleNamespace(
                choices=[],
                usage=SimpleNamespace(prompt_tokens=3, completion_tokens=1, total_tokens=4),
            ),
        ])


@pytest.fixture
def completions():
    return RecordingCompletions()


@pytest.fixture
def service(completions):
    llm = OpenAIService()
    llm._clients["openrouter"] = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return llm


def test_max_tokens_defaults_to_current_setting(service, completions, monkeypatch):
    monkeypatch.setattr(settings, "CHAT_MAX_OUTPUT_TOKENS", 77)

    chunks = list(service.stream_chat("openrouter", "a/b", "sys", [{"role": "user", "content": "hey"}]))

    assert completions.kwargs["max_tokens"] == 77
    assert completions.kwargs["messages"][0] == {"role": "system", "content": "sys"}
    assert chunks[0].text == "hi"
    assert chunks[1].usage.total_tokens == 4


def test_explicit_max_tokens_wins(service, completions):
    list(service.stream_chat("openrouter", "a/b", "sys", [], max_tokens=5))

    assert completions.kwargs["max_tokens"] == 5


@pytest.mark.parametrize(
    "config, expected",
    [
        (None, ("openrouter", settings.DEFAULT_MODEL)),
        ({"provider": "openrouter", "model": "no-slash"}, ("openrouter", settings.DEFAULT_MODEL)),
        ({"provider": "openrouter", "model": "vendor/m"}, ("openrouter", "vendor/m")),
        ({"provider": "openai", "model": ""}, ("openai", settings.DEFAULT_OPENAI_MODEL)),
        ({"provider": "openai", "model": "gpt-4o-mini"}, ("openai", "gpt-4o-mini")),
    ],
)
def test_resolve_model(config, expected):
    assert resolve_model(config) == expected
