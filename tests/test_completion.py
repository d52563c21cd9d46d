from types import SimpleNamespace

import pytest

from askgate.config import Settings
from askgate.errors import UpstreamCompletionError
from askgate.services import completion as completion_mod
from askgate.services.completion import CompletionOrchestrator

from .utils import FakeCompletionClient


def test_complete_sends_single_user_turn():
    fake = FakeCompletionClient(answer=SimpleNamespace(content="4"))
    orchestrator = CompletionOrchestrator(fake)

    assert orchestrator.complete("2+2?") == "4"
    assert fake.calls == [[{"role": "user", "content": "2+2?"}]]


def test_complete_never_carries_history():
    fake = FakeCompletionClient(answer="ok")
    orchestrator = CompletionOrchestrator(fake)
    orchestrator.complete("first")
    orchestrator.complete("second")

    assert fake.calls[1] == [{"role": "user", "content": "second"}]


@pytest.mark.parametrize(
    "response,expected",
    [
        ("plain text", "plain text"),
        ({"choices": [{"message": {"role": "assistant", "content": "from dict"}}]}, "from dict"),
        (SimpleNamespace(content=[{"type": "text", "text": "a"}, {"type": "text", "text": "b"}]), "ab"),
    ],
)
def test_complete_extracts_answer_shapes(response, expected):
    assert CompletionOrchestrator(FakeCompletionClient(answer=response)).complete("q") == expected


@pytest.mark.parametrize(
    "response",
    [
        None,
        {"choices": []},
        {"choices": [{"message": {}}]},
        {"choices": ["oops"]},
        {"choices": [None]},
        {"choices": [{"message": "not a mapping"}]},
        {"choices": "oops"},
        SimpleNamespace(content=None),
        SimpleNamespace(content="   "),
    ],
)
def test_complete_without_answer_raises(response):
    with pytest.raises(UpstreamCompletionError):
        CompletionOrchestrator(FakeCompletionClient(answer=response)).complete("q")


def test_complete_wraps_client_errors():
    fake = FakeCompletionClient(error=TimeoutError("upstream hung up"))
    with pytest.raises(UpstreamCompletionError) as exc:
        CompletionOrchestrator(fake).complete("q")
    assert isinstance(exc.value.__cause__, TimeoutError)


def test_build_client_requires_api_key():
    with pytest.raises(RuntimeError):
        completion_mod.build_completion_client(Settings(openai_api_key=None))


def test_build_client_passes_settings(monkeypatch):
    captured = {}

    def _fake_chat_openai(**kwargs):
        captured.update(kwargs)
        return SimpleNamespace(invoke=lambda messages: "x")

    monkeypatch.setattr(completion_mod, "ChatOpenAI", _fake_chat_openai)
    completion_mod.build_completion_client(Settings(openai_api_key="sk-1", openai_model="gpt-4o-mini"))

    assert captured["api_key"] == "sk-1"
    assert captured["model"] == "gpt-4o-mini"
    assert captured["max_retries"] == 0
