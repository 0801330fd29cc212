import json
from types import SimpleNamespace

import pytest

from enhancer.utils.scraping.models import FetchResult


class FakeHTTPResponse:
    def __init__(self, status_code=200, text="", encoding="utf-8"):
        self.status_code = status_code
        self.text = text
        self.encoding = encoding
        self.headers = {"content-type": f"text/html; charset={encoding}"}


class FakeSession:
    """Stands in for requests.Session; replays responses (or raises exceptions) in order."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class FakeFetcher:
    def __init__(self):
        self.urls = []

    def fetch(self, url):
        self.urls.append(url)
        return FetchResult(url=url, title="Example", content="Page about " + url, content_quality_score=0.5)


def tool_call(call_id, name, arguments):
    if not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=arguments))


def chat_response(content=None, finish_reason="stop", tool_calls=None):
    message = SimpleNamespace(role="assistant", content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(finish_reason=finish_reason, message=message)])


class FakeCompletions:
    """Answers chat.completions.create with `respond(kwargs)` and records every call."""

    def __init__(self, respond):
        self.respond = respond
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        result = self.respond(kwargs)
        if isinstance(result, Exception):
            raise result
        return result


def fake_client(respond):
    completions = FakeCompletions(respond)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff sleeps instead of waiting."""
    recorded = []
    monkeypatch.setattr("time.sleep", lambda seconds: recorded.append(seconds))
    return recorded


@pytest.fixture
def fake_fetcher():
    return FakeFetcher()
