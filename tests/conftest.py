# File: conftest.py
# Directory: tests
# Purpose: Shared test fixtures: fake OpenAI-shaped completion client, env
#          defaults, and a TestClient over the real app factory.
#
# Notes:
# - We swap the `services.completion_client` singleton via set_client().
# - FakeCompletionClient returns simple shaped responses compatible with our code
#   and records every create() call for assertions.

import json
import types

import pytest
from fastapi.testclient import TestClient

from services import completion_client

# --- Fake OpenAI ------------------------------------------------------------------------------

class _Msg:
    def __init__(self, content):
        self.content = content
class _Choice:
    def __init__(self, content):
        self.message = _Msg(content)
class _Resp:
    def __init__(self, content):
        self.choices = [_Choice(content)]

class FakeChatCompletions:
    def __init__(self, payloads):
        # each entry is a str (returned as content) or an Exception (raised)
        self._payloads = list(payloads)
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        item = self._payloads.pop(0) if len(self._payloads) > 1 else self._payloads[0]
        if isinstance(item, Exception):
            raise item
        return _Resp(item)

class FakeCompletionClient:
    def __init__(self, *payloads):
        self.completions = FakeChatCompletions(payloads)
        self.chat = types.SimpleNamespace(completions=self.completions)

    @property
    def calls(self):
        return self.completions.calls


GOOD_CONTEXT = {
    "projectSummary": "A todo app with auth.",
    "techStack": "Next.js, React, Tailwind CSS",
    "dependencies": "next, react",
    "fileStructure": "app/page.tsx renders the UI.",
    "coreLogic": "The page posts to an API route.",
}


@pytest.fixture(autouse=True)
def _env(monkeypatch):
    """Deterministic env for every test; no real key, no prod."""
    monkeypatch.setenv("TOGETHER_API_KEY", "test-key")
    monkeypatch.setenv("ENV", "test")
    for name in ("APP_ENV", "COMPLETION_API_KEY", "COMPLETION_MODEL", "COMPLETION_BASE_URL",
                 "COMPLETION_TEMPERATURE", "COMPLETION_MAX_ATTEMPTS", "MAX_FILE_CHARS",
                 "FRONTEND_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(completion_client, "_jitter", lambda n: 0)
    yield
    completion_client.set_client(None)


@pytest.fixture
def install_client():
    """install_client(*payloads) → FakeCompletionClient wired as the singleton."""
    def _install(*payloads):
        fake = FakeCompletionClient(*payloads)
        completion_client.set_client(fake)
        return fake
    return _install


@pytest.fixture
def fake_json_ok(install_client):
    return install_client(json.dumps(GOOD_CONTEXT))


@pytest.fixture
def client():
    from main import create_app
    return TestClient(create_app())
