# File: test_context_generator.py
# Directory: tests
# Purpose: End-to-end generate_context() against a fake completion client:
#          relay of model JSON, fenced JSON, fallback, and error propagation.

import json

import pytest

from services.context_builder import NO_DEPENDENCIES, SYSTEM_PROMPT, SourceFile
from services.context_generator import generate_context, parse_context
from services.errors import CompletionError, MissingInputError

from conftest import GOOD_CONTEXT


def _files():
    pkg = json.dumps({"dependencies": {"next": "14", "react": "18"}})
    return [SourceFile("package.json", pkg), SourceFile("app/page.tsx", "Z" * 2500)]


def test_parse_context_unwraps_fenced_json():
    raw = "```json\n" + json.dumps({"a": 1}) + "\n```"
    assert parse_context(raw) == {"a": 1}


def test_parse_context_rejects_non_objects():
    assert parse_context("[1, 2]") is None
    assert parse_context("not json at all") is None


@pytest.mark.asyncio
async def test_model_json_is_relayed(fake_json_ok):
    out = await generate_context("A todo app", _files())
    assert out == GOOD_CONTEXT


@pytest.mark.asyncio
async def test_request_uses_fixed_parameters_and_prompt(fake_json_ok):
    await generate_context("A todo app", _files())
    call = fake_json_ok.calls[0]
    assert call["model"] == "meta-llama/Meta-Llama-3.1-8B-Instruct-Turbo"
    assert call["temperature"] == 0.2
    assert call["response_format"] == {"type": "json_object"}
    system, user = call["messages"]
    assert system == {"role": "system", "content": SYSTEM_PROMPT}
    assert user["role"] == "user"
    assert '"A todo app"' in user["content"]
    assert "Here are the dependencies found: next, react" in user["content"]
    assert "Z" * 2000 + "..." in user["content"]
    assert "Z" * 2001 not in user["content"]


@pytest.mark.asyncio
async def test_extra_keys_from_model_are_kept(install_client):
    install_client(json.dumps({**GOOD_CONTEXT, "risks": "none"}))
    out = await generate_context("desc", _files())
    assert out["risks"] == "none"


@pytest.mark.asyncio
async def test_unparseable_reply_falls_back(install_client):
    install_client("Sure! Here is your context: projectSummary=...")
    out = await generate_context("My project", _files())
    assert out == {
        "projectSummary": "My project",
        "techStack": "Unable to determine from provided files",
        "dependencies": "next, react",
        "fileStructure": "package.json, app/page.tsx",
        "coreLogic": "Unable to analyze from provided files",
    }


@pytest.mark.asyncio
async def test_array_reply_falls_back_without_package_json(install_client):
    install_client("[]")
    out = await generate_context("desc", [SourceFile("main.py", "print(1)")])
    assert out["dependencies"] == NO_DEPENDENCIES
    assert out["fileStructure"] == "main.py"


@pytest.mark.asyncio
async def test_empty_reply_raises(install_client):
    install_client("")
    with pytest.raises(CompletionError, match="No response from AI"):
        await generate_context("desc", _files())


@pytest.mark.asyncio
async def test_missing_input_raises():
    with pytest.raises(MissingInputError):
        await generate_context("   ", _files())
    with pytest.raises(MissingInputError):
        await generate_context("desc", [])


@pytest.mark.asyncio
async def test_max_file_chars_is_configurable(monkeypatch, fake_json_ok):
    monkeypatch.setenv("MAX_FILE_CHARS", "10")
    await generate_context("desc", [SourceFile("a.txt", "q" * 50)])
    user = fake_json_ok.calls[0]["messages"][1]["content"]
    assert "q" * 10 + "..." in user
    assert "q" * 11 not in user


def test_parse_context_deeply_nested_reply_is_none():
    assert parse_context("[" * 100000 + "]" * 100000) is None


@pytest.mark.asyncio
async def test_deeply_nested_reply_falls_back(install_client):
    install_client("{\"a\": " + "[" * 100000 + "]" * 100000 + "}")
    out = await generate_context("desc", [SourceFile("main.py", "print(1)")])
    assert out["projectSummary"] == "desc"
    assert out["fileStructure"] == "main.py"


@pytest.mark.asyncio
async def test_whitespace_reply_falls_back(install_client):
    install_client("   \n ")
    out = await generate_context("desc", [SourceFile("main.py", "print(1)")])
    assert out["projectSummary"] == "desc"
    assert out["dependencies"] == NO_DEPENDENCIES
