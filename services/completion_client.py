# File: completion_client.py
# Directory: services
# Purpose: Async client for the chat-completion API (Together AI, OpenAI-compatible)
#          returning the raw JSON text of the first choice.
#
# Upstream:
#   - ENV (required): TOGETHER_API_KEY
#   - ENV (optional): COMPLETION_BASE_URL, COMPLETION_MODEL, COMPLETION_TEMPERATURE,
#                     COMPLETION_MAX_ATTEMPTS, COMPLETION_TIMEOUT_S
#   - ENV (optional, connection limits):
#       COMPLETION_MAX_KEEPALIVE     (default 20)
#       COMPLETION_MAX_CONNECTIONS   (default 100)
#   - Imports: httpx, openai, services.settings
#
# Downstream:
#   - services.context_generator
#   - routes.health (configuration snapshot only)
#
# Contents:
#   - create_completion_client()
#   - get_client() / set_client()
#   - chat_json()
#
# Notes:
#   - httpx does NOT support `AsyncHTTPTransport(retries=...)`; logical retries live in
#     chat_json() and the SDK's own retries are disabled so attempts are counted once.
#   - Keep a single AsyncClient for connection reuse/keep-alive. The OpenAI SDK will use it.

from __future__ import annotations

import asyncio
import random
from typing import Any, Optional

import httpx
from openai import AsyncOpenAI

from core.logging import log_event
from services.errors import CompletionError
from services.settings import Settings, get_settings
from utils.env import get_float, get_int

_TRANSIENT = ("timeout", "timed out", "temporar", "rate limit", "unavailable", "again", "overloaded", "429", "503")

_client: Optional[Any] = None


def _is_transient(ex: Exception) -> bool:
    if isinstance(ex, (asyncio.TimeoutError, httpx.TimeoutException)):
        return True
    return any(k in str(ex).lower() for k in _TRANSIENT)


def _jitter(n: int, base=0.25, cap=2.5) -> float:
    return min(cap, base * (2 ** n)) * random.random()


def create_completion_client(settings: Optional[Settings] = None) -> AsyncOpenAI:
    """
    Return an AsyncOpenAI client pointed at the completion API, using an
    httpx.AsyncClient with explicit timeouts and limits.
    """
    s = settings or get_settings()
    t = s.timeout_s
    timeout = httpx.Timeout(connect=min(10.0, t), read=t, write=t, pool=t)
    limits = httpx.Limits(
        max_keepalive_connections=get_int("COMPLETION_MAX_KEEPALIVE", 20),
        max_connections=get_int("COMPLETION_MAX_CONNECTIONS", 100),
        keepalive_expiry=get_float("COMPLETION_KEEPALIVE_EXPIRY", 30.0),
    )
    http_client = httpx.AsyncClient(timeout=timeout, limits=limits)
    return AsyncOpenAI(
        api_key=s.api_key or "missing",
        base_url=s.base_url,
        http_client=http_client,
        max_retries=0,
    )


def get_client():
    """Lazily build the module singleton."""
    global _client
    if _client is None:
        s = get_settings()
        if not s.api_key_present:
            raise CompletionError("TOGETHER_API_KEY is not configured", attempts=0)
        _client = create_completion_client(s)
    return _client


def set_client(client) -> None:
    """Swap the singleton (tests, alternate providers). None resets it."""
    global _client
    _client = client


async def chat_json(
    *,
    system: str,
    user: str,
    settings: Optional[Settings] = None,
) -> str:
    """
    Run one chat completion in JSON mode and return the first choice's text.

    Raises CompletionError on empty content or after exhausting retries.
    """
    s = settings or get_settings()
    cli = get_client()
    attempts = 0
    last_exc: Optional[Exception] = None

    while attempts < s.max_attempts:
        attempts += 1
        try:
            resp = await cli.chat.completions.create(
                model=s.model,
                temperature=s.temperature,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
                response_format={"type": "json_object"},
            )
        except Exception as ex:
            last_exc = ex
            if not _is_transient(ex) or attempts >= s.max_attempts:
                break
            log_event("completion_retry", {"attempt": attempts, "error": str(ex)})
            await asyncio.sleep(_jitter(attempts))
            continue

        choices = getattr(resp, "choices", None) or []
        message = getattr(choices[0], "message", None) if choices else None
        text = getattr(message, "content", None) or ""
        if not text:
            raise CompletionError("No response from AI", attempts=attempts)
        return text

    raise CompletionError(
        f"completion failed after {attempts} attempts: {last_exc}", attempts=attempts
    ) from last_exc
