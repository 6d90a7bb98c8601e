# ──────────────────────────────────────────────────────────────────────────────
# File: services/context_generator.py
# Purpose: One generate-context round trip:
#          files + description → prompt → completion API → context JSON
#
# Guarantees
#   • Always returns a JSON object (model output or the hand-built fallback).
#   • Completion failures propagate (CompletionError); only parsing falls back.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Dict, Optional, Sequence

from core.logging import log_event
from services import completion_client
from services.context_builder import (
    CONTEXT_KEYS,
    SYSTEM_PROMPT,
    SourceFile,
    build_file_section,
    build_prompt,
    extract_dependencies,
    fallback_context,
)
from services.errors import MissingInputError
from services.settings import Settings, get_settings

logger = logging.getLogger("contextgen.generator")

_FENCE_RE = re.compile(r"^\s*```(?:json)?\s*\n(.*?)\n?```\s*$", re.DOTALL | re.IGNORECASE)


def _strip_fence(text: str) -> str:
    m = _FENCE_RE.match(text)
    return m.group(1) if m else text


def parse_context(raw: str) -> Optional[Dict[str, Any]]:
    """Parse the model reply. None when it is not a JSON object."""
    try:
        value = json.loads(_strip_fence(raw))
    except (ValueError, RecursionError):
        return None
    return value if isinstance(value, dict) else None


async def generate_context(
    description: str,
    files: Sequence[SourceFile],
    *,
    corr_id: str = "-",
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    if not (description or "").strip() or not files:
        raise MissingInputError("Project description and files are required")

    s = settings or get_settings()
    t0 = time.perf_counter()

    dependencies = extract_dependencies(files)
    file_section = build_file_section(files, s.max_file_chars)
    prompt = build_prompt(description, dependencies, file_section)

    log_event("context_request", {
        "corr_id": corr_id,
        "files": len(files),
        "prompt_chars": len(prompt),
        "model": s.model,
    })

    raw = await completion_client.chat_json(system=SYSTEM_PROMPT, user=prompt, settings=s)

    context = parse_context(raw)
    fallback = context is None
    if fallback:
        logger.warning("model reply was not a JSON object cid=%s chars=%d", corr_id, len(raw))
        log_event("context_parse_failed", {"corr_id": corr_id, "preview": raw[:200]}, level=logging.WARNING)
        context = fallback_context(description, dependencies, files)

    log_event("context_generated", {
        "corr_id": corr_id,
        "fallback": fallback,
        "missing_keys": [k for k in CONTEXT_KEYS if k not in context],
        "dur_ms": int((time.perf_counter() - t0) * 1000),
    })
    return context
