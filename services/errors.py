"""Shared structured error payload helpers and service exceptions."""
from __future__ import annotations

from typing import Any, Dict, Optional


class CompletionError(RuntimeError):
    """Raised when the completion API fails or returns nothing usable."""

    def __init__(self, message: str, *, attempts: int = 1):
        super().__init__(message)
        self.attempts = attempts


class MissingInputError(ValueError):
    """Raised when a generate request lacks a description or files."""


def error_payload(
    code: str,
    message: str,
    *,
    corr_id: str,
    hint: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Return a consistent error body for API responses."""
    payload: Dict[str, Any] = {"code": code, "message": message, "corr_id": corr_id}
    if hint:
        payload["hint"] = hint
    if extra:
        payload.update(extra)
    return payload
