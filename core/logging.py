# File: logging.py
# Directory: core
# Purpose: Structured JSON event logging for routes/services. Ensures payloads
#          are always serializable and timestamped.
#
# Upstream:
#   - Imports: datetime, json, logging
#   - Callers: routes.generate_context, services.*, cli
#
# Downstream:
#   - "contextgen.events" logger (stdout via root handler / container logs)
#
# Contents:
#   - log_event(event_type: str, payload: dict)

import datetime
import json
import logging
from typing import Any, Dict, Optional

_EVENTS = logging.getLogger("contextgen.events")


def _safe(obj: Any) -> Any:
    """
    Ensure object is JSON-serializable.
    If not, fall back to str() wrapped in a dict.
    """
    try:
        json.dumps(obj)
        return obj
    except Exception:
        try:
            return {"_repr": str(obj)}
        except Exception:
            return {"_repr": "<unserializable>"}


def log_event(event_type: str, payload: Optional[Dict[str, Any]] = None, *, level: int = logging.INFO) -> None:
    """
    Emit a structured log line.
    Example:
      {"timestamp":"2026-10-17T20:11:02.123Z","event":"context_generated","details":{...}}
    """
    ts = datetime.datetime.now(datetime.timezone.utc).isoformat().replace("+00:00", "Z")
    record = {
        "timestamp": ts,
        "event": event_type,
        "details": _safe(payload or {}),
    }
    try:
        _EVENTS.log(level, json.dumps(record, ensure_ascii=False))
    except Exception:
        # Last resort: minimal fallback line
        _EVENTS.log(level, '{"timestamp":"%s","event":"%s","details":"<logging failure>"}', ts, event_type)
