# ──────────────────────────────────────────────────────────────────────────────
# File: routes/health.py
# Purpose: Liveness (/livez) and Readiness (/readyz) probes for Ops/Deploy
#          • /livez: simple heartbeat (no dependencies)
#          • /readyz: descriptive snapshot of runtime wiring that never crashes
#            - Completion API: key present (never echoed), model, base URL
#            - CORS: env list + detected CORSMiddleware settings (if mounted)
#            - Routes: count of mounted FastAPI routes (helps detect router drift)
#
# Contract:
#   • Status code 200 when generally OK.
#   • In PROD only: 503 if the completion API key is missing.
#   • In non-prod: never blocks; issues listed in payload for visibility.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from services.settings import get_settings
from utils.env import get_list, get_str, is_prod

router = APIRouter(tags=["health"])


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Helper Utilities                                                         │
# ╰──────────────────────────────────────────────────────────────────────────╯

def _cors_middleware_snapshot(app) -> Dict[str, Any]:
    """Extract CORSMiddleware options if present; otherwise report detected=False."""
    try:
        for m in getattr(app, "user_middleware", []):
            if getattr(m.cls, "__name__", "") == "CORSMiddleware":
                opts = dict(getattr(m, "kwargs", None) or getattr(m, "options", None) or {})
                return {
                    "detected": True,
                    "allow_origins": opts.get("allow_origins"),
                    "allow_methods": opts.get("allow_methods"),
                    "expose_headers": opts.get("expose_headers"),
                    "max_age": opts.get("max_age"),
                }
    except Exception:
        pass
    return {"detected": False}


def _walk_api_routes(routes, depth: int = 0):
    """
    Yield APIRoute entries, descending into wrapped/included routers.

    Newer FastAPI releases keep included routers as wrapper objects exposing
    `.routes` (or `.router.routes`) instead of flattening them.
    """
    from fastapi.routing import APIRoute

    if depth > 8:
        return
    for r in routes or []:
        if isinstance(r, APIRoute):
            yield r
            continue
        nested = getattr(r, "routes", None)
        if nested is None:
            nested = getattr(getattr(r, "router", None), "routes", None)
        if nested:
            yield from _walk_api_routes(nested, depth + 1)


def _routes_count(app) -> Optional[int]:
    """Count APIRoute entries (helps detect router mount drift)."""
    try:
        return sum(1 for _ in _walk_api_routes(app.router.routes))
    except Exception:
        return None


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Endpoints                                                                │
# ╰──────────────────────────────────────────────────────────────────────────╯

@router.get("/livez", summary="Liveness probe")
def livez() -> Dict[str, Any]:
    """Simple heartbeat; indicates process is up and serving requests."""
    return {"ok": True, "ts": int(time.time())}


@router.get("/readyz", summary="Readiness probe")
def readyz(request: Request) -> JSONResponse:
    """
    Readiness snapshot used by deploy/ops. Descriptive and resilient:
      • Never raises; always returns JSON.
      • In prod, returns 503 when the completion API cannot be called.
    """
    s = get_settings()

    ok = True
    problems: List[str] = []
    if not s.api_key_present:
        problems.append("completion_api_key_missing")
        if is_prod(s.env):
            ok = False

    payload = {
        "ok": ok,
        "env": s.env,
        "service": get_str("SERVICE_NAME", default="contextgen"),
        "version": get_str("RELEASE", default="dev"),
        "ts": int(time.time()),
        "completion": {
            "api_key_present": s.api_key_present,
            "base_url": s.base_url,
            "model": s.model,
            "temperature": s.temperature,
            "max_attempts": s.max_attempts,
        },
        "max_file_chars": s.max_file_chars,
        "details": {
            "cors_env_frontend_origins": get_list("FRONTEND_ORIGINS", []),
            "cors_middleware": _cors_middleware_snapshot(request.app),
            "routes_count": _routes_count(request.app),
        },
        "problems": problems,
    }
    return JSONResponse(status_code=(200 if ok else 503), content=payload)
