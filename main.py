# ──────────────────────────────────────────────────────────────────────────────
# File: main.py
# Purpose: FastAPI entrypoint for the context generator (form + /api/generateContext)
#
# Guarantees
#   • Production-safe defaults: request IDs, gzip, access logs, timeouts.
#   • Single-source CORS (FRONTEND_ORIGINS) with solid preflight behavior.
#   • Health endpoints mounted EARLY and ALWAYS available (/livez, /readyz).
#   • Required routers fail-fast; optional routers fail-soft (log + continue).
#   • ClientDisconnect is not treated as an application error.
#
# Notes
#   • FRONTEND_ORIGINS must be set in prod; dev falls back to localhost:8000/3000.
#   • Keep this file small and boring; complex logic belongs in services/.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

# ── Stdlib --------------------------------------------------------------------
import importlib
import logging
import os
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from typing import Iterable, List, Optional

# ── Third-party ---------------------------------------------------------------
import anyio
from fastapi import APIRouter, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.requests import ClientDisconnect

# ── Local ---------------------------------------------------------------------
from routes.ui import FRONTEND_DIR
from services.errors import error_payload
from services.settings import get_settings
from utils.env import get_float, get_str, is_prod

# ── Logging -------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, get_str("LOG_LEVEL", default="INFO").upper(), logging.INFO),
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger("contextgen.main")

# Quiet noisy libs (no per-request httpx spam from the completion client)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("openai").setLevel(logging.WARNING)

DEV_ORIGINS = ["http://localhost:8000", "http://localhost:3000"]


def _parse_origins(value: Optional[str]) -> List[str]:
    """
    Parse FRONTEND_ORIGINS into a unique, ordered list.

    Accepts comma or whitespace separation. Returns [] if unset.
    """
    v = (value or "").strip()
    if not v:
        return []
    parts = [p.strip() for chunk in v.split(",") for p in chunk.split() if p.strip()]
    seen, out = set(), []
    for p in parts:
        if p not in seen:
            seen.add(p)
            out.append(p)
    return out


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ Middlewares                                                              ║
# ╚══════════════════════════════════════════════════════════════════════════╝

class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Attach a correlation ID to each request and echo it in the response headers.

    Header: X-Corr-Id (in/out)
    """
    async def dispatch(self, request: Request, call_next):
        cid = request.headers.get("x-corr-id") or f"{uuid.uuid4().hex[:8]}{int(time.time())%1000:03d}"
        request.state.corr_id = cid
        response = await call_next(request)
        response.headers["x-corr-id"] = cid
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """
    Minimal structured access log. Always logs a line, even on exceptions.

    Fields: method, path, cid, status, dur_ms
    """
    async def dispatch(self, request: Request, call_next):
        t0 = time.perf_counter()
        method = request.method
        path = request.url.path
        status = None
        try:
            response = await call_next(request)
            status = response.status_code
            return response
        finally:
            dur_ms = int((time.perf_counter() - t0) * 1000)
            cid = getattr(getattr(request, "state", None), "corr_id", "-")
            logger.info(
                "req method=%s path=%s cid=%s status=%s dur_ms=%s",
                method, path, cid, status if status is not None else "ERR", dur_ms
            )


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Per-request timeout. Default: 60s (HTTP_TIMEOUT_S); a completion call can be slow."""
    def __init__(self, app, timeout_s: float = 60.0):
        super().__init__(app)
        self.timeout_s = timeout_s

    async def dispatch(self, request: Request, call_next):
        response = None
        with anyio.move_on_after(self.timeout_s) as scope:
            response = await call_next(request)
        if scope.cancel_called or response is None:
            cid = getattr(request.state, "corr_id", None) or request.headers.get("x-corr-id") or "-"
            return JSONResponse(
                status_code=504,
                content=error_payload("timeout", "Request timeout", corr_id=cid),
                headers={"x-corr-id": cid},
            )
        return response


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ Router Inclusion                                                         ║
# ╚══════════════════════════════════════════════════════════════════════════╝
# Strategy:
#   • PRIMARY_ROUTERS must succeed; raise on failure (fail-fast).
#   • OPTIONAL_ROUTERS are nice-to-have; log + continue on failure.

PRIMARY_ROUTERS: Iterable[str] = (
    "routes.generate_context",
)

OPTIONAL_ROUTERS: Iterable[str] = (
    "routes.ui",
    # NOTE: routes.health is mounted early in create_app(); do not mount it again.
)


def _include(app: FastAPI, router_path: str, *, required: bool) -> None:
    """
    Import and mount a router by module path.

    • required=True → raises on any error (service should not run without it)
    • required=False → logs full traceback and continues
    """
    try:
        module = importlib.import_module(router_path)
        router = getattr(module, "router", None)
        if router is None or not isinstance(router, APIRouter):
            msg = f"no/invalid 'router' in {router_path}"
            if required:
                raise ImportError(msg)
            logger.warning("Router skipped (%s): %s", router_path, msg)
            return
        app.include_router(router)
        logger.info("Router enabled: %s", router_path)
    except Exception as e:
        if required:
            logger.exception("Required router failed: %s", router_path)
            raise
        logger.error("Router skipped (%s): %s\n%s", router_path, e, traceback.format_exc())


# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ App Factory (Lifespan, CORS, Health, Middlewares)                        ║
# ╚══════════════════════════════════════════════════════════════════════════╝

def create_app() -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: log the completion wiring (never the key).
        Shutdown: close the shared completion client, if one was built.
        """
        s = get_settings()
        logger.info(
            "startup env=%s commit=%s model=%s base_url=%s api_key_present=%s",
            s.env, get_str("GIT_COMMIT", default="unknown"), s.model, s.base_url, s.api_key_present,
        )
        if not s.api_key_present:
            logger.warning("TOGETHER_API_KEY is not set; /api/generateContext will fail with 500")
        yield
        from services import completion_client
        client = getattr(completion_client, "_client", None)
        close = getattr(client, "close", None)
        if close is not None:
            try:
                await close()
            except Exception as e:
                logger.warning("completion client close failed: %s", e)
        completion_client.set_client(None)

    app = FastAPI(title="Context Generator", lifespan=lifespan)

    # ── CORS (MUST be before include_router) ----------------------------------
    allow_origins = _parse_origins(os.getenv("FRONTEND_ORIGINS"))
    env = get_settings().env
    if not allow_origins:
        if is_prod(env):
            raise RuntimeError("CORS misconfiguration: FRONTEND_ORIGINS is required in prod")
        allow_origins = list(DEV_ORIGINS)

    logger.info("CORS allow_origins=%s app_env=%s", allow_origins, env)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["content-type", "x-corr-id", "x-request-id"],
        expose_headers=["x-corr-id"],
        max_age=600,
    )

    # ── Core Middlewares -------------------------------------------------------
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(TimeoutMiddleware, timeout_s=get_float("HTTP_TIMEOUT_S", 60.0))

    # ── Health (mount EARLY and ALWAYS) ---------------------------------------
    try:
        from routes.health import router as health_router  # /livez, /readyz
        app.include_router(health_router)
    except Exception as e:
        logger.exception("Failed to mount health router: %s", e)
        raise

    for rp in PRIMARY_ROUTERS:
        _include(app, rp, required=True)
    for rp in OPTIONAL_ROUTERS:
        _include(app, rp, required=False)

    # ── Frontend assets -------------------------------------------------------
    if FRONTEND_DIR.is_dir():
        app.mount("/static", StaticFiles(directory=str(FRONTEND_DIR)), name="static")
    else:
        logger.warning("frontend directory missing: %s", FRONTEND_DIR)

    # ── ClientDisconnect is not an error --------------------------------------
    @app.exception_handler(ClientDisconnect)
    async def _client_disconnect_handler(_: Request, __: ClientDisconnect):
        # Client dropped mid-request; keep logs clean.
        return Response(status_code=204)

    return app


# Instantiate the app (used by ASGI server)
app = create_app()
