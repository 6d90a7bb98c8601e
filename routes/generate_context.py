# ──────────────────────────────────────────────────────────────────────────────
# File: routes/generate_context.py
# Purpose: POST /api/generateContext: multipart upload → context JSON
#          • Fields: projectDescription (text), files (repeated file parts)
#          • 400 when description is blank or no files were sent
#          • 500 (structured error payload) on any completion/processing failure
#
# Notes
#   • Unreadable file parts are logged and skipped, not fatal.
#   • The model's JSON is relayed as-is; fallback shape lives in services.
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import logging
import uuid
from typing import List

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import UploadFile

from core.logging import log_event
from services.context_builder import SourceFile
from services.context_generator import generate_context
from services.errors import MissingInputError, error_payload
from services.request_models import ContextFile, ErrorEnvelope

router = APIRouter(prefix="/api", tags=["context"])
logger = logging.getLogger("contextgen.routes.generate_context")

MISSING_INPUT_MESSAGE = "Project description and files are required"
FAILED_MESSAGE = "Failed to generate context"


def _corr_id(request: Request) -> str:
    return getattr(request.state, "corr_id", None) or uuid.uuid4().hex[:12]


async def _read_uploads(uploads: List[UploadFile], corr_id: str) -> List[SourceFile]:
    files: List[SourceFile] = []
    for up in uploads:
        name = up.filename or "unnamed"
        try:
            data = await up.read()
        except Exception as e:
            log_event("file_read_failed", {"corr_id": corr_id, "filename": name, "error": str(e)},
                      level=logging.ERROR)
            continue
        finally:
            await up.close()
        files.append(SourceFile.from_bytes(name, data))
    return files


def _missing_input(corr_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=error_payload("missing_input", MISSING_INPUT_MESSAGE, corr_id=corr_id),
    )


@router.post(
    "/generateContext",
    summary="Generate a context file from uploaded sources",
    responses={
        200: {"model": ContextFile},
        400: {"model": ErrorEnvelope},
        500: {"model": ErrorEnvelope},
    },
)
async def generate_context_route(request: Request):
    corr_id = _corr_id(request)
    try:
        form = await request.form()
        description = form.get("projectDescription")
        uploads = [u for u in form.getlist("files") if isinstance(u, UploadFile)]

        if not isinstance(description, str) or not description.strip() or not uploads:
            return _missing_input(corr_id)

        files = await _read_uploads(uploads, corr_id)
        context = await generate_context(description, files, corr_id=corr_id)
        return JSONResponse(status_code=200, content=context)

    except MissingInputError:
        # every upload failed to read
        return _missing_input(corr_id)
    except Exception as e:
        logger.exception("Error in generateContext cid=%s: %s", corr_id, e)
        return JSONResponse(
            status_code=500,
            content=error_payload("generate_failed", FAILED_MESSAGE, corr_id=corr_id),
        )
