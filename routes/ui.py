# File: routes/ui.py
# Purpose: Serve the browser form (frontend/index.html) at "/".
#          Static assets are mounted separately under /static by main.create_app().

from pathlib import Path

from fastapi import APIRouter, HTTPException
from fastapi.responses import FileResponse

FRONTEND_DIR = Path(__file__).resolve().parents[1] / "frontend"
INDEX_HTML = FRONTEND_DIR / "index.html"

router = APIRouter(tags=["ui"])


@router.get("/", include_in_schema=False)
def index():
    if not INDEX_HTML.is_file():
        raise HTTPException(status_code=404, detail="frontend not bundled")
    return FileResponse(INDEX_HTML, media_type="text/html")
