"""FastAPI web interface for the diagram link injector.

Access is controlled by a token in the URL path:
    http://host:8080/<LINKS_WEB_TOKEN>/

Set the LINKS_WEB_TOKEN environment variable to the token string that users
must include in their URL.  If the variable is unset every request is allowed
and the routes are also served at the root (useful for local development).

Routes (all prefixed with /{token}):
    GET  /              Upload form
    POST /link          Upload an SVG → linked SVG download
    POST /api/link      Upload an SVG → JSON summary of the linked groups
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse, Response
from fastapi.templating import Jinja2Templates

from linker.config import templates_from_env
from linker.inject import DiagramError
from linker.main import MODES, link_document

logger = logging.getLogger(__name__)

# ── Configuration ───────────────────────────────────────────────────────────────

_VALID_TOKEN: str = os.environ.get("LINKS_WEB_TOKEN", "")
_BASE_PATH: str = (os.environ.get("LINKS_BASE_PATH", "") or "").rstrip("/")
_MAX_UPLOAD_BYTES: int = int(os.environ.get("LINKS_MAX_UPLOAD_MB", "20")) * 1024 * 1024
_TEMPLATES_DIR = Path(__file__).parent / "templates"

_LINK_TEMPLATES = templates_from_env()

_UNSAFE_FILENAME_RE = re.compile(r"[^\w.\-]+")

# ── App ─────────────────────────────────────────────────────────────────────────

app = FastAPI(title="Diagram Links", docs_url=None, redoc_url=None)
templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))


# ── Helpers ─────────────────────────────────────────────────────────────────────

def _check_token(token: str) -> None:
    if _VALID_TOKEN and token != _VALID_TOKEN:
        raise HTTPException(status_code=403, detail="Invalid access token")


def _url_prefix(token: str) -> str:
    return (_BASE_PATH or "") + (f"/{token}" if token else "")


def _download_name(filename: str | None) -> str:
    name = Path(filename or "diagram.svg").name
    name = _UNSAFE_FILENAME_RE.sub("_", name) or "diagram.svg"
    if not name.lower().endswith(".svg"):
        name += ".svg"
    return f"linked-{name}"


async def _link_upload(diagram: UploadFile, mode: str):
    if mode not in MODES:
        raise HTTPException(status_code=400, detail=f"Unknown mode {mode!r}, expected one of {', '.join(MODES)}")
    data = await diagram.read(_MAX_UPLOAD_BYTES + 1)
    if len(data) > _MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Diagram too large")
    try:
        return link_document(data, mode=mode, templates=_LINK_TEMPLATES)
    except DiagramError as e:
        logger.info("rejected upload %s: %s", diagram.filename, e)
        raise HTTPException(status_code=400, detail=str(e)) from e


def _render_index(request: Request, token: str):
    ctx = {
        "token": token,
        "base_path": _BASE_PATH,
        "url_prefix": _url_prefix(token),
        "modes": MODES,
        "link_templates": _LINK_TEMPLATES,
    }
    return templates.TemplateResponse(request, "index.html", ctx)


async def _link_response(diagram: UploadFile, mode: str) -> Response:
    out, result = await _link_upload(diagram, mode)
    return Response(
        content=out,
        media_type="image/svg+xml",
        headers={
            "Content-Disposition": f'attachment; filename="{_download_name(diagram.filename)}"',
            "X-Linked-Groups": str(result.linked),
        },
    )


async def _api_response(diagram: UploadFile, mode: str) -> JSONResponse:
    _out, result = await _link_upload(diagram, mode)
    summary = result.as_dict(_LINK_TEMPLATES)
    summary["mode"] = mode
    summary["filename"] = diagram.filename
    return JSONResponse(summary)


# ── Health check ────────────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok"}


# ── Routes ──────────────────────────────────────────────────────────────────────

# When LINKS_WEB_TOKEN is unset, serve at / or /{base_path}/ (no token in URL)
if not _VALID_TOKEN:
    _PREFIX = _BASE_PATH or ""

    @app.get(_PREFIX + "/", response_class=HTMLResponse)
    async def index_root(request: Request):
        return _render_index(request, "")

    @app.post(_PREFIX + "/link")
    async def link_root(diagram: UploadFile = File(...), mode: str = Form("static")):
        return await _link_response(diagram, mode)

    @app.post(_PREFIX + "/api/link")
    async def api_link_root(diagram: UploadFile = File(...), mode: str = Form("static")):
        return await _api_response(diagram, mode)


@app.get("/{token}/", response_class=HTMLResponse)
async def index(token: str, request: Request):
    _check_token(token)
    return _render_index(request, token)


@app.post("/{token}/link")
async def link(token: str, diagram: UploadFile = File(...), mode: str = Form("static")):
    _check_token(token)
    return await _link_response(diagram, mode)


@app.post("/{token}/api/link")
async def api_link(token: str, diagram: UploadFile = File(...), mode: str = Form("static")):
    _check_token(token)
    return await _api_response(diagram, mode)
