"""Portrait Studio — FastAPI Application.

This module is the entry point of the web front end.  It defines the FastAPI
``app`` instance, all REST API routes, and the ``main()`` CLI function that
launches the uvicorn server.

Architecture
------------
- **Sessions** live in memory in a :class:`SessionStore` on ``app.state``.
  A browser tab creates one session and drives it through
  upload → analyse → review → generate → done.
- **Model calls** go through the shared :class:`StudioClient`.  The SDK is
  blocking, so every call runs in a worker thread via ``asyncio.to_thread``
  and the event loop stays free to serve ``DELETE`` and polling requests.
- **Static assets** (CSS, JS) are served by FastAPI's ``StaticFiles``.
- **The HTML page** is served as a raw ``HTMLResponse``; all dynamic data is
  fetched by the frontend from ``/api/config`` and ``/api/sessions``.

Endpoints
---------
========  ======================================  ================================
Method    Path                                    Purpose
========  ======================================  ================================
GET       ``/``                                   Serve the main HTML page
GET       ``/api/config``                         Models, set labels, status
POST      ``/api/sessions``                       Create an empty session
GET       ``/api/sessions/{id}``                  Session snapshot
POST      ``/api/sessions/{id}/upload``           Upload a portrait and analyse it
POST      ``/api/sessions/{id}/run``              Generate the planned images
DELETE    ``/api/sessions/{id}``                  Reset the session (Delete button)
GET       ``/api/sessions/{id}/original``         Uploaded image bytes
GET       ``/api/sessions/{id}/images/{image}``   Generated image bytes
========  ======================================  ================================

Usage
-----
CLI (installed entry point)::

    portraitstudio-web

Direct invocation::

    python -m portraitstudio.api.main
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, Response
from fastapi.staticfiles import StaticFiles

from portraitstudio import __version__
from portraitstudio.api.models import ConfigResponse, SessionResponse, SetInfo
from portraitstudio.api.session_store import SessionStore
from portraitstudio.core.config import config
from portraitstudio.core.errors import InvalidImageError, InvalidTransitionError, StudioError
from portraitstudio.core.images import extension_for, load_upload
from portraitstudio.core.outputs import save_generated_images
from portraitstudio.core.plan import SET_LABELS
from portraitstudio.core.prompts import EXPRESSION_SETTING
from portraitstudio.core.session import StudioSession
from portraitstudio.core.studio_client import StudioClient

logger = logging.getLogger(__name__)

# Session images change on every reset, so browsers must not keep them.
NO_STORE = {"Cache-Control": "no-store"}

# ---------------------------------------------------------------------------
# Application lifecycle: studio client and session store setup/teardown.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    On startup:
        Creates the :class:`StudioClient` and :class:`SessionStore` and stores
        them on ``app.state``.  The SDK client itself is built lazily on the
        first upload.

    On shutdown:
        Drops all sessions and releases the SDK client.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    # --- Startup -----------------------------------------------------------
    app.state.studio = StudioClient(config)
    app.state.sessions = SessionStore()
    if not config.has_api_key:
        logger.warning("No API key configured; uploads will fail until GEMINI_API_KEY is set.")
    logger.info("StudioClient initialised (no connection made yet).")

    yield  # Application runs here.

    # --- Shutdown ----------------------------------------------------------
    app.state.sessions.clear()
    app.state.studio.close()
    logger.info("StudioClient released on shutdown.")


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Portrait Studio",
    description="Upload a portrait, get an AI-planned photoshoot.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.mount("/static", StaticFiles(directory=str(config.static_dir)), name="static")


# ---------------------------------------------------------------------------
# Helpers.
# ---------------------------------------------------------------------------


def _get_session(session_id: str) -> StudioSession:
    """Look up a session or raise 404."""
    session = app.state.sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


def _snapshot(session: StudioSession) -> SessionResponse:
    with app.state.sessions.lock:
        return SessionResponse.from_session(session)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/", response_class=HTMLResponse)
async def index() -> HTMLResponse:
    """Serve the single-page frontend.

    Raises:
        HTTPException: 404 if ``index.html`` is not found.
    """
    index_path = config.templates_dir / "index.html"
    if index_path.exists():
        return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
    raise HTTPException(status_code=404, detail="index.html not found")


@app.get("/api/config", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Return the display configuration used by the frontend."""
    return ConfigResponse(
        version=__version__,
        analysis_model=config.analysis_model,
        image_model=config.image_model,
        configured=app.state.studio.is_configured,
        expression_setting=EXPRESSION_SETTING,
        sets=[SetInfo(id=set_id, **labels) for set_id, labels in SET_LABELS.items()],
    )


@app.post("/api/sessions", response_model=SessionResponse, status_code=201)
async def create_session() -> SessionResponse:
    """Create an empty session in the ``upload`` state."""
    session = app.state.sessions.create()
    logger.info("Created session %s.", session.session_id)
    return _snapshot(session)


@app.get("/api/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str) -> SessionResponse:
    """Return a session snapshot.

    Raises:
        HTTPException: 404 if the session does not exist.
    """
    return _snapshot(_get_session(session_id))


@app.post("/api/sessions/{session_id}/upload", response_model=SessionResponse)
async def upload_portrait(session_id: str, photo: UploadFile = File(...)) -> SessionResponse:
    """Upload a portrait and run the analysis call.

    The request returns when the analysis has finished.  If the session was
    reset while the analysis was running, the result is discarded and the
    returned snapshot shows the reset session.  A failed analysis is not an
    HTTP error: the session goes back to ``upload`` with ``error`` set.

    Raises:
        HTTPException: 404 for an unknown session, 400 for an invalid image,
            409 while images are generating.
    """
    session = _get_session(session_id)
    store: SessionStore = app.state.sessions
    studio: StudioClient = app.state.studio

    data = await photo.read()
    try:
        upload = load_upload(data, photo.filename, max_bytes=config.max_upload_bytes)
    except InvalidImageError as e:
        raise HTTPException(status_code=400, detail=e.message) from e

    try:
        with store.lock:
            epoch = session.start_analysis(upload)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message) from e

    try:
        analysis = await asyncio.to_thread(studio.analyze, upload)
    except StudioError as e:
        with store.lock:
            session.fail_analysis(epoch, e.message)
    else:
        with store.lock:
            session.complete_analysis(epoch, analysis)

    return _snapshot(session)


@app.post("/api/sessions/{session_id}/run", response_model=SessionResponse)
async def run_generation(session_id: str) -> SessionResponse:
    """Generate every planned image and move the session to ``done``.

    Individual generation failures only drop their own image.  If none of the
    calls succeed the session goes back to ``review`` with ``error`` set.

    Raises:
        HTTPException: 404 for an unknown session, 409 if the session is not
            in ``review``.
    """
    session = _get_session(session_id)
    store: SessionStore = app.state.sessions
    studio: StudioClient = app.state.studio

    try:
        with store.lock:
            epoch = session.start_generation()
            original = session.original
            plan = session.plan
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message) from e

    try:
        images = await asyncio.to_thread(
            studio.generate_all,
            original,
            plan,
            lambda: session.is_cancelled(epoch),
        )
    except StudioError as e:
        with store.lock:
            session.fail_generation(epoch, e.message)
    else:
        with store.lock:
            completed = session.complete_generation(epoch, images)
        if completed:
            await asyncio.to_thread(save_generated_images, session, config)

    return _snapshot(session)


@app.delete("/api/sessions/{session_id}", response_model=SessionResponse)
async def reset_session(session_id: str) -> SessionResponse:
    """Reset a session: drop the upload, plan and images.

    Raises:
        HTTPException: 404 for an unknown session, 409 while generating.
    """
    session = _get_session(session_id)
    try:
        with app.state.sessions.lock:
            session.reset()
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message) from e
    return _snapshot(session)


@app.get("/api/sessions/{session_id}/original")
async def get_original(session_id: str) -> Response:
    """Return the uploaded portrait bytes.

    Raises:
        HTTPException: 404 if the session or upload does not exist.
    """
    session = _get_session(session_id)
    original = session.original
    if original is None:
        raise HTTPException(status_code=404, detail="No image uploaded")
    return Response(content=original.data, media_type=original.mime_type, headers=NO_STORE)


@app.get("/api/sessions/{session_id}/images/{image_id}")
async def get_generated_image(session_id: str, image_id: int, download: bool = False) -> Response:
    """Return the bytes of one generated image.

    Args:
        session_id: Session identifier.
        image_id: Plan index of the image.
        download: Send a ``Content-Disposition: attachment`` header.

    Raises:
        HTTPException: 404 if the session or image does not exist.
    """
    session = _get_session(session_id)
    image = session.get_image(image_id)
    if image is None:
        raise HTTPException(status_code=404, detail="Image not found")

    headers = dict(NO_STORE)
    if download:
        filename = f"portrait-{image.id + 1}{extension_for(image.mime_type)}"
        headers["Content-Disposition"] = f'attachment; filename="{filename}"'
    return Response(content=image.data, media_type=image.mime_type, headers=headers)


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host and port from :data:`~portraitstudio.core.config.config`
    (``PORTRAIT_SERVER_HOST`` and ``PORTRAIT_SERVER_PORT``).  Defaults to
    ``0.0.0.0:8000``.

    This function is registered as the ``portraitstudio-web`` console script
    in ``pyproject.toml``.
    """
    import uvicorn

    uvicorn.run(
        "portraitstudio.api.main:app",
        host=config.server_host,
        port=config.server_port,
        log_level=config.log_level.lower(),
        reload=False,
    )


if __name__ == "__main__":
    main()
