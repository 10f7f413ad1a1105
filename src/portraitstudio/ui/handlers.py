"""Gradio event handlers for the Portrait Studio UI.

Uploading and running are split in two steps each.  The ``begin_*`` handler
performs the state transition and returns at once, so the page shows
"Wait..." or "Processing..." immediately.  The chained ``run_*`` handler makes
the model calls.  Because Delete is a separate event, it can run while an
analysis is in flight; the epoch recorded at the start of the call makes the
late result a no-op.

Every handler returns ``(session, *render_session(session))``.
"""

import logging
import threading

from portraitstudio.core.config import config
from portraitstudio.core.errors import (
    AnalysisError,
    GenerationError,
    InvalidImageError,
    InvalidTransitionError,
    StudioError,
)
from portraitstudio.core.images import load_upload_file
from portraitstudio.core.outputs import save_generated_images
from portraitstudio.core.session import SessionStatus, StudioSession
from portraitstudio.core.studio_client import StudioClient

from .rendering import render_session

logger = logging.getLogger(__name__)

# Guards session transitions; model calls run outside it.
_lock = threading.RLock()
_studio: StudioClient | None = None


def get_studio_client() -> StudioClient:
    """Return the process-wide :class:`StudioClient`, creating it on first use."""
    global _studio
    with _lock:
        if _studio is None:
            _studio = StudioClient(config)
        return _studio


def set_studio_client(studio: StudioClient | None) -> None:
    """Replace the shared client (``None`` forces a new one on next use)."""
    global _studio
    with _lock:
        _studio = studio


def _ensure_session(session: StudioSession | None) -> StudioSession:
    return session if session is not None else StudioSession()


# ---------------------------------------------------------------------------
# Upload and analysis
# ---------------------------------------------------------------------------


def begin_upload(photo_path: str | None, session: StudioSession | None) -> tuple:
    """Validate the uploaded file and enter ``analyzing``.

    Args:
        photo_path: Temporary file path from ``gr.Image(type="filepath")``
        session: Session state

    Returns:
        Tuple of (session, *view updates)
    """
    session = _ensure_session(session)
    if not photo_path:
        return (session, *render_session(session))

    try:
        upload = load_upload_file(photo_path, max_bytes=config.max_upload_bytes)
        with _lock:
            session.start_analysis(upload)
    except (InvalidImageError, InvalidTransitionError) as e:
        logger.warning(f"Upload rejected: {e.message}")
        return (session, *render_session(session, message=e.message))

    return (session, *render_session(session))


def run_analysis(session: StudioSession | None) -> tuple:
    """Analyse the current upload and enter ``review``.

    Does nothing unless the session is ``analyzing``.
    """
    session = _ensure_session(session)
    with _lock:
        if session.status != SessionStatus.ANALYZING or session.original is None:
            return (session, *render_session(session))
        epoch = session.epoch
        original = session.original

    try:
        analysis = get_studio_client().analyze(original)
    except StudioError as e:
        with _lock:
            session.fail_analysis(epoch, e.message)
    except Exception as e:
        logger.error(f"Unexpected error during analysis: {e}", exc_info=True)
        with _lock:
            session.fail_analysis(epoch, AnalysisError.default_message)
    else:
        with _lock:
            session.complete_analysis(epoch, analysis)

    return (session, *render_session(session))


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


def begin_generation(session: StudioSession | None) -> tuple:
    """Enter ``generating`` if the session has a plan to run."""
    session = _ensure_session(session)
    try:
        with _lock:
            session.start_generation()
    except InvalidTransitionError as e:
        return (session, *render_session(session, message=e.message))
    return (session, *render_session(session))


def run_generation(session: StudioSession | None) -> tuple:
    """Generate every planned image and enter ``done``.

    Does nothing unless the session is ``generating``.  Saving to disk, when
    enabled, happens after the session is already ``done``.
    """
    session = _ensure_session(session)
    with _lock:
        if session.status != SessionStatus.GENERATING:
            return (session, *render_session(session))
        epoch = session.epoch
        original = session.original
        plan = session.plan

    try:
        images = get_studio_client().generate_all(
            original, plan, should_cancel=lambda: session.is_cancelled(epoch)
        )
    except StudioError as e:
        with _lock:
            session.fail_generation(epoch, e.message)
    except Exception as e:
        logger.error(f"Unexpected error during generation: {e}", exc_info=True)
        with _lock:
            session.fail_generation(epoch, GenerationError.default_message)
    else:
        with _lock:
            completed = session.complete_generation(epoch, images)
        if completed:
            save_generated_images(session, config)

    return (session, *render_session(session))


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------


def handle_reset(session: StudioSession | None) -> tuple:
    """Delete button: drop the upload, plan and images."""
    session = _ensure_session(session)
    try:
        with _lock:
            session.reset()
    except InvalidTransitionError as e:
        return (session, *render_session(session, message=e.message))
    return (session, *render_session(session))
