"""Turn a :class:`StudioSession` into Gradio component updates.

Every handler ends by calling :func:`render_session`, so the page always
reflects the session exactly.  The returned tuple matches :data:`VIEW_FIELDS`,
which is also the order ``app.py`` wires the output components in.
"""

from __future__ import annotations

import io
import logging

import gradio as gr
from PIL import Image

from portraitstudio.core.plan import IMAGE_SETS, SET_LABELS
from portraitstudio.core.prompts import EXPRESSION_SETTING
from portraitstudio.core.session import SessionStatus, StudioSession

logger = logging.getLogger(__name__)

VIEW_FIELDS = (
    "photo",
    "analysis",
    "status",
    "run_button",
    "delete_button",
    "set_1_status",
    "set_1_gallery",
    "set_2_status",
    "set_2_gallery",
    "instructions",
    "error",
)

STATUS_LABELS = {
    SessionStatus.ANALYZING: "Wait...",
    SessionStatus.GENERATING: "Processing...",
    SessionStatus.DONE: "Completed",
}

INSTRUCTIONS_MARKDOWN = """
#### Instructions:
1. **Zoom in to view:** Click on a thumbnail to open the larger image and its caption.
2. **Download the image:** Use the download button in the zoom view, or right-click the
   larger image and select 'Save image as'. On mobile devices, long-press the image to save it.
"""


def set_header(set_id: int) -> str:
    labels = SET_LABELS[set_id]
    return f"## {labels['title']}\n*{labels['subtitle']}*"


def format_analysis(session: StudioSession) -> str:
    """Markdown for the character profile panel."""
    if session.status == SessionStatus.ANALYZING:
        return "### Analyzing Visual Features...\n\n*Reading face shape, hairstyle and outfit.*"

    analysis = session.analysis
    if analysis is None:
        return "*Upload a portrait to build the character profile.*"

    return (
        "### Visual Feature Analysis Locked\n\n"
        f"**Face Shape Characteristics:** {analysis.face_shape}\n\n"
        f"**Hairstyle Characteristics:** {analysis.hairstyle}\n\n"
        f"**Expression Setting:** {EXPRESSION_SETTING}\n\n"
        f"**Outfit Preset for the Day:** {analysis.outfit}"
    )


def status_label(session: StudioSession) -> str:
    label = STATUS_LABELS.get(session.status, "")
    return f"**{label}**" if label else ""


def set_status(session: StudioSession, set_id: int) -> str:
    """Placeholder text shown above a set's gallery."""
    if session.status == SessionStatus.GENERATING:
        return "*Processing...*"
    if session.status == SessionStatus.DONE:
        if not session.images_for_set(set_id):
            return "*No images were returned for this set.*"
        return ""
    return "*Waiting for run command*"


def gallery_items(session: StudioSession, set_id: int) -> list[tuple[Image.Image, str]]:
    """Decoded images and captions for one set, in plan order.

    Images that Pillow cannot decode are skipped.
    """
    items = []
    for image in session.images_for_set(set_id):
        try:
            pil_image = Image.open(io.BytesIO(image.data))
            pil_image.load()
        except OSError as e:
            logger.warning(f"Could not decode generated image {image.id}: {e}")
            continue
        items.append((pil_image, image.caption))
    return items


def render_session(session: StudioSession, message: str | None = None) -> tuple:
    """Build the updates for every field in :data:`VIEW_FIELDS`.

    Args:
        session: Session to display
        message: Error text to show instead of ``session.error``

    Returns:
        Tuple of ``gr.update`` values in :data:`VIEW_FIELDS` order
    """
    status = session.status
    generating = status == SessionStatus.GENERATING
    error = message or session.error

    # Clear the upload widget when the session no longer holds a photo.
    if session.original is None:
        photo = gr.update(value=None, interactive=True)
    else:
        photo = gr.update(interactive=not generating)

    galleries = []
    for set_id in IMAGE_SETS:
        galleries.append(gr.update(value=set_status(session, set_id)))
        galleries.append(gr.update(value=gallery_items(session, set_id)))

    return (
        photo,
        gr.update(value=format_analysis(session)),
        gr.update(value=status_label(session)),
        gr.update(visible=status == SessionStatus.REVIEW, interactive=session.can_run),
        gr.update(interactive=session.can_reset and status != SessionStatus.UPLOAD),
        *galleries,
        gr.update(visible=status == SessionStatus.DONE),
        gr.update(value=f"**Error:** {error}" if error else "", visible=bool(error)),
    )
