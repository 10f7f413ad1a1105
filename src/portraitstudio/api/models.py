"""Pydantic response models for the Portrait Studio API.

These models define the JSON schema of every API response.  FastAPI uses
them for serialisation and OpenAPI documentation generation.

Models
------
ImageInfo
    Metadata of one generated image, with the URL that serves its bytes.
SessionResponse
    Snapshot of a session returned by every ``/api/sessions`` route.
ConfigResponse
    Payload of ``GET /api/config``.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from portraitstudio.core.plan import CharacterAnalysis, GeneratedImage
from portraitstudio.core.session import StudioSession


class ImageInfo(BaseModel):
    """A generated image as seen by the frontend.

    Image URLs carry the session epoch, so a run after a reset never reuses
    the URL of an image the browser already holds.

    Attributes:
        id: Plan index the image was generated from.
        set: Set label (1 or 2).
        caption: Caption from the plan.
        prompt: Plan instruction the image was generated from.
        mime_type: Image MIME type.
        url: Path of the endpoint serving the raw bytes.
        download_url: Same endpoint, sent as an attachment.
    """

    id: int
    set: int
    caption: str
    prompt: str
    mime_type: str
    url: str
    download_url: str

    @classmethod
    def from_image(cls, session_id: str, image: GeneratedImage, epoch: int = 0) -> ImageInfo:
        url = f"/api/sessions/{session_id}/images/{image.id}?v={epoch}"
        return cls(
            id=image.id,
            set=image.set,
            caption=image.caption,
            prompt=image.prompt,
            mime_type=image.mime_type,
            url=url,
            download_url=f"{url}&download=true",
        )


class SessionResponse(BaseModel):
    """Response body for the ``/api/sessions`` routes.

    Attributes:
        session_id: Session identifier.
        status: Workflow state (``upload``, ``analyzing``, ``review``,
            ``generating`` or ``done``).
        error: User-facing message from the last failure, if any.
        original_url: URL of the uploaded portrait, if one is stored.
        analysis: The character analysis and plan, once available.
        images: Generated images, in plan order.
        can_run: Whether the Run action is available.
        can_reset: Whether the Delete action is available.
    """

    session_id: str
    status: str
    error: str | None = None
    original_url: str | None = None
    analysis: CharacterAnalysis | None = None
    images: list[ImageInfo] = Field(default_factory=list)
    can_run: bool = False
    can_reset: bool = True

    @classmethod
    def from_session(cls, session: StudioSession) -> SessionResponse:
        sid = session.session_id
        return cls(
            session_id=sid,
            status=session.status.value,
            error=session.error,
            original_url=(
                f"/api/sessions/{sid}/original?v={session.epoch}" if session.original else None
            ),
            analysis=session.analysis,
            images=[ImageInfo.from_image(sid, img, session.epoch) for img in session.images],
            can_run=session.can_run,
            can_reset=session.can_reset,
        )


class SetInfo(BaseModel):
    """Display metadata for one image set."""

    id: int
    title: str
    subtitle: str


class ConfigResponse(BaseModel):
    """Response body for ``GET /api/config``."""

    version: str
    analysis_model: str
    image_model: str
    configured: bool = Field(..., description="Whether an API key is available.")
    expression_setting: str
    sets: list[SetInfo]
