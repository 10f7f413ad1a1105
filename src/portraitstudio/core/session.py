"""Workflow state for one Portrait Studio session.

A session walks through five states::

    upload ──► analyzing ──► review ──► generating ──► done
      ▲            │           ▲             │
      └── failed ──┘           └── failed ───┘

Every new upload and every reset bumps the session's *epoch*.  Background
calls remember the epoch they started under and their results are dropped if
it has moved on, which is how "Delete" during analysis discards the pending
analysis.  Delete is refused while images are generating.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum

from .errors import AnalysisError, GenerationError, InvalidTransitionError
from .images import UploadedImage
from .plan import CharacterAnalysis, GeneratedImage, PlannedPrompt, images_for_set

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Workflow states, in the order a successful session visits them."""

    UPLOAD = "upload"
    ANALYZING = "analyzing"
    REVIEW = "review"
    GENERATING = "generating"
    DONE = "done"


@dataclass
class StudioSession:
    """State of one user's upload → analyse → generate workflow.

    Attributes
    ----------
    session_id : str
        Random identifier used by the web API
    status : SessionStatus
        Current workflow state
    original : UploadedImage | None
        The uploaded portrait
    analysis : CharacterAnalysis | None
        Plan returned by the analysis call
    images : list[GeneratedImage]
        Generated variants, in plan order
    error : str | None
        User-facing message from the last failure
    epoch : int
        Bumped on every upload and reset
    """

    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    status: SessionStatus = SessionStatus.UPLOAD
    original: UploadedImage | None = None
    analysis: CharacterAnalysis | None = None
    images: list[GeneratedImage] = field(default_factory=list)
    error: str | None = None
    epoch: int = 0
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)

    # -- Queries ------------------------------------------------------------

    @property
    def plan(self) -> list[PlannedPrompt]:
        return list(self.analysis.prompts) if self.analysis else []

    @property
    def can_run(self) -> bool:
        return (
            self.status == SessionStatus.REVIEW
            and self.original is not None
            and bool(self.plan)
        )

    @property
    def can_reset(self) -> bool:
        return self.status != SessionStatus.GENERATING

    def is_cancelled(self, epoch: int) -> bool:
        """Whether work started under ``epoch`` has been superseded."""
        return epoch != self.epoch

    def images_for_set(self, set_id: int) -> list[GeneratedImage]:
        return images_for_set(self.images, set_id)

    def get_image(self, image_id: int) -> GeneratedImage | None:
        return next((img for img in self.images if img.id == image_id), None)

    # -- Transitions --------------------------------------------------------

    def _touch(self) -> None:
        self.updated_at = time.time()

    def _clear_derived(self) -> None:
        self.analysis = None
        self.images = []
        self.error = None

    def start_analysis(self, image: UploadedImage) -> int:
        """Store a new upload and enter ``analyzing``.

        Allowed from every state except ``generating``.  Any previous plan,
        images and error are discarded.

        Returns:
            The new epoch, to be passed back to :meth:`complete_analysis`.
        """
        if self.status == SessionStatus.GENERATING:
            raise InvalidTransitionError("Please wait for the current images to finish.")

        self._clear_derived()
        self.original = image
        self.epoch += 1
        self.status = SessionStatus.ANALYZING
        self._touch()
        logger.info("Session %s: analysing (epoch %d).", self.session_id, self.epoch)
        return self.epoch

    def complete_analysis(self, epoch: int, analysis: CharacterAnalysis) -> bool:
        """Apply an analysis result.

        Returns:
            ``False`` if the result was stale and ignored, ``True`` otherwise.
        """
        if self.is_cancelled(epoch) or self.status != SessionStatus.ANALYZING:
            logger.info("Session %s: dropping stale analysis (epoch %d).", self.session_id, epoch)
            return False

        self.analysis = analysis
        self.status = SessionStatus.REVIEW
        self._touch()
        logger.info(
            "Session %s: plan ready with %d prompts.", self.session_id, len(analysis.prompts)
        )
        return True

    def fail_analysis(self, epoch: int, message: str | None = None) -> bool:
        """Record a failed analysis and return to ``upload``."""
        if self.is_cancelled(epoch) or self.status != SessionStatus.ANALYZING:
            return False

        self._clear_derived()
        self.original = None
        self.error = message or AnalysisError.default_message
        self.status = SessionStatus.UPLOAD
        self._touch()
        logger.warning("Session %s: analysis failed: %s", self.session_id, self.error)
        return True

    def start_generation(self) -> int:
        """Enter ``generating``.  Only allowed from ``review`` with a plan.

        Returns:
            The current epoch, to be passed back to :meth:`complete_generation`.
        """
        if not self.can_run:
            raise InvalidTransitionError("Upload a portrait and wait for the analysis first.")

        self.images = []
        self.error = None
        self.status = SessionStatus.GENERATING
        self._touch()
        logger.info("Session %s: generating %d images.", self.session_id, len(self.plan))
        return self.epoch

    def complete_generation(self, epoch: int, images: list[GeneratedImage]) -> bool:
        """Store generated images and enter ``done``."""
        if self.is_cancelled(epoch) or self.status != SessionStatus.GENERATING:
            return False

        self.images = sorted(images, key=lambda img: img.id)
        self.status = SessionStatus.DONE
        self._touch()
        logger.info("Session %s: %d images ready.", self.session_id, len(self.images))
        return True

    def fail_generation(self, epoch: int, message: str | None = None) -> bool:
        """Record a failed generation and return to ``review``."""
        if self.is_cancelled(epoch) or self.status != SessionStatus.GENERATING:
            return False

        self.images = []
        self.error = message or GenerationError.default_message
        self.status = SessionStatus.REVIEW
        self._touch()
        logger.warning("Session %s: generation failed: %s", self.session_id, self.error)
        return True

    def reset(self) -> None:
        """Discard everything and return to ``upload``.

        Pending analysis results become stale.  Refused while generating.
        """
        if not self.can_reset:
            raise InvalidTransitionError("Images are still being generated.")

        self._clear_derived()
        self.original = None
        self.epoch += 1
        self.status = SessionStatus.UPLOAD
        self._touch()
        logger.info("Session %s: reset (epoch %d).", self.session_id, self.epoch)

    # -- Serialisation ------------------------------------------------------

    def to_dict(self) -> dict:
        """Return a JSON-serialisable snapshot (image bytes excluded)."""
        analysis = self.analysis
        return {
            "session_id": self.session_id,
            "status": self.status.value,
            "epoch": self.epoch,
            "error": self.error,
            "has_original": self.original is not None,
            "analysis": analysis.model_dump() if analysis else None,
            "images": [img.to_metadata() for img in self.images],
            "can_run": self.can_run,
            "can_reset": self.can_reset,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    def __repr__(self) -> str:
        return (
            f"StudioSession(id={self.session_id[:8]}, status={self.status.value}, "
            f"epoch={self.epoch}, images={len(self.images)})"
        )
