"""Plan data model: analysis output, planned prompts and generated images.

The analysis call returns JSON matching
:data:`~portraitstudio.core.studio_client.ANALYSIS_RESPONSE_SCHEMA`, which
:func:`parse_analysis` validates into a :class:`CharacterAnalysis`.

Models
------
PlannedPrompt
    One image-generation instruction with its caption and set label.
CharacterAnalysis
    The character profile plus the list of planned prompts.
GeneratedImage
    One successful generation result (encoded bytes plus provenance).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import AnalysisError
from .images import encode_data_url

logger = logging.getLogger(__name__)

SET_1 = 1
SET_2 = 2
IMAGE_SETS = (SET_1, SET_2)

# Display metadata for each set, shared by both front ends.
SET_LABELS: dict[int, dict[str, str]] = {
    SET_1: {"title": "SET 1", "subtitle": "Location A: Outdoor (Front/Side)"},
    SET_2: {"title": "SET 2", "subtitle": "Location B: Indoor (Full/Back)"},
}


class PlannedPrompt(BaseModel):
    """A single planned image: instruction text, caption and set label.

    Attributes:
        set: Set the image belongs to (1 or 2).
        text: Full generation instruction authored by the analysis model.
        caption: Short label shown under the image.
    """

    model_config = ConfigDict(frozen=True)

    set: int = Field(..., description="Set label, 1 or 2.")
    text: str = Field(..., description="Full image-generation instruction.")
    caption: str = Field(default="", description="Short caption for the gallery.")

    @field_validator("set")
    @classmethod
    def _check_set(cls, value: int) -> int:
        if value not in IMAGE_SETS:
            raise ValueError(f"set must be 1 or 2, got {value}")
        return value


class CharacterAnalysis(BaseModel):
    """Structured output of the analysis call.

    Attributes:
        face_shape: Description of the face shape contour.
        hairstyle: Description of the hairstyle (volume, length, colour).
        outfit: The outfit every generated image should share.
        prompts: Planned prompts, in display order.
    """

    model_config = ConfigDict(frozen=True)

    face_shape: str = ""
    hairstyle: str = ""
    outfit: str = ""
    prompts: list[PlannedPrompt] = Field(default_factory=list)

    @field_validator("face_shape", "hairstyle", "outfit", mode="before")
    @classmethod
    def _null_to_empty(cls, value: str | None) -> str:
        # The model may return null for any field; shown blank.
        return value or ""

    @field_validator("prompts", mode="before")
    @classmethod
    def _null_to_no_prompts(cls, value: list | None) -> list:
        return value or []


@dataclass(frozen=True)
class GeneratedImage:
    """One generated image variant.

    Attributes:
        id: Index of the plan item that produced the image.
        data: Encoded image bytes returned by the model.
        mime_type: MIME type reported by the model.
        prompt: The plan instruction the image was generated from.
        caption: Caption copied from the plan item.
        set: Set label copied from the plan item.
    """

    id: int
    data: bytes
    mime_type: str
    prompt: str
    caption: str
    set: int

    @property
    def data_url(self) -> str:
        return encode_data_url(self.mime_type, self.data)

    def to_metadata(self) -> dict:
        """Return the JSON-serialisable fields (everything except the bytes)."""
        return {
            "id": self.id,
            "mime_type": self.mime_type,
            "prompt": self.prompt,
            "caption": self.caption,
            "set": self.set,
        }


def parse_analysis(text: str | None) -> CharacterAnalysis:
    """Parse the JSON text returned by the analysis call.

    An empty response is treated like ``{}``.  A plan without a face shape is
    considered a failed analysis, because the profile is what the rest of the
    workflow is locked to.

    Args:
        text: Raw response text.

    Returns:
        The validated analysis.

    Raises:
        AnalysisError: If the text is not valid JSON, does not match the
            schema, or has no ``face_shape``.
    """
    try:
        raw = json.loads(text or "{}")
    except json.JSONDecodeError as e:
        logger.warning("Analysis response is not JSON: %s", e)
        raise AnalysisError() from e

    if not isinstance(raw, dict):
        raise AnalysisError()

    try:
        analysis = CharacterAnalysis.model_validate(raw)
    except ValidationError as e:
        logger.warning("Analysis response does not match the schema: %s", e)
        raise AnalysisError() from e

    if not analysis.face_shape.strip():
        logger.warning("Analysis response has no face_shape")
        raise AnalysisError()

    return analysis


def images_for_set(images: Iterable[GeneratedImage], set_id: int) -> list[GeneratedImage]:
    """Return the images that belong to ``set_id``, preserving plan order."""
    return [img for img in images if img.set == set_id]
