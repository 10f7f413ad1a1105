"""Exception hierarchy for Portrait Studio.

Every exception carries a message that is safe to show to the end user.  The
Gradio handlers render it in the error box and the FastAPI routes return it as
the ``detail`` of an :class:`~fastapi.HTTPException`.
"""


class StudioError(Exception):
    """Base class for all Portrait Studio errors."""

    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def message(self) -> str:
        return str(self)


class InvalidImageError(StudioError):
    """The upload is empty, too large, or not a decodable image."""

    default_message = "Please upload a valid JPG or PNG image."


class StudioClientError(StudioError):
    """The API client cannot be used (for example, no API key configured)."""

    default_message = "The image service is not configured."


class AnalysisError(StudioError):
    """The analysis call failed or returned an unusable plan."""

    default_message = "Failed to analyze character. Please try a different photo."


class GenerationError(StudioError):
    """No generation call in the fan-out succeeded."""

    default_message = "Generation failed. Please try again."


class InvalidTransitionError(StudioError):
    """A user action is not allowed in the current workflow state."""

    default_message = "That action is not available right now."
