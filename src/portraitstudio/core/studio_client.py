"""Gemini API access for Portrait Studio.

This module provides :class:`StudioClient`, the single point of contact with
the hosted generation service.  It wraps a ``google.genai.Client`` and exposes
the three operations the workflow needs.

Key Responsibilities
--------------------
- **Lazy client creation** — the SDK client is only built on first use, from
  ``config.gemini_api_key``.  Tests inject a mock client instead.
- **Analysis** — one ``generate_content`` call on ``config.analysis_model``
  with the uploaded image and :data:`ANALYSIS_INSTRUCTIONS`, constrained to
  JSON by an explicit response schema.
- **Generation** — one call per planned prompt on ``config.image_model``; the
  first inline image part of the first candidate is the result.
- **Fan-out** — :meth:`StudioClient.generate_all` runs the generation calls
  on a bounded thread pool.  A failing call only loses its own image; results
  are reassembled in plan order.

Usage
-----
::

    from portraitstudio.core.config import config
    from portraitstudio.core.images import load_upload_file
    from portraitstudio.core.studio_client import StudioClient

    studio = StudioClient(config)
    upload = load_upload_file("portrait.jpg")

    analysis = studio.analyze(upload)
    images = studio.generate_all(upload, analysis.prompts)

See Also
--------
- :mod:`portraitstudio.core.session` — the workflow state these calls drive.
- :mod:`portraitstudio.core.prompts` — instruction text.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import Any

from google import genai
from google.genai import types

from .config import StudioConfig
from .errors import AnalysisError, GenerationError, StudioClientError
from .images import UploadedImage
from .plan import CharacterAnalysis, GeneratedImage, PlannedPrompt, parse_analysis
from .prompts import ANALYSIS_INSTRUCTIONS, build_generation_prompt

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Response schema for the analysis call.  Mirrors CharacterAnalysis field by
# field; parse_analysis() re-validates whatever the service returns.
# ---------------------------------------------------------------------------
ANALYSIS_RESPONSE_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "face_shape": types.Schema(type=types.Type.STRING),
        "hairstyle": types.Schema(type=types.Type.STRING),
        "outfit": types.Schema(type=types.Type.STRING),
        "prompts": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "set": types.Schema(type=types.Type.INTEGER),
                    "text": types.Schema(type=types.Type.STRING),
                    "caption": types.Schema(type=types.Type.STRING),
                },
            ),
        ),
    },
)


def _image_part(image: UploadedImage) -> types.Part:
    return types.Part.from_bytes(data=image.data, mime_type=image.mime_type)


def extract_inline_image(response: Any) -> tuple[bytes, str] | None:
    """Return ``(data, mime_type)`` of the first inline image in a response.

    Only the first candidate is inspected.  Text parts (the image model
    sometimes narrates what it drew) are skipped.

    Args:
        response: A ``GenerateContentResponse``.

    Returns:
        The image bytes and MIME type, or ``None`` if there is no image.
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []

    for part in parts:
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return inline.data, inline.mime_type or "image/png"
    return None


class StudioClient:
    """Runs analysis and generation calls against the Gemini API.

    The class is thread-safe: the underlying SDK client is created once under
    a lock and then shared by the worker threads of :meth:`generate_all`.

    Attributes:
        _config (StudioConfig):
            Application configuration — model names, key, concurrency limit.
        _client:
            The ``google.genai.Client`` in use, or ``None`` before first use.
    """

    def __init__(self, config: StudioConfig, client: Any | None = None) -> None:
        """Initialise the studio client.

        No network connection is made here.

        Args:
            config: Application configuration instance.
            client: Optional pre-built ``genai.Client`` (or a test double).
        """
        self._config = config
        self._client = client
        self._lock = threading.Lock()

    # -- Client lifecycle ---------------------------------------------------

    @property
    def client(self) -> Any:
        """The SDK client, created on first access.

        Raises:
            StudioClientError: If no API key is configured.
        """
        if self._client is None:
            with self._lock:
                if self._client is None:
                    if not self._config.has_api_key:
                        raise StudioClientError(
                            "No API key configured. Set GEMINI_API_KEY in the environment or .env."
                        )
                    timeout_ms = int(self._config.request_timeout_seconds * 1000)
                    self._client = genai.Client(
                        api_key=self._config.gemini_api_key,
                        http_options=types.HttpOptions(timeout=timeout_ms),
                    )
                    logger.info(
                        "Gemini client created (analysis=%s, image=%s).",
                        self._config.analysis_model,
                        self._config.image_model,
                    )
        return self._client

    @property
    def is_configured(self) -> bool:
        """Whether calls can be made (client injected or API key present)."""
        return self._client is not None or self._config.has_api_key

    def close(self) -> None:
        """Drop the SDK client.  Safe to call when no client was created."""
        if self._client is None:
            return
        self._client = None
        logger.info("Gemini client released.")

    # -- Analysis -----------------------------------------------------------

    def analyze(self, image: UploadedImage) -> CharacterAnalysis:
        """Analyse an uploaded portrait and return the photoshoot plan.

        Args:
            image: The validated upload.

        Returns:
            The parsed :class:`CharacterAnalysis`.

        Raises:
            StudioClientError: If no API key is configured.
            AnalysisError: If the call fails or the response is unusable.
        """
        client = self.client

        logger.info(
            "Requesting analysis from '%s' (%s, %d bytes).",
            self._config.analysis_model,
            image.mime_type,
            image.size_bytes,
        )
        started = time.monotonic()

        try:
            response = client.models.generate_content(
                model=self._config.analysis_model,
                contents=[_image_part(image), ANALYSIS_INSTRUCTIONS],
                config=types.GenerateContentConfig(
                    response_mime_type="application/json",
                    response_schema=ANALYSIS_RESPONSE_SCHEMA,
                ),
            )
        except Exception as e:
            logger.exception("Analysis call failed.")
            raise AnalysisError() from e

        analysis = parse_analysis(getattr(response, "text", None))
        logger.info(
            "Analysis complete in %.1fs: %d planned prompts.",
            time.monotonic() - started,
            len(analysis.prompts),
        )
        return analysis

    # -- Generation ---------------------------------------------------------

    def generate(
        self, image: UploadedImage, planned: PlannedPrompt, index: int
    ) -> GeneratedImage | None:
        """Generate one image variant from a planned prompt.

        Args:
            image: The original upload, sent with every call for likeness.
            planned: The plan item to render.
            index: Position of ``planned`` in the plan; becomes the image id.

        Returns:
            The generated image, or ``None`` if the response holds no image.

        Raises:
            Exception: Whatever the SDK raises.  :meth:`generate_all` isolates
                these per request.
        """
        client = self.client

        logger.info("Generating image %d (set %d): %s", index, planned.set, planned.caption)
        response = client.models.generate_content(
            model=self._config.image_model,
            contents=[_image_part(image), build_generation_prompt(planned)],
        )

        extracted = extract_inline_image(response)
        if extracted is None:
            logger.warning("Image %d: response contained no image data.", index)
            return None

        data, mime_type = extracted
        logger.info("Image %d generated (%s, %d bytes).", index, mime_type, len(data))
        return GeneratedImage(
            id=index,
            data=data,
            mime_type=mime_type,
            prompt=planned.text,
            caption=planned.caption,
            set=planned.set,
        )

    def generate_all(
        self,
        image: UploadedImage,
        plan: Sequence[PlannedPrompt],
        should_cancel: Callable[[], bool] | None = None,
    ) -> list[GeneratedImage]:
        """Generate every planned image with bounded parallelism.

        Each call runs in its own worker.  A call that raises is logged and
        counts as "no result" for that plan item only.  Results are returned
        in plan order with missing images filtered out.

        Args:
            image: The original upload.
            plan: Planned prompts, in display order.
            should_cancel: Polled after each completion; when it returns
                ``True`` the remaining calls are cancelled and an empty list
                is returned.

        Returns:
            Generated images in plan order.

        Raises:
            StudioClientError: If no API key is configured.
            GenerationError: If every call raised.
        """
        if not plan:
            return []

        # Resolve the client up front so a missing key fails once, not per worker.
        _ = self.client

        max_workers = min(len(plan), self._config.max_parallel_requests)
        results: list[GeneratedImage | None] = [None] * len(plan)
        failures = 0
        started = time.monotonic()

        logger.info("Generating %d images (%d in parallel).", len(plan), max_workers)

        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="studio-gen") as pool:
            futures: dict[Future, int] = {
                pool.submit(self.generate, image, planned, index): index
                for index, planned in enumerate(plan)
            }
            pending = set(futures)

            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for future in done:
                    index = futures[future]
                    try:
                        results[index] = future.result()
                    except Exception as e:
                        failures += 1
                        logger.error("Image %d failed: %s", index, e, exc_info=True)

                if should_cancel is not None and should_cancel():
                    for future in pending:
                        future.cancel()
                    logger.info("Generation cancelled; discarding results.")
                    return []

        if failures == len(plan):
            raise GenerationError()

        images = [img for img in results if img is not None]
        logger.info(
            "Generation finished in %.1fs: %d/%d images (%d failed).",
            time.monotonic() - started,
            len(images),
            len(plan),
            failures,
        )
        return images
