"""Shared pytest fixtures for Portrait Studio tests."""

import io
import json
import shutil
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Generator
from unittest.mock import MagicMock

import pytest
from PIL import Image

from portraitstudio.core.config import StudioConfig
from portraitstudio.core.images import UploadedImage, load_upload
from portraitstudio.core.plan import CharacterAnalysis, GeneratedImage, parse_analysis
from portraitstudio.core.session import StudioSession

SAMPLE_ANALYSIS = {
    "face_shape": "Oval face with a softly defined jawline and high cheekbones",
    "hairstyle": "Shoulder-length dark brown hair with loose waves and a side part",
    "outfit": "Charcoal wool overcoat over a cream turtleneck",
    "prompts": [
        {
            "set": 1,
            "text": "Front view, outdoor city street at golden hour, charcoal overcoat",
            "caption": "Outdoor / Front",
        },
        {
            "set": 1,
            "text": "Side profile, outdoor city street at golden hour, charcoal overcoat",
            "caption": "Outdoor / Side",
        },
        {
            "set": 2,
            "text": "Full body, indoor loft with window light, charcoal overcoat",
            "caption": "Indoor / Full",
        },
        {
            "set": 2,
            "text": "Back view looking over the shoulder, indoor loft, charcoal overcoat",
            "caption": "Indoor / Back",
        },
    ],
}


def make_png_bytes(size: tuple[int, int] = (32, 48), color=(200, 120, 80)) -> bytes:
    """Encode a small solid-colour PNG."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_jpeg_bytes(size: tuple[int, int] = (32, 48), color=(40, 80, 160)) -> bytes:
    """Encode a small solid-colour JPEG."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color=color).save(buffer, format="JPEG")
    return buffer.getvalue()


def make_image_response(data: bytes, mime_type: str = "image/png", text: str | None = None):
    """Build an object shaped like a ``GenerateContentResponse`` holding one image."""
    parts = []
    if text is not None:
        parts.append(SimpleNamespace(inline_data=None, text=text))
    parts.append(SimpleNamespace(inline_data=SimpleNamespace(data=data, mime_type=mime_type)))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


def make_text_response(text: str):
    """Build an object shaped like a text-only ``GenerateContentResponse``."""
    part = SimpleNamespace(inline_data=None, text=text)
    return SimpleNamespace(
        text=text, candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))]
    )


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> StudioConfig:
    """Create a test configuration with a temporary outputs directory.

    Args:
        temp_dir: Temporary directory from fixture

    Returns:
        StudioConfig instance for testing
    """
    return StudioConfig(
        gemini_api_key="test-key",
        analysis_model="test-analysis-model",
        image_model="test-image-model",
        max_parallel_requests=2,
        outputs_dir=temp_dir / "outputs",
        save_outputs=False,
    )


@pytest.fixture
def png_bytes() -> bytes:
    return make_png_bytes()


@pytest.fixture
def jpeg_bytes() -> bytes:
    return make_jpeg_bytes()


@pytest.fixture
def uploaded_image(png_bytes: bytes) -> UploadedImage:
    return load_upload(png_bytes, "portrait.png")


@pytest.fixture
def sample_analysis() -> CharacterAnalysis:
    return parse_analysis(json.dumps(SAMPLE_ANALYSIS))


@pytest.fixture
def generated_images(sample_analysis: CharacterAnalysis) -> list[GeneratedImage]:
    """One generated image per planned prompt, each a distinct PNG."""
    return [
        GeneratedImage(
            id=index,
            data=make_png_bytes(color=(index * 40, 100, 100)),
            mime_type="image/png",
            prompt=planned.text,
            caption=planned.caption,
            set=planned.set,
        )
        for index, planned in enumerate(sample_analysis.prompts)
    ]


@pytest.fixture
def review_session(uploaded_image, sample_analysis) -> StudioSession:
    """A session that has finished analysis and is waiting for Run."""
    session = StudioSession()
    epoch = session.start_analysis(uploaded_image)
    session.complete_analysis(epoch, sample_analysis)
    return session


@pytest.fixture
def fake_genai(test_config: StudioConfig) -> MagicMock:
    """A stand-in for ``google.genai.Client``.

    Analysis calls return :data:`SAMPLE_ANALYSIS` as JSON text; image calls
    return a small PNG.  Tests can replace ``models.generate_content.side_effect``
    to script other behaviour.
    """
    client = MagicMock()
    image_data = make_png_bytes(color=(10, 200, 10))

    def generate_content(model, contents, config=None):
        if model == test_config.analysis_model:
            return make_text_response(json.dumps(SAMPLE_ANALYSIS))
        return make_image_response(image_data)

    client.models.generate_content.side_effect = generate_content
    return client


@pytest.fixture
def test_client(test_config, fake_genai):
    """FastAPI TestClient with a mocked Gemini client.

    The lifespan runs on entry; the studio client it creates is then swapped
    for one backed by :func:`fake_genai`.
    """
    from fastapi.testclient import TestClient

    from portraitstudio.api.main import app
    from portraitstudio.core.studio_client import StudioClient

    with TestClient(app) as client:
        app.state.studio = StudioClient(test_config, client=fake_genai)
        yield client


@pytest.fixture
def responses() -> SimpleNamespace:
    """Builders for fake SDK responses, for tests that script their own calls."""
    return SimpleNamespace(
        image=make_image_response,
        text=make_text_response,
        png=make_png_bytes,
        jpeg=make_jpeg_bytes,
    )
