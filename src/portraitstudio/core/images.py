"""Upload decoding and data URL helpers.

Uploads reach the application either as raw bytes (multipart form, Gradio
file path) or as ``data:`` URLs produced by the browser's ``FileReader``.
Both are normalised into an :class:`UploadedImage` that carries the bytes and
MIME type the Gemini API expects for inline image parts.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import mimetypes
from dataclasses import dataclass
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .errors import InvalidImageError

logger = logging.getLogger(__name__)

# Pillow format name -> MIME type accepted by the image models.
_FORMAT_MIME_TYPES: dict[str, str] = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "HEIF": "image/heif",
    "BMP": "image/bmp",
}

DEFAULT_MIME_TYPE = "image/png"


@dataclass(frozen=True)
class UploadedImage:
    """A validated user upload.

    Attributes:
        data: Raw encoded image bytes, exactly as uploaded.
        mime_type: MIME type detected from the image content.
        width: Pixel width.
        height: Pixel height.
    """

    data: bytes
    mime_type: str
    width: int
    height: int

    @property
    def data_url(self) -> str:
        return encode_data_url(self.mime_type, self.data)

    @property
    def size_bytes(self) -> int:
        return len(self.data)


def encode_data_url(mime_type: str, data: bytes) -> str:
    """Encode bytes as a ``data:<mime>;base64,<payload>`` URL."""
    payload = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{payload}"


def decode_data_url(url: str) -> tuple[str, bytes]:
    """Split a base64 ``data:`` URL into its MIME type and decoded bytes.

    The MIME type is the text between the first ``:`` and the first ``;``.
    The payload is everything after the first ``,``.

    Args:
        url: A data URL such as ``data:image/png;base64,iVBOR...``.

    Returns:
        Tuple of ``(mime_type, data)``.

    Raises:
        InvalidImageError: If the URL is not a base64 data URL.
    """
    if not url or not url.startswith("data:") or "," not in url:
        raise InvalidImageError("Upload is not a valid data URL.")

    header, payload = url.split(",", 1)
    if ";base64" not in header:
        raise InvalidImageError("Only base64-encoded data URLs are supported.")

    mime_type = header[header.index(":") + 1 : header.index(";")]
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError("Upload data is not valid base64.") from e

    return mime_type or DEFAULT_MIME_TYPE, data


def _guess_mime_from_name(filename: str | None) -> str | None:
    if not filename:
        return None
    guessed, _ = mimetypes.guess_type(filename)
    if guessed and guessed.startswith("image/"):
        return guessed
    return None


def load_upload(
    data: bytes,
    filename: str | None = None,
    *,
    max_bytes: int | None = None,
) -> UploadedImage:
    """Validate uploaded bytes and detect their MIME type.

    The bytes are opened with Pillow to make sure they really are an image.
    The MIME type comes from the decoded format; the filename extension is
    only used when Pillow reports a format we do not map.

    Args:
        data: Raw upload bytes.
        filename: Original filename, if known.
        max_bytes: Reject uploads larger than this many bytes.

    Returns:
        The validated :class:`UploadedImage`.

    Raises:
        InvalidImageError: If the upload is empty, too large, or not an image.
    """
    if not data:
        raise InvalidImageError("The uploaded file is empty.")

    if max_bytes is not None and len(data) > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise InvalidImageError(f"The uploaded file is too large (limit {limit_mb:.0f} MB).")

    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
        # verify() leaves the image unusable, so reopen for the metadata.
        with Image.open(io.BytesIO(data)) as img:
            image_format = img.format
            width, height = img.size
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        logger.warning("Rejected upload %s: %s", filename or "<bytes>", e)
        raise InvalidImageError() from e

    mime_type = (
        _FORMAT_MIME_TYPES.get(image_format or "")
        or _guess_mime_from_name(filename)
        or DEFAULT_MIME_TYPE
    )

    logger.info(
        "Accepted upload %s (%s, %dx%d, %d bytes)",
        filename or "<bytes>",
        mime_type,
        width,
        height,
        len(data),
    )
    return UploadedImage(data=data, mime_type=mime_type, width=width, height=height)


def load_upload_file(path: str | Path, *, max_bytes: int | None = None) -> UploadedImage:
    """Read an upload from disk (Gradio hands uploads over as temp file paths)."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InvalidImageError(f"Could not read uploaded file: {path.name}") from e
    return load_upload(data, path.name, max_bytes=max_bytes)


def extension_for(mime_type: str) -> str:
    """Return a file extension (with dot) for an image MIME type."""
    if mime_type == "image/jpeg":
        return ".jpg"
    return mimetypes.guess_extension(mime_type) or ".png"
