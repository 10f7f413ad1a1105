"""Tests for portraitstudio.core.images — upload validation and data URLs."""

from __future__ import annotations

import base64

import pytest

from portraitstudio.core.errors import InvalidImageError
from portraitstudio.core.images import (
    decode_data_url,
    encode_data_url,
    extension_for,
    load_upload,
    load_upload_file,
)


class TestLoadUpload:
    """Validation of raw upload bytes."""

    def test_png_detected(self, png_bytes):
        upload = load_upload(png_bytes, "face.png")
        assert upload.mime_type == "image/png"
        assert (upload.width, upload.height) == (32, 48)
        assert upload.data == png_bytes
        assert upload.size_bytes == len(png_bytes)

    def test_jpeg_detected_from_content_not_name(self, jpeg_bytes):
        upload = load_upload(jpeg_bytes, "misnamed.png")
        assert upload.mime_type == "image/jpeg"

    def test_empty_rejected(self):
        with pytest.raises(InvalidImageError, match="empty"):
            load_upload(b"", "empty.png")

    def test_not_an_image_rejected(self):
        with pytest.raises(InvalidImageError) as exc_info:
            load_upload(b"this is not an image at all", "notes.txt")
        assert exc_info.value.message == InvalidImageError.default_message

    def test_too_large_rejected(self, png_bytes):
        with pytest.raises(InvalidImageError, match="too large"):
            load_upload(png_bytes, "face.png", max_bytes=len(png_bytes) - 1)

    def test_size_limit_inclusive(self, png_bytes):
        upload = load_upload(png_bytes, max_bytes=len(png_bytes))
        assert upload.size_bytes == len(png_bytes)


class TestLoadUploadFile:
    def test_reads_file(self, temp_dir, jpeg_bytes):
        path = temp_dir / "face.jpg"
        path.write_bytes(jpeg_bytes)
        upload = load_upload_file(path)
        assert upload.mime_type == "image/jpeg"

    def test_missing_file(self, temp_dir):
        with pytest.raises(InvalidImageError, match="Could not read"):
            load_upload_file(temp_dir / "missing.png")


class TestDataUrls:
    """Encoding and decoding of ``data:`` URLs."""

    def test_encode_format(self):
        assert encode_data_url("image/png", b"abc") == "data:image/png;base64,YWJj"

    def test_decode_splits_mime_and_payload(self):
        mime, data = decode_data_url("data:image/jpeg;base64,YWJj")
        assert mime == "image/jpeg"
        assert data == b"abc"

    def test_decode_uses_first_comma(self):
        payload = base64.b64encode(b"x,y").decode("ascii")
        _, data = decode_data_url(f"data:image/png;base64,{payload}")
        assert data == b"x,y"

    def test_uploaded_image_data_url(self, uploaded_image):
        mime, data = decode_data_url(uploaded_image.data_url)
        assert mime == "image/png"
        assert data == uploaded_image.data

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "http://example.com/a.png",
            "data:image/png;base64",
            "data:image/png,plain-text",
            "data:image/png;base64,***",
        ],
    )
    def test_decode_rejects_invalid(self, url):
        with pytest.raises(InvalidImageError):
            decode_data_url(url)


class TestExtensionFor:
    def test_jpeg(self):
        assert extension_for("image/jpeg") == ".jpg"

    def test_png(self):
        assert extension_for("image/png") == ".png"

    def test_unknown_falls_back_to_png(self):
        assert extension_for("image/x-unknown") == ".png"
