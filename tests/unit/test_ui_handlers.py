"""Tests for portraitstudio.ui.handlers — Gradio event handlers.

Handlers are plain functions, so they are called directly with a session and
a mocked Gemini client; no Gradio server is started.
"""

from __future__ import annotations

from unittest.mock import patch

import pytest

from portraitstudio.core.errors import AnalysisError, GenerationError
from portraitstudio.core.session import SessionStatus, StudioSession
from portraitstudio.core.studio_client import StudioClient
from portraitstudio.ui import handlers
from portraitstudio.ui.rendering import VIEW_FIELDS


@pytest.fixture
def studio(test_config, fake_genai):
    """Install a StudioClient backed by the fake SDK client for the test."""
    client = StudioClient(test_config, client=fake_genai)
    handlers.set_studio_client(client)
    with patch.object(handlers, "config", test_config):
        yield client
    handlers.set_studio_client(None)


@pytest.fixture
def photo_path(temp_dir, png_bytes):
    path = temp_dir / "portrait.png"
    path.write_bytes(png_bytes)
    return str(path)


def _unpack(result):
    session, *view = result
    assert len(view) == len(VIEW_FIELDS)
    return session, dict(zip(VIEW_FIELDS, view))


class TestUpload:
    def test_begin_upload_enters_analyzing(self, studio, photo_path):
        session, view = _unpack(handlers.begin_upload(photo_path, StudioSession()))
        assert session.status == SessionStatus.ANALYZING
        assert "Wait" in view["status"]["value"]

    def test_begin_upload_creates_missing_session(self, studio, photo_path):
        session, _ = _unpack(handlers.begin_upload(photo_path, None))
        assert isinstance(session, StudioSession)

    def test_no_file_is_noop(self, studio):
        session, _ = _unpack(handlers.begin_upload(None, StudioSession()))
        assert session.status == SessionStatus.UPLOAD

    def test_invalid_file_shows_error(self, studio, temp_dir):
        path = temp_dir / "notes.png"
        path.write_text("not an image")
        session, view = _unpack(handlers.begin_upload(str(path), StudioSession()))
        assert session.status == SessionStatus.UPLOAD
        assert view["error"]["visible"] is True

    def test_full_analysis(self, studio, photo_path):
        session, _ = _unpack(handlers.begin_upload(photo_path, StudioSession()))
        session, view = _unpack(handlers.run_analysis(session))
        assert session.status == SessionStatus.REVIEW
        assert view["run_button"]["visible"] is True
        assert session.analysis.outfit in view["analysis"]["value"]

    def test_analysis_failure_returns_to_upload(self, studio, fake_genai, photo_path):
        fake_genai.models.generate_content.side_effect = RuntimeError("service down")
        session, _ = _unpack(handlers.begin_upload(photo_path, StudioSession()))
        session, view = _unpack(handlers.run_analysis(session))
        assert session.status == SessionStatus.UPLOAD
        assert session.error == AnalysisError.default_message
        assert view["photo"]["value"] is None

    def test_run_analysis_without_upload_is_noop(self, studio, fake_genai):
        session, _ = _unpack(handlers.run_analysis(StudioSession()))
        assert session.status == SessionStatus.UPLOAD
        fake_genai.models.generate_content.assert_not_called()

    def test_reset_during_analysis_discards_result(self, studio, fake_genai, photo_path):
        session, _ = _unpack(handlers.begin_upload(photo_path, StudioSession()))
        original_side_effect = fake_genai.models.generate_content.side_effect

        def reset_then_answer(*args, **kwargs):
            handlers.handle_reset(session)
            return original_side_effect(*args, **kwargs)

        fake_genai.models.generate_content.side_effect = reset_then_answer
        session, _ = _unpack(handlers.run_analysis(session))
        assert session.status == SessionStatus.UPLOAD
        assert session.analysis is None


class TestGeneration:
    def test_full_run(self, studio, review_session):
        session, view = _unpack(handlers.begin_generation(review_session))
        assert session.status == SessionStatus.GENERATING
        assert view["delete_button"]["interactive"] is False

        session, view = _unpack(handlers.run_generation(session))
        assert session.status == SessionStatus.DONE
        assert len(session.images) == 4
        assert view["instructions"]["visible"] is True
        assert len(view["set_2_gallery"]["value"]) == 2

    def test_begin_generation_without_plan(self, studio):
        session, view = _unpack(handlers.begin_generation(StudioSession()))
        assert session.status == SessionStatus.UPLOAD
        assert view["error"]["visible"] is True

    def test_all_failed_returns_to_review(self, studio, fake_genai, review_session):
        fake_genai.models.generate_content.side_effect = RuntimeError("overloaded")
        session, _ = _unpack(handlers.begin_generation(review_session))
        session, view = _unpack(handlers.run_generation(session))
        assert session.status == SessionStatus.REVIEW
        assert session.error == GenerationError.default_message
        assert view["run_button"]["visible"] is True

    def test_run_generation_outside_generating_is_noop(self, studio, fake_genai, review_session):
        session, _ = _unpack(handlers.run_generation(review_session))
        assert session.status == SessionStatus.REVIEW
        fake_genai.models.generate_content.assert_not_called()

    def test_saves_when_enabled(self, studio, test_config, review_session):
        with patch.object(handlers, "save_generated_images") as save:
            handlers.begin_generation(review_session)
            handlers.run_generation(review_session)
        save.assert_called_once_with(review_session, test_config)


class TestReset:
    def test_reset_from_review(self, studio, review_session):
        session, view = _unpack(handlers.handle_reset(review_session))
        assert session.status == SessionStatus.UPLOAD
        assert view["photo"]["value"] is None

    def test_reset_refused_while_generating(self, studio, review_session):
        handlers.begin_generation(review_session)
        session, view = _unpack(handlers.handle_reset(review_session))
        assert session.status == SessionStatus.GENERATING
        assert "still being generated" in view["error"]["value"]


def test_shared_client_created_lazily(test_config):
    handlers.set_studio_client(None)
    with patch.object(handlers, "config", test_config):
        first = handlers.get_studio_client()
        second = handlers.get_studio_client()
    handlers.set_studio_client(None)
    assert first is second
