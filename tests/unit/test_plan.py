"""Tests for portraitstudio.core.plan — analysis parsing and plan models."""

from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from portraitstudio.core.errors import AnalysisError
from portraitstudio.core.plan import (
    SET_1,
    SET_2,
    SET_LABELS,
    CharacterAnalysis,
    PlannedPrompt,
    images_for_set,
    parse_analysis,
)


class TestParseAnalysis:
    """Parsing of the analysis response text."""

    def test_sample_plan(self, sample_analysis: CharacterAnalysis):
        assert sample_analysis.face_shape.startswith("Oval face")
        assert sample_analysis.outfit == "Charcoal wool overcoat over a cream turtleneck"
        assert len(sample_analysis.prompts) == 4
        assert [p.set for p in sample_analysis.prompts] == [1, 1, 2, 2]

    def test_prompt_order_preserved(self, sample_analysis: CharacterAnalysis):
        captions = [p.caption for p in sample_analysis.prompts]
        assert captions == ["Outdoor / Front", "Outdoor / Side", "Indoor / Full", "Indoor / Back"]

    @pytest.mark.parametrize("text", [None, "", "{}"])
    def test_empty_response_fails(self, text):
        # No face shape means no usable profile.
        with pytest.raises(AnalysisError):
            parse_analysis(text)

    def test_invalid_json(self):
        with pytest.raises(AnalysisError) as exc_info:
            parse_analysis("not json {")
        assert exc_info.value.message == AnalysisError.default_message

    def test_non_object_json(self):
        with pytest.raises(AnalysisError):
            parse_analysis("[1, 2, 3]")

    def test_invalid_set_label(self):
        payload = {"face_shape": "Round", "prompts": [{"set": 3, "text": "x", "caption": "y"}]}
        with pytest.raises(AnalysisError):
            parse_analysis(json.dumps(payload))

    def test_missing_fields_default(self):
        analysis = parse_analysis(json.dumps({"face_shape": "Square"}))
        assert analysis.hairstyle == ""
        assert analysis.outfit == ""
        assert analysis.prompts == []

    def test_null_profile_fields_shown_blank(self):
        payload = {"face_shape": "Oval", "hairstyle": None, "outfit": None, "prompts": None}
        analysis = parse_analysis(json.dumps(payload))
        assert analysis.face_shape == "Oval"
        assert analysis.hairstyle == ""
        assert analysis.outfit == ""
        assert analysis.prompts == []

    def test_null_hairstyle_keeps_plan(self, sample_analysis: CharacterAnalysis):
        payload = dict(sample_analysis.model_dump(), hairstyle=None)
        analysis = parse_analysis(json.dumps(payload))
        assert analysis.hairstyle == ""
        assert len(analysis.prompts) == 4

    def test_null_face_shape_fails(self):
        with pytest.raises(AnalysisError):
            parse_analysis(json.dumps({"face_shape": None, "hairstyle": "Short"}))

    def test_unknown_fields_ignored(self):
        analysis = parse_analysis(json.dumps({"face_shape": "Heart", "mood": "calm"}))
        assert analysis.face_shape == "Heart"


class TestPlanModels:
    def test_planned_prompt_is_frozen(self):
        planned = PlannedPrompt(set=1, text="t", caption="c")
        with pytest.raises(ValidationError):
            planned.text = "changed"

    def test_caption_optional(self):
        assert PlannedPrompt(set=2, text="t").caption == ""

    def test_set_labels(self):
        assert SET_LABELS[SET_1]["title"] == "SET 1"
        assert "Outdoor" in SET_LABELS[SET_1]["subtitle"]
        assert "Indoor" in SET_LABELS[SET_2]["subtitle"]


class TestGeneratedImage:
    def test_images_for_set_keeps_order(self, generated_images):
        assert [img.id for img in images_for_set(generated_images, SET_2)] == [2, 3]

    def test_metadata_excludes_bytes(self, generated_images):
        metadata = generated_images[0].to_metadata()
        assert "data" not in metadata
        assert metadata == {
            "id": 0,
            "mime_type": "image/png",
            "prompt": generated_images[0].prompt,
            "caption": "Outdoor / Front",
            "set": 1,
        }

    def test_data_url(self, generated_images):
        assert generated_images[0].data_url.startswith("data:image/png;base64,")
