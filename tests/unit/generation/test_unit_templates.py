# tests/unit/generation/test_templates.py — v1
"""Tests for generation/templates.py."""

from __future__ import annotations

import pytest

from filethetic.core.models import PROMPT_PLACEHOLDER
from filethetic.generation.templates import (
    DATASET_TEMPLATES,
    get_template,
    metadata_from_template,
    request_from_template,
)


class TestTemplates:
    def test_predefined(self):
        assert set(DATASET_TEMPLATES) == {"ultrachat-instruct", "medical-transcription"}

    @pytest.mark.parametrize("template_id", sorted(DATASET_TEMPLATES))
    def test_prompts_have_single_placeholder(self, template_id: str):
        assert DATASET_TEMPLATES[template_id].prompt.count(PROMPT_PLACEHOLDER) == 1

    def test_unknown(self):
        with pytest.raises(KeyError, match="Available"):
            get_template("nope")


class TestRequestFromTemplate:
    def test_ultrachat(self):
        req = request_from_template("ultrachat-instruct")
        assert req.source_dataset_path == "HuggingFaceH4/ultrachat_200k"
        assert req.source_split == "train_sft"
        assert req.input_feature_name == "prompt"
        assert req.max_tokens == 1000

    def test_overrides(self):
        req = request_from_template("medical-transcription", row_limit=3, model="gpt-4o-mini")
        assert req.input_feature_name == "text"
        assert req.max_tokens == 3000
        assert req.row_limit == 3
        assert req.model == "gpt-4o-mini"


class TestMetadataFromTemplate:
    def test_defaults(self):
        meta = metadata_from_template("medical-transcription")
        assert meta.name == "Medical Transcription"
        assert meta.price == "5"
        assert meta.is_public

    def test_overrides(self):
        meta = metadata_from_template(DATASET_TEMPLATES["ultrachat-instruct"], price="0.25")
        assert meta.price == "0.25"
