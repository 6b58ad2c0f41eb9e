# tests/unit/core/test_models.py — v1
"""Tests for core/models.py — shared Pydantic models.

Also covers version.py import validation.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from filethetic.core.models import (
    DatasetMetadata,
    GenerationRecord,
    GenerationRequest,
    GenerationResult,
    NegotiationAttempt,
    TokenUsage,
    UploadOutcome,
    WalletContext,
)


def _request(**overrides) -> GenerationRequest:
    params = {
        "source_dataset_path": "org/data",
        "prompt_template": "Rewrite: {input}",
        "input_feature_name": "text",
        "model": "gpt-4o",
    }
    params.update(overrides)
    return GenerationRequest(**params)


class TestGenerationRequest:
    def test_defaults(self):
        req = _request()
        assert req.source_config == "default"
        assert req.source_split == "train"
        assert req.max_tokens == 4000
        assert req.row_offset == 0
        assert req.row_limit is None
        assert req.output_fields == ()

    def test_missing_placeholder(self):
        with pytest.raises(ValidationError, match="exactly one"):
            _request(prompt_template="No placeholder here")

    def test_two_placeholders(self):
        with pytest.raises(ValidationError, match="found 2"):
            _request(prompt_template="{input} and {input}")

    def test_blank_feature(self):
        with pytest.raises(ValidationError):
            _request(input_feature_name="   ")

    def test_strips_path(self):
        assert _request(source_dataset_path=" org/data ").source_dataset_path == "org/data"

    def test_immutable(self):
        req = _request()
        with pytest.raises(ValidationError):
            req.model = "other"

    def test_temperature_bounds(self):
        with pytest.raises(ValidationError):
            _request(temperature=2.5)


class TestTokenUsage:
    def test_add(self):
        total = TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15) + TokenUsage(
            prompt_tokens=1, completion_tokens=2, total_tokens=3,
        )
        assert total.prompt_tokens == 11
        assert total.total_tokens == 18

    def test_add_with_missing_total(self):
        total = TokenUsage(total_tokens=None) + TokenUsage(total_tokens=7)
        assert total.total_tokens == 7

    def test_camel_case_dump(self):
        dumped = TokenUsage(prompt_tokens=1, completion_tokens=2, total_tokens=3).model_dump(by_alias=True)
        assert dumped == {"promptTokens": 1, "completionTokens": 2, "totalTokens": 3}

    def test_populate_by_alias(self):
        assert TokenUsage(totalTokens=9).total_tokens == 9


class TestGenerationResult:
    def test_usage_sums_records(self):
        result = GenerationResult(
            records=(
                GenerationRecord(input="a", output={}, usage=TokenUsage(total_tokens=100)),
                GenerationRecord(input="b", output={}, usage=None),
                GenerationRecord(input="c", output={}, usage=TokenUsage(total_tokens=None)),
                GenerationRecord(input="d", output={}, usage=TokenUsage(total_tokens=50)),
            ),
            model="gpt-4o",
            provider="openai",
        )
        assert len(result) == 4
        assert result.total_tokens == 150


class TestUploadOutcome:
    def test_assign_once(self):
        outcome = UploadOutcome(file_name="dataset.json", file_size_bytes=3)
        outcome.assign("content_identifier", "bafk1")
        outcome.assign("content_identifier", "bafk2")
        assert outcome.content_identifier == "bafk1"

    def test_used_fallback(self):
        outcome = UploadOutcome(file_name="dataset.json", file_size_bytes=3)
        outcome.negotiation_attempts.append(NegotiationAttempt(with_cdn=True, succeeded=False, error="x"))
        outcome.negotiation_attempts.append(NegotiationAttempt(with_cdn=False, succeeded=True))
        assert outcome.used_fallback is True

    def test_no_fallback_on_first_success(self):
        outcome = UploadOutcome(file_name="dataset.json", file_size_bytes=3)
        outcome.negotiation_attempts.append(NegotiationAttempt(with_cdn=True, succeeded=True))
        assert outcome.used_fallback is False


class TestDatasetMetadata:
    def test_valid(self):
        meta = DatasetMetadata(
            name="Chats", description="Synthetic chat data", price="2.5", model_id="gpt-4o",
        )
        assert meta.is_public is True

    def test_private(self):
        meta = DatasetMetadata(
            name="Chats", description="Synthetic chat data", visibility="private", model_id="gpt-4o",
        )
        assert meta.is_public is False

    @pytest.mark.parametrize("field,value", [
        ("name", "ab"),
        ("description", "too short"),
        ("price", "-1"),
        ("price", "abc"),
        ("price", "NaN"),
        ("visibility", "hidden"),
    ])
    def test_form_rules(self, field: str, value: str):
        params = {
            "name": "Chats",
            "description": "Synthetic chat data",
            "model_id": "gpt-4o",
            field: value,
        }
        with pytest.raises(ValidationError):
            DatasetMetadata(**params)


class TestWalletContext:
    def test_connected(self):
        assert WalletContext(address="0xabc", chain_id=1).is_connected is True

    def test_disconnected(self):
        assert WalletContext().is_connected is False


class TestVersion:
    def test_version_string(self):
        from filethetic.version import __version__

        assert __version__ == "0.1.0"
