# tests/unit/config/test_settings.py — v1
"""Tests for config/settings.py — typed Settings and validation rules."""

from __future__ import annotations

import pytest

from filethetic.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_provider(self):
        s = Settings(_env_file=None)
        assert s.llm_default_provider == "openai"
        assert s.llm_default_model == "gpt-4o"

    def test_default_storage(self):
        s = Settings(_env_file=None)
        assert s.storage_with_cdn is True
        assert s.storage_confirmation_wait_s == 50.0
        assert s.storage_file_name == "dataset.json"

    def test_default_chain(self):
        s = Settings(_env_file=None)
        assert s.chain_price_decimals == 6
        assert s.chain_default_task_id == 1
        assert s.chain_default_node_id == 1
        assert s.chain_default_compute_units_price == 100
        assert s.chain_default_max_compute_units == 1_000_000

    def test_default_pipeline_delay(self):
        assert Settings(_env_file=None).pipeline_completed_reset_delay_s == 3.0


class TestSettingsValidation:
    def test_provider_normalized(self):
        s = Settings(_env_file=None, llm_default_provider="  Anthropic ")
        assert s.llm_default_provider == "anthropic"

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="llm_default_provider"):
            Settings(_env_file=None, llm_default_provider="mistral")

    def test_negative_confirmation_wait(self):
        with pytest.raises(ConfigurationError, match="STORAGE_CONFIRMATION_WAIT_S"):
            Settings(_env_file=None, storage_confirmation_wait_s=-1)

    def test_negative_reset_delay(self):
        with pytest.raises(ConfigurationError, match="PIPELINE_COMPLETED_RESET_DELAY_S"):
            Settings(_env_file=None, pipeline_completed_reset_delay_s=-0.5)

    def test_zero_row_limit(self):
        with pytest.raises(ConfigurationError, match="SOURCE_DEFAULT_ROW_LIMIT"):
            Settings(_env_file=None, source_default_row_limit=0)

    def test_file_name_must_be_json(self):
        with pytest.raises(ConfigurationError, match="STORAGE_FILE_NAME"):
            Settings(_env_file=None, storage_file_name="dataset.csv")

    def test_multiple_errors_reported_together(self):
        with pytest.raises(ConfigurationError) as exc_info:
            Settings(
                _env_file=None,
                storage_dataset_creation_fee=-1,
                storage_file_name="data.txt",
            )
        assert "STORAGE_DATASET_CREATION_FEE" in str(exc_info.value)
        assert "STORAGE_FILE_NAME" in str(exc_info.value)


class TestLoadSettings:
    def test_overrides(self):
        s = load_settings(_env_file=None, storage_with_cdn=False, log_format="text")
        assert s.storage_with_cdn is False
        assert s.log_format == "text"

    def test_env_variables(self, monkeypatch):
        monkeypatch.setenv("STORAGE_WITH_CDN", "false")
        monkeypatch.setenv("CHAIN_DEFAULT_TASK_ID", "7")
        s = load_settings(_env_file=None)
        assert s.storage_with_cdn is False
        assert s.chain_default_task_id == 7
