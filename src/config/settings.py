# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from filethetic.core.errors import ConfigurationError

__all__ = ["ConfigurationError", "Settings", "load_settings"]

_KNOWN_PROVIDERS = ("openai", "anthropic")


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_default_provider: str = "openai"
    llm_default_model: str = "gpt-4o"
    llm_default_temperature: float = 0.7
    llm_default_max_tokens: int = 4000

    # Provider API keys
    openai_api_key: str = ""
    anthropic_api_key: str = ""

    # === Source rows ===
    source_rows_base_url: str = "https://datasets-server.huggingface.co"
    source_default_row_limit: int = 10
    source_request_timeout_s: float = 30.0

    # === Storage ===
    storage_with_cdn: bool = True
    storage_confirmation_wait_s: float = 50.0
    storage_dataset_creation_fee: int = 0
    storage_file_name: str = "dataset.json"

    # === Chain ===
    chain_price_decimals: int = 6
    chain_default_task_id: int = 1
    chain_default_node_id: int = 1
    chain_default_compute_units_price: int = 100
    chain_default_max_compute_units: int = 1_000_000

    # === Pipeline ===
    pipeline_completed_reset_delay_s: float = 3.0

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("llm_default_provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:  # noqa: N805
        """Provider names are case-insensitive and must be registered."""
        v = v.strip().lower()
        if v not in _KNOWN_PROVIDERS:
            raise ValueError(
                f"llm_default_provider must be one of {', '.join(_KNOWN_PROVIDERS)}"
            )
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.storage_confirmation_wait_s < 0:
            errors.append("STORAGE_CONFIRMATION_WAIT_S must be >= 0")

        if self.pipeline_completed_reset_delay_s < 0:
            errors.append("PIPELINE_COMPLETED_RESET_DELAY_S must be >= 0")

        if self.source_default_row_limit <= 0:
            errors.append("SOURCE_DEFAULT_ROW_LIMIT must be > 0")

        if self.storage_dataset_creation_fee < 0:
            errors.append("STORAGE_DATASET_CREATION_FEE must be >= 0")

        if not self.storage_file_name.endswith(".json"):
            errors.append("STORAGE_FILE_NAME must end with .json")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
