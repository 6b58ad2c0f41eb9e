# src/llm/catalog.py — v1
"""Catalog of supported text-generation models.

Each entry carries the marketplace task id used when the dataset is
registered on-chain and the list price used for cost estimates.
"""

from __future__ import annotations

from pydantic import BaseModel


class ModelInfo(BaseModel):
    """One selectable model."""

    id: str
    name: str
    provider: str
    task_id: int
    price_per_million_tokens: float
    max_tokens: int


MODEL_CATALOG: dict[str, list[ModelInfo]] = {
    "openai": [
        ModelInfo(
            id="gpt-4o", name="GPT-4o", provider="openai",
            task_id=1, price_per_million_tokens=5000, max_tokens=128_000,
        ),
        ModelInfo(
            id="gpt-4o-mini", name="GPT-4o Mini", provider="openai",
            task_id=1, price_per_million_tokens=600, max_tokens=128_000,
        ),
        ModelInfo(
            id="gpt-4-turbo", name="GPT-4 Turbo", provider="openai",
            task_id=1, price_per_million_tokens=10000, max_tokens=128_000,
        ),
        ModelInfo(
            id="gpt-3.5-turbo", name="GPT-3.5 Turbo", provider="openai",
            task_id=1, price_per_million_tokens=1000, max_tokens=16_000,
        ),
    ],
    "anthropic": [
        ModelInfo(
            id="claude-3-5-sonnet-20241022", name="Claude 3.5 Sonnet",
            provider="anthropic", task_id=5,
            price_per_million_tokens=3000, max_tokens=200_000,
        ),
        ModelInfo(
            id="claude-3-5-haiku-20241022", name="Claude 3.5 Haiku",
            provider="anthropic", task_id=5,
            price_per_million_tokens=800, max_tokens=200_000,
        ),
        ModelInfo(
            id="claude-3-opus-20240229", name="Claude 3 Opus",
            provider="anthropic", task_id=4,
            price_per_million_tokens=15000, max_tokens=200_000,
        ),
        ModelInfo(
            id="claude-3-haiku-20240307", name="Claude 3 Haiku",
            provider="anthropic", task_id=5,
            price_per_million_tokens=250, max_tokens=200_000,
        ),
    ],
}


def get_models(provider: str) -> list[ModelInfo]:
    """Models offered by a provider (empty list when unknown)."""
    return list(MODEL_CATALOG.get(provider, []))


def all_models() -> list[ModelInfo]:
    return [m for models in MODEL_CATALOG.values() for m in models]


def find_model(model_id: str) -> ModelInfo | None:
    """Look up a catalog entry by model id."""
    for model in all_models():
        if model.id == model_id:
            return model
    return None


def provider_for_model(model_id: str, default: str | None = None) -> str | None:
    """Provider serving ``model_id``, inferred from the catalog or its prefix."""
    info = find_model(model_id)
    if info is not None:
        return info.provider
    if model_id.startswith(("gpt-", "o1", "o3")):
        return "openai"
    if model_id.startswith("claude-"):
        return "anthropic"
    return default
