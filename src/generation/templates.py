# src/generation/templates.py — v1
"""Predefined dataset templates.

A template bundles a source dataset slice, a prompt and default listing
details so a generation run can be started from a single name.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel

from filethetic.core.models import DatasetMetadata, GenerationRequest


class DatasetSource(BaseModel):
    """Source dataset slice used by a template."""

    model_config = {"frozen": True}

    path: str
    config: str = "default"
    split: str = "train"
    feature: str


class DatasetTemplate(BaseModel):
    """Ready-made generation setup."""

    model_config = {"frozen": True}

    id: str
    name: str
    description: str
    source: DatasetSource
    prompt: str
    model: str = "gpt-4o"
    max_tokens: int = 1000
    temperature: float = 0.7
    price: str = "1"
    visibility: str = "public"
    tags: tuple[str, ...] = ()


DATASET_TEMPLATES: dict[str, DatasetTemplate] = {
    "ultrachat-instruct": DatasetTemplate(
        id="ultrachat-instruct",
        name="UltraChat Instruct",
        description=(
            "Instruction-following conversations rewritten from the UltraChat "
            "200k supervised fine-tuning split"
        ),
        source=DatasetSource(
            path="HuggingFaceH4/ultrachat_200k",
            config="default",
            split="train_sft",
            feature="prompt",
        ),
        prompt=(
            "Write a helpful, accurate assistant reply to the following user "
            "request. Return a JSON object with the keys \"instruction\" and "
            "\"response\".\n\nRequest: {input}"
        ),
        max_tokens=1000,
        price="1",
        tags=("chat", "instruction"),
    ),
    "medical-transcription": DatasetTemplate(
        id="medical-transcription",
        name="Medical Transcription",
        description=(
            "Structured summaries of clinical transcription notes with "
            "specialty and key findings"
        ),
        source=DatasetSource(
            path="galileo-ai/medical_transcription_40",
            config="default",
            split="train",
            feature="text",
        ),
        prompt=(
            "Summarize the following medical transcription. Return a JSON "
            "object with the keys \"specialty\", \"summary\" and "
            "\"key_findings\" (an array of strings).\n\nTranscription: {input}"
        ),
        max_tokens=3000,
        price="5",
        tags=("medical", "summarization"),
    ),
}


def get_template(template_id: str) -> DatasetTemplate:
    """Look up a template by id.

    Raises:
        KeyError: If no template has that id.
    """
    try:
        return DATASET_TEMPLATES[template_id]
    except KeyError:
        raise KeyError(
            f"Unknown template {template_id!r}. "
            f"Available: {', '.join(sorted(DATASET_TEMPLATES))}"
        ) from None


def request_from_template(
    template: DatasetTemplate | str, **overrides: Any
) -> GenerationRequest:
    """Build a GenerationRequest from a template, applying overrides."""
    if isinstance(template, str):
        template = get_template(template)
    params: dict[str, Any] = {
        "source_dataset_path": template.source.path,
        "source_config": template.source.config,
        "source_split": template.source.split,
        "prompt_template": template.prompt,
        "input_feature_name": template.source.feature,
        "model": template.model,
        "max_tokens": template.max_tokens,
        "temperature": template.temperature,
    }
    params.update(overrides)
    return GenerationRequest(**params)


def metadata_from_template(
    template: DatasetTemplate | str, **overrides: Any
) -> DatasetMetadata:
    """Default marketplace listing for a template."""
    if isinstance(template, str):
        template = get_template(template)
    params: dict[str, Any] = {
        "name": template.name,
        "description": template.description,
        "price": template.price,
        "visibility": template.visibility,
        "model_id": template.model,
    }
    params.update(overrides)
    return DatasetMetadata(**params)
