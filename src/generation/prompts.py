# src/generation/prompts.py — v1
"""Prompt construction for row-wise and schema-driven generation."""

from __future__ import annotations

import json
from typing import Any

from filethetic.core.models import PROMPT_PLACEHOLDER, FieldSpec

SYSTEM_PROMPT = "You are a synthetic data generator. Respond only with valid JSON."

JSON_ONLY_INSTRUCTION = (
    "\n\nIMPORTANT: Return ONLY a valid JSON array or object with no additional "
    "text, explanations, or formatting. The response must be complete and "
    "parseable JSON."
)


def render_prompt(template: str, value: Any) -> str:
    """Substitute a source row value into the template's placeholder.

    Non-string values are inserted as compact JSON.

    Raises:
        ValueError: If the template does not hold exactly one placeholder.
    """
    count = template.count(PROMPT_PLACEHOLDER)
    if count != 1:
        raise ValueError(
            f"Prompt template must contain exactly one {PROMPT_PLACEHOLDER} "
            f"placeholder (found {count})"
        )
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False)
    return template.replace(PROMPT_PLACEHOLDER, text)


def describe_field(field: FieldSpec) -> str:
    """One bullet line describing a field and its constraints."""
    desc = (
        f"- {field.name} ({field.type}, {'required' if field.required else 'optional'})"
        f": {field.description}"
    )
    if field.enum:
        desc += f" [Must be one of: {', '.join(field.enum)}]"
    if field.min is not None or field.max is not None:
        low = field.min if field.min is not None else "no min"
        high = field.max if field.max is not None else "no max"
        desc += f" [Range: {low} - {high}]"
    if field.examples:
        examples = ", ".join(json.dumps(ex, ensure_ascii=False) for ex in field.examples[:3])
        desc += f" [Examples: {examples}]"
    return desc


def build_schema_prompt(
    name: str,
    description: str,
    fields: list[FieldSpec] | tuple[FieldSpec, ...],
    sample_count: int,
) -> str:
    """Prompt asking for ``sample_count`` records matching ``fields``."""
    field_lines = "\n".join(describe_field(f) for f in fields)
    return f"""Generate {sample_count} realistic synthetic data samples for a {name} dataset.

Description: {description}

Required fields:
{field_lines}

Requirements:
1. Generate exactly {sample_count} unique, realistic samples
2. Ensure all required fields are present and non-empty
3. Follow the specified constraints for each field exactly (especially minimum lengths)
4. For enum fields, only use the specified values
5. For numeric fields, stay within the specified ranges
6. Make each sample unique and different from others

Return ONLY a valid JSON array containing the {sample_count} data objects.

Example format:
[
  {{"field1": "value1", "field2": "value2"}},
  {{"field1": "value3", "field2": "value4"}}
]"""
