# src/generation/schema.py — v1
"""Record validation against a declared field schema.

FieldSpec lists are compiled into a pydantic model. Field names are bound
through aliases so that names like ``json`` or ``schema`` never collide with
BaseModel attributes.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any, Literal, Optional

from pydantic import AfterValidator, AnyUrl, BaseModel, ConfigDict, Field, ValidationError, create_model

from filethetic.core.errors import GenerationError
from filethetic.core.models import FieldSpec

_EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
_ISO_DATETIME_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}")


def _require_iso_datetime(value: str) -> str:
    """Accept only full ISO 8601 datetimes, with a time part."""
    if not _ISO_DATETIME_PREFIX.match(value):
        raise ValueError("must be an ISO 8601 datetime such as 2024-03-01T10:00:00Z")
    candidate = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
    try:
        datetime.fromisoformat(candidate)
    except ValueError as e:
        raise ValueError(f"invalid ISO 8601 datetime: {value!r}") from e
    return value


def _field_annotation(spec: FieldSpec) -> Any:
    """Map a FieldSpec to a pydantic-compatible annotation."""
    if spec.type == "string":
        if spec.enum:
            return Literal[spec.enum]  # type: ignore[valid-type]
        return Annotated[
            str,
            Field(
                strict=True,
                min_length=int(spec.min) if spec.min else None,
                max_length=int(spec.max) if spec.max else None,
            ),
        ]
    if spec.type == "number":
        return Annotated[float, Field(strict=True, ge=spec.min, le=spec.max)]
    if spec.type == "integer":
        return Annotated[int, Field(strict=True, ge=spec.min, le=spec.max)]
    if spec.type == "boolean":
        return Annotated[bool, Field(strict=True)]
    if spec.type == "date":
        return Annotated[str, Field(strict=True), AfterValidator(_require_iso_datetime)]
    if spec.type == "email":
        return Annotated[str, Field(strict=True, pattern=_EMAIL_PATTERN)]
    if spec.type == "url":
        return AnyUrl
    if spec.type == "array":
        return list[Any]
    return Any


def build_record_model(fields: list[FieldSpec] | tuple[FieldSpec, ...]) -> type[BaseModel]:
    """Compile field specs into a pydantic model validating one record."""
    definitions: dict[str, Any] = {}
    for idx, spec in enumerate(fields):
        annotation = _field_annotation(spec)
        if spec.required:
            definitions[f"f_{idx}"] = (annotation, Field(..., alias=spec.name))
        else:
            definitions[f"f_{idx}"] = (
                Optional[annotation],
                Field(default=None, alias=spec.name),
            )
    return create_model(
        "GeneratedRecord",
        __config__=ConfigDict(extra="ignore"),
        **definitions,
    )


def _summarize(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<record>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_records(
    data: Any, fields: list[FieldSpec] | tuple[FieldSpec, ...]
) -> list[dict[str, Any]]:
    """Validate parsed model output against ``fields``.

    A single JSON object counts as one record. Any invalid record rejects the
    whole output; rows are never partially accepted.

    Returns:
        The records as a list of dicts, unchanged.

    Raises:
        GenerationError: On the first record that fails validation.
    """
    if isinstance(data, dict):
        items: list[Any] = [data]
    elif isinstance(data, list):
        items = data
    else:
        raise GenerationError(
            f"Expected a JSON object or array, got {type(data).__name__}"
        )

    model = build_record_model(fields)
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            raise GenerationError(f"Record {i} is not a JSON object")
        try:
            model.model_validate(item)
        except ValidationError as exc:
            raise GenerationError(
                f"Record {i} failed schema validation: {_summarize(exc)}"
            ) from exc
    return items
