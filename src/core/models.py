# src/core/models.py — v1
"""Core domain models shared by every pipeline stage.

GenerationRequest → GenerationResult → UploadOutcome → PublishRecord.
Requests and results are immutable; UploadOutcome is filled in field by
field while the upload state machine runs.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)

PROMPT_PLACEHOLDER = "{input}"

FieldType = Literal[
    "string", "number", "integer", "boolean", "date", "email", "url", "array", "json"
]


# === GENERATION ===


class FieldSpec(BaseModel):
    """Declared shape of one field in a generated record."""

    model_config = {"frozen": True}

    name: str
    type: FieldType = "string"
    required: bool = True
    description: str = ""
    min: float | None = None
    max: float | None = None
    enum: tuple[str, ...] | None = None
    examples: tuple[Any, ...] = ()


class GenerationRequest(BaseModel):
    """User-submitted generation parameters. Immutable once submitted."""

    model_config = {"frozen": True}

    source_dataset_path: str
    source_config: str = "default"
    source_split: str = "train"
    prompt_template: str
    input_feature_name: str
    model: str
    max_tokens: int = Field(default=4000, gt=0)
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    row_offset: int = Field(default=0, ge=0)
    row_limit: int | None = Field(default=None, gt=0)
    output_fields: tuple[FieldSpec, ...] = ()

    @field_validator("prompt_template")
    @classmethod
    def validate_single_placeholder(cls, v: str) -> str:  # noqa: N805
        count = v.count(PROMPT_PLACEHOLDER)
        if count != 1:
            raise ValueError(
                f"prompt_template must contain exactly one {PROMPT_PLACEHOLDER} "
                f"placeholder (found {count})"
            )
        return v

    @field_validator("source_dataset_path", "input_feature_name", "model")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:  # noqa: N805
        if not v.strip():
            raise ValueError("must not be empty")
        return v.strip()


class TokenUsage(BaseModel):
    """Token counts for one or more model calls.

    Serialized with the camelCase keys used in the published dataset file.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    prompt_tokens: int = Field(default=0, alias="promptTokens")
    completion_tokens: int = Field(default=0, alias="completionTokens")
    total_tokens: int | None = Field(default=0, alias="totalTokens")

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=(self.total_tokens or 0) + (other.total_tokens or 0),
        )


class GenerationRecord(BaseModel):
    """One processed source row."""

    model_config = {"frozen": True}

    input: Any
    output: Any
    usage: TokenUsage | None = None


class GenerationResult(BaseModel):
    """Ordered records produced by one generation run."""

    model_config = {"frozen": True}

    records: tuple[GenerationRecord, ...]
    model: str
    provider: str

    def __len__(self) -> int:
        return len(self.records)

    @property
    def usage(self) -> TokenUsage:
        """Usage summed over every record. Missing usage counts as zero."""
        total = TokenUsage()
        for record in self.records:
            if record.usage is not None:
                total = total + record.usage
        return total

    @property
    def total_tokens(self) -> int:
        return self.usage.total_tokens or 0


class SampleGenerationResult(BaseModel):
    """Result of schema-driven batch generation (one call, many samples)."""

    model_config = {"frozen": True}

    data: tuple[dict[str, Any], ...]
    usage: TokenUsage
    model: str
    provider: str


# === STORAGE ===


class NegotiationAttempt(BaseModel):
    """One storage candidate tried during negotiation."""

    with_cdn: bool
    succeeded: bool
    error: str | None = None


class UploadOutcome(BaseModel):
    """Artifacts captured while uploading.

    Each artifact field is set once and never retracted; see ``assign``.
    """

    file_name: str
    file_size_bytes: int
    content_identifier: str | None = None
    transaction_hash: str | None = None
    with_cdn: bool | None = None
    confirmed: bool = False
    negotiation_attempts: list[NegotiationAttempt] = Field(default_factory=list)

    def assign(self, field: Literal["content_identifier", "transaction_hash"], value: str) -> None:
        """Set an artifact field once. Later differing values are ignored."""
        current = getattr(self, field)
        if current is None:
            setattr(self, field, value)
        elif current != value:
            logger.warning(
                "Ignoring new %s %r, keeping first value %r", field, value, current,
            )

    @property
    def used_fallback(self) -> bool:
        """True when the CDN candidate failed and a later one succeeded."""
        return any(not a.succeeded for a in self.negotiation_attempts) and any(
            a.succeeded for a in self.negotiation_attempts
        )


# === CHAIN ===


class DatasetMetadata(BaseModel):
    """Marketplace listing details for a published dataset."""

    model_config = {"frozen": True, "protected_namespaces": ()}

    name: str = Field(min_length=3)
    description: str = Field(min_length=10)
    price: str = "0"
    visibility: Literal["public", "private"] = "public"
    model_id: str = Field(min_length=1)
    task_id: int | None = None

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: str) -> str:  # noqa: N805
        try:
            amount = Decimal(v)
        except InvalidOperation as e:
            raise ValueError("Price must be a non-negative number") from e
        if not amount.is_finite() or amount < 0:
            raise ValueError("Price must be a non-negative number")
        return v

    @property
    def is_public(self) -> bool:
        return self.visibility != "private"


class PublishRecord(BaseModel):
    """On-chain registration of a locked dataset."""

    model_config = {"frozen": True}

    dataset_id: int
    content_identifier: str
    row_count: int
    total_token_count: int
    create_transaction_hash: str | None = None
    lock_transaction_hash: str | None = None


# === CONTEXT ===


class WalletContext(BaseModel):
    """Explicit wallet/network context injected at pipeline start."""

    model_config = {"frozen": True, "arbitrary_types_allowed": True}

    address: str | None = None
    chain_id: int | None = None
    signer: Any = None

    @property
    def is_connected(self) -> bool:
        return bool(self.address)
