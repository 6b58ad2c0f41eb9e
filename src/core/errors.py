# src/core/errors.py — v1
"""Error taxonomy for the publish pipeline.

Every error carries a human-readable message and the pipeline stage it
belongs to, so the orchestrator can surface a single stage-scoped error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from filethetic.core.models import UploadOutcome


class PipelineError(Exception):
    """Base class for all pipeline stage errors."""

    stage: str | None = None
    retryable: bool = True

    def __init__(self, message: str, stage: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if stage is not None:
            self.stage = stage


class ConfigurationError(PipelineError):
    """Missing wallet/network context or inconsistent settings."""

    retryable = False


class GenerationError(PipelineError):
    """Upstream model failure or unparseable/invalid model output."""

    stage = "generating"

    def __init__(self, message: str, raw_prefix: str | None = None) -> None:
        super().__init__(message)
        self.raw_prefix = raw_prefix


class UploadError(PipelineError):
    """Storage negotiation or transport failure.

    ``outcome`` holds whatever the upload produced before failing. When it
    carries a content identifier the bytes are already stored and only the
    attach/confirm steps need to be repeated.
    """

    stage = "uploading"

    def __init__(self, message: str, outcome: UploadOutcome | None = None) -> None:
        super().__init__(message)
        self.outcome = outcome

    @property
    def recoverable(self) -> bool:
        return self.outcome is not None and bool(self.outcome.content_identifier)


class InsufficientFundsError(UploadError):
    """Preflight balance/allowance shortfall. Needs external funding."""

    retryable = False

    def __init__(
        self,
        kind: Literal["balance", "allowance"],
        required: int,
        available: int,
    ) -> None:
        self.kind = kind
        self.required = required
        self.available = available
        self.shortfall = required - available
        super().__init__(
            f"Insufficient {kind}: required {required}, available {available} "
            f"(short by {self.shortfall})"
        )


class PublishError(PipelineError):
    """On-chain create or lock transaction failure.

    ``phase == "create"`` is terminal for the attempt. ``phase == "lock"``
    leaves a created-but-unlocked record whose ``dataset_id`` can be passed
    back to ``ChainPublisher.lock``.
    """

    stage = "publishing"

    def __init__(
        self,
        message: str,
        phase: Literal["create", "lock"],
        dataset_id: int | None = None,
    ) -> None:
        super().__init__(message)
        self.phase = phase
        self.dataset_id = dataset_id


class PipelineBusyError(PipelineError):
    """A publish attempt is already active."""

    retryable = False
