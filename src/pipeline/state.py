# src/pipeline/state.py — v1
"""Publish pipeline state.

One PipelineState exists per orchestrator. The status tag alone decides
whether a new attempt may start; ``attempt_id`` increases on every run and
every reset so late results from an abandoned attempt can be recognised.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from filethetic.core.models import GenerationResult, PublishRecord, UploadOutcome


class PipelineStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    UPLOADING = "uploading"
    PUBLISHING = "publishing"
    COMPLETED = "completed"
    ERROR = "error"


ACTIVE_STATUSES = frozenset({
    PipelineStatus.GENERATING,
    PipelineStatus.UPLOADING,
    PipelineStatus.PUBLISHING,
})


class PipelineArtifacts(BaseModel):
    """Stage outputs accumulated during one attempt."""

    generation_result: GenerationResult | None = None
    upload_outcome: UploadOutcome | None = None
    publish_record: PublishRecord | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.generation_result is None
            and self.upload_outcome is None
            and self.publish_record is None
        )


class PipelineState(BaseModel):
    """Current stage, progress and error of the publish pipeline."""

    status: PipelineStatus = PipelineStatus.IDLE
    failed_stage: PipelineStatus | None = None
    error_message: str | None = None
    error_type: str | None = None
    recoverable: bool = False
    pending_dataset_id: int | None = None
    progress: int = 0
    status_text: str = ""
    attempt_id: int = 0
    run_id: str | None = None
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    artifacts: PipelineArtifacts = Field(default_factory=PipelineArtifacts)

    @property
    def is_processing(self) -> bool:
        """True while a stage is running; new attempts are refused."""
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in (PipelineStatus.COMPLETED, PipelineStatus.ERROR)
