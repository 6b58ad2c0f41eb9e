# src/pipeline/orchestrator.py — v1
"""Publish pipeline orchestrator.

Sequences the three stages of a publish attempt:

    idle → generating → uploading → publishing → completed
                 ╰──────────┴────────────┴──→ error(stage)

Each transition waits for the previous stage to finish; nothing runs in
parallel. A failure stops the attempt, keeps the artifacts already
produced, and is terminal until ``reset``. There is no automatic retry.
``completed`` reverts to ``idle`` after a short delay, clearing artifacts.

``reset`` may be called at any time. It stops waiting on the running stage
at once; the underlying call is left to finish in the background and its
result is discarded.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, TypeVar

from filethetic.chain.publisher import ChainPublisher, total_token_count
from filethetic.config.settings import Settings
from filethetic.core.errors import (
    ConfigurationError,
    PipelineBusyError,
    PipelineError,
    PublishError,
    UploadError,
)
from filethetic.core.models import (
    DatasetMetadata,
    GenerationRequest,
    GenerationResult,
    PublishRecord,
    UploadOutcome,
    WalletContext,
)
from filethetic.generation.generator import SyntheticDataGenerator
from filethetic.logging.context import clear_context, set_run_context, set_stage_context
from filethetic.pipeline.state import PipelineArtifacts, PipelineState, PipelineStatus
from filethetic.storage.events import UploadEvent
from filethetic.storage.uploader import StorageUploader, serialize_generation_result

logger = logging.getLogger(__name__)

T = TypeVar("T")
StateListener = Callable[[PipelineState], None]

_STAGE_LABELS = {
    PipelineStatus.GENERATING: "Generation",
    PipelineStatus.UPLOADING: "Upload",
    PipelineStatus.PUBLISHING: "Publishing",
}


def _discard_result(task: asyncio.Task[Any]) -> None:
    """Consume the result of an abandoned stage call."""
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Abandoned stage call finished with %s: %s", type(exc).__name__, exc)
    else:
        logger.debug("Abandoned stage call finished, result discarded")


class PipelineOrchestrator:
    """Drives one publish attempt at a time through generate, upload, publish.

    Args:
        generator: Generation stage.
        uploader: Upload stage. Its events feed progress and status text.
        publisher: Publish stage.
        settings: Completed-state reset delay.
    """

    def __init__(
        self,
        generator: SyntheticDataGenerator,
        uploader: StorageUploader,
        publisher: ChainPublisher,
        settings: Settings | None = None,
    ) -> None:
        self._generator = generator
        self._uploader = uploader
        self._publisher = publisher
        self._settings = settings or Settings()
        self._state = PipelineState()
        self._listeners: list[StateListener] = []
        self._abort: asyncio.Event | None = None
        self._upload_attempt: int | None = None
        self._reset_task: asyncio.Task[None] | None = None
        uploader.events.subscribe(self._on_upload_event)

    # === PUBLIC API ===

    @property
    def state(self) -> PipelineState:
        """Snapshot of the current state."""
        return self._state.model_copy(deep=True)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot on every change. Returns unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def run(
        self,
        request: GenerationRequest,
        metadata: DatasetMetadata,
        wallet: WalletContext,
    ) -> PipelineState:
        """Run one publish attempt to a terminal state.

        Returns:
            Snapshot of the state when the attempt ended (completed or
            error), or when it was abandoned by ``reset``.

        Raises:
            PipelineBusyError: Another attempt is still running.
        """
        if self._state.is_processing:
            raise PipelineBusyError("A publish attempt is already in progress")
        self._cancel_reset_task()

        attempt = self._begin_attempt()
        set_run_context(self._state.run_id or "", wallet.address)
        try:
            result = await self._run_stage(
                attempt, PipelineStatus.GENERATING, "Generating synthetic data",
                lambda: self._generator.generate(request),
            )
            if result is None:
                return self.state
            self._state.artifacts.generation_result = result

            outcome = await self._enter_uploading(attempt, result, wallet)
            if outcome is None:
                return self.state
            self._state.artifacts.upload_outcome = outcome

            record = await self._enter_publishing(attempt, result, outcome, metadata, wallet)
            if record is None:
                return self.state
            self._complete(attempt, record)
            return self.state
        finally:
            clear_context()

    def reset(self) -> None:
        """Return to idle, clearing artifacts and abandoning any running stage."""
        previous = self._state.status
        if self._abort is not None:
            self._abort.set()
            self._abort = None
        self._cancel_reset_task()
        self._state = PipelineState(attempt_id=self._state.attempt_id + 1)
        logger.info("Pipeline reset from %s", previous.value)
        self._notify()

    async def shutdown(self) -> None:
        """Cancel the pending completed-state reset, if any."""
        task = self._reset_task
        self._cancel_reset_task()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # === STAGES ===

    async def _enter_uploading(
        self, attempt: int, result: GenerationResult, wallet: WalletContext
    ) -> UploadOutcome | None:
        if attempt == self._upload_attempt or self._state.artifacts.upload_outcome is not None:
            logger.warning("Upload already started for attempt %d, not starting again", attempt)
            return None
        self._upload_attempt = attempt

        if len(result) == 0:
            self._transition(attempt, PipelineStatus.UPLOADING, "Uploading to storage")
            self._fail(attempt, PipelineStatus.UPLOADING, UploadError("No generated records to upload"))
            return None

        payload = serialize_generation_result(result)
        return await self._run_stage(
            attempt, PipelineStatus.UPLOADING, "Uploading to storage",
            lambda: self._uploader.upload(payload, wallet),
        )

    async def _enter_publishing(
        self,
        attempt: int,
        result: GenerationResult,
        outcome: UploadOutcome,
        metadata: DatasetMetadata,
        wallet: WalletContext,
    ) -> PublishRecord | None:
        self._transition(attempt, PipelineStatus.PUBLISHING, "Publishing to the marketplace")
        if not wallet.is_connected:
            self._fail(
                attempt, PipelineStatus.PUBLISHING,
                ConfigurationError("Wallet not connected. Cannot publish dataset.", stage="publishing"),
            )
            return None
        if not outcome.content_identifier:
            self._fail(
                attempt, PipelineStatus.PUBLISHING,
                PublishError("Upload produced no content identifier", phase="create"),
            )
            return None

        return await self._run_stage(
            attempt, PipelineStatus.PUBLISHING, "Publishing to the marketplace",
            lambda: self._publisher.publish(
                metadata,
                outcome.content_identifier or "",
                len(result),
                total_token_count(result.records),
                wallet,
            ),
        )

    async def _run_stage(
        self,
        attempt: int,
        stage: PipelineStatus,
        status_text: str,
        call: Callable[[], Awaitable[T]],
    ) -> T | None:
        """Await one stage call. None means the attempt stopped here."""
        if self._state.status != stage:
            self._transition(attempt, stage, status_text)

        abort = self._abort
        task = asyncio.ensure_future(call())
        waiters: set[asyncio.Future[Any]] = {task}
        abort_waiter = None
        if abort is not None:
            abort_waiter = asyncio.ensure_future(abort.wait())
            waiters.add(abort_waiter)

        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if abort_waiter is not None:
                abort_waiter.cancel()

        if not task.done():
            logger.info("Attempt %d abandoned during %s", attempt, stage.value)
            task.add_done_callback(_discard_result)
            return None

        if not self._is_current(attempt):
            _discard_result(task)
            return None

        exc = task.exception()
        if exc is not None:
            self._fail(attempt, stage, exc)
            return None
        return task.result()

    # === TRANSITIONS ===

    def _begin_attempt(self) -> int:
        attempt = self._state.attempt_id + 1
        self._abort = asyncio.Event()
        self._state = PipelineState(
            attempt_id=attempt,
            run_id=uuid.uuid4().hex[:12],
            artifacts=PipelineArtifacts(),
        )
        logger.info("Starting publish attempt %d (run %s)", attempt, self._state.run_id)
        return attempt

    def _transition(self, attempt: int, status: PipelineStatus, status_text: str) -> None:
        if not self._is_current(attempt):
            return
        self._state.status = status
        self._state.status_text = status_text
        self._state.progress = 0
        set_stage_context(status.value)
        logger.info("Pipeline stage: %s", status.value)
        self._notify()

    def _fail(self, attempt: int, stage: PipelineStatus, exc: BaseException) -> None:
        if not self._is_current(attempt):
            return
        message = exc.message if isinstance(exc, PipelineError) else str(exc)
        label = _STAGE_LABELS.get(stage, stage.value.capitalize())

        state = self._state
        state.status = PipelineStatus.ERROR
        state.failed_stage = stage
        state.error_message = f"{label} failed: {message}"
        state.error_type = type(exc).__name__
        state.status_text = state.error_message
        state.recoverable = False
        if isinstance(exc, UploadError):
            if exc.outcome is not None:
                state.artifacts.upload_outcome = exc.outcome
            state.recoverable = exc.recoverable
        elif isinstance(exc, PublishError) and exc.phase == "lock":
            state.pending_dataset_id = exc.dataset_id
            state.recoverable = exc.dataset_id is not None

        self._abort = None
        if isinstance(exc, PipelineError):
            logger.error("%s (%s)", state.error_message, state.error_type)
        else:
            logger.error("%s", state.error_message, exc_info=exc)
        self._notify()

    def _complete(self, attempt: int, record: PublishRecord) -> None:
        if not self._is_current(attempt):
            return
        state = self._state
        state.artifacts.publish_record = record
        state.status = PipelineStatus.COMPLETED
        state.progress = 100
        state.status_text = f"Dataset {record.dataset_id} published"
        self._abort = None
        logger.info(
            "Published dataset %d (%d rows, %d tokens, %s)",
            record.dataset_id, record.row_count, record.total_token_count,
            record.content_identifier,
        )
        self._notify()

        delay = self._settings.pipeline_completed_reset_delay_s
        self._reset_task = asyncio.get_running_loop().create_task(
            self._reset_after_completion(attempt, delay)
        )

    async def _reset_after_completion(self, attempt: int, delay: float) -> None:
        await asyncio.sleep(delay)
        if self._is_current(attempt) and self._state.status == PipelineStatus.COMPLETED:
            self._reset_task = None
            self.reset()

    def _cancel_reset_task(self) -> None:
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = None

    def _is_current(self, attempt: int) -> bool:
        return attempt == self._state.attempt_id

    # === EVENTS ===

    def _on_upload_event(self, event: UploadEvent) -> None:
        if self._state.status != PipelineStatus.UPLOADING:
            return
        self._state.progress = event.progress
        self._state.status_text = event.status
        self._notify()

    def _notify(self) -> None:
        self._state.updated_at = datetime.now(timezone.utc)
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Pipeline state listener failed")
