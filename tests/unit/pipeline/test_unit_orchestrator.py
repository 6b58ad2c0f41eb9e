# tests/unit/pipeline/test_orchestrator.py — v1
"""Tests for pipeline/orchestrator.py — stage sequencing, failure and reset."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from filethetic.chain.publisher import ChainPublisher
from filethetic.core.errors import PipelineBusyError
from filethetic.core.models import (
    GenerationRecord,
    GenerationResult,
    NegotiationAttempt,
    UploadOutcome,
    WalletContext,
)
from filethetic.generation.generator import SyntheticDataGenerator
from filethetic.generation.source_loader import StaticRowLoader
from filethetic.pipeline.orchestrator import PipelineOrchestrator
from filethetic.pipeline.state import PipelineStatus
from filethetic.storage.events import EventChannel
from filethetic.storage.uploader import StorageUploader


def _build(mock_llm, sample_rows, memory_storage, memory_chain, settings):
    generator = SyntheticDataGenerator(mock_llm, StaticRowLoader(sample_rows))
    uploader = StorageUploader(memory_storage, memory_chain, settings)
    publisher = ChainPublisher(memory_chain, settings)
    return PipelineOrchestrator(generator, uploader, publisher, settings)


def _mock_uploader(outcome: UploadOutcome | None = None) -> MagicMock:
    uploader = MagicMock()
    uploader.events = EventChannel()
    uploader.upload = AsyncMock(return_value=outcome or UploadOutcome(
        file_name="dataset.json", file_size_bytes=10, content_identifier="cid123",
    ))
    return uploader


def _statuses(snapshots) -> list[PipelineStatus]:
    """Distinct consecutive statuses seen by a listener."""
    seen: list[PipelineStatus] = []
    for snap in snapshots:
        if not seen or seen[-1] != snap.status:
            seen.append(snap.status)
    return seen


@pytest.fixture
def orchestrator(mock_llm, sample_rows, memory_storage, memory_chain, settings):
    return _build(mock_llm, sample_rows, memory_storage, memory_chain, settings)


class TestHappyPath:
    @pytest.mark.asyncio
    async def test_completes(self, orchestrator, sample_request, sample_metadata, wallet):
        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.status == PipelineStatus.COMPLETED
        assert state.progress == 100
        record = state.artifacts.publish_record
        assert record.dataset_id == 1
        assert record.row_count == 3
        assert record.total_token_count == 300
        assert record.content_identifier == state.artifacts.upload_outcome.content_identifier
        assert len(state.artifacts.generation_result) == 3
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_listener_sees_stage_order(
        self, orchestrator, sample_request, sample_metadata, wallet
    ):
        snapshots = []
        orchestrator.subscribe(snapshots.append)

        await orchestrator.run(sample_request, sample_metadata, wallet)

        assert _statuses(snapshots) == [
            PipelineStatus.GENERATING,
            PipelineStatus.UPLOADING,
            PipelineStatus.PUBLISHING,
            PipelineStatus.COMPLETED,
        ]
        upload_progress = [s.progress for s in snapshots if s.status == PipelineStatus.UPLOADING]
        assert max(upload_progress) == 100
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_unsubscribe(self, orchestrator, sample_request, sample_metadata, wallet):
        listener = MagicMock()
        unsubscribe = orchestrator.subscribe(listener)
        unsubscribe()
        await orchestrator.run(sample_request, sample_metadata, wallet)
        listener.assert_not_called()
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_auto_reset_after_completion(
        self, orchestrator, sample_request, sample_metadata, wallet
    ):
        state = await orchestrator.run(sample_request, sample_metadata, wallet)
        assert state.status == PipelineStatus.COMPLETED

        for _ in range(5):
            await asyncio.sleep(0)

        current = orchestrator.state
        assert current.status == PipelineStatus.IDLE
        assert current.artifacts.is_empty
        assert current.attempt_id == state.attempt_id + 1

    @pytest.mark.asyncio
    async def test_completed_state_held_until_delay(
        self, mock_llm, sample_rows, memory_storage, memory_chain, settings,
        sample_request, sample_metadata, wallet,
    ):
        settings = settings.model_copy(update={"pipeline_completed_reset_delay_s": 60})
        orchestrator = _build(mock_llm, sample_rows, memory_storage, memory_chain, settings)

        await orchestrator.run(sample_request, sample_metadata, wallet)
        await asyncio.sleep(0)

        assert orchestrator.state.status == PipelineStatus.COMPLETED
        await orchestrator.shutdown()
        assert orchestrator.state.status == PipelineStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_upload_called_once(
        self, mock_llm, sample_rows, memory_chain, settings,
        sample_request, sample_metadata, wallet,
    ):
        uploader = _mock_uploader()
        orchestrator = PipelineOrchestrator(
            SyntheticDataGenerator(mock_llm, StaticRowLoader(sample_rows)),
            uploader,
            ChainPublisher(memory_chain, settings),
            settings,
        )

        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.status == PipelineStatus.COMPLETED
        uploader.upload.assert_awaited_once()
        payload, passed_wallet = uploader.upload.await_args.args
        assert payload.startswith(b"[")
        assert passed_wallet == wallet
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_upload_entry_guard(self, mock_llm, sample_rows, memory_chain, settings, wallet):
        uploader = _mock_uploader()
        orchestrator = PipelineOrchestrator(
            SyntheticDataGenerator(mock_llm, StaticRowLoader(sample_rows)),
            uploader,
            ChainPublisher(memory_chain, settings),
            settings,
        )
        result = GenerationResult(
            records=(GenerationRecord(input="q", output={"a": 1}),),
            model="gpt-4o",
            provider="openai",
        )

        first_attempt = orchestrator._begin_attempt()
        assert await orchestrator._enter_uploading(first_attempt, result, wallet) is not None
        assert await orchestrator._enter_uploading(first_attempt, result, wallet) is None
        uploader.upload.assert_awaited_once()

        second_attempt = orchestrator._begin_attempt()
        assert await orchestrator._enter_uploading(second_attempt, result, wallet) is not None
        assert uploader.upload.await_count == 2
        assert orchestrator._upload_attempt == second_attempt


class TestStageFailures:
    @pytest.mark.asyncio
    async def test_generation_failure(
        self, orchestrator, mock_llm, sample_request, sample_metadata, wallet, memory_storage
    ):
        mock_llm.complete.side_effect = RuntimeError("rate limited")

        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.status == PipelineStatus.ERROR
        assert state.failed_stage == PipelineStatus.GENERATING
        assert state.error_message == "Generation failed: openai generation failed: rate limited"
        assert state.error_type == "GenerationError"
        assert state.artifacts.is_empty
        assert memory_storage.pieces == {}

    @pytest.mark.asyncio
    async def test_upload_failure_keeps_artifacts(
        self, orchestrator, memory_storage, memory_chain, sample_request, sample_metadata, wallet
    ):
        memory_storage.fail_attach = True

        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.status == PipelineStatus.ERROR
        assert state.failed_stage == PipelineStatus.UPLOADING
        assert state.error_message.startswith("Upload failed: ")
        assert state.recoverable is True
        assert state.artifacts.generation_result is not None
        assert state.artifacts.upload_outcome.content_identifier in memory_storage.pieces
        assert memory_chain.records == {}

    @pytest.mark.asyncio
    async def test_insufficient_funds(
        self, orchestrator, memory_chain, sample_request, sample_metadata, wallet
    ):
        memory_chain.balances[wallet.address.lower()] = 0

        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.failed_stage == PipelineStatus.UPLOADING
        assert state.error_type == "InsufficientFundsError"
        assert state.recoverable is False

    @pytest.mark.asyncio
    async def test_empty_generation_result(
        self, memory_chain, settings, sample_request, sample_metadata, wallet
    ):
        generator = MagicMock()
        generator.generate = AsyncMock(
            return_value=GenerationResult(records=(), model="gpt-4o", provider="openai")
        )
        uploader = _mock_uploader()
        orchestrator = PipelineOrchestrator(
            generator, uploader, ChainPublisher(memory_chain, settings), settings,
        )

        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.failed_stage == PipelineStatus.UPLOADING
        assert state.error_message == "Upload failed: No generated records to upload"
        uploader.upload.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_failure(
        self, orchestrator, memory_chain, sample_request, sample_metadata, wallet
    ):
        memory_chain.fail_create = True

        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.failed_stage == PipelineStatus.PUBLISHING
        assert state.error_message.startswith("Publishing failed: Dataset creation failed")
        assert state.pending_dataset_id is None
        assert state.artifacts.upload_outcome.content_identifier

    @pytest.mark.asyncio
    async def test_lock_failure_reports_pending_dataset(
        self, orchestrator, memory_chain, sample_request, sample_metadata, wallet
    ):
        memory_chain.fail_lock = True

        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.failed_stage == PipelineStatus.PUBLISHING
        assert state.pending_dataset_id == 1
        assert state.recoverable is True
        assert state.artifacts.publish_record is None

    @pytest.mark.asyncio
    async def test_publish_requires_wallet_address(
        self, mock_llm, sample_rows, memory_chain, settings, sample_request, sample_metadata
    ):
        orchestrator = PipelineOrchestrator(
            SyntheticDataGenerator(mock_llm, StaticRowLoader(sample_rows)),
            _mock_uploader(),
            ChainPublisher(memory_chain, settings),
            settings,
        )

        state = await orchestrator.run(
            sample_request, sample_metadata, WalletContext(signer=object()),
        )

        assert state.failed_stage == PipelineStatus.PUBLISHING
        assert state.error_type == "ConfigurationError"
        assert "Wallet not connected" in state.error_message
        assert memory_chain.records == {}

    @pytest.mark.asyncio
    async def test_error_is_terminal(
        self, orchestrator, mock_llm, sample_request, sample_metadata, wallet
    ):
        mock_llm.complete.side_effect = RuntimeError("boom")
        await orchestrator.run(sample_request, sample_metadata, wallet)

        for _ in range(3):
            await asyncio.sleep(0)

        assert orchestrator.state.status == PipelineStatus.ERROR


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_busy_while_running(
        self, memory_chain, memory_storage, settings, sample_request, sample_metadata, wallet
    ):
        release = asyncio.Event()

        async def slow_generate(request):
            await release.wait()
            return GenerationResult(records=(), model="gpt-4o", provider="openai")

        generator = MagicMock()
        generator.generate = slow_generate
        orchestrator = PipelineOrchestrator(
            generator,
            StorageUploader(memory_storage, memory_chain, settings),
            ChainPublisher(memory_chain, settings),
            settings,
        )

        first = asyncio.create_task(orchestrator.run(sample_request, sample_metadata, wallet))
        await asyncio.sleep(0)
        assert orchestrator.state.status == PipelineStatus.GENERATING

        with pytest.raises(PipelineBusyError):
            await orchestrator.run(sample_request, sample_metadata, wallet)

        release.set()
        state = await first
        assert state.status == PipelineStatus.ERROR

    @pytest.mark.asyncio
    async def test_reset_abandons_running_stage(
        self, memory_chain, memory_storage, settings, sample_request, sample_metadata, wallet
    ):
        release = asyncio.Event()
        finished = asyncio.Event()

        async def slow_generate(request):
            await release.wait()
            finished.set()
            raise RuntimeError("late failure")

        generator = MagicMock()
        generator.generate = slow_generate
        orchestrator = PipelineOrchestrator(
            generator,
            StorageUploader(memory_storage, memory_chain, settings),
            ChainPublisher(memory_chain, settings),
            settings,
        )

        task = asyncio.create_task(orchestrator.run(sample_request, sample_metadata, wallet))
        await asyncio.sleep(0)
        orchestrator.reset()

        state = await task
        assert state.status == PipelineStatus.IDLE

        release.set()
        await finished.wait()
        await asyncio.sleep(0)

        current = orchestrator.state
        assert current.status == PipelineStatus.IDLE
        assert current.error_message is None
        assert current.artifacts.is_empty

    @pytest.mark.asyncio
    async def test_reset_after_error_starts_clean(
        self, orchestrator, memory_storage, sample_request, sample_metadata, wallet
    ):
        memory_storage.fail_attach = True
        failed = await orchestrator.run(sample_request, sample_metadata, wallet)
        assert failed.failed_stage == PipelineStatus.UPLOADING

        orchestrator.reset()
        idle = orchestrator.state
        assert idle.status == PipelineStatus.IDLE
        assert idle.artifacts.is_empty
        assert idle.failed_stage is None
        assert idle.attempt_id == failed.attempt_id + 1

        memory_storage.fail_attach = False
        state = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert state.status == PipelineStatus.COMPLETED
        assert state.run_id != failed.run_id
        assert failed.artifacts.upload_outcome.transaction_hash is None
        assert state.artifacts.upload_outcome.transaction_hash is not None
        assert state.artifacts.upload_outcome.negotiation_attempts == [
            NegotiationAttempt(with_cdn=True, succeeded=True)
        ]
        assert state.artifacts.upload_outcome.confirmed is True
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_rerun_from_error_without_reset(
        self, orchestrator, memory_chain, sample_request, sample_metadata, wallet
    ):
        memory_chain.fail_create = True
        first = await orchestrator.run(sample_request, sample_metadata, wallet)
        assert first.status == PipelineStatus.ERROR

        memory_chain.fail_create = False
        second = await orchestrator.run(sample_request, sample_metadata, wallet)

        assert second.status == PipelineStatus.COMPLETED
        assert second.attempt_id == first.attempt_id + 1
        await orchestrator.shutdown()
