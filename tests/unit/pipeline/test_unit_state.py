# tests/unit/pipeline/test_state.py — v1
"""Tests for pipeline/state.py."""

from __future__ import annotations

import pytest

from filethetic.core.models import PublishRecord
from filethetic.pipeline.state import PipelineArtifacts, PipelineState, PipelineStatus


class TestPipelineState:
    def test_defaults(self):
        state = PipelineState()
        assert state.status == PipelineStatus.IDLE
        assert state.progress == 0
        assert state.artifacts.is_empty
        assert not state.is_processing
        assert not state.is_terminal

    @pytest.mark.parametrize("status,processing,terminal", [
        (PipelineStatus.GENERATING, True, False),
        (PipelineStatus.UPLOADING, True, False),
        (PipelineStatus.PUBLISHING, True, False),
        (PipelineStatus.COMPLETED, False, True),
        (PipelineStatus.ERROR, False, True),
    ])
    def test_status_flags(self, status, processing, terminal):
        state = PipelineState(status=status)
        assert state.is_processing is processing
        assert state.is_terminal is terminal

    def test_status_values(self):
        assert PipelineStatus("uploading") is PipelineStatus.UPLOADING
        assert PipelineStatus.ERROR.value == "error"


class TestPipelineArtifacts:
    def test_not_empty_with_record(self):
        artifacts = PipelineArtifacts(publish_record=PublishRecord(
            dataset_id=1, content_identifier="bafk", row_count=1, total_token_count=10,
        ))
        assert not artifacts.is_empty

    def test_snapshot_is_independent(self):
        state = PipelineState()
        snapshot = state.model_copy(deep=True)
        snapshot.artifacts.publish_record = PublishRecord(
            dataset_id=1, content_identifier="bafk", row_count=1, total_token_count=10,
        )
        assert state.artifacts.is_empty
