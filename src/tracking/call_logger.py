# src/tracking/call_logger.py — v1
"""Text-generation call logging for usage and cost tracking.

Records one LLMCallRecord per model call for post-run analysis.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from filethetic.llm.models import LLMResponse
from filethetic.tracking.models import LLMCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates call records during a pipeline run."""

    def __init__(self) -> None:
        self._records: list[LLMCallRecord] = []

    def record(
        self,
        component: str,
        step: str,
        response: LLMResponse,
        status: str = "success",
    ) -> LLMCallRecord:
        """Record a successful or failed call.

        Args:
            component: Calling component (e.g. "generator").
            step: Step identifier (e.g. "row_0003").
            response: Model response with token usage.
            status: Call status (success, failed).

        Returns:
            The recorded LLMCallRecord.
        """
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            component=component,
            step=step,
            provider=response.provider,
            model=response.model,
            input_tokens=response.input_tokens,
            output_tokens=response.output_tokens,
            total_tokens=response.total_tokens,
            latency_ms=response.latency_ms,
            status=status,
        )
        self._records.append(record)
        logger.debug(
            "Recorded %s call %s/%s: %d tokens",
            record.model, component, step, record.total_tokens,
        )
        return record

    def clear(self) -> None:
        self._records.clear()

    @property
    def records(self) -> list[LLMCallRecord]:
        """All recorded calls."""
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed across all calls."""
        return sum(r.total_tokens for r in self._records)

    @property
    def total_calls(self) -> int:
        return len(self._records)

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
