# src/logging/context.py — v1
"""Contextual logging support: attach run_id, stage, wallet to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per publish attempt.
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_wallet: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "wallet", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    wallet: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        wallet=_wallet.get(),
        stage=_stage.get(),
    )


def set_run_context(run_id: str, wallet: str | None = None) -> None:
    """Set attempt-level context (called once per publish attempt)."""
    _run_id.set(run_id)
    _wallet.set(wallet)


def set_stage_context(stage: str | None) -> None:
    """Set stage-level context (called on every stage transition)."""
    _stage.set(stage)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _wallet.set(None)
    _stage.set(None)
