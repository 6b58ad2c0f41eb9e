# src/storage/events.py — v1
"""Upload state-transition events and the channel that carries them.

The uploader publishes one UploadEvent per state change. Listeners are
plain callables; ``open_queue`` gives an asyncio.Queue view for consumers
that prefer to await events.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class UploadPhase(str, Enum):
    INIT = "init"
    PREFLIGHT = "preflight"
    NEGOTIATE = "negotiate"
    TRANSFER = "transfer"
    ATTACH = "attach"
    CONFIRM = "confirm"
    DONE = "done"
    FAILED = "failed"


class UploadEvent(BaseModel):
    """One upload state transition."""

    phase: UploadPhase
    kind: str
    status: str
    progress: int = Field(ge=0, le=100)
    data: dict[str, Any] = Field(default_factory=dict)


EventListener = Callable[[UploadEvent], None]


class EventChannel:
    """Fan-out of upload events with a bounded history."""

    def __init__(self, history_size: int = 256) -> None:
        self._listeners: list[EventListener] = []
        self._history: deque[UploadEvent] = deque(maxlen=history_size)

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register ``listener``. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def open_queue(self, maxsize: int = 0) -> tuple[asyncio.Queue[UploadEvent], Callable[[], None]]:
        """Subscribe an asyncio.Queue. Returns the queue and its unsubscribe."""
        queue: asyncio.Queue[UploadEvent] = asyncio.Queue(maxsize=maxsize)
        return queue, self.subscribe(queue.put_nowait)

    def publish(self, event: UploadEvent) -> None:
        self._history.append(event)
        logger.debug("Upload %s/%s %d%%: %s", event.phase.value, event.kind, event.progress, event.status)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Upload event listener failed on %s", event.kind)

    @property
    def history(self) -> list[UploadEvent]:
        return list(self._history)

    def kinds(self) -> list[str]:
        """Event kinds in publication order."""
        return [e.kind for e in self._history]

    def clear(self) -> None:
        self._history.clear()
