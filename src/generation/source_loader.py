# src/generation/source_loader.py — v1
"""Source dataset row loading.

Rows come from the Hugging Face datasets-server REST API, which serves at
most 100 rows per request, so larger slices are fetched page by page.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from typing import Any

from filethetic.core.errors import GenerationError

logger = logging.getLogger(__name__)

_PAGE_SIZE = 100


class BaseRowLoader(ABC):
    """Loads a slice of rows from a source dataset."""

    @abstractmethod
    async def load_rows(
        self,
        path: str,
        config: str,
        split: str,
        offset: int = 0,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        """Return up to ``limit`` rows starting at ``offset``."""


class HuggingFaceRowLoader(BaseRowLoader):
    """Rows from the datasets-server ``/rows`` endpoint."""

    def __init__(
        self,
        base_url: str = "https://datasets-server.huggingface.co",
        timeout_s: float = 30.0,
        token: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._token = token

    async def load_rows(
        self,
        path: str,
        config: str,
        split: str,
        offset: int = 0,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        rows: list[dict[str, Any]] = []
        while len(rows) < limit:
            length = min(_PAGE_SIZE, limit - len(rows))
            page = await asyncio.to_thread(
                self._fetch_page, path, config, split, offset + len(rows), length
            )
            batch = [entry.get("row", {}) for entry in page.get("rows", [])]
            rows.extend(batch)
            if len(batch) < length:
                break

        logger.info("Loaded %d rows from %s (%s/%s)", len(rows), path, config, split)
        return rows

    def _fetch_page(
        self, path: str, config: str, split: str, offset: int, length: int
    ) -> dict[str, Any]:
        """Blocking fetch of one page of rows."""
        query = urllib.parse.urlencode({
            "dataset": path,
            "config": config,
            "split": split,
            "offset": offset,
            "length": length,
        })
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        req = urllib.request.Request(f"{self._base_url}/rows?{query}", headers=headers)

        try:
            with urllib.request.urlopen(req, timeout=self._timeout_s) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raise GenerationError(
                f"Source dataset request failed ({exc.code}) for "
                f"{path} [{config}/{split}]"
            ) from exc
        except (urllib.error.URLError, TimeoutError, json.JSONDecodeError) as exc:
            raise GenerationError(
                f"Could not load source dataset {path} [{config}/{split}]: {exc}"
            ) from exc


class StaticRowLoader(BaseRowLoader):
    """In-memory rows, served regardless of the requested dataset."""

    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self._rows = list(rows)

    async def load_rows(
        self,
        path: str,
        config: str,
        split: str,
        offset: int = 0,
        limit: int = 10,
    ) -> list[dict[str, Any]]:
        return self._rows[offset : offset + limit]
