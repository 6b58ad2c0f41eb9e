# src/storage/models.py — v1
"""Storage domain models: dataset handles, receipts, preflight results."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel


class StorageDatasetInfo(BaseModel):
    """A provider-side dataset (proof set) owned by a client address."""

    dataset_id: int
    provider_id: int | str
    with_cdn: bool = False
    current_piece_count: int = 0


class ProviderInfo(BaseModel):
    """Storage provider chosen for a storage service."""

    provider_id: int | str
    name: str = ""
    service_url: str = ""


class DataSetCreationStatus(BaseModel):
    """Progress of a dataset-creation transaction."""

    transaction_success: bool = False
    server_confirmed: bool = False
    elapsed_ms: int = 0


class UploadReceipt(BaseModel):
    """Result returned by a storage service after upload."""

    piece_cid: str
    piece_id: int | None = None


class PreflightReport(BaseModel):
    """Outcome of a passed balance/allowance check."""

    required: int
    balance: int
    allowance: int
    includes_creation_fee: bool


@runtime_checkable
class PendingTransaction(Protocol):
    """Submitted transaction that can be awaited for its receipt."""

    hash: str

    async def wait(self) -> Any:
        ...
