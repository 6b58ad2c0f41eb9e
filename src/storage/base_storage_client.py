# src/storage/base_storage_client.py — v1
"""Abstract storage network client interface.

The network-specific SDK lives behind these classes. Lifecycle hooks are
async methods on callback objects; the default implementations do nothing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from filethetic.storage.dataset_resolver import select_best_dataset
from filethetic.storage.models import (
    DataSetCreationStatus,
    PendingTransaction,
    ProviderInfo,
    StorageDatasetInfo,
    UploadReceipt,
)


class StorageCallbacks:
    """Hooks fired while a storage service is being negotiated."""

    async def on_data_set_resolved(self, info: StorageDatasetInfo) -> None:
        """An existing dataset will be reused."""

    async def on_data_set_creation_started(
        self, transaction: PendingTransaction, status_url: str | None
    ) -> None:
        """A dataset-creation transaction was submitted."""

    async def on_data_set_creation_progress(self, status: DataSetCreationStatus) -> None:
        """Dataset creation advanced (chain confirmation, then server)."""

    async def on_provider_selected(self, provider: ProviderInfo) -> None:
        """A storage provider was chosen."""


class UploadCallbacks:
    """Hooks fired while bytes are uploaded and attached."""

    async def on_upload_complete(self, piece_cid: str) -> None:
        """Bytes are stored and addressable by ``piece_cid``."""

    async def on_piece_added(self, transaction: PendingTransaction | None) -> None:
        """The piece-addition transaction was submitted."""

    async def on_piece_confirmed(self, piece_ids: list[int]) -> None:
        """The provider confirmed the piece is part of the dataset."""


class BaseStorageService(ABC):
    """A negotiated storage service bound to one provider and dataset."""

    @abstractmethod
    async def upload(self, data: bytes, callbacks: UploadCallbacks) -> UploadReceipt:
        """Upload ``data`` and attach it to the dataset."""

    @property
    @abstractmethod
    def with_cdn(self) -> bool:
        """Whether this service serves content through the CDN."""


class BaseStorageClient(ABC):
    """Unified interface for decentralized storage backends."""

    @abstractmethod
    async def list_client_datasets(self, address: str) -> list[StorageDatasetInfo]:
        """All datasets owned by ``address``."""

    @abstractmethod
    async def create_storage(
        self,
        address: str,
        with_cdn: bool,
        callbacks: StorageCallbacks,
        existing: StorageDatasetInfo | None = None,
    ) -> BaseStorageService:
        """Negotiate a storage service, reusing ``existing`` when given."""

    @abstractmethod
    async def estimate_upload_cost(self, size_bytes: int, with_cdn: bool) -> int:
        """Cost of storing ``size_bytes``, in base units."""

    async def find_existing_dataset(
        self, address: str, prefer_cdn: bool = True
    ) -> StorageDatasetInfo | None:
        """Best existing dataset for ``address``, or None."""
        return select_best_dataset(await self.list_client_datasets(address), prefer_cdn)
