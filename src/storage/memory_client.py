# src/storage/memory_client.py — v1
"""In-memory storage backend for dry runs and tests.

Piece CIDs are derived from the payload's sha256, so the same bytes always
map to the same identifier. Failures can be injected per phase.
"""

from __future__ import annotations

import hashlib
import logging
import math

from filethetic.chain.models import TransactionReceipt
from filethetic.storage.base_storage_client import (
    BaseStorageClient,
    BaseStorageService,
    StorageCallbacks,
    UploadCallbacks,
)
from filethetic.storage.models import (
    DataSetCreationStatus,
    ProviderInfo,
    StorageDatasetInfo,
    UploadReceipt,
)

logger = logging.getLogger(__name__)


def piece_cid_for(data: bytes) -> str:
    return "bafkzcib" + hashlib.sha256(data).hexdigest()[:52]


class MemoryTransaction:
    """Pending transaction that resolves immediately, or reverts."""

    def __init__(self, hash: str, revert: bool = False) -> None:
        self.hash = hash
        self._revert = revert

    async def wait(self) -> TransactionReceipt:
        if self._revert:
            raise RuntimeError(f"transaction {self.hash} reverted")
        return TransactionReceipt(transaction_hash=self.hash, block_number=1)


class InMemoryStorageService(BaseStorageService):
    def __init__(
        self, client: InMemoryStorageClient, dataset: StorageDatasetInfo, with_cdn: bool
    ) -> None:
        self._client = client
        self._dataset = dataset
        self._with_cdn = with_cdn

    @property
    def with_cdn(self) -> bool:
        return self._with_cdn

    async def upload(self, data: bytes, callbacks: UploadCallbacks) -> UploadReceipt:
        client = self._client
        if client.fail_transfer:
            raise ConnectionError("storage provider rejected the upload")

        cid = piece_cid_for(data)
        client.pieces[cid] = bytes(data)
        await callbacks.on_upload_complete(cid)

        tx = None
        if client.report_piece_transaction:
            digest = hashlib.sha256(cid.encode()).hexdigest()
            tx = MemoryTransaction(f"0x{digest}", revert=client.fail_attach)
        await callbacks.on_piece_added(tx)

        piece_id = self._dataset.current_piece_count
        self._dataset.current_piece_count += 1
        if client.confirm_pieces:
            await callbacks.on_piece_confirmed([piece_id])
        return UploadReceipt(piece_cid=cid, piece_id=piece_id)


class InMemoryStorageClient(BaseStorageClient):
    """Storage client keeping datasets and pieces in dictionaries.

    Args:
        cdn_available: When False, CDN negotiation raises.
        price_per_kib: Storage cost per started KiB, in base units.
        cdn_price_per_kib: Extra cost per KiB when served through the CDN.
    """

    def __init__(
        self,
        cdn_available: bool = True,
        price_per_kib: int = 1,
        cdn_price_per_kib: int = 1,
    ) -> None:
        self.cdn_available = cdn_available
        self.price_per_kib = price_per_kib
        self.cdn_price_per_kib = cdn_price_per_kib
        self.fail_lookup = False
        self.fail_transfer = False
        self.fail_attach = False
        self.report_piece_transaction = True
        self.confirm_pieces = True
        self.datasets: dict[str, list[StorageDatasetInfo]] = {}
        self.pieces: dict[str, bytes] = {}
        self._next_dataset_id = 1

    def add_dataset(
        self, address: str, with_cdn: bool, current_piece_count: int = 0
    ) -> StorageDatasetInfo:
        dataset = StorageDatasetInfo(
            dataset_id=self._next_dataset_id,
            provider_id=1,
            with_cdn=with_cdn,
            current_piece_count=current_piece_count,
        )
        self._next_dataset_id += 1
        self.datasets.setdefault(address.lower(), []).append(dataset)
        return dataset

    async def list_client_datasets(self, address: str) -> list[StorageDatasetInfo]:
        if self.fail_lookup:
            raise ConnectionError("dataset lookup unavailable")
        return [d.model_copy() for d in self.datasets.get(address.lower(), [])]

    async def create_storage(
        self,
        address: str,
        with_cdn: bool,
        callbacks: StorageCallbacks,
        existing: StorageDatasetInfo | None = None,
    ) -> BaseStorageService:
        if with_cdn and not self.cdn_available:
            raise ConnectionError("no CDN-enabled storage provider available")

        dataset = self._lookup(address, existing)
        if dataset is not None:
            await callbacks.on_data_set_resolved(dataset)
        else:
            tx = MemoryTransaction(f"0x{hashlib.sha256(address.encode()).hexdigest()}")
            await callbacks.on_data_set_creation_started(tx, None)
            await tx.wait()
            await callbacks.on_data_set_creation_progress(
                DataSetCreationStatus(transaction_success=True)
            )
            dataset = self.add_dataset(address, with_cdn)
            await callbacks.on_data_set_creation_progress(
                DataSetCreationStatus(transaction_success=True, server_confirmed=True)
            )
            logger.debug("Created storage dataset %d for %s", dataset.dataset_id, address)

        await callbacks.on_provider_selected(
            ProviderInfo(provider_id=dataset.provider_id, name="memory")
        )
        return InMemoryStorageService(self, dataset, with_cdn)

    async def estimate_upload_cost(self, size_bytes: int, with_cdn: bool) -> int:
        rate = self.price_per_kib + (self.cdn_price_per_kib if with_cdn else 0)
        return math.ceil(size_bytes / 1024) * rate

    def _lookup(
        self, address: str, existing: StorageDatasetInfo | None
    ) -> StorageDatasetInfo | None:
        if existing is None:
            return None
        for dataset in self.datasets.get(address.lower(), []):
            if dataset.dataset_id == existing.dataset_id:
                return dataset
        return None
