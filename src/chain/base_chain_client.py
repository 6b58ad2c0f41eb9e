# src/chain/base_chain_client.py — v1
"""Abstract blockchain client interface.

Wraps the marketplace registry contract and the payment token. Signing and
transport belong to the concrete client.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from filethetic.chain.models import (
    CreatedDataset,
    DatasetRecordParams,
    NetworkInfo,
    TransactionReceipt,
)


class BaseChainClient(ABC):
    """Unified interface for chain backends."""

    @abstractmethod
    async def create_dataset_record(self, params: DatasetRecordParams) -> CreatedDataset:
        """Register a dataset and wait for the creation receipt."""

    @abstractmethod
    async def lock_dataset_record(
        self,
        dataset_id: int,
        content_identifier: str,
        row_count: int,
        token_count: int,
    ) -> TransactionReceipt:
        """Attach content and usage to a created dataset and wait for it."""

    @abstractmethod
    async def get_balance(self, address: str) -> int:
        """Payment token balance of ``address`` in base units."""

    @abstractmethod
    async def get_allowance(self, address: str) -> int:
        """Storage allowance granted by ``address`` in base units."""

    @abstractmethod
    async def get_network(self) -> NetworkInfo | None:
        """Connected network, or None when disconnected."""
