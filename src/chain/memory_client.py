# src/chain/memory_client.py — v1
"""In-memory chain backend for dry runs and tests."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from filethetic.chain.base_chain_client import BaseChainClient
from filethetic.chain.models import (
    CreatedDataset,
    DatasetRecordParams,
    NetworkInfo,
    TransactionReceipt,
)

logger = logging.getLogger(__name__)


class InMemoryChainClient(BaseChainClient):
    """Registry and token state kept in dictionaries.

    ``fail_create`` and ``fail_lock`` make the next transactions raise;
    ``revert_create`` and ``revert_lock`` return receipts with status 0.
    """

    def __init__(
        self,
        chain_id: int = 314159,
        network_name: str = "calibration",
        default_balance: int = 10**12,
        default_allowance: int = 10**12,
    ) -> None:
        self.chain_id: int | None = chain_id
        self.network_name = network_name
        self.default_balance = default_balance
        self.default_allowance = default_allowance
        self.balances: dict[str, int] = {}
        self.allowances: dict[str, int] = {}
        self.records: dict[int, dict[str, Any]] = {}
        self.fail_create = False
        self.fail_lock = False
        self.revert_create = False
        self.revert_lock = False
        self._next_id = 1
        self._nonce = 0

    async def create_dataset_record(self, params: DatasetRecordParams) -> CreatedDataset:
        if self.fail_create:
            raise RuntimeError("execution reverted: createDataset")
        receipt = self._receipt("create", reverted=self.revert_create)
        if self.revert_create:
            return CreatedDataset(dataset_id=None, receipt=receipt)

        dataset_id = self._next_id
        self._next_id += 1
        self.records[dataset_id] = {"params": params, "locked": False}
        logger.debug("Registered dataset %d (%s)", dataset_id, params.name)
        return CreatedDataset(dataset_id=dataset_id, receipt=receipt)

    async def lock_dataset_record(
        self,
        dataset_id: int,
        content_identifier: str,
        row_count: int,
        token_count: int,
    ) -> TransactionReceipt:
        if self.fail_lock:
            raise RuntimeError("execution reverted: lockDataset")
        if dataset_id not in self.records:
            raise RuntimeError(f"execution reverted: unknown dataset {dataset_id}")
        receipt = self._receipt("lock", reverted=self.revert_lock)
        if receipt.succeeded:
            self.records[dataset_id].update(
                locked=True,
                content_identifier=content_identifier,
                row_count=row_count,
                token_count=token_count,
            )
        return receipt

    async def get_balance(self, address: str) -> int:
        return self.balances.get(address.lower(), self.default_balance)

    async def get_allowance(self, address: str) -> int:
        return self.allowances.get(address.lower(), self.default_allowance)

    async def get_network(self) -> NetworkInfo | None:
        if self.chain_id is None:
            return None
        return NetworkInfo(chain_id=self.chain_id, name=self.network_name)

    def _receipt(self, method: str, reverted: bool = False) -> TransactionReceipt:
        self._nonce += 1
        digest = hashlib.sha256(f"{method}:{self._nonce}".encode()).hexdigest()
        return TransactionReceipt(
            transaction_hash=f"0x{digest}",
            block_number=self._nonce,
            status=0 if reverted else 1,
        )
