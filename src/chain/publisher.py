# src/chain/publisher.py — v1
"""Chain publisher: create the dataset record, then lock it.

The two transactions are sequential and not atomic. A failed lock leaves a
created-but-unlocked record; PublishError carries its dataset id so
``ChainPublisher.lock`` can be retried by hand. Nothing is rolled back.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable

from filethetic.chain.base_chain_client import BaseChainClient
from filethetic.chain.models import DatasetRecordParams, TransactionReceipt
from filethetic.config.settings import Settings
from filethetic.core.errors import ConfigurationError, PublishError
from filethetic.core.models import (
    DatasetMetadata,
    GenerationRecord,
    PublishRecord,
    WalletContext,
)
from filethetic.llm.catalog import find_model

logger = logging.getLogger(__name__)


def to_base_units(price: str, decimals: int = 6) -> int:
    """Convert a decimal price string to integer token base units.

    Raises:
        ValueError: Negative, malformed, or more precise than ``decimals``.
    """
    try:
        amount = Decimal(price)
    except InvalidOperation as e:
        raise ValueError(f"Invalid price: {price!r}") from e
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Price must be a non-negative number: {price!r}")
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Price {price!r} has more than {decimals} decimal places")
    return int(scaled)


def total_token_count(records: Iterable[GenerationRecord]) -> int:
    """Sum of per-record total tokens. Records without usage count as 0."""
    total = 0
    for record in records:
        if record.usage is not None:
            total += record.usage.total_tokens or 0
    return total


class ChainPublisher:
    """Registers and locks datasets on the marketplace registry."""

    def __init__(self, chain: BaseChainClient, settings: Settings | None = None) -> None:
        self._chain = chain
        self._settings = settings or Settings()

    def build_params(self, metadata: DatasetMetadata) -> DatasetRecordParams:
        """Creation arguments for ``metadata``.

        The task id comes from the metadata, then the model catalog, then
        settings.
        """
        s = self._settings
        task_id = metadata.task_id
        if task_id is None:
            info = find_model(metadata.model_id)
            task_id = info.task_id if info is not None else s.chain_default_task_id
        return DatasetRecordParams(
            name=metadata.name,
            description=metadata.description,
            price=to_base_units(metadata.price, s.chain_price_decimals),
            is_public=metadata.is_public,
            model_id=metadata.model_id,
            task_id=task_id,
            node_id=s.chain_default_node_id,
            compute_units_price=s.chain_default_compute_units_price,
            max_compute_units=s.chain_default_max_compute_units,
        )

    async def publish(
        self,
        metadata: DatasetMetadata,
        content_identifier: str,
        row_count: int,
        token_count: int,
        wallet: WalletContext,
    ) -> PublishRecord:
        """Create the dataset record and lock it with the stored content.

        Raises:
            ConfigurationError: No wallet address.
            PublishError: Create or lock failed; ``phase`` tells which.
        """
        if not wallet.is_connected:
            raise ConfigurationError(
                "Wallet not connected. Cannot publish dataset.", stage="publishing",
            )
        if not content_identifier:
            raise PublishError("Content identifier is required to publish", phase="create")

        try:
            params = self.build_params(metadata)
        except ValueError as e:
            raise PublishError(str(e), phase="create") from e

        logger.info("Creating dataset %r (model=%s, task=%d)", params.name, params.model_id, params.task_id)
        try:
            created = await self._chain.create_dataset_record(params)
        except Exception as e:
            raise PublishError(f"Dataset creation failed: {e}", phase="create") from e

        if not created.receipt.succeeded:
            raise PublishError(
                f"Dataset creation reverted (tx {created.receipt.transaction_hash})",
                phase="create",
            )
        if not created.dataset_id:
            raise PublishError("Failed to create dataset on-chain.", phase="create")

        logger.info("Dataset %d created, locking with %s", created.dataset_id, content_identifier)
        lock_receipt = await self.lock(
            created.dataset_id, content_identifier, row_count, token_count,
        )
        return PublishRecord(
            dataset_id=created.dataset_id,
            content_identifier=content_identifier,
            row_count=row_count,
            total_token_count=token_count,
            create_transaction_hash=created.receipt.transaction_hash,
            lock_transaction_hash=lock_receipt.transaction_hash,
        )

    async def lock(
        self,
        dataset_id: int,
        content_identifier: str,
        row_count: int,
        token_count: int,
    ) -> TransactionReceipt:
        """Lock an already-created dataset. Safe to call again after a failure."""
        try:
            receipt = await self._chain.lock_dataset_record(
                dataset_id, content_identifier, row_count, token_count,
            )
        except Exception as e:
            raise PublishError(
                f"Dataset lock failed: {e}", phase="lock", dataset_id=dataset_id,
            ) from e
        if not receipt.succeeded:
            raise PublishError(
                f"Dataset lock reverted (tx {receipt.transaction_hash})",
                phase="lock",
                dataset_id=dataset_id,
            )
        logger.info("Dataset %d locked (%d rows, %d tokens)", dataset_id, row_count, token_count)
        return receipt
