# src/storage/preflight.py — v1
"""Balance and allowance check run before any storage transaction."""

from __future__ import annotations

import logging

from filethetic.chain.base_chain_client import BaseChainClient
from filethetic.core.errors import InsufficientFundsError
from filethetic.storage.base_storage_client import BaseStorageClient
from filethetic.storage.models import PreflightReport

logger = logging.getLogger(__name__)


async def run_preflight(
    chain: BaseChainClient,
    storage: BaseStorageClient,
    address: str,
    size_bytes: int,
    with_cdn: bool,
    has_dataset: bool,
    creation_fee: int = 0,
) -> PreflightReport:
    """Verify ``address`` can pay for storing ``size_bytes``.

    The dataset creation fee is added when no dataset exists yet. Balance is
    checked before allowance.

    Raises:
        InsufficientFundsError: Naming the first shortfall found.
    """
    required = await storage.estimate_upload_cost(size_bytes, with_cdn)
    if not has_dataset:
        required += creation_fee

    balance = await chain.get_balance(address)
    if balance < required:
        raise InsufficientFundsError("balance", required, balance)

    allowance = await chain.get_allowance(address)
    if allowance < required:
        raise InsufficientFundsError("allowance", required, allowance)

    logger.info(
        "Preflight passed: required=%d balance=%d allowance=%d", required, balance, allowance,
    )
    return PreflightReport(
        required=required,
        balance=balance,
        allowance=allowance,
        includes_creation_fee=not has_dataset,
    )
