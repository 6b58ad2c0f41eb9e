# src/chain/models.py — v1
"""Chain domain models: transaction receipts, dataset record parameters."""

from __future__ import annotations

from pydantic import BaseModel


class TransactionReceipt(BaseModel):
    """Mined transaction. ``status == 0`` means the transaction reverted."""

    transaction_hash: str
    block_number: int | None = None
    status: int = 1

    @property
    def succeeded(self) -> bool:
        return self.status != 0


class CreatedDataset(BaseModel):
    """Result of a dataset-creation transaction."""

    dataset_id: int | None
    receipt: TransactionReceipt


class NetworkInfo(BaseModel):
    """Network the chain client is connected to."""

    chain_id: int
    name: str = ""


class DatasetRecordParams(BaseModel):
    """Arguments of the registry's dataset-creation call."""

    model_config = {"frozen": True, "protected_namespaces": ()}

    name: str
    description: str
    price: int
    is_public: bool
    model_id: str
    task_id: int
    node_id: int
    compute_units_price: int
    max_compute_units: int
