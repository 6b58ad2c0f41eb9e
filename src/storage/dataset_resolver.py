# src/storage/dataset_resolver.py — v1
"""Selection of the existing storage dataset to reuse.

Looked up fresh on every upload; handles are never cached across runs.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from filethetic.storage.models import StorageDatasetInfo

if TYPE_CHECKING:
    from filethetic.storage.base_storage_client import BaseStorageClient

logger = logging.getLogger(__name__)


def select_best_dataset(
    datasets: list[StorageDatasetInfo], prefer_cdn: bool = True
) -> StorageDatasetInfo | None:
    """Pick the dataset with the most pieces.

    Datasets matching the CDN preference win. When none match, the other
    class is used instead. Ties go to the first dataset listed.
    """
    preferred = [d for d in datasets if d.with_cdn == prefer_cdn]
    candidates = preferred
    if not preferred:
        candidates = [d for d in datasets if d.with_cdn != prefer_cdn]
        if candidates:
            logger.info(
                "No %s datasets found, using %s dataset instead",
                "CDN" if prefer_cdn else "non-CDN",
                "non-CDN" if prefer_cdn else "CDN",
            )
    if not candidates:
        return None

    best = candidates[0]
    for dataset in candidates[1:]:
        if dataset.current_piece_count > best.current_piece_count:
            best = dataset
    return best


async def resolve_existing_dataset(
    client: BaseStorageClient, address: str, prefer_cdn: bool = True
) -> StorageDatasetInfo | None:
    """Best existing dataset for ``address``. Lookup failures yield None."""
    try:
        dataset = await client.find_existing_dataset(address, prefer_cdn=prefer_cdn)
    except Exception:
        logger.exception("Dataset lookup failed for %s", address)
        return None

    if dataset is None:
        logger.info("No existing storage dataset for %s", address)
    else:
        logger.info(
            "Reusing dataset %s on provider %s (%d pieces)",
            dataset.dataset_id, dataset.provider_id, dataset.current_piece_count,
        )
    return dataset
