# src/storage/uploader.py — v1
"""Storage uploader: the publish pipeline's upload stage.

Runs a sequential state machine and publishes an UploadEvent for every
transition:

    INIT (0) → PREFLIGHT (5) → NEGOTIATE (25-50) → TRANSFER (55-80)
    → ATTACH (80-90) → CONFIRM (95) → DONE (100)

Negotiation walks an explicit candidate list (CDN first when enabled, then
non-CDN) and records each attempt on the outcome. The content identifier
is captured as soon as the transfer completes, so a failure in a later
phase still returns it on the raised UploadError.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable

from filethetic.chain.base_chain_client import BaseChainClient
from filethetic.config.settings import Settings
from filethetic.core.errors import ConfigurationError, UploadError
from filethetic.core.models import (
    GenerationResult,
    NegotiationAttempt,
    UploadOutcome,
    WalletContext,
)
from filethetic.storage.base_storage_client import (
    BaseStorageClient,
    BaseStorageService,
    StorageCallbacks,
    UploadCallbacks,
)
from filethetic.storage.dataset_resolver import resolve_existing_dataset
from filethetic.storage.events import EventChannel, UploadEvent, UploadPhase
from filethetic.storage.models import (
    DataSetCreationStatus,
    PendingTransaction,
    ProviderInfo,
    StorageDatasetInfo,
)
from filethetic.storage.preflight import run_preflight

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

_PHASE_LABELS = {
    UploadPhase.INIT: "Initialization",
    UploadPhase.PREFLIGHT: "Preflight",
    UploadPhase.NEGOTIATE: "Storage negotiation",
    UploadPhase.TRANSFER: "Storage transfer",
    UploadPhase.ATTACH: "Attach",
    UploadPhase.CONFIRM: "Confirmation",
}


def serialize_generation_result(result: GenerationResult) -> bytes:
    """Render records as the pretty-printed UTF-8 JSON file that is uploaded."""
    records = [r.model_dump(by_alias=True, mode="json") for r in result.records]
    return json.dumps(records, indent=2, ensure_ascii=False).encode("utf-8")


class _UploadRun:
    """Mutable state of one upload call."""

    def __init__(self, events: EventChannel, outcome: UploadOutcome) -> None:
        self.events = events
        self.outcome = outcome
        self.progress = 0
        self.phase = UploadPhase.INIT

    def emit(
        self,
        phase: UploadPhase,
        kind: str,
        status: str,
        progress: int | None = None,
        **data: Any,
    ) -> None:
        if progress is not None:
            self.progress = progress
        if phase != UploadPhase.FAILED:
            self.phase = phase
        self.events.publish(UploadEvent(
            phase=phase, kind=kind, status=status, progress=self.progress, data=data,
        ))


class _NegotiationHooks(StorageCallbacks):
    def __init__(self, run: _UploadRun) -> None:
        self._run = run
        self._transaction_confirmed = False

    async def on_data_set_resolved(self, info: StorageDatasetInfo) -> None:
        self._run.emit(
            UploadPhase.NEGOTIATE, "dataset_resolved",
            "Existing dataset found and resolved", 30,
            dataset_id=info.dataset_id,
        )

    async def on_data_set_creation_started(
        self, transaction: PendingTransaction, status_url: str | None
    ) -> None:
        self._run.emit(
            UploadPhase.NEGOTIATE, "dataset_creation_started",
            "Creating new dataset on blockchain", 35,
            transaction_hash=transaction.hash, status_url=status_url,
        )

    async def on_data_set_creation_progress(self, status: DataSetCreationStatus) -> None:
        if status.transaction_success and not self._transaction_confirmed:
            self._transaction_confirmed = True
            self._run.emit(
                UploadPhase.NEGOTIATE, "dataset_transaction_confirmed",
                "Dataset transaction confirmed on chain", 45,
            )
        if status.server_confirmed:
            self._run.emit(
                UploadPhase.NEGOTIATE, "dataset_ready",
                f"Dataset ready ({round(status.elapsed_ms / 1000)}s)", 50,
                elapsed_ms=status.elapsed_ms,
            )

    async def on_provider_selected(self, provider: ProviderInfo) -> None:
        self._run.emit(
            UploadPhase.NEGOTIATE, "provider_selected",
            "Storage provider selected",
            provider_id=provider.provider_id,
        )


class _TransferHooks(UploadCallbacks):
    def __init__(self, run: _UploadRun) -> None:
        self._run = run

    async def on_upload_complete(self, piece_cid: str) -> None:
        self._run.outcome.assign("content_identifier", piece_cid)
        self._run.emit(
            UploadPhase.TRANSFER, "upload_complete",
            "Data uploaded, adding piece to the dataset", 80,
            piece_cid=piece_cid,
        )

    async def on_piece_added(self, transaction: PendingTransaction | None) -> None:
        suffix = f" (txHash: {transaction.hash})" if transaction is not None else ""
        self._run.emit(
            UploadPhase.ATTACH, "piece_added",
            f"Waiting for transaction to be confirmed on chain{suffix}",
        )
        if transaction is not None:
            await transaction.wait()
            self._run.outcome.assign("transaction_hash", transaction.hash)
        self._run.emit(
            UploadPhase.ATTACH, "piece_transaction_confirmed",
            "Waiting for storage provider confirmation", 85,
        )

    async def on_piece_confirmed(self, piece_ids: list[int]) -> None:
        self._run.outcome.confirmed = True
        self._run.emit(
            UploadPhase.ATTACH, "piece_confirmed",
            "Data pieces added to dataset successfully", 90,
            piece_ids=list(piece_ids),
        )


class StorageUploader:
    """Uploads a payload and attaches it to the owner's storage dataset.

    Args:
        storage: Storage network client.
        chain: Chain client used for network, balance and allowance reads.
        settings: CDN preference, confirmation wait, creation fee, file name.
        events: Channel receiving every state transition.
        sleep: Awaitable used for the confirmation wait.
    """

    def __init__(
        self,
        storage: BaseStorageClient,
        chain: BaseChainClient,
        settings: Settings | None = None,
        events: EventChannel | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._storage = storage
        self._chain = chain
        self._settings = settings or Settings()
        self.events = events or EventChannel()
        self._sleep = sleep
        self.last_outcome: UploadOutcome | None = None

    def candidates(self) -> list[bool]:
        """CDN flags to try, in order."""
        return [True, False] if self._settings.storage_with_cdn else [False]

    async def upload(
        self,
        payload: bytes,
        wallet: WalletContext,
        file_name: str | None = None,
    ) -> UploadOutcome:
        """Run the upload state machine.

        Raises:
            ConfigurationError: Signer, address, chain id or network missing.
            InsufficientFundsError: Preflight shortfall. Not retried.
            UploadError: Negotiation or transport failure. ``outcome`` holds
                the partial result, including any content identifier.
        """
        outcome = UploadOutcome(
            file_name=file_name or self._settings.storage_file_name,
            file_size_bytes=len(payload),
        )
        self.last_outcome = outcome
        run = _UploadRun(self.events, outcome)

        try:
            await self._run(payload, wallet, run)
        except UploadError as exc:
            if exc.outcome is None:
                exc.outcome = outcome
            self._fail(run, exc)
            raise
        except ConfigurationError as exc:
            self._fail(run, exc)
            raise
        except Exception as exc:
            label = _PHASE_LABELS.get(run.phase, run.phase.value.capitalize())
            error = UploadError(f"{label} failed: {exc}", outcome=outcome)
            self._fail(run, error)
            raise error from exc
        return outcome

    async def _run(self, payload: bytes, wallet: WalletContext, run: _UploadRun) -> None:
        outcome = run.outcome
        run.emit(UploadPhase.INIT, "init", "Initializing data upload", 0)
        address = await self._check_context(wallet)

        existing = await resolve_existing_dataset(
            self._storage, address, prefer_cdn=self._settings.storage_with_cdn,
        )

        run.emit(UploadPhase.PREFLIGHT, "preflight", "Checking balance and storage allowance", 5)
        await run_preflight(
            self._chain,
            self._storage,
            address,
            size_bytes=len(payload),
            with_cdn=self._settings.storage_with_cdn,
            has_dataset=existing is not None,
            creation_fee=self._settings.storage_dataset_creation_fee,
        )

        run.emit(UploadPhase.NEGOTIATE, "negotiate", "Setting up storage service and dataset", 25)
        service = await self._negotiate(address, existing, run)
        outcome.with_cdn = service.with_cdn

        run.emit(UploadPhase.TRANSFER, "transfer", "Uploading data to storage provider", 55)
        receipt = await service.upload(payload, _TransferHooks(run))
        if outcome.content_identifier is None:
            outcome.assign("content_identifier", receipt.piece_cid)

        if not outcome.confirmed and outcome.transaction_hash is None:
            wait_s = self._settings.storage_confirmation_wait_s
            logger.info("No piece transaction observed, waiting %.0fs for confirmation", wait_s)
            await self._sleep(wait_s)

        run.emit(UploadPhase.CONFIRM, "confirm", "Waiting for storage confirmation", 95)
        run.emit(
            UploadPhase.DONE, "done", "Data successfully stored", 100,
            piece_cid=outcome.content_identifier,
        )
        logger.info(
            "Stored %s (%d bytes) as %s",
            outcome.file_name, outcome.file_size_bytes, outcome.content_identifier,
        )

    async def _check_context(self, wallet: WalletContext) -> str:
        if wallet.signer is None:
            raise ConfigurationError("Signer not found", stage="uploading")
        if not wallet.address:
            raise ConfigurationError("Address not found", stage="uploading")
        if wallet.chain_id is None:
            raise ConfigurationError("Chain ID not found", stage="uploading")
        network = await self._chain.get_network()
        if network is None:
            raise ConfigurationError("Network not found", stage="uploading")
        if network.chain_id != wallet.chain_id:
            raise ConfigurationError(
                f"Wallet is on chain {wallet.chain_id} but the client is "
                f"connected to chain {network.chain_id}",
                stage="uploading",
            )
        return wallet.address

    async def _negotiate(
        self,
        address: str,
        existing: StorageDatasetInfo | None,
        run: _UploadRun,
    ) -> BaseStorageService:
        candidates = self.candidates()
        hooks = _NegotiationHooks(run)
        for idx, with_cdn in enumerate(candidates):
            try:
                service = await self._storage.create_storage(
                    address, with_cdn, hooks, existing=existing,
                )
            except Exception as exc:
                run.outcome.negotiation_attempts.append(
                    NegotiationAttempt(with_cdn=with_cdn, succeeded=False, error=str(exc))
                )
                if idx + 1 < len(candidates):
                    logger.warning(
                        "%s storage negotiation failed, falling back: %s",
                        "CDN" if with_cdn else "Non-CDN", exc,
                    )
                    run.emit(
                        UploadPhase.NEGOTIATE, "cdn_fallback",
                        "CDN storage unavailable, continuing without CDN",
                        error=str(exc),
                    )
                continue

            run.outcome.negotiation_attempts.append(
                NegotiationAttempt(with_cdn=with_cdn, succeeded=True)
            )
            return service

        errors = "; ".join(a.error or "" for a in run.outcome.negotiation_attempts)
        raise UploadError(f"No storage provider could be negotiated: {errors}")

    def _fail(self, run: _UploadRun, exc: Exception) -> None:
        message = getattr(exc, "message", str(exc))
        logger.error("Upload failed: %s", message)
        run.emit(UploadPhase.FAILED, "failed", f"Upload failed: {message}", 0)
