# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides a mock LLM client, sample requests and rows, a wallet context and
in-memory chain/storage backends. No test touches the network.
"""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from filethetic.chain.memory_client import InMemoryChainClient
from filethetic.config.settings import Settings
from filethetic.core.models import DatasetMetadata, GenerationRequest, WalletContext
from filethetic.llm.models import LLMResponse
from filethetic.storage.memory_client import InMemoryStorageClient

WALLET_ADDRESS = "0x1111111111111111111111111111111111111111"
CHAIN_ID = 314159


def make_response(
    content: Any,
    input_tokens: int = 60,
    output_tokens: int = 40,
    model: str = "gpt-4o",
    provider: str = "openai",
) -> LLMResponse:
    """LLMResponse whose content is ``content`` (JSON-encoded unless a str)."""
    text = content if isinstance(content, str) else json.dumps(content)
    return LLMResponse(
        content=text,
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        model=model,
        provider=provider,
        latency_ms=120,
    )


# === FIXTURES: Settings ===


@pytest.fixture
def settings() -> Settings:
    """Settings without .env, with no confirmation wait or reset delay."""
    return Settings(
        _env_file=None,
        storage_confirmation_wait_s=0,
        pipeline_completed_reset_delay_s=0,
    )


# === FIXTURES: Mock LLM ===


@pytest.fixture
def mock_llm() -> MagicMock:
    """LLM client returning one JSON object per call, 100 tokens each."""
    client = MagicMock()
    client.provider_name = "openai"
    client.complete = AsyncMock(
        return_value=make_response({"instruction": "Say hi", "response": "Hi!"})
    )
    return client


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_rows() -> list[dict[str, Any]]:
    return [
        {"prompt": "How do tides work?", "id": 0},
        {"prompt": "Explain photosynthesis.", "id": 1},
        {"prompt": "What is a prime number?", "id": 2},
    ]


@pytest.fixture
def sample_request() -> GenerationRequest:
    return GenerationRequest(
        source_dataset_path="HuggingFaceH4/ultrachat_200k",
        source_split="train_sft",
        prompt_template="Answer as JSON with instruction and response: {input}",
        input_feature_name="prompt",
        model="gpt-4o",
        max_tokens=1000,
        row_limit=3,
    )


@pytest.fixture
def sample_metadata() -> DatasetMetadata:
    return DatasetMetadata(
        name="Tiny Chat",
        description="Three synthetic chat exchanges",
        price="1.5",
        visibility="public",
        model_id="gpt-4o",
    )


@pytest.fixture
def wallet() -> WalletContext:
    return WalletContext(address=WALLET_ADDRESS, chain_id=CHAIN_ID, signer=object())


# === FIXTURES: In-memory backends ===


@pytest.fixture
def memory_chain() -> InMemoryChainClient:
    return InMemoryChainClient(chain_id=CHAIN_ID)


@pytest.fixture
def memory_storage() -> InMemoryStorageClient:
    return InMemoryStorageClient()


@pytest.fixture
def llm_response():
    """Factory building LLMResponse objects, see ``make_response``."""
    return make_response
