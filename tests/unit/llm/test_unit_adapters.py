# tests/unit/llm/test_adapters.py — v1
"""Tests for llm/adapters — request mapping and response normalization.

SDK clients are replaced with mocks; no network calls.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from filethetic.llm.adapters.anthropic_adapter import AnthropicAdapter
from filethetic.llm.adapters.openai_adapter import OpenAIAdapter
from filethetic.llm.models import Message


class TestOpenAIAdapter:
    @pytest.mark.asyncio
    async def test_complete(self):
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='[{"a": 1}]'))],
            usage=SimpleNamespace(prompt_tokens=12, completion_tokens=8),
        ))
        adapter = OpenAIAdapter(model="gpt-4o", api_key="sk-test")
        adapter._OpenAIAdapter__client = sdk

        resp = await adapter.complete(
            [Message(role="user", content="hi")], system="Only JSON", max_tokens=50,
            temperature=0.2, model="gpt-4o-mini",
        )

        assert resp.content == '[{"a": 1}]'
        assert resp.total_tokens == 20
        assert resp.model == "gpt-4o-mini"
        kwargs = sdk.chat.completions.create.call_args.kwargs
        assert kwargs["messages"][0] == {"role": "system", "content": "Only JSON"}
        assert kwargs["max_tokens"] == 50
        assert kwargs["temperature"] == 0.2

    @pytest.mark.asyncio
    async def test_missing_usage(self):
        sdk = MagicMock()
        sdk.chat.completions.create = AsyncMock(return_value=SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None))],
            usage=None,
        ))
        adapter = OpenAIAdapter()
        adapter._OpenAIAdapter__client = sdk

        resp = await adapter.complete([Message(role="user", content="hi")])
        assert resp.content == ""
        assert resp.total_tokens == 0


class TestAnthropicAdapter:
    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self):
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(return_value=SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text='{"x": '),
                SimpleNamespace(type="tool_use", text="ignored"),
                SimpleNamespace(type="text", text="1}"),
            ],
            usage=SimpleNamespace(input_tokens=30, output_tokens=5),
            model="claude-3-5-haiku-20241022",
        ))
        adapter = AnthropicAdapter(model="claude-3-5-haiku-20241022")
        adapter._AnthropicAdapter__client = sdk

        resp = await adapter.complete([Message(role="user", content="hi")], system="Only JSON")

        assert resp.content == '{"x": 1}'
        assert resp.provider == "anthropic"
        assert resp.total_tokens == 35
        assert sdk.messages.create.call_args.kwargs["system"] == "Only JSON"
