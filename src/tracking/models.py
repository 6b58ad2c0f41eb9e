# src/tracking/models.py — v1
"""Tracking domain models: LLMCallRecord, ModelPricing, UsageSummary."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class LLMCallRecord(BaseModel):
    """Individual text-generation call log entry."""

    call_id: str
    timestamp: datetime
    component: str
    step: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    latency_ms: int
    status: Literal["success", "failed"]


class ModelPricing(BaseModel):
    """List price of a model, per million tokens (input and output alike)."""

    model: str
    price_per_1m: float


class ModelUsage(BaseModel):
    """Per-model aggregated usage."""

    total_calls: int
    total_tokens: int
    estimated_cost: float = 0.0


class UsageSummary(BaseModel):
    """Aggregated usage for one generation run."""

    total_calls: int = 0
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    total_tokens: int = 0
    avg_latency_ms: float = 0.0
    failure_count: int = 0
    estimated_cost: float = 0.0
    by_model: dict[str, ModelUsage] = Field(default_factory=dict)
