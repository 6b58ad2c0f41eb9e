# src/tracking/cost_calculator.py — v1
"""Cost estimation from call records.

Prices come from the model catalog and are expressed in the marketplace's
list-price units per million tokens.
"""

from __future__ import annotations

from collections import defaultdict

from filethetic.llm.catalog import all_models
from filethetic.tracking.models import LLMCallRecord, ModelPricing, ModelUsage, UsageSummary

DEFAULT_PRICING: dict[str, ModelPricing] = {
    m.id: ModelPricing(model=m.id, price_per_1m=m.price_per_million_tokens)
    for m in all_models()
}


def compute_call_cost(
    record: LLMCallRecord, pricing: dict[str, ModelPricing] | None = None
) -> float:
    """Estimated cost of a single call (0.0 for unpriced models)."""
    pricing = pricing or DEFAULT_PRICING
    p = pricing.get(record.model)
    if p is None:
        return 0.0
    return record.total_tokens * p.price_per_1m / 1_000_000


def summarize_usage(
    records: list[LLMCallRecord],
    pricing: dict[str, ModelPricing] | None = None,
) -> UsageSummary:
    """Aggregate call records into a UsageSummary."""
    if not records:
        return UsageSummary()

    by_model: dict[str, list[LLMCallRecord]] = defaultdict(list)
    for r in records:
        by_model[r.model].append(r)

    models = {
        model: ModelUsage(
            total_calls=len(model_records),
            total_tokens=sum(r.total_tokens for r in model_records),
            estimated_cost=sum(compute_call_cost(r, pricing) for r in model_records),
        )
        for model, model_records in by_model.items()
    }

    return UsageSummary(
        total_calls=len(records),
        total_input_tokens=sum(r.input_tokens for r in records),
        total_output_tokens=sum(r.output_tokens for r in records),
        total_tokens=sum(r.total_tokens for r in records),
        avg_latency_ms=sum(r.latency_ms for r in records) / len(records),
        failure_count=sum(1 for r in records if r.status == "failed"),
        estimated_cost=sum(m.estimated_cost for m in models.values()),
        by_model=models,
    )


def compute_total_cost(
    records: list[LLMCallRecord],
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Compute total estimated cost across all records."""
    return sum(compute_call_cost(r, pricing) for r in records)
