# src/generation/generator.py — v1
"""Synthetic data generator.

Runs the prompt template against each row of a source dataset slice, one
model call per row, and returns the parsed outputs with summed token usage.
No state survives a failed run; the caller resubmits to retry.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from filethetic.core.errors import GenerationError
from filethetic.core.models import (
    FieldSpec,
    GenerationRecord,
    GenerationRequest,
    GenerationResult,
    SampleGenerationResult,
    TokenUsage,
)
from filethetic.generation.json_repair import parse_model_json
from filethetic.generation.prompts import (
    JSON_ONLY_INSTRUCTION,
    SYSTEM_PROMPT,
    build_schema_prompt,
    render_prompt,
)
from filethetic.generation.schema import validate_records
from filethetic.generation.source_loader import BaseRowLoader
from filethetic.llm.base_client import BaseLLMClient
from filethetic.llm.models import LLMResponse, Message
from filethetic.tracking.call_logger import CallLogger

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


def usage_from_response(response: LLMResponse) -> TokenUsage:
    return TokenUsage(
        prompt_tokens=response.input_tokens,
        completion_tokens=response.output_tokens,
        total_tokens=response.total_tokens,
    )


class SyntheticDataGenerator:
    """Generates one structured output per source row.

    Args:
        llm: Text-generation client.
        loader: Source of dataset rows.
        call_logger: Optional usage tracker; every model call is recorded.
        default_row_limit: Rows processed when the request sets no limit.
        on_progress: Called with ``(done, total)`` after each row.
    """

    def __init__(
        self,
        llm: BaseLLMClient,
        loader: BaseRowLoader,
        call_logger: CallLogger | None = None,
        default_row_limit: int = 10,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._llm = llm
        self._loader = loader
        self._call_logger = call_logger
        self._default_row_limit = default_row_limit
        self._on_progress = on_progress

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Run the request over its dataset slice.

        Raises:
            GenerationError: On row loading failure, model failure, or output
                that cannot be parsed or fails schema validation.
        """
        limit = request.row_limit or self._default_row_limit
        rows = await self._loader.load_rows(
            request.source_dataset_path,
            request.source_config,
            request.source_split,
            offset=request.row_offset,
            limit=limit,
        )
        if not rows:
            raise GenerationError(
                f"No rows found in {request.source_dataset_path} "
                f"[{request.source_config}/{request.source_split}] "
                f"at offset {request.row_offset}"
            )

        logger.info(
            "Generating %d rows with %s from %s",
            len(rows), request.model, request.source_dataset_path,
        )

        records: list[GenerationRecord] = []
        for idx, row in enumerate(rows):
            if request.input_feature_name not in row:
                raise GenerationError(
                    f"Row {request.row_offset + idx} has no feature "
                    f"{request.input_feature_name!r}"
                )
            value = row[request.input_feature_name]
            prompt = render_prompt(request.prompt_template, value)
            response = await self._complete(
                prompt, request.model, request.max_tokens, request.temperature,
                step=f"row_{idx:04d}",
            )

            output = parse_model_json(response.content)
            if request.output_fields:
                validate_records(output, request.output_fields)

            records.append(GenerationRecord(
                input=value,
                output=output,
                usage=usage_from_response(response),
            ))
            if self._on_progress is not None:
                self._on_progress(idx + 1, len(rows))

        result = GenerationResult(
            records=tuple(records),
            model=request.model,
            provider=self._llm.provider_name,
        )
        logger.info(
            "Generated %d records, %d total tokens", len(result), result.total_tokens,
        )
        return result

    async def generate_samples(
        self,
        name: str,
        description: str,
        fields: list[FieldSpec] | tuple[FieldSpec, ...],
        sample_count: int,
        model: str,
        temperature: float = 0.7,
        max_tokens: int = 4000,
    ) -> SampleGenerationResult:
        """Generate ``sample_count`` records matching ``fields`` in one call."""
        if sample_count <= 0:
            raise GenerationError("sample_count must be positive")
        if not fields:
            raise GenerationError("At least one field is required")

        prompt = build_schema_prompt(name, description, fields, sample_count)
        response = await self._complete(
            prompt, model, max_tokens, temperature, step="samples",
        )
        data: Any = parse_model_json(response.content)
        records = validate_records(data, fields)
        if len(records) != sample_count:
            logger.warning(
                "Requested %d samples, model returned %d", sample_count, len(records),
            )

        return SampleGenerationResult(
            data=tuple(records),
            usage=usage_from_response(response),
            model=model,
            provider=self._llm.provider_name,
        )

    async def _complete(
        self,
        prompt: str,
        model: str,
        max_tokens: int,
        temperature: float,
        step: str,
    ) -> LLMResponse:
        provider = self._llm.provider_name
        try:
            response = await self._llm.complete(
                messages=[Message(role="user", content=prompt + JSON_ONLY_INSTRUCTION)],
                system=SYSTEM_PROMPT,
                max_tokens=max_tokens,
                temperature=temperature,
                model=model,
            )
        except Exception as exc:
            logger.error("%s call failed at %s: %s", provider, step, exc)
            raise GenerationError(f"{provider} generation failed: {exc}") from exc

        if self._call_logger is not None:
            self._call_logger.record("generator", step, response)
        return response
