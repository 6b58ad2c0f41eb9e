# src/main.py — v1
"""CLI entry point — generate, run, templates commands.

Usage:
    filethetic generate (--template ID | --dataset PATH --prompt TEXT --feature NAME) [options]
    filethetic run --dry-run (--template ID | ...) --name NAME --description TEXT [options]
    filethetic templates
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from filethetic.version import __version__

logger = logging.getLogger(__name__)

_DRY_RUN_ADDRESS = "0x00000000000000000000000000000000000f11e5"


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        from filethetic.config.settings import load_settings

        settings = load_settings()
        _setup_logging(settings, args.verbose)
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="filethetic",
        description=f"Filethetic v{__version__} — synthetic dataset generation and publishing",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- generate ---
    p_generate = subparsers.add_parser(
        "generate", help="Generate a dataset and write it to a file",
    )
    _add_request_arguments(p_generate)
    p_generate.add_argument(
        "-o", "--output", type=Path, default=Path("./dataset.json"),
        help="Output file (default: ./dataset.json)",
    )
    p_generate.add_argument(
        "--call-log", type=Path, default=None,
        help="Write per-call token usage as JSON Lines",
    )
    p_generate.set_defaults(func=_cmd_generate)

    # --- run ---
    p_run = subparsers.add_parser(
        "run", help="Generate, upload and publish a dataset",
    )
    _add_request_arguments(p_run)
    p_run.add_argument(
        "--dry-run", action="store_true",
        help="Use in-memory storage and chain backends (required)",
    )
    p_run.add_argument("--name", default=None, help="Listing name (default: template name)")
    p_run.add_argument("--description", default=None, help="Listing description")
    p_run.add_argument("--price", default=None, help="Price in payment tokens (e.g. 1.5)")
    p_run.add_argument(
        "--visibility", choices=["public", "private"], default=None,
        help="Listing visibility (default: public)",
    )
    p_run.add_argument(
        "--address", default=_DRY_RUN_ADDRESS,
        help="Wallet address used for the dry run",
    )
    p_run.set_defaults(func=_cmd_run)

    # --- templates ---
    p_templates = subparsers.add_parser(
        "templates", help="List predefined dataset templates",
    )
    p_templates.set_defaults(func=_cmd_templates)

    return parser


def _add_request_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("-t", "--template", default=None, help="Template id (see `templates`)")
    p.add_argument("--dataset", default=None, help="Source dataset path, e.g. org/name")
    p.add_argument("--config", default=None, help="Source dataset config (default: default)")
    p.add_argument("--split", default=None, help="Source dataset split (default: train)")
    p.add_argument("--prompt", default=None, help="Prompt template containing {input}")
    p.add_argument("--feature", default=None, help="Row feature substituted into the prompt")
    p.add_argument("-m", "--model", default=None, help="Model id (default from settings)")
    p.add_argument("--max-tokens", type=int, default=None, help="Max tokens per call")
    p.add_argument("--temperature", type=float, default=None, help="Sampling temperature")
    p.add_argument("--limit", type=int, default=None, help="Number of rows to process")
    p.add_argument("--offset", type=int, default=0, help="First row to process")
    p.add_argument(
        "--rows-file", type=Path, default=None,
        help="JSON file with source rows (skips the datasets server)",
    )


async def _cmd_generate(args: argparse.Namespace, settings: Any) -> int:
    """Generate records and write them as dataset.json."""
    from filethetic.storage.uploader import serialize_generation_result
    from filethetic.tracking.call_logger import CallLogger
    from filethetic.tracking.cost_calculator import summarize_usage

    request = _build_request(args, settings)
    call_logger = CallLogger()
    generator = _build_generator(args, settings, request.model, call_logger)

    result = await generator.generate(request)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(serialize_generation_result(result))
    if args.call_log is not None:
        call_logger.save(args.call_log)

    summary = summarize_usage(call_logger.records)
    print(f"\nGeneration complete:")
    print(f"  Records:      {len(result)}")
    print(f"  Model:        {result.model} ({result.provider})")
    print(f"  Total tokens: {result.total_tokens}")
    print(f"  Est. cost:    {summary.estimated_cost:.4f}")
    print(f"  Output:       {args.output}")
    return 0


async def _cmd_run(args: argparse.Namespace, settings: Any) -> int:
    """Run the full publish pipeline against in-memory backends."""
    if not args.dry_run:
        logger.error(
            "Only --dry-run is supported: wallet and chain transports are not bundled"
        )
        return 1

    from filethetic.chain.memory_client import InMemoryChainClient
    from filethetic.chain.publisher import ChainPublisher
    from filethetic.core.models import WalletContext
    from filethetic.pipeline.orchestrator import PipelineOrchestrator
    from filethetic.storage.memory_client import InMemoryStorageClient
    from filethetic.storage.uploader import StorageUploader

    request = _build_request(args, settings)
    metadata = _build_metadata(args, request.model)

    chain = InMemoryChainClient()
    storage = InMemoryStorageClient()
    orchestrator = PipelineOrchestrator(
        generator=_build_generator(args, settings, request.model),
        uploader=StorageUploader(storage, chain, settings),
        publisher=ChainPublisher(chain, settings),
        settings=settings,
    )
    orchestrator.subscribe(
        lambda s: logger.debug("[%s %3d%%] %s", s.status.value, s.progress, s.status_text)
    )
    wallet = WalletContext(address=args.address, chain_id=chain.chain_id, signer=chain)

    state = await orchestrator.run(request, metadata, wallet)
    await orchestrator.shutdown()

    if state.error_message:
        print(f"\n{state.error_message}", file=sys.stderr)
        outcome = state.artifacts.upload_outcome
        if outcome is not None and outcome.content_identifier:
            print(f"  Stored content: {outcome.content_identifier}", file=sys.stderr)
        return 1

    record = state.artifacts.publish_record
    print(f"\nPublish complete (dry run):")
    print(f"  Dataset ID:   {record.dataset_id}")
    print(f"  Content ID:   {record.content_identifier}")
    print(f"  Rows:         {record.row_count}")
    print(f"  Total tokens: {record.total_token_count}")
    return 0


async def _cmd_templates(args: argparse.Namespace, settings: Any) -> int:
    """List predefined templates."""
    from filethetic.generation.templates import DATASET_TEMPLATES

    for template in DATASET_TEMPLATES.values():
        print(f"{template.id}")
        print(f"  {template.name}: {template.description}")
        print(
            f"  source={template.source.path} [{template.source.config}/"
            f"{template.source.split}] feature={template.source.feature} "
            f"model={template.model} price={template.price}"
        )
    return 0


def _build_request(args: argparse.Namespace, settings: Any):
    """GenerationRequest from a template and/or explicit flags."""
    from filethetic.core.models import GenerationRequest
    from filethetic.generation.templates import request_from_template

    overrides: dict[str, Any] = {
        "source_dataset_path": args.dataset,
        "source_config": args.config,
        "source_split": args.split,
        "prompt_template": args.prompt,
        "input_feature_name": args.feature,
        "model": args.model,
        "max_tokens": args.max_tokens,
        "temperature": args.temperature,
        "row_limit": args.limit,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    overrides["row_offset"] = args.offset

    if args.template:
        return request_from_template(args.template, **overrides)

    overrides.setdefault("model", settings.llm_default_model)
    overrides.setdefault("max_tokens", settings.llm_default_max_tokens)
    overrides.setdefault("temperature", settings.llm_default_temperature)
    missing = [
        flag for flag, key in (
            ("--dataset", "source_dataset_path"),
            ("--prompt", "prompt_template"),
            ("--feature", "input_feature_name"),
        )
        if key not in overrides
    ]
    if missing:
        raise ValueError(f"Missing {', '.join(missing)} (or use --template)")
    return GenerationRequest(**overrides)


def _build_metadata(args: argparse.Namespace, model: str):
    from filethetic.core.models import DatasetMetadata
    from filethetic.generation.templates import metadata_from_template

    overrides: dict[str, Any] = {
        "name": args.name,
        "description": args.description,
        "price": args.price,
        "visibility": args.visibility,
        "model_id": model,
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if args.template:
        return metadata_from_template(args.template, **overrides)
    return DatasetMetadata(**overrides)


def _build_generator(
    args: argparse.Namespace, settings: Any, model: str, call_logger: Any = None
):
    from filethetic.generation.generator import SyntheticDataGenerator
    from filethetic.generation.source_loader import HuggingFaceRowLoader, StaticRowLoader
    from filethetic.llm.client_factory import create_client_for_model

    if args.rows_file is not None:
        rows = json.loads(args.rows_file.read_text(encoding="utf-8"))
        loader = StaticRowLoader(rows)
    else:
        loader = HuggingFaceRowLoader(
            base_url=settings.source_rows_base_url,
            timeout_s=settings.source_request_timeout_s,
        )

    return SyntheticDataGenerator(
        llm=create_client_for_model(model, settings),
        loader=loader,
        call_logger=call_logger,
        default_row_limit=settings.source_default_row_limit,
        on_progress=lambda done, total: logger.info("Generated %d/%d rows", done, total),
    )


def _setup_logging(settings: Any, verbose: bool) -> None:
    """Configure logging for CLI usage."""
    from filethetic.logging.logger import setup_logging

    setup_logging(
        level="DEBUG" if verbose else settings.log_level,
        log_format=settings.log_format,
        log_file=settings.log_file,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )
    # Quiet noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


if __name__ == "__main__":
    sys.exit(main())
