# src/main.py - v3
"""CLI entry point: process, check, config, inspect commands.

Usage:
    iconnormalizer process <input-dir> [options]
    iconnormalizer check [--provider NAME]
    iconnormalizer config
    iconnormalizer inspect <svg-file>

Exit codes: 0 success (including "no icons found"), 1 fatal error,
130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import json
import logging
import signal
import sys
from pathlib import Path

from pydantic import ValidationError

from iconnormalizer.config.settings import ConfigurationError, Settings, load_settings
from iconnormalizer.core.errors import ProviderConfigurationError
from iconnormalizer.logging.logger import setup_logging
from iconnormalizer.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_FATAL

    try:
        settings = _settings_from_args(args)
    except (ConfigurationError, ValidationError) as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_FATAL

    setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
    )

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except ProviderConfigurationError as exc:
        _print_provider_error(exc, settings.provider)
        return EXIT_FATAL
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return EXIT_FATAL


def cli() -> None:
    """Console script entry point."""
    sys.exit(main())


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="iconnormalizer",
        description=f"iconnormalizer v{__version__} - SVG icon dedup and AI classification",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- process ---
    p_process = subparsers.add_parser(
        "process", help="Deduplicate, classify and annotate a directory of icons",
    )
    p_process.add_argument("input_dir", type=Path, help="Directory to scan for SVG files")
    p_process.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output directory (default: ./processed)",
    )
    p_process.add_argument(
        "--no-backup", action="store_true",
        help="Do not copy inputs to <input>/backup/ before processing",
    )
    p_process.add_argument(
        "-t", "--threshold", type=float, default=None,
        help="Near-duplicate similarity threshold (default: 0.8)",
    )
    p_process.add_argument(
        "-c", "--concurrent", type=int, default=None,
        help="Classification window width (default: 3)",
    )
    p_process.add_argument(
        "--dry-run", action="store_true",
        help="Analyze without writing any files",
    )
    _add_provider_arguments(p_process)
    p_process.set_defaults(func=_cmd_process)

    # --- check ---
    p_check = subparsers.add_parser(
        "check", help="Check that the AI backend is reachable and configured",
    )
    _add_provider_arguments(p_check)
    p_check.set_defaults(func=_cmd_check)

    # --- config ---
    p_config = subparsers.add_parser(
        "config", help="Show the effective configuration",
    )
    p_config.set_defaults(func=_cmd_config)

    # --- inspect ---
    p_inspect = subparsers.add_parser(
        "inspect", help="Show metadata embedded in a processed icon",
    )
    p_inspect.add_argument("file", type=Path, help="Path to an SVG file")
    p_inspect.set_defaults(func=_cmd_inspect)

    return parser


def _add_provider_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--provider", choices=["openai", "ollama"], default=None,
        help="AI backend (default: openai)",
    )
    p.add_argument("--model", default=None, help="Model name (provider default if omitted)")
    p.add_argument("--base-url", default=None, help="Ollama service URL")


def _settings_from_args(args: argparse.Namespace) -> Settings:
    """Merge CLI flags over environment configuration."""
    overrides: dict[str, object] = {
        "provider": getattr(args, "provider", None),
        "model": getattr(args, "model", None),
        "base_url": getattr(args, "base_url", None),
        "output_dir": getattr(args, "output", None),
        "similarity_threshold": getattr(args, "threshold", None),
        "max_concurrent": getattr(args, "concurrent", None),
    }
    if getattr(args, "no_backup", False):
        overrides["backup"] = False
    if getattr(args, "dry_run", False):
        overrides["dry_run"] = True
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return load_settings(**overrides)


async def _cmd_process(args: argparse.Namespace, settings: Settings) -> int:
    """Run the full pipeline over a directory."""
    from iconnormalizer.classification.factory import check_service, create_provider
    from iconnormalizer.pipeline.orchestrator import Orchestrator
    from iconnormalizer.render.rasterizer import SvgRasterizer

    input_dir: Path = args.input_dir
    if not input_dir.is_dir():
        logger.error("Not a directory: %s", input_dir)
        return EXIT_FATAL

    status = await check_service(settings)
    if not status.available:
        _print_unavailable(status.message, settings.provider)
        return EXIT_FATAL

    renderer = SvgRasterizer()
    provider = create_provider(settings, renderer=renderer)
    orchestrator = Orchestrator(settings, provider, renderer=renderer)

    cancel_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    with contextlib.suppress(NotImplementedError):
        loop.add_signal_handler(signal.SIGINT, _request_cancel, cancel_event)

    try:
        outcome = await orchestrator.run(input_dir, cancel_event)
    finally:
        with contextlib.suppress(NotImplementedError):
            loop.remove_signal_handler(signal.SIGINT)

    if outcome.cancelled:
        done = outcome.partial_results
        errors = sum(1 for r in done if r.status == "error")
        print(
            f"\nInterrupted: {len(done)} of {outcome.pending_items} icons classified "
            f"({errors} errors) before stopping, no results written."
        )
        return EXIT_INTERRUPTED
    if outcome.no_work:
        print(f"\nNo SVG files found in {input_dir}")
        return EXIT_OK

    summary = outcome.summary
    assert summary is not None
    print(f"\nProcessing complete{' (dry run)' if outcome.dry_run else ''}:")
    print(f"  Provider:     {summary.provider_id}")
    print(f"  Icons:        {summary.total_items}")
    print(f"  Unique:       {summary.unique_items}")
    print(f"  Duplicates:   {summary.duplicate_items}")
    print(f"  Errors:       {sum(1 for r in summary.per_item if r.status == 'error')}")
    print(f"  Duration:     {summary.duration_seconds:.1f}s")
    if summary.category_counts:
        print("  Categories:")
        for category, count in sorted(summary.category_counts.items(), key=lambda kv: -kv[1]):
            print(f"    {category:<16s}{count}")
    if not outcome.dry_run:
        print(f"  Output:       {outcome.output_root}")
    if outcome.backup_path is not None:
        print(f"  Backup:       {outcome.backup_path}")
    return EXIT_OK


async def _cmd_check(args: argparse.Namespace, settings: Settings) -> int:
    """Report backend availability."""
    from iconnormalizer.classification.factory import check_service

    status = await check_service(settings)
    if not status.available:
        _print_unavailable(status.message, settings.provider)
        return EXIT_FATAL
    print(f"OK: {status.message}")
    if status.models:
        print("Installed models: " + ", ".join(status.models))
    return EXIT_OK


async def _cmd_config(args: argparse.Namespace, settings: Settings) -> int:
    """Print the effective configuration, secrets masked."""
    data = settings.model_dump(mode="json")
    if data.get("openai_api_key"):
        data["openai_api_key"] = "***"
    data["model"] = settings.model_id
    print(json.dumps(data, indent=2, sort_keys=True))
    return EXIT_OK


async def _cmd_inspect(args: argparse.Namespace, settings: Settings) -> int:
    """Print the metadata block embedded in a processed icon."""
    from iconnormalizer.metadata.codec import MetadataCodec

    file_path: Path = args.file
    if not file_path.is_file():
        logger.error("File not found: %s", file_path)
        return EXIT_FATAL

    fields = MetadataCodec().extract(file_path.read_text(encoding="utf-8")).present_fields()
    if not fields:
        print(f"No icon metadata found in {file_path}")
        return EXIT_OK
    print(f"\nMetadata for {file_path.name}:")
    for key, value in fields.items():
        if isinstance(value, list):
            value = ", ".join(value)
        print(f"  {key:<14s}{value}")
    return EXIT_OK


def _request_cancel(cancel_event: asyncio.Event) -> None:
    if cancel_event.is_set():
        raise KeyboardInterrupt
    logger.warning("Interrupt received, finishing in-flight requests (press Ctrl+C again to abort)")
    cancel_event.set()


def _print_unavailable(message: str, provider: str) -> None:
    from iconnormalizer.classification.factory import provider_help

    print(f"Service unavailable: {message}", file=sys.stderr)
    print(provider_help(provider), file=sys.stderr)


def _print_provider_error(exc: ProviderConfigurationError, provider: str) -> None:
    from iconnormalizer.classification.factory import provider_help

    print(f"Error: {exc}", file=sys.stderr)
    if exc.remediation:
        print(exc.remediation, file=sys.stderr)
    print(provider_help(provider), file=sys.stderr)


if __name__ == "__main__":
    cli()
