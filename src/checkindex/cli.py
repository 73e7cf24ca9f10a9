"""
Command-line interface for the checkindex system.

This module provides the main CLI entry point with commands for:
- check: Check a single domain for indexation
- bulk: Check every domain of a CSV file and export the results
- config: Configuration management

Exit codes: 0 indexed / success, 1 not indexed / job failed, 2 usage or
input error.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import (
    SystemConfig,
    load_config_from_env,
    load_config_from_file,
    save_config_to_file,
)
from .enums import JobStatus
from .exceptions import ConfigurationError
from .models import CheckResult, SignalSet
from .service import CheckIndexService

EXIT_OK = 0
EXIT_NOT_INDEXED = 1
EXIT_USAGE = 2

CLI_CLIENT_KEY = "cli"


def _load_config(config_path: Optional[str]) -> SystemConfig:
    if config_path:
        return load_config_from_file(Path(config_path))
    return load_config_from_env()


def _signals_from_args(args: argparse.Namespace) -> Optional[SignalSet]:
    """Build signals when any signal flag was given; missing ones are zero."""
    values = (args.keywords, args.traffic, args.backlinks, args.age)
    if all(value is None for value in values):
        return None
    return SignalSet(
        keywords_top_100=args.keywords or 0,
        traffic=args.traffic or 0.0,
        backlinks=args.backlinks or 0,
        domain_age_years=args.age,
    )


def format_result(domain: str, result: CheckResult) -> str:
    """Human-readable one-line summary of a check result."""
    status = "indexed" if result.indexed else "not indexed"
    line = f"{domain}: {status} ({result.confidence.value}, {result.method.value})"
    if result.indexed_pages_count is not None:
        line += f", {result.indexed_pages_count} page(s)"
    if result.cached_at:
        line += f", cached at {result.cached_at}"
    return line


async def run_check(
    config: SystemConfig,
    domain: str,
    signals: Optional[SignalSet] = None,
    force: bool = False,
    as_json: bool = False,
) -> int:
    """
    Check one domain and print the result.

    Returns:
        Exit code (0 indexed, 1 not indexed, 2 input error)
    """
    async with CheckIndexService(config) as service:
        outcome = await service.check(
            domain,
            client_key=CLI_CLIENT_KEY,
            signals=signals,
            force_authoritative=force,
        )

    if outcome.error:
        print(f"Error: {outcome.error}", file=sys.stderr)
        return EXIT_USAGE

    if outcome.result is None:
        print("Error: Rate limit exceeded", file=sys.stderr)
        return EXIT_USAGE

    if as_json:
        print(json.dumps(outcome.result.to_dict(), ensure_ascii=False))
    else:
        print(format_result(domain, outcome.result))

    return EXIT_OK if outcome.result.indexed else EXIT_NOT_INDEXED


async def run_bulk(
    config: SystemConfig,
    csv_text: str,
    output_file: Optional[Path] = None,
) -> int:
    """
    Run a bulk job to completion and write the CSV export.

    Returns:
        Exit code (0 completed, 1 failed, 2 invalid input)
    """
    async with CheckIndexService(config) as service:
        job = service.create_bulk_job(csv_text)
        if isinstance(job, str):
            print(f"Error: {job}", file=sys.stderr)
            return EXIT_USAGE

        print(f"Checking {job.total} domain(s)...", file=sys.stderr)
        await service.bulk_jobs.wait(job.id)

        if job.status == JobStatus.FAILED:
            print(
                f"Error: Bulk job failed after {job.processed}/{job.total} domain(s)",
                file=sys.stderr,
            )
            return EXIT_NOT_INDEXED

        export = service.bulk_jobs.export_csv(job)

    if output_file:
        try:
            output_file.write_text(export + "\n", encoding="utf-8")
        except OSError as e:
            print(f"Error writing results: {e}", file=sys.stderr)
            return EXIT_USAGE
        print(f"Results written to: {output_file}", file=sys.stderr)
    else:
        print(export)

    return EXIT_OK


def cmd_check(args: argparse.Namespace) -> int:
    """Handle the 'check' command."""
    try:
        config = _load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_USAGE

    return asyncio.run(run_check(
        config,
        args.domain,
        signals=_signals_from_args(args),
        force=args.force,
        as_json=args.json,
    ))


def cmd_bulk(args: argparse.Namespace) -> int:
    """Handle the 'bulk' command."""
    try:
        config = _load_config(args.config)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_USAGE

    try:
        csv_text = Path(args.file).read_text(encoding="utf-8")
    except FileNotFoundError:
        print(f"Error: File not found: {args.file}", file=sys.stderr)
        return EXIT_USAGE
    except (OSError, UnicodeDecodeError) as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return EXIT_USAGE

    output_file = Path(args.output) if args.output else None
    return asyncio.run(run_bulk(config, csv_text, output_file))


def cmd_config(args: argparse.Namespace) -> int:
    """Handle the 'config' command."""
    config_path = Path(args.path)

    if args.action == "show":
        try:
            config = load_config_from_file(config_path)
        except ConfigurationError as e:
            print(f"Error: {e.message}", file=sys.stderr)
            return EXIT_USAGE

        print(f"Configuration from: {config_path}")
        print(f"  Cache TTL: {config.cache.ttl_seconds}s")
        print(f"  Cache DB: {config.cache.db_path or '(in-memory)'}")
        print(f"  Rate limit: {config.rate_limit.max_requests}"
              f"/{config.rate_limit.window_seconds:g}s")
        print(f"  Search API credentials: "
              f"{'set' if config.search_api.has_credentials else 'missing'}")
        print(f"  Enrichment: {config.enrichment.url if config.enrichment else 'disabled'}")
        print(f"  Log level: {config.logging.level}")
        return EXIT_OK

    # init
    if config_path.exists() and not args.force:
        print(f"Configuration already exists at: {config_path}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        return EXIT_USAGE

    try:
        save_config_to_file(load_config_from_env(), config_path)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return EXIT_USAGE

    print(f"Configuration created at: {config_path}")
    return EXIT_OK


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="checkindex",
        description="Check whether domains are indexed by a search engine",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'check' command
    check_parser = subparsers.add_parser(
        "check",
        help="Check a single domain for indexation",
    )
    check_parser.add_argument(
        "domain",
        help="Domain or URL to check (e.g., example.com)",
    )
    check_parser.add_argument("--keywords", type=int, help="Keywords ranking in the top 100")
    check_parser.add_argument("--traffic", type=float, help="Estimated organic traffic")
    check_parser.add_argument("--backlinks", type=int, help="Number of backlinks")
    check_parser.add_argument("--age", type=float, help="Domain age in years")
    check_parser.add_argument(
        "--force",
        action="store_true",
        help="Always ask the search API, skipping the heuristic",
    )
    check_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the result as JSON",
    )
    check_parser.add_argument(
        "--config", "-c",
        help="Path to configuration file (defaults to environment variables)",
    )
    check_parser.set_defaults(func=cmd_check)

    # 'bulk' command
    bulk_parser = subparsers.add_parser(
        "bulk",
        help="Check every domain of a CSV file",
    )
    bulk_parser.add_argument(
        "file",
        help="CSV file with domains in the first column",
    )
    bulk_parser.add_argument(
        "--output", "-o",
        help="Path to write the results CSV (defaults to stdout)",
    )
    bulk_parser.add_argument(
        "--config", "-c",
        help="Path to configuration file (defaults to environment variables)",
    )
    bulk_parser.set_defaults(func=cmd_bulk)

    # 'config' command
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
    )
    config_parser.add_argument(
        "action",
        choices=["init", "show"],
        help="Configuration action",
    )
    config_parser.add_argument(
        "path",
        help="Path to configuration file",
    )
    config_parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Force overwrite existing configuration",
    )
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_USAGE

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
