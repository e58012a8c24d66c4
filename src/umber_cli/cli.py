"""Command line entry point.

Commands:

- ``umber-cli import`` -- import a GitHub repository (``--repo``) or a
  local checkout (``--source-dir``) into the forum.
- ``umber-cli init-config`` -- write a commented starter config file.

Reports go to stdout; log records go to stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import Config, load_config
from .config_loader import discover_config_files, ensure_config, load_hierarchical_config
from .config_schema import UnifiedConfig, build_config
from .core.async_utils import run_sync
from .core.client import NodeBBClient
from .errors import ConfigurationError, ImportAbortedError, UmberError
from .importer.engine import ImportContext, ImportEngine
from .importer.models import ImportReport, SourceFile
from .importer.reporter import format_dry_run_preview, format_import_report, report_to_json
from .logger import setup_logging
from .sources import fetch_repo_files, list_local_files

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    print(msg, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="umber-cli",
        description="Publish the files of a repository as NodeBB forum topics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import the repository named in the config file
  umber-cli import

  # Preview an import without writing anything
  umber-cli import --repo https://github.com/owner/repo --dry-run

  # Import a local checkout, machine-readable report
  umber-cli import --source-dir ./checkout --repo https://github.com/owner/repo --json

  # Create .umber/config.yml
  umber-cli init-config
        """,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"umber-cli version {__version__}",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import", help="Import repository files into the forum")
    imp.add_argument(
        "--source-dir",
        help="Read files from a local directory instead of downloading",
    )
    imp.add_argument(
        "--repo",
        help="Repository URL (overrides importer.target_repo_url); with "
        "--source-dir it is only recorded in topic metadata",
    )
    imp.add_argument(
        "--ref", help="Branch, tag, or commit to download (default branch when unset)"
    )
    imp.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would change without writing to the forum",
    )
    imp.add_argument(
        "--json", action="store_true", help="Print the report as JSON"
    )
    imp.add_argument(
        "--url",
        help="Override forum URL (takes precedence over NODEBB_URL env var and config files)",
    )
    imp.add_argument(
        "--token",
        help="Override API token (takes precedence over NODEBB_API_TOKEN env var and config files)"
        " (visible in process list -- prefer NODEBB_API_TOKEN env var for security)",
    )
    imp.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    imp.add_argument("--debug", action="store_true", help="Enable debug logging")
    imp.add_argument("--log-file", help="Also write log records to this file")

    init = sub.add_parser("init-config", help="Create a starter config file")
    init.add_argument(
        "--path",
        help="Where to create the file (default: .umber/config.yml)",
    )
    return parser


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


def _load_settings(args: argparse.Namespace) -> tuple[UnifiedConfig, Config]:
    """Resolve the unified config file and the connection config.

    Precedence: CLI args > env vars (.env loaded first) > YAML config > defaults.
    """
    load_dotenv()
    try:
        unified = build_config(load_hierarchical_config())
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc

    setup_logging(
        debug=args.debug or unified.nodebb.debug,
        log_file=args.log_file or unified.logging.file,
        debug_format=unified.logging.format,
        level=unified.logging.level,
    )

    config_files = discover_config_files()
    if config_files:
        logger.info("Configuration file: %s", config_files[0])

    yaml_fallbacks = {
        k: v for k, v in unified.nodebb.model_dump().items() if v is not None
    }
    config = load_config(
        url=args.url,
        api_token=args.token,
        insecure=args.insecure,
        debug=args.debug,
        yaml_fallbacks=yaml_fallbacks,
    )
    logger.info("Forum URL: %s", config.nodebb_url)
    return unified, config


def _collect_files(
    args: argparse.Namespace, unified: UnifiedConfig, config: Config
) -> tuple[list[SourceFile], str, str]:
    """Return ``(files, repo_url, source)`` for the pass."""
    settings = unified.importer
    repo_url = args.repo or settings.target_repo_url

    if args.source_dir:
        files = list_local_files(args.source_dir, settings.ignored_paths)
        if not repo_url:
            repo_url = Path(args.source_dir).expanduser().resolve().as_uri()
        return files, repo_url, "local"

    if not repo_url:
        raise ConfigurationError(
            "No repository given. Pass --repo or --source-dir, or set "
            "importer.target_repo_url in the config file."
        )
    files = fetch_repo_files(
        repo_url,
        settings.ignored_paths,
        ref=args.ref or settings.ref,
        token=os.getenv("GITHUB_TOKEN"),
        timeout=config.timeout,
    )
    return files, repo_url, "github"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _run_import(
    client: NodeBBClient,
    context: ImportContext,
    files: list[SourceFile],
    dry_run: bool,
) -> ImportReport:
    info = await run_sync(client.ping)
    version = info.get("version") if isinstance(info, dict) else None
    logger.info("Connected to forum%s", f" (NodeBB {version})" if version else "")
    return await ImportEngine(context).run(files, dry_run=dry_run)


def _print_report(report: ImportReport, as_json: bool) -> None:
    if as_json:
        print(json.dumps(report_to_json(report), indent=2))
    elif report.dry_run:
        print(format_dry_run_preview(report))
    else:
        print(format_import_report(report))


def cmd_import(args: argparse.Namespace) -> int:
    try:
        unified, config = _load_settings(args)
        files, repo_url, source = _collect_files(args, unified, config)
    except UmberError as e:
        logger.error("%s", e)
        _stderr_print(f"ERROR: {e}")
        return 1

    if not files:
        _stderr_print("No files to import.")
        return 0

    client = NodeBBClient(config)
    context = ImportContext(
        client=client,
        settings=unified.importer,
        repo_url=repo_url,
        source=source,
        base_url=config.nodebb_url,
    )

    try:
        report = asyncio.run(_run_import(client, context, files, args.dry_run))
    except ImportAbortedError as e:
        _print_report(e.report, args.json)
        _stderr_print(f"ERROR: {e}")
        return 1
    except UmberError as e:
        logger.error("%s", e)
        _stderr_print(f"ERROR: {e}")
        return 1

    _print_report(report, args.json)
    return 0


def cmd_init_config(args: argparse.Namespace) -> int:
    target = Path(args.path) if args.path else None
    path = ensure_config(target)
    print(f"Config file: {path}")
    return 0


_COMMANDS: dict[str, Any] = {
    "import": cmd_import,
    "init-config": cmd_init_config,
}


def main(argv: list[str] | None = None) -> int:
    """Parse *argv* and run the selected command; returns the exit code."""
    args = build_parser().parse_args(argv)
    return _COMMANDS[args.command](args)


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        _stderr_print("\nInterrupted.")
        sys.exit(130)


if __name__ == "__main__":
    run()
