"""
contentful-ops command line.

Usage:
    contentful-ops <command> [OPTIONS]

Commands:
    scan                  Report broken links (no writes)
    clean                 Remove broken links from entries
    clean-and-publish     Remove broken links, then publish the cleaned entries
    publish               Publish assets, then entries
    publish-entries-only  Publish draft and changed entries
    publish-assets-only   Publish draft and changed assets
    delete-drafts         Delete never-published entries
    delete-all-entries    Delete every entry
    delete-all-assets     Delete every asset
    unpublish-all-entries Unpublish every published entry
    validate-rules        Check a --deletion-rules file (no writes)

Always try a command with --dry-run first.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from contentful_ops import __version__
from contentful_ops.api.client import ContentfulManagementClient
from contentful_ops.api.errors import ContentfulError
from contentful_ops.commands import COMMANDS, DESTRUCTIVE_COMMANDS
from contentful_ops.config import CONTEXTS, DEFAULT_CONTEXT, ConfigError, Settings, load_env

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
    # urllib3 logs every connection at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="contentful-ops",
        description="Bulk maintenance for Contentful spaces: broken links, publishing, deletion",
    )
    parser.add_argument("command", choices=list(COMMANDS), help="Operation to run")
    parser.add_argument("--dry-run", action="store_true", help="Log every write instead of making it")
    parser.add_argument("--max-entries", type=int, help="Stop after this many entries (default 4000)")
    parser.add_argument("--batch-size", type=int, help="Page size for list requests (default 100)")
    parser.add_argument("--content-type", help="Only process entries of this content type")
    parser.add_argument("--space-id", help="Override the space id from the environment")
    parser.add_argument("--env-id", help="Override the environment id from the environment")
    parser.add_argument(
        "--context",
        choices=list(CONTEXTS),
        default=DEFAULT_CONTEXT,
        help=f"Which space/environment env vars to use (default {DEFAULT_CONTEXT})",
    )
    parser.add_argument("--deletion-rules", type=Path, help="JSON file with entry deletion rules")
    parser.add_argument("--report-dir", type=Path, help="Where to write report files (default: cwd)")
    parser.add_argument("--log-level", help="DEBUG, INFO, WARNING or ERROR (default: LOG_LEVEL or INFO)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings.load(
        context=args.context,
        overrides={
            "space_id": args.space_id,
            "environment_id": args.env_id,
            "dry_run": args.dry_run or None,
            "max_entries": args.max_entries,
            "batch_size": args.batch_size,
            "content_type": args.content_type,
            "deletion_rules_path": args.deletion_rules,
            "report_dir": args.report_dir,
            "log_level": args.log_level.upper() if args.log_level else None,
        },
    )


def print_summary(results: dict):
    print()
    print("=" * 70)
    print(f"SUMMARY: {results.get('command')}")
    print("=" * 70)
    print(f"Mode: {results.get('execution_mode')}")
    print(f"Duration: {results.get('duration_seconds', 0):.1f}s")
    for key, value in sorted(results.get("summary", {}).items()):
        print(f"  {key}: {value}")
    if results.get("report_path"):
        print(f"Report: {results['report_path']}")
    if results.get("aborted"):
        print()
        print(f"ABORTED: {results.get('abort_reason')}")


def main(argv: Optional[list] = None):
    args = build_parser().parse_args(argv)

    load_env()
    try:
        settings = settings_from_args(args)
    except ConfigError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    configure_logging(settings.log_level)

    errors = settings.validate()
    if errors:
        for error in errors:
            print(f"ERROR: {error}")
        sys.exit(1)

    print("=" * 70)
    print(f"CONTENTFUL-OPS - {args.command}")
    print("=" * 70)
    print(f"Space: {settings.space_id}  Environment: {settings.environment_id}  Context: {settings.context}")
    if settings.content_type:
        print(f"Content type: {settings.content_type}")
    print(f"Max entries: {settings.max_entries}  Batch size: {settings.batch_size}")
    print()

    if settings.dry_run:
        print("Running in DRY_RUN mode (no actual changes)")
        print()
    elif args.command in DESTRUCTIVE_COMMANDS:
        print("=" * 70)
        print("WARNING: LIVE RUN - THIS COMMAND CAN DELETE CONTENT")
        print("=" * 70)
        print()

    client = ContentfulManagementClient(
        settings.access_token,
        settings.space_id,
        settings.environment_id,
        timeout=settings.request_timeout,
    )

    try:
        client.connect()
    except ContentfulError as e:
        logger.error(f"Failed to connect to Contentful: {e}")
        print(f"ERROR: Could not connect to space {settings.space_id} / {settings.environment_id}")
        sys.exit(1)

    try:
        results = COMMANDS[args.command](client, settings).run()
    except Exception as e:
        logger.exception(f"{args.command} failed: {e}")
        sys.exit(1)

    print_summary(results)
    if results.get("aborted"):
        sys.exit(1)

    print()
    print("Done.")
    sys.exit(0)


if __name__ == "__main__":
    main()
