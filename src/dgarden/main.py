#!/usr/bin/env python
"""Command line entry point for dgarden."""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dgarden import __version__
from dgarden.config import LOG_LEVELS, config
from dgarden.exceptions import ConfigurationError, GardenError
from dgarden.observability import configure_logging, metrics
from dgarden.services.index_service import VaultIndex
from dgarden.services.linter import Linter
from dgarden.services.publisher import build_manifest, write_manifest
from dgarden.storage.vault_repository import VaultRepository

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LINT_FAILED = 1
EXIT_ERROR = 2


def parse_args(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="dgarden",
        description="Validate and index an Obsidian Digital Garden vault",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--vault",
        help="Vault root directory (default: $DGARDEN_VAULT_DIR or the current directory)",
        type=str,
    )
    parser.add_argument(
        "--log-level",
        help="Logging level",
        choices=LOG_LEVELS,
        type=str.upper,
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    lint = subparsers.add_parser("lint", help="Check front-matter, wikilinks and permalinks")
    lint.add_argument("--strict", action="store_true", help="Fail on warnings too")
    lint.add_argument("--json", action="store_true", help="Print the report as JSON")

    tags = subparsers.add_parser("tags", help="List tags with note counts")
    tags.add_argument("--json", action="store_true", help="Print as JSON")
    tags.add_argument("--tag", help="List the notes carrying this tag instead")

    backlinks = subparsers.add_parser("backlinks", help="List notes linking to a note")
    backlinks.add_argument("note", help="Vault path of the note, e.g. 'Git/Worktree'")

    orphans = subparsers.add_parser("orphans", help="List notes nothing links to")
    orphans.add_argument("--published", action="store_true", help="Only published notes")

    manifest = subparsers.add_parser("manifest", help="Export the publish manifest as JSON")
    manifest.add_argument("--output", "-o", help="Write to this file instead of stdout")

    return parser.parse_args(argv)


def update_config(args) -> None:
    """Update the global config with command line arguments."""
    if args.vault:
        config.vault_dir = Path(args.vault)
    if args.log_level:
        config.log_level = args.log_level


def cmd_lint(repository: VaultRepository, args) -> int:
    report = Linter(repository, config).lint()
    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        for issue in report.issues:
            print(issue.format())
        print(
            f"{report.notes_checked} notes checked: "
            f"{len(report.errors)} errors, {len(report.warnings)} warnings"
        )
    return EXIT_OK if report.ok(strict=args.strict or config.strict) else EXIT_LINT_FAILED


def _load_index(repository: VaultRepository) -> VaultIndex:
    loaded = repository.load_notes()
    for failure in loaded.failures:
        logger.warning(failure.format())
    return VaultIndex.build(loaded.notes, repository)


def cmd_tags(repository: VaultRepository, args) -> int:
    index = _load_index(repository)
    if args.tag:
        for path in index.notes_with_tag(args.tag):
            print(path)
        return EXIT_OK
    counts = index.tag_counts()
    if args.json:
        print(json.dumps(counts, indent=2, ensure_ascii=False))
    else:
        for name, count in counts.items():
            print(f"{count:5d}  {name}")
    return EXIT_OK


def cmd_backlinks(repository: VaultRepository, args) -> int:
    index = _load_index(repository)
    note = repository.get(args.note)
    for path in index.backlinks(note.path):
        print(path)
    return EXIT_OK


def cmd_orphans(repository: VaultRepository, args) -> int:
    index = _load_index(repository)
    for path in index.orphans(published_only=args.published):
        print(path)
    return EXIT_OK


def cmd_manifest(repository: VaultRepository, args) -> int:
    loaded = repository.load_notes()
    entries = build_manifest(loaded.notes)
    if args.output:
        write_manifest(entries, Path(args.output))
    else:
        print(json.dumps(entries, indent=2, ensure_ascii=False))
    return EXIT_OK


COMMANDS = {
    "lint": cmd_lint,
    "tags": cmd_tags,
    "backlinks": cmd_backlinks,
    "orphans": cmd_orphans,
    "manifest": cmd_manifest,
}


def main(argv: Optional[List[str]] = None) -> int:
    """Run a dgarden command and return its exit status."""
    metrics.reset()
    args = parse_args(argv)
    update_config(args)
    try:
        config.check()
    except ConfigurationError as e:
        print(f"error: {e.message}", file=sys.stderr)
        return EXIT_ERROR

    log_level = getattr(logging, config.log_level, logging.WARNING)
    try:
        configure_logging(log_dir=config.get_log_dir(), level=log_level, console=True)
    except OSError as e:
        # Fall back to console logging if the log directory is unusable
        logging.basicConfig(level=log_level)
        logger.warning(f"Failed to configure file logging: {e}")

    try:
        repository = VaultRepository(config.get_vault_path(), ignore_dirs=config.ignore_dirs)
        return COMMANDS[args.command](repository, args)
    except GardenError as e:
        logger.error(str(e))
        print(f"error: {e.message}", file=sys.stderr)
        return EXIT_ERROR
    finally:
        metrics.log_summary()


if __name__ == "__main__":
    sys.exit(main())
