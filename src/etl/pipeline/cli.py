"""Command Line Interface for the review dataset batch drivers.

Provides argument parsing and command handling for the review audit,
audience buzz recalculation and candidate show duplicate checks.
"""

import argparse
import logging
import sys
from pathlib import Path

from src.etl.aggregation.aggregator import ReviewAuditor
from src.etl.aggregation.deduplicator import DuplicateDetector
from src.etl.aggregation.issues import AuditError, MismatchThresholdExceeded
from src.etl.aggregation.score_calculator import BuzzScoreCalculator
from src.etl.pipeline.records import load_shows, parse_shows, read_json, write_json
from src.etl.utils import UrlDiscoveryCache, setup_logger
from src.etl.utils.url_cache import DEFAULT_CACHE_FILENAME
from src.settings import settings

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


# =============================================================================
# ARGUMENT PARSING
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="python -m src",
        description="Broadway scorecard - review identity resolution and audience scores",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m src audit                         # Audit every show
  python -m src audit --show cabaret-2024 --fix
  python -m src buzz                          # Recalculate audience buzz
  python -m src check-shows new-shows.json    # Duplicate check for candidates
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Command")

    audit_parser = subparsers.add_parser("audit", help="Audit review files")
    audit_parser.add_argument("--show", metavar="SLUG", default=None, help="Audit a single show")
    audit_parser.add_argument(
        "--fix",
        action="store_true",
        help="Quarantine confident mismatches in the review files",
    )
    audit_parser.add_argument("--verbose", action="store_true", help="List every issue")
    audit_parser.add_argument(
        "--max-mismatch-rate",
        type=float,
        default=None,
        metavar="R",
        help=f"Fail above this mismatch rate (default: {settings.verifier.max_mismatch_rate})",
    )

    buzz_parser = subparsers.add_parser("buzz", help="Recalculate audience buzz scores")
    buzz_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report changes without writing the file",
    )

    check_parser = subparsers.add_parser("check-shows", help="Check candidate shows for duplicates")
    check_parser.add_argument("candidates", type=Path, help="JSON file with candidate shows")

    return parser


# =============================================================================
# COMMAND HANDLERS
# =============================================================================


def _resolve_show_id(value: str) -> str:
    """Map a slug or id given on the command line to a show id."""
    for show in load_shows(settings.paths.shows_file):
        if value in (show.id, show.slug):
            return show.id
    return value


def handle_audit(args: argparse.Namespace) -> int:
    """Handle the audit command.

    Args:
        args: Parsed arguments.

    Returns:
        Exit code.

    Raises:
        MismatchThresholdExceeded: If too many texts are confident mismatches.
    """
    cache = UrlDiscoveryCache.load(settings.paths.cache_dir / DEFAULT_CACHE_FILENAME)
    auditor = ReviewAuditor.from_settings(settings, url_cache=cache)
    if args.max_mismatch_rate is not None:
        auditor.max_mismatch_rate = args.max_mismatch_rate

    show_id = _resolve_show_id(args.show) if args.show else None
    report = auditor.run(show_id=show_id, fix=args.fix)

    cache.save()
    auditor.export_json(settings.paths.audit_dir)

    print(report.format_summary())
    if args.verbose:
        print()
        for issue in report.issues:
            print(f"[{issue.category}] {issue.show_id or '-'}/{issue.file or '-'}: {issue.message}")

    report.check_threshold()
    return EXIT_OK


def handle_buzz(args: argparse.Namespace) -> int:
    """Handle the buzz command.

    Args:
        args: Parsed arguments.

    Returns:
        Exit code.
    """
    path = settings.paths.audience_buzz_file
    calculator = BuzzScoreCalculator.from_settings(settings)
    updated = calculator.recalculate(read_json(path))

    if not args.dry_run:
        write_json(path, updated)
        logger.info("Saved %s", path)

    stats = calculator.stats
    print(
        f"Updated {stats.changed} of {stats.total_shows} shows "
        f"({stats.no_data} without data){' [dry run]' if args.dry_run else ''}"
    )
    return EXIT_OK


def handle_check_shows(args: argparse.Namespace) -> int:
    """Handle the check-shows command.

    Candidates accepted as new join the comparison set, so the same show
    listed twice in one file is reported too.

    Args:
        args: Parsed arguments.

    Returns:
        Exit code.
    """
    existing = load_shows(settings.paths.shows_file)
    candidates = parse_shows(read_json(args.candidates), args.candidates)
    detector = DuplicateDetector.from_settings(settings)

    duplicates = 0
    for candidate in candidates:
        result = detector.check_for_duplicate(candidate, existing)
        if result.is_duplicate:
            duplicates += 1
            print(f"DUPLICATE {candidate.id} -> {result.matched.id} ({result.rule}): {result.reason}")
            continue
        print(f"NEW       {candidate.id}")
        existing.append(candidate)

    print(f"\n{duplicates} of {len(candidates)} candidates are duplicates")
    return EXIT_OK


_HANDLERS = {
    "audit": handle_audit,
    "buzz": handle_buzz,
    "check-shows": handle_check_shows,
}


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.

    Args:
        argv: Arguments (default: sys.argv[1:]).

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return EXIT_FAILURE

    level = logging.DEBUG if getattr(args, "verbose", False) else None
    setup_logger("src", level=level)

    try:
        return _HANDLERS[args.command](args)
    except MismatchThresholdExceeded as e:
        print(f"\nAudit failed: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except (AuditError, OSError, ValueError) as e:
        logger.error("Command %s failed: %s", args.command, e)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return EXIT_INTERRUPTED
