#!/usr/bin/env python3
"""
CLI interface for the podlabel pipeline.

The pipeline runs, in order:
    1. fetch       Search episodes by person, download audio + metadata
    2. transcribe  Speaker diarization of the audio
    3. label       Speaker identification with a language model
    4. qa          Question/answer pairs (optional, not run by default)
    5. persist     Insert labeled episodes into the database

Usage:
    python -m podlabel                  # one item per remote stage
    python -m podlabel 5                # up to 5 items per remote stage
    python -m podlabel 3 --stages transcribe,label
    python -m podlabel --status
    python -m podlabel --init-db
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .config import DEFAULT_STAGES, STAGE_NAMES, PipelineConfig
from .db import (
    check_database_connection,
    create_db_engine,
    get_database_info,
    init_database,
    make_session_factory,
)
from .errors import ConfigError
from .logger import setup_logging
from .pipeline import collect_status, run_pipeline
from .storage import LocalStorage


def positive_int(value: str) -> int:
    """argparse type for the item budget."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    if number < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {number}")
    return number


def parse_stages(value: Optional[str]) -> tuple[List[str], List[str]]:
    """
    Split a comma-separated stage list.

    Returns:
        Tuple of (stage_names, invalid_names)
    """
    if not value:
        return list(DEFAULT_STAGES), []
    names = [s.strip() for s in value.split(",") if s.strip()]
    invalid = [name for name in names if name not in STAGE_NAMES]
    return names, invalid


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="python -m podlabel",
        description="Podcast labeling pipeline - fetch, transcribe, label and store podcast episodes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Available Stages:
  fetch         Episode metadata and audio downloaded
  transcribe    Diarized transcript ready
  label         Speaker-labeled transcript ready
  qa            Q&A pairs generated (optional)
  persist       Episode and segments stored in the database

Notes:
  - Completed work is detected from files in the data directory and skipped
  - Failed items are listed in failed_*.txt next to the episode files
  - Credentials are read from .env (see .env.example)
  - Logs written to logs/pipeline.log
        """,
    )
    parser.add_argument(
        "budget",
        nargs="?",
        type=positive_int,
        default=1,
        metavar="N",
        help="Process up to N items in each transcribe/label/qa stage (default: 1)",
    )

    stage_group = parser.add_argument_group("stage control")
    stage_group.add_argument(
        "--stages",
        type=str,
        metavar="STAGE,...",
        help=f"Run only specific stages (comma-separated, default: {','.join(DEFAULT_STAGES)})",
    )

    options_group = parser.add_argument_group("options")
    options_group.add_argument(
        "--query",
        type=str,
        metavar="NAME",
        help="Person to search for (default: SEARCH_QUERY from .env)",
    )
    options_group.add_argument(
        "--data-dir",
        type=Path,
        metavar="DIR",
        help="Data directory (default: DATA_DIR from .env, or ./data)",
    )
    options_group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging output",
    )

    admin_group = parser.add_argument_group("administration")
    admin_exclusive = admin_group.add_mutually_exclusive_group()
    admin_exclusive.add_argument(
        "--status",
        action="store_true",
        help="Print how many episodes are at each stage and exit",
    )
    admin_exclusive.add_argument(
        "--init-db",
        action="store_true",
        help="Create the database tables and exit",
    )

    return parser.parse_args(argv)


def fail(message: str, details: Optional[List[str]] = None) -> None:
    print(f"✗ Error: {message}", file=sys.stderr)
    for detail in details or []:
        print(f"  - {detail}", file=sys.stderr)
    sys.exit(1)


def print_status(config: PipelineConfig) -> None:
    engine = session_factory = None
    database_ready = False
    if config.database_url and not config.validate(["persist"]):
        engine = create_db_engine(config.database_url)
        session_factory = make_session_factory(engine)
        database_ready = check_database_connection(session_factory)
        if not database_ready:
            session_factory = None

    report = collect_status(LocalStorage(config.data_dir), config.data_dir, session_factory)

    print("=" * 80)
    print(f"Data directory: {config.data_dir}")
    print("=" * 80)
    print(f"  Total episodes: {report.total}")
    for state, count in sorted(report.states.items(), key=lambda item: item[0].value):
        print(f"    {state.value}: {count}")
    print()
    print("Failure logs:")
    for log_name, count in report.failures.items():
        print(f"    {log_name}: {count}")
    if report.corrupt:
        print()
        print(f"✗ Corrupt artifacts ({len(report.corrupt)}):")
        for path in report.corrupt:
            print(f"    {path}")

    print()
    if engine is None:
        print("Database: not configured")
        return
    info = get_database_info(engine)
    print(f"Database: {info['database_url']} ({info['dialect']})")
    if "file_size_mb" in info:
        print(f"    file size: {info['file_size_mb']} MB")
    if database_ready:
        print("    ✓ connected, tables present")
    else:
        print("    ✗ unreachable or not initialized (run `python -m podlabel --init-db`)")


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the pipeline CLI."""
    args = parse_arguments(argv)

    stages, invalid = parse_stages(args.stages)
    if invalid:
        fail(
            f"Invalid stage names: {', '.join(invalid)}",
            [f"Valid stages: {', '.join(STAGE_NAMES)}"],
        )

    config = PipelineConfig.from_env(
        budget=args.budget,
        stages=stages,
        search_query=args.query,
        data_dir=args.data_dir,
    )

    logger = setup_logging(
        logger_name="podlabel",
        log_file=Path(config.log_dir) / "pipeline.log",
        verbose=args.verbose,
    )

    if args.init_db:
        errors = config.validate(["persist"])
        if errors:
            fail("Invalid configuration", errors)
        init_database(create_db_engine(config.database_url))
        print("✓ Database tables created")
        return

    if args.status:
        print_status(config)
        return

    logger.info("=" * 80)
    logger.info("Pipeline execution started")
    logger.info(f"Stages: {', '.join(stages)} | budget: {config.budget}")
    logger.info("=" * 80)

    try:
        report = run_pipeline(config)
    except ConfigError as e:
        fail("Invalid configuration", e.errors)
    except Exception as e:
        logger.error(f"Pipeline execution failed: {e}")
        print(f"\n✗ PIPELINE FAILED: {e}", file=sys.stderr)
        sys.exit(1)

    logger.info("Pipeline execution completed")
    print("\n" + "=" * 80)
    for stats in report.stages.values():
        mark = "✓" if stats.failed == 0 else "✗"
        print(f"{mark} {stats}")
    if report.row_counts is not None:
        print(
            f"  Database: {report.row_counts['episodes']} episodes, "
            f"{report.row_counts['segments']} segments"
        )
    print("=" * 80)


if __name__ == "__main__":
    main()
