"""
Command-line front end for multicopy.

Parses arguments into a ``CopyConfig``, configures logging, renders progress
and the end-of-run summary, and turns the outcome into an exit status.
"""

import argparse
import logging
import sys
from typing import TextIO

from . import __version__
from .errors import CopyError, PreflightConflictError
from .models import CopyConfig, CopyEvent, EventType, HASH_ALGORITHMS, RunStatistics
from .replicator import TreeReplicator

logger = logging.getLogger(__name__)


# ============================================================================
# Presentation
# ============================================================================


def format_size(num_bytes: int) -> str:
    """
    Format a byte count with IEC units.

    Parameters
    ----------
    num_bytes : int
        Number of bytes

    Returns
    -------
    str
        e.g. "512 B", "8.0 KiB", "10.0 MiB"
    """
    if abs(num_bytes) < 1024:
        return f"{num_bytes} B"

    size = float(num_bytes)
    for unit in ["KiB", "MiB", "GiB", "TiB"]:
        size /= 1024
        if abs(size) < 1024:
            return f"{size:.1f} {unit}"
    return f"{size / 1024:.1f} PiB"


class ProgressRenderer:
    """
    Render copy events as a single carriage-return-updated line.

    Parameters
    ----------
    per_file : bool
        Show percent-complete of the current file
    overall : bool
        Show percent-complete of the whole tree and a file counter
    stream : TextIO | None, default=None
        Output stream (stdout if None)
    """

    def __init__(self, per_file: bool, overall: bool, stream: TextIO | None = None):
        self.per_file = per_file
        self.overall = overall
        self.stream = stream if stream is not None else sys.stdout
        self._line_open = False

    @property
    def enabled(self) -> bool:
        return self.per_file or self.overall

    def __call__(self, event: CopyEvent) -> None:
        if not self.enabled:
            return

        parts = []
        if self.per_file:
            parts.append(f"Progress: {event.percent:3.0f}%")
        if self.overall:
            parts.append(
                f"Total: {event.run_percent:3.0f}% "
                f"({event.files_done}/{event.total_files} files)"
            )
        self.stream.write("\r" + "  ".join(parts))
        self._line_open = True

        if event.type == EventType.FILE_COMPLETE:
            self.finish()
        else:
            self.stream.flush()

    def finish(self) -> None:
        """Terminate a progress line left open by an interrupted file."""
        if self._line_open:
            self.stream.write("\n")
            self.stream.flush()
            self._line_open = False


def print_summary(stats: RunStatistics, stream: TextIO | None = None) -> None:
    """
    Print end-of-run counters.

    Parameters
    ----------
    stats : RunStatistics
        Counters of the finished run
    stream : TextIO | None, default=None
        Output stream (stdout if None)
    """
    out = stream if stream is not None else sys.stdout
    rows = [
        ("Files", f"{stats.files_read} read, {stats.files_created} created"),
        ("Directories", f"{stats.dirs_read} read, {stats.dirs_created} created"),
        ("Symlinks", f"{stats.symlinks_read} read, {stats.symlinks_created} created"),
        ("Bytes read", f"{format_size(stats.bytes_read)} ({stats.bytes_read} bytes)"),
        (
            "Bytes written",
            f"{format_size(stats.bytes_written)} ({stats.bytes_written} bytes)",
        ),
        ("Errors", f"{stats.errors}"),
    ]

    print("=" * 60, file=out)
    for label, value in rows:
        print(f"{label + ':':<15}{value}", file=out)


# ============================================================================
# Setup
# ============================================================================


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the application.

    Messages below WARNING go to stdout, diagnostics to stderr.

    Parameters
    ----------
    verbose : bool
        Enable verbose logging
    """
    log_level = logging.DEBUG if verbose else logging.WARNING

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.addFilter(lambda record: record.levelno < logging.WARNING)
    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)

    logging.basicConfig(
        level=log_level,
        format="%(levelname)s: %(message)s",
        handlers=[stdout_handler, stderr_handler],
        force=True,
    )


def positive_int(value: str) -> int:
    """Argument type for strictly positive integers."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer value: '{value}'")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {number}")
    return number


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Parameters
    ----------
    argv : list[str] | None, default=None
        Arguments without the program name (``sys.argv[1:]`` if None)

    Returns
    -------
    argparse.Namespace
        Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        prog="multicopy",
        description=(
            "Copy SOURCE to multiple DESTINATION(s). "
            "If SOURCE is a directory, the whole tree is copied."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s -p clip.mov /mnt/backup1 /mnt/backup2
  %(prog)s -f -P -s /card/DCIM /mnt/backup1/DCIM /mnt/backup2/DCIM
  %(prog)s -b 1024 --allocate --fatal-errors project/ copy1/ copy2/
        """,
    )

    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Permit overwriting existing destinations",
    )
    parser.add_argument(
        "-p",
        "--progress",
        action="store_true",
        help="Show per-file percent-complete",
    )
    parser.add_argument(
        "-P",
        "--global-progress",
        action="store_true",
        help="Show aggregate percent-complete across all files",
    )
    parser.add_argument(
        "-s", "--stats", action="store_true", help="Print summary counters at end of run"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "-b",
        "--buffsize",
        type=positive_int,
        default=8,
        metavar="N",
        help="Copy chunk size in KiB (default: 8)",
    )
    parser.add_argument(
        "--allocate",
        action="store_true",
        help="Preallocate destination file space before writing",
    )
    parser.add_argument(
        "--fatal-errors",
        action="store_true",
        help="Abort the entire run on the first error instead of skipping",
    )
    parser.add_argument(
        "-t",
        "--hash",
        type=str,
        default=None,
        choices=HASH_ALGORITHMS,
        help="Compute an in-flight digest of every copied file",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    parser.add_argument("source", type=str, help="Source file or directory path")
    parser.add_argument(
        "destinations", nargs="+", type=str, help="Destination paths"
    )

    return parser.parse_args(argv)


# ============================================================================
# Main Entry Point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """
    CLI entry point.

    Returns
    -------
    int
        Exit code: 0 for success, 1 for failure, 130 for keyboard interrupt
    """
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    stats = RunStatistics()
    renderer = ProgressRenderer(args.progress, args.global_progress)

    try:
        config = CopyConfig.from_args(args)
        replicator = TreeReplicator(
            config, stats, progress=renderer if renderer.enabled else None
        )
        success = replicator.run()
    except KeyboardInterrupt:
        renderer.finish()
        logger.error("Operation interrupted by user")
        return 130
    except PreflightConflictError as e:
        logger.error(f"{e}")
        return 1
    except CopyError as e:
        logger.error(f"{e}")
        return 1
    except ValueError as e:
        logger.error(f"Invalid parameter: {e}")
        return 1

    renderer.finish()
    if config.collect_stats:
        print_summary(stats)
    return 0 if success else 1

