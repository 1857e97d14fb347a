"""
Data models shared by the multicopy engine.

Configuration is immutable once built; statistics are the single mutable
record of a run; traversal entries and copy events are transient.
"""

import argparse
import os
from dataclasses import dataclass, field
from enum import Enum

# Constants
DEFAULT_CHUNK_SIZE = 8 * 1024  # 8 KiB
HASH_ALGORITHMS = ["xxh64be", "md5", "sha1", "sha256"]


def _strip(path: str) -> str:
    stripped = path.rstrip(os.sep)
    return stripped if stripped else path[:1]


@dataclass(frozen=True)
class CopyConfig:
    """
    Validated configuration for one multicopy run.

    Attributes
    ----------
    source : str
        Source file or directory, trailing separators stripped
    destinations : tuple[str, ...]
        Destination roots in command-line order, trailing separators stripped
    force : bool, default=False
        Permit overwriting existing destination roots
    per_file_progress : bool, default=False
        Report percent-complete of the current file
    global_progress : bool, default=False
        Report percent-complete of the whole tree (enables the tally pass)
    collect_stats : bool, default=False
        Print summary counters at the end of the run
    verbose : bool, default=False
        Log per-operation messages
    preallocate : bool, default=False
        Reserve destination space before writing
    fatal_on_error : bool, default=False
        Abort the run on the first error instead of skipping the entry
    chunk_size : int, default=8192
        Bytes read from the source per iteration
    hash_algorithm : str | None, default=None
        Compute an in-flight digest of every copied file
    """

    source: str
    destinations: tuple[str, ...]
    force: bool = False
    per_file_progress: bool = False
    global_progress: bool = False
    collect_stats: bool = False
    verbose: bool = False
    preallocate: bool = False
    fatal_on_error: bool = False
    chunk_size: int = DEFAULT_CHUNK_SIZE
    hash_algorithm: str | None = None

    def __post_init__(self):
        """Normalize paths and validate configuration."""
        source = _strip(os.fspath(self.source))
        destinations = tuple(_strip(os.fspath(d)) for d in self.destinations)
        object.__setattr__(self, "source", source)
        object.__setattr__(self, "destinations", destinations)

        if not source:
            raise ValueError("Source path must not be empty")
        if not destinations:
            raise ValueError("At least one destination is required")
        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")

        source_abs = os.path.abspath(source)
        for dest in destinations:
            if not dest:
                raise ValueError("Destination path must not be empty")
            if os.path.abspath(dest) == source_abs:
                raise ValueError(f"Destination is the same as the source: {dest}")

        if self.hash_algorithm is not None:
            algorithm = self.hash_algorithm.lower()
            if algorithm not in HASH_ALGORITHMS:
                raise ValueError(f"Invalid hash algorithm: {self.hash_algorithm}")
            object.__setattr__(self, "hash_algorithm", algorithm)

    @property
    def two_pass(self) -> bool:
        """Whether the tree is tallied before copying."""
        return self.global_progress

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> "CopyConfig":
        """Create config from command-line arguments."""
        return cls(
            source=args.source,
            destinations=tuple(args.destinations),
            force=args.force,
            per_file_progress=args.progress,
            global_progress=args.global_progress,
            collect_stats=args.stats,
            verbose=args.verbose,
            preallocate=args.allocate,
            fatal_on_error=args.fatal_errors,
            chunk_size=args.buffsize * 1024,
            hash_algorithm=args.hash,
        )


@dataclass
class RunStatistics:
    """
    Counters for a single run.

    ``total_files`` and ``total_bytes`` are only filled by the tally pass.
    """

    files_read: int = 0
    files_created: int = 0
    dirs_read: int = 0
    dirs_created: int = 0
    symlinks_read: int = 0
    symlinks_created: int = 0
    bytes_read: int = 0
    bytes_written: int = 0
    errors: int = 0
    total_files: int = 0
    total_bytes: int = 0


class EntryKind(Enum):
    """
    Kind of a node reported by the tree walker.

    Attributes
    ----------
    DIRECTORY : str
        Listable directory
    FILE : str
        Regular file
    SYMLINK : str
        Symbolic link (never followed)
    UNREADABLE_DIRECTORY : str
        Directory whose contents could not be listed
    UNSTATABLE : str
        Entry whose metadata could not be obtained
    SPECIAL : str
        Socket, FIFO or device node
    """

    DIRECTORY = "directory"
    FILE = "file"
    SYMLINK = "symlink"
    UNREADABLE_DIRECTORY = "unreadable_directory"
    UNSTATABLE = "unstatable"
    SPECIAL = "special"


@dataclass(frozen=True)
class TraversalEntry:
    """
    One node visited by the tree walker.

    Attributes
    ----------
    path : str
        Source path of the entry
    kind : EntryKind
        What the entry is
    depth : int
        Nesting level below the copy root (0 for the root itself)
    size : int, default=0
        Size in bytes (files and symlinks)
    mode : int, default=0
        Permission bits
    error : OSError | None, default=None
        Cause for unreadable and unstatable entries
    """

    path: str
    kind: EntryKind
    depth: int
    size: int = 0
    mode: int = 0
    error: OSError | None = None


class EventType(Enum):
    """Events emitted by the file copier."""

    FILE_START = "file_start"
    FILE_PROGRESS = "file_progress"
    FILE_COMPLETE = "file_complete"


@dataclass
class CopyEvent:
    """
    Progress event emitted while a file is copied.

    Attributes
    ----------
    type : EventType
        Type of event
    path : str
        Source file being copied
    bytes_processed : int, default=0
        Bytes of this file read so far
    total_bytes : int, default=0
        Size of this file
    run_bytes_processed : int, default=0
        Bytes read so far across the whole run
    run_total_bytes : int, default=0
        Size of the whole source tree (0 without a tally pass)
    files_done : int, default=0
        Files started so far, including this one
    total_files : int, default=0
        Files in the whole source tree (0 without a tally pass)
    """

    type: EventType
    path: str
    bytes_processed: int = 0
    total_bytes: int = 0
    run_bytes_processed: int = 0
    run_total_bytes: int = 0
    files_done: int = 0
    total_files: int = 0

    @property
    def percent(self) -> float:
        if self.total_bytes > 0:
            return self.bytes_processed / self.total_bytes * 100
        return 100.0

    @property
    def run_percent(self) -> float:
        if self.run_total_bytes > 0:
            return self.run_bytes_processed / self.run_total_bytes * 100
        return 100.0


@dataclass
class FileCopyResult:
    """
    Result of copying one source file to all of its destinations.

    Attributes
    ----------
    source_path : str
        Source file path
    source_size : int
        Size reported by the traversal
    destinations : list[str], default=[]
        Mapped destination paths
    bytes_read : int, default=0
        Bytes read from the source
    success : bool, default=False
        True only when every destination received every byte
    source_hash : str | None, default=None
        In-flight digest of the source stream
    duration : float, default=0.0
        Copy duration in seconds
    """

    source_path: str
    source_size: int
    destinations: list[str] = field(default_factory=list)
    bytes_read: int = 0
    success: bool = False
    source_hash: str | None = None
    duration: float = 0.0

    @property
    def speed_mb_sec(self) -> float:
        """
        Calculate transfer speed in MB/s.

        Returns
        -------
        float
            Transfer speed in megabytes per second
        """
        if self.duration > 0:
            return (self.bytes_read / (1024 * 1024)) / self.duration
        return 0.0
