"""
multicopy: copy a file or directory tree to multiple destinations in one pass.

The source is read once; every chunk is written to all destinations. File
modes and symbolic-link targets are preserved.
"""

__version__ = "2.0.0"
__author__ = "multicopy project"
__description__ = "Copy a file or directory tree to multiple destinations"

from .cli import main
from .copier import FanOutFileCopier, HashCalculator
from .errors import (
    CopyError,
    ErrorAction,
    ErrorKind,
    ErrorPolicy,
    FatalCopyError,
    MultiCopyError,
    PreflightConflictError,
)
from .models import (
    CopyConfig,
    CopyEvent,
    EntryKind,
    EventType,
    FileCopyResult,
    RunStatistics,
    TraversalEntry,
)
from .paths import map_destinations, map_to_destination, relative_suffix
from .replicator import TreeReplicator
from .walker import tally, walk

__all__ = [
    "CopyConfig",
    "CopyError",
    "CopyEvent",
    "EntryKind",
    "ErrorAction",
    "ErrorKind",
    "ErrorPolicy",
    "EventType",
    "FanOutFileCopier",
    "FatalCopyError",
    "FileCopyResult",
    "HashCalculator",
    "MultiCopyError",
    "PreflightConflictError",
    "RunStatistics",
    "TraversalEntry",
    "TreeReplicator",
    "main",
    "map_destinations",
    "map_to_destination",
    "relative_suffix",
    "tally",
    "walk",
]
