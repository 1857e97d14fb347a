"""
Physical depth-first traversal of a source tree.

Symbolic links are reported as leaves and never descended into. A directory
is listed completely before it is yielded, so no directory handle stays open
while the caller works on an entry.
"""

import os
import stat
from collections.abc import Iterator

from .models import EntryKind, RunStatistics, TraversalEntry


def _classify(path: str, st: os.stat_result, depth: int) -> TraversalEntry:
    mode = st.st_mode
    if stat.S_ISLNK(mode):
        kind = EntryKind.SYMLINK
    elif stat.S_ISREG(mode):
        kind = EntryKind.FILE
    else:
        kind = EntryKind.SPECIAL
    return TraversalEntry(
        path=path,
        kind=kind,
        depth=depth,
        size=st.st_size,
        mode=stat.S_IMODE(mode),
    )


def _walk_directory(
    path: str, st: os.stat_result, depth: int
) -> Iterator[TraversalEntry]:
    try:
        with os.scandir(path) as it:
            children = sorted(it, key=lambda e: e.name)
    except OSError as e:
        yield TraversalEntry(
            path=path,
            kind=EntryKind.UNREADABLE_DIRECTORY,
            depth=depth,
            mode=stat.S_IMODE(st.st_mode),
            error=e,
        )
        return

    yield TraversalEntry(
        path=path,
        kind=EntryKind.DIRECTORY,
        depth=depth,
        size=st.st_size,
        mode=stat.S_IMODE(st.st_mode),
    )

    for child in children:
        try:
            child_st = child.stat(follow_symlinks=False)
        except OSError as e:
            yield TraversalEntry(
                path=child.path, kind=EntryKind.UNSTATABLE, depth=depth + 1, error=e
            )
            continue

        if stat.S_ISDIR(child_st.st_mode):
            yield from _walk_directory(child.path, child_st, depth + 1)
        else:
            yield _classify(child.path, child_st, depth + 1)


def walk(source: str) -> Iterator[TraversalEntry]:
    """
    Visit ``source`` and, if it is a directory, everything below it.

    Parameters
    ----------
    source : str
        Copy root; visited at depth 0

    Yields
    ------
    TraversalEntry
        Every visited node, directories before their contents, siblings in
        name order
    """
    try:
        st = os.lstat(source)
    except OSError as e:
        yield TraversalEntry(path=source, kind=EntryKind.UNSTATABLE, depth=0, error=e)
        return

    if stat.S_ISDIR(st.st_mode):
        yield from _walk_directory(source, st, 0)
    else:
        yield _classify(source, st, 0)


def tally(source: str, stats: RunStatistics) -> None:
    """
    First pass of two-pass mode: total the regular files below ``source``.

    Parameters
    ----------
    source : str
        Copy root
    stats : RunStatistics
        Receives ``total_files`` and ``total_bytes``
    """
    for entry in walk(source):
        if entry.kind is EntryKind.FILE:
            stats.total_files += 1
            stats.total_bytes += entry.size
