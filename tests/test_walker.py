#!/usr/bin/env python3
"""
Tests for the physical tree walker.
"""

import errno
import os
import shutil
import sys
import tempfile
from pathlib import Path
from unittest.mock import patch

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from multicopy import EntryKind, RunStatistics, tally, walk


@pytest.fixture
def tree():
    """Create a small source tree: a/f.txt, a/link -> f.txt, b.txt, empty/."""
    test_dir = tempfile.mkdtemp()
    root = Path(test_dir) / "src"
    (root / "a").mkdir(parents=True)
    (root / "a" / "f.txt").write_bytes(b"hello")
    os.symlink("f.txt", root / "a" / "link")
    (root / "b.txt").write_bytes(b"abc")
    (root / "empty").mkdir()
    yield root
    shutil.rmtree(test_dir)


def _summary(root: Path):
    return [
        (os.path.relpath(e.path, root), e.kind, e.depth) for e in walk(str(root))
    ]


def test_walk_preorder_sorted(tree) -> None:
    """Test that directories precede their contents and siblings are sorted."""
    assert _summary(tree) == [
        (".", EntryKind.DIRECTORY, 0),
        ("a", EntryKind.DIRECTORY, 1),
        ("a/f.txt", EntryKind.FILE, 2),
        ("a/link", EntryKind.SYMLINK, 2),
        ("b.txt", EntryKind.FILE, 1),
        ("empty", EntryKind.DIRECTORY, 1),
    ]


def test_walk_reports_size_and_mode(tree) -> None:
    """Test that files carry their size and permission bits."""
    os.chmod(tree / "b.txt", 0o640)

    entries = {e.path: e for e in walk(str(tree))}
    entry = entries[str(tree / "b.txt")]

    assert entry.size == 3
    assert entry.mode == 0o640


def test_walk_does_not_follow_directory_symlinks(tree) -> None:
    """Test that a symlink to a directory is a leaf."""
    os.symlink("a", tree / "dirlink")

    entries = _summary(tree)

    assert ("dirlink", EntryKind.SYMLINK, 1) in entries
    assert not any(path.startswith("dirlink/") for path, _, _ in entries)


def test_walk_single_file(tree) -> None:
    """Test walking a regular file source."""
    entries = list(walk(str(tree / "b.txt")))

    assert len(entries) == 1
    assert entries[0].kind == EntryKind.FILE
    assert entries[0].depth == 0
    assert entries[0].size == 3


def test_walk_missing_source(tree) -> None:
    """Test that a missing source is reported as unstatable."""
    entries = list(walk(str(tree / "missing")))

    assert len(entries) == 1
    assert entries[0].kind == EntryKind.UNSTATABLE
    assert isinstance(entries[0].error, FileNotFoundError)


def test_walk_unreadable_directory(tree) -> None:
    """Test that an unlistable directory is reported and not descended."""
    real_scandir = os.scandir
    blocked = str(tree / "a")

    def fake_scandir(path):
        if os.fspath(path) == blocked:
            raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), path)
        return real_scandir(path)

    with patch("multicopy.walker.os.scandir", side_effect=fake_scandir):
        entries = _summary(tree)

    assert ("a", EntryKind.UNREADABLE_DIRECTORY, 1) in entries
    assert not any(path.startswith("a/") for path, _, _ in entries)
    # Siblings are still visited
    assert ("b.txt", EntryKind.FILE, 1) in entries


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="mkfifo not available")
def test_walk_special_file(tree) -> None:
    """Test that FIFOs are reported as special entries."""
    os.mkfifo(tree / "pipe")

    assert ("pipe", EntryKind.SPECIAL, 1) in _summary(tree)


def test_tally_counts_regular_files(tree) -> None:
    """Test the first pass of two-pass mode."""
    stats = RunStatistics()

    tally(str(tree), stats)

    assert stats.total_files == 2
    assert stats.total_bytes == 8
    # Nothing else is touched
    assert stats.files_read == 0
    assert stats.errors == 0
