#!/usr/bin/env python3
"""
Tests for destination path mapping.
"""

import shutil
import sys
import tempfile
from pathlib import Path

import pytest

# Add src directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from multicopy import EntryKind, TraversalEntry
from multicopy.paths import (
    map_destinations,
    map_to_destination,
    relative_suffix,
    resolve_destination_roots,
    strip_trailing_separators,
)


@pytest.fixture
def path_test_dir():
    """Create and cleanup test directory for path resolution tests."""
    test_dir = tempfile.mkdtemp()
    yield Path(test_dir)
    shutil.rmtree(test_dir)


# ============================================================================
# relative_suffix
# ============================================================================


def test_relative_suffix_root_is_empty() -> None:
    """Test that depth -1 maps the copy root itself."""
    assert relative_suffix("/data/src", -1) == ""


def test_relative_suffix_direct_child() -> None:
    """Test stripping the copy root's own name from a child."""
    assert relative_suffix("/data/src/a", 0) == "a"


def test_relative_suffix_nested() -> None:
    """Test keeping every level below the copy root."""
    assert relative_suffix("/data/src/a/b/f.txt", 2) == "a/b/f.txt"


def test_relative_suffix_relative_source() -> None:
    """Test mapping entries of a relative source path."""
    assert relative_suffix("src/a/f.txt", 1) == "a/f.txt"
    assert relative_suffix("./a", 0) == "a"


def test_relative_suffix_too_few_separators() -> None:
    """Test that the whole path is returned when it runs out of separators."""
    assert relative_suffix("a/b", 5) == "a/b"
    assert relative_suffix("/a/b", 5) == "a/b"


def test_relative_suffix_rejects_invalid_depth() -> None:
    """Test error handling for depths below -1."""
    with pytest.raises(ValueError):
        relative_suffix("/a/b", -2)


@pytest.mark.parametrize(
    "path",
    ["/src/a/b/c.txt", "src/a/b/c.txt", "/a", "x/y", "/deep/er/and/deeper/file"],
)
def test_suffix_maps_to_strict_descendant(path) -> None:
    """Test that every non-empty suffix lands strictly below the root."""
    root = "/mnt/backup"
    for depth in range(path.count("/") + 2):
        suffix = relative_suffix(path, depth)
        assert not suffix.startswith("/")
        mapped = map_to_destination(root, suffix)
        if suffix:
            assert mapped.startswith(root + "/")
        else:
            assert mapped == root


# ============================================================================
# map_to_destination / map_destinations
# ============================================================================


def test_map_to_destination_joins_with_one_separator() -> None:
    """Test joining roots and suffixes."""
    assert map_to_destination("/dst", "a/f.txt") == "/dst/a/f.txt"
    assert map_to_destination("/dst/", "a") == "/dst/a"
    assert map_to_destination("/dst", "a/") == "/dst/a"
    assert map_to_destination("/", "a") == "/a"


def test_map_to_destination_empty_suffix() -> None:
    """Test that an empty suffix yields the root itself."""
    assert map_to_destination("/dst", "") == "/dst"
    assert map_to_destination("/dst//", "") == "/dst"
    assert map_to_destination("/", "") == "/"


def test_map_destinations_one_path_per_root() -> None:
    """Test mapping a nested entry under several roots."""
    entry = TraversalEntry(path="/data/src/a/f.txt", kind=EntryKind.FILE, depth=2)

    destinations = map_destinations(entry, ["/d1", "/d2", "/d3/"])

    assert destinations == ["/d1/a/f.txt", "/d2/a/f.txt", "/d3/a/f.txt"]


def test_map_destinations_copy_root() -> None:
    """Test that the copy root maps onto the roots unmodified."""
    entry = TraversalEntry(path="/data/src", kind=EntryKind.DIRECTORY, depth=0)

    assert map_destinations(entry, ["/d1", "/d2"]) == ["/d1", "/d2"]


def test_strip_trailing_separators() -> None:
    """Test trailing separator removal."""
    assert strip_trailing_separators("/a/b///") == "/a/b"
    assert strip_trailing_separators("a") == "a"
    assert strip_trailing_separators("///") == "/"


# ============================================================================
# resolve_destination_roots
# ============================================================================


def test_file_into_existing_directory(path_test_dir) -> None:
    """Test copy-into-directory semantics for a file source."""
    existing = path_test_dir / "backup"
    existing.mkdir()
    missing = path_test_dir / "new.txt"

    roots = resolve_destination_roots(
        "/data/clip.mov", [str(existing), str(missing)], source_is_dir=False
    )

    assert roots == [str(existing / "clip.mov"), str(missing)]


def test_directory_source_keeps_roots(path_test_dir) -> None:
    """Test that directory sources map onto the roots themselves."""
    existing = path_test_dir / "backup"
    existing.mkdir()

    roots = resolve_destination_roots("/data/src", [str(existing)], source_is_dir=True)

    assert roots == [str(existing)]
