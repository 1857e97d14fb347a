"""
Mapping of source entry paths onto destination roots.

The walker reports nesting depth rather than a ready-made relative path, so the
fragment below the copy root is recovered by counting separators from the
right. This keeps the mapping independent of how many leading segments the
source path has.
"""

import os

from .models import TraversalEntry


def strip_trailing_separators(path: str) -> str:
    """
    Remove trailing separators without turning "/" into "".

    Parameters
    ----------
    path : str
        Path to normalize

    Returns
    -------
    str
        Path without trailing separators
    """
    stripped = path.rstrip(os.sep)
    return stripped if stripped else path[:1]


def relative_suffix(full_path: str, depth: int) -> str:
    """
    Return the part of ``full_path`` after its ``(depth + 1)``-th separator
    counted from the right.

    Parameters
    ----------
    full_path : str
        Path of a visited entry
    depth : int
        Number of directory levels to keep; -1 maps the copy root itself

    Returns
    -------
    str
        Relative fragment, never starting with a separator. Empty for
        ``depth == -1``; the whole path when it has too few separators.
    """
    if depth < -1:
        raise ValueError(f"Depth must be -1 or greater, got {depth}")
    if depth == -1:
        return ""

    count = 0
    pos = len(full_path)
    while pos > 0:
        pos -= 1
        if full_path[pos] == os.sep:
            count += 1
            if count == depth + 1:
                return full_path[pos + 1 :]

    return full_path.lstrip(os.sep)


def map_to_destination(root: str, suffix: str) -> str:
    """
    Join a destination root and a relative fragment with one separator.

    Parameters
    ----------
    root : str
        Destination root
    suffix : str
        Fragment from :func:`relative_suffix`

    Returns
    -------
    str
        ``root`` itself for an empty suffix, otherwise ``root/suffix``
    """
    if not suffix:
        return strip_trailing_separators(root)
    joined = root.rstrip(os.sep) + os.sep + suffix.lstrip(os.sep)
    return strip_trailing_separators(joined)


def map_destinations(entry: TraversalEntry, roots: list[str]) -> list[str]:
    """
    Compute the destination path of ``entry`` under every root.

    Parameters
    ----------
    entry : TraversalEntry
        Visited entry
    roots : list[str]
        Destination roots in configured order

    Returns
    -------
    list[str]
        One path per root, same order
    """
    # Depth 0 is the copy root, whose own name is replaced by each root
    suffix = relative_suffix(entry.path, entry.depth - 1)
    return [map_to_destination(root, suffix) for root in roots]


def resolve_destination_roots(
    source: str, roots: list[str] | tuple[str, ...], source_is_dir: bool
) -> list[str]:
    """
    Apply copy-into-directory semantics to the configured roots.

    A non-directory source copied onto an existing directory lands inside it
    under its own base name. Directory sources map onto the root itself.

    Parameters
    ----------
    source : str
        Normalized source path
    roots : list[str] | tuple[str, ...]
        Configured destination roots
    source_is_dir : bool
        Whether the source is a directory

    Returns
    -------
    list[str]
        Effective destination roots
    """
    if source_is_dir:
        return list(roots)

    name = os.path.basename(source)
    resolved = []
    for root in roots:
        if os.path.isdir(root):
            resolved.append(map_to_destination(root, name))
        else:
            resolved.append(root)
    return resolved
