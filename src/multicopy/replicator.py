"""
Tree replication: preflight checks, per-entry dispatch and the directory and
symlink replicators.

``TreeReplicator`` consumes the walker's entries and replicates each one under
every destination root. Regular files are handed to ``FanOutFileCopier``.
"""

import logging
import os
import stat
from collections.abc import Callable

from .copier import FanOutFileCopier
from .errors import (
    CopyError,
    ErrorKind,
    ErrorPolicy,
    FatalCopyError,
    PreflightConflictError,
)
from .models import CopyConfig, CopyEvent, EntryKind, RunStatistics, TraversalEntry
from .paths import map_destinations, resolve_destination_roots
from .walker import tally, walk

logger = logging.getLogger(__name__)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


class TreeReplicator:
    """
    Replicate a file or directory tree to multiple destinations.

    Parameters
    ----------
    config : CopyConfig
        Run configuration
    stats : RunStatistics | None, default=None
        Counters for the run; a fresh instance is created if omitted
    progress : Callable[[CopyEvent], None] | None, default=None
        Progress surface handed to the file copier
    """

    def __init__(
        self,
        config: CopyConfig,
        stats: RunStatistics | None = None,
        progress: Callable[[CopyEvent], None] | None = None,
    ):
        self.config = config
        self.stats = stats if stats is not None else RunStatistics()
        self.policy = ErrorPolicy(config.fatal_on_error, self.stats)
        self.copier = FanOutFileCopier(config, self.stats, self.policy, progress)
        self.destination_roots: list[str] = list(config.destinations)
        # Directories created writable for their subtree, tightened at the end
        self._deferred_modes: list[tuple[str, int]] = []
        self._umask = _current_umask()

    def run(self) -> bool:
        """
        Execute the whole run.

        Returns
        -------
        bool
            True if traversal completed, False if it was aborted by the error
            policy. Skipped errors do not make the run fail.

        Raises
        ------
        CopyError
            If the source cannot be stat'ed or is not a file, directory or link
        PreflightConflictError
            If a destination root exists and force is not set
        ValueError
            If an effective destination root is the source itself
        """
        source_st = self._stat_source()
        self.destination_roots = resolve_destination_roots(
            self.config.source,
            self.config.destinations,
            stat.S_ISDIR(source_st.st_mode),
        )
        self._reject_source_as_destination(source_st)
        self.preflight()

        if self.config.two_pass:
            tally(self.config.source, self.stats)
            logger.info(
                f"Found {self.stats.total_files} files "
                f"({self.stats.total_bytes} bytes) to copy"
            )

        try:
            for entry in walk(self.config.source):
                self.replicate(entry)
        except FatalCopyError:
            logger.error("aborting copy on first error (--fatal-errors)")
            return False
        finally:
            self._restore_directory_modes()

        if self.config.verbose:
            logger.info(f"Created {len(self.destination_roots)} destinations:")
            for root in self.destination_roots:
                logger.info(f"\t{root}")
        return True

    def preflight(self) -> None:
        """
        Refuse to touch existing destination roots unless forced.

        Raises
        ------
        PreflightConflictError
            Listing every destination root that already exists
        """
        if self.config.force:
            return

        existing = [root for root in self.destination_roots if os.path.lexists(root)]
        for path in existing:
            self.stats.errors += 1
            error = CopyError(
                ErrorKind.PREFLIGHT_CONFLICT, path, "destination already exists"
            )
            logger.error(str(error))
        if existing:
            raise PreflightConflictError(existing)

    def replicate(self, entry: TraversalEntry) -> bool:
        """
        Dispatch one traversal entry by kind.

        Parameters
        ----------
        entry : TraversalEntry
            Entry produced by the walker

        Returns
        -------
        bool
            True if the entry was replicated to every destination
        """
        if entry.kind is EntryKind.DIRECTORY:
            return self.replicate_directory(entry)
        elif entry.kind is EntryKind.FILE:
            return self.replicate_file(entry)
        elif entry.kind is EntryKind.SYMLINK:
            return self.replicate_symlink(entry)
        elif entry.kind is EntryKind.UNREADABLE_DIRECTORY:
            self._fail(
                ErrorKind.TRAVERSAL_FAILURE,
                entry.path,
                "cannot read directory",
                entry.error,
            )
        elif entry.kind is EntryKind.UNSTATABLE:
            self._fail(
                ErrorKind.TRAVERSAL_FAILURE, entry.path, "cannot stat", entry.error
            )
        else:
            self._fail(
                ErrorKind.SOURCE_UNREADABLE,
                entry.path,
                "skipping",
                "not a regular file, directory or symbolic link",
            )
        return False

    def replicate_directory(self, entry: TraversalEntry) -> bool:
        """Create or reconcile the directory under every destination root."""
        self.stats.dirs_read += 1
        for path in map_destinations(entry, self.destination_roots):
            if not self._make_directory(path, entry.mode):
                return False
        return True

    def replicate_file(self, entry: TraversalEntry) -> bool:
        """Copy a regular file to its path under every destination root."""
        destinations = map_destinations(entry, self.destination_roots)
        result = self.copier.copy(entry.path, entry.mode, entry.size, destinations)
        return result.success

    def replicate_symlink(self, entry: TraversalEntry) -> bool:
        """
        Recreate a symbolic link under every destination root.

        The target text is copied verbatim and never resolved. Whatever
        occupies the destination path is removed first.
        """
        try:
            target = os.readlink(entry.path)
        except OSError as e:
            self._fail(ErrorKind.LINK_FAILURE, entry.path, "cannot read link", e)
            return False
        self.stats.symlinks_read += 1

        for path in map_destinations(entry, self.destination_roots):
            try:
                os.unlink(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                self._fail(ErrorKind.LINK_FAILURE, path, "cannot remove", e)
                return False

            try:
                os.symlink(target, path)
            except OSError as e:
                self._fail(
                    ErrorKind.LINK_FAILURE, path, "cannot create symbolic link", e
                )
                return False

            self.stats.symlinks_created += 1
            logger.info(f"Linked {path} -> {target}")
        return True

    # ------------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------------

    def _fail(
        self,
        kind: ErrorKind,
        path: str,
        action: str,
        cause: OSError | str | None,
    ) -> None:
        self.policy.report(CopyError(kind, path, action, cause))

    def _stat_source(self) -> os.stat_result:
        source = self.config.source
        try:
            st = os.lstat(source)
        except OSError as e:
            self.stats.errors += 1
            raise CopyError(ErrorKind.SOURCE_UNREADABLE, source, "cannot stat", e)

        mode = st.st_mode
        if not (stat.S_ISREG(mode) or stat.S_ISDIR(mode) or stat.S_ISLNK(mode)):
            self.stats.errors += 1
            raise CopyError(
                ErrorKind.SOURCE_UNREADABLE,
                source,
                "cannot copy",
                "not a regular file, directory or symbolic link",
            )
        return st

    def _reject_source_as_destination(self, source_st: os.stat_result) -> None:
        follow = stat.S_ISDIR(source_st.st_mode)
        for root in self.destination_roots:
            try:
                root_st = os.stat(root) if follow else os.lstat(root)
            except OSError:
                continue
            if os.path.samestat(root_st, source_st):
                raise ValueError(f"Destination is the same as the source: {root}")

    def _defer_mode(self, path: str, mode: int) -> None:
        if (mode & stat.S_IRWXU) != stat.S_IRWXU:
            self._deferred_modes.append((path, mode))

    def _restore_directory_modes(self) -> None:
        # Deepest first, so a locked parent never hides a child
        for path, mode in reversed(self._deferred_modes):
            try:
                os.chmod(path, mode)
            except OSError as e:
                self.stats.errors += 1
                error = CopyError(
                    ErrorKind.DESTINATION_UNWRITABLE, path, "cannot set mode of", e
                )
                logger.error(str(error))
        self._deferred_modes.clear()

    def _make_directory(self, path: str, mode: int) -> bool:
        try:
            os.mkdir(path, mode | stat.S_IRWXU)
        except FileExistsError:
            return self._reconcile_directory(path, mode)
        except OSError as e:
            self._fail(
                ErrorKind.DESTINATION_UNWRITABLE, path, "failed creating directory", e
            )
            return False

        self.stats.dirs_created += 1
        self._defer_mode(path, mode & ~self._umask)
        logger.info(f"Created directory {path}")
        return True

    def _reconcile_directory(self, path: str, mode: int) -> bool:
        try:
            st = os.lstat(path)
        except OSError as e:
            self._fail(ErrorKind.DESTINATION_UNWRITABLE, path, "cannot stat", e)
            return False

        if stat.S_ISDIR(st.st_mode):
            logger.debug(f"Directory already exists {path}")
            existing_mode = stat.S_IMODE(st.st_mode)
            if (existing_mode & stat.S_IRWXU) != stat.S_IRWXU:
                try:
                    os.chmod(path, existing_mode | stat.S_IRWXU)
                except OSError as e:
                    self._fail(
                        ErrorKind.DESTINATION_UNWRITABLE, path, "cannot set mode of", e
                    )
                    return False
                self._defer_mode(path, existing_mode)
            return True

        # A file or link is in the way: remove it and retry once
        try:
            os.unlink(path)
            os.mkdir(path, mode | stat.S_IRWXU)
        except OSError as e:
            self._fail(
                ErrorKind.DIRECTORY_CONFLICT,
                path,
                "cannot mkdir, path exists, but it is not a directory",
                e,
            )
            return False

        self._defer_mode(path, mode & ~self._umask)
        self.stats.dirs_created += 1
        logger.info(f"Replaced non-directory with directory {path}")
        return True
