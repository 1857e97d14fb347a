"""
Fan-out file copier: reads a source file once and writes every chunk to all
destinations.
"""

import hashlib
import logging
import os
import stat
import time
from collections.abc import Callable
from typing import BinaryIO

import xxhash

from .errors import CopyError, ErrorKind, ErrorPolicy
from .models import CopyConfig, CopyEvent, EventType, FileCopyResult, RunStatistics

logger = logging.getLogger(__name__)


class HashCalculator:
    """
    Incremental hash over the copied stream.

    Parameters
    ----------
    algorithm : str, default="xxh64be"
        Hash algorithm to use. Supported: xxh64be, md5, sha1, sha256
    """

    def __init__(self, algorithm: str = "xxh64be"):
        self.algorithm = algorithm.lower()
        if self.algorithm == "xxh64be":
            self._hasher = xxhash.xxh64()
        elif self.algorithm in ["md5", "sha1", "sha256"]:
            self._hasher = hashlib.new(self.algorithm)
        else:
            raise ValueError(f"Unsupported hash algorithm: {algorithm}")

    def update(self, data: bytes | memoryview) -> None:
        self._hasher.update(data)

    def hexdigest(self) -> str:
        return self._hasher.hexdigest()


class FanOutFileCopier:
    """
    Copy one regular file to any number of destinations in a single read pass.

    Every failure is handed to the error policy; in skip mode the copy of the
    current file stops and the caller moves on, in fatal mode the policy
    raises.

    Parameters
    ----------
    config : CopyConfig
        Run configuration (chunk size, preallocation, hashing)
    stats : RunStatistics
        Counters updated in place
    policy : ErrorPolicy
        Run-wide error policy
    progress : Callable[[CopyEvent], None] | None, default=None
        Receives start, per-chunk and completion events
    """

    def __init__(
        self,
        config: CopyConfig,
        stats: RunStatistics,
        policy: ErrorPolicy,
        progress: Callable[[CopyEvent], None] | None = None,
    ):
        self.config = config
        self.stats = stats
        self.policy = policy
        self.progress = progress

    def copy(
        self,
        source_path: str,
        source_mode: int,
        source_size: int,
        destination_paths: list[str],
    ) -> FileCopyResult:
        """
        Copy ``source_path`` to every path in ``destination_paths``.

        Parameters
        ----------
        source_path : str
            Regular file to read
        source_mode : int
            Permission bits for newly created destinations
        source_size : int
            Expected size, used for preallocation and progress
        destination_paths : list[str]
            Files to create or replace

        Returns
        -------
        FileCopyResult
            ``success`` is True only if every destination got every byte.
            Destinations opened before a failure are left in place.

        Raises
        ------
        FatalCopyError
            If an error occurs and the run is configured to abort on errors
        """
        start_time = time.time()
        result = FileCopyResult(
            source_path=source_path,
            source_size=source_size,
            destinations=list(destination_paths),
        )

        try:
            source = open(source_path, "rb", buffering=0)
        except OSError as e:
            self._fail(ErrorKind.SOURCE_UNREADABLE, source_path, "cannot read", e)
            return result

        self.stats.files_read += 1
        handles: list[tuple[str, BinaryIO]] = []
        try:
            try:
                source_st = os.fstat(source.fileno())
            except OSError as e:
                self._fail(ErrorKind.SOURCE_UNREADABLE, source_path, "cannot stat", e)
                return result

            for dest in destination_paths:
                if self._is_same_file(dest, source_st):
                    self._fail(
                        ErrorKind.DESTINATION_UNWRITABLE,
                        dest,
                        "refusing to overwrite",
                        "destination is the source file",
                    )
                    return result
                try:
                    handle = self._open_destination(dest, source_mode)
                except OSError as e:
                    self._fail(
                        ErrorKind.DESTINATION_UNWRITABLE,
                        dest,
                        "cannot create regular file",
                        e,
                    )
                    return result
                handles.append((dest, handle))

                if self.config.preallocate and not self._preallocate(
                    handle, dest, source_size
                ):
                    return result

            logger.info(
                f"Copying {source_path} to {len(handles)} destinations..."
            )
            self._advise_sequential(source, source_path)
            result.success = self._stream(source, handles, result)
        finally:
            result.duration = time.time() - start_time
            self._close_all([(source_path, source)] + handles)

        if result.success:
            self.stats.files_created += len(handles)
            logger.info(
                f"copy speed {result.bytes_read} bytes in {result.duration:.5f} sec "
                f"({result.speed_mb_sec:.1f} MB/sec)"
            )
            if result.source_hash:
                logger.info(
                    f"hash {self.config.hash_algorithm.upper()}:{result.source_hash}"
                )
        return result

    # ------------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------------

    def _fail(
        self, kind: ErrorKind, path: str, action: str, cause: OSError | str
    ) -> None:
        self.policy.report(CopyError(kind, path, action, cause))

    def _is_same_file(self, path: str, source_st: os.stat_result) -> bool:
        try:
            return os.path.samestat(os.lstat(path), source_st)
        except OSError:
            return False

    def _open_destination(self, path: str, mode: int) -> BinaryIO:
        """
        Create ``path`` afresh with ``mode``.

        An existing regular file or symlink is unlinked first, so its old
        permissions neither block the copy nor survive it. Other existing
        objects (devices, FIFOs) are opened for writing in place.
        """
        try:
            st = os.lstat(path)
        except FileNotFoundError:
            st = None

        if st is not None and (stat.S_ISREG(st.st_mode) or stat.S_ISLNK(st.st_mode)):
            os.unlink(path)
            st = None

        return open(
            path,
            "xb" if st is None else "wb",
            buffering=0,
            opener=lambda p, flags: os.open(p, flags, mode),
        )

    def _preallocate(self, handle: BinaryIO, path: str, size: int) -> bool:
        """
        Reserve ``size`` bytes for a destination.

        Returns
        -------
        bool
            False if the reservation failed and was reported
        """
        if size <= 0:
            return True
        if not hasattr(os, "posix_fallocate"):
            logger.debug(f"preallocation not supported on this platform: {path}")
            return True
        try:
            os.posix_fallocate(handle.fileno(), 0, size)
        except OSError as e:
            self._fail(
                ErrorKind.DESTINATION_UNWRITABLE,
                path,
                "cannot allocate space for",
                e,
            )
            return False
        return True

    def _advise_sequential(self, source: BinaryIO, path: str) -> None:
        if not hasattr(os, "posix_fadvise"):
            return
        try:
            os.posix_fadvise(source.fileno(), 0, 0, os.POSIX_FADV_SEQUENTIAL)
        except OSError as e:
            # Only a read-ahead hint; the copy goes on in skip mode
            self._fail(ErrorKind.SOURCE_UNREADABLE, path, "posix_fadvise on", e)

    def _write(self, handle: BinaryIO, data: memoryview) -> int:
        return handle.write(data) or 0

    def _stream(
        self,
        source: BinaryIO,
        handles: list[tuple[str, BinaryIO]],
        result: FileCopyResult,
    ) -> bool:
        """
        Run the read-once, write-many loop.

        Returns
        -------
        bool
            True if the source was read to EOF and every write was complete
        """
        hasher = (
            HashCalculator(self.config.hash_algorithm)
            if self.config.hash_algorithm
            else None
        )
        buffer = bytearray(self.config.chunk_size)
        view = memoryview(buffer)

        self._emit(EventType.FILE_START, result)

        while True:
            try:
                bytes_read = source.readinto(buffer)
            except OSError as e:
                self._fail(
                    ErrorKind.SOURCE_UNREADABLE, result.source_path, "error reading", e
                )
                return False
            if not bytes_read:
                break  # Source file ended

            chunk = view[:bytes_read]
            result.bytes_read += bytes_read
            self.stats.bytes_read += bytes_read
            if hasher:
                hasher.update(chunk)

            for dest, handle in handles:
                try:
                    bytes_written = self._write(handle, chunk)
                except OSError as e:
                    self._fail(
                        ErrorKind.DESTINATION_UNWRITABLE, dest, "error writing", e
                    )
                    return False
                self.stats.bytes_written += bytes_written
                if bytes_written != bytes_read:
                    self._fail(
                        ErrorKind.SHORT_WRITE,
                        dest,
                        "short write to",
                        f"wrote {bytes_written} of {bytes_read} bytes",
                    )
                    return False

            self._emit(EventType.FILE_PROGRESS, result)

        if self.config.preallocate and result.bytes_read < result.source_size:
            # Source shrank after it was stat'ed; drop the reserved tail
            for dest, handle in handles:
                try:
                    handle.truncate(result.bytes_read)
                except OSError as e:
                    self._fail(
                        ErrorKind.DESTINATION_UNWRITABLE, dest, "cannot truncate", e
                    )
                    return False

        if hasher:
            result.source_hash = hasher.hexdigest()

        self._emit(EventType.FILE_COMPLETE, result)
        return True

    def _emit(self, event_type: EventType, result: FileCopyResult) -> None:
        if self.progress is None:
            return
        self.progress(
            CopyEvent(
                type=event_type,
                path=result.source_path,
                bytes_processed=result.bytes_read,
                total_bytes=result.source_size,
                run_bytes_processed=self.stats.bytes_read,
                run_total_bytes=self.stats.total_bytes,
                files_done=self.stats.files_read,
                total_files=self.stats.total_files,
            )
        )

    def _close_all(self, handles: list[tuple[str, BinaryIO]]) -> None:
        failures = []
        for index, (path, handle) in enumerate(handles):
            try:
                handle.close()
            except OSError as e:
                # Index 0 is the source
                kind = (
                    ErrorKind.SOURCE_UNREADABLE
                    if index == 0
                    else ErrorKind.DESTINATION_UNWRITABLE
                )
                failures.append(CopyError(kind, path, "cannot close", e))
        for error in failures:
            self.policy.report(error)
