"""
Error kinds, exceptions and the run-wide error policy.
"""

import logging
from enum import Enum

from .models import RunStatistics

logger = logging.getLogger(__name__)


class ErrorKind(Enum):
    """
    Classification of every failure the engine can report.

    Attributes
    ----------
    SOURCE_UNREADABLE : str
        Open, stat or read failure on the source side
    DESTINATION_UNWRITABLE : str
        Create, open, write or preallocate failure on a destination
    SHORT_WRITE : str
        Fewer bytes written than requested
    DIRECTORY_CONFLICT : str
        A non-directory blocks a directory and could not be replaced
    LINK_FAILURE : str
        readlink or symlink creation failure
    TRAVERSAL_FAILURE : str
        Directory cannot be listed or entry cannot be stat'ed
    PREFLIGHT_CONFLICT : str
        Destination root exists and force was not requested
    """

    SOURCE_UNREADABLE = "source_unreadable"
    DESTINATION_UNWRITABLE = "destination_unwritable"
    SHORT_WRITE = "short_write"
    DIRECTORY_CONFLICT = "directory_conflict"
    LINK_FAILURE = "link_failure"
    TRAVERSAL_FAILURE = "traversal_failure"
    PREFLIGHT_CONFLICT = "preflight_conflict"


class ErrorAction(Enum):
    """What the run does after an error has been reported."""

    ABORT = "abort"
    SKIP = "skip"


class MultiCopyError(Exception):
    """Base class for multicopy errors."""


class CopyError(MultiCopyError):
    """
    A single reported failure.

    Parameters
    ----------
    kind : ErrorKind
        Classification of the failure
    path : str
        Offending path
    action : str
        What was being attempted, e.g. "cannot create regular file"
    cause : OSError | str | None, default=None
        Underlying system error or explanation
    """

    def __init__(
        self,
        kind: ErrorKind,
        path: str,
        action: str,
        cause: OSError | str | None = None,
    ):
        self.kind = kind
        self.path = path
        self.action = action
        self.cause = cause
        super().__init__(str(self))

    @property
    def reason(self) -> str:
        if isinstance(self.cause, OSError):
            return self.cause.strerror or str(self.cause)
        return self.cause or ""

    def __str__(self) -> str:
        message = f"{self.action} '{self.path}'"
        if self.reason:
            message += f": {self.reason}"
        return message


class FatalCopyError(MultiCopyError):
    """Raised when the policy decides a reported error ends the run."""

    def __init__(self, error: CopyError):
        self.error = error
        super().__init__(f"aborting after error: {error}")


class PreflightConflictError(MultiCopyError):
    """One or more destination roots already exist and force is off."""

    def __init__(self, paths: list[str]):
        self.paths = paths
        super().__init__(
            "aborting copy, use '-f' to overwrite existing files: "
            + ", ".join(paths)
        )


class ErrorPolicy:
    """
    Run-wide fatal-or-continue decision.

    Parameters
    ----------
    fatal_on_error : bool
        Abort on the first error instead of skipping the entry
    stats : RunStatistics
        Counters of the current run; ``errors`` is incremented on every report
    """

    def __init__(self, fatal_on_error: bool, stats: RunStatistics):
        self.fatal_on_error = fatal_on_error
        self.stats = stats

    def decide(self, kind: ErrorKind) -> ErrorAction:
        """
        Decide what happens after an error of the given kind.

        Parameters
        ----------
        kind : ErrorKind
            Classification of the failure

        Returns
        -------
        ErrorAction
            ABORT for preflight conflicts or in fatal mode, SKIP otherwise
        """
        if kind is ErrorKind.PREFLIGHT_CONFLICT or self.fatal_on_error:
            return ErrorAction.ABORT
        return ErrorAction.SKIP

    def report(self, error: CopyError) -> ErrorAction:
        """
        Count and log an error, then apply the decision.

        Parameters
        ----------
        error : CopyError
            The failure to report

        Returns
        -------
        ErrorAction
            Always SKIP; ABORT is raised instead of returned

        Raises
        ------
        FatalCopyError
            If the decision for this error is ABORT
        """
        self.stats.errors += 1
        logger.error(str(error))
        action = self.decide(error.kind)
        if action is ErrorAction.ABORT:
            raise FatalCopyError(error) from error
        return action
