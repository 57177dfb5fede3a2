"""Errors raised by the issue store, the brief reconciler and the CLI.

Store operations catch these and hand them back inside result models, so a
caller can branch on the error type without try/except around every call.
"""

from pathlib import Path


class IssueMakeError(Exception):
    """Base error for issue-make."""

    pass


class NotFoundError(IssueMakeError):
    """Identifier resolved to no issue in stash or doing."""

    def __init__(self, identifier: str, message: str | None = None) -> None:
        self.identifier = identifier
        super().__init__(message or f'Issue "{identifier}" not found in stash or doing')


class AlreadyInProgressError(IssueMakeError):
    """Open was requested for an issue that is already in doing."""

    def __init__(self, number: int, title: str) -> None:
        self.number = number
        self.title = title
        super().__init__(f"Issue #{number} ({title}) is already in progress; close it or open another issue")


class NotInProgressError(IssueMakeError):
    """Close was requested for an issue that was never opened."""

    def __init__(self, number: int, stage: str) -> None:
        self.number = number
        self.stage = stage
        super().__init__(f"Issue #{number} is in {stage}, not doing; open it before closing")


class SolutionMissingError(IssueMakeError):
    """Close was requested before the solution file was written."""

    def __init__(self, solution_path: Path) -> None:
        self.path = solution_path
        super().__init__(
            f"Solution file not found: {solution_path}. "
            "Create .issues/solution.md (or ask your agent to write it) before closing."
        )


class InvalidMetadataError(IssueMakeError):
    """Frontmatter is present but malformed, or declares an unknown type."""

    def __init__(self, path: Path | None, reason: str) -> None:
        self.path = path
        self.reason = reason
        where = f" in {path}" if path is not None else ""
        super().__init__(f"Invalid issue metadata{where}: {reason}")


class StorageError(IssueMakeError):
    """Wraps an OSError from mkdir, read, write, rename or unlink."""

    def __init__(self, action: str, path: Path, cause: OSError | None = None) -> None:
        self.action = action
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Failed to {action} {path}{detail}")


class BriefError(IssueMakeError):
    """The collaborator brief could not be read or written.

    Raised after a store transition may already have committed, so it is
    kept apart from StorageError.
    """

    def __init__(self, path: Path, message: str) -> None:
        self.path = path
        super().__init__(f"Brief {path}: {message}")
