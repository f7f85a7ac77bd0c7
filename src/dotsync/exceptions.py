"""Exceptions for dotsync."""

from __future__ import annotations


class DotsyncError(Exception):
    """Base class for all dotsync errors."""


class ConfigError(DotsyncError):
    """Raised when the config file cannot be read, parsed, or updated."""


class InvalidKindError(DotsyncError):
    """Raised when a path is neither a regular file nor a directory."""

    def __init__(self, path, detail: str | None = None) -> None:
        self.path = str(path)
        msg = f"Not a regular file or directory: {self.path}"
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class KindMismatchError(InvalidKindError):
    """Raised when a config cached as a file is now a directory."""

    def __init__(self, path) -> None:
        self.path = str(path)
        DotsyncError.__init__(
            self,
            f"{self.path} is a directory but is recorded as a file; "
            "run 'dotsync clear-metadata' to accept the change",
        )


class SourceMissingError(DotsyncError, FileNotFoundError):
    """Raised when a mirror is requested from a source that does not exist."""

    def __init__(self, path) -> None:
        self.path = str(path)
        super().__init__(f"Source does not exist: {self.path}")


class DigestError(DotsyncError):
    """Raised when a file or directory cannot be read while digesting it.

    Attributes:
        path: The path that could not be read.
    """

    def __init__(self, path, error: OSError) -> None:
        self.path = str(path)
        self.error = error
        super().__init__(f"Cannot digest {self.path}: {error.strerror or error}")


class MirrorError(DotsyncError):
    """Raised when a mirror step fails.

    Attributes:
        path: The path the failing operation acted on.
        operation: Short name of the operation (``copy``, ``remove``, ...).
    """

    def __init__(self, path, operation: str, error: OSError) -> None:
        self.path = str(path)
        self.operation = operation
        self.error = error
        super().__init__(
            f"{operation} failed for {self.path}: {error.strerror or error}"
        )
