"""Data types shared by the digest and mirror engines."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from enum import Enum

from .exceptions import InvalidKindError


class ItemKind(str, Enum):
    """Cached type of a tracked item: ``FILE`` or ``DIRECTORY``."""
    FILE = "file"
    DIRECTORY = "dir"

    def __str__(self) -> str:          # noqa: D105
        return self.value

    @classmethod
    def of(cls, path: str | os.PathLike) -> ItemKind | None:
        """Return the live kind of *path* (following symlinks).

        Returns ``None`` when *path* does not exist.  Raises
        :class:`InvalidKindError` for sockets, FIFOs, and device nodes.
        """
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return None
        if stat.S_ISDIR(st.st_mode):
            return cls.DIRECTORY
        if stat.S_ISREG(st.st_mode):
            return cls.FILE
        raise InvalidKindError(path)


@dataclass
class Diagnostic:
    """A non-fatal problem met while digesting or mirroring.

    Attributes:
        path: The path that was skipped or caused the warning.
        message: Human-readable description.
    """
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"
