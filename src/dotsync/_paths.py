"""Path normalization for paths read from the config file.

The engines only ever see absolute paths; everything user-facing
(``~``, a home directory copied over from another machine, relative
paths) is resolved here.
"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath


def _home(home: str | os.PathLike | None) -> Path:
    return Path(home) if home is not None else Path.home()


def normalize_path(raw: str | os.PathLike, home: str | os.PathLike | None = None) -> Path:
    """Return *raw* as an absolute path.

    ``~`` and ``~/x`` expand to *home* (default: the current user's home).
    ``/home/<user>/x`` is rewritten to ``<home>/x`` when ``<user>`` is a
    different user, so a config written on one machine works on another.
    Relative paths are resolved against the current directory.
    """
    text = os.fspath(raw)
    if not text:
        raise ValueError("Path must not be empty")
    home_dir = _home(home)

    if text == "~" or text.startswith("~/"):
        return home_dir / text[2:] if text != "~" else home_dir

    posix = PurePosixPath(text)
    if len(posix.parts) >= 3 and posix.parts[:2] == ("/", "home"):
        foreign_home = PurePosixPath(*posix.parts[:3])
        if str(foreign_home) != home_dir.as_posix():
            rest = posix.parts[3:]
            return home_dir.joinpath(*rest)

    path = Path(text)
    if not path.is_absolute():
        path = Path.cwd() / path
    return path


def contract_home(path: str | os.PathLike, home: str | os.PathLike | None = None) -> str:
    """Inverse of :func:`normalize_path` for display and storage.

    Paths under *home* are written back as ``~/...``; others are returned
    unchanged.
    """
    p = Path(path)
    home_dir = _home(home)
    try:
        rel = p.relative_to(home_dir)
    except ValueError:
        return str(p)
    rel_str = rel.as_posix()
    return "~" if rel_str == "." else f"~/{rel_str}"
