"""Mirror a file or directory tree onto another location.

``mirror(source, destination)`` makes *destination* match *source* using
clear-then-copy: the destination is first pruned of everything except
excluded entries (``.git`` and config ``exclude`` patterns), then
repopulated from the source.  Files that exist only at the destination
are lost.  Both phases are public (:func:`prune`, :func:`populate`).

Permission errors are retried once after calling an injected
``escalate(path, operation)`` collaborator (see
:func:`dotsync._privilege.sudo_reexec`); any other ``OSError`` aborts the
mirror with :class:`~dotsync.exceptions.MirrorError`.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ._exclude import ExcludeFilter
from ._types import Diagnostic, ItemKind
from .exceptions import InvalidKindError, KindMismatchError, MirrorError, SourceMissingError

Escalate = Callable[[str, str], None]


@dataclass
class MirrorReport:
    """Result of a mirror operation.

    Attributes:
        source: Source root.
        destination: Destination root.
        copied: Destination paths of copied files.
        removed: Destination paths removed while pruning.
        warnings: Skipped symlinks and special files.
        escalations: Number of times the escalate collaborator was called.
    """
    source: str
    destination: str
    copied: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    warnings: list[Diagnostic] = field(default_factory=list)
    escalations: int = 0


class _Mirror:
    """One mirror operation's settings and report."""

    def __init__(self, report: MirrorReport, exclude: ExcludeFilter | None,
                 escalate: Escalate | None) -> None:
        self.report = report
        self.exclude = exclude if exclude is not None else ExcludeFilter()
        self.escalate = escalate

    def run(self, operation: str, path: Path, fn, *args):
        """Call ``fn(*args)``, retrying once after escalation on EACCES/EPERM."""
        try:
            return fn(*args)
        except PermissionError as exc:
            if self.escalate is None:
                raise MirrorError(path, operation, exc) from exc
            first = exc
        except OSError as exc:
            raise MirrorError(path, operation, exc) from exc

        try:
            self.escalate(str(path), operation)
            self.report.escalations += 1
            return fn(*args)
        except OSError as exc:
            raise MirrorError(path, operation, exc) from first

    # ------------------------------------------------------------------
    # Primitive steps
    # ------------------------------------------------------------------

    def makedirs(self, path: Path) -> None:
        self.run("mkdir", path, os.makedirs, path, 0o777, True)

    def remove(self, path: Path) -> None:
        if path.is_dir() and not path.is_symlink():
            self.run("remove", path, shutil.rmtree, path)
        else:
            self.run("remove", path, os.unlink, path)
        self.report.removed.append(str(path))

    def copy_file(self, src: Path, dst: Path) -> None:
        self.run("copy", dst, shutil.copy2, src, dst)
        self.report.copied.append(str(dst))

    def warn(self, path: Path, message: str) -> None:
        self.report.warnings.append(Diagnostic(path=str(path), message=message))

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def prune(self, dest: Path, rel: str = "") -> bool:
        """Remove all non-excluded entries under *dest*.

        Returns ``True`` if *dest* still holds excluded entries.
        """
        try:
            with os.scandir(dest) as it:
                entries = list(it)
        except OSError as exc:
            raise MirrorError(dest, "list", exc) from exc

        kept = False
        for entry in entries:
            child_rel = f"{rel}/{entry.name}" if rel else entry.name
            child = Path(entry.path)
            is_dir = entry.is_dir(follow_symlinks=False)
            if self.exclude.is_excluded(child_rel, is_dir=is_dir):
                kept = True
                continue
            if is_dir and self.prune(child, child_rel):
                kept = True
                continue
            self.remove(child)
        return kept

    def populate(self, src: Path, dest: Path, rel: str = "") -> None:
        self.makedirs(dest)
        try:
            with os.scandir(src) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            raise MirrorError(src, "list", exc) from exc

        for entry in entries:
            child_rel = f"{rel}/{entry.name}" if rel else entry.name
            child = Path(entry.path)
            target = dest / entry.name
            is_link = entry.is_symlink()
            is_dir = not is_link and entry.is_dir(follow_symlinks=False)
            if self.exclude.is_excluded(child_rel, is_dir=is_dir):
                continue
            if is_link:
                self.warn(child, "symlink skipped")
            elif is_dir:
                if (target.exists() or target.is_symlink()) and not target.is_dir():
                    self.remove(target)
                self.populate(child, target, child_rel)
            elif entry.is_file(follow_symlinks=False):
                if target.is_dir() and not target.is_symlink():
                    self.remove(target)
                self.copy_file(child, target)
            else:
                self.warn(child, "special file skipped")


def _clear_for_directory(m: _Mirror, destination: Path) -> None:
    """Make *destination* an existing directory with only excluded entries left."""
    if destination.is_symlink() or (destination.exists() and not destination.is_dir()):
        m.remove(destination)
    if destination.is_dir():
        m.prune(destination)
    else:
        m.makedirs(destination)


def prune(destination: str | os.PathLike, *, exclude: ExcludeFilter | None = None,
          escalate: Escalate | None = None) -> MirrorReport:
    """Clear *destination* for a fresh copy.

    Everything except excluded entries is removed; *destination* (and its
    ancestors) exist afterwards as a directory.
    """
    dest = Path(destination)
    report = MirrorReport(source="", destination=str(dest))
    _clear_for_directory(_Mirror(report, exclude, escalate), dest)
    return report


def populate(source: str | os.PathLike, destination: str | os.PathLike, *,
             exclude: ExcludeFilter | None = None,
             escalate: Escalate | None = None) -> MirrorReport:
    """Copy the tree at *source* into *destination* without removing anything."""
    src = Path(source)
    dest = Path(destination)
    live = ItemKind.of(src)
    if live is None:
        raise SourceMissingError(src)
    if live is not ItemKind.DIRECTORY:
        raise InvalidKindError(src, "not a directory")
    report = MirrorReport(source=str(src), destination=str(dest))
    _Mirror(report, exclude, escalate).populate(src, dest)
    return report


def mirror(
    source: str | os.PathLike,
    destination: str | os.PathLike,
    *,
    kind: ItemKind | None = None,
    exclude: ExcludeFilter | None = None,
    escalate: Escalate | None = None,
) -> MirrorReport:
    """Make *destination* match *source*.

    *kind* is the cached kind of the tracked item: ``FILE`` copies exactly
    one file; ``DIRECTORY`` or ``None`` inspects *source* on disk.

    Raises :class:`SourceMissingError` when *source* does not exist,
    :class:`InvalidKindError` when it is neither a file nor a directory
    (or contradicts *kind*), and :class:`MirrorError` on I/O failure.
    """
    src = Path(source)
    dest = Path(destination)
    live = ItemKind.of(src)
    if live is None:
        raise SourceMissingError(src)
    if kind is ItemKind.FILE and live is not ItemKind.FILE:
        raise KindMismatchError(src)

    report = MirrorReport(source=str(src), destination=str(dest))
    m = _Mirror(report, exclude, escalate)

    if live is ItemKind.FILE:
        if dest.is_symlink() or dest.is_dir():
            m.remove(dest)
        m.makedirs(dest.parent)
        m.copy_file(src, dest)
        return report

    _clear_for_directory(m, dest)
    m.populate(src, dest)
    return report
