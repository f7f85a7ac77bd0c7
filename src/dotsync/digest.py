"""Content digests for change detection.

A digest is a structural (Merkle) hash of a file or directory subtree:

* a file hashes to ``H(content)``;
* a directory folds its children's hashes, sorted by entry name,
  pairwise with ``H(left + right)`` (an odd last hash is paired with
  itself) until one hash remains; an empty directory hashes to ``H(b"")``;
* with ``hash_names`` on, every node below the root hashes to
  ``H(name + node_hash)`` so renames change the digest.

The root's own name is never mixed in: a tree and its copy under a
different top-level name have the same digest.

Digests are hex strings.  A path that does not exist has the empty
digest ``""``.
"""

from __future__ import annotations

import hashlib
import os
import stat
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from ._exclude import ExcludeFilter
from ._paths import normalize_path
from ._types import Diagnostic, ItemKind
from .exceptions import DigestError, InvalidKindError

if TYPE_CHECKING:
    from .config import TrackedItem

EMPTY_DIGEST = ""

_HASH_CHUNK_SIZE = 65536


def _new_hasher(algorithm: str):
    try:
        return hashlib.new(algorithm)
    except ValueError:
        raise ValueError(f"Unsupported digest algorithm: {algorithm}") from None


def merkle_fold(hashes: Sequence[bytes], algorithm: str) -> bytes:
    """Fold *hashes* pairwise into a single hash.

    ``[]`` folds to ``H(b"")`` and a single hash folds to itself.
    """
    if not hashes:
        return _new_hasher(algorithm).digest()
    level = list(hashes)
    while len(level) > 1:
        paired: list[bytes] = []
        for i in range(0, len(level), 2):
            left = level[i]
            right = level[i + 1] if i + 1 < len(level) else left
            h = _new_hasher(algorithm)
            h.update(left)
            h.update(right)
            paired.append(h.digest())
        level = paired
    return level[0]


class DigestEngine:
    """Computes digests with fixed settings.

    Args:
        hash_names: Mix entry names into node hashes.
        algorithm: Any ``hashlib`` algorithm name.
        exclude: Exclusion filter; defaults to the VCS markers only.
    """

    def __init__(
        self,
        *,
        hash_names: bool = True,
        algorithm: str = "blake2b",
        exclude: ExcludeFilter | None = None,
    ) -> None:
        _new_hasher(algorithm)
        self.hash_names = hash_names
        self.algorithm = algorithm
        self.exclude = exclude if exclude is not None else ExcludeFilter()

    @classmethod
    def from_config(cls, config) -> DigestEngine:
        return cls(hash_names=config.hash_names, algorithm=config.algorithm,
                   exclude=config.exclude_filter())

    # ------------------------------------------------------------------
    # Hashing
    # ------------------------------------------------------------------

    def _file_hash(self, path: Path) -> bytes:
        h = _new_hasher(self.algorithm)
        try:
            with open(path, "rb") as f:
                while True:
                    chunk = f.read(_HASH_CHUNK_SIZE)
                    if not chunk:
                        break
                    h.update(chunk)
        except OSError as exc:
            raise DigestError(path, exc) from exc
        return h.digest()

    def _named(self, name: str, node_hash: bytes) -> bytes:
        if not self.hash_names:
            return node_hash
        h = _new_hasher(self.algorithm)
        h.update(os.fsencode(name))
        h.update(node_hash)
        return h.digest()

    def _dir_hash(self, path: Path, rel: str, warnings) -> bytes:
        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as exc:
            raise DigestError(path, exc) from exc

        hashes: list[bytes] = []
        for entry in entries:
            child_rel = f"{rel}/{entry.name}" if rel else entry.name
            child = Path(entry.path)
            try:
                is_link = entry.is_symlink()
                is_dir = not is_link and entry.is_dir(follow_symlinks=False)
                is_file = not is_link and entry.is_file(follow_symlinks=False)
            except OSError as exc:
                raise DigestError(child, exc) from exc
            if self.exclude.is_excluded(child_rel, is_dir=is_dir):
                continue
            if is_link:
                _warn(warnings, child, "symlink skipped")
                continue
            if is_dir:
                node = self._dir_hash(child, child_rel, warnings)
            elif is_file:
                node = self._file_hash(child)
            else:
                _warn(warnings, child, "special file skipped")
                continue
            hashes.append(self._named(entry.name, node))
        return merkle_fold(hashes, self.algorithm)

    def digest(self, path: str | os.PathLike, *,
               warnings: list[Diagnostic] | None = None) -> str:
        """Return the hex digest of *path*, or ``""`` if it does not exist.

        Raises :class:`DigestError` when anything under *path* cannot be
        read and :class:`InvalidKindError` when *path* is neither a file
        nor a directory.  Skipped symlinks are appended to *warnings*.
        """
        p = Path(path)
        try:
            st = p.stat()
        except FileNotFoundError:
            return EMPTY_DIGEST
        except OSError as exc:
            raise DigestError(p, exc) from exc
        if stat.S_ISDIR(st.st_mode):
            return self._dir_hash(p, "", warnings).hex()
        if stat.S_ISREG(st.st_mode):
            return self._file_hash(p).hex()
        raise InvalidKindError(p)

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    def metadata(self, path: str | os.PathLike, *,
                 warnings: list[Diagnostic] | None = None) -> tuple[str, ItemKind | None]:
        """Fresh ``(digest, kind)`` for *path*; ``("", None)`` if missing."""
        fresh = self.digest(path, warnings=warnings)
        if fresh == EMPTY_DIGEST:
            return EMPTY_DIGEST, None
        return fresh, ItemKind.of(path)

    def needs_update(self, item: TrackedItem, path: str | os.PathLike | None = None, *,
                     warnings: list[Diagnostic] | None = None) -> bool:
        """``True`` if *item* must be resynced.

        That is when it has no cached digest, when the digest of its live
        path differs from the cached one, or when the cached kind no
        longer matches the live one.  *path* overrides ``item.path`` with
        an already-normalized path.  Does not modify *item*.
        """
        if item.digest is None:
            return True
        live = Path(path) if path is not None else normalize_path(item.path)
        fresh, kind = self.metadata(live, warnings=warnings)
        if fresh != item.digest:
            return True
        return item.kind is not None and kind is not None and kind != item.kind


def _warn(warnings, path, message: str) -> None:
    if warnings is not None:
        warnings.append(Diagnostic(path=str(path), message=message))


def digest(path: str | os.PathLike, *, hash_names: bool = True,
           algorithm: str = "blake2b", exclude: ExcludeFilter | None = None,
           warnings: list[Diagnostic] | None = None) -> str:
    """Convenience wrapper around :meth:`DigestEngine.digest`."""
    engine = DigestEngine(hash_names=hash_names, algorithm=algorithm, exclude=exclude)
    return engine.digest(path, warnings=warnings)
