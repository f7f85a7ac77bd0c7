"""Tracked items and the persisted dotsync config file.

The config file is a JSON document::

    {
      "dotconfigs_path": "~/dotconfigs",
      "hash_names": true,
      "algorithm": "blake2b",
      "exclude": [],
      "configs": [
        {"name": "nvim", "path": "~/.config/nvim", "digest": "...", "kind": "dir"}
      ]
    }

``digest`` and ``kind`` are omitted for items that were never synced.
"""

from __future__ import annotations

import json
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from ._exclude import ExcludeFilter
from ._paths import contract_home, normalize_path
from ._types import ItemKind
from .exceptions import ConfigError

DEFAULT_CONFIG_NAME = "dotsync.json"
DEFAULT_ALGORITHM = "blake2b"


@dataclass
class TrackedItem:
    """A named config file or directory under management.

    Attributes:
        name: Unique name; the item's top-level entry inside the repository.
        path: Live path as written in the config file (may start with ``~``).
        digest: Digest recorded at the last successful sync, or ``None``.
        kind: Kind recorded at the last successful sync, or ``None``.
    """
    name: str
    path: str
    digest: str | None = None
    kind: ItemKind | None = None

    @property
    def synced(self) -> bool:
        """``True`` once the item carries both pieces of cached metadata."""
        return self.digest is not None and self.kind is not None

    def set_metadata(self, digest: str, kind: ItemKind) -> None:
        self.digest = digest
        self.kind = kind

    def clear_metadata(self) -> None:
        self.digest = None
        self.kind = None

    def to_dict(self) -> dict:
        d: dict = {"name": self.name, "path": self.path}
        if self.synced:
            d["digest"] = self.digest
            d["kind"] = self.kind.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> TrackedItem:
        try:
            name = data["name"]
            path = data["path"]
        except (KeyError, TypeError):
            raise ConfigError(f"Config entry needs 'name' and 'path': {data!r}")
        if not isinstance(name, str):
            raise ConfigError(f"Config name must be a string: {name!r}")
        _check_name(name)
        if not isinstance(path, str) or not path:
            raise ConfigError(f"Invalid path for {name!r}: {path!r}")
        kind = data.get("kind")
        try:
            kind = ItemKind(kind) if kind is not None else None
        except ValueError:
            raise ConfigError(f"Invalid kind for {name!r}: {kind!r}")
        return cls(name=name, path=path, digest=data.get("digest"), kind=kind)


def _check_name(name: str) -> str:
    """Validate a tracked item name; it becomes a top-level repo entry."""
    if not name or name in (".", ".."):
        raise ConfigError(f"Invalid config name: {name!r}")
    if "/" in name or os.sep in name:
        raise ConfigError(f"Config name must not contain path separators: {name!r}")
    return name


@dataclass
class DotConfig:
    """The contents of a dotsync config file.

    Attributes:
        dotconfigs_path: Repository root as written in the file.
        configs: Tracked items, in file order.
        hash_names: Mix entry names into directory digests.
        algorithm: ``hashlib`` algorithm name used for digests.
        exclude: Extra exclude patterns (gitignore syntax).
        exclude_from: Optional file of further patterns, one per line.
        source: Path of the file this config was loaded from.
    """
    dotconfigs_path: str
    configs: list[TrackedItem] = field(default_factory=list)
    hash_names: bool = True
    algorithm: str = DEFAULT_ALGORITHM
    exclude: list[str] = field(default_factory=list)
    exclude_from: str | None = None
    source: Path | None = None

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def template(cls) -> DotConfig:
        """A starter config, printed by ``dotsync new``."""
        return cls(
            dotconfigs_path="~/dotconfigs",
            configs=[TrackedItem(name="nvim", path="~/.config/nvim"),
                     TrackedItem(name="zshrc", path="~/.zshrc")],
        )

    @classmethod
    def from_dict(cls, data: dict, source: Path | None = None) -> DotConfig:
        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a JSON object")
        try:
            root = data["dotconfigs_path"]
        except KeyError:
            raise ConfigError("Config file is missing 'dotconfigs_path'")
        entries = data.get("configs", [])
        if not isinstance(entries, list):
            raise ConfigError("'configs' must be a list")
        exclude = data.get("exclude", [])
        if not isinstance(exclude, list):
            raise ConfigError("'exclude' must be a list")
        return cls(
            dotconfigs_path=root,
            configs=[TrackedItem.from_dict(e) for e in entries],
            hash_names=bool(data.get("hash_names", True)),
            algorithm=data.get("algorithm", DEFAULT_ALGORITHM),
            exclude=list(exclude),
            exclude_from=data.get("exclude_from"),
            source=source,
        )

    def to_dict(self) -> dict:
        d: dict = {
            "dotconfigs_path": self.dotconfigs_path,
            "hash_names": self.hash_names,
            "algorithm": self.algorithm,
            "exclude": list(self.exclude),
        }
        if self.exclude_from:
            d["exclude_from"] = self.exclude_from
        d["configs"] = [item.to_dict() for item in self.configs]
        return d

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=2) + "\n"

    @classmethod
    def load(cls, path: str | os.PathLike) -> DotConfig:
        """Read and parse the config file at *path*."""
        p = Path(path)
        try:
            text = p.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {p}")
        except OSError as exc:
            raise ConfigError(f"Cannot read config file {p}: {exc}") from exc
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {p}: {exc}") from exc
        return cls.from_dict(data, source=p)

    def save(self, path: str | os.PathLike | None = None) -> Path:
        """Write the config to *path* (default: the file it was loaded from).

        The file is replaced atomically so an interrupted save never
        leaves a half-written config behind.  A symlinked config file is
        written through to its target; the link itself is kept.
        """
        target = Path(path) if path is not None else self.source
        if target is None:
            raise ConfigError("No path to save the config to")
        real = target.resolve()
        tmp = real.with_name(real.name + ".tmp")
        try:
            tmp.write_text(self.dumps(), encoding="utf-8")
            os.replace(tmp, real)
        except OSError as exc:
            raise ConfigError(f"Cannot write config file {target}: {exc}") from exc
        self.source = target
        return target

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def repo_root(self) -> Path:
        return normalize_path(self.dotconfigs_path)

    def live_path(self, item: TrackedItem) -> Path:
        return normalize_path(item.path)

    def repo_path(self, item: TrackedItem) -> Path:
        """Repository copy of *item*: named after ``item.name``, not its basename."""
        return self.repo_root / item.name

    def exclude_filter(self) -> ExcludeFilter:
        exclude_from = None
        if self.exclude_from:
            exclude_from = str(normalize_path(self.exclude_from))
        try:
            return ExcludeFilter(patterns=self.exclude, exclude_from=exclude_from)
        except OSError as exc:
            raise ConfigError(f"Cannot read exclude file {exclude_from}: {exc}") from exc

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def get(self, name: str) -> TrackedItem:
        for item in self.configs:
            if item.name == name:
                return item
        raise KeyError(name)

    def add(self, name: str, path: str) -> TrackedItem:
        """Track a new item.  Names must be unique."""
        _check_name(name)
        if any(item.name == name for item in self.configs):
            raise ConfigError(f"Config already exists: {name}")
        if self.exclude_filter().is_excluded(name):
            raise ConfigError(f"Config name is excluded from syncing: {name}")
        item = TrackedItem(name=name, path=path)
        self.configs.append(item)
        return item

    def remove(self, name: str) -> TrackedItem:
        item = self.get(name)
        self.configs.remove(item)
        return item

    def clear_metadata(self) -> None:
        """Forget all cached digests and kinds, forcing a full resync."""
        for item in self.configs:
            item.clear_metadata()

    def fixup(self) -> list[str]:
        """Repair common problems in place and return a description of each.

        Drops entries whose name repeats an earlier one, clears metadata
        that has only one of ``digest``/``kind``, and rewrites paths under
        ``/home/<user>`` (this machine's or another's) to ``~/...``.
        """
        fixes: list[str] = []
        seen: set[str] = set()
        kept: list[TrackedItem] = []
        for item in self.configs:
            if item.name in seen:
                fixes.append(f"removed duplicate entry {item.name!r}")
                continue
            seen.add(item.name)
            if (item.digest is None) != (item.kind is None):
                item.clear_metadata()
                fixes.append(f"cleared partial metadata of {item.name!r}")
            if item.path.startswith("/home/"):
                fixed = contract_home(normalize_path(item.path))
                if fixed != item.path:
                    fixes.append(f"rewrote path of {item.name!r}: {item.path} -> {fixed}")
                    item.path = fixed
            kept.append(item)
        self.configs = kept
        return fixes

    def clean_repo(self) -> list[Path]:
        """Remove the repository copies of all tracked items.

        Entries that are not tracked (and the repository's own ``.git``)
        are left alone.  Returns the paths that were removed.
        """
        removed: list[Path] = []
        for item in self.configs:
            target = self.repo_path(item)
            if target.is_symlink() or target.is_file():
                target.unlink()
            elif target.is_dir():
                shutil.rmtree(target)
            else:
                continue
            removed.append(target)
        return removed
