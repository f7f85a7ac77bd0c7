"""Exclusion rule shared by digesting and mirroring.

Any path component equal to a version-control marker (``.git`` by
default) is skipped, together with any extra patterns from the config
file.  Pattern syntax follows gitignore rules (implemented by
``dulwich.ignore.IgnoreFilter``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Sequence

from dulwich.ignore import IgnoreFilter

VCS_MARKERS = (".git",)


class ExcludeFilter:
    """Combines VCS markers, config ``exclude`` patterns, and an exclude file."""

    def __init__(
        self,
        *,
        patterns: Sequence[str] | None = None,
        exclude_from: str | None = None,
        vcs_markers: Sequence[str] = VCS_MARKERS,
    ) -> None:
        self.vcs_markers = frozenset(vcs_markers)
        lines: list[bytes] = []
        for p in patterns or ():
            lines.append(p.encode("utf-8"))
        if exclude_from is not None:
            for raw in Path(exclude_from).read_bytes().splitlines():
                line = raw.strip()
                if line and not line.startswith(b"#"):
                    lines.append(line)
        self.patterns = [line.decode("utf-8") for line in lines]
        self._filter: IgnoreFilter | None = IgnoreFilter(lines) if lines else None

    def __repr__(self) -> str:
        return (f"ExcludeFilter(patterns={self.patterns!r}, "
                f"vcs_markers={sorted(self.vcs_markers)!r})")

    # ------------------------------------------------------------------
    @property
    def active(self) -> bool:
        """True if user patterns are configured on top of the VCS markers."""
        return self._filter is not None

    # ------------------------------------------------------------------
    def is_excluded(self, rel_path: str, *, is_dir: bool = False) -> bool:
        """Check *rel_path* (forward slashes, relative to the walk root)."""
        if any(part in self.vcs_markers for part in rel_path.split("/")):
            return True
        if self._filter is None:
            return False
        check = rel_path + "/" if is_dir else rel_path
        return self._filter.is_ignored(check) is True
