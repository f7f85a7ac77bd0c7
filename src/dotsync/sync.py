"""Pull and push tracked items between the live system and the repository.

``pull`` copies live configs into ``<dotconfigs_path>/<name>``; ``push``
copies them back out.  Each item is processed independently: a failure
is recorded in that item's :class:`ItemResult` and the remaining items
still run.  Cached metadata is only written to an item after both its
mirror and its fresh digest succeeded, and only on the calling thread.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable

from ._types import Diagnostic, ItemKind
from .config import DotConfig, TrackedItem
from .digest import DigestEngine
from .exceptions import DotsyncError
from .mirror import Escalate, mirror


class ItemStatus(str, Enum):
    """Outcome of one item: ``SYNCED``, ``SKIPPED``, ``PLANNED``, or ``FAILED``."""
    SYNCED = "synced"
    SKIPPED = "skipped"
    PLANNED = "planned"
    FAILED = "failed"

    def __str__(self) -> str:          # noqa: D105
        return self.value


@dataclass
class ItemResult:
    """What happened to one tracked item.

    Attributes:
        name: The item's name.
        source: Path copied from.
        destination: Path copied to.
        status: :class:`ItemStatus` value.
        reason: Why the item was skipped or failed.
        digest: Fresh digest after a successful sync.
        kind: Fresh kind after a successful sync.
        copied: Number of files copied.
        warnings: Non-fatal diagnostics (skipped symlinks etc.).
    """
    name: str
    source: str
    destination: str
    status: ItemStatus = ItemStatus.SKIPPED
    reason: str | None = None
    digest: str | None = None
    kind: ItemKind | None = None
    copied: int = 0
    warnings: list[Diagnostic] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is not ItemStatus.FAILED

    def __str__(self) -> str:
        text = f"{self.name} ({self.source} -> {self.destination}): {self.status}"
        return f"{text}: {self.reason}" if self.reason else text


@dataclass
class SyncReport:
    """Per-item results of a pull or push, in config order."""
    direction: str
    results: list[ItemResult] = field(default_factory=list)

    def _with(self, status: ItemStatus) -> list[ItemResult]:
        return [r for r in self.results if r.status is status]

    @property
    def synced(self) -> list[ItemResult]:
        return self._with(ItemStatus.SYNCED)

    @property
    def skipped(self) -> list[ItemResult]:
        return self._with(ItemStatus.SKIPPED)

    @property
    def planned(self) -> list[ItemResult]:
        return self._with(ItemStatus.PLANNED)

    @property
    def failed(self) -> list[ItemResult]:
        return self._with(ItemStatus.FAILED)

    @property
    def ok(self) -> bool:
        return not self.failed


# ---------------------------------------------------------------------------
# Per-item work (runs on worker threads; must not touch shared state)
# ---------------------------------------------------------------------------

StaleCheck = Callable[[list[Diagnostic]], bool]


def _sync_item(item: TrackedItem, src: Path, dest: Path, live: Path,
               engine: DigestEngine, is_stale: StaleCheck, *, missing: str,
               kind: ItemKind | None,
               force: bool, dry_run: bool, escalate: Escalate | None) -> ItemResult:
    """Mirror *src* onto *dest* if needed and digest *live* afterwards."""
    result = ItemResult(name=item.name, source=str(src), destination=str(dest))
    try:
        if ItemKind.of(src) is None:
            result.reason = missing
            return result
        # The mirror reports the same skipped entries again; keep one set.
        checked: list[Diagnostic] = []
        if not force and not is_stale(checked):
            result.warnings.extend(checked)
            result.reason = "up to date"
            return result
        if dry_run:
            result.warnings.extend(checked)
            result.status = ItemStatus.PLANNED
            return result
        report = mirror(src, dest, kind=kind, exclude=engine.exclude, escalate=escalate)
        result.copied = len(report.copied)
        result.warnings.extend(report.warnings)
        result.digest, result.kind = engine.metadata(live)
        result.status = ItemStatus.SYNCED
    except (DotsyncError, OSError) as exc:
        result.status = ItemStatus.FAILED
        result.reason = str(exc)
    return result


def _bad_path(item: TrackedItem, exc: Exception) -> ItemResult:
    return ItemResult(name=item.name, source=str(item.path), destination=str(item.name),
                      status=ItemStatus.FAILED, reason=f"invalid path {item.path!r}: {exc}")


def pull_item(config: DotConfig, item: TrackedItem, engine: DigestEngine, *,
              force: bool = False, dry_run: bool = False,
              escalate: Escalate | None = None) -> ItemResult:
    """Copy one item from its live path into the repository."""
    try:
        live, repo = config.live_path(item), config.repo_path(item)
    except (ValueError, TypeError) as exc:
        return _bad_path(item, exc)

    def is_stale(warnings):
        return engine.needs_update(item, live, warnings=warnings)

    return _sync_item(item, live, repo, live, engine, is_stale,
                      missing="live path does not exist", kind=item.kind,
                      force=force, dry_run=dry_run, escalate=escalate)


def push_item(config: DotConfig, item: TrackedItem, engine: DigestEngine, *,
              force: bool = False, dry_run: bool = False,
              escalate: Escalate | None = None) -> ItemResult:
    """Copy one item from the repository onto its live path."""
    try:
        live, repo = config.live_path(item), config.repo_path(item)
    except (ValueError, TypeError) as exc:
        return _bad_path(item, exc)

    def is_stale(warnings):
        if not item.synced:
            return True
        # An empty file and an empty directory share a digest.
        if ItemKind.of(live) != ItemKind.of(repo):
            return True
        return engine.digest(live, warnings=warnings) != engine.digest(repo)

    return _sync_item(item, repo, live, live, engine, is_stale,
                      missing="not in the repository", kind=None,
                      force=force, dry_run=dry_run, escalate=escalate)


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

def _collect(report: SyncReport, item: TrackedItem, result: ItemResult,
             on_result: Callable[[ItemResult], None] | None) -> None:
    if result.status is ItemStatus.SYNCED:
        item.set_metadata(result.digest, result.kind)
    report.results.append(result)
    if on_result is not None:
        on_result(result)


def _run(direction: str, config: DotConfig, sync_one, *, jobs: int,
         on_result: Callable[[ItemResult], None] | None, **kwargs) -> SyncReport:
    engine = DigestEngine.from_config(config)
    items = list(config.configs)
    report = SyncReport(direction=direction)

    if jobs > 1 and len(items) > 1:
        with ThreadPoolExecutor(max_workers=jobs) as pool:
            futures = [pool.submit(sync_one, config, item, engine, **kwargs)
                       for item in items]
            for item, future in zip(items, futures):
                _collect(report, item, future.result(), on_result)
    else:
        for item in items:
            _collect(report, item, sync_one(config, item, engine, **kwargs), on_result)
    return report


def pull(config: DotConfig, *, force: bool = False, clean: bool = False,
         dry_run: bool = False, jobs: int = 1, escalate: Escalate | None = None,
         on_result: Callable[[ItemResult], None] | None = None) -> SyncReport:
    """Copy changed items from the live system into the repository.

    With *force*, every item is copied regardless of its digest; with
    *clean* the repository copies of all tracked items are removed first.
    Updated digests are set on ``config.configs``; the caller saves them.
    """
    if clean and not dry_run:
        config.clean_repo()
    return _run("pull", config, pull_item, jobs=jobs, on_result=on_result,
                force=force, dry_run=dry_run, escalate=escalate)


def push(config: DotConfig, *, force: bool = False, dry_run: bool = False,
         jobs: int = 1, escalate: Escalate | None = None,
         on_result: Callable[[ItemResult], None] | None = None) -> SyncReport:
    """Copy items whose repository copy differs from the live system back out."""
    return _run("push", config, push_item, jobs=jobs, on_result=on_result,
                force=force, dry_run=dry_run, escalate=escalate)
