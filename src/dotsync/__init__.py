from .config import DotConfig, TrackedItem
from ._types import Diagnostic, ItemKind
from ._exclude import ExcludeFilter
from .digest import DigestEngine, EMPTY_DIGEST, digest, merkle_fold
from .mirror import MirrorReport, mirror, populate, prune
from .sync import ItemResult, ItemStatus, SyncReport, pull, push, pull_item, push_item
from .exceptions import (
    ConfigError,
    DigestError,
    DotsyncError,
    InvalidKindError,
    KindMismatchError,
    MirrorError,
    SourceMissingError,
)

__all__ = [
    "DotConfig", "TrackedItem", "ItemKind", "Diagnostic", "ExcludeFilter",
    "DigestEngine", "EMPTY_DIGEST", "digest", "merkle_fold",
    "MirrorReport", "mirror", "populate", "prune",
    "ItemResult", "ItemStatus", "SyncReport", "pull", "push", "pull_item", "push_item",
    "ConfigError", "DigestError", "DotsyncError", "InvalidKindError", "KindMismatchError",
    "MirrorError", "SourceMissingError",
]
