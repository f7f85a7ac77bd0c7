"""dotsync CLI: keep dotfiles mirrored between the system and a repository."""

from ._helpers import main  # noqa: F401

# Import command modules to register Click commands with the main group.
from . import _sync, _manage  # noqa: F401
