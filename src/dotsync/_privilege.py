"""Re-run the current command with elevated rights.

Passed as the ``escalate`` collaborator to :func:`dotsync.mirror.mirror`
when the CLI is invoked with ``--sudo``.
"""

from __future__ import annotations

import os
import shutil
import sys
import threading

_exec_guard = threading.Lock()


def is_elevated() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


def sudo_command(argv: list[str] | None = None) -> list[str]:
    """The command line that re-runs this process under ``sudo``."""
    args = list(sys.argv[1:] if argv is None else argv)
    return ["sudo", "--preserve-env", sys.executable, "-m", "dotsync", *args]


def sudo_reexec(path: str, operation: str) -> None:
    """Replace the process with itself under ``sudo``.

    Returns without doing anything when already running as root, so the
    caller's retry fails and is reported.  Raises ``PermissionError``
    when ``sudo`` is unavailable.
    """
    if is_elevated():
        return
    sudo = shutil.which("sudo")
    if sudo is None:
        raise PermissionError(f"{operation} {path}: permission denied and sudo is not available")
    with _exec_guard:
        sys.stdout.flush()
        sys.stderr.flush()
        cmd = sudo_command()
        os.execv(sudo, cmd)
