"""The pull, push, force-pull, and force-push commands."""

from __future__ import annotations

import click

from .. import sync as _sync
from ._helpers import (
    main,
    _config_option,
    _dry_run_option,
    _escalate,
    _finish,
    _jobs_option,
    _load_config,
    _result_printer,
    _status,
    _sudo_option,
)


def _run_pull(ctx, *, force, dry_run, jobs, use_sudo):
    config = _load_config(ctx)
    _status(ctx, f"Repository: {config.repo_root}")
    try:
        report = _sync.pull(
            config, force=force, clean=force, dry_run=dry_run, jobs=jobs,
            escalate=_escalate(use_sudo), on_result=_result_printer(ctx, "pull"),
        )
    except OSError as exc:
        raise click.ClickException(f"Cannot clean {config.repo_root}: {exc}")
    _finish(ctx, config, report, dry_run=dry_run)


def _run_push(ctx, *, force, dry_run, jobs, use_sudo):
    config = _load_config(ctx)
    _status(ctx, f"Repository: {config.repo_root}")
    if not config.repo_root.is_dir():
        raise click.ClickException(f"Repository does not exist: {config.repo_root}")
    report = _sync.push(
        config, force=force, dry_run=dry_run, jobs=jobs,
        escalate=_escalate(use_sudo), on_result=_result_printer(ctx, "push"),
    )
    _finish(ctx, config, report, dry_run=dry_run)


# ---------------------------------------------------------------------------
# pull / push
# ---------------------------------------------------------------------------

@main.command()
@_config_option
@_dry_run_option
@_jobs_option
@_sudo_option
@click.pass_context
def pull(ctx, dry_run, jobs, use_sudo):
    """Copy changed configs from the system into the repository."""
    _run_pull(ctx, force=False, dry_run=dry_run, jobs=jobs, use_sudo=use_sudo)


@main.command()
@_config_option
@_dry_run_option
@_jobs_option
@_sudo_option
@click.pass_context
def push(ctx, dry_run, jobs, use_sudo):
    """Copy configs that differ from the repository onto the system."""
    _run_push(ctx, force=False, dry_run=dry_run, jobs=jobs, use_sudo=use_sudo)


# ---------------------------------------------------------------------------
# force-pull / force-push
# ---------------------------------------------------------------------------

@main.command("force-pull")
@_config_option
@_dry_run_option
@_jobs_option
@_sudo_option
@click.pass_context
def force_pull(ctx, dry_run, jobs, use_sudo):
    """Replace every repository copy with the system's current config.

    Repository copies of tracked configs are deleted first.
    """
    _run_pull(ctx, force=True, dry_run=dry_run, jobs=jobs, use_sudo=use_sudo)


@main.command("force-push")
@_config_option
@_dry_run_option
@_jobs_option
@_sudo_option
@click.pass_context
def force_push(ctx, dry_run, jobs, use_sudo):
    """Overwrite every config on the system with its repository copy."""
    _run_push(ctx, force=True, dry_run=dry_run, jobs=jobs, use_sudo=use_sudo)
