"""Shared helpers, option decorators, and the main CLI group."""

from __future__ import annotations

from pathlib import Path

import click

from .._privilege import sudo_reexec
from ..config import DEFAULT_CONFIG_NAME, DotConfig
from ..exceptions import ConfigError
from ..sync import ItemResult, ItemStatus, SyncReport


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _status(ctx, msg):
    """Emit a status message to stderr when verbose mode (-v) is on."""
    if ctx.obj.get("verbose"):
        click.echo(msg, err=True)


def _store_config(ctx, param, value):
    """Click callback: store --config value in the context."""
    ctx.ensure_object(dict)
    if value is not None:
        ctx.obj["config_path"] = value
    return value


def _config_option(f):
    """Shared --config/-c option decorator for all commands."""
    return click.option(
        "--config", "-c", type=click.Path(dir_okay=False), envvar="DOTSYNC_CONFIG",
        help=f"Path to the dotsync config file (default: ./{DEFAULT_CONFIG_NAME}, "
             "or set DOTSYNC_CONFIG).",
        expose_value=False, callback=_store_config, is_eager=True,
    )(f)


def _config_path(ctx) -> Path:
    return Path(ctx.obj.get("config_path") or DEFAULT_CONFIG_NAME)


def _load_config(ctx) -> DotConfig:
    try:
        config = DotConfig.load(_config_path(ctx))
        config.exclude_filter()
    except ConfigError as exc:
        raise click.ClickException(str(exc))
    return config


def _save_config(ctx, config: DotConfig) -> None:
    try:
        path = config.save()
    except ConfigError as exc:
        raise click.ClickException(str(exc))
    _status(ctx, f"Saved {path}")


def _dry_run_option(f):
    """Shared --dry-run flag."""
    return click.option(
        "-n", "--dry-run", is_flag=True, default=False,
        help="Show what would be copied without copying.",
    )(f)


def _jobs_option(f):
    """Shared --jobs/-j option."""
    return click.option(
        "-j", "--jobs", type=click.IntRange(min=1), default=1, show_default=True,
        help="Number of configs to sync in parallel.",
    )(f)


def _sudo_option(f):
    """Shared --sudo flag: re-run under sudo on a permission error."""
    return click.option(
        "--sudo", "use_sudo", is_flag=True, default=False,
        help="Re-run the command under sudo when a file cannot be written.",
    )(f)


def _escalate(use_sudo: bool):
    return sudo_reexec if use_sudo else None


def _result_printer(ctx, verb: str):
    """Return an ``on_result`` callback that reports each item as it finishes."""
    def _on_result(result: ItemResult) -> None:
        for w in result.warnings:
            click.echo(f"WARNING: {w.path}: {w.message}", err=True)
        if result.status is ItemStatus.SYNCED:
            click.echo(f"  {verb}  {result.name}  ({result.copied} file(s))")
        elif result.status is ItemStatus.PLANNED:
            click.echo(f"  {verb}  {result.name}  {result.source} -> {result.destination}")
        elif result.status is ItemStatus.FAILED:
            click.echo(f"ERROR: {result.name}: {result.reason}", err=True)
        else:
            _status(ctx, f"  skip  {result.name}  ({result.reason})")
    return _on_result


def _finish(ctx, config: DotConfig, report: SyncReport, *, dry_run: bool) -> None:
    """Save updated metadata, print a summary, and fail if any item failed."""
    verb = report.direction
    if dry_run:
        if report.planned:
            click.echo(f"{len(report.planned)} config(s) would be {verb}ed.")
        else:
            click.echo(f"Nothing to {verb}, already in sync.")
        return
    _save_config(ctx, config)
    click.echo(f"{verb.capitalize()}ed {len(report.synced)} config(s), "
               f"{len(report.skipped)} skipped.")
    if report.failed:
        raise click.ClickException(
            f"{len(report.failed)} config(s) failed to {verb}: "
            + ", ".join(r.name for r in report.failed)
        )


# ---------------------------------------------------------------------------
# Main group
# ---------------------------------------------------------------------------

@click.group()
@click.option("--config", "-c", type=click.Path(dir_okay=False), envvar="DOTSYNC_CONFIG",
              help=f"Path to the dotsync config file (default: ./{DEFAULT_CONFIG_NAME}, "
                   "or set DOTSYNC_CONFIG).",
              expose_value=False, callback=_store_config, is_eager=True)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output on stderr.")
@click.version_option(package_name="dotsync")
@click.pass_context
def main(ctx, verbose):
    """dotsync: keep dotfiles mirrored in a dotconfigs repository.

    Each tracked config has a name and a live path.  Its copy lives at
    <dotconfigs_path>/<name>.

    \b
    Quick start:
      dotsync new > dotsync.json
      dotsync add nvim ~/.config/nvim
      dotsync pull
      dotsync push

    \b
    Commands:
      pull / push               Copy changed configs into / out of the repository
      force-pull / force-push   Copy everything, skipping change detection
      add / remove              Track or untrack a config
      clean                     Delete the repository copies of tracked configs
      clear-metadata / fixup    Maintain the config file
      print-config / new / edit Inspect or create the config file
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
