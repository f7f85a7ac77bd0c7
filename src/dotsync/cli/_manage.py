"""Commands that maintain the config file and the repository."""

from __future__ import annotations

import shutil

import click

from .._paths import contract_home, normalize_path
from ..config import DotConfig
from ..digest import DigestEngine
from ..exceptions import ConfigError
from ..sync import ItemStatus, pull_item
from ._helpers import (
    main,
    _config_option,
    _config_path,
    _escalate,
    _load_config,
    _result_printer,
    _save_config,
    _status,
    _sudo_option,
)


# ---------------------------------------------------------------------------
# add / remove
# ---------------------------------------------------------------------------

@main.command()
@_config_option
@click.argument("name")
@click.argument("path")
@click.option("--no-pull", is_flag=True, default=False,
              help="Only record the config; do not copy it into the repository.")
@_sudo_option
@click.pass_context
def add(ctx, name, path, no_pull, use_sudo):
    """Track PATH under NAME and pull it into the repository."""
    config = _load_config(ctx)
    stored = contract_home(normalize_path(path))
    try:
        item = config.add(name, stored)
    except ConfigError as exc:
        raise click.ClickException(str(exc))

    if not no_pull:
        engine = DigestEngine.from_config(config)
        result = pull_item(config, item, engine, escalate=_escalate(use_sudo))
        _result_printer(ctx, "pull")(result)
        if result.status is ItemStatus.FAILED:
            raise click.ClickException(f"Failed to pull {name}; config file not changed")
        if result.status is ItemStatus.SYNCED:
            item.set_metadata(result.digest, result.kind)

    _save_config(ctx, config)
    click.echo(f"Added {name} ({stored})")


@main.command()
@_config_option
@click.argument("name")
@click.option("--purge", is_flag=True, default=False,
              help="Also delete the config's copy in the repository.")
@click.pass_context
def remove(ctx, name, purge):
    """Stop tracking the config NAME."""
    config = _load_config(ctx)
    try:
        item = config.remove(name)
    except KeyError:
        raise click.ClickException(f"No such config: {name}")
    if purge:
        target = config.repo_path(item)
        try:
            if target.is_dir() and not target.is_symlink():
                shutil.rmtree(target)
            elif target.exists() or target.is_symlink():
                target.unlink()
        except OSError as exc:
            raise click.ClickException(f"Cannot delete {target}: {exc}")
        _status(ctx, f"Deleted {target}")
    _save_config(ctx, config)
    click.echo(f"Removed {name}")


# ---------------------------------------------------------------------------
# clean
# ---------------------------------------------------------------------------

@main.command()
@_config_option
@click.pass_context
def clean(ctx):
    """Delete the repository copies of all tracked configs."""
    config = _load_config(ctx)
    try:
        removed = config.clean_repo()
    except OSError as exc:
        raise click.ClickException(f"Cannot clean {config.repo_root}: {exc}")
    for path in removed:
        _status(ctx, f"Deleted {path}")
    click.echo(f"Cleaned {len(removed)} config(s) from {config.repo_root}")


# ---------------------------------------------------------------------------
# clear-metadata / fixup
# ---------------------------------------------------------------------------

@main.command("clear-metadata")
@_config_option
@click.pass_context
def clear_metadata(ctx):
    """Forget cached digests so the next pull copies everything."""
    config = _load_config(ctx)
    config.clear_metadata()
    _save_config(ctx, config)
    click.echo(f"Cleared metadata of {len(config.configs)} config(s)")


@main.command()
@_config_option
@click.pass_context
def fixup(ctx):
    """Repair duplicate names, partial metadata, and foreign home paths."""
    config = _load_config(ctx)
    fixes = config.fixup()
    for fix in fixes:
        click.echo(f"  fixed  {fix}")
    _save_config(ctx, config)
    click.echo(f"{len(fixes)} problem(s) fixed")


# ---------------------------------------------------------------------------
# print-config / new / edit
# ---------------------------------------------------------------------------

@main.command("print-config")
@_config_option
@click.option("--json", "as_json", is_flag=True, default=False,
              help="Print the raw config file.")
@click.pass_context
def print_config(ctx, as_json):
    """Show the config file in use."""
    config = _load_config(ctx)
    if as_json:
        click.echo(config.dumps(), nl=False)
        return
    click.echo(f"config: {config.source}")
    click.echo(f"dotconfigs_path: {config.dotconfigs_path}")
    click.echo(f"hash_names: {str(config.hash_names).lower()}  algorithm: {config.algorithm}")
    excl = config.exclude_filter()
    if excl.active:
        click.echo(f"exclude: {', '.join(excl.patterns)}")
    if config.exclude_from:
        click.echo(f"exclude_from: {config.exclude_from}")
    for item in config.configs:
        kind = str(item.kind) if item.kind else "-"
        short = item.digest[:12] if item.digest else "-"
        click.echo(f"  {item.name}\t{item.path}\t{kind}\t{short}")


@main.command()
@_config_option
@click.option("--write", is_flag=True, default=False,
              help="Write the template to the config path instead of printing it.")
@click.pass_context
def new(ctx, write):
    """Print a starter config file."""
    template = DotConfig.template()
    if not write:
        click.echo(template.dumps(), nl=False)
        return
    path = _config_path(ctx)
    if path.exists():
        raise click.ClickException(f"Config file already exists: {path}")
    template.source = path
    _save_config(ctx, template)
    click.echo(f"Wrote {path}")


@main.command()
@_config_option
@click.pass_context
def edit(ctx):
    """Open the config file in $EDITOR and check it afterwards."""
    path = _config_path(ctx)
    if not path.exists():
        raise click.ClickException(f"Config file not found: {path}")
    click.edit(filename=str(path))
    try:
        DotConfig.load(path)
    except ConfigError as exc:
        raise click.ClickException(f"Config file is no longer valid: {exc}")
    _status(ctx, f"{path} is valid")
