"""CLI entrypoint for changecontrol."""

import sys
from pathlib import Path

import click

from . import __version__
from .config import Settings, load_settings

_CHANGE_OPTION = click.option(
    "--change",
    "-c",
    "partial_id",
    type=str,
    default="*",
    show_default=True,
    metavar="PARTIAL_ID",
    help="Only act on change ids matching this pattern ('*' is a wildcard)",
)


@click.group()
@click.version_option(__version__, prog_name="changecontrol")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help="TOML settings file (defaults to ./changecontrol.toml when present)",
)
@click.option("--redis-url", type=str, default=None, help="Store URL (redis://... or memory://)")
@click.option("--prefix", "-p", type=str, default=None, help="Prefix scoping the changelog keys")
@click.option(
    "--changes",
    "changes_dir",
    type=click.Path(file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Directory of change-set definition modules",
)
@click.option("--verbose", is_flag=True, help="Show debug output")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    redis_url: str | None,
    prefix: str | None,
    changes_dir: Path | None,
    verbose: bool,
) -> None:
    """changecontrol - apply ordered, audited changes exactly once.

    Settings come from changecontrol.toml, then CHANGECONTROL_* environment
    variables, then these options.
    """
    ctx.ensure_object(dict)
    try:
        settings = load_settings(config_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e))
    ctx.obj["settings"] = settings.merge(redis_url=redis_url, prefix=prefix, changes_dir=changes_dir)
    ctx.obj["verbose"] = verbose


def _settings(ctx: click.Context) -> Settings:
    return ctx.obj["settings"]


def _run_mode(ctx: click.Context, mode: str, partial_id: str) -> None:
    from .commands.run_cmd import run_changes

    try:
        exit_code = run_changes(_settings(ctx), mode, partial_id, verbose=ctx.obj["verbose"])
    except ValueError as e:
        raise click.ClickException(str(e))
    sys.exit(exit_code)


@cli.command()
@_CHANGE_OPTION
@click.pass_context
def execute(ctx: click.Context, partial_id: str) -> None:
    """Validate, then apply every pending change.

    Examples:

        changecontrol execute

        changecontrol execute -c "release-1.0:*"
    """
    _run_mode(ctx, "execute", partial_id)


@cli.command()
@_CHANGE_OPTION
@click.pass_context
def pretend(ctx: click.Context, partial_id: str) -> None:
    """Validate and report what execute would do, without running or auditing."""
    _run_mode(ctx, "pretend", partial_id)


@cli.command()
@_CHANGE_OPTION
@click.pass_context
def sync(ctx: click.Context, partial_id: str) -> None:
    """Record changes as applied without running them.

    Use this to backfill the changelog for state that already exists.
    """
    _run_mode(ctx, "sync", partial_id)


@cli.command()
@_CHANGE_OPTION
@click.pass_context
def clear(ctx: click.Context, partial_id: str) -> None:
    """Delete changelog entries matching a pattern (under the lock)."""
    from .commands.run_cmd import run_clear

    try:
        exit_code = run_clear(_settings(ctx), partial_id, verbose=ctx.obj["verbose"])
    except ValueError as e:
        raise click.ClickException(str(e))
    sys.exit(exit_code)


@cli.command()
@click.pass_context
def unlock(ctx: click.Context) -> None:
    """Forcibly remove the changelog lock, whoever holds it."""
    from .commands.run_cmd import run_unlock

    try:
        exit_code = run_unlock(_settings(ctx), verbose=ctx.obj["verbose"])
    except ValueError as e:
        raise click.ClickException(str(e))
    sys.exit(exit_code)


@cli.command()
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["csv", "table", "json"]),
    default="csv",
    show_default=True,
    help="Output format",
)
@click.pass_context
def dump(ctx: click.Context, output_format: str) -> None:
    """Print the changelog in ascending sequence order."""
    from .commands.run_cmd import run_dump

    try:
        exit_code = run_dump(_settings(ctx), output_format, verbose=ctx.obj["verbose"])
    except ValueError as e:
        raise click.ClickException(str(e))
    sys.exit(exit_code)


def main() -> None:
    """Main entrypoint."""
    cli()


if __name__ == "__main__":
    main()
