"""
CLI entry point for package_linker.

Provides the command-line interface that links the packages of a monorepo.
"""

from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config import DEFAULT_DIST_DIR, DEFAULT_PACKAGES_DIR, LinkerConfig
from .errors import ConfigError, DiscoveryError
from .linker import PackageLinker

console = Console()
err_console = Console(stderr=True)


def _single_value(ctx: click.Context, param: click.Parameter, value: tuple[str, ...]) -> str | None:
    """Reject options given more than once instead of silently keeping the last."""
    if not value:
        return None
    if len(value) > 1:
        raise click.BadParameter(
            f"expected a single value, got {len(value)}: {', '.join(value)}"
        )
    return value[0]


@click.command()
@click.version_option(version=__version__, prog_name="package-linker")
@click.option(
    "--packages",
    "-p",
    "packages_dir",
    multiple=True,
    callback=_single_value,
    help=f"Package root directory, relative to the root [default: {DEFAULT_PACKAGES_DIR}]",
)
@click.option(
    "--dist",
    "-d",
    "dist_dir",
    multiple=True,
    callback=_single_value,
    help=f"Build output directory name within each package [default: {DEFAULT_DIST_DIR}]",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML file with linker settings (flags take precedence)",
)
@click.option(
    "--root",
    "-r",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=None,
    help="Directory holding the shared node_modules [default: current directory]",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Report every check, not just changes",
)
def cli(
    packages_dir: str | None,
    dist_dir: str | None,
    config_path: Path | None,
    root: Path | None,
    verbose: bool,
):
    """Link monorepo package builds into the shared node_modules."""
    try:
        config = LinkerConfig.from_yaml(config_path) if config_path else LinkerConfig()
        config = config.merged(
            packages_dir=packages_dir,
            dist_dir=dist_dir,
            root=root.absolute() if root else None,
        )
    except ConfigError as e:
        err_console.print(f"[red]Cannot parse command params: {escape(str(e))}[/red]")
        raise SystemExit(1)

    linker = PackageLinker(config, verbose=verbose)
    try:
        result = linker.run_sync()
    except DiscoveryError as e:
        err_console.print(f"[red]Error : {escape(str(e))}[/red]")
        raise SystemExit(1)

    changed = sum(1 for r in result.results if r.success and r.changed)
    unchanged = sum(1 for r in result.results if r.success and not r.changed)
    console.print(
        f"[green]Linked {changed} package(s), {unchanged} already up to date[/green]"
    )
    if not result.success:
        err_console.print(f"[red]{len(result.failed)} package(s) failed to link:[/red]")
        for failed in result.failed:
            err_console.print(f"  • {escape(failed.package.name)}")
            for link in failed.failed_links:
                err_console.print(f"      could not create {escape(link)}")
        raise SystemExit(1)


def main(argv: list[str] | None = None) -> int:
    """
    Run the CLI and return its exit status.

    Usage errors exit with status 1 rather than click's default of 2.
    """
    try:
        return cli.main(args=argv, prog_name="package-linker", standalone_mode=False) or 0
    except click.ClickException as e:
        e.show()
        return 1
    except click.Abort:
        err_console.print("[red]Aborted![/red]")
        return 1
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1


if __name__ == "__main__":
    raise SystemExit(main())
