"""
Main linker logic.

Discovers the packages of a monorepo and makes sure that, for each one,
the shared node_modules entry links to the package's build output and the
package's own node_modules links back to the shared directory.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from .config import LinkerConfig
from .errors import DiscoveryError, LinkError
from .fs_ops import (
    copy_path,
    create_path,
    path_exists,
    path_is_link,
    remove_path,
    symlink_path,
)

console = Console()
err_console = Console(stderr=True)

# "name" or "@scope/name", never a path that leaves node_modules
PACKAGE_NAME_RE = re.compile(r"^(@[^/\\:@]+/)?[^/\\:@][^/\\:]*$")


@dataclass(frozen=True)
class Package:
    """A monorepo sub-package."""

    name: str
    path: Path


class LinkAction(str, Enum):
    """Transition taken by a linking step."""

    ALREADY_LINKED = "already_linked"
    RELOCATED = "relocated"  # real directory moved into the package, then linked
    LINKED = "linked"
    CREATED = "created"  # build output directory created, then linked
    REPLACED = "replaced"  # real directory removed, then linked


@dataclass
class LinkResult:
    """Outcome of linking a single package."""

    package: Package
    dist_action: LinkAction | None = None
    modules_action: LinkAction | None = None
    errors: list[str] = field(default_factory=list)
    # Link paths that could not be created
    failed_links: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors

    @property
    def changed(self) -> bool:
        return any(
            action not in (None, LinkAction.ALREADY_LINKED)
            for action in (self.dist_action, self.modules_action)
        )


@dataclass
class RunResult:
    """Result of a full linker run."""

    results: list[LinkResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def failed(self) -> list[LinkResult]:
        return [r for r in self.results if not r.success]


def read_manifest_name(package_path: Path, manifest_file: str) -> str:
    """Read the declared package name from a package's manifest."""
    manifest_path = package_path / manifest_file
    try:
        with open(manifest_path, encoding="utf-8") as f:
            manifest = json.load(f)
    except OSError as e:
        raise DiscoveryError(f"Cannot read {manifest_path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise DiscoveryError(f"{manifest_path} is not valid UTF-8: {e.reason}") from e
    except json.JSONDecodeError as e:
        raise DiscoveryError(f"Invalid JSON in {manifest_path}: {e}") from e

    name = manifest.get("name") if isinstance(manifest, dict) else None
    if not isinstance(name, str) or not name:
        raise DiscoveryError(f"{manifest_path} does not declare a package name")
    if not PACKAGE_NAME_RE.match(name) or any(part in (".", "..") for part in name.split("/")):
        raise DiscoveryError(f"{manifest_path} declares an invalid package name {name!r}")
    return name


def discover_packages(packages_path: Path, manifest_file: str = "package.json") -> list[Package]:
    """
    List the packages directly under packages_path.

    Loose files and hidden directories are skipped; every other entry must
    carry a manifest with a name.

    Raises:
        DiscoveryError: if the directory or a manifest can't be read, a
            name is not a valid package name, or two packages declare the
            same name
    """
    try:
        entries = sorted(packages_path.iterdir())
    except OSError as e:
        raise DiscoveryError(f"Cannot read {packages_path}: {e.strerror or e}") from e

    packages: list[Package] = []
    seen: dict[str, Path] = {}
    for entry in entries:
        if entry.name.startswith(".") or not entry.is_dir():
            continue
        name = read_manifest_name(entry, manifest_file)
        if name in seen:
            raise DiscoveryError(
                f"Package name {name!r} is declared by both {seen[name]} and {entry}"
            )
        seen[name] = entry
        packages.append(Package(name=name, path=entry.absolute()))
    return packages


class PackageLinker:
    """Links the packages of a monorepo into the shared dependency directory."""

    def __init__(self, config: LinkerConfig, verbose: bool = False):
        self.config = config
        self.verbose = verbose

    def _info(self, message: str) -> None:
        if self.verbose:
            console.print(message)

    async def link_dist(self, pkg: Package) -> LinkAction:
        """
        Make node_modules/<name> a link to the package's build output.

        A real directory already sitting at node_modules/<name> has its
        content moved into the build output directory before it is replaced
        by the link.
        """
        modules_package_path = self.config.modules_path / pkg.name
        package_dist_path = pkg.path / self.config.dist_dir
        shown = escape(str(modules_package_path))

        if await path_exists(modules_package_path):
            self._info(f"[green]{shown} exists[/green]")
            if await path_is_link(modules_package_path):
                self._info(f"[green]{shown} is a symbolic link[/green]")
                return LinkAction.ALREADY_LINKED

            console.print(f"[magenta]{shown} is not a symbolic link[/magenta]")
            await remove_path(package_dist_path)
            await copy_path(modules_package_path, package_dist_path)
            await remove_path(modules_package_path)
            await symlink_path(package_dist_path, modules_package_path)
            return LinkAction.RELOCATED

        self._info(f"[magenta]{shown} does not exist[/magenta]")
        # Scoped names (@scope/name) need their scope directory
        await create_path(modules_package_path.parent)
        if await path_exists(package_dist_path):
            self._info(f"[green]{escape(str(package_dist_path))} exists[/green]")
            await symlink_path(package_dist_path, modules_package_path)
            return LinkAction.LINKED

        console.print(
            f"[magenta]{escape(str(package_dist_path))} does not exist: create it[/magenta]"
        )
        await create_path(package_dist_path)
        await symlink_path(package_dist_path, modules_package_path)
        return LinkAction.CREATED

    async def link_modules(self, pkg: Package) -> LinkAction:
        """Make the package's own node_modules a link to the shared one."""
        package_modules_path = pkg.path / self.config.modules_dir
        modules_path = self.config.modules_path
        shown = escape(str(package_modules_path))

        if await path_exists(package_modules_path):
            self._info(f"[green]{shown} exists[/green]")
            if await path_is_link(package_modules_path):
                self._info(f"[green]{shown} is a symbolic link[/green]")
                return LinkAction.ALREADY_LINKED

            console.print(f"[magenta]{shown} is not a symbolic link[/magenta]")
            await remove_path(package_modules_path)
            await symlink_path(modules_path, package_modules_path)
            return LinkAction.REPLACED

        self._info(f"[magenta]{shown} does not exist[/magenta]")
        await symlink_path(modules_path, package_modules_path)
        return LinkAction.LINKED

    async def _link_package(self, pkg: Package) -> LinkResult:
        result = LinkResult(package=pkg)
        dist_outcome, modules_outcome = await asyncio.gather(
            self.link_dist(pkg),
            self.link_modules(pkg),
            return_exceptions=True,
        )

        if isinstance(dist_outcome, BaseException):
            self._record_failure(result, "dist", dist_outcome)
        else:
            result.dist_action = dist_outcome
        if isinstance(modules_outcome, BaseException):
            self._record_failure(result, "node_modules", modules_outcome)
        else:
            result.modules_action = modules_outcome
        return result

    @staticmethod
    def _record_failure(result: LinkResult, step: str, exc: BaseException) -> None:
        if not isinstance(exc, Exception):
            raise exc
        error_msg = f"Error linking {step} of {result.package.name}: {exc}"
        result.errors.append(error_msg)
        if isinstance(exc, LinkError):
            result.failed_links.append(exc.link)
        err_console.print(f"[red]{escape(error_msg)}[/red]")

    async def run(self) -> RunResult:
        """
        Discover the packages and link all of them concurrently.

        Discovery errors propagate. Linking errors are collected per package
        so that one failing package doesn't stop the others.
        """
        packages = await asyncio.to_thread(
            discover_packages, self.config.packages_path, self.config.manifest_file
        )
        self._info(f"[dim]Found {len(packages)} packages in {escape(str(self.config.packages_path))}[/dim]")

        results = await asyncio.gather(*(self._link_package(pkg) for pkg in packages))
        return RunResult(results=list(results))

    def run_sync(self) -> RunResult:
        """Run the linker on a fresh event loop."""
        return asyncio.run(self.run())
