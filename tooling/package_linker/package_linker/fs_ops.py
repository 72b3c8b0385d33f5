"""
Filesystem operations for the linker.

Every operation is a coroutine that runs the blocking call in a worker
thread, so the linking steps of different packages can interleave on one
event loop.
"""

import asyncio
import os
import shutil
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from .errors import LinkError

console = Console()
err_console = Console(stderr=True)

IS_WINDOWS = sys.platform == "win32"


def is_link(path: Path) -> bool:
    """Return True for symbolic links and, on Windows, directory junctions."""
    if path.is_symlink():
        return True
    is_junction = getattr(path, "is_junction", None)
    return bool(is_junction and is_junction())


def _remove(path: Path) -> None:
    if is_link(path):
        if IS_WINDOWS and path.is_dir():
            # Junctions and directory symlinks are removed like empty dirs
            os.rmdir(path)
        else:
            path.unlink()
    elif path.is_dir():
        shutil.rmtree(path)
    elif os.path.lexists(path):
        path.unlink()


def _copy(source: Path, dest: Path) -> None:
    if source.is_dir():
        shutil.copytree(source, dest, symlinks=True, dirs_exist_ok=True)
    else:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, dest)


def _symlink(target: Path, link: Path) -> None:
    try:
        os.symlink(target, link, target_is_directory=True)
    except OSError as e:
        raise LinkError(str(link), str(target), e.strerror or str(e)) from e


async def path_exists(path: Path) -> bool:
    """Check whether anything, including a dangling link, exists at path."""
    return await asyncio.to_thread(os.path.lexists, path)


async def path_is_link(path: Path) -> bool:
    return await asyncio.to_thread(is_link, path)


async def remove_path(path: Path) -> None:
    """Remove a file, link or directory tree. Missing paths are ignored."""
    await asyncio.to_thread(_remove, path)


async def copy_path(source: Path, dest: Path) -> None:
    """Copy a file or directory tree, keeping symlinks as symlinks."""
    await asyncio.to_thread(_copy, source, dest)


async def create_path(path: Path) -> None:
    """Create a directory and any missing parents."""
    await asyncio.to_thread(path.mkdir, parents=True, exist_ok=True)


async def exec_cmd(args: list[str]) -> None:
    """
    Run an external command, echoing its output to the console.

    Raises:
        LinkError: if the command exits with a non-zero status
    """
    console.print(f"[yellow]executing {escape(' '.join(args))}[/yellow]")
    proc = await asyncio.create_subprocess_exec(
        *args,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await proc.communicate()
    if stdout:
        console.print(f"[green]{escape(stdout.decode(errors='replace').rstrip())}[/green]")
    if stderr:
        err_console.print(f"[red]{escape(stderr.decode(errors='replace').rstrip())}[/red]")
    if proc.returncode != 0:
        raise LinkError(
            args[-2] if len(args) >= 2 else "",
            args[-1] if args else "",
            f"{args[0]} exited with status {proc.returncode}",
        )


async def symlink_path(target: Path, link: Path) -> None:
    """
    Create a directory link at `link` pointing to `target`.

    On Windows a junction is created with `mklink /J`, since junctions need
    no elevated privileges and there is no public API for them. Everywhere
    else a native symbolic link is used.
    """
    if IS_WINDOWS:
        await exec_cmd(["cmd", "/c", "mklink", "/J", str(link), str(target)])
    else:
        console.print(f"[yellow]linking {escape(str(link))} -> {escape(str(target))}[/yellow]")
        await asyncio.to_thread(_symlink, target, link)
