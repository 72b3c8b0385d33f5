"""Pytest configuration and fixtures for package_linker tests."""

import json
import tempfile
from pathlib import Path

import pytest

from package_linker.config import LinkerConfig


def _write_manifest(package_path: Path, name: str) -> None:
    """Write a minimal package.json declaring name."""
    package_path.mkdir(parents=True, exist_ok=True)
    (package_path / "package.json").write_text(json.dumps({"name": name, "version": "1.0.0"}))


@pytest.fixture
def write_manifest():
    """Provide a helper that writes a package.json declaring a name."""
    return _write_manifest


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def monorepo(temp_dir: Path):
    """Create a monorepo with two packages, pkg-a and pkg-b."""
    _write_manifest(temp_dir / "packages" / "a", "pkg-a")
    _write_manifest(temp_dir / "packages" / "b", "pkg-b")
    (temp_dir / "node_modules").mkdir()

    yield temp_dir


@pytest.fixture
def config(monorepo: Path):
    """Linker configuration rooted at the monorepo."""
    return LinkerConfig(root=monorepo)
