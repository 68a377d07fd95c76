"""Shared pytest fixtures for the repogen test suite.

Provides reusable fixtures for:
- A small on-disk template library (components plus a variant overlay)
- Sample specification documents and the files they are loaded from
- A validated ``Specification`` and its hash
- Configs pointed at the temporary library
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from repogen.config import Config
from repogen.spec import Specification
from repogen.utils import sha256_bytes


# ---------------------------------------------------------------------------
# Template library
# ---------------------------------------------------------------------------

LIBRARY_FILES: dict[str, str] = {
    "base/README.md.tmpl": "# ${repo.name}\n\nPackage: ${derived.package_name}\n",
    "base/.gitignore.tmpl": "__pycache__/\n",
    "ci/.github/workflows/ci.yml.tmpl": (
        "name: ${repo.name}\n"
        "jobs:\n"
        "  test:\n"
        "    python: ${{ matrix.python-version }}\n"
    ),
    "python-app/src/app.py.tmpl": 'NAME = "${repo.name}"\n',
    "python-app/src/__init__.py.tmpl": "",
    "python-app/notes.txt": "not a template\n",
    "python/cli/src/cli.py.tmpl": "# cli for ${derived.package_name}\n",
}


def write_library(root: Path, files: dict[str, str]) -> Path:
    """Materialise a template library under *root*."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content.encode("utf-8"))
    return root


@pytest.fixture
def library(tmp_path: Path) -> Path:
    """Temporary template library with base, ci, python-app and a python/cli overlay."""
    return write_library(tmp_path / "library", LIBRARY_FILES)


@pytest.fixture
def config(library: Path) -> Config:
    """Config pointed at the temporary library."""
    return Config(templates_dir=library)


# ---------------------------------------------------------------------------
# Specifications
# ---------------------------------------------------------------------------


@pytest.fixture
def spec_dict() -> dict[str, Any]:
    """A minimal valid specification document."""
    return {
        "specVersion": "1",
        "repo": {"name": "Acme Widgets"},
        "archetype": {
            "type": "python",
            "components": ["base", "ci", "python-app"],
        },
    }


@pytest.fixture
def write_spec(tmp_path: Path):
    """Factory that writes a specification document and returns its path."""

    def _write(data: Any, name: str = "spec.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def spec_file(write_spec, spec_dict: dict[str, Any]) -> Path:
    """The minimal specification written to disk."""
    return write_spec(spec_dict)


@pytest.fixture
def spec(spec_dict: dict[str, Any]) -> Specification:
    return Specification.from_raw(spec_dict)


@pytest.fixture
def spec_hash(spec_dict: dict[str, Any]) -> str:
    return sha256_bytes(json.dumps(spec_dict).encode("utf-8"))


@pytest.fixture
def out_root(tmp_path: Path) -> Path:
    """Output root that does not exist yet."""
    return tmp_path / "out"


def _snapshot(root: Path) -> list[str]:
    if not root.exists():
        return []
    return sorted(p.relative_to(root).as_posix() for p in root.rglob("*"))


@pytest.fixture
def snapshot():
    """Returns a function listing every path under a root, sorted (empty if absent)."""
    return _snapshot


@pytest.fixture
def make_library(tmp_path: Path):
    """Factory that writes a custom template library and returns its root."""

    def _make(files: dict[str, str], name: str = "lib") -> Path:
        return write_library(tmp_path / name, files)

    return _make
