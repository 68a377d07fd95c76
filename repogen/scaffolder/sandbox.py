"""Destination-path containment.

Every planned destination must resolve strictly inside the output root.  The
check runs on canonical paths (symlinks resolved, case folded where the
platform is case-insensitive) so ``..`` segments, absolute paths and
symlinks leading out of the root are all rejected the same way.
"""

from __future__ import annotations

import os
from pathlib import Path

from repogen.errors import SecurityError


def canonical(path: str | Path) -> str:
    """Absolute, symlink-resolved, case-normalised form of *path*.

    The path does not need to exist.
    """
    return os.path.normcase(os.path.realpath(os.path.abspath(os.fspath(path))))


def normalize_relpath(rel: str) -> str:
    """Normalise separators to ``/`` and drop empty and ``.`` segments.

    ``..`` segments are preserved so the containment check can reject them.
    """
    parts = [p for p in rel.replace("\\", "/").split("/") if p not in ("", ".")]
    return "/".join(parts)


def resolve_destination(output_root: str | Path, rel: str) -> Path:
    """Join *rel* under *output_root* and verify strict containment.

    Returns:
        The canonical absolute destination path.

    Raises:
        SecurityError: If the destination is the root itself or lies outside it.
    """
    root_real = os.path.realpath(os.path.abspath(os.fspath(output_root)))
    dest_real = os.path.realpath(os.path.join(root_real, rel))

    root = os.path.normcase(root_real)
    prefix = root if root.endswith(os.sep) else root + os.sep
    if not os.path.normcase(dest_real).startswith(prefix):
        raise SecurityError(
            f"Destination {rel!r} resolves outside the output root {os.fspath(output_root)!r}"
        )
    return Path(dest_real)
