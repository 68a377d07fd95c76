"""Template discovery for an archetype's component selection.

The template library is a directory with one subdirectory per component.
Every file under a component directory whose name ends in the template
suffix is a template; its path relative to the component directory (minus
the suffix) is where it lands in the generated repository.  An archetype may
also declare a variant: when ``<type>/<variant>/`` exists in the library, its
templates are layered on top.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from repogen.errors import MissingComponentError


@dataclass(frozen=True)
class TemplateEntry:
    """One template file discovered in the library."""

    source: Path
    root: str
    relpath: str

    @property
    def identity(self) -> str:
        """Library-relative identity used in plan reports, e.g. ``base/README.md.tmpl``."""
        return f"{self.root}/{self.relpath}"


def _within(library_root: Path, candidate: Path) -> bool:
    root = os.path.normcase(os.path.realpath(library_root))
    target = os.path.normcase(os.path.realpath(candidate))
    return target.startswith(root.rstrip(os.sep) + os.sep)


def _scan(directory: Path, root_name: str, suffix: str) -> list[TemplateEntry]:
    """Return all template files under *directory*, sorted by relative path."""
    entries = [
        TemplateEntry(
            source=path,
            root=root_name,
            relpath=path.relative_to(directory).as_posix(),
        )
        for path in directory.rglob(f"*{suffix}")
        if path.is_file()
    ]
    return sorted(entries, key=lambda e: e.relpath)


def select_templates(
    components: list[str] | tuple[str, ...],
    library_root: str | Path,
    archetype_type: str | None = None,
    variant: str | None = None,
    suffix: str = ".tmpl",
) -> list[TemplateEntry]:
    """Resolve the ordered template entries for a component selection.

    Args:
        components: Component names in declaration order.  Duplicates must
            each resolve but contribute their templates only once.
        library_root: Template library directory.
        archetype_type: Archetype type, used to locate the variant overlay.
        variant: Optional overlay variant; silently ignored when absent.
        suffix: Template file suffix.

    Raises:
        MissingComponentError: If a component has no directory in the library.
    """
    root = Path(library_root)
    selected: list[TemplateEntry] = []
    seen: set[tuple[str, str]] = set()

    def add(entries: list[TemplateEntry]) -> None:
        for entry in entries:
            key = (entry.root, entry.relpath)
            if key not in seen:
                seen.add(key)
                selected.append(entry)

    for component in components:
        component_dir = root / component
        if not _within(root, component_dir) or not component_dir.is_dir():
            raise MissingComponentError(component, str(root))
        add(_scan(component_dir, component, suffix))

    if archetype_type and variant:
        overlay_dir = root / archetype_type / variant
        if _within(root, overlay_dir) and overlay_dir.is_dir():
            add(_scan(overlay_dir, f"{archetype_type}/{variant}", suffix))

    return selected
