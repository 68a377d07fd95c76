"""Placeholder-resolution context.

The context is a plain JSON-shaped value: ``None``, a scalar, a mapping of
``str`` to value, or a list of values.  ``resolve_path`` is the single
recursive lookup over those shapes; it does not care where the data came
from.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Mapping, Sequence
from typing import Any

from repogen.spec.models import Specification


class _Missing:
    """Sentinel for a dotted path that does not resolve."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def package_name(repo_name: str) -> str:
    """Derive a Python-identifier-safe package name from a repository name.

    E.g. ``'Acme  Widgets!'`` -> ``'acme_widgets'``.
    """
    slug = re.sub(r"[^a-z0-9]+", "_", repo_name.lower())
    return slug.strip("_")


def build_context(spec: Specification) -> dict[str, Any]:
    """Build the placeholder context for *spec*.

    Keys whose value is ``None`` (an absent ``variant``, ``description`` or
    ``features``) are omitted so that placeholders referring to them fail to
    resolve instead of rendering ``null``.
    """
    repo = spec.repo.model_dump(exclude_none=True)
    archetype = spec.archetype.model_dump(exclude_none=True)
    archetype["components"] = list(spec.archetype.components)

    return {
        "repo": repo,
        "archetype": copy.deepcopy(archetype),
        "params": copy.deepcopy(dict(spec.params)),
        "derived": {
            "package_name": package_name(spec.repo.name),
        },
    }


def resolve_path(context: Any, dotted: str) -> Any:
    """Resolve a dotted path such as ``repo.name`` or ``archetype.components.0``.

    Mappings are descended by key, sequences by integer index.  Returns
    ``MISSING`` if any segment cannot be found.
    """
    current = context
    for segment in dotted.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            if not segment.isdigit():
                return MISSING
            index = int(segment)
            if index >= len(current):
                return MISSING
            current = current[index]
        else:
            return MISSING
    return current
