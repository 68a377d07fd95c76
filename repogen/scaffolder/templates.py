"""Placeholder rendering for template files.

Provides the TemplateRenderer class, which substitutes ``${dotted.path}``
tokens in template text with values looked up in the generation context.
Only that exact token shape is recognised, so other dollar-brace syntax in
template files (GitHub Actions ``${{ expr }}``, shell ``${VAR:-x}``) passes
through untouched.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from repogen.errors import UnresolvedPlaceholderError
from repogen.scaffolder.context import MISSING, resolve_path

PLACEHOLDER_RE = re.compile(r"\$\{([A-Za-z0-9_-]+(?:\.[A-Za-z0-9_-]+)*)\}")


# ---------------------------------------------------------------------------
# TemplateRenderer
# ---------------------------------------------------------------------------


class TemplateRenderer:
    """Renders repogen templates against a context mapping.

    Rendering is strict: the first placeholder that does not resolve raises
    :class:`~repogen.errors.UnresolvedPlaceholderError`.  There is no
    fallback that leaves the token in place.
    """

    # -- Scanning ------------------------------------------------------------

    @staticmethod
    def placeholders(text: str) -> list[str]:
        """Return the dotted paths of every placeholder in *text*, in order."""
        return [m.group(1) for m in PLACEHOLDER_RE.finditer(text)]

    # -- Rendering -----------------------------------------------------------

    def render(self, text: str, context: dict[str, Any], template: str | None = None) -> str:
        """Render *text* with *context*.

        Args:
            text: Template content.
            context: Placeholder context (see :func:`build_context`).
            template: Template identity, used only in error messages.

        Returns:
            The rendered content.
        """

        def replace(match: re.Match[str]) -> str:
            dotted = match.group(1)
            value = resolve_path(context, dotted)
            if value is MISSING:
                raise UnresolvedPlaceholderError(dotted, template)
            return format_value(value)

        return PLACEHOLDER_RE.sub(replace, text)

    def render_file(
        self, path: str | Path, context: dict[str, Any], template: str | None = None
    ) -> str:
        """Read a template from disk and render it.

        The file is decoded from raw UTF-8 bytes so line endings survive
        unchanged on every platform.
        """
        return self.render(read_template(path), context, template)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def read_template(path: str | Path) -> str:
    """Read template text as UTF-8 without newline translation."""
    return Path(path).read_bytes().decode("utf-8")


def format_value(value: Any) -> str:
    """Render a resolved context value as text.

    Scalars render plainly (booleans as ``true``/``false``, ``None`` as
    ``null``); mappings and sequences render as compact JSON.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, (dict, list, tuple, bool)) or value is None:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)
