"""repogen configuration.

Centralised, typed configuration for the plan/apply engine.  Settings use a
Pydantic v2 model so they are validated at construction time and can be
overridden from environment variables without boiler-plate.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from repogen import __version__

_DEFAULT_TEMPLATES_DIR = Path(__file__).parent / "library"

SUPPORTED_SPEC_VERSION = "1"


class Config(BaseModel):
    """Global repogen configuration.

    Instances are typically created once by the CLI entry point and passed
    through the ``Pipeline`` to the selector, planner and applier.
    """

    templates_dir: Path = Field(
        default=_DEFAULT_TEMPLATES_DIR,
        description="Root of the template library (one subdirectory per component)",
    )
    template_suffix: str = Field(
        default=".tmpl",
        min_length=1,
        description="Suffix marking a file as a template; stripped from destinations",
    )
    spec_version: str = Field(default=SUPPORTED_SPEC_VERSION)
    meta_dir: str = Field(default=".repogen", description="Metadata directory under the output root")
    manifest_name: str = Field(default="manifest.json")

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def tool_version(self) -> str:
        """Version string recorded in every manifest."""
        return __version__

    def manifest_path(self, output_root: str | Path) -> Path:
        """Path of the integrity manifest for *output_root*."""
        return Path(output_root) / self.meta_dir / self.manifest_name

    def manifest_relpath(self) -> str:
        """Manifest location relative to the output root, POSIX form."""
        return f"{self.meta_dir}/{self.manifest_name}"

    # ------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a ``Config`` from environment variables.

        Recognised variables (all optional):
            REPOGEN_TEMPLATES_DIR, REPOGEN_TEMPLATE_SUFFIX.

        Keyword *overrides* that are not ``None`` win over the environment.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("REPOGEN_TEMPLATES_DIR"):
            kwargs["templates_dir"] = Path(os.environ["REPOGEN_TEMPLATES_DIR"])
        if os.environ.get("REPOGEN_TEMPLATE_SUFFIX"):
            kwargs["template_suffix"] = os.environ["REPOGEN_TEMPLATE_SUFFIX"]
        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**kwargs)
