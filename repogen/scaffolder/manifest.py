"""Integrity manifest written after every apply.

The manifest records which files an apply actually wrote, each with the
SHA-256 of the bytes on disk, together with the specification hash, the tool
version and the archetype that produced them.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from repogen.utils import save_json

MANIFEST_VERSION = 1


class ManifestFile(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    path: str
    content_hash: str = Field(..., alias="contentHash")


class ToolInfo(BaseModel):
    name: str = "repogen"
    version: str


class ArchetypeInfo(BaseModel):
    type: str
    variant: Optional[str] = None


class Manifest(BaseModel):
    """Serialised to ``<output root>/.repogen/manifest.json``."""

    model_config = ConfigDict(populate_by_name=True)

    manifest_version: int = Field(default=MANIFEST_VERSION, alias="manifestVersion")
    tool: ToolInfo
    spec_hash: str = Field(..., alias="specHash")
    applied_at: str = Field(..., alias="appliedAt")
    archetype: ArchetypeInfo
    components: list[str] = Field(default_factory=list)
    files: list[ManifestFile] = Field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def write(self, path: str | Path) -> Path:
        """Write the manifest as indented JSON, replacing any previous one."""
        return save_json(self.to_dict(), path)

    @classmethod
    def read(cls, path: str | Path) -> "Manifest":
        return cls.model_validate_json(Path(path).read_bytes())


def utc_timestamp() -> str:
    """Current UTC time in ISO-8601 with a ``Z`` suffix, second precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")
