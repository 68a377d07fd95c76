"""Generation plan construction.

``build_plan`` turns a validated specification and its selected templates
into an immutable :class:`Plan`: the directories an apply must create, the
files it will write (and from which template), and the destinations that
already exist.  Building a plan reads templates and stats destinations but
never writes to the filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from repogen.errors import SecurityError, ValidationError
from repogen.scaffolder.context import MISSING, build_context, resolve_path
from repogen.scaffolder.globs import compile_globs
from repogen.scaffolder.sandbox import normalize_relpath, resolve_destination
from repogen.scaffolder.selector import TemplateEntry
from repogen.scaffolder.templates import TemplateRenderer, read_template
from repogen.spec.models import Specification


# ---------------------------------------------------------------------------
# Plan models
# ---------------------------------------------------------------------------


class WriteOperation(BaseModel):
    """A single planned file write, as reported to the user."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Destination relative to the output root")
    template: str = Field(..., description="Template identity it is rendered from")


class PlanSummary(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mkdir: int = 0
    write_file: int = Field(default=0, alias="writeFile")
    conflicts: int = 0


@dataclass(frozen=True)
class PlannedWrite:
    """Internal counterpart of a ``WriteOperation`` with absolute paths."""

    relpath: str
    destination: Path
    source: Path
    template: str


class Plan(BaseModel):
    """The side-effect-free description of what an apply would do."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mkdir: list[str] = Field(default_factory=list)
    write_file: list[WriteOperation] = Field(default_factory=list, alias="writeFile")
    conflicts: list[str] = Field(default_factory=list)
    summary: PlanSummary = Field(default_factory=PlanSummary)

    _writes: list[PlannedWrite] = PrivateAttr(default_factory=list)

    @property
    def writes(self) -> list[PlannedWrite]:
        """Planned writes with resolved filesystem paths, in write order."""
        return list(self._writes)

    def to_dict(self) -> dict[str, Any]:
        """Public JSON form (camelCase keys, private paths excluded)."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Plan construction
# ---------------------------------------------------------------------------


def destination_relpath(entry: TemplateEntry, suffix: str) -> str:
    """Strip the template suffix from *entry*'s relative path and normalise it."""
    rel = entry.relpath
    if suffix and rel.endswith(suffix):
        rel = rel[: -len(suffix)]
    return normalize_relpath(rel)


def build_plan(
    spec: Specification,
    templates: list[TemplateEntry],
    output_root: str | Path,
    allow_paths: list[str] | None = None,
    strict: bool = False,
    suffix: str = ".tmpl",
) -> Plan:
    """Build the generation plan for *spec*.

    Args:
        spec: Validated specification.
        templates: Entries from :func:`select_templates`, in selection order.
        output_root: Directory the plan targets.  It need not exist.
        allow_paths: Optional allow-list globs; every destination must match one.
        strict: Resolve placeholders now and reject unused ``params`` keys.
        suffix: Template suffix stripped from destination names.

    Raises:
        SecurityError: A destination escapes the root or fails the allow-list.
        ValidationError: Strict-mode placeholder or parameter problems.
    """
    context = build_context(spec)
    matchers = compile_globs(allow_paths)

    mkdirs: set[str] = set()
    writes: list[PlannedWrite] = []
    index_by_rel: dict[str, int] = {}
    conflicts: list[str] = []

    for entry in templates:
        rel = destination_relpath(entry, suffix)
        if not rel:
            raise SecurityError(f"Template {entry.identity} maps to the output root itself")
        destination = resolve_destination(output_root, rel)

        if matchers and not any(m.matches(rel) for m in matchers):
            raise SecurityError(
                f"Destination {rel!r} is not permitted by --allow-path "
                f"({', '.join(m.pattern for m in matchers)})"
            )

        parent = rel.rpartition("/")[0]
        if parent:
            mkdirs.add(parent)

        if destination.exists() and rel not in conflicts:
            conflicts.append(rel)

        planned = PlannedWrite(
            relpath=rel, destination=destination, source=entry.source, template=entry.identity
        )
        if rel in index_by_rel:
            # A later template (typically a variant overlay) replaces the earlier one.
            writes[index_by_rel[rel]] = planned
        else:
            index_by_rel[rel] = len(writes)
            writes.append(planned)

    # Only templates that survive overlay replacement are checked.
    referenced: list[str] = []
    for write in writes:
        tokens = TemplateRenderer.placeholders(read_template(write.source))
        referenced.extend(tokens)
        if strict:
            for dotted in tokens:
                if resolve_path(context, dotted) is MISSING:
                    raise ValidationError(
                        f"Unresolved placeholder ${{{dotted}}} in template {write.template}"
                    )

    if strict and spec.params:
        _check_unused_params(spec.params, referenced)

    ordered_dirs = sorted(mkdirs)
    for blocker in _blocked_dirs(output_root, ordered_dirs):
        if blocker not in conflicts:
            conflicts.append(blocker)

    plan = Plan(
        mkdir=ordered_dirs,
        write_file=[WriteOperation(path=w.relpath, template=w.template) for w in writes],
        conflicts=conflicts,
        summary=PlanSummary(mkdir=len(ordered_dirs), write_file=len(writes), conflicts=len(conflicts)),
    )
    plan._writes = writes
    return plan


def _blocked_dirs(output_root: str | Path, dirs: list[str]) -> list[str]:
    """Return planned directory paths (or their ancestors) occupied by a non-directory."""
    blocked: list[str] = []
    for rel in dirs:
        parts = rel.split("/")
        for depth in range(1, len(parts) + 1):
            prefix = "/".join(parts[:depth])
            path = Path(output_root) / prefix
            if path.exists() and not path.is_dir():
                if prefix not in blocked:
                    blocked.append(prefix)
                break
    return blocked


def _check_unused_params(params: dict[str, Any], referenced: list[str]) -> None:
    used: set[str] = set()
    for dotted in referenced:
        head, _, rest = dotted.partition(".")
        if head != "params":
            continue
        if not rest:
            return
        used.add(rest.split(".", 1)[0])

    unused = [key for key in params if key not in used]
    if unused:
        raise ValidationError(
            f"Parameter 'params.{unused[0]}' is not referenced by any template"
        )
