"""Plan execution.

``PlanApplier`` carries out an approved :class:`~repogen.scaffolder.planner.Plan`
against the filesystem, file by file and in plan order.  Destinations are
re-checked at write time because the tree may have changed since planning;
no lock is taken between the two passes.  Apply is not transactional:
files written before a failure stay on disk.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from repogen.config import Config
from repogen.errors import ConflictError, UsageError
from repogen.scaffolder.context import build_context
from repogen.scaffolder.manifest import (
    ArchetypeInfo,
    Manifest,
    ManifestFile,
    ToolInfo,
    utc_timestamp,
)
from repogen.scaffolder.planner import Plan
from repogen.scaffolder.sandbox import resolve_destination
from repogen.scaffolder.templates import TemplateRenderer
from repogen.spec.models import Specification
from repogen.utils import ensure_dir, sha256_bytes


class ConflictPolicy(str, Enum):
    """What to do when a planned destination already exists."""

    FAIL = "fail"
    SKIP = "skip"
    OVERWRITE = "overwrite"
    PROMPT = "prompt"


PromptFn = Callable[[str], bool]


@dataclass
class ApplyResult:
    """Outcome of an apply: what was written, what was skipped, and the manifest."""

    written: list[ManifestFile] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    manifest_path: Path | None = None


class PlanApplier:
    """Executes plans and records the integrity manifest.

    Args:
        config: Supplies the manifest location and tool version.
        renderer: Renderer used for every write; a default one is created
            when omitted.
    """

    def __init__(self, config: Config | None = None, renderer: TemplateRenderer | None = None) -> None:
        self.config = config or Config()
        self.renderer = renderer or TemplateRenderer()

    def apply(
        self,
        plan: Plan,
        output_root: str | Path,
        spec: Specification,
        spec_hash: str,
        policy: ConflictPolicy | str = ConflictPolicy.FAIL,
        force: bool = False,
        prompt: PromptFn | None = None,
    ) -> ApplyResult:
        """Apply *plan* under *output_root*.

        Args:
            plan: The plan to execute.
            output_root: Target directory; created when absent.
            spec: The specification the plan was built from.
            spec_hash: Hash of the specification document for the manifest.
            policy: Conflict policy for destinations that already exist.
            force: Required when *policy* is ``overwrite``.
            prompt: Asks the operator whether to overwrite a path.  ``None``
                means there is no interactive input, in which case the
                ``prompt`` policy behaves like ``fail``.

        Raises:
            UsageError: ``overwrite`` without *force*.
            ConflictError: A destination exists under ``fail`` (or a
                non-interactive ``prompt``), or a file occupies a planned
                directory.

        Whatever aborts the loop, the manifest for the files written so far
        is saved before the error propagates.
        """
        policy = ConflictPolicy(policy)
        if policy is ConflictPolicy.OVERWRITE and not force:
            raise UsageError("Conflict policy 'overwrite' requires --force")

        root = Path(output_root)
        ensure_dir(root)

        result = ApplyResult()
        try:
            self._make_dirs(root, plan.mkdir)
            for write in plan.writes:
                if write.destination.exists() and not self._may_overwrite(
                    write.relpath, policy, prompt
                ):
                    result.skipped.append(write.relpath)
                    continue

                context = build_context(spec)
                rendered = self.renderer.render_file(write.source, context, write.template)
                data = rendered.encode("utf-8")
                write.destination.parent.mkdir(parents=True, exist_ok=True)
                write.destination.write_bytes(data)
                result.written.append(
                    ManifestFile(path=write.relpath, content_hash=sha256_bytes(data))
                )
        except Exception:
            result.manifest_path = self._write_manifest(root, spec, spec_hash, result.written)
            raise

        result.manifest_path = self._write_manifest(root, spec, spec_hash, result.written)
        return result

    # -- Internal ------------------------------------------------------------

    @staticmethod
    def _make_dirs(root: Path, dirs: list[str]) -> None:
        for rel in dirs:
            try:
                ensure_dir(root / rel)
            except (FileExistsError, NotADirectoryError):
                raise ConflictError(
                    f"Cannot create directory {rel}: a file is in the way", path=rel
                ) from None

    @staticmethod
    def _may_overwrite(rel: str, policy: ConflictPolicy, prompt: PromptFn | None) -> bool:
        """Decide an existing destination's fate; raises under ``fail``."""
        if policy is ConflictPolicy.OVERWRITE:
            return True
        if policy is ConflictPolicy.SKIP:
            return False
        if policy is ConflictPolicy.PROMPT and prompt is not None:
            return bool(prompt(rel))
        reason = "" if policy is ConflictPolicy.FAIL else " (no interactive input to prompt)"
        raise ConflictError(f"Destination already exists: {rel}{reason}", path=rel)

    def _write_manifest(
        self,
        root: Path,
        spec: Specification,
        spec_hash: str,
        written: list[ManifestFile],
    ) -> Path:
        manifest = Manifest(
            tool=ToolInfo(version=self.config.tool_version),
            spec_hash=spec_hash,
            applied_at=utc_timestamp(),
            archetype=ArchetypeInfo(type=spec.archetype.type, variant=spec.archetype.variant),
            components=spec.archetype.resolved_components(),
            files=list(written),
        )
        # The manifest obeys the same containment rule as generated files.
        return manifest.write(resolve_destination(root, self.config.manifest_relpath()))
