"""repogen scaffolder -- the plan/apply generation engine.

Selects templates from the library, derives the placeholder context, builds a
side-effect-free ``Plan`` confined to the output root, and applies it under a
conflict policy while recording an integrity manifest.

Quick usage::

    from repogen.scaffolder import PlanApplier, build_plan, select_templates

    templates = select_templates(spec.archetype.components, library_root)
    plan = build_plan(spec, templates, "/tmp/acme", allow_paths=["src/**"])
    PlanApplier().apply(plan, "/tmp/acme", spec, spec_hash)
"""

from repogen.scaffolder.applier import ApplyResult, ConflictPolicy, PlanApplier
from repogen.scaffolder.context import build_context, resolve_path
from repogen.scaffolder.globs import GlobMatcher, compile_glob
from repogen.scaffolder.manifest import Manifest
from repogen.scaffolder.planner import Plan, WriteOperation, build_plan
from repogen.scaffolder.sandbox import resolve_destination
from repogen.scaffolder.selector import TemplateEntry, select_templates
from repogen.scaffolder.templates import TemplateRenderer

__all__ = [
    "ApplyResult",
    "ConflictPolicy",
    "GlobMatcher",
    "Manifest",
    "Plan",
    "PlanApplier",
    "TemplateEntry",
    "TemplateRenderer",
    "WriteOperation",
    "build_context",
    "build_plan",
    "compile_glob",
    "resolve_destination",
    "resolve_path",
    "select_templates",
]
