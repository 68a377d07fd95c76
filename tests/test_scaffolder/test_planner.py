"""Tests for plan construction.

Covers:
- Destination derivation, write order, mkdir set and summary
- Plan JSON shape and reproducibility
- Sandbox and allow-path enforcement
- Conflict detection
- Strict-mode placeholder and unused-parameter checks
- Overlay replacement and the no-mutation guarantee
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from repogen.errors import SecurityError, ValidationError
from repogen.scaffolder.planner import build_plan, destination_relpath
from repogen.scaffolder.selector import TemplateEntry, select_templates
from repogen.spec import Specification

pytestmark = pytest.mark.unit

ALL = ["base", "ci", "python-app"]


def _plan(spec, library, out_root, **kwargs):
    templates = select_templates(
        spec.archetype.components,
        library,
        archetype_type=spec.archetype.type,
        variant=spec.archetype.variant,
    )
    return build_plan(spec, templates, out_root, **kwargs)


class TestDestinationRelpath:
    def test_suffix_removed(self):
        entry = TemplateEntry(source=Path("x"), root="base", relpath="docs/guide.md.tmpl")
        assert destination_relpath(entry, ".tmpl") == "docs/guide.md"

    def test_separators_normalised(self):
        entry = TemplateEntry(source=Path("x"), root="base", relpath="docs\\guide.md.tmpl")
        assert destination_relpath(entry, ".tmpl") == "docs/guide.md"


class TestBuildPlan:
    def test_write_order_and_identity(self, spec, library, out_root):
        plan = _plan(spec, library, out_root)
        assert [(op.path, op.template) for op in plan.write_file] == [
            (".gitignore", "base/.gitignore.tmpl"),
            ("README.md", "base/README.md.tmpl"),
            (".github/workflows/ci.yml", "ci/.github/workflows/ci.yml.tmpl"),
            ("src/__init__.py", "python-app/src/__init__.py.tmpl"),
            ("src/app.py", "python-app/src/app.py.tmpl"),
        ]

    def test_mkdir_sorted_and_deduplicated(self, spec, library, out_root):
        plan = _plan(spec, library, out_root)
        assert plan.mkdir == [".github/workflows", "src"]

    def test_summary(self, spec, library, out_root):
        plan = _plan(spec, library, out_root)
        assert plan.summary.mkdir == 2
        assert plan.summary.write_file == 5
        assert plan.summary.conflicts == 0

    def test_json_shape(self, spec, library, out_root):
        data = _plan(spec, library, out_root).to_dict()
        assert set(data) == {"mkdir", "writeFile", "conflicts", "summary"}
        assert data["summary"] == {"mkdir": 2, "writeFile": 5, "conflicts": 0}
        assert data["writeFile"][0] == {"path": ".gitignore", "template": "base/.gitignore.tmpl"}

    def test_private_writes_not_serialised(self, spec, library, out_root):
        plan = _plan(spec, library, out_root)
        assert str(library) not in json.dumps(plan.to_dict())
        assert [w.relpath for w in plan.writes] == [op.path for op in plan.write_file]
        assert plan.writes[-1].source == library / "python-app" / "src" / "app.py.tmpl"

    def test_plan_does_not_touch_filesystem(self, spec, library, out_root, snapshot):
        before = snapshot(library)
        _plan(spec, library, out_root)
        assert not out_root.exists()
        assert snapshot(library) == before

    def test_reproducible(self, spec, library, out_root):
        first = _plan(spec, library, out_root).to_dict()
        second = _plan(spec, library, out_root).to_dict()
        assert json.dumps(first) == json.dumps(second)


class TestConflicts:
    def test_existing_file_reported(self, spec, library, out_root):
        (out_root / "src").mkdir(parents=True)
        (out_root / "src" / "app.py").write_text("old", encoding="utf-8")
        plan = _plan(spec, library, out_root)
        assert plan.conflicts == ["src/app.py"]
        assert plan.summary.conflicts == 1
        # Informational only: the write is still planned.
        assert "src/app.py" in [op.path for op in plan.write_file]

    def test_file_occupying_planned_directory(self, spec, library, out_root):
        out_root.mkdir()
        (out_root / "src").write_text("not a directory", encoding="utf-8")
        plan = _plan(spec, library, out_root)
        assert plan.conflicts == ["src"]
        assert "src" in plan.mkdir

    def test_file_occupying_ancestor_directory(self, spec, library, out_root):
        out_root.mkdir()
        (out_root / ".github").write_text("", encoding="utf-8")
        plan = _plan(spec, library, out_root)
        assert plan.conflicts == [".github"]

    def test_idempotent_with_conflicts(self, spec, library, out_root):
        out_root.mkdir()
        (out_root / "README.md").write_text("old", encoding="utf-8")
        first = _plan(spec, library, out_root)
        second = _plan(spec, library, out_root)
        assert first.conflicts == second.conflicts == ["README.md"]
        assert first.mkdir == second.mkdir
        assert first.write_file == second.write_file


class TestAllowPaths:
    def test_rejects_destination_outside_allow_list(self, spec, library, out_root):
        with pytest.raises(SecurityError, match="is not permitted by --allow-path"):
            _plan(spec, library, out_root, allow_paths=["src/**"])

    def test_readme_rejected_by_src_glob(self, make_library, out_root, spec_dict):
        lib = make_library(
            {"base/README.md.tmpl": "# \n", "python-app/src/app.py.tmpl": "x\n"}
        )
        spec_dict["archetype"]["components"] = ["python-app", "base"]
        spec = Specification.from_raw(spec_dict)
        with pytest.raises(SecurityError, match=r"'README.md' is not permitted"):
            _plan(spec, lib, out_root, allow_paths=["src/**"])

    def test_accepts_matching_destination(self, spec_dict, library, out_root):
        spec_dict["archetype"]["components"] = ["python-app"]
        spec = Specification.from_raw(spec_dict)
        plan = _plan(spec, library, out_root, allow_paths=["src/**"])
        assert "src/app.py" in [op.path for op in plan.write_file]

    def test_any_glob_may_match(self, spec, library, out_root):
        plan = _plan(spec, library, out_root, allow_paths=["src/**", ".github/**", "*"])
        assert plan.summary.write_file == 5


class TestSandbox:
    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
    def test_symlinked_directory_escaping_root_is_fatal(self, spec, library, tmp_path, out_root):
        outside = tmp_path / "outside"
        outside.mkdir()
        out_root.mkdir()
        try:
            (out_root / "src").symlink_to(outside, target_is_directory=True)
        except OSError:
            pytest.skip("cannot create symlinks here")
        with pytest.raises(SecurityError, match="outside the output root"):
            _plan(spec, library, out_root)
        assert list(outside.iterdir()) == []


class TestStrict:
    def test_unresolved_placeholder_fails_in_strict_mode(self, make_library, out_root, spec_dict):
        lib = make_library({"base/README.md.tmpl": "${params.unknown}\n"})
        spec_dict["archetype"]["components"] = ["base"]
        spec_obj = Specification.from_raw(spec_dict)
        with pytest.raises(ValidationError, match=r"params\.unknown.*base/README\.md\.tmpl"):
            _plan(spec_obj, lib, out_root, strict=True)

    def test_unresolved_placeholder_tolerated_at_plan_time_when_not_strict(self, make_library, out_root, spec_dict):
        lib = make_library({"base/README.md.tmpl": "${params.unknown}\n"})
        spec_dict["archetype"]["components"] = ["base"]
        plan = _plan(Specification.from_raw(spec_dict), lib, out_root)
        assert plan.summary.write_file == 1

    def test_unused_param_fails_only_in_strict_mode(self, spec_dict, library, out_root):
        spec_dict["params"] = {"unused": 1}
        spec = Specification.from_raw(spec_dict)
        _plan(spec, library, out_root)
        with pytest.raises(ValidationError, match="params.unused"):
            _plan(spec, library, out_root, strict=True)

    def test_referenced_params_pass(self, make_library, out_root, spec_dict):
        lib = make_library({"base/LICENSE.tmpl": "${params.license} ${params.owner.name}\n"})
        spec_dict["archetype"]["components"] = ["base"]
        spec_dict["params"] = {"license": "MIT", "owner": {"name": "Acme"}}
        plan = _plan(Specification.from_raw(spec_dict), lib, out_root, strict=True)
        assert plan.write_file[0].path == "LICENSE"

    def test_whole_params_reference_uses_every_key(self, make_library, out_root, spec_dict):
        lib = make_library({"base/params.json.tmpl": "${params}\n"})
        spec_dict["archetype"]["components"] = ["base"]
        spec_dict["params"] = {"a": 1, "b": 2}
        _plan(Specification.from_raw(spec_dict), lib, out_root, strict=True)


class TestOverlay:
    def test_variant_replaces_same_destination_in_place(self, make_library, out_root, spec_dict):
        lib = make_library(
            {
                "base/README.md.tmpl": "base\n",
                "base/setup.cfg.tmpl": "cfg\n",
                "python/cli/README.md.tmpl": "cli\n",
            }
        )
        spec_dict["archetype"] = {"type": "python", "variant": "cli", "components": ["base"]}
        plan = _plan(Specification.from_raw(spec_dict), lib, out_root)
        assert [(op.path, op.template) for op in plan.write_file] == [
            ("README.md", "python/cli/README.md.tmpl"),
            ("setup.cfg", "base/setup.cfg.tmpl"),
        ]

    def test_replaced_template_params_do_not_count_as_used(self, make_library, out_root, spec_dict):
        lib = make_library(
            {
                "base/src/cli.py.tmpl": "${params.banner}\n",
                "python/cli/src/cli.py.tmpl": "# ${repo.name}\n",
            }
        )
        spec_dict["archetype"] = {"type": "python", "variant": "cli", "components": ["base"]}
        spec_dict["params"] = {"banner": "hi"}
        spec = Specification.from_raw(spec_dict)
        plan = _plan(spec, lib, out_root)
        assert [(op.path, op.template) for op in plan.write_file] == [
            ("src/cli.py", "python/cli/src/cli.py.tmpl")
        ]
        with pytest.raises(ValidationError, match="params.banner"):
            _plan(spec, lib, out_root, strict=True)

    def test_replaced_template_placeholders_not_checked(self, make_library, out_root, spec_dict):
        lib = make_library(
            {
                "base/src/cli.py.tmpl": "${params.unknown}\n",
                "python/cli/src/cli.py.tmpl": "# ${repo.name}\n",
            }
        )
        spec_dict["archetype"] = {"type": "python", "variant": "cli", "components": ["base"]}
        plan = _plan(Specification.from_raw(spec_dict), lib, out_root, strict=True)
        assert plan.summary.write_file == 1
