"""Specification loading, validation and models.

Quick usage::

    from repogen.spec import Specification, load_specification, validate_spec

    raw, spec_hash = load_specification("repo.json")
    validate_spec(raw, strict=True)
    spec = Specification.from_raw(raw)
"""

from repogen.spec.models import ArchetypeSpec, RepoSpec, Specification
from repogen.spec.validator import (
    DEFAULT_ALLOWED_KEYS,
    AllowedKeys,
    load_specification,
    validate_spec,
)

__all__ = [
    "DEFAULT_ALLOWED_KEYS",
    "AllowedKeys",
    "ArchetypeSpec",
    "RepoSpec",
    "Specification",
    "load_specification",
    "validate_spec",
]
