"""Exception hierarchy for repogen.

Every error raised by the plan/apply engine derives from ``RepogenError`` and
carries the process exit code the CLI reports for it.  Anything else that
escapes is wrapped as an ``InternalError`` by the entry point.
"""

from __future__ import annotations


class RepogenError(Exception):
    """Base class for all expected repogen failures."""

    exit_code: int = 5
    kind: str = "RepogenError"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, object]:
        """Structured form used by ``--format json`` error output."""
        return {
            "type": self.kind,
            "message": self.message,
            "exitCode": self.exit_code,
        }


class ValidationError(RepogenError):
    """Malformed specification, unresolved strict placeholder, or unused parameter."""

    exit_code = 2
    kind = "ValidationError"


class UnresolvedPlaceholderError(ValidationError):
    """A ``${dotted.path}`` token could not be resolved against the context."""

    kind = "UnresolvedPlaceholder"

    def __init__(self, placeholder: str, template: str | None = None) -> None:
        self.placeholder = placeholder
        self.template = template
        where = f" in template {template}" if template else ""
        super().__init__(f"Unresolved placeholder ${{{placeholder}}}{where}")


class UsageError(RepogenError):
    """Missing or contradictory command-line flags."""

    exit_code = 2
    kind = "UsageError"


class SecurityError(RepogenError):
    """A destination escapes the output root or is rejected by the allow-path list."""

    exit_code = 2
    kind = "SecurityError"


class ConflictError(RepogenError):
    """A destination already exists and the conflict policy forbids touching it."""

    exit_code = 3
    kind = "ConflictError"

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class MissingComponentError(RepogenError):
    """The template library has no directory for a declared component."""

    exit_code = 4
    kind = "MissingComponentError"

    def __init__(self, component: str, library_root: str | None = None) -> None:
        self.component = component
        where = f" under {library_root}" if library_root else ""
        super().__init__(f"Template component not found: {component!r}{where}")


class InternalError(RepogenError):
    """Unexpected failure, reported generically."""

    exit_code = 5
    kind = "InternalError"
