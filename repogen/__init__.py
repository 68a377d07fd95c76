"""repogen -- spec-driven repository scaffolder with a plan/apply engine."""

__version__ = "0.4.0"
