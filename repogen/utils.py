"""Shared utility functions for repogen.

Provides JSON output, content hashing, file-system helpers and Rich-based
console reporting.  Human-readable progress goes through the shared
``console``; when machine-readable output owns stdout, callers switch to
``err_console`` instead.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.rule import Rule
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Hashing
# ---------------------------------------------------------------------------


def sha256_bytes(data: bytes) -> str:
    """Return the lowercase hex SHA-256 digest of *data*."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: str | Path) -> str:
    """Hash a file's raw bytes (used to verify manifest entries)."""
    return sha256_bytes(Path(path).read_bytes())


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------


def dump_json(data: Any) -> str:
    """Serialise *data* deterministically as indented JSON with a trailing newline."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def save_json(data: Any, path: str | Path) -> Path:
    """Save data as pretty-printed JSON.

    Parent directories are created automatically.

    Returns:
        The path that was written.
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_bytes(dump_json(data).encode("utf-8"))
    return file_path


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def ensure_dir(path: str | Path) -> Path:
    """Create a directory (and parents) if it does not exist."""
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str, out: Console | None = None) -> None:
    """Print a full-width rule announcing a pipeline step."""
    out = out or console
    out.print(Rule(f"[bold bright_cyan] {title} [/bold bright_cyan]", style="bright_cyan"))


def print_summary_table(
    data: dict[str, Any], title: str = "Summary", out: Console | None = None
) -> None:
    """Print a two-column key/value summary table."""
    out = out or console
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(escape(key), escape(str(value)))

    out.print(table)


def print_success(message: str, out: Console | None = None) -> None:
    """Print a green success message."""
    (out or console).print(f"[bold green]{escape(message)}[/bold green]")


def print_error(message: str, out: Console | None = None) -> None:
    """Print a red error message (stderr by default)."""
    (out or err_console).print(f"[bold red]Error:[/bold red] {escape(message)}", highlight=False)


def print_warning(message: str, out: Console | None = None) -> None:
    """Print a yellow warning message."""
    (out or console).print(f"[bold yellow]{escape(message)}[/bold yellow]")
