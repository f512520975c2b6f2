"""
Console output utilities for nuresolve using Rich.

This module provides user-facing output helpers for CLI commands.
For diagnostic or debug output, use :mod:`nuresolve.utils.logger`.

Guidelines:
- print_* functions: user-facing status messages
- print_table / print_forest / print_json: structured CLI output
- Logging should never go through this module
"""

from __future__ import annotations

import os
import sys
import json
import threading
from typing import Any, Callable, Dict, List, Optional, Sequence

from rich.tree import Tree
from rich.table import Table
from rich.theme import Theme
from rich.markup import escape
from rich.console import Console

from nuresolve.models.identifier import PackageReference, Scope, Severity

# ---------------------------------------------------------------------------
# Theme configuration
# ---------------------------------------------------------------------------

NURESOLVE_THEME = Theme(
    {
        "success": "bold green",
        "error": "bold red",
        "warning": "bold yellow",
        "info": "bold cyan",
        "dim": "dim",
        "highlight": "bold magenta",
    }
)

# ---------------------------------------------------------------------------
# Console lifecycle management
# ---------------------------------------------------------------------------

_console: Optional[Console] = None
_console_lock = threading.Lock()


def _should_use_color() -> bool:
    """Return True if colored output should be enabled."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("CI"):
        return False
    try:
        return sys.stdout.isatty()
    except (AttributeError, OSError):
        return False


def _get_console() -> Console:
    """Return a singleton Rich Console instance."""
    global _console

    if _console is None:
        with _console_lock:
            if _console is None:
                use_color = _should_use_color()
                _console = Console(
                    theme=NURESOLVE_THEME,
                    no_color=not use_color,
                    highlight=use_color,
                )
    return _console


def reconfigure_console() -> None:
    """Reset the global console instance.

    Call after changing ``NO_COLOR`` so the next output picks it up.
    """
    global _console
    with _console_lock:
        _console = None


def get_raw_console() -> Console:
    """Return the underlying Rich Console instance."""
    return _get_console()


# ---------------------------------------------------------------------------
# Status message helpers
# ---------------------------------------------------------------------------


def print_success(message: str, *, prefix: str = "[OK]") -> None:
    """Print a success message."""
    _get_console().print(f"{escape(prefix)} {message}", style="success")


def print_error(message: str, *, prefix: str = "[ERROR]") -> None:
    """Print an error message."""
    _get_console().print(f"{escape(prefix)} {message}", style="error")


def print_warning(message: str, *, prefix: str = "[WARNING]") -> None:
    """Print a warning message."""
    _get_console().print(f"{escape(prefix)} {message}", style="warning")


# ---------------------------------------------------------------------------
# Structured output
# ---------------------------------------------------------------------------


def colorize_severity(severity: Severity) -> str:
    """Return a Rich-markup colored severity label."""
    color_map = {
        Severity.ERROR: "red",
        Severity.WARNING: "yellow",
        Severity.HINT: "cyan",
    }
    color = color_map[severity]
    return f"[{color}]{severity.value}[/{color}]"


def print_table(
    data: List[Dict[str, Any]],
    *,
    headers: Optional[List[str]] = None,
    title: Optional[str] = None,
    caption: Optional[str] = None,
    column_styles: Optional[Dict[str, Dict[str, Any]]] = None,
    row_styler: Optional[Callable[[Dict[str, Any]], Optional[str]]] = None,
    show_row_lines: bool = False,
) -> None:
    """Render structured data as a Rich table.

    Args:
        data: List of row dictionaries.
        headers: Column order. Defaults to keys of the first row.
        title: Optional table title.
        caption: Optional table caption.
        column_styles: Per-column style configuration.
        row_styler: Optional callback returning a row style.
        show_row_lines: Whether to draw horizontal lines between rows.
    """
    if not data:
        return

    if headers is None:
        headers = list(data[0].keys())

    table = Table(
        title=title,
        caption=caption,
        show_header=True,
        header_style="bold",
        show_lines=show_row_lines,
    )

    column_styles = column_styles or {}
    for header in headers:
        config = column_styles.get(header, {})
        table.add_column(
            header,
            style=config.get("style"),
            justify=config.get("justify", "default"),
            no_wrap=config.get("no_wrap", False),
            width=config.get("width"),
            overflow=config.get("overflow", "fold"),
        )

    for row in data:
        values = [str(row.get(h, "")) for h in headers]
        style = row_styler(row) if row_styler else None
        table.add_row(*values, style=style)

    _get_console().print(table)


def _reference_label(reference: PackageReference) -> str:
    label = f"[bold cyan]{escape(reference.id.name)}[/bold cyan] {escape(reference.id.version)}"
    for issue in reference.issues:
        label += f"\n{colorize_severity(issue.severity)} {escape(issue.message)}"
    return label


def _add_references(node: Tree, references: Sequence[PackageReference]) -> None:
    for reference in references:
        child = node.add(_reference_label(reference))
        _add_references(child, reference.dependencies)


def build_scope_tree(title: str, scopes: Sequence[Scope]) -> Tree:
    """Build a Rich tree of every scope's dependency forest."""
    root = Tree(f"[bold]{escape(title)}[/bold]")
    for scope in scopes:
        branch = root.add(f"[highlight]{escape(scope.name)}[/highlight]")
        if not scope.dependencies:
            branch.add("[dim](no dependencies)[/dim]")
        _add_references(branch, scope.dependencies)
    return root


def print_forest(title: str, scopes: Sequence[Scope]) -> None:
    """Render scopes and their dependency forests as a tree."""
    _get_console().print(build_scope_tree(title, scopes))


def print_json(data: Any) -> None:
    """Print *data* as indented JSON without markup processing."""
    _get_console().print_json(json.dumps(data))
