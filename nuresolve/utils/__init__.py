"""
Utility helpers for nuresolve.

This package provides reusable utilities used across nuresolve, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem helpers
- Async HTTP client and caching utilities

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from nuresolve.utils.filesystem import (
    find_definition_files,
    find_upwards,
    is_definition_file,
    safe_read_file,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from nuresolve.utils.logger import (
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from nuresolve.utils.console import (
    colorize_severity,
    get_raw_console,
    print_error,
    print_forest,
    print_json,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# HTTP and caching utilities
# ---------------------------------------------------------------------------

from nuresolve.utils.cache import AsyncMemo, ResponseCache
from nuresolve.utils.http import HTTPClient

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "print_error",
    "print_forest",
    "print_json",
    "print_table",
    "print_success",
    "print_warning",
    "get_raw_console",
    "reconfigure_console",
    "colorize_severity",
    # Logging
    "get_logger",
    "setup_logging",
    "disable_logging",
    "level_for_verbosity",
    "is_logging_configured",
    # Filesystem
    "safe_read_file",
    "find_definition_files",
    "find_upwards",
    "is_definition_file",
    # HTTP and caching
    "AsyncMemo",
    "HTTPClient",
    "ResponseCache",
]
