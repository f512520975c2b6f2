"""
Shared context object for nuresolve CLI commands.

This module defines the global Click context used to share configuration
and runtime options across CLI subcommands.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from nuresolve.config import NuResolveConfig


class NuResolveContext:
    """Global context object for nuresolve CLI commands.

    One instance is created per CLI invocation and handed to commands
    through Click's context mechanism.

    Attributes:
        config_path: Path to the loaded configuration file, if any.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        config: Effective configuration (defaults when no file was found).
    """

    __slots__ = ("config_path", "verbose", "color", "config")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.config: NuResolveConfig = NuResolveConfig()


#: Click decorator for injecting :class:`NuResolveContext` into commands.
pass_context = click.make_pass_decorator(NuResolveContext, ensure=True)
