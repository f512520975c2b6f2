"""
Command-line interface for nuresolve.

This module provides the main CLI entry point and handles global options,
configuration loading, and command registration.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from nuresolve.config import load_config
from nuresolve.__version__ import __version__
from nuresolve.context import NuResolveContext
from nuresolve.exceptions import ConfigError, NuResolveError
from nuresolve.utils.logger import get_logger, level_for_verbosity, setup_logging
from nuresolve.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file.",
    envvar="NURESOLVE_CONFIG",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Increase verbosity (can be repeated: -v, -vv).",
)
@click.option(
    "--color/--no-color",
    default=True,
    help="Enable or disable colored output.",
    envvar="NURESOLVE_COLOR",
)
@click.version_option(
    version=__version__,
    prog_name="nuresolve",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """nuresolve: transitive dependency resolution for NuGet projects.

    \b
    Available commands:
      nuresolve resolve PATH       Resolve the dependency trees of a project or directory

    \b
    Examples:
      nuresolve resolve packages.config
      nuresolve resolve App.csproj --format json
      nuresolve -vv resolve App.csproj --source https://my.feed/v3/index.json

    Use ``nuresolve COMMAND --help`` for command-specific options.
    """
    # Respect NO_COLOR for the console and log formatter alike
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()

    _configure_logging(verbose)

    try:
        loaded_config = load_config(config)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    nuresolve_ctx = NuResolveContext()
    nuresolve_ctx.config_path = config or loaded_config.source_path
    nuresolve_ctx.color = color
    nuresolve_ctx.verbose = verbose
    nuresolve_ctx.config = loaded_config
    ctx.obj = nuresolve_ctx

    logger.debug("nuresolve v%s", __version__)
    logger.debug("Config path: %s", nuresolve_ctx.config_path)
    if loaded_config.source_path:
        logger.debug("Loaded configuration: %s", loaded_config.to_log_dict())
    logger.debug("Verbosity: %s | Color: %s", verbose, color)


def _configure_logging(verbose: int) -> None:
    """Configure logging level based on verbosity flags."""
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose > 1)
    logger.debug("Logging initialized at %s level", logging.getLevelName(level))


# Register CLI subcommands
from nuresolve.commands.resolve import resolve  # noqa: E402

cli.add_command(resolve)


def main() -> int:
    """Main entry point for the nuresolve CLI.

    Returns:
        Exit code:
            0   Success, no issues recorded
            1   Issues recorded, or an application error
            2   Usage error (Click)
            130 Interrupted by user (Ctrl+C)
    """
    try:
        cli(standalone_mode=False)
        return 0

    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1

    except click.exceptions.Abort:
        print_warning("\nOperation cancelled by user")
        return 130

    except click.ClickException as exc:
        exc.show()
        return exc.exit_code

    except NuResolveError as exc:
        print_error(str(exc))
        logger.debug(
            "NuResolveError details: %s",
            exc.details or "<none>",
            exc_info=True,
        )
        return 1

    except KeyboardInterrupt:
        print_warning("\nOperation cancelled by user")
        return 130

    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1


if __name__ == "__main__":
    sys.exit(main())
