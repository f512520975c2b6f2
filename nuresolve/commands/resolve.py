"""Resolve command implementation for nuresolve.

Resolves the transitive NuGet dependencies of one definition file, or of
every definition file below a directory, and reports the resulting
dependency trees, package metadata, and issues.

The command wires together:

1. **Readers**: ``packages.config`` / project file readers provide the
   direct dependencies; ``nuget.config`` may provide the registry sources.
2. **NuGetRegistry**: cached access to the registry's service index,
   catalogs, manifests, and specs.
3. **NuGetAnalyzer**: builds one dependency forest per scope and
   assembles the package records.

Typical usage::

    $ nuresolve resolve packages.config
    $ nuresolve resolve src/ --format json > result.json
    $ nuresolve resolve App.csproj --source https://my.feed/v3/index.json
"""

from __future__ import annotations

import sys
import click
import asyncio
from pathlib import Path
from rich.markup import escape
from typing import Any, Dict, List, Sequence, Tuple

from nuresolve.config import NuResolveConfig
from nuresolve.exceptions import NuResolveError
from nuresolve.context import pass_context, NuResolveContext
from nuresolve.models import Package, ProjectAnalyzerResult
from nuresolve.core import (
    NuGetAnalyzer,
    NuGetConfigFileReader,
    NuGetRegistry,
    NuGetToolsFrameworkResolver,
    find_nuget_config,
    reader_for,
)
from nuresolve.utils import (
    HTTPClient,
    colorize_severity,
    find_definition_files,
    get_logger,
    get_raw_console,
    print_error,
    print_forest,
    print_json,
    print_success,
    print_table,
    print_warning,
)

logger = get_logger("commands.resolve")


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--source",
    "-s",
    "sources",
    multiple=True,
    metavar="URL",
    help="NuGet V3 service index URL (repeatable). Overrides nuget.config and configuration.",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["tree", "table", "json"], case_sensitive=False),
    default="tree",
    help="Output format.",
)
@pass_context
def resolve(
    ctx: NuResolveContext,
    path: Path,
    sources: Sequence[str],
    format: str,
) -> None:
    """Resolve the transitive dependencies of a NuGet project.

    PATH is a ``packages.config`` or ``*.csproj`` / ``*.fsproj`` /
    ``*.vbproj`` file, or a directory searched for such files.

    Exits 0 when everything resolved cleanly, 1 when issues were recorded
    or an error occurred.
    """
    try:
        has_issues = asyncio.run(_resolve_async(ctx, path, list(sources), format.lower()))
        sys.exit(1 if has_issues else 0)

    except NuResolveError as e:
        print_error(f"{e}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Async orchestration
# ---------------------------------------------------------------------------


def service_index_urls(
    config: NuResolveConfig,
    definition_file: Path,
    sources: Sequence[str],
) -> List[str]:
    """Return the service indices to use for *definition_file*.

    ``--source`` options win, then the remote sources of the closest
    ``nuget.config``, then the configuration file (or built-in default).
    """
    if sources:
        return list(sources)

    nuget_config = find_nuget_config(definition_file.parent)
    if nuget_config is not None:
        urls = NuGetConfigFileReader().get_service_index_urls(nuget_config)
        if urls:
            logger.info("Using package sources from %s", nuget_config)
            return urls
        logger.debug("%s declares no remote package sources", nuget_config)

    return list(config.service_index_urls)


def _definition_files(path: Path) -> List[Path]:
    if path.is_dir():
        return find_definition_files(path)
    return [path]


async def _resolve_async(
    ctx: NuResolveContext,
    path: Path,
    sources: List[str],
    format: str,
) -> bool:
    """Resolve every definition file at *path* and display the results.

    Returns:
        ``True`` if any result recorded an issue.
    """
    show_progress = format != "json"
    config = ctx.config
    analysis_root = path if path.is_dir() else path.parent

    definition_files = _definition_files(path)
    if not definition_files:
        if show_progress:
            print_warning(f"No NuGet definition files found in {path}")
        return False

    results: List[ProjectAnalyzerResult] = []
    async with HTTPClient(
        timeout=config.timeout,
        max_retries=config.max_retries,
        cache_max_age_days=config.cache_max_age_days,
        cache_dir=config.cache_dir,
    ) as http:
        framework_resolver = NuGetToolsFrameworkResolver(http, config.nearest_framework_url)
        # Definition files sharing the same sources share one registry and its caches
        registries: Dict[Tuple[str, ...], NuGetRegistry] = {}

        for definition_file in definition_files:
            urls = tuple(service_index_urls(config, definition_file, sources))
            if urls not in registries:
                logger.info("Initializing registry from %s", ", ".join(urls))
                registries[urls] = await NuGetRegistry.create(http, urls)

            analyzer = NuGetAnalyzer(registries[urls], framework_resolver)
            logger.info("Resolving %s...", definition_file)
            results.append(
                await analyzer.resolve_dependencies(
                    definition_file,
                    reader_for(definition_file),
                    analysis_root,
                )
            )

    if format == "json":
        print_json([r.to_json() for r in results])
    else:
        for result in results:
            _display_result(result, format)

    has_issues = any(r.has_issues() for r in results)
    if show_progress:
        if has_issues:
            print_warning("\nSome dependencies could not be resolved, see the issues above")
        else:
            print_success("\nAll dependencies resolved")

    return has_issues


# ---------------------------------------------------------------------------
# Display renderers
# ---------------------------------------------------------------------------


def _display_result(result: ProjectAnalyzerResult, format: str) -> None:
    project = result.project
    if format == "tree":
        print_forest(project.id.to_coordinates(), project.scopes)
    else:
        _display_packages(project.definition_file_path, result.packages)

    _display_issues(result)


def _display_packages(title: str, packages: Sequence[Package]) -> None:
    """Render the resolved packages as a table."""
    if not packages:
        get_raw_console().print(f"[dim]{title}: no packages resolved[/dim]")
        return

    data = [_create_table_row(pkg) for pkg in packages]
    column_styles: Dict[str, Dict[str, Any]] = {
        "Package": {"style": "bold cyan", "no_wrap": True},
        "Version": {"justify": "center"},
        "Licenses": {"justify": "left"},
        "Authors": {"justify": "left"},
        "Homepage": {"style": "dim"},
    }
    print_table(data, title=title, column_styles=column_styles)


def _create_table_row(pkg: Package) -> Dict[str, str]:
    return {
        "Package": pkg.id.name,
        "Version": pkg.id.version,
        "Licenses": ", ".join(pkg.declared_licenses) or "-",
        "Authors": ", ".join(pkg.authors) or "-",
        "Homepage": pkg.homepage_url or "-",
    }


def _display_issues(result: ProjectAnalyzerResult) -> None:
    rows: List[Dict[str, str]] = []
    for identifier, issues in sorted(result.dependency_issues().items()):
        for issue in issues:
            rows.append(
                {
                    "Severity": colorize_severity(issue.severity),
                    "Reference": escape(f"{identifier.name} {identifier.version}"),
                    "Message": escape(issue.message),
                }
            )
    for issue in result.issues:
        rows.append(
            {
                "Severity": colorize_severity(issue.severity),
                "Reference": "-",
                "Message": escape(issue.message),
            }
        )

    print_table(rows, title="Issues", column_styles=_ISSUE_COLUMN_STYLES)


_ISSUE_COLUMN_STYLES: Dict[str, Dict[str, Any]] = {
    "Severity": {"justify": "center", "no_wrap": True},
    "Reference": {"style": "bold", "no_wrap": True},
    "Message": {"justify": "left"},
}