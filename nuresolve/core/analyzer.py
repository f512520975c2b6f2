"""Project analysis for nuresolve.

:class:`NuGetAnalyzer` resolves the dependencies of one definition file:
it builds a dependency forest per scope (target framework and development
status), then assembles the package record of every resolved identifier.

Scopes are formed like this: requests are grouped by target framework and
then by development flag; every group is joined by the framework-agnostic
requests with the same flag.  A scope is named after its framework, or
``allTargetFrameworks``, with a ``dev-`` prefix for development groups.

Typical usage::

    async with HTTPClient() as http:
        registry = await NuGetRegistry.create(http, [DEFAULT_SERVICE_INDEX_URL])
        analyzer = NuGetAnalyzer(registry, NuGetToolsFrameworkResolver(http))
        result = await analyzer.resolve_dependencies(Path("App.csproj"), ProjectFileReader())
"""

from __future__ import annotations

from pathlib import Path
from dataclasses import replace
from typing import Dict, List, Optional, Set, Tuple

from nuresolve.utils.logger import get_logger
from nuresolve.exceptions import NuResolveError
from nuresolve.core.registry import NuGetRegistry
from nuresolve.core.frameworks import FrameworkResolver
from nuresolve.core.tree import DependencyTreeBuilder
from nuresolve.core.readers import DefinitionFileReader
from nuresolve.core.assembler import PackageAssembler, build_project, resolve_local_spec
from nuresolve.models.dependency import DependencyRequest
from nuresolve.models.identifier import Identifier, Issue, Scope, Severity
from nuresolve.models.registry import PackageSpec
from nuresolve.models.project import Package, ProjectAnalyzerResult
from nuresolve.utils.filesystem import safe_read_file
from nuresolve.constants import ALL_TARGET_FRAMEWORKS_SCOPE, DEV_SCOPE_PREFIX

logger = get_logger("analyzer")

# Public API
__all__ = ["NuGetAnalyzer", "group_requests", "scope_name"]


def scope_name(target_framework: str, development: bool) -> str:
    """Return the scope name for a framework and development flag.

    Example::

        >>> scope_name("net6.0", True)
        'dev-net6.0'
        >>> scope_name("", False)
        'allTargetFrameworks'
    """
    prefix = DEV_SCOPE_PREFIX if development else ""
    return prefix + (target_framework or ALL_TARGET_FRAMEWORKS_SCOPE)


def group_requests(
    requests: Set[DependencyRequest],
) -> Dict[Tuple[str, bool], List[DependencyRequest]]:
    """Group requests into scopes keyed by ``(framework, development)``."""
    by_framework: Dict[str, List[DependencyRequest]] = {}
    for request in sorted(requests):
        by_framework.setdefault(request.target_framework, []).append(request)

    agnostic = by_framework.get("", [])
    groups: Dict[Tuple[str, bool], List[DependencyRequest]] = {}
    for framework, framework_requests in by_framework.items():
        for development in sorted({r.development_dependency for r in framework_requests}):
            members = {r for r in framework_requests if r.development_dependency == development}
            members.update(r for r in agnostic if r.development_dependency == development)
            groups[(framework, development)] = sorted(members)

    return groups


class NuGetAnalyzer:
    """Resolve definition files into scopes, packages, and issues.

    Args:
        registry: Registry client shared by all analyses.
        framework_resolver: Nearest-framework lookup.
        project_type: Identifier type recorded for analyzed projects.
    """

    def __init__(
        self,
        registry: NuGetRegistry,
        framework_resolver: FrameworkResolver,
        *,
        project_type: str = "NuGet",
    ) -> None:
        self.registry = registry
        self.tree_builder = DependencyTreeBuilder(registry, framework_resolver)
        self.assembler = PackageAssembler(registry)
        self.project_type = project_type

    async def resolve_dependencies(
        self,
        definition_file: Path,
        reader: DefinitionFileReader,
        analysis_root: Optional[Path] = None,
    ) -> ProjectAnalyzerResult:
        """Analyze *definition_file*.

        Args:
            definition_file: ``packages.config`` or project file.
            reader: Reader producing the file's direct dependencies.
            analysis_root: Directory project paths are made relative to;
                defaults to the definition file's directory.

        Raises:
            ParseError: The definition file is invalid.
            MalformedRangeError: A version range cannot be parsed.
        """
        root = analysis_root or definition_file.parent
        project = build_project(
            definition_file,
            root,
            self._read_local_spec(definition_file),
            project_type=self.project_type,
        )

        requests = reader.get_dependencies(definition_file)
        logger.info("Resolving %d direct dependencies of %s", len(requests), project.definition_file_path)

        scopes: List[Scope] = []
        for (framework, development), members in group_requests(requests).items():
            references = await self.tree_builder.build(
                [(project.id, request) for request in members],
                framework,
            )
            scopes.append(Scope(name=scope_name(framework, development), dependencies=tuple(references)))

        scopes.sort()
        packages, issues = await self._assemble_packages(scopes)

        return ProjectAnalyzerResult(
            project=replace(project, scopes=tuple(scopes)),
            packages=tuple(packages),
            issues=issues,
        )

    async def _assemble_packages(self, scopes: List[Scope]) -> Tuple[List[Package], List[Issue]]:
        identifiers: Set[Identifier] = set()
        for scope in scopes:
            identifiers |= scope.collect_resolved()

        packages: List[Package] = []
        issues: List[Issue] = []
        for identifier in sorted(identifiers):
            try:
                packages.append(await self.assembler.get_package(identifier))
            except NuResolveError as exc:
                logger.warning("Dropping package %s: %s", identifier.to_coordinates(), exc)
                issues.append(
                    Issue(
                        message=f"Failed to get package metadata for {identifier.to_coordinates()}: {exc}",
                        severity=Severity.WARNING,
                    )
                )

        return sorted(packages), issues

    @staticmethod
    def _read_local_spec(definition_file: Path) -> Optional[PackageSpec]:
        spec_file = resolve_local_spec(definition_file)
        if spec_file is None:
            return None

        try:
            return PackageSpec.from_xml(safe_read_file(spec_file))
        except ValueError as exc:
            logger.warning("Ignoring invalid local spec %s: %s", spec_file, exc)
            return None
