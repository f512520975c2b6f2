"""Dependency tree construction for nuresolve.

:class:`DependencyTreeBuilder` turns a batch of dependency requests into a
forest of :class:`~nuresolve.models.identifier.PackageReference` objects,
one level of the dependency graph at a time:

1. resolve the batch against everything resolved at outer levels,
2. fetch the manifest of each newly resolved package and keep the
   dependency groups without a framework or for the nearest framework,
3. recurse with the union of resolved identifiers,
4. attach each package's children by name, either as an issue reference
   from the next level's resolution or from the forest it returned.

A name already resolved at an outer level is never expanded again, which
also stops cyclic manifests.
"""

from __future__ import annotations

from typing import AbstractSet, Dict, List, Optional, Sequence, Tuple

from nuresolve.utils.logger import get_logger
from nuresolve.exceptions import NuResolveError
from nuresolve.core.registry import NuGetRegistry
from nuresolve.core.frameworks import FrameworkResolver
from nuresolve.core.resolver import VersionResolutionResult, VersionResolver
from nuresolve.models.dependency import DependencyRequest, RequestPair
from nuresolve.models.identifier import Identifier, Issue, PackageReference, Severity
from nuresolve.models.registry import PackageDetails

logger = get_logger("tree")

# Public API
__all__ = ["DependencyTreeBuilder"]

_Level = Tuple[List[PackageReference], VersionResolutionResult]


class DependencyTreeBuilder:
    """Build the dependency forest of one scope.

    Args:
        registry: Registry client providing manifests.
        framework_resolver: Picks the applicable dependency group.
        version_resolver: Defaults to a :class:`VersionResolver` over
            *registry*.

    Example::

        >>> builder = DependencyTreeBuilder(registry, NuGetToolsFrameworkResolver(http))
        >>> forest = await builder.build(
        ...     [(project_id, DependencyRequest("Newtonsoft.Json", "[13.0.1,)"))], "net6.0"
        ... )
    """

    def __init__(
        self,
        registry: NuGetRegistry,
        framework_resolver: FrameworkResolver,
        version_resolver: Optional[VersionResolver] = None,
    ) -> None:
        self.registry = registry
        self.framework_resolver = framework_resolver
        self.version_resolver = version_resolver or VersionResolver(registry)

    async def build(
        self,
        requests: Sequence[RequestPair],
        target_framework: str,
        resolved: AbstractSet[Identifier] = frozenset(),
    ) -> List[PackageReference]:
        """Return the forest rooted at the packages *requests* resolve to.

        Requests that cannot be resolved show up as issue references
        (carrying the unresolved range as version) next to the resolved
        roots.

        Args:
            requests: ``(requester, request)`` pairs of the top level.
            target_framework: Framework of the consuming project, inherited
                unchanged by every level.
            resolved: Identifiers resolved beforehand.

        Raises:
            MalformedRangeError: A request carries an unparsable range.
        """
        forest, result = await self._build_level(requests, target_framework, resolved)

        for entries in result.issues.values():
            forest.extend(PackageReference(id=ref, issues=(issue,)) for ref, issue in entries)

        return forest

    async def _build_level(
        self,
        requests: Sequence[RequestPair],
        target_framework: str,
        resolved: AbstractSet[Identifier],
    ) -> _Level:
        if not requests:
            return [], VersionResolutionResult()

        result = await self.version_resolver.resolve(requests, resolved)
        newly_resolved = sorted(result.newly_resolved)

        await self.registry.prefetch_details(newly_resolved)

        outgoing: Dict[Identifier, List[DependencyRequest]] = {}
        failed: Dict[Identifier, Issue] = {}
        for identifier in newly_resolved:
            try:
                details = await self.registry.get_details(identifier.name, identifier.version)
            except NuResolveError as exc:
                logger.warning("Cannot expand %s: %s", identifier.to_coordinates(), exc)
                failed[identifier] = Issue(
                    message=f"Failed to get the dependencies of {identifier.to_coordinates()}: {exc}",
                    severity=Severity.ERROR,
                )
                continue

            outgoing[identifier] = await self._outgoing_requests(details, target_framework)

        children, child_result = await self._build_level(
            [(parent, request) for parent, wanted in outgoing.items() for request in wanted],
            target_framework,
            frozenset(resolved) | result.resolved_versions,
        )

        forest = [
            self._assemble(parent, wanted, child_result, children)
            for parent, wanted in outgoing.items()
        ]
        forest.extend(PackageReference(id=i, issues=(issue,)) for i, issue in failed.items())
        # Reused names stay leaves so their requester keeps the edge
        forest.extend(
            PackageReference(id=i) for i in sorted(result.resolved_versions - result.newly_resolved)
        )
        return forest, result

    async def _outgoing_requests(
        self,
        details: PackageDetails,
        target_framework: str,
    ) -> List[DependencyRequest]:
        """Flatten the applicable dependency groups of a manifest."""
        nearest = await self.framework_resolver.nearest(
            target_framework, details.declared_frameworks()
        )

        return [
            DependencyRequest(
                name=dependency.id,
                version="".join(dependency.range.split()),
                target_framework=target_framework,
            )
            for group in details.dependency_groups
            if group.target_framework is None or group.target_framework == nearest
            for dependency in group.dependencies
        ]

    @staticmethod
    def _assemble(
        parent: Identifier,
        requests: Sequence[DependencyRequest],
        child_result: VersionResolutionResult,
        children: Sequence[PackageReference],
    ) -> PackageReference:
        by_name: Dict[str, PackageReference] = {}
        for child in children:
            by_name.setdefault(child.id.name.lower(), child)

        references: List[PackageReference] = []
        for request in requests:
            entry = child_result.issue_for(parent, request.name)
            if entry is not None:
                references.append(PackageReference(id=entry[0], issues=(entry[1],)))
                continue

            child = by_name.get(request.name.lower())
            if child is not None:
                references.append(child)

        return PackageReference(id=parent, dependencies=tuple(references))
