"""Version resolution for nuresolve.

:class:`VersionResolver` picks one concrete version per package name for a
batch of dependency requests.  Selection is greedy and never backtracks:

1. A name resolved at an outer level keeps its version.  Every request
   whose range does not contain it yields a conflict issue.
2. Otherwise the lowest available version contained in *every* request's
   range for that name is chosen.
3. If there is none, nothing is resolved for the name and every request
   yields an issue.

A choice made once is final for the rest of the run, even if a deeper
dependency would have preferred another version.  This is a known
limitation of the algorithm, not something callers should work around.

Issues are attached to the *requester* of a dependency, together with an
issue reference whose version is the unresolved range text.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    AbstractSet,
    DefaultDict,
    Dict,
    FrozenSet,
    List,
    Optional,
    Sequence,
    Tuple,
)

from nuresolve.utils.logger import get_logger
from nuresolve.models.identifier import Identifier, Issue, Severity
from nuresolve.models.dependency import DependencyRequest, RequestPair
from nuresolve.core.versioning import Version, VersionRange, parse_range, parse_version

if TYPE_CHECKING:
    from nuresolve.core.registry import NuGetRegistry

logger = get_logger("resolver")

# Public API
__all__ = ["IssueEntry", "VersionResolutionResult", "VersionResolver"]

#: An issue reference (name + unresolved range) and the issue it carries.
IssueEntry = Tuple[Identifier, Issue]


@dataclass(frozen=True)
class VersionResolutionResult:
    """Outcome of resolving one batch of requests.

    Attributes:
        resolved_versions: The identifier chosen for every name of the
            batch that has one, whether reused or newly resolved.
        newly_resolved: The subset of ``resolved_versions`` that was
            resolved by this batch.
        issues: Issue entries keyed by the requester they belong to.
    """

    resolved_versions: FrozenSet[Identifier] = frozenset()
    newly_resolved: FrozenSet[Identifier] = frozenset()
    issues: Dict[Identifier, List[IssueEntry]] = field(default_factory=dict)

    def issue_for(self, requester: Identifier, name: str) -> Optional[IssueEntry]:
        """Return the first issue *requester* has for dependency *name*."""
        wanted = name.lower()
        for entry in self.issues.get(requester, []):
            if entry[0].name.lower() == wanted:
                return entry
        return None


def _find_resolved(resolved: AbstractSet[Identifier], name: str) -> Optional[Identifier]:
    wanted = name.lower()
    return next((i for i in sorted(resolved) if i.name.lower() == wanted), None)


class VersionResolver:
    """Greedy lowest-satisfying-version resolver.

    Args:
        registry: Source of available versions.
    """

    def __init__(self, registry: "NuGetRegistry") -> None:
        self.registry = registry

    async def resolve(
        self,
        requests: Sequence[RequestPair],
        already_resolved: AbstractSet[Identifier] = frozenset(),
    ) -> VersionResolutionResult:
        """Resolve a batch of ``(requester, request)`` pairs.

        Package names are grouped case-insensitively; the first spelling
        seen names a newly resolved identifier.

        Raises:
            MalformedRangeError: A request carries an unparsable range.
        """
        groups: Dict[str, List[RequestPair]] = {}
        for pair in requests:
            groups.setdefault(pair[1].name.lower(), []).append(pair)

        resolved: List[Identifier] = []
        newly_resolved: List[Identifier] = []
        issues: DefaultDict[Identifier, List[IssueEntry]] = defaultdict(list)

        for variants in groups.values():
            name = variants[0][1].name
            ranges = [(requester, request, parse_range(request.version)) for requester, request in variants]

            existing = _find_resolved(already_resolved, name)
            if existing is not None:
                resolved.append(existing)
                self._check_existing(existing, ranges, issues)
                continue

            match = await self._lowest_match(name, [r for _, _, r in ranges])
            if match is not None:
                identifier = Identifier.nuget(name, str(match))
                logger.debug("Resolved %s to %s", name, match)
                resolved.append(identifier)
                newly_resolved.append(identifier)
                continue

            logger.info("Cannot resolve a version of %s for %d requirement(s)", name, len(variants))
            for requester, request, _ in ranges:
                issues[requester].append(
                    (
                        Identifier.nuget(name, request.version),
                        Issue(
                            message=(
                                f"Cannot find a version for {request.name} that satisfies the "
                                "version requirement for this and all sibling dependencies."
                            ),
                            severity=Severity.ERROR,
                        ),
                    )
                )

        return VersionResolutionResult(
            resolved_versions=frozenset(resolved),
            newly_resolved=frozenset(newly_resolved),
            issues=dict(issues),
        )

    @staticmethod
    def _check_existing(
        existing: Identifier,
        ranges: Sequence[Tuple[Identifier, DependencyRequest, VersionRange]],
        issues: DefaultDict[Identifier, List[IssueEntry]],
    ) -> None:
        """Record a conflict for every range the reused version misses."""
        version = parse_version(existing.version)
        for requester, request, version_range in ranges:
            if version_range.contains(version):
                continue

            logger.info(
                "Already resolved %s %s conflicts with %s required by %s",
                existing.name,
                existing.version,
                request.version,
                requester.to_coordinates(),
            )
            issues[requester].append(
                (
                    Identifier.nuget(existing.name, request.version),
                    Issue(
                        message=(
                            f"Already resolved version '{existing.version}' of package "
                            f"'{existing.name}' does not satisfy version requirement "
                            f"'{request.version}'."
                        ),
                        severity=Severity.ERROR,
                    ),
                )
            )

    async def _lowest_match(self, name: str, ranges: Sequence[VersionRange]) -> Optional[Version]:
        available = await self.registry.get_available_versions(name)
        return next(
            (version for version in available if all(r.contains(version) for r in ranges)),
            None,
        )
