"""
Identifier, issue, and dependency tree models for nuresolve.

These are the value types that flow through resolution: an
:class:`Identifier` names one concrete package version and is the node key
of the resolution graph; :class:`PackageReference` and :class:`Scope` form
the resulting dependency forest; :class:`Issue` records a non-fatal
problem attached to the package that triggered it.
"""

from __future__ import annotations

from enum import Enum
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Set, Tuple

from nuresolve.constants import ISSUE_SOURCE, PACKAGE_TYPE


@dataclass(frozen=True, order=True)
class Identifier:
    """Coordinates of a package or project.

    Equality and ordering use all four fields.

    Attributes:
        type: Package ecosystem, ``"NuGet"`` for registry packages.
        namespace: Unused by NuGet, always empty.
        name: Package id as written by the requester or registry.
        version: Resolved version, or the unresolved range text for issue
            references.
    """

    type: str
    namespace: str
    name: str
    version: str

    @classmethod
    def nuget(cls, name: str, version: str) -> "Identifier":
        """Create an identifier for a NuGet package."""
        return cls(type=PACKAGE_TYPE, namespace="", name=name, version=version)

    def to_coordinates(self) -> str:
        """Return ``type:namespace:name:version``."""
        return f"{self.type}:{self.namespace}:{self.name}:{self.version}"

    def __str__(self) -> str:
        return self.to_coordinates()


class Severity(Enum):
    """Severity of an :class:`Issue`."""

    ERROR = "ERROR"
    WARNING = "WARNING"
    HINT = "HINT"


@dataclass(frozen=True)
class Issue:
    """A non-fatal problem recorded during analysis."""

    message: str
    severity: Severity = Severity.ERROR
    source: str = ISSUE_SOURCE
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
        compare=False,
    )

    def to_json(self) -> Dict[str, str]:
        """Return a JSON-serializable representation."""
        return {
            "source": self.source,
            "severity": self.severity.value,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


def _sorted_unique(references: Iterable["PackageReference"]) -> Tuple["PackageReference", ...]:
    """Deduplicate references by identifier (first wins) and sort them."""
    unique: Dict[Identifier, PackageReference] = {}
    for reference in references:
        unique.setdefault(reference.id, reference)
    return tuple(sorted(unique.values()))


@dataclass(frozen=True, order=True)
class PackageReference:
    """A node of a scope's dependency forest.

    References compare, sort, and hash by :attr:`id` alone so that a set
    of references holds at most one entry per identifier.

    Attributes:
        id: The referenced package.
        dependencies: Child references, deduplicated and sorted by id.
        issues: Problems attached to this reference; an issue reference
            carries the unresolved range text as its version and no
            children.
    """

    id: Identifier
    dependencies: Tuple["PackageReference", ...] = field(default=(), compare=False)
    issues: Tuple[Issue, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", _sorted_unique(self.dependencies))
        object.__setattr__(self, "issues", tuple(self.issues))

    def collect_resolved(self) -> Set[Identifier]:
        """Return the identifiers of every resolved reference below this one.

        References carrying issues are skipped: their version may be the
        unresolved range text, which can look exactly like a real version.
        """
        return _collect_resolved(self.dependencies)

    def collect_issues(self) -> Dict[Identifier, List[Issue]]:
        """Return every issue in this subtree keyed by the carrying identifier.

        Issues of distinct references sharing an identifier are kept side
        by side.
        """
        issues: Dict[Identifier, List[Issue]] = {}
        _merge_issues(issues, self)
        return issues

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation of the subtree."""
        data: Dict[str, Any] = {"id": self.id.to_coordinates()}
        if self.dependencies:
            data["dependencies"] = [d.to_json() for d in self.dependencies]
        if self.issues:
            data["issues"] = [i.to_json() for i in self.issues]
        return data


def _collect_resolved(references: Iterable[PackageReference]) -> Set[Identifier]:
    collected: Set[Identifier] = set()
    for reference in references:
        if reference.issues:
            continue
        collected.add(reference.id)
        collected |= reference.collect_resolved()
    return collected


def _merge_issues(issues: Dict[Identifier, List[Issue]], reference: PackageReference) -> None:
    if reference.issues:
        issues.setdefault(reference.id, []).extend(reference.issues)
    for dependency in reference.dependencies:
        _merge_issues(issues, dependency)


@dataclass(frozen=True, order=True)
class Scope:
    """A named bucket of dependencies holding its own forest."""

    name: str
    dependencies: Tuple[PackageReference, ...] = field(default=(), compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", _sorted_unique(self.dependencies))

    def collect_resolved(self) -> Set[Identifier]:
        """Return the identifiers of every resolved reference in the scope."""
        return _collect_resolved(self.dependencies)

    def collect_issues(self) -> Dict[Identifier, List[Issue]]:
        """Return every issue recorded in the scope's forest."""
        issues: Dict[Identifier, List[Issue]] = {}
        for reference in self.dependencies:
            _merge_issues(issues, reference)
        return issues

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "name": self.name,
            "dependencies": [d.to_json() for d in self.dependencies],
        }
