"""
Analysis result models for nuresolve.

The records the analyzer fills in: one :class:`Project` per definition
file, one :class:`Package` per resolved identifier, and the
:class:`ProjectAnalyzerResult` bundling both with the analysis issues.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from nuresolve.models.identifier import Identifier, Issue, Scope


@dataclass(frozen=True)
class Hash:
    """A checksum and the algorithm that produced it."""

    value: str = ""
    algorithm: str = ""

    @classmethod
    def create(cls, algorithm: Optional[str], value: Optional[str]) -> "Hash":
        return cls(value=value or "", algorithm=(algorithm or "").upper())

    def is_empty(self) -> bool:
        return not self.value


@dataclass(frozen=True)
class RemoteArtifact:
    url: str = ""
    hash: Hash = field(default_factory=Hash)


@dataclass(frozen=True)
class VcsInfo:
    """Version control coordinates of a package's source."""

    type: str = ""
    url: str = ""
    revision: str = ""

    def is_empty(self) -> bool:
        return not (self.type or self.url or self.revision)


@dataclass(frozen=True, order=True)
class Package:
    """
    Metadata of one resolved package.

    Packages sort and compare by :attr:`id`.
    """

    id: Identifier
    authors: Tuple[str, ...] = field(default=(), compare=False)
    declared_licenses: Tuple[str, ...] = field(default=(), compare=False)
    description: str = field(default="", compare=False)
    homepage_url: str = field(default="", compare=False)
    binary_artifact: RemoteArtifact = field(default_factory=RemoteArtifact, compare=False)
    source_artifact: RemoteArtifact = field(default_factory=RemoteArtifact, compare=False)
    vcs: VcsInfo = field(default_factory=VcsInfo, compare=False)

    def to_json(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation."""
        return {
            "id": self.id.to_coordinates(),
            "authors": list(self.authors),
            "declared_licenses": list(self.declared_licenses),
            "description": self.description,
            "homepage_url": self.homepage_url,
            "binary_artifact": {
                "url": self.binary_artifact.url,
                "hash": self.binary_artifact.hash.value,
                "algorithm": self.binary_artifact.hash.algorithm,
            },
            "vcs": {
                "type": self.vcs.type,
                "url": self.vcs.url,
                "revision": self.vcs.revision,
            },
        }


@dataclass(frozen=True)
class Project:
    """The analyzed project and its dependency scopes."""

    id: Identifier
    definition_file_path: str
    authors: Tuple[str, ...] = ()
    declared_licenses: Tuple[str, ...] = ()
    vcs: VcsInfo = field(default_factory=VcsInfo)
    homepage_url: str = ""
    scopes: Tuple[Scope, ...] = ()

    def to_json(self) -> Dict[str, Any]:
        return {
            "id": self.id.to_coordinates(),
            "definition_file_path": self.definition_file_path,
            "authors": list(self.authors),
            "declared_licenses": list(self.declared_licenses),
            "scopes": [s.to_json() for s in self.scopes],
        }


@dataclass(frozen=True)
class ProjectAnalyzerResult:
    """Outcome of analyzing one definition file."""

    project: Project
    packages: Tuple[Package, ...] = ()
    issues: List[Issue] = field(default_factory=list)

    def dependency_issues(self) -> Dict[Identifier, List[Issue]]:
        """Return the issues recorded inside the project's scopes."""
        issues: Dict[Identifier, List[Issue]] = {}
        for scope in self.project.scopes:
            for identifier, found in scope.collect_issues().items():
                issues.setdefault(identifier, []).extend(found)
        return issues

    def has_issues(self) -> bool:
        return bool(self.issues) or bool(self.dependency_issues())

    def to_json(self) -> Dict[str, Any]:
        return {
            "project": self.project.to_json(),
            "packages": [p.to_json() for p in self.packages],
            "issues": [i.to_json() for i in self.issues],
        }
