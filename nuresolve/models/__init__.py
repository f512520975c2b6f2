"""
Unified data model exports for nuresolve.

This module re-exports all core data models to provide a stable and
convenient public API. Users can import models directly from
``nuresolve.models`` instead of individual submodules.

Example:
    >>> from nuresolve.models import Identifier, PackageReference, Scope
"""

from __future__ import annotations

from nuresolve.models.dependency import DependencyRequest, RequestPair
from nuresolve.models.identifier import (
    Identifier,
    Issue,
    PackageReference,
    Scope,
    Severity,
)
from nuresolve.models.project import (
    Hash,
    Package,
    Project,
    ProjectAnalyzerResult,
    RemoteArtifact,
    VcsInfo,
)
from nuresolve.models.registry import (
    CatalogEntry,
    CatalogPage,
    DependencyGroup,
    PackageCatalog,
    PackageDependency,
    PackageDetails,
    PackageSpec,
    ServiceIndex,
)

__all__ = [
    "CatalogEntry",
    "CatalogPage",
    "DependencyGroup",
    "DependencyRequest",
    "Hash",
    "Identifier",
    "Issue",
    "Package",
    "PackageCatalog",
    "PackageDependency",
    "PackageDetails",
    "PackageReference",
    "PackageSpec",
    "Project",
    "ProjectAnalyzerResult",
    "RemoteArtifact",
    "RequestPair",
    "Scope",
    "ServiceIndex",
    "Severity",
    "VcsInfo",
]
