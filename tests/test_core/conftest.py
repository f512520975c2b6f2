from __future__ import annotations

import pytest
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from nuresolve.models.identifier import Identifier
from nuresolve.core.versioning import Version, parse_version
from nuresolve.exceptions import CatalogNotFoundError, NuResolveError, VersionNotFoundError
from nuresolve.models.registry import (
    CatalogEntry,
    DependencyGroup,
    PackageDependency,
    PackageDetails,
    PackageSpec,
    SpecMetadata,
)

#: (target framework or None, [(dependency id, range)])
GroupSpec = Tuple[Optional[str], List[Tuple[str, str]]]


def make_details(name: str, version: str, groups: Sequence[GroupSpec] = ()) -> PackageDetails:
    return PackageDetails(
        id=name,
        version=version,
        description=f"{name} package",
        dependency_groups=[
            DependencyGroup(
                target_framework=framework,
                dependencies=[PackageDependency(id=i, range=r) for i, r in dependencies],
            )
            for framework, dependencies in groups
        ],
    )


class FakeRegistry:
    """In-memory stand-in for NuGetRegistry that records every lookup."""

    def __init__(self) -> None:
        self.packages: Dict[str, Dict[str, PackageDetails]] = {}
        self.specs: Dict[str, PackageSpec] = {}
        self.broken_manifests: set = set()
        self.version_calls: List[str] = []
        self.detail_calls: List[Tuple[str, str]] = []

    def add(self, name: str, version: str, groups: Sequence[GroupSpec] = ()) -> "FakeRegistry":
        self.packages.setdefault(name.lower(), {})[version] = make_details(name, version, groups)
        return self

    def add_spec(self, name: str, version: str, authors: str) -> "FakeRegistry":
        self.specs[f"{name.lower()}:{version}"] = PackageSpec(
            metadata=SpecMetadata(id=name, version=version, authors=authors)
        )
        return self

    async def get_available_versions(self, name: str) -> List[Version]:
        self.version_calls.append(name)
        return sorted(parse_version(v) for v in self.packages.get(name.lower(), {}))

    async def get_details(self, name: str, version: str) -> PackageDetails:
        self.detail_calls.append((name, version))
        if (name.lower(), version) in self.broken_manifests:
            raise VersionNotFoundError("manifest unavailable", package_name=name, version=version)
        try:
            return self.packages[name.lower()][version]
        except KeyError:
            raise VersionNotFoundError("unknown version", package_name=name, version=version)

    async def prefetch_details(self, identifiers: Iterable[Identifier]) -> None:
        for identifier in identifiers:
            try:
                await self.get_details(identifier.name, identifier.version)
            except NuResolveError:
                pass

    async def get_catalog_entry(self, name: str, version: str) -> CatalogEntry:
        if name.lower() not in self.packages:
            raise CatalogNotFoundError("no catalog", package_name=name)
        if version not in self.packages[name.lower()]:
            raise VersionNotFoundError("unknown version", package_name=name, version=version)
        lower = name.lower()
        return CatalogEntry(
            id=f"https://feed.test/catalog/{lower}.{version}.json",
            version=version,
            package_content=f"https://feed.test/flat/{lower}/{version}/{lower}.{version}.nupkg",
            license_expression="MIT",
        )

    async def get_spec(self, name: str, version: str) -> PackageSpec:
        spec = self.specs.get(f"{name.lower()}:{version}")
        if spec is None:
            return PackageSpec(metadata=SpecMetadata(id=name, version=version))
        return spec


class FakeFrameworkResolver:
    """Framework resolver answering from a fixed table."""

    def __init__(self, answers: Optional[Dict[str, str]] = None) -> None:
        self.answers = answers or {}
        self.calls: List[Tuple[str, List[str]]] = []

    async def nearest(self, target: str, candidates: Sequence[str]) -> Optional[str]:
        self.calls.append((target, list(candidates)))
        for candidate in candidates:
            if self.answers.get(target) == candidate:
                return candidate
        return None


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def frameworks() -> FakeFrameworkResolver:
    return FakeFrameworkResolver()
