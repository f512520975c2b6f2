"""
NuGet V3 registry document models.

Typed snapshots of the documents the registry client consumes:

* :class:`ServiceIndex`: ``GET <service index>``
* :class:`PackageCatalog`: ``GET <registrations base>/<id>/index.json``
* :class:`PackageDetails`: ``GET <catalogEntry @id>`` (the manifest)
* :class:`PackageSpec`: ``GET <derived .nuspec URL>`` (XML)

Each model has a ``from_json`` / ``from_xml`` constructor that tolerates
unknown and missing fields.  Instances are immutable by convention and are
shared through the registry client's caches.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

# Public API
__all__ = [
    "ServiceResource",
    "ServiceIndex",
    "CatalogEntry",
    "CatalogPage",
    "PackageCatalog",
    "PackageDependency",
    "DependencyGroup",
    "PackageDetails",
    "SpecLicense",
    "SpecRepository",
    "SpecMetadata",
    "PackageSpec",
    "ANY_VERSION_RANGE",
]

#: Range used when a manifest dependency omits its ``range``.
ANY_VERSION_RANGE = "[0,)"


# ---------------------------------------------------------------------------
# Service index
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ServiceResource:
    """One ``resources`` entry of a service index."""

    id: str
    type: str


@dataclass(frozen=True)
class ServiceIndex:
    """The NuGet V3 entry point document."""

    resources: List[ServiceResource] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ServiceIndex":
        resources = [
            ServiceResource(id=str(item.get("@id", "")), type=str(item.get("@type", "")))
            for item in data.get("resources") or []
            if isinstance(item, dict)
        ]
        return cls(resources=resources)

    def urls_of_type(self, resource_type: str) -> List[str]:
        """Return the ``@id`` of every resource of *resource_type*, in order."""
        return [r.id for r in self.resources if r.type == resource_type and r.id]


# ---------------------------------------------------------------------------
# Registration catalog
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CatalogEntry:
    """Metadata of one package version inside a registration page."""

    id: str
    version: str
    package_content: str = ""
    title: str = ""
    authors: str = ""
    description: str = ""
    license_expression: str = ""
    license_url: str = ""
    project_url: str = ""

    @classmethod
    def from_json(cls, item: Dict[str, Any]) -> "CatalogEntry":
        """Build an entry from a registration leaf (``{catalogEntry: …}``)."""
        entry = item.get("catalogEntry") or {}
        authors = entry.get("authors") or ""
        if isinstance(authors, list):
            authors = ", ".join(str(a) for a in authors)

        return cls(
            id=str(entry.get("@id", "")),
            version=str(entry.get("version", "")),
            # nuget.org inlines packageContent in the entry, others only on the leaf
            package_content=str(entry.get("packageContent") or item.get("packageContent") or ""),
            title=str(entry.get("title") or ""),
            authors=str(authors),
            description=str(entry.get("description") or ""),
            license_expression=str(entry.get("licenseExpression") or ""),
            license_url=str(entry.get("licenseUrl") or ""),
            project_url=str(entry.get("projectUrl") or ""),
        )


@dataclass(frozen=True)
class CatalogPage:
    """A registration page; ``items`` is ``None`` when the page is not inlined."""

    id: str
    items: Optional[List[CatalogEntry]] = None
    lower: str = ""
    upper: str = ""

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "CatalogPage":
        raw_items = data.get("items")
        items = (
            [CatalogEntry.from_json(i) for i in raw_items if isinstance(i, dict)]
            if isinstance(raw_items, list)
            else None
        )
        return cls(
            id=str(data.get("@id", "")),
            items=items,
            lower=str(data.get("lower") or ""),
            upper=str(data.get("upper") or ""),
        )

    @property
    def is_inlined(self) -> bool:
        return self.items is not None


@dataclass(frozen=True)
class PackageCatalog:
    """All registration pages of one package."""

    pages: List[CatalogPage] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PackageCatalog":
        return cls(
            pages=[CatalogPage.from_json(p) for p in data.get("items") or [] if isinstance(p, dict)]
        )

    def entries(self) -> Iterator[CatalogEntry]:
        """Iterate the entries of every inlined page, in catalog order."""
        for page in self.pages:
            yield from page.items or []

    def find_entry(self, version: str) -> Optional[CatalogEntry]:
        """Return the entry whose version text equals *version*."""
        return next((e for e in self.entries() if e.version == version), None)


# ---------------------------------------------------------------------------
# Package details (manifest)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageDependency:
    """A dependency declared in a manifest dependency group."""

    id: str
    range: str


@dataclass(frozen=True)
class DependencyGroup:
    """Dependencies that apply to one target framework, or to all if ``None``."""

    target_framework: Optional[str]
    dependencies: List[PackageDependency] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "DependencyGroup":
        dependencies = [
            PackageDependency(
                id=str(dep.get("id", "")),
                range=str(dep.get("range") or ANY_VERSION_RANGE),
            )
            for dep in data.get("dependencies") or []
            if isinstance(dep, dict) and dep.get("id")
        ]
        return cls(
            target_framework=data.get("targetFramework") or None,
            dependencies=dependencies,
        )


@dataclass(frozen=True)
class PackageDetails:
    """The catalog leaf of one package version."""

    id: str
    version: str
    description: str = ""
    project_url: str = ""
    package_hash_algorithm: str = ""
    package_hash: str = ""
    dependency_groups: List[DependencyGroup] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "PackageDetails":
        return cls(
            id=str(data.get("id", "")),
            version=str(data.get("version", "")),
            description=str(data.get("description") or ""),
            project_url=str(data.get("projectUrl") or ""),
            package_hash_algorithm=str(data.get("packageHashAlgorithm") or ""),
            package_hash=str(data.get("packageHash") or ""),
            dependency_groups=[
                DependencyGroup.from_json(g)
                for g in data.get("dependencyGroups") or []
                if isinstance(g, dict)
            ],
        )

    def declared_frameworks(self) -> List[str]:
        """Return the target frameworks of all framework-specific groups."""
        return [g.target_framework for g in self.dependency_groups if g.target_framework]


# ---------------------------------------------------------------------------
# Package spec (.nuspec)
# ---------------------------------------------------------------------------


def _local_name(tag: str) -> str:
    """Strip the XML namespace from an element tag."""
    return tag.rsplit("}", 1)[-1]


def _child(parent: ET.Element, name: str) -> Optional[ET.Element]:
    for child in parent:
        if _local_name(child.tag) == name:
            return child
    return None


def _child_text(parent: ET.Element, name: str) -> Optional[str]:
    element = _child(parent, name)
    if element is None or element.text is None:
        return None
    return element.text.strip()


@dataclass(frozen=True)
class SpecLicense:
    type: str
    value: str


@dataclass(frozen=True)
class SpecRepository:
    type: Optional[str] = None
    url: Optional[str] = None
    commit: Optional[str] = None
    branch: Optional[str] = None


@dataclass(frozen=True)
class SpecMetadata:
    """The ``<metadata>`` block of a nuspec."""

    id: str
    version: str
    authors: Optional[str] = None
    description: Optional[str] = None
    license: Optional[SpecLicense] = None
    license_url: Optional[str] = None
    project_url: Optional[str] = None
    repository: Optional[SpecRepository] = None


@dataclass(frozen=True)
class PackageSpec:
    """A parsed ``.nuspec`` document."""

    metadata: SpecMetadata

    @classmethod
    def from_xml(cls, text: str) -> "PackageSpec":
        """Parse nuspec XML, ignoring namespaces.

        Raises:
            ValueError: The document is not well-formed or has no metadata.
        """
        try:
            root = ET.fromstring(text)
        except ET.ParseError as exc:
            raise ValueError(f"Invalid nuspec XML: {exc}") from exc

        metadata = root if _local_name(root.tag) == "metadata" else _child(root, "metadata")
        if metadata is None:
            raise ValueError("nuspec has no <metadata> element")

        license_element = _child(metadata, "license")
        license_value = None
        if license_element is not None and license_element.text:
            license_value = SpecLicense(
                type=license_element.get("type", ""),
                value=license_element.text.strip(),
            )

        repository_element = _child(metadata, "repository")
        repository = None
        if repository_element is not None:
            repository = SpecRepository(
                type=repository_element.get("type"),
                url=repository_element.get("url"),
                commit=repository_element.get("commit"),
                branch=repository_element.get("branch"),
            )

        return cls(
            metadata=SpecMetadata(
                id=_child_text(metadata, "id") or "",
                version=_child_text(metadata, "version") or "",
                authors=_child_text(metadata, "authors"),
                description=_child_text(metadata, "description"),
                license=license_value,
                license_url=_child_text(metadata, "licenseUrl"),
                project_url=_child_text(metadata, "projectUrl"),
                repository=repository,
            )
        )
