"""Package and project record assembly for nuresolve.

Maps registry metadata onto the analysis-result models.  The mapping
functions are pure; :class:`PackageAssembler` only gathers the catalog
entry, manifest, and spec it needs from the registry.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Tuple

from nuresolve.core.registry import NuGetRegistry
from nuresolve.models.identifier import Identifier
from nuresolve.models.registry import CatalogEntry, PackageDetails, PackageSpec
from nuresolve.models.project import Hash, Package, Project, RemoteArtifact, VcsInfo
from nuresolve.constants import DEPRECATED_LICENSE_URL, PACKAGE_SPEC_SUFFIX

# Public API
__all__ = [
    "PackageAssembler",
    "build_package",
    "build_project",
    "parse_authors",
    "parse_licenses",
    "parse_vcs",
    "resolve_local_spec",
]

_AUTHOR_SEPARATORS = re.compile(r"[,;]")


def parse_licenses(spec: Optional[PackageSpec]) -> Tuple[str, ...]:
    """Return the declared license of *spec*, if any.

    The structured ``<license>`` element wins unless it points to a file
    inside the package; otherwise the deprecated ``<licenseUrl>`` is used,
    ignoring the placeholder URL NuGet inserts for packages that moved to
    ``<license>``.
    """
    if spec is None:
        return ()

    metadata = spec.metadata
    license_text: Optional[str] = None
    if metadata.license is not None and metadata.license.type != "file":
        license_text = metadata.license.value
    if not license_text and metadata.license_url != DEPRECATED_LICENSE_URL:
        license_text = metadata.license_url

    return (license_text,) if license_text else ()


def parse_authors(spec: Optional[PackageSpec]) -> Tuple[str, ...]:
    """Split the authors of *spec* on ``,`` and ``;``, sorted and unique.

    Example::

        >>> parse_authors(PackageSpec(SpecMetadata("a", "1", authors="Jane; John,Jane")))
        ('Jane', 'John')
    """
    if spec is None or not spec.metadata.authors:
        return ()

    authors = {a.strip() for a in _AUTHOR_SEPARATORS.split(spec.metadata.authors)}
    return tuple(sorted(a for a in authors if a))


def parse_vcs(spec: Optional[PackageSpec]) -> VcsInfo:
    """Build VCS coordinates from the ``<repository>`` element of *spec*."""
    if spec is None or spec.metadata.repository is None:
        return VcsInfo()

    repository = spec.metadata.repository
    return VcsInfo(
        type=repository.type or "",
        url=repository.url or "",
        revision=repository.commit or repository.branch or "",
    )


def build_package(
    identifier: Identifier,
    entry: CatalogEntry,
    details: PackageDetails,
    spec: PackageSpec,
) -> Package:
    """Assemble the :class:`Package` record of a resolved identifier."""
    return Package(
        id=identifier,
        authors=parse_authors(spec),
        declared_licenses=parse_licenses(spec),
        description=details.description,
        homepage_url=details.project_url,
        binary_artifact=RemoteArtifact(
            url=entry.package_content,
            hash=Hash.create(details.package_hash_algorithm, details.package_hash),
        ),
        vcs=parse_vcs(spec),
    )


def resolve_local_spec(definition_file: Path) -> Optional[Path]:
    """Return the ``.nuspec`` file next to *definition_file*, if present."""
    candidate = definition_file.parent / PACKAGE_SPEC_SUFFIX
    return candidate if candidate.is_file() else None


def build_project(
    definition_file: Path,
    analysis_root: Path,
    local_spec: Optional[PackageSpec] = None,
    project_type: str = "NuGet",
) -> Project:
    """Assemble the :class:`Project` record of a definition file.

    The project is named after the id of its local spec, or else after the
    definition file's path relative to *analysis_root*.
    """
    try:
        relative_path = definition_file.resolve().relative_to(analysis_root.resolve())
    except ValueError:
        relative_path = Path(definition_file.name)

    name = relative_path.as_posix()
    version = ""
    if local_spec is not None and local_spec.metadata.id:
        name = local_spec.metadata.id
        version = local_spec.metadata.version

    return Project(
        id=Identifier(type=project_type, namespace="", name=name, version=version),
        definition_file_path=relative_path.as_posix(),
        authors=parse_authors(local_spec),
        declared_licenses=parse_licenses(local_spec),
    )


class PackageAssembler:
    """Fetch registry metadata and assemble :class:`Package` records.

    Args:
        registry: Registry client to fetch from.
    """

    def __init__(self, registry: NuGetRegistry) -> None:
        self.registry = registry

    async def get_package(self, identifier: Identifier) -> Package:
        """Return the package record of *identifier*.

        Raises:
            RegistryError: Catalog entry, manifest, or spec is unavailable.
            NetworkError: A document could not be fetched.
        """
        entry = await self.registry.get_catalog_entry(identifier.name, identifier.version)
        details = await self.registry.get_details(identifier.name, identifier.version)
        spec = await self.registry.get_spec(identifier.name, identifier.version)

        return build_package(identifier, entry, details, spec)
