"""Definition and configuration file readers for nuresolve.

Readers turn NuGet's XML files into dependency requests or registry
sources:

- :class:`PackagesConfigReader` for legacy ``packages.config`` files,
- :class:`ProjectFileReader` for SDK-style ``*.csproj`` / ``*.fsproj`` /
  ``*.vbproj`` files with ``<PackageReference>`` items,
- :class:`NuGetConfigFileReader` for ``nuget.config`` package sources.

Element names are matched without their XML namespace, so both old-style
MSBuild files (with the ``msbuild/2003`` namespace) and SDK-style files
are understood.

Typical usage::

    reader = reader_for(Path("src/App/App.csproj"))
    requests = reader.get_dependencies(Path("src/App/App.csproj"))
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterator, List, Optional, Protocol, Set

from nuresolve.utils.logger import get_logger
from nuresolve.utils.filesystem import find_upwards, safe_read_file
from nuresolve.exceptions import ParseError
from nuresolve.models.dependency import DependencyRequest
from nuresolve.constants import (
    NUGET_CONFIG_FILE_NAME,
    PACKAGES_CONFIG_FILE_NAME,
    PROJECT_FILE_SUFFIXES,
)

logger = get_logger("readers")

# Public API
__all__ = [
    "DefinitionFileReader",
    "PackagesConfigReader",
    "ProjectFileReader",
    "NuGetConfigFileReader",
    "find_nuget_config",
    "reader_for",
]

_FRAMEWORK_CONDITION = re.compile(r"'\$\(TargetFramework\)'\s*==\s*'([^']*)'")


# ---------------------------------------------------------------------------
# XML helpers
# ---------------------------------------------------------------------------


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _iter_named(root: ET.Element, name: str) -> Iterator[ET.Element]:
    """Iterate every descendant element called *name*, ignoring namespaces."""
    for element in root.iter():
        if isinstance(element.tag, str) and _local_name(element.tag) == name:
            yield element


def _children_named(parent: ET.Element, name: str) -> Iterator[ET.Element]:
    for child in parent:
        if _local_name(child.tag) == name:
            yield child


def _attribute_or_child(element: ET.Element, name: str) -> Optional[str]:
    """Return an MSBuild item metadata value given as attribute or child."""
    value = element.get(name)
    if value is None:
        child = next(_children_named(element, name), None)
        if child is not None and child.text:
            value = child.text
    return value.strip() if value else value


def _parse_xml(path: Path) -> ET.Element:
    """Read and parse *path*.

    Raises:
        FileOperationError: The file cannot be read.
        ParseError: The file is not well-formed XML.
    """
    text = safe_read_file(path)
    try:
        return ET.fromstring(text)
    except ET.ParseError as exc:
        raise ParseError(
            f"Invalid XML in {path.name}: {exc}",
            line_number=exc.position[0],
            file_path=str(path),
        ) from exc


def _is_true(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


# ---------------------------------------------------------------------------
# Definition file readers
# ---------------------------------------------------------------------------


class DefinitionFileReader(Protocol):
    """Anything able to list the direct dependencies of a definition file."""

    def get_dependencies(self, definition_file: Path) -> Set[DependencyRequest]:
        ...


class PackagesConfigReader:
    """Reader for ``packages.config`` files.

    Each ``<package id version targetFramework developmentDependency/>``
    element becomes one request; its version is taken as written.
    """

    def get_dependencies(self, definition_file: Path) -> Set[DependencyRequest]:
        root = _parse_xml(definition_file)
        requests: Set[DependencyRequest] = set()

        for element in _iter_named(root, "package"):
            name = element.get("id")
            version = element.get("version")
            if not name or not version:
                raise ParseError(
                    "Package entry without 'id' or 'version' attribute",
                    file_path=str(definition_file),
                )

            requests.add(
                DependencyRequest(
                    name=name.strip(),
                    version=version.strip(),
                    target_framework=(element.get("targetFramework") or "").strip(),
                    development_dependency=_is_true(element.get("developmentDependency")),
                )
            )

        logger.debug("Read %d package(s) from %s", len(requests), definition_file)
        return requests


class ProjectFileReader:
    """Reader for SDK-style MSBuild project files.

    ``<PackageReference Include|Update="…" Version="…"/>`` items are read,
    with ``Version`` and ``PrivateAssets`` given as attribute or child
    element.  An item group conditioned on
    ``'$(TargetFramework)' == 'x'`` assigns framework ``x``; other items
    get the project's single ``<TargetFramework>``, if it declares one.
    ``PrivateAssets="all"`` marks a development-only dependency.
    """

    def get_dependencies(self, definition_file: Path) -> Set[DependencyRequest]:
        root = _parse_xml(definition_file)
        default_framework = self._single_target_framework(root)
        requests: Set[DependencyRequest] = set()

        for item_group in _iter_named(root, "ItemGroup"):
            framework = self._condition_framework(item_group.get("Condition"))
            if framework is None:
                framework = default_framework

            for element in _children_named(item_group, "PackageReference"):
                request = self._to_request(element, framework, definition_file)
                if request is not None:
                    requests.add(request)

        logger.debug("Read %d package reference(s) from %s", len(requests), definition_file)
        return requests

    @staticmethod
    def _single_target_framework(root: ET.Element) -> str:
        frameworks = [
            element.text.strip()
            for element in _iter_named(root, "TargetFramework")
            if element.text and element.text.strip()
        ]
        return frameworks[0] if len(set(frameworks)) == 1 else ""

    @staticmethod
    def _condition_framework(condition: Optional[str]) -> Optional[str]:
        if not condition:
            return None
        match = _FRAMEWORK_CONDITION.search(condition)
        return match.group(1).strip() if match else None

    @staticmethod
    def _to_request(
        element: ET.Element,
        framework: str,
        definition_file: Path,
    ) -> Optional[DependencyRequest]:
        name = element.get("Include") or element.get("Update")
        if not name:
            raise ParseError(
                "PackageReference without 'Include' or 'Update' attribute",
                file_path=str(definition_file),
            )

        version = _attribute_or_child(element, "Version")
        if not version:
            # Centrally managed versions live outside the project file
            logger.warning("Ignoring %s without a version in %s", name, definition_file.name)
            return None

        private_assets = _attribute_or_child(element, "PrivateAssets") or ""
        return DependencyRequest(
            name=name.strip(),
            version=version,
            target_framework=framework,
            development_dependency=private_assets.lower() == "all",
        )


def reader_for(definition_file: Path) -> DefinitionFileReader:
    """Pick the reader matching the file name of *definition_file*.

    Raises:
        ParseError: The file is not a supported definition file.
    """
    name = definition_file.name.lower()
    if name == PACKAGES_CONFIG_FILE_NAME:
        return PackagesConfigReader()
    if name.endswith(tuple(PROJECT_FILE_SUFFIXES)):
        return ProjectFileReader()

    raise ParseError(
        f"Unsupported definition file '{definition_file.name}'; expected "
        f"{PACKAGES_CONFIG_FILE_NAME} or a {', '.join(PROJECT_FILE_SUFFIXES)} file",
        file_path=str(definition_file),
    )


# ---------------------------------------------------------------------------
# nuget.config
# ---------------------------------------------------------------------------


class NuGetConfigFileReader:
    """Reader for the package sources of a ``nuget.config`` file."""

    def get_service_index_urls(self, config_file: Path) -> List[str]:
        """Return the remote package source URLs, in declaration order.

        Local (file system) sources are not supported and are skipped with
        a warning.
        """
        root = _parse_xml(config_file)

        sources: List[str] = []
        for package_sources in _iter_named(root, "packageSources"):
            for element in _children_named(package_sources, "add"):
                value = (element.get("value") or "").strip()
                if value:
                    sources.append(value)

        remotes = [s for s in sources if s.lower().startswith("http")]
        locals_ = [s for s in sources if not s.lower().startswith("http")]
        if locals_:
            logger.warning("Ignoring local NuGet package sources %s.", locals_)

        return remotes


def find_nuget_config(start: Path) -> Optional[Path]:
    """Return the closest ``nuget.config`` in *start* or its parents."""
    return find_upwards(start, NUGET_CONFIG_FILE_NAME)
