"""
Core functionality exports for nuresolve.

Importing from here keeps user-facing imports clean and stable:

    from nuresolve.core import NuGetAnalyzer, NuGetRegistry, parse_range
"""

from __future__ import annotations

from nuresolve.core.versioning import (
    Version,
    VersionRange,
    normalize_version,
    parse_range,
    parse_version,
)
from nuresolve.core.registry import NuGetRegistry, derive_spec_url
from nuresolve.core.frameworks import (
    FrameworkResolver,
    NuGetToolsFrameworkResolver,
    parse_nearest_framework,
)
from nuresolve.core.resolver import VersionResolutionResult, VersionResolver
from nuresolve.core.tree import DependencyTreeBuilder
from nuresolve.core.assembler import (
    PackageAssembler,
    build_package,
    build_project,
    parse_authors,
    parse_licenses,
)
from nuresolve.core.readers import (
    DefinitionFileReader,
    NuGetConfigFileReader,
    PackagesConfigReader,
    ProjectFileReader,
    find_nuget_config,
    reader_for,
)
from nuresolve.core.analyzer import NuGetAnalyzer, scope_name

__all__ = [
    # Versions
    "Version",
    "VersionRange",
    "normalize_version",
    "parse_range",
    "parse_version",
    # Registry
    "NuGetRegistry",
    "derive_spec_url",
    # Frameworks
    "FrameworkResolver",
    "NuGetToolsFrameworkResolver",
    "parse_nearest_framework",
    # Resolution
    "VersionResolutionResult",
    "VersionResolver",
    "DependencyTreeBuilder",
    # Assembly
    "PackageAssembler",
    "build_package",
    "build_project",
    "parse_authors",
    "parse_licenses",
    # Readers
    "DefinitionFileReader",
    "NuGetConfigFileReader",
    "PackagesConfigReader",
    "ProjectFileReader",
    "find_nuget_config",
    "reader_for",
    # Analysis
    "NuGetAnalyzer",
    "scope_name",
]
