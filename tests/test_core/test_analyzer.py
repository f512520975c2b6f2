from __future__ import annotations

import pytest
from pathlib import Path
from typing import Set
from unittest.mock import AsyncMock, MagicMock

from nuresolve.exceptions import RegistryError
from nuresolve.models.identifier import Identifier, Severity
from nuresolve.models.dependency import DependencyRequest
from nuresolve.core.analyzer import NuGetAnalyzer, group_requests, scope_name


class StaticReader:
    """Definition file reader returning a fixed set of requests."""

    def __init__(self, requests: Set[DependencyRequest]) -> None:
        self.requests = requests

    def get_dependencies(self, definition_file: Path) -> Set[DependencyRequest]:
        return set(self.requests)


# ============================================================================
# Test: Scopes
# ============================================================================


@pytest.mark.unit
class TestScopes:
    """Tests for scope naming and request grouping."""

    @pytest.mark.parametrize(
        "framework,development,expected",
        [
            ("", False, "allTargetFrameworks"),
            ("", True, "dev-allTargetFrameworks"),
            ("net6.0", False, "net6.0"),
            ("net6.0", True, "dev-net6.0"),
        ],
    )
    def test_scope_name(self, framework: str, development: bool, expected: str) -> None:
        """Test scope names for every framework/development combination."""
        assert scope_name(framework, development) == expected

    def test_framework_groups_include_agnostic_requests(self) -> None:
        """Test that framework-agnostic requests join every framework group.

        Edge case: they only join groups with the same development flag.
        """
        common = DependencyRequest("Common", "1.0.0")
        tool = DependencyRequest("Tool", "1.0.0", development_dependency=True)
        legacy = DependencyRequest("Legacy", "1.0.0", "net472")
        analyzer_pkg = DependencyRequest("Analyzers", "1.0.0", "net472", True)

        groups = group_requests({common, tool, legacy, analyzer_pkg})

        assert groups == {
            ("", False): [common],
            ("", True): [tool],
            ("net472", False): [common, legacy],
            ("net472", True): [analyzer_pkg, tool],
        }

    def test_no_requests(self) -> None:
        """Test that no requests produce no groups."""
        assert group_requests(set()) == {}


# ============================================================================
# Test: NuGetAnalyzer
# ============================================================================


@pytest.mark.integration
class TestNuGetAnalyzer:
    """Tests for analyzing a definition file end to end."""

    @pytest.mark.asyncio
    async def test_resolve_dependencies(self, registry, frameworks, tmp_path: Path) -> None:
        """Test scopes, packages and issues of one project.

        Happy path: resolved identifiers get package records while issue
        references are left out.
        """
        registry.add("A", "1.0.0", [(None, [("B", "[1.0.0,)")])])
        registry.add("B", "1.0.0").add("B", "2.0.0")
        registry.add("Tool", "3.0.0")
        registry.add_spec("A", "1.0.0", "Jane")
        definition_file = tmp_path / "packages.config"
        definition_file.write_text("<packages/>")
        reader = StaticReader(
            {
                DependencyRequest("A", "1.0.0"),
                DependencyRequest("Tool", "3.0.0", "net6.0", True),
                DependencyRequest("Missing", "1.0.0", "net6.0"),
            }
        )

        result = await NuGetAnalyzer(registry, frameworks).resolve_dependencies(
            definition_file, reader
        )

        project = result.project
        assert project.id == Identifier("NuGet", "", "packages.config", "")
        assert [s.name for s in project.scopes] == [
            "allTargetFrameworks",
            "dev-net6.0",
            "net6.0",
        ]
        assert [p.id for p in result.packages] == [
            Identifier.nuget("A", "1.0.0"),
            Identifier.nuget("B", "1.0.0"),
            Identifier.nuget("Tool", "3.0.0"),
        ]
        assert result.packages[0].authors == ("Jane",)
        assert result.issues == []
        assert Identifier.nuget("Missing", "1.0.0") in result.dependency_issues()
        assert result.has_issues()

    @pytest.mark.asyncio
    async def test_package_assembly_failure_becomes_warning(
        self, registry, frameworks, tmp_path: Path
    ) -> None:
        """Test that a package whose metadata fails is dropped with a warning."""
        registry.add("A", "1.0.0")
        definition_file = tmp_path / "packages.config"
        definition_file.write_text("<packages/>")
        analyzer = NuGetAnalyzer(registry, frameworks)
        analyzer.assembler = MagicMock()
        analyzer.assembler.get_package = AsyncMock(
            side_effect=RegistryError("metadata unavailable", package_name="A")
        )

        result = await analyzer.resolve_dependencies(
            definition_file, StaticReader({DependencyRequest("A", "1.0.0")})
        )

        assert result.packages == ()
        assert len(result.issues) == 1
        assert result.issues[0].severity is Severity.WARNING
        assert "NuGet::A:1.0.0" in result.issues[0].message

    @pytest.mark.asyncio
    async def test_local_spec_names_project(self, registry, frameworks, tmp_path: Path) -> None:
        """Test that a '.nuspec' next to the definition file names the project."""
        (tmp_path / ".nuspec").write_text(
            "<package><metadata><id>MyLib</id><version>2.0.0</version>"
            "<authors>Me</authors></metadata></package>"
        )
        definition_file = tmp_path / "packages.config"
        definition_file.write_text("<packages/>")

        result = await NuGetAnalyzer(registry, frameworks).resolve_dependencies(
            definition_file, StaticReader(set())
        )

        assert result.project.id == Identifier("NuGet", "", "MyLib", "2.0.0")
        assert result.project.scopes == ()
        assert not result.has_issues()

    @pytest.mark.asyncio
    async def test_invalid_local_spec_is_ignored(
        self, registry, frameworks, tmp_path: Path
    ) -> None:
        """Test that an unparsable local spec falls back to the path name."""
        (tmp_path / ".nuspec").write_text("<package>")
        definition_file = tmp_path / "packages.config"
        definition_file.write_text("<packages/>")

        result = await NuGetAnalyzer(registry, frameworks).resolve_dependencies(
            definition_file, StaticReader(set())
        )

        assert result.project.id.name == "packages.config"


    @pytest.mark.asyncio
    async def test_issue_reference_does_not_hide_resolved_package(
        self, registry, frameworks, tmp_path: Path
    ) -> None:
        """Test that a conflict in one scope keeps the same version resolved elsewhere.

        Edge case: the net472 issue reference for ``X 2.0.0`` has the same
        identifier as the package resolved for net48.
        """
        registry.add("A", "1.0.0", [(None, [("X", "2.0.0")])])
        registry.add("X", "1.0.0").add("X", "2.0.0")
        definition_file = tmp_path / "packages.config"
        definition_file.write_text("<packages/>")
        reader = StaticReader(
            {
                DependencyRequest("X", "[1.0.0,3.0.0]", "net472"),
                DependencyRequest("A", "1.0.0", "net472"),
                DependencyRequest("X", "2.0.0", "net48"),
            }
        )

        result = await NuGetAnalyzer(registry, frameworks).resolve_dependencies(
            definition_file, reader
        )

        assert [p.id for p in result.packages] == [
            Identifier.nuget("A", "1.0.0"),
            Identifier.nuget("X", "1.0.0"),
            Identifier.nuget("X", "2.0.0"),
        ]
        assert Identifier.nuget("X", "2.0.0") in result.dependency_issues()
        assert result.issues == []
