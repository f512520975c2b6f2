from __future__ import annotations

import pytest
from pathlib import Path
from typing import Optional

from nuresolve.models.identifier import Identifier
from nuresolve.models.project import VcsInfo
from nuresolve.core.assembler import (
    PackageAssembler,
    build_package,
    build_project,
    parse_authors,
    parse_licenses,
    parse_vcs,
    resolve_local_spec,
)
from nuresolve.models.registry import (
    CatalogEntry,
    PackageDetails,
    PackageSpec,
    SpecLicense,
    SpecMetadata,
    SpecRepository,
)


def spec(
    *,
    authors: Optional[str] = None,
    license: Optional[SpecLicense] = None,
    license_url: Optional[str] = None,
    repository: Optional[SpecRepository] = None,
    id: str = "Foo",
    version: str = "1.0.0",
) -> PackageSpec:
    return PackageSpec(
        metadata=SpecMetadata(
            id=id,
            version=version,
            authors=authors,
            license=license,
            license_url=license_url,
            repository=repository,
        )
    )


# ============================================================================
# Test: Metadata mapping
# ============================================================================


@pytest.mark.unit
class TestParseLicenses:
    """Tests for declared license extraction."""

    def test_license_expression(self) -> None:
        """Test that a license expression is used as written."""
        assert parse_licenses(spec(license=SpecLicense("expression", "MIT"))) == ("MIT",)

    def test_file_license_falls_back_to_url(self) -> None:
        """Test that a license file inside the package is not a declaration."""
        result = parse_licenses(
            spec(
                license=SpecLicense("file", "LICENSE.txt"),
                license_url="https://example.test/license",
            )
        )

        assert result == ("https://example.test/license",)

    def test_deprecated_placeholder_url_is_ignored(self) -> None:
        """Test that NuGet's placeholder license URL is not reported."""
        result = parse_licenses(
            spec(
                license=SpecLicense("file", "LICENSE.txt"),
                license_url="https://aka.ms/deprecateLicenseUrl",
            )
        )

        assert result == ()

    def test_no_spec(self) -> None:
        """Test that a missing spec declares nothing."""
        assert parse_licenses(None) == ()


@pytest.mark.unit
class TestParseAuthorsAndVcs:
    """Tests for author and repository mapping."""

    def test_authors_split_sorted_unique(self) -> None:
        """Test splitting on commas and semicolons."""
        assert parse_authors(spec(authors="Jane; John,Jane , ")) == ("Jane", "John")

    def test_no_authors(self) -> None:
        """Test that missing authors give an empty tuple."""
        assert parse_authors(spec()) == ()
        assert parse_authors(None) == ()

    def test_vcs_prefers_commit_over_branch(self) -> None:
        """Test that the commit is the revision when both are present."""
        repository = SpecRepository(
            type="git", url="https://git.test/foo", commit="abc123", branch="main"
        )

        assert parse_vcs(spec(repository=repository)) == VcsInfo(
            type="git", url="https://git.test/foo", revision="abc123"
        )

    def test_vcs_branch_and_missing_repository(self) -> None:
        """Test the branch fallback and the empty VCS record."""
        repository = SpecRepository(type="git", url="https://git.test/foo", branch="main")

        assert parse_vcs(spec(repository=repository)).revision == "main"
        assert parse_vcs(spec()).is_empty()


# ============================================================================
# Test: Records
# ============================================================================


@pytest.mark.unit
class TestBuildRecords:
    """Tests for package and project record assembly."""

    def test_build_package(self) -> None:
        """Test that catalog entry, manifest and spec are combined."""
        identifier = Identifier.nuget("Foo", "1.0.0")
        entry = CatalogEntry(
            id="https://feed.test/catalog/foo.1.0.0.json",
            version="1.0.0",
            package_content="https://feed.test/flat/foo/1.0.0/foo.1.0.0.nupkg",
        )
        details = PackageDetails(
            id="Foo",
            version="1.0.0",
            description="A package",
            project_url="https://foo.test",
            package_hash_algorithm="sha512",
            package_hash="AAAA",
        )

        package = build_package(
            identifier, entry, details, spec(authors="Jane", license=SpecLicense("expression", "MIT"))
        )

        assert package.id == identifier
        assert package.authors == ("Jane",)
        assert package.declared_licenses == ("MIT",)
        assert package.description == "A package"
        assert package.homepage_url == "https://foo.test"
        assert package.binary_artifact.url == entry.package_content
        assert package.binary_artifact.hash.algorithm == "SHA512"

    def test_build_project_uses_relative_path(self, tmp_path: Path) -> None:
        """Test that a project without local spec is named by its path."""
        definition_file = tmp_path / "src" / "App" / "App.csproj"
        definition_file.parent.mkdir(parents=True)
        definition_file.write_text("<Project/>")

        project = build_project(definition_file, tmp_path)

        assert project.id == Identifier("NuGet", "", "src/App/App.csproj", "")
        assert project.definition_file_path == "src/App/App.csproj"

    def test_build_project_uses_local_spec(self, tmp_path: Path) -> None:
        """Test that a local spec names the project."""
        definition_file = tmp_path / "packages.config"
        definition_file.write_text("<packages/>")

        project = build_project(
            definition_file, tmp_path, spec(id="MyLib", version="2.1.0", authors="Me")
        )

        assert project.id == Identifier("NuGet", "", "MyLib", "2.1.0")
        assert project.authors == ("Me",)

    def test_build_project_outside_root(self, tmp_path: Path) -> None:
        """Test that a file outside the analysis root keeps its file name."""
        definition_file = tmp_path / "a" / "packages.config"
        definition_file.parent.mkdir()
        definition_file.write_text("<packages/>")
        other_root = tmp_path / "b"
        other_root.mkdir()

        project = build_project(definition_file, other_root)

        assert project.definition_file_path == "packages.config"

    def test_resolve_local_spec(self, tmp_path: Path) -> None:
        """Test that only a file literally named '.nuspec' is picked up."""
        definition_file = tmp_path / "packages.config"
        assert resolve_local_spec(definition_file) is None

        (tmp_path / ".nuspec").write_text("<package/>")

        assert resolve_local_spec(definition_file) == tmp_path / ".nuspec"


@pytest.mark.unit
class TestPackageAssembler:
    """Tests for fetching package records through the registry."""

    @pytest.mark.asyncio
    async def test_get_package(self, registry) -> None:
        """Test that the assembler combines the registry documents."""
        registry.add("Foo", "1.0.0").add_spec("Foo", "1.0.0", "Jane, John")

        package = await PackageAssembler(registry).get_package(Identifier.nuget("Foo", "1.0.0"))

        assert package.authors == ("Jane", "John")
        assert package.description == "Foo package"
        assert package.binary_artifact.url.endswith("foo.1.0.0.nupkg")
