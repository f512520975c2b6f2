from __future__ import annotations

import pytest

from nuresolve.models.dependency import DependencyRequest
from nuresolve.models.identifier import (
    Identifier,
    Issue,
    PackageReference,
    Scope,
    Severity,
)


def ref(name: str, version: str = "1.0.0", *children: PackageReference, issues=()) -> PackageReference:
    return PackageReference(id=Identifier.nuget(name, version), dependencies=children, issues=issues)


# ============================================================================
# Test: Identifier
# ============================================================================


@pytest.mark.unit
class TestIdentifier:
    """Tests for package coordinates."""

    def test_nuget_factory(self) -> None:
        """Test that NuGet identifiers have type NuGet and no namespace."""
        identifier = Identifier.nuget("Newtonsoft.Json", "13.0.1")

        assert identifier == Identifier("NuGet", "", "Newtonsoft.Json", "13.0.1")
        assert identifier.to_coordinates() == "NuGet::Newtonsoft.Json:13.0.1"
        assert str(identifier) == identifier.to_coordinates()

    def test_ordering_uses_all_fields(self) -> None:
        """Test that identifiers sort by name, then version."""
        identifiers = [
            Identifier.nuget("B", "1.0.0"),
            Identifier.nuget("A", "2.0.0"),
            Identifier.nuget("A", "1.0.0"),
        ]

        assert sorted(identifiers) == [
            Identifier.nuget("A", "1.0.0"),
            Identifier.nuget("A", "2.0.0"),
            Identifier.nuget("B", "1.0.0"),
        ]


# ============================================================================
# Test: Issue
# ============================================================================


@pytest.mark.unit
class TestIssue:
    """Tests for analysis issues."""

    def test_defaults(self) -> None:
        """Test that issues default to NuGet ERRORs."""
        issue = Issue("Something failed")

        assert issue.severity is Severity.ERROR
        assert issue.source == "NuGet"

    def test_equality_ignores_timestamp(self) -> None:
        """Test that two issues with the same content are equal."""
        assert Issue("x", Severity.WARNING) == Issue("x", Severity.WARNING)

    def test_to_json(self) -> None:
        """Test the JSON representation."""
        data = Issue("Something failed", Severity.HINT).to_json()

        assert data["severity"] == "HINT"
        assert data["message"] == "Something failed"
        assert data["source"] == "NuGet"
        assert "timestamp" in data


# ============================================================================
# Test: PackageReference and Scope
# ============================================================================


@pytest.mark.unit
class TestPackageReference:
    """Tests for dependency forest nodes."""

    def test_children_sorted_and_deduplicated(self) -> None:
        """Test that children are sorted by id and unique per id."""
        first_b = ref("B", "1.0.0", ref("C"))
        reference = ref("A", "1.0.0", ref("C"), first_b, ref("B", "1.0.0"))

        assert [d.id.name for d in reference.dependencies] == ["B", "C"]
        assert reference.dependencies[0] is first_b

    def test_equality_by_id_only(self) -> None:
        """Test that references with the same id are equal."""
        assert ref("A", "1.0.0", ref("B")) == ref("A")
        assert len({ref("A", "1.0.0", ref("B")), ref("A")}) == 1

    def test_collect_resolved(self) -> None:
        """Test that every identifier below the reference is collected."""
        reference = ref("A", "1.0.0", ref("B", "1.0.0", ref("C")), ref("D"))

        assert reference.collect_resolved() == {
            Identifier.nuget("B", "1.0.0"),
            Identifier.nuget("C", "1.0.0"),
            Identifier.nuget("D", "1.0.0"),
        }

    def test_collect_issues(self) -> None:
        """Test that issues are collected from the whole subtree."""
        issue = Issue("Cannot find a version")
        reference = ref("A", "1.0.0", ref("B", "[9.0,)", issues=(issue,)))

        assert reference.collect_issues() == {Identifier.nuget("B", "[9.0,)"): [issue]}

    def test_collect_resolved_skips_issue_references(self) -> None:
        """Test that a reference carrying issues is not reported as resolved.

        Edge case: a bare range text looks exactly like a real version.
        """
        issue = Issue("Cannot find a version")
        reference = ref("A", "1.0.0", ref("X", "2.0.0", issues=(issue,)), ref("B"))

        assert reference.collect_resolved() == {Identifier.nuget("B", "1.0.0")}

    def test_collect_issues_keeps_every_requester(self) -> None:
        """Test that issues sharing an identifier are accumulated, not replaced."""
        first = Issue("A cannot resolve X")
        second = Issue("B cannot resolve X")
        scope = Scope(
            "net6.0",
            (
                ref("A", "1.0.0", ref("X", "[9.0,)", issues=(first,))),
                ref("B", "1.0.0", ref("X", "[9.0,)", issues=(second,))),
            ),
        )

        assert scope.collect_issues() == {Identifier.nuget("X", "[9.0,)"): [first, second]}

    def test_to_json(self) -> None:
        """Test that empty children and issues are omitted."""
        data = ref("A", "1.0.0", ref("B")).to_json()

        assert data == {
            "id": "NuGet::A:1.0.0",
            "dependencies": [{"id": "NuGet::B:1.0.0"}],
        }


@pytest.mark.unit
class TestScope:
    """Tests for scopes."""

    def test_collect_resolved_includes_roots(self) -> None:
        """Test that roots and their subtrees are collected."""
        scope = Scope("net6.0", (ref("A", "1.0.0", ref("B")), ref("C")))

        assert scope.collect_resolved() == {
            Identifier.nuget("A", "1.0.0"),
            Identifier.nuget("B", "1.0.0"),
            Identifier.nuget("C", "1.0.0"),
        }

    def test_scopes_sort_by_name(self) -> None:
        """Test that scopes order by name."""
        scopes = sorted([Scope("net6.0"), Scope("allTargetFrameworks"), Scope("dev-net6.0")])

        assert [s.name for s in scopes] == ["allTargetFrameworks", "dev-net6.0", "net6.0"]

    def test_to_json(self) -> None:
        """Test the JSON representation."""
        assert Scope("net6.0", (ref("A"),)).to_json() == {
            "name": "net6.0",
            "dependencies": [{"id": "NuGet::A:1.0.0"}],
        }


@pytest.mark.unit
class TestDependencyRequest:
    """Tests for dependency requests."""

    def test_defaults(self) -> None:
        """Test the default framework and development flag."""
        request = DependencyRequest("Foo", "[1.0,2.0)")

        assert request.target_framework == ""
        assert request.development_dependency is False
