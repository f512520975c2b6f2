from __future__ import annotations

import pytest

from nuresolve.core.resolver import VersionResolver
from nuresolve.exceptions import MalformedRangeError
from nuresolve.models.dependency import DependencyRequest
from nuresolve.models.identifier import Identifier, Severity


# ============================================================================
# Fixtures
# ============================================================================

PROJECT = Identifier("NuGet", "", "App", "")
FIRST = Identifier.nuget("First", "1.0.0")
SECOND = Identifier.nuget("Second", "1.0.0")


@pytest.fixture
def resolver(registry):
    registry.add("A", "1.0.0").add("A", "1.5.0").add("A", "2.0.0")
    return VersionResolver(registry)


# ============================================================================
# Test: Lowest satisfying version
# ============================================================================


@pytest.mark.unit
class TestLowestMatch:
    """Tests for picking the lowest version satisfying every sibling."""

    @pytest.mark.asyncio
    async def test_lowest_version_satisfying_all_requests(self, resolver) -> None:
        """Test that sibling ranges are intersected.

        Happy path: [1.0.0,2.0.0] and [1.2.0,) leave 1.5.0 as the lowest
        common version.
        """
        result = await resolver.resolve(
            [
                (FIRST, DependencyRequest("A", "[1.0.0,2.0.0]")),
                (SECOND, DependencyRequest("A", "[1.2.0,)")),
            ]
        )

        assert result.resolved_versions == frozenset({Identifier.nuget("A", "1.5.0")})
        assert result.newly_resolved == result.resolved_versions
        assert result.issues == {}

    @pytest.mark.asyncio
    async def test_names_are_grouped_case_insensitively(self, resolver) -> None:
        """Test that 'A' and 'a' are the same package.

        The first spelling names the resolved identifier.
        """
        result = await resolver.resolve(
            [
                (FIRST, DependencyRequest("A", "[1.0.0,)")),
                (SECOND, DependencyRequest("a", "[1.5.0,)")),
            ]
        )

        assert result.resolved_versions == frozenset({Identifier.nuget("A", "1.5.0")})

    @pytest.mark.asyncio
    async def test_conflicting_pinned_versions(self, resolver) -> None:
        """Test that disjoint ranges resolve nothing.

        Edge case: each requester gets an issue whose reference carries
        its own range text.
        """
        result = await resolver.resolve(
            [
                (FIRST, DependencyRequest("A", "[1.0.0]")),
                (SECOND, DependencyRequest("A", "[2.0.0]")),
            ]
        )

        assert result.resolved_versions == frozenset()
        assert result.newly_resolved == frozenset()
        assert sum(len(entries) for entries in result.issues.values()) == 2

        reference, issue = result.issues[FIRST][0]
        assert reference == Identifier.nuget("A", "[1.0.0]")
        assert issue.severity is Severity.ERROR
        assert "Cannot find a version for A" in issue.message
        assert result.issues[SECOND][0][0] == Identifier.nuget("A", "[2.0.0]")

    @pytest.mark.asyncio
    async def test_unknown_package(self, resolver) -> None:
        """Test that a package without versions yields an issue."""
        result = await resolver.resolve([(PROJECT, DependencyRequest("Missing", "1.0.0"))])

        assert result.resolved_versions == frozenset()
        assert result.issue_for(PROJECT, "missing") is not None

    @pytest.mark.asyncio
    async def test_malformed_range_propagates(self, resolver) -> None:
        """Test that an unparsable range raises instead of becoming an issue."""
        with pytest.raises(MalformedRangeError):
            await resolver.resolve([(PROJECT, DependencyRequest("A", "[1.0.0,"))])

    @pytest.mark.asyncio
    async def test_resolution_is_idempotent(self, resolver) -> None:
        """Test that resolving the same batch twice gives the same result."""
        requests = [
            (FIRST, DependencyRequest("A", "[1.0.0]")),
            (SECOND, DependencyRequest("A", "[2.0.0]")),
            (PROJECT, DependencyRequest("A", "(1.0.0,)")),
        ]

        first = await resolver.resolve(requests)
        second = await resolver.resolve(requests)

        assert first.resolved_versions == second.resolved_versions
        assert first.issues == second.issues


# ============================================================================
# Test: Already resolved versions
# ============================================================================


@pytest.mark.unit
class TestAlreadyResolved:
    """Tests for reusing versions chosen at an outer level."""

    @pytest.mark.asyncio
    async def test_reused_version_never_changes(self, registry, resolver) -> None:
        """Test that a conflicting request does not replace a resolved version.

        Edge case: the requester gets a conflict issue and the registry is
        not consulted.
        """
        existing = Identifier.nuget("A", "1.0.0")

        result = await resolver.resolve(
            [(FIRST, DependencyRequest("A", "[2.0.0,)"))],
            already_resolved=frozenset({existing}),
        )

        assert result.resolved_versions == frozenset({existing})
        assert result.newly_resolved == frozenset()
        reference, issue = result.issue_for(FIRST, "A")
        assert reference == Identifier.nuget("A", "[2.0.0,)")
        assert issue.message == (
            "Already resolved version '1.0.0' of package 'A' does not satisfy "
            "version requirement '[2.0.0,)'."
        )
        assert registry.version_calls == []

    @pytest.mark.asyncio
    async def test_satisfied_reuse_has_no_issue(self, resolver) -> None:
        """Test that a compatible request simply reuses the version."""
        existing = Identifier.nuget("A", "1.5.0")

        result = await resolver.resolve(
            [(FIRST, DependencyRequest("a", "[1.0.0,2.0.0)"))],
            already_resolved={existing},
        )

        assert result.resolved_versions == frozenset({existing})
        assert result.issues == {}

    def test_issue_for_unknown_requester(self) -> None:
        """Test that issue_for returns None when nothing was recorded."""
        from nuresolve.core.resolver import VersionResolutionResult

        assert VersionResolutionResult().issue_for(PROJECT, "A") is None
