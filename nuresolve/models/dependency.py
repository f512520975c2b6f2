"""
Dependency request model for nuresolve.

A :class:`DependencyRequest` is one declared dependency: produced by the
definition-file readers for a project's direct dependencies and by the
tree builder when it expands a resolved package's manifest.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from nuresolve.models.identifier import Identifier


@dataclass(frozen=True, order=True)
class DependencyRequest:
    """
    A request for a package version range.

    Attributes:
        name: Package id.
        version: Version range expression, e.g. ``"[1.0.0,2.0.0)"``.
        target_framework: Framework the dependency applies to; empty for
            every framework.
        development_dependency: Whether the dependency is only needed
            during development.
    """

    name: str
    version: str
    target_framework: str = ""
    development_dependency: bool = False


#: A dependency request paired with the package or project that declared it.
RequestPair = Tuple[Identifier, DependencyRequest]
