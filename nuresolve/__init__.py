"""
nuresolve: transitive dependency resolution against the NuGet registry

nuresolve reads the direct NuGet dependencies of a .NET project, discovers
the available versions of every referenced package from a NuGet V3
registry, and resolves the complete dependency graph per target framework.

Features include:
    • Greedy lowest-satisfying version selection with conflict reporting
    • NuGet V3 service index, registration catalog, manifest and nuspec access
    • Nearest-framework filtering of package dependency groups
    • packages.config, SDK-style project file and nuget.config readers
    • Aggressive response caching for immutable registry documents
"""

from __future__ import annotations

from nuresolve.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "nuresolve Contributors"
__license__ = "Apache-2.0"
__description__ = "Transitive dependency resolver for NuGet projects."

__all__ = [
    "__version__",
]
