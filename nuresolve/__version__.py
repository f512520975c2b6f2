"""nuresolve version information, the single source of truth for packaging."""

__version__ = "0.1.0.dev0"
