"""Command implementations for the nuresolve CLI."""
