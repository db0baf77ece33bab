"""Command-line orchestrator for teams of remote cloud coding agents."""

__version__ = "0.1.0"
