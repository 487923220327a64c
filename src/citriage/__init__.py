"""Deterministic CI failure triage engine."""

__version__ = "0.1.0-dev"
