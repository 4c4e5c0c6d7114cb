"""Operator input collection."""

from .inputs import InputCollector, RunInputs

__all__ = ["InputCollector", "RunInputs"]
