"""Curio: Wikipedia article feeds with structured sections."""

__version__ = "0.1.0"
