"""Servicio de seguimiento de vida útil de herramientas."""

__version__ = "0.1.0"
