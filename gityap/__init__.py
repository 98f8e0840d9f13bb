"""Gityap: builders vs talkers."""

__version__ = "0.1.0"
