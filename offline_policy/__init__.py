"""Offline-capable policy entry and synchronization service."""

__version__ = "0.1.0"
