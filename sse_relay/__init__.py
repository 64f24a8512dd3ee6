"""Publish/broadcast relay over Server-Sent Events."""

__version__ = "1.0.0"
