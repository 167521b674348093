"""Minimal blogging backend: cookie sessions and a rate-limited post feed."""

__version__ = "0.1.0"
