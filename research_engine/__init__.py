"""Retrieval and report engine for AI-assisted equity research."""

__version__ = "0.1.0"
