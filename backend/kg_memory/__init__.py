"""kg-memory: context-aware directive retrieval for coding agents."""

__version__ = "0.1.0"
