"""Multi-provider AI chat completion backend."""

__version__ = "1.0.0"
