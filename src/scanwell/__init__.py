"""Scanwell - scan execution and recovery for code-quality analysis servers."""

__version__ = "0.1.0"
