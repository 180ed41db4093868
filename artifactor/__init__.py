"""Artifactor -- multi-file code generation output manager."""

__version__ = "0.1.0"
