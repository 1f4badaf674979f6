"""Ebook conversion through a shared in-memory document model."""

__version__ = "0.1.0"
