"""Decoder interface and lookup of decoders by extension or MIME type."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import BinaryIO

from bookle.errors import UnsupportedFormat
from bookle.models import Book


class BookDecoder(ABC):
    """Abstract base class for format decoders."""

    @abstractmethod
    def decode(self, source: bytes | BinaryIO) -> Book:
        """Read the whole source and return the decoded Book.

        Args:
            source: Raw file bytes or a binary stream positioned at the start

        Returns:
            Book with metadata, chapters, TOC and extracted resources

        Raises:
            ParseError: If the input cannot be decoded
        """
        pass

    @abstractmethod
    def supported_extensions(self) -> list[str]:
        pass

    @abstractmethod
    def supported_mime_types(self) -> list[str]:
        pass

    @staticmethod
    def read_source(source: bytes | BinaryIO) -> bytes:
        """Buffer the full input in memory."""
        if isinstance(source, (bytes, bytearray, memoryview)):
            return bytes(source)
        return source.read()


class DecoderFactory:
    """Factory for creating the decoder registered for a format."""

    EXTENSIONS = {
        "kepub.epub": "kepub",
        "kepub": "kepub",
        "epub": "epub",
        "lit": "lit",
        "md": "markdown",
        "markdown": "markdown",
        "mdown": "markdown",
        "mkd": "markdown",
        "pdf": "pdf",
        "mobi": "mobi",
        "azw": "mobi",
        "azw3": "mobi",
        "prc": "mobi",
    }

    MIME_TYPES = {
        "application/x-kobo-epub+zip": "kepub",
        "application/epub+zip": "epub",
        "application/x-ms-reader": "lit",
        "application/x-ms-lit": "lit",
        "text/markdown": "markdown",
        "text/x-markdown": "markdown",
        "application/pdf": "pdf",
        "application/x-mobipocket-ebook": "mobi",
        "application/vnd.amazon.ebook": "mobi",
    }

    @classmethod
    def create(cls, fmt: str) -> BookDecoder:
        """Create a decoder for a format name ("epub", "mobi", ...).

        Args:
            fmt: Normalized format name as found in EXTENSIONS or MIME_TYPES

        Returns:
            BookDecoder instance for the format

        Raises:
            UnsupportedFormat: If no decoder handles the format
        """
        if fmt == "kepub":
            from bookle.core.kepub_decoder import KepubDecoder

            return KepubDecoder()
        elif fmt == "epub":
            from bookle.core.epub_decoder import EpubDecoder

            return EpubDecoder()
        elif fmt == "lit":
            from bookle.core.lit_decoder import LitDecoder

            return LitDecoder()
        elif fmt == "markdown":
            from bookle.core.markdown_decoder import MarkdownDecoder

            return MarkdownDecoder()
        elif fmt == "pdf":
            from bookle.core.pdf_decoder import PdfDecoder

            return PdfDecoder()
        elif fmt == "mobi":
            from bookle.core.mobi_decoder import MobiDecoder

            return MobiDecoder()

        raise UnsupportedFormat(f"no decoder for format {fmt!r}")

    @classmethod
    def for_extension(cls, extension: str) -> BookDecoder | None:
        """Look up a decoder by file extension (case-insensitive, no dot)."""
        fmt = cls.EXTENSIONS.get(extension.lower().lstrip("."))
        return cls.create(fmt) if fmt else None

    @classmethod
    def for_mime_type(cls, mime_type: str) -> BookDecoder | None:
        fmt = cls.MIME_TYPES.get(mime_type.lower())
        return cls.create(fmt) if fmt else None

    @classmethod
    def for_path(cls, path: Path) -> BookDecoder | None:
        return cls.for_extension(cls.extension_of(path))

    @staticmethod
    def extension_of(path: Path) -> str:
        """Lower-case extension without the dot, keeping ".kepub.epub" whole."""
        name = Path(path).name.lower()
        if name.endswith(".kepub.epub"):
            return "kepub.epub"
        return Path(name).suffix.lstrip(".")

    @classmethod
    def detect_format(cls, path: Path) -> str:
        """Format name for a path, or "unknown"."""
        return cls.EXTENSIONS.get(cls.extension_of(path), "unknown")

    @classmethod
    def is_supported(cls, path: Path) -> bool:
        return cls.extension_of(path) in cls.EXTENSIONS
