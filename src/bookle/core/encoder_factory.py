"""Encoder interface and lookup of encoders by format name."""

import io
from abc import ABC, abstractmethod
from typing import BinaryIO

from bookle.errors import UnsupportedFormat
from bookle.models import Book


class BookEncoder(ABC):
    """Abstract base class for format encoders."""

    @abstractmethod
    def encode(self, book: Book, sink: BinaryIO) -> None:
        """Serialize the book into the sink.

        Args:
            book: Book to write
            sink: Binary stream receiving the encoded output

        Raises:
            ConversionError: If the book cannot be written
        """
        pass

    @abstractmethod
    def format_name(self) -> str:
        pass

    @abstractmethod
    def file_extension(self) -> str:
        pass

    @abstractmethod
    def mime_type(self) -> str:
        pass

    def encode_bytes(self, book: Book) -> bytes:
        """Encode into memory and return the bytes."""
        buffer = io.BytesIO()
        self.encode(book, buffer)
        return buffer.getvalue()


class EncoderFactory:
    """Factory for creating the encoder registered for an output format."""

    FORMATS = {
        "epub": "epub",
        "kepub": "kepub",
        "kepub.epub": "kepub",
        # "pdf" output is Typst source compiled to PDF by an external tool
        "pdf": "typst",
        "typ": "typst",
        "typst": "typst",
    }

    @classmethod
    def create(cls, fmt: str) -> BookEncoder:
        """Create an encoder for a normalized format name.

        Args:
            fmt: "epub", "kepub" or "typst"

        Returns:
            BookEncoder instance for the format

        Raises:
            UnsupportedFormat: If no encoder handles the format
        """
        if fmt == "epub":
            from bookle.core.epub_encoder import EpubEncoder

            return EpubEncoder()
        elif fmt == "kepub":
            from bookle.core.kepub_encoder import KepubEncoder

            return KepubEncoder()
        elif fmt == "typst":
            from bookle.core.typst_encoder import TypstEncoder

            return TypstEncoder()

        raise UnsupportedFormat(f"no encoder for format {fmt!r}")

    @classmethod
    def for_format(cls, name: str) -> BookEncoder | None:
        """Look up an encoder by format name or extension (case-insensitive)."""
        fmt = cls.FORMATS.get(name.lower().lstrip("."))
        return cls.create(fmt) if fmt else None

    @classmethod
    def is_supported(cls, name: str) -> bool:
        return name.lower().lstrip(".") in cls.FORMATS
