"""EPUB 3 encoding."""

from typing import BinaryIO

from bookle.core.encoder_factory import BookEncoder
from bookle.core.xhtml_writer import XhtmlWriter, write_epub_package
from bookle.models import Book


class EpubEncoder(BookEncoder):
    """Write a Book as an EPUB 3 package."""

    def format_name(self) -> str:
        return "EPUB"

    def file_extension(self) -> str:
        return "epub"

    def mime_type(self) -> str:
        return "application/epub+zip"

    def encode(self, book: Book, sink: BinaryIO) -> None:
        write_epub_package(
            book, sink, lambda _number, paths: XhtmlWriter(resource_paths=paths)
        )
