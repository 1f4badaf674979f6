"""KEPUB encoding: EPUB with Kobo reading-position spans."""

from typing import BinaryIO

from bookle.core.encoder_factory import BookEncoder
from bookle.core.xhtml_writer import XhtmlWriter, escape_html, write_epub_package
from bookle.models import Book


class KoboXhtmlWriter(XhtmlWriter):
    """XhtmlWriter that wraps every non-blank text leaf in a koboSpan.

    Span ids are ``kobo.<chapter>.<span>``; one writer serves one chapter and
    numbers its spans from 1.
    """

    def __init__(
        self, chapter_number: int, resource_paths: dict[str, str] | None = None
    ):
        super().__init__(resource_paths)
        self.chapter_number = chapter_number
        self.span_number = 0

    def next_span_id(self) -> str:
        self.span_number += 1
        return f"kobo.{self.chapter_number}.{self.span_number}"

    def text(self, text: str) -> str:
        escaped = escape_html(text)
        if not text.strip():
            return escaped
        return f'<span class="koboSpan" id="{self.next_span_id()}">{escaped}</span>'


class KepubEncoder(BookEncoder):
    """Write a Book as a Kobo EPUB.

    Counters live in the per-chapter writers created during each encode
    call, so one encoder instance can serve concurrent encodes.
    """

    def format_name(self) -> str:
        return "KEPUB"

    def file_extension(self) -> str:
        return "kepub.epub"

    def mime_type(self) -> str:
        return "application/x-kobo-epub+zip"

    def encode(self, book: Book, sink: BinaryIO) -> None:
        write_epub_package(book, sink, self.writer_for_chapter)

    @staticmethod
    def writer_for_chapter(number: int, paths: dict[str, str]) -> KoboXhtmlWriter:
        return KoboXhtmlWriter(number, resource_paths=paths)
