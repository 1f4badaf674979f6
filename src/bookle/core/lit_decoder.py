"""Microsoft Reader LIT decoding.

LIT is a compressed proprietary container. Its content is not unpacked;
the decoder validates the signature, tries to recover a title from
UTF-16LE strings near the start of the file and returns a single chapter
explaining how to convert the book with other tools.
"""

import logging
from typing import BinaryIO

from bookle.config import LitScanConfig
from bookle.core.decoder_factory import BookDecoder
from bookle.errors import MalformedContent, UnsupportedFormat
from bookle.models import (
    Bold,
    Book,
    Chapter,
    Header,
    ListBlock,
    Metadata,
    Paragraph,
    Text,
)

log = logging.getLogger(__name__)

LIT_SIGNATURE = b"ITOLITLS"
DEFAULT_TITLE = "Unknown Title (LIT Format)"
LIT_DESCRIPTION = (
    "Imported from Microsoft Reader LIT format. For best results, "
    "consider converting to EPUB using Calibre."
)


def find_utf16le_string(data: bytes, min_len: int, max_len: int) -> str | None:
    """Return the first plausible title among UTF-16LE printable ASCII runs.

    Runs are read at even offsets. A run qualifies when its length is within
    bounds and it does not look like a URL, a path or an all-caps label.
    """
    i = 0
    while i + 2 <= len(data):
        chars = []
        j = i
        while j + 2 <= len(data) and data[j + 1] == 0 and 0x20 <= data[j] <= 0x7E:
            chars.append(chr(data[j]))
            j += 2

        if min_len <= len(chars) <= max_len:
            candidate = "".join(chars)
            looks_like_label = all(
                c.isspace() or ("A" <= c <= "Z") for c in candidate
            )
            if (
                "http" not in candidate
                and "\\" not in candidate
                and "/" not in candidate
                and not looks_like_label
            ):
                return candidate

        i = j + 2 if chars else i + 2

    return None


class LitDecoder(BookDecoder):
    """Decode LIT files into a placeholder book."""

    def __init__(self, config: LitScanConfig | None = None):
        self.config = config or LitScanConfig()

    def supported_extensions(self) -> list[str]:
        return ["lit"]

    def supported_mime_types(self) -> list[str]:
        return ["application/x-ms-reader", "application/x-ms-lit"]

    def decode(self, source: bytes | BinaryIO) -> Book:
        data = self.read_source(source)
        self.validate_signature(data)

        title = self.extract_title(data)
        book = Book(
            metadata=Metadata(
                title=title or DEFAULT_TITLE,
                language="en",
                description=LIT_DESCRIPTION,
            )
        )
        book.add_chapter(self._placeholder_chapter())
        return book

    def validate_signature(self, data: bytes) -> None:
        """Raise unless data starts with the LIT signature."""
        if len(data) < len(LIT_SIGNATURE):
            raise MalformedContent("File too small to be a valid LIT file")
        if data[: len(LIT_SIGNATURE)] != LIT_SIGNATURE:
            raise UnsupportedFormat("Invalid LIT file signature")

    def extract_title(self, data: bytes) -> str | None:
        window = data[: self.config.search_window]
        title = find_utf16le_string(
            window, self.config.min_title_length, self.config.max_title_length
        )
        if title:
            log.debug(f"Recovered LIT title candidate: {title!r}")
        return title

    @staticmethod
    def _placeholder_chapter() -> Chapter:
        content = [
            Header(level=1, content=[Text("LIT Format Import")]),
            Paragraph(
                [
                    Text("This book was imported from Microsoft Reader's LIT format. "),
                    Text(
                        "Due to the proprietary nature of the LIT format, "
                        "full content extraction is limited."
                    ),
                ]
            ),
            Paragraph(
                [
                    Bold([Text("Recommendation: ")]),
                    Text(
                        "For complete book content, please convert this LIT file "
                        "to EPUB using:"
                    ),
                ]
            ),
            ListBlock(
                ordered=False,
                items=[
                    [
                        Paragraph(
                            [
                                Bold([Text("Calibre")]),
                                Text(" - Free, open-source ebook management software"),
                            ]
                        )
                    ],
                    [
                        Paragraph(
                            [
                                Bold([Text("ConvertLIT")]),
                                Text(" - Command-line tool for LIT conversion"),
                            ]
                        )
                    ],
                ],
            ),
            Paragraph(
                [
                    Text(
                        "After conversion to EPUB, you can re-import the book "
                        "for full functionality."
                    )
                ]
            ),
        ]
        return Chapter(title="LIT Format Information", id="lit-info", content=content)
