"""PDF decoding from extracted plain text with heuristic heading detection."""

import io
import logging
from typing import BinaryIO

# Suppress warnings about malformed PDF object references from PDF libraries
logging.getLogger("pdfminer").setLevel(logging.ERROR)
logging.getLogger("pypdf").setLevel(logging.ERROR)

import pdfplumber
import pypdf
from pypdf.errors import EmptyFileError, FileNotDecryptedError, PdfReadError

from bookle.core.chapters import split_into_chapters
from bookle.core.decoder_factory import BookDecoder
from bookle.errors import MalformedContent
from bookle.models import Block, Book, Header, Metadata, Paragraph, Text, plain_text

log = logging.getLogger(__name__)

HEADING_KEYWORDS = (
    "chapter",
    "part",
    "section",
    "book",
    "volume",
    "prologue",
    "epilogue",
    "introduction",
    "conclusion",
    "preface",
    "appendix",
    "foreword",
    "afterword",
)

ROMAN_NUMERALS = ("I.", "II.", "III.", "IV.", "V.", "VI.", "VII.", "VIII.", "IX.", "X.")


def is_likely_heading(text: str) -> bool:
    """Guess whether a reassembled paragraph is a heading.

    Must be short and not end like a sentence, and then either start with a
    structural keyword, be a short all-caps line, or start with a number or
    a Roman numeral.
    """
    if len(text) >= 100 or text.endswith((".", "?", "!")):
        return False

    lower = text.lower()
    has_keyword = lower.startswith(HEADING_KEYWORDS)
    # Lines without letters count as all-caps
    is_all_caps = len(text) < 60 and all(c.isupper() for c in text if c.isalpha())
    starts_with_number = text[:1].isdigit()
    starts_with_roman = text.startswith(ROMAN_NUMERALS)

    return has_keyword or is_all_caps or starts_with_number or starts_with_roman


def heading_level(text: str) -> int:
    lower = text.lower()
    if lower.startswith(("book ", "part ")):
        return 1
    if lower.startswith(("chapter ", "prologue", "epilogue")):
        return 2
    if lower.startswith("section "):
        return 3
    return 2


def _split_authors(author: str) -> list[str]:
    for sep in (",", ";"):
        if sep in author:
            return [a.strip() for a in author.split(sep) if a.strip()]
    return [author.strip()] if author.strip() else []


class PdfDecoder(BookDecoder):
    """Decode PDFs by rebuilding paragraphs and headings from their text."""

    def supported_extensions(self) -> list[str]:
        return ["pdf"]

    def supported_mime_types(self) -> list[str]:
        return ["application/pdf"]

    def decode(self, source: bytes | BinaryIO) -> Book:
        text, authors = self.extract(self.read_source(source))
        blocks = self.decode_text(text)

        title = next(
            (
                plain_text(b.content)
                for b in blocks
                if isinstance(b, Header) and b.level <= 2
            ),
            "Untitled PDF",
        )
        book = Book(metadata=Metadata(title=title, creator=authors, language="en"))
        for chapter in split_into_chapters(blocks, max_level=2):
            book.add_chapter(chapter)

        log.info(
            f"Decoded PDF '{book.title}': {len(blocks)} blocks, "
            f"{len(book.chapters)} chapters"
        )
        return book

    def extract(self, data: bytes) -> tuple[str, list[str]]:
        """Extract page text and authors.

        pypdf is tried first; pdfplumber is used when pypdf yields no text.

        Args:
            data: PDF file bytes

        Returns:
            Tuple of (page text joined by blank lines, authors from /Author)

        Raises:
            MalformedContent: If the PDF cannot be read
        """
        try:
            reader = pypdf.PdfReader(io.BytesIO(data))
            pages = [page.extract_text() or "" for page in reader.pages]
            info = reader.metadata or {}
        except FileNotDecryptedError as e:
            raise MalformedContent("PDF is encrypted. Please decrypt first.") from e
        except EmptyFileError as e:
            raise MalformedContent("PDF file is empty.") from e
        except PdfReadError as e:
            raise MalformedContent(f"PDF appears corrupted: {e}") from e
        except Exception as e:
            raise MalformedContent(f"Failed to extract PDF text: {e}") from e

        authors = _split_authors(str(info.get("/Author") or ""))

        if not any(p.strip() for p in pages):
            log.warning("pypdf found no text, falling back to pdfplumber")
            pages = self._extract_with_pdfplumber(data)

        return "\n\n".join(pages), authors

    @staticmethod
    def _extract_with_pdfplumber(data: bytes) -> list[str]:
        try:
            with pdfplumber.open(io.BytesIO(data)) as pdf:
                return [page.extract_text() or "" for page in pdf.pages]
        except Exception as e:
            log.warning(f"pdfplumber extraction failed: {e}")
            return []

    def decode_text(self, text: str) -> list[Block]:
        """Rebuild blocks from extracted text.

        Consecutive non-blank lines are joined with single spaces and a blank
        line ends the paragraph.
        """
        blocks: list[Block] = []
        current: list[str] = []

        for line in text.splitlines():
            line = line.strip()
            if line:
                current.append(line)
            elif current:
                blocks.append(self.text_to_block(" ".join(current)))
                current = []

        if current:
            blocks.append(self.text_to_block(" ".join(current)))

        return blocks

    def text_to_block(self, text: str) -> Block:
        text = text.strip()
        if is_likely_heading(text):
            return Header(level=heading_level(text), content=[Text(text)])
        return Paragraph([Text(text)])
