"""KEPUB decoding: strip Kobo reading-position spans, then decode as EPUB."""

import io
import logging
import re
import zipfile
from typing import BinaryIO

from bookle.core.decoder_factory import BookDecoder
from bookle.core.epub_decoder import EpubDecoder
from bookle.errors import InvalidEpub
from bookle.models import Book

log = logging.getLogger(__name__)

MARKUP_SUFFIXES = (".xhtml", ".html", ".htm")

_SPAN_OPEN = re.compile(r"<span[\s>/]", re.IGNORECASE)
_SPAN_CLOSE = re.compile(r"</span\s*>", re.IGNORECASE)


def _is_kobo_span(tag: str) -> bool:
    if not _SPAN_OPEN.match(tag):
        return False
    return "koboSpan" in tag or 'id="kobo.' in tag or "id='kobo." in tag


def strip_kobo_spans(html: str) -> str:
    """Remove Kobo span tags in one pass, keeping everything they wrap.

    Each recognized opening tag queues one following ``</span>`` for removal.
    Closing spans with nothing queued, and all other markup, are copied
    unchanged.
    """
    out: list[str] = []
    pending_closes = 0
    pos = 0
    length = len(html)

    while pos < length:
        start = html.find("<", pos)
        if start == -1:
            out.append(html[pos:])
            break
        out.append(html[pos:start])
        end = html.find(">", start)
        if end == -1:
            out.append(html[start:])
            break

        tag = html[start : end + 1]
        if _is_kobo_span(tag):
            pending_closes += 1
        elif pending_closes and _SPAN_CLOSE.fullmatch(tag):
            pending_closes -= 1
        else:
            out.append(tag)
        pos = end + 1

    return "".join(out)


def strip_kobo_archive(data: bytes) -> bytes:
    """Rewrite a KEPUB archive with Kobo spans removed from markup entries.

    Args:
        data: KEPUB archive bytes

    Returns:
        Archive bytes with the same entries, markup entries rewritten

    Raises:
        InvalidEpub: If the data is not a readable ZIP archive
    """
    try:
        source = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, ValueError) as e:
        raise InvalidEpub(f"Invalid KEPUB archive: {e}") from e

    output = io.BytesIO()
    processed = 0
    try:
        with source, zipfile.ZipFile(output, "w") as target:
            for info in source.infolist():
                content = source.read(info)
                if info.filename.lower().endswith(MARKUP_SUFFIXES):
                    html = content.decode("utf-8", errors="replace")
                    target.writestr(
                        info.filename,
                        strip_kobo_spans(html).encode("utf-8"),
                        compress_type=zipfile.ZIP_DEFLATED,
                    )
                    processed += 1
                else:
                    target.writestr(info, content)
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, EOFError) as e:
        raise InvalidEpub(f"Invalid KEPUB archive: {e}") from e

    log.debug(f"Stripped Kobo spans from {processed} markup entries")
    return output.getvalue()


class KepubDecoder(BookDecoder):
    """Decode Kobo EPUBs by delegating to EpubDecoder after span removal."""

    def __init__(self, epub_decoder: EpubDecoder | None = None):
        self.epub_decoder = epub_decoder or EpubDecoder()

    def supported_extensions(self) -> list[str]:
        return ["kepub.epub", "kepub"]

    def supported_mime_types(self) -> list[str]:
        return ["application/x-kobo-epub+zip", "application/epub+zip"]

    def decode(self, source: bytes | BinaryIO) -> Book:
        data = self.read_source(source)
        return self.epub_decoder.decode(strip_kobo_archive(data))
