"""MOBI/AZW decoding.

Metadata comes straight from the PalmDB, MOBI and EXTH headers. Text and
images are unpacked by the ``mobi`` library, which writes either an HTML
file (MOBI 7) or an EPUB (KF8/AZW3) to a temporary directory.
"""

import logging
import mimetypes
import shutil
import struct
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

import mobi

from bookle.core.chapters import split_into_chapters
from bookle.core.decoder_factory import BookDecoder
from bookle.core.epub_decoder import EpubDecoder, read_epub_bytes, remap_images
from bookle.core.html_mapper import HtmlMapper
from bookle.errors import InvalidMobi, ParseError
from bookle.models import Block, Book, Metadata, Resource, ResourceStore

# Suppress noisy unpacker logging
logging.getLogger("mobi").setLevel(logging.ERROR)

log = logging.getLogger(__name__)

PDB_HEADER_SIZE = 78
SUPPORTED_TYPES = (b"BOOKMOBI", b"TEXtREAd")

EXTH_AUTHOR = 100
EXTH_PUBLISHER = 101
EXTH_UPDATED_TITLE = 503


@dataclass
class MobiHeader:
    """Metadata fields read from the container headers."""

    title: str
    authors: list[str] = field(default_factory=list)
    publisher: str | None = None
    encoding: str = "cp1252"


def parse_mobi_header(data: bytes) -> MobiHeader:
    """Read title, author and publisher from PalmDB/MOBI/EXTH headers.

    Args:
        data: Complete MOBI/AZW file bytes

    Returns:
        MobiHeader with whatever fields the headers carry

    Raises:
        InvalidMobi: If the data is not a PalmDB book
    """
    if len(data) < PDB_HEADER_SIZE + 8:
        raise InvalidMobi("file too short for a PalmDB header")

    db_type = data[60:68]
    if db_type not in SUPPORTED_TYPES:
        raise InvalidMobi(f"unexpected PalmDB type {db_type!r}")

    pdb_name = data[:32].split(b"\x00", 1)[0].decode("latin-1").replace("_", " ")
    header = MobiHeader(title=pdb_name.strip() or "Unknown Title")

    (num_records,) = struct.unpack(">H", data[76:78])
    if num_records == 0:
        raise InvalidMobi("PalmDB has no records")
    (record0,) = struct.unpack(">I", data[78:82])

    mobi_start = record0 + 16
    if db_type == b"TEXtREAd" or data[mobi_start : mobi_start + 4] != b"MOBI":
        return header
    if len(data) < mobi_start + 116:
        raise InvalidMobi("truncated MOBI header")

    (mobi_length,) = struct.unpack(">I", data[mobi_start + 4 : mobi_start + 8])
    (text_encoding,) = struct.unpack(">I", data[mobi_start + 12 : mobi_start + 16])
    header.encoding = "utf-8" if text_encoding == 65001 else "cp1252"

    name_offset, name_length = struct.unpack(">II", data[record0 + 84 : record0 + 92])
    full_name = data[record0 + name_offset : record0 + name_offset + name_length]
    if full_name:
        header.title = full_name.decode(header.encoding, errors="replace").strip()

    (exth_flags,) = struct.unpack(">I", data[record0 + 128 : record0 + 132])
    if exth_flags & 0x40:
        _apply_exth(data, mobi_start + mobi_length, header)

    return header


def _apply_exth(data: bytes, offset: int, header: MobiHeader) -> None:
    if data[offset : offset + 4] != b"EXTH" or len(data) < offset + 12:
        log.debug("EXTH flag set but no EXTH block found")
        return
    (count,) = struct.unpack(">I", data[offset + 8 : offset + 12])
    pos = offset + 12
    for _ in range(count):
        if pos + 8 > len(data):
            break
        rec_type, rec_length = struct.unpack(">II", data[pos : pos + 8])
        if rec_length < 8:
            break
        raw = data[pos + 8 : pos + rec_length]
        value = raw.decode(header.encoding, errors="replace")
        value = value.strip("\x00").strip()
        if value:
            if rec_type == EXTH_AUTHOR:
                header.authors.append(value)
            elif rec_type == EXTH_PUBLISHER:
                header.publisher = value
            elif rec_type == EXTH_UPDATED_TITLE:
                header.title = value
        pos += rec_length


class MobiDecoder(BookDecoder):
    """Decode MOBI, AZW and AZW3 books."""

    def __init__(self, mapper: HtmlMapper | None = None):
        self.mapper = mapper or HtmlMapper()

    def supported_extensions(self) -> list[str]:
        return ["mobi", "azw", "azw3", "prc"]

    def supported_mime_types(self) -> list[str]:
        return ["application/x-mobipocket-ebook", "application/vnd.amazon.ebook"]

    def decode(self, source: bytes | BinaryIO) -> Book:
        data = self.read_source(source)
        header = parse_mobi_header(data)

        blocks, resources = self.extract_content(data)

        book = Book(
            metadata=Metadata(
                title=header.title,
                creator=header.authors,
                publisher=header.publisher,
                language="en",
            ),
            resources=resources,
        )
        for chapter in split_into_chapters(blocks, max_level=2):
            book.add_chapter(chapter)

        log.info(f"Decoded MOBI '{book.title}': {len(book.chapters)} chapters")
        return book

    def extract_content(self, data: bytes) -> tuple[list[Block], ResourceStore]:
        """Unpack the book and map its markup to blocks.

        Args:
            data: MOBI/AZW file bytes

        Returns:
            Tuple of (blocks in reading order, store of extracted images)

        Raises:
            InvalidMobi: If the unpacker fails
        """
        with tempfile.TemporaryDirectory() as workdir:
            book_path = Path(workdir) / "book.mobi"
            book_path.write_bytes(data)
            try:
                out_dir, out_file = mobi.extract(str(book_path))
            except Exception as e:
                raise InvalidMobi(f"could not unpack: {e}") from e
            try:
                out_path = Path(out_file)
                if out_path.suffix.lower() == ".epub":
                    return self._read_kf8(out_path.read_bytes())
                return self._read_mobi7(out_path, Path(out_dir))
            finally:
                shutil.rmtree(out_dir, ignore_errors=True)

    def _read_kf8(self, epub_data: bytes) -> tuple[list[Block], ResourceStore]:
        try:
            package = read_epub_bytes(epub_data)
        except ParseError as e:
            raise InvalidMobi(f"unreadable KF8 content: {e}") from e
        unpacked = EpubDecoder(self.mapper).decode_package(package)
        blocks: list[Block] = []
        for chapter in unpacked.chapters:
            blocks.extend(chapter.content)
        return blocks, unpacked.resources

    def _read_mobi7(
        self, html_path: Path, out_dir: Path
    ) -> tuple[list[Block], ResourceStore]:
        blocks = self.mapper.map_html(html_path.read_bytes())

        store = ResourceStore()
        ref_to_key: dict[str, str] = {}
        base = html_path.parent
        for path in sorted(out_dir.rglob("*")):
            mime_type, _ = mimetypes.guess_type(path.name)
            if not (path.is_file() and mime_type and mime_type.startswith("image/")):
                continue
            resource = Resource.from_bytes(mime_type, path.read_bytes(), path.name)
            key = store.add(resource)
            try:
                ref_to_key[path.relative_to(base).as_posix()] = key
            except ValueError:
                ref_to_key[path.name] = key

        remap_images(blocks, ref_to_key)
        return blocks, store
