"""EPUB decoding using ebooklib."""

import logging
import os
import tempfile
import zipfile
from datetime import datetime
from pathlib import PurePosixPath
from typing import BinaryIO

from ebooklib import epub

from bookle.core.decoder_factory import BookDecoder
from bookle.core.html_mapper import HtmlMapper
from bookle.errors import InvalidEpub
from bookle.models import (
    Block,
    Blockquote,
    Book,
    Chapter,
    Footnote,
    Header,
    Image,
    ListBlock,
    Metadata,
    Resource,
    ResourceStore,
    TocEntry,
    plain_text,
)

log = logging.getLogger(__name__)


def read_epub_bytes(data: bytes) -> epub.EpubBook:
    """Open an in-memory EPUB with ebooklib.

    ebooklib reads from a path, so the bytes are spooled to a temporary file.

    Raises:
        InvalidEpub: If the data is not a readable EPUB container
    """
    if not data:
        raise InvalidEpub("empty input")
    with tempfile.NamedTemporaryFile(suffix=".epub", delete=False) as tmp:
        tmp.write(data)
        tmp_path = tmp.name
    try:
        if not zipfile.is_zipfile(tmp_path):
            raise InvalidEpub("not a ZIP container")
        try:
            return epub.read_epub(tmp_path, {"ignore_ncx": False})
        except InvalidEpub:
            raise
        except Exception as e:
            raise InvalidEpub(str(e) or type(e).__name__) from e
    finally:
        os.unlink(tmp_path)


def metadata_values(package: epub.EpubBook, namespace: str, name: str) -> list:
    """ebooklib metadata entries, or [] when the namespace is absent."""
    try:
        return package.get_metadata(namespace, name) or []
    except KeyError:
        return []


class EpubDecoder(BookDecoder):
    """Decode EPUB 2/3 packages into a Book."""

    def __init__(self, mapper: HtmlMapper | None = None):
        self.mapper = mapper or HtmlMapper()

    def supported_extensions(self) -> list[str]:
        return ["epub"]

    def supported_mime_types(self) -> list[str]:
        return ["application/epub+zip"]

    def decode(self, source: bytes | BinaryIO) -> Book:
        return self.decode_package(read_epub_bytes(self.read_source(source)))

    def decode_package(self, package: epub.EpubBook) -> Book:
        """Build a Book from an opened ebooklib package."""
        resources, ref_to_key = self._extract_resources(package)
        book = Book(
            metadata=self._extract_metadata(package, ref_to_key),
            resources=resources,
            toc=self._parse_toc_recursive(package.toc),
        )

        toc_titles: list[tuple[str, str]] = []
        for entry in book.toc:
            toc_titles.extend(self._flatten_toc(entry))

        for idref, *_ in self._spine_ids(package):
            item = package.get_item_with_id(idref)
            if item is None:
                log.warning(f"Spine item {idref} not in manifest, skipping")
                continue
            try:
                content = item.get_content()
            except Exception as e:
                log.warning(f"Could not read spine item {idref}: {e}")
                continue

            blocks = self.mapper.map_html(content)
            remap_images(blocks, ref_to_key)
            title = self._chapter_title(idref, blocks, toc_titles)
            book.add_chapter(Chapter(title=title, id=idref, content=blocks))

        log.info(
            f"Decoded EPUB '{book.title}': {len(book.chapters)} chapters, "
            f"{len(book.resources)} resources"
        )
        return book

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def _extract_metadata(
        self, package: epub.EpubBook, ref_to_key: dict[str, str]
    ) -> Metadata:
        def first(name: str) -> str | None:
            values = metadata_values(package, "DC", name)
            return values[0][0] if values and values[0][0] else None

        def every(name: str) -> list[str]:
            return [v[0] for v in metadata_values(package, "DC", name) if v[0]]

        # An empty dc:title is kept; only a missing one falls back
        titles = metadata_values(package, "DC", "title")
        metadata = Metadata(
            title=(titles[0][0] or "") if titles else "Unknown Title",
            language=first("language") or "en",
            creator=every("creator"),
            subject=every("subject"),
            description=first("description"),
            publisher=first("publisher"),
            rights=first("rights"),
            date=self._parse_date(first("date")),
        )
        identifier = first("identifier")
        if identifier:
            metadata.identifier = identifier

        cover_id = self._cover_id(package)
        if cover_id:
            metadata.cover_resource_key = ref_to_key.get(cover_id, cover_id)
        return metadata

    @staticmethod
    def _cover_id(package: epub.EpubBook) -> str | None:
        """Manifest id of the cover image.

        Checks an OPF `cover` entry, then `<meta name="cover">`, then an item
        with the EPUB 3 `cover-image` property.
        """
        for value, attrs in metadata_values(package, "OPF", "cover"):
            content = (attrs or {}).get("content") or value
            if content:
                return content

        for _value, attrs in metadata_values(package, "OPF", "meta"):
            if not attrs:
                continue
            if str(attrs.get("name") or "").lower() != "cover":
                continue
            if attrs.get("content"):
                return attrs["content"]

        for item in package.get_items():
            props = getattr(item, "properties", []) or []
            if isinstance(props, str):
                props = [props]
            if any("cover-image" in prop for prop in props):
                return item.get_id()
        return None

    @staticmethod
    def _parse_date(value: str | None) -> datetime | None:
        if not value:
            return None
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            log.debug(f"Ignoring unparseable date: {value}")
            return None

    # -------------------------------------------------------------------------
    # Table of contents
    # -------------------------------------------------------------------------

    def _parse_toc_recursive(self, toc_items: list, level: int = 0) -> list[TocEntry]:
        """Recursively parse ebooklib's TOC structure."""
        entries = []

        for item in toc_items:
            if isinstance(item, tuple):
                # Section with children: (Section, [children])
                section, children = item
                entry = TocEntry(
                    title=section.title or "Untitled",
                    href=getattr(section, "href", None) or "",
                    level=level,
                    children=self._parse_toc_recursive(children, level + 1),
                )
            else:
                href = getattr(item, "href", None) or getattr(item, "file_name", "")
                entry = TocEntry(
                    title=item.title or "Untitled",
                    href=href or "",
                    level=level,
                )
            entries.append(entry)

        return entries

    def _flatten_toc(self, entry: TocEntry) -> list[tuple[str, str]]:
        pairs = [(entry.href, entry.title)]
        for child in entry.children:
            pairs.extend(self._flatten_toc(child))
        return pairs

    def _chapter_title(
        self, idref: str, blocks: list[Block], toc_titles: list[tuple[str, str]]
    ) -> str:
        """TOC title by file stem, then by href suffix, then first header."""
        for href, title in toc_titles:
            path = href.split("#")[0]
            if PurePosixPath(path).stem == idref:
                return title
        for href, title in toc_titles:
            if href.split("#")[0].endswith(idref):
                return title
        for block in blocks:
            if isinstance(block, Header):
                return plain_text(block.content)
        return idref

    @staticmethod
    def _spine_ids(package: epub.EpubBook) -> list[tuple]:
        ids = []
        for entry in package.spine:
            if isinstance(entry, tuple):
                ids.append(entry)
            elif isinstance(entry, str):
                ids.append((entry,))
            else:
                ids.append((entry.get_id(),))
        return ids

    # -------------------------------------------------------------------------
    # Resources
    # -------------------------------------------------------------------------

    def _extract_resources(
        self, package: epub.EpubBook
    ) -> tuple[ResourceStore, dict[str, str]]:
        """Store every non-document item; map item ids and hrefs to store keys."""
        store = ResourceStore()
        ref_to_key: dict[str, str] = {}

        for item in package.get_items():
            media_type = item.media_type or "application/octet-stream"
            if "html" in media_type or "xml" in media_type:
                continue
            name = item.get_name()
            key = store.add(
                Resource.from_bytes(media_type, item.get_content(), filename=name)
            )
            ref_to_key[name] = key
            if item.get_id():
                ref_to_key[item.get_id()] = key

        return store, ref_to_key


def remap_images(blocks: list[Block], ref_to_key: dict[str, str]) -> None:
    """Point Image keys at store entries.

    An exact reference match wins; otherwise the first reference where one
    string ends with the other is used. Unmatched keys are left as they are.
    """
    for block in blocks:
        if isinstance(block, Image):
            src = block.resource_key
            if not src:
                continue
            if src in ref_to_key:
                block.resource_key = ref_to_key[src]
                continue
            for ref, key in ref_to_key.items():
                if src.endswith(ref) or ref.endswith(src):
                    block.resource_key = key
                    break
            else:
                log.debug(f"No resource matches image reference {src}")
        elif isinstance(block, ListBlock):
            for item in block.items:
                remap_images(item, ref_to_key)
        elif isinstance(block, (Blockquote, Footnote)):
            remap_images(block.content, ref_to_key)
