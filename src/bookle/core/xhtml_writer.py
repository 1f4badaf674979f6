"""Block/Inline to XHTML serialization and EPUB packaging with ebooklib."""

import logging
import mimetypes
import tempfile
from html import escape
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Callable

from ebooklib import epub

from bookle.errors import ConversionError, EncodingFailed
from bookle.models import (
    Block,
    Blockquote,
    Bold,
    Book,
    Break,
    Chapter,
    Code,
    CodeBlock,
    Footnote,
    FootnoteRef,
    Header,
    Image,
    Inline,
    Italic,
    Link,
    ListBlock,
    Paragraph,
    Ruby,
    Strikethrough,
    Subscript,
    Superscript,
    Table,
    TableCell,
    Text,
    ThematicBreak,
)

log = logging.getLogger(__name__)

XHTML_NS = "http://www.w3.org/1999/xhtml"
OPS_NS = "http://www.idpf.org/2007/ops"
# Placeholder for chapters without blocks; lxml rejects an empty body
EMPTY_BODY = "<div></div>\n"


def escape_html(text: str) -> str:
    """Escape ``& < > " '`` for text and attribute values."""
    return escape(text, quote=True)


class XhtmlWriter:
    """Serialize one chapter's blocks to an XHTML document.

    ``resource_paths`` maps store keys to their path inside the package so
    images point at the packaged file.
    """

    def __init__(self, resource_paths: dict[str, str] | None = None):
        self.resource_paths = resource_paths or {}

    def chapter_document(self, chapter: Chapter, language: str = "en") -> str:
        return (
            '<?xml version="1.0" encoding="UTF-8"?>\n'
            "<!DOCTYPE html>\n"
            f'<html xmlns="{XHTML_NS}" xmlns:epub="{OPS_NS}" '
            f'lang="{escape_html(language)}" xml:lang="{escape_html(language)}">\n'
            "<head>\n"
            f"<title>{escape_html(chapter.title)}</title>\n"
            '<meta charset="UTF-8"/>\n'
            "</head>\n"
            "<body>\n"
            f"{self.blocks(chapter.content) or EMPTY_BODY}"
            "</body>\n"
            "</html>\n"
        )

    # -------------------------------------------------------------------------
    # Blocks
    # -------------------------------------------------------------------------

    def blocks(self, blocks: list[Block]) -> str:
        return "".join(self.block(b) for b in blocks)

    def block(self, block: Block) -> str:
        if isinstance(block, Header):
            id_attr = f' id="{escape_html(block.anchor)}"' if block.anchor else ""
            level = block.level
            return f"<h{level}{id_attr}>{self.inlines(block.content)}</h{level}>\n"
        if isinstance(block, Paragraph):
            return f"<p>{self.inlines(block.content)}</p>\n"
        if isinstance(block, ListBlock):
            tag = "ol" if block.ordered else "ul"
            items = "".join(f"<li>{self.blocks(item)}</li>" for item in block.items)
            return f"<{tag}>{items}</{tag}>\n"
        if isinstance(block, Image):
            return self.image(block)
        if isinstance(block, CodeBlock):
            class_attr = (
                f' class="language-{escape_html(block.lang)}"' if block.lang else ""
            )
            return f"<pre><code{class_attr}>{escape_html(block.code)}</code></pre>\n"
        if isinstance(block, Blockquote):
            return f"<blockquote>{self.blocks(block.content)}</blockquote>\n"
        if isinstance(block, ThematicBreak):
            return "<hr/>\n"
        if isinstance(block, Table):
            return self.table(block)
        if isinstance(block, Footnote):
            return (
                f'<aside id="fn-{escape_html(block.id)}" epub:type="footnote">'
                f"{self.blocks(block.content)}</aside>\n"
            )
        raise EncodingFailed(f"unknown block type {type(block).__name__}")

    def image(self, block: Image) -> str:
        src = self.resource_paths.get(block.resource_key, block.resource_key)
        img = f'<img src="{escape_html(src)}" alt="{escape_html(block.alt)}"/>'
        if block.caption:
            return (
                f"<figure>{img}<figcaption>{self.text(block.caption)}"
                "</figcaption></figure>\n"
            )
        return f"{img}\n"

    def table(self, table: Table) -> str:
        parts = ["<table>\n"]
        if table.headers:
            cells = "".join(self.cell("th", c) for c in table.headers)
            parts.append(f"<thead><tr>{cells}</tr></thead>\n")
        parts.append("<tbody>")
        for row in table.rows:
            parts.append(f"<tr>{''.join(self.cell('td', c) for c in row)}</tr>")
        parts.append("</tbody></table>\n")
        return "".join(parts)

    def cell(self, tag: str, cell: TableCell) -> str:
        attrs = ""
        if cell.colspan > 1:
            attrs += f' colspan="{cell.colspan}"'
        if cell.rowspan > 1:
            attrs += f' rowspan="{cell.rowspan}"'
        return f"<{tag}{attrs}>{self.inlines(cell.content)}</{tag}>"

    # -------------------------------------------------------------------------
    # Inlines
    # -------------------------------------------------------------------------

    def inlines(self, inlines: list[Inline]) -> str:
        return "".join(self.inline(i) for i in inlines)

    def inline(self, inline: Inline) -> str:
        if isinstance(inline, Text):
            return self.text(inline.text)
        if isinstance(inline, Bold):
            return f"<strong>{self.inlines(inline.children)}</strong>"
        if isinstance(inline, Italic):
            return f"<em>{self.inlines(inline.children)}</em>"
        if isinstance(inline, Code):
            return f"<code>{escape_html(inline.code)}</code>"
        if isinstance(inline, Link):
            return (
                f'<a href="{escape_html(inline.url)}">'
                f"{self.inlines(inline.children)}</a>"
            )
        if isinstance(inline, Superscript):
            return f"<sup>{self.inlines(inline.children)}</sup>"
        if isinstance(inline, Subscript):
            return f"<sub>{self.inlines(inline.children)}</sub>"
        if isinstance(inline, Strikethrough):
            return f"<del>{self.inlines(inline.children)}</del>"
        if isinstance(inline, FootnoteRef):
            note = escape_html(inline.id)
            return f'<a href="#fn-{note}" epub:type="noteref">[{note}]</a>'
        if isinstance(inline, Ruby):
            return (
                f"<ruby>{self.text(inline.base)}<rp>(</rp>"
                f"<rt>{escape_html(inline.annotation)}</rt><rp>)</rp></ruby>"
            )
        if isinstance(inline, Break):
            return "<br/>"
        raise EncodingFailed(f"unknown inline type {type(inline).__name__}")

    def text(self, text: str) -> str:
        """Emit a text leaf."""
        return escape_html(text)


# =============================================================================
# Packaging
# =============================================================================


def resource_paths(book: Book) -> dict[str, str]:
    """Assign each store entry a unique path under ``images/``."""
    paths: dict[str, str] = {}
    used: set[str] = set()
    for key, resource in book.resources.items():
        if resource.original_filename:
            name = PurePosixPath(resource.original_filename).name
        else:
            name = key + (mimetypes.guess_extension(resource.mime_type) or "")
        path = f"images/{name}"
        if path in used:
            path = f"images/{key[:12]}-{name}"
        used.add(path)
        paths[key] = path
    return paths


def write_epub_package(
    book: Book,
    sink: BinaryIO,
    writer_for_chapter: Callable[[int, dict[str, str]], XhtmlWriter],
) -> None:
    """Build an EPUB 3 package (with NCX) and write it to ``sink``.

    Args:
        book: Book to package
        sink: Binary stream receiving the EPUB archive
        writer_for_chapter: Called with the 1-based chapter number and the
            resource path map; returns the serializer for that chapter

    Raises:
        EncodingFailed: If a resource is unreadable or packaging fails
    """
    metadata = book.metadata
    package = epub.EpubBook()
    package.set_identifier(metadata.identifier)
    package.set_title(metadata.title)
    package.set_language(metadata.language)
    for creator in metadata.creator:
        package.add_author(creator)
    for subject in metadata.subject:
        package.add_metadata("DC", "subject", subject)
    if metadata.description:
        package.add_metadata("DC", "description", metadata.description)
    if metadata.publisher:
        package.add_metadata("DC", "publisher", metadata.publisher)
    if metadata.rights:
        package.add_metadata("DC", "rights", metadata.rights)
    if metadata.date:
        package.add_metadata("DC", "date", metadata.date.isoformat())

    paths = resource_paths(book)
    for index, (key, resource) in enumerate(book.resources.items(), start=1):
        try:
            data = resource.as_bytes()
        except ConversionError as e:
            raise EncodingFailed(f"Failed to read resource {key}: {e}") from e
        uid = f"res_{index}"
        package.add_item(
            epub.EpubItem(
                uid=uid,
                file_name=paths[key],
                media_type=resource.mime_type,
                content=data,
            )
        )
        if key == metadata.cover_resource_key:
            package.add_metadata(None, "meta", "", {"name": "cover", "content": uid})

    spine = []
    toc = []
    for number, chapter in enumerate(book.chapters, start=1):
        writer = writer_for_chapter(number, paths)
        file_name = f"chapter_{number}.xhtml"
        item = epub.EpubHtml(
            uid=f"chapter_{number}",
            title=chapter.title,
            file_name=file_name,
            lang=metadata.language,
        )
        item.content = writer.chapter_document(chapter, metadata.language).encode(
            "utf-8"
        )
        package.add_item(item)
        spine.append(item)
        toc.append(epub.Link(file_name, chapter.title, f"toc_{number}"))

    package.toc = toc
    package.spine = spine
    package.add_item(epub.EpubNcx())
    package.add_item(epub.EpubNav())

    with tempfile.TemporaryDirectory() as workdir:
        out_path = Path(workdir) / "book.epub"
        try:
            epub.write_epub(str(out_path), package, {"raise_exceptions": True})
        except Exception as e:
            raise EncodingFailed(f"Failed to write EPUB: {e}") from e
        if not out_path.exists():
            raise EncodingFailed("EPUB writer produced no output")
        sink.write(out_path.read_bytes())

    log.info(
        f"Wrote EPUB '{metadata.title}': {len(book.chapters)} chapters, "
        f"{len(book.resources)} resources"
    )
