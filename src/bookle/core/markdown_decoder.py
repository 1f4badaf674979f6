"""Markdown decoding via Python-Markdown and the shared HTML mapper."""

import logging
from typing import Any, BinaryIO

import markdown
from markdown.extensions import Extension
from markdown.inlinepatterns import SimpleTagInlineProcessor

from bookle.config import MarkdownOptions
from bookle.core.chapters import split_into_chapters
from bookle.core.decoder_factory import BookDecoder
from bookle.core.html_mapper import HtmlMapper
from bookle.errors import MalformedContent
from bookle.models import (
    Block,
    Book,
    CodeBlock,
    Footnote,
    FootnoteRef,
    Header,
    Image,
    Inline,
    Metadata,
    Paragraph,
    Text,
    plain_text,
)

log = logging.getLogger(__name__)


class StrikethroughExtension(Extension):
    """``~~text~~`` renders as ``<del>``."""

    def extendMarkdown(self, md):
        md.inlinePatterns.register(
            SimpleTagInlineProcessor(r"(~~)(.+?)~~", "del"), "del", 175
        )


class MarkdownMapper(HtmlMapper):
    """HtmlMapper tuned for Python-Markdown output.

    Text keeps inner whitespace (soft breaks become spaces), fenced code
    keeps its language, image-only paragraphs become Image blocks and
    footnotes map to Footnote/FootnoteRef nodes.
    """

    def map_text(self, text: str) -> list[Inline]:
        text = text.replace("\r\n", " ").replace("\n", " ")
        return [Text(text)] if text else []

    def map_block(self, node: Any) -> list[Block]:
        tag = self.dom.tag_name(node)
        if tag == "div" and "footnote" in (self.dom.attribute(node, "class") or ""):
            return self.map_footnotes(node)
        return super().map_block(node)

    def map_paragraph(self, node: Any) -> list[Block]:
        elements = []
        for child in self.dom.children(node):
            text = self.dom.text_value(child)
            if text is not None:
                if text.strip():
                    return super().map_paragraph(node)
            elif self.dom.tag_name(child) is not None:
                elements.append(child)

        if elements and all(self.dom.tag_name(e) == "img" for e in elements):
            return [
                self.map_image(img, self.dom.attribute(img, "title"))
                for img in elements
            ]
        return super().map_paragraph(node)

    def map_pre(self, node: Any) -> CodeBlock:
        lang = None
        for child in self.dom.children(node):
            if self.dom.tag_name(child) == "code":
                for cls in (self.dom.attribute(child, "class") or "").split():
                    if cls.startswith("language-"):
                        lang = cls[len("language-") :] or None
                break
        return CodeBlock(lang=lang, code=self.dom.text_content(node))

    def map_list_item(self, node: Any) -> list[Block]:
        """Like the base mapping, but loose text next to nested blocks is kept."""
        blocks: list[Block] = []
        pending: list[Inline] = []

        def flush():
            inlines = _trim_edges(pending)
            if inlines:
                blocks.append(Paragraph(inlines))
            pending.clear()

        for child in self.dom.children(node):
            text = self.dom.text_value(child)
            name = self.dom.tag_name(child)
            if text is not None:
                pending.extend(self.map_text(text))
            elif name in ("p", "ul", "ol", "blockquote", "pre", "table", "div", "hr"):
                flush()
                blocks.extend(self.map_block(child))
            elif name is not None:
                pending.extend(self.map_inline(child))
        flush()
        return blocks

    def map_footnotes(self, node: Any) -> list[Block]:
        """Map Python-Markdown's ``div.footnote`` list to Footnote blocks."""
        footnotes: list[Block] = []
        for child in self.dom.children(node):
            if self.dom.tag_name(child) != "ol":
                continue
            for item in self.dom.children(child):
                if self.dom.tag_name(item) != "li":
                    continue
                note_id = (self.dom.attribute(item, "id") or "").removeprefix("fn:")
                footnotes.append(Footnote(id=note_id, content=self.map_children(item)))
        return footnotes

    def map_inline(self, node: Any) -> list[Inline]:
        tag = self.dom.tag_name(node)
        classes = (self.dom.attribute(node, "class") or "").split()

        if tag == "a" and "footnote-backref" in classes:
            return []
        if tag == "sup":
            for child in self.dom.children(node):
                if self.dom.tag_name(child) == "a":
                    child_classes = (self.dom.attribute(child, "class") or "").split()
                    if "footnote-ref" in child_classes:
                        href = self.dom.attribute(child, "href") or ""
                        return [FootnoteRef(id=href.split("#fn:", 1)[-1])]
        if tag == "img":
            # Images inside running text keep only their alt text
            alt = self.dom.attribute(node, "alt") or ""
            return [Text(alt)] if alt else []
        return super().map_inline(node)


def _trim_edges(inlines: list[Inline]) -> list[Inline]:
    items = list(inlines)
    if items and isinstance(items[0], Text):
        items[0] = Text(items[0].text.lstrip())
    if items and isinstance(items[-1], Text):
        items[-1] = Text(items[-1].text.rstrip())
    return [i for i in items if not (isinstance(i, Text) and not i.text)]


class MarkdownDecoder(BookDecoder):
    """Decode Markdown documents, one chapter per level-1 heading."""

    def __init__(self, options: MarkdownOptions | None = None):
        self.options = options or MarkdownOptions()
        self.mapper = MarkdownMapper()

    def supported_extensions(self) -> list[str]:
        return ["md", "markdown", "mdown", "mkd"]

    def supported_mime_types(self) -> list[str]:
        return ["text/markdown", "text/x-markdown"]

    def _create_markdown_processor(self) -> markdown.Markdown:
        extensions: list = ["fenced_code", "attr_list", "sane_lists"]
        if self.options.tables:
            extensions.append("tables")
        if self.options.footnotes:
            extensions.append("footnotes")
        if self.options.strikethrough:
            extensions.append(StrikethroughExtension())
        return markdown.Markdown(extensions=extensions, output_format="html")

    def decode(self, source: bytes | BinaryIO) -> Book:
        data = self.read_source(source)
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedContent(f"Failed to read markdown: {e}") from e
        return self.decode_text(text)

    def decode_text(self, text: str) -> Book:
        html = self._create_markdown_processor().convert(text)
        blocks = self.mapper.map_html(html)

        title = next(
            (
                plain_text(b.content)
                for b in blocks
                if isinstance(b, Header) and b.level == 1
            ),
            "Untitled",
        )
        book = Book(metadata=Metadata(title=title))
        for chapter in split_into_chapters(blocks, max_level=1):
            book.add_chapter(chapter)

        images = sum(isinstance(b, Image) for b in blocks)
        log.info(
            f"Decoded Markdown '{title}': {len(book.chapters)} chapters, "
            f"{images} images"
        )
        return book
