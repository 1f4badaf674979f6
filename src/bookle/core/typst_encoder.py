"""Typst source encoding.

Output is Typst markup; turning it into PDF bytes is left to the ``typst``
compiler.
"""

import logging
import re
from typing import BinaryIO

from bookle.config import TypstPageConfig
from bookle.core.encoder_factory import BookEncoder
from bookle.errors import EncodingFailed, TypstError
from bookle.models import (
    Block,
    Blockquote,
    Bold,
    Book,
    Break,
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
    Text,
    ThematicBreak,
    plain_text,
)

log = logging.getLogger(__name__)

_LABEL_INVALID = re.compile(r"[^A-Za-z0-9_.:-]")
_LINE_COMMENT = re.compile(r"/(?=/)")
# List, enum, term and heading markers at the start of a line
_LINE_MARKER = re.compile(r"^([ \t]*)([-+=/]|\d+\.)(?=\s|$)", re.MULTILINE)


def escape_typst(text: str) -> str:
    """Escape Typst markup characters in literal text.

    Besides the markup characters this breaks up `//` comments and escapes
    markers that would start a list, enum, term or heading at a line start.

    Args:
        text: Literal text

    Returns:
        Text that renders as itself in Typst markup
    """
    for char in ("\\", "#", "*", "_", "@", "$", "[", "]", "`", "<", "~"):
        text = text.replace(char, "\\" + char)
    text = _LINE_COMMENT.sub(r"\\/", text)
    return _LINE_MARKER.sub(_escape_marker, text)


def _escape_marker(match: re.Match) -> str:
    indent, marker = match.groups()
    if marker.endswith("."):
        return f"{indent}{marker[:-1]}\\."
    return f"{indent}\\{marker}"


def typst_string(text: str) -> str:
    """Quote text as a Typst string literal."""
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    escaped = escaped.replace("\n", "\\n").replace("\t", "\\t")
    return f'"{escaped}"'


def typst_label(name: str) -> str:
    return "<" + _LABEL_INVALID.sub("-", name) + ">"


class TypstEncoder(BookEncoder):
    """Write a Book as Typst source with a title page and outline."""

    def __init__(self, page: TypstPageConfig | None = None):
        self.page = page or TypstPageConfig()

    def format_name(self) -> str:
        return "Typst"

    def file_extension(self) -> str:
        return "typ"

    def mime_type(self) -> str:
        return "text/x-typst"

    def encode(self, book: Book, sink: BinaryIO) -> None:
        try:
            source = self.book_to_typst(book)
        except (TypeError, ValueError) as e:
            raise TypstError(str(e)) from e
        try:
            sink.write(source.encode("utf-8"))
        except OSError as e:
            raise EncodingFailed(str(e)) from e
        log.info(f"Wrote Typst source for '{book.title}' ({len(source)} chars)")

    def book_to_typst(self, book: Book) -> str:
        page = self.page
        parts = [
            "#set page(\n"
            f"  width: {page.width},\n"
            f"  height: {page.height},\n"
            "  margin: (\n"
            f"    top: {page.margin_top},\n"
            f"    bottom: {page.margin_bottom},\n"
            f"    left: {page.margin_left},\n"
            f"    right: {page.margin_right},\n"
            "  ),\n"
            ")\n\n"
            f"#set text(size: {page.font_size})\n"
            '#set heading(numbering: "1.1")\n\n',
            "#align(center)[\n"
            "  #v(30%)\n"
            f'  #text(size: 24pt, weight: "bold")[{escape_typst(book.title)}]\n'
            "  #v(1em)\n",
        ]
        for author in book.metadata.creator:
            parts.append(f"  #text(size: 14pt)[{escape_typst(author)}]\n")
        parts.append("]\n\n#pagebreak()\n\n")

        if book.chapters:
            parts.append(
                f"#outline(title: {typst_string(page.outline_title)}, "
                f"depth: {page.outline_depth})\n\n#pagebreak()\n\n"
            )

        for chapter in book.chapters:
            content = chapter.content
            first = content[0] if content else None
            # Chapters that open with their own title heading keep it
            opens_with_title = (
                isinstance(first, Header) and plain_text(first.content) == chapter.title
            )
            if not opens_with_title:
                parts.append(f"= {escape_typst(chapter.title)}\n\n")
            parts.append(self.blocks(content))
            parts.append("\n#pagebreak()\n\n")

        return "".join(parts)

    # -------------------------------------------------------------------------
    # Blocks
    # -------------------------------------------------------------------------

    def blocks(self, blocks: list[Block]) -> str:
        return "".join(self.block(b) + "\n" for b in blocks)

    def block(self, block: Block) -> str:
        if isinstance(block, Header):
            label = f" {typst_label(block.anchor)}" if block.anchor else ""
            return f"{'=' * min(block.level, 6)} {self.inlines(block.content)}{label}\n"
        if isinstance(block, Paragraph):
            return f"{self.inlines(block.content)}\n"
        if isinstance(block, ListBlock):
            lines = []
            for i, item in enumerate(block.items, start=1):
                marker = f"{i}. " if block.ordered else "- "
                body = self.blocks(item).strip().replace("\n", "\n  ")
                lines.append(f"{marker}{body}\n")
            return "".join(lines)
        if isinstance(block, Image):
            src = typst_string(block.resource_key)
            figure = f"#figure(\n  image({src}, width: 80%),\n"
            if block.caption:
                figure += f"  caption: [{escape_typst(block.caption)}],\n"
            return figure + ")\n"
        if isinstance(block, CodeBlock):
            return self.code_block(block)
        if isinstance(block, Blockquote):
            return f"#quote(block: true)[\n{self.blocks(block.content)}\n]\n"
        if isinstance(block, ThematicBreak):
            return "#line(length: 100%)\n"
        if isinstance(block, Table):
            return self.table(block)
        if isinstance(block, Footnote):
            body = self.blocks(block.content).strip()
            return f"#footnote[{body}] {typst_label('fn-' + block.id)}\n"
        raise TypstError(f"unknown block type {type(block).__name__}")

    def code_block(self, block: CodeBlock) -> str:
        lang = block.lang or ""
        if "```" in block.code:
            # Fenced form cannot hold a triple backtick
            lang_arg = f", lang: {typst_string(lang)}" if lang else ""
            return f"#raw(block: true{lang_arg}, {typst_string(block.code)})\n"
        return f"```{lang}\n{block.code}\n```\n"

    def table(self, table: Table) -> str:
        columns = max(len(table.headers), len(table.rows[0]) if table.rows else 0)
        parts = [f"#table(\n  columns: {columns},\n"]
        for cell in table.headers:
            parts.append(f"  [*{self.inlines(cell.content)}*],\n")
        for row in table.rows:
            for cell in row:
                parts.append(f"  [{self.inlines(cell.content)}],\n")
        parts.append(")\n")
        return "".join(parts)

    # -------------------------------------------------------------------------
    # Inlines
    # -------------------------------------------------------------------------

    def inlines(self, inlines: list[Inline]) -> str:
        return "".join(self.inline(i) for i in inlines)

    def inline(self, inline: Inline) -> str:
        if isinstance(inline, Text):
            return escape_typst(inline.text)
        if isinstance(inline, Bold):
            return f"*{self.inlines(inline.children)}*"
        if isinstance(inline, Italic):
            return f"_{self.inlines(inline.children)}_"
        if isinstance(inline, Code):
            if "`" in inline.code:
                return f"#raw({typst_string(inline.code)})"
            return f"`{inline.code}`"
        if isinstance(inline, Link):
            return f"#link({typst_string(inline.url)})[{self.inlines(inline.children)}]"
        if isinstance(inline, Superscript):
            return f"#super[{self.inlines(inline.children)}]"
        if isinstance(inline, Subscript):
            return f"#sub[{self.inlines(inline.children)}]"
        if isinstance(inline, Strikethrough):
            return f"#strike[{self.inlines(inline.children)}]"
        if isinstance(inline, FootnoteRef):
            return f"#footnote[See footnote {escape_typst(inline.id)}]"
        if isinstance(inline, Ruby):
            return (
                f"{escape_typst(inline.base)}"
                f"#super[#text(size: 0.6em)[{escape_typst(inline.annotation)}]]"
            )
        if isinstance(inline, Break):
            return "\\\n"
        raise TypstError(f"unknown inline type {type(inline).__name__}")
