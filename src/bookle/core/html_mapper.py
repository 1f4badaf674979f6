"""Map parsed HTML trees onto Block/Inline nodes.

The mapping is written once against a small DOM adapter interface so every
decoder that starts from markup (EPUB, KEPUB, MOBI, Markdown) shares it.
"""

import warnings
from typing import Any, Iterable, Protocol

from bs4 import BeautifulSoup, NavigableString, Tag, XMLParsedAsHTMLWarning
from bs4.element import PreformattedString

from bookle.models import (
    Block,
    Blockquote,
    Bold,
    Break,
    Code,
    CodeBlock,
    Header,
    Image,
    Inline,
    Italic,
    Link,
    ListBlock,
    Paragraph,
    Strikethrough,
    Subscript,
    Superscript,
    Table,
    TableCell,
    Text,
    ThematicBreak,
)

# Suppress XML parsing warnings - EPUB chapters are usually XHTML
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

HEADING_TAGS = {"h1", "h2", "h3", "h4", "h5", "h6"}
CONTAINER_TAGS = {"div", "section", "article"}
LIST_ITEM_BLOCK_TAGS = {"p", "ul", "ol", "blockquote", "pre"}


class DomAdapter(Protocol):
    """Read-only view of a parsed markup tree."""

    def parse(self, html: str | bytes) -> Any:
        """Parse markup and return the node whose children are the body content."""
        ...

    def children(self, node: Any) -> Iterable[Any]: ...

    def tag_name(self, node: Any) -> str | None:
        """Lower-case tag name, or None for text and other non-element nodes."""
        ...

    def text_value(self, node: Any) -> str | None:
        """Character data of a text node, or None for anything else."""
        ...

    def attribute(self, node: Any, name: str) -> str | None: ...

    def text_content(self, node: Any) -> str:
        """Concatenated text of all descendant text nodes."""
        ...


class SoupAdapter:
    """DomAdapter over BeautifulSoup with the lxml HTML parser."""

    def __init__(self, strip_tags: Iterable[str] = ("script", "style")):
        self.strip_tags = list(strip_tags)

    def parse(self, html: str | bytes) -> Any:
        soup = BeautifulSoup(html, "lxml")
        for tag in soup.find_all(self.strip_tags):
            tag.decompose()
        return soup.body or soup

    def children(self, node: Any) -> Iterable[Any]:
        return list(node.children)

    def tag_name(self, node: Any) -> str | None:
        if isinstance(node, Tag):
            return node.name.lower()
        return None

    def text_value(self, node: Any) -> str | None:
        if isinstance(node, NavigableString) and not isinstance(
            node, PreformattedString
        ):
            return str(node)
        return None

    def attribute(self, node: Any, name: str) -> str | None:
        if not isinstance(node, Tag):
            return None
        value = node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def text_content(self, node: Any) -> str:
        if isinstance(node, Tag):
            return "".join(
                str(s)
                for s in node.descendants
                if isinstance(s, NavigableString)
                and not isinstance(s, PreformattedString)
            )
        return self.text_value(node) or ""


class HtmlMapper:
    """Turn an element tree into a flat sequence of Blocks.

    Total over any parsed tree: unknown tags degrade to paragraphs or plain
    text rather than raising.
    """

    def __init__(self, adapter: DomAdapter | None = None):
        self.dom = adapter or SoupAdapter()

    def map_html(self, html: str | bytes) -> list[Block]:
        """Parse markup and map its body content.

        Args:
            html: XHTML or HTML document or fragment

        Returns:
            Blocks for the body (or fragment) content in document order
        """
        return self.map_children(self.dom.parse(html))

    def map_children(self, node: Any) -> list[Block]:
        """Map the element children of a node to blocks; text is ignored."""
        blocks: list[Block] = []
        for child in self.dom.children(node):
            if self.dom.tag_name(child) is not None:
                blocks.extend(self.map_block(child))
        return blocks

    # -------------------------------------------------------------------------
    # Block level
    # -------------------------------------------------------------------------

    def map_block(self, node: Any) -> list[Block]:
        """Map one element to zero or more blocks."""
        tag = self.dom.tag_name(node)

        if tag in HEADING_TAGS:
            level = int(tag[1]) if tag[1:].isdigit() else 1
            return [
                Header(
                    level=level,
                    content=self.map_inlines(node),
                    anchor=self.dom.attribute(node, "id"),
                )
            ]
        if tag == "p":
            return self.map_paragraph(node)
        if tag in ("ul", "ol"):
            items = [
                self.map_list_item(child)
                for child in self.dom.children(node)
                if self.dom.tag_name(child) == "li"
            ]
            return [ListBlock(items=items, ordered=tag == "ol")]
        if tag == "blockquote":
            return [Blockquote(self.map_children(node))]
        if tag == "pre":
            return [self.map_pre(node)]
        if tag == "hr":
            return [ThematicBreak()]
        if tag in CONTAINER_TAGS:
            inner = self.map_children(node)
            if len(inner) <= 1:
                return inner
            # Multiple children are kept together as a quote block
            return [Blockquote(inner)]
        if tag == "img":
            return [self.map_image(node)]
        if tag == "table":
            return [self.map_table(node)]
        if tag == "figure":
            return self.map_figure(node)

        content = self.map_inlines(node)
        return [Paragraph(content)] if content else []

    def map_paragraph(self, node: Any) -> list[Block]:
        content = self.map_inlines(node)
        return [Paragraph(content)] if content else []

    def map_pre(self, node: Any) -> CodeBlock:
        return CodeBlock(lang=None, code=self.dom.text_content(node))

    def map_image(self, node: Any, caption: str | None = None) -> Image:
        # Key stays the raw src until the decoder remaps it into its store
        return Image(
            resource_key=self.dom.attribute(node, "src") or "",
            caption=caption,
            alt=self.dom.attribute(node, "alt") or "",
        )

    def map_figure(self, node: Any) -> list[Block]:
        """Map ``<figure><img/><figcaption/></figure>`` to a captioned Image."""
        images = []
        caption = None
        for child in self.dom.children(node):
            name = self.dom.tag_name(child)
            if name == "img":
                images.append(child)
            elif name == "figcaption":
                caption = self.dom.text_content(child).strip() or None
        if not images:
            content = self.map_inlines(node)
            return [Paragraph(content)] if content else []
        return [self.map_image(img, caption) for img in images]

    def map_list_item(self, node: Any) -> list[Block]:
        has_blocks = any(
            self.dom.tag_name(child) in LIST_ITEM_BLOCK_TAGS
            for child in self.dom.children(node)
        )
        if has_blocks:
            return self.map_children(node)
        inlines = self.map_inlines(node)
        return [Paragraph(inlines)] if inlines else []

    def map_table(self, node: Any) -> Table:
        """Map a table; thead rows (or a leading all-th row) become headers."""
        header_rows = []
        body_rows = []
        for child in self.dom.children(node):
            name = self.dom.tag_name(child)
            if name == "thead":
                header_rows.extend(self._rows(child))
            elif name in ("tbody", "tfoot"):
                body_rows.extend(self._rows(child))
            elif name == "tr":
                body_rows.append(child)

        if not header_rows and body_rows:
            first = self._cells(body_rows[0])
            if first and all(self.dom.tag_name(c) == "th" for c in first):
                header_rows.append(body_rows.pop(0))

        headers = []
        if header_rows:
            headers = [self.map_cell(c) for c in self._cells(header_rows[0])]
        rows = [[self.map_cell(c) for c in self._cells(tr)] for tr in body_rows]
        return Table(headers=headers, rows=rows)

    def map_cell(self, node: Any) -> TableCell:
        return TableCell(
            content=self.map_inlines(node),
            colspan=self._span(node, "colspan"),
            rowspan=self._span(node, "rowspan"),
        )

    def _rows(self, node: Any) -> list[Any]:
        return [c for c in self.dom.children(node) if self.dom.tag_name(c) == "tr"]

    def _cells(self, row: Any) -> list[Any]:
        return [
            c for c in self.dom.children(row) if self.dom.tag_name(c) in ("th", "td")
        ]

    def _span(self, node: Any, name: str) -> int:
        value = self.dom.attribute(node, name)
        return int(value) if value and value.isdigit() and int(value) > 0 else 1

    # -------------------------------------------------------------------------
    # Inline level
    # -------------------------------------------------------------------------

    def map_text(self, text: str) -> list[Inline]:
        """Map a text node; surrounding whitespace is dropped."""
        stripped = text.strip()
        return [Text(stripped)] if stripped else []

    def map_inlines(self, node: Any) -> list[Inline]:
        """Map all children of a node to inline content."""
        inlines: list[Inline] = []
        for child in self.dom.children(node):
            text = self.dom.text_value(child)
            if text is not None:
                inlines.extend(self.map_text(text))
            elif self.dom.tag_name(child) is not None:
                inlines.extend(self.map_inline(child))
        return inlines

    def map_inline(self, node: Any) -> list[Inline]:
        tag = self.dom.tag_name(node)

        if tag in ("b", "strong"):
            return [Bold(self.map_inlines(node))]
        if tag in ("i", "em"):
            return [Italic(self.map_inlines(node))]
        if tag == "code":
            return [Code(self.dom.text_content(node))]
        if tag == "a":
            return [
                Link(
                    children=self.map_inlines(node),
                    url=self.dom.attribute(node, "href") or "#",
                )
            ]
        if tag == "sup":
            return [Superscript(self.map_inlines(node))]
        if tag == "sub":
            return [Subscript(self.map_inlines(node))]
        if tag in ("s", "strike", "del"):
            return [Strikethrough(self.map_inlines(node))]
        if tag == "br":
            return [Break()]
        if tag == "span":
            return self.map_inlines(node)

        text = self.dom.text_content(node)
        return [Text(text)] if text else []
