"""Data models."""

from bookle.models.block import (
    Block,
    Blockquote,
    Bold,
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
    TableCell,
    Text,
    ThematicBreak,
    plain_text,
)
from bookle.models.book import (
    Book,
    Chapter,
    Metadata,
    ReadingDirection,
    SeriesInfo,
    TocEntry,
)
from bookle.models.resource import (
    ExternalData,
    InlineData,
    Resource,
    ResourceData,
    ResourceStore,
    TempFileData,
)

__all__ = [
    # Block nodes
    "Block",
    "Header",
    "Paragraph",
    "ListBlock",
    "Image",
    "CodeBlock",
    "Blockquote",
    "ThematicBreak",
    "Table",
    "TableCell",
    "Footnote",
    # Inline nodes
    "Inline",
    "Text",
    "Bold",
    "Italic",
    "Code",
    "Link",
    "Superscript",
    "Subscript",
    "Strikethrough",
    "FootnoteRef",
    "Ruby",
    "Break",
    "plain_text",
    # Book models
    "Book",
    "Metadata",
    "SeriesInfo",
    "ReadingDirection",
    "Chapter",
    "TocEntry",
    # Resources
    "Resource",
    "ResourceData",
    "InlineData",
    "TempFileData",
    "ExternalData",
    "ResourceStore",
]
