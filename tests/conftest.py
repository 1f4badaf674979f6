"""Shared fixtures."""

import pytest

from bookle.models import (
    Bold,
    Book,
    Chapter,
    CodeBlock,
    Header,
    Image,
    Italic,
    Link,
    ListBlock,
    Paragraph,
    Resource,
    Text,
    TocEntry,
)

# Smallest valid PNG (1x1 transparent pixel)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def sample_book() -> Book:
    """A two-chapter book with an image resource and a TOC."""
    book = Book.new("Sample Book")
    book.metadata.creator = ["Ada Author"]
    book.metadata.publisher = "Test Press"
    book.metadata.description = "A book used in tests."

    key = book.resources.add(Resource.from_bytes("image/png", PNG_BYTES, "cover.png"))
    book.metadata.cover_resource_key = key

    book.add_chapter(
        Chapter(
            title="Opening",
            content=[
                Header(level=1, content=[Text("Opening")]),
                Paragraph(
                    [Text("It was a "), Bold([Text("dark")]), Text(" night.")]
                ),
                Image(resource_key=key, alt="Cover", caption="The cover"),
            ],
        )
    )
    book.add_chapter(
        Chapter(
            title="Second Part",
            content=[
                Header(level=1, content=[Text("Second Part")]),
                ListBlock(
                    ordered=True,
                    items=[
                        [Paragraph([Italic([Text("first")])])],
                        [
                            Paragraph(
                                [Link(children=[Text("site")], url="https://x.org")]
                            )
                        ],
                    ],
                ),
                CodeBlock(lang="python", code="print('hi')"),
            ],
        )
    )
    book.add_toc_entry(TocEntry(title="Opening", href="chapter_1.xhtml"))
    book.add_toc_entry(TocEntry(title="Second Part", href="chapter_2.xhtml"))
    return book
