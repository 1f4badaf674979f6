"""
Tests for the document model and resource store.
"""

import json

import pytest

from bookle.errors import ResourceNotFound
from bookle.models import (
    Bold,
    Book,
    Break,
    Chapter,
    Code,
    ExternalData,
    FootnoteRef,
    Header,
    Image,
    Link,
    ListBlock,
    Paragraph,
    ReadingDirection,
    Resource,
    ResourceStore,
    Ruby,
    TempFileData,
    Text,
    ThematicBreak,
    TocEntry,
    plain_text,
)


class TestNodes:
    """Test construction of block and inline nodes."""

    def test_single_field_nodes_take_positional_payload(self):
        """Should accept the single field positionally."""
        para = Paragraph([Text("hello"), Bold([Text("world")])])

        assert para.content[0].text == "hello"
        assert para.content[1].children[0].text == "world"

    def test_positional_rejected_for_struct_nodes(self):
        """Should refuse positional arguments on multi-field nodes."""
        with pytest.raises(TypeError):
            Link([Text("x")], "https://example.com")

    def test_header_level_clamped(self):
        """Should clamp header levels into 1-6."""
        assert Header(level=0).level == 1
        assert Header(level=9).level == 6
        assert Header(level=3).level == 3

    def test_plain_text_flattens_inlines(self):
        """Should flatten nested inlines to text."""
        inlines = [
            Text("See "),
            Bold([Text("this")]),
            Break(),
            Code("x = 1"),
            FootnoteRef(id="2"),
            Ruby(base="漢", annotation="kan"),
        ]
        assert plain_text(inlines) == "See this x = 1[2]漢"


class TestWireFormat:
    """Test the adjacently tagged JSON book record."""

    def test_single_field_node_payload_is_bare_value(self):
        """Should serialize Paragraph as type plus a bare list payload."""
        data = Paragraph([Text("hi")]).model_dump(mode="json")

        assert data == {
            "type": "paragraph",
            "value": [{"type": "text", "value": "hi"}],
        }

    def test_unit_node_has_no_value(self):
        """Should omit value for variants without fields."""
        assert ThematicBreak().model_dump(mode="json") == {"type": "thematic_break"}

    def test_struct_node_payload_is_object(self):
        """Should nest struct fields under value."""
        data = Header(level=2, content=[Text("T")], anchor="t").model_dump(mode="json")

        assert data["type"] == "header"
        assert data["value"]["level"] == 2
        assert data["value"]["anchor"] == "t"

    def test_book_json_round_trip(self, sample_book):
        """Should restore an equal book from its JSON record."""
        restored = Book.model_validate_json(sample_book.model_dump_json())

        assert restored == sample_book

    def test_struct_inline_nested_in_list_round_trips(self):
        """Should keep struct inlines deep inside list items intact."""
        chapter = Chapter(
            title="Links",
            content=[
                ListBlock(
                    items=[
                        [
                            Paragraph([Link(children=[Text("site")], url="u")]),
                            ListBlock(
                                items=[[Header(level=3, content=[Text("deep")])]]
                            ),
                        ]
                    ]
                )
            ],
        )
        record = json.loads(chapter.model_dump_json())
        link = record["content"][0]["value"]["items"][0][0]["value"][0]

        assert link == {
            "type": "link",
            "value": {"children": [{"type": "text", "value": "site"}], "url": "u"},
        }
        assert Chapter.model_validate(record) == chapter

    def test_inline_resource_bytes_are_base64(self, sample_book, png_bytes):
        """Should write inline resource bytes as base64 text."""
        record = json.loads(sample_book.model_dump_json())
        resource = next(iter(record["resources"]["resources"].values()))

        assert resource["data"]["storage"] == "inline"
        assert isinstance(resource["data"]["data"], str)
        restored = Book.model_validate(record)
        assert restored.resources.items()[0][1].as_bytes() == png_bytes

    def test_accepts_wire_form_chapter(self):
        """Should validate chapter content given in wire form."""
        chapter = Chapter.model_validate(
            {
                "title": "One",
                "content": [
                    {"type": "paragraph", "value": [{"type": "text", "value": "a"}]},
                    {"type": "thematic_break"},
                ],
            }
        )

        assert isinstance(chapter.content[0], Paragraph)
        assert isinstance(chapter.content[1], ThematicBreak)


class TestResourceStore:
    """Test content-addressed resource storage."""

    def test_identical_bytes_dedupe(self):
        """Should store byte-identical resources once."""
        store = ResourceStore()
        first = store.add(Resource.from_bytes("image/png", b"same"))
        second = store.add(Resource.from_bytes("image/png", b"same", "b.png"))

        assert first == second
        assert len(store) == 1

    def test_key_is_sha256(self):
        """Should key inline resources by SHA-256 hex digest."""
        store = ResourceStore()
        key = store.add(Resource.from_bytes("text/plain", b"abc"))

        assert key == (
            "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
        )
        assert key in store

    def test_non_inline_resources_get_unique_keys(self):
        """Should give unreadable resources fresh keys."""
        store = ResourceStore()
        data = TempFileData(path="/tmp/a.png")
        first = store.add(Resource(mime_type="image/png", data=data))
        second = store.add(Resource(mime_type="image/png", data=data))

        assert first != second
        assert len(store) == 2

    def test_non_inline_bytes_unavailable(self):
        """Should raise ResourceNotFound for external data."""
        resource = Resource(
            mime_type="image/png", data=ExternalData(backend="s3", path="x.png")
        )
        assert not resource.is_inline
        with pytest.raises(ResourceNotFound):
            resource.as_bytes()

    def test_remove(self):
        """Should remove and return the resource."""
        store = ResourceStore()
        key = store.add(Resource.from_bytes("image/png", b"data"))

        assert store.remove(key) is not None
        assert store.is_empty()
        assert store.get(key) is None


class TestBook:
    """Test Book builders and defaults."""

    def test_new_book_defaults(self):
        """Should fill language, identifier and direction defaults."""
        book = Book.new("Title")

        assert book.title == "Title"
        assert book.metadata.language == "en"
        assert book.metadata.identifier
        assert book.metadata.reading_direction == ReadingDirection.LEFT_TO_RIGHT
        assert book.primary_author is None

    def test_builders(self):
        """Should append chapters, blocks and toc children."""
        book = Book.new("T")
        book.add_chapter(Chapter(title="C").add_block(Paragraph([Text("x")])))
        book.add_toc_entry(
            TocEntry(title="C", href="c.xhtml").add_child(
                TocEntry(title="D", href="c.xhtml#d", level=1)
            )
        )

        assert len(book.chapters[0].content) == 1
        assert book.toc[0].children[0].level == 1

    def test_image_key_kept(self):
        assert Image(resource_key="img.png").resource_key == "img.png"
