"""
Tests for Typst source generation.
"""

from bookle.config import TypstPageConfig
from bookle.core.typst_encoder import TypstEncoder, escape_typst, typst_string
from bookle.models import (
    Book,
    Chapter,
    CodeBlock,
    Footnote,
    Header,
    Image,
    Link,
    ListBlock,
    Paragraph,
    Table,
    TableCell,
    Text,
)


class TestEscaping:
    """Test escaping of Typst markup characters."""

    def test_metacharacters(self):
        assert escape_typst("#1 *a* _b_ @c $d [e] \\") == (
            "\\#1 \\*a\\* \\_b\\_ \\@c \\$d \\[e\\] \\\\"
        )

    def test_comment_and_raw_markers(self):
        assert escape_typst("a // b") == "a \\// b"
        assert escape_typst("`x` <y>") == "\\`x\\` \\<y>"

    def test_line_start_markers(self):
        assert escape_typst("- not a list\n") == "\\- not a list\n"
        assert escape_typst("= not a heading") == "\\= not a heading"
        assert escape_typst("x\n  12. not an enum") == "x\n  12\\. not an enum"
        assert escape_typst("a - b = c") == "a - b = c"

    def test_string_literal(self):
        assert typst_string('say "hi" \\') == '"say \\"hi\\" \\\\"'


class TestDocument:
    """Test whole-document output."""

    def test_title_page_and_outline(self, sample_book):
        source = TypstEncoder().book_to_typst(sample_book)

        assert source.startswith("#set page(\n  width: 210mm,")
        assert '#set heading(numbering: "1.1")' in source
        assert "[Sample Book]" in source
        assert "[Ada Author]" in source
        assert '#outline(title: "Contents", depth: 2)' in source

    def test_no_outline_without_chapters(self):
        source = TypstEncoder().book_to_typst(Book.new("Empty"))

        assert "#outline" not in source

    def test_chapter_heading_not_duplicated(self, sample_book):
        source = TypstEncoder().book_to_typst(sample_book)

        assert source.count("= Opening\n") == 1

    def test_chapter_heading_added(self):
        book = Book.new("T")
        book.add_chapter(Chapter(title="Plain", content=[Paragraph([Text("x")])]))
        source = TypstEncoder().book_to_typst(book)

        assert "= Plain\n" in source

    def test_page_config(self):
        page = TypstPageConfig(width="6in", outline_title="Index", outline_depth=3)
        book = Book.new("T")
        book.add_chapter(Chapter(title="C"))
        source = TypstEncoder(page).book_to_typst(book)

        assert "width: 6in" in source
        assert '#outline(title: "Index", depth: 3)' in source

    def test_encode_writes_utf8(self, sample_book):
        data = TypstEncoder().encode_bytes(sample_book)

        assert data.decode("utf-8").startswith("#set page(")


class TestBlocks:
    """Test block serialization."""

    def test_header_levels_and_anchor(self):
        encoder = TypstEncoder()

        assert encoder.block(Header(level=3, content=[Text("Deep")])) == "=== Deep\n"
        assert encoder.block(
            Header(level=1, content=[Text("Top")], anchor="top")
        ) == "= Top <top>\n"

    def test_fenced_code(self):
        block = CodeBlock(lang="rust", code="fn main() {}")

        assert TypstEncoder().block(block) == "```rust\nfn main() {}\n```\n"

    def test_raw_form_for_backticks(self):
        """Should switch to #raw when the code holds a triple backtick."""
        block = CodeBlock(lang="md", code="```\nx\n```")

        assert TypstEncoder().block(block) == (
            '#raw(block: true, lang: "md", "```\\nx\\n```")\n'
        )

    def test_list(self):
        block = ListBlock(
            ordered=True,
            items=[[Paragraph([Text("a")])], [Paragraph([Text("b")])]],
        )

        assert TypstEncoder().block(block) == "1. a\n2. b\n"

    def test_image(self):
        block = Image(resource_key="abc", caption="Fig")

        assert TypstEncoder().block(block) == (
            '#figure(\n  image("abc", width: 80%),\n  caption: [Fig],\n)\n'
        )

    def test_table(self):
        table = Table(
            headers=[TableCell(content=[Text("A")]), TableCell(content=[Text("B")])],
            rows=[[TableCell(content=[Text("1")]), TableCell(content=[Text("2")])]],
        )
        source = TypstEncoder().block(table)

        assert source.startswith("#table(\n  columns: 2,\n")
        assert "  [*A*],\n" in source
        assert "  [2],\n" in source

    def test_footnote_label(self):
        block = Footnote(id="1", content=[Paragraph([Text("note")])])

        assert TypstEncoder().block(block) == "#footnote[note] <fn-1>\n"

    def test_link(self):
        link = Link(children=[Text("site")], url="https://example.com")

        assert TypstEncoder().inline(link) == '#link("https://example.com")[site]'
