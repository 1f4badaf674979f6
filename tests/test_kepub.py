"""
Tests for Kobo span stripping and instrumentation.
"""

import io
import zipfile

import pytest

from bookle.core.kepub_decoder import KepubDecoder, strip_kobo_archive, strip_kobo_spans
from bookle.core.kepub_encoder import KepubEncoder, KoboXhtmlWriter
from bookle.errors import InvalidEpub
from bookle.models import Book, Chapter, Header, Paragraph, Ruby, Text


class TestStripKoboSpans:
    """Test the single-pass span stripper."""

    def test_strips_spans_exactly(self):
        html = (
            '<p><span class="koboSpan" id="kobo.1.1">Hello </span>'
            '<span class="koboSpan" id="kobo.1.2">world</span></p>'
        )
        assert strip_kobo_spans(html) == "<p>Hello world</p>"

    def test_nested_markup_preserved(self):
        """Should keep markup inside a Kobo span verbatim."""
        html = (
            '<p><span class="koboSpan" id="kobo.2.1"><strong>Bold</strong></span></p>'
        )

        assert strip_kobo_spans(html) == "<p><strong>Bold</strong></p>"

    def test_id_prefix_recognized(self):
        assert strip_kobo_spans("<span id='kobo.3.4'>x</span>") == "x"

    def test_first_close_after_kobo_span_is_removed(self):
        """Should elide the first closing span queued by a Kobo span."""
        html = (
            '<span class="koboSpan" id="kobo.1.1">a <span class="note">b</span></span>'
        )
        assert strip_kobo_spans(html) == 'a <span class="note">b</span>'

    def test_other_spans_kept(self):
        html = '<p><span class="note">b</span></p>'

        assert strip_kobo_spans(html) == html

    def test_unmatched_close_passes_through(self):
        assert strip_kobo_spans("text</span> more") == "text</span> more"


class TestStripKoboArchive:
    """Test re-packaging of KEPUB archives."""

    def test_rewrites_markup_entries_only(self):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("mimetype", "application/epub+zip")
            archive.writestr(
                "OEBPS/ch1.xhtml",
                '<p><span class="koboSpan" id="kobo.1.1">Hi</span></p>',
            )
            archive.writestr("OEBPS/style.css", "span { color: red }")

        result = zipfile.ZipFile(io.BytesIO(strip_kobo_archive(buffer.getvalue())))

        assert result.namelist() == ["mimetype", "OEBPS/ch1.xhtml", "OEBPS/style.css"]
        assert result.read("OEBPS/ch1.xhtml") == b"<p>Hi</p>"
        assert result.read("OEBPS/style.css") == b"span { color: red }"
        assert result.getinfo("OEBPS/ch1.xhtml").compress_type == zipfile.ZIP_DEFLATED

    def test_not_a_zip(self):
        with pytest.raises(InvalidEpub):
            strip_kobo_archive(b"not a zip file")


class TestKoboXhtmlWriter:
    """Test span id assignment."""

    def test_span_ids_increase_from_one(self):
        writer = KoboXhtmlWriter(chapter_number=3)
        html = writer.inlines([Text("first"), Text("second")])

        assert html == (
            '<span class="koboSpan" id="kobo.3.1">first</span>'
            '<span class="koboSpan" id="kobo.3.2">second</span>'
        )

    def test_whitespace_text_not_wrapped(self):
        writer = KoboXhtmlWriter(chapter_number=1)

        assert writer.inlines([Text("  "), Text("")]) == "  "
        assert writer.span_number == 0

    def test_text_is_escaped(self):
        writer = KoboXhtmlWriter(chapter_number=1)

        assert writer.text("a < b") == (
            '<span class="koboSpan" id="kobo.1.1">a &lt; b</span>'
        )

    def test_ruby_base_wrapped(self):
        writer = KoboXhtmlWriter(chapter_number=1)
        html = writer.inline(Ruby(base="漢", annotation="kan"))

        assert html.startswith(
            '<ruby><span class="koboSpan" id="kobo.1.1">漢</span><rp>'
        )
        assert "<rt>kan</rt>" in html

    def test_writers_are_independent(self):
        """Should number each chapter's spans from 1."""
        first = KepubEncoder.writer_for_chapter(1, {})
        second = KepubEncoder.writer_for_chapter(2, {})
        first.text("a")
        first.text("b")

        assert second.next_span_id() == "kobo.2.1"


class TestKepubRoundTrip:
    """Test encoding to KEPUB and decoding back."""

    def test_round_trip(self, sample_book):
        data = KepubEncoder().encode_bytes(sample_book)
        book = KepubDecoder().decode(data)

        assert book.title == sample_book.title
        assert len(book.chapters) == len(sample_book.chapters)

    def test_output_contains_spans(self):
        book = Book.new("Spans")
        book.add_chapter(
            Chapter(
                title="One",
                content=[
                    Header(level=1, content=[Text("One")]),
                    Paragraph([Text("Body")]),
                ],
            )
        )
        archive = zipfile.ZipFile(io.BytesIO(KepubEncoder().encode_bytes(book)))
        chapter = next(n for n in archive.namelist() if n.endswith("chapter_1.xhtml"))
        html = archive.read(chapter).decode("utf-8")

        assert 'id="kobo.1.1"' in html
        assert 'id="kobo.1.2"' in html

    def test_empty_chapter_round_trips(self):
        book = Book.new("Empty")
        book.add_chapter(Chapter(title="Nothing"))

        decoded = KepubDecoder().decode(KepubEncoder().encode_bytes(book))

        assert len(decoded.chapters) == 1
        assert decoded.chapters[0].content == []

    def test_spans_removed_after_decode(self, sample_book):
        book = KepubDecoder().decode(KepubEncoder().encode_bytes(sample_book))

        para = book.chapters[0].content[1]
        assert isinstance(para, Paragraph)
        assert [type(i).__name__ for i in para.content] == ["Text", "Bold", "Text"]
