"""
Tests for the conversion commands and CLI.
"""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from bookle.cli import app
from bookle.commands.batch import convert_directory, find_books, output_path_for
from bookle.commands.convert import convert_file, target_format_for
from bookle.commands.info import chapter_word_count, flatten_toc
from bookle.commands.validate import validate_book
from bookle.core.epub_decoder import EpubDecoder
from bookle.errors import UnsupportedFormat
from bookle.models import Book, Chapter, Image, Paragraph, Text, TocEntry

MARKDOWN = "# My Book\n\nIntroduction.\n\n# Chapter 1\n\nContent here.\n"

runner = CliRunner()


@pytest.fixture
def markdown_file(tmp_path: Path) -> Path:
    path = tmp_path / "book.md"
    path.write_text(MARKDOWN, encoding="utf-8")
    return path


class TestConvert:
    """Test file conversion."""

    def test_markdown_to_epub(self, markdown_file, tmp_path):
        output = tmp_path / "out" / "book.epub"
        result = convert_file(markdown_file, output)

        assert result.chapters == 2
        assert result.source_format == "markdown"
        assert result.target_format == "EPUB"
        book = EpubDecoder().decode(output.read_bytes())
        assert book.title == "My Book"
        assert len(book.chapters) == 2

    def test_pdf_means_typst_source(self, markdown_file, tmp_path):
        output = tmp_path / "book.pdf"
        convert_file(markdown_file, output)

        assert output.read_text(encoding="utf-8").startswith("#set page(")

    def test_unknown_output_format(self, markdown_file, tmp_path):
        output = tmp_path / "book.docx"
        with pytest.raises(UnsupportedFormat):
            convert_file(markdown_file, output)
        assert not output.exists()

    def test_target_format(self):
        assert target_format_for(Path("a.kepub.epub"), None) == "kepub"
        assert target_format_for(Path("a.EPUB"), None) == "epub"
        assert target_format_for(Path("a.out"), "Typst") == "typst"


class TestBatch:
    """Test directory conversion."""

    @pytest.fixture
    def library(self, tmp_path: Path) -> Path:
        books = tmp_path / "library"
        books.mkdir()
        (books / "one.md").write_text(MARKDOWN, encoding="utf-8")
        (books / "two.md").write_text("# Two\n\nBody.\n", encoding="utf-8")
        (books / "broken.epub").write_bytes(b"not a zip")
        (books / "notes.txt").write_text("skipped")
        return books

    def test_finds_supported_files_only(self, library):
        assert [p.name for p in find_books(library)] == [
            "broken.epub",
            "one.md",
            "two.md",
        ]

    def test_output_names(self):
        out = Path("out")

        assert output_path_for(Path("a.md"), out, "epub") == out / "a.epub"
        assert output_path_for(Path("b.kepub.epub"), out, "typ") == out / "b.typ"

    def test_counts_successes_and_errors(self, library, tmp_path):
        output_dir = tmp_path / "converted"
        report = convert_directory(library, output_dir, "epub", jobs=2)

        assert [r.input_path.name for r in report.converted] == ["one.md", "two.md"]
        assert [p.name for p, _ in report.failed] == ["broken.epub"]
        assert not report.ok
        assert (output_dir / "one.epub").exists()
        assert (output_dir / "two.epub").exists()
        assert not (output_dir / "broken.epub").exists()

    def test_unknown_format(self, library, tmp_path):
        with pytest.raises(UnsupportedFormat):
            convert_directory(library, tmp_path / "out", "docx")

    def test_cli_exit_code(self, library, tmp_path):
        output_dir = tmp_path / "typst"
        result = runner.invoke(
            app, ["batch", str(library), "-o", str(output_dir), "-f", "typst", "-q"]
        )

        assert result.exit_code == 1
        assert (output_dir / "one.typ").exists()

    def test_cli_all_converted(self, markdown_file, tmp_path):
        output_dir = tmp_path / "out"
        result = runner.invoke(
            app, ["batch", str(markdown_file.parent), "-o", str(output_dir)]
        )

        assert result.exit_code == 0
        assert (output_dir / "book.epub").exists()


class TestInfoAndValidate:
    """Test summary helpers."""

    def test_word_count(self):
        chapter = Chapter(title="C", content=[Paragraph([Text("three small words")])])

        assert chapter_word_count(chapter) == 3

    def test_flatten_toc(self):
        root = TocEntry(title="A", href="a").add_child(
            TocEntry(title="B", href="b", level=1)
        )

        assert [e.title for e in flatten_toc([root])] == ["A", "B"]

    def test_unresolved_image_reported(self):
        book = Book.new("T")
        book.add_chapter(Chapter(title="C", content=[Image(resource_key="gone.png")]))
        report = validate_book(book)

        assert not report.ok
        assert "gone.png" in report.warnings[0]

    def test_clean_book(self, sample_book):
        assert validate_book(sample_book).ok


class TestCli:
    """Test the typer application."""

    def test_convert(self, markdown_file, tmp_path):
        output = tmp_path / "book.kepub.epub"
        result = runner.invoke(app, ["convert", str(markdown_file), str(output)])

        assert result.exit_code == 0
        assert output.exists()

    def test_convert_with_format(self, markdown_file, tmp_path):
        output = tmp_path / "book.out"
        result = runner.invoke(
            app, ["convert", "-q", str(markdown_file), str(output), "--format", "typ"]
        )

        assert result.exit_code == 0
        assert output.read_bytes().startswith(b"#set page(")

    def test_unsupported_input(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")

        result = runner.invoke(app, ["info", str(path)])
        assert result.exit_code == 1

    def test_decode_error_exits_1(self, tmp_path):
        path = tmp_path / "broken.epub"
        path.write_bytes(b"not a zip")

        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1

    def test_info_json(self, markdown_file):
        result = runner.invoke(app, ["info", str(markdown_file), "--json"])

        assert result.exit_code == 0
        assert '"title": "My Book"' in result.output

    def test_validate_ok(self, markdown_file):
        result = runner.invoke(app, ["validate", str(markdown_file)])

        assert result.exit_code == 0

    def test_formats(self):
        result = runner.invoke(app, ["formats"])

        assert result.exit_code == 0
        assert "kepub" in result.output
