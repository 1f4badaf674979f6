"""Info command implementation."""

from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bookle.commands.convert import decode_file
from bookle.core.decoder_factory import DecoderFactory
from bookle.models import Book, Chapter, TocEntry, plain_text
from bookle.models.block import Header, Paragraph


def chapter_word_count(chapter: Chapter) -> int:
    """Approximate word count over headers and paragraphs."""
    words = 0
    for block in chapter.content:
        if isinstance(block, (Header, Paragraph)):
            words += len(plain_text(block.content).split())
    return words


def flatten_toc(entries: list[TocEntry]) -> list[TocEntry]:
    flat = []
    for entry in entries:
        flat.append(entry)
        flat.extend(flatten_toc(entry.children))
    return flat


def display_info(book: Book, source_format: str, console: Console) -> None:
    """Display metadata, chapters and table of contents."""
    metadata = book.metadata
    info_lines = [
        f"[bold]{metadata.title}[/]",
        "",
        f"[dim]Author(s):[/] {', '.join(metadata.creator) or 'Unknown'}",
        f"[dim]Format:[/] {source_format.upper()}",
        f"[dim]Language:[/] {metadata.language}",
        f"[dim]Publisher:[/] {metadata.publisher or 'Unknown'}",
        f"[dim]Identifier:[/] {metadata.identifier}",
    ]
    if metadata.date:
        info_lines.append(f"[dim]Date:[/] {metadata.date.date().isoformat()}")
    if metadata.subject:
        info_lines.append(f"[dim]Subjects:[/] {', '.join(metadata.subject)}")
    if metadata.series:
        position = (
            f" #{metadata.series.position:g}"
            if metadata.series.position is not None
            else ""
        )
        info_lines.append(f"[dim]Series:[/] {metadata.series.name}{position}")
    info_lines.append(f"[dim]Chapters:[/] {len(book.chapters)}")
    info_lines.append(f"[dim]Resources:[/] {len(book.resources)}")
    if metadata.description:
        info_lines.extend(["", f"[italic]{metadata.description}[/]"])

    console.print()
    console.print(
        Panel("\n".join(info_lines), title="Book Information", border_style="green")
    )

    console.print()
    table = Table(title="Chapters", show_header=True, header_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", style="white")
    table.add_column("Blocks", justify="right", style="dim")
    table.add_column("Words", justify="right", style="green")
    for index, chapter in enumerate(book.chapters, start=1):
        table.add_row(
            str(index),
            chapter.title,
            str(len(chapter.content)),
            f"{chapter_word_count(chapter):,}",
        )
    console.print(table)

    toc = flatten_toc(book.toc)
    if toc:
        console.print()
        toc_table = Table(
            title="Table of Contents", show_header=True, header_style="bold cyan"
        )
        toc_table.add_column("Title", style="white")
        toc_table.add_column("Target", style="dim")
        for entry in toc:
            toc_table.add_row(f"{'  ' * entry.level}{entry.title}", entry.href)
        console.print(toc_table)
    console.print()


def execute_info(input_path: Path, as_json: bool, console: Console) -> Book:
    """Execute the info command.

    With ``as_json`` the whole book record is printed instead of a summary.
    """
    book = decode_file(input_path)
    if as_json:
        console.print_json(book.model_dump_json())
    else:
        display_info(book, DecoderFactory.detect_format(input_path), console)
    return book
