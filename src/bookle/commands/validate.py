"""Validate command implementation."""

from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from bookle.commands.convert import decode_file
from bookle.models import Block, Book, Image
from bookle.models.block import Blockquote, Footnote, ListBlock


@dataclass
class ValidationReport:
    """Problems found in a decoded book."""

    title: str
    chapters: int
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.warnings


def iter_images(blocks: list[Block]):
    for block in blocks:
        if isinstance(block, Image):
            yield block
        elif isinstance(block, ListBlock):
            for item in block.items:
                yield from iter_images(item)
        elif isinstance(block, (Blockquote, Footnote)):
            yield from iter_images(block.content)


def validate_book(book: Book) -> ValidationReport:
    """Check a decoded book for structural problems.

    Unresolved image references are reported, not treated as failures of the
    decode itself.
    """
    report = ValidationReport(title=book.title, chapters=len(book.chapters))
    if not book.chapters:
        report.warnings.append("Book has no chapters")
    for index, chapter in enumerate(book.chapters, start=1):
        if not chapter.content:
            report.warnings.append(f"Chapter {index} ('{chapter.title}') is empty")
        for image in iter_images(chapter.content):
            if image.resource_key not in book.resources:
                report.warnings.append(
                    f"Chapter {index}: unresolved image '{image.resource_key}'"
                )
    cover = book.metadata.cover_resource_key
    if cover and cover not in book.resources:
        report.warnings.append(f"Cover resource '{cover}' not found")
    return report


def execute_validate(input_path: Path, console: Console) -> ValidationReport:
    """Execute the validate command."""
    report = validate_book(decode_file(input_path))

    console.print()
    console.print(f"[bold]{report.title}[/] [dim]({report.chapters} chapters)[/]")
    if report.ok:
        console.print("[green]✓ No problems found[/]")
    else:
        for warning in report.warnings:
            console.print(f"[yellow]⚠ {warning}[/]")
    console.print()
    return report
