"""Main CLI application."""

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from bookle.core.decoder_factory import DecoderFactory
from bookle.core.encoder_factory import EncoderFactory
from bookle.errors import BookleError

app = typer.Typer(
    name="bookle",
    help="Convert ebooks between EPUB, KEPUB, MOBI, PDF, LIT, Markdown and Typst.",
    add_completion=False,
)

console = Console()

InputPath = Annotated[
    Path,
    typer.Argument(
        help="Path to the book file",
        exists=True,
        file_okay=True,
        dir_okay=False,
        resolve_path=True,
    ),
]


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug logging"),
    ] = False,
) -> None:
    """Convert ebooks between formats through one shared document model."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def check_input(input_path: Path) -> None:
    if not DecoderFactory.is_supported(input_path):
        console.print(f"[red]Unsupported file format: {input_path.name}[/]")
        console.print("[dim]Run 'bookle formats' to list supported formats.[/]")
        raise typer.Exit(1)


@app.command()
def convert(
    input_path: InputPath,
    output_path: Annotated[
        Path,
        typer.Argument(help="Path of the file to write"),
    ],
    output_format: Annotated[
        Optional[str],
        typer.Option(
            "--format",
            "-f",
            help="Output format: epub, kepub or typst/pdf (default: from OUTPUT)",
        ),
    ] = None,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress progress output"),
    ] = False,
) -> None:
    """Convert a book to another format."""
    check_input(input_path)

    from bookle.commands.convert import execute_convert

    try:
        execute_convert(
            input_path=input_path,
            output_path=output_path,
            fmt=output_format,
            quiet=quiet,
            console=console,
        )
    except BookleError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)


@app.command()
def batch(
    input_dir: Annotated[
        Path,
        typer.Argument(
            help="Directory containing the books to convert",
            exists=True,
            file_okay=False,
            dir_okay=True,
            resolve_path=True,
        ),
    ],
    output_dir: Annotated[
        Path,
        typer.Option("--output-dir", "-o", help="Directory for converted books"),
    ],
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: epub, kepub or typst/pdf"),
    ] = "epub",
    jobs: Annotated[
        int,
        typer.Option("--jobs", "-j", min=1, help="Number of parallel conversions"),
    ] = 4,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Suppress progress output"),
    ] = False,
) -> None:
    """Convert every supported book in a directory."""
    from bookle.commands.batch import execute_batch

    try:
        report = execute_batch(
            input_dir=input_dir,
            output_dir=output_dir,
            fmt=output_format,
            jobs=jobs,
            quiet=quiet,
            console=console,
        )
    except BookleError as e:
        console.print(f"[red]Error: {e}[/]")
        raise typer.Exit(1)
    if not report.ok:
        console.print(
            f"[red]Batch conversion completed with {len(report.failed)} error(s)[/]"
        )
        raise typer.Exit(1)


@app.command()
def info(
    input_path: InputPath,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the full book record as JSON"),
    ] = False,
) -> None:
    """Display book metadata, chapters and table of contents."""
    check_input(input_path)

    from bookle.commands.info import execute_info

    try:
        execute_info(input_path=input_path, as_json=as_json, console=console)
    except BookleError as e:
        console.print(f"[red]Error reading file: {e}[/]")
        raise typer.Exit(1)


@app.command()
def validate(input_path: InputPath) -> None:
    """Decode a book and report structural problems."""
    check_input(input_path)

    from bookle.commands.validate import execute_validate

    try:
        report = execute_validate(input_path=input_path, console=console)
    except BookleError as e:
        console.print(f"[red]Invalid: {e}[/]")
        raise typer.Exit(1)
    if not report.ok:
        raise typer.Exit(1)


@app.command()
def formats() -> None:
    """List supported input and output formats."""
    table = Table(title="Input Formats", show_header=True, header_style="bold cyan")
    table.add_column("Format", style="white")
    table.add_column("Extensions", style="green")
    by_format: dict[str, list[str]] = {}
    for ext, fmt in DecoderFactory.EXTENSIONS.items():
        by_format.setdefault(fmt, []).append(f".{ext}")
    for fmt, extensions in by_format.items():
        table.add_row(fmt, ", ".join(extensions))
    console.print(table)

    table = Table(title="Output Formats", show_header=True, header_style="bold cyan")
    table.add_column("Format", style="white")
    table.add_column("Names", style="green")
    by_format = {}
    for name, fmt in EncoderFactory.FORMATS.items():
        by_format.setdefault(fmt, []).append(name)
    for fmt, names in by_format.items():
        table.add_row(fmt, ", ".join(names))
    console.print(table)
    console.print("[dim]'pdf' output is Typst source; compile it with typst.[/]")


if __name__ == "__main__":
    app()
