"""Convert command implementation."""

import time
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.panel import Panel

from bookle.core.decoder_factory import DecoderFactory
from bookle.core.encoder_factory import EncoderFactory
from bookle.errors import UnsupportedFormat
from bookle.models import Book


@dataclass
class ConversionResult:
    """Summary of a finished conversion."""

    input_path: Path
    output_path: Path
    source_format: str
    target_format: str
    chapters: int
    resources: int
    bytes_written: int
    elapsed: float


def decode_file(input_path: Path) -> Book:
    """Decode a book file using the decoder registered for its extension.

    Raises:
        UnsupportedFormat: If no decoder handles the extension
        ParseError: If the file cannot be decoded
    """
    decoder = DecoderFactory.for_path(input_path)
    if decoder is None:
        raise UnsupportedFormat(
            f"no decoder for '.{DecoderFactory.extension_of(input_path)}' files"
        )
    with open(input_path, "rb") as f:
        return decoder.decode(f)


def target_format_for(output_path: Path, fmt: str | None) -> str:
    """Output format name: explicit ``fmt`` or the output path's extension."""
    if fmt:
        return fmt.lower()
    name = output_path.name.lower()
    if name.endswith(".kepub.epub"):
        return "kepub"
    return output_path.suffix.lstrip(".").lower()


def convert_file(
    input_path: Path, output_path: Path, fmt: str | None = None
) -> ConversionResult:
    """Decode ``input_path`` and encode it to ``output_path``.

    The output file is only created once encoding succeeded.

    Args:
        input_path: Book to read
        output_path: File to write
        fmt: Output format name; defaults to the output path's extension

    Returns:
        ConversionResult describing the written file

    Raises:
        UnsupportedFormat: If no encoder or decoder handles the formats
        BookleError: If decoding or encoding fails
    """
    start = time.monotonic()
    target = target_format_for(output_path, fmt)
    encoder = EncoderFactory.for_format(target)
    if encoder is None:
        raise UnsupportedFormat(f"no encoder for format {target!r}")

    book = decode_file(input_path)
    data = encoder.encode_bytes(book)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(data)

    return ConversionResult(
        input_path=input_path,
        output_path=output_path,
        source_format=DecoderFactory.detect_format(input_path),
        target_format=encoder.format_name(),
        chapters=len(book.chapters),
        resources=len(book.resources),
        bytes_written=len(data),
        elapsed=time.monotonic() - start,
    )


def execute_convert(
    input_path: Path,
    output_path: Path,
    fmt: str | None,
    quiet: bool,
    console: Console,
) -> ConversionResult:
    """Execute the convert command."""
    if quiet:
        return convert_file(input_path, output_path, fmt)

    with console.status(f"[bold green]Converting {input_path.name}..."):
        result = convert_file(input_path, output_path, fmt)

    console.print()
    console.print(
        Panel(
            f"[bold]{result.output_path}[/]\n\n"
            f"[dim]From:[/] {result.source_format.upper()}  "
            f"[dim]To:[/] {result.target_format}\n"
            f"[dim]Chapters:[/] {result.chapters}\n"
            f"[dim]Resources:[/] {result.resources}\n"
            f"[dim]Size:[/] {result.bytes_written:,} bytes\n"
            f"[dim]Time:[/] {result.elapsed:.2f}s",
            title="Conversion Complete",
            border_style="green",
        )
    )
    if result.target_format == "Typst":
        console.print(
            f"[dim]Compile to PDF with:[/] [cyan]typst compile {result.output_path}[/]"
        )
    console.print()
    return result
