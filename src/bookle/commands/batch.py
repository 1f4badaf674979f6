"""Batch command implementation."""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress

from bookle.commands.convert import ConversionResult, convert_file
from bookle.core.decoder_factory import DecoderFactory
from bookle.core.encoder_factory import EncoderFactory
from bookle.errors import BookleError, UnsupportedFormat

log = logging.getLogger(__name__)


@dataclass
class BatchReport:
    """Outcome of converting every book in a directory."""

    converted: list[ConversionResult] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def find_books(input_dir: Path) -> list[Path]:
    """Supported book files directly inside ``input_dir``, sorted by name."""
    return sorted(
        path
        for path in input_dir.iterdir()
        if path.is_file() and DecoderFactory.is_supported(path)
    )


def output_path_for(input_path: Path, output_dir: Path, extension: str) -> Path:
    """Output file for ``input_path``: its stem plus the encoder's extension.

    Args:
        input_path: Book being converted
        output_dir: Directory receiving the converted books
        extension: Encoder file extension without the dot

    Returns:
        Path inside ``output_dir``
    """
    name = input_path.name
    if name.lower().endswith(".kepub.epub"):
        stem = name[: -len(".kepub.epub")]
    else:
        stem = input_path.stem
    return output_dir / f"{stem}.{extension}"


def convert_directory(
    input_dir: Path,
    output_dir: Path,
    fmt: str,
    jobs: int = 4,
    on_done=None,
) -> BatchReport:
    """Convert every supported book in ``input_dir`` on a thread pool.

    Each file gets its own decoder and encoder. A failing file is recorded
    in the report and does not stop the others.

    Args:
        input_dir: Directory scanned for books (not recursive)
        output_dir: Directory for converted books, created if missing
        fmt: Output format name
        jobs: Number of worker threads
        on_done: Optional callback receiving each input path once handled

    Returns:
        BatchReport with converted and failed files

    Raises:
        UnsupportedFormat: If no encoder handles ``fmt``
    """
    encoder = EncoderFactory.for_format(fmt)
    if encoder is None:
        raise UnsupportedFormat(f"no encoder for format {fmt!r}")
    extension = encoder.file_extension()

    books = find_books(input_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    report = BatchReport()

    with ThreadPoolExecutor(max_workers=max(1, jobs)) as executor:
        future_to_path = {
            executor.submit(
                convert_file, path, output_path_for(path, output_dir, extension), fmt
            ): path
            for path in books
        }
        for future in as_completed(future_to_path):
            path = future_to_path[future]
            try:
                result = future.result()
            except (BookleError, OSError) as e:
                log.error(f"Failed to convert {path.name}: {e}")
                report.failed.append((path, str(e)))
            else:
                log.info(f"Converted {path.name} -> {result.output_path.name}")
                report.converted.append(result)
            if on_done:
                on_done(path)

    report.converted.sort(key=lambda r: r.input_path.name)
    report.failed.sort(key=lambda f: f[0].name)
    return report


def execute_batch(
    input_dir: Path,
    output_dir: Path,
    fmt: str,
    jobs: int,
    quiet: bool,
    console: Console,
) -> BatchReport:
    """Execute the batch command."""
    total = len(find_books(input_dir))
    if total == 0:
        if not quiet:
            console.print(f"[yellow]No supported files found in {input_dir}[/]")
        return BatchReport()

    if quiet:
        return convert_directory(input_dir, output_dir, fmt, jobs)

    console.print(f"[dim]Found {total} file(s) to convert[/]")
    with Progress(console=console) as progress:
        task = progress.add_task("Converting...", total=total)

        def advance(path: Path) -> None:
            progress.update(
                task, advance=1, description=f"Converted: {path.name[:40]}"
            )

        report = convert_directory(input_dir, output_dir, fmt, jobs, on_done=advance)

    summary_lines = [
        f"[green]Success:[/] {len(report.converted)}",
        f"[red]Errors:[/]  {len(report.failed)}",
        "",
        f"[dim]Output directory:[/] {output_dir}",
    ]
    for path, message in report.failed:
        summary_lines.append(f"[red]{path.name}:[/] {message}")

    console.print()
    console.print(
        Panel(
            "\n".join(summary_lines),
            title="Batch Conversion Complete",
            border_style="green" if report.ok else "yellow",
        )
    )
    console.print()
    return report
