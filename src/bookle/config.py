"""Option objects for decoders and encoders."""

from dataclasses import dataclass


@dataclass
class TypstPageConfig:
    """Page setup written at the top of generated Typst source."""
    width: str = "210mm"
    height: str = "297mm"
    margin_top: str = "2.5cm"
    margin_bottom: str = "2.5cm"
    margin_left: str = "2cm"
    margin_right: str = "2cm"
    font_size: str = "11pt"
    outline_depth: int = 2
    outline_title: str = "Contents"


@dataclass
class LitScanConfig:
    """Bounds for the UTF-16LE title scan over LIT files."""
    search_window: int = 4096  # Bytes scanned from the start of the file
    min_title_length: int = 10
    max_title_length: int = 200


@dataclass
class MarkdownOptions:
    """Markdown extensions enabled beyond the core syntax."""
    tables: bool = True
    strikethrough: bool = True
    footnotes: bool = True
