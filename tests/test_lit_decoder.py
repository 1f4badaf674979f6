"""
Tests for LIT signature checks and title recovery.
"""

import pytest

from bookle.config import LitScanConfig
from bookle.core.lit_decoder import (
    DEFAULT_TITLE,
    LIT_SIGNATURE,
    LitDecoder,
    find_utf16le_string,
)
from bookle.errors import MalformedContent, UnsupportedFormat


def utf16(text: str) -> bytes:
    return text.encode("utf-16-le")


class TestSignature:
    """Test signature validation."""

    def test_too_short(self):
        with pytest.raises(MalformedContent):
            LitDecoder().decode(b"ITOL")

    def test_wrong_signature(self):
        with pytest.raises(UnsupportedFormat):
            LitDecoder().decode(b"NOTALIT!" + b"\x00" * 32)

    def test_signed_input_always_decodes(self):
        """Should return a placeholder book for any signed input."""
        book = LitDecoder().decode(LIT_SIGNATURE)

        assert book.title == DEFAULT_TITLE
        assert len(book.chapters) == 1
        assert book.chapters[0].title == "LIT Format Information"
        assert "Calibre" in book.metadata.description


class TestTitleRecovery:
    """Test the UTF-16LE string scan."""

    def test_recovers_title(self):
        data = LIT_SIGNATURE + b"\x00" * 8 + utf16("My Great Book") + b"\x00\x00"

        assert LitDecoder().decode(data).title == "My Great Book"

    def test_skips_urls_paths_and_labels(self):
        data = (
            utf16("http://example.com")
            + b"\x00\x00"
            + utf16("C:\\books\\file")
            + b"\x00\x00"
            + utf16("ALL CAPS LABEL")
            + b"\x00\x00"
            + utf16("A Real Title")
        )

        assert find_utf16le_string(data, 10, 200) == "A Real Title"

    def test_length_bounds(self):
        data = utf16("Short") + b"\x00\x00" + utf16("Long enough title")

        assert find_utf16le_string(data, 10, 200) == "Long enough title"
        assert find_utf16le_string(data, 10, 12) is None

    def test_rejected_run_tail_not_rescanned(self):
        """Should resume after a rejected run instead of testing its suffixes."""
        assert find_utf16le_string(utf16("http://example.com"), 10, 200) is None
        assert find_utf16le_string(utf16("An overly long title"), 5, 12) is None

    def test_search_window(self):
        data = LIT_SIGNATURE + b"\x00" * 64 + utf16("Far Away Title")
        decoder = LitDecoder(LitScanConfig(search_window=32))

        assert decoder.decode(data).title == DEFAULT_TITLE
