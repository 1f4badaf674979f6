"""Exception hierarchy for decoders and encoders."""


class BookleError(Exception):
    """Base class for all conversion failures."""

    prefix = ""

    def __init__(self, message: str = ""):
        self.message = message
        super().__init__(f"{self.prefix}: {message}" if self.prefix else message)


# =============================================================================
# Decoding
# =============================================================================


class ParseError(BookleError):
    """Raised when input cannot be read into a Book."""


class InvalidHtml(ParseError):
    prefix = "Invalid HTML"


class InvalidEpub(ParseError):
    prefix = "Invalid EPUB"


class InvalidMobi(ParseError):
    prefix = "Invalid MOBI"


class UnsupportedFormat(ParseError):
    prefix = "Unsupported format"


class MissingField(ParseError):
    prefix = "Missing required field"


class MalformedContent(ParseError):
    prefix = "Malformed content"


# =============================================================================
# Encoding
# =============================================================================


class ConversionError(BookleError):
    """Raised when a Book cannot be written to an output format."""


class EncodingFailed(ConversionError):
    prefix = "Encoding failed"


class ResourceNotFound(ConversionError):
    prefix = "Resource not found"


class InvalidTemplate(ConversionError):
    prefix = "Invalid template"


class TypstError(ConversionError):
    prefix = "Typst error"
