"""Exceptions raised by the QIMZ converter."""


class ConversionError(Exception):
    """Base exception for conversion errors."""


class InvalidParamsError(ConversionError):
    """Raised when target dimensions or threshold cannot be encoded."""


class SourceUnavailableError(ConversionError):
    """Raised when the source image is missing or cannot be decoded."""


class CompressionError(ConversionError):
    """Raised when the packed bitmap could not be compressed."""
