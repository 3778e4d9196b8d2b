"""Errors raised by the summary pipeline."""


class SummaryError(Exception):
    """Base class for summary pipeline errors."""


class GenerationError(SummaryError):
    """The upstream text-generation call failed or returned nothing.

    Retryable; the failed attempt is never cached.
    """


class DecodeError(SummaryError):
    """The model response could not be decoded as a structured payload."""


class CacheWriteError(SummaryError):
    """Persisting a generated summary failed."""
