# src/ingest/errors.py
from typing import Optional


class IngestError(Exception):
    """Base class for all errors raised while ingesting XML files."""


class ParseError(IngestError):
    """
    Raised when a single XML source cannot be read or parsed.

    Carries the offending source (usually a file path) and the underlying
    cause so the pipeline can log it and decide whether to skip the file.
    """

    def __init__(self, source: Optional[str], cause: Exception):
        self.source = source
        self.cause = cause
        super().__init__(f"{source or '<stream>'}: {cause}")


class StructuralError(ParseError):
    """Raised when the element nesting is corrupt (end-tag without an open element)."""

    def __init__(self, source: Optional[str], message: str):
        super().__init__(source, ValueError(message))


class PipelineAbortedError(IngestError):
    """Raised by the pipeline consumer when fail-fast mode stopped the run."""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"Pipeline aborted on {path}: {cause}")
