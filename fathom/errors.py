from __future__ import annotations


class ResearchError(Exception):
    """Base class for errors surfaced to callers of the research engine."""


class ParseError(ResearchError, ValueError):
    """No JSON value could be recovered from model output."""


class GenerationError(ResearchError):
    """A model call failed or returned output that does not fit the expected shape."""


class InsufficientSourcesError(ResearchError):
    """Report synthesis refused because too few distinct sources were collected."""

    def __init__(self, source_count: int, required: int):
        self.source_count = source_count
        self.required = required
        noun = "source" if source_count == 1 else "sources"
        super().__init__(
            f"Insufficient source diversity to generate report "
            f"({source_count} unique {noun}, need at least {required})."
        )
