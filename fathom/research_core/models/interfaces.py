from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

from fathom.models.events import LogEvent
from fathom.models.research import TokenUsage

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@dataclass(slots=True)
class SearchResult:
    title: str
    href: str
    body: str = ""


@dataclass(slots=True)
class Usage:
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(slots=True)
class StructuredResult:
    value: Any
    usage: Usage


@dataclass(slots=True)
class TextResult:
    content: str
    usage: Usage


@runtime_checkable
class SearchProvider(Protocol):
    async def search(self, query: str) -> list[SearchResult]:
        """Return results for ``query``; an empty list on any failure."""
        ...


@runtime_checkable
class ContentProvider(Protocol):
    async def fetch_and_convert(self, url: str) -> str:
        """Return readable text for ``url``; an empty string on any failure."""
        ...


class StructuredGenerationProvider(Protocol):
    async def generate_structured(
        self,
        prompt: str,
        schema: type[SchemaT],
        system_prompt: str,
    ) -> StructuredResult:
        """Return a value validated against ``schema`` or raise GenerationError."""
        ...


class TextGenerationProvider(Protocol):
    async def generate_text(self, prompt: str, system_prompt: str) -> TextResult:
        ...


@runtime_checkable
class EventSink(Protocol):
    def emit(self, event: LogEvent, usage: TokenUsage) -> None:
        ...
