from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class ResearchConfig:
    depth: int = 2
    breadth: int = 3
    concurrency: int = 5
    learnings_per_chunk: int = 5
    max_search_results_per_query: int = 5

    def __post_init__(self) -> None:
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")
        for name in (
            "breadth",
            "concurrency",
            "learnings_per_chunk",
            "max_search_results_per_query",
        ):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")


@dataclass(frozen=True, slots=True)
class SourceRecord:
    id: int
    url: str
    canonical_url: str
    first_seen_query: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "canonical_url": self.canonical_url,
            "first_seen_query": self.first_seen_query,
        }


@dataclass(frozen=True, slots=True)
class Learning:
    text: str
    source_id: int
    source_query: str


@dataclass(slots=True)
class TokenUsage:
    prompt: int = 0
    completion: int = 0
    total: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"prompt": self.prompt, "completion": self.completion, "total": self.total}


@dataclass
class ResearchState:
    """Mutable state of one run. Owned by the orchestrator."""

    learnings: list[Learning] = field(default_factory=list)
    sources: list[SourceRecord] = field(default_factory=list)
    visited_canonical_urls: set[str] = field(default_factory=set)
    token_usage: TokenUsage = field(default_factory=TokenUsage)
