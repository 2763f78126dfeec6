from __future__ import annotations

from typing import Literal

from fathom.models.events import EventType, LogEvent

ScrapeStatus = Literal["success", "skipped", "failed"]


def query_generated(depth: int, queries: list[str]) -> LogEvent:
    return LogEvent(
        event=EventType.QUERY_GENERATED,
        data={"depth": depth, "count": len(queries), "queries": list(queries)},
    )


def search(query: str, results_count: int) -> LogEvent:
    return LogEvent(
        event=EventType.SEARCH,
        data={"query": query, "results_count": results_count},
    )


def scrape(url: str, status: ScrapeStatus) -> LogEvent:
    return LogEvent(event=EventType.SCRAPE, data={"url": url, "status": status})


def learnings(url: str, items: list[str]) -> LogEvent:
    return LogEvent(
        event=EventType.LEARNINGS,
        data={"url": url, "count": len(items), "learnings": list(items)},
    )


def report_generation(prompt: str, system_prompt: str, user_message: str) -> LogEvent:
    return LogEvent(
        event=EventType.REPORT_GENERATION,
        data={"prompt": prompt, "system_prompt": system_prompt, "user_message": user_message},
    )


def error(message: str) -> LogEvent:
    return LogEvent(event=EventType.ERROR, data={"message": message})
