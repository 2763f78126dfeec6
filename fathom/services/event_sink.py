"""Observers for research events.

Sinks run inline on the event loop, so they must stay cheap and must never
raise into the orchestrator.
"""
from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO

from fathom.models.events import EventType, LogEvent
from fathom.models.research import TokenUsage
from fathom.research_core.models.interfaces import EventSink
from fathom.services import logger as log_service
from fathom.tools.web_utils import truncate


class NullEventSink:
    def emit(self, event: LogEvent, usage: TokenUsage) -> None:
        return None


class JsonlEventSink:
    """Append one ``{timestamp, event, usage}`` line per event."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def emit(self, event: LogEvent, usage: TokenUsage) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event.to_dict(),
            "usage": usage.to_dict(),
        }
        try:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry, ensure_ascii=False) + "\n")
        except OSError as e:
            log_service.logger.warning(f"Failed to append event to {self.path}: {e}")


class ConsoleEventSink:
    """Human-readable progress lines for verbose CLI runs."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stderr

    def _write(self, line: str) -> None:
        print(line, file=self.stream, flush=True)

    def emit(self, event: LogEvent, usage: TokenUsage) -> None:
        data = event.data
        if event.event == EventType.QUERY_GENERATED:
            self._write(f"[?] Generated {data.get('count', 0)} queries (Depth {data.get('depth')})")
            for query in data.get("queries", []):
                self._write(f"  - {query}")
        elif event.event == EventType.SEARCH:
            self._write(f"[~] Searched: \"{truncate(str(data.get('query', '')))}\"")
        elif event.event == EventType.SCRAPE:
            marker = "+" if data.get("status") == "success" else "-"
            self._write(f"[{marker}] Scrape {data.get('status')}: {truncate(str(data.get('url', '')))}")
        elif event.event == EventType.LEARNINGS:
            self._write(
                f"[*] Learned {data.get('count', 0)} facts from {truncate(str(data.get('url', '')))}"
            )
            for item in data.get("learnings", []):
                self._write(f"  - {item}")
        elif event.event == EventType.ERROR:
            self._write(f"[!] Error: {data.get('message', 'Unknown error')}")


class FanoutEventSink:
    """Forward each event to several sinks; one failing sink does not starve the rest."""

    def __init__(self, *sinks: EventSink):
        self.sinks = list(sinks)

    def emit(self, event: LogEvent, usage: TokenUsage) -> None:
        for sink in self.sinks:
            try:
                sink.emit(event, usage)
            except Exception as e:
                log_service.log_event(
                    event_type="sink_error",
                    message=f"Event sink {type(sink).__name__} failed",
                    error=str(e),
                )
