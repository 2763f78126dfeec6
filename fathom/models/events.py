from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class EventType(str, Enum):
    QUERY_GENERATED = "query_generated"
    SEARCH = "search"
    SCRAPE = "scrape"
    LEARNINGS = "learnings"
    REPORT_GENERATION = "report_generation"
    ERROR = "error"


@dataclass
class LogEvent:
    event: EventType
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def type(self) -> str:
        return self.event.value

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.event.value, **self.data}

    def format(self) -> str:
        return json.dumps(self.to_dict())
