from __future__ import annotations

from fathom.models.research import SourceRecord
from fathom.tools.web_utils import canonicalize_url


class SourceRegistry:
    """Stable integer identities for canonical URLs, first write wins.

    Records are appended to ``sources`` (normally the run's
    ``ResearchState.sources``) so the state stays the single owner.
    """

    def __init__(self, sources: list[SourceRecord] | None = None):
        self.sources: list[SourceRecord] = sources if sources is not None else []
        self._by_canonical_url: dict[str, SourceRecord] = {
            record.canonical_url: record for record in self.sources
        }
        self._by_id: dict[int, SourceRecord] = {record.id: record for record in self.sources}

    def __len__(self) -> int:
        return len(self.sources)

    def get_or_create(self, raw_url: str, first_seen_query: str) -> SourceRecord:
        canonical_url = canonicalize_url(raw_url)
        existing = self._by_canonical_url.get(canonical_url)
        if existing is not None:
            return existing

        record = SourceRecord(
            id=len(self.sources) + 1,
            url=raw_url,
            canonical_url=canonical_url,
            first_seen_query=first_seen_query,
        )
        self.sources.append(record)
        self._by_canonical_url[canonical_url] = record
        self._by_id[record.id] = record
        return record

    def get(self, source_id: int) -> SourceRecord | None:
        return self._by_id.get(source_id)

    def lookup_url_by_id(self, source_id: int) -> str:
        record = self._by_id.get(source_id)
        return record.url if record is not None else "unknown"
