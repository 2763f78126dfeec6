from __future__ import annotations

from fathom.models.research import ResearchState
from fathom.research_core.evidence.registry import SourceRegistry


def test_get_or_create_assigns_sequential_ids_from_one():
    registry = SourceRegistry()

    first = registry.get_or_create("https://a.example.org/one", "q1")
    second = registry.get_or_create("https://b.example.org/two", "q2")

    assert (first.id, second.id) == (1, 2)
    assert len(registry) == 2


def test_equivalent_urls_resolve_to_the_same_record():
    registry = SourceRegistry()

    first = registry.get_or_create("https://Example.com/a/?utm_source=x&b=2&a=1", "first query")
    again = registry.get_or_create("https://example.com/a?a=1&b=2#top", "second query")

    assert again is first
    assert again.id == 1
    assert again.first_seen_query == "first query"
    assert again.url == "https://Example.com/a/?utm_source=x&b=2&a=1"
    assert again.canonical_url == "https://example.com/a?a=1&b=2"
    assert len(registry) == 1


def test_registry_writes_into_the_run_state():
    state = ResearchState()
    registry = SourceRegistry(state.sources)

    registry.get_or_create("https://example.com/x", "q")

    assert [s.url for s in state.sources] == ["https://example.com/x"]


def test_lookup_url_by_id():
    registry = SourceRegistry()
    record = registry.get_or_create("https://example.com/x", "q")

    assert registry.lookup_url_by_id(record.id) == "https://example.com/x"
    assert registry.lookup_url_by_id(99) == "unknown"
    assert registry.get(99) is None
