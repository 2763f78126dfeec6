from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, TypeVar

from fathom.agents.diversity_guard import DiversityGuard
from fathom.config import settings
from fathom.errors import InsufficientSourcesError
from fathom.llm_client import LLMClient
from fathom.models.events import LogEvent
from fathom.models.research import Learning, ResearchConfig, ResearchState
from fathom.models.schemas import LearningExtraction, QueryList
from fathom.research_core.evidence.registry import SourceRegistry
from fathom.research_core.models.interfaces import (
    ContentProvider,
    EventSink,
    SearchProvider,
    SearchResult,
    StructuredGenerationProvider,
    TextGenerationProvider,
)
from fathom.services import logger as log_service
from fathom.services import streaming
from fathom.services.event_sink import NullEventSink
from fathom.services.prompt_store import render_prompt
from fathom.services.usage import TokenUsageAccumulator
from fathom.tools.ddg_search import DuckDuckGoSearch
from fathom.tools.page_fetcher import PageFetcher
from fathom.tools.screener import Screener
from fathom.tools.web_utils import canonicalize_url

T = TypeVar("T")

MAX_FOLLOW_UP_QUESTIONS = 3
TARGET_UNIQUE_SOURCES = 3
HARD_MINIMUM_SOURCES = 2
DIVERSITY_MAX_ATTEMPTS = 2


@dataclass
class QueryBatch:
    query: str
    results: list[SearchResult] = field(default_factory=list)


@dataclass
class ProcessedPage:
    source_url: str
    source_query: str
    learnings: list[str] = field(default_factory=list)
    follow_up_questions: list[str] = field(default_factory=list)


def _current_date() -> str:
    return datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S GMT")


class ResearchOrchestrator:
    """Recursive research loop.

    Flow per node of the query tree:
      1. Generate search queries from the prompt and everything learned so far
      2. Fan out: search each query, screen and deduplicate the URLs
      3. Fan out: fetch each new URL and extract learnings + follow-up questions
      4. Recurse on the follow-up questions until depth is exhausted

    Every outbound call (query generation, search, fetch+extract) runs under one
    semaphore sized by ``config.concurrency``, shared across the whole tree.
    """

    def __init__(
        self,
        config: ResearchConfig,
        *,
        llm: StructuredGenerationProvider | None = None,
        text_llm: TextGenerationProvider | None = None,
        search_provider: SearchProvider | None = None,
        content_provider: ContentProvider | None = None,
        screener: Screener | None = None,
        event_sink: EventSink | None = None,
        min_content_chars: int | None = None,
        provider_timeout_s: float | None = None,
    ):
        self.config = config
        default_llm: Any = llm or LLMClient()
        self.llm: StructuredGenerationProvider = default_llm
        self.text_llm: TextGenerationProvider = text_llm or default_llm
        self.search_provider: SearchProvider = search_provider or DuckDuckGoSearch()
        self.content_provider: ContentProvider = content_provider or PageFetcher()
        self.screener = screener or Screener(
            deny_patterns=settings.screener_deny_list,
            allow_patterns=settings.screener_allow_list,
        )
        self.event_sink: EventSink = event_sink or NullEventSink()
        self.min_content_chars = (
            min_content_chars if min_content_chars is not None else int(settings.min_content_chars)
        )
        self.provider_timeout_s = float(
            provider_timeout_s if provider_timeout_s is not None else settings.provider_timeout_s
        )
        self.extraction_prompt_max_chars = int(settings.extraction_prompt_max_chars)

        self.state = ResearchState()
        self.registry = SourceRegistry(self.state.sources)
        self.usage = TokenUsageAccumulator(self.state.token_usage)
        self.diversity_guard = DiversityGuard(self)
        self._semaphore = asyncio.Semaphore(config.concurrency)

    # --- events ---

    def emit(self, event: LogEvent) -> None:
        try:
            self.event_sink.emit(event, self.usage.snapshot())
        except Exception as e:
            # Never break research progress because an observer failed.
            log_service.logger.warning(f"Event sink failed on {event.type}: {e}")

    def _report_error(self, message: str) -> None:
        log_service.logger.warning(message)
        self.emit(streaming.error(message))

    async def _call_provider(self, awaitable: Awaitable[T]) -> T:
        if self.provider_timeout_s > 0:
            return await asyncio.wait_for(awaitable, timeout=self.provider_timeout_s)
        return await awaitable

    # --- model calls ---

    def _learnings_digest(self) -> str:
        if not self.state.learnings:
            return "None"
        return "\n".join(
            f"- {learning.text} (Source #{learning.source_id}: "
            f"{self.registry.lookup_url_by_id(learning.source_id)})"
            for learning in self.state.learnings
        )

    async def generate_queries(self, prompt: str, num_queries: int) -> list[str]:
        """Ask the model for search queries; fall back to the prompt itself."""
        system_prompt = render_prompt("queries.system", current_date=_current_date())
        user_message = render_prompt(
            "queries.user",
            topic=prompt,
            learnings=self._learnings_digest(),
            num_queries=num_queries,
        )

        try:
            async with self._semaphore:
                result = await self._call_provider(
                    self.llm.generate_structured(user_message, QueryList, system_prompt)
                )
        except Exception as e:
            self._report_error(f"Failed to generate queries: {e}")
            return [prompt]

        self.usage.add(result.usage)
        queries = [q.strip() for q in result.value.queries if q and q.strip()]
        if not queries:
            self._report_error("Failed to generate queries: model returned an empty list")
            return [prompt]
        return queries[:num_queries]

    async def process_content(self, query: str, content: str) -> tuple[list[str], list[str]]:
        """Extract (learnings, follow_up_questions) from one page; empty on failure."""
        system_prompt = render_prompt("extraction.system", current_date=_current_date())
        user_message = render_prompt(
            "extraction.user",
            query=query,
            content=content[: self.extraction_prompt_max_chars],
            max_learnings=self.config.learnings_per_chunk,
            max_follow_ups=MAX_FOLLOW_UP_QUESTIONS,
        )

        try:
            result = await self._call_provider(
                self.llm.generate_structured(user_message, LearningExtraction, system_prompt)
            )
        except Exception as e:
            self._report_error(f"Failed to process content: {e}")
            return [], []

        self.usage.add(result.usage)
        extraction: LearningExtraction = result.value
        learnings = [text for text in extraction.learnings if text.strip()]
        follow_ups = [q for q in extraction.follow_up_questions if q.strip()]
        return (
            learnings[: self.config.learnings_per_chunk],
            follow_ups[:MAX_FOLLOW_UP_QUESTIONS],
        )

    # --- search / fetch round ---

    def _admit_results(self, results: list[SearchResult]) -> list[SearchResult]:
        """Screen and deduplicate one query's results, then mark them visited.

        Runs without awaiting, so the check-then-insert on the visited set is
        atomic with respect to sibling branches.
        """
        seen_in_batch: set[str] = set()
        admitted: list[tuple[str, SearchResult]] = []
        for result in results:
            if not result.href or not self.screener.is_allowed(result.href):
                continue
            canonical_url = canonicalize_url(result.href)
            if canonical_url in seen_in_batch or canonical_url in self.state.visited_canonical_urls:
                continue
            seen_in_batch.add(canonical_url)
            admitted.append((canonical_url, result))

        admitted = admitted[: self.config.max_search_results_per_query]
        for canonical_url, _ in admitted:
            self.state.visited_canonical_urls.add(canonical_url)
        return [result for _, result in admitted]

    async def _search_one(self, query: str) -> QueryBatch:
        async with self._semaphore:
            try:
                results = await self._call_provider(self.search_provider.search(query))
            except Exception as e:
                self._report_error(f"Search failed for '{query}': {e}")
                results = []

        self.emit(streaming.search(query, len(results)))
        return QueryBatch(query=query, results=self._admit_results(results))

    async def _fetch_and_extract(self, query: str, result: SearchResult) -> ProcessedPage | None:
        async with self._semaphore:
            log_service.logger.info(f"Fetching: {result.href}")
            try:
                content = await self._call_provider(
                    self.content_provider.fetch_and_convert(result.href)
                )
            except Exception as e:
                log_service.logger.warning(f"Fetch failed for {result.href}: {e}")
                content = ""

            if not content or len(content) < self.min_content_chars:
                self.emit(streaming.scrape(result.href, "failed"))
                return None

            self.emit(streaming.scrape(result.href, "success"))
            learnings, follow_ups = await self.process_content(query, content)

        if learnings:
            log_service.logger.info(
                f"Extracted {len(learnings)} learnings from {result.title or result.href}"
            )
            self.emit(streaming.learnings(result.href, learnings))

        return ProcessedPage(
            source_url=result.href,
            source_query=query,
            learnings=learnings,
            follow_up_questions=follow_ups,
        )

    async def research_queries(self, queries: list[str]) -> list[str]:
        """Run one search -> screen -> dedup -> fetch -> extract round.

        Returns the follow-up questions produced across the batch.
        """
        batches = await asyncio.gather(*(self._search_one(query) for query in queries))

        pages = await asyncio.gather(
            *(
                self._fetch_and_extract(batch.query, result)
                for batch in batches
                for result in batch.results
            )
        )

        follow_ups: list[str] = []
        for page in pages:
            if page is None:
                continue
            source = self.registry.get_or_create(page.source_url, page.source_query)
            self.state.learnings.extend(
                Learning(text=text, source_id=source.id, source_query=page.source_query)
                for text in page.learnings
            )
            follow_ups.extend(page.follow_up_questions)
        return follow_ups

    # --- recursion ---

    async def research_recursive(self, prompt: str, current_depth: int) -> None:
        if current_depth <= 0:
            return

        log_service.logger.info(f"Researching (depth {current_depth}): {prompt}")
        queries = await self.generate_queries(prompt, self.config.breadth)
        self.emit(streaming.query_generated(current_depth, queries))

        follow_ups = await self.research_queries(queries)

        if current_depth > 1 and follow_ups:
            next_prompts = follow_ups[: self.config.breadth]
            await asyncio.gather(
                *(self.research_recursive(p, current_depth - 1) for p in next_prompts)
            )

    async def run(self, topic: str) -> ResearchState:
        await self.research_recursive(topic, self.config.depth)
        return self.state

    # --- report ---

    def _build_report_prompt(self, prompt: str) -> str:
        sources = "\n".join(f"[{source.id}] {source.url}" for source in self.state.sources)
        learnings = "\n".join(
            f"- [{learning.source_id}] {learning.text} (found via {learning.source_query})"
            for learning in self.state.learnings
        )
        return render_prompt(
            "report.user",
            topic=prompt,
            sources=sources or "None",
            learnings=learnings or "None",
        )

    async def generate_report(self, prompt: str) -> str:
        """Synthesize the cited Markdown report.

        Raises InsufficientSourcesError, without calling the model, when fewer
        than two distinct sources survive the diversity retries.
        """
        await self.diversity_guard.ensure(
            prompt, TARGET_UNIQUE_SOURCES, DIVERSITY_MAX_ATTEMPTS
        )
        source_count = len(self.state.sources)
        if source_count < HARD_MINIMUM_SOURCES:
            error = InsufficientSourcesError(source_count, HARD_MINIMUM_SOURCES)
            self._report_error(str(error))
            raise error

        system_prompt = render_prompt("report.system", current_date=_current_date())
        user_message = self._build_report_prompt(prompt)
        self.emit(streaming.report_generation(prompt, system_prompt, user_message))

        result = await self.text_llm.generate_text(user_message, system_prompt)
        self.usage.add(result.usage)
        return result.content
