from __future__ import annotations

from typing import TYPE_CHECKING

from fathom.services import logger as log_service
from fathom.services import streaming
from fathom.services.prompt_store import render_prompt

if TYPE_CHECKING:
    from fathom.agents.orchestrator import ResearchOrchestrator


class DiversityGuard:
    """Top up distinct sources before report synthesis.

    Each attempt runs one non-recursive search/fetch/extract round driven by a
    prompt that asks for independent primary sources. A shortfall after the
    last attempt is reported as an ``error`` event; refusing the report is the
    caller's decision.
    """

    def __init__(self, orchestrator: ResearchOrchestrator):
        self.orchestrator = orchestrator

    @property
    def source_count(self) -> int:
        return len(self.orchestrator.state.sources)

    async def ensure(self, topic: str, minimum_sources: int, max_attempts: int = 2) -> None:
        if self.source_count >= minimum_sources:
            return

        breadth = self.orchestrator.config.breadth
        for attempt in range(1, max_attempts + 1):
            if self.source_count >= minimum_sources:
                break

            log_service.logger.info(
                f"Source diversity attempt {attempt}/{max_attempts} "
                f"({self.source_count}/{minimum_sources} sources)"
            )
            diversity_prompt = render_prompt("diversity.topic", topic=topic)
            queries = await self.orchestrator.generate_queries(diversity_prompt, breadth)
            self.orchestrator.emit(streaming.query_generated(0, queries))
            await self.orchestrator.research_queries(queries)

        if self.source_count < minimum_sources:
            self.orchestrator.emit(
                streaming.error(
                    f"Low source diversity: only {self.source_count} unique sources "
                    f"collected after retries."
                )
            )
