from __future__ import annotations

from urllib.parse import parse_qsl, unquote, urlsplit

import httpx
from bs4 import BeautifulSoup

from fathom.config import settings
from fathom.research_core.models.interfaces import SearchResult
from fathom.services import logger as log_service

DDG_LITE_URL = "https://lite.duckduckgo.com/lite/"

DEFAULT_HEADERS = {
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,"
        "image/webp,image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7"
    ),
    "Accept-Language": "en-GB,en-US;q=0.9,en;q=0.8",
    "Cache-Control": "max-age=0",
}


def _unwrap_redirect(href: str) -> str:
    """Resolve DuckDuckGo ``/l/?uddg=`` redirect links to their target."""
    decoded = unquote(href)
    if "duckduckgo.com/l/?" in href and "uddg=" in href:
        params = dict(parse_qsl(urlsplit(href).query))
        target = params.get("uddg")
        if target:
            return target
    return decoded


def parse_results(html: str, *, limit: int) -> list[SearchResult]:
    """Read result rows from a DuckDuckGo Lite results page."""
    soup = BeautifulSoup(html, "html.parser")
    tables = soup.find_all("table")
    if not tables:
        return []

    results: list[SearchResult] = []
    for row in tables[-1].find_all("tr"):
        if len(results) >= limit:
            break
        link = row.select_one("a.result-link")
        if link is None:
            continue
        href = link.get("href")
        if not href:
            continue

        snippet = ""
        next_row = row.find_next_sibling("tr")
        if next_row is not None:
            snippet_el = next_row.select_one(".result-snippet")
            if snippet_el is not None:
                snippet = snippet_el.get_text(" ", strip=True)

        results.append(
            SearchResult(
                title=link.get_text(" ", strip=True),
                href=_unwrap_redirect(str(href)),
                body=snippet,
            )
        )
    return results


class DuckDuckGoSearch:
    """Search provider scraping the DuckDuckGo Lite HTML endpoint."""

    def __init__(
        self,
        *,
        limit: int | None = None,
        region: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.limit = limit if limit is not None else settings.search_results_limit
        self.region = region or settings.search_region
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_seconds
        self._transport = transport

    async def search(self, query: str) -> list[SearchResult]:
        headers = {**DEFAULT_HEADERS, "User-Agent": settings.fetch_user_agent}
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
            ) as client:
                response = await client.post(
                    DDG_LITE_URL,
                    data={"q": query, "kl": self.region},
                    headers=headers,
                )
                response.raise_for_status()
                html = response.text
            return parse_results(html, limit=self.limit)
        except Exception as e:
            log_service.logger.warning(f"Search failed for {query!r}: {e}")
            return []
