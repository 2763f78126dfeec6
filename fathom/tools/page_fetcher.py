from __future__ import annotations

import asyncio

import httpx

from fathom.config import settings
from fathom.services import logger as log_service
from fathom.tools import content_extractor, web_utils

SUPPORTED_CONTENT_TYPES = ("text/html", "application/xhtml+xml", "text/plain", "text/markdown")


class PageFetcher:
    """Content provider: GET a page and convert it to readable text."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        max_chars: int | None = None,
        extract_in_thread: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout if timeout is not None else settings.fetch_timeout_seconds
        self.max_chars = max_chars if max_chars is not None else settings.extractor_max_page_chars
        self.extract_in_thread = extract_in_thread
        self._transport = transport

    async def fetch_and_convert(self, url: str) -> str:
        if not web_utils.is_valid_url(url):
            log_service.logger.warning(f"Skipping invalid URL: {url}")
            return ""

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                follow_redirects=True,
                headers={"User-Agent": settings.fetch_user_agent},
            ) as client:
                response = await client.get(url)
            if response.status_code >= 400:
                log_service.logger.warning(f"Failed to fetch {url}: {response.status_code}")
                return ""

            content_type = response.headers.get("content-type", "text/html").lower()
            if not any(t in content_type for t in SUPPORTED_CONTENT_TYPES):
                log_service.logger.info(f"Unsupported content type {content_type} for {url}")
                return ""

            html = response.text
            # trafilatura is CPU-bound; keep it off the event loop.
            if self.extract_in_thread:
                extracted = await asyncio.to_thread(
                    content_extractor.extract_main_content, url, html, max_chars=self.max_chars
                )
            else:
                extracted = content_extractor.extract_main_content(url, html, max_chars=self.max_chars)
            return extracted.text
        except Exception as e:
            log_service.logger.warning(f"Error scraping {url}: {e}")
            return ""
