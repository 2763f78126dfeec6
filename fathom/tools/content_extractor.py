from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from fathom.config import settings

NAV_MARKERS = (
    "main menu",
    "navigation",
    "jump to content",
    "cookie",
    "sign in",
)

STRIP_TAGS = ("script", "style", "noscript", "iframe", "svg", "nav", "footer", "header")


@dataclass
class ExtractedContent:
    url: str
    title: str
    text: str
    method: str
    raw_length: int
    extracted_length: int


def _normalize_text(text: str) -> str:
    text = text.replace("\xa0", " ")
    text = re.sub(r"\r\n?", "\n", text)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def _truncate(text: str, max_chars: int) -> str:
    if max_chars <= 0:
        return text
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + "..."


def _looks_low_quality(text: str) -> bool:
    normalized = text.lower()
    marker_hits = sum(normalized.count(marker) for marker in NAV_MARKERS)
    if len(text) < 200:
        return True
    if marker_hits >= 4 and len(text) < 2500:
        return True
    return False


def _extract_with_trafilatura(raw_html: str) -> str:
    import trafilatura

    extracted = trafilatura.extract(raw_html, output_format="txt")
    if not isinstance(extracted, str):
        return ""
    return _normalize_text(extracted)


def _extract_with_soup(raw_html: str) -> tuple[str, str]:
    """Strip page chrome and return (title, text) of <main> or <body>."""
    soup = BeautifulSoup(raw_html, "html.parser")
    title = _normalize_text(soup.title.string) if soup.title and soup.title.string else ""
    for tag in soup.find_all(list(STRIP_TAGS)):
        tag.decompose()
    container = soup.find("main") or soup.body or soup
    return title, _normalize_text(container.get_text("\n"))


def extract_main_content(
    url: str,
    raw_content: str,
    *,
    max_chars: int | None = None,
) -> ExtractedContent:
    """Extract main article text from a fetched HTML (or plain text) payload."""
    target_chars = (
        max_chars
        if max_chars is not None
        else int(settings.extractor_max_page_chars)
    )

    # Plain text / markdown bodies still go through the HTML path.
    seems_html = "<html" in raw_content.lower() or "<body" in raw_content.lower()
    primary_input = raw_content if seems_html else f"<html><body>{raw_content}</body></html>"

    title, soup_text = _extract_with_soup(primary_input)

    primary_text = _extract_with_trafilatura(primary_input)
    if primary_text and not _looks_low_quality(primary_text):
        text, method = primary_text, "trafilatura"
    else:
        text, method = soup_text, "soup"

    clipped = _truncate(text, target_chars)
    return ExtractedContent(
        url=url,
        title=title,
        text=clipped,
        method=method,
        raw_length=len(raw_content),
        extracted_length=len(clipped),
    )
