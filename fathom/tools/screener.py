from __future__ import annotations

import re
from typing import Iterable

# Sites that rarely yield readable primary content, the search engine itself,
# and authentication flows.
DEFAULT_DENY_SUBSTRINGS = (
    "youtube.com",
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "x.com",
    "linkedin.com",
    "pinterest.com",
    "tiktok.com",
    "duckduckgo.com",
    "signup",
    "login",
    "register",
    "signin",
)


class Screener:
    """Allow/deny admission policy for candidate URLs."""

    def __init__(
        self,
        deny_patterns: Iterable[str] | None = None,
        allow_patterns: Iterable[str] | None = None,
    ):
        self.deny_list = [re.compile(p, re.IGNORECASE) for p in deny_patterns or ()]
        self.allow_list = [re.compile(p, re.IGNORECASE) for p in allow_patterns or ()]

    def is_allowed(self, url: str) -> bool:
        if self.allow_list and not any(p.search(url) for p in self.allow_list):
            return False

        if any(s in url for s in DEFAULT_DENY_SUBSTRINGS):
            return False

        if any(p.search(url) for p in self.deny_list):
            return False

        return True
