from __future__ import annotations

import re

import pytest

from fathom.tools.screener import Screener


def test_allow_list_rejects_urls_that_match_no_pattern():
    screener = Screener(deny_patterns=[], allow_patterns=[r"^https://a\.com"])

    assert screener.is_allowed("https://a.com/paper") is True
    assert screener.is_allowed("https://b.com/paper") is False


def test_default_deny_list_applies_without_configuration():
    screener = Screener()

    assert screener.is_allowed("https://example.com/login") is False
    assert screener.is_allowed("https://accounts.example.com/signin?next=/") is False
    assert screener.is_allowed("https://www.youtube.com/watch?v=abc") is False
    assert screener.is_allowed("https://duckduckgo.com/?q=batteries") is False
    assert screener.is_allowed("https://example.com/articles/batteries") is True


def test_default_deny_list_still_applies_to_allowed_domains():
    screener = Screener(allow_patterns=[r"example\.com"])

    assert screener.is_allowed("https://example.com/register") is False
    assert screener.is_allowed("https://example.com/research") is True


def test_configured_deny_patterns_are_case_insensitive():
    screener = Screener(deny_patterns=[r"\.pdf$", r"reddit\.com"])

    assert screener.is_allowed("https://example.com/report.PDF") is False
    assert screener.is_allowed("https://www.Reddit.com/r/batteries") is False
    assert screener.is_allowed("https://example.com/report.html") is True


def test_invalid_pattern_fails_at_construction():
    with pytest.raises(re.error):
        Screener(deny_patterns=["(unclosed"])
