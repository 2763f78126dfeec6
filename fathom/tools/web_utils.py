from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

TRACKING_PARAMS = frozenset({"fbclid", "gclid", "mc_cid", "mc_eid"})


def is_valid_url(url: str) -> bool:
    """Basic URL validation."""
    try:
        result = urlsplit(url)
        return all([result.scheme in ("http", "https"), result.netloc])
    except ValueError:
        return False


def truncate(text: str, max_length: int = 80) -> str:
    """Shorten long strings (URLs, queries) for console output."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def _is_tracking_param(name: str) -> bool:
    lowered = name.lower()
    return lowered.startswith("utm_") or lowered in TRACKING_PARAMS


def canonicalize_url(raw_url: str) -> str:
    """Map a URL to the identity string used for source deduplication.

    Lowercases the host, drops the fragment and tracking parameters, sorts the
    remaining query parameters by name and strips trailing slashes from the
    path. Input that is not an absolute URL comes back trimmed but otherwise
    untouched.
    """
    candidate = raw_url.strip()
    try:
        parts = urlsplit(candidate)
        if not parts.scheme or not parts.netloc:
            return candidate

        netloc = parts.netloc
        if "@" in netloc:
            userinfo, host = netloc.rsplit("@", 1)
            netloc = f"{userinfo}@{host.lower()}"
        else:
            netloc = netloc.lower()

        params = [
            (key, value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
            if not _is_tracking_param(key)
        ]
        params.sort(key=lambda item: item[0])
        query = urlencode(params)

        path = parts.path or "/"
        if path != "/" and path.endswith("/"):
            path = path.rstrip("/") or "/"

        return urlunsplit((parts.scheme.lower(), netloc, path, query, ""))
    except ValueError:
        return candidate
