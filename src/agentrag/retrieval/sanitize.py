"""
Input sanitization for text entering the engine.

Content arrives from file extraction and web scraping; queries arrive from
end users. Both are cleaned before they are chunked, embedded or sent to
the vector store.
"""

import ipaddress
import re
from urllib.parse import urlsplit

_DANGEROUS_BLOCKS = (
    re.compile(r"<script[^>]*>.*?</script>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<iframe[^>]*>.*?</iframe>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<object[^>]*>.*?</object>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<embed[^>]*>", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=", re.IGNORECASE),
)
_TAG_RE = re.compile(r"<[^>]*>")
_URL_BAD_CHARS_RE = re.compile(r"[<>\"']")
_URL_BAD_SCHEMES_RE = re.compile(r"(javascript|data|vbscript|file|ftp):", re.IGNORECASE)
_QUERY_ALLOWED_RE = re.compile(r"[^\w\s\-.,!?]")

MAX_QUERY_LENGTH = 200


def normalize_whitespace(text: str) -> str:
    """Collapse all runs of whitespace into single spaces."""
    return re.sub(r"\s+", " ", text).strip()


def sanitize_content(text: str | None) -> str:
    """Remove active markup from document content while keeping its layout."""
    if not text or not isinstance(text, str):
        return ""
    for pattern in _DANGEROUS_BLOCKS:
        text = pattern.sub("", text)
    return text.strip()


def sanitize_text(text: str | None) -> str:
    """Strip HTML tags from a short display string such as a title."""
    if not text or not isinstance(text, str):
        return ""
    return _TAG_RE.sub("", text).strip()


def _is_private_host(hostname: str) -> bool:
    if hostname in ("localhost", ""):
        return True
    try:
        address = ipaddress.ip_address(hostname)
    except ValueError:
        return False
    return address.is_private or address.is_loopback or address.is_unspecified


def sanitize_url(url: str | None) -> str:
    """
    Keep only http(s) URLs pointing at public hosts.

    Scheme-less input gets an ``https://`` prefix. Returns an empty string
    for anything that cannot be used as a source link.
    """
    if not url or not isinstance(url, str):
        return ""

    cleaned = _URL_BAD_CHARS_RE.sub("", url.strip())
    cleaned = _URL_BAD_SCHEMES_RE.sub("", cleaned)
    if not cleaned:
        return ""
    if not re.match(r"^https?://", cleaned, re.IGNORECASE):
        cleaned = "https" + cleaned if cleaned.startswith("://") else "https://" + cleaned

    try:
        hostname = (urlsplit(cleaned).hostname or "").lower()
    except ValueError:
        return ""
    if _is_private_host(hostname):
        return ""
    return cleaned


def sanitize_search_query(query: str | None) -> str:
    """Reduce a free-text query to word characters and basic punctuation."""
    if not query or not isinstance(query, str):
        return ""
    cleaned = _URL_BAD_CHARS_RE.sub("", query.strip())
    cleaned = _QUERY_ALLOWED_RE.sub("", cleaned)
    return cleaned[:MAX_QUERY_LENGTH].strip()


def obscure_url(url: str | None) -> str:
    """Hide the host of an internal service URL, keeping scheme and port."""
    if not url or not isinstance(url, str):
        return ""
    try:
        parts = urlsplit(url)
        port = parts.port
    except ValueError:
        return "[invalid url]"
    if not parts.scheme or not parts.netloc:
        return "[invalid url]"
    return f"{parts.scheme}://[hostname]{f':{port}' if port else ''}"
