"""
Document chunking with per-chunk provenance.

Splits cleaned document text into overlapping word windows. Website
documents (a concatenation of crawled pages) are chunked page by page so
that every chunk keeps the URL of the page it came from.

Chunk size and overlap are clamped to safe bounds before use, so that no
configured or user-supplied value can produce a non-advancing window.
"""

import re

from agentrag.retrieval.intents import classify_page
from agentrag.retrieval.models import Chunk
from agentrag.retrieval.sanitize import normalize_whitespace, sanitize_content, sanitize_url

MIN_CHUNK_SIZE = 50
MAX_CHUNK_SIZE = 2000

WEBSITE_CONTENT_MARKER = "=== WEBSITE CONTENT ==="

# "--- Page 3: Pricing ---\n" introduces each crawled page; the title is captured.
_PAGE_HEADER_RE = re.compile(r"--- Page \d+:(.*?) ---\n")
_PAGE_URL_RE = re.compile(r"^URL: (https?://[^\n]+)", re.MULTILINE)


def _to_int(value: int | float | str | None) -> int:
    """Lenient numeric coercion: anything unparseable becomes 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    cleaned = re.sub(r"[^\d.-]", "", str(value))
    try:
        return int(float(cleaned))
    except ValueError:
        return 0


def clamp_chunk_params(
    chunk_size: int | float | str | None,
    overlap: int | float | str | None,
) -> tuple[int, int]:
    """
    Clamp chunking parameters into their safe ranges.

    Args:
        chunk_size: Requested window size in words
        overlap: Requested overlap in words

    Returns:
        (size, overlap) with size in [50, 2000] and overlap in [0, size - 1]
    """
    size = max(MIN_CHUNK_SIZE, min(MAX_CHUNK_SIZE, _to_int(chunk_size)))
    safe_overlap = max(0, min(size - 1, _to_int(overlap)))
    return size, safe_overlap


def chunk_text(
    text: str,
    chunk_size: int | float | str | None = 500,
    overlap: int | float | str | None = 50,
) -> list[str]:
    """
    Split text into overlapping windows of words.

    The window advances by ``chunk_size - overlap`` words per step; the
    trailing partial window is kept. Text that yields no window at all is
    returned unchanged as the only chunk.

    Args:
        text: Cleaned document text
        chunk_size: Window size in words (clamped to [50, 2000])
        overlap: Words shared by consecutive windows (clamped to [0, size - 1])

    Returns:
        List of chunk strings in document order
    """
    size, safe_overlap = clamp_chunk_params(chunk_size, overlap)
    step = size - safe_overlap

    words = text.split()
    chunks: list[str] = []
    for start in range(0, len(words), step):
        window = " ".join(words[start : start + size]).strip()
        if window:
            chunks.append(window)

    return chunks if chunks else [text]


def chunk_website_content(
    text: str,
    chunk_size: int | float | str | None = 500,
    overlap: int | float | str | None = 50,
) -> list[Chunk]:
    """
    Chunk a multi-page website document page by page.

    Each page section starts with a ``--- Page N: Title ---`` header followed
    by a ``URL: ...`` line. The section preceding the first page (the crawl
    summary) is skipped.

    Args:
        text: Combined website content
        chunk_size: Window size in words
        overlap: Overlap in words

    Returns:
        Chunks indexed across the whole document, each tagged with its page
        URL and inferred page type
    """
    # re.split with one capture group yields [summary, title1, body1, title2, body2, ...]
    parts = _PAGE_HEADER_RE.split(text)

    chunks: list[Chunk] = []
    for position in range(1, len(parts) - 1, 2):
        title = parts[position].strip()
        section = parts[position + 1]

        url_match = _PAGE_URL_RE.match(section)
        page_url = sanitize_url(url_match.group(1)) if url_match else ""

        content_start = section.find("\n") + 1
        page_content = normalize_whitespace(sanitize_content(section[content_start:]))
        if not page_content:
            continue

        page_type = classify_page(title, page_url)
        for window in chunk_text(page_content, chunk_size, overlap):
            chunks.append(
                Chunk(
                    text=window,
                    index=len(chunks),
                    source_url=page_url,
                    page_type=page_type,
                )
            )

    return chunks
