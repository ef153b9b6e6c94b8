"""
Query intents and page categories.

One table drives three things: expansion terms appended to very short
queries, the page type inferred for crawled website pages, and the
page-type boost applied to search results.
"""

import re
from dataclasses import dataclass
from typing import Optional

from agentrag.retrieval.models import PageType


@dataclass(frozen=True)
class Intent:
    """A user intent recognisable from a raw query."""

    name: str
    patterns: tuple[str, ...]
    """Regex fragments matched against the lower-cased raw query."""

    expansion: tuple[str, ...]
    """Keywords appended to short queries carrying this intent."""

    page_type: PageType
    boost_keywords: tuple[str, ...]
    """Single words that, present in the query, trigger the page-type boost."""

    page_keywords: tuple[str, ...]
    """Words in a page title or URL path that classify the page."""


INTENTS: tuple[Intent, ...] = (
    Intent(
        name="download",
        patterns=(r"\bdownload", r"\binstall", r"\bset ?up\b", r"\bget started\b"),
        expansion=("download", "install", "setup"),
        page_type=PageType.DOWNLOAD,
        boost_keywords=("download", "install", "installation"),
        page_keywords=("download", "install", "getting-started", "get-started"),
    ),
    Intent(
        name="howto",
        patterns=(r"\bhow (do|to|can|does)\b", r"\busage\b", r"\buse\b", r"\bguide\b", r"\btutorial\b"),
        expansion=("guide", "instructions", "steps"),
        page_type=PageType.DOCUMENTATION,
        boost_keywords=("guide", "tutorial", "documentation", "docs"),
        page_keywords=("docs", "documentation", "guide", "tutorial", "manual", "faq"),
    ),
    Intent(
        name="pricing",
        patterns=(r"\bpric", r"\bcost", r"\bplans?\b", r"\bsubscription", r"\bpay\b", r"\bfees?\b"),
        expansion=("pricing", "price", "plans", "cost"),
        page_type=PageType.PRICING,
        boost_keywords=("pricing", "price", "prices", "cost", "plans"),
        page_keywords=("pricing", "price", "plans", "subscription"),
    ),
    Intent(
        name="contact",
        patterns=(r"\bcontact", r"\bsupport\b", r"\bemail\b", r"\bphone\b", r"\breach\b", r"\bhelp\b"),
        expansion=("contact", "support", "email", "phone"),
        page_type=PageType.CONTACT,
        boost_keywords=("contact", "support", "email", "phone"),
        page_keywords=("contact", "support", "help"),
    ),
    Intent(
        name="features",
        patterns=(r"\bfeatures?\b", r"\bcapabilit", r"\bfunctionalit", r"\bwhat can\b"),
        expansion=("features", "capabilities", "functionality"),
        page_type=PageType.FEATURES,
        boost_keywords=("features", "feature", "capabilities"),
        page_keywords=("features", "feature", "product", "capabilities"),
    ),
    Intent(
        name="about",
        patterns=(r"\babout\b", r"\bcompany\b", r"\bteam\b", r"\bwho (are|is)\b", r"\bmission\b", r"\bhistory\b"),
        expansion=("about", "company", "team", "mission"),
        page_type=PageType.ABOUT,
        boost_keywords=("about", "company", "team"),
        page_keywords=("about", "company", "team", "who-we-are", "mission"),
    ),
)

_WORD_RE = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")


def detect_intents(query: str) -> list[Intent]:
    """Return every intent whose patterns match the raw query, in table order."""
    lowered = query.lower()
    return [
        intent
        for intent in INTENTS
        if any(re.search(pattern, lowered) for pattern in intent.patterns)
    ]


def boost_intents(query: str) -> list[Intent]:
    """Return intents whose boost keywords occur as whole words in the raw query."""
    words = set(_WORD_RE.findall(query.lower()))
    return [intent for intent in INTENTS if words.intersection(intent.boost_keywords)]


def classify_page(title: str, url: str = "") -> Optional[PageType]:
    """
    Infer a page category from a crawled page's title and URL path.

    Returns None when nothing matches; the first matching intent wins.
    """
    path = re.sub(r"^https?://[^/]+", "", url.lower())
    words = set(_WORD_RE.findall(title.lower())) | set(_WORD_RE.findall(path))
    for intent in INTENTS:
        if words.intersection(intent.page_keywords):
            return intent.page_type
    return None
