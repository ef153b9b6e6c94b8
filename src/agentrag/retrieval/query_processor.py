"""
Query preprocessing before embedding.

Removes stop words and very short tokens so the query vector is dominated by
content words. Queries that end up with only one or two content words get
the expansion terms of the intents the raw query expresses.
"""

import re

from agentrag.retrieval.intents import detect_intents

STOP_WORDS: frozenset[str] = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "how", "where", "what", "when", "why", "who",
        "which", "this", "that", "these", "those", "is", "are", "was", "were",
        "be", "been", "being", "have", "has", "had", "do", "does", "did",
        "will", "would", "could", "should", "may", "might", "can", "must",
    }
)

MIN_TOKEN_LENGTH = 3
SHORT_QUERY_TOKENS = 2

_NON_WORD_RE = re.compile(r"[^\w]")


def enhance_query_intent(original_query: str, tokens: list[str]) -> list[str]:
    """
    Append intent expansion terms to a short token list.

    Args:
        original_query: The query before stop-word removal (intents are
            detected on it, since "how to" is made of stop words)
        tokens: Cleaned content tokens

    Returns:
        tokens followed by every expansion term not already present
    """
    enhanced = list(tokens)
    for intent in detect_intents(original_query):
        for term in intent.expansion:
            if term not in enhanced:
                enhanced.append(term)
    return enhanced


def preprocess_query(query: str) -> str:
    """
    Clean a query for embedding.

    Example:
        >>> preprocess_query("How much is the pricing?")
        'much pricing price plans cost'
    """
    tokens = []
    for word in query.lower().split():
        token = _NON_WORD_RE.sub("", word)
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOP_WORDS:
            tokens.append(token)

    if not tokens:
        return query

    if len(tokens) <= SHORT_QUERY_TOKENS:
        tokens = enhance_query_intent(query, tokens)

    return " ".join(tokens)
