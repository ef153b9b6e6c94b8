"""
Heuristic language bucketing for chunk metadata.

Looks only at the first 200 characters and at character-class signatures.
This is a coarse filter for search, not a language identifier.
"""

import re

from agentrag.retrieval.models import Language

SAMPLE_LENGTH = 200

# Order matters: kana before CJK ideographs (Japanese text contains kanji),
# German umlauts before the broader accented-Latin class.
_SIGNATURES: tuple[tuple[re.Pattern[str], Language], ...] = (
    (re.compile(r"[Ѐ-ӿ]"), Language.RUSSIAN),  # U+0400-04FF Cyrillic
    (re.compile(r"[Ͱ-Ͽ]"), Language.GREEK),  # U+0370-03FF
    (re.compile(r"[가-힯ᄀ-ᇿ]"), Language.KOREAN),  # Hangul syllables and jamo
    (re.compile(r"[぀-ヿ]"), Language.JAPANESE),  # U+3040-30FF hiragana, katakana
    (re.compile(r"[一-鿿]"), Language.CHINESE),  # U+4E00-9FFF CJK ideographs
    (re.compile(r"[؀-ۿ]"), Language.ARABIC),  # U+0600-06FF
    (re.compile(r"[äöüß]"), Language.GERMAN),
    (re.compile(r"[à-ãåç-ïñ-õù-ûý]"), Language.ROMANCE),
)


def detect_language(text: str) -> Language:
    """Return the first language bucket whose signature appears in the text sample."""
    # lower() rather than casefold(): casefold would turn "ß" into "ss"
    sample = text[:SAMPLE_LENGTH].lower()
    for pattern, language in _SIGNATURES:
        if pattern.search(sample):
            return language
    return Language.ENGLISH
