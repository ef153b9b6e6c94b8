"""Unit tests for retrieval.sanitize module."""

import pytest

from agentrag.retrieval.sanitize import (
    MAX_QUERY_LENGTH,
    normalize_whitespace,
    obscure_url,
    sanitize_content,
    sanitize_search_query,
    sanitize_text,
    sanitize_url,
)


@pytest.mark.unit
class TestSanitizeContent:
    """Tests for sanitize_content function."""

    def test_removes_active_markup(self):
        text = (
            "Intro <script>steal()</script>"
            "<iframe src='x'>frame</iframe> body "
            '<a href="javascript:void(0)" onclick="go()">link</a>'
        )
        cleaned = sanitize_content(text)

        assert "steal" not in cleaned
        assert "frame" not in cleaned
        assert "javascript:" not in cleaned
        assert "onclick" not in cleaned
        assert "Intro" in cleaned and "body" in cleaned

    def test_keeps_line_breaks(self):
        assert sanitize_content("line one\nline two") == "line one\nline two"

    @pytest.mark.parametrize("value", [None, "", 42])
    def test_non_text_is_empty(self, value):
        assert sanitize_content(value) == ""


@pytest.mark.unit
class TestSanitizeText:
    def test_strips_tags(self):
        assert sanitize_text("  <b>FAQ</b> page ") == "FAQ page"


@pytest.mark.unit
class TestSanitizeUrl:
    """Tests for sanitize_url function."""

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("https://example.com/docs", "https://example.com/docs"),
            ("http://example.com", "http://example.com"),
            ("example.com/pricing", "https://example.com/pricing"),
            ('https://example.com/"quoted"', "https://example.com/quoted"),
        ],
    )
    def test_public_urls(self, url, expected):
        assert sanitize_url(url) == expected

    @pytest.mark.parametrize(
        "url",
        [
            "http://localhost:3000/admin",
            "http://127.0.0.1/",
            "http://10.0.0.5/internal",
            "http://192.168.1.10/",
            "http://0.0.0.0:6333",
            "ftp://example.com/file",
            "",
            None,
        ],
    )
    def test_rejected_urls(self, url):
        assert sanitize_url(url) == ""


@pytest.mark.unit
class TestSanitizeSearchQuery:
    """Tests for sanitize_search_query function."""

    def test_removes_quotes_and_brackets(self):
        assert sanitize_search_query(' reset "password" <now> ') == "reset password now"

    def test_keeps_unicode_words_and_punctuation(self):
        assert sanitize_search_query("Passwort zurücksetzen, bitte!") == "Passwort zurücksetzen, bitte!"

    def test_drops_other_symbols(self):
        assert sanitize_search_query("price $ % ^ plans") == "price    plans"

    def test_length_cap(self):
        assert len(sanitize_search_query("a" * 500)) == MAX_QUERY_LENGTH

    def test_only_markup_is_empty(self):
        assert sanitize_search_query("<>'\"") == ""


@pytest.mark.unit
def test_normalize_whitespace():
    assert normalize_whitespace("  a\n\tb   c ") == "a b c"


@pytest.mark.unit
@pytest.mark.parametrize(
    "url,expected",
    [
        ("http://qdrant:6333", "http://[hostname]:6333"),
        ("https://vectors.internal", "https://[hostname]"),
        ("qdrant:6333", "[invalid url]"),
    ],
)
def test_obscure_url(url, expected):
    assert obscure_url(url) == expected
