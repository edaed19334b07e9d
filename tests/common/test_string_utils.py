"""Tests for string utility functions."""

import pytest

from lazy_dubber.common.string_utils import (
    collapse_whitespace,
    normalize_subtitle_text,
    truncate_for_logging,
    unescape_json_fragment,
)


class TestTruncateForLogging:
    def test_short_text_is_unchanged(self):
        assert truncate_for_logging("Hello", max_length=100) == "Hello"

    def test_long_text_keeps_both_edges(self):
        text = "a" * 20 + "b" * 20

        result = truncate_for_logging(text, max_length=10, edge_length=5)

        assert result == "aaaaa...\n...bbbbb"


class TestNormalizeSubtitleText:
    """Normalization must hide cosmetic differences between copies of a file."""

    @pytest.mark.parametrize(
        "description,first,second",
        [
            ("CRLF vs LF", "WEBVTT\r\n\r\nHello\r\n", "WEBVTT\n\nHello\n"),
            ("CR vs LF", "WEBVTT\r\rHello", "WEBVTT\n\nHello"),
            ("trailing spaces", "WEBVTT  \n\nHello\t\n", "WEBVTT\n\nHello"),
            ("extra blank lines", "WEBVTT\n\n\n\n\nHello", "WEBVTT\n\nHello"),
            ("surrounding whitespace", "\n\n  WEBVTT\n\nHello\n\n", "WEBVTT\n\nHello"),
        ],
    )
    def test_equivalent_inputs_normalize_identically(self, description, first, second):
        assert normalize_subtitle_text(first) == normalize_subtitle_text(second), description

    def test_text_content_is_preserved(self):
        assert "Hello there" in normalize_subtitle_text("WEBVTT\r\n\r\nHello there\r\n")

    def test_different_text_stays_different(self):
        assert normalize_subtitle_text("WEBVTT\n\nHello") != normalize_subtitle_text(
            "WEBVTT\n\nGoodbye"
        )


class TestCollapseWhitespace:
    def test_collapses_mixed_whitespace(self):
        assert collapse_whitespace("a \n\t  b") == "a b"


class TestUnescapeJsonFragment:
    @pytest.mark.parametrize(
        "fragment,expected",
        [
            ('say \\"hi\\"', 'say "hi"'),
            ("line\\nbreak", "line\nbreak"),
            ("tab\\there", "tab\there"),
            ("plain", "plain"),
        ],
    )
    def test_unescapes_common_sequences(self, fragment, expected):
        assert unescape_json_fragment(fragment) == expected
