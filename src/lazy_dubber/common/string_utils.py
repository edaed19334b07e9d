"""String manipulation utilities."""

import re

_MULTIPLE_BLANK_LINES = re.compile(r"\n{3,}")
_TRAILING_WHITESPACE = re.compile(r"\s+$", re.MULTILINE)
_WHITESPACE_RUN = re.compile(r"\s+")


def truncate_for_logging(
    text: str, max_length: int = 1000, edge_length: int = 500
) -> str:
    """
    Truncate text for logging, showing beginning and end.

    Args:
        text: Text to truncate
        max_length: Maximum length before truncation is applied
        edge_length: Number of characters to show from start and end

    Returns:
        Truncated text with ellipsis if needed, or original text if short enough

    Examples:
        >>> truncate_for_logging("Hello", max_length=100)
        'Hello'
        >>> "..." in truncate_for_logging("x" * 2000, max_length=1000, edge_length=10)
        True
    """
    if len(text) <= max_length:
        return text
    return f"{text[:edge_length]}...\n...{text[-edge_length:]}"


def normalize_subtitle_text(text: str) -> str:
    """
    Normalize raw subtitle file content so cosmetic differences disappear.

    Line endings become LF, runs of three or more newlines collapse to two,
    trailing whitespace is stripped from every line and the whole text is trimmed.

    Examples:
        >>> normalize_subtitle_text("WEBVTT\\r\\n\\r\\n\\r\\n\\r\\nHello  \\r\\n")
        'WEBVTT\\nHello'
    """
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _MULTIPLE_BLANK_LINES.sub("\n\n", normalized)
    normalized = _TRAILING_WHITESPACE.sub("", normalized)
    return normalized.strip()


def collapse_whitespace(text: str) -> str:
    """
    Collapse every run of whitespace into a single space.

    Examples:
        >>> collapse_whitespace("a \\n\\t b")
        'a b'
    """
    return _WHITESPACE_RUN.sub(" ", text)


def unescape_json_fragment(text: str) -> str:
    """
    Undo the common JSON escapes in a string captured outside a JSON parser.

    Examples:
        >>> unescape_json_fragment('say \\\\"hi\\\\"')
        'say "hi"'
    """
    return (
        text.replace('\\"', '"')
        .replace("\\n", "\n")
        .replace("\\\\", "\\")
        .replace("\\t", "\t")
    )
