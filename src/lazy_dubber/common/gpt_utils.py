"""Utilities for recovering structured data from free-text model responses."""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional

from lazy_dubber.common.string_utils import (
    collapse_whitespace,
    truncate_for_logging,
    unescape_json_fragment,
)

logger = logging.getLogger(__name__)

# Opening or closing ``` fence, with an optional json tag
FENCE_PATTERN = re.compile(r"```(?:json)?[ \t]*\n?", re.IGNORECASE)

# Quoted JSON string, honouring escaped quotes inside it
QUOTED_STRING_PATTERN = re.compile(r'"((?:[^"\\]|\\.)*)"', re.DOTALL)

# Strings this short pulled out by brute force are almost always JSON noise
MIN_EXTRACTED_STRING_LENGTH = 3


class GPTJSONParsingError(Exception):
    """
    Raised when a recovery strategy cannot turn a response into a JSON array.

    Used internally between recovery stages; callers of
    :func:`parse_string_array` never see it.
    """

    pass


class ParseStatus(str, Enum):
    """How a model response was interpreted."""

    PARSED = "parsed"
    PARTIALLY_RECOVERED = "partially_recovered"
    FAILED = "failed"


@dataclass
class ParsedResponse:
    """Tagged outcome of parsing a model response into a list of strings."""

    status: ParseStatus
    data: List[str] = field(default_factory=list)
    strategy: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status != ParseStatus.FAILED


def clean_markdown_code_fences(response: str) -> str:
    """
    Remove markdown code fences from a model response.

    Models often wrap JSON in fenced blocks (```json ... ```) and sometimes
    leave stray fences in the middle of the text; all of them are dropped.

    Args:
        response: Raw response text from the model

    Returns:
        Response text with every fence removed

    Examples:
        >>> clean_markdown_code_fences('```json\\n["a"]\\n```')
        '["a"]'
        >>> clean_markdown_code_fences('["a"]')
        '["a"]'
    """
    return FENCE_PATTERN.sub("", response).strip()


def repair_escaping(text: str, keep_escape: bool = True) -> str:
    """
    Apply the escaping fixes that most often make model JSON parseable.

    Escaped newlines become spaces and whitespace runs collapse. The
    ``\\ "`` artifact is turned into an escaped quote, or with
    ``keep_escape=False`` into a bare quote.

    Examples:
        >>> repair_escaping('["a\\\\nb"]')
        '["a b"]'
    """
    fixed_text = text.replace("\\n", " ")
    fixed_text = collapse_whitespace(fixed_text)
    fixed_text = fixed_text.replace('\\ "', '\\"' if keep_escape else '"')
    return fixed_text


def fix_truncated_json_array(text: str) -> Optional[Any]:
    """
    Close a JSON array whose tail was cut off mid-response.

    The text is cut back to a complete quoted string and ``]`` is appended.
    Quote positions are tried from the end so an unterminated last string
    is dropped instead of corrupting the array.

    Args:
        text: Response text that should contain a JSON array

    Returns:
        Parsed JSON data

    Raises:
        GPTJSONParsingError: If the text is not truncated or cannot be closed
    """
    fixed = text.strip()
    if fixed.endswith("]"):
        raise GPTJSONParsingError("Array is not truncated")

    position = fixed.rfind('"')
    while position != -1:
        candidate = fixed[: position + 1] + "]"
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            position = fixed.rfind('"', 0, position)

    raise GPTJSONParsingError("No complete string to close the array after")


def extract_array_span(text: str) -> Any:
    """
    Parse the first ``[ ... ]`` span found inside surrounding prose.

    Both the widest span (up to the last ``]``) and the narrowest one (up to
    the first ``]``) are tried.

    Raises:
        GPTJSONParsingError: If no span parses as JSON
    """
    start = text.find("[")
    if start == -1:
        raise GPTJSONParsingError("No array start found")

    candidates = []
    last_end = text.rfind("]")
    if last_end > start:
        candidates.append(text[start : last_end + 1])
    first_end = text.find("]", start)
    if first_end > start and first_end != last_end:
        candidates.append(text[start : first_end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    raise GPTJSONParsingError("No parseable array span found")


def extract_quoted_strings(text: str) -> List[str]:
    """
    Collect every quoted string in the text as a last-resort extraction.

    Strings are unescaped and trimmed; anything shorter than three characters
    is discarded as noise.

    Examples:
        >>> extract_quoted_strings('garbage "Привет" and "ok" then "Мир!"')
        ['Привет', 'Мир!']
    """
    extracted = []
    for match in QUOTED_STRING_PATTERN.finditer(text):
        value = unescape_json_fragment(match.group(1)).strip()
        if len(value) >= MIN_EXTRACTED_STRING_LENGTH:
            extracted.append(value)
    return extracted


def _coerce_string_list(data: Any) -> List[str]:
    """
    Turn parsed JSON into a non-empty list of strings.

    Accepts a plain array, an array of ``{"text": ...}`` objects, or an object
    holding exactly one array value.

    Raises:
        GPTJSONParsingError: If the data has no usable array
    """
    if isinstance(data, dict):
        arrays = [value for value in data.values() if isinstance(value, list)]
        if len(arrays) != 1:
            raise GPTJSONParsingError(
                f"Expected JSON array, got object with keys {list(data)[:5]}"
            )
        data = arrays[0]

    if not isinstance(data, list):
        raise GPTJSONParsingError(f"Expected JSON array, got {type(data).__name__}")
    if not data:
        raise GPTJSONParsingError("Parsed JSON array is empty")

    items = []
    for item in data:
        if isinstance(item, str):
            items.append(item)
        elif item is None:
            items.append("")
        elif isinstance(item, dict) and isinstance(item.get("text"), str):
            items.append(item["text"])
        else:
            items.append(str(item))
    return items


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise GPTJSONParsingError(str(e)) from e


def parse_string_array(response: str) -> ParsedResponse:
    """
    Recover an array of strings from a model response, stage by stage.

    Stages, each attempted only when the previous one fails:

    1. strip markdown fences and parse directly;
    2. parse after :func:`repair_escaping`;
    3. close a truncated array with :func:`fix_truncated_json_array`;
    4. parse the first ``[ ... ]`` span, then fall back to collecting every
       quoted string in the text.

    Args:
        response: Raw response text

    Returns:
        ParsedResponse tagged ``parsed`` (stage 1), ``partially_recovered``
        (stages 2-4) or ``failed`` (nothing usable)
    """
    if not response or not response.strip():
        return ParsedResponse(status=ParseStatus.FAILED, strategy="empty")

    cleaned_text = clean_markdown_code_fences(response)
    repaired_text = repair_escaping(cleaned_text)
    stripped_text = repair_escaping(cleaned_text, keep_escape=False)

    stages = [
        ("direct", ParseStatus.PARSED, lambda: _loads(cleaned_text)),
        ("escaping", ParseStatus.PARTIALLY_RECOVERED, lambda: _loads(repaired_text)),
        (
            "escaping_stripped",
            ParseStatus.PARTIALLY_RECOVERED,
            lambda: _loads(stripped_text),
        ),
        (
            "truncation",
            ParseStatus.PARTIALLY_RECOVERED,
            lambda: fix_truncated_json_array(cleaned_text),
        ),
        (
            "truncation_escaping",
            ParseStatus.PARTIALLY_RECOVERED,
            lambda: fix_truncated_json_array(repaired_text),
        ),
        (
            "array_span",
            ParseStatus.PARTIALLY_RECOVERED,
            lambda: extract_array_span(cleaned_text),
        ),
    ]

    for strategy, status, attempt in stages:
        try:
            items = _coerce_string_list(attempt())
        except GPTJSONParsingError as e:
            logger.debug(f"Parse strategy '{strategy}' failed: {e}")
            continue
        if status != ParseStatus.PARSED:
            logger.warning(
                f"⚠️  Recovered {len(items)} items from malformed response "
                f"using '{strategy}' strategy"
            )
        return ParsedResponse(status=status, data=items, strategy=strategy)

    extracted = extract_quoted_strings(cleaned_text)
    if extracted:
        logger.warning(
            f"⚠️  Extracted {len(extracted)} quoted strings from unparseable response"
        )
        return ParsedResponse(
            status=ParseStatus.PARTIALLY_RECOVERED,
            data=extracted,
            strategy="quoted_strings",
        )

    logger.error(
        f"❌ All parsing strategies failed. Response sample:\n"
        f"{truncate_for_logging(response)}"
    )
    return ParsedResponse(status=ParseStatus.FAILED, strategy="none")


def reconcile_count(
    items: Iterable[str], expected_count: int, placeholder: str
) -> List[str]:
    """
    Pad or truncate items so exactly ``expected_count`` remain.

    Examples:
        >>> reconcile_count(["a"], 3, "?")
        ['a', '?', '?']
        >>> reconcile_count(["a", "b", "c"], 2, "?")
        ['a', 'b']
    """
    items = list(items)
    if len(items) == expected_count:
        return items

    if len(items) < expected_count:
        logger.warning(
            f"⚠️  Got {len(items)}/{expected_count} translations, padding..."
        )
        return items + [placeholder] * (expected_count - len(items))

    logger.warning(
        f"⚠️  Got {len(items)}/{expected_count} translations, trimming..."
    )
    return items[:expected_count]
