"""Batch partitioning of subtitle cues."""

import math
from typing import Dict, List, Sequence

from lazy_dubber.common.subtitle_parser import Cue


def batch_count(total_items: int, batch_size: int) -> int:
    """
    Number of batches needed for ``total_items``.

    Examples:
        >>> batch_count(600, 50)
        12
        >>> batch_count(0, 50)
        0
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return math.ceil(total_items / batch_size)


def initial_batch_count(
    cues: Sequence[Cue], batch_size: int, initial_window_seconds: float
) -> int:
    """
    Number of leading batches that cover the initial playback window.

    The window ends at the first cue starting after ``initial_window_seconds``;
    if no cue does, every cue is inside it. Cues must be in ascending start
    order for the result to be meaningful.

    Args:
        cues: Cues in playback order
        batch_size: Cues per batch
        initial_window_seconds: Media time to cover before playback starts

    Returns:
        Batch count, at least 1

    Examples:
        >>> cues = [Cue(i, i * 60.0, i * 60.0 + 1, "") for i in range(5)]
        >>> initial_batch_count(cues, 2, 150)
        2
    """
    first_outside = next(
        (
            position
            for position, cue in enumerate(cues)
            if cue.start_time > initial_window_seconds
        ),
        len(cues),
    )
    return max(1, batch_count(first_outside, batch_size))


def batch_bounds(batch_index: int, batch_size: int, total_items: int) -> range:
    """
    Positions covered by batch ``batch_index``.

    Examples:
        >>> batch_bounds(1, 50, 120)
        range(50, 100)
        >>> batch_bounds(2, 50, 120)
        range(100, 120)
    """
    start = batch_index * batch_size
    return range(start, min(start + batch_size, total_items))


def build_translation_map(
    start_index: int, texts: Sequence[str], translations: Sequence[str]
) -> Dict[int, str]:
    """
    Pair a batch's source texts with translated strings.

    Missing or empty translations fall back to the original text so the map
    never has a gap.

    Args:
        start_index: Global position of the first text in the batch
        texts: Source texts of the batch
        translations: Translated strings aligned with ``texts``

    Returns:
        Mapping of global cue position to translated (or original) text
    """
    result = {}
    for local_index, original in enumerate(texts):
        translated = translations[local_index] if local_index < len(translations) else None
        result[start_index + local_index] = translated or original
    return result


def identity_translation_map(start_index: int, texts: Sequence[str]) -> Dict[int, str]:
    """Map every text of a batch to itself."""
    return {start_index + local_index: text for local_index, text in enumerate(texts)}


def covered_batches(
    translations: Dict[int, str], total_items: int, batch_size: int
) -> List[int]:
    """
    Indices of batches whose every position already has a translation.

    Args:
        translations: Existing translation map
        total_items: Number of cues
        batch_size: Cues per batch

    Returns:
        Sorted batch indices
    """
    return [
        batch_index
        for batch_index in range(batch_count(total_items, batch_size))
        if all(
            position in translations
            for position in batch_bounds(batch_index, batch_size, total_items)
        )
    ]
