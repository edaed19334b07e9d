"""WebVTT subtitle parser and formatter for translation workflows."""

import logging
import re
from dataclasses import dataclass
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

VTT_HEADER = "WEBVTT"

# HH:MM:SS.mmm or MM:SS.mmm (comma accepted for SRT-flavoured files)
TIMESTAMP = r"(?:\d+:)?\d{1,2}:\d{2}[.,]\d{1,3}"
TIMING_LINE_PATTERN = re.compile(rf"^\s*({TIMESTAMP})\s*-->\s*({TIMESTAMP})")

# Blocks that carry no cue text
NON_CUE_BLOCK_PREFIXES = ("NOTE", "STYLE", "REGION")

VIDEO_EXTENSIONS_PATTERN = re.compile(r"\.(mp4|mkv|avi|webm)$", re.IGNORECASE)
DEFAULT_EXPORT_FILENAME = "subtitles_ru.vtt"


@dataclass(frozen=True)
class Cue:
    """One timed subtitle unit. Times are in seconds."""

    index: int
    start_time: float
    end_time: float
    text: str

    def __post_init__(self) -> None:
        if self.end_time <= self.start_time:
            raise ValueError(
                f"Cue {self.index}: end time {self.end_time} must be after "
                f"start time {self.start_time}"
            )


def parse_vtt_time(vtt_time: str) -> float:
    """
    Convert a VTT timestamp into seconds.

    Args:
        vtt_time: Timestamp like ``00:01:23.500``, ``01:23.500`` or ``23.5``

    Returns:
        Time in seconds

    Examples:
        >>> parse_vtt_time("00:01:23.500")
        83.5
        >>> parse_vtt_time("01:23.500")
        83.5
    """
    parts = vtt_time.strip().replace(",", ".").split(":")
    if len(parts) == 3:
        return int(parts[0]) * 3600 + int(parts[1]) * 60 + float(parts[2])
    if len(parts) == 2:
        return int(parts[0]) * 60 + float(parts[1])
    return float(parts[0])


def format_vtt_time(seconds: float) -> str:
    """
    Convert seconds into a ``HH:MM:SS.mmm`` VTT timestamp.

    Examples:
        >>> format_vtt_time(65.5)
        '00:01:05.500'
    """
    total_ms = int(round(seconds * 1000))
    hours, remainder = divmod(total_ms, 3_600_000)
    minutes, remainder = divmod(remainder, 60_000)
    secs, milliseconds = divmod(remainder, 1000)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}.{milliseconds:03d}"


def is_translated_vtt(filename: Optional[str]) -> bool:
    """
    Check whether a VTT file name marks an already translated track.

    Examples:
        >>> is_translated_vtt("movie_ru.vtt")
        True
        >>> is_translated_vtt("movie.vtt")
        False
    """
    if not filename:
        return False
    lower_name = filename.lower()
    return lower_name.endswith("_ru.vtt") or lower_name.endswith(".ru.vtt")


def generate_export_filename(original_filename: Optional[str]) -> str:
    """
    Build the file name for an exported translated track.

    Examples:
        >>> generate_export_filename("movie.mp4")
        'movie_ru.vtt'
        >>> generate_export_filename(None)
        'subtitles_ru.vtt'
    """
    if not original_filename:
        return DEFAULT_EXPORT_FILENAME
    name_without_ext = VIDEO_EXTENSIONS_PATTERN.sub("", original_filename)
    if name_without_ext.lower().endswith(".vtt"):
        name_without_ext = name_without_ext[:-4]
    return f"{name_without_ext}_ru.vtt"


class VTTParser:
    """Parser for WebVTT subtitle files."""

    @staticmethod
    def parse(content: str) -> List[Cue]:
        """
        Parse WebVTT content into cues.

        Cue identifiers and cue settings are ignored, NOTE/STYLE/REGION blocks
        are skipped, and multi-line cue text is joined with newlines. Cues are
        numbered from zero in file order.

        Args:
            content: Raw VTT file content

        Returns:
            List of Cue objects
        """
        # Remove BOM (Byte Order Mark) if present (common in UTF-8 files)
        if content.startswith("\ufeff"):
            content = content[1:]

        content = content.replace("\r\n", "\n").replace("\r", "\n")
        blocks = re.split(r"\n\s*\n", content.strip())

        if not blocks or not blocks[0].startswith(VTT_HEADER):
            logger.warning("VTT content has no WEBVTT header, parsing anyway")
        elif "-->" not in blocks[0]:
            blocks = blocks[1:]

        cues: List[Cue] = []
        dropped = 0
        for block_number, block in enumerate(blocks, start=1):
            lines = block.split("\n")
            if lines[0].startswith(NON_CUE_BLOCK_PREFIXES):
                continue

            timing_index = next(
                (i for i, line in enumerate(lines) if "-->" in line), None
            )
            if timing_index is None:
                dropped += 1
                logger.warning(
                    f"Skipping VTT block {block_number} without timing line: {lines[0]}"
                )
                continue

            timing_match = TIMING_LINE_PATTERN.match(lines[timing_index])
            if not timing_match:
                dropped += 1
                logger.warning(
                    f"Skipping VTT block {block_number}, invalid timestamp format: "
                    f"{lines[timing_index]}"
                )
                continue

            text = "\n".join(
                line.strip() for line in lines[timing_index + 1 :]
            ).strip()

            try:
                cues.append(
                    Cue(
                        index=len(cues),
                        start_time=parse_vtt_time(timing_match.group(1)),
                        end_time=parse_vtt_time(timing_match.group(2)),
                        text=text,
                    )
                )
            except ValueError as e:
                dropped += 1
                logger.warning(
                    f"⚠️  Dropping cue block {block_number} "
                    f"({lines[timing_index].strip()}): {e}. "
                    f"Later cues are numbered without it"
                )

        if dropped:
            logger.warning(f"⚠️  Parsed {len(cues)} subtitle cues, dropped {dropped}")
        else:
            logger.info(f"Parsed {len(cues)} subtitle cues")
        return cues

    @staticmethod
    def format(cues: List[Cue], translations: Mapping[int, str]) -> str:
        """
        Format cues with their translated text as a WebVTT document.

        Cues without a translation are left out.

        Args:
            cues: Parsed cues
            translations: Mapping of cue position to translated text

        Returns:
            WebVTT file content
        """
        blocks = [VTT_HEADER]
        for position, cue in enumerate(cues):
            translation = translations.get(position)
            if not translation:
                continue
            blocks.append(
                f"{format_vtt_time(cue.start_time)} --> {format_vtt_time(cue.end_time)}\n"
                f"{translation}"
            )
        return "\n\n".join(blocks) + "\n"

