"""Small helpers for progress math, timestamps and language names."""

from datetime import datetime, timezone

MILLISECONDS_PER_DAY = 24 * 60 * 60 * 1000


class MathUtils:
    """Progress arithmetic."""

    @staticmethod
    def calculate_percentage(completed: int, total: int) -> float:
        """Share of ``completed`` in ``total`` as 0-100; 0.0 for an empty total."""
        if total <= 0:
            return 0.0
        return completed * 100 / total

    @staticmethod
    def calculate_rounded_progress(completed: int, total: int) -> int:
        """
        Whole-number progress, rounded half up and capped at 100.

        Example:
            >>> MathUtils.calculate_rounded_progress(1, 3)
            33
            >>> MathUtils.calculate_rounded_progress(5, 4)
            100
        """
        percentage = MathUtils.calculate_percentage(completed, total)
        # round() would give 12 for 12.5
        return min(100, int(percentage + 0.5))


class DateTimeUtils:
    """Timestamps used by cache entries and log file names."""

    @staticmethod
    def get_date_string_for_log_file() -> str:
        """Local date as ``YYYYMMDD``."""
        return datetime.now().strftime("%Y%m%d")

    @staticmethod
    def get_current_timestamp_ms() -> int:
        """Milliseconds since the Unix epoch."""
        return int(datetime.now(timezone.utc).timestamp() * 1000)

    @staticmethod
    def days_to_milliseconds(days: float) -> int:
        return int(days * MILLISECONDS_PER_DAY)


class LanguageUtils:
    """Maps ISO 639-1 codes to the language names written into prompts."""

    LANGUAGE_NAMES = {
        "en": "English",
        "ru": "Russian",
        "es": "Spanish",
        "de": "German",
        "fr": "French",
        "uk": "Ukrainian",
    }

    @staticmethod
    def iso_to_language_name(iso_code: str) -> str:
        """
        Look up the prompt name for a language code.

        Args:
            iso_code: Two-letter code, any case (e.g., 'RU')

        Returns:
            Language name such as 'Russian'; unknown codes come back unchanged
        """
        if not iso_code:
            return iso_code
        return LanguageUtils.LANGUAGE_NAMES.get(iso_code.lower(), iso_code)
