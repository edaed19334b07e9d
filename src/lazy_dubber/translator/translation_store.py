"""Shared translation map read by the display layer while translation runs."""

import logging
from typing import Callable, Dict, List, Mapping, Optional

from lazy_dubber.common.utils import MathUtils

logger = logging.getLogger(__name__)

TranslationListener = Callable[[Dict[int, str]], None]


class TranslationStore:
    """
    Holds the cue-index -> translated-text map for the current subtitle file.

    The scheduler is the only writer. During a run the map only grows:
    :meth:`merge` fills indices that are still missing and never overwrites
    a completed entry. :meth:`replace` swaps the whole map and is used for
    cache hits at job start.
    """

    def __init__(self) -> None:
        self._translations: Dict[int, str] = {}
        self._listeners: List[TranslationListener] = []

    def subscribe(self, listener: TranslationListener) -> None:
        """Register a callback receiving a snapshot after every update."""
        self._listeners.append(listener)

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in self._listeners:
            listener(snapshot)

    def merge(self, translations: Mapping[int, str]) -> int:
        """
        Add translations for indices not present yet.

        Args:
            translations: Mapping of cue index to translated text

        Returns:
            Number of indices added
        """
        added = 0
        for index, text in translations.items():
            if index not in self._translations:
                self._translations[index] = text
                added += 1
        self._publish()
        return added

    def replace(self, translations: Mapping[int, str]) -> None:
        """Replace the whole map (cache hit at job start)."""
        self._translations = dict(translations)
        self._publish()

    def clear(self) -> None:
        self._translations = {}
        self._publish()

    def get(self, index: int) -> Optional[str]:
        return self._translations.get(index)

    def snapshot(self) -> Dict[int, str]:
        """Copy of the current map."""
        return dict(self._translations)

    def completeness(self, total_cues: int) -> int:
        """
        Percentage of cues that have a translation.

        Examples:
            >>> store = TranslationStore()
            >>> _ = store.merge({0: "a"})
            >>> store.completeness(4)
            25
        """
        return MathUtils.calculate_rounded_progress(len(self._translations), total_cues)

    def __len__(self) -> int:
        return len(self._translations)

    def __contains__(self, index: object) -> bool:
        return index in self._translations
