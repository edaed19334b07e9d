"""Cache-aware batch scheduler for subtitle translation jobs."""

import asyncio
import logging
from typing import Callable, Collection, Dict, List, Optional, Protocol, Sequence

from lazy_dubber.common.schemas import SchedulerConfig, TranslationStatus
from lazy_dubber.common.subtitle_parser import Cue
from lazy_dubber.translator.batching import (
    batch_bounds,
    batch_count,
    build_translation_map,
    covered_batches,
    identity_translation_map,
    initial_batch_count,
)
from lazy_dubber.translator.cache_store import TranslationCacheStore
from lazy_dubber.translator.error_handler import describe_translation_error
from lazy_dubber.translator.schemas import JobQueueState
from lazy_dubber.translator.translation_store import TranslationStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]
CompleteCallback = Callable[[], None]
ErrorCallback = Callable[[Exception], None]


class BatchTranslator(Protocol):
    async def translate_batch(self, texts: Sequence[str]) -> List[str]: ...


class TranslationInProgressError(RuntimeError):
    """Raised when a file is submitted while its own job is still running."""


class TranslationScheduler:
    """
    Drives translation of a whole subtitle file.

    The batches covering the first ``initial_window_minutes`` of media are
    translated before :meth:`translate_subtitles` returns; the rest continue
    in a background task while playback starts. Finished maps are persisted
    to the cache store so a second run over the same file makes no remote
    calls.
    """

    def __init__(
        self,
        translator: BatchTranslator,
        cache_store: Optional[TranslationCacheStore] = None,
        config: Optional[SchedulerConfig] = None,
        store: Optional[TranslationStore] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            translator: Client translating one batch of texts per call
            cache_store: Persistent cache; caching is skipped when omitted
            config: Batch sizing, delays and retry limits
            store: Shared translation map read by the display layer
        """
        self.translator = translator
        self.cache_store = cache_store
        self.config = config or SchedulerConfig.from_settings()
        self.store = store or TranslationStore()
        self.queue = JobQueueState()
        self.background_task: Optional[asyncio.Task] = None

        self._cues: List[Cue] = []
        self._cache_key: Optional[str] = None
        # Key and owner token of the job currently holding the scheduler
        self._active_key: Optional[str] = None
        self._job_token: Optional[object] = None
        self._paused_token: Optional[object] = None
        self._job_lock = asyncio.Lock()
        self._on_progress: Optional[ProgressCallback] = None
        self._on_complete: Optional[CompleteCallback] = None
        self._on_error: Optional[ErrorCallback] = None

    async def translate_subtitles(
        self,
        cues: Sequence[Cue],
        raw_text: str = "",
        *,
        force_retranslate: bool = False,
        on_progress: Optional[ProgressCallback] = None,
        on_complete: Optional[CompleteCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> Dict[int, str]:
        """
        Translate subtitle cues, returning once the initial window is ready.

        Args:
            cues: Parsed cues in playback order
            raw_text: Unmodified file content, used for the cache key
            force_retranslate: Skip the cache lookup and start from scratch
            on_progress: Called with a 0-100 percentage after each batch
            on_complete: Called once the whole file is translated
            on_error: Called with the exception if the job fails

        Returns:
            Translation map for the initial window (the whole file on a cache hit)

        Raises:
            TranslationInProgressError: If the same file is already being translated
        """
        cues = list(cues)
        cache_key = (
            self.cache_store.compute_key(raw_text)
            if self.cache_store is not None and raw_text
            else None
        )

        same_claim = cache_key is not None and cache_key == self._active_key
        resuming = same_claim and self._is_paused_claim()
        if same_claim and not resuming:
            raise TranslationInProgressError(
                f"Translation already running for {cache_key}"
            )

        # Claimed before the first await
        token = object()
        self._job_token = token
        self._paused_token = None
        self._active_key = cache_key

        async with self._job_lock:
            if resuming:
                logger.info(f"▶️  Resuming paused translation for {cache_key}")
                await self.wait_for_background()
            elif self.background_task is not None and not self.background_task.done():
                logger.info("Cancelling previous translation job for a new file")
                await self._stop_background()

            self._on_progress = on_progress
            self._on_complete = on_complete
            self._on_error = on_error

            try:
                return await self._start_job(cues, cache_key, force_retranslate, token)
            except Exception as e:
                logger.error(f"❌ Translation job failed: {e}", exc_info=True)
                self.queue.is_processing = False
                self._release(token)
                self._notify_error(e)
                raise

    async def _start_job(
        self,
        cues: List[Cue],
        cache_key: Optional[str],
        force_retranslate: bool,
        token: object,
    ) -> Dict[int, str]:
        batch_size = self.config.batch_size
        total_batches = batch_count(len(cues), batch_size)

        if cache_key is not None and not force_retranslate:
            cached = await self.cache_store.get(cache_key)
            if cached is not None:
                logger.info(f"✅ Using cached translations for {cache_key}")
                self._cues = cues
                self._cache_key = cache_key
                self.store.replace(cached.translations)
                self.queue.start(total_batches)
                self.queue.current_batch_index = total_batches
                self.queue.is_processing = False
                self._release(token)
                self._notify_progress(100)
                self._notify_complete()
                return dict(cached.translations)

        same_file = (
            cache_key is not None and cache_key == self._cache_key and not force_retranslate
        )
        if not same_file:
            self.store.clear()

        self._cues = cues
        self._cache_key = cache_key
        self.queue.start(total_batches)

        if not cues:
            logger.info("No subtitle cues to translate")
            self.queue.is_processing = False
            self._release(token)
            self._notify_progress(100)
            self._notify_complete()
            return {}

        initial_batches = min(
            initial_batch_count(cues, batch_size, self.config.initial_window_seconds),
            total_batches,
        )
        skip = self._covered_batches() if same_file else set()

        logger.info(
            f"🚀 Translating {len(cues)} cues in {total_batches} batches "
            f"({initial_batches} before playback)"
        )

        initial_translations: Dict[int, str] = {}
        for batch_index in range(initial_batches):
            if self.queue.is_paused:
                logger.info(f"⏸️  Translation paused before batch {batch_index}")
                break
            if batch_index in skip:
                self.queue.current_batch_index = batch_index + 1
                continue

            initial_translations.update(await self.process_batch(batch_index))
            self._notify_progress(self.queue.progress)

            if batch_index < initial_batches - 1:
                await asyncio.sleep(self.config.batch_delay)

        self.store.merge(initial_translations)
        result = self.store.snapshot()

        if self.queue.is_paused:
            self.queue.is_processing = False
            return result

        if initial_batches < total_batches:
            self.background_task = asyncio.create_task(
                self._process_background_batches(initial_batches, skip, token)
            )
        else:
            await self._finish_job(token)

        return result

    async def process_batch(self, batch_index: int) -> Dict[int, str]:
        """
        Translate one batch of the current job.

        Failures are recorded in the job errors and retried after
        ``retry_delay`` until the batch has ``max_retries`` error records;
        after that the batch keeps its original text.

        Args:
            batch_index: Index of the batch to translate

        Returns:
            Mapping of global cue position to translated text for the batch
        """
        positions = batch_bounds(batch_index, self.config.batch_size, len(self._cues))
        texts = [self._cues[position].text for position in positions]

        while True:
            try:
                translated = await self.translator.translate_batch(texts)
                result = build_translation_map(positions.start, texts, translated)
                break
            except Exception as e:
                message = describe_translation_error(e)
                attempts = self.queue.record_error(batch_index, message)

                if attempts < self.config.max_retries:
                    logger.warning(
                        f"⚠️  Batch {batch_index} failed (attempt {attempts}/"
                        f"{self.config.max_retries}), retrying in "
                        f"{self.config.retry_delay}s: {message}"
                    )
                    await asyncio.sleep(self.config.retry_delay)
                    continue

                logger.error(
                    f"❌ Batch {batch_index} failed after {attempts} attempts, "
                    f"keeping original text"
                )
                result = identity_translation_map(positions.start, texts)
                break

        self.queue.current_batch_index = batch_index + 1
        logger.debug(
            f"Batch {batch_index + 1}/{self.queue.total_batches} done "
            f"({self.queue.progress}%)"
        )
        return result

    async def _process_background_batches(
        self, start_batch: int, skip: Collection[int] = (), token: Optional[object] = None
    ) -> None:
        total_batches = self.queue.total_batches
        logger.info(
            f"Continuing translation in background from batch {start_batch}/{total_batches}"
        )

        try:
            for batch_index in range(start_batch, total_batches):
                if self.queue.is_paused:
                    logger.info(f"⏸️  Background translation paused at batch {batch_index}")
                    self.queue.is_processing = False
                    return
                if batch_index in skip:
                    self.queue.current_batch_index = batch_index + 1
                    continue

                self.store.merge(await self.process_batch(batch_index))
                self._notify_progress(self.queue.progress)

                if batch_index < total_batches - 1:
                    await asyncio.sleep(self.config.batch_delay)

            await self._finish_job(token)
        except asyncio.CancelledError:
            logger.info("Background translation cancelled")
            self.queue.is_processing = False
            raise
        except Exception as e:
            logger.error(f"❌ Background translation failed: {e}", exc_info=True)
            self.queue.is_processing = False
            self._release(token)
            self._notify_error(e)

    async def _finish_job(self, token: Optional[object]) -> None:
        translations = self.store.snapshot()
        if self.cache_store is not None and self._cache_key is not None:
            await self.cache_store.put(self._cache_key, translations)

        self.queue.is_processing = False
        self._release(token)
        logger.info(
            f"✅ Translation complete: {len(translations)} cues, "
            f"{len(self.queue.errors)} batch errors"
        )
        self._notify_complete()

    def _covered_batches(self) -> set:
        return set(
            covered_batches(self.store.snapshot(), len(self._cues), self.config.batch_size)
        )

    def pause_translation(self) -> None:
        """Stop before the next batch starts; the running batch still finishes."""
        if not self.queue.is_paused:
            logger.info("Pausing translation")
        self.queue.is_paused = True
        self._paused_token = self._job_token

    def resume_translation(self) -> Optional[asyncio.Task]:
        """
        Clear the pause flag and continue from the next unprocessed batch.

        Returns:
            The background task translating the remaining batches, or None
            if there is nothing left to resume
        """
        was_paused = self.queue.is_paused
        self.queue.is_paused = False
        self._paused_token = None

        if self.background_task is not None and not self.background_task.done():
            return self.background_task
        if not was_paused or not self._cues:
            return None

        start_batch = self.queue.current_batch_index
        if start_batch >= self.queue.total_batches:
            return None

        logger.info(f"▶️  Resuming translation from batch {start_batch}")
        self.queue.is_processing = True
        self.background_task = asyncio.create_task(
            self._process_background_batches(
                start_batch, self._covered_batches(), self._job_token
            )
        )
        return self.background_task

    async def wait_for_background(self) -> None:
        """Wait until the background continuation, if any, has finished."""
        task = self.background_task
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def cancel(self) -> None:
        """Cancel the background continuation without persisting anything."""
        await self._stop_background()
        self._active_key = None
        self._job_token = None
        self._paused_token = None

    async def _stop_background(self) -> None:
        task = self.background_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self.background_task = None
        self.queue.is_processing = False

    def _is_paused_claim(self) -> bool:
        return self._job_token is not None and self._paused_token is self._job_token

    def _release(self, token: Optional[object]) -> None:
        if token is not None and token is self._job_token:
            self._active_key = None
            self._job_token = None
            self._paused_token = None

    def get_status(self) -> TranslationStatus:
        return self.queue.to_status()

    async def clear_all_cache(self) -> int:
        """
        Remove every persisted translation map.

        Returns:
            Number of cache entries removed
        """
        if self.cache_store is None:
            return 0
        return await self.cache_store.clear_all()

    def _notify_progress(self, progress: int) -> None:
        if self._on_progress is not None:
            self._on_progress(progress)

    def _notify_complete(self) -> None:
        if self._on_complete is not None:
            self._on_complete()

    def _notify_error(self, error: Exception) -> None:
        if self._on_error is not None:
            self._on_error(error)
