"""Command-line worker translating a WebVTT subtitle file to Russian."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from lazy_dubber.common.config import settings
from lazy_dubber.common.logging_config import setup_service_logging
from lazy_dubber.common.redis_client import RedisClient
from lazy_dubber.common.schemas import CacheConfig, ClientConfig, SchedulerConfig
from lazy_dubber.common.shutdown_manager import ShutdownManager
from lazy_dubber.common.subtitle_parser import (
    VTTParser,
    generate_export_filename,
    is_translated_vtt,
)
from lazy_dubber.translator.cache_store import TranslationCacheStore
from lazy_dubber.translator.scheduler import TranslationScheduler
from lazy_dubber.translator.translation_service import SubtitleTranslator

logger = setup_service_logging(
    "translator", enable_file_logging=settings.log_file_enabled
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazy-dubber-translate",
        description="Translate an English WebVTT subtitle file to Russian.",
    )
    parser.add_argument("subtitles", type=Path, help="Path to the .vtt file")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=None,
        help="Output path (defaults to <name>_ru.vtt next to the input)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore cached translations and translate again",
    )
    parser.add_argument(
        "--clear-cache",
        action="store_true",
        help="Remove all cached translations before running",
    )
    return parser


def _log_progress(progress: int) -> None:
    logger.info(f"📊 Translation progress: {progress}%")


async def translate_file(
    input_path: Path,
    output_path: Optional[Path],
    scheduler: TranslationScheduler,
    force_retranslate: bool = False,
) -> Optional[Path]:
    """
    Translate one subtitle file and write the result.

    Args:
        input_path: Source WebVTT file
        output_path: Destination; derived from the input name when None
        scheduler: Scheduler used for the job
        force_retranslate: Skip the cache lookup

    Returns:
        Path written, or None if translation was interrupted
    """
    raw_text = input_path.read_text(encoding="utf-8")
    cues = VTTParser.parse(raw_text)
    if not cues:
        raise ValueError(f"No subtitle cues found in {input_path}")

    if is_translated_vtt(input_path.name):
        logger.warning(f"⚠️  {input_path.name} looks like an already translated file")

    await scheduler.translate_subtitles(
        cues,
        raw_text,
        force_retranslate=force_retranslate,
        on_progress=_log_progress,
    )
    logger.info("🎬 Initial window translated, playback could start now")

    await scheduler.wait_for_background()

    translations = scheduler.store.snapshot()
    if len(translations) < len(cues):
        logger.warning(
            f"⚠️  Translation stopped early ({len(translations)}/{len(cues)} cues), "
            f"not writing output"
        )
        return None

    destination = output_path or input_path.with_name(
        generate_export_filename(input_path.name)
    )
    destination.write_text(VTTParser.format(cues, translations), encoding="utf-8")
    logger.info(f"💾 Saved translated subtitles to {destination}")
    return destination


async def run(args: argparse.Namespace) -> int:
    redis_client = RedisClient(settings)
    await redis_client.connect()

    cache_store = TranslationCacheStore(redis_client, CacheConfig.from_settings(settings))
    scheduler = TranslationScheduler(
        SubtitleTranslator(ClientConfig.from_settings(settings)),
        cache_store,
        SchedulerConfig.from_settings(settings),
    )

    shutdown_manager = ShutdownManager("translator")
    shutdown_manager.setup_signal_handlers()
    shutdown_manager.add_signal_listener(scheduler.pause_translation)
    shutdown_manager.register_cleanup_callback(redis_client.disconnect)
    shutdown_manager.register_cleanup_callback(scheduler.cancel)

    try:
        if args.clear_cache:
            removed = await scheduler.clear_all_cache()
            logger.info(f"🧹 Cleared {removed} cached translations")

        written = await translate_file(
            args.subtitles, args.output, scheduler, force_retranslate=args.force
        )
    except (OSError, ValueError) as e:
        logger.error(f"❌ {e}")
        return EXIT_FAILURE
    finally:
        await shutdown_manager.execute_cleanup()

    if written is None and shutdown_manager.is_shutdown_requested():
        return EXIT_INTERRUPTED
    return EXIT_OK if written is not None else EXIT_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the translator worker."""
    args = build_arg_parser().parse_args(argv)

    logger.info("🚀 Starting Subtitle Translator Worker")
    logger.info(f"🤖 Using model: {settings.openai_model}")

    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
