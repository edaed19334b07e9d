"""Tests for the command-line translator worker."""

from pathlib import Path

import pytest

from conftest import FakeTranslator, make_cues, make_vtt
from lazy_dubber.common.subtitle_parser import VTTParser
from lazy_dubber.translator.scheduler import TranslationScheduler
from lazy_dubber.translator.worker import build_arg_parser, translate_file


@pytest.fixture
def worker_scheduler(cache_store, scheduler_config):
    return TranslationScheduler(FakeTranslator(), cache_store, scheduler_config)


class TestArgParser:
    def test_defaults(self):
        args = build_arg_parser().parse_args(["movie.vtt"])

        assert args.subtitles == Path("movie.vtt")
        assert args.output is None
        assert args.force is False
        assert args.clear_cache is False

    def test_flags(self):
        args = build_arg_parser().parse_args(
            ["movie.vtt", "-o", "out.vtt", "--force", "--clear-cache"]
        )

        assert args.output == Path("out.vtt")
        assert args.force is True
        assert args.clear_cache is True


class TestTranslateFile:
    @pytest.mark.asyncio
    async def test_writes_translated_file_next_to_input(self, tmp_path, worker_scheduler):
        # Arrange - 600 cues spread over 100 minutes needs background batches
        input_path = tmp_path / "movie.vtt"
        input_path.write_text(make_vtt(make_cues(600, spacing=10.0)), encoding="utf-8")

        # Act
        written = await translate_file(input_path, None, worker_scheduler)

        # Assert
        assert written == tmp_path / "movie_ru.vtt"
        cues = VTTParser.parse(written.read_text(encoding="utf-8"))
        assert len(cues) == 600
        assert cues[0].text == "RU:Line 0"
        assert cues[599].text == "RU:Line 599"

    @pytest.mark.asyncio
    async def test_explicit_output_path(self, tmp_path, worker_scheduler):
        input_path = tmp_path / "episode.vtt"
        input_path.write_text(make_vtt(make_cues(10)), encoding="utf-8")
        output_path = tmp_path / "custom.vtt"

        written = await translate_file(input_path, output_path, worker_scheduler)

        assert written == output_path
        assert output_path.read_text(encoding="utf-8").startswith("WEBVTT")

    @pytest.mark.asyncio
    async def test_paused_job_writes_nothing(self, tmp_path, worker_scheduler):
        input_path = tmp_path / "movie.vtt"
        input_path.write_text(make_vtt(make_cues(600, spacing=10.0)), encoding="utf-8")
        worker_scheduler.store.subscribe(
            lambda snapshot: worker_scheduler.pause_translation()
            if len(snapshot) >= 100
            else None
        )

        written = await translate_file(input_path, None, worker_scheduler)

        assert written is None
        assert not (tmp_path / "movie_ru.vtt").exists()

    @pytest.mark.asyncio
    async def test_file_without_cues_is_rejected(self, tmp_path, worker_scheduler):
        input_path = tmp_path / "empty.vtt"
        input_path.write_text("WEBVTT\n", encoding="utf-8")

        with pytest.raises(ValueError):
            await translate_file(input_path, None, worker_scheduler)
