"""Tests for the remote subtitle translation client."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from lazy_dubber.common.gpt_utils import ParseStatus
from lazy_dubber.common.schemas import ClientConfig
from lazy_dubber.translator.translation_service import (
    TRANSLATION_ERROR_PLACEHOLDER,
    TRANSLATION_PENDING_PLACEHOLDER,
    SubtitleTranslator,
)


def make_completion(content, finish_reason="stop"):
    """Build an object shaped like a chat completion response."""
    choice = MagicMock()
    choice.message.content = content
    choice.finish_reason = finish_reason
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def client_config():
    return ClientConfig(
        api_key="sk-test",
        model="test-model",
        max_retries=2,
        retry_delay=0,
        max_batch_size=25,
        chunk_delay=0,
    )


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    return client


@pytest.fixture
def translator(client_config, openai_client):
    return SubtitleTranslator(client_config, client=openai_client)


class TestTranslateBatch:
    """Length and order of results always match the input."""

    @pytest.mark.asyncio
    async def test_translates_clean_response(self, translator, openai_client):
        # Arrange
        openai_client.chat.completions.create.return_value = make_completion(
            '["Привет", "Как дела?"]'
        )

        # Act
        result = await translator.translate_batch(["Hello", "How are you?"])

        # Assert
        assert result == ["Привет", "Как дела?"]
        assert translator.get_last_parse_status() == ParseStatus.PARSED

    @pytest.mark.asyncio
    async def test_request_parameters(self, translator, openai_client):
        openai_client.chat.completions.create.return_value = make_completion('["Привет"]')

        await translator.translate_batch(["Hello"])

        kwargs = openai_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["temperature"] == 0.3
        assert kwargs["top_p"] == 0.8
        assert kwargs["max_tokens"] == 8192
        prompt = kwargs["messages"][0]["content"]
        assert "English" in prompt and "Russian" in prompt
        assert '"Hello"' in prompt
        assert "(1 items)" in prompt

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_request(self, translator, openai_client):
        assert await translator.translate_batch([]) == []
        openai_client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_entries_keep_their_slots(self, translator, openai_client):
        # Arrange
        openai_client.chat.completions.create.return_value = make_completion('["Привет"]')

        # Act
        result = await translator.translate_batch(["", "Hello", "   "])

        # Assert - only the non-blank text is sent
        assert result == ["", "Привет", "   "]
        prompt = openai_client.chat.completions.create.await_args.kwargs["messages"][0][
            "content"
        ]
        assert "(1 items)" in prompt

    @pytest.mark.asyncio
    async def test_all_blank_entries_make_no_request(self, translator, openai_client):
        assert await translator.translate_batch(["", " "]) == ["", " "]
        openai_client.chat.completions.create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_short_response_is_padded(self, translator, openai_client):
        openai_client.chat.completions.create.return_value = make_completion('["Один"]')

        result = await translator.translate_batch(["One", "Two", "Three"])

        assert result == [
            "Один",
            TRANSLATION_PENDING_PLACEHOLDER,
            TRANSLATION_PENDING_PLACEHOLDER,
        ]

    @pytest.mark.asyncio
    async def test_long_response_is_trimmed(self, translator, openai_client):
        openai_client.chat.completions.create.return_value = make_completion(
            '["Один", "Два", "Лишнее"]'
        )

        result = await translator.translate_batch(["One", "Two"])

        assert result == ["Один", "Два"]

    @pytest.mark.asyncio
    async def test_truncated_response_is_recovered(self, translator, openai_client):
        openai_client.chat.completions.create.return_value = make_completion(
            '["Один", "Два", "Тр', finish_reason="length"
        )

        result = await translator.translate_batch(["One", "Two", "Three"])

        assert result == ["Один", "Два", TRANSLATION_PENDING_PLACEHOLDER]
        assert translator.get_last_parse_status() == ParseStatus.PARTIALLY_RECOVERED

    @pytest.mark.asyncio
    async def test_fenced_response(self, translator, openai_client):
        openai_client.chat.completions.create.return_value = make_completion(
            '```json\n["Один", "Два"]\n```'
        )

        assert await translator.translate_batch(["One", "Two"]) == ["Один", "Два"]

    @pytest.mark.asyncio
    async def test_garbled_response_gives_error_placeholders(
        self, translator, openai_client
    ):
        openai_client.chat.completions.create.return_value = make_completion(
            "Sorry, I cannot help with that."
        )

        result = await translator.translate_batch(["One", "Two"])

        assert result == [TRANSLATION_ERROR_PLACEHOLDER, TRANSLATION_ERROR_PLACEHOLDER]
        assert translator.get_last_parse_status() == ParseStatus.FAILED

    @pytest.mark.asyncio
    async def test_no_choices_gives_error_placeholders(self, translator, openai_client):
        response = MagicMock()
        response.choices = []
        openai_client.chat.completions.create.return_value = response

        result = await translator.translate_batch(["One"])

        assert result == [TRANSLATION_ERROR_PLACEHOLDER]


class TestChunking:
    @pytest.mark.asyncio
    async def test_large_batch_is_split_into_chunks(self, translator, openai_client):
        # Arrange
        texts = [f"Line {i}" for i in range(60)]
        openai_client.chat.completions.create.side_effect = [
            make_completion(json.dumps([f"Строка {i}" for i in range(0, 25)])),
            make_completion(json.dumps([f"Строка {i}" for i in range(25, 50)])),
            make_completion(json.dumps([f"Строка {i}" for i in range(50, 60)])),
        ]

        # Act
        result = await translator.translate_batch(texts)

        # Assert
        assert openai_client.chat.completions.create.await_count == 3
        assert result == [f"Строка {i}" for i in range(60)]

    @pytest.mark.asyncio
    async def test_chunks_skip_blank_entries(self, translator, openai_client):
        # Arrange - 30 real texts interleaved with blanks
        texts = []
        for i in range(30):
            texts.extend([f"Line {i}", ""])
        openai_client.chat.completions.create.side_effect = [
            make_completion(json.dumps([f"Строка {i}" for i in range(0, 25)])),
            make_completion(json.dumps([f"Строка {i}" for i in range(25, 30)])),
        ]

        # Act
        result = await translator.translate_batch(texts)

        # Assert
        assert len(result) == 60
        assert result[0] == "Строка 0"
        assert result[1] == ""
        assert result[58] == "Строка 29"


class TestRequestFailures:
    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, translator, openai_client):
        openai_client.chat.completions.create.side_effect = [
            ConnectionError("reset"),
            make_completion('["Привет"]'),
        ]

        result = await translator.translate_batch(["Hello"])

        assert result == ["Привет"]
        assert openai_client.chat.completions.create.await_count == 2

    @pytest.mark.asyncio
    async def test_exhausted_retries_return_original_texts(
        self, translator, openai_client
    ):
        openai_client.chat.completions.create.side_effect = ConnectionError("down")

        result = await translator.translate_batch(["Hello", "World"])

        assert result == ["Hello", "World"]
        # Initial attempt + 2 retries
        assert openai_client.chat.completions.create.await_count == 3

    @pytest.mark.asyncio
    async def test_permanent_failure_returns_original_texts_without_retry(
        self, translator, openai_client
    ):
        openai_client.chat.completions.create.side_effect = ValueError("bad request")

        result = await translator.translate_batch(["Hello"])

        assert result == ["Hello"]
        assert openai_client.chat.completions.create.await_count == 1


class TestMockMode:
    @pytest.mark.asyncio
    async def test_without_api_key_returns_input(self):
        translator = SubtitleTranslator(ClientConfig(api_key=None))

        assert translator.client is None
        assert await translator.translate_batch(["Hello", ""]) == ["Hello", ""]


class TestTranslateSingle:
    @pytest.mark.asyncio
    async def test_translates_one_text(self, translator, openai_client):
        openai_client.chat.completions.create.return_value = make_completion('["Привет"]')

        assert await translator.translate_single("Hello") == "Привет"

    @pytest.mark.asyncio
    async def test_empty_text(self, translator, openai_client):
        assert await translator.translate_single("  ") == ""
        openai_client.chat.completions.create.assert_not_awaited()


class TestHealthCheck:
    @pytest.mark.asyncio
    async def test_healthy(self, translator, openai_client):
        openai_client.chat.completions.create.return_value = make_completion('["Привет!"]')

        assert await translator.health_check() is True

    @pytest.mark.asyncio
    async def test_unhealthy_when_text_comes_back_untranslated(
        self, translator, openai_client
    ):
        openai_client.chat.completions.create.side_effect = ConnectionError("down")

        assert await translator.health_check() is False
