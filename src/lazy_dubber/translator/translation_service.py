"""Remote translation client for subtitle text using an OpenAI-compatible model API."""

import asyncio
import json
import logging
from typing import List, Optional, Sequence

from openai import AsyncOpenAI

from lazy_dubber.common.gpt_utils import ParseStatus, parse_string_array, reconcile_count
from lazy_dubber.common.retry_utils import retry_with_linear_backoff
from lazy_dubber.common.schemas import ClientConfig
from lazy_dubber.common.utils import LanguageUtils

logger = logging.getLogger(__name__)

# Slot value when a response could not be interpreted at all
TRANSLATION_ERROR_PLACEHOLDER = "[Translation error]"
# Slot value when a recovered response had fewer items than requested
TRANSLATION_PENDING_PLACEHOLDER = "[Translation pending]"


class SubtitleTranslator:
    """
    Translates batches of subtitle text through one remote model call per batch.

    ``translate_batch`` never raises for remote failures: when every retry of
    a request fails the original texts are returned unchanged.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize the translator.

        Args:
            config: Client settings; read from the environment when omitted
            client: Preconfigured async OpenAI client (mainly for tests)
        """
        self.config = config or ClientConfig.from_settings()
        self.client = client
        self._last_parse_status: Optional[ParseStatus] = None

        if self.client is None and self.config.api_key:
            # Retry logic is handled by retry_with_linear_backoff
            self.client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=0,
            )
            logger.info(f"Initialized translation client with model: {self.config.model}")
        elif self.client is None:
            logger.warning(
                "Translation API key not configured - translator will run in mock mode"
            )

    def get_last_parse_status(self) -> Optional[ParseStatus]:
        """
        Get how the last model response was interpreted.

        Returns:
            ParseStatus of the last parsed response, or None if no response
            has been parsed yet
        """
        return self._last_parse_status

    @property
    def _retry_decorator(self):
        return retry_with_linear_backoff(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_delay,
        )

    async def translate_batch(self, texts: Sequence[str]) -> List[str]:
        """
        Translate a batch of subtitle texts.

        Empty and whitespace-only entries are not sent and keep their slot
        unchanged. Batches larger than ``max_batch_size`` are split into
        sequential requests.

        Args:
            texts: Source-language strings

        Returns:
            Translated strings, same length and order as ``texts``
        """
        texts = list(texts)
        positions = [i for i, text in enumerate(texts) if text and text.strip()]
        if not positions:
            return texts

        valid_texts = [texts[i] for i in positions]

        if len(valid_texts) > self.config.max_batch_size:
            translated = await self._translate_in_chunks(valid_texts)
        else:
            translated = await self._translate_valid_texts(valid_texts)

        result = list(texts)
        for position, translation in zip(positions, translated):
            result[position] = translation
        return result

    async def translate_single(self, text: str) -> str:
        """Translate one string; empty input yields an empty string."""
        if not text or not text.strip():
            return ""
        results = await self.translate_batch([text])
        return results[0]

    async def health_check(self) -> bool:
        """
        Check that the remote API answers with a real translation.

        Returns:
            True if "Hello" comes back as a Russian greeting
        """
        try:
            result = await self.translate_single("Hello")
        except Exception as e:
            logger.error(f"❌ Translation health check failed: {e}")
            return False

        logger.info(f"Translation health check result: {result}")
        return "Привет" in result

    async def _translate_in_chunks(self, texts: List[str]) -> List[str]:
        chunk_size = self.config.max_batch_size
        chunks = [texts[i : i + chunk_size] for i in range(0, len(texts), chunk_size)]

        logger.info(f"Translating {len(texts)} texts in {len(chunks)} chunks")

        results: List[str] = []
        for chunk_index, chunk in enumerate(chunks):
            logger.debug(f"Processing chunk {chunk_index + 1}/{len(chunks)}")
            results.extend(await self._translate_valid_texts(chunk))

            # Stay under the remote rate limit
            if chunk_index < len(chunks) - 1:
                await asyncio.sleep(self.config.chunk_delay)

        return results

    async def _translate_valid_texts(self, texts: List[str]) -> List[str]:
        if not self.client:
            logger.warning("Mock mode: returning original texts")
            return list(texts)

        prompt = self._build_translation_prompt(texts)

        try:
            decorated_request = self._retry_decorator(self._make_request)
            response_text = await decorated_request(prompt)
        except Exception as e:
            logger.error(
                f"❌ Translation request failed for {len(texts)} texts, "
                f"keeping original text: {e}"
            )
            return list(texts)

        return self._parse_translation_response(response_text, len(texts))

    def _build_translation_prompt(self, texts: List[str]) -> str:
        """
        Build the translation prompt.

        The texts travel as a JSON array and the model is asked for a JSON
        array of the same length back, with the expected count spelled out.

        Args:
            texts: Non-empty source strings

        Returns:
            Prompt text
        """
        source_language = LanguageUtils.iso_to_language_name(self.config.source_language)
        target_language = LanguageUtils.iso_to_language_name(self.config.target_language)
        input_json = json.dumps(texts, ensure_ascii=False, indent=2)

        return (
            f"You are a professional translator specializing in video subtitles.\n\n"
            f"TASK: Translate these {source_language} subtitles to {target_language}.\n\n"
            f"INPUT (JSON array):\n{input_json}\n\n"
            f"RULES:\n"
            f"1. Return ONLY a JSON array of strings with the translations\n"
            f"2. Keep the EXACT same number of items ({len(texts)} items)\n"
            f"3. Preserve the order\n"
            f"4. Keep translations natural and conversational\n"
            f"5. Do NOT add markdown, explanations, or extra text\n\n"
            f"OUTPUT FORMAT:\n"
            f'["translation 1", "translation 2", ...]\n'
        )

    async def _make_request(self, prompt: str) -> str:
        """
        Send one chat completion request and return the response text.

        Raises:
            openai.APIError: On network failure, timeout or non-2xx status
        """
        response = await self.client.chat.completions.create(
            model=self.config.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
            top_p=self.config.top_p,
            max_tokens=self.config.max_tokens,
            timeout=self.config.timeout,
        )

        if not response.choices:
            logger.warning("⚠️  Model returned no choices")
            return ""

        choice = response.choices[0]
        content = choice.message.content or ""

        if choice.finish_reason == "length":
            logger.warning(
                f"⚠️  Response was truncated (finish_reason=length). "
                f"Received {len(content)} characters; recovering what is complete."
            )

        logger.debug(f"Response length: {len(content)} chars")
        return content

    def _parse_translation_response(self, response: str, expected_count: int) -> List[str]:
        """
        Turn a model response into exactly ``expected_count`` strings.

        Args:
            response: Raw response text
            expected_count: Number of texts sent

        Returns:
            Recovered translations padded or trimmed to ``expected_count``, or
            error placeholders when nothing could be recovered
        """
        parsed = parse_string_array(response)
        self._last_parse_status = parsed.status

        if not parsed.ok:
            logger.error(
                f"❌ Failed to parse translation response, "
                f"returning {expected_count} error placeholders"
            )
            return [TRANSLATION_ERROR_PLACEHOLDER] * expected_count

        return reconcile_count(parsed.data, expected_count, TRANSLATION_PENDING_PLACEHOLDER)
