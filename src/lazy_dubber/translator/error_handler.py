"""Error handling utilities for translation jobs."""

import json
import logging

import openai

logger = logging.getLogger(__name__)


def describe_translation_error(error: Exception) -> str:
    """
    Log a translation error and turn it into a user-facing message.

    Args:
        error: Exception raised while translating

    Returns:
        Message suitable for job error records and error callbacks
    """
    error_message = str(error) or type(error).__name__

    if isinstance(error, openai.APITimeoutError):
        logger.warning(f"⚠️  Translation request timed out: {error_message}")
        return f"Request timed out: {error_message}"
    if isinstance(error, openai.APIConnectionError):
        logger.warning(f"⚠️  Translation API unreachable: {error_message}")
        return f"Connection error: {error_message}"
    if isinstance(error, openai.APIStatusError):
        logger.warning(
            f"⚠️  Translation API error {error.status_code}: {error_message}"
        )
        return f"API error {error.status_code}: {error_message}"
    if isinstance(error, json.JSONDecodeError):
        logger.error(f"❌ Failed to parse JSON: {error_message}")
        return f"Failed to parse response: {error_message}"
    if isinstance(error, ValueError):
        logger.error(f"❌ Invalid translation input: {error_message}")
        return f"Invalid request: {error_message}"

    logger.error(
        f"❌ Unexpected error during translation: {error_message}",
        exc_info=True,
    )
    return f"Translation error: {error_message}"
