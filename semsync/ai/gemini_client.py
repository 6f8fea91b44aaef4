"""Gemini AI client wrapper for structured image extraction."""

import asyncio
import json
import logging
import re
from typing import Any, Optional

from google import genai
from google.genai import types

from ..config import config

logger = logging.getLogger(__name__)

RATE_LIMIT_INDICATORS = [
    "429", "rate limit", "quota", "resource exhausted",
    "too many requests", "rate_limit", "resource_exhausted", "resourceexhausted",
]


def is_rate_limit_error(error: BaseException) -> bool:
    """Check if the error is a rate limit (HTTP 429) error."""
    if getattr(error, "code", None) == 429:
        return True
    error_str = str(error).lower()
    return any(indicator in error_str for indicator in RATE_LIMIT_INDICATORS)


def _clean_json_response(response: str) -> str:
    """Remove markdown code blocks and clean JSON response."""
    if not response:
        return ""

    response = re.sub(r"```json\s*", "", response)
    response = re.sub(r"```\s*", "", response)
    return response.strip()


def parse_json_response(response: Optional[str]) -> Any:
    """
    Parse the model's text reply into a native JSON value.

    Raises:
        ValueError: The reply is empty or is not valid JSON.
    """
    cleaned = _clean_json_response(response or "")
    if not cleaned:
        raise ValueError("Empty response from model")
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.debug(f"Raw response: {response}")
        raise ValueError(f"Model returned invalid JSON: {e}") from e


class GeminiClient:
    """Single-shot wrapper around the Gemini API. Retries live in the caller."""

    def __init__(self, api_key: Optional[str] = None):
        """Initialize the Gemini client."""
        api_key = api_key or config.GEMINI_API_KEY
        if not api_key:
            raise ValueError("No Gemini API key configured")

        self.client = genai.Client(api_key=api_key)
        logger.info("Gemini client initialized")

    async def generate_json(
        self,
        model: str,
        prompt: str,
        image_bytes: bytes,
        mime_type: str,
        schema: dict,
    ) -> Any:
        """
        Send one image with a prompt, constraining the reply to JSON matching schema.

        Args:
            model: Gemini model identifier.
            prompt: Instruction text.
            image_bytes: Raw bytes of the image.
            mime_type: MIME type of the image.
            schema: Response schema the model output must conform to.

        Returns:
            The parsed JSON value.

        Raises:
            Whatever the transport raises, or ValueError on unparsable output.
        """
        image_part = types.Part.from_bytes(data=image_bytes, mime_type=mime_type)
        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=model,
            contents=[prompt, image_part],
            config=types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=schema,
            ),
        )
        return parse_json_response(response.text)

    async def generate_text(self, model: str, prompt: str) -> str:
        """
        Send a text prompt to Gemini and get the reply text.

        Raises:
            Whatever the transport raises, or ValueError on an empty reply.
        """
        response = await asyncio.to_thread(
            self.client.models.generate_content,
            model=model,
            contents=prompt
        )
        if not response.text:
            raise ValueError("Empty response from model")
        return response.text


# Singleton instance - lazy initialization
_gemini_client = None


def get_gemini_client() -> GeminiClient:
    """Get or create the Gemini client singleton."""
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient()
    return _gemini_client
