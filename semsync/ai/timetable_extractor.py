"""Timetable image extraction with ordered model fallback."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from ..config import config
from .gemini_client import GeminiClient, get_gemini_client, is_rate_limit_error
from .schema import TIMETABLE_SCHEMA

logger = logging.getLogger(__name__)

TIMETABLE_PROMPT = "Analyze this timetable image and extract the schedule."


@dataclass
class ExtractionAttempt:
    """Outcome of one call to one model."""
    model: str
    succeeded: bool
    error: Optional[str] = None
    rate_limited: bool = False
    delay_before: float = 0.0  # seconds waited before this call


@dataclass
class ExtractionResult:
    """Successful extraction plus the attempts that led to it."""
    entries: list
    model: str
    attempts: list[ExtractionAttempt] = field(default_factory=list)


class ExtractionFailed(Exception):
    """Every candidate model failed. Carries the last underlying error."""

    def __init__(self, last_error: BaseException, attempts: list[ExtractionAttempt]):
        super().__init__(str(last_error))
        self.last_error = last_error
        self.attempts = attempts

    @property
    def rate_limited(self) -> bool:
        return is_rate_limit_error(self.last_error)


class TimetableExtractor:
    """
    Runs the extraction across an ordered list of Gemini models.

    Candidates are tried one at a time and the first success wins. A rate-limited
    call to an experimental model is retried once after a fixed delay; every other
    failure falls through to the next candidate immediately.
    """

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        models: Optional[list[str]] = None,
        retry_delay: Optional[float] = None,
        experimental_marker: Optional[str] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client or get_gemini_client()
        self.models = list(models if models is not None else config.TIMETABLE_MODELS)
        self.retry_delay = config.RATE_LIMIT_RETRY_DELAY if retry_delay is None else retry_delay
        self.experimental_marker = experimental_marker or config.EXPERIMENTAL_MODEL_MARKER
        self.sleep = sleep

    def is_rate_limit_sensitive(self, model: str) -> bool:
        """Experimental models get a second chance after a 429."""
        return self.experimental_marker in model

    async def _call_model(self, model: str, image_bytes: bytes, mime_type: str) -> list:
        entries = await self.client.generate_json(
            model=model,
            prompt=TIMETABLE_PROMPT,
            image_bytes=image_bytes,
            mime_type=mime_type,
            schema=TIMETABLE_SCHEMA,
        )
        if not isinstance(entries, list):
            raise ValueError(f"Expected a JSON array of schedule entries, got {type(entries).__name__}")
        return entries

    async def extract(self, image_bytes: bytes, mime_type: str = "image/png") -> ExtractionResult:
        """
        Extract schedule entries from an image.

        Args:
            image_bytes: Raw bytes of the timetable image.
            mime_type: MIME type of the image.

        Returns:
            ExtractionResult from the first model that succeeded.

        Raises:
            ExtractionFailed: All candidates failed.
        """
        attempts: list[ExtractionAttempt] = []
        last_error: Optional[BaseException] = None

        for model in self.models:
            try:
                entries = await self._call_model(model, image_bytes, mime_type)
                attempts.append(ExtractionAttempt(model=model, succeeded=True))
                logger.info(f"Extracted {len(entries)} schedule entries with {model}")
                return ExtractionResult(entries=entries, model=model, attempts=attempts)
            except Exception as e:
                rate_limited = is_rate_limit_error(e)
                attempts.append(ExtractionAttempt(
                    model=model, succeeded=False, error=str(e), rate_limited=rate_limited
                ))
                last_error = e

                if not (rate_limited and self.is_rate_limit_sensitive(model)):
                    logger.warning(f"Extraction with {model} failed: {e}")
                    continue

            logger.warning(f"{model} rate limited, retrying once in {self.retry_delay:.0f}s")
            await self.sleep(self.retry_delay)
            try:
                entries = await self._call_model(model, image_bytes, mime_type)
                attempts.append(ExtractionAttempt(
                    model=model, succeeded=True, delay_before=self.retry_delay
                ))
                logger.info(f"Extracted {len(entries)} schedule entries with {model} after retry")
                return ExtractionResult(entries=entries, model=model, attempts=attempts)
            except Exception as e:
                attempts.append(ExtractionAttempt(
                    model=model,
                    succeeded=False,
                    error=str(e),
                    rate_limited=is_rate_limit_error(e),
                    delay_before=self.retry_delay,
                ))
                last_error = e
                logger.warning(f"Retry with {model} failed: {e}")

        if last_error is None:
            last_error = ValueError("No timetable models configured")
        logger.error(f"Timetable extraction failed after {len(attempts)} attempt(s): {last_error}")
        raise ExtractionFailed(last_error, attempts)
