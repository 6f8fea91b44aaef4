"""extractTimetable callable: photo of a timetable in, schedule entries out."""

import asyncio
import base64
import binascii
import logging
from typing import Optional

from ..ai.timetable_extractor import ExtractionFailed, TimetableExtractor
from ..config import config
from .callable import CallableRequest, HttpsError

logger = logging.getLogger(__name__)

RATE_LIMITED_MESSAGE = "AI service is busy. Please try again in 30 seconds."


def detect_mime_type(image_bytes: bytes) -> str:
    """Sniff JPEG from magic bytes; anything else is sent as PNG."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    return "image/png"


def decode_image(image: str) -> bytes:
    """Decode a base64 payload without data-URI prefix."""
    try:
        image_bytes = base64.b64decode(image, validate=True)
    except (binascii.Error, ValueError) as e:
        raise HttpsError("invalid-argument", "Image data is not valid base64.") from e
    if not image_bytes:
        raise HttpsError("invalid-argument", "No image data provided.")
    return image_bytes


def classify_failure(error: ExtractionFailed) -> HttpsError:
    """Map an exhausted extraction onto the caller-facing error kinds."""
    if error.rate_limited:
        return HttpsError("resource-exhausted", RATE_LIMITED_MESSAGE)
    return HttpsError("internal", f"Failed to process timetable image: {error.last_error}")


async def extract_timetable(
    request: CallableRequest,
    extractor: Optional[TimetableExtractor] = None,
    timeout: Optional[float] = None,
) -> list:
    """
    Handle one extractTimetable invocation.

    Args:
        request: Caller identity and data payload ({"image": "<base64>"}).
        extractor: Model controller; built from configuration when omitted.
        timeout: Overall limit in seconds (default FUNCTION_TIMEOUT_SECONDS).

    Returns:
        The parsed list of schedule entries, exactly as the model produced it.

    Raises:
        HttpsError: unauthenticated, invalid-argument, resource-exhausted or internal.
    """
    if request.auth is None:
        raise HttpsError("unauthenticated", "You must be logged in to upload a timetable.")

    image = request.data.get("image") if isinstance(request.data, dict) else None
    if not image or not isinstance(image, str):
        raise HttpsError("invalid-argument", "No image data provided.")
    image_bytes = decode_image(image)

    if not config.GEMINI_API_KEY:
        logger.error("GEMINI_API_KEY is not set; rejecting timetable extraction")
        raise HttpsError("internal", "Server configuration error.")

    if extractor is None:
        try:
            extractor = TimetableExtractor()
        except ValueError as e:
            logger.error(f"Could not build timetable extractor: {e}")
            raise HttpsError("internal", "Server configuration error.") from e
    timeout = config.FUNCTION_TIMEOUT_SECONDS if timeout is None else timeout

    logger.info(
        f"Processing timetable for user {request.auth.uid} "
        f"with model(s) {', '.join(extractor.models)}"
    )

    try:
        result = await asyncio.wait_for(
            extractor.extract(image_bytes, detect_mime_type(image_bytes)),
            timeout=timeout,
        )
    except ExtractionFailed as e:
        logger.error(f"Gemini extraction failed for user {request.auth.uid}: {e}")
        raise classify_failure(e) from e
    except asyncio.TimeoutError as e:
        logger.error(f"Timetable extraction for user {request.auth.uid} timed out after {timeout}s")
        raise HttpsError("internal", "Request timed out.") from e

    return result.entries
