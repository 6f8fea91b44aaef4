"""chat callable: one text message in, the assistant's text reply out."""

import asyncio
import logging
from typing import Optional

from ..ai.gemini_client import GeminiClient, get_gemini_client, is_rate_limit_error
from ..config import config
from .callable import CallableRequest, HttpsError
from .extract_timetable import RATE_LIMITED_MESSAGE

logger = logging.getLogger(__name__)


async def chat(
    request: CallableRequest,
    client: Optional[GeminiClient] = None,
    model: Optional[str] = None,
    timeout: Optional[float] = None,
) -> dict:
    """
    Handle one chat invocation.

    Args:
        request: Caller identity and data payload ({"message": "..."}).
        client: Gemini wrapper; the shared client when omitted.
        model: Model name (default CHAT_MODEL).
        timeout: Overall limit in seconds (default FUNCTION_TIMEOUT_SECONDS).

    Returns:
        {"reply": "<text>"}

    Raises:
        HttpsError: unauthenticated, invalid-argument, resource-exhausted or internal.
    """
    if request.auth is None:
        raise HttpsError("unauthenticated", "You must be logged in to use the assistant.")

    message = request.data.get("message") if isinstance(request.data, dict) else None
    if not isinstance(message, str) or not message.strip():
        raise HttpsError("invalid-argument", "No message provided.")
    if len(message) > config.CHAT_MAX_MESSAGE_LENGTH:
        raise HttpsError(
            "invalid-argument",
            f"Message is too long (max {config.CHAT_MAX_MESSAGE_LENGTH} characters).",
        )

    if not config.GEMINI_API_KEY:
        logger.error("GEMINI_API_KEY is not set; rejecting chat message")
        raise HttpsError("internal", "Server configuration error.")

    if client is None:
        try:
            client = get_gemini_client()
        except ValueError as e:
            logger.error(f"Could not build Gemini client: {e}")
            raise HttpsError("internal", "Server configuration error.") from e
    model = model or config.CHAT_MODEL
    timeout = config.FUNCTION_TIMEOUT_SECONDS if timeout is None else timeout

    logger.info(f"Chat message from user {request.auth.uid} ({len(message)} chars) to {model}")

    try:
        reply = await asyncio.wait_for(client.generate_text(model, message.strip()), timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Chat for user {request.auth.uid} timed out after {timeout}s")
        raise HttpsError("internal", "Request timed out.") from e
    except Exception as e:
        if is_rate_limit_error(e):
            logger.warning(f"Chat rate limited on {model}: {e}")
            raise HttpsError("resource-exhausted", RATE_LIMITED_MESSAGE) from e
        logger.error(f"Chat failed for user {request.auth.uid}: {e}")
        raise HttpsError("internal", "The assistant could not answer right now.") from e

    return {"reply": reply}
