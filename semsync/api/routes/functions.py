"""Callable function endpoints ({"data": ...} in, {"result": ...} or {"error": ...} out)."""

import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...ai.gemini_client import GeminiClient
from ...ai.timetable_extractor import TimetableExtractor
from ...functions.callable import AuthContext, CallableRequest, HttpsError, unwrap_callable_body
from ...functions.chat import chat
from ...functions.extract_timetable import extract_timetable
from ..auth import get_optional_auth

logger = logging.getLogger(__name__)

router = APIRouter(tags=["functions"])


def get_timetable_extractor() -> Optional[TimetableExtractor]:
    """None means: build one from configuration per call."""
    return None


def get_chat_client() -> Optional[GeminiClient]:
    """None means: use the shared client."""
    return None


def _error_response(error: HttpsError) -> JSONResponse:
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


async def _read_call(request: Request, auth: Optional[AuthContext]) -> CallableRequest:
    """
    Decode a callable body into a CallableRequest.

    A caller without identity is always answered with unauthenticated, so an
    unreadable body only counts as invalid-argument once the caller is known.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        if auth is None:
            body = None
        else:
            raise HttpsError("invalid-argument", "Request body must be JSON.")
    return CallableRequest(data=unwrap_callable_body(body), auth=auth)


@router.post("/extractTimetable")
async def extract_timetable_endpoint(
    request: Request,
    auth: Optional[AuthContext] = Depends(get_optional_auth),
    extractor: Optional[TimetableExtractor] = Depends(get_timetable_extractor),
) -> JSONResponse:
    call = await _read_call(request, auth)
    try:
        entries = await extract_timetable(call, extractor=extractor)
    except HttpsError as e:
        logger.info(f"extractTimetable rejected ({e.code}): {e.message}")
        return _error_response(e)
    except Exception as e:
        logger.exception(f"extractTimetable crashed: {e}")
        return _error_response(HttpsError("internal", "INTERNAL"))

    return JSONResponse(content={"result": entries})


@router.post("/chat")
async def chat_endpoint(
    request: Request,
    auth: Optional[AuthContext] = Depends(get_optional_auth),
    client: Optional[GeminiClient] = Depends(get_chat_client),
) -> JSONResponse:
    call = await _read_call(request, auth)
    try:
        reply = await chat(call, client=client)
    except HttpsError as e:
        logger.info(f"chat rejected ({e.code}): {e.message}")
        return _error_response(e)
    except Exception as e:
        logger.exception(f"chat crashed: {e}")
        return _error_response(HttpsError("internal", "INTERNAL"))

    return JSONResponse(content={"result": reply})
