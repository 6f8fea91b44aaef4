"""Tests for the extractTimetable callable boundary."""

import asyncio
import base64

import pytest
from unittest.mock import AsyncMock, MagicMock

from semsync.ai.timetable_extractor import ExtractionAttempt, ExtractionFailed, ExtractionResult
from semsync.config import config
from semsync.functions.callable import AuthContext, CallableRequest, HttpsError, unwrap_callable_body
from semsync.functions.extract_timetable import (
    RATE_LIMITED_MESSAGE,
    classify_failure,
    detect_mime_type,
    extract_timetable,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png"
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"
ENTRIES = [{"day": "Monday", "startTime": "08:00", "endTime": "10:00", "subject": "Maths"}]


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode()


def request(data, uid="user-1"):
    auth = AuthContext(uid=uid) if uid else None
    return CallableRequest(data=data, auth=auth)


@pytest.fixture(autouse=True)
def api_key(monkeypatch):
    """Extraction requires a configured key."""
    monkeypatch.setattr(config, "GEMINI_API_KEY", "test-key")


@pytest.fixture
def extractor():
    """Controller double returning one entry."""
    mock = MagicMock()
    mock.models = ["gemini-2.0-flash-exp"]
    mock.extract = AsyncMock(return_value=ExtractionResult(
        entries=ENTRIES, model="gemini-2.0-flash-exp", attempts=[]
    ))
    return mock


class TestRequestValidation:
    """Tests for the checks made before any model call."""

    @pytest.mark.asyncio
    async def test_unauthenticated_wins(self, extractor):
        """No identity is rejected even when the image is also missing."""
        with pytest.raises(HttpsError) as exc_info:
            await extract_timetable(request({}, uid=None), extractor=extractor)

        assert exc_info.value.code == "unauthenticated"
        assert exc_info.value.message == "You must be logged in to upload a timetable."
        extractor.extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_image(self, extractor):
        """No image field is invalid-argument."""
        with pytest.raises(HttpsError) as exc_info:
            await extract_timetable(request({}), extractor=extractor)

        assert exc_info.value.code == "invalid-argument"
        assert exc_info.value.message == "No image data provided."

    @pytest.mark.asyncio
    async def test_empty_image(self, extractor):
        """An empty string is invalid-argument."""
        with pytest.raises(HttpsError) as exc_info:
            await extract_timetable(request({"image": ""}), extractor=extractor)
        assert exc_info.value.code == "invalid-argument"

    @pytest.mark.asyncio
    async def test_invalid_base64(self, extractor):
        """Undecodable payloads never reach the model."""
        with pytest.raises(HttpsError) as exc_info:
            await extract_timetable(request({"image": "not base64!!"}), extractor=extractor)

        assert exc_info.value.code == "invalid-argument"
        extractor.extract.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_api_key(self, extractor, monkeypatch):
        """Server misconfiguration is internal."""
        monkeypatch.setattr(config, "GEMINI_API_KEY", "")

        with pytest.raises(HttpsError) as exc_info:
            await extract_timetable(request({"image": b64(PNG_BYTES)}), extractor=extractor)

        assert exc_info.value.code == "internal"
        assert exc_info.value.message == "Server configuration error."


class TestExtraction:
    """Tests for the successful path."""

    @pytest.mark.asyncio
    async def test_returns_entries(self, extractor):
        """Parsed entries are returned unchanged."""
        result = await extract_timetable(request({"image": b64(PNG_BYTES)}), extractor=extractor)
        assert result == ENTRIES

    @pytest.mark.asyncio
    async def test_jpeg_detected(self, extractor):
        """JPEG magic bytes select image/jpeg."""
        await extract_timetable(request({"image": b64(JPEG_BYTES)}), extractor=extractor)
        extractor.extract.assert_awaited_once_with(JPEG_BYTES, "image/jpeg")

    @pytest.mark.asyncio
    async def test_other_bytes_sent_as_png(self, extractor):
        """Anything that is not JPEG goes out as PNG."""
        await extract_timetable(request({"image": b64(b"GIF89a...")}), extractor=extractor)
        extractor.extract.assert_awaited_once_with(b"GIF89a...", "image/png")

    def test_detect_mime_type(self):
        assert detect_mime_type(JPEG_BYTES) == "image/jpeg"
        assert detect_mime_type(PNG_BYTES) == "image/png"


class TestFailureMapping:
    """Tests for converting exhausted extractions into caller errors."""

    @pytest.mark.asyncio
    async def test_final_429_is_resource_exhausted(self, extractor):
        """A rate-limited last error tells the caller to wait."""
        error = Exception("429 RESOURCE_EXHAUSTED")
        extractor.extract = AsyncMock(side_effect=ExtractionFailed(error, []))

        with pytest.raises(HttpsError) as exc_info:
            await extract_timetable(request({"image": b64(PNG_BYTES)}), extractor=extractor)

        assert exc_info.value.code == "resource-exhausted"
        assert exc_info.value.message == RATE_LIMITED_MESSAGE

    @pytest.mark.asyncio
    async def test_other_failure_is_internal_with_last_message(self, extractor):
        """Non rate-limit failures carry the last error text."""
        attempts = [ExtractionAttempt(model="m", succeeded=False, error="bad JSON")]
        extractor.extract = AsyncMock(
            side_effect=ExtractionFailed(ValueError("bad JSON"), attempts)
        )

        with pytest.raises(HttpsError) as exc_info:
            await extract_timetable(request({"image": b64(PNG_BYTES)}), extractor=extractor)

        assert exc_info.value.code == "internal"
        assert exc_info.value.message == "Failed to process timetable image: bad JSON"

    @pytest.mark.asyncio
    async def test_timeout_is_internal(self, extractor):
        """Work past the deadline is abandoned."""
        async def slow_extract(*args):
            await asyncio.sleep(1)

        extractor.extract = slow_extract

        with pytest.raises(HttpsError) as exc_info:
            await extract_timetable(
                request({"image": b64(PNG_BYTES)}), extractor=extractor, timeout=0.01
            )

        assert exc_info.value.code == "internal"
        assert exc_info.value.message == "Request timed out."

    def test_classify_failure(self):
        assert classify_failure(ExtractionFailed(Exception("quota"), [])).code == "resource-exhausted"
        assert classify_failure(ExtractionFailed(Exception("oops"), [])).code == "internal"


class TestCallableProtocol:
    """Tests for the wire envelope."""

    def test_unwrap_data_envelope(self):
        assert unwrap_callable_body({"data": {"image": "abc"}}) == {"image": "abc"}

    def test_unwrap_bare_body(self):
        assert unwrap_callable_body({"image": "abc"}) == {"image": "abc"}

    def test_unwrap_non_object(self):
        assert unwrap_callable_body(["x"]) == {}

    def test_error_envelope(self):
        error = HttpsError("resource-exhausted", "busy")
        assert error.http_status == 429
        assert error.to_dict() == {"error": {"status": "RESOURCE_EXHAUSTED", "message": "busy"}}

    def test_unknown_code_rejected(self):
        with pytest.raises(ValueError):
            HttpsError("teapot", "nope")
