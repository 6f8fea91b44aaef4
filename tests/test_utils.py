"""Tests for time helpers, upload validation and logging setup."""

import logging
from logging.handlers import RotatingFileHandler

from semsync.utils.file_validation import MAX_FILE_SIZE, format_bytes, validate_file
from semsync.utils.logging_config import resolve_level, setup_logging
from semsync.utils.time_utils import (
    day_index,
    is_valid_time,
    parse_datetime,
    time_to_minutes,
)


class TestTimeHelpers:
    """Tests for clock and weekday parsing."""

    def test_valid_times(self):
        assert is_valid_time("00:00")
        assert is_valid_time("23:59")

    def test_invalid_times(self):
        assert not is_valid_time("24:00")
        assert not is_valid_time("8:00")
        assert not is_valid_time("08:60")
        assert not is_valid_time(None)

    def test_time_to_minutes(self):
        assert time_to_minutes("10:30") == 630
        assert time_to_minutes("nope") is None

    def test_day_index_uses_sunday_zero(self):
        assert day_index("Sunday") == 0
        assert day_index("monday") == 1
        assert day_index("Sat") == 6
        assert day_index("Someday") is None
        assert day_index("") is None

    def test_parse_datetime_with_z(self):
        parsed = parse_datetime("2025-10-06T09:00:00Z")
        assert parsed.hour == 9
        assert parsed.utcoffset().total_seconds() == 0


class TestFileValidation:
    """Tests for resource upload rules."""

    def test_accepts_pdf(self):
        assert validate_file("notes.pdf", "application/pdf", 1024) is None

    def test_too_large(self):
        message = validate_file("notes.pdf", "application/pdf", MAX_FILE_SIZE + 1)
        assert message == "File size exceeds 25MB. Please choose a smaller file."

    def test_wrong_mime_type(self):
        message = validate_file("run.exe", "application/x-msdownload", 10)
        assert message.startswith("File type not allowed")

    def test_extension_mismatch(self):
        message = validate_file("notes.exe", "application/pdf", 10)
        assert message == "File extension does not match allowed formats."

    def test_exactly_at_limit(self):
        assert validate_file("a.zip", "application/zip", MAX_FILE_SIZE) is None


class TestFormatBytes:
    """Tests for size labels."""

    def test_zero(self):
        assert format_bytes(0) == "0 Bytes"

    def test_kilobytes(self):
        assert format_bytes(1536) == "1.5 KB"

    def test_megabytes(self):
        assert format_bytes(25 * 1024 * 1024) == "25 MB"

    def test_bytes(self):
        assert format_bytes(500) == "500 Bytes"


class TestLoggingSetup:
    """Tests for logging configuration."""

    def test_file_and_console_handlers(self, tmp_path):
        root = setup_logging("debug", log_to_file=True, log_dir=tmp_path)
        try:
            assert root.level == logging.DEBUG
            assert any(isinstance(h, RotatingFileHandler) for h in root.handlers)
            assert (tmp_path / "semsync.log").exists()
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            for handler in list(root.handlers):
                if isinstance(handler, RotatingFileHandler):
                    handler.close()
                    root.removeHandler(handler)

    def test_console_only(self):
        root = setup_logging(logging.INFO, log_to_file=False)
        assert not any(isinstance(h, RotatingFileHandler) for h in root.handlers)

    def test_unknown_level_name(self):
        assert resolve_level("chatty") == logging.INFO
