"""Tests for builds wire models."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from build_console.builds.models import (
    BuildRecord,
    StatusResponse,
    extract_build_hash,
    parse_build_date,
)

HASH = "0123456789abcdef0123456789abcdef01234567"


class TestBuildRecord:
    """Tests for BuildRecord."""

    def test_parse_server_row(self) -> None:
        """Should accept a row as served by GET /api/builds."""
        build = BuildRecord.model_validate(
            {
                "build_hash": HASH,
                "channel": "canary",
                "build_date": "2024-05-01 12:30:00 +00:00",
                "is_active": False,
                "is_patched": True,
            }
        )
        assert build.build_hash == HASH
        assert build.channel == "canary"
        assert build.is_patched is True

    def test_ignores_unknown_fields(self) -> None:
        """Extra server fields should be ignored."""
        build = BuildRecord.model_validate(
            {"build_hash": HASH, "index_scripts": ["a.js"]}
        )
        assert build.build_hash == HASH

    def test_requires_hash(self) -> None:
        """A row without build_hash is invalid."""
        with pytest.raises(ValidationError):
            BuildRecord.model_validate({"channel": "stable"})

    def test_is_read_only(self) -> None:
        """Client copies of builds must not be mutated."""
        build = BuildRecord(build_hash=HASH)
        with pytest.raises(ValidationError):
            build.is_active = True  # type: ignore[misc]

    def test_build_datetime(self) -> None:
        """build_datetime should parse the server timestamp."""
        build = BuildRecord(build_hash=HASH, build_date="2024-05-01T12:30:00Z")
        assert build.build_datetime == datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


class TestParseBuildDate:
    """Tests for parse_build_date."""

    def test_chrono_format(self) -> None:
        """Should accept a space before the UTC offset."""
        parsed = parse_build_date("2024-05-01 12:30:00 +02:00")
        assert parsed is not None
        assert parsed.utcoffset().total_seconds() == 7200

    def test_iso_format(self) -> None:
        """Should accept plain ISO 8601."""
        assert parse_build_date("2024-05-01T12:30:00+00:00") == datetime(
            2024, 5, 1, 12, 30, tzinfo=timezone.utc
        )

    def test_invalid(self) -> None:
        """Unparseable values should return None."""
        assert parse_build_date("yesterday") is None
        assert parse_build_date("") is None


class TestStatusResponse:
    """Tests for StatusResponse."""

    def test_flags(self) -> None:
        """is_ok and is_error should follow the status field."""
        assert StatusResponse(status="ok").is_ok
        assert StatusResponse(status="error").is_error
        accepted = StatusResponse(status="accepted", message="Download started")
        assert not accepted.is_ok
        assert not accepted.is_error

    def test_defaults(self) -> None:
        """A body with only a message should still parse."""
        response = StatusResponse.model_validate({"message": "Repatch started"})
        assert response.status == ""
        assert response.message == "Repatch started"

    def test_rate_limit_body(self) -> None:
        """Rate limiter bodies carry retry_after."""
        response = StatusResponse.model_validate(
            {"status": "error", "message": "Rate limit exceeded", "retry_after": 60}
        )
        assert response.is_error
        assert response.retry_after == 60

    def test_target_hash_prefers_structured_field(self) -> None:
        """The structured build_hash wins over the message text."""
        other = "f" * 40
        response = StatusResponse(
            status="accepted",
            message=f"Fetching current build {other} from Discord",
            build_hash=HASH,
        )
        assert response.target_hash() == HASH

    def test_target_hash_from_message(self) -> None:
        """Without a structured field the hash is taken from the message."""
        response = StatusResponse(
            status="accepted", message=f"Fetching current build {HASH} from Discord"
        )
        assert response.target_hash() == HASH

    def test_target_hash_missing(self) -> None:
        """No hash anywhere yields None."""
        assert StatusResponse(message="Repatch started").target_hash() is None


class TestExtractBuildHash:
    """Tests for extract_build_hash."""

    def test_extracts_first_hash(self) -> None:
        """Should return the embedded 40-character hash."""
        assert extract_build_hash(f"Download started for build {HASH}") == HASH

    def test_short_hex_ignored(self) -> None:
        """Shorter hex strings are not build hashes."""
        assert extract_build_hash("build deadbeef started") is None

    def test_uppercase_not_matched(self) -> None:
        """Only lowercase hex hashes are recognised."""
        assert extract_build_hash(f"build {HASH.upper()}") is None
