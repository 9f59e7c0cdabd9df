"""Pydantic models for the builds API wire format.

BuildRecord is the client's read-only copy of a server build row;
StatusResponse is the body returned by every mutating endpoint (and by
the server's rate limiter).
"""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# A build hash as embedded in free-text server messages
BUILD_HASH_PATTERN = re.compile(r"([a-f0-9]{40})")

# chrono-style timestamps carry a space before the offset: "... 12:00:00 +00:00"
_OFFSET_SPACE = re.compile(r"\s+([+-]\d{2}:?\d{2})$")


class BuildRecord(BaseModel):
    """A build as listed by ``GET /api/builds``.

    Attributes:
        build_hash: Opaque unique identifier of the build.
        channel: Release channel label.
        build_date: Build timestamp as sent by the server.
        is_active: Whether this is the build served to clients.
        is_patched: Whether the server has finished patching the build.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    build_hash: str
    channel: str = ""
    build_date: str = ""
    is_active: bool = False
    is_patched: bool = False

    @property
    def build_datetime(self) -> datetime | None:
        """Parse ``build_date``, or None if the server format is unrecognised."""
        return parse_build_date(self.build_date)


class StatusResponse(BaseModel):
    """Body of a mutating endpoint response.

    Attributes:
        status: "ok", "accepted" or "error" (empty if the server sent none).
        message: Human-readable message for the operator.
        build_hash: Structured build identifier, when the server provides one.
        retry_after: Seconds to wait, sent with rate-limit errors.
    """

    model_config = ConfigDict(extra="ignore")

    status: str = ""
    message: str = ""
    build_hash: str | None = Field(default=None)
    retry_after: int | None = Field(default=None)

    @property
    def is_error(self) -> bool:
        """Whether the server framed this response as an error."""
        return self.status == "error"

    @property
    def is_ok(self) -> bool:
        """Whether the server reported an explicit ok."""
        return self.status == "ok"

    def target_hash(self) -> str | None:
        """Build hash this response refers to.

        Prefers the structured ``build_hash`` field and falls back to the
        first 40-character hex string embedded in ``message``.
        """
        if self.build_hash:
            return self.build_hash
        return extract_build_hash(self.message)


def extract_build_hash(message: str) -> str | None:
    """Extract a 40-character hex build hash from a message.

    Args:
        message: Free-text server message.

    Returns:
        The first hash found, or None.
    """
    match = BUILD_HASH_PATTERN.search(message)
    return match.group(1) if match else None


def parse_build_date(value: str) -> datetime | None:
    """Parse a server build timestamp.

    Accepts ISO 8601 (with ``Z`` or offset) and the
    ``YYYY-MM-DD HH:MM:SS +HH:MM`` form.

    Args:
        value: Timestamp string.

    Returns:
        Parsed datetime, or None if the string is not a timestamp.
    """
    if not value:
        return None
    text = _OFFSET_SPACE.sub(r"\1", value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


__all__ = [
    "BUILD_HASH_PATTERN",
    "BuildRecord",
    "StatusResponse",
    "extract_build_hash",
    "parse_build_date",
]
