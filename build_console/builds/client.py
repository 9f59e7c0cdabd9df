"""Async HTTP client for the builds API.

This module wraps the remote build collection:
- GET /api/builds - list builds
- POST /api/builds/fetch-current - fetch and patch the live build
- POST /api/builds/download - download and patch a build
- PUT /api/builds/active - set the active build
- POST /api/builds/{hash}/repatch - re-run patching for a build
- PUT /api/builds/{hash}/index-scripts - override entry scripts

Mutating endpoints answer with a ``{status, message}`` body for both
success and failure, so their bodies are decoded regardless of the HTTP
status code. Transport and decoding failures raise BuildsApiError.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from build_console.builds.models import BuildRecord, StatusResponse

logger = logging.getLogger(__name__)

API_PREFIX = "/api/builds"

# Timeout for API requests (seconds)
REQUEST_TIMEOUT = 30.0

_BUILD_LIST = TypeAdapter(list[BuildRecord])


class BuildsApiError(Exception):
    """Raised when a builds API call fails at the transport or decoding level."""

    def __init__(
        self,
        message: str,
        code: str = "api_error",
        status_code: int | None = None,
    ) -> None:
        """Initialize BuildsApiError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
            status_code: HTTP status code, if a response was received.
        """
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class BuildsClient:
    """Client for the remote build collection.

    Can be used as an async context manager. An externally supplied
    ``http_client`` is not closed by this class.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = REQUEST_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> BuildsClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._http.aclose()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{API_PREFIX}{path}"

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        url = self._url(path)
        logger.debug("%s %s", method, url)
        try:
            return await self._http.request(method, url, json=json)
        except httpx.TimeoutException as e:
            raise BuildsApiError(
                f"Timeout calling {method} {url}",
                code="timeout",
            ) from e
        except httpx.RequestError as e:
            raise BuildsApiError(
                f"Network error calling {method} {url}: {e}",
                code="network_error",
            ) from e

    async def _status_call(
        self, method: str, path: str, json: dict[str, Any] | None = None
    ) -> StatusResponse:
        response = await self._request(method, path, json=json)
        try:
            body = StatusResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise BuildsApiError(
                f"Invalid response from {method} {path or '/'} "
                f"({response.status_code})",
                code="decode_error",
                status_code=response.status_code,
            ) from e
        if response.is_error:
            logger.info(
                "%s %s returned %d: %s",
                method,
                path,
                response.status_code,
                body.message,
            )
            if not body.status:
                # Error bodies must still read as errors to callers
                body = body.model_copy(update={"status": "error"})
        return body

    async def list_builds(self) -> list[BuildRecord]:
        """Fetch the full build collection.

        Returns:
            Builds in server order.

        Raises:
            BuildsApiError: On transport failure, error status or bad body.
        """
        response = await self._request("GET", "")
        if response.status_code == 429:
            raise BuildsApiError(
                _error_message(response, "Rate limit exceeded"),
                code="rate_limited",
                status_code=429,
            )
        if response.is_error:
            raise BuildsApiError(
                _error_message(
                    response, f"HTTP {response.status_code} {response.reason_phrase}"
                ),
                code="http_error",
                status_code=response.status_code,
            )
        try:
            return _BUILD_LIST.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise BuildsApiError(
                "Invalid build list received from server",
                code="decode_error",
                status_code=response.status_code,
            ) from e

    async def fetch_current(self) -> StatusResponse:
        """Ask the server to fetch and patch the currently live build."""
        return await self._status_call("POST", "/fetch-current")

    async def download(self, build_hash: str | None = None) -> StatusResponse:
        """Ask the server to download and patch a build.

        Args:
            build_hash: Build to download; None lets the server pick the
                latest known build.
        """
        payload: dict[str, Any] = {}
        if build_hash is not None:
            payload["build_hash"] = build_hash
        return await self._status_call("POST", "/download", json=payload)

    async def set_active(self, build_hash: str) -> StatusResponse:
        """Mark a build as the active one."""
        return await self._status_call(
            "PUT", "/active", json={"build_hash": build_hash}
        )

    async def repatch(self, build_hash: str) -> StatusResponse:
        """Re-run the patch pipeline for a downloaded build."""
        return await self._status_call("POST", f"/{build_hash}/repatch")

    async def set_index_scripts(
        self, build_hash: str, index_scripts: list[str]
    ) -> StatusResponse:
        """Override the entry scripts served for a build."""
        return await self._status_call(
            "PUT",
            f"/{build_hash}/index-scripts",
            json={"index_scripts": index_scripts},
        )


def _error_message(response: httpx.Response, default: str) -> str:
    """Pull a server-supplied message out of an error response, if any."""
    try:
        data = response.json()
    except ValueError:
        return default
    if isinstance(data, dict) and isinstance(data.get("message"), str):
        return data["message"]
    return default


__all__ = ["API_PREFIX", "BuildsApiError", "BuildsClient", "REQUEST_TIMEOUT"]
