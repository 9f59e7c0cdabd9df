"""Shared fixtures for build_console tests.

Provides a virtual clock for deterministic timer tests, sample build
records and a scripted stand-in for BuildsClient.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable
from typing import Any

import pytest

from build_console.builds.client import BuildsApiError
from build_console.builds.models import BuildRecord, StatusResponse
from build_console.config import Settings
from build_console.timers import Clock

HASH_A = "a" * 40
HASH_B = "b" * 40
HASH_C = "c" * 40


async def settle(rounds: int = 50) -> None:
    """Let ready tasks run until the loop is quiet."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeClock(Clock):
    """Virtual clock; time only moves when a test calls advance()."""

    def __init__(self) -> None:
        self._now = 0.0
        self._seq = itertools.count()
        self._waiters: list[tuple[float, int, asyncio.Future[None]]] = []

    def now(self) -> float:
        return self._now

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await asyncio.sleep(0)
            return
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        heapq.heappush(self._waiters, (self._now + seconds, next(self._seq), future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move time forward, waking sleepers in deadline order."""
        target = self._now + seconds
        await settle()
        while self._waiters and self._waiters[0][0] <= target:
            deadline, _, future = heapq.heappop(self._waiters)
            self._now = max(self._now, deadline)
            if not future.done():
                future.set_result(None)
            await settle()
        self._now = target
        await settle()


def make_build(
    build_hash: str,
    channel: str = "stable",
    build_date: str = "2024-05-01T12:00:00+00:00",
    is_active: bool = False,
    is_patched: bool = False,
) -> BuildRecord:
    """Create a BuildRecord with sensible defaults."""
    return BuildRecord(
        build_hash=build_hash,
        channel=channel,
        build_date=build_date,
        is_active=is_active,
        is_patched=is_patched,
    )


def build_dict(build: BuildRecord) -> dict[str, Any]:
    """Wire representation of a build."""
    return build.model_dump()


class ScriptedClient:
    """Stand-in for BuildsClient with scripted responses.

    ``builds`` is returned by list_builds() unless ``list_script`` has
    entries, which are consumed first (a BuildsApiError entry is raised).
    Mutating calls return ``responses[name]`` (or raise it) and are
    recorded in ``calls``.
    """

    def __init__(self, builds: list[BuildRecord] | None = None) -> None:
        self.builds = list(builds or [])
        self.list_script: list[list[BuildRecord] | BuildsApiError] = []
        self.responses: dict[str, StatusResponse | BuildsApiError] = {}
        self.calls: list[tuple[str, Any]] = []
        self.on_call: Callable[[str, Any], None] | None = None
        self.closed = False

    def _record(self, name: str, arg: Any = None) -> None:
        self.calls.append((name, arg))
        if self.on_call is not None:
            self.on_call(name, arg)

    def count(self, name: str) -> int:
        return sum(1 for call, _ in self.calls if call == name)

    async def list_builds(self) -> list[BuildRecord]:
        self._record("list_builds")
        if self.list_script:
            item = self.list_script.pop(0)
            if isinstance(item, BuildsApiError):
                raise item
            return list(item)
        return list(self.builds)

    def _respond(self, name: str) -> StatusResponse:
        response = self.responses.get(name, StatusResponse(status="ok", message=name))
        if isinstance(response, BuildsApiError):
            raise response
        return response

    async def fetch_current(self) -> StatusResponse:
        self._record("fetch_current")
        return self._respond("fetch_current")

    async def download(self, build_hash: str | None = None) -> StatusResponse:
        self._record("download", build_hash)
        return self._respond("download")

    async def set_active(self, build_hash: str) -> StatusResponse:
        self._record("set_active", build_hash)
        return self._respond("set_active")

    async def repatch(self, build_hash: str) -> StatusResponse:
        self._record("repatch", build_hash)
        return self._respond("repatch")

    async def set_index_scripts(
        self, build_hash: str, index_scripts: list[str]
    ) -> StatusResponse:
        self._record("set_index_scripts", (build_hash, index_scripts))
        return self._respond("set_index_scripts")

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    """Virtual clock starting at t=0."""
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings with the default timings and a fixed server URL."""
    return Settings(base_url="http://builds.test", _env_file=None)


@pytest.fixture
def sample_builds() -> list[BuildRecord]:
    """Three builds: pending, patched, patched+active."""
    return [
        make_build(HASH_A, channel="canary"),
        make_build(HASH_B, channel="ptb", is_patched=True),
        make_build(HASH_C, channel="stable", is_patched=True, is_active=True),
    ]


@pytest.fixture
def scripted_client(sample_builds: list[BuildRecord]) -> ScriptedClient:
    """ScriptedClient serving the sample builds."""
    return ScriptedClient(sample_builds)
