"""Reconciliation poller.

After an action that starts asynchronous work on the server, a poll
session re-fetches the build list at a fixed interval until the target
build reports ``is_patched`` or a fixed ceiling elapses.

Ticks never overlap: the next interval starts only after the previous
tick's fetch has resolved. A tick whose fetch fails is logged and
skipped. The ceiling is hard: a fetch still pending when it arrives is
cancelled and its result never applied.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Protocol

from build_console.builds.client import BuildsApiError
from build_console.builds.models import BuildRecord
from build_console.builds.view import find_build
from build_console.timers import Clock
from build_console.types import PollState

logger = logging.getLogger(__name__)

# Interval between ticks and overall ceiling (seconds)
POLL_INTERVAL = 3.0
POLL_TIMEOUT = 300.0


class BuildLister(Protocol):
    """Anything that can fetch the build collection."""

    async def list_builds(self) -> list[BuildRecord]: ...


ResolvedCallback = Callable[["PollSession", list[BuildRecord]], None]
FinishedCallback = Callable[["PollSession"], None]


class PollSession:
    """One polling session for one build hash."""

    def __init__(self, build_hash: str, started_at: float) -> None:
        self.build_hash = build_hash
        self.started_at = started_at
        self.state = PollState.POLLING
        self.ticks = 0
        self.failed_ticks = 0
        self._task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        return self.state is not PollState.POLLING

    async def wait(self) -> PollState:
        """Wait for the session to reach a terminal state."""
        if self._task is not None:
            try:
                await asyncio.shield(self._task)
            except asyncio.CancelledError:
                if not self._task.cancelled():
                    raise
        return self.state

    def cancel(self) -> None:
        """Stop the session (used on shutdown only)."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self.state = PollState.CANCELLED

    def __repr__(self) -> str:
        return (
            f"<PollSession(build_hash='{self.build_hash[:12]}...', "
            f"state='{self.state.value}', ticks={self.ticks})>"
        )


class ReconciliationPoller:
    """Starts and tracks poll sessions.

    Sessions for different hashes are independent and may run
    concurrently.
    """

    def __init__(
        self,
        client: BuildLister,
        clock: Clock,
        on_resolved: ResolvedCallback,
        interval: float = POLL_INTERVAL,
        timeout: float = POLL_TIMEOUT,
        on_finished: FinishedCallback | None = None,
    ) -> None:
        self._client = client
        self._clock = clock
        self._on_resolved = on_resolved
        self._on_finished = on_finished
        self.interval = interval
        self.timeout = timeout
        self._sessions: set[PollSession] = set()

    @property
    def sessions(self) -> list[PollSession]:
        """Sessions still polling."""
        return [s for s in self._sessions if not s.done]

    def start(self, build_hash: str) -> PollSession:
        """Start polling until ``build_hash`` is patched.

        Args:
            build_hash: Target build.

        Returns:
            The running session.
        """
        session = PollSession(build_hash, self._clock.now())
        self._sessions.add(session)
        session._task = asyncio.get_running_loop().create_task(self._run(session))
        session._task.add_done_callback(lambda task: self._task_done(session, task))
        logger.info("Polling build %s", build_hash)
        return session

    def _task_done(self, session: PollSession, task: asyncio.Task[None]) -> None:
        self._sessions.discard(session)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            # Nothing awaits a poll task; report instead of losing it
            logger.error(
                "Polling build %s failed", session.build_hash, exc_info=error
            )

    async def _fetch_before(self, deadline: float) -> list[BuildRecord] | None:
        """Fetch the build list, or return None if ``deadline`` passes first."""
        fetch = asyncio.ensure_future(self._client.list_builds())
        expiry = asyncio.ensure_future(
            self._clock.sleep(max(deadline - self._clock.now(), 0))
        )
        try:
            done, _ = await asyncio.wait(
                {fetch, expiry}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            for task in (fetch, expiry):
                if not task.done():
                    task.cancel()
        if fetch not in done:
            return None
        return fetch.result()

    def _timed_out(self, session: PollSession) -> None:
        session.state = PollState.TIMED_OUT
        logger.info(
            "Polling for build %s timed out after %.0fs",
            session.build_hash,
            self.timeout,
        )

    async def _run(self, session: PollSession) -> None:
        deadline = session.started_at + self.timeout
        try:
            while True:
                remaining = deadline - self._clock.now()
                if remaining <= self.interval:
                    # The ceiling arrives before the next tick would
                    await self._clock.sleep(max(remaining, 0))
                    self._timed_out(session)
                    break

                await self._clock.sleep(self.interval)
                session.ticks += 1
                try:
                    builds = await self._fetch_before(deadline)
                except BuildsApiError as e:
                    session.failed_ticks += 1
                    logger.warning(
                        "Poll tick %d for build %s failed: %s",
                        session.ticks,
                        session.build_hash,
                        e,
                    )
                    continue
                if builds is None:
                    # A fetch still in flight at the ceiling is abandoned
                    self._timed_out(session)
                    break

                build = find_build(builds, session.build_hash)
                if build is not None and build.is_patched:
                    session.state = PollState.RESOLVED
                    logger.info(
                        "Build %s patched after %d tick(s)",
                        session.build_hash,
                        session.ticks,
                    )
                    self._on_resolved(session, builds)
                    break
        except asyncio.CancelledError:
            session.state = PollState.CANCELLED
            raise
        finally:
            if self._on_finished is not None and session.done:
                self._on_finished(session)

    def cancel_all(self) -> None:
        """Cancel every running session."""
        for session in list(self._sessions):
            session.cancel()


__all__ = [
    "BuildLister",
    "POLL_INTERVAL",
    "POLL_TIMEOUT",
    "PollSession",
    "ReconciliationPoller",
]
