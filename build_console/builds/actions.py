"""Action dispatcher for build operations.

Each operation issues one mutating request, manages the busy state of
the control that triggered it and reports the outcome as a
notification. No operation is retried automatically.

Operations:
- fetch_current(): fetch the live build, poll for it, 5s control cooldown
- download(): download a build and poll until it is patched
- download_latest(): let the server pick the latest build and poll for it
- activate(): set the active build, reload, open the client
- repatch(): re-run patching, report the server message
- set_index_scripts(): override entry scripts for a build
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from build_console.builds.client import BuildsApiError, BuildsClient
from build_console.builds.controls import (
    DOWNLOAD_BUSY_LABEL,
    FETCH_BUSY_LABEL,
    Control,
    ControlRegistry,
)
from build_console.builds.poller import PollSession, ReconciliationPoller
from build_console.notifications import NotificationQueue
from build_console.timers import TimerGroup
from build_console.types import OperationResult

logger = logging.getLogger(__name__)

ACTIVATED_MESSAGE = "Build activated! Opening client..."


@dataclass
class ActionTimings:
    """Delays used by the dispatcher (seconds)."""

    fetch_cooldown: float = 5.0
    activate_open_delay: float = 0.5


class ActionDispatcher:
    """Issues build operations against the remote collection.

    Args:
        client: Builds API client.
        controls: Busy state of console controls.
        notifications: Toast queue.
        poller: Reconciliation poller for asynchronous server work.
        timers: Timer group owned by the caller.
        reload: Full snapshot reload and re-render.
        open_client: Opens the client view in a new browser context.
        timings: Cooldown and delay settings.
    """

    def __init__(
        self,
        client: BuildsClient,
        controls: ControlRegistry,
        notifications: NotificationQueue,
        poller: ReconciliationPoller,
        timers: TimerGroup,
        reload: Callable[[], Awaitable[bool]],
        open_client: Callable[[], object],
        timings: ActionTimings | None = None,
    ) -> None:
        self._client = client
        self._controls = controls
        self._notify = notifications.notify
        self._poller = poller
        self._timers = timers
        self._reload = reload
        self._open_client = open_client
        self.timings = timings or ActionTimings()

    def _failed(self, prefix: str, error: BuildsApiError) -> OperationResult:
        message = f"{prefix}: {error}"
        self._notify(message, True)
        return OperationResult(success=False, message=message, code=error.code)

    def _busy(self, control: Control) -> OperationResult:
        logger.info("Ignoring %s: already in progress", control.id)
        return OperationResult(
            success=False,
            message=f"{control.default_label} already in progress",
            code="busy",
        )

    def _poll(self, build_hash: str | None) -> PollSession | None:
        if not build_hash:
            return None
        # One session per hash; a running one is shared
        for session in self._poller.sessions:
            if session.build_hash == build_hash:
                return session
        return self._poller.start(build_hash)

    async def fetch_current(self) -> OperationResult:
        """Fetch the build currently live upstream.

        The control shows "Fetching..." and is re-enabled immediately on
        failure, or after the cooldown on success even if polling is
        still running. While the control is disabled the call is refused.
        """
        control = self._controls.fetch_current()
        if control.disabled:
            return self._busy(control)
        control.busy(FETCH_BUSY_LABEL)
        try:
            response = await self._client.fetch_current()
        except BuildsApiError as e:
            control.reset()
            return self._failed("Fetch failed", e)

        if response.is_error:
            self._notify(response.message, True)
            control.reset()
            return OperationResult(
                success=False, message=response.message, code="server_error"
            )

        self._notify(response.message)
        target = response.target_hash()
        session = self._poll(target)
        self._timers.call_later(self.timings.fetch_cooldown, control.reset)
        return OperationResult(
            success=True,
            message=response.message,
            build_hash=target,
            details={"session": session} if session else {},
        )

    async def download(self, build_hash: str) -> OperationResult:
        """Download a build and poll until the server has patched it.

        The row's Download control stays disabled on success; the row
        loses its Download action once the snapshot shows it patched.
        A second download of the same build is refused while in flight.
        """
        control = self._controls.download(build_hash)
        if control.disabled:
            return self._busy(control)
        control.busy(DOWNLOAD_BUSY_LABEL)
        try:
            response = await self._client.download(build_hash)
        except BuildsApiError as e:
            control.reset()
            return self._failed("Download failed", e)

        if response.is_error:
            self._notify(response.message, True)
            control.reset()
            return OperationResult(
                success=False,
                message=response.message,
                code="server_error",
                build_hash=build_hash,
            )

        self._notify(response.message)
        session = self._poll(build_hash)
        return OperationResult(
            success=True,
            message=response.message,
            build_hash=build_hash,
            details={"session": session} if session else {},
        )

    async def download_latest(self) -> OperationResult:
        """Download whatever build the server considers the latest."""
        try:
            response = await self._client.download(None)
        except BuildsApiError as e:
            return self._failed("Download failed", e)

        if response.is_error:
            self._notify(response.message, True)
            return OperationResult(
                success=False, message=response.message, code="server_error"
            )

        self._notify(response.message)
        target = response.target_hash()
        session = self._poll(target)
        return OperationResult(
            success=True,
            message=response.message,
            build_hash=target,
            details={"session": session} if session else {},
        )

    async def activate(self, build_hash: str) -> OperationResult:
        """Make a build the active one.

        On an explicit ok the snapshot is reloaded and the client view is
        opened after a short delay. Any other status leaves state alone.
        """
        try:
            response = await self._client.set_active(build_hash)
        except BuildsApiError as e:
            return self._failed("Activation failed", e)

        if not response.is_ok:
            self._notify(response.message, True)
            return OperationResult(
                success=False,
                message=response.message,
                code="server_error",
                build_hash=build_hash,
            )

        self._notify(ACTIVATED_MESSAGE)
        await self._reload()
        self._timers.call_later(self.timings.activate_open_delay, self._open_client)
        return OperationResult(
            success=True, message=response.message, build_hash=build_hash
        )

    async def repatch(self, build_hash: str) -> OperationResult:
        """Re-run patching for a build; only reports the server message."""
        try:
            response = await self._client.repatch(build_hash)
        except BuildsApiError as e:
            return self._failed("Repatch failed", e)

        self._notify(response.message, response.is_error)
        return OperationResult(
            success=not response.is_error,
            message=response.message,
            code="server_error" if response.is_error else None,
            build_hash=build_hash,
        )

    async def set_index_scripts(
        self, build_hash: str, index_scripts: list[str]
    ) -> OperationResult:
        """Override the entry scripts the server injects for a build."""
        try:
            response = await self._client.set_index_scripts(build_hash, index_scripts)
        except BuildsApiError as e:
            return self._failed("Updating index scripts failed", e)

        self._notify(response.message, not response.is_ok)
        return OperationResult(
            success=response.is_ok,
            message=response.message,
            code=None if response.is_ok else "server_error",
            build_hash=build_hash,
        )


__all__ = ["ACTIVATED_MESSAGE", "ActionDispatcher", "ActionTimings"]
