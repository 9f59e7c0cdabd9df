"""Console controller.

ConsoleController owns the application state and wires the client,
renderer, dispatcher, poller and notification queue together. Frontends
(the CLI commands and the interactive shell) talk only to the controller.
"""

from __future__ import annotations

import logging
import webbrowser
from collections.abc import Callable

from build_console.builds.actions import ActionDispatcher, ActionTimings
from build_console.builds.client import BuildsApiError, BuildsClient
from build_console.builds.controls import Control, ControlRegistry, download_control
from build_console.builds.models import BuildRecord
from build_console.builds.poller import PollSession, ReconciliationPoller
from build_console.builds.render import RenderedPage, render_page
from build_console.builds.state import ConsoleState
from build_console.config import Settings
from build_console.notifications import NotificationQueue
from build_console.timers import Clock, Debouncer, TimerGroup
from build_console.types import OperationResult, PollState, StatusFilter

logger = logging.getLogger(__name__)

RenderListener = Callable[[RenderedPage], None]


def open_in_browser(url: str) -> None:
    """Open ``url`` in a new browser tab."""
    logger.info("Opening %s", url)
    webbrowser.open(url, new=2)


class ConsoleController:
    """Single owner of the console's state and timers.

    Args:
        client: Builds API client.
        settings: Application settings.
        clock: Time source; tests pass a virtual clock.
        open_url: Opens a URL in a new browser context.
    """

    def __init__(
        self,
        client: BuildsClient,
        settings: Settings,
        clock: Clock | None = None,
        open_url: Callable[[str], object] = open_in_browser,
    ) -> None:
        self.settings = settings
        self.client = client
        self.clock = clock or Clock()
        self._open_url = open_url

        self.state = ConsoleState(page_size=settings.page_size)
        self.controls = ControlRegistry(on_change=self._control_changed)
        self.notifications = NotificationQueue(
            self.clock,
            display_seconds=settings.toast_display,
            transition_seconds=settings.toast_transition,
        )
        self.timers = TimerGroup(self.clock)
        self.poller = ReconciliationPoller(
            client,
            self.clock,
            on_resolved=self._poll_resolved,
            interval=settings.poll_interval,
            timeout=settings.poll_timeout,
            on_finished=self._poll_finished,
        )
        self.actions = ActionDispatcher(
            client,
            self.controls,
            self.notifications,
            self.poller,
            self.timers,
            reload=self.load,
            open_client=self.open_client,
            timings=ActionTimings(
                fetch_cooldown=settings.fetch_cooldown,
                activate_open_delay=settings.activate_open_delay,
            ),
        )
        self._search = Debouncer(self.clock, settings.search_debounce, self._apply_search)
        self._listeners: list[RenderListener] = []
        self.last_render: RenderedPage | None = None

    # Rendering

    def subscribe(self, listener: RenderListener) -> None:
        """Call ``listener`` with every new RenderedPage."""
        self._listeners.append(listener)

    def render(self) -> RenderedPage:
        """Derive the view and redraw."""
        rendered = render_page(
            self.state.derive(),
            self.state.snapshot,
            self.controls,
            self.settings.client_url,
        )
        self.last_render = rendered
        for listener in self._listeners:
            listener(rendered)
        return rendered

    def _control_changed(self, control: Control) -> None:
        # Row controls are drawn by the renderer; the global one is not
        if control.id.startswith("download:") and self.last_render is not None:
            self.render()

    # Snapshot store

    async def refresh(self) -> bool:
        """Fetch the build list and replace the snapshot.

        On failure the snapshot is left unchanged and an error
        notification is shown.

        Returns:
            True if the snapshot was replaced.
        """
        try:
            builds = await self.client.list_builds()
        except BuildsApiError as e:
            self.notifications.notify(f"Failed to load builds: {e}", True)
            return False
        self.state.replace_snapshot(builds)
        return True

    async def load(self) -> bool:
        """Refresh, go back to the first page and redraw."""
        ok = await self.refresh()
        if ok:
            self.state.set_page(1)
            self.render()
        return ok

    # View controls

    def search(self, text: str) -> None:
        """Update the search text; the view is re-derived after the debounce."""
        self._search.trigger(text)

    def _apply_search(self, text: str) -> None:
        self.state.set_search(text)
        self.render()

    def set_filter(self, status_filter: StatusFilter | str) -> None:
        """Change the status filter and redraw from page 1."""
        self.state.set_filter(status_filter)
        self.render()

    def set_page(self, page: int) -> None:
        """Jump to a page without re-fetching."""
        self.state.set_page(page)
        self.render()

    # Actions

    async def fetch_current(self) -> OperationResult:
        return await self.actions.fetch_current()

    async def download(self, build_hash: str | None = None) -> OperationResult:
        if build_hash is None:
            return await self.actions.download_latest()
        return await self.actions.download(build_hash)

    async def activate(self, build_hash: str) -> OperationResult:
        return await self.actions.activate(build_hash)

    async def repatch(self, build_hash: str) -> OperationResult:
        return await self.actions.repatch(build_hash)

    async def set_index_scripts(
        self, build_hash: str, index_scripts: list[str]
    ) -> OperationResult:
        return await self.actions.set_index_scripts(build_hash, index_scripts)

    def open_client(self) -> None:
        """Open the client view."""
        self._open_url(self.settings.client_url)

    # Polling

    def _poll_resolved(self, session: PollSession, builds: list[BuildRecord]) -> None:
        self.state.replace_snapshot(builds)
        self.render()
        self.notifications.notify(f"Build {session.build_hash[:12]} ready!")

    def _poll_finished(self, session: PollSession) -> None:
        if session.state is not PollState.TIMED_OUT:
            return
        control = self.controls.find(download_control(session.build_hash))
        if control is not None and control.disabled:
            control.reset()

    async def wait_for_polls(self) -> list[PollSession]:
        """Wait until every running poll session has finished."""
        sessions = self.poller.sessions
        for session in sessions:
            await session.wait()
        return sessions

    async def aclose(self) -> None:
        """Cancel timers and polls and close the client."""
        self._search.cancel()
        self.poller.cancel_all()
        self.timers.cancel_all()
        self.notifications.close()
        await self.client.aclose()


__all__ = ["ConsoleController", "open_in_browser"]
