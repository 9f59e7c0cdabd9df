"""Application state for the build console.

ConsoleState owns the build snapshot and the view state. All mutations
go through named methods so the page reset/clamp rules live in one
place.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace

from build_console.builds.models import BuildRecord
from build_console.builds.view import PAGE_SIZE, PageView, ViewState, derive_view
from build_console.types import StatusFilter

logger = logging.getLogger(__name__)


class ConsoleState:
    """Snapshot store plus view state.

    The snapshot is an immutable tuple swapped in one assignment, so
    readers never observe a partially updated collection.
    """

    def __init__(self, page_size: int = PAGE_SIZE) -> None:
        self.page_size = page_size
        self._snapshot: tuple[BuildRecord, ...] = ()
        self._view = ViewState()

    @property
    def snapshot(self) -> tuple[BuildRecord, ...]:
        """The last fetched build collection."""
        return self._snapshot

    @property
    def view(self) -> ViewState:
        """Current search text, status filter and page."""
        return self._view

    def replace_snapshot(self, builds: Iterable[BuildRecord]) -> None:
        """Replace the snapshot wholesale.

        Clamps the current page if the new snapshot has fewer pages.
        """
        self._snapshot = tuple(builds)
        logger.debug("Snapshot replaced (%d builds)", len(self._snapshot))
        total = self.derive().total_pages
        if self._view.current_page > max(total, 1):
            self._view = replace(self._view, current_page=max(total, 1))

    def set_search(self, text: str) -> None:
        """Set the search text and go back to the first page."""
        self._view = replace(self._view, search_text=text, current_page=1)

    def set_filter(self, status_filter: StatusFilter | str) -> None:
        """Set the status filter and go back to the first page."""
        self._view = replace(
            self._view, status_filter=StatusFilter(status_filter), current_page=1
        )

    def set_page(self, page: int) -> None:
        """Jump to a page.

        Raises:
            ValueError: If ``page`` is not a positive integer.
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")
        self._view = replace(self._view, current_page=page)

    def derive(self) -> PageView:
        """Derive the visible page for the current state."""
        return derive_view(self._snapshot, self._view, self.page_size)


__all__ = ["ConsoleState"]
