"""Filtering, pagination and action eligibility.

Everything in this module is pure: it derives the visible page from a
snapshot and the view state without I/O or side effects, and is re-run
on every state change.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from build_console.builds.models import BuildRecord
from build_console.types import BuildAction, StatusFilter

PAGE_SIZE = 50


@dataclass(frozen=True)
class ViewState:
    """Operator-controlled view settings."""

    search_text: str = ""
    status_filter: StatusFilter = StatusFilter.ALL
    current_page: int = 1


@dataclass(frozen=True)
class PageView:
    """Derived view of the snapshot.

    Attributes:
        matches: All records matching the search and status predicates.
        rows: The slice of ``matches`` on the current page.
        total_pages: Number of pages (0 when nothing matches).
        current_page: The page ``rows`` were taken from.
    """

    matches: tuple[BuildRecord, ...]
    rows: tuple[BuildRecord, ...]
    total_pages: int
    current_page: int


def matches_search(build: BuildRecord, search_text: str) -> bool:
    """Case-insensitive substring match against the build hash."""
    if not search_text:
        return True
    return search_text.lower() in build.build_hash.lower()


def matches_status(build: BuildRecord, status_filter: StatusFilter) -> bool:
    """Check a build against the status filter."""
    if status_filter is StatusFilter.PATCHED:
        return build.is_patched
    if status_filter is StatusFilter.PENDING:
        return not build.is_patched
    return True


def count_pages(count: int, page_size: int = PAGE_SIZE) -> int:
    """Number of pages needed for ``count`` items."""
    return math.ceil(count / page_size)


def derive_view(
    snapshot: Sequence[BuildRecord],
    view: ViewState,
    page_size: int = PAGE_SIZE,
) -> PageView:
    """Derive the visible page from a snapshot and view state.

    Args:
        snapshot: Builds in server order.
        view: Current search, filter and page.
        page_size: Rows per page.

    Returns:
        PageView with the matching records, the current page slice and
        the page count.
    """
    matches = tuple(
        b
        for b in snapshot
        if matches_search(b, view.search_text)
        and matches_status(b, view.status_filter)
    )
    start = (view.current_page - 1) * page_size
    return PageView(
        matches=matches,
        rows=matches[start : start + page_size],
        total_pages=count_pages(len(matches), page_size),
        current_page=view.current_page,
    )


def available_actions(build: BuildRecord) -> tuple[BuildAction, ...]:
    """Actions valid for a build given its flags.

    Unpatched builds can only be downloaded; patched builds can be
    repatched, and activated unless they already are active.
    """
    if not build.is_patched:
        return (BuildAction.DOWNLOAD,)
    if build.is_active:
        return (BuildAction.REPATCH,)
    return (BuildAction.ACTIVATE, BuildAction.REPATCH)


def find_active(snapshot: Sequence[BuildRecord]) -> BuildRecord | None:
    """Return the first active build, if any."""
    return next((b for b in snapshot if b.is_active), None)


def find_build(snapshot: Sequence[BuildRecord], build_hash: str) -> BuildRecord | None:
    """Return the build with exactly this hash, if present."""
    return next((b for b in snapshot if b.build_hash == build_hash), None)


__all__ = [
    "PAGE_SIZE",
    "PageView",
    "ViewState",
    "available_actions",
    "count_pages",
    "derive_view",
    "find_active",
    "find_build",
    "matches_search",
    "matches_status",
]
