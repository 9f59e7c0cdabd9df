"""Renderer for the build list.

render_page() projects a PageView onto a UI-agnostic RenderedPage
(rows, pagination buttons, status banner). to_renderable() draws a
RenderedPage for the terminal with rich. Neither holds business logic.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from build_console.builds.controls import (
    DOWNLOAD_LABEL,
    ControlRegistry,
    download_control,
)
from build_console.builds.models import BuildRecord
from build_console.builds.view import PageView, available_actions, find_active
from build_console.types import BuildAction

ROW_HASH_CHARS = 12
BANNER_HASH_CHARS = 16

EMPTY_STATE = "No builds found"
NO_ACTIVE_BUILD = "No active build - download and activate one below"

_ACTION_LABELS = {
    BuildAction.DOWNLOAD: DOWNLOAD_LABEL,
    BuildAction.ACTIVATE: "Activate",
    BuildAction.REPATCH: "Repatch",
}

_ACTION_STYLES = {
    BuildAction.DOWNLOAD: "bold blue",
    BuildAction.ACTIVATE: "bold green",
    BuildAction.REPATCH: "dim",
}


@dataclass(frozen=True)
class RenderedAction:
    """A button in a row's action cell."""

    action: BuildAction
    label: str
    disabled: bool = False


@dataclass(frozen=True)
class RenderedRow:
    """One build row.

    Attributes:
        hash_short: Truncated hash shown in the cell.
        hash_title: Full hash (tooltip).
        channel: Channel tag.
        date: Localized build date.
        badges: "active" (if active) followed by "patched" or "pending".
        actions: Buttons valid for this build.
    """

    hash_short: str
    hash_title: str
    channel: str
    date: str
    badges: tuple[str, ...]
    actions: tuple[RenderedAction, ...]


@dataclass(frozen=True)
class PageButton:
    """A pagination button."""

    number: int
    current: bool


@dataclass(frozen=True)
class StatusBanner:
    """Active-build banner.

    ``active_hash`` is None when no build is active.
    """

    text: str
    active_hash: str | None = None
    client_url: str | None = None

    @property
    def has_active(self) -> bool:
        return self.active_hash is not None


@dataclass(frozen=True)
class RenderedPage:
    """Everything drawn for the build list."""

    rows: tuple[RenderedRow, ...]
    pagination: tuple[PageButton, ...]
    banner: StatusBanner
    empty_state: str | None = None


def truncate_hash(build_hash: str, chars: int) -> str:
    """Shorten a hash for display."""
    return build_hash[:chars] + "..."


def format_build_date(build: BuildRecord) -> str:
    """Localized date of a build, or the raw value if it cannot be parsed."""
    parsed = build.build_datetime
    if parsed is None:
        return build.build_date
    return parsed.strftime("%x")


def badges_for(build: BuildRecord) -> tuple[str, ...]:
    """Badge set for a build."""
    status = "patched" if build.is_patched else "pending"
    return ("active", status) if build.is_active else (status,)


def render_row(build: BuildRecord, controls: ControlRegistry) -> RenderedRow:
    """Render a single build row."""
    actions = []
    for action in available_actions(build):
        label = _ACTION_LABELS[action]
        disabled = False
        if action is BuildAction.DOWNLOAD:
            control = controls.find(download_control(build.build_hash))
            if control is not None:
                label, disabled = control.label, control.disabled
        actions.append(RenderedAction(action=action, label=label, disabled=disabled))

    return RenderedRow(
        hash_short=truncate_hash(build.build_hash, ROW_HASH_CHARS),
        hash_title=build.build_hash,
        channel=build.channel,
        date=format_build_date(build),
        badges=badges_for(build),
        actions=tuple(actions),
    )


def render_banner(snapshot: Sequence[BuildRecord], client_url: str) -> StatusBanner:
    """Render the active-build status banner from the whole snapshot."""
    active = find_active(snapshot)
    if active is None:
        return StatusBanner(text=NO_ACTIVE_BUILD)
    short = truncate_hash(active.build_hash, BANNER_HASH_CHARS)
    return StatusBanner(
        text=f"Active build: {short}",
        active_hash=short,
        client_url=client_url,
    )


def render_page(
    page: PageView,
    snapshot: Sequence[BuildRecord],
    controls: ControlRegistry,
    client_url: str,
) -> RenderedPage:
    """Project a derived page onto rows, pagination and banner.

    Args:
        page: Output of the filter/paginator.
        snapshot: Full snapshot (the banner ignores filters).
        controls: Busy state of row controls.
        client_url: URL of the client view for the banner link.

    Returns:
        RenderedPage; an empty page carries ``empty_state`` and no
        pagination.
    """
    banner = render_banner(snapshot, client_url)
    if not page.rows:
        return RenderedPage(
            rows=(), pagination=(), banner=banner, empty_state=EMPTY_STATE
        )

    pagination: tuple[PageButton, ...] = ()
    if page.total_pages > 1:
        pagination = tuple(
            PageButton(number=n, current=n == page.current_page)
            for n in range(1, page.total_pages + 1)
        )

    return RenderedPage(
        rows=tuple(render_row(b, controls) for b in page.rows),
        pagination=pagination,
        banner=banner,
    )


def to_renderable(rendered: RenderedPage) -> RenderableType:
    """Draw a RenderedPage with rich."""
    banner = rendered.banner
    if banner.has_active:
        banner_text = Text.assemble(
            ("● ", "green"),
            "Active build: ",
            (banner.active_hash or "", "bold"),
            " - ",
            ("Open client", f"link {banner.client_url}"),
            f" ({banner.client_url})",
        )
    else:
        banner_text = Text.assemble(("● ", "red"), banner.text)
    parts: list[RenderableType] = [Panel(banner_text, expand=False)]

    if rendered.empty_state is not None:
        parts.append(Text(rendered.empty_state, style="yellow"))
        return Group(*parts)

    table = Table(show_lines=False)
    table.add_column("Hash", no_wrap=True)
    table.add_column("Channel")
    table.add_column("Date")
    table.add_column("Status")
    table.add_column("Actions")
    for row in rendered.rows:
        badges = Text()
        for badge in row.badges:
            style = {"active": "bold green", "patched": "cyan"}.get(badge, "yellow")
            badges.append(f"[{badge}] ", style=style)
        actions = Text()
        for action in row.actions:
            style = "dim strike" if action.disabled else _ACTION_STYLES[action.action]
            actions.append(f"<{action.label}> ", style=style)
        table.add_row(row.hash_short, row.channel, row.date, badges, actions)
    parts.append(table)

    if rendered.pagination:
        pages = Text("Pages: ")
        for button in rendered.pagination:
            if button.current:
                pages.append(f"[{button.number}] ", style="bold reverse")
            else:
                pages.append(f"{button.number} ")
        parts.append(pages)

    return Group(*parts)


__all__ = [
    "BANNER_HASH_CHARS",
    "EMPTY_STATE",
    "NO_ACTIVE_BUILD",
    "PageButton",
    "ROW_HASH_CHARS",
    "RenderedAction",
    "RenderedPage",
    "RenderedRow",
    "StatusBanner",
    "badges_for",
    "format_build_date",
    "render_banner",
    "render_page",
    "render_row",
    "to_renderable",
    "truncate_hash",
]
