"""Busy state of console controls (buttons).

Each control is locked independently; there is no global lock, so two
rows' controls never block each other.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field

FETCH_CURRENT = "fetch-current"

FETCH_CURRENT_LABEL = "Fetch Current Build"
FETCH_BUSY_LABEL = "Fetching..."
DOWNLOAD_LABEL = "Download"
DOWNLOAD_BUSY_LABEL = "Downloading..."


def download_control(build_hash: str) -> str:
    """Control id of a row's Download button."""
    return f"download:{build_hash}"


@dataclass
class Control:
    """A button that can be disabled while its action is in flight."""

    id: str
    default_label: str
    label: str = ""
    disabled: bool = False
    _on_change: Callable[[Control], None] | None = field(
        default=None, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not self.label:
            self.label = self.default_label

    def busy(self, label: str) -> None:
        """Disable the control and show a progress label."""
        self.disabled = True
        self.label = label
        self._changed()

    def reset(self) -> None:
        """Re-enable the control with its default label."""
        self.disabled = False
        self.label = self.default_label
        self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)


class ControlRegistry:
    """Controls keyed by id, created on first use."""

    def __init__(self, on_change: Callable[[Control], None] | None = None) -> None:
        self._controls: dict[str, Control] = {}
        self._on_change = on_change

    def get(self, control_id: str, default_label: str) -> Control:
        """Return the control with this id, creating it if needed."""
        control = self._controls.get(control_id)
        if control is None:
            control = Control(
                id=control_id, default_label=default_label, _on_change=self._on_change
            )
            self._controls[control_id] = control
        return control

    def find(self, control_id: str) -> Control | None:
        """Return the control with this id if it has been created."""
        return self._controls.get(control_id)

    def fetch_current(self) -> Control:
        """The global "Fetch Current Build" control."""
        return self.get(FETCH_CURRENT, FETCH_CURRENT_LABEL)

    def download(self, build_hash: str) -> Control:
        """The Download control of one build row."""
        return self.get(download_control(build_hash), DOWNLOAD_LABEL)


__all__ = [
    "Control",
    "ControlRegistry",
    "DOWNLOAD_BUSY_LABEL",
    "DOWNLOAD_LABEL",
    "FETCH_BUSY_LABEL",
    "FETCH_CURRENT",
    "FETCH_CURRENT_LABEL",
    "download_control",
]
