"""Allow running as ``python -m build_console``."""

from build_console.cli import app

app()
