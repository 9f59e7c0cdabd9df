"""Thin CLI wrapper for build_console.

This module provides the command-line interface using Typer.
All business logic is delegated to the controller and core modules.
"""

import asyncio
import json
import logging
import shlex
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from build_console import __version__
from build_console.builds.client import BuildsClient
from build_console.builds.render import to_renderable
from build_console.config import Settings, get_settings, print_settings_json
from build_console.controller import ConsoleController
from build_console.notifications import Notification
from build_console.types import NotificationState, OperationResult, PollState, StatusFilter

app = typer.Typer(
    name="build-console",
    help="Build Console - list, download, patch and activate client builds",
    no_args_is_help=True,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"build-console version {__version__}")
        raise typer.Exit()


def configure_logging(level: str) -> None:
    """Send the package's log records to stderr through rich."""
    package_logger = logging.getLogger("build_console")
    package_logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in package_logger.handlers):
        package_logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False)
        )


@app.callback()
def main(
    ctx: typer.Context,
    url: Annotated[
        str | None,
        typer.Option("--url", "-u", help="Build server base URL"),
    ] = None,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Build Console - list, download, patch and activate client builds."""
    settings = get_settings()
    if url:
        settings = settings.model_copy(update={"base_url": url})
    configure_logging(settings.log_level)
    ctx.obj = settings


def _settings(ctx: typer.Context) -> Settings:
    settings = ctx.obj
    if isinstance(settings, Settings):
        return settings
    return get_settings()


def print_notification(note: Notification) -> None:
    """Print a notification when it first appears."""
    if note.state is not NotificationState.VISIBLE:
        return
    if note.is_error:
        console.print(f"[red]✗ {note.message}[/red]")
    else:
        console.print(f"[green]✓ {note.message}[/green]")


def _run(
    settings: Settings,
    body: Callable[[ConsoleController], Awaitable[Any]],
    open_url: Callable[[str], object] | None = None,
) -> Any:
    """Run ``body`` with a controller bound to the configured server."""

    async def runner() -> Any:
        client = BuildsClient(settings.base_url, timeout=settings.request_timeout)
        if open_url is None:
            controller = ConsoleController(client, settings)
        else:
            controller = ConsoleController(client, settings, open_url=open_url)
        controller.notifications.subscribe(print_notification)
        try:
            return await body(controller)
        finally:
            await controller.aclose()

    return asyncio.run(runner())


async def _wait_for_polls(controller: ConsoleController) -> bool:
    """Wait for polls started by an action; False if any timed out."""
    sessions = await controller.wait_for_polls()
    ok = True
    for session in sessions:
        if session.state is PollState.TIMED_OUT:
            console.print(
                f"[yellow]Gave up waiting for build {session.build_hash[:12]}[/yellow]"
            )
            ok = False
    return ok


def _exit_on_failure(result: OperationResult) -> None:
    if not result.success:
        raise typer.Exit(code=1)


@app.command()
def config(
    ctx: typer.Context,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = _settings(ctx)
    if json_output:
        console.print(print_settings_json(settings))
        return

    console.print("[bold]Effective Configuration:[/bold]")
    console.print()
    console.print("[bold]Server:[/bold]")
    console.print(f"  Base URL:            {settings.base_url}")
    console.print(f"  Client URL:          {settings.client_url}")
    console.print(f"  Request timeout:     {settings.request_timeout}")
    console.print()
    console.print("[bold]View:[/bold]")
    console.print(f"  Page size:           {settings.page_size}")
    console.print(f"  Log level:           {settings.log_level}")
    console.print()
    console.print("[bold]Timers (seconds):[/bold]")
    console.print(f"  Poll interval:       {settings.poll_interval}")
    console.print(f"  Poll timeout:        {settings.poll_timeout}")
    console.print(f"  Fetch cooldown:      {settings.fetch_cooldown}")
    console.print(f"  Activate open delay: {settings.activate_open_delay}")
    console.print(f"  Search debounce:     {settings.search_debounce}")
    console.print(f"  Toast display:       {settings.toast_display}")
    console.print(f"  Toast transition:    {settings.toast_transition}")


builds_app = typer.Typer(help="Manage builds on the server")
app.add_typer(builds_app, name="builds")


@builds_app.command("list")
def builds_list(
    ctx: typer.Context,
    search: Annotated[
        str,
        typer.Option("--search", "-s", help="Filter by build hash substring"),
    ] = "",
    status: Annotated[
        StatusFilter,
        typer.Option("--status", help="Filter by status"),
    ] = StatusFilter.ALL,
    page: Annotated[
        int,
        typer.Option("--page", "-p", min=1, help="Page to show"),
    ] = 1,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List builds known to the server."""
    settings = _settings(ctx)

    async def body(controller: ConsoleController) -> bool:
        if not await controller.load():
            return False
        controller.state.set_search(search)
        controller.state.set_filter(status)
        controller.state.set_page(page)
        view = controller.state.derive()
        if json_output:
            output = [b.model_dump() for b in view.rows]
            console.print(json.dumps(output, indent=2))
        else:
            console.print(to_renderable(controller.render()))
            if view.total_pages:
                console.print(
                    f"Page {view.current_page}/{view.total_pages} "
                    f"({len(view.matches)} matching build(s))"
                )
        return True

    if not _run(settings, body):
        raise typer.Exit(code=1)


@builds_app.command("fetch-current")
def builds_fetch_current(
    ctx: typer.Context,
    wait: Annotated[
        bool,
        typer.Option("--wait", "-w", help="Wait until the build is patched"),
    ] = False,
) -> None:
    """Fetch and patch the build currently live upstream."""
    settings = _settings(ctx)

    async def body(controller: ConsoleController) -> OperationResult:
        result = await controller.fetch_current()
        if result.success and wait and not await _wait_for_polls(controller):
            result.success = False
        return result

    _exit_on_failure(_run(settings, body))


@builds_app.command("download")
def builds_download(
    ctx: typer.Context,
    build_hash: Annotated[
        str | None,
        typer.Argument(help="Build hash (omit to download the latest build)"),
    ] = None,
    wait: Annotated[
        bool,
        typer.Option("--wait", "-w", help="Wait until the build is patched"),
    ] = False,
) -> None:
    """Download a build and have the server patch it."""
    settings = _settings(ctx)

    async def body(controller: ConsoleController) -> OperationResult:
        result = await controller.download(build_hash)
        if result.success and wait and not await _wait_for_polls(controller):
            result.success = False
        return result

    _exit_on_failure(_run(settings, body))


@builds_app.command("activate")
def builds_activate(
    ctx: typer.Context,
    build_hash: Annotated[str, typer.Argument(help="Build hash to activate")],
    no_open: Annotated[
        bool,
        typer.Option("--no-open", help="Do not open the client afterwards"),
    ] = False,
) -> None:
    """Set the active build and open the client."""
    settings = _settings(ctx)

    async def body(controller: ConsoleController) -> OperationResult:
        result = await controller.activate(build_hash)
        if result.success:
            await controller.timers.join()
            if controller.last_render is not None:
                console.print(to_renderable(controller.last_render))
        return result

    open_url = (lambda url: None) if no_open else None
    _exit_on_failure(_run(settings, body, open_url=open_url))


@builds_app.command("repatch")
def builds_repatch(
    ctx: typer.Context,
    build_hash: Annotated[str, typer.Argument(help="Build hash to repatch")],
) -> None:
    """Re-run the patch pipeline for a downloaded build."""
    settings = _settings(ctx)

    async def body(controller: ConsoleController) -> OperationResult:
        return await controller.repatch(build_hash)

    _exit_on_failure(_run(settings, body))


@builds_app.command("index-scripts")
def builds_index_scripts(
    ctx: typer.Context,
    build_hash: Annotated[str, typer.Argument(help="Build hash")],
    scripts: Annotated[
        list[str],
        typer.Argument(help="Entry script file names, in load order"),
    ],
) -> None:
    """Override the entry scripts served for a build."""
    settings = _settings(ctx)

    async def body(controller: ConsoleController) -> OperationResult:
        return await controller.set_index_scripts(build_hash, scripts)

    _exit_on_failure(_run(settings, body))


SHELL_HELP = """\
Commands:
  refresh                 reload the build list
  search [TEXT]           filter by hash substring (empty clears)
  filter all|patched|pending
  page N                  go to page N
  fetch                   fetch the current upstream build
  download [HASH]         download a build (latest if omitted)
  activate HASH           activate a build
  repatch HASH            repatch a build
  scripts HASH NAME...    override entry scripts
  quit                    leave the console
HASH may be any unique prefix of a build hash."""


def _report_busy(result: OperationResult) -> None:
    if result.code == "busy":
        console.print(f"[yellow]{result.message}[/yellow]")


def resolve_hash(controller: ConsoleController, prefix: str) -> str | None:
    """Expand a unique hash prefix against the snapshot."""
    candidates = [
        b.build_hash
        for b in controller.state.snapshot
        if b.build_hash.lower().startswith(prefix.lower())
    ]
    if len(candidates) == 1:
        return candidates[0]
    if not candidates:
        console.print(f"[red]No build matches {prefix}[/red]")
    else:
        console.print(f"[red]{prefix} is ambiguous ({len(candidates)} builds)[/red]")
    return None


async def run_shell_command(controller: ConsoleController, line: str) -> bool:
    """Execute one shell line.

    Returns:
        False when the shell should exit.
    """
    try:
        words = shlex.split(line)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        return True
    if not words:
        return True
    command, args = words[0].lower(), words[1:]

    if command in ("quit", "exit"):
        return False
    if command == "help":
        console.print(SHELL_HELP)
    elif command == "refresh":
        await controller.load()
    elif command == "search":
        controller.search(" ".join(args))
    elif command == "filter" and len(args) == 1:
        try:
            controller.set_filter(args[0].lower())
        except ValueError:
            console.print("[red]Valid filters: all, patched, pending[/red]")
    elif command == "page" and len(args) == 1 and args[0].isdigit():
        try:
            controller.set_page(int(args[0]))
        except ValueError as e:
            console.print(f"[red]{e}[/red]")
    elif command == "fetch":
        _report_busy(await controller.fetch_current())
    elif command == "download" and len(args) <= 1:
        target = resolve_hash(controller, args[0]) if args else None
        if not args or target:
            _report_busy(await controller.download(target))
    elif command in ("activate", "repatch") and len(args) == 1:
        target = resolve_hash(controller, args[0])
        if target and command == "activate":
            await controller.activate(target)
        elif target:
            await controller.repatch(target)
    elif command == "scripts" and len(args) >= 2:
        target = resolve_hash(controller, args[0])
        if target:
            await controller.set_index_scripts(target, args[1:])
    else:
        console.print(f"[red]Unknown command: {line}[/red] (try 'help')")
    return True


@app.command()
def shell(ctx: typer.Context) -> None:
    """Interactive console; polls keep running in the background."""
    settings = _settings(ctx)

    async def body(controller: ConsoleController) -> None:
        controller.subscribe(lambda page: console.print(to_renderable(page)))
        await controller.load()
        console.print("Type 'help' for commands.")
        while True:
            try:
                line = await asyncio.to_thread(console.input, "[bold]builds>[/bold] ")
            except (EOFError, KeyboardInterrupt):
                break
            if not await run_shell_command(controller, line):
                break

    _run(settings, body)


__all__ = ["app", "resolve_hash", "run_shell_command"]
