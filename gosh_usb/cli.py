"""Thin CLI wrapper for gosh_usb.

This module provides the command-line interface using Typer.
All lifecycle logic is delegated to :class:`gosh_usb.core.AppContext`.
"""

import asyncio
import logging
from dataclasses import asdict
from enum import Enum
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn
from rich.theme import Theme as RichTheme

from gosh_usb import __version__
from gosh_usb.backend import (
    Backend,
    BackendError,
    DeviceNotFoundError,
    ImageValidation,
    LocalBackend,
    format_eta,
    format_speed,
)
from gosh_usb.config import Settings, get_settings, print_settings_json
from gosh_usb.core import AppContext, ConfirmationPrompt, WriteOutcome
from gosh_usb.core.context import open_preference_store
from gosh_usb.preferences import PREFERENCE_KEYS, coerce_value
from gosh_usb.state import AppState, actions
from gosh_usb.types import ChecksumAlgorithm, ChecksumComparison, Theme

app = typer.Typer(
    name="gosh-usb",
    help="Gosh USB Creator - write disk images to removable drives",
    no_args_is_help=True,
)

# Named styles used in CLI markup; every console theme defines all of them
CONSOLE_THEMES = {
    Theme.SYSTEM: RichTheme(
        {"success": "green", "warning": "yellow", "error": "red", "muted": "dim"}
    ),
    Theme.LIGHT: RichTheme(
        {
            "success": "dark_green",
            "warning": "dark_orange3",
            "error": "red3",
            "muted": "grey39",
        }
    ),
    Theme.DARK: RichTheme(
        {
            "success": "bright_green",
            "warning": "bright_yellow",
            "error": "bright_red",
            "muted": "grey62",
        }
    ),
}

console = Console(theme=CONSOLE_THEMES[Theme.SYSTEM])
err_console = Console(stderr=True)


def apply_console_theme(theme: Theme) -> None:
    """Apply the theme preference to CLI output."""
    console.push_theme(CONSOLE_THEMES[theme])


def get_backend(settings: Settings) -> Backend:
    """Return the backend the CLI drives."""
    return LocalBackend(settings=settings)


def configure_logging(level: str) -> None:
    """Send log records to stderr through Rich."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def print_notification(title: str, body: str) -> None:
    console.print(f"[bold]{title}[/bold]: {body}")


def _fail(message: str) -> typer.Exit:
    console.print(f"[error]{message}[/error]")
    return typer.Exit(code=1)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"gosh-usb-creator version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
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
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override the configured log level"),
    ] = None,
) -> None:
    """Gosh USB Creator - write disk images to removable drives."""
    configure_logging(log_level or get_settings().log_level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print_json(print_settings_json(settings))
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Database URL:        {settings.db_url}")
        console.print(f"  sysfs block dir:     {settings.sys_block_dir}")
        console.print(f"  Mounts file:         {settings.mounts_file}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Poll interval (s):   {settings.poll_interval}")
        console.print(f"  Log level:           {settings.log_level}")
        console.print()
        console.print("[bold]I/O (bytes):[/bold]")
        console.print(f"  Write block size:    {settings.write_block_size}")
        console.print(f"  Checksum block size: {settings.checksum_block_size}")


@app.command()
def devices(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """List removable block devices."""
    backend = get_backend(get_settings())
    try:
        found = asyncio.run(backend.list_devices())
    except BackendError as e:
        raise _fail(e.message) from None

    if json_output:
        console.print_json(data=[d.model_dump(mode="json") for d in found])
        return

    if not found:
        console.print("[warning]No removable devices found[/warning]")
        return

    console.print(f"[bold]Found {len(found)} removable device(s):[/bold]")
    for device in found:
        console.print(f"  {device.path}  {device.name}  ({device.size_human})")
        if device.mount_points:
            console.print(
                f"    [muted]Mounted at: {', '.join(device.mount_points)}[/muted]"
            )


@app.command()
def info(
    path: Annotated[str, typer.Argument(help="Path to image file")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show image file metadata."""
    backend = get_backend(get_settings())
    try:
        file_info = asyncio.run(backend.get_file_info(path))
    except BackendError as e:
        raise _fail(e.message) from None

    if json_output:
        console.print_json(file_info.model_dump_json())
    else:
        console.print(f"[bold]{file_info.name}[/bold]")
        console.print(f"  Path: {file_info.path}")
        console.print(f"  Size: {file_info.size_human} ({file_info.size} bytes)")


@app.command()
def validate(
    path: Annotated[str, typer.Argument(help="Path to image file")],
    device: Annotated[
        str | None,
        typer.Option(
            "--device", "-d", help="Check the image fits this device (e.g., /dev/sdX)"
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Validate an image file's format and size."""
    backend = get_backend(get_settings())

    async def run() -> ImageValidation:
        device_size = None
        if device is not None:
            listed = {d.path: d for d in await backend.list_devices()}
            if device not in listed:
                raise DeviceNotFoundError(device)
            device_size = listed[device].size
        return await backend.validate_image(path, device_size)

    try:
        result = asyncio.run(run())
    except BackendError as e:
        raise _fail(e.message) from None

    if json_output:
        console.print_json(result.model_dump_json())
    else:
        if result.is_valid:
            console.print(f"[success]✓ Valid image[/success] ({result.format})")
        else:
            console.print(f"[error]✗ Invalid image[/error] ({result.format})")
        for error in result.errors:
            console.print(f"  [error]Error:[/error] {error}")
        for warning in result.warnings:
            console.print(f"  [warning]Warning:[/warning] {warning}")

    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command()
def checksum(
    path: Annotated[str, typer.Argument(help="Path to image file")],
    algorithm: Annotated[
        ChecksumAlgorithm,
        typer.Option("--algorithm", "-a", help="Digest algorithm"),
    ] = ChecksumAlgorithm.SHA256,
    expected: Annotated[
        str | None,
        typer.Option("--expected", "-e", help="Expected digest to compare against"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Calculate an image checksum and optionally compare it.

    Exits with status 1 when the expected digest does not match.
    """
    settings = get_settings()

    async def decline(prompt: ConfirmationPrompt) -> bool:
        return False

    async def run() -> AppState | None:
        ctx = AppContext(get_backend(settings), decline, settings=settings, poll=False)
        async with ctx:
            if await ctx.selector.select_image(path) is None:
                return None
            ctx.checksum.set_algorithm(algorithm)
            if expected is not None:
                ctx.checksum.set_expected(expected)
            await ctx.checksum.calculate()
            return ctx.state

    state = asyncio.run(run())
    if state is None:
        raise _fail(f"Failed to read file: {path}")
    if state.calculated_checksum is None:
        raise _fail("Checksum calculation failed")

    comparison = state.checksum_comparison
    if json_output:
        output = {
            "path": path,
            "algorithm": algorithm.value,
            "checksum": state.calculated_checksum,
            "expected": expected,
            "comparison": comparison.value,
        }
        console.print_json(data=output)
    else:
        console.print(f"{algorithm.value}: {state.calculated_checksum}")
        if comparison == ChecksumComparison.MATCH:
            console.print("[success]✓ Checksum matches[/success]")
        elif comparison == ChecksumComparison.MISMATCH:
            console.print("[error]✗ Checksum mismatch[/error]")

    if comparison == ChecksumComparison.MISMATCH:
        raise typer.Exit(code=1)


@app.command()
def write(
    image_path: Annotated[str, typer.Argument(help="Path to image file")],
    device: Annotated[str, typer.Argument(help="Device path (e.g., /dev/sdX)")],
    verify: Annotated[
        bool | None,
        typer.Option(
            "--verify/--no-verify",
            help="Read back and compare after writing (default: saved preference)",
        ),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip the confirmation prompt"),
    ] = False,
) -> None:
    """Write an image to a removable device.

    Everything on the device is erased. Requires explicit confirmation
    unless --yes is given.
    """
    settings = get_settings()

    async def confirm(prompt: ConfirmationPrompt) -> bool:
        console.print(f"[bold][warning]{prompt.title}[/warning][/bold]")
        if yes:
            console.print(prompt.message)
            return True
        return await asyncio.to_thread(typer.confirm, prompt.message, default=False)

    async def run() -> tuple[WriteOutcome, AppState]:
        ctx = AppContext(
            get_backend(settings),
            confirm,
            settings=settings,
            notifier=print_notification,
            apply_theme=apply_console_theme,
            poll=False,
        )
        if verify is not None:
            # Applied before start so the override is not saved as a preference
            ctx.store.dispatch(actions.VerifyAfterWriteChanged(verify))

        async with ctx:
            await ctx.discovery.refresh()
            target = next((d for d in ctx.state.devices if d.path == device), None)
            if target is None:
                raise DeviceNotFoundError(device)
            ctx.store.dispatch(actions.DeviceSelected(target))

            if await ctx.selector.select_image(image_path) is None:
                raise BackendError(f"Failed to read file: {image_path}")

            with Progress(
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                TextColumn("{task.fields[detail]}"),
                console=console,
            ) as progress:
                task = progress.add_task("Preparing to write...", total=100, detail="")

                def show(old: AppState, new: AppState) -> None:
                    detail = ""
                    if new.write_progress is not None:
                        detail = (
                            f"{format_speed(new.write_progress.speed_bps)} "
                            f"ETA {format_eta(new.write_progress.eta_seconds)}"
                        )
                    progress.update(
                        task,
                        completed=new.progress_percent,
                        description=new.status_message or "Waiting...",
                        detail=detail,
                    )

                unsubscribe = ctx.store.subscribe(show)
                try:
                    outcome = await ctx.orchestrator.request_write()
                finally:
                    unsubscribe()
            return outcome, ctx.state

    try:
        outcome, state = asyncio.run(run())
    except BackendError as e:
        raise _fail(e.message) from None

    if outcome == WriteOutcome.DECLINED:
        console.print("[warning]Aborted[/warning]")
        raise typer.Exit(code=0)
    if outcome == WriteOutcome.REJECTED:
        raise _fail("Write could not be started")
    if outcome == WriteOutcome.FAILED:
        raise _fail(f"✗ Write failed: {state.write_error}")

    console.print(f"[success]✓ {state.status_message}[/success]")


prefs_app = typer.Typer(help="Show and change saved preferences")
app.add_typer(prefs_app, name="prefs")


def _field_name(name: str) -> str:
    return name.strip().lower().replace("-", "_")


@prefs_app.command("show")
def prefs_show(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show saved preferences."""
    preferences = open_preference_store(get_settings()).load()
    values = {
        name: value.value if isinstance(value, Enum) else value
        for name, value in asdict(preferences).items()
    }
    if json_output:
        console.print_json(data=values)
        return

    console.print("[bold]Preferences:[/bold]")
    for name, value in values.items():
        console.print(f"  {name.replace('_', '-'):<20} {value}")


@prefs_app.command("set")
def prefs_set(
    name: Annotated[
        str,
        typer.Argument(
            help="Preference (theme, verify-after-write, mode, auto-eject, "
            "show-notification)"
        ),
    ],
    value: Annotated[str, typer.Argument(help="New value")],
) -> None:
    """Change a saved preference."""
    field_name = _field_name(name)
    if field_name not in PREFERENCE_KEYS:
        raise _fail(f"Unknown preference: {name}")
    try:
        parsed = coerce_value(field_name, value)
    except ValueError as e:
        raise _fail(f"Invalid value for {name}: {e}") from None

    open_preference_store(get_settings()).set(field_name, parsed)
    console.print(f"[success]✓ {name} set to {value.strip().lower()}[/success]")


if __name__ == "__main__":
    app()
