"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from tunelink.core.pipeline import PipelineResult
from tunelink.exceptions import AllPlatformsFailedError
from tunelink.models.config import AppConfig
from tunelink.models.track import TrackInfo


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "AuthenticationError": [
            "• Your ARL cookie may have expired. Copy a fresh one from the browser.",
            "• Run `tunelink init <ARL> <SECRET>` or set DEEZER_ARL.",
        ],
        "ConfigurationError": [
            "• Check the values in your configuration file.",
            "• DEEZER_ARL and DEEZER_SECRET environment variables override it.",
        ],
        "NotFoundError": [
            "• The link service does not know this track.",
            "• Try the track's URL from another platform.",
        ],
        "InvalidInputError": [
            "• Make sure the URL points to a single track.",
        ],
        "AllPlatformsFailedError": [
            "• None of the platforms carrying this track could serve it.",
            "• Run the command with -vv to see every attempt.",
        ],
        "TransportError": [
            "• A network connection issue occurred.",
            "• The remote service might be temporarily unavailable.",
            "• Please try again in a few minutes.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)

    if isinstance(error, AllPlatformsFailedError) and error.attempts:
        attempts = Text()
        for platform, attempt_error in error.attempts:
            attempts.append(f"• {platform}: ", style="cyan")
            attempts.append(f"{type(attempt_error).__name__}: {attempt_error}\n")
        content.add_row(attempts)

    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(Text("\n".join(suggestions)))

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_track_info(track_info: TrackInfo, console: Console | None = None) -> None:
    """Displays a resolved track and its platform links."""
    console = console or Console()

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold cyan")
    table.add_column("Platform")
    table.add_column("URL", overflow="fold")
    for link in track_info.available_platforms:
        marker = " [green]★[/green]" if link.platform == track_info.platform else ""
        table.add_row(f"{link.platform}{marker}", link.url)

    header = Text()
    header.append(track_info.title or "Unknown Title", style="bold")
    header.append(" by ")
    header.append(track_info.artist or "Unknown Artist", style="bold")

    console.print(header)
    if track_info.cover:
        console.print(f"[dim]Cover: {track_info.cover}[/dim]")
    console.print(table)


def print_download_summary(
    result: PipelineResult, path: Path, console: Console | None = None
) -> None:
    """Displays the outcome of a single download."""
    console = console or Console()
    size_kb = len(result.data) / 1024
    size_str = f"{size_kb / 1024:.1f} MB" if size_kb >= 1024 else f"{size_kb:.0f} KB"

    status = "[green]✓ Tagged[/green]" if result.tagged else "[yellow]○ Untagged[/yellow]"
    console.print(
        f"{status} [bold]{result.artist} - {result.title}[/bold] "
        f"from [cyan]{result.track.platform}[/cyan] "
        f"→ [dim]{path}[/dim] ({size_str})"
    )
    for warning in result.warnings:
        console.print(f"  [yellow]⚠ {warning.message}[/yellow]")


def print_config(config_path: Path, config: AppConfig) -> None:
    """Displays the current configuration in a formatted table, masking secrets."""
    console = Console()
    table = Table(
        title=f"Configuration from [cyan]{config_path}[/cyan]",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold magenta",
    )
    table.add_column("Setting", style="dim", width=22)
    table.add_column("Value")

    for key, value in sorted(config.model_dump().items()):
        if key in ("arl", "secret") and value:
            display_value = f"{str(value)[:4]}…" + "*" * 8
        else:
            display_value = str(value)
        table.add_row(key, display_value)

    console.print(table)
