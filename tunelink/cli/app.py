"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import signal
from pathlib import Path

import aiofiles
import typer
from rich.console import Console
from rich.logging import RichHandler

from tunelink import __version__
from tunelink.api.songlink import SongLinkClient
from tunelink.core.pipeline import TrackPipeline
from tunelink.exceptions import CancellationError, TunelinkError
from tunelink.media.integrity import TagIntegrityChecker
from tunelink.models.cancel import CancelToken
from tunelink.models.config import AppConfig
from tunelink.storage.config_manager import ConfigManager
from tunelink.utils.path import PathFormatter, create_dir

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_download_summary,
    print_track_info,
)

console = Console()

logging.basicConfig(
    level="WARNING",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("tunelink")

app = typer.Typer(
    name="tunelink",
    help=(
        "Resolve a music link from any streaming service and download the track"
        " with tags. Use 'tunelink <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "tunelink"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(**cli_options) -> AppConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except TunelinkError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


def _install_cancel_handler(token: CancelToken) -> None:
    """Routes Ctrl-C to the request's cancel token where the loop supports it."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        log.debug("Signal handlers are not supported on this platform.")


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """tunelink CLI"""
    if version:
        console.print(f"[bold]tunelink[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("tunelink").setLevel(log_level)

    if show_config:
        print_config(CONFIG_FILE, _load_config())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    arl: str = typer.Argument(..., help="Deezer ARL session cookie."),
    secret: str = typer.Argument(..., help="Shared secret for the stripe cipher."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Initialize configuration with Deezer credentials."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    try:
        ConfigManager(CONFIG_FILE).save_new_config({"arl": arl, "secret": secret})
    except TunelinkError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e

    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")
    console.print("Ready! Try: [cyan]tunelink download <URL>[/cyan]")


@app.command()
def resolve(
    url: str = typer.Argument(..., help="A track URL from any streaming service."),
):
    """Show which platforms carry a track and which one would be used."""
    config = _load_config()
    client = SongLinkClient(
        api_url=config.songlink_url,
        user_country=config.user_country,
        timeout=config.resolve_timeout,
    )
    try:
        track_info = asyncio.run(client.resolve(url))
    except TunelinkError as e:
        console.print(format_error_with_suggestions(e, {"url": url}))
        raise typer.Exit(code=1) from e
    print_track_info(track_info, console)


async def _download_one(
    pipeline: TrackPipeline,
    url: str,
    formatter: PathFormatter,
    output_dir: Path,
    extension: str,
) -> None:
    token = CancelToken()
    _install_cancel_handler(token)

    result = await pipeline.run(url, token)
    path = output_dir / formatter.format_path(result.title, result.artist, extension)

    async with aiofiles.open(path, "wb") as f:
        await f.write(result.data)

    if result.tagged and not TagIntegrityChecker.check_id3(result.data):
        log.warning(f"[yellow]Tag block of '{path.name}' did not verify.[/yellow]")
    print_download_summary(result, path, console)


@app.command(name="download")
def download_command(
    urls: list[str] = typer.Argument(  # noqa: B008
        ..., help="One or more track URLs from any streaming service."
    ),
    output_dir: Path = typer.Option(  # noqa: B008
        Path("."), "-d", "--dir", help="Directory to save the files in."
    ),
    output_template: str | None = typer.Option(
        None,
        "-o",
        "--output",
        help="File name template. Placeholders: {artist}, {title}, {ext}.",
    ),
    quality: str | None = typer.Option(
        None, "-q", "--quality", help="Deezer format: MP3_128 or MP3_320."
    ),
    embed_cover: bool | None = typer.Option(
        None, "--cover/--no-cover", help="Embed the cover art in the tag."
    ),
):
    """Download tracks and write them as tagged audio files."""
    config = _load_config(
        output_template=output_template, quality=quality, embed_cover=embed_cover
    )
    pipeline = TrackPipeline.from_config(config)
    formatter = PathFormatter(config.output_template)
    create_dir(output_dir)

    failures = 0
    for url in dict.fromkeys(urls):
        try:
            asyncio.run(
                _download_one(
                    pipeline, url, formatter, output_dir, config.file_extension
                )
            )
        except CancellationError:
            console.print("\n[yellow]⚠️  Download cancelled.[/yellow]")
            raise typer.Exit(code=130) from None
        except TunelinkError as e:
            failures += 1
            console.print(format_error_with_suggestions(e, {"url": url}))
        except OSError as e:
            failures += 1
            console.print(format_error_with_suggestions(e, {"url": url}))

    if failures:
        raise typer.Exit(code=1)
