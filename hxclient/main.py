"""Main entry point for the hxclient command line tool.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from pathlib import Path
from typing import Annotated, Any, Coroutine, Dict, List, Optional

import typer

from hxclient import build
from hxclient.core.client import Client
from hxclient.core.command_handler import CommandHandler
from hxclient.infrastructure.cli.display import ConsoleDisplay
from hxclient.infrastructure.config.settings import (
    DEFAULT_CONFIG_FILE,
    load_client_settings,
    load_configuration,
)
from hxclient.infrastructure.monitoring.logger_setup import setup_logging

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

# Populated by the app callback unless already set (tests inject their own)
_dependencies: Dict[str, Any] = {}


def create_dependencies(
    config_file: Optional[Path] = None,
    no_cache: bool = False,
    retries: Optional[int] = None,
    debug: bool = False,
) -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root. Command line flags override values
    from the configuration sources.
    """
    if config_file is not None:
        load_configuration(config_file=config_file, reload=True)
    settings = load_client_settings()

    if debug:
        settings.debug = True
        settings.logging.level = "DEBUG"
    if retries is not None:
        settings.retry.max_retries = retries
    if no_cache:
        settings.cache.enabled = False

    setup_logging(
        log_level=settings.logging.level,
        log_format=settings.logging.format,
        log_file=settings.logging.file,
    )
    logger.info("Configuration and logging initialized.")

    ui = ConsoleDisplay()
    client = Client.from_settings(settings)
    logger.debug(f"Client created with retry policy {client.retry_policy!r}")

    return {
        'settings': settings,
        'ui': ui,
        'client': client,
        'command_handler': CommandHandler(client=client, ui=ui),
    }


# --- Typer App Definition ---
app = typer.Typer(
    name=build.NAME,
    help=f"{build.NAME} {build.VERSION}: HTTP client with response caching, rate-limited retries and jittered backoff.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, bool]) -> None:
    """Runs an async command handler and closes the client afterwards.

    Exits with status 1 when the handler reports a failure.
    """
    async def runner() -> bool:
        try:
            return await coro
        finally:
            await _dependencies['client'].aclose()

    if not asyncio.run(runner()):
        raise typer.Exit(code=1)


def _parse_headers(values: Optional[List[str]]) -> Dict[str, str]:
    """Parses repeated 'Name: value' options."""
    headers: Dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition(':')
        if not sep or not name.strip():
            raise typer.BadParameter(f"Header must look like 'Name: value', got {item!r}", param_hint="--header")
        headers[name.strip()] = value.strip()
    return headers


# --- CLI Commands ---

UrlArgument = Annotated[str, typer.Argument(help="Absolute http(s) URL.")]

HeaderOption = Annotated[
    Optional[List[str]],
    typer.Option("--header", "-H", help="Request header as 'Name: value'. May be repeated.")
]

TimeoutOption = Annotated[
    Optional[float],
    typer.Option("--timeout", "-t", min=0.0, help="Deadline for the whole call, retries included, in seconds.")
]

IncludeOption = Annotated[
    bool,
    typer.Option("--include", "-i", help="Show response headers.")
]


def _handler() -> CommandHandler:
    return _dependencies['command_handler']


@app.command()
def get(
    url: UrlArgument,
    header: HeaderOption = None,
    timeout: TimeoutOption = None,
    include: IncludeOption = False,
):
    """Send a GET request and print the response."""
    run_async(_handler().handle_request(
        "GET", url, headers=_parse_headers(header), timeout=timeout, show_headers=include,
    ))


@app.command()
def head(
    url: UrlArgument,
    header: HeaderOption = None,
    timeout: TimeoutOption = None,
):
    """Send a HEAD request and print the response headers."""
    run_async(_handler().handle_request(
        "HEAD", url, headers=_parse_headers(header), timeout=timeout, show_headers=True,
    ))


@app.command()
def post(
    url: UrlArgument,
    data: Annotated[str, typer.Option("--data", "-d", help="Request body.")] = "",
    content_type: Annotated[
        str, typer.Option("--content-type", "-c", help="Content-Type of the body.")
    ] = "application/json",
    idempotent: Annotated[
        bool, typer.Option("--idempotent", help="Attach a generated Idempotency-Key header.")
    ] = False,
    header: HeaderOption = None,
    timeout: TimeoutOption = None,
    include: IncludeOption = False,
):
    """Send a POST request with a body and print the response."""
    run_async(_handler().handle_request(
        "POST",
        url,
        headers=_parse_headers(header),
        data=data,
        content_type=content_type,
        timeout=timeout,
        show_headers=include,
        idempotent=idempotent,
    ))


@app.command(name="clear-cache")
def clear_cache_command():
    """Clears the response cache, including its disk tier when configured."""
    run_async(_handler().handle_clear_cache())


@app.callback()
def main_callback(
    config: Annotated[
        Optional[Path],
        typer.Option("--config", exists=True, dir_okay=False, readable=True,
                     help=f"YAML configuration file (default: {DEFAULT_CONFIG_FILE}).")
    ] = None,
    no_cache: Annotated[bool, typer.Option("--no-cache", help="Disable the response cache.")] = False,
    retries: Annotated[
        Optional[int], typer.Option("--retries", "-r", min=1, help="Total number of attempts per request.")
    ] = None,
    debug: Annotated[bool, typer.Option("--debug", help="Log every stage of each request.")] = False,
):
    """Options shared by all commands."""
    if _dependencies:
        logger.debug("Dependencies already provided; skipping composition.")
        return
    try:
        _dependencies.update(create_dependencies(config, no_cache=no_cache, retries=retries, debug=debug))
    except (ValueError, OSError) as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        ConsoleDisplay().display_error(f"Application Initialization Failed: {e}")
        raise typer.Exit(code=1)


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
