"""
Defines the command-line interface for managing the API server using Typer.
"""

import sys
import time
import asyncio
import logging
from types import TracebackType
from typing import Optional, Type

import typer

from ._version import __version__
from .config import ConfigManager
from .constants import CONFIG_FILE
from .daemon import is_running, read_pid, start_server, stop_server
from .dependencies import yt_dlp_command
from .exceptions import ServerControlError
from .logging_config import setup_logging
from .server import run_server

app = typer.Typer(
    name="ytdlp-api",
    help="A backend API for yt-dlp.",
    add_completion=False,
)
server_app = typer.Typer(help="Manages the server process.")
app.add_typer(server_app, name="server")


def handle_exception(exc_type: Type[BaseException], exc_value: BaseException, exc_traceback: TracebackType):
    """Logs unhandled exceptions from synchronous code."""
    logger = logging.getLogger()
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical("Unhandled exception:", exc_info=(exc_type, exc_value, exc_traceback))


def handle_async_exception(loop, context):
    """Logs unhandled exceptions from asyncio tasks."""
    logger = logging.getLogger()
    msg = context.get("exception", context["message"])
    logger.critical(f"Caught exception from asyncio task: {msg}")


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(False, "--version", help="Show version and exit.", is_eager=True),
):
    """A backend API for yt-dlp."""
    if version:
        typer.echo(f"ytdlp-api {__version__}")
        raise typer.Exit()
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())


@server_app.command("run")
def run(
    host: Optional[str] = typer.Option(None, "--host", help="Address to bind (overrides config and HOST)."),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind (overrides config and PORT)."),
):
    """Run the server in the foreground."""
    config_manager = ConfigManager(CONFIG_FILE)
    config = config_manager.load()
    setup_logging(config.log_level)
    sys.excepthook = handle_exception

    async def install_loop_handler(_app):
        asyncio.get_running_loop().set_exception_handler(handle_async_exception)

    try:
        run_server(config_manager, config, yt_dlp_command(), host=host, port=port,
                   on_startup=install_loop_handler)
    except KeyboardInterrupt:
        logging.info("Server interrupted by user.")


@server_app.command("start")
def start():
    """Start the server as a background process."""
    typer.echo("Starting server in the background...")
    try:
        pid = start_server()
    except ServerControlError as e:
        typer.echo(str(e))
        raise typer.Exit(code=1)
    typer.echo(f"Server started successfully with PID {pid}.")


@server_app.command("stop")
def stop():
    """Stop the background server process."""
    try:
        pid = stop_server()
    except ServerControlError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    if pid is None:
        typer.echo("Server is not running.")
    else:
        typer.echo(f"Stopped server process with PID {pid}.")


@server_app.command("restart")
def restart():
    """Restart the background server process."""
    stop()
    time.sleep(1)
    start()


@server_app.command("status")
def status():
    """Check the status of the background server process."""
    try:
        running = is_running()
        pid = read_pid()
    except ServerControlError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    if running:
        typer.echo(f"Server is running with PID: {pid}")
    else:
        typer.echo("Server is not running.")


def main():
    """Console script entry point."""
    app()
