"""CLI commands for yolodice.

Top-level commands (call, listen) open one authenticated connection; the
units group is offline arithmetic.
"""

from __future__ import annotations

import json
import sys
import time
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.json import JSON
from rich.markup import escape

from yolodice import __version__
from yolodice.cli.command_groups.units_command import register_units_commands

app = typer.Typer(
    name="yolodice",
    help="yolodice - JSON-RPC client for the YOLOdice API",
    no_args_is_help=True,
)

console = Console()

register_units_commands(app, console)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"yolodice v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(None, "--version", callback=_version_callback, is_eager=True),
) -> None:
    """yolodice - JSON-RPC client for the YOLOdice API."""


def _build_config(
    config_path: Path | None,
    host: str | None,
    port: int | None,
    use_ssl: bool | None,
    auth_key: str | None,
):
    from yolodice.config.loader import load_config

    try:
        config = load_config(config_path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    overrides: dict[str, Any] = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if use_ssl is not None:
        overrides["ssl"] = use_ssl
    if auth_key is not None:
        overrides["auth_key"] = auth_key
    try:
        return config.with_overrides(**overrides)
    except ValidationError as e:
        console.print(f"[red]Invalid option:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _setup_logging(verbose: bool, log_file: bool) -> None:
    from yolodice.logging_utils import enable_logging, ensure_rotating_log_file

    if verbose:
        enable_logging(sys.stderr, level="DEBUG")
    if log_file:
        path = ensure_rotating_log_file("yolodice", level="DEBUG" if verbose else "INFO")
        console.print(f"[dim]Logging to {path}[/dim]")


def _parse_params(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"params must be JSON: {e}")


def _open_client(config, authenticate: bool):
    from yolodice.client import YolodiceClient

    client = YolodiceClient(config)
    try:
        client.connect()
    except OSError as e:
        console.print(f"[red]Cannot connect to {config.host}:{config.port}: {e}[/red]")
        raise typer.Exit(1)
    if authenticate:
        from yolodice.utils.exceptions import YolodiceError

        try:
            user = client.authenticate(config.auth_key)
        except (YolodiceError, ValueError) as e:
            client.close()
            console.print(f"[red]Authentication failed:[/red] {e}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/green] Authenticated as {user.get('name') if isinstance(user, dict) else user}")
    return client


@app.command()
def call(
    method: str = typer.Argument(..., help="Remote method name, e.g. read_user_data"),
    params: str = typer.Argument(None, help="Params as JSON (object or array)"),
    auth_key: str = typer.Option(None, "--auth-key", "-k", envvar="YOLODICE_AUTH_KEY", help="API key (WIF private key)"),
    host: str = typer.Option(None, "--host", "-h", help="Server host"),
    port: int = typer.Option(None, "--port", "-p", help="Server port"),
    use_ssl: bool = typer.Option(None, "--ssl/--no-ssl", help="Use TLS"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log wire traffic to stderr"),
    log_file: bool = typer.Option(False, "--log-file", help="Also log to ~/.yolodice/logs/yolodice.log"),
) -> None:
    """Call one remote method and print its result."""
    from yolodice.utils.exceptions import YolodiceError

    _setup_logging(verbose, log_file)
    payload = _parse_params(params)
    config = _build_config(config_path, host, port, use_ssl, auth_key)
    client = _open_client(config, authenticate=bool(config.auth_key))
    try:
        result = client.call(method, payload)
    except YolodiceError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        client.close()
    console.print(JSON.from_data(result))


@app.command()
def listen(
    auth_key: str = typer.Option(None, "--auth-key", "-k", envvar="YOLODICE_AUTH_KEY", help="API key (WIF private key)"),
    host: str = typer.Option(None, "--host", "-h", help="Server host"),
    port: int = typer.Option(None, "--port", "-p", help="Server port"),
    use_ssl: bool = typer.Option(None, "--ssl/--no-ssl", help="Use TLS"),
    config_path: Path = typer.Option(None, "--config", "-c", help="Config file path"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log wire traffic to stderr"),
    log_file: bool = typer.Option(False, "--log-file", help="Also log to ~/.yolodice/logs/yolodice.log"),
) -> None:
    """Authenticate and print server notifications until interrupted."""
    from yolodice.rpc.protocol import RpcNotification

    _setup_logging(verbose, log_file)
    config = _build_config(config_path, host, port, use_ssl, auth_key)
    if not config.auth_key:
        raise typer.BadParameter("an API key is required (--auth-key or YOLODICE_AUTH_KEY)")

    def print_notification(message: RpcNotification) -> None:
        console.print(f"[cyan]{message.method}[/cyan]", JSON.from_data(message.params))

    client = _open_client(config, authenticate=True)
    client.notification_handler = print_notification
    try:
        while client.connected:
            time.sleep(1.0)
        console.print("[yellow]Connection closed by server[/yellow]")
    except KeyboardInterrupt:
        console.print("\nGoodbye!")
    finally:
        client.close()


if __name__ == "__main__":
    app()
