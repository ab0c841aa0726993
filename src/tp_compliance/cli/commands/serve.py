"""
Serve command - Run the HTTP API with uvicorn.
"""
from typing import Optional

import typer
import uvicorn

from tp_compliance.api.app import create_app
from tp_compliance.cli.helpers import console, get_app_config


def serve_cmd(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default: api.host)"),
    port: Optional[int] = typer.Option(None, "--port", help="Bind port (default: api.port)"),
):
    """
    Start the HTTP API.

    Example:
        tp-compliance serve --port 8080
    """
    config = get_app_config(ctx)
    bind_host = host or config.api.host
    bind_port = port or config.api.port

    console.print(f"\n[bold cyan]TP Compliance API[/bold cyan] on [green]http://{bind_host}:{bind_port}[/green]\n")
    uvicorn.run(create_app(config), host=bind_host, port=bind_port, log_level=config.logging.level.lower())
