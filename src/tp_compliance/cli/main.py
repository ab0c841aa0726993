"""
Main CLI application using Typer.
Provides entry point and command routing for TP Compliance.
"""
from pathlib import Path

import typer
from rich.console import Console

from tp_compliance.cli.commands.benchmark import benchmark_cmd
from tp_compliance.cli.commands.config import config_cmd
from tp_compliance.cli.commands.dispute import deadline_cmd, drp_check_cmd
from tp_compliance.cli.commands.forex import forex_app
from tp_compliance.cli.commands.penalty import interest_cmd, penalty_cmd
from tp_compliance.cli.commands.serve import serve_cmd
from tp_compliance.cli.commands.thin_cap import simulate_cmd, thin_cap_cmd
from tp_compliance.config.loader import ConfigurationError, load_config
from tp_compliance.utils.log_setup import setup_logging

# Initialize Typer app
app = typer.Typer(
    name="tp-compliance",
    help="TP Compliance - Indian transfer pricing computations: Section 94B, benchmarking, forex, disputes and penalties",
    add_completion=False,
    rich_markup_mode="rich",
)

# Initialize Rich console for output
console = Console()


def version_callback(value: bool):
    """Display version information."""
    if value:
        try:
            from importlib.metadata import version

            app_version = version("tp-compliance")
        except Exception:
            # Fallback if package not installed
            app_version = "0.1.0"

        console.print(f"[bold cyan]TP Compliance[/bold cyan] version [green]{app_version}[/green]")
        raise typer.Exit()


# Module-level typer options
VERSION_OPTION = typer.Option(
    None,
    "--version",
    "-v",
    callback=version_callback,
    is_eager=True,
    help="Show version and exit.",
)
CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help="Path to configuration file (default: ./config.yaml)",
    exists=True,
    dir_okay=False,
    readable=True,
)
VERBOSE_OPTION = typer.Option(
    False,
    "--verbose",
    help="Enable verbose output (DEBUG level logging)",
)


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = VERSION_OPTION,
    config: Path | None = CONFIG_OPTION,
    verbose: bool = VERBOSE_OPTION,
):
    """
    TP Compliance - Transfer pricing compliance engines for Indian tax law.

    Use [bold cyan]tp-compliance COMMAND --help[/bold cyan] for command-specific help.
    """
    try:
        app_config = load_config(str(config) if config else None, validate=False)
    except ConfigurationError as e:
        console.print(f"[bold red]Configuration Error:[/bold red] {e!s}", style="red")
        console.print(
            "\n[yellow]Tip:[/yellow] Check your config.yaml file or use --config to specify a different path."
        )
        raise typer.Exit(code=1) from e

    # Store config in context for subcommands
    ctx.obj = {
        "config_path": config,
        "verbose": verbose,
        "config": app_config,
    }

    # Initialize logging early
    try:
        log_level = "DEBUG" if verbose else app_config.logging.level
        setup_logging(
            log_level=log_level,
            log_dir=str(app_config.paths.logs_dir),
            retention_days=app_config.logging.retention_days,
            console=app_config.logging.console,
            file=app_config.logging.file,
        )
    except Exception as e:
        console.print(f"[bold red]Logging Setup Error:[/bold red] {e!s}", style="red")
        raise typer.Exit(code=1) from e


app.command(name="thin-cap")(thin_cap_cmd)
app.command(name="simulate")(simulate_cmd)
app.command(name="benchmark")(benchmark_cmd)
app.command(name="deadline")(deadline_cmd)
app.command(name="drp-check")(drp_check_cmd)
app.command(name="penalty")(penalty_cmd)
app.command(name="interest")(interest_cmd)
app.command(name="config")(config_cmd)
app.command(name="serve")(serve_cmd)
app.add_typer(forex_app, name="forex")


if __name__ == "__main__":
    app()
