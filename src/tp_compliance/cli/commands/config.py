"""
Config command - Display and validate configuration.
"""
import typer
from rich.console import Console
from rich.table import Table

from tp_compliance.config.loader import ConfigLoader, ConfigurationError
from tp_compliance.config.schema import SECTION_NAMES

console = Console()

SECTION_TITLES = {
    "paths": "Paths",
    "logging": "Logging",
    "forex": "Forex",
    "comparables": "Comparables",
    "thin_cap": "Thin Capitalization (Section 94B)",
    "penalty": "Penalty",
    "api": "HTTP API",
}
SECRET_FIELDS = {"prowess_api_key", "capitaline_api_key"}


def config_cmd(
    ctx: typer.Context,
    show: bool = typer.Option(
        True,
        "--show/--no-show",
        help="Show current configuration",
    ),
    sources: bool = typer.Option(
        False,
        "--sources",
        help="Also list where configuration values came from",
    ),
):
    """
    Display current configuration settings.

    Shows the merged configuration from all sources:
    - CLI overrides (highest priority)
    - Environment variables (TPC_ prefix)
    - Config file from --config option, or ./config.yaml
    - Built-in defaults (lowest priority)

    Example:
        tp-compliance config
        tp-compliance --config custom-config.yaml config --sources
    """
    console.print("\n[bold cyan]TP Compliance - Configuration[/bold cyan]\n")

    # Get config path from context
    config_path = ctx.obj.get("config_path")

    try:
        if config_path:
            loader = ConfigLoader(config_path=str(config_path))
            console.print(f"[green]✓[/green] Using config file: [bold]{config_path}[/bold]")
        else:
            loader = ConfigLoader()
            console.print("[green]✓[/green] Using default config: [bold]config.yaml[/bold]")

        config = loader.load_config(validate=False)
        console.print("[green]✓[/green] Configuration loaded successfully\n")
    except ConfigurationError as e:
        console.print(f"[bold red]✗[/bold red] Configuration Error: {e!s}", style="red")
        console.print("\n[yellow]Tip:[/yellow] Check your config.yaml file syntax and TPC_* environment variables.")
        raise typer.Exit(code=1) from e

    if show:
        for section_name in SECTION_NAMES:
            section = getattr(config, section_name)
            table = Table(title=f"{SECTION_TITLES[section_name]} Configuration", show_header=True, header_style="bold cyan")
            table.add_column("Setting", style="dim")
            table.add_column("Value", style="green")

            for field_name, value in section.model_dump().items():
                if field_name in SECRET_FIELDS and value:
                    value = "********"
                elif isinstance(value, list):
                    value = ", ".join(str(v) for v in value)
                table.add_row(field_name.replace("_", " ").title(), str(value))

            console.print(table)
            console.print()

    if sources:
        info = loader.get_config_sources_info()
        console.print("[bold cyan]Configuration Sources:[/bold cyan]")
        yaml_file = info["yaml_file"]
        marker = "[green]✓[/green]" if yaml_file["exists"] else "[dim]-[/dim]"
        console.print(f"  {marker} YAML file: {yaml_file['path']}")
        env = info["environment_variables"]
        console.print(f"  Environment variables: {env['count']}")
        for name in env["variables"]:
            console.print(f"    {name}")
        console.print()
