"""
Forex commands - Exchange rates and conversions for TP documentation.
"""
import asyncio

import typer
from rich.table import Table

from tp_compliance.cli.helpers import console, fail, get_app_config, print_json
from tp_compliance.engines.forex_engine import ForexEngine
from tp_compliance.errors import TPComplianceError
from tp_compliance.utils.log_setup import EngineNames, log_context

forex_app = typer.Typer(
    help="Exchange rates (RBI reference, ECB fallback) and currency conversion",
    no_args_is_help=True,
)

JSON_OPTION = typer.Option(False, "--json", help="Print the result as JSON")


@forex_app.command(name="convert")
def convert_cmd(
    ctx: typer.Context,
    from_currency: str = typer.Argument(..., help="Currency to convert from, e.g. USD"),
    to_currency: str = typer.Argument(..., help="Currency to convert to, e.g. INR"),
    amount: float = typer.Argument(..., help="Amount in the source currency"),
    json_output: bool = JSON_OPTION,
):
    """
    Convert an amount between two currencies.

    Example:
        tp-compliance forex convert USD INR 250000
    """
    engine = ForexEngine(get_app_config(ctx).forex)

    try:
        with log_context(engine=EngineNames.FOREX):
            result = asyncio.run(engine.convert(from_currency, to_currency, amount))
        source_amount = engine.format_amount(result.from_amount, result.from_currency)
        target_amount = engine.format_amount(result.to_amount, result.to_currency)
    except TPComplianceError as e:
        fail(e, tip="Run 'tp-compliance forex rates' to list supported currencies.")

    if json_output:
        print_json(result)
        return

    console.print(f"\n[bold]{source_amount}[/bold] = [bold green]{target_amount}[/bold green]")
    console.print(
        f"[dim]1 {result.from_currency} = {result.rate:.4f} {result.to_currency} "
        f"({result.source.value}, {result.date})[/dim]"
    )


@forex_app.command(name="rates")
def rates_cmd(ctx: typer.Context, json_output: bool = JSON_OPTION):
    """
    Show INR rates for every supported currency.

    Example:
        tp-compliance forex rates
    """
    engine = ForexEngine(get_app_config(ctx).forex)

    with log_context(engine=EngineNames.FOREX):
        rates = asyncio.run(engine.get_all_inr_rates())

    if json_output:
        print_json(rates)
        return

    table = Table(title="INR Reference Rates", show_header=True, header_style="bold cyan")
    table.add_column("Currency", style="dim")
    table.add_column("Name")
    table.add_column("INR", style="green", justify="right")
    table.add_column("Source")

    for rate in rates:
        info = engine.currency_info(rate.base_currency)
        table.add_row(rate.base_currency, str(info["name"]), f"{rate.rate:.4f}", rate.source.value)

    console.print(table)


@forex_app.command(name="average")
def average_cmd(
    ctx: typer.Context,
    base: str = typer.Argument(..., help="Base currency, e.g. USD"),
    financial_year: str = typer.Argument(..., help="Indian financial year, e.g. 2024-25"),
    quote: str = typer.Option("INR", "--quote", help="Quote currency"),
    json_output: bool = JSON_OPTION,
):
    """
    Average rate over an Indian financial year (1 April to 31 March).

    Historical rates are synthetic until a live feed is configured.

    Example:
        tp-compliance forex average USD 2024-25
    """
    engine = ForexEngine(get_app_config(ctx).forex)

    try:
        with log_context(engine=EngineNames.FOREX):
            result = asyncio.run(engine.get_financial_year_average_rate(base, quote, financial_year))
    except TPComplianceError as e:
        fail(e)

    if json_output:
        print_json(result)
        return

    console.print(f"\n[bold cyan]{result.base_currency}/{result.quote_currency} FY {financial_year}[/bold cyan]\n")
    console.print(f"Average:    [bold green]{result.average_rate:.4f}[/bold green]")
    console.print(f"Range:      {result.min_rate:.4f} - {result.max_rate:.4f}")
    console.print(f"Volatility: {result.volatility:.4f}")
    console.print(f"Data points: {result.data_points} ({result.start_date} to {result.end_date})")
    if result.synthetic:
        console.print("[yellow]![/yellow] Derived from synthetic historical rates")
