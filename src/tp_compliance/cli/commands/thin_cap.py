"""
Thin-cap commands - Section 94B interest limitation and carryforward simulation.
"""
from pathlib import Path

import typer
from rich.table import Table

from tp_compliance.api.schemas import ThinCapRequest
from tp_compliance.cli.helpers import console, fail, get_app_config, print_json, read_request
from tp_compliance.engines.thin_cap_engine import ThinCapEngine
from tp_compliance.errors import TPComplianceError
from tp_compliance.utils.formatting import format_rupees
from tp_compliance.utils.log_setup import EngineNames, log_context

INPUT_ARGUMENT = typer.Argument(
    ...,
    help="JSON file with assessmentYear, entityType, financials and interestExpenses",
    exists=True,
    file_okay=True,
    dir_okay=False,
    readable=True,
)
JSON_OPTION = typer.Option(False, "--json", help="Print the full result as JSON")


def thin_cap_cmd(
    ctx: typer.Context,
    input_file: Path = INPUT_ARGUMENT,
    json_output: bool = JSON_OPTION,
):
    """
    Compute the Section 94B interest limitation for one assessment year.

    The input file uses the same camelCase fields as POST /thin-cap.

    Example:
        tp-compliance thin-cap fy2024.json
        tp-compliance thin-cap fy2024.json --json
    """
    engine = ThinCapEngine(get_app_config(ctx).thin_cap)

    try:
        request = read_request(input_file, ThinCapRequest)
        with log_context(engine=EngineNames.THIN_CAP, assessment_year=request.assessment_year):
            result = engine.calculate_interest_limitation(request.to_engine())
    except TPComplianceError as e:
        fail(e, tip="Field names follow the POST /thin-cap body (camelCase).")

    if json_output:
        print_json(result)
        return

    console.print(f"\n[bold cyan]Section 94B - AY {result.assessment_year}[/bold cyan]\n")

    if not result.is_applicable:
        console.print(f"[green]✓[/green] Not applicable: {result.non_applicability_reason}")
        console.print(f"\n{result.summary}")
        return

    table = Table(title="Interest Limitation", show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim")
    table.add_column("Amount", style="green", justify="right")

    table.add_row("EBITDA", format_rupees(result.ebitda_result.total_ebitda))
    table.add_row("30% of EBITDA", format_rupees(result.ebitda_result.thirty_percent_ebitda))
    table.add_row("Interest covered", format_rupees(result.interest_analysis.interest_covered_under_94b))
    table.add_row("Allowable", format_rupees(result.allowable_interest))
    table.add_row("Disallowed", format_rupees(result.disallowed_interest))
    table.add_row("Deductible", format_rupees(result.deductible_interest))
    table.add_row("Carryforward balance", format_rupees(result.carryforward_result.closing_balance))

    console.print(table)
    for issue in result.validation_issues:
        console.print(f"[yellow]![/yellow] {issue.message}")
    console.print(f"\n{result.summary}")


def simulate_cmd(
    ctx: typer.Context,
    disallowed: float = typer.Option(..., "--disallowed", help="Interest disallowed in the starting year"),
    ebitda: list[float] = typer.Option(..., "--ebitda", help="Projected EBITDA, repeat once per year"),
    interest: list[float] = typer.Option(..., "--interest", help="Projected interest expense, repeat once per year"),
    start: str = typer.Option(..., "--start", help="Assessment year of the disallowance, e.g. 2024-25"),
    json_output: bool = JSON_OPTION,
):
    """
    Project how a disallowance is absorbed over the eight-year carryforward window.

    Example:
        tp-compliance simulate --disallowed 5000000 --start 2024-25 \\
            --ebitda 40000000 --ebitda 50000000 --interest 8000000 --interest 9000000
    """
    engine = ThinCapEngine(get_app_config(ctx).thin_cap)

    try:
        with log_context(engine=EngineNames.THIN_CAP, assessment_year=start):
            result = engine.simulate_carryforward(disallowed, list(ebitda), list(interest), start)
    except TPComplianceError as e:
        fail(e)

    if json_output:
        print_json(result)
        return

    console.print("\n[bold cyan]Carryforward Simulation[/bold cyan]\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Year", style="dim")
    table.add_column("Limit", justify="right")
    table.add_column("Interest", justify="right")
    table.add_column("Utilized", style="green", justify="right")
    table.add_column("Remaining", style="yellow", justify="right")

    for year in result.simulation:
        table.add_row(
            year.year,
            format_rupees(year.interest_limit),
            format_rupees(year.interest_expense),
            format_rupees(year.carryforward_utilized),
            format_rupees(year.carryforward_remaining),
        )

    console.print(table)
    console.print(f"\nUtilization: [bold]{result.summary.utilization_rate}[/bold]")
    console.print(result.summary.recommendation)
