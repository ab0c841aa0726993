"""
Penalty commands - Exposure under the TP penalty provisions and statutory interest.
"""
from datetime import datetime
from pathlib import Path

import typer
from rich.table import Table

from tp_compliance.api.schemas import PenaltyRequest
from tp_compliance.cli.helpers import console, fail, get_app_config, print_json, read_request
from tp_compliance.engines.penalty_engine import PenaltyEngine
from tp_compliance.errors import TPComplianceError
from tp_compliance.utils.formatting import format_rupees
from tp_compliance.utils.log_setup import EngineNames, log_context

JSON_OPTION = typer.Option(False, "--json", help="Print the result as JSON")

LIKELIHOOD_STYLES = {"low": "green", "medium": "yellow", "high": "red", "very_high": "bold red"}


def penalty_cmd(
    ctx: typer.Context,
    input_file: Path = typer.Argument(
        ...,
        help="JSON file in the POST /penalty shape (adjustmentAmount, taxRate, assessmentYear, ...)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
    json_output: bool = JSON_OPTION,
):
    """
    Estimate penalty exposure for a TP adjustment, with mitigation guidance.

    Example:
        tp-compliance penalty adjustment.json
    """
    config = get_app_config(ctx)
    engine = PenaltyEngine(config.penalty)

    try:
        request = read_request(input_file, PenaltyRequest)
        data = request.to_input(config.penalty)
        with log_context(engine=EngineNames.PENALTY, assessment_year=request.assessment_year):
            exposure = engine.calculate(data)
            mitigation = engine.assess_mitigation(exposure, data)
    except TPComplianceError as e:
        fail(e, tip="Field names follow the POST /penalty body (camelCase).")

    if json_output:
        print_json({"exposure": exposure, "mitigation": mitigation})
        return

    console.print(f"\n[bold cyan]Penalty Exposure - AY {exposure.assessment_year}[/bold cyan]\n")

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Component", style="dim")
    table.add_column("Section")
    table.add_column("Amount", style="green", justify="right")
    table.add_column("Share", justify="right")
    for item in exposure.breakdown:
        table.add_row(item.category, item.section, format_rupees(item.amount), f"{item.percentage_of_total:.1f}%")
    console.print(table)

    console.print(f"\nMinimum:     {format_rupees(exposure.minimum)}")
    console.print(f"Most likely: [bold]{format_rupees(exposure.most_likely)}[/bold]")
    console.print(f"Maximum:     {format_rupees(exposure.maximum)}")

    style = LIKELIHOOD_STYLES.get(mitigation.penalty_likelihood.value, "white")
    console.print(f"\nLikelihood: [{style}]{mitigation.penalty_likelihood.value}[/{style}]")
    console.print(mitigation.recommendation)
    for action in mitigation.recommended_actions:
        console.print(f"  [green]•[/green] {action}")


def interest_cmd(
    ctx: typer.Context,
    section: str = typer.Argument(..., help="234A, 234B, 234C or 234D"),
    tax_amount: float = typer.Argument(..., help="Tax on which interest runs"),
    due_date: str = typer.Argument(..., help="Due date (YYYY-MM-DD)"),
    payment_date: str = typer.Argument(..., help="Payment or filing date (YYYY-MM-DD)"),
    advance_tax_paid: float = typer.Option(0.0, "--advance-tax", help="Advance tax already paid"),
    json_output: bool = JSON_OPTION,
):
    """
    Simple interest under Section 234A/B/C/D at 1% per month (0.5% for 234D).

    Example:
        tp-compliance interest 234A 500000 2024-07-31 2024-11-15
    """
    engine = PenaltyEngine(get_app_config(ctx).penalty)

    try:
        due = datetime.strptime(due_date, "%Y-%m-%d").date()
        paid = datetime.strptime(payment_date, "%Y-%m-%d").date()
    except ValueError as e:
        raise typer.BadParameter(f"Dates must look like 2024-07-31: {e}") from None

    try:
        with log_context(engine=EngineNames.PENALTY):
            result = engine.interest_for_period(section, tax_amount, due, paid, advance_tax_paid=advance_tax_paid)
    except TPComplianceError as e:
        fail(e)

    if json_output:
        print_json(result)
        return

    console.print(f"\n[bold cyan]Interest u/s {result.section}[/bold cyan]\n")
    console.print(f"Principal: {format_rupees(result.principal)}")
    console.print(f"Period:    {result.months} month(s) at {result.rate_per_month:g}% per month")
    console.print(f"Interest:  [bold green]{format_rupees(result.interest_amount)}[/bold green]")
