"""
Dispute commands - Filing deadlines and DRP eligibility.
"""
from datetime import date, datetime
from pathlib import Path
from typing import Optional

import typer

from tp_compliance.api.schemas import DRPRequest
from tp_compliance.cli.helpers import console, fail, print_json, read_request
from tp_compliance.engines.dispute_timelines import (
    FILING_DEADLINE_DAYS,
    FORM_REQUIREMENTS,
    DisputeStage,
    calculate_deadline,
    days_between,
    next_stage,
    parse_stage,
    required_form,
)
from tp_compliance.engines.dispute_workflow import DisputeWorkflowEngine
from tp_compliance.errors import TPComplianceError
from tp_compliance.utils.log_setup import EngineNames, log_context

JSON_OPTION = typer.Option(False, "--json", help="Print the result as JSON")


def _parse_date(value: str) -> date:
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(f"Expected a date like 2024-03-31, got: {value}") from None


def deadline_cmd(
    stage: str = typer.Argument(..., help="Dispute stage, e.g. drp_filing, itat_appeal, high_court"),
    reference_date: str = typer.Argument(..., help="Date of the order being challenged (YYYY-MM-DD)"),
    json_output: bool = JSON_OPTION,
):
    """
    Filing deadline for a dispute stage, counted from the previous order.

    Example:
        tp-compliance deadline drp_filing 2024-01-15
        tp-compliance deadline itat_appeal 2024-03-31 --json
    """
    reference = _parse_date(reference_date)

    try:
        parsed = parse_stage(stage)
        deadline = calculate_deadline(reference, parsed)
    except TPComplianceError as e:
        fail(e, tip="Stages with a filing window: " + ", ".join(s.value for s in FILING_DEADLINE_DAYS))

    form = required_form(parsed)
    following = next_stage(parsed)

    if json_output:
        print_json(
            {
                "stage": parsed,
                "reference_date": reference,
                "deadline": deadline,
                "days": FILING_DEADLINE_DAYS[parsed],
                "next_stage": following,
                "form": form,
            }
        )
        return

    console.print(f"\n[bold cyan]{parsed.value.replace('_', ' ').title()}[/bold cyan]\n")
    console.print(f"[green]✓[/green] Deadline: [bold]{deadline.isoformat()}[/bold] ({FILING_DEADLINE_DAYS[parsed]} days)")
    remaining = days_between(date.today(), deadline)
    if remaining >= 0:
        console.print(f"  {remaining} day(s) remaining")
    else:
        console.print(f"  [red]Deadline passed {-remaining} day(s) ago[/red]")
    if form is not None:
        requirement = FORM_REQUIREMENTS[form]
        console.print(f"  Form {requirement.form_number}: {requirement.description}")
    if following is not None:
        console.print(f"  Next stage: {following.value}")


def drp_check_cmd(
    input_file: Path = typer.Argument(
        ...,
        help="JSON file in the POST /dispute-workflow/drp shape",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    as_of: Optional[str] = typer.Option(None, "--as-of", help="Evaluate eligibility on this date (YYYY-MM-DD)"),
    json_output: bool = JSON_OPTION,
):
    """
    Check whether a TPO order can go to the Dispute Resolution Panel.

    Example:
        tp-compliance drp-check tpo-order.json --as-of 2024-02-01
    """
    current = _parse_date(as_of) if as_of else None

    try:
        request = read_request(input_file, DRPRequest)
        draft_order = request.draft_order()
        engine = DisputeWorkflowEngine(current_date=current or request.filing_date or date.today())
        with log_context(engine=EngineNames.DISPUTE, assessment_year=request.assessment_year):
            eligibility = engine.validate_eligibility(request.tpo_order(), draft_order)
    except TPComplianceError as e:
        fail(e)

    if json_output:
        print_json(eligibility)
        return

    if eligibility.is_eligible:
        console.print("\n[green]✓[/green] Eligible for DRP")
        for reason in eligibility.eligibility_reasons:
            console.print(f"  [green]•[/green] {reason}")
        filing_by = calculate_deadline(draft_order.order_date, DisputeStage.DRP_FILING)
        console.print(f"  File objections by {filing_by.isoformat()}")
        return

    console.print("\n[bold red]✗[/bold red] Not eligible for DRP")
    for reason in eligibility.ineligibility_reasons:
        console.print(f"  [red]•[/red] {reason}")
