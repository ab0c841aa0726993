"""
Benchmark command - Search comparables and compute the arm's length range.
"""
from typing import Optional

import typer
from rich.table import Table

from tp_compliance.api.schemas import SearchRequest
from tp_compliance.cli.helpers import console, fail, get_app_config, print_json
from tp_compliance.engines.benchmarking import parse_pli_type
from tp_compliance.engines.comparable_search import ComparableSearchEngine
from tp_compliance.engines.models import FunctionalProfile
from tp_compliance.errors import TPComplianceError, ValidationError
from tp_compliance.utils.log_setup import EngineNames, log_context


def _percent(value: float) -> str:
    return f"{value * 100:.2f}%"


def benchmark_cmd(
    ctx: typer.Context,
    pli: str = typer.Option("opOc", "--pli", help="PLI to benchmark: opOc, opOr, opTa, opCe or berryRatio"),
    tested: Optional[float] = typer.Option(None, "--tested", help="Tested party PLI as a fraction, e.g. 0.15"),
    cins: Optional[list[str]] = typer.Option(None, "--cin", help="Benchmark these CINs instead of searching"),
    nic_codes: Optional[list[str]] = typer.Option(None, "--nic", help="NIC code to match, repeatable"),
    profile: Optional[str] = typer.Option(None, "--profile", help="Functional profile, e.g. IT_SERVICES"),
    revenue_min: Optional[float] = typer.Option(None, "--revenue-min", help="Minimum revenue in INR"),
    revenue_max: Optional[float] = typer.Option(None, "--revenue-max", help="Maximum revenue in INR"),
    rpt: Optional[float] = typer.Option(None, "--rpt", help="Exclude companies with RPT above this % of revenue"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum companies in the set"),
    json_output: bool = typer.Option(False, "--json", help="Print the benchmarking set as JSON"),
):
    """
    Benchmark a comparable set by interquartile range.

    Without --cin the sample databases are screened with the given criteria
    and the returned page is benchmarked.

    Example:
        tp-compliance benchmark --nic 62 --profile IT_SERVICES --tested 0.14
        tp-compliance benchmark --cin L72200MH2001PLC134517 --cin U72100DL2008PTC178901
    """
    config = get_app_config(ctx)
    engine = ComparableSearchEngine(config.comparables)

    try:
        pli_type = parse_pli_type(pli)
        with log_context(engine=EngineNames.BENCHMARKING):
            if cins:
                companies = [engine.get_company(cin) for cin in cins]
            else:
                request = SearchRequest(
                    nic_codes=nic_codes or [],
                    functional_profile=_profile(profile),
                    revenue_min=revenue_min,
                    revenue_max=revenue_max,
                    exclude_related_party_above=rpt,
                    limit=limit,
                )
                companies = engine.search(request.to_criteria(config.comparables)).companies
            result = engine.benchmark(companies, pli_type, tested)
    except TPComplianceError as e:
        fail(e, tip="Relax the screening criteria or pass explicit --cin values.")

    if json_output:
        print_json(result)
        return

    console.print(f"\n[bold cyan]Arm's Length Range - {pli_type.value}[/bold cyan]\n")

    companies_table = Table(title="Comparable Set", show_header=True, header_style="bold cyan")
    companies_table.add_column("CIN", style="dim")
    companies_table.add_column("Company")
    companies_table.add_column(pli_type.value, style="green", justify="right")
    for company in companies:
        companies_table.add_row(company.cin, company.name, _percent(company.average_pli.value(pli_type)))
    console.print(companies_table)
    console.print()

    range_table = Table(title="Interquartile Range", show_header=True, header_style="bold cyan")
    range_table.add_column("Statistic", style="dim")
    range_table.add_column("Value", style="green", justify="right")
    range_table.add_row("Comparables", str(result.n))
    range_table.add_row("Lower quartile", _percent(result.quartile1))
    range_table.add_row("Median", _percent(result.median))
    range_table.add_row("Upper quartile", _percent(result.quartile3))
    range_table.add_row("Mean", _percent(result.mean))
    console.print(range_table)

    if result.tested_party_position is not None:
        colour = "green" if result.tested_party_position == "within" else "yellow"
        console.print(
            f"\nTested party {_percent(result.tested_party_pli)} is "
            f"[{colour}]{result.tested_party_position}[/{colour}] the range"
        )


def _profile(value: Optional[str]) -> Optional[FunctionalProfile]:
    if value is None:
        return None
    try:
        return FunctionalProfile(value.upper())
    except ValueError:
        raise ValidationError(f"Unknown functional profile: {value}", field="functionalProfile") from None
