"""
Shared plumbing for CLI commands: JSON input files, JSON output and error exits.
"""
import json
from pathlib import Path
from typing import TypeVar

import typer
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from rich.console import Console

from tp_compliance.config.schema import AppConfig
from tp_compliance.errors import TPComplianceError, ValidationError
from tp_compliance.utils.serialization import to_wire

console = Console()

M = TypeVar("M", bound=BaseModel)


def get_app_config(ctx: typer.Context) -> AppConfig:
    """Configuration resolved by the root callback."""
    return ctx.obj["config"]


def read_request(path: Path, model: type[M]) -> M:
    """
    Parse a JSON file into one of the HTTP request models.

    Raises:
        ValidationError: If the file is not JSON or does not match the model
    """
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path.name} is not valid JSON: {e.msg} (line {e.lineno})") from e

    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        first = e.errors()[0]
        loc = ".".join(str(x) for x in first["loc"])
        raise ValidationError(f"{loc}: {first['msg']}", field=loc) from e


def print_json(data) -> None:
    """Write a result as camelCase JSON on stdout."""
    typer.echo(json.dumps(to_wire(data), indent=2, ensure_ascii=False))


def fail(error: TPComplianceError, tip: str | None = None) -> None:
    """Print an engine error and exit with code 1."""
    console.print(f"[bold red]✗[/bold red] {type(error).__name__}: {error.message}", style="red")
    for issue in getattr(error, "issues", []):
        console.print(f"  [red]•[/red] {getattr(issue, 'message', issue)}")
    if tip:
        console.print(f"\n[yellow]Tip:[/yellow] {tip}")
    raise typer.Exit(code=1) from error
