import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger

# ============================================================================
# Context Management Constants
# ============================================================================


class EngineNames:
    """
    Predefined constants for engine names so log context stays consistent
    between the HTTP routes, the CLI and the engines themselves.
    """

    FOREX = "forex"
    COMPARABLES = "comparables"
    BENCHMARKING = "benchmarking"
    THIN_CAP = "thin_cap"
    DISPUTE = "dispute"
    PENALTY = "penalty"


# Valid context field names
VALID_CONTEXT_FIELDS = {"request_id", "engine", "assessment_year"}


def format_record(record):
    """
    Custom format function to include context fields if present.
    """
    format_string = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan>"

    if record["extra"].get("request_id"):
        format_string += " | <yellow>REQ:{extra[request_id]}</yellow>"
    if record["extra"].get("engine"):
        format_string += " | <magenta>{extra[engine]}</magenta>"
    if record["extra"].get("assessment_year"):
        format_string += " | <blue>AY {extra[assessment_year]}</blue>"

    format_string += " - <level>{message}</level>\n"

    if record["exception"]:
        format_string += "{exception}\n"

    return format_string


def setup_logging(
    log_level: str = "INFO",
    log_dir: str = "logs",
    retention_days: int = 30,
    console: bool = True,
    file: bool = True,
):
    """
    Configure logging for the application using Loguru.

    Args:
        log_level: The logging level for the console (default: "INFO")
        log_dir: Directory to store log files (default: "logs")
        retention_days: How long rotated files are kept
        console: Add the colorized stderr sink
        file: Add the daily and error file sinks
    """
    if log_dir is None:
        log_dir = "logs"

    log_path = Path(log_dir)

    logger.remove()

    # Console Sink (Colorized) using custom formatter
    if console:
        logger.add(sys.stderr, format=format_record, level=log_level, colorize=True)

    if not file:
        logger.info(f"Logging initialized. Level: {log_level}, file sinks disabled")
        return

    log_path.mkdir(parents=True, exist_ok=True)

    # File Sink (Daily Rotation)
    logger.add(
        log_path / "{time:YYYY-MM-DD}.log",
        rotation="1 day",
        retention=f"{retention_days} days",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {extra} - {message}",
        level="DEBUG",
        encoding="utf-8",
    )

    # Error Sink
    logger.add(
        log_path / "errors.log",
        level="ERROR",
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {extra} - {message}",
        rotation="10 MB",
        retention=f"{retention_days} days",
        encoding="utf-8",
        backtrace=True,
        diagnose=False,
    )

    logger.info(f"Logging initialized. Level: {log_level}, Dir: {log_path}")


@contextmanager
def log_context(**kwargs) -> Generator[None, None, None]:
    """
    Context manager to bind contextual information to logs using Loguru's
    contextualize() method.

    Supported Context Fields:
        request_id (str): Identifier of the HTTP request or CLI invocation
        engine (str): Engine handling the work (see EngineNames)
        assessment_year (str): Assessment year under computation, e.g. "2024-25"

    Raises:
        ValueError: If an invalid field name is provided (not in VALID_CONTEXT_FIELDS)

    Usage:

        with log_context(request_id="req-42", engine=EngineNames.THIN_CAP):
            logger.info("Computing Section 94B limitation")
            with log_context(assessment_year="2024-25"):
                logger.info("EBITDA reconstructed")

    Exiting a context removes its fields from subsequent logs; nested contexts
    combine fields from all active scopes.
    """
    invalid_fields = set(kwargs.keys()) - VALID_CONTEXT_FIELDS
    if invalid_fields:
        raise ValueError(f"Invalid context field(s): {invalid_fields}. " f"Valid fields are: {VALID_CONTEXT_FIELDS}")

    with logger.contextualize(**kwargs):
        yield
