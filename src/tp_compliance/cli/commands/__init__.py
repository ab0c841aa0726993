"""
CLI commands package.
Contains individual command implementations.
"""

from tp_compliance.cli.commands.benchmark import benchmark_cmd
from tp_compliance.cli.commands.config import config_cmd
from tp_compliance.cli.commands.dispute import deadline_cmd, drp_check_cmd
from tp_compliance.cli.commands.forex import forex_app
from tp_compliance.cli.commands.penalty import interest_cmd, penalty_cmd
from tp_compliance.cli.commands.serve import serve_cmd
from tp_compliance.cli.commands.thin_cap import simulate_cmd, thin_cap_cmd

__all__ = [
    "benchmark_cmd",
    "config_cmd",
    "deadline_cmd",
    "drp_check_cmd",
    "forex_app",
    "interest_cmd",
    "penalty_cmd",
    "serve_cmd",
    "simulate_cmd",
    "thin_cap_cmd",
]
