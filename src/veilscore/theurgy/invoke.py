"""
Theurgy Invoke - Execute any state-changing contract method.

Generic counterpart of the credit commands for methods that have no
dedicated command.
"""

from __future__ import annotations

import json

import click

from ..config import Settings
from .wiring import build_runtime, execute_call, network_options


def parse_args_json(args_json: str) -> list:
    try:
        args = json.loads(args_json)
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"Invalid JSON: {exc}", param_hint="--args") from exc
    if not isinstance(args, list):
        raise click.BadParameter("Args must be a JSON array", param_hint="--args")
    # 0x hex other than a 20-byte address becomes bytes.
    return [
        bytes.fromhex(a[2:]) if isinstance(a, str) and a.startswith("0x") and len(a) != 42 else a
        for a in args
    ]


@click.command()
@click.option("--function", "func_name", required=True, help="Function name to call")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@click.option("--yes", "-y", is_flag=True, help="Sign without asking")
@network_options
def invoke(settings: Settings, func_name: str, args_json: str, yes: bool) -> None:
    """
    Execute an on-chain contract call.

    Sends a transaction from your wallet to the CreditAnalyzer contract.
    """
    click.echo("=== Invoke ===")
    click.echo("")

    args = parse_args_json(args_json)

    click.echo(f"  Function: {func_name}")
    click.echo(f"  Args: {args}")
    click.echo("")

    runtime = build_runtime(settings, assume_yes=yes)
    execute_call(runtime, func_name, tuple(args))
