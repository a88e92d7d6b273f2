"""
veilscore CLI

Command-line client for the confidential CreditAnalyzer contract.

Credit fields are sealed locally before submission; every state-changing
call is fee-estimated, signed, broadcast and tracked to a terminal receipt
with a bounded wait.

Commands:
  submit        - Encrypt and submit credit data
  update        - Encrypt and replace credit data
  evaluate      - Request a credit score evaluation
  request-loan  - Request loan approval
  invoke        - Execute any contract method
  estimate      - Estimate gas and fees for a call
  status        - Show a transaction's receipt
  inspect       - Show on-chain credit state
  whoami        - Show current wallet address
  info          - Show configuration
"""

from __future__ import annotations

import logging
import sys

import click

from .config import ConfigError, Settings
from .sigil.eth import get_address, load_private_key
from .theurgy.wiring import make_encryption_handle


# ============ Constants ============

VERSION = "0.3.0"


# ============ Banner ============


def _print_banner() -> None:
    border = click.style("  ◆ ═══════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo(
        click.style("        V E I L S C O R E", fg="bright_white", bold=True)
        + click.style(f"    v{VERSION}", dim=True)
    )
    click.secho("        ─── Confidential Credit Client ───", fg="cyan")
    click.echo(border)
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="veilscore")
@click.option("--verbose", "-v", count=True, help="Log progress (-vv for debug)")
@click.pass_context
def cli(ctx: click.Context, verbose: int) -> None:
    """veilscore: confidential credit scoring client."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG if verbose > 1 else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .theurgy.credit import evaluate, request_loan, submit, update
from .theurgy.invoke import invoke
from .theurgy.query import estimate, inspect, status

cli.add_command(submit)
cli.add_command(update)
cli.add_command(evaluate)
cli.add_command(request_loan)
cli.add_command(invoke)
cli.add_command(estimate)
cli.add_command(status)
cli.add_command(inspect)


# ============ Identity ============


@cli.command()
def whoami() -> None:
    """Show current wallet identity."""
    try:
        pk = load_private_key()
        address = get_address(pk)
        click.echo(f"Address: {address}")
    except ValueError:
        click.echo("No wallet found.")
        click.echo("Set PRIVATE_KEY in the environment or in ~/.veilscore/.env.")
        sys.exit(1)


# ============ Info ============


@cli.command()
def info() -> None:
    """Show configuration and encryption status."""
    _print_banner()

    try:
        settings = Settings.from_env()
    except ConfigError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    click.secho("  Network ────────────────────────────────", fg="cyan")
    rows = [
        ("RPC URL", settings.rpc_url),
        ("Chain ID", str(settings.chain_id)),
        ("Contract", settings.contract_address or "not set"),
        ("Confirmations", str(settings.confirmations)),
        ("Timeout", f"{settings.timeout_ms} ms"),
    ]
    for label, value in rows:
        click.echo(click.style(f"  {label + ':':<15}", dim=True) + click.style(value, fg="bright_white"))

    try:
        address = get_address(load_private_key())
    except ValueError:
        address = None
    click.echo(
        click.style(f"  {'Address:':<15}", dim=True)
        + (click.style(address, fg="bright_white") if address else click.style("not configured", fg="yellow"))
    )

    click.echo()
    click.secho("  Encryption ─────────────────────────────", fg="cyan")
    handle = make_encryption_handle(settings)
    try:
        handle.initialize()
    except ValueError as exc:
        click.echo(click.style(f"  {'Sealing:':<15}", dim=True) + click.style(str(exc), fg="yellow"))
    else:
        status = handle.status()
        click.echo(click.style(f"  {'Sealing:':<15}", dim=True) + click.style("ready", fg="green"))
        click.echo(
            click.style(f"  {'Decryption:':<15}", dim=True)
            + click.style("available" if status["can_decrypt"] else "unavailable", fg="bright_white")
        )
    click.echo()


# ============ Entry Points ============


def main() -> None:
    """veilscore CLI entry point."""
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass
    cli()


if __name__ == "__main__":
    main()
