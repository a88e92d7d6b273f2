"""
Theurgy Credit - State-changing CreditAnalyzer calls.

- submit:       seal and submit credit data
- update:       seal and replace previously submitted credit data
- evaluate:     request an encrypted credit evaluation for an address
- request-loan: request loan approval after evaluation
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..config import Settings
from ..sigil.eth import get_address, load_private_key
from ..sigil.sealing import CreditData, SealingError, encrypt_credit_data
from .wiring import build_runtime, execute_call, make_encryption_handle, network_options

_UINT32 = click.IntRange(min=0, max=2**32 - 1)
_UINT8 = click.IntRange(min=0, max=2**8 - 1)


def _credit_options(func):
    func = click.option("--payment-history", type=_UINT8, required=True, help="Payment history rating (0-10)")(func)
    func = click.option("--credit-history", type=_UINT8, required=True, help="Credit history in years")(func)
    func = click.option("--age", type=_UINT8, required=True, help="Age in years")(func)
    func = click.option("--debt", type=_UINT32, required=True, help="Outstanding debt")(func)
    func = click.option("--income", type=_UINT32, required=True, help="Monthly income")(func)
    return func


def _send_credit_data(
    method: str,
    settings: Settings,
    data: CreditData,
    yes: bool,
) -> None:
    handle = make_encryption_handle(settings)
    try:
        sealed = encrypt_credit_data(handle, data)
    except SealingError as exc:
        click.secho(f"ERROR: Could not encrypt credit data: {exc}", fg="red")
        sys.exit(1)

    click.echo(f"  Sealed 5 fields ({sum(len(b) for b in sealed.as_args())} bytes)")
    runtime = build_runtime(settings, assume_yes=yes)
    execute_call(runtime, method, sealed.as_args())


@click.command()
@_credit_options
@click.option("--yes", "-y", is_flag=True, help="Sign without asking")
@network_options
def submit(
    settings: Settings,
    income: int,
    debt: int,
    age: int,
    credit_history: int,
    payment_history: int,
    yes: bool,
) -> None:
    """Encrypt and submit credit data."""
    click.echo("=== Submit Credit Data ===")
    click.echo("")
    _send_credit_data(
        "submitCreditData",
        settings,
        CreditData(income, debt, age, credit_history, payment_history),
        yes,
    )


@click.command()
@_credit_options
@click.option("--yes", "-y", is_flag=True, help="Sign without asking")
@network_options
def update(
    settings: Settings,
    income: int,
    debt: int,
    age: int,
    credit_history: int,
    payment_history: int,
    yes: bool,
) -> None:
    """Encrypt and replace previously submitted credit data."""
    click.echo("=== Update Credit Data ===")
    click.echo("")
    _send_credit_data(
        "updateCreditData",
        settings,
        CreditData(income, debt, age, credit_history, payment_history),
        yes,
    )


@click.command()
@click.option("--user", default=None, help="Address to evaluate (default: your wallet)")
@click.option("--yes", "-y", is_flag=True, help="Sign without asking")
@network_options
def evaluate(settings: Settings, user: Optional[str], yes: bool) -> None:
    """Request an encrypted credit score evaluation."""
    click.echo("=== Evaluate Credit Score ===")
    click.echo("")

    if user is None:
        try:
            user = get_address(load_private_key())
        except ValueError as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(1)

    click.echo(f"  User: {user}")
    runtime = build_runtime(settings, assume_yes=yes)
    execute_call(runtime, "evaluateCreditScore", (user,))


@click.command("request-loan")
@click.option("--yes", "-y", is_flag=True, help="Sign without asking")
@network_options
def request_loan(settings: Settings, yes: bool) -> None:
    """Request loan approval based on your evaluated score."""
    click.echo("=== Request Loan Approval ===")
    click.echo("")
    runtime = build_runtime(settings, assume_yes=yes)
    execute_call(runtime, "requestLoanApproval")
