"""
Theurgy Query - Read-only commands.

- estimate: fee estimate for a contract call, without sending it
- status:   receipt lookup for a transaction hash
- inspect:  CreditAnalyzer state for an address
"""

from __future__ import annotations

import sys
from typing import Optional

import click

from ..config import Settings
from ..pneuma.abi import load_abi
from ..praxis.fees import FeeEstimator
from ..praxis.models import PendingCall
from ..sigil.eth import get_address, load_private_key
from ..sigil.sealing import SealingError
from ..utils import format_price
from .invoke import parse_args_json
from .wiring import build_runtime, echo_receipt, make_encryption_handle, network_options


@click.command()
@click.option("--function", "func_name", required=True, help="Function name to estimate")
@click.option("--args", "args_json", default="[]", help="Function args as JSON array")
@network_options
def estimate(settings: Settings, func_name: str, args_json: str) -> None:
    """Estimate gas and fees for a contract call."""
    args = parse_args_json(args_json)
    runtime = build_runtime(settings, signer=_has_wallet(), assume_yes=True)
    try:
        call = PendingCall(contract=runtime.contract(), method=func_name, args=tuple(args))
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    fee = FeeEstimator(runtime.client).estimate(call)

    click.echo(f"  Call:      {call.describe()}")
    click.echo(f"  Gas limit: {fee.gas_limit}")
    if fee.is_dynamic:
        click.echo(f"  Max fee:   {format_price(fee.max_fee_per_gas)}")
        click.echo(f"  Tip:       {format_price(fee.max_priority_fee_per_gas)}")
    else:
        click.echo(f"  Gas price: {format_price(fee.legacy_gas_price)}")
    click.echo(f"  Max cost:  {fee.estimated_cost} ETH")


@click.command()
@click.option("--tx", "tx_hash", required=True, help="Transaction hash")
@network_options
def status(settings: Settings, tx_hash: str) -> None:
    """Show the receipt of a transaction, if it has one."""
    runtime = build_runtime(settings, signer=False)
    try:
        receipt = runtime.client.get_receipt(tx_hash)
    except Exception as exc:
        click.secho(f"ERROR: Failed to read receipt: {exc}", fg="red")
        sys.exit(1)

    if receipt is None:
        click.secho(f"  {tx_hash}: no receipt yet (pending or unknown)", fg="yellow")
        return

    label = ("confirmed", "green") if receipt.succeeded else ("failed", "red")
    click.secho(f"  Status:   {label[0]}", fg=label[1], bold=True)
    echo_receipt(receipt)


@click.command()
@click.option("--user", default=None, help="Address to inspect (default: your wallet)")
@network_options
def inspect(settings: Settings, user: Optional[str]) -> None:
    """Show CreditAnalyzer state for an address."""
    click.echo("=== Credit Status ===")
    click.echo("")

    if user is None:
        try:
            user = get_address(load_private_key())
        except ValueError as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(1)

    runtime = build_runtime(settings, signer=False)
    try:
        address = runtime.contract().address
    except ValueError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)
    abi = load_abi()
    client = runtime.client

    try:
        submitted = client.read(address, abi, "hasSubmittedCreditData", [user])
        evaluated = client.read(address, abi, "isCreditEvaluated", [user])
        total = client.read(address, abi, "getEvaluationStats")
    except Exception as exc:
        click.secho(f"ERROR: Failed to read on-chain data: {exc}", fg="red")
        sys.exit(1)

    click.echo(f"  User:              {user}")
    click.echo(f"  Data submitted:    {'yes' if submitted else 'no'}")
    click.echo(f"  Credit evaluated:  {'yes' if evaluated else 'no'}")
    click.echo(f"  Total evaluations: {total or 0}")

    if not evaluated:
        return

    handle = make_encryption_handle(settings)
    for label, method in (("Credit score", "getEncryptedCreditScore"), ("Loan approval", "getEncryptedLoanApproval")):
        try:
            blob = client.read(address, abi, method, [user])
        except Exception as exc:
            click.echo(f"  {label + ':':<19}(unable to read: {exc})")
            continue
        click.echo(f"  {label + ':':<19}{_describe_ciphertext(handle, blob)}")


def _describe_ciphertext(handle, blob: Optional[bytes]) -> str:
    if not blob:
        return "(none)"
    try:
        result = handle.initialize().decrypt_field(blob)
    except SealingError:
        return f"encrypted 0x{bytes(blob).hex()[:16]}... (not decryptable here)"
    if not result.available:
        return f"encrypted 0x{bytes(blob).hex()[:16]}... (decryption unavailable)"
    return str(result.value)


def _has_wallet() -> bool:
    try:
        load_private_key()
    except ValueError:
        return False
    return True
