"""
Shared plumbing for the command modules.

Builds the ledger client, orchestrator and encryption handle from
``Settings`` and renders status updates.  Tests patch ``make_client`` to
substitute an in-memory ledger.
"""

from __future__ import annotations

import functools
import logging
import sys
from dataclasses import dataclass
from typing import Any, Callable, Optional

import click

from ..config import ConfigError, Settings
from ..pneuma.abi import decode_events, load_abi
from ..pneuma.rpc import RpcLedgerClient
from ..praxis.background import run_detached, verify_contract_deployed
from ..praxis.errors import TransactionError
from ..praxis.models import ContractRef, ExecuteOptions, PendingCall, Receipt, TransactionStatus, TxState
from ..praxis.orchestrator import TransactionOrchestrator
from ..sigil.eth import get_account, load_private_key
from ..sigil.sealing import EncryptionHandle, SealingConfig
from ..utils import format_cost, format_gas_used, format_price, short_hash

logger = logging.getLogger(__name__)

_STATE_COLORS = {
    TxState.PENDING: "yellow",
    TxState.CONFIRMING: "cyan",
    TxState.CONFIRMED: "green",
    TxState.FAILED: "red",
}


@dataclass
class Runtime:
    settings: Settings
    client: Any
    orchestrator: TransactionOrchestrator

    def contract(self) -> ContractRef:
        return ContractRef(address=self.settings.require_contract(), abi=load_abi(), name="CreditAnalyzer")

    def options(self) -> ExecuteOptions:
        return ExecuteOptions(
            confirmations=self.settings.confirmations,
            timeout_ms=self.settings.timeout_ms,
        )


def make_client(settings: Settings, account: Any = None, approver: Optional[Callable[[dict], bool]] = None) -> Any:
    return RpcLedgerClient(
        settings.rpc_url,
        chain_id=settings.chain_id,
        account=account,
        approver=approver,
        poll_interval=settings.poll_interval,
    )


def make_encryption_handle(settings: Settings) -> EncryptionHandle:
    return EncryptionHandle(
        SealingConfig(
            public_key_hex=settings.fhe_public_key,
            private_key_hex=settings.fhe_private_key,
            chain_id=settings.chain_id,
        )
    )


def load_settings(**overrides: Any) -> Settings:
    try:
        return Settings.from_env().with_overrides(**overrides)
    except ConfigError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)


def build_runtime(settings: Settings, signer: bool = True, assume_yes: bool = False) -> Runtime:
    account = None
    if signer:
        try:
            account = get_account(load_private_key())
        except ValueError as exc:
            click.secho(f"ERROR: {exc}", fg="red")
            sys.exit(1)

    approver = None if assume_yes else confirm_transaction
    client = make_client(settings, account=account, approver=approver)
    return Runtime(settings=settings, client=client, orchestrator=TransactionOrchestrator(client))


def confirm_transaction(tx: dict[str, Any]) -> bool:
    click.echo("")
    click.echo(f"  To:        {tx.get('to')}")
    click.echo(f"  Gas limit: {tx.get('gas')}")
    if "maxFeePerGas" in tx:
        click.echo(f"  Max fee:   {format_price(tx['maxFeePerGas'])}")
        click.echo(f"  Tip:       {format_price(tx['maxPriorityFeePerGas'])}")
    else:
        click.echo(f"  Gas price: {format_price(tx['gasPrice'])}")
    return click.confirm("Sign and send this transaction?", default=False)


def echo_status(status: TransactionStatus) -> None:
    parts = [click.style(f"[{status.state.value}]", fg=_STATE_COLORS[status.state], bold=True)]
    if status.tx_hash:
        parts.append(short_hash(status.tx_hash))
    if status.state is TxState.CONFIRMING:
        parts.append(f"{status.confirmations} confirmation(s) so far")
    if status.block_number is not None and status.is_terminal:
        parts.append(f"block {status.block_number}")
    if status.error:
        parts.append(status.error)
    click.echo("  " + " ".join(parts))


def echo_receipt(receipt: Receipt, abi: Optional[list] = None) -> None:
    click.echo(f"  TX:       {receipt.transaction_hash}")
    click.echo(f"  Block:    {receipt.block_number}")
    click.echo(f"  Gas used: {format_gas_used(receipt.gas_used)}")
    if receipt.effective_gas_price is not None:
        click.echo(f"  Price:    {format_price(receipt.effective_gas_price)}")
        click.echo(f"  Cost:     {format_cost(receipt.gas_used, receipt.effective_gas_price)}")
    for event in decode_events(abi or load_abi(), receipt.logs):
        args = ", ".join(f"{k}={v}" for k, v in event["args"].items())
        click.echo(f"  Event:    {event['event']}({args})")


def execute_call(runtime: Runtime, method: str, args: tuple = ()) -> Receipt:
    """Execute ``method`` on the configured contract, printing progress.

    Exits the process with the classified error's exit code on failure.
    """
    try:
        contract = runtime.contract()
        call = PendingCall(contract=contract, method=method, args=args)
    except (ConfigError, ValueError) as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    run_detached(
        verify_contract_deployed,
        runtime.client,
        contract.address,
        name="veilscore-verify",
    )

    try:
        receipt = runtime.orchestrator.execute(call, echo_status, runtime.options())
    except TransactionError as exc:
        click.secho(f"FAILED: {exc.message}", fg="red")
        if exc.tx_hash:
            click.echo(f"  TX: {exc.tx_hash}")
        sys.exit(exc.exit_code)

    click.echo("")
    if receipt.succeeded:
        click.secho("SUCCESS: Transaction confirmed!", fg="green")
    else:
        click.secho("FAILED: Transaction reverted", fg="red")
    echo_receipt(receipt, list(contract.abi))
    if not receipt.succeeded:
        sys.exit(1)
    return receipt


def network_options(func: Callable) -> Callable:
    """``--rpc-url``, ``--contract``, ``--confirmations`` and ``--timeout-ms``."""

    @click.option("--rpc-url", envvar="SEPOLIA_RPC_URL", default=None, help="JSON-RPC endpoint")
    @click.option("--contract", envvar="CREDIT_ANALYZER_ADDRESS", default=None, help="CreditAnalyzer address")
    @click.option("--confirmations", type=click.IntRange(min=1), default=None, help="Blocks to wait for")
    @click.option("--timeout-ms", type=click.IntRange(min=1), default=None, help="Confirmation deadline")
    @functools.wraps(func)
    def wrapper(rpc_url, contract, confirmations, timeout_ms, **kwargs):
        settings = load_settings(
            rpc_url=rpc_url,
            contract_address=contract,
            confirmations=confirmations,
            timeout_ms=timeout_ms,
        )
        return func(settings=settings, **kwargs)

    return wrapper
