"""
Transaction Builder - Turn a PendingCall plus a fee estimate into a signed
raw transaction.

Uses eth-account for signing.  Sending and receipt handling live in rpc.py.
"""

from __future__ import annotations

from typing import Any

from eth_account.signers.local import LocalAccount
from eth_hash.auto import keccak

from ..praxis.models import FeeEstimate, PendingCall
from .abi import encode_call


def to_checksum_address(address: str) -> str:
    """Convert an address to EIP-55 checksummed format.

    eth-account requires checksummed addresses in transaction fields.
    """
    addr = address.lower().replace("0x", "")
    if len(addr) != 40:
        raise ValueError(f"Not a 20-byte address: {address}")
    addr_hash = keccak(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result


def call_data(call: PendingCall) -> str:
    return encode_call(list(call.contract.abi), call.method, call.args)


def call_params(call: PendingCall, sender: str | None = None) -> dict[str, Any]:
    """``eth_call`` / ``eth_estimateGas`` parameter object for a call."""
    params: dict[str, Any] = {
        "to": to_checksum_address(call.to),
        "data": call_data(call),
    }
    if call.value:
        params["value"] = hex(call.value)
    if sender:
        params["from"] = sender
    return params


def build_transaction(
    call: PendingCall,
    fee: FeeEstimate,
    nonce: int,
    chain_id: int,
) -> dict[str, Any]:
    """
    Build an unsigned transaction dict.

    Args:
        call: Contract call to execute
        fee: Gas limit and fee scheme (legacy or EIP-1559)
        nonce: Sender nonce
        chain_id: Target chain ID

    Returns:
        Unsigned transaction dict accepted by ``Account.sign_transaction``
    """
    tx: dict[str, Any] = {
        "to": to_checksum_address(call.to),
        "data": call_data(call),
        "value": call.value,
        "nonce": nonce,
        "chainId": chain_id,
    }
    tx.update(fee.tx_fields())
    return tx


def sign_transaction(tx: dict[str, Any], account: LocalAccount) -> str:
    """Sign and return the 0x-prefixed raw transaction."""
    signed = account.sign_transaction(tx)
    return "0x" + signed.raw_transaction.hex().removeprefix("0x")
