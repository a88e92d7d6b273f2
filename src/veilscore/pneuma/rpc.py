"""
JSON-RPC ledger client.

Lightweight alternative to web3.py: httpx for HTTP, eth-abi for encoding,
eth-account for signing.  A fresh ``httpx.Client`` is opened per request so
one ``RpcLedgerClient`` can be shared by any number of concurrent
submissions without locking.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Any, Callable, Optional, Protocol

import httpx
from eth_account.signers.local import LocalAccount

from ..praxis.models import FeeData, FeeEstimate, PendingCall, Receipt
from ..utils import to_int
from .abi import decode_result, encode_call
from .schemas import validate_payload
from .tx import build_transaction, call_params, sign_transaction, to_checksum_address

logger = logging.getLogger(__name__)

# ethers' fallback tip when eth_maxPriorityFeePerGas is unsupported.
DEFAULT_PRIORITY_FEE = 1_000_000_000
DROPPED_AFTER_POLLS = 5

Approver = Callable[[dict[str, Any]], bool]


class RpcError(RuntimeError):
    def __init__(self, message: str, code: Optional[int] = None, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class UserRejectedError(RpcError):
    """The local signer declined to sign (EIP-1193 code 4001)."""

    def __init__(self, message: str = "user rejected transaction") -> None:
        super().__init__(message, code=4001)


class WaitCancelledError(RuntimeError):
    pass


class TransactionDroppedError(RuntimeError):
    pass


class LedgerClient(Protocol):
    """Chain access used by the execution core.

    ``await_receipt`` runs on a non-daemon worker thread that the
    orchestrator abandons at its deadline. Implementations must check
    ``cancel`` while waiting and raise promptly once it is set, or the
    thread keeps the process alive until the wait ends on its own.
    """

    def get_fee_data(self) -> FeeData:
        ...

    def estimate_gas(self, call: PendingCall) -> int:
        ...

    def submit(self, call: PendingCall, fee: FeeEstimate) -> str:
        ...

    def await_receipt(
        self,
        tx_hash: str,
        confirmations: int = 1,
        cancel: Optional[threading.Event] = None,
    ) -> Receipt:
        """Block until ``tx_hash`` has a receipt ``confirmations`` deep.

        Raises once ``cancel`` is set instead of finishing the wait.
        """
        ...

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        ...


class RpcLedgerClient:
    """``LedgerClient`` over HTTP JSON-RPC.

    Args:
        rpc_url: Node endpoint.
        chain_id: Chain ID for signing; read from the node when omitted.
        account: Signer for ``submit``; read-only use needs none.
        approver: Called with the unsigned transaction before signing.
            Returning False raises ``UserRejectedError``.
        poll_interval: Seconds between receipt polls.
        timeout: Per-request HTTP timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        rpc_url: str,
        chain_id: Optional[int] = None,
        account: Optional[LocalAccount] = None,
        approver: Optional[Approver] = None,
        poll_interval: float = 2.0,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.rpc_url = rpc_url
        self.account = account
        self.approver = approver
        self.poll_interval = poll_interval
        self.timeout = timeout
        self._chain_id = chain_id
        self._transport = transport
        self._ids = itertools.count(1)

    # ---------------------------------------------------------------- transport

    def call(self, method: str, params: list) -> Any:
        """
        Make a JSON-RPC call.

        Returns:
            Result field from the RPC response

        Raises:
            RpcError: If the node answers with an error object
            httpx.HTTPError: On transport failure or non-2xx status
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": next(self._ids),
        }

        with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
            response = client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            data = response.json()

        if "error" in data:
            error = data["error"] or {}
            raise RpcError(
                error.get("message", "RPC error"),
                code=error.get("code"),
                data=error.get("data"),
            )

        return data.get("result")

    # ---------------------------------------------------------------- chain state

    @property
    def chain_id(self) -> int:
        if self._chain_id is None:
            self._chain_id = to_int(self.call("eth_chainId", []))
        return self._chain_id

    def block_number(self) -> int:
        return to_int(self.call("eth_blockNumber", []))

    def get_code(self, address: str) -> str:
        return self.call("eth_getCode", [address, "latest"]) or "0x"

    def get_nonce(self, address: str) -> int:
        return to_int(self.call("eth_getTransactionCount", [address, "pending"]))

    def get_fee_data(self) -> FeeData:
        """Current legacy gas price and, on EIP-1559 chains, the dynamic pair.

        The max fee follows the common ``2 * baseFee + tip`` rule.
        """
        gas_price = to_int(self.call("eth_gasPrice", []))

        block = self.call("eth_getBlockByNumber", ["latest", False])
        validate_payload(block, "block")
        base_fee = to_int(block.get("baseFeePerGas"))
        if base_fee is None:
            return FeeData(legacy_price=gas_price)

        try:
            priority = to_int(self.call("eth_maxPriorityFeePerGas", []))
        except RpcError as exc:
            logger.debug("eth_maxPriorityFeePerGas unsupported (%s); using default tip", exc)
            priority = DEFAULT_PRIORITY_FEE

        return FeeData(
            legacy_price=gas_price,
            max_fee=base_fee * 2 + priority,
            max_priority_fee=priority,
        )

    def estimate_gas(self, call: PendingCall) -> int:
        sender = self.account.address if self.account is not None else None
        return to_int(self.call("eth_estimateGas", [call_params(call, sender)]))

    # ---------------------------------------------------------------- reads

    def read(self, address: str, abi: list, function_name: str, args: Optional[list] = None) -> Any:
        """Read from a contract (``eth_call``) and decode the result."""
        calldata = encode_call(abi, function_name, args or [])
        result = self.call(
            "eth_call",
            [{"to": to_checksum_address(address), "data": calldata}, "latest"],
        )
        if result is None or result == "0x":
            return None
        return decode_result(abi, function_name, result)

    # ---------------------------------------------------------------- writes

    def submit(self, call: PendingCall, fee: FeeEstimate) -> str:
        """Sign ``call`` with the configured account and broadcast it.

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        if self.account is None:
            raise RpcError("No signing account configured")

        tx = build_transaction(
            call,
            fee,
            nonce=self.get_nonce(self.account.address),
            chain_id=self.chain_id,
        )
        if self.approver is not None and not self.approver(tx):
            raise UserRejectedError()

        raw_tx = sign_transaction(tx, self.account)
        tx_hash = self.call("eth_sendRawTransaction", [raw_tx])
        logger.info("Broadcast %s as %s", call.describe(), tx_hash)
        return tx_hash

    # ---------------------------------------------------------------- receipts

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        payload = self.call("eth_getTransactionReceipt", [tx_hash])
        if payload is None:
            return None
        validate_payload(payload, "receipt")
        return Receipt.from_rpc(payload)

    def await_receipt(
        self,
        tx_hash: str,
        confirmations: int = 1,
        cancel: Optional[threading.Event] = None,
    ) -> Receipt:
        """
        Block until ``tx_hash`` is included and ``confirmations`` deep.

        There is no deadline here; the owner abandons the wait by setting
        ``cancel``.

        Raises:
            WaitCancelledError: If ``cancel`` is set while waiting
            TransactionDroppedError: If the node forgets the transaction
        """
        unknown_polls = 0
        while True:
            receipt = self.get_receipt(tx_hash)
            if receipt is not None:
                unknown_polls = 0
                if confirmations <= 1:
                    return receipt
                depth = self.block_number() - receipt.block_number + 1
                if depth >= confirmations:
                    return receipt
            elif self.call("eth_getTransactionByHash", [tx_hash]) is None:
                unknown_polls += 1
                if unknown_polls >= DROPPED_AFTER_POLLS:
                    raise TransactionDroppedError(
                        f"Transaction {tx_hash} was dropped by the network"
                    )
            else:
                unknown_polls = 0

            if cancel is None:
                time.sleep(self.poll_interval)
            elif cancel.wait(self.poll_interval):
                raise WaitCancelledError(f"Stopped waiting for {tx_hash}")
