"""Tests for RpcLedgerClient against an httpx.MockTransport node."""

from __future__ import annotations

import json
import threading
from typing import Any

import httpx
import pytest
from eth_account import Account

from veilscore.pneuma import rpc as rpc_module
from veilscore.pneuma.rpc import (
    DEFAULT_PRIORITY_FEE,
    RpcError,
    RpcLedgerClient,
    TransactionDroppedError,
    UserRejectedError,
    WaitCancelledError,
)
from veilscore.pneuma.schemas import SchemaValidationError
from veilscore.praxis.fees import DEFAULT_FEE_ESTIMATE

from conftest import TX_HASH

GWEI = 10**9


def _receipt_payload(status: str = "0x1", block: str = "0x64") -> dict[str, Any]:
    return {
        "transactionHash": TX_HASH,
        "blockNumber": block,
        "gasUsed": "0x5208",
        "status": status,
        "effectiveGasPrice": hex(20 * GWEI),
        "contractAddress": None,
        "logs": [],
    }


class FakeNode:
    """JSON-RPC node answering from a method -> handler table."""

    def __init__(self, handlers: dict[str, Any]) -> None:
        self.handlers = handlers
        self.calls: list[tuple[str, list]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body["params"]
        self.calls.append((method, params))
        if method not in self.handlers:
            error = {"code": -32601, "message": f"method {method} not found"}
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": error})
        handler = self.handlers[method]
        result = handler(params) if callable(handler) else handler
        if isinstance(result, dict) and "__error__" in result:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "error": result["__error__"]})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})

    def methods(self) -> list[str]:
        return [m for m, _ in self.calls]


def _client(node: FakeNode, **kwargs: Any) -> RpcLedgerClient:
    kwargs.setdefault("poll_interval", 0.01)
    return RpcLedgerClient("http://node.test", transport=httpx.MockTransport(node), **kwargs)


class TestCall:
    def test_result(self) -> None:
        client = _client(FakeNode({"eth_blockNumber": "0x10"}))
        assert client.block_number() == 16

    def test_error_object_raises(self) -> None:
        node = FakeNode({"eth_gasPrice": {"__error__": {"code": -32603, "message": "Internal error"}}})
        with pytest.raises(RpcError) as excinfo:
            _client(node).call("eth_gasPrice", [])
        assert excinfo.value.code == -32603
        assert str(excinfo.value) == "Internal error"

    def test_http_error(self) -> None:
        client = RpcLedgerClient(
            "http://node.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(httpx.HTTPStatusError):
            client.block_number()

    def test_chain_id_read_once(self) -> None:
        node = FakeNode({"eth_chainId": "0xaa36a7"})
        client = _client(node)
        assert client.chain_id == 11155111
        assert client.chain_id == 11155111
        assert node.methods() == ["eth_chainId"]


class TestFeeData:
    def test_dynamic(self) -> None:
        node = FakeNode({
            "eth_gasPrice": hex(12 * GWEI),
            "eth_getBlockByNumber": {"number": "0x10", "baseFeePerGas": hex(10 * GWEI)},
            "eth_maxPriorityFeePerGas": hex(2 * GWEI),
        })
        fee_data = _client(node).get_fee_data()

        assert fee_data.legacy_price == 12 * GWEI
        assert fee_data.max_priority_fee == 2 * GWEI
        assert fee_data.max_fee == 22 * GWEI

    def test_default_tip_when_unsupported(self) -> None:
        node = FakeNode({
            "eth_gasPrice": hex(12 * GWEI),
            "eth_getBlockByNumber": {"number": "0x10", "baseFeePerGas": hex(10 * GWEI)},
        })
        fee_data = _client(node).get_fee_data()
        assert fee_data.max_priority_fee == DEFAULT_PRIORITY_FEE

    def test_legacy_chain(self) -> None:
        node = FakeNode({
            "eth_gasPrice": hex(5 * GWEI),
            "eth_getBlockByNumber": {"number": "0x10"},
        })
        fee_data = _client(node).get_fee_data()
        assert fee_data.legacy_price == 5 * GWEI
        assert fee_data.max_fee is None

    def test_malformed_block(self) -> None:
        node = FakeNode({"eth_gasPrice": "0x1", "eth_getBlockByNumber": {"baseFeePerGas": 7}})
        with pytest.raises(SchemaValidationError) as excinfo:
            _client(node).get_fee_data()
        assert len(excinfo.value.errors) == 2


class TestSubmit:
    def _node(self) -> FakeNode:
        return FakeNode({
            "eth_getTransactionCount": "0x3",
            "eth_sendRawTransaction": lambda params: TX_HASH,
        })

    def test_signs_and_broadcasts(self, call) -> None:
        node = self._node()
        client = _client(node, chain_id=11155111, account=Account.create())

        assert client.submit(call, DEFAULT_FEE_ESTIMATE) == TX_HASH
        method, params = node.calls[-1]
        assert method == "eth_sendRawTransaction"
        assert params[0].startswith("0x")

    def test_approver_sees_unsigned_tx(self, call) -> None:
        seen: list[dict] = []

        def approve(tx: dict) -> bool:
            seen.append(tx)
            return True

        client = _client(self._node(), chain_id=1, account=Account.create(), approver=approve)
        client.submit(call, DEFAULT_FEE_ESTIMATE)
        assert seen[0]["nonce"] == 3
        assert seen[0]["gasPrice"] == 20 * GWEI

    def test_declined_approval(self, call) -> None:
        node = self._node()
        client = _client(node, chain_id=1, account=Account.create(), approver=lambda tx: False)

        with pytest.raises(UserRejectedError) as excinfo:
            client.submit(call, DEFAULT_FEE_ESTIMATE)

        assert excinfo.value.code == 4001
        assert "eth_sendRawTransaction" not in node.methods()

    def test_requires_account(self, call) -> None:
        with pytest.raises(RpcError):
            _client(self._node(), chain_id=1).submit(call, DEFAULT_FEE_ESTIMATE)


class TestReceipts:
    def test_get_receipt_absent(self) -> None:
        assert _client(FakeNode({"eth_getTransactionReceipt": None})).get_receipt(TX_HASH) is None

    def test_get_receipt(self) -> None:
        receipt = _client(FakeNode({"eth_getTransactionReceipt": _receipt_payload()})).get_receipt(TX_HASH)
        assert receipt.block_number == 100
        assert receipt.gas_used == 21000
        assert receipt.succeeded

    def test_malformed_receipt(self) -> None:
        payload = _receipt_payload()
        del payload["gasUsed"]
        with pytest.raises(SchemaValidationError):
            _client(FakeNode({"eth_getTransactionReceipt": payload})).get_receipt(TX_HASH)

    def test_await_until_included(self) -> None:
        answers = iter([None, None, _receipt_payload()])
        node = FakeNode({
            "eth_getTransactionReceipt": lambda params: next(answers),
            "eth_getTransactionByHash": {"hash": TX_HASH},
        })
        receipt = _client(node).await_receipt(TX_HASH)
        assert receipt.succeeded
        assert node.methods().count("eth_getTransactionReceipt") == 3

    def test_await_confirmation_depth(self) -> None:
        heads = iter(["0x65", "0x66"])
        node = FakeNode({
            "eth_getTransactionReceipt": _receipt_payload(block="0x64"),
            "eth_blockNumber": lambda params: next(heads),
        })
        receipt = _client(node).await_receipt(TX_HASH, confirmations=3)
        assert receipt.block_number == 100
        assert node.methods().count("eth_blockNumber") == 2

    def test_dropped_transaction(self) -> None:
        node = FakeNode({"eth_getTransactionReceipt": None, "eth_getTransactionByHash": None})
        with pytest.raises(TransactionDroppedError):
            _client(node).await_receipt(TX_HASH)
        assert node.methods().count("eth_getTransactionByHash") == rpc_module.DROPPED_AFTER_POLLS

    def test_cancel(self) -> None:
        node = FakeNode({"eth_getTransactionReceipt": None, "eth_getTransactionByHash": {"hash": TX_HASH}})
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(WaitCancelledError):
            _client(node).await_receipt(TX_HASH, cancel=cancel)
