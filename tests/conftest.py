"""Shared fixtures: an in-memory ledger standing in for the JSON-RPC client."""

from __future__ import annotations

import threading
from typing import Any, Optional

import pytest

from veilscore.pneuma.abi import CREDIT_ANALYZER_ABI
from veilscore.praxis.models import ContractRef, FeeData, PendingCall, Receipt

CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TX_HASH = "0x" + "ab" * 32


class FakeLedger:
    """Configurable ledger.  Leave ``receipt`` as None to never include."""

    def __init__(
        self,
        fee_data: Optional[FeeData] = None,
        gas: int = 100_000,
        receipt: Optional[Receipt] = None,
        fee_error: Optional[Exception] = None,
        gas_error: Optional[Exception] = None,
        submit_error: Optional[Exception] = None,
        wait_error: Optional[Exception] = None,
        code: str = "0x6080",
    ) -> None:
        self.fee_data = fee_data or FeeData(legacy_price=10 * 10**9)
        self.gas = gas
        self.receipt = receipt
        self.fee_error = fee_error
        self.gas_error = gas_error
        self.submit_error = submit_error
        self.wait_error = wait_error
        self.code = code
        self.submitted: list[tuple[PendingCall, Any]] = []
        self.waits: list[int] = []
        self.reads: dict[str, Any] = {}
        self.cancelled = threading.Event()

    def get_fee_data(self) -> FeeData:
        if self.fee_error:
            raise self.fee_error
        return self.fee_data

    def estimate_gas(self, call: PendingCall) -> int:
        if self.gas_error:
            raise self.gas_error
        return self.gas

    def submit(self, call: PendingCall, fee: Any) -> str:
        if self.submit_error:
            raise self.submit_error
        self.submitted.append((call, fee))
        return TX_HASH

    def await_receipt(
        self,
        tx_hash: str,
        confirmations: int = 1,
        cancel: Optional[threading.Event] = None,
    ) -> Receipt:
        self.waits.append(confirmations)
        if self.wait_error:
            raise self.wait_error
        if self.receipt is None:
            # Never included: block until the owner gives up.
            if cancel is None or not cancel.wait(10):
                raise AssertionError("wait was never cancelled")
            self.cancelled.set()
            raise RuntimeError("wait cancelled")
        return self.receipt

    def get_receipt(self, tx_hash: str) -> Optional[Receipt]:
        return self.receipt

    def get_code(self, address: str) -> str:
        return self.code

    def read(self, address: str, abi: list, function_name: str, args: Optional[list] = None) -> Any:
        return self.reads.get(function_name)


def make_receipt(status: int = 1, gas_used: int = 21_000, block: int = 100) -> Receipt:
    return Receipt(
        transaction_hash=TX_HASH,
        block_number=block,
        gas_used=gas_used,
        status=status,
        effective_gas_price=20 * 10**9,
    )


@pytest.fixture()
def contract() -> ContractRef:
    return ContractRef(address=CONTRACT_ADDRESS, abi=CREDIT_ANALYZER_ABI, name="CreditAnalyzer")


@pytest.fixture()
def call(contract: ContractRef) -> PendingCall:
    return PendingCall(contract=contract, method="requestLoanApproval")
