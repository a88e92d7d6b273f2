"""Value types shared by the estimator, monitor and orchestrator."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Optional, Sequence

from ..utils import to_int


class TxState(str, Enum):
    PENDING = "pending"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return _STATE_RANK[self]

    @property
    def is_terminal(self) -> bool:
        return self in (TxState.CONFIRMED, TxState.FAILED)


_STATE_RANK = {
    TxState.PENDING: 0,
    TxState.CONFIRMING: 1,
    TxState.CONFIRMED: 2,
    TxState.FAILED: 2,
}


@dataclass(frozen=True)
class ContractRef:
    address: str
    abi: Sequence[dict[str, Any]] = field(repr=False, compare=False)
    name: str = "contract"


@dataclass(frozen=True)
class PendingCall:
    """A state-changing contract call that has not been submitted yet."""

    contract: ContractRef
    method: str
    args: tuple[Any, ...] = ()
    value: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))
        if not self.method:
            raise ValueError("PendingCall.method must be non-empty")
        if self.value < 0:
            raise ValueError("PendingCall.value must be non-negative")

    @property
    def to(self) -> str:
        return self.contract.address

    def describe(self) -> str:
        return f"{self.contract.name}.{self.method}"


@dataclass(frozen=True)
class FeeData:
    legacy_price: Optional[int] = None
    max_fee: Optional[int] = None
    max_priority_fee: Optional[int] = None


@dataclass(frozen=True)
class FeeEstimate:
    gas_limit: int
    estimated_cost: str
    legacy_gas_price: Optional[int] = None
    max_fee_per_gas: Optional[int] = None
    max_priority_fee_per_gas: Optional[int] = None

    def __post_init__(self) -> None:
        if self.gas_limit <= 0:
            raise ValueError("gas_limit must be positive")
        dynamic = (self.max_fee_per_gas, self.max_priority_fee_per_gas)
        has_legacy = self.legacy_gas_price is not None
        has_dynamic = any(v is not None for v in dynamic)
        if has_legacy == has_dynamic:
            raise ValueError("Exactly one fee scheme must be populated")
        if has_dynamic:
            if None in dynamic:
                raise ValueError("Dynamic fee scheme needs both max fee and priority fee")
            if self.max_fee_per_gas < self.max_priority_fee_per_gas:
                raise ValueError("max_fee_per_gas must be >= max_priority_fee_per_gas")

    @property
    def is_dynamic(self) -> bool:
        return self.max_fee_per_gas is not None

    @property
    def price_ceiling(self) -> int:
        """Highest per-gas price this estimate may pay."""
        if self.max_fee_per_gas is not None:
            return self.max_fee_per_gas
        return self.legacy_gas_price  # type: ignore[return-value]

    def tx_fields(self) -> dict[str, int]:
        """Transaction dict fields for this fee scheme."""
        fields: dict[str, int] = {"gas": self.gas_limit}
        if self.is_dynamic:
            fields["maxFeePerGas"] = self.max_fee_per_gas  # type: ignore[assignment]
            fields["maxPriorityFeePerGas"] = self.max_priority_fee_per_gas  # type: ignore[assignment]
            fields["type"] = 2
        else:
            fields["gasPrice"] = self.legacy_gas_price  # type: ignore[assignment]
        return fields


@dataclass(frozen=True)
class Receipt:
    transaction_hash: str
    block_number: int
    gas_used: int
    status: int
    effective_gas_price: Optional[int] = None
    contract_address: Optional[str] = None
    logs: tuple[dict[str, Any], ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.status == 1

    @classmethod
    def from_rpc(cls, payload: dict[str, Any]) -> "Receipt":
        """Build from an ``eth_getTransactionReceipt`` result."""
        return cls(
            transaction_hash=payload["transactionHash"],
            block_number=to_int(payload["blockNumber"]),
            gas_used=to_int(payload["gasUsed"]),
            status=to_int(payload.get("status", "0x0")),
            effective_gas_price=to_int(payload.get("effectiveGasPrice")),
            contract_address=payload.get("contractAddress"),
            logs=tuple(payload.get("logs") or ()),
        )


@dataclass(frozen=True)
class TransactionStatus:
    state: TxState
    tx_hash: Optional[str] = None
    confirmations: int = 0
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None
    block_number: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @classmethod
    def from_receipt(cls, receipt: Receipt, confirmations: int) -> "TransactionStatus":
        return cls(
            state=TxState.CONFIRMED if receipt.succeeded else TxState.FAILED,
            tx_hash=receipt.transaction_hash,
            confirmations=confirmations,
            gas_used=receipt.gas_used,
            effective_gas_price=receipt.effective_gas_price,
            block_number=receipt.block_number,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return {k: v for k, v in data.items() if v is not None}


@dataclass(frozen=True)
class ExecuteOptions:
    confirmations: int = 1
    timeout_ms: int = 300_000

    def __post_init__(self) -> None:
        if self.confirmations < 1:
            raise ValueError("confirmations must be at least 1")
        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000
