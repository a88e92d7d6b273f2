"""
Failure taxonomy and classification.

Every failure that reaches the caller of ``TransactionOrchestrator.execute``
is a ``TransactionError`` subclass with a short, stable message that does
not depend on the transport's wording.  Classification happens once; an
error that is already a ``TransactionError`` passes through unchanged.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

USER_REJECTED_CODE = 4001
INTERNAL_ERROR_CODE = -32603


class ErrorKind(str, Enum):
    SUBMISSION_REJECTED = "submission-rejected"
    USER_CANCELLED = "user-cancelled"
    INSUFFICIENT_FUNDS = "insufficient-funds"
    CONTRACT_REJECTED_INPUT = "contract-rejected-input"
    NODE_OR_CONTRACT_ERROR = "node-or-contract-error"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class TransactionError(RuntimeError):
    kind: ErrorKind = ErrorKind.UNKNOWN
    exit_code: int = 1

    def __init__(
        self,
        message: str,
        raw: Optional[str] = None,
        tx_hash: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.raw = message if raw is None else raw
        self.tx_hash = tx_hash


class SubmissionRejectedError(TransactionError):
    kind = ErrorKind.SUBMISSION_REJECTED
    exit_code = 2


class UserCancelledError(TransactionError):
    kind = ErrorKind.USER_CANCELLED
    exit_code = 3


class InsufficientFundsError(TransactionError):
    kind = ErrorKind.INSUFFICIENT_FUNDS
    exit_code = 4


class ContractRejectedInputError(TransactionError):
    kind = ErrorKind.CONTRACT_REJECTED_INPUT
    exit_code = 5


class NodeOrContractError(TransactionError):
    kind = ErrorKind.NODE_OR_CONTRACT_ERROR
    exit_code = 6


class ConfirmationTimeoutError(TransactionError):
    kind = ErrorKind.TIMEOUT
    exit_code = 7


class UnknownTransactionError(TransactionError):
    kind = ErrorKind.UNKNOWN
    exit_code = 1


_ERROR_CLASSES: dict[ErrorKind, type[TransactionError]] = {
    cls.kind: cls
    for cls in (
        SubmissionRejectedError,
        UserCancelledError,
        InsufficientFundsError,
        ContractRejectedInputError,
        NodeOrContractError,
        ConfirmationTimeoutError,
        UnknownTransactionError,
    )
}

MESSAGE_CANCELLED = "Transaction cancelled by user"
MESSAGE_NODE_ERROR = "Transaction failed - insufficient funds or contract error"
MESSAGE_INSUFFICIENT_FUNDS = "Insufficient ETH balance for gas fees"
MESSAGE_REJECTED = "Transaction rejected by user"
MESSAGE_REVERTED = "Contract execution failed - check your data"
MESSAGE_NODE_REJECTED = "Transaction rejected by the network node"

# Substring markers, checked in order against the lowercased message.
_MESSAGE_RULES: tuple[tuple[tuple[str, ...], ErrorKind, str], ...] = (
    (("insufficient funds",), ErrorKind.INSUFFICIENT_FUNDS, MESSAGE_INSUFFICIENT_FUNDS),
    (("user rejected",), ErrorKind.USER_CANCELLED, MESSAGE_REJECTED),
    (("execution reverted",), ErrorKind.CONTRACT_REJECTED_INPUT, MESSAGE_REVERTED),
    (
        (
            "nonce too low",
            "replacement transaction underpriced",
            "already known",
            "transaction underpriced",
            "intrinsic gas too low",
            "exceeds block gas limit",
        ),
        ErrorKind.SUBMISSION_REJECTED,
        MESSAGE_NODE_REJECTED,
    ),
)


def timeout_message(timeout_seconds: float) -> str:
    return f"Transaction was not confirmed within {timeout_seconds:g} seconds"


def classify_message(message: str) -> tuple[ErrorKind, str]:
    """Map a raw error message to ``(kind, user-facing message)``.

    Unmatched messages classify as ``unknown`` and keep the raw text.
    """
    lowered = (message or "").lower()
    for markers, kind, text in _MESSAGE_RULES:
        if any(marker in lowered for marker in markers):
            return kind, text
    return ErrorKind.UNKNOWN, message


def classify(
    exc: BaseException,
    tx_hash: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
) -> TransactionError:
    """Translate any exception into its ``TransactionError``."""
    if isinstance(exc, TransactionError):
        if tx_hash and exc.tx_hash is None:
            exc.tx_hash = tx_hash
        return exc

    raw = str(exc) or type(exc).__name__

    if isinstance(exc, TimeoutError):
        message = timeout_message(timeout_seconds) if timeout_seconds else "Transaction confirmation timed out"
        return ConfirmationTimeoutError(message, raw=raw, tx_hash=tx_hash)

    code = getattr(exc, "code", None)
    if code == USER_REJECTED_CODE:
        return UserCancelledError(MESSAGE_CANCELLED, raw=raw, tx_hash=tx_hash)
    if code == INTERNAL_ERROR_CODE:
        return NodeOrContractError(MESSAGE_NODE_ERROR, raw=raw, tx_hash=tx_hash)

    kind, message = classify_message(raw)
    return _ERROR_CLASSES[kind](message, raw=raw, tx_hash=tx_hash)
