__all__ = [
    # Models
    "ContractRef",
    "ExecuteOptions",
    "FeeData",
    "FeeEstimate",
    "PendingCall",
    "Receipt",
    "TransactionStatus",
    "TxState",
    # Execution
    "FeeEstimator",
    "TransactionMonitor",
    "TransactionOrchestrator",
    "StatusStream",
    "DEFAULT_FEE_ESTIMATE",
    "run_detached",
    # Errors
    "ErrorKind",
    "TransactionError",
    "SubmissionRejectedError",
    "UserCancelledError",
    "InsufficientFundsError",
    "ContractRejectedInputError",
    "NodeOrContractError",
    "ConfirmationTimeoutError",
    "UnknownTransactionError",
    "classify",
    "classify_message",
    # Ledger client
    "LedgerClient",
    "RpcLedgerClient",
    "RpcError",
    "UserRejectedError",
    "CREDIT_ANALYZER_ABI",
    # Sealing
    "CipherBlob",
    "CreditData",
    "DecryptResult",
    "EncryptionHandle",
    "SealingConfig",
    "SealingError",
    "encrypt_credit_data",
    # Config
    "Settings",
    "ConfigError",
    # Formatting
    "format_cost",
    "format_price",
]

from .config import ConfigError, Settings
from .praxis.background import run_detached
from .praxis.errors import (
    ConfirmationTimeoutError,
    ContractRejectedInputError,
    ErrorKind,
    InsufficientFundsError,
    NodeOrContractError,
    SubmissionRejectedError,
    TransactionError,
    UnknownTransactionError,
    UserCancelledError,
    classify,
    classify_message,
)
from .praxis.fees import DEFAULT_FEE_ESTIMATE, FeeEstimator
from .praxis.models import (
    ContractRef,
    ExecuteOptions,
    FeeData,
    FeeEstimate,
    PendingCall,
    Receipt,
    TransactionStatus,
    TxState,
)
from .praxis.monitor import StatusStream, TransactionMonitor
from .praxis.orchestrator import TransactionOrchestrator
from .pneuma.abi import CREDIT_ANALYZER_ABI
from .pneuma.rpc import LedgerClient, RpcError, RpcLedgerClient, UserRejectedError
from .sigil.sealing import (
    CipherBlob,
    CreditData,
    DecryptResult,
    EncryptionHandle,
    SealingConfig,
    SealingError,
    encrypt_credit_data,
)
from .utils import format_cost, format_price
