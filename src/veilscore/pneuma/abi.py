"""
ABI handling for the CreditAnalyzer contract.

The entry points this client needs are declared below.  When a Hardhat
build is present (``artifacts/contracts/<Name>.sol/<Name>.json``) its ABI
is preferred so a redeployed contract with extra methods still works.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from eth_abi import decode, encode
from eth_hash.auto import keccak

CREDIT_ANALYZER = "CreditAnalyzer"


def _fn(name: str, inputs: list[tuple[str, str]], outputs: list[str], mutability: str) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": "", "type": t} for t in outputs],
        "stateMutability": mutability,
    }


def _event(name: str) -> dict[str, Any]:
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [
            {"name": "user", "type": "address", "indexed": True},
            {"name": "timestamp", "type": "uint256", "indexed": False},
        ],
    }


_CREDIT_INPUTS = [
    ("encryptedIncome", "bytes"),
    ("encryptedDebt", "bytes"),
    ("encryptedAge", "bytes"),
    ("encryptedCreditHistory", "bytes"),
    ("encryptedPaymentHistory", "bytes"),
]

CREDIT_ANALYZER_ABI: list[dict[str, Any]] = [
    _fn("submitCreditData", _CREDIT_INPUTS, [], "nonpayable"),
    _fn("updateCreditData", _CREDIT_INPUTS, [], "nonpayable"),
    _fn("evaluateCreditScore", [("user", "address")], [], "nonpayable"),
    _fn("requestLoanApproval", [], [], "nonpayable"),
    _fn("hasSubmittedCreditData", [("user", "address")], ["bool"], "view"),
    _fn("isCreditEvaluated", [("user", "address")], ["bool"], "view"),
    _fn("getEvaluationStats", [], ["uint256"], "view"),
    _fn("getEncryptedCreditScore", [("user", "address")], ["bytes32"], "view"),
    _fn("getEncryptedLoanApproval", [("user", "address")], ["bytes32"], "view"),
    _event("CreditDataSubmitted"),
    _event("CreditEvaluated"),
    _event("LoanApprovalRequested"),
]


class AbiError(ValueError):
    pass


def _find_artifacts(start: Optional[Path] = None) -> Optional[Path]:
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / "artifacts" / "contracts"
        if candidate.is_dir():
            return candidate
    return None


@lru_cache(maxsize=16)
def load_abi(contract_name: str = CREDIT_ANALYZER, artifacts_dir: Optional[Path] = None) -> list[dict[str, Any]]:
    """
    Load a contract ABI.

    Args:
        contract_name: Contract name (e.g., "CreditAnalyzer")
        artifacts_dir: Hardhat ``artifacts/contracts`` directory; searched
            upward from the working directory when omitted.

    Returns:
        ABI as a list of dicts

    Raises:
        AbiError: If no artifact exists and no built-in ABI is known.
    """
    root = artifacts_dir or _find_artifacts()
    if root is not None:
        artifact_path = root / f"{contract_name}.sol" / f"{contract_name}.json"
        if artifact_path.exists():
            with artifact_path.open("r", encoding="utf-8") as f:
                return json.load(f)["abi"]

    if contract_name == CREDIT_ANALYZER:
        return CREDIT_ANALYZER_ABI
    raise AbiError(f"ABI not found for {contract_name}; build the contracts first.")


def find_function(abi: list[dict[str, Any]], function_name: str) -> dict[str, Any]:
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == function_name:
            return entry
    raise AbiError(f"Function {function_name} not found in ABI")


def function_signature(entry: dict[str, Any]) -> str:
    input_types = [inp["type"] for inp in entry.get("inputs", [])]
    return f"{entry['name']}({','.join(input_types)})"


def function_selector(entry: dict[str, Any]) -> bytes:
    # Keccak-256, not NIST SHA3-256.
    return keccak(function_signature(entry).encode("utf-8"))[:4]


def encode_call(abi: list[dict[str, Any]], function_name: str, args: list | tuple) -> str:
    """ABI-encode a function call to 0x-prefixed hex calldata."""
    func = find_function(abi, function_name)
    input_types = [inp["type"] for inp in func.get("inputs", [])]
    if len(args) != len(input_types):
        raise AbiError(
            f"{function_name} expects {len(input_types)} argument(s), got {len(args)}"
        )
    encoded_args = encode(input_types, list(args)) if input_types else b""
    return "0x" + function_selector(func).hex() + encoded_args.hex()


def decode_result(abi: list[dict[str, Any]], function_name: str, data: str) -> Any:
    """ABI-decode an ``eth_call`` result (single value or tuple)."""
    func = find_function(abi, function_name)
    output_types = [out["type"] for out in func.get("outputs", [])]
    if not output_types:
        return None

    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    decoded = decode(output_types, raw)
    if len(decoded) == 1:
        return decoded[0]
    return decoded


def event_topic(entry: dict[str, Any]) -> str:
    return "0x" + keccak(function_signature(entry).encode("utf-8")).hex()


def decode_events(abi: list[dict[str, Any]], logs: list[dict[str, Any]] | tuple) -> list[dict[str, Any]]:
    """Decode receipt logs that match events declared in ``abi``.

    Logs from other contracts or unknown events are skipped.
    """
    by_topic = {
        event_topic(entry): entry for entry in abi if entry.get("type") == "event"
    }
    events = []
    for log in logs:
        topics = log.get("topics") or []
        if not topics:
            continue
        entry = by_topic.get(topics[0].lower())
        if entry is None:
            continue

        indexed = [inp for inp in entry["inputs"] if inp.get("indexed")]
        plain = [inp for inp in entry["inputs"] if not inp.get("indexed")]
        args: dict[str, Any] = {}
        for inp, topic in zip(indexed, topics[1:]):
            (args[inp["name"]],) = decode([inp["type"]], bytes.fromhex(topic[2:]))
        data = log.get("data") or "0x"
        if plain:
            values = decode([inp["type"] for inp in plain], bytes.fromhex(data[2:]))
            args.update({inp["name"]: value for inp, value in zip(plain, values)})

        events.append({"event": entry["name"], "address": log.get("address"), "args": args})
    return events
