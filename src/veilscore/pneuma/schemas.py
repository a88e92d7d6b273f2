"""
JSON Schemas for node responses.

A node that answers with a structurally broken receipt or block must not
leak ``KeyError``s into the fee or receipt logic; payloads are checked here
first and rejected with ``SchemaValidationError``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import jsonschema
from jsonschema import FormatChecker

_QUANTITY = {"type": "string", "pattern": "^0x[0-9a-fA-F]+$"}
_HASH = {"type": "string", "pattern": "^0x[0-9a-fA-F]{64}$"}
_ADDRESS_OR_NULL = {
    "oneOf": [
        {"type": "string", "pattern": "^0x[0-9a-fA-F]{40}$"},
        {"type": "null"},
    ]
}

RECEIPT_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "eth_getTransactionReceipt result",
    "type": "object",
    "required": ["transactionHash", "blockNumber", "gasUsed", "status"],
    "properties": {
        "transactionHash": _HASH,
        "blockNumber": _QUANTITY,
        "gasUsed": _QUANTITY,
        "status": {"type": "string", "enum": ["0x0", "0x1"]},
        "effectiveGasPrice": _QUANTITY,
        "contractAddress": _ADDRESS_OR_NULL,
        "logs": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["address", "topics", "data"],
                "properties": {
                    "address": {"type": "string"},
                    "topics": {"type": "array", "items": _HASH},
                    "data": {"type": "string", "pattern": "^0x[0-9a-fA-F]*$"},
                },
            },
        },
    },
}

BLOCK_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "eth_getBlockByNumber result",
    "type": "object",
    "required": ["number"],
    "properties": {
        "number": _QUANTITY,
        "baseFeePerGas": _QUANTITY,
    },
}

SCHEMAS = {
    "receipt": RECEIPT_SCHEMA,
    "block": BLOCK_SCHEMA,
}


class SchemaValidationError(ValueError):
    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []

    def __str__(self) -> str:
        base = super().__str__()
        if not self.errors:
            return base
        return f"{base} ({'; '.join(self.errors)})"


@lru_cache(maxsize=None)
def validator_for(schema_name: str) -> jsonschema.Validator:
    schema = SCHEMAS[schema_name]
    validator_cls = jsonschema.validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema, format_checker=FormatChecker())


def validate_payload(instance: Any, schema_name: str) -> None:
    """Validate a node payload against a named schema.

    Raises:
        SchemaValidationError: With one formatted entry per violation.
    """
    validator = validator_for(schema_name)
    errors = sorted(validator.iter_errors(instance), key=lambda e: "/".join(str(p) for p in e.path))
    if errors:
        formatted = [_format_error(err) for err in errors]
        raise SchemaValidationError(
            f"Malformed {schema_name} returned by node.",
            errors=formatted,
        )


def _format_error(error: jsonschema.ValidationError) -> str:
    location = "/".join(str(part) for part in error.path) or "<root>"
    return f"{location}: {error.message}"
