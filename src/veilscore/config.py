"""
Runtime configuration.

Values come from the process environment, optionally seeded from
``~/.veilscore/.env``.  Click options in the command modules can override
any of them through ``envvar=``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

VEILSCORE_DIR = Path.home() / ".veilscore"
VEILSCORE_ENV = VEILSCORE_DIR / ".env"

DEFAULT_RPC_URL = "https://ethereum-sepolia-rpc.publicnode.com"
DEFAULT_CHAIN_ID = 11155111  # Sepolia
DEFAULT_CONFIRMATIONS = 1
DEFAULT_TIMEOUT_MS = 300_000
DEFAULT_POLL_INTERVAL = 2.0


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    chain_id: int = DEFAULT_CHAIN_ID
    contract_address: Optional[str] = None
    confirmations: int = DEFAULT_CONFIRMATIONS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    poll_interval: float = DEFAULT_POLL_INTERVAL
    fhe_public_key: Optional[str] = None
    fhe_private_key: Optional[str] = None

    def __post_init__(self) -> None:
        if self.confirmations < 1:
            raise ConfigError("confirmations must be at least 1")
        if self.timeout_ms <= 0:
            raise ConfigError("timeout_ms must be positive")
        if self.poll_interval <= 0:
            raise ConfigError("poll_interval must be positive")

    @classmethod
    def from_env(
        cls,
        env_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Settings":
        """Build settings from the environment.

        Args:
            env_path: .env file to load first (default: ~/.veilscore/.env).
                Existing process variables win over the file.
            environ: Mapping to read instead of ``os.environ`` (tests).

        Raises:
            ConfigError: If a numeric variable cannot be parsed.
        """
        if environ is None:
            env_path = env_path or VEILSCORE_ENV
            if env_path.exists():
                load_dotenv(env_path, override=False)
            environ = os.environ

        return cls(
            rpc_url=environ.get("SEPOLIA_RPC_URL", DEFAULT_RPC_URL),
            chain_id=_int(environ, "CHAIN_ID", DEFAULT_CHAIN_ID),
            contract_address=environ.get("CREDIT_ANALYZER_ADDRESS") or None,
            confirmations=_int(environ, "VEILSCORE_CONFIRMATIONS", DEFAULT_CONFIRMATIONS),
            timeout_ms=_int(environ, "VEILSCORE_TIMEOUT_MS", DEFAULT_TIMEOUT_MS),
            poll_interval=_float(environ, "VEILSCORE_POLL_INTERVAL", DEFAULT_POLL_INTERVAL),
            fhe_public_key=environ.get("FHE_PUBLIC_KEY") or None,
            fhe_private_key=environ.get("FHE_PRIVATE_KEY") or None,
        )

    def with_overrides(self, **changes: object) -> "Settings":
        """Copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def require_contract(self) -> str:
        if not self.contract_address:
            raise ConfigError(
                "CREDIT_ANALYZER_ADDRESS is not set. Export it or pass --contract."
            )
        return self.contract_address


def _int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw, 0)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def _float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc
