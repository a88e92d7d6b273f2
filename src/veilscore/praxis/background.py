"""Best-effort side tasks that must never affect a transaction's outcome."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

logger = logging.getLogger(__name__)


class ContractNotDeployedError(RuntimeError):
    pass


def run_detached(task: Callable[..., Any], *args: Any, name: str = "veilscore-bg", **kwargs: Any) -> threading.Thread:
    """Run ``task`` on a daemon thread; its failure is only logged."""

    def _runner() -> None:
        try:
            task(*args, **kwargs)
        except Exception:
            logger.warning("Background task %s failed", name, exc_info=True)

    thread = threading.Thread(target=_runner, name=name, daemon=True)
    thread.start()
    return thread


def verify_contract_deployed(client: Any, address: str) -> str:
    """Check that ``address`` holds contract code.

    Returns the code on success.

    Raises:
        ContractNotDeployedError: If the address has no code.
    """
    code = client.get_code(address)
    if not code or code == "0x":
        raise ContractNotDeployedError(f"No contract code at {address}")
    logger.info("Verified contract at %s (%d bytes of code)", address, (len(code) - 2) // 2)
    return code
