"""
Transaction lifecycle tracking.

``TransactionMonitor.track`` waits for a submitted transaction and reports
progress through a listener.  ``StatusStream`` wraps a listener and holds
the ordering rules for one invocation: ``pending`` first, at most one
``confirming``, exactly one terminal update, nothing afterwards.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from .models import Receipt, TransactionStatus, TxState

logger = logging.getLogger(__name__)

StatusListener = Callable[[TransactionStatus], None]


class StatusStream:
    """Serialized, monotonic delivery of status updates to one listener."""

    def __init__(self, listener: Optional[StatusListener] = None) -> None:
        self._listener = listener
        self._lock = threading.RLock()
        self._last: Optional[TransactionStatus] = None
        self._confirming_sent = False

    @property
    def last(self) -> Optional[TransactionStatus]:
        return self._last

    @property
    def closed(self) -> bool:
        return self._last is not None and self._last.is_terminal

    def emit(self, status: TransactionStatus) -> bool:
        """Deliver ``status`` unless it would break ordering.

        Returns True when the update reached the listener.
        """
        with self._lock:
            if self.closed:
                logger.debug("Dropped %s update after terminal state", status.state.value)
                return False
            if self._last is not None and status.state.rank < self._last.state.rank:
                logger.debug(
                    "Dropped %s update after %s", status.state.value, self._last.state.value
                )
                return False
            if status.state is TxState.CONFIRMING:
                if self._confirming_sent:
                    return False
                self._confirming_sent = True

            self._last = status
            if self._listener is not None:
                self._listener(status)
            return True

    __call__ = emit


class TransactionMonitor:
    def __init__(self, client: Any) -> None:
        self.client = client

    def track(
        self,
        tx_hash: str,
        on_update: Optional[StatusListener] = None,
        confirmations: int = 1,
        cancel: Optional[threading.Event] = None,
    ) -> Receipt:
        """
        Wait for ``tx_hash`` to reach a terminal state.

        Args:
            tx_hash: Hash returned by the submission
            on_update: Listener for status updates
            confirmations: Block depth to wait for (default 1)
            cancel: Set by the owner to abandon the wait

        Returns:
            The terminal receipt, successful or reverted

        Raises:
            Whatever the ledger wait raised, after a terminal ``failed``
            update carrying its message.
        """
        if confirmations < 1:
            raise ValueError("confirmations must be at least 1")

        stream = StatusStream(on_update)
        stream.emit(TransactionStatus(TxState.PENDING, tx_hash=tx_hash, confirmations=0))

        try:
            receipt = self.client.await_receipt(tx_hash, 1, cancel=cancel)
            if confirmations > 1:
                stream.emit(
                    TransactionStatus(
                        TxState.CONFIRMING,
                        tx_hash=tx_hash,
                        confirmations=1,
                        block_number=receipt.block_number,
                    )
                )
                receipt = self.client.await_receipt(tx_hash, confirmations, cancel=cancel)
        except Exception as exc:
            logger.error("Tracking %s failed: %s", tx_hash, exc)
            stream.emit(
                TransactionStatus(
                    TxState.FAILED,
                    tx_hash=tx_hash,
                    confirmations=0,
                    error=str(exc) or type(exc).__name__,
                )
            )
            raise

        final = TransactionStatus.from_receipt(receipt, confirmations)
        logger.info(
            "Transaction %s %s in block %d (gas used %d)",
            tx_hash,
            final.state.value,
            receipt.block_number,
            receipt.gas_used,
        )
        stream.emit(final)
        return receipt
