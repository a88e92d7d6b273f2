"""
Estimate, submit and monitor one contract call.

``TransactionOrchestrator.execute`` is the only entry point callers need.
It owns the status stream for the invocation, bounds the confirmation wait
with the caller's deadline, and classifies every failure exactly once.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, NoReturn, Optional

from .errors import ConfirmationTimeoutError, TransactionError, classify, timeout_message
from .fees import FeeEstimator
from .models import ExecuteOptions, PendingCall, Receipt, TransactionStatus, TxState
from .monitor import StatusListener, StatusStream, TransactionMonitor

logger = logging.getLogger(__name__)


class TransactionOrchestrator:
    def __init__(
        self,
        client: Any,
        estimator: Optional[FeeEstimator] = None,
        monitor: Optional[TransactionMonitor] = None,
    ) -> None:
        self.client = client
        self.estimator = estimator or FeeEstimator(client)
        self.monitor = monitor or TransactionMonitor(client)

    def execute(
        self,
        call: PendingCall,
        on_update: Optional[StatusListener] = None,
        options: Optional[ExecuteOptions] = None,
    ) -> Receipt:
        """
        Run ``call`` to a terminal receipt.

        Args:
            call: The contract call; owned by this invocation
            on_update: Listener for the invocation's status updates
            options: Confirmation depth and confirmation-wait deadline

        Returns:
            The terminal receipt.  A receipt whose status is 0 is returned,
            not raised; the listener has already seen ``failed`` for it.

        Raises:
            TransactionError: Classified failure, after one final ``failed``
                update carrying its message.
        """
        options = options or ExecuteOptions()
        stream = StatusStream(on_update)

        logger.info("Executing %s with %d argument(s)", call.describe(), len(call.args))
        fee = self.estimator.estimate(call)

        stream.emit(TransactionStatus(TxState.PENDING, confirmations=0))

        try:
            tx_hash = self.client.submit(call, fee)
        except Exception as exc:
            self._fail(stream, exc, None, options)

        receipt = self._wait(stream, tx_hash, options)
        if not receipt.succeeded:
            logger.warning("%s reverted in %s", call.describe(), tx_hash)
        return receipt

    def _wait(self, stream: StatusStream, tx_hash: str, options: ExecuteOptions) -> Receipt:
        def relay(status: TransactionStatus) -> None:
            # Wait failures are re-emitted below with their classified message.
            if status.state is TxState.FAILED and status.error is not None:
                return
            stream.emit(status)

        cancel = threading.Event()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="veilscore-track")
        try:
            future = executor.submit(
                self.monitor.track, tx_hash, relay, options.confirmations, cancel
            )
            try:
                return future.result(timeout=options.timeout_seconds)
            except FutureTimeoutError:
                if not future.done():
                    error = ConfirmationTimeoutError(
                        timeout_message(options.timeout_seconds),
                        raw=f"No terminal receipt for {tx_hash} after {options.timeout_ms} ms",
                        tx_hash=tx_hash,
                    )
                    # emit() serializes with the worker's terminal update.
                    if self._report(stream, error, tx_hash):
                        cancel.set()
                        raise error
                    # The receipt's terminal update won; the worker is returning it.
                    return future.result()
                # The wait itself raised TimeoutError, or finished at the deadline.
                if future.exception() is None:
                    return future.result()
                self._fail(stream, future.exception(), tx_hash, options)
            except Exception as exc:
                self._fail(stream, exc, tx_hash, options)
        finally:
            cancel.set()
            executor.shutdown(wait=False, cancel_futures=True)

    def _fail(
        self,
        stream: StatusStream,
        exc: BaseException,
        tx_hash: Optional[str],
        options: ExecuteOptions,
    ) -> NoReturn:
        error = classify(exc, tx_hash=tx_hash, timeout_seconds=options.timeout_seconds)
        self._report(stream, error, tx_hash)
        if error is exc:
            raise error
        raise error from exc

    def _report(self, stream: StatusStream, error: TransactionError, tx_hash: Optional[str]) -> bool:
        """Emit the final ``failed`` update; False if the stream was already closed."""
        delivered = stream.emit(
            TransactionStatus(
                TxState.FAILED,
                tx_hash=tx_hash,
                confirmations=0,
                error=error.message,
            )
        )
        if delivered:
            logger.error("Transaction failed [%s]: %s (raw: %s)", error.kind.value, error.message, error.raw)
        return delivered
