"""Tests for TransactionMonitor and StatusStream ordering."""

from __future__ import annotations

import pytest

from veilscore.praxis.models import TransactionStatus, TxState
from veilscore.praxis.monitor import StatusStream, TransactionMonitor

from conftest import TX_HASH, FakeLedger, make_receipt


def _states(updates: list[TransactionStatus]) -> list[str]:
    return [u.state.value for u in updates]


class TestTrack:
    def test_success_emits_pending_then_confirmed(self) -> None:
        updates: list[TransactionStatus] = []
        ledger = FakeLedger(receipt=make_receipt(status=1, gas_used=42_000, block=7))

        receipt = TransactionMonitor(ledger).track(TX_HASH, updates.append)

        assert receipt.succeeded
        assert _states(updates) == ["pending", "confirmed"]
        assert updates[0].confirmations == 0
        final = updates[-1]
        assert final.confirmations == 1
        assert final.gas_used == 42_000
        assert final.block_number == 7
        assert final.effective_gas_price == 20 * 10**9
        assert final.error is None

    def test_reverted_receipt_is_failed_without_raising(self) -> None:
        updates: list[TransactionStatus] = []
        ledger = FakeLedger(receipt=make_receipt(status=0))

        receipt = TransactionMonitor(ledger).track(TX_HASH, updates.append)

        assert receipt.status == 0
        assert _states(updates) == ["pending", "failed"]

    def test_multiple_confirmations_emit_one_confirming(self) -> None:
        updates: list[TransactionStatus] = []
        ledger = FakeLedger(receipt=make_receipt())

        TransactionMonitor(ledger).track(TX_HASH, updates.append, confirmations=3)

        assert _states(updates) == ["pending", "confirming", "confirmed"]
        assert updates[1].confirmations == 1
        assert updates[-1].confirmations == 3
        assert ledger.waits == [1, 3]

    def test_wait_failure_emits_failed_and_reraises(self) -> None:
        updates: list[TransactionStatus] = []
        ledger = FakeLedger(wait_error=ConnectionError("node unreachable"))

        with pytest.raises(ConnectionError):
            TransactionMonitor(ledger).track(TX_HASH, updates.append)

        assert _states(updates) == ["pending", "failed"]
        assert updates[-1].error == "node unreachable"

    def test_listener_optional(self) -> None:
        ledger = FakeLedger(receipt=make_receipt())
        assert TransactionMonitor(ledger).track(TX_HASH).succeeded

    def test_invalid_confirmations(self) -> None:
        with pytest.raises(ValueError):
            TransactionMonitor(FakeLedger()).track(TX_HASH, confirmations=0)


class TestStatusStream:
    def test_nothing_after_terminal(self) -> None:
        updates: list[TransactionStatus] = []
        stream = StatusStream(updates.append)

        assert stream.emit(TransactionStatus(TxState.PENDING))
        assert stream.emit(TransactionStatus(TxState.FAILED, error="boom"))
        assert not stream.emit(TransactionStatus(TxState.CONFIRMED))
        assert not stream.emit(TransactionStatus(TxState.FAILED, error="again"))

        assert _states(updates) == ["pending", "failed"]
        assert stream.closed

    def test_no_regression_to_pending(self) -> None:
        updates: list[TransactionStatus] = []
        stream = StatusStream(updates.append)

        stream(TransactionStatus(TxState.PENDING))
        stream(TransactionStatus(TxState.CONFIRMING, confirmations=1))
        stream(TransactionStatus(TxState.PENDING))

        assert _states(updates) == ["pending", "confirming"]

    def test_confirming_at_most_once(self) -> None:
        updates: list[TransactionStatus] = []
        stream = StatusStream(updates.append)

        stream(TransactionStatus(TxState.CONFIRMING, confirmations=1))
        stream(TransactionStatus(TxState.CONFIRMING, confirmations=2))

        assert len(updates) == 1

    def test_repeated_pending_allowed(self) -> None:
        stream = StatusStream()
        assert stream.emit(TransactionStatus(TxState.PENDING))
        assert stream.emit(TransactionStatus(TxState.PENDING, tx_hash=TX_HASH))
        assert stream.last.tx_hash == TX_HASH

    def test_to_dict_drops_empty_fields(self) -> None:
        data = TransactionStatus(TxState.PENDING, confirmations=0).to_dict()
        assert data == {"state": "pending", "confirmations": 0}
