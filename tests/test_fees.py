"""Tests for FeeEstimator and the fee-scheme helpers."""

from __future__ import annotations

import logging

import pytest

from veilscore.praxis.fees import (
    DEFAULT_FEE_ESTIMATE,
    FeeEstimator,
    buffered_gas_limit,
    select_fee_scheme,
)
from veilscore.praxis.models import FeeData, FeeEstimate

from conftest import FakeLedger

GWEI = 10**9


class TestBufferedGasLimit:
    def test_exact_multiple(self) -> None:
        assert buffered_gas_limit(100_000) == 120_000

    def test_rounds_up(self) -> None:
        assert buffered_gas_limit(100_001) == 120_002

    def test_never_below_ceiling(self) -> None:
        for raw in (1, 7, 21_000, 99_999, 123_457):
            buffered = buffered_gas_limit(raw)
            assert buffered * 100 >= raw * 120
            assert (buffered - 1) * 100 < raw * 120

    def test_non_positive_rejected(self) -> None:
        with pytest.raises(ValueError):
            buffered_gas_limit(0)


class TestSelectFeeScheme:
    def test_dynamic_pair_preferred(self) -> None:
        scheme = select_fee_scheme(FeeData(legacy_price=30 * GWEI, max_fee=50 * GWEI, max_priority_fee=2 * GWEI))
        assert scheme == {"max_fee_per_gas": 50 * GWEI, "max_priority_fee_per_gas": 2 * GWEI}

    def test_legacy_only(self) -> None:
        assert select_fee_scheme(FeeData(legacy_price=30 * GWEI)) == {"legacy_gas_price": 30 * GWEI}

    def test_missing_max_fee_uses_legacy_price(self) -> None:
        scheme = select_fee_scheme(FeeData(legacy_price=30 * GWEI, max_priority_fee=2 * GWEI))
        assert scheme == {"max_fee_per_gas": 30 * GWEI, "max_priority_fee_per_gas": 2 * GWEI}

    def test_priority_clamped_to_max_fee(self) -> None:
        scheme = select_fee_scheme(FeeData(max_fee=5 * GWEI, max_priority_fee=9 * GWEI))
        assert scheme["max_priority_fee_per_gas"] == 5 * GWEI

    def test_zero_legacy_price_is_usable(self) -> None:
        assert select_fee_scheme(FeeData(legacy_price=0)) == {"legacy_gas_price": 0}

    def test_no_fee_data(self) -> None:
        with pytest.raises(ValueError):
            select_fee_scheme(FeeData())


class TestFeeEstimator:
    def test_legacy_estimate(self, call) -> None:
        ledger = FakeLedger(fee_data=FeeData(legacy_price=10 * GWEI), gas=100_000)
        estimate = FeeEstimator(ledger).estimate(call)

        assert estimate.gas_limit == 120_000
        assert estimate.legacy_gas_price == 10 * GWEI
        assert estimate.max_fee_per_gas is None
        assert estimate.estimated_cost == "0.001200"

    def test_zero_legacy_price_estimate(self, call) -> None:
        ledger = FakeLedger(fee_data=FeeData(legacy_price=0), gas=100_000)
        estimate = FeeEstimator(ledger).estimate(call)

        assert estimate.legacy_gas_price == 0
        assert estimate.gas_limit == 120_000
        assert estimate.estimated_cost == "0.000000"

    def test_dynamic_estimate_costs_at_max_fee(self, call) -> None:
        ledger = FakeLedger(
            fee_data=FeeData(legacy_price=10 * GWEI, max_fee=25 * GWEI, max_priority_fee=1 * GWEI),
            gas=50_000,
        )
        estimate = FeeEstimator(ledger).estimate(call)

        assert estimate.is_dynamic
        assert estimate.legacy_gas_price is None
        assert estimate.gas_limit == 60_000
        assert estimate.estimated_cost == "0.001500"

    def test_fee_failure_returns_default(self, call, caplog) -> None:
        ledger = FakeLedger(fee_error=ConnectionError("node unreachable"))
        with caplog.at_level(logging.WARNING, logger="veilscore.praxis.fees"):
            estimate = FeeEstimator(ledger).estimate(call)

        assert estimate == DEFAULT_FEE_ESTIMATE
        assert "using default estimate" in caplog.text

    def test_gas_failure_returns_default(self, call) -> None:
        ledger = FakeLedger(gas_error=RuntimeError("execution reverted"))
        assert FeeEstimator(ledger).estimate(call) == DEFAULT_FEE_ESTIMATE

    def test_malformed_gas_returns_default(self, call) -> None:
        ledger = FakeLedger(gas=0)
        assert FeeEstimator(ledger).estimate(call) == DEFAULT_FEE_ESTIMATE

    def test_default_values(self) -> None:
        assert DEFAULT_FEE_ESTIMATE.gas_limit == 200_000
        assert DEFAULT_FEE_ESTIMATE.legacy_gas_price == 20 * GWEI
        assert DEFAULT_FEE_ESTIMATE.max_fee_per_gas is None
        assert DEFAULT_FEE_ESTIMATE.max_priority_fee_per_gas is None
        assert DEFAULT_FEE_ESTIMATE.estimated_cost == "0.004000"


class TestFeeEstimateInvariants:
    def test_both_schemes_rejected(self) -> None:
        with pytest.raises(ValueError):
            FeeEstimate(gas_limit=1, estimated_cost="0", legacy_gas_price=1, max_fee_per_gas=2, max_priority_fee_per_gas=1)

    def test_no_scheme_rejected(self) -> None:
        with pytest.raises(ValueError):
            FeeEstimate(gas_limit=1, estimated_cost="0")

    def test_priority_above_max_rejected(self) -> None:
        with pytest.raises(ValueError):
            FeeEstimate(gas_limit=1, estimated_cost="0", max_fee_per_gas=1, max_priority_fee_per_gas=2)

    def test_tx_fields_dynamic(self) -> None:
        fee = FeeEstimate(gas_limit=60_000, estimated_cost="0", max_fee_per_gas=5, max_priority_fee_per_gas=1)
        assert fee.tx_fields() == {"gas": 60_000, "maxFeePerGas": 5, "maxPriorityFeePerGas": 1, "type": 2}

    def test_tx_fields_legacy(self) -> None:
        assert DEFAULT_FEE_ESTIMATE.tx_fields() == {"gas": 200_000, "gasPrice": 20 * GWEI}
