"""
Fee estimation with a fixed safety margin.

``FeeEstimator.estimate`` never raises.  When fee data or the gas estimate
cannot be obtained it returns ``DEFAULT_FEE_ESTIMATE`` and logs a warning;
the log line is the only way to tell a computed estimate from the default.
"""

from __future__ import annotations

import logging
from typing import Any

from ..utils import format_fixed, format_price
from .models import FeeData, FeeEstimate, PendingCall

logger = logging.getLogger(__name__)

GAS_BUFFER_NUMERATOR = 120
GAS_BUFFER_DENOMINATOR = 100

DEFAULT_GAS_LIMIT = 200_000
DEFAULT_GAS_PRICE = 20 * 10**9  # 20 gwei

DEFAULT_FEE_ESTIMATE = FeeEstimate(
    gas_limit=DEFAULT_GAS_LIMIT,
    legacy_gas_price=DEFAULT_GAS_PRICE,
    estimated_cost=format_fixed(DEFAULT_GAS_LIMIT * DEFAULT_GAS_PRICE),
)


def buffered_gas_limit(raw_estimate: int) -> int:
    """Raw estimate plus 20 %, rounded up."""
    if raw_estimate <= 0:
        raise ValueError(f"Gas estimate must be positive, got {raw_estimate}")
    return -(-raw_estimate * GAS_BUFFER_NUMERATOR // GAS_BUFFER_DENOMINATOR)


def select_fee_scheme(fee_data: FeeData) -> dict[str, int]:
    """Pick exactly one consistent fee scheme from the network's fee data.

    Returns keyword arguments for ``FeeEstimate``.
    """
    legacy = fee_data.legacy_price
    max_fee = fee_data.max_fee
    priority = fee_data.max_priority_fee

    if max_fee is None and priority is not None and legacy:
        # Dynamic-fee network without a max fee: legacy price stands in.
        max_fee = legacy

    if max_fee is not None:
        if priority is None:
            priority = max_fee
        return {
            "max_fee_per_gas": max_fee,
            "max_priority_fee_per_gas": min(priority, max_fee),
        }

    if legacy is not None:
        return {"legacy_gas_price": legacy}

    raise ValueError("Network returned no usable fee data")


class FeeEstimator:
    def __init__(self, client: Any) -> None:
        self.client = client

    def estimate(self, call: PendingCall) -> FeeEstimate:
        try:
            fee_data = self.client.get_fee_data()
            raw_limit = int(self.client.estimate_gas(call))
            gas_limit = buffered_gas_limit(raw_limit)
            scheme = select_fee_scheme(fee_data)
            ceiling = scheme.get("max_fee_per_gas", scheme.get("legacy_gas_price"))
            estimate = FeeEstimate(
                gas_limit=gas_limit,
                estimated_cost=format_fixed(gas_limit * ceiling),
                **scheme,
            )
        except Exception as exc:
            logger.warning(
                "Fee estimation failed for %s, using default estimate: %s",
                call.describe(),
                exc,
            )
            return DEFAULT_FEE_ESTIMATE

        logger.info(
            "Estimated %s: gas %d (raw %d), price ceiling %s, cost %s ETH",
            call.describe(),
            estimate.gas_limit,
            raw_limit,
            format_price(estimate.price_ceiling),
            estimate.estimated_cost,
        )
        return estimate
