from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

ETHER_DECIMALS = 18
GWEI_DECIMALS = 9
COST_DECIMALS = 6

_UNIT_DECIMALS = {
    "wei": 0,
    "gwei": GWEI_DECIMALS,
    "ether": ETHER_DECIMALS,
}


def to_int(value: Union[int, str, None]) -> int | None:
    """Parse a JSON-RPC quantity (``0x``-prefixed hex) or a plain int."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("Boolean is not a quantity")
    if isinstance(value, int):
        return value
    text = value.strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


def format_units(value: int, unit: Union[str, int] = "ether") -> str:
    """Render an integer amount in the given unit without losing precision.

    Trailing fractional zeros are stripped but at least one fractional digit
    is kept, e.g. ``format_units(10**18) == "1.0"``.
    """
    decimals = _UNIT_DECIMALS[unit] if isinstance(unit, str) else unit
    if decimals == 0:
        return str(value)
    negative = value < 0
    whole, frac = divmod(abs(value), 10**decimals)
    frac_text = str(frac).rjust(decimals, "0").rstrip("0") or "0"
    return f"{'-' if negative else ''}{whole}.{frac_text}"


def format_fixed(amount_wei: int, places: int = COST_DECIMALS) -> str:
    """Ether amount with a fixed number of fractional digits (half-up)."""
    ether = Decimal(amount_wei) / (Decimal(10) ** ETHER_DECIMALS)
    quantum = Decimal(1).scaleb(-places)
    return str(ether.quantize(quantum, rounding=ROUND_HALF_UP))


def calculate_transaction_cost(gas_used: int, gas_price: int) -> str:
    """Exact cost of ``gas_used`` at ``gas_price`` wei, in ether."""
    return format_units(gas_used * gas_price, "ether")


def format_cost(gas_used: int, gas_price: int, places: int = COST_DECIMALS) -> str:
    """Display cost in ether, e.g. ``format_cost(21000, 20 * 10**9) == "0.000420 ETH"``."""
    return f"{format_fixed(gas_used * gas_price, places)} ETH"


def format_price(gas_price: int) -> str:
    """Display a per-gas price, e.g. ``format_price(20 * 10**9) == "20.0 gwei"``."""
    return f"{format_units(gas_price, 'gwei')} gwei"


def format_gas_used(gas_used: int) -> str:
    return f"{gas_used:,}"


def short_hash(value: str, head: int = 10, tail: int = 8) -> str:
    if len(value) <= head + tail + 3:
        return value
    return f"{value[:head]}...{value[-tail:]}"
