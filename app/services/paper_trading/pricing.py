"""Option price estimation and fill simulation.

The estimator is a deliberately crude intrinsic-plus-time-value
approximation, not a Black-Scholes solve:

    intrinsic  = max(S - K, 0)            (call)
               = max(K - S, 0)            (put)
    time_value = sqrt(days / 365) * vol * S * 0.4
"""
from datetime import date, datetime, UTC
from typing import Optional, Union

import numpy as np

from app.models.paper_order import OrderSide

DAYS_PER_YEAR = 365.0


def estimate_option_price(
    spot_price: float,
    strike_price: float,
    days_to_expiry: float = 30,
    volatility: float = 0.30,
    option_type: Optional[str] = "call",
    time_value_factor: float = 0.4,
) -> float:
    """Theoretical per-unit option price, never negative.

    Anything other than ``"call"`` is priced as a put.
    """
    values = np.array([spot_price, strike_price, days_to_expiry, volatility, time_value_factor], dtype=float)
    if not np.all(np.isfinite(values)):
        raise ValueError("Option pricing inputs must be finite numbers")

    days = max(float(days_to_expiry), 0.0)

    if option_type == "call":
        intrinsic = max(spot_price - strike_price, 0.0)
    else:
        intrinsic = max(strike_price - spot_price, 0.0)

    time_value = np.sqrt(days / DAYS_PER_YEAR) * volatility * spot_price * time_value_factor
    return float(max(intrinsic + time_value, 0.0))


def simulate_fill(theoretical_price: float, side: Union[OrderSide, str], slippage: float = 0.01) -> float:
    """Apply the bid/ask spread: buys pay up, sells give up, both by ``slippage``."""
    if OrderSide(side) == OrderSide.BUY:
        return theoretical_price * (1 + slippage)
    return theoretical_price * (1 - slippage)


def days_until(expiration: Optional[date], default_days: int, today: Optional[date] = None) -> int:
    """Calendar days to expiration, floored at zero; ``default_days`` when unknown."""
    if expiration is None:
        return default_days
    if isinstance(expiration, datetime):
        expiration = expiration.date()
    today = today or datetime.now(UTC).date()
    return max((expiration - today).days, 0)
