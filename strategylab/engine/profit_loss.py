"""
Profit/Loss Profiles

Per-leg profit and loss over a grid of stock prices. Each function returns a
(profile, cost) pair: the profile is an array the same length as the price
grid, and cost is negative for a debit (buy) and positive for a credit
(sell). Commissions are subtracted once per leg.

Usage:
    >>> import numpy as np
    >>> from strategylab.engine.profit_loss import get_pl_profile
    >>> s = np.array([100.0, 110.0, 120.0, 130.0, 140.0])
    >>> profile, cost = get_pl_profile('call', 'buy', 115.0, 5.0, 1, s)
    >>> cost
    -5.0
"""

import logging
from typing import Optional, Tuple

import numpy as np

from strategylab.core.exceptions import (
    InvalidActionError,
    InvalidNumericInputError,
    InvalidOptionTypeError,
)
from strategylab.core.models import OPTION_TYPES
from strategylab.core.pricing import black_scholes_price
from strategylab.engine.cache import EngineCache

logger = logging.getLogger(__name__)

PRICE_STEP = 0.01


def _action_sign(action: str) -> int:
    if action == "buy":
        return 1
    if action == "sell":
        return -1
    raise InvalidActionError()


def _payoff(option_type: str, s: np.ndarray, x: float) -> np.ndarray:
    if option_type == "call":
        return np.maximum(s - x, 0.0)
    if option_type == "put":
        return np.maximum(x - s, 0.0)
    raise InvalidOptionTypeError()


def get_pl_profile(
    option_type: str,
    action: str,
    x: float,
    val: float,
    n: int,
    s: np.ndarray,
    commission: float = 0.0,
) -> Tuple[np.ndarray, float]:
    """
    Profit/loss of an option leg at expiration.

    Args:
        option_type: 'call' or 'put'
        action: 'buy' or 'sell'
        x: Strike price
        val: Option price paid or received per unit
        n: Number of units
        s: Stock prices at expiration
        commission: Brokerage commission for the leg

    Returns:
        Tuple of (profile, cost)

    Raises:
        InvalidActionError: If action is not 'buy' or 'sell'
        InvalidOptionTypeError: If option_type is not 'call' or 'put'
    """
    sign = _action_sign(action)
    if option_type not in OPTION_TYPES:
        raise InvalidOptionTypeError()

    s = np.asarray(s, dtype=float)
    profile = n * sign * (_payoff(option_type, s, x) - val) - commission
    cost = -sign * val * n - commission

    return profile, float(cost)


def get_pl_profile_stock(
    s0: float,
    action: str,
    n: int,
    s: np.ndarray,
    commission: float = 0.0,
) -> Tuple[np.ndarray, float]:
    """
    Profit/loss of a stock leg.

    Args:
        s0: Entry price
        action: 'buy' or 'sell'
        n: Number of shares
        s: Stock prices
        commission: Brokerage commission for the leg

    Returns:
        Tuple of (profile, cost)
    """
    sign = _action_sign(action)

    s = np.asarray(s, dtype=float)
    profile = n * sign * (s - s0) - commission
    cost = -sign * s0 * n - commission

    return profile, float(cost)


def get_pl_profile_bs(
    option_type: str,
    action: str,
    x: float,
    val: float,
    r: float,
    target_to_maturity_years: float,
    volatility: float,
    n: int,
    s: np.ndarray,
    y: float = 0.0,
    commission: float = 0.0,
) -> Tuple[np.ndarray, float]:
    """
    Profit/loss of an option leg on a date before expiration.

    The option is repriced with Black-Scholes at each stock price using
    the time left between the target date and expiration.

    Returns:
        Tuple of (profile, cost)
    """
    sign = _action_sign(action)

    s = np.asarray(s, dtype=float)
    calc_price = black_scholes_price(
        option_type, s, x, r, volatility, target_to_maturity_years, y
    )
    profile = sign * n * (calc_price - val) - commission
    cost = -sign * val * n - commission

    return profile, float(cost)


def create_price_seq(
    min_price: float, max_price: float, cache: Optional[EngineCache] = None
) -> np.ndarray:
    """
    Stock prices from min_price to max_price in steps of 0.01.

    Grids are cached by their bounds and returned read-only.

    Raises:
        InvalidNumericInputError: If max_price is not greater than min_price
    """
    key = (float(min_price), float(max_price))
    if cache is not None and key in cache.price_grids:
        logger.debug(f"Price grid cache hit for {key}")
        return cache.price_grids[key]

    if max_price <= min_price:
        raise InvalidNumericInputError("Maximum price cannot be less than minimum price!")

    steps = int(round((max_price - min_price) / PRICE_STEP)) + 1
    arr = np.round(min_price + np.arange(steps) * PRICE_STEP, 2)
    arr.flags.writeable = False

    if cache is not None:
        cache.price_grids[key] = arr

    return arr


__all__ = [
    "PRICE_STEP",
    "get_pl_profile",
    "get_pl_profile_stock",
    "get_pl_profile_bs",
    "create_price_seq",
]
