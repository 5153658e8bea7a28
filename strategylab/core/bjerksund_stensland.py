"""
American Option Pricing using the Bjerksund-Stensland (2002) Approximation

Calls are priced with the two-step flat-boundary approximation of
Bjerksund and Stensland (2002). Without dividends an American call is never
exercised early, so it is priced as a European call. Puts are priced on a
150-step American CRR tree rather than through the put-call transformation.

Numerical failures of the closed form (domain errors, NaN, negative
results) never reach the caller: the European Black-Scholes price scaled by
a small early-exercise premium is returned instead, and the final price is
never below the European price.

Greeks always come from the binomial tree (100 steps, American).

References:
    - Bjerksund, P., & Stensland, G. (2002). "Closed Form Valuation of
      American Options". Discussion paper, NHH.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict

from scipy.stats import norm

from strategylab.core.american_pricing import (
    DEFAULT_TREE_STEPS,
    get_greeks as get_binomial_greeks,
    price_option as price_binomial,
)
from strategylab.core.exceptions import AmericanPricingError, InvalidOptionTypeError
from strategylab.core.models import PricingResult
from strategylab.core.pricing import black_scholes_price, get_d1, get_delta

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MIN_DIVIDEND_YIELD = 1e-10
MIN_TIME_TO_EXPIRY = 1e-10
SMALL_DIVIDEND_YIELD = 0.001
PUT_TREE_STEPS = 150
FALLBACK_PREMIUM_FACTOR = 0.1
OTM_PUT_MONEYNESS = 0.01


# =============================================================================
# Fallbacks
# =============================================================================

def _call_fallback(s0, x, r, vol, years_to_maturity, q) -> float:
    european = black_scholes_price("call", s0, x, r, vol, years_to_maturity, q)
    return float(european * (1.0 + q * years_to_maturity * FALLBACK_PREMIUM_FACTOR))


def _put_fallback(s0, x, r, vol, years_to_maturity, q) -> float:
    european = black_scholes_price("put", s0, x, r, vol, years_to_maturity, q)
    moneyness = (x - s0) / x if x > s0 else OTM_PUT_MONEYNESS
    return float(european * (1.0 + FALLBACK_PREMIUM_FACTOR * years_to_maturity * moneyness))


# =============================================================================
# Closed Form
# =============================================================================

def _phi(s0, t, gamma, h, i, r, q, vol) -> float:
    """The phi function of the 2002 paper."""
    vol2 = vol * vol
    lam = (-r + gamma * (r - q) + 0.5 * gamma * (gamma - 1) * vol2) * t
    sqrt_t = math.sqrt(t)
    d1 = -(math.log(s0 / h) + (r - q + (gamma - 0.5) * vol2) * t) / (vol * sqrt_t)
    d3 = -(math.log(s0 / i) + (r - q + (gamma - 0.5) * vol2) * t) / (vol * sqrt_t)
    kappa = 2 * (r - q) / vol2 - (2 * gamma - 1)

    return s0**gamma * math.exp(lam) * (norm.cdf(-d1) - (i / h) ** kappa * norm.cdf(-d3))


def _bs_call(s0, x, r, vol, t, q) -> float:
    return float(black_scholes_price("call", s0, x, r, vol, t, q))


def _bs_call_delta(s0, x, r, vol, t, q) -> float:
    if t <= 0:
        return 1.0 if s0 >= x else 0.0
    return float(get_delta("call", get_d1(s0, x, r, vol, t, q), t, q))


def _bjerksund_stensland_2002(s0, x, r, q, vol, t1, t2) -> float:
    if q < SMALL_DIVIDEND_YIELD:
        return _bs_call(s0, x, r, vol, t2, q)

    vol2 = vol * vol
    term1 = (r - q) / vol2
    beta = (0.5 - term1) + math.sqrt((term1 - 0.5) ** 2 + 2 * r / vol2)
    b_inf = beta / (beta - 1) * x
    b_zero = max(x, r / q * x)

    h1 = -(r - q) * t1 + 2 * vol * math.sqrt(t1)
    h2 = -(r - q) * t2 + 2 * vol * math.sqrt(t2)
    i1 = b_zero + (b_inf - b_zero) * (1 - math.exp(h1))
    i2 = b_zero + (b_inf - b_zero) * (1 - math.exp(h2))
    alpha1 = (i1 - x) * i1 ** (-beta)
    alpha2 = (i2 - x) * i2 ** (-beta)

    if s0 >= i2:
        return s0 - x

    # Both regions share the European terms at t2
    tail = (
        _bs_call(s0, x, r, vol, t2, q)
        - _bs_call(s0, i2, r, vol, t2, q)
        - (i2 - x) * _bs_call_delta(s0, i2, r, vol, t2, q)
    )

    if s0 >= i1:
        alpha, boundary = alpha2, i2
    else:
        alpha, boundary = alpha1, i1

    return (
        alpha * s0**beta
        - alpha * _phi(s0, t1, beta, boundary, i2, r, q, vol)
        + _phi(s0, t1, 1, boundary, i2, r, q, vol)
        - _phi(s0, t1, 1, x, i2, r, q, vol)
        - x * _phi(s0, t1, 0, boundary, i2, r, q, vol)
        + x * _phi(s0, t1, 0, x, i2, r, q, vol)
        + tail
    )


# =============================================================================
# Public API
# =============================================================================

def price_american_call(s0, x, r, vol, years_to_maturity, dividend_yield=0.0) -> float:
    """
    American call price.

    Equals the European Black-Scholes call when the dividend yield is
    (effectively) zero.
    """
    if dividend_yield <= MIN_DIVIDEND_YIELD:
        return _bs_call(s0, x, r, vol, years_to_maturity, 0.0)

    if years_to_maturity <= MIN_TIME_TO_EXPIRY:
        return max(s0 - x, 0.0)

    european = _bs_call(s0, x, r, vol, years_to_maturity, dividend_yield)

    try:
        result = _bjerksund_stensland_2002(
            s0, x, r, dividend_yield, vol, years_to_maturity / 2.0, years_to_maturity
        )
        if isinstance(result, complex) or not math.isfinite(result) or result < 0:
            raise ArithmeticError(f"closed form returned {result}")
    except (ArithmeticError, ValueError) as e:
        logger.warning(f"Bjerksund-Stensland call failed ({e}), using fallback")
        result = _call_fallback(s0, x, r, vol, years_to_maturity, dividend_yield)

    return float(max(result, european))


def price_american_put(s0, x, r, vol, years_to_maturity, dividend_yield=0.0) -> float:
    """American put price from a 150-step CRR tree."""
    if years_to_maturity <= MIN_TIME_TO_EXPIRY:
        return max(x - s0, 0.0)

    european = float(black_scholes_price("put", s0, x, r, vol, years_to_maturity, dividend_yield))

    try:
        result = price_binomial(
            "put", s0, x, r, vol, years_to_maturity, PUT_TREE_STEPS, True, dividend_yield
        )
        if not math.isfinite(result) or result < 0:
            raise ArithmeticError(f"tree returned {result}")
    except (ArithmeticError, ValueError, AmericanPricingError) as e:
        logger.warning(f"Binomial put pricing failed ({e}), using fallback")
        result = _put_fallback(s0, x, r, vol, years_to_maturity, dividend_yield)

    return float(max(result, european))


def price_option(
    option_type: str,
    s0: float,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    dividend_yield: float = 0.0,
) -> float:
    """
    American option price.

    Raises:
        InvalidOptionTypeError: If option_type is not 'call' or 'put'
    """
    if option_type == "call":
        return price_american_call(s0, x, r, vol, years_to_maturity, dividend_yield)
    if option_type == "put":
        return price_american_put(s0, x, r, vol, years_to_maturity, dividend_yield)
    raise InvalidOptionTypeError()


def get_greeks(
    option_type: str,
    s0: float,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    dividend_yield: float = 0.0,
) -> Dict[str, float]:
    """Greeks from a 100-step American binomial tree."""
    return get_binomial_greeks(
        option_type, s0, x, r, vol, years_to_maturity, DEFAULT_TREE_STEPS, True, dividend_yield
    )


@dataclass
class AmericanModelInputs:
    """Parameters of a single American option."""

    option_type: str
    stock_price: float
    strike: float
    interest_rate: float
    volatility: float
    years_to_maturity: float
    dividend_yield: float = 0.0

    def _args(self):
        return (
            self.option_type,
            self.stock_price,
            self.strike,
            self.interest_rate,
            self.volatility,
            self.years_to_maturity,
            self.dividend_yield,
        )

    def price(self) -> float:
        return price_option(*self._args())

    def greeks(self) -> Dict[str, float]:
        return get_greeks(*self._args())

    def result(self) -> PricingResult:
        return PricingResult(
            price=self.price(),
            model="bjerksund-stensland",
            parameters={"dividend_yield": self.dividend_yield},
            **self.greeks(),
        )


__all__ = [
    "price_american_call",
    "price_american_put",
    "price_option",
    "get_greeks",
    "AmericanModelInputs",
]
