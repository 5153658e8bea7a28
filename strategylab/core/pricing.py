"""
Black-Scholes Pricing Module

Closed-form European option pricing with a continuous dividend yield,
analytical Greeks, in-the-money probabilities and a brute-force implied
volatility search. Every function accepts either scalars or numpy arrays for
the spot price, so the same code prices a single option or reprices a leg
across a whole price grid.

Key Formulas:
    Call Price: C = S*exp(-yT)*N(d1) - X*exp(-rT)*N(d2)
    Put Price:  P = X*exp(-rT)*N(-d2) - S*exp(-yT)*N(-d1)

    where:
        d1 = [ln(S/X) + (r - y + sigma^2/2)*T] / (sigma*sqrt(T))
        d2 = d1 - sigma*sqrt(T)
        N(x) = cumulative standard normal distribution

Conventions:
    - Theta is returned per year. Divide by the number of days in the year
      to get daily decay.
    - Vega and Rho are returned per 1% move (divided by 100).
    - d1 and d2 are 0 when T <= 0 or sigma <= 0. Callers that can hit those
      cases use black_scholes_price, which falls back to intrinsic value.

Usage:
    from strategylab.core.pricing import get_bs_info, get_implied_vol

    info = get_bs_info(100.0, 105.0, 0.05, 0.20, 0.25)
    print(info.call_price, info.call_delta)

    iv = get_implied_vol('call', info.call_price, 100.0, 105.0, 0.05, 0.25)

References:
    - Black, F., & Scholes, M. (1973). The Pricing of Options and Corporate Liabilities.
    - Merton, R. C. (1973). Theory of Rational Option Pricing.
    - Hull, J. C. (2018). Options, Futures, and Other Derivatives.
"""

import logging
from typing import Union

import numpy as np
from scipy.stats import norm

from strategylab.core.exceptions import InvalidOptionTypeError
from strategylab.core.models import BlackScholesInfo

# Configure module logger
logger = logging.getLogger(__name__)

ArrayLike = Union[float, np.ndarray]


# =============================================================================
# Constants
# =============================================================================

OPTION_TYPES = ("call", "put")

# Implied volatility grid: 0.001, 0.002, ..., 1.000
IV_LOWER_BOUND = 0.001
IV_UPPER_BOUND = 1.0
IV_STEP = 0.001


# =============================================================================
# Helper Functions
# =============================================================================

def _check_option_type(option_type: str) -> None:
    if option_type not in OPTION_TYPES:
        raise InvalidOptionTypeError()


def _zeros_like(s0: ArrayLike) -> ArrayLike:
    if np.ndim(s0) == 0:
        return 0.0
    return np.zeros(np.shape(s0))


def _n_prime(d: ArrayLike) -> ArrayLike:
    """Standard normal density."""
    return np.exp(-0.5 * np.square(d)) / np.sqrt(2.0 * np.pi)


# =============================================================================
# d1 / d2
# =============================================================================

def get_d1(
    s0: ArrayLike,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    y: float = 0.0,
) -> ArrayLike:
    """
    Calculate d1 of the Black-Scholes formula.

    Args:
        s0: Spot price (scalar or array)
        x: Strike price
        r: Risk-free rate (annualized)
        vol: Volatility (annualized)
        years_to_maturity: Time to maturity in years
        y: Continuous dividend yield

    Returns:
        d1, or 0 when years_to_maturity <= 0 or vol <= 0
    """
    if years_to_maturity <= 0.0 or vol <= 0.0:
        return _zeros_like(s0)

    with np.errstate(divide="ignore"):
        numerator = np.log(np.divide(s0, x)) + (
            r - y + 0.5 * vol * vol
        ) * years_to_maturity
    return numerator / (vol * np.sqrt(years_to_maturity))


def get_d2(
    s0: ArrayLike,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    y: float = 0.0,
) -> ArrayLike:
    """Calculate d2 = d1 - vol*sqrt(T); 0 in the same degenerate cases as d1."""
    if years_to_maturity <= 0.0 or vol <= 0.0:
        return _zeros_like(s0)

    d1 = get_d1(s0, x, r, vol, years_to_maturity, y)
    return d1 - vol * np.sqrt(years_to_maturity)


# =============================================================================
# Price
# =============================================================================

def get_option_price(
    option_type: str,
    s0: ArrayLike,
    x: float,
    r: float,
    years_to_maturity: float,
    d1: ArrayLike,
    d2: ArrayLike,
    y: float = 0.0,
) -> ArrayLike:
    """
    Price a European option from precomputed d1 and d2.

    Args:
        option_type: 'call' or 'put'
        s0: Spot price (scalar or array)
        x: Strike price
        r: Risk-free rate
        years_to_maturity: Time to maturity in years
        d1: d1 from get_d1
        d2: d2 from get_d2
        y: Continuous dividend yield

    Returns:
        Option price

    Raises:
        InvalidOptionTypeError: If option_type is not 'call' or 'put'
    """
    _check_option_type(option_type)

    s = np.multiply(s0, np.exp(-y * years_to_maturity))
    discount_factor = np.exp(-r * years_to_maturity)

    if option_type == "call":
        return s * norm.cdf(d1) - x * discount_factor * norm.cdf(d2)
    return x * discount_factor * norm.cdf(-d2) - s * norm.cdf(-d1)


def black_scholes_price(
    option_type: str,
    s0: ArrayLike,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    y: float = 0.0,
) -> ArrayLike:
    """
    Price a European option, handling expiry and zero volatility explicitly.

    At T <= 0 the intrinsic value is returned. With vol <= 0 the price is
    the discounted intrinsic value of the forward, which is the limit of
    the formula as vol goes to zero.

    Example:
        >>> round(black_scholes_price('call', 100.0, 100.0, 0.05, 0.2, 1.0), 4)
        10.4506
    """
    _check_option_type(option_type)

    if years_to_maturity <= 0.0:
        if option_type == "call":
            return np.maximum(np.subtract(s0, x), 0.0)
        return np.maximum(np.subtract(x, s0), 0.0)

    if vol <= 0.0:
        fwd = np.multiply(s0, np.exp(-y * years_to_maturity))
        pv_strike = x * np.exp(-r * years_to_maturity)
        if option_type == "call":
            return np.maximum(fwd - pv_strike, 0.0)
        return np.maximum(pv_strike - fwd, 0.0)

    d1 = get_d1(s0, x, r, vol, years_to_maturity, y)
    d2 = get_d2(s0, x, r, vol, years_to_maturity, y)
    return get_option_price(option_type, s0, x, r, years_to_maturity, d1, d2, y)


# =============================================================================
# Greeks
# =============================================================================

def get_delta(
    option_type: str, d1: ArrayLike, years_to_maturity: float, y: float = 0.0
) -> ArrayLike:
    """Delta: exp(-yT)*N(d1) for calls, exp(-yT)*(N(d1) - 1) for puts."""
    _check_option_type(option_type)

    yfac = np.exp(-y * years_to_maturity)
    if option_type == "call":
        return yfac * norm.cdf(d1)
    return yfac * (norm.cdf(d1) - 1.0)


def get_gamma(
    s0: ArrayLike, vol: float, years_to_maturity: float, d1: ArrayLike, y: float = 0.0
) -> ArrayLike:
    """Gamma (same for calls and puts). 0 at expiry or with zero volatility."""
    if years_to_maturity <= 0.0 or vol <= 0.0:
        return _zeros_like(s0)

    yfac = np.exp(-y * years_to_maturity)
    return yfac * _n_prime(d1) / (np.multiply(s0, vol * np.sqrt(years_to_maturity)))


def get_theta(
    option_type: str,
    s0: ArrayLike,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    d1: ArrayLike,
    d2: ArrayLike,
    y: float = 0.0,
) -> ArrayLike:
    """
    Theta per year.

    Returns 0 at or after expiry, where the time derivative is undefined.
    """
    _check_option_type(option_type)

    if years_to_maturity <= 0.0:
        return _zeros_like(s0)

    s = np.multiply(s0, np.exp(-y * years_to_maturity))
    common_term = -(s * vol * _n_prime(d1) / (2.0 * np.sqrt(years_to_maturity)))
    pv_strike = x * np.exp(-r * years_to_maturity)

    if option_type == "call":
        return common_term - r * pv_strike * norm.cdf(d2) + y * s * norm.cdf(d1)
    return common_term + r * pv_strike * norm.cdf(-d2) - y * s * norm.cdf(-d1)


def get_vega(
    s0: ArrayLike, years_to_maturity: float, d1: ArrayLike, y: float = 0.0
) -> ArrayLike:
    """Vega per 1% volatility change."""
    if years_to_maturity <= 0.0:
        return _zeros_like(s0)

    s = np.multiply(s0, np.exp(-y * years_to_maturity))
    return s * _n_prime(d1) * np.sqrt(years_to_maturity) / 100


def get_rho(
    option_type: str, x: float, r: float, years_to_maturity: float, d2: ArrayLike
) -> ArrayLike:
    """Rho per 1% rate change."""
    _check_option_type(option_type)

    pv_strike_t = x * years_to_maturity * np.exp(-r * years_to_maturity)
    if option_type == "call":
        return pv_strike_t * norm.cdf(d2) / 100
    return -pv_strike_t * norm.cdf(-d2) / 100


def get_itm_probability(
    option_type: str, d2: ArrayLike, years_to_maturity: float, y: float = 0.0
) -> ArrayLike:
    """Risk-neutral probability of finishing in the money."""
    _check_option_type(option_type)

    yfac = np.exp(-y * years_to_maturity)
    if option_type == "call":
        return yfac * norm.cdf(d2)
    return yfac * norm.cdf(-d2)


# =============================================================================
# Implied Volatility
# =============================================================================

def get_implied_vol(
    option_type: str,
    oprice: float,
    s0: float,
    x: float,
    r: float,
    years_to_maturity: float,
    y: float = 0.0,
) -> float:
    """
    Implied volatility by grid search.

    Every volatility from 0.001 to 1.0 in steps of 0.001 is priced and the
    one whose price is closest to the market price wins. Resolution is
    therefore 0.001, and when the price is insensitive to volatility (deep
    in or out of the money, or very close to expiry) the result is
    effectively arbitrary.

    Args:
        option_type: 'call' or 'put'
        oprice: Market price of the option
        s0: Spot price
        x: Strike price
        r: Risk-free rate
        years_to_maturity: Time to maturity in years
        y: Continuous dividend yield

    Returns:
        Volatility in [0.001, 1.0]

    Example:
        >>> info = get_bs_info(100.0, 100.0, 0.05, 0.25, 0.5)
        >>> get_implied_vol('call', info.call_price, 100.0, 100.0, 0.05, 0.5)
        0.25
    """
    _check_option_type(option_type)

    n_points = int(round((IV_UPPER_BOUND - IV_LOWER_BOUND) / IV_STEP)) + 1
    volatilities = np.arange(1, n_points + 1) * IV_STEP

    if years_to_maturity > 0.0:
        sqrt_t = np.sqrt(years_to_maturity)
        d1 = (
            np.log(s0 / x) + (r - y + 0.5 * volatilities**2) * years_to_maturity
        ) / (volatilities * sqrt_t)
        d2 = d1 - volatilities * sqrt_t
    else:
        d1 = np.zeros_like(volatilities)
        d2 = np.zeros_like(volatilities)

    prices = get_option_price(option_type, s0, x, r, years_to_maturity, d1, d2, y)
    diffs = np.abs(prices - oprice)

    return float(volatilities[int(np.argmin(diffs))])


# =============================================================================
# Aggregate Info
# =============================================================================

def get_bs_info(
    s: float,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    y: float = 0.0,
) -> BlackScholesInfo:
    """
    Compute prices, Greeks and ITM probabilities for a call and a put.

    Args:
        s: Spot price
        x: Strike price
        r: Risk-free rate
        vol: Volatility
        years_to_maturity: Time to maturity in years
        y: Continuous dividend yield

    Returns:
        BlackScholesInfo with call_/put_ fields and the shared gamma and vega
    """
    d1 = get_d1(s, x, r, vol, years_to_maturity, y)
    d2 = get_d2(s, x, r, vol, years_to_maturity, y)

    return BlackScholesInfo(
        call_price=float(get_option_price("call", s, x, r, years_to_maturity, d1, d2, y)),
        put_price=float(get_option_price("put", s, x, r, years_to_maturity, d1, d2, y)),
        call_delta=float(get_delta("call", d1, years_to_maturity, y)),
        put_delta=float(get_delta("put", d1, years_to_maturity, y)),
        call_theta=float(get_theta("call", s, x, r, vol, years_to_maturity, d1, d2, y)),
        put_theta=float(get_theta("put", s, x, r, vol, years_to_maturity, d1, d2, y)),
        gamma=float(get_gamma(s, vol, years_to_maturity, d1, y)),
        vega=float(get_vega(s, years_to_maturity, d1, y)),
        call_rho=float(get_rho("call", x, r, years_to_maturity, d2)),
        put_rho=float(get_rho("put", x, r, years_to_maturity, d2)),
        call_itm_prob=float(get_itm_probability("call", d2, years_to_maturity, y)),
        put_itm_prob=float(get_itm_probability("put", d2, years_to_maturity, y)),
    )


# =============================================================================
# Module Exports
# =============================================================================

__all__ = [
    "OPTION_TYPES",
    "get_d1",
    "get_d2",
    "get_option_price",
    "black_scholes_price",
    "get_delta",
    "get_gamma",
    "get_theta",
    "get_vega",
    "get_rho",
    "get_itm_probability",
    "get_implied_vol",
    "get_bs_info",
]
