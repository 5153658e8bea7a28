"""
Probability of Profit

Given a strategy profit curve over a grid of stock prices and a return
target, this module finds the stock price ranges where the target is
reached ("profit ranges") or missed ("loss ranges") and turns them into
probabilities.

Two terminal price models are supported:

    - Lognormal (BlackScholesModelInputs): the log of the terminal price is
      normal with mean ln(S0) + (r - y - sigma^2/2)*T and standard deviation
      sigma*sqrt(T). The probability of a range [lo, hi] is
      N((ln hi - m)/sd) - N((ln lo - m)/sd).
    - Empirical (ArrayInputs): the input array holds simulated strategy
      returns; the probability is the fraction at or above the target.

The module also draws terminal price samples (create_price_array) from a
lognormal or a Laplace distribution, for use with the array model.
"""

import logging
from typing import Any, List, Mapping, Optional, Tuple, Union

import numpy as np
from scipy.stats import norm

from strategylab.core.exceptions import (
    EmptyTerminalPriceSampleError,
    InvalidStrategyConfigurationError,
)
from strategylab.core.models import (
    ArrayInputs,
    BlackScholesModelInputs,
    LaplaceInputs,
    PoPOutputs,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_TARGET = 0.01
SIGN_EPSILON = 1e-10
MIN_SIGMA = 1e-10
DEFAULT_SAMPLE_SIZE = 100_000

Range = List[float]


# =============================================================================
# Probability of Profit
# =============================================================================

def get_pop(
    s: np.ndarray,
    profit: np.ndarray,
    inputs_data: Union[BlackScholesModelInputs, ArrayInputs],
    target: float = DEFAULT_TARGET,
) -> PoPOutputs:
    """
    Probability of reaching a return target.

    Args:
        s: Stock price grid
        profit: Strategy profit at each grid price
        inputs_data: BlackScholesModelInputs for the lognormal model or
            ArrayInputs holding simulated strategy returns
        target: Return target; the default is just above breakeven

    Returns:
        PoPOutputs with probabilities, ranges and expected returns

    Raises:
        EmptyTerminalPriceSampleError: If an ArrayInputs array is empty
    """
    s = np.asarray(s, dtype=float)
    profit = np.asarray(profit, dtype=float)

    profit_range, loss_range = _get_profit_range(s, profit, target)

    if isinstance(inputs_data, BlackScholesModelInputs):
        (
            probability_of_reaching_target,
            expected_return_above_target,
            probability_of_missing_target,
            expected_return_below_target,
        ) = _get_pop_bs(s, profit, inputs_data, (profit_range, loss_range), target)
    elif isinstance(inputs_data, ArrayInputs):
        (
            probability_of_reaching_target,
            expected_return_above_target,
            probability_of_missing_target,
            expected_return_below_target,
        ) = _get_pop_array(inputs_data, target)
    else:
        raise InvalidStrategyConfigurationError(
            f"Unsupported probability model inputs: {type(inputs_data).__name__}"
        )

    return PoPOutputs(
        probability_of_reaching_target=float(probability_of_reaching_target),
        probability_of_missing_target=float(probability_of_missing_target),
        reaching_target_range=profit_range,
        missing_target_range=loss_range,
        expected_return_above_target=expected_return_above_target,
        expected_return_below_target=expected_return_below_target,
    )


def _get_sign_changes(profit: np.ndarray, target: float) -> List[int]:
    """
    Indices where profit - target changes sign.

    Index i means the sign differs between points i - 1 and i. A small
    epsilon keeps points exactly at the target on the profit side.
    """
    p_temp = np.asarray(profit, dtype=float) - target + SIGN_EPSILON
    signs = np.where(p_temp > 0, 1, -1)
    return (np.nonzero(signs[:-1] * signs[1:] < 0)[0] + 1).tolist()


def _get_profit_range(
    s: np.ndarray, profit: np.ndarray, target: float = DEFAULT_TARGET
) -> Tuple[List[Range], List[Range]]:
    """
    Price ranges where the target is reached and where it is missed.

    Each range is [low, high]. The outermost ranges extend to 0 or to
    infinity. With no crossing there is a single range [0, inf] on the side
    where the curve starts.
    """
    crossings = _get_sign_changes(profit, target)
    n_crossings = len(crossings)

    if n_crossings == 0:
        if profit[0] >= target:
            return [[0.0, np.inf]], []
        return [], [[0.0, np.inf]]

    profit_range: List[Range] = []
    loss_range: List[Range] = []
    lb_profit = hb_profit = None
    lb_loss = hb_loss = None

    for i, index in enumerate(crossings):
        rising = profit[index] > profit[index - 1]
        below, above = float(s[index - 1]), float(s[index])

        if i == 0:
            if rising:
                lb_profit = above
                lb_loss, hb_loss = 0.0, below
                if n_crossings == 1:
                    hb_profit = np.inf
            else:
                lb_profit, hb_profit = 0.0, below
                lb_loss = above
                if n_crossings == 1:
                    hb_loss = np.inf
        elif i == n_crossings - 1:
            if rising:
                lb_profit, hb_profit = above, np.inf
                hb_loss = below
            else:
                hb_profit = below
                lb_loss, hb_loss = above, np.inf
        else:
            if rising:
                lb_profit = above
                hb_loss = below
            else:
                hb_profit = below
                lb_loss = above

        if lb_profit is not None and hb_profit is not None:
            profit_range.append([lb_profit, hb_profit])
            lb_profit = hb_profit = None
        if lb_loss is not None and hb_loss is not None:
            loss_range.append([lb_loss, hb_loss])
            lb_loss = hb_loss = None

    return profit_range, loss_range


def _lognormal_params(inputs: BlackScholesModelInputs) -> Tuple[float, float]:
    t = inputs.years_to_target_date
    sigma = inputs.volatility * np.sqrt(t) if inputs.volatility > 0.0 else MIN_SIGMA
    drift = (
        inputs.interest_rate - inputs.dividend_yield - 0.5 * inputs.volatility**2
    ) * t
    return np.log(inputs.stock_price) + drift, max(float(sigma), MIN_SIGMA)


def _lognormal_cdf(prices: np.ndarray, m: float, sigma: float) -> np.ndarray:
    with np.errstate(divide="ignore"):
        log_prices = np.log(np.asarray(prices, dtype=float))
    return norm.cdf((log_prices - m) / sigma)


def _get_pop_bs(
    s: np.ndarray,
    profit: np.ndarray,
    inputs: BlackScholesModelInputs,
    profit_range: Tuple[List[Range], List[Range]],
    target: float = DEFAULT_TARGET,
) -> Tuple[float, Optional[float], float, Optional[float]]:
    """
    Lognormal probabilities, plus probability-weighted expected returns.

    Expected returns weight each grid point by the lognormal mass of the
    bin around it (bins split halfway between grid points, the outer bins
    reaching 0 and infinity).
    """
    m, sigma = _lognormal_params(inputs)

    probabilities = []
    for ranges in profit_range:
        prob = 0.0
        for lo, hi in ranges:
            bounds = _lognormal_cdf(np.array([lo, hi]), m, sigma)
            prob += float(bounds[1] - bounds[0])
        probabilities.append(prob)
    probability_of_reaching_target, probability_of_missing_target = probabilities

    edges = np.concatenate(([0.0], (s[:-1] + s[1:]) / 2.0, [np.inf]))
    mass = np.diff(_lognormal_cdf(edges, m, sigma))
    reached = profit - target + SIGN_EPSILON > 0

    expected_return_above_target = _weighted_mean(profit[reached], mass[reached])
    expected_return_below_target = _weighted_mean(profit[~reached], mass[~reached])

    return (
        probability_of_reaching_target,
        expected_return_above_target,
        probability_of_missing_target,
        expected_return_below_target,
    )


def _weighted_mean(values: np.ndarray, weights: np.ndarray) -> Optional[float]:
    total = weights.sum()
    if values.size == 0 or total <= 0.0:
        return None
    return round(float((values * weights).sum() / total), 2)


def _get_pop_array(
    inputs: ArrayInputs, target: float = DEFAULT_TARGET
) -> Tuple[float, Optional[float], float, Optional[float]]:
    """Empirical probabilities from an array of simulated returns."""
    array = inputs.array
    if array.size == 0:
        raise EmptyTerminalPriceSampleError()

    above_target = array[array >= target]
    below_target = array[array < target]

    probability_of_reaching_target = above_target.size / array.size
    probability_of_missing_target = 1.0 - probability_of_reaching_target

    expected_return_above_target = (
        round(float(above_target.mean()), 2) if above_target.size > 0 else None
    )
    expected_return_below_target = (
        round(float(below_target.mean()), 2) if below_target.size > 0 else None
    )

    return (
        probability_of_reaching_target,
        expected_return_above_target,
        probability_of_missing_target,
        expected_return_below_target,
    )


# =============================================================================
# Terminal Price Sampling
# =============================================================================

def create_price_array(
    inputs_data: Union[BlackScholesModelInputs, LaplaceInputs, Mapping[str, Any]],
    n: int = DEFAULT_SAMPLE_SIZE,
    seed: Optional[int] = None,
) -> np.ndarray:
    """
    Draw n terminal stock prices.

    Args:
        inputs_data: BlackScholesModelInputs, LaplaceInputs, or a mapping
            with a "model" key of 'black-scholes', 'normal' or 'laplace'
        n: Sample size
        seed: Seed for reproducible samples

    Returns:
        Array of n terminal prices

    Example:
        >>> prices = create_price_array(
        ...     {"model": "black-scholes", "stock_price": 100, "volatility": 0.2,
        ...      "years_to_target_date": 0.25, "interest_rate": 0.05},
        ...     n=10_000, seed=42)
    """
    inputs = _parse_sampling_inputs(inputs_data)
    rng = np.random.default_rng(seed)
    t = inputs.years_to_target_date

    if isinstance(inputs, BlackScholesModelInputs):
        mean = np.log(inputs.stock_price) + (
            inputs.interest_rate - inputs.dividend_yield - 0.5 * inputs.volatility**2
        ) * t
        std = inputs.volatility * np.sqrt(t)
        arr = np.exp(mean + std * rng.standard_normal(n))
    else:
        location = np.log(inputs.stock_price) + inputs.mu * t
        scale = inputs.volatility * np.sqrt(t) / np.sqrt(2.0)
        arr = np.exp(rng.laplace(location, scale, n))

    logger.debug(f"Sampled {n} terminal prices with {inputs.model} model")
    return arr


def _parse_sampling_inputs(inputs_data):
    if isinstance(inputs_data, (BlackScholesModelInputs, LaplaceInputs)):
        return inputs_data

    if isinstance(inputs_data, Mapping):
        data = dict(inputs_data)
        model = data.get("model")
        if model in ("black-scholes", "normal"):
            return BlackScholesModelInputs(**data)
        if model == "laplace":
            return LaplaceInputs(**data)

    raise InvalidStrategyConfigurationError("Invalid model type!")


__all__ = [
    "DEFAULT_TARGET",
    "get_pop",
    "create_price_array",
]
