"""
Option Pricing using a Binomial Tree (Cox-Ross-Rubinstein Model)

This module prices European and American options on a recombining CRR
lattice with a continuous dividend yield. Besides the root price it can
return the whole lattice (stock prices, option values and early-exercise
flags) for inspection, and Greeks by finite differences.

Mathematical Framework:
    The binomial tree discretizes price movement into up/down steps:
        dt = T / n
        u = exp(sigma * sqrt(dt))          - up factor
        d = 1/u                            - down factor
        p = (exp((r - y)*dt) - d) / (u - d) - risk-neutral probability

    Node j at level i holds S * u^(i-j) * d^j. At each node the option
    value is

        continuation = exp(-r*dt) * [p*V_up + (1-p)*V_down]
        V = max(continuation, intrinsic)   (American)
        V = continuation                   (European)

    As n grows the European price converges to Black-Scholes.

Usage:
    >>> from strategylab.core.american_pricing import BinomialPricer, price_option
    >>>
    >>> price = price_option('put', 100, 100, 0.05, 0.20, 0.25, n_steps=200)
    >>>
    >>> pricer = BinomialPricer(steps=15)
    >>> tree = pricer.get_tree('put', 100, 100, 0.05, 0.20, 0.25)
    >>> tree.get_node(3, 1)

References:
    - Cox, J.C., Ross, S.A., & Rubinstein, M. (1979). "Option pricing: A simplified approach"
    - Hull, J.C. (2018). "Options, Futures, and Other Derivatives"
"""

import io
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from strategylab.core.exceptions import (
    InvalidNumericInputError,
    InvalidOptionTypeError,
    TreeConstructionError,
)
from strategylab.core.models import OPTION_TYPES, PricingResult

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_TREE_STEPS = 100
DEFAULT_DIAGRAM_STEPS = 15

# Minimum values for numerical stability
MIN_TIME_TO_EXPIRY = 1e-10
MIN_VOLATILITY = 1e-10

# Greeks finite difference bump sizes
DELTA_BUMP_PCT = 0.001  # spot * 0.001
THETA_BUMP = 1.0 / 365  # one calendar day, in years
VEGA_BUMP = 0.001
RHO_BUMP = 0.0001

TREE_CSV_COLUMNS = ["Step", "Node", "StockPrice", "OptionValue", "Exercise"]


# =============================================================================
# Tree Result
# =============================================================================


@dataclass
class BinomialTree:
    """
    Full CRR lattice.

    Arrays are (steps + 1) x (steps + 1); row i is the time step and only
    columns 0..i are populated.

    Attributes:
        stock_prices: Underlying price at each node
        option_values: Option value at each node
        exercise_flags: True where early exercise beats continuation
        parameters: Inputs plus up_factor, down_factor and
            risk_neutral_probability
    """

    stock_prices: np.ndarray
    option_values: np.ndarray
    exercise_flags: np.ndarray
    parameters: Dict[str, Any] = field(default_factory=dict)

    @property
    def steps(self) -> int:
        return self.stock_prices.shape[0] - 1

    @property
    def price(self) -> float:
        return float(self.option_values[0, 0])

    def get_node(self, step: int, node: int) -> Dict[str, Any]:
        """
        Return the stock price, option value and exercise flag at a node.

        Raises:
            IndexError: If the node does not exist in the lattice
        """
        if not 0 <= step <= self.steps or not 0 <= node <= step:
            raise IndexError(f"Node ({step}, {node}) is outside a {self.steps}-step tree")

        return {
            "stock_price": float(self.stock_prices[step, node]),
            "option_value": float(self.option_values[step, node]),
            "exercise": bool(self.exercise_flags[step, node]),
        }

    def diagram_data(self) -> List[Dict[str, Any]]:
        """Flatten the lattice into one record per node, in step order."""
        records = []
        for step in range(self.steps + 1):
            for node in range(step + 1):
                records.append({"step": step, "node": node, **self.get_node(step, node)})
        return records

    def to_dataframe(self) -> pd.DataFrame:
        records = self.diagram_data()
        return pd.DataFrame(
            {
                "Step": [r["step"] for r in records],
                "Node": [r["node"] for r in records],
                "StockPrice": [r["stock_price"] for r in records],
                "OptionValue": [r["option_value"] for r in records],
                "Exercise": [r["exercise"] for r in records],
            },
            columns=TREE_CSV_COLUMNS,
        )

    def to_csv(self, path_or_buf: Union[str, io.TextIOBase, None] = None) -> Optional[str]:
        """
        Write the lattice as CSV.

        Returns the CSV text when no destination is given.
        """
        return self.to_dataframe().to_csv(path_or_buf, index=False)


# =============================================================================
# Binomial Pricer Class
# =============================================================================


class BinomialPricer:
    """
    Cox-Ross-Rubinstein binomial pricer.

    Attributes:
        steps: Number of time steps in the tree

    Example:
        >>> pricer = BinomialPricer(steps=200)
        >>> price = pricer.price('put', 100, 100, 0.05, 0.20, 0.25)
        >>> greeks = pricer.calculate_greeks('put', 100, 100, 0.05, 0.20, 0.25)
    """

    def __init__(self, steps: int = DEFAULT_TREE_STEPS):
        """
        Initialize binomial pricer.

        Args:
            steps: Number of time steps in tree.

        Raises:
            ValueError: If steps < 1
        """
        if steps < 1:
            raise ValueError(f"steps must be >= 1, got {steps}")

        self.steps = steps

    def price(
        self,
        option_type: str,
        s0: float,
        x: float,
        r: float,
        vol: float,
        years_to_maturity: float,
        is_american: bool = True,
        dividend_yield: float = 0.0,
    ) -> float:
        """
        Price an option using the binomial tree.

        Args:
            option_type: 'call' or 'put'
            s0: Current spot price of the underlying
            x: Strike price
            r: Risk-free interest rate (annualized)
            vol: Volatility (annualized)
            years_to_maturity: Time to expiration in years
            is_american: If True, allow early exercise
            dividend_yield: Continuous dividend yield

        Returns:
            Option price at the root of the tree

        Raises:
            InvalidOptionTypeError: If option_type is not 'call' or 'put'
            InvalidNumericInputError: If a numeric input is out of range
            TreeConstructionError: If the risk-neutral probability is not in (0, 1)
        """
        self._validate_inputs(option_type, s0, x, r, vol, years_to_maturity)
        is_call = option_type == "call"

        if years_to_maturity <= MIN_TIME_TO_EXPIRY:
            return self._intrinsic_value(s0, x, is_call)

        if vol <= MIN_VOLATILITY:
            # Deterministic path: discounted payoff on the forward
            forward = s0 * np.exp((r - dividend_yield) * years_to_maturity)
            value = self._intrinsic_value(forward, x, is_call) * np.exp(-r * years_to_maturity)
            if is_american:
                value = max(value, self._intrinsic_value(s0, x, is_call))
            return float(value)

        u, d, p, disc = self._tree_parameters(r, vol, years_to_maturity, dividend_yield)
        return self._build_tree(s0, x, u, d, p, disc, is_call, is_american)

    def get_tree(
        self,
        option_type: str,
        s0: float,
        x: float,
        r: float,
        vol: float,
        years_to_maturity: float,
        is_american: bool = True,
        dividend_yield: float = 0.0,
    ) -> BinomialTree:
        """
        Build and return the full lattice.

        Unlike price(), this requires a positive maturity and volatility
        since a degenerate tree has nothing to show.

        Returns:
            BinomialTree with stock prices, option values and exercise flags
        """
        self._validate_inputs(option_type, s0, x, r, vol, years_to_maturity)
        if years_to_maturity <= MIN_TIME_TO_EXPIRY or vol <= MIN_VOLATILITY:
            raise InvalidNumericInputError(
                "A binomial tree needs positive time to maturity and volatility"
            )

        is_call = option_type == "call"
        n = self.steps
        u, d, p, disc = self._tree_parameters(r, vol, years_to_maturity, dividend_yield)

        level = np.arange(n + 1)[:, None]
        node = np.arange(n + 1)[None, :]
        populated = node <= level
        stock_prices = np.where(populated, s0 * u ** (level - node) * d**node, 0.0)

        option_values = np.zeros((n + 1, n + 1))
        exercise_flags = np.zeros((n + 1, n + 1), dtype=bool)

        option_values[n, :] = self._payoff(stock_prices[n, :], x, is_call)

        for i in range(n - 1, -1, -1):
            continuation = disc * (
                p * option_values[i + 1, : i + 1]
                + (1 - p) * option_values[i + 1, 1 : i + 2]
            )
            if is_american:
                exercise = self._payoff(stock_prices[i, : i + 1], x, is_call)
                exercise_flags[i, : i + 1] = exercise > continuation
                option_values[i, : i + 1] = np.maximum(continuation, exercise)
            else:
                option_values[i, : i + 1] = continuation

        parameters = {
            "option_type": option_type,
            "spot_price": s0,
            "strike_price": x,
            "risk_free_rate": r,
            "volatility": vol,
            "time_to_maturity": years_to_maturity,
            "steps": n,
            "is_american": is_american,
            "dividend_yield": dividend_yield,
            "up_factor": float(u),
            "down_factor": float(d),
            "risk_neutral_probability": float(p),
        }

        logger.debug(f"Built {n}-step {option_type} tree, p={p:.6f}")
        return BinomialTree(stock_prices, option_values, exercise_flags, parameters)

    def calculate_greeks(
        self,
        option_type: str,
        s0: float,
        x: float,
        r: float,
        vol: float,
        years_to_maturity: float,
        is_american: bool = True,
        dividend_yield: float = 0.0,
    ) -> Dict[str, float]:
        """
        Calculate Greeks via finite differences.

        Delta and gamma use central differences around the spot. Theta, vega
        and rho use forward differences, all per unit of the bumped input:
        theta is the value lost per year of decay, vega per unit of
        volatility and rho per unit of rate.

        Returns:
            Dictionary with keys 'delta', 'gamma', 'theta', 'vega', 'rho'
        """

        def value(s=s0, t=years_to_maturity, v=vol, rate=r):
            return self.price(option_type, s, x, rate, v, t, is_american, dividend_yield)

        price = value()

        h_s = s0 * DELTA_BUMP_PCT
        price_up = value(s=s0 + h_s)
        price_down = value(s=s0 - h_s)
        delta = (price_up - price_down) / (2 * h_s)
        gamma = (price_up - 2 * price + price_down) / (h_s * h_s)

        if years_to_maturity - THETA_BUMP > 0:
            price_t_down = value(t=years_to_maturity - THETA_BUMP)
        else:
            price_t_down = self._intrinsic_value(s0, x, option_type == "call")
        theta = -(price_t_down - price) / THETA_BUMP

        vega = (value(v=vol + VEGA_BUMP) - price) / VEGA_BUMP
        rho = (value(rate=r + RHO_BUMP) - price) / RHO_BUMP

        return {
            "delta": float(delta),
            "gamma": float(gamma),
            "theta": float(theta),
            "vega": float(vega),
            "rho": float(rho),
        }

    def _validate_inputs(
        self,
        option_type: str,
        s0: float,
        x: float,
        r: float,
        vol: float,
        years_to_maturity: float,
    ) -> None:
        """Validate pricing inputs"""
        if option_type not in OPTION_TYPES:
            raise InvalidOptionTypeError()

        if s0 is None or not np.isfinite(s0) or s0 <= 0:
            raise InvalidNumericInputError(f"Spot price must be positive and finite, got {s0}")

        if x is None or not np.isfinite(x) or x <= 0:
            raise InvalidNumericInputError(f"Strike price must be positive and finite, got {x}")

        if r is None or not np.isfinite(r):
            raise InvalidNumericInputError(f"Risk-free rate must be finite, got {r}")

        if vol is None or not np.isfinite(vol) or vol < 0:
            raise InvalidNumericInputError(
                f"Volatility must be non-negative and finite, got {vol}"
            )

        if years_to_maturity is None or not np.isfinite(years_to_maturity) or years_to_maturity < 0:
            raise InvalidNumericInputError(
                f"Time to maturity must be non-negative and finite, got {years_to_maturity}"
            )

    def _tree_parameters(self, r: float, vol: float, years_to_maturity: float, dividend_yield: float):
        dt = years_to_maturity / self.steps

        u = np.exp(vol * np.sqrt(dt))
        d = 1.0 / u
        p = (np.exp((r - dividend_yield) * dt) - d) / (u - d)

        if p <= 0 or p >= 1:
            raise TreeConstructionError(
                f"Invalid risk-neutral probability: {p}. "
                f"This may occur with extreme inputs (r={r}, vol={vol}, T={years_to_maturity})"
            )

        return u, d, p, np.exp(-r * dt)

    def _build_tree(
        self,
        s0: float,
        x: float,
        u: float,
        d: float,
        p: float,
        disc: float,
        is_call: bool,
        is_american: bool,
    ) -> float:
        """Backward induction on a single rolling array of node values."""
        n = self.steps

        # S * u^(n-j) * d^j for j = 0, 1, ..., n
        st = s0 * (u ** np.arange(n, -1, -1)) * (d ** np.arange(0, n + 1))
        values = self._payoff(st, x, is_call)

        for i in range(n - 1, -1, -1):
            values = disc * (p * values[:-1] + (1 - p) * values[1:])

            if is_american:
                s_i = s0 * (u ** np.arange(i, -1, -1)) * (d ** np.arange(0, i + 1))
                values = np.maximum(values, self._payoff(s_i, x, is_call))

        return float(values[0])

    @staticmethod
    def _payoff(s: np.ndarray, x: float, is_call: bool) -> np.ndarray:
        if is_call:
            return np.maximum(s - x, 0.0)
        return np.maximum(x - s, 0.0)

    @staticmethod
    def _intrinsic_value(s: float, x: float, is_call: bool) -> float:
        """Calculate intrinsic value of option"""
        if is_call:
            return max(0.0, s - x)
        return max(0.0, x - s)


# =============================================================================
# Model Inputs
# =============================================================================


@dataclass
class BinomialModelInputs:
    """Parameters of a single option priced on the CRR tree."""

    option_type: str
    stock_price: float
    strike: float
    interest_rate: float
    volatility: float
    years_to_maturity: float
    steps: int = DEFAULT_TREE_STEPS
    is_american: bool = True
    dividend_yield: float = 0.0

    def _args(self):
        return (
            self.option_type,
            self.stock_price,
            self.strike,
            self.interest_rate,
            self.volatility,
            self.years_to_maturity,
        )

    def price(self) -> float:
        return price_option(*self._args(), self.steps, self.is_american, self.dividend_yield)

    def greeks(self) -> Dict[str, float]:
        return get_greeks(*self._args(), self.steps, self.is_american, self.dividend_yield)

    def tree(self) -> BinomialTree:
        """Lattice capped at 15 steps so it stays readable."""
        return get_tree(
            *self._args(),
            min(self.steps, DEFAULT_DIAGRAM_STEPS),
            self.is_american,
            self.dividend_yield,
        )

    def result(self) -> PricingResult:
        return PricingResult(
            price=self.price(),
            model="binomial",
            parameters={
                "steps": self.steps,
                "is_american": self.is_american,
                "dividend_yield": self.dividend_yield,
            },
            **self.greeks(),
        )


# =============================================================================
# Convenience Functions
# =============================================================================


def price_option(
    option_type: str,
    s0: float,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    n_steps: int = DEFAULT_TREE_STEPS,
    is_american: bool = True,
    dividend_yield: float = 0.0,
) -> float:
    """
    Price an option on an n-step CRR tree.

    Example:
        >>> price_option('call', 100, 100, 0.05, 0.2, 1.0, n_steps=800, is_american=False)
    """
    return BinomialPricer(n_steps).price(
        option_type, s0, x, r, vol, years_to_maturity, is_american, dividend_yield
    )


def get_tree(
    option_type: str,
    s0: float,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    n_steps: int = DEFAULT_DIAGRAM_STEPS,
    is_american: bool = True,
    dividend_yield: float = 0.0,
) -> BinomialTree:
    """Full lattice for inspection or plotting."""
    return BinomialPricer(n_steps).get_tree(
        option_type, s0, x, r, vol, years_to_maturity, is_american, dividend_yield
    )


def get_greeks(
    option_type: str,
    s0: float,
    x: float,
    r: float,
    vol: float,
    years_to_maturity: float,
    n_steps: int = DEFAULT_TREE_STEPS,
    is_american: bool = True,
    dividend_yield: float = 0.0,
) -> Dict[str, float]:
    """Finite-difference Greeks on an n-step tree."""
    return BinomialPricer(n_steps).calculate_greeks(
        option_type, s0, x, r, vol, years_to_maturity, is_american, dividend_yield
    )


__all__ = [
    "DEFAULT_TREE_STEPS",
    "DEFAULT_DIAGRAM_STEPS",
    "DELTA_BUMP_PCT",
    "THETA_BUMP",
    "VEGA_BUMP",
    "RHO_BUMP",
    "BinomialTree",
    "BinomialPricer",
    "BinomialModelInputs",
    "price_option",
    "get_tree",
    "get_greeks",
]
