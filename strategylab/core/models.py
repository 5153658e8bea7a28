"""
Data Model for Strategy Evaluation

Typed containers for everything the engine consumes and produces:

    - Strategy legs: OptionLeg, StockLeg and ClosedPositionLeg. A leg mapping
      is turned into one of them by parse_strategy_leg, which dispatches on
      the mapping's "type" field.
    - Inputs: market data, price grid bounds, dates, pricing model and the
      list of legs. All validation happens in __post_init__, before any
      computation.
    - Model inputs for the probability engine: BlackScholesModelInputs,
      LaplaceInputs and ArrayInputs.
    - Results: BlackScholesInfo, PoPOutputs, EngineData, Outputs and
      PricingResult.

Usage:
    >>> from strategylab.core.models import Inputs
    >>> inputs = Inputs.from_dict({
    ...     "stock_price": 164.04,
    ...     "volatility": 0.272,
    ...     "interest_rate": 0.0002,
    ...     "min_stock": 120,
    ...     "max_stock": 200,
    ...     "start_date": "2021-11-22",
    ...     "target_date": "2021-12-17",
    ...     "strategy": [
    ...         {"type": "call", "strike": 165.0, "premium": 4.60, "n": 100, "action": "buy"},
    ...     ],
    ... })
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from numbers import Integral
from typing import Any, Dict, List, Mapping, Optional, Union
import logging

import numpy as np

from strategylab.core.exceptions import (
    EmptyTerminalPriceSampleError,
    InvalidActionError,
    InvalidNumericInputError,
    InvalidOptionTypeError,
    InvalidStrategyConfigurationError,
    InvalidStrategyLegTypeError,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

OPTION_TYPES = ("call", "put")
ACTIONS = ("buy", "sell")
LEG_TYPES = ("call", "put", "stock", "closed")
PRICE_MODELS = ("black-scholes", "normal", "array")
SAMPLING_MODELS = ("black-scholes", "normal", "laplace")

DEFAULT_BUSINESS_DAYS_IN_YEAR = 252
DEFAULT_COUNTRY = "US"


# =============================================================================
# Helpers
# =============================================================================

def _to_date(value: Any) -> Optional[date]:
    """Accept date, datetime or ISO string."""
    if value is None or (isinstance(value, date) and not isinstance(value, datetime)):
        return value
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise InvalidStrategyConfigurationError(f"Invalid date value: {value!r}")


def _to_expiration(value: Any) -> Union[date, int, None]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidStrategyConfigurationError(
            "Expiration must be a date, an int, or None."
        )
    if isinstance(value, int):
        if value <= 0:
            raise InvalidStrategyConfigurationError(
                "If expiration is an integer, it must be greater than 0"
            )
        return value
    if isinstance(value, (date, str)):
        return _to_date(value)
    raise InvalidStrategyConfigurationError(
        "Expiration must be a date, an int, or None."
    )


def _check_action(action: str) -> None:
    if action not in ACTIONS:
        raise InvalidActionError()


def _check_positive(name: str, value: float) -> None:
    if value is None or not np.isfinite(value) or value <= 0:
        raise InvalidNumericInputError(f"{name} must be greater than zero, got {value}")


def _check_quantity(value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise InvalidNumericInputError(f"n must be an integer, got {value!r}")
    _check_positive("n", value)


def _check_non_negative(name: str, value: float) -> None:
    if value is None or not np.isfinite(value) or value < 0:
        raise InvalidNumericInputError(f"{name} must be non-negative, got {value}")


# =============================================================================
# Strategy Legs
# =============================================================================

@dataclass(frozen=True)
class OptionLeg:
    """
    A call or put position.

    Attributes:
        type: 'call' or 'put'
        strike: Strike price
        premium: Option premium per unit
        n: Number of units (contracts times multiplier)
        action: 'buy' or 'sell'
        expiration: Expiration as a date, a number of days, or None to expire
            on the target date
        previous_position: Entry value of an existing position. A negative
            value marks a position already closed at that price.
    """

    type: str
    strike: float
    premium: float
    n: int
    action: str
    expiration: Union[date, int, None] = None
    previous_position: Optional[float] = None

    def __post_init__(self):
        if self.type not in OPTION_TYPES:
            raise InvalidOptionTypeError()
        _check_action(self.action)
        _check_positive("strike", self.strike)
        _check_positive("premium", self.premium)
        _check_quantity(self.n)
        object.__setattr__(self, "expiration", _to_expiration(self.expiration))


@dataclass(frozen=True)
class StockLeg:
    """A position in the underlying stock."""

    n: int
    action: str
    previous_position: Optional[float] = None

    type: str = field(default="stock", init=False)

    def __post_init__(self):
        _check_action(self.action)
        _check_quantity(self.n)


@dataclass(frozen=True)
class ClosedPositionLeg:
    """Realized P/L from positions already closed; a constant offset."""

    previous_position: float

    type: str = field(default="closed", init=False)

    def __post_init__(self):
        if self.previous_position is None or not np.isfinite(self.previous_position):
            raise InvalidNumericInputError(
                f"previous_position must be a finite number, got {self.previous_position}"
            )


StrategyLeg = Union[OptionLeg, StockLeg, ClosedPositionLeg]


def parse_strategy_leg(data: Union[Mapping[str, Any], StrategyLeg]) -> StrategyLeg:
    """
    Build a typed leg from a mapping, dispatching on its "type" field.

    "prev_pos" is accepted for previous_position and "quantity" for n.

    Raises:
        InvalidStrategyLegTypeError: If "type" is missing or unknown
    """
    if isinstance(data, (OptionLeg, StockLeg, ClosedPositionLeg)):
        return data

    if not isinstance(data, Mapping):
        raise InvalidStrategyLegTypeError()

    leg_type = data.get("type")
    prev_pos = data.get("previous_position", data.get("prev_pos"))
    n = data.get("n", data.get("quantity"))

    if leg_type in OPTION_TYPES:
        return OptionLeg(
            type=leg_type,
            strike=data.get("strike"),
            premium=data.get("premium"),
            n=n,
            action=data.get("action"),
            expiration=data.get("expiration"),
            previous_position=prev_pos,
        )
    if leg_type == "stock":
        return StockLeg(n=n, action=data.get("action"), previous_position=prev_pos)
    if leg_type == "closed":
        return ClosedPositionLeg(previous_position=prev_pos)

    raise InvalidStrategyLegTypeError()


# =============================================================================
# Strategy Inputs
# =============================================================================

@dataclass
class Inputs:
    """
    Inputs for a strategy evaluation.

    Either start_date and target_date, or days_to_target_date, must be set.
    With model='array', `array` holds the terminal stock prices used for
    the probability of profit.
    """

    stock_price: float = 100.0
    volatility: float = 0.2
    interest_rate: float = 0.05
    min_stock: float = 50.0
    max_stock: float = 150.0
    strategy: List[StrategyLeg] = field(default_factory=list)
    dividend_yield: float = 0.0
    opt_commission: float = 0.0
    stock_commission: float = 0.0
    discard_nonbusiness_days: bool = True
    business_days_in_year: int = DEFAULT_BUSINESS_DAYS_IN_YEAR
    country: str = DEFAULT_COUNTRY
    start_date: Optional[date] = None
    target_date: Optional[date] = None
    days_to_target_date: Optional[int] = None
    model: str = "black-scholes"
    array: Optional[np.ndarray] = None
    profit_target: Optional[float] = None
    loss_limit: Optional[float] = None
    skip_strategy_validation: bool = False

    def __post_init__(self):
        self.strategy = [parse_strategy_leg(leg) for leg in (self.strategy or [])]
        self.start_date = _to_date(self.start_date)
        self.target_date = _to_date(self.target_date)
        if self.array is not None:
            self.array = np.asarray(self.array, dtype=float)

        self._validate_numbers()
        self._validate_strategy()
        self._validate_dates()
        self._validate_model()

    def _validate_numbers(self) -> None:
        _check_positive("stock_price", self.stock_price)
        _check_non_negative("volatility", self.volatility)
        _check_non_negative("interest_rate", self.interest_rate)
        _check_non_negative("min_stock", self.min_stock)
        _check_non_negative("max_stock", self.max_stock)
        _check_non_negative("opt_commission", self.opt_commission)
        _check_non_negative("stock_commission", self.stock_commission)
        _check_positive("business_days_in_year", self.business_days_in_year)

        if self.max_stock <= self.min_stock:
            raise InvalidNumericInputError(
                "Maximum price cannot be less than minimum price!"
            )
        if not 0.0 <= self.dividend_yield <= 1.0:
            raise InvalidNumericInputError(
                f"dividend_yield must be between 0 and 1, got {self.dividend_yield}"
            )

    def _validate_strategy(self) -> None:
        if not self.strategy and not self.skip_strategy_validation:
            raise InvalidStrategyConfigurationError(
                "The strategy must contain at least one leg!"
            )

        n_closed = sum(1 for leg in self.strategy if leg.type == "closed")
        if n_closed > 1:
            raise InvalidStrategyConfigurationError(
                "Only one position of type 'closed' is allowed!"
            )

    def _validate_dates(self) -> None:
        has_start = self.start_date is not None
        has_target = self.target_date is not None

        if has_start != has_target:
            raise InvalidStrategyConfigurationError(
                "Both start_date and target_date must be provided together."
            )

        expiration_dates = [
            leg.expiration
            for leg in self.strategy
            if isinstance(leg, OptionLeg) and isinstance(leg.expiration, date)
        ]

        if self.days_to_target_date is not None:
            if has_start:
                raise InvalidStrategyConfigurationError(
                    "Provide either start_date and target_date or "
                    "days_to_target_date, not both."
                )
            if expiration_dates:
                raise InvalidStrategyConfigurationError(
                    "You can't mix a strategy expiration with a days_to_target_date."
                )
            if isinstance(self.days_to_target_date, bool) or self.days_to_target_date <= 0:
                raise InvalidNumericInputError(
                    f"days_to_target_date must be a positive integer, "
                    f"got {self.days_to_target_date}"
                )
            return

        if not has_start:
            raise InvalidStrategyConfigurationError(
                "Either start_date and target_date or days_to_target_date "
                "must be provided"
            )
        if self.start_date >= self.target_date:
            raise InvalidStrategyConfigurationError(
                "Start date must be before target date!"
            )
        if any(expiration < self.target_date for expiration in expiration_dates):
            raise InvalidStrategyConfigurationError(
                "Expiration dates must be after or on target date!"
            )

    def _validate_model(self) -> None:
        if self.model not in PRICE_MODELS:
            raise InvalidStrategyConfigurationError(
                f"model must be one of {', '.join(PRICE_MODELS)}, got '{self.model}'"
            )
        if self.model == "array" and (self.array is None or self.array.size == 0):
            raise EmptyTerminalPriceSampleError(
                "Array of terminal stock prices must be provided if model is 'array'."
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Inputs":
        """
        Build Inputs from a plain mapping such as a parsed YAML document.

        Unknown keys are rejected so typos do not silently fall back to
        defaults.
        """
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise InvalidStrategyConfigurationError(
                f"Unknown input field(s): {', '.join(unknown)}"
            )
        return cls(**dict(data))


# =============================================================================
# Probability Model Inputs
# =============================================================================

@dataclass
class BlackScholesModelInputs:
    """Lognormal terminal price distribution parameters."""

    stock_price: float
    volatility: float
    years_to_target_date: float
    interest_rate: float = 0.0
    dividend_yield: float = 0.0
    model: str = "black-scholes"


@dataclass
class LaplaceInputs:
    """Laplace distribution of log returns, with drift mu."""

    stock_price: float
    volatility: float
    years_to_target_date: float
    mu: float = 0.0
    model: str = "laplace"


@dataclass
class ArrayInputs:
    """An empirical sample (terminal prices or strategy returns)."""

    array: np.ndarray

    def __post_init__(self):
        self.array = np.asarray(self.array, dtype=float)


# =============================================================================
# Results
# =============================================================================

@dataclass(frozen=True)
class BlackScholesInfo:
    """Black-Scholes prices, Greeks and ITM probabilities for a strike."""

    call_price: float
    put_price: float
    call_delta: float
    put_delta: float
    call_theta: float
    put_theta: float
    gamma: float
    vega: float
    call_rho: float
    put_rho: float
    call_itm_prob: float
    put_itm_prob: float


@dataclass
class PoPOutputs:
    """Probability of reaching (or missing) a return target."""

    probability_of_reaching_target: float = 0.0
    probability_of_missing_target: float = 0.0
    reaching_target_range: List[List[float]] = field(default_factory=list)
    missing_target_range: List[List[float]] = field(default_factory=list)
    expected_return_above_target: Optional[float] = None
    expected_return_below_target: Optional[float] = None


@dataclass
class EngineData:
    """Working state of one strategy evaluation."""

    inputs: Inputs
    stock_price_array: np.ndarray
    terminal_stock_prices: np.ndarray
    days_in_year: int = 365
    days_to_target: int = 0

    type: List[str] = field(default_factory=list)
    strike: List[float] = field(default_factory=list)
    premium: List[float] = field(default_factory=list)
    n: List[int] = field(default_factory=list)
    action: List[str] = field(default_factory=list)
    previous_position: List[float] = field(default_factory=list)
    days_to_maturity: List[int] = field(default_factory=list)
    use_bs: List[bool] = field(default_factory=list)

    cost: List[float] = field(default_factory=list)
    profit: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    profit_mc: np.ndarray = field(default_factory=lambda: np.zeros((0, 0)))
    strategy_profit: np.ndarray = field(default_factory=lambda: np.zeros(0))
    strategy_profit_mc: np.ndarray = field(default_factory=lambda: np.zeros(0))

    implied_volatility: List[float] = field(default_factory=list)
    itm_probability: List[float] = field(default_factory=list)
    delta: List[float] = field(default_factory=list)
    gamma: List[float] = field(default_factory=list)
    theta: List[float] = field(default_factory=list)
    vega: List[float] = field(default_factory=list)
    rho: List[float] = field(default_factory=list)

    profit_probability: float = 0.0
    expected_profit: Optional[float] = None
    expected_loss: Optional[float] = None
    profit_ranges: List[List[float]] = field(default_factory=list)
    profit_target_probability: float = 0.0
    loss_limit_probability: float = 0.0
    profit_target_ranges: List[List[float]] = field(default_factory=list)
    loss_limit_ranges: List[List[float]] = field(default_factory=list)


@dataclass
class Outputs:
    """Result of a strategy evaluation."""

    inputs: Inputs
    data: EngineData
    probability_of_profit: float
    strategy_cost: float
    per_leg_cost: List[float]
    profit_ranges: List[List[float]]
    minimum_return_in_the_domain: float
    maximum_return_in_the_domain: float
    implied_volatility: List[float]
    in_the_money_probability: List[float]
    delta: List[float]
    gamma: List[float]
    theta: List[float]
    vega: List[float]
    rho: List[float]
    expected_profit: Optional[float] = None
    expected_loss: Optional[float] = None
    probability_of_profit_target: float = 0.0
    profit_target_ranges: List[List[float]] = field(default_factory=list)
    probability_of_loss_limit: float = 0.0
    loss_limit_ranges: List[List[float]] = field(default_factory=list)

    def __str__(self) -> str:
        lines = [f"Probability of profit: {self.probability_of_profit}"]
        if self.expected_profit is not None:
            lines.append(f"Expected profit: {self.expected_profit}")
        if self.expected_loss is not None:
            lines.append(f"Expected loss: {self.expected_loss}")
        lines.append(f"Strategy cost: {self.strategy_cost}")
        lines.append(f"Min return: {self.minimum_return_in_the_domain}")
        lines.append(f"Max return: {self.maximum_return_in_the_domain}")
        if self.probability_of_profit_target > 0.0:
            lines.append(
                f"Probability of reaching profit target: {self.probability_of_profit_target}"
            )
        if self.probability_of_loss_limit > 0.0:
            lines.append(
                f"Probability of reaching loss limit: {self.probability_of_loss_limit}"
            )
        return "\n".join(lines) + "\n"


@dataclass
class PricingResult:
    """Price and Greeks of a single option from one of the pricing models."""

    price: float
    delta: Optional[float] = None
    gamma: Optional[float] = None
    theta: Optional[float] = None
    vega: Optional[float] = None
    rho: Optional[float] = None
    model: Optional[str] = None
    parameters: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "delta": self.delta,
            "gamma": self.gamma,
            "theta": self.theta,
            "vega": self.vega,
            "rho": self.rho,
            "model": self.model,
            "parameters": dict(self.parameters),
        }

    def __str__(self) -> str:
        lines = [f"Option Price: {self.price:.4f}"]
        for name in ("delta", "gamma", "theta", "vega", "rho"):
            value = getattr(self, name)
            if value is not None:
                lines.append(f"{name.capitalize()}: {value:.4f}")
        if self.model:
            lines.append(f"Model: {self.model}")
        return "\n".join(lines) + "\n"


__all__ = [
    "OPTION_TYPES",
    "ACTIONS",
    "LEG_TYPES",
    "PRICE_MODELS",
    "SAMPLING_MODELS",
    "OptionLeg",
    "StockLeg",
    "ClosedPositionLeg",
    "StrategyLeg",
    "parse_strategy_leg",
    "Inputs",
    "BlackScholesModelInputs",
    "LaplaceInputs",
    "ArrayInputs",
    "BlackScholesInfo",
    "PoPOutputs",
    "EngineData",
    "Outputs",
    "PricingResult",
]
