"""
Core Module for Strategy Lab

Pricing models and the data model shared by the rest of the package.

Components:
    - pricing: Black-Scholes prices, Greeks, ITM probability, implied volatility
    - american_pricing: Cox-Ross-Rubinstein binomial tree
    - bjerksund_stensland: American option approximation
    - models: Strategy legs, inputs and result containers
    - exceptions: Error hierarchy

Usage:
    from strategylab.core import get_bs_info, price_binomial, price_american

    info = get_bs_info(100.0, 105.0, 0.05, 0.20, 0.25)
    tree_price = price_binomial('put', 100.0, 105.0, 0.05, 0.20, 0.25)
    american_price = price_american('put', 100.0, 105.0, 0.05, 0.20, 0.25)
"""

from strategylab.core.exceptions import (
    StrategyLabError,
    InvalidOptionTypeError,
    InvalidActionError,
    InvalidStrategyLegTypeError,
    InvalidStrategyConfigurationError,
    InvalidNumericInputError,
    EmptyTerminalPriceSampleError,
    CalendarLookupError,
    AmericanPricingError,
    TreeConstructionError,
)
from strategylab.core.models import (
    OptionLeg,
    StockLeg,
    ClosedPositionLeg,
    parse_strategy_leg,
    Inputs,
    BlackScholesModelInputs,
    LaplaceInputs,
    ArrayInputs,
    BlackScholesInfo,
    PoPOutputs,
    Outputs,
    PricingResult,
)
from strategylab.core.pricing import (
    get_d1,
    get_d2,
    get_option_price,
    black_scholes_price,
    get_delta,
    get_gamma,
    get_theta,
    get_vega,
    get_rho,
    get_itm_probability,
    get_implied_vol,
    get_bs_info,
)
from strategylab.core.american_pricing import (
    BinomialPricer,
    BinomialTree,
    BinomialModelInputs,
    price_option as price_binomial,
    get_tree as get_binomial_tree,
    get_greeks as get_binomial_greeks,
)
from strategylab.core.bjerksund_stensland import (
    AmericanModelInputs,
    price_option as price_american,
    get_greeks as get_american_greeks,
)

__all__ = [
    # =========================================================================
    # Exceptions
    # =========================================================================
    "StrategyLabError",
    "InvalidOptionTypeError",
    "InvalidActionError",
    "InvalidStrategyLegTypeError",
    "InvalidStrategyConfigurationError",
    "InvalidNumericInputError",
    "EmptyTerminalPriceSampleError",
    "CalendarLookupError",
    "AmericanPricingError",
    "TreeConstructionError",
    # =========================================================================
    # Data model
    # =========================================================================
    "OptionLeg",
    "StockLeg",
    "ClosedPositionLeg",
    "parse_strategy_leg",
    "Inputs",
    "BlackScholesModelInputs",
    "LaplaceInputs",
    "ArrayInputs",
    "BlackScholesInfo",
    "PoPOutputs",
    "Outputs",
    "PricingResult",
    # =========================================================================
    # Black-Scholes
    # =========================================================================
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
    # =========================================================================
    # Binomial tree / American
    # =========================================================================
    "BinomialPricer",
    "BinomialTree",
    "BinomialModelInputs",
    "price_binomial",
    "get_binomial_tree",
    "get_binomial_greeks",
    "AmericanModelInputs",
    "price_american",
    "get_american_greeks",
]
