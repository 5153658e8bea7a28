"""
Strategy Lab Package

Profit/loss profiles, probability of profit and option pricing analytics
for multi-leg option and stock strategies.

Modules:
    core: Black-Scholes, binomial tree and Bjerksund-Stensland pricing, data model
    engine: Strategy evaluation, profit/loss profiles, probability of profit
    analytics: CSV export and P/L charts
    utils: Business-day calendar
    cli: Command-line interface and configuration management
"""

__version__ = "1.0.0"
__author__ = "Strategy Lab Team"

from strategylab.analytics.export import get_pl, pl_to_csv
from strategylab.analytics.visualization import plot_pl
from strategylab.cli import (
    Environment,
    get_environment,
    load_config,
    load_config_string,
    set_environment,
)
from strategylab.core.american_pricing import (
    get_greeks as get_binomial_greeks,
    get_tree as get_binomial_tree,
    price_option as price_binomial,
)
from strategylab.core.bjerksund_stensland import (
    get_greeks as get_american_greeks,
    price_option as price_american,
)
from strategylab.core.models import Inputs, Outputs
from strategylab.engine.probability import create_price_array
from strategylab.engine.strategy_engine import StrategyEngine, run_strategy

__all__ = [
    "__version__",
    "__author__",
    # Strategy evaluation
    "Inputs",
    "Outputs",
    "StrategyEngine",
    "run_strategy",
    "create_price_array",
    # Pricing
    "price_binomial",
    "get_binomial_tree",
    "get_binomial_greeks",
    "price_american",
    "get_american_greeks",
    # Output
    "get_pl",
    "pl_to_csv",
    "plot_pl",
    # Configuration
    "load_config",
    "load_config_string",
    "Environment",
    "get_environment",
    "set_environment",
]
