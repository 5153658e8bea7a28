"""
Engine Module for Strategy Lab

Strategy evaluation and the pieces it is built from.

Components:
    - cache: EngineCache for price grids and calendar lookups
    - profit_loss: Per-leg profit/loss profiles and the price grid
    - probability: Probability of profit and terminal price sampling
    - strategy_engine: StrategyEngine orchestration
"""

from strategylab.engine.cache import EngineCache
from strategylab.engine.profit_loss import (
    create_price_seq,
    get_pl_profile,
    get_pl_profile_bs,
    get_pl_profile_stock,
)
from strategylab.engine.probability import create_price_array, get_pop
from strategylab.engine.strategy_engine import StrategyEngine, run_strategy

__all__ = [
    "EngineCache",
    "create_price_seq",
    "get_pl_profile",
    "get_pl_profile_bs",
    "get_pl_profile_stock",
    "create_price_array",
    "get_pop",
    "StrategyEngine",
    "run_strategy",
]
