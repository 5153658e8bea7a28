"""
Analytics Module for Strategy Lab

Export and visualization of strategy evaluation results.
"""

from strategylab.analytics.export import get_pl, pl_to_csv, pl_to_dataframe
from strategylab.analytics.visualization import (
    InvalidBackendError,
    VisualizationError,
    find_break_even_points,
    plot_pl,
)

__all__ = [
    "get_pl",
    "pl_to_csv",
    "pl_to_dataframe",
    "InvalidBackendError",
    "VisualizationError",
    "find_break_even_points",
    "plot_pl",
]
