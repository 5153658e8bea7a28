"""
Profit/loss data export.

Pulls the price grid and a P/L curve (a single leg or the whole strategy)
out of an evaluation result and writes it as a two-column CSV with pandas.
"""

from pathlib import Path
from typing import IO, Optional, Tuple, Union
import logging

import numpy as np
import pandas as pd

from strategylab.core.models import Outputs

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["StockPrice", "Profit/Loss"]


def get_pl(outputs: Outputs, leg: Optional[int] = None) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stock price grid and P/L curve.

    Args:
        outputs: Result of a strategy evaluation
        leg: Index of a leg; the whole strategy when None or out of range

    Returns:
        Tuple of (stock prices, profit/loss)
    """
    data = outputs.data
    if leg is not None and 0 <= leg < data.profit.shape[0]:
        return data.stock_price_array, data.profit[leg]
    return data.stock_price_array, data.strategy_profit


def pl_to_dataframe(outputs: Outputs, leg: Optional[int] = None) -> pd.DataFrame:
    stock_prices, profits = get_pl(outputs, leg)
    return pd.DataFrame({CSV_COLUMNS[0]: stock_prices, CSV_COLUMNS[1]: profits})


def pl_to_csv(
    outputs: Outputs,
    filename: Union[str, Path, IO[str]] = "pl.csv",
    leg: Optional[int] = None,
) -> None:
    """
    Write the P/L curve to CSV with a "StockPrice,Profit/Loss" header.

    Args:
        outputs: Result of a strategy evaluation
        filename: Path or writable text buffer
        leg: Index of a leg; the whole strategy when None

    Raises:
        TypeError: If filename is neither a path nor a writable buffer
    """
    if not isinstance(filename, (str, Path)) and not hasattr(filename, "write"):
        raise TypeError("Filename must be a path or a writable text buffer")

    df = pl_to_dataframe(outputs, leg)
    df.to_csv(filename, index=False)

    if isinstance(filename, (str, Path)):
        logger.info(f"P/L data saved to {filename}")


__all__ = ["get_pl", "pl_to_dataframe", "pl_to_csv"]
