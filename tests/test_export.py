"""
Tests for P/L Export
"""

import io

import numpy as np
import pandas as pd
import pytest

from strategylab.analytics.export import get_pl, pl_to_csv, pl_to_dataframe
from strategylab.engine.cache import EngineCache
from strategylab.engine.strategy_engine import StrategyEngine


@pytest.fixture
def outputs():
    return StrategyEngine(EngineCache()).run({
        "stock_price": 100.0,
        "volatility": 0.2,
        "interest_rate": 0.01,
        "min_stock": 90.0,
        "max_stock": 110.0,
        "days_to_target_date": 30,
        "strategy": [
            {"type": "stock", "n": 100, "action": "buy"},
            {"type": "call", "strike": 105.0, "premium": 1.5, "n": 100, "action": "sell"},
        ],
    })


class TestGetPL:
    def test_strategy(self, outputs):
        s, profit = get_pl(outputs)
        assert s is outputs.data.stock_price_array
        assert np.array_equal(profit, outputs.data.strategy_profit)

    def test_leg(self, outputs):
        _, profit = get_pl(outputs, 0)
        assert np.array_equal(profit, outputs.data.profit[0])

    def test_out_of_range_leg_returns_strategy(self, outputs):
        _, profit = get_pl(outputs, 5)
        assert np.array_equal(profit, outputs.data.strategy_profit)


class TestPLToCSV:
    def test_header_and_rows(self, outputs):
        buffer = io.StringIO()
        pl_to_csv(outputs, buffer)
        lines = buffer.getvalue().strip().splitlines()
        assert lines[0] == "StockPrice,Profit/Loss"
        assert len(lines) == 1 + outputs.data.stock_price_array.size

    def test_file(self, outputs, tmp_path):
        path = tmp_path / "pl.csv"
        pl_to_csv(outputs, str(path), leg=1)
        df = pd.read_csv(path)
        assert list(df.columns) == ["StockPrice", "Profit/Loss"]
        assert df["StockPrice"].iloc[0] == pytest.approx(90.0)
        assert df["Profit/Loss"].iloc[0] == pytest.approx(150.0)

    def test_dataframe(self, outputs):
        df = pl_to_dataframe(outputs)
        assert df.shape == (outputs.data.stock_price_array.size, 2)
        assert df["Profit/Loss"].iloc[-1] == pytest.approx(outputs.maximum_return_in_the_domain)

    def test_bad_destination(self, outputs):
        with pytest.raises(TypeError):
            pl_to_csv(outputs, 42)
