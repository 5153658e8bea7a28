"""
Tests for P/L Charts

Uses the Agg backend so no window is opened.
"""

import matplotlib
matplotlib.use('Agg')

import numpy as np
import pytest

from strategylab.analytics.visualization import (
    InvalidBackendError,
    VisualizationError,
    find_break_even_points,
    plot_pl,
)
from strategylab.core.exceptions import StrategyLabError
from strategylab.engine.cache import EngineCache
from strategylab.engine.strategy_engine import StrategyEngine


@pytest.fixture
def outputs():
    return StrategyEngine(EngineCache()).run({
        "stock_price": 100.0,
        "volatility": 0.2,
        "interest_rate": 0.01,
        "min_stock": 80.0,
        "max_stock": 120.0,
        "days_to_target_date": 30,
        "profit_target": 200.0,
        "loss_limit": -300.0,
        "strategy": [
            {"type": "put", "strike": 95.0, "premium": 1.0, "n": 100, "action": "sell"},
            {"type": "call", "strike": 105.0, "premium": 1.0, "n": 100, "action": "sell"},
        ],
    })


class TestBreakEvenPoints:
    def test_interpolated(self):
        points = find_break_even_points(np.array([100.0, 110.0, 120.0]), np.array([-5.0, -5.0, 5.0]))
        assert points == [pytest.approx(115.0)]

    def test_exact_zero_counted_once(self):
        points = find_break_even_points(np.array([1.0, 2.0, 3.0, 4.0]), np.array([-1.0, 0.0, 0.0, 1.0]))
        assert points == [2.0]

    def test_no_crossing(self):
        assert find_break_even_points(np.array([1.0, 2.0]), np.array([1.0, 2.0])) == []

    def test_short_strangle(self, outputs):
        points = find_break_even_points(outputs.data.stock_price_array, outputs.data.strategy_profit)
        assert points == [pytest.approx(93.0, abs=0.01), pytest.approx(107.0, abs=0.01)]


class TestMatplotlib:
    def test_returns_figure(self, outputs):
        import matplotlib.figure

        fig = plot_pl(outputs, show=False)
        assert isinstance(fig, matplotlib.figure.Figure)
        assert "PoP" in fig.axes[0].get_title()

    def test_leg_title(self, outputs):
        fig = plot_pl(outputs, leg=1, show=False)
        assert fig.axes[0].get_title().startswith("Leg 1 P/L")

    def test_save(self, outputs, tmp_path):
        path = tmp_path / "charts" / "pl.png"
        plot_pl(outputs, save_path=str(path), show=False, title="Short strangle")
        assert path.exists()


class TestPlotly:
    def test_returns_figure(self, outputs):
        import plotly.graph_objects as go

        fig = plot_pl(outputs, backend='plotly', show=False)
        assert isinstance(fig, go.Figure)
        assert fig.layout.title.text.startswith("Strategy P/L")

    def test_save_html(self, outputs, tmp_path):
        path = tmp_path / "pl.html"
        plot_pl(outputs, backend='plotly', save_path=str(path), show=False)
        assert path.exists()


class TestBackendValidation:
    def test_invalid_backend(self, outputs):
        with pytest.raises(InvalidBackendError, match="Backend must be one of"):
            plot_pl(outputs, backend='bokeh', show=False)

    def test_backend_normalized(self, outputs):
        fig = plot_pl(outputs, backend=' Matplotlib ', show=False)
        assert fig is not None

    def test_hierarchy(self):
        assert issubclass(InvalidBackendError, VisualizationError)
        assert issubclass(VisualizationError, StrategyLabError)
