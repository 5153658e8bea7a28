"""
Tests for the Strategy Evaluation Engine

End-to-end runs of multi-leg strategies: costs, returns over the price
grid, probability of profit, per-leg Greeks, closed positions, the array
model, and profit target / loss limit probabilities.
"""

from datetime import date

import numpy as np
import pytest
from scipy.stats import norm

from strategylab.core.exceptions import InvalidStrategyConfigurationError
from strategylab.core.models import Inputs, Outputs
from strategylab.core.pricing import get_bs_info
from strategylab.engine.cache import EngineCache, default_cache
from strategylab.engine.strategy_engine import StrategyEngine, run_strategy

STOCK_PRICE = 168.99
VOL = 0.483
RATE = 0.045
START = date(2023, 1, 16)
TARGET = date(2023, 2, 17)

# 24 business days: 33 calendar days less 8 weekend days and MLK day
BUSINESS_DAYS = 24


def covered_call(**overrides):
    params = dict(
        stock_price=STOCK_PRICE,
        volatility=VOL,
        interest_rate=RATE,
        start_date=START,
        target_date=TARGET,
        min_stock=68.99,
        max_stock=268.99,
        strategy=[
            {"type": "stock", "n": 100, "action": "buy"},
            {"type": "call", "strike": 185.0, "premium": 4.1, "n": 100,
             "action": "sell", "expiration": TARGET},
        ],
    )
    params.update(overrides)
    return params


@pytest.fixture
def engine():
    return StrategyEngine(EngineCache())


class TestCoveredCall:
    @pytest.fixture
    def outputs(self, engine):
        return engine.run(covered_call())

    def test_returns_outputs(self, outputs):
        assert isinstance(outputs, Outputs)
        assert isinstance(outputs.inputs, Inputs)

    def test_days(self, outputs):
        assert outputs.data.days_to_target == BUSINESS_DAYS
        assert outputs.data.days_in_year == 252
        assert outputs.data.days_to_maturity == [-1, BUSINESS_DAYS]
        assert outputs.data.use_bs == [False, False]

    def test_costs(self, outputs):
        assert outputs.per_leg_cost == pytest.approx([-16899.0, 410.0])
        assert outputs.strategy_cost == pytest.approx(-16489.0)

    def test_return_extremes(self, outputs):
        assert outputs.minimum_return_in_the_domain == pytest.approx(-9590.0)
        assert outputs.maximum_return_in_the_domain == pytest.approx(2011.0)

    def test_profit_range(self, outputs):
        assert outputs.profit_ranges == [[pytest.approx(164.9), np.inf]]

    def test_probability_of_profit(self, outputs):
        t = BUSINESS_DAYS / 252
        m = np.log(STOCK_PRICE) + (RATE - 0.5 * VOL**2) * t
        expected = 1.0 - norm.cdf((np.log(164.9) - m) / (VOL * np.sqrt(t)))
        assert outputs.probability_of_profit == pytest.approx(expected)
        assert outputs.probability_of_profit == pytest.approx(0.547, abs=0.005)

    def test_expected_returns(self, outputs):
        assert 0 < outputs.expected_profit <= 2011.0
        assert -9590.0 <= outputs.expected_loss < 0

    def test_stock_leg_greeks(self, outputs):
        assert outputs.delta[0] == 1.0
        assert outputs.in_the_money_probability[0] == 1.0
        assert outputs.gamma[0] == 0.0
        assert outputs.implied_volatility[0] == 0.0

    def test_short_call_greeks_signed(self, outputs):
        bs = get_bs_info(STOCK_PRICE, 185.0, RATE, VOL, BUSINESS_DAYS / 252)
        assert outputs.delta[1] == pytest.approx(-bs.call_delta)
        assert outputs.gamma[1] == pytest.approx(bs.gamma)
        assert outputs.theta[1] == pytest.approx(-bs.call_theta / 252)
        assert outputs.vega[1] == pytest.approx(bs.vega)
        assert outputs.rho[1] == pytest.approx(-bs.call_rho)
        assert outputs.in_the_money_probability[1] == pytest.approx(bs.call_itm_prob)

    def test_short_call_gamma_and_vega_unsigned(self, outputs):
        assert outputs.gamma[1] > 0
        assert outputs.vega[1] > 0

    def test_implied_volatility(self, outputs):
        assert 0.001 <= outputs.implied_volatility[1] <= 1.0

    def test_strategy_profile_is_leg_sum(self, outputs):
        data = outputs.data
        assert data.profit.shape == (2, data.stock_price_array.size)
        assert np.allclose(data.strategy_profit, data.profit.sum(axis=0))

    def test_no_targets_by_default(self, outputs):
        assert outputs.probability_of_profit_target == 0.0
        assert outputs.probability_of_loss_limit == 0.0
        assert outputs.profit_target_ranges == []

    def test_str(self, outputs):
        text = str(outputs)
        assert text.startswith(f"Probability of profit: {outputs.probability_of_profit}")
        assert "Strategy cost:" in text
        assert "Expected profit:" in text
        assert "profit target" not in text


class TestCalendarOptions:
    def test_calendar_days(self, engine):
        outputs = engine.run(covered_call(discard_nonbusiness_days=False))
        assert outputs.data.days_to_target == 33
        assert outputs.data.days_in_year == 365

    def test_later_expiration_repriced(self, engine):
        params = covered_call()
        params["strategy"][1]["expiration"] = date(2023, 3, 17)
        outputs = engine.run(params)
        data = outputs.data
        assert data.use_bs == [False, True]
        assert data.days_to_maturity[1] > data.days_to_target
        # The call still has time value at the target date
        at_expiry = -100 * (np.maximum(data.stock_price_array - 185.0, 0.0) - 4.1)
        assert np.all(data.profit[1] <= at_expiry + 1e-9)

    def test_cache_reused(self):
        cache = EngineCache()
        StrategyEngine(cache).run(covered_call())
        assert (68.99, 268.99) in cache.price_grids
        assert ("US", START, TARGET) in cache.nonbusiness_days


class TestDaysToTarget:
    def base(self, **overrides):
        params = dict(
            stock_price=100.0,
            volatility=0.2,
            interest_rate=0.01,
            min_stock=50.0,
            max_stock=150.0,
            days_to_target_date=30,
            strategy=[{"type": "put", "strike": 95.0, "premium": 1.5, "n": 10, "action": "sell"}],
        )
        params.update(overrides)
        return params

    def test_runs(self, engine):
        outputs = engine.run(self.base())
        assert outputs.data.days_to_target == 30
        assert outputs.data.days_to_maturity == [30]
        assert outputs.per_leg_cost == pytest.approx([15.0])
        assert 0.5 < outputs.probability_of_profit < 1.0

    def test_later_integer_expiration(self, engine):
        strategy = [{"type": "call", "strike": 105.0, "premium": 2.0, "n": 1,
                     "action": "buy", "expiration": 60}]
        outputs = engine.run(self.base(strategy=strategy))
        assert outputs.data.use_bs == [True]
        assert outputs.data.days_to_maturity == [60]

    def test_expiration_before_target(self, engine):
        strategy = [{"type": "call", "strike": 105.0, "premium": 2.0, "n": 1,
                     "action": "buy", "expiration": 20}]
        with pytest.raises(InvalidStrategyConfigurationError, match="Days remaining to maturity"):
            engine.run(self.base(strategy=strategy))

    def test_run_strategy_uses_default_cache(self):
        run_strategy(self.base())
        assert (50.0, 150.0) in default_cache.price_grids


class TestPreviousPositions:
    def base(self, strategy):
        return dict(
            stock_price=100.0,
            volatility=0.2,
            interest_rate=0.01,
            min_stock=50.0,
            max_stock=150.0,
            days_to_target_date=30,
            strategy=strategy,
        )

    def test_closed_position_is_constant(self, engine):
        outputs = engine.run(self.base([
            {"type": "call", "strike": 105.0, "premium": 2.0, "n": 100, "action": "buy"},
            {"type": "closed", "prev_pos": 200.0},
        ]))
        data = outputs.data
        assert np.all(data.profit[1] == 200.0)
        assert outputs.per_leg_cost[1] == 200.0
        assert outputs.strategy_cost == pytest.approx(0.0)
        assert outputs.delta[1] == 0.0
        assert outputs.implied_volatility[1] == 0.0

    def test_closed_option_leg(self, engine):
        outputs = engine.run(self.base([
            {"type": "call", "strike": 105.0, "premium": 5.0, "n": 10,
             "action": "buy", "prev_pos": -3.0},
            {"type": "stock", "n": 10, "action": "buy"},
        ]))
        assert outputs.per_leg_cost[0] == pytest.approx(-20.0)
        assert np.all(outputs.data.profit[0] == -20.0)
        assert outputs.delta[0] == 0.0

    def test_option_previous_position_used_as_entry(self, engine):
        outputs = engine.run(self.base([
            {"type": "call", "strike": 105.0, "premium": 2.0, "n": 1,
             "action": "buy", "prev_pos": 3.0},
        ]))
        assert outputs.per_leg_cost == pytest.approx([-3.0])

    def test_stock_previous_position_used_as_entry(self, engine):
        outputs = engine.run(self.base([
            {"type": "stock", "n": 10, "action": "buy", "prev_pos": 90.0},
        ]))
        assert outputs.per_leg_cost == pytest.approx([-900.0])
        assert outputs.profit_ranges == [[pytest.approx(90.01), np.inf]]

    def test_closed_stock_leg(self, engine):
        outputs = engine.run(self.base([
            {"type": "stock", "n": 10, "action": "sell", "prev_pos": -95.0},
            {"type": "put", "strike": 95.0, "premium": 1.0, "n": 10, "action": "buy"},
        ]))
        assert outputs.per_leg_cost[0] == pytest.approx(50.0)
        assert outputs.delta[0] == -1.0

    def test_commissions(self, engine):
        outputs = engine.run(dict(
            self.base([
                {"type": "call", "strike": 105.0, "premium": 2.0, "n": 100, "action": "buy"},
                {"type": "stock", "n": 100, "action": "sell"},
            ]),
            opt_commission=1.0,
            stock_commission=2.0,
        ))
        assert outputs.per_leg_cost == pytest.approx([-201.0, 9998.0])


class TestArrayModel:
    def test_probability_from_terminal_prices(self, engine):
        outputs = engine.run(covered_call(model="array", array=[150.0, 170.0, 190.0, 200.0]))
        assert outputs.probability_of_profit == pytest.approx(0.75)
        assert outputs.expected_profit == pytest.approx(1511.0)
        assert outputs.expected_loss == pytest.approx(-1489.0)
        assert outputs.data.strategy_profit_mc.tolist() == pytest.approx([-1489.0, 511.0, 2011.0, 2011.0])

    def test_ranges_still_from_grid(self, engine):
        outputs = engine.run(covered_call(model="array", array=[150.0, 200.0]))
        assert outputs.profit_ranges == [[pytest.approx(164.9), np.inf]]


class TestTargets:
    @pytest.fixture
    def outputs(self, engine):
        return engine.run(covered_call(profit_target=1000.0, loss_limit=-1000.0))

    def test_profit_target(self, outputs):
        assert 0 < outputs.probability_of_profit_target < outputs.probability_of_profit
        assert outputs.profit_target_ranges == [[pytest.approx(174.89), np.inf]]

    def test_loss_limit(self, outputs):
        assert 0 < outputs.probability_of_loss_limit < 1 - outputs.probability_of_profit
        assert outputs.loss_limit_ranges == [[0.0, pytest.approx(154.89)]]

    def test_str_reports_targets(self, outputs):
        text = str(outputs)
        assert "Probability of reaching profit target" in text
        assert "Probability of reaching loss limit" in text

    def test_small_profit_target_ignored(self, engine):
        outputs = engine.run(covered_call(profit_target=0.01, loss_limit=0.0))
        assert outputs.probability_of_profit_target == 0.0
        assert outputs.probability_of_loss_limit == 0.0
