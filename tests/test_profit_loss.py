"""
Tests for Profit/Loss Profiles

Covers option legs at expiration, option legs repriced before expiration,
stock legs, commissions, and the cached price grid.
"""

import numpy as np
import pytest

from strategylab.core.exceptions import (
    InvalidActionError,
    InvalidNumericInputError,
    InvalidOptionTypeError,
)
from strategylab.engine.cache import EngineCache
from strategylab.engine.profit_loss import (
    create_price_seq,
    get_pl_profile,
    get_pl_profile_bs,
    get_pl_profile_stock,
)

PRICES = np.array([100.0, 110.0, 120.0, 130.0, 140.0])


class TestOptionProfileAtExpiration:
    def test_long_call(self):
        profile, cost = get_pl_profile("call", "buy", 115.0, 5.0, 1, PRICES)
        assert profile.tolist() == pytest.approx([-5.0, -5.0, 0.0, 10.0, 20.0])
        assert cost == -5.0

    def test_short_call(self):
        profile, cost = get_pl_profile("call", "sell", 115.0, 5.0, 1, PRICES)
        assert profile.tolist() == pytest.approx([5.0, 5.0, 0.0, -10.0, -20.0])
        assert cost == 5.0

    def test_long_put(self):
        profile, cost = get_pl_profile("put", "buy", 115.0, 5.0, 1, PRICES)
        assert profile.tolist() == pytest.approx([10.0, 0.0, -5.0, -5.0, -5.0])
        assert cost == -5.0

    def test_quantity_scales(self):
        profile, cost = get_pl_profile("call", "buy", 115.0, 5.0, 10, PRICES)
        assert profile[-1] == pytest.approx(200.0)
        assert cost == -50.0

    def test_commission(self):
        profile, cost = get_pl_profile("call", "buy", 115.0, 5.0, 1, PRICES, commission=1.0)
        assert profile[0] == pytest.approx(-6.0)
        assert cost == -6.0

    def test_invalid_action(self):
        with pytest.raises(InvalidActionError):
            get_pl_profile("call", "hold", 115.0, 5.0, 1, PRICES)

    def test_invalid_option_type(self):
        with pytest.raises(InvalidOptionTypeError):
            get_pl_profile("stock", "buy", 115.0, 5.0, 1, PRICES)


class TestStockProfile:
    def test_long_stock(self):
        profile, cost = get_pl_profile_stock(100.0, "buy", 10, PRICES)
        assert profile.tolist() == pytest.approx([0.0, 100.0, 200.0, 300.0, 400.0])
        assert cost == -1000.0

    def test_short_stock(self):
        profile, cost = get_pl_profile_stock(100.0, "sell", 10, PRICES)
        assert profile.tolist() == pytest.approx([0.0, -100.0, -200.0, -300.0, -400.0])
        assert cost == 1000.0

    def test_commission(self):
        profile, cost = get_pl_profile_stock(100.0, "buy", 10, PRICES, commission=2.0)
        assert profile[0] == pytest.approx(-2.0)
        assert cost == -1002.0


class TestOptionProfileBeforeExpiration:
    def test_long_call_holds_time_value(self):
        at_expiry, _ = get_pl_profile("call", "buy", 115.0, 5.0, 1, PRICES)
        before, cost = get_pl_profile_bs("call", "buy", 115.0, 5.0, 0.05, 0.25, 0.3, 1, PRICES)
        assert np.all(before >= at_expiry - 1e-9)
        assert cost == -5.0

    def test_zero_time_equals_expiry_profile(self):
        at_expiry, _ = get_pl_profile("put", "sell", 115.0, 5.0, 3, PRICES)
        before, _ = get_pl_profile_bs("put", "sell", 115.0, 5.0, 0.05, 0.0, 0.3, 3, PRICES)
        assert before == pytest.approx(at_expiry)

    def test_short_is_negated_long(self):
        long_profile, _ = get_pl_profile_bs("put", "buy", 115.0, 5.0, 0.05, 0.25, 0.3, 1, PRICES)
        short_profile, _ = get_pl_profile_bs("put", "sell", 115.0, 5.0, 0.05, 0.25, 0.3, 1, PRICES)
        assert short_profile == pytest.approx(-long_profile)


class TestPriceSequence:
    def test_bounds_and_step(self):
        s = create_price_seq(50.0, 150.0)
        assert s.size == 10001
        assert s[0] == 50.0
        assert s[-1] == 150.0
        assert np.allclose(np.diff(s), 0.01)

    def test_rounded_to_cents(self):
        s = create_price_seq(68.99, 268.99)
        assert s.size == 20001
        assert s[1] == 69.0

    def test_max_not_above_min(self):
        with pytest.raises(InvalidNumericInputError, match="Maximum price cannot be less than minimum price!"):
            create_price_seq(100.0, 100.0)

    def test_read_only(self):
        s = create_price_seq(50.0, 60.0)
        with pytest.raises(ValueError):
            s[0] = 1.0

    def test_cached(self):
        cache = EngineCache()
        first = create_price_seq(50.0, 60.0, cache)
        second = create_price_seq(50.0, 60.0, cache)
        assert first is second
        assert len(cache.price_grids) == 1

    def test_cache_clear(self):
        cache = EngineCache()
        create_price_seq(50.0, 60.0, cache)
        cache.clear()
        assert len(cache.price_grids) == 0
