"""
Unit Tests for the Black-Scholes Pricing Module

Test Categories:
    1. Pricing Tests
        - Known analytical values
        - Put-call parity, with and without dividends
        - Expiry and zero-volatility edge cases

    2. Greeks Tests
        - Shared gamma and vega for calls and puts
        - Sign and unit conventions (theta per year, vega/rho per 1%)

    3. Implied Volatility Tests
        - Round trip price -> IV within the 0.001 grid

    4. Vectorization Tests
        - Pricing a whole price grid at once
"""

import re

import numpy as np
import pytest
from scipy.stats import norm

from strategylab.core.exceptions import InvalidOptionTypeError
from strategylab.core.pricing import (
    black_scholes_price,
    get_bs_info,
    get_d1,
    get_d2,
    get_delta,
    get_gamma,
    get_implied_vol,
    get_itm_probability,
    get_option_price,
    get_rho,
    get_theta,
    get_vega,
)

SPOT = 100.0
STRIKE = 100.0
RATE = 0.05
VOL = 0.20
TIME = 1.0

OPTION_TYPE_MESSAGE = re.escape("Option type must be either 'call' or 'put'!")


class TestD1D2:
    def test_atm_values(self):
        d1 = get_d1(SPOT, STRIKE, RATE, VOL, TIME)
        d2 = get_d2(SPOT, STRIKE, RATE, VOL, TIME)
        assert d1 == pytest.approx(0.35)
        assert d2 == pytest.approx(0.15)

    def test_d2_is_d1_minus_vol_sqrt_t(self):
        d1 = get_d1(110.0, STRIKE, RATE, 0.3, 0.5, 0.02)
        d2 = get_d2(110.0, STRIKE, RATE, 0.3, 0.5, 0.02)
        assert d1 - d2 == pytest.approx(0.3 * np.sqrt(0.5))

    @pytest.mark.parametrize("vol,time", [(0.0, 1.0), (0.2, 0.0), (0.2, -1.0)])
    def test_degenerate_inputs_return_zero(self, vol, time):
        assert get_d1(SPOT, STRIKE, RATE, vol, time) == 0.0
        assert get_d2(SPOT, STRIKE, RATE, vol, time) == 0.0

    def test_degenerate_inputs_keep_array_shape(self):
        s = np.array([90.0, 100.0, 110.0])
        d1 = get_d1(s, STRIKE, RATE, 0.0, TIME)
        assert d1.shape == (3,)
        assert np.all(d1 == 0.0)


class TestBlackScholesPrice:
    def test_known_call_value(self):
        assert black_scholes_price("call", SPOT, STRIKE, RATE, VOL, TIME) == pytest.approx(
            10.4506, abs=1e-4
        )

    def test_known_put_value(self):
        assert black_scholes_price("put", SPOT, STRIKE, RATE, VOL, TIME) == pytest.approx(
            5.5735, abs=1e-4
        )

    @pytest.mark.parametrize(
        "spot,strike,rate,vol,time,y",
        [
            (100.0, 100.0, 0.05, 0.20, 1.0, 0.0),
            (120.0, 100.0, 0.03, 0.35, 0.25, 0.02),
            (80.0, 100.0, 0.01, 0.50, 2.0, 0.04),
        ],
    )
    def test_put_call_parity(self, spot, strike, rate, vol, time, y):
        call = black_scholes_price("call", spot, strike, rate, vol, time, y)
        put = black_scholes_price("put", spot, strike, rate, vol, time, y)
        parity = spot * np.exp(-y * time) - strike * np.exp(-rate * time)
        assert call - put == pytest.approx(parity, abs=1e-10)

    def test_expiry_returns_intrinsic(self):
        assert black_scholes_price("call", 110.0, STRIKE, RATE, VOL, 0.0) == pytest.approx(10.0)
        assert black_scholes_price("put", 110.0, STRIKE, RATE, VOL, 0.0) == 0.0
        assert black_scholes_price("put", 90.0, STRIKE, RATE, VOL, 0.0) == pytest.approx(10.0)

    def test_zero_volatility_discounts_forward(self):
        expected = 110.0 - STRIKE * np.exp(-RATE * TIME)
        assert black_scholes_price("call", 110.0, STRIKE, RATE, 0.0, TIME) == pytest.approx(expected)
        assert black_scholes_price("put", 110.0, STRIKE, RATE, 0.0, TIME) == 0.0

    def test_dividend_lowers_call_raises_put(self):
        call = black_scholes_price("call", SPOT, STRIKE, RATE, VOL, TIME)
        put = black_scholes_price("put", SPOT, STRIKE, RATE, VOL, TIME)
        assert black_scholes_price("call", SPOT, STRIKE, RATE, VOL, TIME, 0.03) < call
        assert black_scholes_price("put", SPOT, STRIKE, RATE, VOL, TIME, 0.03) > put

    def test_invalid_option_type(self):
        with pytest.raises(InvalidOptionTypeError, match=OPTION_TYPE_MESSAGE):
            black_scholes_price("straddle", SPOT, STRIKE, RATE, VOL, TIME)

    def test_get_option_price_invalid_type(self):
        with pytest.raises(ValueError, match=OPTION_TYPE_MESSAGE):
            get_option_price("xyz", SPOT, STRIKE, RATE, TIME, 0.35, 0.15)


class TestGreeks:
    @pytest.fixture
    def info(self):
        return get_bs_info(SPOT, STRIKE, RATE, VOL, TIME)

    def test_call_delta(self, info):
        assert info.call_delta == pytest.approx(norm.cdf(0.35))

    def test_put_delta_is_call_delta_minus_one(self, info):
        assert info.put_delta == pytest.approx(info.call_delta - 1.0)

    def test_delta_with_dividend(self):
        d1 = get_d1(SPOT, STRIKE, RATE, VOL, TIME, 0.03)
        call = get_delta("call", d1, TIME, 0.03)
        put = get_delta("put", d1, TIME, 0.03)
        assert call - put == pytest.approx(np.exp(-0.03 * TIME))

    def test_gamma_positive(self, info):
        assert info.gamma > 0
        assert info.gamma == pytest.approx(norm.pdf(0.35) / (SPOT * VOL))

    def test_vega_per_one_percent(self, info):
        assert info.vega == pytest.approx(SPOT * norm.pdf(0.35) / 100)

    def test_theta_per_year(self, info):
        assert info.call_theta == pytest.approx(-6.414, abs=1e-3)
        assert info.put_theta == pytest.approx(-1.658, abs=1e-3)

    def test_rho_per_one_percent(self, info):
        disc = STRIKE * TIME * np.exp(-RATE * TIME)
        assert info.call_rho == pytest.approx(disc * norm.cdf(0.15) / 100)
        assert info.put_rho == pytest.approx(-disc * norm.cdf(-0.15) / 100)

    def test_itm_probabilities_sum_to_dividend_discount(self):
        info = get_bs_info(SPOT, 95.0, RATE, VOL, 0.5, 0.02)
        assert info.call_itm_prob + info.put_itm_prob == pytest.approx(np.exp(-0.02 * 0.5))

    def test_greeks_zero_at_expiry(self):
        assert get_gamma(SPOT, VOL, 0.0, 0.0) == 0.0
        assert get_vega(SPOT, 0.0, 0.0) == 0.0
        assert get_theta("call", SPOT, STRIKE, RATE, VOL, 0.0, 0.0, 0.0) == 0.0
        assert get_rho("call", STRIKE, RATE, 0.0, 0.0) == 0.0

    def test_itm_probability_invalid_type(self):
        with pytest.raises(InvalidOptionTypeError):
            get_itm_probability("both", 0.1, TIME)


class TestImpliedVolatility:
    @pytest.mark.parametrize(
        "option_type,spot,strike,vol,time",
        [
            ("call", 100.0, 100.0, 0.25, 0.5),
            ("put", 100.0, 105.0, 0.40, 0.25),
            ("call", 168.99, 185.0, 0.483, 24 / 252),
        ],
    )
    def test_round_trip(self, option_type, spot, strike, vol, time):
        price = black_scholes_price(option_type, spot, strike, RATE, vol, time)
        iv = get_implied_vol(option_type, price, spot, strike, RATE, time)
        assert iv == pytest.approx(vol, abs=0.01)

    def test_result_on_grid(self):
        iv = get_implied_vol("call", 3.0, SPOT, 105.0, RATE, 0.25)
        assert 0.001 <= iv <= 1.0
        assert round(iv * 1000) == pytest.approx(iv * 1000)

    def test_invalid_option_type(self):
        with pytest.raises(InvalidOptionTypeError, match=OPTION_TYPE_MESSAGE):
            get_implied_vol("future", 5.0, SPOT, STRIKE, RATE, TIME)


class TestVectorization:
    def test_price_grid(self):
        s = np.linspace(50.0, 150.0, 101)
        prices = black_scholes_price("call", s, STRIKE, RATE, VOL, TIME)
        assert prices.shape == s.shape
        assert np.all(np.diff(prices) > 0)
        assert prices[50] == pytest.approx(black_scholes_price("call", 100.0, STRIKE, RATE, VOL, TIME))

    def test_put_grid_non_negative(self):
        s = np.linspace(1.0, 300.0, 50)
        prices = black_scholes_price("put", s, STRIKE, RATE, VOL, 0.1)
        assert np.all(prices >= 0.0)

    def test_greeks_on_grid(self):
        s = np.array([90.0, 100.0, 110.0])
        d1 = get_d1(s, STRIKE, RATE, VOL, TIME)
        gamma = get_gamma(s, VOL, TIME, d1)
        assert gamma.shape == (3,)
        assert np.all(gamma > 0)
