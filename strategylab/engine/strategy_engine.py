"""
Strategy Evaluation Engine

Evaluates a multi-leg strategy (options, stock and an optional closed
position) over a grid of stock prices:

    1. Init: resolve the days to the target date and each leg's days to
       maturity, build the price grid.
    2. Per leg: profit/loss profile, cost, Greeks, implied volatility and
       probability of finishing in the money.
    3. Aggregate: sum the leg profiles into the strategy profile.
    4. Probability: probability of profit at breakeven, and optionally at a
       profit target and a loss limit.
    5. Assemble the Outputs record.

All input validation happens when Inputs is built, so a run either
completes or fails before any leg is computed.

Usage:
    >>> from strategylab.engine.strategy_engine import StrategyEngine
    >>> engine = StrategyEngine()
    >>> outputs = engine.run(inputs)
    >>> print(outputs)
"""

import logging
from datetime import date
from typing import Any, Mapping, Optional, Union

import numpy as np

from strategylab.core.exceptions import (
    InvalidStrategyConfigurationError,
    InvalidStrategyLegTypeError,
)
from strategylab.core.models import (
    ArrayInputs,
    BlackScholesModelInputs,
    ClosedPositionLeg,
    EngineData,
    Inputs,
    OptionLeg,
    Outputs,
    StockLeg,
)
from strategylab.core.pricing import get_bs_info, get_implied_vol
from strategylab.engine.cache import EngineCache, default_cache
from strategylab.engine.probability import get_pop
from strategylab.engine.profit_loss import (
    create_price_seq,
    get_pl_profile,
    get_pl_profile_bs,
    get_pl_profile_stock,
)
from strategylab.utils.calendar import get_nonbusiness_days

logger = logging.getLogger(__name__)

CALENDAR_DAYS_IN_YEAR = 365
MIN_PROFIT_TARGET = 0.01
LOSS_LIMIT_OFFSET = 0.01


class StrategyEngine:
    """
    Runs strategy evaluations.

    Args:
        cache: Cache for price grids and calendar lookups. A private cache is
            created when none is given.
    """

    def __init__(self, cache: Optional[EngineCache] = None):
        self.cache = cache if cache is not None else EngineCache()

    def run(self, inputs: Union[Inputs, Mapping[str, Any]]) -> Outputs:
        """
        Evaluate a strategy.

        Args:
            inputs: Inputs, or a mapping accepted by Inputs.from_dict

        Returns:
            Outputs with probabilities, costs, Greeks and the P/L data
        """
        if not isinstance(inputs, Inputs):
            inputs = Inputs.from_dict(inputs)

        data = self._init_inputs(inputs)
        self._run(data)
        outputs = self._generate_outputs(data)

        logger.info(
            f"Evaluated {len(inputs.strategy)}-leg strategy: "
            f"PoP={outputs.probability_of_profit:.4f}, cost={outputs.strategy_cost:.2f}"
        )
        return outputs

    # -------------------------------------------------------------------------
    # Init
    # -------------------------------------------------------------------------

    def _nonbusiness_days(self, inputs: Inputs, end_date: date) -> int:
        if not inputs.discard_nonbusiness_days:
            return 0
        return get_nonbusiness_days(inputs.start_date, end_date, inputs.country, self.cache)

    def _init_inputs(self, inputs: Inputs) -> EngineData:
        data = EngineData(
            inputs=inputs,
            stock_price_array=create_price_seq(inputs.min_stock, inputs.max_stock, self.cache),
            terminal_stock_prices=(
                inputs.array if inputs.model == "array" else np.zeros(0)
            ),
        )

        data.days_in_year = (
            inputs.business_days_in_year
            if inputs.discard_nonbusiness_days
            else CALENDAR_DAYS_IN_YEAR
        )

        if inputs.start_date is not None and inputs.target_date is not None:
            data.days_to_target = (
                (inputs.target_date - inputs.start_date).days
                + 1
                - self._nonbusiness_days(inputs, inputs.target_date)
            )
        else:
            data.days_to_target = inputs.days_to_target_date

        for leg in inputs.strategy:
            data.type.append(leg.type)

            if isinstance(leg, OptionLeg):
                data.strike.append(leg.strike)
                data.premium.append(leg.premium)
                data.n.append(leg.n)
                data.action.append(leg.action)
                data.previous_position.append(leg.previous_position or 0.0)
                self._init_option_maturity(data, leg)
            elif isinstance(leg, StockLeg):
                data.strike.append(0.0)
                data.premium.append(0.0)
                data.n.append(leg.n)
                data.action.append(leg.action)
                data.previous_position.append(leg.previous_position or 0.0)
                data.use_bs.append(False)
                data.days_to_maturity.append(-1)
            elif isinstance(leg, ClosedPositionLeg):
                data.strike.append(0.0)
                data.premium.append(0.0)
                data.n.append(0)
                data.action.append("n/a")
                data.previous_position.append(leg.previous_position)
                data.use_bs.append(False)
                data.days_to_maturity.append(-1)
            else:
                raise InvalidStrategyLegTypeError()

        logger.debug(
            f"Initialized run: {data.days_to_target} days to target, "
            f"{data.days_in_year} days/year, {data.stock_price_array.size} grid points"
        )
        return data

    def _init_option_maturity(self, data: EngineData, leg: OptionLeg) -> None:
        inputs = data.inputs
        expiration = leg.expiration

        if expiration is None:
            data.days_to_maturity.append(data.days_to_target)
            data.use_bs.append(False)
        elif isinstance(expiration, date):
            if expiration == inputs.target_date:
                days = data.days_to_target
            else:
                days = (
                    (expiration - inputs.start_date).days
                    + 1
                    - self._nonbusiness_days(inputs, expiration)
                )
            data.days_to_maturity.append(days)
            data.use_bs.append(expiration != inputs.target_date)
        else:
            if expiration < data.days_to_target:
                raise InvalidStrategyConfigurationError(
                    "Days remaining to maturity must be greater than or equal to "
                    "the number of days remaining to the target date!"
                )
            data.days_to_maturity.append(expiration)
            data.use_bs.append(expiration != data.days_to_target)

    # -------------------------------------------------------------------------
    # Per-leg computations and aggregation
    # -------------------------------------------------------------------------

    def _run(self, data: EngineData) -> EngineData:
        inputs = data.inputs
        is_array = inputs.model == "array"
        n_legs = len(data.type)

        data.cost = [0.0] * n_legs
        data.profit = np.zeros((n_legs, data.stock_price_array.size))
        data.strategy_profit = np.zeros(data.stock_price_array.size)
        if is_array:
            data.profit_mc = np.zeros((n_legs, data.terminal_stock_prices.size))
            data.strategy_profit_mc = np.zeros(data.terminal_stock_prices.size)

        for i, leg_type in enumerate(data.type):
            if leg_type in ("call", "put"):
                self._run_option_calcs(data, i)
            elif leg_type == "stock":
                self._run_stock_calcs(data, i)
            else:
                self._run_closed_position_calcs(data, i)

            data.strategy_profit += data.profit[i]
            if is_array:
                data.strategy_profit_mc += data.profit_mc[i]

        self._run_probabilities(data)
        return data

    def _run_probabilities(self, data: EngineData) -> None:
        inputs = data.inputs

        if inputs.model == "array":
            pop_inputs = ArrayInputs(array=data.strategy_profit_mc)
        else:
            pop_inputs = BlackScholesModelInputs(
                stock_price=inputs.stock_price,
                volatility=inputs.volatility,
                years_to_target_date=data.days_to_target / data.days_in_year,
                interest_rate=inputs.interest_rate,
                dividend_yield=inputs.dividend_yield,
            )

        pop_out = get_pop(data.stock_price_array, data.strategy_profit, pop_inputs)
        data.profit_probability = pop_out.probability_of_reaching_target
        data.expected_profit = pop_out.expected_return_above_target
        data.expected_loss = pop_out.expected_return_below_target
        data.profit_ranges = pop_out.reaching_target_range

        if inputs.profit_target is not None and inputs.profit_target > MIN_PROFIT_TARGET:
            target_out = get_pop(
                data.stock_price_array, data.strategy_profit, pop_inputs, inputs.profit_target
            )
            data.profit_target_probability = target_out.probability_of_reaching_target
            data.profit_target_ranges = target_out.reaching_target_range

        if inputs.loss_limit is not None and inputs.loss_limit < 0.0:
            limit_out = get_pop(
                data.stock_price_array,
                data.strategy_profit,
                pop_inputs,
                inputs.loss_limit + LOSS_LIMIT_OFFSET,
            )
            data.loss_limit_probability = limit_out.probability_of_missing_target
            data.loss_limit_ranges = limit_out.missing_target_range

    def _append_greeks(self, data: EngineData, **values: float) -> None:
        for name in ("implied_volatility", "itm_probability", "delta", "gamma", "theta", "vega", "rho"):
            getattr(data, name).append(float(values.get(name, 0.0)))

    def _add_constant(self, data: EngineData, i: int, value: float) -> None:
        data.cost[i] = value
        data.profit[i] += value
        if data.inputs.model == "array":
            data.profit_mc[i] += value

    def _run_option_calcs(self, data: EngineData, i: int) -> None:
        inputs = data.inputs
        option_type = data.type[i]
        action = data.action[i]
        previous_position = data.previous_position[i]

        if previous_position < 0.0:
            # Already closed: the realized result is all that remains
            self._append_greeks(data)
            cost = (data.premium[i] + previous_position) * data.n[i]
            if action == "buy":
                cost *= -1.0
            self._add_constant(data, i, cost)
            logger.debug(f"Leg {i}: closed {option_type}, realized {cost:.2f}")
            return

        time_to_maturity = data.days_to_maturity[i] / data.days_in_year
        bs = get_bs_info(
            inputs.stock_price,
            data.strike[i],
            inputs.interest_rate,
            inputs.volatility,
            time_to_maturity,
            inputs.dividend_yield,
        )
        sign = 1.0 if action == "buy" else -1.0
        is_call = option_type == "call"

        self._append_greeks(
            data,
            implied_volatility=get_implied_vol(
                option_type,
                data.premium[i],
                inputs.stock_price,
                data.strike[i],
                inputs.interest_rate,
                time_to_maturity,
                inputs.dividend_yield,
            ),
            itm_probability=bs.call_itm_prob if is_call else bs.put_itm_prob,
            delta=sign * (bs.call_delta if is_call else bs.put_delta),
            gamma=bs.gamma,
            theta=sign * (bs.call_theta if is_call else bs.put_theta) / data.days_in_year,
            vega=bs.vega,
            rho=sign * (bs.call_rho if is_call else bs.put_rho),
        )

        opt_value = previous_position if previous_position > 0.0 else data.premium[i]

        if data.use_bs[i]:
            target_to_maturity = (
                data.days_to_maturity[i] - data.days_to_target
            ) / data.days_in_year

            def profile(prices):
                return get_pl_profile_bs(
                    option_type,
                    action,
                    data.strike[i],
                    opt_value,
                    inputs.interest_rate,
                    target_to_maturity,
                    inputs.volatility,
                    data.n[i],
                    prices,
                    inputs.dividend_yield,
                    inputs.opt_commission,
                )
        else:
            def profile(prices):
                return get_pl_profile(
                    option_type,
                    action,
                    data.strike[i],
                    opt_value,
                    data.n[i],
                    prices,
                    inputs.opt_commission,
                )

        data.profit[i], data.cost[i] = profile(data.stock_price_array)
        if inputs.model == "array":
            data.profit_mc[i] = profile(data.terminal_stock_prices)[0]

        logger.debug(
            f"Leg {i}: {action} {data.n[i]} {option_type} @ {data.strike[i]}, "
            f"cost {data.cost[i]:.2f}, {'repriced' if data.use_bs[i] else 'at expiry'}"
        )

    def _run_stock_calcs(self, data: EngineData, i: int) -> None:
        inputs = data.inputs
        action = data.action[i]
        previous_position = data.previous_position[i]

        self._append_greeks(
            data, itm_probability=1.0, delta=1.0 if action == "buy" else -1.0
        )

        if previous_position < 0.0:
            cost = (inputs.stock_price + previous_position) * data.n[i]
            if action == "buy":
                cost *= -1.0
            self._add_constant(data, i, cost)
            logger.debug(f"Leg {i}: closed stock, realized {cost:.2f}")
            return

        stockpos = previous_position if previous_position > 0.0 else inputs.stock_price

        data.profit[i], data.cost[i] = get_pl_profile_stock(
            stockpos, action, data.n[i], data.stock_price_array, inputs.stock_commission
        )
        if inputs.model == "array":
            data.profit_mc[i] = get_pl_profile_stock(
                stockpos, action, data.n[i], data.terminal_stock_prices, inputs.stock_commission
            )[0]

        logger.debug(f"Leg {i}: {action} {data.n[i]} shares @ {stockpos}, cost {data.cost[i]:.2f}")

    def _run_closed_position_calcs(self, data: EngineData, i: int) -> None:
        self._append_greeks(data)
        self._add_constant(data, i, data.previous_position[i])

    # -------------------------------------------------------------------------
    # Assemble
    # -------------------------------------------------------------------------

    def _generate_outputs(self, data: EngineData) -> Outputs:
        return Outputs(
            inputs=data.inputs,
            data=data,
            probability_of_profit=data.profit_probability,
            expected_profit=data.expected_profit,
            expected_loss=data.expected_loss,
            strategy_cost=float(sum(data.cost)),
            per_leg_cost=list(data.cost),
            profit_ranges=data.profit_ranges,
            minimum_return_in_the_domain=float(data.strategy_profit.min()),
            maximum_return_in_the_domain=float(data.strategy_profit.max()),
            implied_volatility=data.implied_volatility,
            in_the_money_probability=data.itm_probability,
            delta=data.delta,
            gamma=data.gamma,
            theta=data.theta,
            vega=data.vega,
            rho=data.rho,
            probability_of_profit_target=data.profit_target_probability,
            profit_target_ranges=data.profit_target_ranges,
            probability_of_loss_limit=data.loss_limit_probability,
            loss_limit_ranges=data.loss_limit_ranges,
        )


def run_strategy(
    inputs: Union[Inputs, Mapping[str, Any]], cache: Optional[EngineCache] = None
) -> Outputs:
    """
    Evaluate a strategy with a shared default cache.

    Example:
        >>> outputs = run_strategy({
        ...     "stock_price": 100.0, "volatility": 0.2, "interest_rate": 0.01,
        ...     "min_stock": 50.0, "max_stock": 150.0, "days_to_target_date": 30,
        ...     "strategy": [{"type": "call", "strike": 105.0, "premium": 2.0,
        ...                   "n": 100, "action": "buy"}],
        ... })
    """
    return StrategyEngine(cache if cache is not None else default_cache).run(inputs)


__all__ = ["StrategyEngine", "run_strategy"]
