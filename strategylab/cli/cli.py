"""
Command-Line Interface for Strategy Lab

Provides CLI commands for evaluating strategies, validating strategy files
and pricing single options.

Usage:
    strategylab run --config covered_call.yaml --csv pl.csv --plot pl.png
    strategylab validate --config covered_call.yaml
    strategylab price --type put --spot 100 --strike 105 --rate 0.05 \\
        --vol 0.25 --years 0.5 --model american
"""

import sys
from pathlib import Path
from typing import Optional

import click

from strategylab import __version__
from strategylab.analytics.export import pl_to_csv
from strategylab.cli.config_loader import ConfigValidationError, load_config
from strategylab.cli.environment import (
    Environment,
    configure_logging,
    set_environment,
)
from strategylab.core.american_pricing import BinomialModelInputs
from strategylab.core.bjerksund_stensland import AmericanModelInputs
from strategylab.core.exceptions import StrategyLabError
from strategylab.core.models import PricingResult
from strategylab.core.pricing import get_bs_info
from strategylab.engine.strategy_engine import StrategyEngine


def echo(message: str, err: bool = False) -> None:
    click.echo(message, err=err)


def echo_error(message: str) -> None:
    """Output error message."""
    echo(f"Error: {message}", err=True)


def echo_success(message: str) -> None:
    echo(message)


config_option = click.option(
    "-c",
    "--config",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help="Strategy file (.yaml, .yml or .json)",
)


@click.group()
@click.option(
    "--env",
    "-e",
    type=click.Choice([e.value for e in Environment]),
    default="development",
    help="Environment to use",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.version_option(version=__version__, prog_name="Strategy Lab")
@click.pass_context
def cli(ctx: click.Context, env: str, verbose: bool, quiet: bool) -> None:
    """Strategy Lab CLI - Evaluate option strategies and price options."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    set_environment(Environment(env))
    if verbose:
        configure_logging()


@cli.command()
@config_option
@click.option(
    "--csv",
    "csv_path",
    type=click.Path(path_type=Path),
    help="Write the strategy P/L curve to this CSV file",
)
@click.option(
    "--plot",
    "plot_path",
    type=click.Path(path_type=Path),
    help="Save the P/L chart to this file (.png, .svg, .pdf or .html)",
)
@click.option(
    "--backend",
    type=click.Choice(["matplotlib", "plotly"]),
    default="matplotlib",
    help="Plotting backend",
)
@click.option("--leg", type=int, help="Export/plot a single leg instead of the strategy")
@click.pass_context
def run(
    ctx: click.Context,
    config: Path,
    csv_path: Optional[Path],
    plot_path: Optional[Path],
    backend: str,
    leg: Optional[int],
) -> None:
    """Evaluate a strategy from a configuration file."""
    verbose = ctx.obj.get("verbose", False)
    quiet = ctx.obj.get("quiet", False)

    try:
        if not quiet:
            echo(f"Loading configuration from {config}...")

        inputs = load_config(config)
        outputs = StrategyEngine().run(inputs)

        echo(str(outputs).rstrip())
        if verbose:
            _display_legs(outputs)

        if csv_path:
            pl_to_csv(outputs, str(csv_path), leg)
            if not quiet:
                echo_success(f"P/L data written to {csv_path}")

        if plot_path:
            from strategylab.analytics.visualization import plot_pl

            plot_pl(outputs, leg=leg, backend=backend, save_path=str(plot_path), show=False)
            if not quiet:
                echo_success(f"P/L chart saved to {plot_path}")

    except ConfigValidationError as e:
        echo_error(f"Configuration validation failed: {e}")
        for error in e.errors:
            echo(f"  - {error}", err=True)
        sys.exit(1)
    except (StrategyLabError, FileNotFoundError, ValueError) as e:
        echo_error(f"Evaluation failed: {e}")
        sys.exit(1)


@cli.command()
@config_option
def validate(config: Path) -> None:
    """Validate a strategy configuration file without evaluating it."""
    try:
        inputs = load_config(config)
        echo_success(f"Configuration is valid: {len(inputs.strategy)} leg(s)")
    except ConfigValidationError as e:
        echo_error(f"Configuration validation failed: {e}")
        for error in e.errors:
            echo(f"  - {error}", err=True)
        sys.exit(1)
    except (FileNotFoundError, ValueError) as e:
        echo_error(str(e))
        sys.exit(1)


@cli.command()
@click.option("--type", "option_type", type=click.Choice(["call", "put"]), required=True)
@click.option("--spot", type=float, required=True, help="Stock price")
@click.option("--strike", type=float, required=True, help="Strike price")
@click.option("--rate", type=float, default=0.05, show_default=True, help="Risk-free rate")
@click.option("--vol", type=float, required=True, help="Annualized volatility")
@click.option("--years", type=float, required=True, help="Years to maturity")
@click.option("--dividend-yield", type=float, default=0.0, show_default=True)
@click.option(
    "--model",
    type=click.Choice(["bs", "binomial", "american"]),
    default="bs",
    show_default=True,
    help="Black-Scholes, CRR binomial tree, or Bjerksund-Stensland",
)
@click.option("--steps", type=int, default=100, show_default=True, help="Tree steps")
@click.option("--european", is_flag=True, help="Binomial model: disallow early exercise")
def price(
    option_type: str,
    spot: float,
    strike: float,
    rate: float,
    vol: float,
    years: float,
    dividend_yield: float,
    model: str,
    steps: int,
    european: bool,
) -> None:
    """Price a single option and show its Greeks."""
    try:
        if model == "bs":
            result = _price_black_scholes(option_type, spot, strike, rate, vol, years, dividend_yield)
        elif model == "binomial":
            result = BinomialModelInputs(
                option_type, spot, strike, rate, vol, years, steps, not european, dividend_yield
            ).result()
        else:
            result = AmericanModelInputs(
                option_type, spot, strike, rate, vol, years, dividend_yield
            ).result()
        echo(str(result).rstrip())
    except (StrategyLabError, ValueError) as e:
        echo_error(str(e))
        sys.exit(1)


def _price_black_scholes(option_type, spot, strike, rate, vol, years, dividend_yield) -> PricingResult:
    info = get_bs_info(spot, strike, rate, vol, years, dividend_yield)
    prefix = option_type
    return PricingResult(
        price=getattr(info, f"{prefix}_price"),
        delta=getattr(info, f"{prefix}_delta"),
        gamma=info.gamma,
        theta=getattr(info, f"{prefix}_theta"),
        vega=info.vega,
        rho=getattr(info, f"{prefix}_rho"),
        model="black-scholes",
        parameters={"dividend_yield": dividend_yield},
    )


def _display_legs(outputs) -> None:
    """Per-leg details."""
    echo("Legs:")
    for i, leg in enumerate(outputs.inputs.strategy):
        echo(
            f"  [{i}] {leg.type:<6} cost={outputs.per_leg_cost[i]:>10.2f} "
            f"delta={outputs.delta[i]:.4f} theta={outputs.theta[i]:.4f} "
            f"iv={outputs.implied_volatility[i]:.3f} "
            f"itm={outputs.in_the_money_probability[i]:.4f}"
        )


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
