"""
CLI Package for Strategy Lab

Configuration loading, environment settings and the `strategylab`
command-line tool.

Usage:
    # Evaluate a strategy
    strategylab run --config strategy.yaml

    # Validate a configuration
    strategylab validate --config strategy.yaml

    # Price a single option
    strategylab price --type call --spot 100 --strike 100 --vol 0.2 --years 0.5
"""

from strategylab.cli.config_loader import (
    ConfigLoader,
    ConfigValidationError,
    load_config,
    load_config_string,
)
from strategylab.cli.environment import (
    Environment,
    EnvironmentManager,
    EnvironmentSettings,
    configure_logging,
    get_environment,
    get_settings,
    set_environment,
)

__all__ = [
    # Loading
    "ConfigLoader",
    "ConfigValidationError",
    "load_config",
    "load_config_string",
    # Environment
    "Environment",
    "EnvironmentManager",
    "EnvironmentSettings",
    "configure_logging",
    "get_environment",
    "get_settings",
    "set_environment",
]
