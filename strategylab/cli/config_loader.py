"""
Configuration Loader for Strategy Definitions

Loads strategy inputs from YAML and JSON files and converts them to Inputs.
The document may hold the fields at the top level or under an "inputs" key.

Example (YAML):

    inputs:
      stock_price: 168.99
      volatility: 0.483
      interest_rate: 0.045
      min_stock: 68.99
      max_stock: 268.99
      start_date: 2023-01-16
      target_date: 2023-02-17
      strategy:
        - type: stock
          n: 100
          action: buy
        - type: call
          strike: 185.0
          premium: 4.1
          n: 100
          action: sell
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

import yaml

from strategylab.cli.environment import get_settings
from strategylab.core.exceptions import StrategyLabError
from strategylab.core.models import Inputs
from strategylab.engine.probability import create_price_array

logger = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(message)


class ConfigLoader:
    """Loads and parses strategy configuration files."""

    @classmethod
    def load(cls, path: Union[str, Path]) -> Inputs:
        """
        Load configuration from file.

        Args:
            path: Path to YAML or JSON configuration file

        Returns:
            Validated Inputs

        Raises:
            FileNotFoundError: If config file doesn't exist
            ConfigValidationError: If configuration is invalid
            ValueError: If file format is unsupported
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        raw_data = cls._load_file(path)
        inputs = cls._parse_config(raw_data, source=str(path))

        logger.info(f"Loaded {len(inputs.strategy)}-leg strategy from {path}")
        return inputs

    @classmethod
    def load_from_string(cls, content: str, format: str = "yaml") -> Inputs:
        """
        Load configuration from string content.

        Args:
            content: YAML or JSON string
            format: "yaml" or "json"

        Returns:
            Validated Inputs
        """
        if format.lower() == "yaml":
            raw_data = yaml.safe_load(content)
        elif format.lower() == "json":
            raw_data = json.loads(content)
        else:
            raise ValueError(f"Unsupported format: {format}")

        return cls._parse_config(raw_data)

    @classmethod
    def _load_file(cls, path: Path) -> Any:
        """Load raw data from file."""
        suffix = path.suffix.lower()

        with open(path, "r") as f:
            if suffix in (".yaml", ".yml"):
                return yaml.safe_load(f)
            elif suffix == ".json":
                return json.load(f)
            else:
                raise ValueError(f"Unsupported file format: {suffix}")

    @classmethod
    def _parse_config(cls, data: Any, source: str = "<string>") -> Inputs:
        """Parse raw dictionary into Inputs."""
        if not isinstance(data, dict):
            raise ConfigValidationError(
                f"Configuration validation failed: {source}",
                errors=["Configuration must be a mapping"],
            )

        if "inputs" in data:
            data = data["inputs"]
            if not isinstance(data, dict):
                raise ConfigValidationError(
                    f"Configuration validation failed: {source}",
                    errors=["'inputs' must be a mapping"],
                )

        try:
            return Inputs.from_dict(cls._normalize(data))
        except (StrategyLabError, ValueError, TypeError) as e:
            raise ConfigValidationError(
                f"Configuration validation failed: {source}", errors=[str(e)]
            ) from e

    @staticmethod
    def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Prepare raw values for Inputs.

        An "array" given as a mapping describes a distribution to sample
        terminal prices from (see create_price_array). Its optional "n" and
        "seed" keys default to the environment settings.
        """
        data = dict(data)
        if data.get("strategy") is None:
            data["strategy"] = []

        array_spec = data.get("array")
        if isinstance(array_spec, dict):
            settings = get_settings()
            spec = dict(array_spec)
            n = spec.pop("n", settings.sample_size)
            seed = spec.pop("seed", settings.random_seed)
            data["array"] = create_price_array(spec, n=n, seed=seed)
            logger.debug(f"Sampled {n} terminal prices for the array model")

        return data


def load_config(path: Union[str, Path]) -> Inputs:
    """
    Load strategy inputs from file.

    Args:
        path: Path to YAML or JSON configuration file

    Returns:
        Validated Inputs
    """
    return ConfigLoader.load(path)


def load_config_string(content: str, format: str = "yaml") -> Inputs:
    """
    Load strategy inputs from string.

    Args:
        content: YAML or JSON content
        format: "yaml" or "json"

    Returns:
        Validated Inputs
    """
    return ConfigLoader.load_from_string(content, format)
