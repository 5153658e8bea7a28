"""
Runtime environments for Strategy Lab.

An environment (development, staging, production or test) decides how
chatty the logs are, whether they also go to a file, and how terminal price
samples are drawn when a configuration asks for one:

    environment   log level   sample size   seed
    development   DEBUG       100,000       random
    staging       INFO        100,000       random
    production    WARNING     100,000       random
    test          DEBUG        10,000       42

The active environment comes from set_environment(), else from the
STRATEGYLAB_ENV variable, else development. STRATEGYLAB_LOG_FILE adds a
log file in any environment.
"""

import os
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Environment(str, Enum):
    """Available environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"

    @classmethod
    def parse(cls, value: str) -> "Environment":
        """Case-insensitive lookup; unknown names mean development."""
        try:
            return cls(value.strip().lower())
        except ValueError:
            logger.warning(f"Unknown environment '{value}', using development")
            return cls.DEVELOPMENT


@dataclass(frozen=True)
class EnvironmentSettings:
    """Logging and sampling settings of one environment."""

    name: Environment
    log_level: str = "INFO"
    log_file: Optional[str] = None
    sample_size: int = 100_000
    random_seed: Optional[int] = None


PROFILES: Dict[Environment, EnvironmentSettings] = {
    Environment.DEVELOPMENT: EnvironmentSettings(Environment.DEVELOPMENT, log_level="DEBUG"),
    Environment.STAGING: EnvironmentSettings(Environment.STAGING),
    Environment.PRODUCTION: EnvironmentSettings(Environment.PRODUCTION, log_level="WARNING"),
    Environment.TEST: EnvironmentSettings(
        Environment.TEST, log_level="DEBUG", sample_size=10_000, random_seed=42
    ),
}


class EnvironmentManager:
    """Process-wide holder of the active environment."""

    ENV_VAR = "STRATEGYLAB_ENV"
    LOG_FILE_VAR = "STRATEGYLAB_LOG_FILE"

    _override: Optional[Environment] = None
    _resolved: Optional[EnvironmentSettings] = None

    @classmethod
    def get_environment(cls) -> Environment:
        if cls._override is not None:
            return cls._override
        return Environment.parse(os.environ.get(cls.ENV_VAR, Environment.DEVELOPMENT.value))

    @classmethod
    def set_environment(cls, env: Environment) -> None:
        cls._override = env
        cls._resolved = None
        logger.debug(f"Environment set to {env.value}")

    @classmethod
    def get_settings(cls) -> EnvironmentSettings:
        """Profile of the active environment, with the log file override applied."""
        if cls._resolved is None:
            settings = PROFILES[cls.get_environment()]
            log_file = os.environ.get(cls.LOG_FILE_VAR)
            if log_file:
                settings = replace(settings, log_file=log_file)
            cls._resolved = settings
        return cls._resolved

    @classmethod
    def reset(cls) -> None:
        """Forget the override and the resolved settings."""
        cls._override = None
        cls._resolved = None


def get_environment() -> Environment:
    return EnvironmentManager.get_environment()


def get_settings() -> EnvironmentSettings:
    return EnvironmentManager.get_settings()


def set_environment(env: Environment) -> None:
    EnvironmentManager.set_environment(env)


def configure_logging(level: Optional[str] = None) -> None:
    """
    Set up the root logger for command-line use.

    A console handler is attached only when the root logger has none, so
    an application that already configured logging keeps its handlers.

    Args:
        level: Log level name; defaults to the environment's level
    """
    settings = get_settings()
    numeric_level = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    root.setLevel(numeric_level)
    formatter = logging.Formatter(LOG_FORMAT)

    handlers = []
    if not root.handlers:
        handlers.append(logging.StreamHandler())
    if settings.log_file:
        handlers.append(logging.FileHandler(settings.log_file))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        root.addHandler(handler)

    logger.info(f"Logging at {logging.getLevelName(numeric_level)} for {settings.name.value}")


__all__ = [
    "LOG_FORMAT",
    "Environment",
    "EnvironmentSettings",
    "PROFILES",
    "EnvironmentManager",
    "get_environment",
    "get_settings",
    "set_environment",
    "configure_logging",
]
