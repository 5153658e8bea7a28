"""
Exception hierarchy for Strategy Lab.

All errors raised by the library derive from StrategyLabError. Validation
errors also derive from ValueError so callers that only know about the
builtin keep working.
"""


class StrategyLabError(Exception):
    """Base exception for all Strategy Lab errors."""

    pass


class InvalidOptionTypeError(StrategyLabError, ValueError):
    """Raised when an option type is not 'call' or 'put'."""

    def __init__(self, message: str = "Option type must be either 'call' or 'put'!"):
        super().__init__(message)


class InvalidActionError(StrategyLabError, ValueError):
    """Raised when a leg action is not 'buy' or 'sell'."""

    def __init__(self, message: str = "Action must be either 'buy' or 'sell'!"):
        super().__init__(message)


class InvalidStrategyLegTypeError(StrategyLabError, ValueError):
    """Raised when a strategy leg has an unknown type discriminant."""

    def __init__(
        self, message: str = "Type must be 'call', 'put', 'stock' or 'closed'!"
    ):
        super().__init__(message)


class InvalidStrategyConfigurationError(StrategyLabError, ValueError):
    """Raised for inconsistent strategy inputs (dates, legs, model)."""

    pass


class InvalidNumericInputError(StrategyLabError, ValueError):
    """Raised when a numeric input is outside its allowed range."""

    pass


class EmptyTerminalPriceSampleError(StrategyLabError, ValueError):
    """Raised when the array model receives no terminal prices."""

    def __init__(self, message: str = "The array is empty!"):
        super().__init__(message)


class CalendarLookupError(StrategyLabError):
    """Raised internally when a holiday calendar is unavailable for a country."""

    pass


class AmericanPricingError(StrategyLabError):
    """Base exception for lattice pricing errors"""

    pass


class TreeConstructionError(AmericanPricingError):
    """Exception raised when tree construction fails"""

    pass


__all__ = [
    "StrategyLabError",
    "InvalidOptionTypeError",
    "InvalidActionError",
    "InvalidStrategyLegTypeError",
    "InvalidStrategyConfigurationError",
    "InvalidNumericInputError",
    "EmptyTerminalPriceSampleError",
    "CalendarLookupError",
    "AmericanPricingError",
    "TreeConstructionError",
]
