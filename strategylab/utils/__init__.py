"""Utility functions for Strategy Lab."""

from strategylab.utils.calendar import get_nonbusiness_days

__all__ = ["get_nonbusiness_days"]
