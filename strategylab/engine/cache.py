"""
Lookup caches owned by the strategy engine.

Both caches are write-once per key: a price grid depends only on its
bounds and a non-business-day count only on the country and the date range,
so entries never need invalidation. An engine can share one EngineCache
across runs or get a fresh one for isolation in tests.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Tuple
import logging

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class EngineCache:
    """Price grids keyed by (min, max) and non-business days by (country, start, end)."""

    price_grids: Dict[Tuple[float, float], np.ndarray] = field(default_factory=dict)
    nonbusiness_days: Dict[Tuple[str, date, date], int] = field(default_factory=dict)

    def clear(self) -> None:
        """Drop all cached entries."""
        logger.debug(
            f"Clearing cache ({len(self.price_grids)} grids, "
            f"{len(self.nonbusiness_days)} calendar entries)"
        )
        self.price_grids.clear()
        self.nonbusiness_days.clear()

    def __len__(self) -> int:
        return len(self.price_grids) + len(self.nonbusiness_days)


# Shared by the module-level convenience functions
default_cache = EngineCache()


__all__ = ["EngineCache", "default_cache"]
