from __future__ import annotations

import logging
import time
from typing import Any, Callable

from catalog_sync.domain.filters import PendingRange, PriceRange

logger = logging.getLogger(__name__)


class RangeInputController:
    """
    Two-phase (pending -> committed) protocol for a numeric range control.

    The control edits ``pending`` freely while dragging or typing; nothing is
    committed until ``release()`` (pointer-release, blur or Enter). Invariant:
    ``pending.min < pending.max`` at every observable step.

    ``busy`` is an explicit cool-down flag after a committing release, so a
    second release within the same interaction cannot double-fire.
    """

    def __init__(
        self,
        cooldown_seconds: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
        min_key: str = "min_price",
        max_key: str = "max_price",
    ) -> None:
        self._cooldown = cooldown_seconds
        self._clock = clock
        self._min_key = min_key
        self._max_key = max_key

        self._bounds = PriceRange(0, 1)
        self._committed = PriceRange()
        self._pending = PendingRange(0, 1)
        self._disabled = True
        self._released_at: float | None = None

    @property
    def pending(self) -> PendingRange:
        return self._pending

    @property
    def bounds(self) -> PriceRange:
        return self._bounds

    @property
    def disabled(self) -> bool:
        """True when the bounds are degenerate and dragging is not offered."""
        return self._disabled

    @property
    def busy(self) -> bool:
        if self._released_at is None:
            return False
        return self._clock() - self._released_at < self._cooldown

    # ==========================================================================
    # Seeding
    # ==========================================================================

    def seed(self, committed: PriceRange, bounds: PriceRange) -> PendingRange:
        """
        Seed pending values from committed values clamped into ``bounds``.

        Absent committed values fall back to the bounds. A collision nudges
        the lesser value inward by one unit. Degenerate bounds (width < 2)
        yield the fixed point ``{bounds.min, bounds.min + 1}`` and disable
        the control.
        """
        low = bounds.min or 0
        high = bounds.max if bounds.max is not None else low

        self._bounds = PriceRange(low, high)
        self._committed = committed

        if high - low < 2:
            self._disabled = True
            self._pending = PendingRange(low, low + 1)
            return self._pending

        self._disabled = False
        new_min = _clamp(committed.min if committed.min is not None else low, low, high)
        new_max = _clamp(committed.max if committed.max is not None else high, low, high)

        if new_min >= new_max:
            if new_max - 1 >= low:
                new_min = new_max - 1
            else:
                new_max = new_min + 1

        self._pending = PendingRange(new_min, new_max)
        return self._pending

    def sync(self, committed: PriceRange, bounds: PriceRange) -> PendingRange:
        """Re-seed only when the committed values or bounds changed externally."""
        if committed != self._committed or PriceRange(bounds.min or 0, bounds.max) != self._bounds:
            return self.seed(committed, bounds)
        return self._pending

    # ==========================================================================
    # Editing
    # ==========================================================================

    def set_min(self, value: int) -> PendingRange:
        if self._disabled:
            return self._pending
        bounded = _clamp(value, self._bounds.min, self._pending.max - 1)
        self._pending = PendingRange(bounded, self._pending.max)
        return self._pending

    def set_max(self, value: int) -> PendingRange:
        if self._disabled:
            return self._pending
        bounded = _clamp(value, self._pending.min + 1, self._bounds.max)
        self._pending = PendingRange(self._pending.min, bounded)
        return self._pending

    # ==========================================================================
    # Commit
    # ==========================================================================

    def release(self) -> dict[str, Any] | None:
        """
        End the interaction.

        Returns:
            A FilterState patch when pending differs from the last committed
            range, otherwise None (also None while busy or disabled)
        """
        if self._disabled or self.busy:
            return None

        current_min = self._committed.min if self._committed.min is not None else self._bounds.min
        current_max = self._committed.max if self._committed.max is not None else self._bounds.max
        if (self._pending.min, self._pending.max) == (current_min, current_max):
            return None

        self._released_at = self._clock()
        self._committed = PriceRange(self._pending.min, self._pending.max)
        logger.debug(
            "Range released",
            extra={"min": self._pending.min, "max": self._pending.max},
        )
        return {self._min_key: self._pending.min, self._max_key: self._pending.max}


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))
