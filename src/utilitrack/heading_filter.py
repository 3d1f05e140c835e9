"""
Circular smoothing of compass headings.
"""

from typing import Deque
from collections import deque
import logging
import math

logger = logging.getLogger(__name__)


class HeadingFilter:
    """Averages a bounded window of headings as unit vectors."""

    def __init__(self, capacity: int = 10):
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._headings: Deque[float] = deque(maxlen=capacity)
        self._heading = 0.0

    def __len__(self) -> int:
        return len(self._headings)

    def add_heading(self, heading: float) -> float:
        """
        Offer a heading in degrees to the filter.

        Args:
            heading: Compass heading in degrees; any real value is accepted
                and interpreted modulo 360

        Returns:
            The filtered heading, unchanged if the value was not finite
        """
        if heading is None or not math.isfinite(heading):
            logger.debug(f"Ignoring heading {heading!r}")
            return self._heading

        self._headings.append(float(heading))
        self._heading = self._compute_heading()
        return self._heading

    def get_filtered_heading(self) -> float:
        """Return the filtered heading in [0, 360), or 0 when empty."""
        return self._heading

    def _compute_heading(self) -> float:
        if not self._headings:
            return 0.0

        # Sum unit vectors so that 359 and 1 average to 0, not 180
        sum_sin = 0.0
        sum_cos = 0.0
        for heading in self._headings:
            rad = math.radians(heading)
            sum_sin += math.sin(rad)
            sum_cos += math.cos(rad)

        average = math.degrees(math.atan2(sum_sin, sum_cos)) % 360.0
        # A tiny negative angle can round up to exactly 360
        return 0.0 if average >= 360.0 else average

    def reset(self) -> None:
        self._headings.clear()
        self._heading = 0.0
