#!/usr/bin/env python3
"""
Smoothing of noisy GPS fixes into a stable filtered position.
"""

from typing import Deque, NamedTuple, Optional, Tuple
from collections import deque
import logging
import math

from .geometry import GeoPoint, distance_meters

logger = logging.getLogger(__name__)


class RawSample(NamedTuple):
    """One location delivery from the device sensor."""

    latitude: float
    longitude: float
    accuracy_meters: float
    timestamp_ms: int
    heading_degrees: Optional[float] = None
    speed_mps: Optional[float] = None

    @property
    def position(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


class FilteredPose(NamedTuple):
    """Smoothed device location derived from the sample window."""

    latitude: float
    longitude: float
    accuracy_meters: float
    timestamp_ms: int

    @property
    def position(self) -> GeoPoint:
        return GeoPoint(self.latitude, self.longitude)


class PositionFilter:
    """
    Weighted moving average over a bounded window of accepted GPS fixes.

    Samples are rejected when their reported accuracy is worse than the
    accuracy threshold, or when they imply an implausible speed relative to
    the last accepted sample once the window holds enough history. Rejection
    is silent: the filtered pose is simply left unchanged.
    """

    def __init__(
        self,
        capacity: int = 8,
        accuracy_threshold: float = 15.0,
        max_speed_mps: float = 30.0,
        min_samples_for_speed_check: int = 3,
    ):
        """Initializes a PositionFilter.

        Args:
            capacity: Maximum number of accepted samples kept in the window.
            accuracy_threshold: Samples with a larger accuracy radius (meters)
                are rejected.
            max_speed_mps: Implied speed above which a sample is an outlier.
            min_samples_for_speed_check: Window size required before the
                speed gate is applied.

        Raises:
            ValueError: If capacity is less than 1.
        """
        if capacity < 1:
            raise ValueError(f"Capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self.accuracy_threshold = accuracy_threshold
        self.max_speed_mps = max_speed_mps
        self.min_samples_for_speed_check = min_samples_for_speed_check
        self._samples: Deque[RawSample] = deque(maxlen=capacity)
        self._pose: Optional[FilteredPose] = None
        self.accepted_count = 0
        self.rejected_count = 0

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def samples(self) -> Tuple[RawSample, ...]:
        """Accepted samples, oldest first."""
        return tuple(self._samples)

    def add_sample(self, raw: RawSample) -> Optional[FilteredPose]:
        """
        Offer a raw sample to the filter.

        Args:
            raw: The sensor delivery

        Returns:
            The filtered pose after this sample, unchanged if it was rejected
        """
        reason = self._rejection_reason(raw)
        if reason is not None:
            self.rejected_count += 1
            logger.debug(f"Rejected sample at {raw.timestamp_ms}: {reason}")
            return self._pose

        # deque(maxlen) evicts the oldest sample
        self._samples.append(raw)
        self.accepted_count += 1
        self._pose = self._compute_pose()
        return self._pose

    def _rejection_reason(self, raw: RawSample) -> Optional[str]:
        if not (
            math.isfinite(raw.latitude)
            and math.isfinite(raw.longitude)
            and math.isfinite(raw.accuracy_meters)
        ):
            return "non-finite coordinates or accuracy"

        if self._samples and len(self._samples) >= self.min_samples_for_speed_check:
            speed = self._implied_speed(self._samples[-1], raw)
            if speed > self.max_speed_mps:
                return f"implied speed {speed:.1f} m/s exceeds {self.max_speed_mps} m/s"

        if raw.accuracy_meters > self.accuracy_threshold:
            return (
                f"accuracy {raw.accuracy_meters:.1f} m worse than "
                f"{self.accuracy_threshold} m"
            )

        return None

    @staticmethod
    def _implied_speed(previous: RawSample, current: RawSample) -> float:
        distance = distance_meters(previous.position, current.position)
        elapsed_s = (current.timestamp_ms - previous.timestamp_ms) / 1000.0
        if elapsed_s <= 0:
            return math.inf if distance > 0 else 0.0
        return distance / elapsed_s

    def get_filtered_pose(self) -> Optional[FilteredPose]:
        """Return the current filtered pose, or None before the first fix."""
        return self._pose

    def _compute_pose(self) -> Optional[FilteredPose]:
        count = len(self._samples)
        if count == 0:
            return None

        total_weight = 0.0
        weighted_lat = 0.0
        weighted_lon = 0.0

        for index, sample in enumerate(self._samples):
            # Recency weight: 0.5 for the oldest, approaching 1.5 for the newest
            recency_weight = 0.5 + index / count
            # Quadratic preference for accurate fixes, ~0 beyond 25 m
            accuracy_factor = max(1.0, 25.0 - sample.accuracy_meters) / 25.0
            weight = recency_weight * accuracy_factor**2

            weighted_lat += sample.latitude * weight
            weighted_lon += sample.longitude * weight
            total_weight += weight

        return FilteredPose(
            latitude=weighted_lat / total_weight,
            longitude=weighted_lon / total_weight,
            accuracy_meters=self._filtered_accuracy(),
            timestamp_ms=self._samples[-1].timestamp_ms,
        )

    def _filtered_accuracy(self) -> float:
        """Mean accuracy of the best half of the window."""
        accuracies = sorted(sample.accuracy_meters for sample in self._samples)
        best_half = accuracies[: math.ceil(len(accuracies) / 2)]
        return sum(best_half) / len(best_half)

    def reset(self) -> None:
        """Forget all samples, e.g. on a mode transition."""
        self._samples.clear()
        self._pose = None
