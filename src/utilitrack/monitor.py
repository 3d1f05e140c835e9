#!/usr/bin/env python3
"""
Host-side facade that wires sensors, filters and the proximity engine.
"""

from typing import Callable, Iterable, List, Optional
import logging
import time

from .config import UtilitrackConfig
from .connection import Connection, ConnectionFinder
from .geometry import GeoPoint
from .heading_filter import HeadingFilter
from .position_filter import FilteredPose, PositionFilter, RawSample
from .proximity import ProximityAlert, ProximityEngine, TickResult
from .utility import UtilityKind, UtilityLine

logger = logging.getLogger(__name__)


def system_clock_ms() -> int:
    return int(time.time() * 1000)


class ExcavationMonitor:
    """
    Owns one filter pair and one proximity engine for an excavation session.

    Sensor deliveries, timer ticks and operator intents are fed in one at a
    time by the host event loop. The reference point is the operator's
    excavation site when set, otherwise the filtered device position.
    """

    def __init__(
        self,
        lines_provider: Callable[[], Iterable[UtilityLine]],
        config: Optional[UtilitrackConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """Initializes an ExcavationMonitor.

        Args:
            lines_provider: Returns the current snapshot of utility lines.
            config: Filter and engine settings; defaults if None.
            clock: Returns epoch milliseconds, used only when a caller does
                not pass ``now_ms`` explicitly.
        """
        self.config = config or UtilitrackConfig()
        self.lines_provider = lines_provider
        self.clock = clock or system_clock_ms

        self.position_filter = PositionFilter(
            capacity=self.config.position_capacity,
            accuracy_threshold=self.config.accuracy_threshold_m,
            max_speed_mps=self.config.max_speed_mps,
            min_samples_for_speed_check=self.config.min_samples_for_speed_check,
        )
        self.heading_filter = HeadingFilter(capacity=self.config.heading_capacity)
        self.engine = ProximityEngine(
            thresholds=self.config.severity_thresholds(),
            default_cooldown_ms=self.config.dismiss_cooldown_ms,
        )
        self.connection_finder = ConnectionFinder(lines_provider)
        self.excavation_site: Optional[GeoPoint] = None

    def add_sample(self, raw: RawSample) -> Optional[FilteredPose]:
        pose = self.position_filter.add_sample(raw)
        if raw.heading_degrees is not None:
            self.heading_filter.add_heading(raw.heading_degrees)
        return pose

    def add_heading(self, heading: float) -> float:
        return self.heading_filter.add_heading(heading)

    def filtered_pose(self) -> Optional[FilteredPose]:
        return self.position_filter.get_filtered_pose()

    def filtered_heading(self) -> float:
        return self.heading_filter.get_filtered_heading()

    def set_excavation_site(self, point: GeoPoint) -> None:
        self.excavation_site = GeoPoint(point[0], point[1])
        logger.info(
            f"Excavation site set at {self.excavation_site.latitude:.6f}, "
            f"{self.excavation_site.longitude:.6f}"
        )

    def clear_excavation_site(self) -> None:
        self.excavation_site = None

    def reference_point(self) -> Optional[GeoPoint]:
        if self.excavation_site is not None:
            return self.excavation_site
        pose = self.filtered_pose()
        return pose.position if pose is not None else None

    def tick(self, now_ms: Optional[int] = None) -> TickResult:
        if now_ms is None:
            now_ms = self.clock()
        return self.engine.tick(self.reference_point(), now_ms, self.lines_provider())

    def dismiss_alert(
        self, utility_id: str, now_ms: Optional[int] = None
    ) -> Optional[ProximityAlert]:
        if now_ms is None:
            now_ms = self.clock()
        return self.engine.dismiss(utility_id, now_ms)

    def active_alerts(self) -> List[ProximityAlert]:
        return self.engine.alerts

    def find_nearby_main(
        self,
        point: GeoPoint,
        kind: UtilityKind,
        max_distance_meters: Optional[float] = None,
    ) -> Optional[Connection]:
        if max_distance_meters is None:
            max_distance_meters = self.config.connection_max_distance_m
        return self.connection_finder.find_nearby_main(point, kind, max_distance_meters)

    def reset(self) -> None:
        """Start over, e.g. when entering or leaving excavation mode."""
        self.position_filter.reset()
        self.heading_filter.reset()
        self.engine.reset()
        self.excavation_site = None
        logger.debug("Excavation monitor reset")
