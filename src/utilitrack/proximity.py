#!/usr/bin/env python3
"""
Proximity alerts between a dig reference point and recorded utility lines.

The engine keeps no clock of its own. A host timer calls ``tick`` every few
seconds with the current time, the reference point and a snapshot of the
utility lines. Each tick reclassifies every line, updates the live alert set
in place and reports which lines changed severity.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional, Set
import logging

from .geometry import (
    GeoPoint,
    LocalProjection,
    meters_to_feet,
    min_distance_to_polyline,
)
from .utility import UtilityLine

logger = logging.getLogger(__name__)

DEFAULT_DISMISS_COOLDOWN_MS = 300_000


class Severity(Enum):
    """Severity tiers, ordered by increasing proximity risk."""

    WARNING = "warning"
    CAUTION = "caution"
    DANGER = "danger"
    CRITICAL = "critical"

    def __str__(self) -> str:
        return self.value

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.WARNING: 1,
    Severity.CAUTION: 2,
    Severity.DANGER: 3,
    Severity.CRITICAL: 4,
}


class SeverityThresholds(NamedTuple):
    """Inclusive upper bounds of each severity band, in feet."""

    critical: float = 5.0
    danger: float = 10.0
    caution: float = 25.0
    warning: float = 50.0


def classify_severity(
    distance_feet: float, thresholds: SeverityThresholds = SeverityThresholds()
) -> Optional[Severity]:
    """
    Map a distance to its severity band.

    Args:
        distance_feet: Distance from the reference point to the line
        thresholds: Band limits

    Returns:
        The severity, or None when the line is beyond the warning band
    """
    if not distance_feet <= thresholds.warning:
        return None
    if distance_feet <= thresholds.critical:
        return Severity.CRITICAL
    if distance_feet <= thresholds.danger:
        return Severity.DANGER
    if distance_feet <= thresholds.caution:
        return Severity.CAUTION
    return Severity.WARNING


@dataclass
class ProximityAlert:
    """A live alert for one utility line. Updated in place while it lives."""

    utility_id: str
    severity: Severity
    distance_feet: float
    first_seen_ms: int
    last_seen_ms: int
    dismissed_until_ms: Optional[int] = None


class HighlightDirective(NamedTuple):
    """Severity change for one line; None means clear any highlight."""

    utility_id: str
    severity: Optional[Severity]


class TickStatus(Enum):
    OK = "ok"
    NO_FIX = "no_fix"

    def __str__(self) -> str:
        return self.value


class TickResult(NamedTuple):
    """Output of one engine tick for the presentation layer."""

    status: TickStatus
    alerts: List[ProximityAlert]  # Nearest first
    highlights: List[HighlightDirective]
    skipped_line_ids: List[str]

    def nearest(self, count: int) -> List[ProximityAlert]:
        return self.alerts[:count]


class ProximityEngine:
    """Maintains the live alert set across ticks."""

    def __init__(
        self,
        thresholds: SeverityThresholds = SeverityThresholds(),
        default_cooldown_ms: int = DEFAULT_DISMISS_COOLDOWN_MS,
    ):
        """Initializes a ProximityEngine.

        Args:
            thresholds: Severity band limits in feet.
            default_cooldown_ms: Suppression time applied by ``dismiss`` when
                no explicit cool-down is given.
        """
        self.thresholds = thresholds
        self.default_cooldown_ms = default_cooldown_ms
        self._alerts: Dict[str, ProximityAlert] = {}
        self._dismissed_until: Dict[str, int] = {}
        # Severity last reported per line, used to diff highlights
        self._severities: Dict[str, Severity] = {}

    @property
    def alerts(self) -> List[ProximityAlert]:
        """Live alerts, nearest first."""
        return sorted(
            self._alerts.values(), key=lambda a: (a.distance_feet, a.utility_id)
        )

    def alert_for(self, utility_id: str) -> Optional[ProximityAlert]:
        return self._alerts.get(utility_id)

    def is_dismissed(self, utility_id: str, now_ms: int) -> bool:
        until = self._dismissed_until.get(utility_id)
        return until is not None and now_ms < until

    def tick(
        self,
        reference: Optional[GeoPoint],
        now_ms: int,
        lines: Iterable[UtilityLine],
    ) -> TickResult:
        """
        Recompute every line's severity and update the live alert set.

        Args:
            reference: Excavation site or filtered device position; None when
                there is no GPS fix yet
            now_ms: Current time in epoch milliseconds
            lines: Snapshot of utility lines, read but never modified

        Returns:
            TickResult with the ordered alerts and highlight changes
        """
        if reference is None or not reference.is_finite():
            logger.debug("No position fix; skipping proximity tick")
            return TickResult(TickStatus.NO_FIX, [], [], [])

        self._purge_expired_dismissals(now_ms)

        # One frame centred on the reference point serves every line
        projection = LocalProjection(reference)
        current: Dict[str, Optional[Severity]] = {}
        skipped: List[str] = []

        for line in lines:
            utility_id = line.utility_id
            if not line.is_measurable():
                logger.warning(
                    f"Skipping malformed utility line {utility_id}: "
                    f"{len(line.vertices)} vertices or non-finite coordinates"
                )
                skipped.append(utility_id)
                continue

            result = min_distance_to_polyline(reference, line.vertices, projection)
            distance_feet = meters_to_feet(result.distance_meters)
            severity = classify_severity(distance_feet, self.thresholds)

            if severity is not None and self.is_dismissed(utility_id, now_ms):
                severity = None

            current[utility_id] = severity
            if severity is None:
                self._alerts.pop(utility_id, None)
            else:
                self._upsert(utility_id, severity, distance_feet, now_ms)

        highlights = self._diff_highlights(current, set(skipped))

        logger.debug(
            f"Tick at {now_ms}: {len(self._alerts)} alerts, "
            f"{len(highlights)} highlight changes, {len(skipped)} skipped lines"
        )
        return TickResult(TickStatus.OK, self.alerts, highlights, skipped)

    def _upsert(
        self, utility_id: str, severity: Severity, distance_feet: float, now_ms: int
    ) -> None:
        alert = self._alerts.get(utility_id)
        if alert is None:
            self._alerts[utility_id] = ProximityAlert(
                utility_id=utility_id,
                severity=severity,
                distance_feet=distance_feet,
                first_seen_ms=now_ms,
                last_seen_ms=now_ms,
            )
            logger.info(
                f"New {severity} alert for {utility_id} at {distance_feet:.1f} ft"
            )
            return

        if alert.severity != severity:
            logger.debug(
                f"Alert for {utility_id} changed {alert.severity} -> {severity}"
            )
        alert.severity = severity
        alert.distance_feet = distance_feet
        alert.last_seen_ms = now_ms

    def _diff_highlights(
        self, current: Dict[str, Optional[Severity]], skipped: Set[str]
    ) -> List[HighlightDirective]:
        highlights = []

        for utility_id, severity in current.items():
            if self._severities.get(utility_id) != severity:
                highlights.append(HighlightDirective(utility_id, severity))
            if severity is None:
                self._severities.pop(utility_id, None)
            else:
                self._severities[utility_id] = severity

        # Lines gone from the snapshot lose their highlight and alert.
        # Skipped lines keep whatever state they had.
        for utility_id in list(self._severities):
            if utility_id not in current and utility_id not in skipped:
                del self._severities[utility_id]
                self._alerts.pop(utility_id, None)
                highlights.append(HighlightDirective(utility_id, None))

        return highlights

    def _purge_expired_dismissals(self, now_ms: int) -> None:
        expired = [
            utility_id
            for utility_id, until in self._dismissed_until.items()
            if now_ms >= until
        ]
        for utility_id in expired:
            del self._dismissed_until[utility_id]
            logger.debug(f"Dismissal of {utility_id} expired; alert re-armed")

    def dismiss(
        self, utility_id: str, now_ms: int, cooldown_ms: Optional[int] = None
    ) -> Optional[ProximityAlert]:
        """
        Suppress alerts for a line until the cool-down elapses.

        The live alert, if any, is removed immediately. Once ``now`` reaches
        the end of the cool-down the next tick re-creates the alert if the
        line is still in range.

        Args:
            utility_id: Line to suppress
            now_ms: Current time in epoch milliseconds
            cooldown_ms: Suppression time; the engine default if None

        Returns:
            The removed alert with dismissed_until_ms set, or None if no
            alert was live
        """
        if cooldown_ms is None:
            cooldown_ms = self.default_cooldown_ms
        until = now_ms + cooldown_ms
        self._dismissed_until[utility_id] = until

        alert = self._alerts.pop(utility_id, None)
        if alert is not None:
            alert.dismissed_until_ms = until
        logger.info(f"Dismissed alerts for {utility_id} until {until}")
        return alert

    def reset(self) -> None:
        """Drop all alerts, dismissals and highlight state."""
        self._alerts.clear()
        self._dismissed_until.clear()
        self._severities.clear()


def max_severity(severities: Iterable[Optional[Severity]]) -> Optional[Severity]:
    ranked = [s for s in severities if s is not None]
    if not ranked:
        return None
    return max(ranked, key=lambda s: s.rank)

