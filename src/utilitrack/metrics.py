"""
Module for collecting and logging metrics from a proximity replay.
"""

import argparse
import collections
import logging
from typing import Dict, NamedTuple, Optional, Set

from .position_filter import PositionFilter
from .proximity import Severity, TickResult, TickStatus, max_severity

logger = logging.getLogger(__name__)


class ReplayMetrics(NamedTuple):
    """Container for replay metrics data."""

    tick_count: int
    no_fix_ticks: int
    alerts_raised: Dict[str, int]  # Keyed by severity at creation
    peak_severities: Dict[str, str]  # Keyed by utility id
    skipped_line_count: int
    samples_accepted: int
    samples_rejected: int


class MetricsCollector:
    """Accumulates tick results as they happen.

    Alerts are updated in place by the engine, so severities are captured at
    the tick that produced them rather than read back at the end.
    """

    def __init__(self) -> None:
        self.tick_count = 0
        self.no_fix_ticks = 0
        self.alerts_raised: Dict[str, int] = collections.defaultdict(int)
        self.peak: Dict[str, Severity] = {}
        self.skipped: Set[str] = set()
        self._live: Set[str] = set()

    def record(self, result: TickResult) -> None:
        self.tick_count += 1
        if result.status == TickStatus.NO_FIX:
            self.no_fix_ticks += 1
            return

        current = set()
        for alert in result.alerts:
            current.add(alert.utility_id)
            if alert.utility_id not in self._live:
                self.alerts_raised[alert.severity.value] += 1
            peak = max_severity([self.peak.get(alert.utility_id), alert.severity])
            if peak is not None:
                self.peak[alert.utility_id] = peak

        self._live = current
        self.skipped.update(result.skipped_line_ids)

    def finish(self, position_filter: Optional[PositionFilter] = None) -> ReplayMetrics:
        return ReplayMetrics(
            tick_count=self.tick_count,
            no_fix_ticks=self.no_fix_ticks,
            alerts_raised=dict(self.alerts_raised),
            peak_severities={k: v.value for k, v in self.peak.items()},
            skipped_line_count=len(self.skipped),
            samples_accepted=position_filter.accepted_count if position_filter else 0,
            samples_rejected=position_filter.rejected_count if position_filter else 0,
        )


def log_metrics(metrics: ReplayMetrics, args: argparse.Namespace) -> None:
    """
    Log detailed metrics after a replay.

    Args:
        metrics: ReplayMetrics collected during the replay
        args: argparse.Namespace object containing settings like metrics flag
    """
    if not args.metrics:
        return

    logger.debug("=== UTILITRACK_METRICS ===")
    logger.debug(f"ticks={metrics.tick_count}")
    logger.debug(f"no_fix_ticks={metrics.no_fix_ticks}")
    logger.debug(f"samples_accepted={metrics.samples_accepted}")
    logger.debug(f"samples_rejected={metrics.samples_rejected}")
    logger.debug(f"skipped_lines={metrics.skipped_line_count}")

    for severity in Severity:
        count = metrics.alerts_raised.get(severity.value, 0)
        logger.debug(f"alerts_raised[{severity.value}]={count}")

    for utility_id, severity in sorted(metrics.peak_severities.items()):
        logger.debug(f"peak_severity[{utility_id}]={severity}")
    logger.debug("=== END_UTILITRACK_METRICS ===")
