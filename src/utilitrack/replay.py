#!/usr/bin/env python3
"""
Offline replay of a recorded GPS track against utility lines.
"""

from typing import Iterable, Iterator, List, Optional, TextIO, Tuple
import json
import logging

import gpxpy

from .geometry import GeoPoint, initial_bearing
from .monitor import ExcavationMonitor
from .position_filter import RawSample
from .proximity import TickResult
from .utility import UtilityLine, load_utility_lines

logger = logging.getLogger(__name__)

# Spacing assumed between track points that carry no timestamp
UNTIMED_POINT_INTERVAL_MS = 1000


def samples_from_gpx(
    file_input: TextIO, default_accuracy: float = 5.0, uere: float = 5.0
) -> List[RawSample]:
    """
    Parse GPX data and turn every track point into a raw sensor sample.

    Accuracy is estimated as HDOP times the user equivalent range error when
    HDOP is present. Heading is the recorded course, or the bearing from the
    previous point.

    Args:
        file_input: File-like object containing GPX data
        default_accuracy: Accuracy in meters for points without HDOP
        uere: User equivalent range error in meters

    Returns:
        Samples in file order

    Raises:
        gpxpy.gpx.GPXException: If GPX file is malformed.
    """
    gpx_data = gpxpy.parse(file_input)

    samples: List[RawSample] = []
    previous: Optional[GeoPoint] = None

    for track in gpx_data.tracks:
        for segment in track.segments:
            for point in segment.points:
                position = GeoPoint(point.latitude, point.longitude)

                if point.time is not None:
                    timestamp_ms = int(point.time.timestamp() * 1000)
                elif samples:
                    timestamp_ms = samples[-1].timestamp_ms + UNTIMED_POINT_INTERVAL_MS
                else:
                    timestamp_ms = 0

                if point.horizontal_dilution is not None:
                    accuracy = point.horizontal_dilution * uere
                else:
                    accuracy = default_accuracy

                # course only exists on GPX 1.0 points
                heading = getattr(point, "course", None)
                if heading is None and previous is not None and previous != position:
                    heading = initial_bearing(previous, position)

                samples.append(
                    RawSample(
                        latitude=point.latitude,
                        longitude=point.longitude,
                        accuracy_meters=accuracy,
                        timestamp_ms=timestamp_ms,
                        heading_degrees=heading,
                        speed_mps=point.speed,
                    )
                )
                previous = position

    logger.debug(f"Parsed {len(samples)} track points from GPX file")
    return samples


def read_gpx_file(
    filename: str, default_accuracy: float = 5.0, uere: float = 5.0
) -> List[RawSample]:
    """
    Load a GPX file into raw samples.

    Raises:
        FileNotFoundError: If file doesn't exist.
        PermissionError: If file can't be read.
        gpxpy.gpx.GPXException: If GPX file is malformed.
    """
    logger.debug(f"Reading GPX file: {filename}")
    with open(filename, "r", encoding="utf-8") as f:
        return samples_from_gpx(f, default_accuracy, uere)


def read_lines_file(filename: str) -> List[UtilityLine]:
    """
    Load utility lines from a GeoJSON FeatureCollection file.

    Raises:
        FileNotFoundError: If file doesn't exist.
        json.JSONDecodeError: If the file is not valid JSON.
        ValueError: If the document is not a FeatureCollection.
    """
    logger.debug(f"Reading utility lines: {filename}")
    with open(filename, "r", encoding="utf-8") as f:
        return load_utility_lines(json.load(f))


def replay(
    samples: Iterable[RawSample],
    monitor: ExcavationMonitor,
    tick_interval_ms: int,
) -> Iterator[Tuple[int, TickResult]]:
    """
    Feed samples to the monitor and tick it on sample time.

    A tick runs on the first sample and then whenever sample time has
    advanced by at least ``tick_interval_ms`` since the previous tick.

    Args:
        samples: Raw samples in delivery order
        monitor: Monitor to drive
        tick_interval_ms: Minimum sample-time spacing between ticks

    Yields:
        (now_ms, TickResult) for every tick
    """
    last_tick_ms: Optional[int] = None

    for sample in samples:
        monitor.add_sample(sample)
        now_ms = sample.timestamp_ms
        if last_tick_ms is None or now_ms - last_tick_ms >= tick_interval_ms:
            last_tick_ms = now_ms
            yield now_ms, monitor.tick(now_ms)
