#!/usr/bin/env python3
"""
Utility proximity replay tool.
This script replays a recorded GPX track against a GeoJSON file of utility
lines and reports the proximity alerts an excavation crew would have seen.

Requirements:
    pip install gpxpy shapely pyproj

"""

from typing import Dict, List, Optional, Sequence
import argparse
import json
import logging
import sys

from gpxpy import gpx

from . import __version__
from .config import UtilitrackConfig
from .geometry import GeoPoint
from .metrics import MetricsCollector, log_metrics
from .monitor import ExcavationMonitor
from .proximity import ProximityAlert, TickResult, TickStatus
from .replay import read_gpx_file, read_lines_file, replay
from .utility import UtilityLine, index_by_id

# Configure logging
logger = logging.getLogger("utilitrack")


def create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the command-line argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    defaults = UtilitrackConfig()
    parser = argparse.ArgumentParser(
        description="Replay a GPS track against recorded utility lines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "track",
        type=str,
        nargs="?",
        help="GPX file with the recorded track",
    )
    parser.add_argument(
        "lines",
        type=str,
        nargs="?",
        help="GeoJSON FeatureCollection of utility lines",
    )
    parser.add_argument(
        "--site",
        type=parse_site,
        default=None,
        metavar="LAT,LON",
        help="Fixed excavation site (default: follow the filtered track position)",
    )
    parser.add_argument(
        "--tick-interval",
        type=int,
        default=defaults.tick_interval_ms,
        help=f"Proximity check interval in ms of track time (default: {defaults.tick_interval_ms})",
    )
    parser.add_argument(
        "--default-accuracy",
        type=float,
        default=5.0,
        help="Accuracy in meters for track points without HDOP (default: 5.0)",
    )
    parser.add_argument(
        "--uere",
        type=float,
        default=5.0,
        help="User equivalent range error in meters, multiplied by HDOP (default: 5.0)",
    )
    parser.add_argument(
        "--accuracy-threshold",
        type=float,
        default=defaults.accuracy_threshold_m,
        help=f"Reject fixes less accurate than this many meters (default: {defaults.accuracy_threshold_m})",
    )
    parser.add_argument(
        "--dismiss-cooldown",
        type=int,
        default=defaults.dismiss_cooldown_ms,
        help=f"Alert dismissal cool-down in ms (default: {defaults.dismiss_cooldown_ms})",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=defaults.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=f"Set logging level (default: {defaults.log_level})",
    )
    parser.add_argument(
        "--metrics",
        action="store_true",
        help="Output structured metrics after processing",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"utilitrack {__version__}",
    )
    return parser


def parse_site(value: str) -> GeoPoint:
    """Parse a "LAT,LON" argument."""
    try:
        lat_text, lon_text = value.split(",")
        return GeoPoint(float(lat_text), float(lon_text))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected LAT,LON, got {value!r}")


def config_from_args(args: argparse.Namespace) -> UtilitrackConfig:
    return UtilitrackConfig(
        accuracy_threshold_m=args.accuracy_threshold,
        dismiss_cooldown_ms=args.dismiss_cooldown,
        tick_interval_ms=args.tick_interval,
        log_level=args.log_level,
        metrics=args.metrics,
    )


def setup_logging(args: argparse.Namespace) -> None:
    """Setup logging configuration."""
    level = getattr(logging, args.log_level)

    # Create formatter
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    )

    # Create console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Configure the root logger so all modules inherit the configuration
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # Suppress overly verbose third-party logging
    logging.getLogger("gpxpy").setLevel(logging.WARNING)
    logging.getLogger("pyproj").setLevel(logging.WARNING)


def describe_alert(alert: ProximityAlert, lines: Dict[str, UtilityLine]) -> str:
    line = lines.get(alert.utility_id)
    name = line.get_short_description() if line else alert.utility_id
    return f"{alert.severity.value.upper():8} {alert.distance_feet:6.1f} ft  {name}"


def print_alert_changes(
    elapsed_s: float,
    result: TickResult,
    previous: Dict[str, ProximityAlert],
    lines: Dict[str, UtilityLine],
) -> Dict[str, ProximityAlert]:
    """
    Print alerts that appeared or cleared since the previous tick.

    Args:
        elapsed_s: Track time since the first sample
        result: Result of the current tick
        previous: Alerts live after the previous tick, by utility id
        lines: Utility lines by id, for descriptions

    Returns:
        Alerts live after this tick, by utility id
    """
    if result.status == TickStatus.NO_FIX:
        return previous

    current = {alert.utility_id: alert for alert in result.alerts}

    for alert in result.alerts:
        if alert.utility_id not in previous:
            print(f"[{elapsed_s:8.1f}s] + {describe_alert(alert, lines)}")

    for utility_id in previous:
        if utility_id not in current:
            print(f"[{elapsed_s:8.1f}s] - cleared {utility_id}")

    return current


def log_final_alerts(alerts: List[ProximityAlert], lines: Dict[str, UtilityLine]) -> None:
    """Print the live alert set at the end of the replay, nearest first."""
    if not alerts:
        print("No live alerts at end of track")
        return

    print(f"Live alerts at end of track ({len(alerts)}):")
    for alert in alerts:
        print(f"  {describe_alert(alert, lines)}")


def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Parses command-line arguments, loads the track and utility lines,
    and replays the track through an excavation monitor.
    """
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.track or not args.lines:
        parser.print_help()
        sys.exit(1)

    # Setup logging
    setup_logging(args)

    try:
        samples = read_gpx_file(args.track, args.default_accuracy, args.uere)
    except FileNotFoundError:
        logger.error(f"GPX file not found: {args.track}")
        sys.exit(1)
    except PermissionError:
        logger.error(f"Cannot read GPX file (permission denied): {args.track}")
        sys.exit(1)
    except gpx.GPXException as e:
        logger.error(f"Invalid GPX file: {e}")
        sys.exit(1)
    logger.info(f"Loaded GPX track with {len(samples)} points")

    try:
        utility_lines = read_lines_file(args.lines)
    except FileNotFoundError:
        logger.error(f"Utility lines file not found: {args.lines}")
        sys.exit(1)
    except PermissionError:
        logger.error(f"Cannot read utility lines (permission denied): {args.lines}")
        sys.exit(1)
    except (json.JSONDecodeError, ValueError) as e:
        logger.error(f"Invalid utility lines file: {e}")
        sys.exit(1)
    logger.info(f"Loaded {len(utility_lines)} utility lines")

    if not samples:
        logger.error("GPX track has no points")
        sys.exit(1)

    config = config_from_args(args)
    monitor = ExcavationMonitor(lambda: utility_lines, config)
    if args.site is not None:
        monitor.set_excavation_site(args.site)

    lines_by_id = index_by_id(utility_lines)
    collector = MetricsCollector()
    start_ms = samples[0].timestamp_ms
    live: Dict[str, ProximityAlert] = {}

    for now_ms, result in replay(samples, monitor, config.tick_interval_ms):
        collector.record(result)
        live = print_alert_changes(
            (now_ms - start_ms) / 1000.0, result, live, lines_by_id
        )

    log_final_alerts(monitor.active_alerts(), lines_by_id)

    metrics = collector.finish(monitor.position_filter)
    logger.info(
        f"Replayed {metrics.tick_count} ticks, "
        f"{metrics.samples_rejected} samples rejected"
    )
    log_metrics(metrics, args)


if __name__ == "__main__":
    main()
