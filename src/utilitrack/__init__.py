#!/usr/bin/env python3
"""
Utilitrack - proximity safety for excavation near underground utilities.

This package smooths live GPS and compass input, measures the distance from a
dig site to recorded pipe and cable geometry, and maintains the set of
proximity alerts shown to the excavation crew.
"""
import importlib.metadata

__version__ = importlib.metadata.version("utilitrack")

# Import main classes for public API
from .geometry import GeoPoint
from .utility import LineClass, UtilityKind, UtilityLine
from .position_filter import FilteredPose, PositionFilter, RawSample
from .heading_filter import HeadingFilter
from .proximity import (
    HighlightDirective,
    ProximityAlert,
    ProximityEngine,
    Severity,
    TickResult,
    TickStatus,
)
from .connection import Connection, ConnectionFinder
from .monitor import ExcavationMonitor

__all__ = [
    "GeoPoint",
    "LineClass",
    "UtilityKind",
    "UtilityLine",
    "FilteredPose",
    "PositionFilter",
    "RawSample",
    "HeadingFilter",
    "HighlightDirective",
    "ProximityAlert",
    "ProximityEngine",
    "Severity",
    "TickResult",
    "TickStatus",
    "Connection",
    "ConnectionFinder",
    "ExcavationMonitor",
]
