#!/usr/bin/env python3
"""Data structures for recorded underground utility lines."""

from typing import Any, Dict, Iterable, List, Optional, Sequence
from enum import Enum
import logging
import math

from .geometry import GeoPoint

logger = logging.getLogger(__name__)


class UtilityKind(Enum):
    """Enumeration for utility kinds."""

    WATER = "water"
    GAS = "gas"
    ELECTRIC = "electric"
    SEWER = "sewer"
    TELECOM = "telecom"

    def __str__(self) -> str:
        return self.value.capitalize()


class LineClass(Enum):
    """Enumeration for utility line classes."""

    MAIN = "main"
    SERVICE = "service"

    def __str__(self) -> str:
        return self.value


class UtilityLine:
    """A single recorded pipe or cable, stored as an ordered vertex polyline."""

    def __init__(
        self,
        utility_id: str,
        kind: UtilityKind,
        line_class: LineClass,
        vertices: Sequence[GeoPoint],
        metadata: Optional[Dict[str, Any]] = None,
    ):
        """Initializes a UtilityLine object.

        Lines with fewer than two vertices are accepted here so that the
        proximity engine can report them as malformed instead of the loader
        failing on a single bad record.

        Args:
            utility_id: Identifier assigned by the persistence layer.
            kind: Utility kind, or its string value (e.g. "gas").
            line_class: MAIN or SERVICE, or its string value.
            vertices: Ordered polyline vertices.
            metadata: Opaque attributes carried through untouched.

        Raises:
            ValueError: If kind or line_class is not a known value.
        """
        self.utility_id = str(utility_id)
        self.kind = UtilityKind(kind)
        self.line_class = LineClass(line_class)
        self.vertices = tuple(GeoPoint(v[0], v[1]) for v in vertices)
        self.metadata = dict(metadata) if metadata else {}

    def __repr__(self) -> str:
        return (
            f"UtilityLine({self.utility_id!r}, {self.kind.value}, "
            f"{self.line_class.value}, {len(self.vertices)} vertices)"
        )

    def is_main(self) -> bool:
        return self.line_class == LineClass.MAIN

    def is_measurable(self) -> bool:
        """
        Check whether this line can take part in distance computation.

        Returns:
            True if the line has at least two vertices and all coordinates are
            finite, False otherwise.
        """
        if len(self.vertices) < 2:
            return False
        return all(
            math.isfinite(v.latitude) and math.isfinite(v.longitude)
            for v in self.vertices
        )

    def get_short_description(self) -> str:
        """Get a short, human-readable description for logging."""
        name = self.metadata.get("name")
        label = name if name else f"<{self.utility_id}>"
        return f"{self.kind} {self.line_class.value}: {label}"

    @classmethod
    def from_geojson_feature(cls, feature: Dict[str, Any]) -> "UtilityLine":
        """
        Parse a single GeoJSON LineString feature into a UtilityLine.

        The feature's ``id`` property (or top-level ``id``) becomes the
        utility id; ``kind`` and ``lineClass`` select the enums. All other
        properties are kept as metadata.

        Args:
            feature: GeoJSON Feature dictionary

        Returns:
            UtilityLine object

        Raises:
            ValueError: If the feature is not an object, not a LineString, or
                lacks an id or kind.
        """
        if not isinstance(feature, dict):
            raise ValueError("Feature is not an object")
        geometry = feature.get("geometry")
        if not isinstance(geometry, dict):
            geometry = {}
        if geometry.get("type") != "LineString":
            raise ValueError(
                f"Expected LineString geometry, got {geometry.get('type')!r}"
            )

        properties = dict(feature.get("properties") or {})
        utility_id = properties.pop("id", None)
        if utility_id is None:
            utility_id = feature.get("id")
        if utility_id is None:
            raise ValueError("Feature has no id")
        kind = properties.pop("kind", None)
        if kind is None:
            raise ValueError(f"Feature {utility_id} has no kind")
        line_class = properties.pop("lineClass", LineClass.SERVICE.value)

        # GeoJSON positions are [longitude, latitude, ...]
        vertices = [
            GeoPoint(latitude=float(position[1]), longitude=float(position[0]))
            for position in geometry.get("coordinates", [])
        ]

        return cls(
            utility_id=utility_id,
            kind=kind,
            line_class=line_class,
            vertices=vertices,
            metadata=properties,
        )


def load_utility_lines(document: Dict[str, Any]) -> List[UtilityLine]:
    """
    Build utility lines from a GeoJSON FeatureCollection.

    Features that cannot be parsed are logged and skipped.

    Args:
        document: Parsed GeoJSON document

    Returns:
        List of UtilityLine objects in document order

    Raises:
        ValueError: If the document is not a FeatureCollection
    """
    doc_type = document.get("type") if isinstance(document, dict) else None
    if doc_type != "FeatureCollection":
        raise ValueError(f"Expected a GeoJSON FeatureCollection, got {doc_type!r}")

    features = document.get("features") or []
    if not isinstance(features, list):
        raise ValueError(f"Expected a list of features, got {type(features).__name__}")

    lines = []
    for index, feature in enumerate(features):
        try:
            lines.append(UtilityLine.from_geojson_feature(feature))
        except (ValueError, TypeError, IndexError, KeyError) as e:
            logger.warning(f"Skipping feature {index}: {e}")

    logger.debug(f"Loaded {len(lines)} utility lines")
    return lines


def index_by_id(lines: Iterable[UtilityLine]) -> Dict[str, UtilityLine]:
    return {line.utility_id: line for line in lines}
