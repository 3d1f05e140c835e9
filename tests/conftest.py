import json
import logging
from pathlib import Path

import pytest

from utilitrack.geometry import GeoPoint
from helpers import gpx_document, north_south_line, offset, seconds

MAIN_CENTER = GeoPoint(40.0, -86.0)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Drop handlers the CLI attaches to the root logger."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def approach_gpx(tmp_path: Path) -> Path:
    """Walk east at 2 m/s from 30 m west of the gas main, then stand on it."""
    points = [offset(MAIN_CENTER, east_m=-30.0 + 2.0 * i) for i in range(16)]
    points += [MAIN_CENTER] * 12
    path = tmp_path / "approach.gpx"
    path.write_text(
        gpx_document(points, seconds(len(points)), [1.0] * len(points)),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def lines_geojson(tmp_path: Path) -> Path:
    features = []
    for utility_id, kind, east_m, name in [
        ("g1", "gas", 0.0, "Oak Ave"),
        ("w1", "water", 200.0, "Pine St"),
    ]:
        vertices = north_south_line(MAIN_CENTER, east_m)
        features.append(
            {
                "type": "Feature",
                "properties": {
                    "id": utility_id,
                    "kind": kind,
                    "lineClass": "main",
                    "name": name,
                },
                "geometry": {
                    "type": "LineString",
                    "coordinates": [[v.longitude, v.latitude] for v in vertices],
                },
            }
        )
    path = tmp_path / "lines.geojson"
    path.write_text(
        json.dumps({"type": "FeatureCollection", "features": features}),
        encoding="utf-8",
    )
    return path
