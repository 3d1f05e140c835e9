import io

import gpxpy.gpx
import pytest

from utilitrack.geometry import GeoPoint
from utilitrack.monitor import ExcavationMonitor
from utilitrack.position_filter import RawSample
from utilitrack.replay import read_gpx_file, read_lines_file, replay, samples_from_gpx
from helpers import gpx_document, offset, seconds

START = GeoPoint(40.0, -86.0)


def test_samples_from_timed_gpx():
    points = [START, offset(START, east_m=3)]
    gpx_text = gpx_document(points, seconds(2), [1.5, 2.0])

    samples = samples_from_gpx(io.StringIO(gpx_text), uere=4.0)

    assert len(samples) == 2
    assert samples[1].timestamp_ms - samples[0].timestamp_ms == 1000
    assert samples[0].accuracy_meters == pytest.approx(6.0)
    assert samples[1].accuracy_meters == pytest.approx(8.0)
    assert samples[0].latitude == pytest.approx(START.latitude)


def test_untimed_points_are_spaced_one_second_apart():
    points = [START, offset(START, north_m=1), offset(START, north_m=2)]

    samples = samples_from_gpx(io.StringIO(gpx_document(points)), default_accuracy=7.0)

    assert [s.timestamp_ms for s in samples] == [0, 1000, 2000]
    assert all(s.accuracy_meters == 7.0 for s in samples)


def test_heading_from_previous_point():
    points = [START, offset(START, east_m=5), offset(START, east_m=5)]

    samples = samples_from_gpx(io.StringIO(gpx_document(points)))

    assert samples[0].heading_degrees is None
    assert samples[1].heading_degrees == pytest.approx(90.0, abs=0.01)
    # No movement, no bearing
    assert samples[2].heading_degrees is None


def test_malformed_gpx():
    with pytest.raises(gpxpy.gpx.GPXException):
        samples_from_gpx(io.StringIO("<gpx><trk>"))


def test_read_files(approach_gpx, lines_geojson):
    samples = read_gpx_file(str(approach_gpx))
    lines = read_lines_file(str(lines_geojson))

    assert len(samples) == 28
    assert [line.utility_id for line in lines] == ["g1", "w1"]


def test_read_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_gpx_file(str(tmp_path / "missing.gpx"))


def test_replay_ticks_on_sample_time():
    samples = [RawSample(40.0, -86.0, 3.0, i * 1000) for i in range(8)]
    monitor = ExcavationMonitor(lambda: [])

    ticks = [now_ms for now_ms, _ in replay(samples, monitor, 2500)]

    assert ticks == [0, 3000, 6000]
    assert len(monitor.position_filter) == 8
