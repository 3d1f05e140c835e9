import math

from hypothesis import given, settings, strategies as st

from utilitrack.geometry import (
    GeoPoint,
    closest_point_on_segment,
    distance_meters,
    min_distance_to_polyline,
)
from utilitrack.heading_filter import HeadingFilter
from utilitrack.position_filter import PositionFilter, RawSample
from utilitrack.proximity import Severity, classify_severity
from helpers import offset

# Positions well short of antipodal, where haversine stays well conditioned
regional_position = st.builds(
    GeoPoint, latitude=st.floats(-60.0, 60.0), longitude=st.floats(-60.0, 60.0)
)

# Offsets in meters that keep geometry local
local_offset = st.floats(-200.0, 200.0)


class TestDistanceProperties:
    @given(regional_position, regional_position, regional_position)
    def test_triangle_inequality(self, a, b, c):
        """Going through a third point is never shorter."""
        assert distance_meters(a, c) <= distance_meters(a, b) + distance_meters(b, c) + 1e-6

    @settings(deadline=None)
    @given(st.lists(st.tuples(local_offset, local_offset), min_size=2, max_size=6))
    def test_polyline_never_farther_than_a_vertex(self, offsets):
        """The nearest point on a line is at least as close as its nearest vertex."""
        point = GeoPoint(40.0, -86.0)
        vertices = [offset(point, north_m=n, east_m=e) for n, e in offsets]

        result = min_distance_to_polyline(point, vertices)

        nearest_vertex = min(distance_meters(point, v) for v in vertices)
        assert result.distance_meters <= nearest_vertex + 0.05
        assert 0 <= result.segment_index < len(vertices) - 1

    @settings(deadline=None)
    @given(local_offset, local_offset)
    def test_point_on_vertex_is_zero(self, north, east):
        """A reference point on a vertex is within a millimeter of the line."""
        point = GeoPoint(40.0, -86.0)
        vertices = [offset(point, north_m=north, east_m=east), point]

        assert min_distance_to_polyline(point, vertices).distance_meters < 2e-3


class TestSegmentProperties:
    @settings(deadline=None)
    @given(local_offset, local_offset, local_offset, local_offset)
    def test_t_is_clamped(self, north_a, east_a, north_b, east_b):
        """The segment parameter always lies in [0, 1]."""
        point = GeoPoint(40.0, -86.0)
        seg_start = offset(point, north_m=north_a, east_m=east_a)
        seg_end = offset(point, north_m=north_b, east_m=east_b)

        result = closest_point_on_segment(point, seg_start, seg_end)

        assert 0.0 <= result.t <= 1.0

    @settings(deadline=None)
    @given(local_offset, local_offset, local_offset, local_offset)
    def test_never_farther_than_endpoints(self, north_a, east_a, north_b, east_b):
        """The closest point is at least as close as either endpoint."""
        point = GeoPoint(40.0, -86.0)
        seg_start = offset(point, north_m=north_a, east_m=east_a)
        seg_end = offset(point, north_m=north_b, east_m=east_b)

        result = closest_point_on_segment(point, seg_start, seg_end)

        nearest_end = min(
            distance_meters(point, seg_start), distance_meters(point, seg_end)
        )
        assert result.distance_meters <= nearest_end + 0.05

    @settings(deadline=None)
    @given(st.lists(st.tuples(local_offset, local_offset), min_size=2, max_size=6))
    def test_polyline_distance_is_pure(self, offsets):
        """Identical inputs give identical outputs."""
        point = GeoPoint(40.0, -86.0)
        vertices = [offset(point, north_m=n, east_m=e) for n, e in offsets]

        assert min_distance_to_polyline(point, vertices) == min_distance_to_polyline(
            point, vertices
        )


class TestFilterProperties:
    @given(
        st.lists(
            st.tuples(
                st.floats(0.0, 0.0001),  # ~11 m of latitude
                st.floats(0.0, 0.0001),  # ~8.5 m of longitude
                st.floats(1.0, 15.0),
            ),
            min_size=1,
            max_size=20,
        )
    )
    def test_filtered_pose_within_bounding_box(self, fixes):
        """With every sample accepted, the pose stays inside the window's bbox."""
        position_filter = PositionFilter()
        for i, (dlat, dlon, accuracy) in enumerate(fixes):
            position_filter.add_sample(
                RawSample(40.0 + dlat, -86.0 + dlon, accuracy, i * 1000)
            )

        pose = position_filter.get_filtered_pose()
        samples = position_filter.samples
        assert len(samples) == min(len(fixes), 8)

        lats = [s.latitude for s in samples]
        lons = [s.longitude for s in samples]
        assert min(lats) - 1e-9 <= pose.latitude <= max(lats) + 1e-9
        assert min(lons) - 1e-9 <= pose.longitude <= max(lons) + 1e-9

    @given(st.lists(st.floats(-720.0, 720.0), min_size=1, max_size=25))
    def test_heading_in_range(self, headings):
        """Filtered heading is always in [0, 360)."""
        heading_filter = HeadingFilter()
        for heading in headings:
            heading_filter.add_heading(heading)
        assert 0.0 <= heading_filter.get_filtered_heading() < 360.0

    @given(st.floats(0.0, 360.0), st.floats(0.0, 10.0))
    def test_symmetric_pair_averages_to_center(self, center, spread):
        """Two headings an equal angle either side of a center average to it."""
        heading_filter = HeadingFilter()
        heading_filter.add_heading(center - spread)
        heading_filter.add_heading(center + spread)

        diff = abs(heading_filter.get_filtered_heading() - center % 360.0)
        assert min(diff, 360.0 - diff) < 1e-6


class TestSeverityProperties:
    @given(st.floats(0.0, 200.0), st.floats(0.0, 200.0))
    def test_closer_is_never_less_severe(self, d1, d2):
        """Severity never decreases as distance shrinks."""
        near, far = sorted((d1, d2))
        near_severity = classify_severity(near)
        far_severity = classify_severity(far)

        def rank(severity):
            return 0 if severity is None else severity.rank

        assert rank(near_severity) >= rank(far_severity)

    @given(st.floats(50.0, 1e6, exclude_min=True))
    def test_beyond_warning_band_has_no_severity(self, distance):
        assert classify_severity(distance) is None

    def test_infinite_distance_has_no_severity(self):
        assert classify_severity(math.inf) is None
        assert classify_severity(0.0) is Severity.CRITICAL
