"""Tests for the 2-D vector helpers."""

from __future__ import annotations

import math
import unittest

from trace_beautify.geometry import (
    Point,
    angle_between,
    arc_center,
    arc_points,
    cubic_bezier,
    dist,
    is_close,
    lerp,
    line_intersection,
    smootherstep,
)


class TestScalars(unittest.TestCase):

    def test_dist(self):
        self.assertAlmostEqual(dist(Point(0, 0), Point(3, 4)), 5.0)

    def test_lerp_midpoint(self):
        self.assertEqual(lerp(Point(0, 0), Point(10, 20), 0.5), Point(5, 10))

    def test_is_close(self):
        self.assertTrue(is_close(1.0, 1.0005))
        self.assertFalse(is_close(1.0, 1.01))


class TestAngles(unittest.TestCase):

    def test_left_turn_positive(self):
        self.assertAlmostEqual(angle_between(Point(1, 0), Point(0, 1)), 90.0)

    def test_right_turn_negative(self):
        self.assertAlmostEqual(angle_between(Point(1, 0), Point(0, -1)), -90.0)

    def test_reversal_is_180(self):
        self.assertAlmostEqual(angle_between(Point(1, 0), Point(-1, 0)), 180.0)

    def test_wraps_into_range(self):
        """(-170°) → (170°) is a 20° clockwise turn, not 340°."""
        v1 = Point(math.cos(math.radians(-170)), math.sin(math.radians(-170)))
        v2 = Point(math.cos(math.radians(170)), math.sin(math.radians(170)))
        self.assertAlmostEqual(angle_between(v1, v2), -20.0)


class TestCurves(unittest.TestCase):

    def test_smootherstep_endpoints(self):
        self.assertEqual(smootherstep(0.0), 0.0)
        self.assertEqual(smootherstep(1.0), 1.0)
        self.assertAlmostEqual(smootherstep(0.5), 0.5)

    def test_smootherstep_monotonic(self):
        values = [smootherstep(i / 50) for i in range(51)]
        for a, b in zip(values, values[1:]):
            self.assertLess(a, b)

    def test_bezier_endpoints(self):
        p0, p1, p2, p3 = Point(0, 0), Point(1, 2), Point(3, 2), Point(4, 0)
        self.assertEqual(cubic_bezier(p0, p1, p2, p3, 0.0), p0)
        end = cubic_bezier(p0, p1, p2, p3, 1.0)
        self.assertAlmostEqual(end.x, 4.0)
        self.assertAlmostEqual(end.y, 0.0)


class TestIntersections(unittest.TestCase):

    def test_crossing_lines(self):
        p = line_intersection(Point(0, 0), Point(1, 0), Point(5, -1), Point(5, 1))
        self.assertAlmostEqual(p.x, 5.0)
        self.assertAlmostEqual(p.y, 0.0)

    def test_parallel_lines(self):
        self.assertIsNone(line_intersection(Point(0, 0), Point(1, 0), Point(0, 1), Point(1, 1)))


class TestArcs(unittest.TestCase):

    def test_quarter_arc_center(self):
        c = arc_center(Point(0, 0), Point(1, 1), 90.0)
        self.assertAlmostEqual(c.x, 0.0)
        self.assertAlmostEqual(c.y, 1.0)

    def test_clockwise_arc_center(self):
        c = arc_center(Point(0, 0), Point(1, -1), -90.0)
        self.assertAlmostEqual(c.x, 0.0)
        self.assertAlmostEqual(c.y, -1.0)

    def test_degenerate_arc(self):
        self.assertIsNone(arc_center(Point(0, 0), Point(1, 1), 0.0))
        self.assertIsNone(arc_center(Point(2, 2), Point(2, 2), 90.0))

    def test_arc_points_on_circle(self):
        pts = arc_points(Point(0, 0), Point(1, 1), 90.0, steps=4)
        self.assertEqual(len(pts), 5)
        for p in pts:
            self.assertAlmostEqual(dist(p, Point(0, 1)), 1.0)
        self.assertEqual(pts[-1], Point(1, 1))

    def test_arc_points_degenerate_is_chord(self):
        self.assertEqual(arc_points(Point(0, 0), Point(3, 0), 0.0), [Point(0, 0), Point(3, 0)])


if __name__ == "__main__":
    unittest.main()
