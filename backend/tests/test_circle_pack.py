"""Tests for circle packing."""

import math
import random

import pytest

from poolmap.services.circle_pack import Circle, pack_enclose, pack_values

TOLERANCE = 1e-6


def assert_no_overlap(circles):
    for i, a in enumerate(circles):
        for b in circles[i + 1:]:
            distance = math.hypot(a.x - b.x, a.y - b.y)
            assert distance + TOLERANCE >= a.r + b.r


class TestPackValues:

    def test_empty(self):
        assert pack_values([], 100, 100) == []

    def test_single_value_fills_box(self):
        [circle] = pack_values([42.0], 200, 100)

        assert circle.x == pytest.approx(100)
        assert circle.y == pytest.approx(50)
        assert circle.r == pytest.approx(50)

    def test_two_values_side_by_side(self):
        a, b = pack_values([1.0, 1.0], 400, 400)

        assert a.r == pytest.approx(b.r)
        assert a.y == pytest.approx(b.y)
        assert math.hypot(a.x - b.x, a.y - b.y) == pytest.approx(a.r + b.r)

    def test_many_values_no_overlap_within_bounds(self):
        rng = random.Random(7)
        values = sorted((rng.uniform(1, 1000) for _ in range(60)), reverse=True)

        circles = pack_values(values, 1200, 740, padding=3)

        assert len(circles) == len(values)
        assert_no_overlap(circles)
        for c in circles:
            assert c.x - c.r >= -TOLERANCE
            assert c.x + c.r <= 1200 + TOLERANCE
            assert c.y - c.r >= -TOLERANCE
            assert c.y + c.r <= 740 + TOLERANCE

    def test_area_proportional_to_value(self):
        values = [400.0, 100.0, 25.0, 1.0]

        circles = pack_values(values, 500, 500)

        ratios = [c.r ** 2 / v for c, v in zip(circles, values)]
        assert ratios == pytest.approx([ratios[0]] * len(values))

    def test_padding_separates_circles(self):
        circles = pack_values([10.0] * 8, 600, 600, padding=5)

        gaps = [
            math.hypot(a.x - b.x, a.y - b.y) - (a.r + b.r)
            for i, a in enumerate(circles)
            for b in circles[i + 1:]
        ]
        assert min(gaps) > 0

    def test_all_zero_values(self):
        circles = pack_values([0.0, 0.0, 0.0], 300, 200)

        assert all(c.r == 0 for c in circles)
        assert all((c.x, c.y) == (150, 100) for c in circles)

    def test_deterministic(self):
        values = [50.0, 30.0, 30.0, 20.0, 5.0, 1.0]

        first = pack_values(values, 800, 600, padding=2)
        second = pack_values(values, 800, 600, padding=2)

        assert first == second


class TestPackEnclose:

    def test_encloses_all_circles(self):
        circles = [Circle(r=1, x=0, y=0), Circle(r=2, x=5, y=1), Circle(r=0.5, x=-3, y=4)]

        enclosing = pack_enclose(circles, random.Random(1))

        for c in circles:
            distance = math.hypot(c.x - enclosing.x, c.y - enclosing.y)
            assert distance + c.r <= enclosing.r + TOLERANCE

    def test_nested_circle(self):
        big = Circle(r=10, x=0, y=0)
        small = Circle(r=1, x=2, y=2)

        enclosing = pack_enclose([small, big], random.Random(1))

        assert enclosing.r == pytest.approx(10)
        assert (enclosing.x, enclosing.y) == pytest.approx((0, 0))
