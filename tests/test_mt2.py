"""Tests for hhcoffea.mt2."""

import pytest

from hhcoffea.candidates import make_met_p4, make_p4
from hhcoffea.mt2 import asymmetric_mt2, calculate_mt2


class TestAsymmetricMt2:
    def test_no_missing_momentum_gives_heavier_visible_mass(self):
        value = asymmetric_mt2((10.0, 30.0, 5.0), (5.0, -20.0, 10.0), 0.0, 0.0)
        assert value == pytest.approx(10.0, rel=1e-3)

    def test_bounded_below_by_visible_masses(self):
        value = asymmetric_mt2((12.0, 40.0, -10.0), (8.0, 25.0, 30.0), 60.0, -15.0, 1.8, 1.8)
        assert value >= 12.0 + 1.8 - 1e-3

    def test_symmetric_in_systems(self):
        a = (10.0, 40.0, 10.0)
        b = (6.0, -30.0, 20.0)
        assert asymmetric_mt2(a, b, 20.0, 5.0, 1.0, 2.0) == pytest.approx(
            asymmetric_mt2(b, a, 20.0, 5.0, 2.0, 1.0), rel=1e-3)


class TestCalculateMt2:
    def test_bbtautau_topology(self):
        leg1 = make_p4(45.0, 0.4, 0.3, 1.777)
        leg2 = make_p4(38.0, -0.6, 2.9, 1.777)
        bjet1 = make_p4(80.0, 0.2, 0.1, 12.0)
        bjet2 = make_p4(70.0, -0.5, 2.5, 10.0)
        met = make_met_p4(32.0, -1.2)
        value = calculate_mt2(leg1, leg2, bjet1, bjet2, met)
        assert value >= 12.0 + 1.777 - 1e-3
        expected = asymmetric_mt2(
            (bjet1.mass, bjet1.px, bjet1.py), (bjet2.mass, bjet2.px, bjet2.py),
            leg1.px + leg2.px + met.px, leg1.py + leg2.py + met.py, leg1.mass, leg2.mass,
        )
        assert value == pytest.approx(expected)
