"""Tests for hhcoffea.kinfit: pair indexing, p-values and stored-result lookup."""

import math

import pytest

from conftest import make_record
from hhcoffea.kinfit import (
    FitResults,
    combination_pair_to_index,
    fit_probability,
    lookup_stored_fit,
    make_fit_results,
)


class TestCombinationPairToIndex:
    def test_enumeration_order(self):
        pairs = [(0, 1), (0, 2), (0, 3), (1, 2), (1, 3), (2, 3)]
        assert [combination_pair_to_index(p, 4) for p in pairs] == list(range(6))

    def test_unordered(self):
        assert combination_pair_to_index((3, 1), 4) == combination_pair_to_index((1, 3), 4)

    def test_last_pair_of_many(self):
        n = 10
        assert combination_pair_to_index((n - 2, n - 1), n) == n * (n - 1) // 2 - 1

    @pytest.mark.parametrize("pair,n", [((1, 1), 4), ((0, 4), 4), ((-1, 2), 4), ((0, 1), 1)])
    def test_bad_pair(self, pair, n):
        with pytest.raises(ValueError):
            combination_pair_to_index(pair, n)


class TestFitResults:
    def test_probability_two_dof(self):
        for chi2 in (0.0, 1.0, 4.6):
            assert fit_probability(chi2) == pytest.approx(math.exp(-chi2 / 2))

    def test_make_fit_results(self):
        result = make_fit_results(1, 2.0, 420.0)
        assert isinstance(result, FitResults)
        assert (result.convergence, result.chi2, result.mass) == (1, 2.0, 420.0)
        assert result.probability == pytest.approx(math.exp(-1.0))

    @pytest.mark.parametrize("convergence,valid", [(-1, False), (0, False), (1, True), (3, True)])
    def test_has_valid_mass(self, convergence, valid):
        assert make_fit_results(convergence, 1.0, 300.0).has_valid_mass is valid


class TestLookupStoredFit:
    def test_hit(self):
        record = make_record(kinFit_jetPairId=[3, 1], kinFit_convergence=[1, 2],
                             kinFit_chi2=[0.5, 3.0], kinFit_m=[350.0, 500.0])
        result = lookup_stored_fit(record, 1)
        assert result.convergence == 2
        assert result.mass == pytest.approx(500.0)

    def test_miss(self):
        record = make_record(kinFit_jetPairId=[3], kinFit_convergence=[1],
                             kinFit_chi2=[0.5], kinFit_m=[350.0])
        assert lookup_stored_fit(record, 0) is None

    def test_no_side_table(self):
        assert lookup_stored_fit(make_record(), 0) is None
