"""Tests for hhcoffea.jet_ordering: ranking by tag with pt tie-break and hard cuts."""

from hhcoffea.candidates import make_p4
from hhcoffea.jet_ordering import JetInfo, JetOrdering, order_jets


def _info(index, pt, tag, eta=0.0):
    return JetInfo(p4=make_p4(pt, eta, 0.0, 5.0), index=index, tag=tag)


class TestOrderJets:
    def test_descending_tag(self):
        infos = [_info(0, 50, 0.2), _info(1, 40, 0.9), _info(2, 30, 0.5)]
        assert [j.index for j in order_jets(infos)] == [1, 2, 0]

    def test_ties_broken_by_pt(self):
        infos = [_info(0, 30, 0.5), _info(1, 60, 0.5), _info(2, 45, 0.5)]
        assert [j.index for j in order_jets(infos)] == [1, 2, 0]

    def test_full_ties_keep_input_order(self):
        infos = [_info(3, 30, 0.5), _info(1, 30, 0.5)]
        assert [j.index for j in order_jets(infos)] == [3, 1]

    def test_hard_cut_is_strict(self):
        infos = [_info(0, 20.0, 0.9), _info(1, 20.1, 0.1), _info(2, 50, 0.5, eta=2.5)]
        ordered = order_jets(infos, True, 20.0, 2.5)
        assert [j.index for j in ordered] == [1]

    def test_cut_ignored_without_flag(self):
        infos = [_info(0, 5.0, 0.9, eta=4.0)]
        assert len(order_jets(infos, False, 20.0, 2.5)) == 1

    def test_negative_eta_uses_absolute_value(self):
        infos = [_info(0, 50, 0.9, eta=-2.6), _info(1, 50, 0.1, eta=-2.4)]
        assert [j.index for j in order_jets(infos, True, 20.0, 2.5)] == [1]

    def test_empty(self):
        assert order_jets([], True, 20.0, 2.5) == []

    def test_default_cuts_are_open(self):
        infos = [_info(0, 1e-3, -1.0, eta=10.0)]
        assert order_jets(infos, True) == infos


class TestJetOrdering:
    def test_values_round_trip_from_strings(self):
        for name in ("Pt", "CSV", "DeepCSV", "DeepFlavour"):
            assert JetOrdering(name).value == name

    def test_is_str(self):
        assert JetOrdering.DeepFlavour == "DeepFlavour"
