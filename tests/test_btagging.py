"""Tests for hhcoffea.btagging: tagger scores, working points and jet vetoes."""

import pytest

from conftest import jet, make_record
from hhcoffea.btagging import BTagger, pass_ecal_noise_veto, pass_pu_id
from hhcoffea.candidates import make_p4
from hhcoffea.jet_ordering import JetOrdering


class TestPuId:
    def test_loose_bit(self):
        assert pass_pu_id(2, "Loose")
        assert not pass_pu_id(4, "Loose")

    def test_tight_bit(self):
        assert pass_pu_id(14, "Tight")
        assert not pass_pu_id(6, "Tight")


class TestEcalNoiseVeto:
    def test_vetoes_soft_endcap_jet_in_2017(self):
        p4 = make_p4(30.0, 2.8, 0.0, 5.0)
        assert not pass_ecal_noise_veto(p4, "Run2017", 2)

    def test_tight_pu_id_rescues_jet(self):
        p4 = make_p4(30.0, -2.8, 0.0, 5.0)
        assert pass_ecal_noise_veto(p4, "Run2017", 8)

    def test_hard_jet_not_vetoed(self):
        p4 = make_p4(60.0, 2.8, 0.0, 5.0)
        assert pass_ecal_noise_veto(p4, "Run2017", 2)

    @pytest.mark.parametrize("period", ["Run2016", "Run2018"])
    def test_other_periods_unaffected(self, period):
        p4 = make_p4(30.0, 2.8, 0.0, 5.0)
        assert pass_ecal_noise_veto(p4, period, 0)


class TestBTagger:
    def test_deep_flavour_score_sums_nodes(self):
        event = make_record([jet(50.0, tag=0.2)], jets_deepFlavour_bb=[0.1], jets_deepFlavour_lepb=[0.05])
        assert BTagger("Run2018").tag(event, 0) == pytest.approx(0.35)

    def test_deep_csv_score(self):
        event = make_record([jet(50.0, tag=0.6)])
        tagger = BTagger("Run2018", JetOrdering.DeepCSV)
        assert tagger.tag(event, 0) == pytest.approx(0.6)
        assert tagger.passes(event, 0, "Medium")
        assert not tagger.passes(event, 0, "Tight")

    def test_pt_ordering_ranks_by_pt_but_tags_with_deep_flavour(self):
        event = make_record([jet(50.0, tag=0.1)])
        tagger = BTagger("Run2018", JetOrdering.Pt)
        assert tagger.tag(event, 0) == pytest.approx(50.0)
        assert not tagger.passes(event, 0, "Medium")
        assert tagger.passes(event, 0, "Loose")

    def test_csv_not_available_in_2018(self):
        with pytest.raises(ValueError, match="not supported"):
            BTagger("Run2018", JetOrdering.CSV)

    def test_unknown_period(self):
        with pytest.raises(ValueError, match="Unsupported period"):
            BTagger("Run2030")

    def test_eta_acceptance_per_period(self):
        assert BTagger("Run2016").eta_cut == pytest.approx(2.4)
        assert BTagger("Run2017").eta_cut == pytest.approx(2.5)
        assert BTagger("Run2018").pt_cut == 20

    def test_working_point_is_strict(self):
        event = make_record([jet(50.0, tag=0.2770)])
        assert not BTagger("Run2018").passes(event, 0, "Medium")
