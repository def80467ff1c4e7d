"""b-tagging scores, working points and jet-level vetoes."""

from __future__ import annotations

from hhcoffea.analysis_config import BTAG_ETA_MAX, BTAG_WORKING_POINTS, CUTS, PU_ID_BITS
from hhcoffea.era_utils import validate_period
from hhcoffea.jet_ordering import JetOrdering


def pass_pu_id(pu_id, wp):
    """True if the pile-up id bit set passes the working point ``wp``."""
    return (int(pu_id) & PU_ID_BITS[wp]) != 0


def pass_ecal_noise_veto(p4, period, pu_id):
    """Veto soft jets in the 2017 noisy ECAL endcap region unless they pass tight PU id."""
    if period != "Run2017":
        return True
    abs_eta = abs(p4.eta)
    in_noisy_region = (
        p4.pt < CUTS["ecal_noise_pt_max"]
        and CUTS["ecal_noise_eta_low"] < abs_eta < CUTS["ecal_noise_eta_high"]
    )
    return not in_noisy_region or pass_pu_id(pu_id, "Tight")


class BTagger:
    """Tagger scores and working-point decisions for one period and ordering.

    ``JetOrdering.Pt`` ranks by jet pt and takes working-point decisions with
    DeepFlavour.
    """

    def __init__(self, period, ordering=JetOrdering.DeepFlavour):
        validate_period(period)
        self.period = period
        self.ordering = JetOrdering(ordering)
        self.tagger = JetOrdering.DeepFlavour if self.ordering is JetOrdering.Pt else self.ordering
        working_points = BTAG_WORKING_POINTS[period].get(self.tagger.value)
        if working_points is None:
            raise ValueError(
                f"Tagger '{self.tagger.value}' is not supported for period '{period}'. "
                f"Valid taggers: {sorted(BTAG_WORKING_POINTS[period])}"
            )
        self._working_points = working_points

    @property
    def pt_cut(self):
        return CUTS["bjet_pt_min"]

    @property
    def eta_cut(self):
        return BTAG_ETA_MAX[self.period]

    def _score(self, event, n):
        if self.tagger is JetOrdering.CSV:
            return float(event.jets_csv[n])
        if self.tagger is JetOrdering.DeepCSV:
            return float(event.jets_deepCsv_BvsAll[n])
        return (float(event.jets_deepFlavour_b[n])
                + float(event.jets_deepFlavour_bb[n])
                + float(event.jets_deepFlavour_lepb[n]))

    def tag(self, event, n):
        """Ranking score of jet ``n``: the tagger output, or pt for ``Pt`` ordering."""
        if self.ordering is JetOrdering.Pt:
            return float(event.jets_pt[n])
        return self._score(event, n)

    def passes(self, event, n, wp="Medium"):
        """True if jet ``n`` passes the tagger working point ``wp``."""
        return self._score(event, n) > self._working_points[wp]
