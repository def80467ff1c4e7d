"""Selection of the signal b-jet pair and the VBF jet pair of one event.

Algorithm (deterministic, no failure modes):

1. Candidates are jets passing the ECAL noise veto and the loose pile-up id,
   skipping jets already chosen as b or VBF jets.
2. Candidates ranked by b-tag score under the b-jet pt/eta cuts -> ``L_b``.
3. First b-jet is ``L_b[0]``; second is ``L_b[1]`` only if it passes the
   Medium working point.
4. Remaining candidates ranked by pt under the VBF cuts; the VBF pair is the
   pair with the largest invariant mass (first maximum wins).
5. Without a b-jet pair, the second slot is refilled from a new b-tag ranking
   that ignores the working point.  If that ranking is empty, the VBF pair is
   dropped and ``L_b[1]`` (when present) becomes the second b-jet.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from hhcoffea.analysis_config import CUTS, SIGNAL_JET_PU_ID
from hhcoffea.btagging import BTagger, pass_ecal_noise_veto, pass_pu_id
from hhcoffea.candidates import make_p4
from hhcoffea.jet_ordering import JetInfo, JetOrdering, order_jets

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalJetSelection:
    """Outcome of the signal-jet selection; pairs are either complete or ``None``."""

    b_jet_pair: tuple[int, int] | None = None
    vbf_jet_pair: tuple[int, int] | None = None
    n_bjets: int = 0

    def __post_init__(self):
        for name in ("b_jet_pair", "vbf_jet_pair"):
            pair = getattr(self, name)
            if pair is None:
                continue
            if len(pair) != 2 or pair[0] == pair[1] or min(pair) < 0:
                raise ValueError(f"Invalid {name} {pair}: expected two distinct non-negative indices.")

    def has_bjet_pair(self, n_jets):
        return self.b_jet_pair is not None and max(self.b_jet_pair) < n_jets

    def has_vbf_pair(self, n_jets):
        return self.vbf_jet_pair is not None and max(self.vbf_jet_pair) < n_jets

    def is_selected_bjet(self, n):
        return self.b_jet_pair is not None and n in self.b_jet_pair

    def is_selected_vbf_jet(self, n):
        return self.vbf_jet_pair is not None and n in self.vbf_jet_pair


def _jet_p4s(event):
    return [
        make_p4(pt, eta, phi, m)
        for pt, eta, phi, m in zip(event.jets_pt, event.jets_eta, event.jets_phi, event.jets_mass)
    ]


def select_signal_jets(event, period, jet_ordering=JetOrdering.DeepFlavour):
    """Choose the b-jet and VBF jet pairs of ``event``.

    Returns a :class:`SignalJetSelection`; undefined pairs are a legal outcome.
    """
    btagger = BTagger(period, jet_ordering)
    jet_p4s = _jet_p4s(event)
    pu_ids = [int(pu_id) for pu_id in event.jets_pu_id]

    bjet_1 = None
    bjet_2 = None
    vbf_pair = None

    def taken(n):
        return n in (bjet_1, bjet_2) or (vbf_pair is not None and n in vbf_pair)

    def candidates(use_btag):
        jet_infos = []
        for n, p4 in enumerate(jet_p4s):
            if taken(n):
                continue
            if not pass_ecal_noise_veto(p4, period, pu_ids[n]):
                continue
            if not pass_pu_id(pu_ids[n], SIGNAL_JET_PU_ID):
                continue
            tag = btagger.tag(event, n) if use_btag else p4.pt
            jet_infos.append(JetInfo(p4=p4, index=n, tag=tag))
        return jet_infos

    bjets_ordered = order_jets(candidates(True), True, btagger.pt_cut, btagger.eta_cut)
    n_bjets = len(bjets_ordered)
    if n_bjets >= 1:
        bjet_1 = bjets_ordered[0].index
    if n_bjets >= 2 and btagger.passes(event, bjets_ordered[1].index, "Medium"):
        bjet_2 = bjets_ordered[1].index

    vbf_jets_ordered = order_jets(candidates(False), True, CUTS["vbf_pt_min"], CUTS["vbf_eta_max"])
    max_mjj = -math.inf
    for n, jet_1 in enumerate(vbf_jets_ordered):
        for jet_2 in vbf_jets_ordered[n + 1:]:
            mjj = (jet_1.p4 + jet_2.p4).mass
            if mjj > max_mjj:
                max_mjj = mjj
                vbf_pair = (jet_1.index, jet_2.index)

    if bjet_1 is None or bjet_2 is None:
        new_bjets_ordered = order_jets(candidates(True), True, btagger.pt_cut, btagger.eta_cut)
        if new_bjets_ordered:
            bjet_2 = new_bjets_ordered[0].index
        else:
            vbf_pair = None
            if n_bjets >= 2:
                bjet_2 = bjets_ordered[1].index
        logger.debug("Signal-jet fallback used: bjets=(%s, %s), vbf=%s", bjet_1, bjet_2, vbf_pair)

    b_pair = (bjet_1, bjet_2) if bjet_1 is not None and bjet_2 is not None else None
    return SignalJetSelection(b_jet_pair=b_pair, vbf_jet_pair=vbf_pair, n_bjets=n_bjets)
