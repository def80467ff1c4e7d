"""Per-event analysis view over one flat ntuple record.

``EventInfo`` borrows a record (it never copies or owns it), runs the
signal-jet selection once at construction, and builds every other analysis
object on first access.

Concurrency:
    Every check-cache / compute / store sequence runs under one re-entrant lock
    per instance, so concurrent callers of the same accessor see exactly one
    computation and the same object.  Different events never share a lock.

Systematic shifts:
    A jet collection is never replaced in place.  ``apply_shift`` returns a new
    ``EventInfo`` that shares the record, selection, period and ordering but
    starts from an empty cache holding only the corrected jets and MET, so no
    derived quantity can refer to stale jets.
"""

from __future__ import annotations

import copy
import logging
import operator
import threading
from dataclasses import dataclass

from hhcoffea.analysis_config import CUTS
from hhcoffea.btagging import BTagger, pass_ecal_noise_veto, pass_pu_id
from hhcoffea.candidates import (
    HiggsBBCandidate,
    build_fat_jets,
    build_jets,
    build_lepton,
    build_met,
    collection_p4s,
    column,
    make_p4,
)
from hhcoffea.era_utils import validate_period
from hhcoffea.errors import ConflictingRequest, InvalidIndex, MissingPrerequisite
from hhcoffea.jet_ordering import JetInfo, JetOrdering, order_jets
from hhcoffea.kinfit import combination_pair_to_index, lookup_stored_fit, run_solver
from hhcoffea.mt2 import calculate_mt2
from hhcoffea.signal_jets import select_signal_jets
from hhcoffea.summary import Channel
from hhcoffea.triggers import TriggerResults

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass
class _DerivedCache:
    """One slot per memoized field; ``_UNSET`` until first computed."""

    leg1: object = _UNSET
    leg2: object = _UNSET
    jets: object = _UNSET
    fat_jets: object = _UNSET
    met: object = _UNSET
    higgs_bb: object = _UNSET
    kinfit_results: object = _UNSET
    mt2: object = _UNSET
    mva_score: object = _UNSET


@dataclass(frozen=True)
class EventIdentifier:
    run: int
    lumi: int
    evt: int


def _pair_position(index, kind):
    """Map a 1-based jet id onto a pair position; only the integers 1 and 2 are valid."""
    try:
        position = operator.index(index) - 1
    except TypeError:
        raise InvalidIndex(f"Invalid {kind} id = {index!r}.") from None
    if position not in (0, 1):
        raise InvalidIndex(f"Invalid {kind} id = {index!r}.")
    return position


class EventInfo:
    """Lazily evaluated analysis objects of one event.

    Parameters
    - `event`: the ntuple record (awkward Record or attribute-compatible object).
      It must outlive this instance and every shifted copy.
    - `selected_htt_index`: which leg pair (``first/second_daughter_indexes``) is the H->tautau candidate.
    - `period`: data-taking period (see ``era_utils.PERIODS``).
    - `jet_ordering`: tagger used to rank b-jet candidates.
    - `summary_info`: optional run summary; needed for trigger descriptors and shifts.
    - `kinfit_solver`: optional kinematic-fit solver used when the side table has no entry.
    """

    def __init__(self, event, selected_htt_index, period, jet_ordering=JetOrdering.DeepFlavour,
                 summary_info=None, kinfit_solver=None):
        validate_period(period)
        n_pairs = len(event.first_daughter_indexes)
        if not 0 <= selected_htt_index < n_pairs:
            raise InvalidIndex(f"Leg pair index {selected_htt_index} out of range for {n_pairs} pairs.")

        self._event = event
        self.selected_htt_index = int(selected_htt_index)
        self.period = period
        self.jet_ordering = JetOrdering(jet_ordering)
        self._summary_info = summary_info
        self._kinfit_solver = kinfit_solver
        self.event_id = EventIdentifier(int(event.run), int(event.lumi), int(event.evt))
        self.selected_signal_jets = select_signal_jets(event, period, self.jet_ordering)
        self.trigger_results = self._build_trigger_results()
        self._svfit_index = self._find_svfit_index()

        self._lock = threading.RLock()
        self._cache = _DerivedCache()

    # --- construction helpers ---------------------------------------------------
    def _build_trigger_results(self):
        matches = column(self._event, "trigger_matches")
        match_bits = matches[self.selected_htt_index] if len(matches) > self.selected_htt_index else 0
        descriptors = None
        if self._summary_info is not None:
            descriptors = self._summary_info.trigger_descriptors(self.channel)
        return TriggerResults(getattr(self._event, "trigger_accepts", 0), match_bits, descriptors)

    def _find_svfit_index(self):
        htt_indices = column(self._event, "SVfit_htt_index")
        is_valid = column(self._event, "SVfit_is_valid")
        for n, htt_index in enumerate(htt_indices):
            if int(htt_index) == self.selected_htt_index and bool(is_valid[n]):
                return n
        return None

    def _get_or_compute(self, slot, factory):
        with self._lock:
            value = getattr(self._cache, slot)
            if value is _UNSET:
                value = factory()
                setattr(self._cache, slot, value)
            return value

    # --- plain accessors ----------------------------------------------------------
    @property
    def event(self):
        """The borrowed ntuple record."""
        return self._event

    @property
    def channel(self):
        return Channel(int(self._event.channelId))

    @property
    def summary_info(self):
        if self._summary_info is None:
            raise MissingPrerequisite("SummaryInfo was not provided for this event.")
        return self._summary_info

    @property
    def n_jets(self):
        return len(self._event.jets_pt)

    @property
    def n_fat_jets(self):
        return len(column(self._event, "fatJets_pt"))

    @property
    def has_svfit(self):
        """True if the record holds a valid SVfit result for the selected leg pair."""
        return self._svfit_index is not None

    def has_bjet_pair(self):
        return self.selected_signal_jets.has_bjet_pair(self.n_jets)

    def has_vbf_jet_pair(self):
        return self.selected_signal_jets.has_vbf_pair(self.n_jets)

    def selected_bjet_indices(self):
        """Indices of the selected b-jets (empty when the pair is undefined)."""
        if not self.has_bjet_pair():
            return frozenset()
        return frozenset(self.selected_signal_jets.b_jet_pair)

    def leg_index(self, leg_id):
        if leg_id == 1:
            return int(self._event.first_daughter_indexes[self.selected_htt_index])
        if leg_id == 2:
            return int(self._event.second_daughter_indexes[self.selected_htt_index])
        raise InvalidIndex(f"Invalid leg id = {leg_id}.")

    # --- memoized objects ----------------------------------------------------------
    def leg(self, leg_id):
        """Lepton candidate for leg 1 or 2 of the selected pair."""
        slot = {1: "leg1", 2: "leg2"}.get(leg_id)
        if slot is None:
            raise InvalidIndex(f"Invalid leg id = {leg_id}.")
        return self._get_or_compute(slot, lambda: build_lepton(self._event, self.leg_index(leg_id)))

    def jets(self):
        return self._get_or_compute("jets", lambda: build_jets(self._event))

    def fat_jets(self):
        return self._get_or_compute("fat_jets", lambda: build_fat_jets(self._event))

    def met(self):
        return self._get_or_compute("met", lambda: build_met(self._event))

    def bjet(self, index):
        position = _pair_position(index, "b-jet")
        if not self.has_bjet_pair():
            raise MissingPrerequisite("B jet not found.")
        return self.jets()[self.selected_signal_jets.b_jet_pair[position]]

    def vbf_jet(self, index):
        position = _pair_position(index, "VBF jet")
        if not self.has_vbf_jet_pair():
            raise MissingPrerequisite("VBF jet not found.")
        return self.jets()[self.selected_signal_jets.vbf_jet_pair[position]]

    def higgs_bb(self):
        """H->bb candidate built from the selected b-jet pair."""
        if not self.has_bjet_pair():
            raise MissingPrerequisite("Can't create H->bb candidate.")
        return self._get_or_compute("higgs_bb", lambda: HiggsBBCandidate(self.bjet(1), self.bjet(2)))

    def kinfit_results(self):
        """HH kinematic-fit result for the selected legs and b-jets.

        Stored side-table results are preferred; otherwise the configured
        solver is called once.
        """
        if not self.has_bjet_pair():
            raise MissingPrerequisite("Can't retrieve KinFit results.")
        return self._get_or_compute("kinfit_results", self._compute_kinfit_results)

    def _compute_kinfit_results(self):
        pair_id = combination_pair_to_index(self.selected_signal_jets.b_jet_pair, self.n_jets)
        stored = lookup_stored_fit(self._event, pair_id)
        if stored is not None:
            return stored
        if self._kinfit_solver is None:
            raise MissingPrerequisite(
                f"No stored KinFit result for jet pair {pair_id} and no kinematic-fit solver configured."
            )
        logger.debug("Running kinematic fit for event %s, jet pair %d", self.event_id, pair_id)
        return run_solver(self._kinfit_solver, self.leg(1), self.leg(2),
                          self.bjet(1), self.bjet(2), self.met())

    def mt2(self):
        if not self.has_bjet_pair():
            raise MissingPrerequisite("Can't compute MT2 without a b-jet pair.")
        return self._get_or_compute("mt2", lambda: calculate_mt2(
            self.leg(1).momentum, self.leg(2).momentum,
            *self.higgs_bb().daughter_momenta,
            self.met().momentum,
        ))

    @property
    def mva_score(self):
        with self._lock:
            value = self._cache.mva_score
            return None if value is _UNSET else value

    def set_mva_score(self, score):
        with self._lock:
            self._cache.mva_score = float(score)

    # --- recomputed on every call ------------------------------------------------
    def select_fat_jet(self, mass_cut=CUTS["fatjet_msoftdrop_min"], delta_r_subjet_cut=CUTS["fatjet_subjet_dr_max"]):
        """First fat jet whose two leading subjets match the H->bb daughters, or ``None``."""
        with self._lock:
            if not self.has_bjet_pair():
                return None
            daughters = self.higgs_bb().daughter_momenta
            for fat_jet in self.fat_jets():
                if fat_jet.m_softdrop < mass_cut:
                    continue
                if len(fat_jet.subjets) < 2:
                    continue
                leading = sorted(fat_jet.subjets, key=lambda sub: sub.momentum.pt, reverse=True)[:2]
                delta_r = [sub.momentum.deltaR(d) for sub in leading for d in daughters]
                straight = delta_r[0] < delta_r_subjet_cut and delta_r[3] < delta_r_subjet_cut
                swapped = delta_r[1] < delta_r_subjet_cut and delta_r[2] < delta_r_subjet_cut
                if straight or swapped:
                    return fat_jet
            return None

    def select_jets(self, pt_cut, eta_cut, apply_pu=False, pass_btag=False,
                    jet_ordering=JetOrdering.DeepCSV, jets_to_exclude=(), low_eta_cut=0.0):
        """Jets passing the given cuts, ranked by ``jet_ordering`` score.

        ``low_eta_cut`` rejects jets with ``|eta|`` below it (forward-jet selections).
        """
        with self._lock:
            btagger = BTagger(self.period, jet_ordering)
            all_jets = self.jets()
            excluded = set(jets_to_exclude)
            jet_infos = []
            for n, jet in enumerate(all_jets):
                p4 = jet.momentum
                if not pass_ecal_noise_veto(p4, self.period, jet.pu_id):
                    continue
                if n in excluded:
                    continue
                if apply_pu and not pass_pu_id(jet.pu_id, "Loose"):
                    continue
                if abs(p4.eta) < low_eta_cut:
                    continue
                if pass_btag and not btagger.passes(self._event, n, "Medium"):
                    continue
                jet_infos.append(JetInfo(p4=p4, index=n, tag=btagger.tag(self._event, n)))
            ordered = order_jets(jet_infos, True, pt_cut, eta_cut)
            return [all_jets[info.index] for info in ordered]

    def ht(self, include_hbb_jets=False, apply_eta_cut=True):
        """Scalar pt sum of the other jets (optionally including the H->bb jets)."""
        eta_cut = CUTS["ht_jet_eta_max"] if apply_eta_cut else CUTS["ht_jet_eta_max_wide"]
        jets_to_exclude = () if include_hbb_jets else self.selected_bjet_indices()
        jets = self.select_jets(CUTS["ht_jet_pt_min"], eta_cut, False, False,
                                JetOrdering.DeepCSV, jets_to_exclude)
        return sum(jet.momentum.pt for jet in jets)

    def higgs_tt_momentum(self, use_svfit=False):
        """H->tautau momentum: visible leg sum, or the stored SVfit result."""
        if use_svfit:
            if not self.has_svfit:
                raise MissingPrerequisite("No valid SVfit result for the selected leg pair.")
            n = self._svfit_index
            return make_p4(self._event.SVfit_pt[n], self._event.SVfit_eta[n],
                           self._event.SVfit_phi[n], self._event.SVfit_mass[n])
        return self.leg(1).momentum + self.leg(2).momentum

    def resonance_momentum(self, use_svfit=False, add_met=False):
        """HH momentum; MET can only be added to the visible (non-SVfit) H->tautau."""
        if use_svfit and add_met:
            raise ConflictingRequest("Can't add MET and with SVfit applied.")
        with self._lock:
            p4 = self.higgs_tt_momentum(use_svfit) + self.higgs_bb().momentum
            if add_met:
                p4 = p4 + self.met().momentum
            return p4

    # --- systematic shifts -----------------------------------------------------------
    def apply_shift(self, uncertainty_source, scale):
        """Return a copy with jets and MET shifted by a JES uncertainty.

        The source instance and its cache are left untouched.
        """
        jec_uncertainties = self.summary_info.jec_uncertainties
        with self._lock:
            jets = self._cache.jets if self._cache.jets is not _UNSET else build_jets(self._event)
            met = self._cache.met if self._cache.met is not _UNSET else build_met(self._event)
        other_jets_p4 = collection_p4s(self._event, "other_jets")
        corrected_jets, shifted_met_p4 = jec_uncertainties.apply_shift(
            jets, uncertainty_source, scale, other_jets_p4, met.momentum,
        )
        logger.debug("Applied shift %s/%s to event %s", uncertainty_source, scale, self.event_id)
        return self._clone_with(jets=corrected_jets, met=met.with_momentum(shifted_met_p4))

    def _clone_with(self, jets, met):
        clone = copy.copy(self)
        clone._lock = threading.RLock()
        clone._cache = _DerivedCache(jets=tuple(jets), met=met)
        return clone
