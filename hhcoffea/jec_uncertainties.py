"""Jet energy scale uncertainty shifts for jets and MET.

Uses correctionlib CorrectionSet payloads. Caches per worker process
to avoid re-reading JSON for every event.
"""

from __future__ import annotations

import enum
import logging
import math

from hhcoffea.analysis_config import JEC_JET_TYPE, JEC_UNCERTAINTY_JSONS, JEC_UNCERTAINTY_TAGS
from hhcoffea.candidates import make_met_p4

logger = logging.getLogger(__name__)

# Cache correctionlib payloads per worker process (avoid re-reading JSON every event).
_CORRECTIONSET_CACHE = {}

# Source name meaning "no variation".
NO_UNCERTAINTY = "None"


class UncertaintyScale(enum.IntEnum):
    Down = -1
    Central = 0
    Up = 1


def _get_jec_ceval(json_path):
    """Load (and cache) a correctionlib CorrectionSet for a JEC uncertainty file."""
    import correctionlib

    ceval = _CORRECTIONSET_CACHE.get(json_path)
    if ceval is None:
        ceval = correctionlib.CorrectionSet.from_file(json_path)
        _CORRECTIONSET_CACHE[json_path] = ceval
    return ceval


class JecUncertainties:
    """Per-source JES uncertainty evaluator.

    ``correction_set`` maps correction names to objects with
    ``evaluate(eta, pt)``; each source ``S`` is looked up as
    ``f"{tag}_{S}_{jet_type}"``.
    """

    def __init__(self, correction_set, tag, jet_type=JEC_JET_TYPE):
        self._correction_set = correction_set
        self.tag = tag
        self.jet_type = jet_type

    @classmethod
    def from_file(cls, json_path, tag, jet_type=JEC_JET_TYPE):
        return cls(_get_jec_ceval(json_path), tag, jet_type)

    @classmethod
    def for_period(cls, period):
        """Load the configured payload for ``period``."""
        if period not in JEC_UNCERTAINTY_JSONS:
            raise ValueError(f"No JEC uncertainty payload configured for period '{period}'.")
        return cls.from_file(JEC_UNCERTAINTY_JSONS[period], JEC_UNCERTAINTY_TAGS[period])

    def correction_name(self, source):
        return f"{self.tag}_{source}_{self.jet_type}"

    def uncertainty(self, source, p4):
        """Relative uncertainty for a jet momentum; inputs follow correctionlib (eta, pt)."""
        correction = self._correction_set[self.correction_name(source)]
        return float(correction.evaluate(float(p4.eta), float(p4.pt)))

    def _shifted(self, source, sign, p4):
        return p4 * (1.0 + sign * self.uncertainty(source, p4))

    def apply_shift(self, jets, source, scale, other_jets_p4=(), met_p4=None):
        """Scale jet momenta by ``1 +/- unc`` and propagate the change to MET.

        Returns ``(corrected_jets, shifted_met_p4)``.  ``jets`` are candidates
        with ``momentum``/``with_momentum``; ``other_jets_p4`` are bare momenta
        of non-candidate jets, which only contribute to the MET shift.
        """
        scale = UncertaintyScale(scale)
        if source == NO_UNCERTAINTY or scale is UncertaintyScale.Central:
            return tuple(jets), met_p4

        sign = int(scale)
        corrected_jets = []
        delta_px = 0.0
        delta_py = 0.0
        for jet in jets:
            shifted = self._shifted(source, sign, jet.momentum)
            corrected_jets.append(jet.with_momentum(shifted))
            delta_px += jet.momentum.px - shifted.px
            delta_py += jet.momentum.py - shifted.py

        if met_p4 is None:
            return tuple(corrected_jets), None

        for p4 in other_jets_p4:
            shifted = self._shifted(source, sign, p4)
            delta_px += p4.px - shifted.px
            delta_py += p4.py - shifted.py

        px = met_p4.px + delta_px
        py = met_p4.py + delta_py
        shifted_met = make_met_p4(math.hypot(px, py), math.atan2(py, px))
        logger.debug("JES %s %s: MET %.2f -> %.2f", source, scale.name, met_p4.pt, shifted_met.pt)
        return tuple(corrected_jets), shifted_met
