from __future__ import annotations

import csv
import logging

from hhcoffea.era_utils import PERIODS
from hhcoffea.errors import MissingPrerequisite
from hhcoffea.jec_uncertainties import UncertaintyScale
from hhcoffea.jet_ordering import JetOrdering

logger = logging.getLogger(__name__)

EVENT_COLUMNS = [
    "run", "lumi", "evt",
    "n_bjets", "bjet1", "bjet2", "vbf1", "vbf2",
    "m_bb", "m_tt_vis", "m_hh", "mt2", "ht",
    "kinfit_convergence", "kinfit_chi2", "kinfit_m",
    "fatjet_index",
]


def list_periods() -> list[str]:
    """Supported data-taking periods, oldest first."""
    return list(PERIODS)


def list_jet_orderings() -> list[str]:
    return [ordering.value for ordering in JetOrdering]


def parse_uncertainty_scale(value: str) -> UncertaintyScale:
    """Accept ``Up``/``Down``/``Central`` (any case) or ``+1``/``-1``/``0``."""

    text = value.strip()
    for scale in UncertaintyScale:
        if text.lower() == scale.name.lower():
            return scale
    try:
        return UncertaintyScale(int(text))
    except ValueError as e:
        raise ValueError(
            f"Invalid uncertainty scale '{value}'. Choose from {[s.name for s in UncertaintyScale]}."
        ) from e


def event_row(event_info) -> dict:
    """Flatten the main derived quantities of one event into a CSV row.

    Quantities whose prerequisites are missing (no b-jet pair, no kin-fit
    result) are left empty.
    """

    selection = event_info.selected_signal_jets
    b_pair = selection.b_jet_pair if event_info.has_bjet_pair() else (None, None)
    vbf_pair = selection.vbf_jet_pair if event_info.has_vbf_jet_pair() else (None, None)
    row = {
        "run": event_info.event_id.run,
        "lumi": event_info.event_id.lumi,
        "evt": event_info.event_id.evt,
        "n_bjets": selection.n_bjets,
        "bjet1": b_pair[0],
        "bjet2": b_pair[1],
        "vbf1": vbf_pair[0],
        "vbf2": vbf_pair[1],
        "m_tt_vis": event_info.higgs_tt_momentum().mass,
        "ht": event_info.ht(),
    }
    if event_info.has_bjet_pair():
        row["m_bb"] = event_info.higgs_bb().momentum.mass
        row["m_hh"] = event_info.resonance_momentum().mass
        row["mt2"] = event_info.mt2()
        try:
            fit = event_info.kinfit_results()
            row["kinfit_convergence"] = fit.convergence
            row["kinfit_chi2"] = fit.chi2
            row["kinfit_m"] = fit.mass
        except MissingPrerequisite as e:
            logger.debug("No kinematic fit for event %s: %s", event_info.event_id, e)
        fat_jet = event_info.select_fat_jet()
        row["fatjet_index"] = fat_jet.index if fat_jet is not None else None
    return {column: row.get(column) for column in EVENT_COLUMNS}


def write_event_rows(rows, output_file) -> int:
    """Write rows to CSV; returns the number of rows written."""

    n_rows = 0
    with open(output_file, mode="w", encoding="utf-8", newline="") as file:
        writer = csv.DictWriter(file, fieldnames=EVENT_COLUMNS)
        writer.writeheader()
        for row in rows:
            writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
            n_rows += 1
    return n_rows
