"""Shared record factory for the event-level tests.

Jets are given as dicts with ``pt``, ``eta``, ``phi``, ``mass``, ``tag`` and
optionally ``pu_id``/``resolution``; ``tag`` fills every tagger branch so the
same record works for CSV, DeepCSV and DeepFlavour orderings.
"""

import awkward as ak
import pytest

ALL_PU_ID_BITS = 2 | 4 | 8


def jet(pt, eta=0.0, phi=0.0, tag=0.0, mass=5.0, pu_id=ALL_PU_ID_BITS, resolution=0.1):
    return dict(pt=pt, eta=eta, phi=phi, mass=mass, tag=tag, pu_id=pu_id, resolution=resolution)


def event_fields(jets=(), run=1, lumi=10, evt=1000, channel=2, **extra):
    """Branch mapping of one event: two hadronic taus, MET and ``jets``."""
    fields = {
        "run": run,
        "lumi": lumi,
        "evt": evt,
        "channelId": channel,
        "lep_pt": [45.0, 38.0],
        "lep_eta": [0.4, -0.6],
        "lep_phi": [0.3, 2.9],
        "lep_mass": [1.777, 1.777],
        "lep_q": [1, -1],
        "lep_type": [2, 2],
        "lep_iso": [0.9, 0.85],
        "first_daughter_indexes": [0],
        "second_daughter_indexes": [1],
        "jets_pt": [j["pt"] for j in jets],
        "jets_eta": [j["eta"] for j in jets],
        "jets_phi": [j["phi"] for j in jets],
        "jets_mass": [j["mass"] for j in jets],
        "jets_csv": [j["tag"] for j in jets],
        "jets_deepCsv_BvsAll": [j["tag"] for j in jets],
        "jets_deepFlavour_b": [j["tag"] for j in jets],
        "jets_deepFlavour_bb": [0.0 for _ in jets],
        "jets_deepFlavour_lepb": [0.0 for _ in jets],
        "jets_pu_id": [j["pu_id"] for j in jets],
        "jets_resolution": [j["resolution"] for j in jets],
        "pfMET_pt": 32.0,
        "pfMET_phi": -1.2,
        "pfMET_cov_00": 120.0,
        "pfMET_cov_01": 4.0,
        "pfMET_cov_11": 110.0,
        "trigger_accepts": 0,
        "trigger_matches": [0],
    }
    fields.update(extra)
    return fields


def make_record(jets=(), **kwargs):
    return ak.Record(event_fields(jets, **kwargs))


# Two central b-tagged jets and two forward VBF-like jets.
VBF_JETS = (
    jet(80.0, eta=0.2, phi=0.1, tag=0.9),
    jet(70.0, eta=-0.5, phi=2.5, tag=0.8),
    jet(60.0, eta=3.0, phi=-1.0, tag=0.01),
    jet(55.0, eta=-3.2, phi=1.8, tag=0.02),
)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def vbf_record():
    return make_record(VBF_JETS)
