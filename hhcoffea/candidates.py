"""Analysis-level candidates built from one flat ntuple record.

Momenta are ``vector`` Lorentz objects (pt, eta, phi, mass coordinates).
Candidates are immutable; a corrected jet or MET is a new object obtained with
``with_momentum``.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

import vector

from hhcoffea.errors import InvalidIndex

LEPTON_FLAVORS = {0: "electron", 1: "muon", 2: "tau"}


def make_p4(pt, eta, phi, mass):
    """Build a pt/eta/phi/mass Lorentz vector from record scalars."""
    return vector.obj(pt=float(pt), eta=float(eta), phi=float(phi), mass=float(mass))


def make_met_p4(pt, phi):
    """Transverse-only Lorentz vector (eta = 0, mass = 0) used for MET."""
    return vector.obj(pt=float(pt), eta=0.0, phi=float(phi), mass=0.0)


def column(event, name):
    """Return branch ``name`` or an empty sequence for optional branches."""
    return getattr(event, name, ())


def collection_p4s(event, prefix):
    """Momenta of every object in the ``<prefix>_pt/eta/phi/mass`` branches."""
    pts = column(event, f"{prefix}_pt")
    etas = column(event, f"{prefix}_eta")
    phis = column(event, f"{prefix}_phi")
    masses = column(event, f"{prefix}_mass")
    return tuple(make_p4(pt, eta, phi, m) for pt, eta, phi, m in zip(pts, etas, phis, masses))


@dataclass(frozen=True, eq=False)
class LepCandidate:
    """Signal lepton (electron, muon or hadronic tau) of the selected leg pair."""

    index: int
    momentum: object
    charge: int
    leg_type: int
    iso: float
    gen_match: int = 0
    dxy: float = 0.0
    dz: float = 0.0

    @property
    def flavor(self):
        return LEPTON_FLAVORS.get(self.leg_type, "unknown")


@dataclass(frozen=True, eq=False)
class JetCandidate:
    index: int
    momentum: object
    resolution: float
    pu_id: int
    hadron_flavour: int = 0

    def with_momentum(self, p4):
        return dataclasses.replace(self, momentum=p4)


@dataclass(frozen=True, eq=False)
class SubJet:
    index: int
    momentum: object


@dataclass(frozen=True, eq=False)
class FatJetCandidate:
    index: int
    momentum: object
    m_softdrop: float
    subjets: tuple = ()


@dataclass(frozen=True, eq=False)
class MissingET:
    """Missing transverse momentum with its 2x2 covariance ``((xx, xy), (xy, yy))``."""

    momentum: object
    cov: tuple

    def with_momentum(self, p4):
        return dataclasses.replace(self, momentum=p4)


@dataclass(frozen=True, eq=False)
class HiggsBBCandidate:
    """Two-jet H->bb composite; daughters are kept in b-jet pair order."""

    first_daughter: JetCandidate
    second_daughter: JetCandidate

    @property
    def momentum(self):
        return self.first_daughter.momentum + self.second_daughter.momentum

    @property
    def daughter_momenta(self):
        return (self.first_daughter.momentum, self.second_daughter.momentum)


def build_lepton(event, index):
    """Build the lepton stored at position ``index`` of the ``lep_*`` branches."""
    n_leptons = len(event.lep_pt)
    if not 0 <= index < n_leptons:
        raise InvalidIndex(f"Lepton index {index} out of range for {n_leptons} leptons.")
    gen_match = column(event, "lep_gen_match")
    dxy = column(event, "lep_dxy")
    dz = column(event, "lep_dz")
    return LepCandidate(
        index=index,
        momentum=make_p4(event.lep_pt[index], event.lep_eta[index],
                         event.lep_phi[index], event.lep_mass[index]),
        charge=int(event.lep_q[index]),
        leg_type=int(event.lep_type[index]),
        iso=float(event.lep_iso[index]),
        gen_match=int(gen_match[index]) if len(gen_match) > index else 0,
        dxy=float(dxy[index]) if len(dxy) > index else 0.0,
        dz=float(dz[index]) if len(dz) > index else 0.0,
    )


def build_jets(event):
    hadron_flavour = column(event, "jets_hadronFlavour")
    jets = []
    for n, p4 in enumerate(collection_p4s(event, "jets")):
        jets.append(JetCandidate(
            index=n,
            momentum=p4,
            resolution=float(event.jets_resolution[n]),
            pu_id=int(event.jets_pu_id[n]),
            hadron_flavour=int(hadron_flavour[n]) if len(hadron_flavour) > n else 0,
        ))
    return tuple(jets)


def build_fat_jets(event):
    """Build fat jets with their subjets attached through ``subJets_parentIndex``."""
    subjet_p4s = collection_p4s(event, "subJets")
    parents = [int(p) for p in column(event, "subJets_parentIndex")]
    m_softdrop = column(event, "fatJets_m_softDrop")
    fat_jets = []
    for n, p4 in enumerate(collection_p4s(event, "fatJets")):
        subjets = tuple(
            SubJet(index=k, momentum=sub_p4)
            for k, (sub_p4, parent) in enumerate(zip(subjet_p4s, parents))
            if parent == n
        )
        fat_jets.append(FatJetCandidate(index=n, momentum=p4,
                                        m_softdrop=float(m_softdrop[n]), subjets=subjets))
    return tuple(fat_jets)


def build_met(event):
    cov_xy = float(event.pfMET_cov_01)
    cov = ((float(event.pfMET_cov_00), cov_xy), (cov_xy, float(event.pfMET_cov_11)))
    return MissingET(momentum=make_met_p4(event.pfMET_pt, event.pfMET_phi), cov=cov)
