"""Ranking of jet candidates by a tagging score.

``order_jets`` is the single ranking primitive used by the signal-jet
selection, the generic ``EventInfo.select_jets`` and the HT sum.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Any, Iterable


class JetOrdering(str, enum.Enum):
    """Tagger whose score ranks b-jet candidates."""

    Pt = "Pt"
    CSV = "CSV"
    DeepCSV = "DeepCSV"
    DeepFlavour = "DeepFlavour"


@dataclass(frozen=True)
class JetInfo:
    """Jet momentum, its position in the jet array, and the ranking score."""

    p4: Any
    index: int
    tag: float


def order_jets(
    jet_infos: Iterable[JetInfo],
    apply_hard_cut: bool = False,
    pt_cut: float = -math.inf,
    eta_cut: float = math.inf,
) -> list[JetInfo]:
    """Return jets sorted by descending tag (ties by descending pt).

    With ``apply_hard_cut`` only jets with ``pt > pt_cut`` and
    ``|eta| < eta_cut`` are kept.
    """
    if apply_hard_cut:
        selected = [
            jet for jet in jet_infos
            if jet.p4.pt > pt_cut and abs(jet.p4.eta) < eta_cut
        ]
    else:
        selected = list(jet_infos)
    # sorted() is stable, so fully tied jets keep their input order.
    return sorted(selected, key=lambda jet: (jet.tag, jet.p4.pt), reverse=True)
