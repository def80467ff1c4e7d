"""Bookkeeping around the HH kinematic fit.

The numerical fit itself is an external pure function (the *solver*) with the
signature::

    solver(leg1_p4, leg2_p4, bjet1_p4, bjet2_p4, met, resolution_1, resolution_2)
        -> (convergence, chi2, mass)

where ``met`` is a :class:`hhcoffea.candidates.MissingET` and the resolutions
are absolute jet energy resolutions.  Results already stored in the ntuple
side table (``kinFit_*`` branches) are read back instead of refitting.
"""

from dataclasses import dataclass

from scipy.stats import chi2 as chi2_distribution

from hhcoffea.analysis_config import CUTS
from hhcoffea.candidates import column


@dataclass(frozen=True)
class FitResults:
    convergence: int
    chi2: float
    probability: float
    mass: float

    @property
    def has_valid_mass(self):
        return self.convergence > 0


def fit_probability(chi2):
    """Upper-tail chi-square p-value for the fit's degrees of freedom."""
    return float(chi2_distribution.sf(chi2, CUTS["kinfit_ndof"]))


def make_fit_results(convergence, chi2, mass):
    chi2 = float(chi2)
    return FitResults(convergence=int(convergence), chi2=chi2,
                      probability=fit_probability(chi2), mass=float(mass))


def combination_pair_to_index(pair, n_objects):
    """Index of the unordered pair ``(i, j)`` in the list of all pairs of ``n_objects``.

    Pairs are enumerated as (0,1), (0,2), ..., (0,N-1), (1,2), ...
    """
    low, high = sorted(pair)
    if n_objects < 2 or low == high or low < 0 or high >= n_objects:
        raise ValueError(f"Bad combination pair {tuple(pair)} for N = {n_objects}.")
    return low * (n_objects - 1) - low * (low + 1) // 2 + high - 1


def lookup_stored_fit(event, pair_id):
    """Return stored :class:`FitResults` for ``pair_id`` or ``None`` if absent."""
    for n, stored_id in enumerate(column(event, "kinFit_jetPairId")):
        if int(stored_id) == pair_id:
            return make_fit_results(event.kinFit_convergence[n], event.kinFit_chi2[n], event.kinFit_m[n])
    return None


def run_solver(solver, leg1, leg2, bjet1, bjet2, met):
    """Call ``solver`` with absolute jet energy resolutions and wrap its output."""
    resolution_1 = bjet1.resolution * bjet1.momentum.E
    resolution_2 = bjet2.resolution * bjet2.momentum.E
    convergence, chi2, mass = solver(
        leg1.momentum, leg2.momentum, bjet1.momentum, bjet2.momentum,
        met, resolution_1, resolution_2,
    )
    return make_fit_results(convergence, chi2, mass)
