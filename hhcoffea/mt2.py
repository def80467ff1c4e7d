"""Asymmetric MT2 for the bbtautau topology.

The b-jets are the visible systems and the two tau legs (plus MET) play the
role of the invisible particles, with the leg masses as test masses.  MT2 is

    min over q_a + q_b = p_miss of max(mT(a, q_a), mT(b, q_b))

and mT^2 is convex in the invisible momentum, so the minimum is found with
two nested bounded scalar minimisations.
"""

from __future__ import annotations

import math

from scipy.optimize import minimize_scalar

_XATOL = 1e-5


def _mt_squared(vis_mass, vis_px, vis_py, inv_mass, inv_px, inv_py):
    et_vis = math.sqrt(vis_mass * vis_mass + vis_px * vis_px + vis_py * vis_py)
    et_inv = math.sqrt(inv_mass * inv_mass + inv_px * inv_px + inv_py * inv_py)
    return (vis_mass * vis_mass + inv_mass * inv_mass
            + 2.0 * (et_vis * et_inv - vis_px * inv_px - vis_py * inv_py))


def asymmetric_mt2(vis_a, vis_b, miss_px, miss_py, chi_a=0.0, chi_b=0.0):
    """MT2 for visible ``(mass, px, py)`` tuples ``vis_a``/``vis_b`` and missing pT."""
    mass_a, px_a, py_a = vis_a
    mass_b, px_b, py_b = vis_b
    scale = (math.hypot(px_a, py_a) + math.hypot(px_b, py_b)
             + math.hypot(miss_px, miss_py) + mass_a + mass_b + chi_a + chi_b)
    bound = 10.0 * scale + 1.0

    def objective(qx, qy):
        return max(
            _mt_squared(mass_a, px_a, py_a, chi_a, qx, qy),
            _mt_squared(mass_b, px_b, py_b, chi_b, miss_px - qx, miss_py - qy),
        )

    def best_over_qy(qx):
        result = minimize_scalar(lambda qy: objective(qx, qy), bounds=(-bound, bound),
                                 method="bounded", options={"xatol": _XATOL})
        return result.fun

    result = minimize_scalar(best_over_qy, bounds=(-bound, bound),
                             method="bounded", options={"xatol": _XATOL})
    return math.sqrt(max(result.fun, 0.0))


def calculate_mt2(leg1_p4, leg2_p4, bjet1_p4, bjet2_p4, met_p4):
    """MT2 with the b-jets visible and ``leg1 + leg2 + MET`` as missing pT."""
    miss_px = leg1_p4.px + leg2_p4.px + met_p4.px
    miss_py = leg1_p4.py + leg2_p4.py + met_p4.py
    return asymmetric_mt2(
        (bjet1_p4.mass, bjet1_p4.px, bjet1_p4.py),
        (bjet2_p4.mass, bjet2_p4.px, bjet2_p4.py),
        miss_px, miss_py,
        chi_a=leg1_p4.mass, chi_b=leg2_p4.mass,
    )
