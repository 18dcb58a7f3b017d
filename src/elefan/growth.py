"""
Seasonalised von Bertalanffy growth function (soVBGF).
Somers (1988), Pauly & Gaschuetz (1979).
"""

import math
from typing import Optional

import numpy as np
import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from scipy.optimize import brentq

from elefan.errors import InvalidParameter

TWO_PI = 2.0 * np.pi
# 0.95 * Linf 를 넘으면 cohort 추적 종료
LINF_CUTOFF = 0.95


class ElefanModel(BaseModel):
    """Frozen pydantic model; validation failures surface as InvalidParameter."""

    model_config = ConfigDict(frozen=True)

    def __init__(self, **data):
        try:
            super().__init__(**data)
        except ValidationError as e:
            raise InvalidParameter(str(e)) from e


class GrowthParameters(ElefanModel):
    """
    Growth parameter model.
    Linf, K > 0; t_anchor, ts in [0, 1); C in [0, 1] (0 = non-seasonal).
    """

    Linf: float = Field(..., gt=0, description="Asymptotic length")
    K: float = Field(..., gt=0, description="Growth coefficient (1/year)")
    t_anchor: float = Field(0.5, ge=0, lt=1, description="Fractional-year anchor")
    C: float = Field(0.0, ge=0, le=1, description="Seasonal amplitude")
    ts: float = Field(0.0, ge=0, lt=1, description="Seasonal phase")

    @property
    def seasonal(self) -> bool:
        return self.C > 0


def _vbgf(t, Linf, K, t_anchor, C=0.0, ts=0.0):
    expo = K * (t - t_anchor)
    if C != 0:
        expo = expo + (C * K / TWO_PI) * np.sin(TWO_PI * (t - ts))
    return Linf * (1.0 - np.exp(-expo))


def vbgf(par: GrowthParameters, t):
    """Length at (decimal-year) time ``t``; vectorised over ``t``."""
    return _vbgf(np.asarray(t, dtype=float), par.Linf, par.K, par.t_anchor, par.C, par.ts)


def age_at_length(length, par: GrowthParameters):
    """
    Time at which the curve anchored at ``par.t_anchor`` reaches ``length``.

    Non-seasonal curves use the closed form. Seasonal curves (non-decreasing
    for C <= 1) are bracketed one oscillation cycle at a time and solved
    with brentq inside that cycle.
    """
    lengths = np.asarray(length, dtype=float)
    if np.any(lengths >= par.Linf):
        raise InvalidParameter(f"length must be below Linf={par.Linf}")

    guess = par.t_anchor - np.log(1.0 - lengths / par.Linf) / par.K
    if not par.seasonal:
        return guess if lengths.ndim else float(guess)

    out = np.array(
        [_solve_seasonal(L, g, par) for L, g in zip(lengths.ravel(), np.ravel(guess))]
    )
    return out.reshape(lengths.shape) if lengths.ndim else float(out[0])


def _solve_seasonal(length: float, guess: float, par: GrowthParameters, max_cycles: int = 1000) -> float:
    def f(t):
        return _vbgf(t, par.Linf, par.K, par.t_anchor, par.C, par.ts) - length

    # 한 주기(1년) 단위로 구간 이동
    lo = par.ts + math.floor(guess - par.ts)
    for _ in range(max_cycles):
        if f(lo) > 0:
            lo -= 1.0
        elif f(lo + 1.0) < 0:
            lo += 1.0
        else:
            return brentq(f, lo, lo + 1.0)
    raise InvalidParameter(f"no crossing of length {float(length)} within {max_cycles} cycles")


def max_age(par: GrowthParameters, agemax: Optional[int] = None) -> int:
    """Years a cohort is followed: explicit ``agemax`` or until > 0.95 Linf."""
    if agemax is not None and agemax < 1:
        raise InvalidParameter("agemax must be >= 1")
    return max_age_years(par.K, par.C, agemax)


def max_age_years(K: float, C: float = 0.0, agemax: Optional[int] = None) -> int:
    if agemax is not None:
        return int(agemax)
    # K(t - tA) - CK/2pi >= ln(20) 이면 seasonal 곡선도 0.95 Linf 이상
    return int(math.ceil(math.log(1.0 / (1.0 - LINF_CUTOFF)) / K + C / TWO_PI))


def cohort_anchors(t_anchor: float, t_min: float, t_max: float, n_back: int) -> np.ndarray:
    """Absolute cohort anchors ``year + t_anchor`` covering [t_min - n_back, t_max]."""
    years = np.arange(math.floor(t_min) - n_back, math.floor(t_max) + 1, dtype=float)
    return years + t_anchor


def cohort_lengths(times, anchors, Linf, K, C=0.0, ts=0.0, agemax=None) -> np.ndarray:
    """
    Length of every cohort (rows) at every time (columns).
    태어나기 전이거나 최대 연령을 넘은 cohort 는 NaN.
    """
    times = np.asarray(times, dtype=float)[np.newaxis, :]
    anchors = np.asarray(anchors, dtype=float)[:, np.newaxis]
    age = times - anchors
    lengths = _vbgf(times, Linf, K, anchors, C, ts)
    alive = age >= 0
    if agemax is None:
        alive &= lengths <= LINF_CUTOFF * Linf
    else:
        alive &= age <= agemax
    return np.where(alive, lengths, np.nan)


def cohort_trajectories(par: GrowthParameters, times, agemax: Optional[int] = None) -> pd.DataFrame:
    """
    Long-format (cohort, t, length) table of every cohort alive at ``times``.
    Cohorts restart at ``t_anchor + n`` for each year n of the time range.
    """
    times = np.atleast_1d(np.asarray(times, dtype=float))
    n_back = max_age(par, agemax)
    anchors = cohort_anchors(par.t_anchor, times.min(), times.max(), n_back)
    lengths = cohort_lengths(times, anchors, par.Linf, par.K, par.C, par.ts, agemax)

    rows, cols = np.nonzero(~np.isnan(lengths))
    return pd.DataFrame(
        {
            "cohort": anchors[rows],
            "t": times[cols],
            "length": lengths[rows, cols],
        }
    )
