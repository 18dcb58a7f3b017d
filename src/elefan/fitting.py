"""
Fit-score evaluator: trace growth curves through the restructured LFQ data
and sum the scores they hit (ESP), normalised by ASP (Rn = ESP / ASP).
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from elefan.config import settings
from elefan.core import RestructuredLFQ
from elefan.growth import (
    GrowthParameters,
    cohort_anchors,
    cohort_lengths,
    max_age_years,
)

# 매우 작은 K 에서 cohort 수가 폭증하지 않도록 제한
MAX_COHORT_YEARS = 200


@dataclass(frozen=True)
class FitScore:
    """Detailed result of one curve evaluation."""

    esp: float
    rn: float
    feasible: bool  # False: 어떤 cohort 도 관측 범위를 지나지 않음
    column_scores: np.ndarray  # 표본별 최고 교차 점수 (교차 없으면 NaN)
    crossings: pd.DataFrame


class CurveScorer:
    """
    Precomputes sample times, class boundaries and scores of a restructured
    dataset so that the optimizers can call :meth:`score_vector` many times.
    Read-only after construction; safe to share between threads.
    """

    def __init__(
        self,
        lfq: RestructuredLFQ,
        agemax: Optional[int] = None,
        interpolate: bool = False,
    ):
        self.lfq = lfq
        self.agemax = settings.AGEMAX if agemax is None else agemax
        self.interpolate = interpolate

        self.t = lfq.t
        self.t_min = float(self.t.min())
        self.t_max = float(self.t.max())
        self.edges = lfq.bin_edges
        self.mids = lfq.mid_lengths
        self.rcounts = lfq.rcounts
        self.peaks_mat = lfq.peaks_mat
        self.asp = lfq.asp
        self._n_bins = lfq.n_lengths
        self._cols = np.arange(lfq.n_dates)
        self._positions = np.arange(lfq.n_lengths, dtype=float)

    def _cohorts(self, Linf, K, t_anchor, C, ts) -> Tuple[np.ndarray, np.ndarray]:
        n_back = min(max_age_years(K, C, self.agemax), MAX_COHORT_YEARS)
        anchors = cohort_anchors(t_anchor, self.t_min, self.t_max, n_back)
        return anchors, cohort_lengths(self.t, anchors, Linf, K, C, ts, self.agemax)

    def _crossing_scores(self, lengths: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Score of every (cohort, sample) crossing; NaN where the curve misses the grid."""
        cols = np.broadcast_to(self._cols, lengths.shape)
        valid = (lengths > 0) & (lengths >= self.edges[0]) & (lengths < self.edges[-1])
        scores = np.full(lengths.shape, np.nan)
        bins = np.full(lengths.shape, -1, dtype=np.int64)
        if not np.any(valid):
            return scores, bins

        hit = lengths[valid]
        c = cols[valid]
        b = np.searchsorted(self.edges, hit, side="right") - 1
        bins[valid] = b
        if self.interpolate:
            # 인접 중앙값 사이 선형 보간
            pos = np.interp(hit, self.mids, self._positions)
            lo = np.floor(pos).astype(np.int64)
            hi = np.minimum(lo + 1, self._n_bins - 1)
            frac = pos - lo
            scores[valid] = self.rcounts[lo, c] * (1 - frac) + self.rcounts[hi, c] * frac
        else:
            scores[valid] = self.rcounts[b, c]
        return scores, bins

    def score_vector(self, Linf, K, t_anchor, C=0.0, ts=0.0) -> Tuple[float, float]:
        """
        Hot path: (ESP, Rn) for raw parameter values.
        Never raises; degenerate candidates score (0, 0).
        """
        if not (np.isfinite([Linf, K, t_anchor, C, ts]).all() and Linf > 0 and K > 0):
            return 0.0, 0.0
        if self.asp <= 0:
            return 0.0, 0.0

        _, lengths = self._cohorts(Linf, K, t_anchor, C, ts)
        scores, _ = self._crossing_scores(lengths)
        best = np.where(np.isnan(scores), -np.inf, scores).max(axis=0)
        crossed = np.isfinite(best)
        if not np.any(crossed):
            return 0.0, 0.0
        esp = float(best[crossed].sum())
        return esp, esp / self.asp

    def __call__(self, x) -> float:
        """Rn for a parameter vector ``[Linf, K, t_anchor, C, ts]`` (C, ts optional)."""
        return self.score_vector(*x)[1]

    def evaluate(self, par: GrowthParameters) -> FitScore:
        """Detailed evaluation including every crossing (for reporting/plotting)."""
        anchors, lengths = self._cohorts(par.Linf, par.K, par.t_anchor, par.C, par.ts)
        scores, bins = self._crossing_scores(lengths)

        rows, cols = np.nonzero(~np.isnan(scores))
        crossings = pd.DataFrame(
            {
                "cohort": anchors[rows],
                "date": self.lfq.dates[cols],
                "t": self.t[cols],
                "length": lengths[rows, cols],
                "bin": bins[rows, cols],
                "peak": self.peaks_mat[bins[rows, cols], cols],
                "score": scores[rows, cols],
            }
        )

        column_scores = np.full(self.lfq.n_dates, np.nan)
        if len(crossings):
            best = crossings.groupby(cols)["score"].max()
            column_scores[best.index.to_numpy()] = best.to_numpy()

        esp, rn = self.score_vector(par.Linf, par.K, par.t_anchor, par.C, par.ts)
        return FitScore(
            esp=esp,
            rn=rn,
            feasible=bool(len(crossings)),
            column_scores=column_scores,
            crossings=crossings,
        )


def fit_curves(
    lfq: RestructuredLFQ,
    par: GrowthParameters,
    agemax: Optional[int] = None,
    interpolate: bool = False,
) -> FitScore:
    """Score one set of growth parameters against a restructured dataset."""
    return CurveScorer(lfq, agemax=agemax, interpolate=interpolate).evaluate(par)
