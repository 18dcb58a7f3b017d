"""
Response surface analysis (RSA) and K-scan: exhaustive Linf x K grid with a
t_anchor line search per cell.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from loguru import logger
from tqdm import tqdm

from elefan.config import settings
from elefan.errors import InvalidParameter
from elefan.fitting import CurveScorer
from elefan.growth import GrowthParameters
from .base import ScoreSurface, SearchResult, SearchStrategy


def anchor_line_search(
    scorer: CurveScorer,
    Linf: float,
    K: float,
    n_anchor: int,
    C: float = 0.0,
    ts: float = 0.0,
    refine: bool = True,
) -> Tuple[float, float, int]:
    """
    Best t_anchor for a fixed (Linf, K): coarse grid over [0, 1), then a finer
    grid around the best coarse value. Returns (t_anchor, Rn, n_evaluations).
    """
    coarse = np.arange(n_anchor) / n_anchor
    candidates = [coarse]
    scores = [np.array([scorer.score_vector(Linf, K, ta, C, ts)[1] for ta in coarse])]

    if refine:
        centre = coarse[int(np.argmax(scores[0]))]
        step = 1.0 / n_anchor
        fine = np.mod(centre + np.linspace(-step, step, 2 * n_anchor + 1)[1:-1], 1.0)
        candidates.append(fine)
        scores.append(np.array([scorer.score_vector(Linf, K, ta, C, ts)[1] for ta in fine]))

    anchors = np.concatenate(candidates)
    rn = np.concatenate(scores)
    best = int(np.argmax(rn))
    return float(anchors[best]), float(rn[best]), len(anchors)


def _scan_row(
    scorer: CurveScorer,
    K: float,
    Linf_range: Sequence[float],
    t_anchor: Optional[float],
    n_anchor: int,
    C: float,
    ts: float,
    refine: bool,
) -> List[Tuple[float, float, int]]:
    row = []
    for Linf in Linf_range:
        if t_anchor is None:
            row.append(anchor_line_search(scorer, Linf, K, n_anchor, C, ts, refine))
        else:
            row.append((t_anchor, scorer.score_vector(Linf, K, t_anchor, C, ts)[1], 1))
    return row


class ResponseSurfaceSearch(SearchStrategy):
    """
    모든 (K, Linf) 조합을 독립적으로 평가 (병렬 가능).
    t_anchor 를 고정하지 않으면 셀마다 line search 로 최적 t_anchor 를 찾음.
    """

    name = "ELEFAN_RSA"

    def __init__(
        self,
        Linf_range: Sequence[float],
        K_range: Sequence[float],
        t_anchor: Optional[float] = None,
        C: float = 0.0,
        ts: float = 0.0,
        n_anchor: int = None,
        refine: bool = True,
        n_jobs: int = None,
        backend: Optional[str] = None,
        progress: bool = False,
    ):
        self.Linf_range = np.asarray(Linf_range, dtype=float)
        self.K_range = np.asarray(K_range, dtype=float)
        self.n_anchor = settings.GRID_N_ANCHOR if n_anchor is None else n_anchor
        self.n_jobs = settings.N_JOBS if n_jobs is None else n_jobs
        self.backend = backend
        self.progress = progress
        self.refine = refine

        if self.Linf_range.size == 0 or self.K_range.size == 0:
            raise InvalidParameter("Linf_range and K_range must not be empty")
        if np.any(self.Linf_range <= 0) or np.any(self.K_range <= 0):
            raise InvalidParameter("Linf_range and K_range must be positive")
        if self.n_anchor < 1:
            raise InvalidParameter("n_anchor must be >= 1")

        # 고정값 검증 (GrowthParameters 규칙 재사용)
        GrowthParameters(
            Linf=float(self.Linf_range[0]),
            K=float(self.K_range[0]),
            t_anchor=0.0 if t_anchor is None else t_anchor,
            C=C,
            ts=ts,
        )
        self.t_anchor = t_anchor
        self.C = C
        self.ts = ts

    def search(self, scorer: CurveScorer) -> SearchResult:
        logger.info(
            f"{self.name}: {len(self.K_range)} K x {len(self.Linf_range)} Linf cells "
            f"(n_jobs={self.n_jobs})"
        )
        rows = Parallel(n_jobs=self.n_jobs, backend=self.backend)(
            delayed(_scan_row)(
                scorer,
                K,
                self.Linf_range,
                self.t_anchor,
                self.n_anchor,
                self.C,
                self.ts,
                self.refine,
            )
            for K in tqdm(self.K_range, desc=self.name, disable=not self.progress)
        )

        # 모든 작업 완료 후 표면 조립
        ta = np.array([[cell[0] for cell in row] for row in rows])
        rn = np.array([[cell[1] for cell in row] for row in rows])
        n_evals = int(sum(cell[2] for row in rows for cell in row))

        index = pd.Index(self.K_range, name="K")
        columns = pd.Index(self.Linf_range, name="Linf")
        surface = ScoreSurface(
            rn=pd.DataFrame(rn, index=index, columns=columns),
            t_anchor=pd.DataFrame(ta, index=index, columns=columns),
        )

        trace = pd.DataFrame(
            {
                "K": self.K_range,
                "best": np.maximum.accumulate(rn.max(axis=1)),
                "mean": rn.mean(axis=1),
            }
        )

        K, Linf, t_anchor, best_rn = surface.best()
        logger.info(
            f"{self.name}: best Rn={best_rn:.4f} at Linf={Linf}, K={K}, t_anchor={t_anchor:.3f}"
        )
        names = ["Linf", "K", "t_anchor", "C", "ts"]
        return self._result(
            scorer,
            [Linf, K, t_anchor, self.C, self.ts],
            names,
            trace,
            n_evals,
            "exhausted",
            surface=surface,
        )


class KScanSearch(ResponseSurfaceSearch):
    """K-scan: fixed Linf, scan K only (one-column response surface)."""

    name = "ELEFAN_KScan"

    def __init__(self, Linf: float, K_range: Sequence[float], **kwargs):
        super().__init__(Linf_range=[Linf], K_range=K_range, **kwargs)
