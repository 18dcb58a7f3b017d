"""
Simulated annealing search (ELEFAN_SA).
Minimises the cost -Rn with a geometric cooling schedule and the
Metropolis acceptance rule; the best point ever visited is returned.
"""

import math
import time
from typing import Optional

import numpy as np
import pandas as pd
from loguru import logger
from pydantic import Field

from elefan.config import settings
from elefan.fitting import CurveScorer
from elefan.growth import ElefanModel, GrowthParameters
from .base import SearchBounds, SearchResult, SearchStrategy, reflect, search_dims


class AnnealingConfig(ElefanModel):
    """Hyperparameters of the annealing schedule."""

    maxiter: int = Field(..., ge=1, description="Number of temperature steps")
    n_inner: int = Field(..., ge=1, description="Proposals per temperature step")
    init_temp: float = Field(..., gt=0)
    cooling: float = Field(..., gt=0, lt=1, description="T_k = init_temp * cooling^k")
    step: float = Field(..., gt=0, description="Proposal sd as a fraction of the box width")
    max_time: Optional[float] = Field(None, gt=0, description="Wall-clock budget (s)")
    seed: Optional[int] = Field(None, ge=0)


class SimulatedAnnealing(SearchStrategy):
    name = "ELEFAN_SA"

    def __init__(
        self,
        bounds: SearchBounds,
        seasonalised: bool = False,
        init_par: Optional[GrowthParameters] = None,
        maxiter: int = None,
        n_inner: int = None,
        init_temp: float = None,
        cooling: float = None,
        step: float = None,
        max_time: float = None,
        seed: Optional[int] = None,
    ):
        self.bounds = bounds
        self.seasonalised = seasonalised
        self.init_par = init_par
        self.config = AnnealingConfig(
            maxiter=settings.SA_MAXITER if maxiter is None else maxiter,
            n_inner=settings.SA_N_INNER if n_inner is None else n_inner,
            init_temp=settings.SA_INIT_TEMP if init_temp is None else init_temp,
            cooling=settings.SA_COOLING if cooling is None else cooling,
            step=settings.SA_STEP if step is None else step,
            max_time=settings.SA_MAX_TIME if max_time is None else max_time,
            seed=seed,
        )

    def _start(self, names, low, up) -> np.ndarray:
        if self.init_par is None:
            return (low + up) / 2
        return reflect(np.array([getattr(self.init_par, n) for n in names]), low, up)

    def search(self, scorer: CurveScorer) -> SearchResult:
        cfg = self.config
        names = search_dims(self.seasonalised)
        low, up = self.bounds.arrays(names)
        rng = np.random.default_rng(cfg.seed)

        x = self._start(names, low, up)
        fx = scorer(x)
        best_x, best_f = x.copy(), fx
        n_evals = 1
        temp = cfg.init_temp
        width = up - low

        logger.info(f"{self.name}: {cfg.maxiter} steps x {cfg.n_inner} proposals, dims={names}")
        started = time.perf_counter()
        stop_reason = "maxiter"
        trace = []

        for k in range(cfg.maxiter):
            scale = width * cfg.step * (temp / cfg.init_temp)
            step_scores = np.empty(cfg.n_inner)
            for i in range(cfg.n_inner):
                cand = reflect(x + rng.normal(size=len(names)) * scale, low, up)
                fc = scorer(cand)
                n_evals += 1
                step_scores[i] = fc

                # cost = -Rn; 개선되면 무조건 채택, 아니면 exp(-delta / T) 확률
                delta = fx - fc
                if delta <= 0 or rng.random() < math.exp(-delta / temp):
                    x, fx = cand, fc
                    if fx > best_f:
                        best_x, best_f = x.copy(), fx

            trace.append(
                {
                    "iteration": k,
                    "temperature": temp,
                    "current": fx,
                    "best": best_f,
                    "mean": float(step_scores.mean()),
                }
            )
            logger.debug(f"{self.name} step {k}: T={temp:.4g} current={fx:.4f} best={best_f:.4f}")
            temp *= cfg.cooling

            if cfg.max_time is not None and time.perf_counter() - started > cfg.max_time:
                stop_reason = "time"
                break

        result = self._result(scorer, best_x, names, pd.DataFrame(trace), n_evals, stop_reason)
        logger.info(
            f"{self.name}: Rn={result.rn:.4f} Linf={result.par.Linf:.2f} K={result.par.K:.3f} "
            f"t_anchor={result.par.t_anchor:.3f} ({stop_reason}, {n_evals} evaluations)"
        )
        return result
