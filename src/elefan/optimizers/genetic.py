"""
Real-coded genetic algorithm search (ELEFAN_GA).
"""

from typing import Optional

import numpy as np
import pandas as pd
from loguru import logger
from pydantic import Field, model_validator
from tqdm import tqdm

from elefan.config import settings
from elefan.fitting import CurveScorer
from elefan.growth import ElefanModel
from .base import SearchBounds, SearchResult, SearchStrategy, reflect, search_dims

# 변이 표준편차 = 탐색 구간 폭 * MUTATION_SCALE
MUTATION_SCALE = 0.1
TOURNAMENT_SIZE = 2


class GeneticConfig(ElefanModel):
    popsize: int = Field(..., ge=2)
    maxiter: int = Field(..., ge=1, description="Maximum number of generations")
    run: int = Field(..., ge=1, description="Stop after this many generations without improvement")
    pmutation: float = Field(..., ge=0, le=1)
    pcrossover: float = Field(..., ge=0, le=1)
    elitism: int = Field(..., ge=0)
    seed: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def check_elitism(self):
        if self.elitism >= self.popsize:
            raise ValueError("elitism must be smaller than popsize")
        return self


class GeneticSearch(SearchStrategy):
    name = "ELEFAN_GA"

    def __init__(
        self,
        bounds: SearchBounds,
        seasonalised: bool = False,
        popsize: int = None,
        maxiter: int = None,
        run: int = None,
        pmutation: float = None,
        pcrossover: float = None,
        elitism: int = None,
        seed: Optional[int] = None,
        progress: bool = False,
    ):
        self.bounds = bounds
        self.seasonalised = seasonalised
        self.progress = progress
        self.config = GeneticConfig(
            popsize=settings.GA_POPSIZE if popsize is None else popsize,
            maxiter=settings.GA_MAXITER if maxiter is None else maxiter,
            run=settings.GA_RUN if run is None else run,
            pmutation=settings.GA_PMUTATION if pmutation is None else pmutation,
            pcrossover=settings.GA_PCROSSOVER if pcrossover is None else pcrossover,
            elitism=settings.GA_ELITISM if elitism is None else elitism,
            seed=seed,
        )

    @staticmethod
    def _tournament(rng: np.random.Generator, fitness: np.ndarray, n: int) -> np.ndarray:
        entrants = rng.integers(0, len(fitness), size=(n, TOURNAMENT_SIZE))
        winners = np.argmax(fitness[entrants], axis=1)
        return entrants[np.arange(n), winners]

    def _breed(self, rng, pop, fitness, low, up) -> np.ndarray:
        cfg = self.config
        n, d = pop.shape
        children = pop[self._tournament(rng, fitness, n)].copy()

        # blend crossover (쌍 단위)
        for i in range(0, n - 1, 2):
            if rng.random() < cfg.pcrossover:
                a = rng.random(d)
                p1, p2 = children[i].copy(), children[i + 1].copy()
                children[i] = a * p1 + (1 - a) * p2
                children[i + 1] = (1 - a) * p1 + a * p2

        # gaussian mutation
        mask = rng.random((n, d)) < cfg.pmutation
        noise = rng.normal(size=(n, d)) * (up - low) * MUTATION_SCALE
        children = np.where(mask, children + noise, children)
        return reflect(children, low, up)

    def search(self, scorer: CurveScorer) -> SearchResult:
        cfg = self.config
        names = search_dims(self.seasonalised)
        low, up = self.bounds.arrays(names)
        rng = np.random.default_rng(cfg.seed)

        pop = low + rng.random((cfg.popsize, len(names))) * (up - low)
        fitness = np.array([scorer(ind) for ind in pop])
        n_evals = cfg.popsize

        best_i = int(np.argmax(fitness))
        best_x, best_f = pop[best_i].copy(), float(fitness[best_i])
        stale = 0
        stop_reason = "maxiter"
        trace = [self._record(0, fitness, best_f)]

        logger.info(f"{self.name}: popsize={cfg.popsize}, maxiter={cfg.maxiter}, dims={names}")
        for gen in tqdm(range(1, cfg.maxiter + 1), desc=self.name, disable=not self.progress):
            elite = np.argsort(-fitness, kind="stable")[: cfg.elitism]
            children = self._breed(rng, pop, fitness, low, up)
            child_fit = np.array([scorer(ind) for ind in children[cfg.elitism :]])
            n_evals += len(child_fit)

            # 엘리트는 재평가 없이 그대로 유지
            children[: cfg.elitism] = pop[elite]
            pop = children
            fitness = np.concatenate((fitness[elite], child_fit))

            gen_i = int(np.argmax(fitness))
            if fitness[gen_i] > best_f:
                best_x, best_f = pop[gen_i].copy(), float(fitness[gen_i])
                stale = 0
            else:
                stale += 1
            trace.append(self._record(gen, fitness, best_f))

            if stale >= cfg.run:
                stop_reason = "run"
                break

        result = self._result(scorer, best_x, names, pd.DataFrame(trace), n_evals, stop_reason)
        logger.info(
            f"{self.name}: Rn={result.rn:.4f} Linf={result.par.Linf:.2f} K={result.par.K:.3f} "
            f"t_anchor={result.par.t_anchor:.3f} ({stop_reason} after {len(trace) - 1} generations)"
        )
        return result

    @staticmethod
    def _record(gen: int, fitness: np.ndarray, best_f: float) -> dict:
        return {
            "generation": gen,
            "best": best_f,
            "max": float(fitness.max()),
            "mean": float(fitness.mean()),
            "median": float(np.median(fitness)),
        }
