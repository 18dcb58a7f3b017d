"""
ELEFAN Pipeline Manager.
Restructures an LFQ dataset once and runs every registered search strategy
against the same scorer; jackknife batches repeat a fit per omitted sample.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from loguru import logger

from elefan.config import settings
from elefan.core import LFQData
from elefan.errors import InvalidParameter
from elefan.fitting import CurveScorer
from elefan.optimizers.base import SearchResult, SearchStrategy
from elefan.processing import LFQRestructurer


class ElefanPipeline:
    def __init__(
        self,
        ma: int = None,
        addl_sqrt: bool = None,
        agemax: Optional[int] = None,
        interpolate: bool = False,
    ):
        self.ma = settings.MA if ma is None else ma
        self.addl_sqrt = settings.ADDL_SQRT if addl_sqrt is None else addl_sqrt
        self.agemax = agemax
        self.interpolate = interpolate
        LFQRestructurer.check_window(self.ma)
        self.strategies: List[SearchStrategy] = []

    def add_strategy(self, strategy: SearchStrategy):
        self.strategies.append(strategy)

    def scorer(self, lfq: LFQData) -> CurveScorer:
        restructured = LFQRestructurer.restructure(lfq, self.ma, self.addl_sqrt)
        return CurveScorer(restructured, agemax=self.agemax, interpolate=self.interpolate)

    def run(self, lfq: LFQData) -> Dict[str, Any]:
        """
        데이터를 받아 재구성 후 등록된 탐색 전략을 실행합니다.
        결과 키: "lfq" (재구성 데이터), "ASP", 그리고 전략 이름별 SearchResult.
        """
        # 1. 재구성 (Restructuring)
        scorer = self.scorer(lfq)
        results: Dict[str, Any] = {"lfq": scorer.lfq, "ASP": scorer.asp}

        # 2. 전략별 탐색 (Search)
        for strategy in self.strategies:
            key = strategy.name
            n = 2
            while key in results:
                key = f"{strategy.name}_{n}"
                n += 1
            results[key] = strategy.search(scorer)

        return results


def _omit_sample(lfq: LFQData, i: int) -> LFQData:
    keep = np.arange(lfq.n_dates) != i
    return LFQData(
        mid_lengths=lfq.mid_lengths,
        dates=lfq.dates[keep],
        catch=lfq.catch[:, keep],
        par=lfq.par,
    )


def _fit_without(pipeline: ElefanPipeline, strategy: SearchStrategy, lfq: LFQData, i: int) -> SearchResult:
    return strategy.search(pipeline.scorer(_omit_sample(lfq, i)))


@dataclass(frozen=True)
class JackknifeResult:
    estimates: pd.DataFrame  # 생략된 표본마다 한 행
    mean: pd.Series
    se: pd.Series


def jackknife(
    lfq: LFQData,
    strategy: SearchStrategy,
    ma: int = None,
    addl_sqrt: bool = None,
    agemax: Optional[int] = None,
    n_jobs: int = None,
    backend: Optional[str] = None,
) -> JackknifeResult:
    """
    Leave-one-sample-out fits (Quenouille 1956; Tukey 1958), run as
    independent jobs. SE = sqrt((n-1)/n * sum((theta_i - mean)^2)).
    """
    if lfq.n_dates < 2:
        raise InvalidParameter("jackknife needs at least 2 sampling dates")
    pipeline = ElefanPipeline(ma=ma, addl_sqrt=addl_sqrt, agemax=agemax)
    n_jobs = settings.N_JOBS if n_jobs is None else n_jobs

    logger.info(f"Jackknife: {lfq.n_dates} fits with {strategy.name} (n_jobs={n_jobs})")
    fits = Parallel(n_jobs=n_jobs, backend=backend)(
        delayed(_fit_without)(pipeline, strategy, lfq, i) for i in range(lfq.n_dates)
    )

    estimates = pd.DataFrame(
        [
            {
                "omitted": lfq.dates[i],
                "Linf": fit.par.Linf,
                "K": fit.par.K,
                "t_anchor": fit.par.t_anchor,
                "C": fit.par.C,
                "ts": fit.par.ts,
                "Rn": fit.rn,
            }
            for i, fit in enumerate(fits)
        ]
    )
    values = estimates[["Linf", "K", "t_anchor", "C", "ts", "Rn"]]
    n = len(values)
    mean = values.mean()
    se = np.sqrt((n - 1) / n * ((values - mean) ** 2).sum())
    return JackknifeResult(estimates=estimates, mean=mean, se=se)
