"""
Base interface for all growth-parameter search strategies.
Strategy Pattern implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from pydantic import model_validator

from elefan.fitting import CurveScorer
from elefan.growth import ElefanModel, GrowthParameters

PARAM_NAMES = ("Linf", "K", "t_anchor", "C", "ts")


class SearchBounds(ElefanModel):
    """
    Box constraints (low, up) per growth parameter.
    t_anchor / C / ts 기본값은 전체 구간 [0, 1].
    """

    Linf: Tuple[float, float]
    K: Tuple[float, float]
    t_anchor: Tuple[float, float] = (0.0, 1.0)
    C: Tuple[float, float] = (0.0, 1.0)
    ts: Tuple[float, float] = (0.0, 1.0)

    @model_validator(mode="after")
    def check_limits(self):
        for name in PARAM_NAMES:
            low, up = getattr(self, name)
            if low > up:
                raise ValueError(f"{name}: low ({low}) > up ({up})")
        if self.Linf[0] <= 0 or self.K[0] <= 0:
            raise ValueError("Linf and K bounds must be positive")
        for name in ("t_anchor", "C", "ts"):
            low, up = getattr(self, name)
            if low < 0 or up > 1:
                raise ValueError(f"{name} bounds must lie within [0, 1]")
        return self

    def arrays(self, names: Sequence[str]) -> Tuple[np.ndarray, np.ndarray]:
        limits = np.array([getattr(self, n) for n in names], dtype=float)
        return limits[:, 0], limits[:, 1]


def search_dims(seasonalised: bool) -> List[str]:
    """비계절 모델은 C, ts 를 0 으로 고정하고 탐색 차원에서 제외."""
    return list(PARAM_NAMES) if seasonalised else list(PARAM_NAMES[:3])


def reflect(x: np.ndarray, low: np.ndarray, up: np.ndarray) -> np.ndarray:
    """Reflect proposals back into [low, up] (period 2*(up-low)), then clip."""
    x = np.asarray(x, dtype=float)
    width = up - low
    period = np.where(width > 0, 2 * width, 1.0)
    z = np.mod(x - low, period)
    z = np.where(z > width, period - z, z)
    return np.clip(np.where(width > 0, low + z, low), low, up)


def to_parameters(x: Sequence[float], names: Sequence[str]) -> GrowthParameters:
    values = dict(zip(names, (float(v) for v in x)))
    # t_anchor = 1 은 한 해 뒤의 t_anchor = 0 과 같은 cohort 집합
    for phase in ("t_anchor", "ts"):
        if phase in values:
            values[phase] = values[phase] % 1.0
    return GrowthParameters(**values)


@dataclass(frozen=True)
class ScoreSurface:
    """Rn (and the t_anchor achieving it) per candidate (K row, Linf column)."""

    rn: pd.DataFrame
    t_anchor: pd.DataFrame

    def best(self) -> Tuple[float, float, float, float]:
        """(K, Linf, t_anchor, Rn) of the highest cell; first one in row-major order on ties."""
        values = self.rn.to_numpy()
        i, j = np.unravel_index(np.argmax(values), values.shape)
        return (
            float(self.rn.index[i]),
            float(self.rn.columns[j]),
            float(self.t_anchor.iat[i, j]),
            float(values[i, j]),
        )


@dataclass(frozen=True)
class SearchResult:
    par: GrowthParameters
    rn: float
    esp: float
    trace: pd.DataFrame  # 반복(세대)별 best / mean
    n_evaluations: int
    stop_reason: str  # "maxiter" | "time" | "run" | "exhausted"
    method: str
    surface: Optional[ScoreSurface] = None


class SearchStrategy(ABC):
    """모든 성장 파라미터 탐색 전략의 부모 클래스"""

    name = "search"

    @abstractmethod
    def search(self, scorer: CurveScorer) -> SearchResult:
        """Rn 을 최대화하는 파라미터를 찾아 SearchResult 로 반환"""
        pass

    def _result(
        self,
        scorer: CurveScorer,
        x: Sequence[float],
        names: Sequence[str],
        trace: pd.DataFrame,
        n_evaluations: int,
        stop_reason: str,
        surface: Optional[ScoreSurface] = None,
    ) -> SearchResult:
        par = to_parameters(x, names)
        esp, rn = scorer.score_vector(par.Linf, par.K, par.t_anchor, par.C, par.ts)
        return SearchResult(
            par=par,
            rn=rn,
            esp=esp,
            trace=trace,
            n_evaluations=n_evaluations,
            stop_reason=stop_reason,
            method=self.name,
            surface=surface,
        )

