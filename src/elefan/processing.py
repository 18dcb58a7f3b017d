"""
ELEFAN restructuring engine.
Follows the steps of Gayanilo (1997) FAO-ICLARM stock assessment tools
(steps A-F), with the optional square-root adjustment of Brey et al. (1988).
"""

from typing import Tuple

import numpy as np
from loguru import logger

from elefan.config import settings
from elefan.core import LFQData, RestructuredLFQ
from elefan.core import check_window as _check_window


def _runs(mask: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Start/end (exclusive) indices of maximal True runs in a 1-D bool mask."""
    padded = np.concatenate(([False], mask, [False])).astype(np.int8)
    edges = np.diff(padded)
    return np.flatnonzero(edges == 1), np.flatnonzero(edges == -1)


class LFQRestructurer:
    """재구성(restructuring) 전용 클래스"""

    @staticmethod
    def restructure(
        lfq: LFQData, ma: int = None, addl_sqrt: bool = None
    ) -> RestructuredLFQ:
        """
        Catch matrix -> restructured scores -> peak labels -> ASP

        :param ma: 이동평균 창 크기 (홀수). None 이면 settings.MA
        :param addl_sqrt: 양의 점수에 추가 제곱근 보정 적용 여부
        """
        ma = settings.MA if ma is None else ma
        addl_sqrt = settings.ADDL_SQRT if addl_sqrt is None else addl_sqrt
        LFQRestructurer.check_window(ma)
        ma = int(ma)

        # 열(표본 날짜)마다 독립적으로 처리
        columns = [
            LFQRestructurer.restructure_column(lfq.catch[:, i], ma, addl_sqrt)
            for i in range(lfq.n_dates)
        ]
        rcounts = np.column_stack(columns)

        degenerate = np.flatnonzero(~np.any(lfq.catch > 0, axis=0))
        for i in degenerate:
            logger.warning(
                f"Sample {lfq.dates[i]} has no catches; restructured scores set to 0."
            )

        peaks_mat = LFQRestructurer.label_peaks(rcounts)
        column_asp = LFQRestructurer.sum_of_peaks(rcounts)
        asp = float(np.sum(column_asp))
        logger.debug(f"Restructured {lfq.n_dates} samples with MA={ma}: ASP={asp:.4f}")

        return RestructuredLFQ(
            mid_lengths=lfq.mid_lengths,
            dates=lfq.dates,
            catch=lfq.catch,
            par=lfq.par,
            rcounts=rcounts,
            peaks_mat=peaks_mat,
            asp=asp,
            ma=ma,
            column_asp=column_asp,
        )

    @staticmethod
    def check_window(ma) -> None:
        _check_window(ma)

    @staticmethod
    def adjustment_factors(counts: np.ndarray, ma: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Step A & B: AF = count / moving average, and the number of adjacent zeros.
        경계에서 잘려나간 위치는 인접 0 으로 계산합니다.
        """
        c = np.asarray(counts, dtype=float)
        n = len(c)
        pm = (ma - 1) // 2
        window = np.ones(ma)

        inside = np.concatenate((np.zeros(pm), np.ones(n), np.zeros(pm)))
        padded = np.concatenate((np.zeros(pm), c, np.zeros(pm)))
        is_zero = (padded == 0) & (inside == 1)

        n_in = np.convolve(inside, window, mode="valid")
        # 잘려나간 위치는 0 으로 더해지고 분모는 항상 ma
        ma_j = np.convolve(padded, window, mode="valid") / ma
        nz = np.convolve(is_zero.astype(float), window, mode="valid") - (c == 0)
        nz = nz + (ma - n_in)

        with np.errstate(divide="ignore", invalid="ignore"):
            af = c / ma_j
        af[~np.isfinite(af)] = 0.0
        return af, nz

    @staticmethod
    def restructure_column(
        counts: np.ndarray, ma: int, addl_sqrt: bool = False
    ) -> np.ndarray:
        """Restructure one sample (length-class vector). Pure; returns a new array."""
        c = np.asarray(counts, dtype=float)
        n = len(c)
        af, nz = LFQRestructurer.adjustment_factors(c, ma)

        # Step C
        mean_af = af.mean()
        if mean_af == 0:
            return np.zeros(n)
        fs = af / mean_af - 1

        # Steps D & E: 인접 0 에 대한 감쇠
        pos = fs > 0
        fs[pos] = fs[pos] * 2.0 ** (-nz[pos])
        # 마지막 계급이 음수면 0, 마지막에서 두 번째가 음수면 절반
        if fs[-1] < 0:
            fs[-1] = 0.0
        if n > 1 and fs[-2] < 0:
            fs[-2] = fs[-2] / 2

        # Step F: 양/음 합의 균형
        spv = fs[fs > 0].sum()
        snv = fs[fs < 0].sum()
        fs[(1 + fs < 1e-8) | np.isnan(fs)] = 0.0
        neg = fs < 0
        if np.any(neg):
            fs[neg] = fs[neg] * (spv / -snv)

        if addl_sqrt:
            pos = fs > 0
            fs[pos] = fs[pos] / np.sqrt(1 + 2 / c[pos])

        return fs

    @staticmethod
    def label_peaks(rcounts: np.ndarray) -> np.ndarray:
        """
        양의 점수가 연속되는 구간(run)마다 번호를 매김.
        열 내부 번호 + 열 index * (열별 최대 run 개수) 로 전체에서 고유.
        """
        positive = np.asarray(rcounts) > 0
        local = np.zeros(positive.shape, dtype=np.int64)
        for i in range(positive.shape[1]):
            starts, ends = _runs(positive[:, i])
            for k, (s, e) in enumerate(zip(starts, ends), start=1):
                local[s:e, i] = k

        max_n = int(local.max()) if local.size else 0
        offset = np.arange(positive.shape[1]) * max_n
        return np.where(positive, local + offset[np.newaxis, :], 0)

    @staticmethod
    def sum_of_peaks(rcounts: np.ndarray) -> np.ndarray:
        """Per sample: sum of the maximum of every positive run (column ASP)."""
        rcounts = np.asarray(rcounts, dtype=float)
        out = np.zeros(rcounts.shape[1])
        for i in range(rcounts.shape[1]):
            col = rcounts[:, i]
            starts, ends = _runs(col > 0)
            out[i] = sum(col[s:e].max() for s, e in zip(starts, ends))
        return out
