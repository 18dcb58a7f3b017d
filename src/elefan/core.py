"""
Core data structures for length-frequency (LFQ) analysis.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

import numpy as np
import pandas as pd

from elefan.errors import InvalidParameter

if TYPE_CHECKING:
    from elefan.growth import GrowthParameters


def date2yeardec(dates) -> np.ndarray:
    """Dates -> decimal years (year + (day of year - 1) / 365.25)."""
    idx = pd.DatetimeIndex(pd.to_datetime(np.atleast_1d(dates)))
    return (idx.year + (idx.dayofyear - 1) / 365.25).to_numpy(dtype=float)


def yeardec2date(yeardec) -> np.ndarray:
    """Decimal years -> ``datetime64[D]`` (inverse of :func:`date2yeardec`)."""
    yd = np.atleast_1d(np.asarray(yeardec, dtype=float))
    years = np.floor(yd).astype(np.int64)
    doy = np.round((yd - years) * 365.25 + 1).astype(np.int64)
    jan1 = (years - 1970).astype("datetime64[Y]").astype("datetime64[D]")
    next_jan1 = (years - 1969).astype("datetime64[Y]").astype("datetime64[D]")
    # 연말 반올림이 다음 해 1월 1일로 넘어가지 않도록 해당 연도 일수로 제한
    doy = np.minimum(doy, (next_jan1 - jan1).astype(np.int64))
    return jan1 + (doy - 1).astype("timedelta64[D]")


def check_window(ma) -> None:
    """Moving-average window must be an odd positive integer."""
    if isinstance(ma, bool) or int(ma) != ma or ma < 1 or ma % 2 == 0:
        raise InvalidParameter(f"MA must be an odd positive integer, got {ma!r}")


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, copy=True)
    arr.setflags(write=False)
    return arr


@dataclass
class LFQData:
    """
    길이빈도(LFQ) 데이터 컨테이너.
    행 = 길이 계급(midpoint), 열 = 표본 날짜.
    """

    mid_lengths: np.ndarray  # 길이 계급 중앙값 (strictly increasing)
    dates: np.ndarray  # 표본 날짜 (datetime64[D])
    catch: np.ndarray  # 어획 개체수 (len(mid_lengths), len(dates))
    par: Optional["GrowthParameters"] = None

    def __post_init__(self):
        mids = np.asarray(self.mid_lengths, dtype=float)
        dates = pd.to_datetime(np.atleast_1d(self.dates)).to_numpy().astype(
            "datetime64[D]"
        )
        catch = np.asarray(self.catch, dtype=float)
        if catch.ndim == 1:
            catch = catch.reshape(-1, 1)

        if mids.ndim != 1 or len(mids) < 2:
            raise InvalidParameter("mid_lengths must be 1-D with at least 2 classes")
        if np.any(np.diff(mids) <= 0):
            raise InvalidParameter("mid_lengths must be strictly increasing")
        if len(dates) > 1 and np.any(np.diff(dates) <= np.timedelta64(0, "D")):
            raise InvalidParameter("dates must be strictly increasing")
        if catch.ndim != 2 or catch.shape != (len(mids), len(dates)):
            raise InvalidParameter(
                f"catch shape {catch.shape} does not match "
                f"({len(mids)} length classes, {len(dates)} dates)"
            )
        if not np.all(np.isfinite(catch)) or np.any(catch < 0):
            raise InvalidParameter("catch must contain finite, non-negative counts")

        self.mid_lengths = _frozen(mids)
        self.dates = _frozen(dates)
        self.catch = _frozen(catch)

    @property
    def n_lengths(self) -> int:
        return len(self.mid_lengths)

    @property
    def n_dates(self) -> int:
        return len(self.dates)

    @property
    def t(self) -> np.ndarray:
        """Sample times as decimal years."""
        return date2yeardec(self.dates)

    @property
    def bin_edges(self) -> np.ndarray:
        """Class boundaries (N+1); outer bins reuse the neighbouring width."""
        mids = self.mid_lengths
        width = np.diff(mids)
        return np.concatenate(
            (
                [mids[0] - width[0] / 2],
                (mids[:-1] + mids[1:]) / 2,
                [mids[-1] + width[-1] / 2],
            )
        )

    def to_frame(self) -> pd.DataFrame:
        """Catch matrix as a DataFrame (index = mid lengths, columns = dates)."""
        return pd.DataFrame(
            self.catch,
            index=pd.Index(self.mid_lengths, name="mid_length"),
            columns=pd.DatetimeIndex(self.dates, name="date"),
        )


@dataclass(kw_only=True)
class RestructuredLFQ(LFQData):
    """Restructured LFQ: 재구성 점수, 피크 번호 행렬, ASP 추가."""

    rcounts: np.ndarray  # 재구성 점수, catch 와 같은 shape
    peaks_mat: np.ndarray  # 양의 run 마다 고유 번호, 나머지는 0
    asp: float  # available sum of peaks
    ma: int  # moving average window
    column_asp: np.ndarray = field(default=None)

    def __post_init__(self):
        super().__post_init__()
        check_window(self.ma)
        self.ma = int(self.ma)
        rcounts = np.asarray(self.rcounts, dtype=float)
        peaks = np.asarray(self.peaks_mat, dtype=np.int64)
        if rcounts.shape != self.catch.shape or peaks.shape != self.catch.shape:
            raise InvalidParameter("rcounts/peaks_mat must have the catch shape")
        self.rcounts = _frozen(rcounts)
        self.peaks_mat = _frozen(peaks)
        if self.column_asp is not None:
            self.column_asp = _frozen(np.asarray(self.column_asp, dtype=float))
        self.asp = float(self.asp)
