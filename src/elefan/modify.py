"""
LFQ modification: yearly aggregation, trimming of empty length classes and
an explicit plus group.
"""

from typing import Optional

import numpy as np
import pandas as pd
from loguru import logger

from elefan.core import LFQData
from elefan.errors import InvalidParameter
from elefan.growth import GrowthParameters


def lfq_modify(
    lfq: LFQData,
    par: Optional[GrowthParameters] = None,
    plus_group: Optional[float] = None,
) -> LFQData:
    """
    연도별 합계 catch matrix 로 재배열 (예: catch curve 용).

    :param par: 함께 보관할 성장 파라미터 (None 이면 lfq.par 유지)
    :param plus_group: plus group 으로 사용할 길이 계급 중앙값.
                       이보다 큰 계급은 모두 이 계급에 합산됩니다.
    """
    frame = lfq.to_frame()
    years = frame.columns.year.to_numpy()

    # 연도별 합계, 날짜는 해당 연도 표본 날짜의 평균
    yearly = frame.T.groupby(years).sum().T
    dates = pd.Series(frame.columns).groupby(years).mean().dt.floor("D")

    totals = yearly.sum(axis=1).to_numpy()
    nonzero = np.flatnonzero(totals > 0)
    if len(nonzero) == 0:
        raise InvalidParameter("catch matrix contains no catches")
    yearly = yearly.iloc[nonzero[0] : nonzero[-1] + 1]

    if plus_group is not None:
        mids = yearly.index.to_numpy()
        matches = np.flatnonzero(np.isclose(mids, plus_group))
        if len(matches) == 0:
            raise InvalidParameter(
                f"{plus_group} is not an element of mid_lengths "
                f"(between {mids.min()} and {mids.max()})"
            )
        k = int(matches[0])
        plus = yearly.iloc[k:].sum(axis=0)
        yearly = yearly.iloc[: k + 1].copy()
        yearly.iloc[k] = plus
        logger.debug(f"Plus group at {mids[k]} holds {plus.sum():.0f} individuals")

    return LFQData(
        mid_lengths=yearly.index.to_numpy(dtype=float),
        dates=dates.to_numpy(),
        catch=yearly.to_numpy(dtype=float),
        par=lfq.par if par is None else par,
    )
