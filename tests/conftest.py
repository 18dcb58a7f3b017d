import numpy as np
import pandas as pd
import pytest

from elefan import GrowthParameters, LFQData, LFQRestructurer, date2yeardec, vbgf

TRUE_PAR = GrowthParameters(Linf=80.0, K=0.5, t_anchor=0.25)
PEAK = np.array([1, 4, 10, 20, 10, 4, 1], dtype=float)
MIDS = np.arange(1.0, 100.0, 2.0)
DATES = pd.to_datetime(["2020-02-15", "2020-05-15", "2020-08-15", "2020-11-15"])


def make_cohort_lfq(par=TRUE_PAR, dates=DATES, mids=MIDS):
    """One cohort (born 2019 + t_anchor) as a Gaussian-like peak per sample."""
    t = date2yeardec(dates)
    lengths = vbgf(par, t - 2019.0)
    edges = np.concatenate(([mids[0] - 1], (mids[:-1] + mids[1:]) / 2, [mids[-1] + 1]))
    centres = np.searchsorted(edges, lengths, side="right") - 1

    catch = np.zeros((len(mids), len(t)))
    for j, c in enumerate(centres):
        catch[c - 3 : c + 4, j] = PEAK
    return LFQData(mid_lengths=mids, dates=dates, catch=catch)


@pytest.fixture
def true_par():
    return TRUE_PAR


@pytest.fixture
def cohort_lfq():
    return make_cohort_lfq()


@pytest.fixture
def restructured(cohort_lfq):
    return LFQRestructurer.restructure(cohort_lfq, ma=5)
