"""Tests for the LFQ container and date conversion."""

import numpy as np
import pandas as pd
import pytest

from elefan import InvalidParameter, LFQData, RestructuredLFQ, date2yeardec, yeardec2date


def test_date2yeardec_new_year():
    assert date2yeardec("2020-01-01")[0] == 2020.0


def test_date2yeardec_day_fraction():
    assert date2yeardec("2021-01-11")[0] == pytest.approx(2021 + 10 / 365.25)


def test_yeardec2date_roundtrip():
    dates = pd.to_datetime(["2014-02-21", "2015-07-01", "2016-12-30"]).to_numpy().astype("datetime64[D]")
    back = yeardec2date(date2yeardec(dates))
    assert np.array_equal(back, dates)


def test_yeardec2date_example():
    assert yeardec2date(2014.14)[0] == np.datetime64("2014-02-21")


@pytest.mark.parametrize(
    "yeardec, expected",
    [(2019.999, "2019-12-31"), (2020.9995, "2020-12-31"), (2021.0, "2021-01-01")],
)
def test_yeardec2date_stays_in_year(yeardec, expected):
    assert yeardec2date(yeardec)[0] == np.datetime64(expected)


def test_shape_mismatch():
    with pytest.raises(InvalidParameter):
        LFQData(mid_lengths=[1, 3, 5], dates=["2020-01-01", "2020-02-01"], catch=np.ones((2, 2)))


def test_mid_lengths_must_increase():
    with pytest.raises(InvalidParameter):
        LFQData(mid_lengths=[1, 5, 3], dates=["2020-01-01"], catch=np.ones(3))


def test_dates_must_increase():
    with pytest.raises(InvalidParameter):
        LFQData(mid_lengths=[1, 3], dates=["2020-02-01", "2020-01-01"], catch=np.ones((2, 2)))


def test_negative_catch_rejected():
    with pytest.raises(InvalidParameter):
        LFQData(mid_lengths=[1, 3], dates=["2020-01-01"], catch=[1.0, -2.0])


def test_single_date_vector_promoted():
    lfq = LFQData(mid_lengths=[1, 3, 5], dates=["2020-01-01"], catch=[0, 2, 1])
    assert lfq.catch.shape == (3, 1)
    assert lfq.n_dates == 1


def test_arrays_are_read_only(cohort_lfq):
    with pytest.raises(ValueError):
        cohort_lfq.catch[0, 0] = 5.0


def test_bin_edges_uniform():
    lfq = LFQData(mid_lengths=[2, 4, 6], dates=["2020-01-01"], catch=[1, 1, 1])
    assert np.allclose(lfq.bin_edges, [1, 3, 5, 7])


def test_bin_edges_non_uniform():
    lfq = LFQData(mid_lengths=[1, 3, 7], dates=["2020-01-01"], catch=[1, 1, 1])
    assert np.allclose(lfq.bin_edges, [0, 2, 5, 9])


def test_to_frame(cohort_lfq):
    frame = cohort_lfq.to_frame()
    assert frame.shape == cohort_lfq.catch.shape
    assert frame.index.name == "mid_length"


def _restructured(ma):
    return RestructuredLFQ(
        mid_lengths=[1.0, 3.0, 5.0],
        dates=["2020-01-01"],
        catch=np.ones(3),
        rcounts=np.zeros((3, 1)),
        peaks_mat=np.zeros((3, 1)),
        asp=0.0,
        ma=ma,
    )


@pytest.mark.parametrize("ma", [True, 5.5, 4, 0])
def test_restructured_rejects_invalid_window(ma):
    with pytest.raises(InvalidParameter):
        _restructured(ma)


def test_restructured_accepts_integral_float_window():
    assert _restructured(5.0).ma == 5
