"""Tests for the grid, annealing and genetic search strategies."""

import numpy as np
import pandas as pd
import pytest

from elefan import (
    CurveScorer,
    GeneticSearch,
    InvalidParameter,
    KScanSearch,
    ResponseSurfaceSearch,
    SearchBounds,
    SimulatedAnnealing,
)
from elefan.optimizers import anchor_line_search, reflect, search_dims

LINF_RANGE = [60.0, 70.0, 80.0, 90.0, 100.0]
K_RANGE = [0.3, 0.4, 0.5, 0.6, 0.7]


@pytest.fixture
def scorer(restructured):
    return CurveScorer(restructured)


@pytest.fixture
def bounds():
    return SearchBounds(Linf=(60.0, 100.0), K=(0.2, 1.0))


# --- bounds / helpers ---------------------------------------------------


def test_bounds_low_above_up():
    with pytest.raises(InvalidParameter):
        SearchBounds(Linf=(100.0, 60.0), K=(0.2, 1.0))


def test_bounds_phase_outside_unit_interval():
    with pytest.raises(InvalidParameter):
        SearchBounds(Linf=(60.0, 100.0), K=(0.2, 1.0), t_anchor=(0.0, 1.5))


def test_bounds_non_positive_k():
    with pytest.raises(InvalidParameter):
        SearchBounds(Linf=(60.0, 100.0), K=(0.0, 1.0))


def test_reflect_into_box():
    low, up = np.array([0.0, 10.0]), np.array([1.0, 20.0])
    out = reflect(np.array([1.2, 7.0]), low, up)
    assert np.allclose(out, [0.8, 13.0])
    far = reflect(np.array([-5.3, 55.0]), low, up)
    assert np.all((far >= low) & (far <= up))


def test_reflect_fixed_dimension():
    out = reflect(np.array([3.0]), np.array([0.5]), np.array([0.5]))
    assert out[0] == 0.5


def test_non_seasonal_dims():
    assert search_dims(False) == ["Linf", "K", "t_anchor"]
    assert search_dims(True) == ["Linf", "K", "t_anchor", "C", "ts"]


# --- response surface ----------------------------------------------------


def test_grid_recovers_true_parameters(scorer):
    """Synthetic single cohort: Rn > 0.7 at the generating (K, Linf)."""
    result = ResponseSurfaceSearch(LINF_RANGE, K_RANGE, n_anchor=4).search(scorer)
    assert scorer.asp > 0
    assert result.surface.rn.loc[0.5, 80.0] > 0.7
    assert result.rn == pytest.approx(result.surface.rn.to_numpy().max())
    assert np.all(result.surface.rn.to_numpy() <= 1.0 + 1e-12)
    assert result.stop_reason == "exhausted"


def test_grid_matches_brute_force(scorer):
    result = ResponseSurfaceSearch(LINF_RANGE, K_RANGE, t_anchor=0.25).search(scorer)
    for K in K_RANGE:
        for Linf in LINF_RANGE:
            expected = scorer.score_vector(Linf, K, 0.25)[1]
            assert result.surface.rn.loc[K, Linf] == expected
    assert result.n_evaluations == len(K_RANGE) * len(LINF_RANGE)


def test_line_search_cells_are_reproducible(scorer):
    result = ResponseSurfaceSearch(LINF_RANGE, K_RANGE, n_anchor=6).search(scorer)
    for K in K_RANGE:
        for Linf in LINF_RANGE:
            ta = result.surface.t_anchor.loc[K, Linf]
            assert result.surface.rn.loc[K, Linf] == scorer.score_vector(Linf, K, ta)[1]


def test_grid_parallel_equals_sequential(scorer):
    seq = ResponseSurfaceSearch(LINF_RANGE, K_RANGE, n_anchor=4, n_jobs=1).search(scorer)
    par = ResponseSurfaceSearch(
        LINF_RANGE, K_RANGE, n_anchor=4, n_jobs=2, backend="threading"
    ).search(scorer)
    pd.testing.assert_frame_equal(seq.surface.rn, par.surface.rn)
    pd.testing.assert_frame_equal(seq.surface.t_anchor, par.surface.t_anchor)
    assert seq.par == par.par


def test_line_search_not_worse_than_coarse(scorer):
    ta, rn, n = anchor_line_search(scorer, 80.0, 0.5, n_anchor=8)
    coarse = [scorer.score_vector(80.0, 0.5, a)[1] for a in np.arange(8) / 8]
    assert rn >= max(coarse)
    assert 0.0 <= ta < 1.0
    assert n > 8


def test_grid_trace_running_best(scorer):
    result = ResponseSurfaceSearch(LINF_RANGE, K_RANGE, t_anchor=0.25).search(scorer)
    assert list(result.trace["K"]) == K_RANGE
    assert np.all(np.diff(result.trace["best"]) >= 0)


def test_kscan(scorer):
    result = KScanSearch(80.0, K_RANGE, t_anchor=0.25).search(scorer)
    assert result.surface.rn.shape == (len(K_RANGE), 1)
    assert result.par.Linf == 80.0
    assert result.par.K == 0.5
    assert result.rn == pytest.approx(1.0)


def test_grid_rejects_bad_ranges():
    with pytest.raises(InvalidParameter):
        ResponseSurfaceSearch([], K_RANGE)
    with pytest.raises(InvalidParameter):
        ResponseSurfaceSearch(LINF_RANGE, [0.0, 0.5])
    with pytest.raises(InvalidParameter):
        ResponseSurfaceSearch(LINF_RANGE, K_RANGE, t_anchor=1.2)


# --- simulated annealing -------------------------------------------------


def test_sa_seed_deterministic(scorer, bounds):
    a = SimulatedAnnealing(bounds, maxiter=15, n_inner=5, seed=42).search(scorer)
    b = SimulatedAnnealing(bounds, maxiter=15, n_inner=5, seed=42).search(scorer)
    assert a.par == b.par
    assert a.rn == b.rn
    pd.testing.assert_frame_equal(a.trace, b.trace)


def test_sa_keeps_best_ever(scorer, bounds):
    result = SimulatedAnnealing(bounds, maxiter=20, n_inner=5, seed=1).search(scorer)
    assert np.all(np.diff(result.trace["best"]) >= 0)
    assert np.all(result.trace["best"] >= result.trace["current"])
    assert result.trace["best"].iloc[-1] == pytest.approx(result.rn)
    assert result.n_evaluations == 1 + 20 * 5
    assert result.stop_reason == "maxiter"


def test_sa_respects_bounds_and_non_seasonal(scorer, bounds):
    result = SimulatedAnnealing(bounds, maxiter=10, n_inner=4, step=2.0, seed=7).search(scorer)
    assert 60.0 <= result.par.Linf <= 100.0
    assert 0.2 <= result.par.K <= 1.0
    assert result.par.C == 0.0 and result.par.ts == 0.0


def test_sa_seasonalised(scorer):
    bounds = SearchBounds(Linf=(60.0, 100.0), K=(0.2, 1.0), C=(0.0, 0.5))
    result = SimulatedAnnealing(bounds, seasonalised=True, maxiter=10, n_inner=4, seed=3).search(scorer)
    assert 0.0 <= result.par.C <= 0.5
    assert 0.0 <= result.par.ts < 1.0


def test_sa_time_budget(scorer, bounds):
    result = SimulatedAnnealing(bounds, maxiter=500, n_inner=2, max_time=1e-9, seed=0).search(scorer)
    assert result.stop_reason == "time"
    assert len(result.trace) == 1


def test_sa_from_initial_guess(scorer, bounds, true_par):
    result = SimulatedAnnealing(bounds, init_par=true_par, maxiter=5, n_inner=3, seed=0).search(scorer)
    assert result.rn == pytest.approx(1.0)


def test_sa_invalid_cooling(bounds):
    with pytest.raises(InvalidParameter):
        SimulatedAnnealing(bounds, cooling=1.5)


# --- genetic algorithm ---------------------------------------------------


def test_ga_seed_deterministic(scorer, bounds):
    a = GeneticSearch(bounds, popsize=12, maxiter=8, seed=5).search(scorer)
    b = GeneticSearch(bounds, popsize=12, maxiter=8, seed=5).search(scorer)
    assert a.par == b.par
    pd.testing.assert_frame_equal(a.trace, b.trace)


def test_ga_trace(scorer, bounds):
    result = GeneticSearch(bounds, popsize=12, maxiter=8, run=100, seed=9).search(scorer)
    assert len(result.trace) == 9
    assert np.all(np.diff(result.trace["best"]) >= 0)
    assert np.all(result.trace["best"] >= result.trace["max"])
    assert np.all(result.trace["max"] >= result.trace["mean"])
    assert result.stop_reason == "maxiter"


def test_ga_stops_without_improvement(scorer, bounds):
    """Without crossover or mutation no child can beat the best parent."""
    result = GeneticSearch(
        bounds, popsize=10, maxiter=50, run=1, pmutation=0.0, pcrossover=0.0, seed=2
    ).search(scorer)
    assert result.stop_reason == "run"
    assert len(result.trace) == 2


def test_ga_result_within_bounds(scorer):
    bounds = SearchBounds(Linf=(70.0, 90.0), K=(0.4, 0.6), t_anchor=(0.2, 0.3))
    result = GeneticSearch(bounds, popsize=10, maxiter=5, seed=4).search(scorer)
    assert 70.0 <= result.par.Linf <= 90.0
    assert 0.4 <= result.par.K <= 0.6
    assert 0.2 <= result.par.t_anchor <= 0.3


@pytest.mark.parametrize(
    "kwargs",
    [dict(popsize=1), dict(pmutation=1.5), dict(popsize=4, elitism=4), dict(maxiter=0)],
)
def test_ga_invalid_config(bounds, kwargs):
    with pytest.raises(InvalidParameter):
        GeneticSearch(bounds, **kwargs)
