"""
ELEFAN: Electronic LEngth Frequency ANalysis.
Restructuring of length-frequency data and growth curve fitting.
"""

from elefan.core import LFQData, RestructuredLFQ, date2yeardec, yeardec2date
from elefan.errors import ElefanError, InvalidParameter
from elefan.fitting import CurveScorer, FitScore, fit_curves
from elefan.growth import (
    GrowthParameters,
    age_at_length,
    cohort_trajectories,
    max_age,
    vbgf,
)
from elefan.modify import lfq_modify
from elefan.optimizers import (
    GeneticSearch,
    KScanSearch,
    ResponseSurfaceSearch,
    ScoreSurface,
    SearchBounds,
    SearchResult,
    SimulatedAnnealing,
)
from elefan.pipeline import ElefanPipeline, JackknifeResult, jackknife
from elefan.processing import LFQRestructurer

__all__ = [
    "CurveScorer",
    "ElefanError",
    "ElefanPipeline",
    "FitScore",
    "GeneticSearch",
    "GrowthParameters",
    "InvalidParameter",
    "JackknifeResult",
    "KScanSearch",
    "LFQData",
    "LFQRestructurer",
    "RestructuredLFQ",
    "ResponseSurfaceSearch",
    "ScoreSurface",
    "SearchBounds",
    "SearchResult",
    "SimulatedAnnealing",
    "age_at_length",
    "cohort_trajectories",
    "date2yeardec",
    "fit_curves",
    "jackknife",
    "lfq_modify",
    "max_age",
    "vbgf",
    "yeardec2date",
]
