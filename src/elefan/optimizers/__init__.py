from .base import (
    ScoreSurface,
    SearchBounds,
    SearchResult,
    SearchStrategy,
    reflect,
    search_dims,
    to_parameters,
)
from .annealing import AnnealingConfig, SimulatedAnnealing
from .genetic import GeneticConfig, GeneticSearch
from .grid import KScanSearch, ResponseSurfaceSearch, anchor_line_search

__all__ = [
    "AnnealingConfig",
    "GeneticConfig",
    "GeneticSearch",
    "KScanSearch",
    "ResponseSurfaceSearch",
    "ScoreSurface",
    "SearchBounds",
    "SearchResult",
    "SearchStrategy",
    "SimulatedAnnealing",
    "anchor_line_search",
    "reflect",
    "search_dims",
    "to_parameters",
]
